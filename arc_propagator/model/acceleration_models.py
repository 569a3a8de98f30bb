"""
Acceleration and Torque Models
==============================

Closed-form acceleration and torque evaluators. Each model references the
bodies it depends on, reads their current states (read-only), and exposes:

  update_members(time) : recompute the contribution for the current body states
  get_acceleration()   : last computed acceleration [m/s²]  (AccelerationModel)
  get_torque()         : last computed torque [N m]          (TorqueModel)

Models recompute on every update_members call: integrators evaluate different
states at the same time (Runge-Kutta stages) and may step backward.

Class Structure:
----------------
  AccelerationModel
  ├── PointMassGravityAcceleration            (exerting body is the central body)
  ├── ThirdBodyPointMassGravityAcceleration   (direct minus indirect term)
  ├── ZonalGravityAcceleration                (J2, J3, J4)
  ├── AerodynamicAcceleration                 (exponential atmosphere, co-rotating)
  ├── CannonballRadiationPressureAcceleration (cylindrical shadow)
  └── EmpiricalAcceleration                   (constant + sine + cosine)
  TorqueModel
  ├── GravityGradientTorque
  └── ConstantTorque

Sources:
--------
- Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.). Microcosm Press.
- Montenbruck, O., & Gill, E. (2000). Satellite Orbits: Models, Methods and Applications. Springer.
"""
import numpy as np

from typing import Optional, Sequence

from arc_propagator.model.acceleration_settings import AccelerationType, TorqueType
from arc_propagator.model.body                  import Body
from arc_propagator.model.constants             import CONVERTER, SOLARSYSTEMCONSTANTS
from arc_propagator.model.errors                import InvalidStateError


def _position(
  body : Optional[Body],
) -> np.ndarray:
  # None stands for the global frame origin
  if body is None:
    return np.zeros(3)
  return body.translational_state[0:3]


def _velocity(
  body : Optional[Body],
) -> np.ndarray:
  if body is None:
    return np.zeros(3)
  return body.translational_state[3:6]


# =============================================================================
# Accelerations
# =============================================================================

class AccelerationModel:
  """
  Base class for acceleration models acting on one body.
  """

  acceleration_type : Optional[AccelerationType] = None

  def __init__(
    self,
    body_undergoing : Body,
    body_exerting   : Optional[Body],
  ):
    self.body_undergoing = body_undergoing
    self.body_exerting   = body_exerting
    self.current_time    = None
    self._acc_vec        = np.zeros(3)

  def update_members(
    self,
    time : float,
  ) -> None:
    self.current_time = time
    self._acc_vec     = self._compute(time)

  def get_acceleration(
    self,
  ) -> np.ndarray:
    return self._acc_vec

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    raise NotImplementedError

  def _invalid(
    self,
    message : str,
    time    : float,
  ) -> InvalidStateError:
    return InvalidStateError(message, time=time, body_name=self.body_undergoing.name)


class PointMassGravityAcceleration(AccelerationModel):
  """
  Point mass gravity of the central body acting on the undergoing body.

    acc_vec = -(gp_central + gp_undergoing) * pos_vec / |pos_vec|³

  where pos_vec is the undergoing body's position relative to the central body.
  Including the undergoing body's own gravitational parameter gives the exact
  relative two-body motion; it is zero for spacecraft.
  """

  acceleration_type = AccelerationType.POINT_MASS_GRAVITY

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    pos_vec = _position(self.body_undergoing) - _position(self.body_exerting)
    pos_mag = np.linalg.norm(pos_vec)
    if not pos_mag > 0.0:
      raise self._invalid(f"Zero separation from '{self.body_exerting.name}' in point mass gravity", time)

    gp = self.body_exerting.gravitational_parameter + self.body_undergoing.gravitational_parameter
    return -gp * pos_vec / pos_mag**3


class ThirdBodyPointMassGravityAcceleration(AccelerationModel):
  """
  Point mass gravity of a perturbing body on a body propagated relative to a
  central body: the direct term on the undergoing body minus the term on the
  central body.

    acc_vec = gp * ( pos_und_to_pert_vec / |.|³ - pos_cent_to_pert_vec / |.|³ )

  When the central body is the global frame origin the indirect term vanishes.
  """

  acceleration_type = AccelerationType.POINT_MASS_GRAVITY

  def __init__(
    self,
    body_undergoing : Body,
    body_exerting   : Body,
    central_body    : Optional[Body],
  ):
    super().__init__(body_undergoing, body_exerting)
    self.central_body = central_body

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    gp           = self.body_exerting.gravitational_parameter
    pos_pert_vec = _position(self.body_exerting)

    # Direct term
    pos_und_to_pert_vec = pos_pert_vec - _position(self.body_undergoing)
    pos_und_to_pert_mag = np.linalg.norm(pos_und_to_pert_vec)
    if not pos_und_to_pert_mag > 0.0:
      raise self._invalid(f"Zero separation from perturbing body '{self.body_exerting.name}'", time)
    acc_vec = gp * pos_und_to_pert_vec / pos_und_to_pert_mag**3

    # Indirect term
    if self.central_body is not None:
      pos_cent_to_pert_vec = pos_pert_vec - _position(self.central_body)
      pos_cent_to_pert_mag = np.linalg.norm(pos_cent_to_pert_vec)
      if not pos_cent_to_pert_mag > 0.0:
        raise self._invalid(f"Perturbing body '{self.body_exerting.name}' coincides with central body", time)
      acc_vec = acc_vec - gp * pos_cent_to_pert_vec / pos_cent_to_pert_mag**3

    return acc_vec


class ZonalGravityAcceleration(AccelerationModel):
  """
  J2, J3, J4 zonal harmonic perturbations of the exerting body.

  Notes:
  ------
    Zonal harmonics are rotationally symmetric about the body z-axis. The
    model assumes the inertial z-axis is aligned with the body pole, so
    inertial coordinates are used directly.
  """

  acceleration_type = AccelerationType.ZONAL_GRAVITY

  def __init__(
    self,
    body_undergoing  : Body,
    body_exerting    : Body,
    j2               : float,
    j3               : float,
    j4               : float,
    reference_radius : float,
  ):
    super().__init__(body_undergoing, body_exerting)
    self.j2               = j2
    self.j3               = j3
    self.j4               = j4
    self.reference_radius = reference_radius

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    pos_vec = _position(self.body_undergoing) - _position(self.body_exerting)
    pos_x, pos_y, pos_z = pos_vec[0], pos_vec[1], pos_vec[2]

    pos_mag_pwr2 = pos_x**2 + pos_y**2 + pos_z**2
    if not pos_mag_pwr2 > 0.0:
      raise self._invalid(f"Zero separation from '{self.body_exerting.name}' in zonal gravity", time)
    pos_mag      = np.sqrt(pos_mag_pwr2)
    pos_mag_pwr5 = pos_mag_pwr2 * pos_mag_pwr2 * pos_mag
    pos_mag_pwr7 = pos_mag_pwr5 * pos_mag_pwr2
    z2_r2        = pos_z**2 / pos_mag_pwr2

    gp      = self.body_exerting.gravitational_parameter
    ref     = self.reference_radius
    acc_vec = np.zeros(3)

    if self.j2 != 0.0:
      factor      = 1.5 * self.j2 * gp * ref**2 / pos_mag_pwr5
      acc_vec[0] += factor * pos_x * (5.0 * z2_r2 - 1.0)
      acc_vec[1] += factor * pos_y * (5.0 * z2_r2 - 1.0)
      acc_vec[2] += factor * pos_z * (5.0 * z2_r2 - 3.0)

    if self.j3 != 0.0:
      factor      = 0.5 * self.j3 * gp * ref**3 / pos_mag_pwr7
      acc_vec[0] += factor * pos_x * (35.0 * pos_z * z2_r2 - 15.0 * pos_z)
      acc_vec[1] += factor * pos_y * (35.0 * pos_z * z2_r2 - 15.0 * pos_z)
      acc_vec[2] -= factor * (30.0 * pos_z**2 - 35.0 * pos_z**2 * z2_r2 - 3.0 * pos_mag_pwr2)

    if self.j4 != 0.0:
      factor      = 1.875 * self.j4 * gp * ref**4 / pos_mag_pwr7
      acc_vec[0] += factor * pos_x * (1.0 - 14.0 * z2_r2 + 21.0 * z2_r2**2)
      acc_vec[1] += factor * pos_y * (1.0 - 14.0 * z2_r2 + 21.0 * z2_r2**2)
      acc_vec[2] += factor * pos_z * (5.0 - 70.0 * z2_r2 / 3.0 + 21.0 * z2_r2**2)

    return acc_vec


class AerodynamicAcceleration(AccelerationModel):
  """
  Atmospheric drag using the exerting body's exponential atmosphere.

    acc_vec = -0.5 * rho * (cd * area / mass) * |vel_rel| * vel_rel

  The atmosphere co-rotates with the exerting body about its z-axis.
  """

  acceleration_type = AccelerationType.AERODYNAMIC

  def __init__(
    self,
    body_undergoing  : Body,
    body_exerting    : Body,
    drag_coefficient : float,
    reference_area   : float,
  ):
    super().__init__(body_undergoing, body_exerting)
    self.drag_coefficient = drag_coefficient
    self.reference_area   = reference_area

  def atmospheric_density(
    self,
    altitude : float,
  ) -> float:
    """
    Simplified exponential atmospheric density [kg/m³] at altitude [m].
    """
    if altitude < 0:
      altitude = 0.0
    return self.body_exerting.surface_density * np.exp(-altitude / self.body_exerting.scale_height)

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    if self.body_exerting.surface_density <= 0.0 or self.reference_area <= 0.0:
      return np.zeros(3)

    pos_vec = _position(self.body_undergoing) - _position(self.body_exerting)
    vel_vec = _velocity(self.body_undergoing) - _velocity(self.body_exerting)
    alt     = np.linalg.norm(pos_vec) - self.body_exerting.reference_radius
    rho     = self.atmospheric_density(float(alt))

    # Velocity relative to rotating atmosphere
    omega_vec   = np.array([0.0, 0.0, self.body_exerting.rotation_rate])
    vel_rel_vec = vel_vec - np.cross(omega_vec, pos_vec)
    vel_rel_mag = np.linalg.norm(vel_rel_vec)
    if vel_rel_mag == 0:
      return np.zeros(3)

    mass = self.body_undergoing.get_mass(time)
    return -0.5 * rho * (self.drag_coefficient * self.reference_area / mass) * vel_rel_mag * vel_rel_vec


class CannonballRadiationPressureAcceleration(AccelerationModel):
  """
  Radiation pressure from the exerting (radiating) body on a sphere.

    acc_vec = P(d) * cr * area / mass * shadow * d_dir,   P(d) = P_1au * (1 AU / d)²

  where d is the vector from the source to the undergoing body. Positions
  must be in meters.
  """

  acceleration_type = AccelerationType.CANNONBALL_RADIATION_PRESSURE

  def __init__(
    self,
    body_undergoing                : Body,
    body_exerting                  : Body,
    radiation_pressure_coefficient : float,
    reference_area                 : float,
    occulting_bodies               : Sequence[Body] = (),
  ):
    super().__init__(body_undergoing, body_exerting)
    self.radiation_pressure_coefficient = radiation_pressure_coefficient
    self.reference_area                 = reference_area
    self.occulting_bodies               = list(occulting_bodies)

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    if self.reference_area <= 0.0:
      return np.zeros(3)

    # Vector from source to spacecraft
    src_to_sat_pos_vec = _position(self.body_undergoing) - _position(self.body_exerting)
    src_to_sat_pos_mag = np.linalg.norm(src_to_sat_pos_vec)
    if not src_to_sat_pos_mag > 0.0:
      raise self._invalid(f"Zero separation from radiating body '{self.body_exerting.name}'", time)

    # Shadow factor (0.0 = full shadow, 1.0 = full sunlight)
    shadow_factor = 1.0
    for occulting_body in self.occulting_bodies:
      occ_to_src_pos_vec = _position(self.body_exerting) - _position(occulting_body)
      if not np.linalg.norm(occ_to_src_pos_vec) > 0.0:
        raise self._invalid(
          f"Occulting body '{occulting_body.name}' coincides with radiating body '{self.body_exerting.name}'", time,
        )
      shadow_factor *= self._compute_shadow_factor(
        _position(self.body_undergoing) - _position(occulting_body),
        occ_to_src_pos_vec,
        occulting_body.reference_radius,
      )
    if shadow_factor == 0.0:
      return np.zeros(3)

    pressure_1_au = self.body_exerting.radiation_pressure_1_au or SOLARSYSTEMCONSTANTS.SUN.PRESSURE_SRP_1_AU
    pressure      = pressure_1_au * (CONVERTER.M_PER_AU / src_to_sat_pos_mag)**2
    mass          = self.body_undergoing.get_mass(time)
    acc_mag       = pressure * self.radiation_pressure_coefficient * self.reference_area / mass * shadow_factor

    return acc_mag * src_to_sat_pos_vec / src_to_sat_pos_mag

  @staticmethod
  def _compute_shadow_factor(
    occ_to_sat_pos_vec : np.ndarray,
    occ_to_src_pos_vec : np.ndarray,
    occ_radius         : float,
  ) -> float:
    """
    Cylindrical shadow: the shadow is a cylinder of the occulting body's
    radius extending away from the source.
    """
    occ_to_src_pos_dir = occ_to_src_pos_vec / np.linalg.norm(occ_to_src_pos_vec)

    # Distance along the source-occulter line, positive toward the source
    parallel_pos_mag = np.dot(occ_to_sat_pos_vec, occ_to_src_pos_dir)
    if parallel_pos_mag >= 0:
      return 1.0

    perpendicular_pos_vec = occ_to_sat_pos_vec - parallel_pos_mag * occ_to_src_pos_dir
    if np.linalg.norm(perpendicular_pos_vec) > occ_radius:
      return 1.0
    return 0.0


class EmpiricalAcceleration(AccelerationModel):
  """
  Empirical acceleration with constant and once-per-period harmonic terms.
  """

  acceleration_type = AccelerationType.EMPIRICAL

  def __init__(
    self,
    body_undergoing : Body,
    body_exerting   : Optional[Body],
    constant        : Sequence[float],
    sine            : Sequence[float],
    cosine          : Sequence[float],
    period          : float,
  ):
    super().__init__(body_undergoing, body_exerting)
    self.constant = np.array(constant, dtype=float)
    self.sine     = np.array(sine,     dtype=float)
    self.cosine   = np.array(cosine,   dtype=float)
    self.period   = period

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    phase = 2.0 * np.pi * time / self.period
    return self.constant + self.sine * np.sin(phase) + self.cosine * np.cos(phase)


# =============================================================================
# Torques
# =============================================================================

class TorqueModel:
  """
  Base class for torque models acting on one body, torques in body-fixed axes.
  """

  torque_type : Optional[TorqueType] = None

  def __init__(
    self,
    body_undergoing : Body,
    body_exerting   : Optional[Body],
  ):
    self.body_undergoing = body_undergoing
    self.body_exerting   = body_exerting
    self.current_time    = None
    self._torque_vec     = np.zeros(3)

  def update_members(
    self,
    time : float,
  ) -> None:
    self.current_time = time
    self._torque_vec  = self._compute(time)

  def get_torque(
    self,
  ) -> np.ndarray:
    return self._torque_vec

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    raise NotImplementedError


class GravityGradientTorque(TorqueModel):
  """
  Second-degree gravitational torque of a point mass on a rigid body.

    torque = (3 gp / r⁵) * (r_b x (I r_b))

  with r_b the vector to the exerting body in body-fixed axes.
  """

  torque_type = TorqueType.SECOND_DEGREE_GRAVITATIONAL

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    pos_vec = _position(self.body_exerting) - _position(self.body_undergoing)
    pos_mag = np.linalg.norm(pos_vec)
    if not pos_mag > 0.0:
      raise InvalidStateError(
        f"Zero separation from '{self.body_exerting.name}' in gravity gradient torque",
        time      = time,
        body_name = self.body_undergoing.name,
      )

    body_pos_vec = self.body_undergoing.rotation_to_inertial_frame().T @ pos_vec
    inertia_mat  = self.body_undergoing.get_inertia_tensor(time)
    coeff        = 3.0 * self.body_exerting.gravitational_parameter / pos_mag**5

    return coeff * np.cross(body_pos_vec, inertia_mat @ body_pos_vec)


class ConstantTorque(TorqueModel):
  """
  Constant torque in body-fixed axes.
  """

  torque_type = TorqueType.CONSTANT

  def __init__(
    self,
    body_undergoing : Body,
    torque          : Sequence[float],
  ):
    super().__init__(body_undergoing, None)
    self.torque = np.array(torque, dtype=float)

  def _compute(
    self,
    time : float,
  ) -> np.ndarray:
    return self.torque.copy()
