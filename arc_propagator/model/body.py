"""
Bodies
======

Body properties and current states shared by the acceleration models, the
state derivative model, and the multi-arc orchestrator.

Ownership:
----------
  - SystemOfBodies owns its Body objects.
  - Acceleration/torque models only reference bodies and read their current
    states; they never modify them.
  - During a propagation run the orchestrator writes the current state of the
    propagated bodies and restores a final value afterwards.
"""
import numpy as np

from typing import Callable, Iterator, Optional, Union

from arc_propagator.model.attitude import quaternion_to_rotation_matrix
from arc_propagator.model.errors   import ConfigurationMismatchError, InvalidStateError, OutOfRangeError


IDENTITY_ROTATIONAL_STATE = np.array([1.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0])


def _as_time_function(
  value : Union[None, float, np.ndarray, Callable],
) -> Optional[Callable]:
  """
  Wrap a constant property in a function of time; pass callables through.
  """
  if value is None or callable(value):
    return value
  constant = np.array(value, dtype=float)
  return lambda time: constant


def _check_global_ephemeris(
  body_name : str,
  ephemeris : object,
) -> None:
  """
  Reject state histories that are not in the global frame, such as a raw
  MultiArcTrajectory (states relative to its central body).
  """
  if not getattr(ephemeris, 'is_global_frame', True):
    raise ConfigurationMismatchError(
      f"Ephemeris of body '{body_name}' does not give global-frame states; "
      f"wrap a trajectory with its as_ephemeris(central_ephemeris)"
    )


class Body:
  """
  A body in the simulation: physical properties plus current state.

  Gravity and torque models work in any consistent units (L: length unit, e.g.
  km). Drag and radiation pressure models expect SI units.
  """

  def __init__(
    self,
    name                           : str,
    gravitational_parameter        : float = 0.0,
    mass                           : Union[float, Callable] = 1.0,
    inertia_tensor                 : Union[None, np.ndarray, Callable] = None,
    inertia_tensor_time_derivative : Union[None, np.ndarray, Callable] = None,
    ephemeris                      : Optional[object] = None,
    rotation_rate                  : float = 0.0,
    reference_radius               : float = 0.0,
    surface_density                : float = 0.0,
    scale_height                   : float = 1.0,
    radiation_pressure_1_au        : float = 0.0,
  ):
    """
    Initialize body.

    Input:
    ------
      name : str
        Unique name within the system of bodies.
      gravitational_parameter : float
        Gravitational parameter [L³/s²]. Zero for bodies without gravity field.
      mass : float | callable
        Mass [kg], constant or function of time.
      inertia_tensor : np.ndarray | callable, optional
        3x3 inertia tensor [kg m²] in body-fixed axes, constant or function of time.
        Required when rotational dynamics is propagated.
      inertia_tensor_time_derivative : np.ndarray | callable, optional
        3x3 inertia tensor derivative [kg m²/s]. Zero when omitted.
      ephemeris : object, optional
        Object with state_at(time) supplying the state when the body is not propagated.
      rotation_rate : float
        Spin rate about the body z-axis [rad/s], used for co-rotating atmospheres.
      reference_radius : float
        Equatorial radius [L], used for altitudes and shadows.
      surface_density : float
        Exponential atmosphere density at the reference radius [kg/m³]. Zero: no atmosphere.
      scale_height : float
        Exponential atmosphere scale height [L].
      radiation_pressure_1_au : float
        Radiation pressure at 1 AU for radiating bodies [N/m²].

    Output:
    -------
      None
    """
    if ephemeris is not None:
      _check_global_ephemeris(name, ephemeris)

    self.name                    = name
    self.gravitational_parameter = gravitational_parameter
    self.ephemeris               = ephemeris
    self.rotation_rate           = rotation_rate
    self.reference_radius        = reference_radius
    self.surface_density         = surface_density
    self.scale_height            = scale_height
    self.radiation_pressure_1_au = radiation_pressure_1_au

    self._mass_function        = _as_time_function(mass)
    self._inertia_function     = _as_time_function(inertia_tensor)
    self._inertia_dot_function = _as_time_function(inertia_tensor_time_derivative)

    # Current state
    self.current_time        = None
    self.translational_state = np.zeros(6)
    self.rotational_state    = IDENTITY_ROTATIONAL_STATE.copy()

    # Assigned once the body is propagated
    self.trajectory = None

  def __repr__(
    self,
  ) -> str:
    return f"Body(name={self.name!r}, gravitational_parameter={self.gravitational_parameter})"

  @property
  def has_inertia_tensor(
    self,
  ) -> bool:
    return self._inertia_function is not None

  @property
  def position(
    self,
  ) -> np.ndarray:
    return self.translational_state[0:3]

  @property
  def velocity(
    self,
  ) -> np.ndarray:
    return self.translational_state[3:6]

  def get_mass(
    self,
    time : float,
  ) -> float:
    mass = float(self._mass_function(time))
    if not np.isfinite(mass) or mass <= 0.0:
      raise InvalidStateError("Mass must be positive and finite", time=time, body_name=self.name)
    return mass

  def get_inertia_tensor(
    self,
    time : float,
  ) -> np.ndarray:
    if self._inertia_function is None:
      raise InvalidStateError("Body has no inertia tensor", time=time, body_name=self.name)
    return np.asarray(self._inertia_function(time), dtype=float)

  def get_inertia_tensor_time_derivative(
    self,
    time : float,
  ) -> np.ndarray:
    if self._inertia_dot_function is None:
      return np.zeros((3, 3))
    return np.asarray(self._inertia_dot_function(time), dtype=float)

  def rotation_to_inertial_frame(
    self,
  ) -> np.ndarray:
    """
    Rotation matrix from body-fixed to inertial axes for the current quaternion.
    """
    return quaternion_to_rotation_matrix(self.rotational_state[0:4])

  def set_state(
    self,
    time                : float,
    translational_state : np.ndarray,
    rotational_state    : Optional[np.ndarray] = None,
  ) -> None:
    self.current_time        = time
    self.translational_state = np.asarray(translational_state, dtype=float)
    if rotational_state is not None:
      self.rotational_state = np.asarray(rotational_state, dtype=float)

  def update_state_from_ephemeris(
    self,
    time : float,
  ) -> None:
    """
    Set the current translational state from the body's ephemeris.

    Bodies without an ephemeris keep their current (constant) state.
    """
    if self.ephemeris is None:
      self.current_time = time
      return
    _check_global_ephemeris(self.name, self.ephemeris)
    try:
      state = np.asarray(self.ephemeris.state_at(time), dtype=float)
    except OutOfRangeError as error:
      raise InvalidStateError(f"Ephemeris unavailable: {error}", time=time, body_name=self.name) from error
    if not np.all(np.isfinite(state)):
      raise InvalidStateError("Ephemeris returned a non-finite state", time=time, body_name=self.name)
    self.current_time        = time
    self.translational_state = state[0:6]


class SystemOfBodies:
  """
  Insertion-ordered collection of named bodies.

  The global frame origin (default 'SSB') may be referenced as a central body
  without being added; it always has zero state.
  """

  def __init__(
    self,
    global_frame_origin : str = 'SSB',
  ):
    self.global_frame_origin = global_frame_origin
    self._bodies             = {}

  def add_body(
    self,
    body : Body,
  ) -> Body:
    if body.name in self._bodies:
      raise ValueError(f"Body '{body.name}' already exists")
    if body.name == self.global_frame_origin:
      raise ValueError(f"Body name '{body.name}' is reserved for the global frame origin")
    self._bodies[body.name] = body
    return body

  def get_body(
    self,
    name : str,
  ) -> Body:
    try:
      return self._bodies[name]
    except KeyError:
      raise KeyError(f"Unknown body '{name}'. Known bodies: {list(self._bodies.keys())}") from None

  def is_global_frame_origin(
    self,
    name : str,
  ) -> bool:
    return name == self.global_frame_origin

  def __contains__(
    self,
    name : str,
  ) -> bool:
    return name in self._bodies or name == self.global_frame_origin

  def __getitem__(
    self,
    name : str,
  ) -> Body:
    return self.get_body(name)

  def __iter__(
    self,
  ) -> Iterator[Body]:
    return iter(self._bodies.values())

  def __len__(
    self,
  ) -> int:
    return len(self._bodies)

  def names(
    self,
  ) -> list:
    return list(self._bodies.keys())
