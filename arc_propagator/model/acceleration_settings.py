"""
Acceleration and Torque Settings
================================

Closed set of acceleration/torque kinds. Each settings class carries its own
typed parameters and a class-level type tag; the models are created through a
single dispatch point in `arc_propagator.model.dynamics`.

Settings maps are keyed by body pair and keep insertion order:

  acceleration_settings = {
    'Moon' : {                                   # body undergoing
      'Earth' : [PointMassGravitySettings()],    # body exerting -> settings
      'Sun'   : [PointMassGravitySettings()],
    },
  }
"""
import numpy as np

from dataclasses import dataclass, field
from enum        import Enum
from types       import MappingProxyType
from typing      import ClassVar, Tuple


class AccelerationType(Enum):
  POINT_MASS_GRAVITY            = 'point_mass_gravity'
  ZONAL_GRAVITY                 = 'zonal_gravity'
  AERODYNAMIC                   = 'aerodynamic'
  CANNONBALL_RADIATION_PRESSURE = 'cannonball_radiation_pressure'
  EMPIRICAL                     = 'empirical'


class TorqueType(Enum):
  SECOND_DEGREE_GRAVITATIONAL = 'second_degree_gravitational'
  CONSTANT                    = 'constant'


@dataclass(frozen=True)
class PointMassGravitySettings:
  """
  Point mass gravity of the exerting body. Becomes a third-body acceleration
  when the exerting body is not the central body of the undergoing body.
  """
  acceleration_type : ClassVar[AccelerationType] = AccelerationType.POINT_MASS_GRAVITY


@dataclass(frozen=True)
class ZonalGravitySettings:
  """
  Zonal harmonic (J2, J3, J4) perturbation of the exerting body. The point
  mass term is configured separately.
  """
  j2               : float = 0.0
  j3               : float = 0.0
  j4               : float = 0.0
  reference_radius : float = 0.0
  acceleration_type : ClassVar[AccelerationType] = AccelerationType.ZONAL_GRAVITY

  def __post_init__(self):
    if (self.j2 or self.j3 or self.j4) and self.reference_radius <= 0.0:
      raise ValueError("Zonal gravity requires a positive reference radius")


@dataclass(frozen=True)
class AerodynamicSettings:
  """
  Cannonball drag in the exerting body's exponential, co-rotating atmosphere.
  """
  drag_coefficient : float = 2.2
  reference_area   : float = 0.0
  acceleration_type : ClassVar[AccelerationType] = AccelerationType.AERODYNAMIC

  def __post_init__(self):
    if self.drag_coefficient < 0.0 or self.reference_area < 0.0:
      raise ValueError("Drag coefficient and reference area must be non-negative")


@dataclass(frozen=True)
class CannonballRadiationPressureSettings:
  """
  Cannonball radiation pressure from the exerting (radiating) body, with a
  cylindrical shadow cast by each occulting body.
  """
  radiation_pressure_coefficient : float = 1.3
  reference_area                 : float = 0.0
  occulting_bodies               : Tuple[str, ...] = ()
  acceleration_type : ClassVar[AccelerationType] = AccelerationType.CANNONBALL_RADIATION_PRESSURE

  def __post_init__(self):
    if self.radiation_pressure_coefficient < 0.0 or self.reference_area < 0.0:
      raise ValueError("Radiation pressure coefficient and reference area must be non-negative")
    object.__setattr__(self, 'occulting_bodies', tuple(self.occulting_bodies))


@dataclass(frozen=True)
class EmpiricalAccelerationSettings:
  """
  Empirical acceleration: constant plus once-per-period sine and cosine terms,
  components in the frame of the propagated state.
  """
  constant : Tuple[float, float, float] = (0.0, 0.0, 0.0)
  sine     : Tuple[float, float, float] = (0.0, 0.0, 0.0)
  cosine   : Tuple[float, float, float] = (0.0, 0.0, 0.0)
  period   : float = 1.0
  acceleration_type : ClassVar[AccelerationType] = AccelerationType.EMPIRICAL

  def __post_init__(self):
    for name in ('constant', 'sine', 'cosine'):
      value = tuple(float(component) for component in getattr(self, name))
      if len(value) != 3:
        raise ValueError(f"Empirical '{name}' term must have 3 components")
      object.__setattr__(self, name, value)
    if self.period <= 0.0:
      raise ValueError("Empirical acceleration period must be positive")


@dataclass(frozen=True)
class GravityGradientTorqueSettings:
  """
  Second-degree gravitational (gravity gradient) torque of the exerting body.
  """
  torque_type : ClassVar[TorqueType] = TorqueType.SECOND_DEGREE_GRAVITATIONAL


@dataclass(frozen=True)
class ConstantTorqueSettings:
  """
  Constant torque in body-fixed axes.
  """
  torque : Tuple[float, float, float] = field(default=(0.0, 0.0, 0.0))
  torque_type : ClassVar[TorqueType] = TorqueType.CONSTANT

  def __post_init__(self):
    torque = tuple(float(component) for component in self.torque)
    if len(torque) != 3 or not np.all(np.isfinite(torque)):
      raise ValueError("Constant torque must have 3 finite components")
    object.__setattr__(self, 'torque', torque)


# Type-name tables, built once at import and read-only afterwards
ACCELERATION_TYPE_NAMES = MappingProxyType({
  'point_mass_gravity'            : AccelerationType.POINT_MASS_GRAVITY,
  'central_gravity'               : AccelerationType.POINT_MASS_GRAVITY,
  'third_body_point_mass_gravity' : AccelerationType.POINT_MASS_GRAVITY,
  'zonal_gravity'                 : AccelerationType.ZONAL_GRAVITY,
  'aerodynamic'                   : AccelerationType.AERODYNAMIC,
  'drag'                          : AccelerationType.AERODYNAMIC,
  'cannonball_radiation_pressure' : AccelerationType.CANNONBALL_RADIATION_PRESSURE,
  'srp'                           : AccelerationType.CANNONBALL_RADIATION_PRESSURE,
  'empirical'                     : AccelerationType.EMPIRICAL,
})

TORQUE_TYPE_NAMES = MappingProxyType({
  'second_degree_gravitational' : TorqueType.SECOND_DEGREE_GRAVITATIONAL,
  'gravity_gradient'            : TorqueType.SECOND_DEGREE_GRAVITATIONAL,
  'constant'                    : TorqueType.CONSTANT,
})

ACCELERATION_SETTINGS_CLASSES = MappingProxyType({
  AccelerationType.POINT_MASS_GRAVITY            : PointMassGravitySettings,
  AccelerationType.ZONAL_GRAVITY                 : ZonalGravitySettings,
  AccelerationType.AERODYNAMIC                   : AerodynamicSettings,
  AccelerationType.CANNONBALL_RADIATION_PRESSURE : CannonballRadiationPressureSettings,
  AccelerationType.EMPIRICAL                     : EmpiricalAccelerationSettings,
})

TORQUE_SETTINGS_CLASSES = MappingProxyType({
  TorqueType.SECOND_DEGREE_GRAVITATIONAL : GravityGradientTorqueSettings,
  TorqueType.CONSTANT                    : ConstantTorqueSettings,
})


def acceleration_type_from_name(
  name : str,
) -> AccelerationType:
  key = name.strip().lower().replace('-', '_').replace(' ', '_')
  if key not in ACCELERATION_TYPE_NAMES:
    raise ValueError(f"Unknown acceleration type '{name}'. Options: {sorted(ACCELERATION_TYPE_NAMES.keys())}")
  return ACCELERATION_TYPE_NAMES[key]


def torque_type_from_name(
  name : str,
) -> TorqueType:
  key = name.strip().lower().replace('-', '_').replace(' ', '_')
  if key not in TORQUE_TYPE_NAMES:
    raise ValueError(f"Unknown torque type '{name}'. Options: {sorted(TORQUE_TYPE_NAMES.keys())}")
  return TORQUE_TYPE_NAMES[key]
