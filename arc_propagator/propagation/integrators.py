"""
Integrators
===========

Integrator settings and fixed-step steppers.

Fixed-step methods ('EULER', 'RK4') use the steppers below. Adaptive methods
use scipy's step-wise OdeSolver classes ('RK45', 'RK23', 'DOP853', 'Radau',
'BDF', 'LSODA').
"""
import numpy as np

from dataclasses     import dataclass, replace
from types           import MappingProxyType
from typing          import Callable, Optional
from scipy.integrate import BDF, DOP853, LSODA, RK23, RK45, Radau

from arc_propagator.model.errors import ConfigurationMismatchError


class EulerIntegrator:
  """
  Explicit first-order Euler stepper.
  """

  order = 1

  @staticmethod
  def step(
    derivative_fn : Callable[[float, np.ndarray], np.ndarray],
    state         : np.ndarray,
    time          : float,
    step_size     : float,
  ) -> np.ndarray:
    return state + step_size * derivative_fn(time, state)


class RungeKutta4Integrator:
  """
  Classical fourth-order Runge-Kutta stepper.
  """

  order = 4

  @staticmethod
  def step(
    derivative_fn : Callable[[float, np.ndarray], np.ndarray],
    state         : np.ndarray,
    time          : float,
    step_size     : float,
  ) -> np.ndarray:
    half_step = 0.5 * step_size

    k1 = derivative_fn(time,             state)
    k2 = derivative_fn(time + half_step, state + half_step * k1)
    k3 = derivative_fn(time + half_step, state + half_step * k2)
    k4 = derivative_fn(time + step_size, state + step_size * k3)

    return state + (step_size / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


FIXED_STEP_INTEGRATORS = MappingProxyType({
  'EULER' : EulerIntegrator,
  'RK4'   : RungeKutta4Integrator,
})

ADAPTIVE_SOLVERS = MappingProxyType({
  'RK45'   : RK45,
  'RK23'   : RK23,
  'DOP853' : DOP853,
  'RADAU'  : Radau,
  'BDF'    : BDF,
  'LSODA'  : LSODA,
})


@dataclass(frozen=True)
class IntegratorSettings:
  """
  Integrator configuration for one arc (or shared by all arcs).

  Attributes:
  -----------
    method : str
      'EULER', 'RK4' (fixed step) or 'RK45', 'RK23', 'DOP853', 'Radau', 'BDF', 'LSODA'.
    step_size : float, optional
      Step size [s]. Required for fixed-step methods; initial step for adaptive ones.
    initial_time : float, optional
      Start time [s]. Set per arc; shared settings are re-anchored at each arc start.
    rtol, atol : float
      Tolerances of adaptive methods.
    max_step : float
      Largest step of adaptive methods [s].
    output_step : float, optional
      Uniform output spacing [s] for adaptive methods (dense output). Accepted
      steps are returned when None.
  """
  method       : str             = 'RK4'
  step_size    : Optional[float] = None
  initial_time : Optional[float] = None
  rtol         : float           = 1e-12
  atol         : float           = 1e-12
  max_step     : float           = np.inf
  output_step  : Optional[float] = None

  def __post_init__(self):
    key = self.method.strip().upper()
    if key not in FIXED_STEP_INTEGRATORS and key not in ADAPTIVE_SOLVERS:
      raise ConfigurationMismatchError(
        f"Unknown integration method '{self.method}'. "
        f"Options: {list(FIXED_STEP_INTEGRATORS.keys()) + list(ADAPTIVE_SOLVERS.keys())}"
      )
    object.__setattr__(self, 'method', key)

    if key in FIXED_STEP_INTEGRATORS:
      if self.step_size is None or not np.isfinite(self.step_size) or self.step_size <= 0.0:
        raise ConfigurationMismatchError(f"Method '{key}' requires a positive, finite step size")
      if self.output_step is not None:
        raise ConfigurationMismatchError("Output step is only used by adaptive methods")
    else:
      if self.step_size is not None and (not np.isfinite(self.step_size) or self.step_size <= 0.0):
        raise ConfigurationMismatchError("Initial step size must be positive and finite")
      if self.output_step is not None and (not np.isfinite(self.output_step) or self.output_step <= 0.0):
        raise ConfigurationMismatchError("Output step must be positive and finite")
      if self.rtol <= 0.0 or self.atol <= 0.0 or self.max_step <= 0.0:
        raise ConfigurationMismatchError("Tolerances and maximum step must be positive")

    if self.initial_time is not None and not np.isfinite(self.initial_time):
      raise ConfigurationMismatchError("Initial time must be finite")

  @property
  def is_fixed_step(
    self,
  ) -> bool:
    return self.method in FIXED_STEP_INTEGRATORS

  @property
  def stepper(
    self,
  ):
    return FIXED_STEP_INTEGRATORS[self.method]

  @property
  def solver_class(
    self,
  ):
    return ADAPTIVE_SOLVERS[self.method]

  def anchored_at(
    self,
    start_time : float,
  ) -> 'IntegratorSettings':
    """
    Copy of these settings starting at the given time.
    """
    return replace(self, initial_time=start_time)


def fixed_step_time_grid(
  time_o    : float,
  time_f    : float,
  step_size : float,
) -> np.ndarray:
  """
  Uniform time grid from time_o to time_f. The last step is shortened so that
  the grid ends exactly at time_f.

  Times are computed as time_o + k * step_size to avoid accumulating
  round-off in the step count.
  """
  num_full_steps = int(np.floor((time_f - time_o) / step_size))
  time_grid      = time_o + step_size * np.arange(num_full_steps + 1)

  # A remainder below round-off merges into the last full step
  if len(time_grid) == 1 or time_f - time_grid[-1] > 1e-9 * step_size:
    time_grid = np.append(time_grid, time_f)
  else:
    time_grid[-1] = time_f
  return time_grid
