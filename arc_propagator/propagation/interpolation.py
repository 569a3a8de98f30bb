"""
Interpolation
=============

Interpolators used by trajectories to evaluate states between samples.

Interface:
----------
  interpolate(times, states, time) -> state

    times  : (N,) strictly increasing sample times
    states : (n, N) samples
    time   : query time with times[0] <= time <= times[-1]

A query at a sample time returns the stored sample.
"""
import numpy as np

from scipy.interpolate import BarycentricInterpolator, CubicSpline


class Interpolator:
  """
  Base class for sample interpolators.
  """

  def interpolate(
    self,
    times  : np.ndarray,
    states : np.ndarray,
    time   : float,
  ) -> np.ndarray:
    index = int(np.searchsorted(times, time))
    if index < len(times) and times[index] == time:
      return states[:, index].copy()
    return self._interpolate(times, states, time, index)

  def _interpolate(
    self,
    times  : np.ndarray,
    states : np.ndarray,
    time   : float,
    index  : int,
  ) -> np.ndarray:
    raise NotImplementedError

  @staticmethod
  def _window(
    num_samples : int,
    index       : int,
    size        : int,
  ) -> slice:
    """
    Slice of `size` consecutive samples centred on the interval ending at
    `index`, shifted to stay inside the sample range.
    """
    size  = min(size, num_samples)
    start = index - size // 2
    start = max(0, min(start, num_samples - size))
    return slice(start, start + size)


class LinearInterpolator(Interpolator):

  def _interpolate(self, times, states, time, index):
    time_0, time_1 = times[index - 1], times[index]
    fraction       = (time - time_0) / (time_1 - time_0)
    return (1.0 - fraction) * states[:, index - 1] + fraction * states[:, index]


class LagrangeInterpolator(Interpolator):
  """
  Lagrange polynomial through the `order` samples nearest to the query time.

  Near the ends of the sample range the window is shifted inward rather
  than shrunk, so the polynomial degree stays the same.
  """

  def __init__(
    self,
    order : int = 8,
  ):
    if order < 2:
      raise ValueError("Lagrange interpolation order must be at least 2")
    self.order = order

  def _interpolate(self, times, states, time, index):
    window = self._window(len(times), index, self.order)

    # Shift times to the window start for conditioning
    time_ref    = times[window.start]
    interpolant = BarycentricInterpolator(times[window] - time_ref, states[:, window].T)
    return np.asarray(interpolant(time - time_ref), dtype=float).reshape(-1)


class CubicSplineInterpolator(Interpolator):
  """
  Local cubic spline (not-a-knot) through the `window` samples nearest to the
  query time.
  """

  def __init__(
    self,
    window : int = 8,
  ):
    if window < 2:
      raise ValueError("Cubic spline window must contain at least 2 samples")
    self.window = window

  def _interpolate(self, times, states, time, index):
    window   = self._window(len(times), index, self.window)
    time_ref = times[window.start]
    spline   = CubicSpline(times[window] - time_ref, states[:, window], axis=1)
    return np.asarray(spline(time - time_ref), dtype=float).reshape(-1)


INTERPOLATORS = {
  'lagrange' : LagrangeInterpolator,
  'cubic'    : CubicSplineInterpolator,
  'linear'   : LinearInterpolator,
}


def create_interpolator(
  name : str,
) -> Interpolator:
  """
  Interpolator with default options from its name ('lagrange', 'cubic', 'linear').
  """
  key = name.strip().lower()
  if key not in INTERPOLATORS:
    raise ValueError(f"Unknown interpolator '{name}'. Options: {list(INTERPOLATORS.keys())}")
  return INTERPOLATORS[key]()
