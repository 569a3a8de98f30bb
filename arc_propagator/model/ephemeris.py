"""
Ephemerides
===========

Externally-defined state histories for bodies that are not propagated.

Any object exposing ``state_at(time) -> np.ndarray`` (6 components, global
frame) can serve as a body's ephemeris. A trajectory produced by an earlier
multi-arc run holds states relative to its central body; wrap it in a
TrajectoryEphemeris (propagation/trajectory.py) to use it here.
"""
import numpy as np

from typing import Optional

from arc_propagator.model.errors              import OutOfRangeError
from arc_propagator.model.two_body            import propagate_kepler_orbit
from arc_propagator.propagation.interpolation import LagrangeInterpolator


class ConstantEphemeris:
  """
  Body fixed at a constant state (e.g. a central body placed at the origin).
  """

  def __init__(
    self,
    state : np.ndarray,
  ):
    state = np.asarray(state, dtype=float)
    if state.shape != (6,):
      raise ValueError(f"Constant ephemeris state must have 6 components, got shape {state.shape}")
    self.state = state

  def state_at(
    self,
    time : float,
  ) -> np.ndarray:
    return self.state.copy()


class KeplerEphemeris:
  """
  Analytic two-body ephemeris about a central body.
  """

  def __init__(
    self,
    initial_state     : np.ndarray,
    epoch             : float,
    gp                : float,
    central_ephemeris : Optional[object] = None,
  ):
    """
    Initialize Kepler ephemeris.

    Input:
    ------
      initial_state : np.ndarray
        State relative to the central body at epoch [pos, vel].
      epoch : float
        Time of the initial state [s].
      gp : float
        Gravitational parameter of the central body (plus the body itself, if relevant).
      central_ephemeris : object, optional
        Ephemeris of the central body; relative states are returned when None.

    Output:
    -------
      None
    """
    self.initial_state     = np.asarray(initial_state, dtype=float)
    self.epoch             = epoch
    self.gp                = gp
    self.central_ephemeris = central_ephemeris

  def state_at(
    self,
    time : float,
  ) -> np.ndarray:
    state = propagate_kepler_orbit(self.initial_state, time - self.epoch, self.gp)
    if self.central_ephemeris is not None:
      state = state + self.central_ephemeris.state_at(time)
    return state


class TabulatedEphemeris:
  """
  Ephemeris interpolated from tabulated states. Never extrapolates.
  """

  def __init__(
    self,
    times        : np.ndarray,
    states       : np.ndarray,
    interpolator : Optional[object] = None,
  ):
    """
    Initialize tabulated ephemeris.

    Input:
    ------
      times : np.ndarray
        Strictly increasing sample times [s], shape (N,).
      states : np.ndarray
        Global states [pos, vel], shape (6, N).
      interpolator : Interpolator, optional
        Sample interpolator (default: 8th-order Lagrange).

    Output:
    -------
      None
    """
    times  = np.array(times,  dtype=float)
    states = np.array(states, dtype=float)
    if times.ndim != 1 or len(times) < 2 or np.any(np.diff(times) <= 0.0):
      raise ValueError("Tabulated ephemeris times must be strictly increasing with at least 2 samples")
    if states.shape != (6, len(times)):
      raise ValueError(f"Tabulated ephemeris states must have shape (6, {len(times)}), got {states.shape}")

    self.times        = times
    self.states       = states
    self.interpolator = interpolator if interpolator is not None else LagrangeInterpolator()

  def state_at(
    self,
    time : float,
  ) -> np.ndarray:
    if not self.times[0] <= time <= self.times[-1]:
      raise OutOfRangeError(
        f"Time {time} outside tabulated ephemeris [{self.times[0]}, {self.times[-1]}]",
        time = time,
      )
    return self.interpolator.interpolate(self.times, self.states, time)
