"""
Trajectories
============

Queryable state histories of propagated bodies.

  SingleArcTrajectory : samples of one arc plus an interpolator
  TrajectoryEphemeris : global-frame ephemeris view of a MultiArcTrajectory
  MultiArcTrajectory  : arcs of one body, registered in completion order

Overlap resolution:
-------------------
  Where registered arcs overlap, the most recently registered arc containing
  the query time provides the state, unless the caller selects an arc index.
  States of overlapping arcs are never blended.
"""
import numpy as np

from typing import List, Optional, Tuple

from arc_propagator.model.errors              import OutOfRangeError
from arc_propagator.propagation.arc           import Arc
from arc_propagator.propagation.interpolation import Interpolator, LagrangeInterpolator


class SingleArcTrajectory:
  """
  Samples of one integrated arc.
  """

  def __init__(
    self,
    times        : np.ndarray,
    states       : np.ndarray,
    interpolator : Interpolator,
  ):
    times  = np.array(times,  dtype=float)
    states = np.array(states, dtype=float)
    if times.ndim != 1 or len(times) == 0:
      raise ValueError("Trajectory times must be a non-empty 1D array")
    if states.ndim != 2 or states.shape[1] != len(times):
      raise ValueError(f"Trajectory states must have shape (n, {len(times)}), got {states.shape}")
    if np.any(np.diff(times) <= 0.0):
      raise ValueError("Trajectory times must be strictly increasing")

    # Read-only once registered
    times.flags.writeable  = False
    states.flags.writeable = False

    self.times        = times
    self.states       = states
    self.interpolator = interpolator

  @property
  def start_time(
    self,
  ) -> float:
    return float(self.times[0])

  @property
  def end_time(
    self,
  ) -> float:
    return float(self.times[-1])

  def contains(
    self,
    time : float,
  ) -> bool:
    return self.start_time <= time <= self.end_time

  def state_at(
    self,
    time : float,
  ) -> np.ndarray:
    if not self.contains(time):
      raise OutOfRangeError(
        f"Time {time} outside arc [{self.start_time}, {self.end_time}]",
        time = time,
      )
    return self.interpolator.interpolate(self.times, self.states, time)


class TrajectoryEphemeris:
  """
  Global-frame view of a propagated body's trajectory, usable as the
  ephemeris of a non-propagated body.

  Trajectory states are relative to the central body; the central body's
  global state is added back here. Rotational rows are dropped.
  """

  def __init__(
    self,
    trajectory        : 'MultiArcTrajectory',
    central_ephemeris : Optional[object] = None,
  ):
    self.trajectory        = trajectory
    self.central_ephemeris = central_ephemeris

  def state_at(
    self,
    time : float,
  ) -> np.ndarray:
    state = np.array(self.trajectory.state_at(time)[0:6], dtype=float)
    if self.central_ephemeris is not None:
      state = state + np.asarray(self.central_ephemeris.state_at(time), dtype=float)
    return state


class MultiArcTrajectory:
  """
  Trajectory of one body assembled from independently integrated arcs.

  Arcs are registered as they complete. The trajectory is finalized (made
  immutable) only once every arc of a run succeeded; after a failed run it
  stays incomplete but the registered arcs remain queryable.

  States are those of the integration: relative to the central body, with
  rotational rows appended when the rotational state was propagated. Use
  as_ephemeris to drive a non-propagated body from it.
  """

  # Bodies reject ephemerides flagged as not global
  is_global_frame = False

  def __init__(
    self,
    body_name    : str,
    central_body : Optional[str] = None,
    interpolator : Optional[Interpolator] = None,
  ):
    self.body_name    = body_name
    self.central_body = central_body
    self.interpolator = interpolator if interpolator is not None else LagrangeInterpolator()
    self._arcs        = []
    self._is_final    = False

  def __repr__(
    self,
  ) -> str:
    return (
      f"MultiArcTrajectory(body_name={self.body_name!r}, central_body={self.central_body!r}, "
      f"num_arcs={len(self._arcs)}, is_complete={self._is_final})"
    )

  def __len__(
    self,
  ) -> int:
    return len(self._arcs)

  @property
  def arcs(
    self,
  ) -> Tuple[SingleArcTrajectory, ...]:
    return tuple(self._arcs)

  @property
  def is_complete(
    self,
  ) -> bool:
    return self._is_final

  @property
  def arc_intervals(
    self,
  ) -> List[Arc]:
    return [Arc(arc.start_time, arc.end_time) for arc in self._arcs]

  @property
  def time_bounds(
    self,
  ) -> Tuple[float, float]:
    """
    Earliest start and latest end over all registered arcs. The covered set
    may have gaps; see arc_intervals.
    """
    if not self._arcs:
      raise OutOfRangeError(f"Trajectory of '{self.body_name}' has no arcs")
    return (
      min(arc.start_time for arc in self._arcs),
      max(arc.end_time   for arc in self._arcs),
    )

  def register_arc(
    self,
    times  : np.ndarray,
    states : np.ndarray,
  ) -> SingleArcTrajectory:
    if self._is_final:
      raise RuntimeError(f"Trajectory of '{self.body_name}' is finalized")
    arc_trajectory = SingleArcTrajectory(times, states, self.interpolator)
    self._arcs.append(arc_trajectory)
    return arc_trajectory

  def finalize(
    self,
  ) -> None:
    self._is_final = True

  def as_ephemeris(
    self,
    central_ephemeris : Optional[object] = None,
  ) -> TrajectoryEphemeris:
    """
    Global-frame ephemeris of this trajectory.

    Input:
    ------
      central_ephemeris : object, optional
        Global-frame ephemeris of the central body; omit only when the
        central body is the global frame origin.

    Output:
    -------
      ephemeris : TrajectoryEphemeris
    """
    return TrajectoryEphemeris(self, central_ephemeris)

  def state_at(
    self,
    time      : float,
    arc_index : Optional[int] = None,
  ) -> np.ndarray:
    """
    State at a time.

    Input:
    ------
      time : float
        Query time [s].
      arc_index : int, optional
        Registered arc to use. By default the most recently registered arc
        containing the time.

    Output:
    -------
      state : np.ndarray
        Interpolated state.

    Raises:
    -------
      OutOfRangeError
        No registered arc (or not the selected one) contains the time.
    """
    if arc_index is not None:
      if not -len(self._arcs) <= arc_index < len(self._arcs):
        raise OutOfRangeError(
          f"Arc index {arc_index} out of range for trajectory of '{self.body_name}' with {len(self._arcs)} arcs",
          time = time,
        )
      return self._arcs[arc_index].state_at(time)

    for arc_trajectory in reversed(self._arcs):
      if arc_trajectory.contains(time):
        return arc_trajectory.state_at(time)

    raise OutOfRangeError(
      f"Time {time} not covered by trajectory of '{self.body_name}'. "
      f"Arcs: {[(arc.start_time, arc.end_time) for arc in self.arc_intervals]}",
      time = time,
    )

  def get_states(
    self,
    times : np.ndarray,
  ) -> np.ndarray:
    """
    States at several times, one column per time.
    """
    return np.column_stack([self.state_at(time) for time in np.atleast_1d(times)])
