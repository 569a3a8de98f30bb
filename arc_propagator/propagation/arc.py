"""
Arcs
====

Time intervals integrated independently and stitched into one trajectory.
"""
import numpy as np

from dataclasses import dataclass
from typing      import List

from arc_propagator.model.errors import ConfigurationMismatchError


@dataclass(frozen=True)
class Arc:
  """
  Closed time interval [start_time, end_time] with start_time < end_time.
  """
  start_time : float
  end_time   : float

  def __post_init__(self):
    if not (np.isfinite(self.start_time) and np.isfinite(self.end_time)):
      raise ConfigurationMismatchError(f"Arc bounds must be finite, got [{self.start_time}, {self.end_time}]")
    if not self.start_time < self.end_time:
      raise ConfigurationMismatchError(f"Arc start must precede arc end, got [{self.start_time}, {self.end_time}]")

  @property
  def duration(
    self,
  ) -> float:
    return self.end_time - self.start_time

  def contains(
    self,
    time : float,
  ) -> bool:
    return self.start_time <= time <= self.end_time


def build_overlapping_arcs(
  start_time   : float,
  end_time     : float,
  arc_duration : float,
  arc_overlap  : float = 0.0,
) -> List[Arc]:
  """
  Split [start_time, end_time] into arcs of arc_duration, each next arc
  starting arc_overlap before the end of the previous one. The last arc is
  clipped at end_time.

  Input:
  ------
    start_time : float
      Start of the first arc [s].
    end_time : float
      End of the last arc [s].
    arc_duration : float
      Nominal arc length [s].
    arc_overlap : float
      Overlap of consecutive arcs [s], smaller than arc_duration.

  Output:
  -------
    arcs : list of Arc
  """
  if arc_duration <= 0.0:
    raise ConfigurationMismatchError("Arc duration must be positive")
  if arc_overlap < 0.0 or arc_overlap >= arc_duration:
    raise ConfigurationMismatchError("Arc overlap must be non-negative and shorter than the arc duration")

  arcs      = []
  arc_start = start_time
  while arc_start < end_time:
    arc_end = min(arc_start + arc_duration, end_time)
    arcs.append(Arc(arc_start, arc_end))
    if arc_end >= end_time:
      break
    arc_start = arc_end - arc_overlap
  return arcs
