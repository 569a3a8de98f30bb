import numpy as np

from typing import Any


def get_equal_limits(
  ax : Any,
) -> tuple[float, float]:
  """
  Common lower and upper limit covering every axis of a 3D plot, so that
  orbits are not distorted by unequal axis scaling.

  Input:
  ------
    ax : mpl_toolkits.mplot3d.axes3d.Axes3D
      3D axes after the data has been plotted.

  Output:
  -------
    lower, upper : float
      Limits to apply to the x, y and z axes.
  """
  bounds = np.array([ax.get_xlim3d(), ax.get_ylim3d(), ax.get_zlim3d()])
  return float(bounds[:, 0].min()), float(bounds[:, 1].max())


def shade_arcs(
  ax        : Any,
  intervals : list,
  alpha     : float = 0.08,
) -> None:
  """
  Shade arc intervals on a time axis, alternating colors so overlaps show.
  """
  colors = ['tab:blue', 'tab:orange']
  for arc_index, arc in enumerate(intervals):
    ax.axvspan(arc.start_time, arc.end_time, color=colors[arc_index % 2], alpha=alpha, linewidth=0)
