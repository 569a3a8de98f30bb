import matplotlib
matplotlib.use('Agg')

import matplotlib.pyplot as plt
import numpy             as np

from pathlib           import Path
from matplotlib.figure import Figure
from matplotlib.lines  import Line2D

from arc_propagator.plot.utility           import get_equal_limits, shade_arcs
from arc_propagator.propagation.trajectory import MultiArcTrajectory


def plot_3d_trajectory(
  trajectory : MultiArcTrajectory,
) -> Figure:
  """
  Plot the 3D position of every registered arc.

  Input:
  ------
    trajectory : MultiArcTrajectory
      Trajectory with at least one arc.

  Output:
  -------
    matplotlib.figure.Figure
      Figure object containing the 3D plot.
  """
  fig = plt.figure(figsize=(10,10))
  ax  = fig.add_subplot(111, projection='3d')

  colors = plt.rcParams['axes.prop_cycle'].by_key()['color']
  for arc_index, arc in enumerate(trajectory.arcs):
    color = colors[arc_index % len(colors)]
    pos_x, pos_y, pos_z = arc.states[0, :], arc.states[1, :], arc.states[2, :]
    ax.plot(pos_x, pos_y, pos_z, '-', color=color, linewidth=1, label=f'Arc {arc_index}')
    ax.scatter([pos_x[0]],  [pos_y[0]],  [pos_z[0]],  s=60, marker='>', facecolors='white', edgecolors=color, linewidths=2) # type: ignore
    ax.scatter([pos_x[-1]], [pos_y[-1]], [pos_z[-1]], s=60, marker='s', facecolors='white', edgecolors=color, linewidths=2) # type: ignore

  # Central body at the origin of the integration frame
  ax.scatter([0.0], [0.0], [0.0], s=80, marker='o', color='k') # type: ignore

  ax.set_xlabel('Pos-X')
  ax.set_ylabel('Pos-Y')
  ax.set_zlabel('Pos-Z') # type: ignore
  ax.set_title(f"{trajectory.body_name} relative to {trajectory.central_body}")
  ax.grid(True)
  ax.set_box_aspect([1,1,1]) # type: ignore
  min_limit, max_limit = get_equal_limits(ax)
  ax.set_xlim([min_limit, max_limit]) # type: ignore
  ax.set_ylim([min_limit, max_limit]) # type: ignore
  ax.set_zlim([min_limit, max_limit]) # type: ignore

  legend_handles = [
    Line2D([0], [0], marker='>', color='w', markerfacecolor='white', markeredgecolor='black',
           markersize=10, markeredgewidth=2, linestyle='None', label='Arc Start'),
    Line2D([0], [0], marker='s', color='w', markerfacecolor='white', markeredgecolor='black',
           markersize=10, markeredgewidth=2, linestyle='None', label='Arc End'),
  ]
  fig.legend(handles=legend_handles, loc='upper right', fontsize=11, framealpha=0.9)

  plt.tight_layout()
  return fig


def plot_time_series(
  trajectory : MultiArcTrajectory,
) -> Figure:
  """
  Plot position and velocity components vs time, arcs shaded.

  Where arcs overlap both are drawn; the later arc is the one the trajectory
  returns.
  """
  fig = plt.figure(figsize=(18,10))

  ax_pos = plt.subplot2grid((2, 1), (0, 0))
  ax_vel = plt.subplot2grid((2, 1), (1, 0), sharex=ax_pos)

  for arc_index, arc in enumerate(trajectory.arcs):
    time   = arc.times
    states = arc.states
    label  = arc_index == 0

    pos_mag = np.linalg.norm(states[0:3, :], axis=0)
    vel_mag = np.linalg.norm(states[3:6, :], axis=0)

    ax_pos.plot(time, states[0, :], 'r-', label='X' if label else None, linewidth=1.5)
    ax_pos.plot(time, states[1, :], 'g-', label='Y' if label else None, linewidth=1.5)
    ax_pos.plot(time, states[2, :], 'b-', label='Z' if label else None, linewidth=1.5)
    ax_pos.plot(time, pos_mag,      'k-', label='Magnitude' if label else None, linewidth=2)

    ax_vel.plot(time, states[3, :], 'r-', label='X' if label else None, linewidth=1.5)
    ax_vel.plot(time, states[4, :], 'g-', label='Y' if label else None, linewidth=1.5)
    ax_vel.plot(time, states[5, :], 'b-', label='Z' if label else None, linewidth=1.5)
    ax_vel.plot(time, vel_mag,      'k-', label='Magnitude' if label else None, linewidth=2)

  for ax in (ax_pos, ax_vel):
    shade_arcs(ax, trajectory.arc_intervals)
    ax.legend()
    ax.grid(True)
    ax.ticklabel_format(style='scientific', axis='y', scilimits=(0,0))

  ax_pos.tick_params(labelbottom=False)
  ax_pos.set_ylabel('Position')
  ax_pos.set_title(f"{trajectory.body_name} relative to {trajectory.central_body}")
  ax_vel.set_xlabel('Time\n[s]')
  ax_vel.set_ylabel('Velocity')

  fig.align_ylabels([ax_pos, ax_vel])
  plt.subplots_adjust(hspace=0.1)
  return fig


def generate_plots(
  result             : dict,
  figures_folderpath : Path,
) -> list:
  """
  Generate and save 3D and time series plots of every propagated body.

  Input:
  ------
    result : dict
      Result of propagate_multi_arc.
    figures_folderpath : Path
      Directory to save plots.

  Output:
  -------
    filepaths : list of Path
      Saved figure files.
  """
  print("\nGenerate and Save Plots")
  print(f"  Figure Folderpath : {figures_folderpath}\n")

  figures_folderpath = Path(figures_folderpath)
  figures_folderpath.mkdir(parents=True, exist_ok=True)

  filepaths = []
  for body_name, trajectory in result['trajectories'].items():
    if len(trajectory) == 0:
      continue
    for suffix, plot_function in (('3d', plot_3d_trajectory), ('time_series', plot_time_series)):
      fig      = plot_function(trajectory)
      filepath = figures_folderpath / f"{body_name.lower()}_{suffix}.png"
      fig.savefig(filepath, dpi=150, bbox_inches='tight')
      plt.close(fig)
      print(f"  Saved : {filepath.name}")
      filepaths.append(filepath)

  return filepaths
