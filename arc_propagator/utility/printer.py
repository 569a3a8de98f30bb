import numpy as np


def print_results_summary(
  result : dict,
) -> None:
  """
  Print a summary of a multi-arc propagation result.

  Input:
  ------
    result : dict
      Result of propagate_multi_arc.
  """
  print("\nResults Summary")
  print(f"  Status")
  print(f"    Success        : {result['success']}")
  print(f"    Message        : {result['message']}")
  print(f"    Arcs Completed : {result['num_arcs_completed']}")
  if result['failed_arc_index'] is not None:
    print(f"    Failed Arc     : {result['failed_arc_index']}")
    print(f"    Time Reached   : {result['time_reached']:.6f} s")

  num_evaluations = sum(arc_result['num_function_evaluations'] for arc_result in result['arc_results'])
  print(f"    Evaluations    : {num_evaluations}")

  for body_name, trajectory in result['trajectories'].items():
    if len(trajectory) == 0:
      continue

    last_arc  = trajectory.arcs[-1]
    time_f    = last_arc.end_time
    state_f   = last_arc.states[:, -1]
    pos_vec_f = state_f[0:3]
    vel_vec_f = state_f[3:6]

    print(f"  Final State ({body_name})")
    print(f"    Time   : {time_f:.6f} s")
    print(f"    Frame  : relative to {trajectory.central_body}")
    print(f"    Arcs   : {len(trajectory)} registered, complete={trajectory.is_complete}")
    print(f"    Cartesian State")
    print(f"      Position : {pos_vec_f[0]:>19.12e}  {pos_vec_f[1]:>19.12e}  {pos_vec_f[2]:>19.12e}")
    print(f"      Velocity : {vel_vec_f[0]:>19.12e}  {vel_vec_f[1]:>19.12e}  {vel_vec_f[2]:>19.12e}")
    if len(state_f) == 13:
      quat_vec_f    = state_f[6:10]
      ang_vel_vec_f = state_f[10:13]
      print(f"    Rotational State")
      print(f"      Quaternion   : {quat_vec_f[0]:>19.12e}  {quat_vec_f[1]:>19.12e}  {quat_vec_f[2]:>19.12e}  {quat_vec_f[3]:>19.12e}")
      print(f"      Angular Rate : {ang_vel_vec_f[0]:>19.12e}  {ang_vel_vec_f[1]:>19.12e}  {ang_vel_vec_f[2]:>19.12e}")
      print(f"      |q| - 1      : {np.linalg.norm(quat_vec_f) - 1.0:>19.12e}")
