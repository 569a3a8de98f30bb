"""
Multi-Arc Propagation
=====================

Propagation of a set of bodies over a sequence of arcs. Each arc is
integrated independently from a caller-supplied initial state; the results
are stitched into one MultiArcTrajectory per propagated body.

Run sequence:
-------------
  1. Validate arcs, initial states, integrator and propagator settings, and
     create every arc's state derivative model. Nothing is integrated if any
     input is inconsistent (ConfigurationMismatchError).
  2. Integrate the arcs in order (or concurrently when parallel=True) and
     register each completed arc in the bodies' trajectories.
  3. Stop at the first failed arc; earlier arcs stay registered.
  4. Finalize the trajectories when every arc succeeded, and restore the
     bodies' current states.
"""
import copy
import numpy as np

from concurrent.futures import ThreadPoolExecutor
from dataclasses        import dataclass, field
from typing             import Dict, List, Optional, Sequence, Union

from arc_propagator.model.body                import SystemOfBodies
from arc_propagator.model.dynamics            import StateDerivativeModel, create_state_derivative_model
from arc_propagator.model.errors              import ConfigurationMismatchError
from arc_propagator.propagation.arc           import Arc
from arc_propagator.propagation.integrators   import IntegratorSettings
from arc_propagator.propagation.interpolation import Interpolator
from arc_propagator.propagation.propagator    import propagate_single_arc
from arc_propagator.propagation.trajectory    import MultiArcTrajectory


@dataclass(frozen=True)
class PropagatorSettings:
  """
  What to propagate in one arc, and under which accelerations and torques.

  Attributes:
  -----------
    bodies_to_propagate : tuple of str
      Propagated bodies; fixes the order of the combined state vector.
    central_bodies : tuple of str
      Central body per propagated body. States are integrated relative to it.
    acceleration_settings : dict
      {undergoing: {exerting: [settings, ...]}}, evaluated in insertion order.
    torque_settings : dict, optional
      {undergoing: {exerting: [settings, ...]}} for rotational bodies.
    rotational_bodies : tuple of str
      Propagated bodies whose attitude and angular rate are propagated too.
  """
  bodies_to_propagate   : Sequence[str]
  central_bodies        : Sequence[str]
  acceleration_settings : Dict[str, Dict[str, list]]
  torque_settings       : Optional[Dict[str, Dict[str, list]]] = None
  rotational_bodies     : Sequence[str] = field(default=())

  def __post_init__(self):
    object.__setattr__(self, 'bodies_to_propagate', tuple(self.bodies_to_propagate))
    object.__setattr__(self, 'central_bodies',      tuple(self.central_bodies))
    object.__setattr__(self, 'rotational_bodies',   tuple(self.rotational_bodies))

    if not self.bodies_to_propagate:
      raise ConfigurationMismatchError("No bodies to propagate")
    if len(self.bodies_to_propagate) != len(self.central_bodies):
      raise ConfigurationMismatchError(
        f"{len(self.bodies_to_propagate)} bodies to propagate but {len(self.central_bodies)} central bodies"
      )
    if len(set(self.bodies_to_propagate)) != len(self.bodies_to_propagate):
      raise ConfigurationMismatchError(f"Duplicate bodies to propagate: {list(self.bodies_to_propagate)}")
    for body_name, central_name in zip(self.bodies_to_propagate, self.central_bodies):
      if body_name == central_name:
        raise ConfigurationMismatchError(f"Body '{body_name}' cannot be its own central body")
    for body_name in self.rotational_bodies:
      if body_name not in self.bodies_to_propagate:
        raise ConfigurationMismatchError(f"Rotational body '{body_name}' is not propagated")
    for body_name in (self.torque_settings or {}):
      if body_name not in self.rotational_bodies:
        raise ConfigurationMismatchError(f"Torque settings given for non-rotational body '{body_name}'")


def validate_propagator_settings(
  bodies              : SystemOfBodies,
  propagator_settings : PropagatorSettings,
) -> None:
  """
  Check that every body named in the settings exists, and that rotational
  bodies have an inertia tensor.
  """
  def check_exists(name, role):
    if name not in bodies:
      raise ConfigurationMismatchError(f"Unknown {role} '{name}'. Known bodies: {bodies.names()}")

  for body_name, central_name in zip(propagator_settings.bodies_to_propagate, propagator_settings.central_bodies):
    check_exists(body_name, 'body to propagate')
    check_exists(central_name, 'central body')
    if bodies.is_global_frame_origin(body_name):
      raise ConfigurationMismatchError("The global frame origin cannot be propagated")

  for settings_map in (propagator_settings.acceleration_settings, propagator_settings.torque_settings or {}):
    for body_name, settings_per_body in settings_map.items():
      check_exists(body_name, 'undergoing body')
      for exerting_name in settings_per_body:
        check_exists(exerting_name, 'exerting body')

  for body_name in propagator_settings.rotational_bodies:
    if not bodies.get_body(body_name).has_inertia_tensor:
      raise ConfigurationMismatchError(f"Rotational body '{body_name}' has no inertia tensor")


def _per_arc(
  value : object,
  arcs  : List[Arc],
  kind  : type,
  label : str,
) -> list:
  """
  Expand one shared settings object into a per-arc list, or check the
  length of a per-arc list.
  """
  if isinstance(value, kind):
    return [value] * len(arcs)
  value_list = list(value)
  if len(value_list) != len(arcs):
    raise ConfigurationMismatchError(f"{len(value_list)} {label} given for {len(arcs)} arcs")
  for item in value_list:
    if not isinstance(item, kind):
      raise ConfigurationMismatchError(f"Expected {kind.__name__} in {label}, got {type(item).__name__}")
  return value_list


def _anchor_integrator_settings(
  integrator_settings : Union[IntegratorSettings, Sequence[IntegratorSettings]],
  arcs                : List[Arc],
) -> List[IntegratorSettings]:
  shared   = isinstance(integrator_settings, IntegratorSettings)
  anchored = []
  for arc, settings in zip(arcs, _per_arc(integrator_settings, arcs, IntegratorSettings, 'integrator settings')):
    if shared or settings.initial_time is None:
      # Shared settings start every arc at the arc's own start time
      anchored.append(settings.anchored_at(arc.start_time))
    elif settings.initial_time != arc.start_time:
      raise ConfigurationMismatchError(
        f"Integrator initial time {settings.initial_time} does not match start {arc.start_time} of arc {arc}"
      )
    else:
      anchored.append(settings)
  return anchored


def _integrate_arc_on_copy(
  bodies              : SystemOfBodies,
  propagator_settings : PropagatorSettings,
  initial_state       : np.ndarray,
  arc                 : Arc,
  integrator_settings : IntegratorSettings,
) -> dict:
  # Each concurrent arc owns a private copy of the bodies' mutable state
  bodies_copy      = copy.deepcopy(bodies)
  derivative_model = create_state_derivative_model(bodies_copy, propagator_settings)
  return propagate_single_arc(derivative_model, initial_state, arc, integrator_settings)


def propagate_multi_arc(
  bodies              : SystemOfBodies,
  arcs                : Sequence[Arc],
  initial_states      : Sequence[np.ndarray],
  integrator_settings : Union[IntegratorSettings, Sequence[IntegratorSettings]],
  propagator_settings : Union[PropagatorSettings, Sequence[PropagatorSettings]],
  interpolator        : Optional[Interpolator] = None,
  parallel            : bool                   = False,
  max_workers         : Optional[int]          = None,
) -> dict:
  """
  Propagate bodies over a sequence of arcs and assemble their trajectories.

  Input:
  ------
    bodies : SystemOfBodies
      All bodies of the simulation. Propagated bodies get a trajectory
      assigned and their current state restored after the run.
    arcs : sequence of Arc
      Arcs in registration order; they may overlap or leave gaps.
    initial_states : sequence of np.ndarray
      Combined initial state per arc (states relative to the central bodies).
    integrator_settings : IntegratorSettings | sequence of IntegratorSettings
      One shared object (re-anchored at each arc start) or one per arc.
    propagator_settings : PropagatorSettings | sequence of PropagatorSettings
      One shared object or one per arc.
    interpolator : Interpolator, optional
      Interpolator of the trajectories (default: 8th-order Lagrange).
    parallel : bool
      Integrate arcs concurrently on copies of the bodies.
    max_workers : int, optional
      Thread pool size when parallel.

  Output:
  -------
    result : dict
      Dictionary containing:
      - success : bool - All arcs integrated successfully
      - message : str - Status message
      - trajectories : dict - Body name -> MultiArcTrajectory
      - arc_results : list - Single-arc result dicts, up to the failed arc
      - num_arcs_completed : int - Registered arcs
      - failed_arc_index : int - Index of the failed arc (None on success)
      - time_reached : float - Last time reached in the last integrated arc

  Raises:
  -------
    ConfigurationMismatchError
      Inconsistent inputs, before any integration.
  """
  # Validate inputs
  arcs = [arc if isinstance(arc, Arc) else Arc(*arc) for arc in arcs]
  if not arcs:
    raise ConfigurationMismatchError("No arcs to propagate")

  initial_states = [np.array(state, dtype=float) for state in initial_states]
  if len(initial_states) != len(arcs):
    raise ConfigurationMismatchError(f"{len(initial_states)} initial states given for {len(arcs)} arcs")

  integrator_settings_list = _anchor_integrator_settings(integrator_settings, arcs)
  propagator_settings_list = _per_arc(propagator_settings, arcs, PropagatorSettings, 'propagator settings')

  derivative_models = []
  for arc_index, (settings, initial_state) in enumerate(zip(propagator_settings_list, initial_states)):
    validate_propagator_settings(bodies, settings)
    derivative_model = create_state_derivative_model(bodies, settings)
    if initial_state.shape != (derivative_model.state_size,):
      raise ConfigurationMismatchError(
        f"Initial state of arc {arc_index} has shape {initial_state.shape}, expected ({derivative_model.state_size},)"
      )
    derivative_models.append(derivative_model)

  # One trajectory per propagated body, in order of first appearance; all
  # arcs of a trajectory share its central body
  trajectories = {}
  for arc_index, settings in enumerate(propagator_settings_list):
    for body_name, central_name in zip(settings.bodies_to_propagate, settings.central_bodies):
      if body_name not in trajectories:
        trajectories[body_name] = MultiArcTrajectory(body_name, central_name, interpolator)
      elif trajectories[body_name].central_body != central_name:
        raise ConfigurationMismatchError(
          f"Body '{body_name}' is propagated about '{central_name}' in arc {arc_index} "
          f"but about '{trajectories[body_name].central_body}' in an earlier arc"
        )

  pre_run_states = {
    body_name : (body.current_time, body.translational_state.copy(), body.rotational_state.copy())
    for body_name, body in ((name, bodies.get_body(name)) for name in trajectories)
  }

  arc_results      = []
  failed_arc_index = None
  last_completed   = None
  try:
    if parallel:
      with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
          executor.submit(_integrate_arc_on_copy, bodies, settings, initial_state, arc, integ_settings)
          for settings, initial_state, arc, integ_settings
          in zip(propagator_settings_list, initial_states, arcs, integrator_settings_list)
        ]
        arc_result_iter = (future.result() for future in futures)
        failed_arc_index, last_completed = _register_arcs(
          arc_result_iter, derivative_models, trajectories, arc_results,
        )
    else:
      arc_result_iter = (
        propagate_single_arc(derivative_model, initial_state, arc, integ_settings)
        for derivative_model, initial_state, arc, integ_settings
        in zip(derivative_models, initial_states, arcs, integrator_settings_list)
      )
      failed_arc_index, last_completed = _register_arcs(
        arc_result_iter, derivative_models, trajectories, arc_results,
      )
  finally:
    _restore_body_states(bodies, pre_run_states, derivative_models, arc_results, last_completed)

  for body_name, trajectory in trajectories.items():
    bodies.get_body(body_name).trajectory = trajectory

  if failed_arc_index is None:
    for trajectory in trajectories.values():
      trajectory.finalize()
    return {
      'success'            : True,
      'message'            : f'Multi-arc propagation successful ({len(arcs)} arcs)',
      'trajectories'       : trajectories,
      'arc_results'        : arc_results,
      'num_arcs_completed' : len(arcs),
      'failed_arc_index'   : None,
      'time_reached'       : arc_results[-1]['time_reached'],
    }

  failed_arc = arcs[failed_arc_index]
  return {
    'success'            : False,
    'message'            : (
      f"Arc {failed_arc_index} [{failed_arc.start_time}, {failed_arc.end_time}] failed: "
      f"{arc_results[failed_arc_index]['message']}"
    ),
    'trajectories'       : trajectories,
    'arc_results'        : arc_results,
    'num_arcs_completed' : failed_arc_index,
    'failed_arc_index'   : failed_arc_index,
    'time_reached'       : arc_results[failed_arc_index]['time_reached'],
  }


def _register_arcs(
  arc_result_iter   : object,
  derivative_models : List[StateDerivativeModel],
  trajectories      : Dict[str, MultiArcTrajectory],
  arc_results       : list,
) -> tuple:
  """
  Register arc results in arc order until the first failure.

  Returns the failed arc index (None if all succeeded) and the index of the
  last completed arc (None if none completed).
  """
  last_completed = None
  for arc_index, arc_result in enumerate(arc_result_iter):
    arc_results.append(arc_result)
    if not arc_result['success']:
      return arc_index, last_completed

    body_histories = derivative_models[arc_index].split_state_history(arc_result['state'])
    for body_name, body_history in body_histories.items():
      trajectories[body_name].register_arc(arc_result['time'], body_history)
    last_completed = arc_index
  return None, last_completed


def _restore_body_states(
  bodies            : SystemOfBodies,
  pre_run_states    : dict,
  derivative_models : List[StateDerivativeModel],
  arc_results       : list,
  last_completed    : Optional[int],
) -> None:
  """
  Leave propagated bodies at the final state of the last completed arc, or
  at their pre-run state when no arc completed (or the body was not part of
  that arc).
  """
  for body_name, (current_time, translational_state, rotational_state) in pre_run_states.items():
    bodies.get_body(body_name).set_state(current_time, translational_state, rotational_state)

  if last_completed is not None:
    arc_result = arc_results[last_completed]
    derivative_models[last_completed].update_environment(arc_result['time'][-1], arc_result['state_f'])


def run_multi_arc_propagation(
  bodies              : SystemOfBodies,
  arcs                : Sequence[Arc],
  initial_states      : Sequence[np.ndarray],
  integrator_settings : Union[IntegratorSettings, Sequence[IntegratorSettings]],
  propagator_settings : Union[PropagatorSettings, Sequence[PropagatorSettings]],
  interpolator        : Optional[Interpolator] = None,
  parallel            : bool                   = False,
  max_workers         : Optional[int]          = None,
) -> dict:
  """
  Print the run configuration, then run propagate_multi_arc.

  Input:
  ------
    See propagate_multi_arc.

  Output:
  -------
    result : dict
      Result of propagate_multi_arc.
  """
  print("\nMulti-Arc Propagation")

  shared_propagator_settings = isinstance(propagator_settings, PropagatorSettings)
  first_settings = propagator_settings if shared_propagator_settings else list(propagator_settings)[0]
  first_integ    = integrator_settings if isinstance(integrator_settings, IntegratorSettings) else list(integrator_settings)[0]
  arcs           = [arc if isinstance(arc, Arc) else Arc(*arc) for arc in arcs]

  # Print configuration
  print(f"  Configuration")
  print(f"    Arcs")
  print(f"      Number   : {len(arcs)}")
  print(f"      Initial  : {arcs[0].start_time:.6f} s")
  print(f"      Final    : {max(arc.end_time for arc in arcs):.6f} s")
  for arc_index, arc in enumerate(arcs):
    print(f"      Arc {arc_index:<4d} : [{arc.start_time:.6f}, {arc.end_time:.6f}] s ({arc.duration} s)")
  print(f"    Bodies")
  for body_name, central_name in zip(first_settings.bodies_to_propagate, first_settings.central_bodies):
    rotational = ' (+ rotational)' if body_name in first_settings.rotational_bodies else ''
    print(f"      {body_name} about {central_name}{rotational}")
    for exerting_name, settings_list in first_settings.acceleration_settings.get(body_name, {}).items():
      type_names = ', '.join(settings.acceleration_type.value for settings in settings_list)
      print(f"        {exerting_name:<10s} : {type_names}")
  if not shared_propagator_settings:
    print(f"      (per-arc propagator settings, first arc shown)")
  print(f"    Numerical Integration")
  print(f"      Method     : {first_integ.method}")
  if first_integ.is_fixed_step:
    print(f"      Step Size  : {first_integ.step_size} s")
  else:
    print(f"      Tolerances : rtol={first_integ.rtol}, atol={first_integ.atol}")
  print(f"      Settings   : {'shared' if isinstance(integrator_settings, IntegratorSettings) else 'per arc'}")
  print(f"      Parallel   : {parallel}")

  print("\n  Compute")
  print("    Multi-Arc Integration Running ... ", end='', flush=True)

  result = propagate_multi_arc(
    bodies              = bodies,
    arcs                = arcs,
    initial_states      = initial_states,
    integrator_settings = integrator_settings,
    propagator_settings = propagator_settings,
    interpolator        = interpolator,
    parallel            = parallel,
    max_workers         = max_workers,
  )

  print("Complete")

  if not result['success']:
    print(f"  Propagation failed: {result['message']}")

  return result

