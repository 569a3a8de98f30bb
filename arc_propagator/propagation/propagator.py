"""
Single-Arc Propagator
=====================

Numerical integration of a state derivative model over one arc.
"""
import numpy as np

from typing import Callable, Optional, Union

from arc_propagator.model.errors            import ConfigurationMismatchError, InvalidStateError
from arc_propagator.propagation.arc         import Arc
from arc_propagator.propagation.integrators import IntegratorSettings, fixed_step_time_grid


def _failed_result(
  message         : str,
  time_list       : list,
  state_list      : list,
  time_reached    : float,
  num_evaluations : int,
  error           : Optional[Exception],
) -> dict:
  result                 = _build_result(time_list, state_list, num_evaluations)
  result['success']      = False
  result['message']      = message
  result['error']        = error
  result['time_reached'] = time_reached
  return result


def _build_result(
  time_list       : list,
  state_list      : list,
  num_evaluations : int,
) -> dict:
  time  = np.array(time_list, dtype=float)
  state = np.column_stack(state_list) if state_list else np.zeros((0, 0))
  return {
    'success'                  : True,
    'message'                  : 'Integration successful',
    'time'                     : time,
    'state'                    : state,
    'state_f'                  : state[:, -1].copy() if state_list else None,
    'time_reached'             : time[-1] if time_list else None,
    'num_function_evaluations' : num_evaluations,
    'error'                    : None,
  }


def propagate_single_arc(
  derivative_model    : Union[object, Callable[[float, np.ndarray], np.ndarray]],
  initial_state       : np.ndarray,
  arc                 : Arc,
  integrator_settings : IntegratorSettings,
) -> dict:
  """
  Propagate a state over one arc.

  Input:
  ------
    derivative_model : StateDerivativeModel | callable
      Object with compute_state_derivative(time, state), or the function itself.
    initial_state : np.ndarray
      State at the arc start.
    arc : Arc
      Time interval to integrate.
    integrator_settings : IntegratorSettings
      Integrator configuration; an initial time, if set, must equal the arc start.

  Output:
  -------
    result : dict
      Dictionary containing:
      - success : bool - Integration success flag
      - message : str - Status message
      - time : np.ndarray - Time array [s], first sample at the arc start
      - state : np.ndarray - State history [n x N]
      - state_f : np.ndarray - Final state vector (None if no sample)
      - time_reached : float - Last valid time reached (last accepted solver step when resampling)
      - num_function_evaluations : int - Derivative evaluations
      - error : Exception - Error that aborted the arc (None on success)

  Notes:
  ------
    Integration never raises for invalid states: a non-finite state or an
    InvalidStateError stops the arc and is reported through 'success',
    'message' and 'error', with the samples committed so far.
  """
  if integrator_settings.initial_time is None:
    integrator_settings = integrator_settings.anchored_at(arc.start_time)
  elif integrator_settings.initial_time != arc.start_time:
    raise ConfigurationMismatchError(
      f"Integrator initial time {integrator_settings.initial_time} does not match arc start {arc.start_time}"
    )

  derivative_fn = getattr(derivative_model, 'compute_state_derivative', derivative_model)
  locate_body   = getattr(derivative_model, 'first_non_finite_body', lambda vector: None)

  # Count evaluations locally; the model may be shared between runs
  num_evaluations = [0]
  def counted_derivative_fn(time, state):
    num_evaluations[0] += 1
    return derivative_fn(time, state)

  initial_state = np.array(initial_state, dtype=float)
  if not np.all(np.isfinite(initial_state)):
    error = InvalidStateError("Non-finite initial state", time=arc.start_time, body_name=locate_body(initial_state))
    return _failed_result(str(error), [], [], arc.start_time, 0, error)

  if integrator_settings.is_fixed_step:
    return _propagate_fixed_step(counted_derivative_fn, locate_body, initial_state, arc, integrator_settings, num_evaluations)
  return _propagate_adaptive(counted_derivative_fn, locate_body, initial_state, arc, integrator_settings, num_evaluations)


def _propagate_fixed_step(
  derivative_fn       : Callable,
  locate_body         : Callable,
  initial_state       : np.ndarray,
  arc                 : Arc,
  integrator_settings : IntegratorSettings,
  num_evaluations     : list,
) -> dict:
  stepper   = integrator_settings.stepper
  time_grid = fixed_step_time_grid(arc.start_time, arc.end_time, integrator_settings.step_size)

  time_list  = [time_grid[0]]
  state_list = [initial_state]
  state      = initial_state

  for time, time_next in zip(time_grid[:-1], time_grid[1:]):
    try:
      state_next = stepper.step(derivative_fn, state, time, time_next - time)
      if not np.all(np.isfinite(state_next)):
        raise InvalidStateError(
          "Non-finite state after integration step", time=time_next, body_name=locate_body(state_next),
        )
    except InvalidStateError as error:
      message = f"Integration failed at t = {time:.6f} s: {error}"
      return _failed_result(message, time_list, state_list, time, num_evaluations[0], error)

    time_list.append(time_next)
    state_list.append(state_next)
    state = state_next

  return _build_result(time_list, state_list, num_evaluations[0])


def _propagate_adaptive(
  derivative_fn       : Callable,
  locate_body         : Callable,
  initial_state       : np.ndarray,
  arc                 : Arc,
  integrator_settings : IntegratorSettings,
  num_evaluations     : list,
) -> dict:
  solver_options = {
    'rtol'     : integrator_settings.rtol,
    'atol'     : integrator_settings.atol,
    'max_step' : integrator_settings.max_step,
  }
  if integrator_settings.step_size is not None:
    solver_options['first_step'] = min(integrator_settings.step_size, arc.duration)

  # Uniform output grid, filled from each step's dense output
  output_grid = None
  if integrator_settings.output_step is not None:
    output_grid = fixed_step_time_grid(arc.start_time, arc.end_time, integrator_settings.output_step)

  time_list  = [arc.start_time]
  state_list = [initial_state]

  try:
    solver = integrator_settings.solver_class(
      derivative_fn,
      arc.start_time,
      initial_state,
      arc.end_time,
      **solver_options,
    )
  except InvalidStateError as error:
    message = f"Integration failed at t = {arc.start_time:.6f} s: {error}"
    return _failed_result(message, time_list, state_list, arc.start_time, num_evaluations[0], error)

  # Last accepted solver time; ahead of the last output sample when resampling
  time_accepted = arc.start_time
  output_index  = 1
  while solver.status == 'running':
    time_prev = solver.t
    try:
      solver_message = solver.step()
      if solver.status == 'failed':
        raise InvalidStateError(f"Solver failed: {solver_message}", time=time_prev)
      if not np.all(np.isfinite(solver.y)):
        raise InvalidStateError(
          "Non-finite state after integration step", time=solver.t, body_name=locate_body(solver.y),
        )
    except InvalidStateError as error:
      message = f"Integration failed at t = {time_accepted:.6f} s: {error}"
      return _failed_result(message, time_list, state_list, time_accepted, num_evaluations[0], error)
    time_accepted = solver.t

    if output_grid is None:
      time_list.append(solver.t)
      state_list.append(solver.y.copy())
      continue

    dense_output = None
    while output_index < len(output_grid) and output_grid[output_index] <= solver.t:
      output_time = output_grid[output_index]
      if output_time == solver.t:
        time_list.append(output_time)
        state_list.append(solver.y.copy())
      else:
        if dense_output is None:
          dense_output = solver.dense_output()
        time_list.append(output_time)
        state_list.append(dense_output(output_time))
      output_index += 1

  return _build_result(time_list, state_list, num_evaluations[0])
