"""
Dynamics
========

State derivative of a set of propagated bodies under the combined effect of
their acceleration and torque models.

Summary:
--------
  create_acceleration_model / create_torque_model
    Single dispatch point from a settings object to its model.
  AccelerationAccumulator / TorqueAccumulator
    Total acceleration (torque) on one body: sum over its models, in the
    insertion order of the settings.
  StateDerivativeModel
    compute_state_derivative(time, state) for the combined state vector of all
    propagated bodies, in scipy's argument order.

State vector:
-------------
  For each propagated body, in the order given:
    [ pos (3), vel (3) ]                              relative to its central body
    [ q0, q1, q2, q3, wx, wy, wz ]                    if rotational dynamics is on
"""
import numpy as np

from typing import Dict, List, NamedTuple, Optional, Sequence

from arc_propagator.model.acceleration_models   import (
  AccelerationModel,
  AerodynamicAcceleration,
  CannonballRadiationPressureAcceleration,
  ConstantTorque,
  EmpiricalAcceleration,
  GravityGradientTorque,
  PointMassGravityAcceleration,
  ThirdBodyPointMassGravityAcceleration,
  TorqueModel,
  ZonalGravityAcceleration,
)
from arc_propagator.model.acceleration_settings import AccelerationType, TorqueType
from arc_propagator.model.attitude              import angular_acceleration, quaternion_time_derivative
from arc_propagator.model.body                  import Body, SystemOfBodies
from arc_propagator.model.errors                import ConfigurationMismatchError, InvalidStateError


TRANSLATIONAL_STATE_SIZE = 6
ROTATIONAL_STATE_SIZE    = 7


# =============================================================================
# Model creation
# =============================================================================

def _resolve_body(
  bodies : SystemOfBodies,
  name   : str,
) -> Optional[Body]:
  """
  Body by name; None for the global frame origin.
  """
  if bodies.is_global_frame_origin(name):
    return None
  if name not in bodies:
    raise ConfigurationMismatchError(f"Unknown body '{name}'. Known bodies: {bodies.names()}")
  return bodies.get_body(name)


def create_acceleration_model(
  bodies               : SystemOfBodies,
  body_undergoing_name : str,
  body_exerting_name   : str,
  settings             : object,
  central_body_name    : str,
) -> AccelerationModel:
  """
  Create the acceleration model described by a settings object.

  Input:
  ------
    bodies : SystemOfBodies
      Bodies referenced by the model.
    body_undergoing_name : str
      Body on which the acceleration acts.
    body_exerting_name : str
      Body causing the acceleration.
    settings : object
      One of the acceleration settings classes.
    central_body_name : str
      Central body of the undergoing body; selects the central or third-body
      form of point mass gravity.

  Output:
  -------
    model : AccelerationModel
  """
  acceleration_type = getattr(settings, 'acceleration_type', None)
  body_undergoing   = _resolve_body(bodies, body_undergoing_name)
  body_exerting     = _resolve_body(bodies, body_exerting_name)
  if body_undergoing is None:
    raise ConfigurationMismatchError("The global frame origin cannot undergo an acceleration")

  if acceleration_type is AccelerationType.POINT_MASS_GRAVITY:
    if body_exerting is None:
      raise ConfigurationMismatchError("The global frame origin has no gravity field")
    if body_exerting_name == central_body_name:
      return PointMassGravityAcceleration(body_undergoing, body_exerting)
    return ThirdBodyPointMassGravityAcceleration(
      body_undergoing,
      body_exerting,
      _resolve_body(bodies, central_body_name),
    )

  elif acceleration_type is AccelerationType.ZONAL_GRAVITY:
    if body_exerting_name != central_body_name:
      raise ConfigurationMismatchError(
        f"Zonal gravity of '{body_exerting_name}' on '{body_undergoing_name}' requires "
        f"'{body_exerting_name}' to be the central body"
      )
    return ZonalGravityAcceleration(
      body_undergoing,
      body_exerting,
      j2               = settings.j2,
      j3               = settings.j3,
      j4               = settings.j4,
      reference_radius = settings.reference_radius,
    )

  elif acceleration_type is AccelerationType.AERODYNAMIC:
    if body_exerting is None:
      raise ConfigurationMismatchError("The global frame origin has no atmosphere")
    return AerodynamicAcceleration(
      body_undergoing,
      body_exerting,
      drag_coefficient = settings.drag_coefficient,
      reference_area   = settings.reference_area,
    )

  elif acceleration_type is AccelerationType.CANNONBALL_RADIATION_PRESSURE:
    if body_exerting is None:
      raise ConfigurationMismatchError("The global frame origin cannot be a radiation source")
    occulting_bodies = []
    for name in settings.occulting_bodies:
      occulting_body = _resolve_body(bodies, name)
      if occulting_body is None:
        raise ConfigurationMismatchError("The global frame origin cannot occult")
      occulting_bodies.append(occulting_body)
    return CannonballRadiationPressureAcceleration(
      body_undergoing,
      body_exerting,
      radiation_pressure_coefficient = settings.radiation_pressure_coefficient,
      reference_area                 = settings.reference_area,
      occulting_bodies               = occulting_bodies,
    )

  elif acceleration_type is AccelerationType.EMPIRICAL:
    return EmpiricalAcceleration(
      body_undergoing,
      body_exerting,
      constant = settings.constant,
      sine     = settings.sine,
      cosine   = settings.cosine,
      period   = settings.period,
    )

  raise ConfigurationMismatchError(f"Unsupported acceleration settings: {settings!r}")


def create_torque_model(
  bodies               : SystemOfBodies,
  body_undergoing_name : str,
  body_exerting_name   : str,
  settings             : object,
) -> TorqueModel:
  """
  Create the torque model described by a settings object.
  """
  torque_type     = getattr(settings, 'torque_type', None)
  body_undergoing = _resolve_body(bodies, body_undergoing_name)
  body_exerting   = _resolve_body(bodies, body_exerting_name)
  if body_undergoing is None:
    raise ConfigurationMismatchError("The global frame origin cannot undergo a torque")

  if torque_type is TorqueType.SECOND_DEGREE_GRAVITATIONAL:
    if body_exerting is None:
      raise ConfigurationMismatchError("The global frame origin has no gravity field")
    return GravityGradientTorque(body_undergoing, body_exerting)

  elif torque_type is TorqueType.CONSTANT:
    return ConstantTorque(body_undergoing, settings.torque)

  raise ConfigurationMismatchError(f"Unsupported torque settings: {settings!r}")


# =============================================================================
# Accumulators
# =============================================================================

class AccelerationAccumulator:
  """
  Total acceleration on one body.

  Models are fixed at construction and evaluated in a stable order (exerting
  bodies in insertion order, then models per exerting body in insertion
  order), so the summation order and hence the result are reproducible.
  """

  def __init__(
    self,
    body_name : str,
    models    : Dict[str, List[AccelerationModel]],
  ):
    self.body_name = body_name
    self.models    = {exerting : list(model_list) for exerting, model_list in models.items()}

  def __iter__(
    self,
  ):
    for model_list in self.models.values():
      yield from model_list

  def compute_total_acceleration(
    self,
    time : float,
  ) -> np.ndarray:
    acc_vec = np.zeros(3)
    for model in self:
      try:
        model.update_members(time)
      except InvalidStateError as error:
        raise error.with_context(time=time, body_name=self.body_name)
      acc_vec = acc_vec + model.get_acceleration()
    return acc_vec


class TorqueAccumulator:
  """
  Total torque on one body, in body-fixed axes.
  """

  def __init__(
    self,
    body_name : str,
    models    : Dict[str, List[TorqueModel]],
  ):
    self.body_name = body_name
    self.models    = {exerting : list(model_list) for exerting, model_list in models.items()}

  def __iter__(
    self,
  ):
    for model_list in self.models.values():
      yield from model_list

  def compute_total_torque(
    self,
    time : float,
  ) -> np.ndarray:
    torque_vec = np.zeros(3)
    for model in self:
      try:
        model.update_members(time)
      except InvalidStateError as error:
        raise error.with_context(time=time, body_name=self.body_name)
      torque_vec = torque_vec + model.get_torque()
    return torque_vec


def create_acceleration_models(
  bodies                : SystemOfBodies,
  acceleration_settings : Dict[str, Dict[str, list]],
  bodies_to_propagate   : Sequence[str],
  central_bodies        : Sequence[str],
) -> Dict[str, AccelerationAccumulator]:
  """
  Accumulators for every propagated body from the body-pair settings map
  {undergoing: {exerting: [settings, ...]}}.

  A propagated body without settings gets an empty accumulator (zero
  acceleration).
  """
  for body_name in acceleration_settings:
    if body_name not in bodies_to_propagate:
      raise ConfigurationMismatchError(f"Acceleration settings given for non-propagated body '{body_name}'")

  accumulators = {}
  for body_name, central_body_name in zip(bodies_to_propagate, central_bodies):
    models = {}
    for exerting_name, settings_list in acceleration_settings.get(body_name, {}).items():
      models[exerting_name] = [
        create_acceleration_model(bodies, body_name, exerting_name, settings, central_body_name)
        for settings in settings_list
      ]
    accumulators[body_name] = AccelerationAccumulator(body_name, models)
  return accumulators


def create_torque_models(
  bodies              : SystemOfBodies,
  torque_settings     : Optional[Dict[str, Dict[str, list]]],
  bodies_to_propagate : Sequence[str],
) -> Dict[str, TorqueAccumulator]:
  torque_settings = torque_settings or {}
  accumulators    = {}
  for body_name in bodies_to_propagate:
    models = {}
    for exerting_name, settings_list in torque_settings.get(body_name, {}).items():
      models[exerting_name] = [
        create_torque_model(bodies, body_name, exerting_name, settings)
        for settings in settings_list
      ]
    accumulators[body_name] = TorqueAccumulator(body_name, models)
  return accumulators


# =============================================================================
# State derivative
# =============================================================================

class StateBlock(NamedTuple):
  body_name : str
  kind      : str    # 'translational' or 'rotational'
  start     : int
  stop      : int


class StateDerivativeModel:
  """
  Combined state derivative of all propagated bodies.

  Owns nothing but references: the bodies' current states are overwritten on
  every evaluation (environment update), and the accumulators' models cache
  intermediates of the last evaluation. Nothing else persists between calls.
  """

  def __init__(
    self,
    bodies                    : SystemOfBodies,
    bodies_to_propagate       : Sequence[str],
    central_bodies            : Sequence[str],
    acceleration_accumulators : Dict[str, AccelerationAccumulator],
    torque_accumulators       : Optional[Dict[str, TorqueAccumulator]] = None,
    rotational_bodies         : Sequence[str] = (),
  ):
    """
    Initialize state derivative model.

    Input:
    ------
      bodies : SystemOfBodies
        All bodies of the simulation.
      bodies_to_propagate : sequence of str
        Propagated bodies; fixes the order of the state vector.
      central_bodies : sequence of str
        Central body per propagated body (may be the global frame origin).
      acceleration_accumulators : dict
        Accumulator per propagated body.
      torque_accumulators : dict, optional
        Torque accumulator per rotational body; zero torque when missing.
      rotational_bodies : sequence of str
        Propagated bodies whose rotational state is part of the state vector.

    Output:
    -------
      None
    """
    if len(bodies_to_propagate) != len(central_bodies):
      raise ConfigurationMismatchError(
        f"{len(bodies_to_propagate)} bodies to propagate but {len(central_bodies)} central bodies"
      )

    self.bodies                    = bodies
    self.bodies_to_propagate       = list(bodies_to_propagate)
    self.central_bodies            = dict(zip(bodies_to_propagate, central_bodies))
    self.acceleration_accumulators = acceleration_accumulators
    self.torque_accumulators       = torque_accumulators or {}
    self.rotational_bodies         = [name for name in self.bodies_to_propagate if name in set(rotational_bodies)]
    self.num_function_evaluations  = 0

    # Fixed layout of the combined state vector
    layout = []
    index  = 0
    for body_name in self.bodies_to_propagate:
      layout.append(StateBlock(body_name, 'translational', index, index + TRANSLATIONAL_STATE_SIZE))
      index += TRANSLATIONAL_STATE_SIZE
      if body_name in self.rotational_bodies:
        layout.append(StateBlock(body_name, 'rotational', index, index + ROTATIONAL_STATE_SIZE))
        index += ROTATIONAL_STATE_SIZE
    self.state_layout = tuple(layout)
    self.state_size   = index

    self._update_order = self._compute_update_order()

  def _compute_update_order(
    self,
  ) -> List[str]:
    """
    Order in which propagated bodies' global states are rebuilt, so that a
    propagated central body is always updated before the bodies orbiting it.
    """
    order    = []
    visiting = set()

    def visit(name):
      if name in order:
        return
      if name in visiting:
        raise ConfigurationMismatchError(f"Circular central body dependency involving '{name}'")
      visiting.add(name)
      central_name = self.central_bodies[name]
      if central_name in self.central_bodies:
        visit(central_name)
      visiting.discard(name)
      order.append(name)

    for body_name in self.bodies_to_propagate:
      visit(body_name)
    return order

  def _central_body_state(
    self,
    body_name : str,
  ) -> np.ndarray:
    central_name = self.central_bodies[body_name]
    if self.bodies.is_global_frame_origin(central_name):
      return np.zeros(TRANSLATIONAL_STATE_SIZE)
    return self.bodies.get_body(central_name).translational_state

  def body_states(
    self,
    state : np.ndarray,
  ) -> Dict[str, Dict[str, np.ndarray]]:
    """
    Split a combined state vector into {body: {kind: sub-state}}.
    """
    states = {}
    for block in self.state_layout:
      states.setdefault(block.body_name, {})[block.kind] = state[block.start:block.stop]
    return states

  def body_at_index(
    self,
    index : int,
  ) -> str:
    """
    Name of the propagated body owning an entry of the combined state vector.
    """
    for block in self.state_layout:
      if block.start <= index < block.stop:
        return block.body_name
    raise IndexError(f"State index {index} outside state of size {self.state_size}")

  def first_non_finite_body(
    self,
    vector : np.ndarray,
  ) -> Optional[str]:
    """
    Body owning the first non-finite entry of a state (or derivative) vector;
    None if all entries are finite.
    """
    non_finite_indices = np.flatnonzero(~np.isfinite(vector))
    if len(non_finite_indices) == 0:
      return None
    return self.body_at_index(int(non_finite_indices[0]))

  def update_environment(
    self,
    time  : float,
    state : np.ndarray,
  ) -> None:
    """
    Set every body's current state for this evaluation: ephemeris states for
    non-propagated bodies, global states from the state vector for propagated
    bodies.
    """
    propagated = set(self.bodies_to_propagate)
    for body in self.bodies:
      if body.name not in propagated:
        body.update_state_from_ephemeris(time)

    body_states = self.body_states(state)
    for body_name in self._update_order:
      body = self.bodies.get_body(body_name)
      body.set_state(
        time,
        body_states[body_name]['translational'] + self._central_body_state(body_name),
        body_states[body_name].get('rotational'),
      )

  def compute_state_derivative(
    self,
    time  : float,
    state : np.ndarray,
  ) -> np.ndarray:
    """
    Compute state time derivative for ODE integration.

    Input:
    ------
      time : float
        Current time [s].
      state : np.ndarray
        Combined state vector.

    Output:
    -------
      state_dot : np.ndarray
        Time derivative of the state vector.

    Raises:
    -------
      InvalidStateError
        Non-finite state or derivative, singular inertia, zero-length
        separation in a model.
    """
    self.num_function_evaluations += 1

    state = np.asarray(state, dtype=float)
    if state.shape != (self.state_size,):
      raise InvalidStateError(f"State has shape {state.shape}, expected ({self.state_size},)", time=time)
    if not np.all(np.isfinite(state)):
      raise InvalidStateError("Non-finite state", time=time, body_name=self.first_non_finite_body(state))

    # Environment first, so that every model sees the states of this evaluation
    self.update_environment(time, state)

    state_dot = np.zeros(self.state_size)
    for block in self.state_layout:
      sub_state = state[block.start:block.stop]

      if block.kind == 'translational':
        state_dot[block.start:block.start+3] = sub_state[3:6]
        state_dot[block.start+3:block.stop]  = self.acceleration_accumulators[block.body_name].compute_total_acceleration(time)

      else:
        quat_vec    = sub_state[0:4]
        ang_vel_vec = sub_state[4:7]
        body        = self.bodies.get_body(block.body_name)

        if block.body_name in self.torque_accumulators:
          torque_vec = self.torque_accumulators[block.body_name].compute_total_torque(time)
        else:
          torque_vec = np.zeros(3)

        try:
          ang_acc_vec = angular_acceleration(
            body.get_inertia_tensor(time),
            torque_vec,
            ang_vel_vec,
            body.get_inertia_tensor_time_derivative(time),
          )
        except InvalidStateError as error:
          raise error.with_context(time=time, body_name=block.body_name)

        state_dot[block.start:block.start+4] = quaternion_time_derivative(quat_vec, ang_vel_vec)
        state_dot[block.start+4:block.stop]  = ang_acc_vec

    if not np.all(np.isfinite(state_dot)):
      raise InvalidStateError("Non-finite state derivative", time=time, body_name=self.first_non_finite_body(state_dot))

    return state_dot

  def convert_to_global_states(
    self,
    time  : float,
    state : np.ndarray,
  ) -> Dict[str, np.ndarray]:
    """
    Global-frame translational state of each propagated body at one time.
    """
    self.update_environment(time, np.asarray(state, dtype=float))
    return {
      body_name : self.bodies.get_body(body_name).translational_state.copy()
      for body_name in self.bodies_to_propagate
    }

  def split_state_history(
    self,
    state_history : np.ndarray,
  ) -> Dict[str, np.ndarray]:
    """
    Per-body rows of a combined state history (n x N): translational rows
    followed by rotational rows when present.
    """
    history = {}
    for block in self.state_layout:
      rows = state_history[block.start:block.stop, :]
      if block.body_name in history:
        history[block.body_name] = np.vstack((history[block.body_name], rows))
      else:
        history[block.body_name] = rows.copy()
    return history


def create_state_derivative_model(
  bodies              : SystemOfBodies,
  propagator_settings : object,
) -> StateDerivativeModel:
  """
  Build the state derivative model (with all acceleration and torque models)
  for one arc's propagator settings.
  """
  acceleration_accumulators = create_acceleration_models(
    bodies,
    propagator_settings.acceleration_settings,
    propagator_settings.bodies_to_propagate,
    propagator_settings.central_bodies,
  )
  torque_accumulators = create_torque_models(
    bodies,
    propagator_settings.torque_settings,
    propagator_settings.rotational_bodies,
  )
  return StateDerivativeModel(
    bodies                    = bodies,
    bodies_to_propagate       = propagator_settings.bodies_to_propagate,
    central_bodies            = propagator_settings.central_bodies,
    acceleration_accumulators = acceleration_accumulators,
    torque_accumulators       = torque_accumulators,
    rotational_bodies         = propagator_settings.rotational_bodies,
  )
