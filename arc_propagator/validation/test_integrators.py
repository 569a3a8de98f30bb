"""
Integrator and Single-Arc Propagator Tests
==========================================

Tests for the fixed-step integrators, integrator settings, the fixed-step
time grid, and propagate_single_arc.

Usage:
------
  python -m pytest arc_propagator/validation/test_integrators.py -v
"""
import pytest
import numpy as np

from arc_propagator.model.errors            import ConfigurationMismatchError, InvalidStateError
from arc_propagator.model.two_body          import propagate_kepler_orbit
from arc_propagator.propagation.arc         import Arc
from arc_propagator.propagation.integrators import (
  EulerIntegrator,
  IntegratorSettings,
  RungeKutta4Integrator,
  fixed_step_time_grid,
)
from arc_propagator.propagation.propagator  import propagate_single_arc


GP_EARTH = 398600.4418  # [km³/s²]


def exponential_decay(time, state):
  return -state


def two_body_derivative(time, state):
  pos_vec = state[0:3]
  return np.concatenate([state[3:6], -GP_EARTH * pos_vec / np.linalg.norm(pos_vec)**3])


class TestFixedStepTimeGrid:
  """Tests for fixed_step_time_grid."""

  def test_last_step_shortened(self):
    """Test that the grid ends exactly at the final time with a shorter last step."""
    time_grid = fixed_step_time_grid(0.0, 1000.0, 120.0)

    assert len(time_grid) == 10
    assert time_grid[0]  == 0.0
    assert time_grid[-1] == 1000.0
    assert np.isclose(time_grid[-1] - time_grid[-2], 40.0)

  def test_exact_multiple(self):
    """Test that a span that is a multiple of the step has no extra point."""
    time_grid = fixed_step_time_grid(0.0, 1200.0, 120.0)

    assert len(time_grid) == 11
    assert time_grid[-1] == 1200.0

  def test_step_longer_than_span(self):
    """Test that a step longer than the span gives one step to the final time."""
    time_grid = fixed_step_time_grid(10.0, 50.0, 120.0)
    assert np.array_equal(time_grid, [10.0, 50.0])

  def test_no_round_off_sliver(self):
    """Test that round-off in the step count does not add a tiny final step."""
    time_grid = fixed_step_time_grid(0.0, 0.3, 0.1)

    assert time_grid[-1] == 0.3
    assert np.all(np.diff(time_grid) > 0.05)


class TestFixedStepIntegrators:
  """Tests for EulerIntegrator and RungeKutta4Integrator."""

  def test_euler_single_step(self):
    """Test that one Euler step is state + h * f(t, state)."""
    state_next = EulerIntegrator.step(exponential_decay, np.array([2.0]), 0.0, 0.1)
    assert np.allclose(state_next, [1.8])

  def test_rk4_single_step_matches_taylor_series(self):
    """Test that one RK4 step of y' = -y matches the 4th-order Taylor series."""
    step_size  = 0.1
    state_next = RungeKutta4Integrator.step(exponential_decay, np.array([1.0]), 0.0, step_size)
    expected   = 1.0 - step_size + step_size**2 / 2 - step_size**3 / 6 + step_size**4 / 24
    assert np.isclose(state_next[0], expected, rtol=1e-14)

  def test_rk4_more_accurate_than_euler(self):
    """Test that RK4 error is many orders of magnitude below Euler error."""
    arc = Arc(0.0, 1.0)
    result_euler = propagate_single_arc(exponential_decay, np.array([1.0]), arc, IntegratorSettings('EULER', step_size=0.01))
    result_rk4   = propagate_single_arc(exponential_decay, np.array([1.0]), arc, IntegratorSettings('RK4',   step_size=0.01))

    error_euler = abs(result_euler['state_f'][0] - np.exp(-1.0))
    error_rk4   = abs(result_rk4['state_f'][0]   - np.exp(-1.0))
    assert error_rk4 < 1e-10
    assert error_euler > 1e-4

  def test_order_attribute(self):
    """Test the declared orders of accuracy."""
    assert EulerIntegrator.order       == 1
    assert RungeKutta4Integrator.order == 4


class TestIntegratorSettings:
  """Tests for IntegratorSettings validation."""

  def test_method_normalized(self):
    """Test that method names are case-insensitive."""
    assert IntegratorSettings('rk4', step_size=1.0).method == 'RK4'
    assert IntegratorSettings('dop853').method             == 'DOP853'

  def test_unknown_method_raises(self):
    """Test that an unknown method is a configuration mismatch."""
    with pytest.raises(ConfigurationMismatchError):
      IntegratorSettings('LEAPFROG', step_size=1.0)

  def test_fixed_step_requires_step_size(self):
    """Test that fixed-step methods need a positive step size."""
    with pytest.raises(ConfigurationMismatchError):
      IntegratorSettings('RK4')
    with pytest.raises(ConfigurationMismatchError):
      IntegratorSettings('RK4', step_size=-1.0)

  def test_output_step_only_for_adaptive(self):
    """Test that an output step is rejected for fixed-step methods."""
    with pytest.raises(ConfigurationMismatchError):
      IntegratorSettings('RK4', step_size=1.0, output_step=10.0)

  def test_anchored_at(self):
    """Test that anchoring returns a copy with the new initial time."""
    settings = IntegratorSettings('RK4', step_size=60.0)
    anchored = settings.anchored_at(500.0)

    assert anchored.initial_time == 500.0
    assert anchored.step_size    == 60.0
    assert settings.initial_time is None


class TestPropagateSingleArc:
  """Tests for propagate_single_arc."""

  def test_samples_and_evaluation_count(self):
    """Test the sample times and the number of derivative evaluations of RK4."""
    result = propagate_single_arc(exponential_decay, np.array([1.0]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.1))

    assert result['success']
    assert result['state'].shape == (1, 11)
    assert result['time'][0]  == 0.0
    assert result['time'][-1] == 1.0
    assert result['num_function_evaluations'] == 40
    assert np.isclose(result['state_f'][0], np.exp(-1.0), rtol=1e-6)

  def test_rk4_two_body_matches_kepler(self, leo_initial_state):
    """Test RK4 two-body propagation against the analytic Kepler solution."""
    arc    = Arc(0.0, 5400.0)
    result = propagate_single_arc(two_body_derivative, leo_initial_state, arc, IntegratorSettings('RK4', step_size=5.0))

    expected = propagate_kepler_orbit(leo_initial_state, arc.duration, GP_EARTH)
    assert result['success']
    assert np.allclose(result['state_f'][0:3], expected[0:3], atol=1e-5, rtol=0.0)
    assert np.allclose(result['state_f'][3:6], expected[3:6], atol=1e-8, rtol=0.0)

  def test_adaptive_two_body_matches_kepler(self, leo_initial_state):
    """Test DOP853 two-body propagation against the analytic Kepler solution."""
    arc      = Arc(100.0, 5500.0)
    settings = IntegratorSettings('DOP853', rtol=1e-12, atol=1e-12)
    result   = propagate_single_arc(two_body_derivative, leo_initial_state, arc, settings)

    expected = propagate_kepler_orbit(leo_initial_state, arc.duration, GP_EARTH)
    assert result['success'], result['message']
    assert result['time'][0]  == 100.0
    assert result['time'][-1] == 5500.0
    assert np.allclose(result['state_f'][0:3], expected[0:3], atol=1e-5, rtol=0.0)

  def test_adaptive_output_grid(self, leo_initial_state):
    """Test that an output step gives uniform samples from dense output."""
    settings = IntegratorSettings('RK45', rtol=1e-10, atol=1e-10, output_step=600.0)
    result   = propagate_single_arc(two_body_derivative, leo_initial_state, Arc(0.0, 3000.0), settings)

    assert result['success'], result['message']
    assert np.allclose(result['time'], [0.0, 600.0, 1200.0, 1800.0, 2400.0, 3000.0])
    assert result['state'].shape == (6, 6)

    expected = propagate_kepler_orbit(leo_initial_state, 1800.0, GP_EARTH)
    assert np.allclose(result['state'][0:3, 3], expected[0:3], atol=1e-3, rtol=0.0)

  def test_accepts_derivative_model_object(self):
    """Test that an object with compute_state_derivative is accepted."""
    class DecayModel:
      def compute_state_derivative(self, time, state):
        return -2.0 * state

    result = propagate_single_arc(DecayModel(), np.array([1.0]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.01))
    assert np.isclose(result['state_f'][0], np.exp(-2.0), rtol=1e-8)

  def test_initial_time_mismatch_raises(self):
    """Test that an explicit initial time different from the arc start is rejected."""
    settings = IntegratorSettings('RK4', step_size=0.1, initial_time=5.0)

    with pytest.raises(ConfigurationMismatchError):
      propagate_single_arc(exponential_decay, np.array([1.0]), Arc(0.0, 1.0), settings)

  def test_non_finite_step_stops_arc(self):
    """Test that a non-finite step stops the arc at the last committed sample."""
    def derivative(time, state):
      if time > 0.52:
        return np.array([np.nan])
      return -state

    result = propagate_single_arc(derivative, np.array([1.0]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.1))

    assert not result['success']
    assert isinstance(result['error'], InvalidStateError)
    assert np.isclose(result['time_reached'], 0.5)
    assert len(result['time']) == 6
    assert np.all(np.isfinite(result['state']))

  def test_invalid_state_error_stops_arc(self):
    """Test that an InvalidStateError from the model is reported, not raised."""
    def derivative(time, state):
      if time > 0.25:
        raise InvalidStateError("Model failure", time=time, body_name='Probe')
      return -state

    result = propagate_single_arc(derivative, np.array([1.0]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.1))

    assert not result['success']
    assert 'Probe' in result['message']
    assert result['error'].body_name == 'Probe'
    assert result['time_reached'] < 0.3

  def test_adaptive_invalid_state_error_stops_arc(self, leo_initial_state):
    """Test that an adaptive solver reports an InvalidStateError from the model."""
    def derivative(time, state):
      if time > 1000.0:
        raise InvalidStateError("Model failure", time=time)
      return two_body_derivative(time, state)

    result = propagate_single_arc(derivative, leo_initial_state, Arc(0.0, 3000.0), IntegratorSettings('RK45'))

    assert not result['success']
    assert result['time_reached'] <= 1000.0
    assert result['time'][-1] == result['time_reached']

  def test_adaptive_output_grid_reports_last_accepted_step(self, leo_initial_state):
    """Test that a failed resampled arc reports the last accepted solver time, not the last output time."""
    def derivative(time, state):
      if time > 1000.0:
        raise InvalidStateError("Model failure", time=time)
      return two_body_derivative(time, state)

    settings = IntegratorSettings('RK45', output_step=2000.0)
    result   = propagate_single_arc(derivative, leo_initial_state, Arc(0.0, 3000.0), settings)

    assert not result['success']
    assert list(result['time']) == [0.0]
    assert 0.0 < result['time_reached'] <= 1000.0
    assert f"t = {result['time_reached']:.6f} s" in result['message']

  def test_non_finite_step_names_body(self):
    """Test that a non-finite step is attributed to the body owning the offending entry."""
    class TwoBlockModel:
      def compute_state_derivative(self, time, state):
        return np.array([-state[0], np.inf if time > 0.25 else 0.0])

      def first_non_finite_body(self, vector):
        return ['Alpha', 'Beta'][int(np.flatnonzero(~np.isfinite(vector))[0])]

    result = propagate_single_arc(TwoBlockModel(), np.array([1.0, 1.0]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.1))

    assert not result['success']
    assert result['error'].body_name == 'Beta'
    assert "'Beta'" in result['message']

  def test_non_finite_initial_state(self):
    """Test that a non-finite initial state fails without samples."""
    result = propagate_single_arc(exponential_decay, np.array([np.inf]), Arc(0.0, 1.0), IntegratorSettings('RK4', step_size=0.1))

    assert not result['success']
    assert len(result['time']) == 0
    assert result['state_f'] is None
