"""
Trajectory Module Tests
=======================

Tests for the interpolators, single-arc and multi-arc trajectories, and the
tabulated ephemeris.

Usage:
------
  python -m pytest arc_propagator/validation/test_trajectory.py -v
"""
import pytest
import numpy as np

from arc_propagator.model.ephemeris           import TabulatedEphemeris
from arc_propagator.model.errors              import OutOfRangeError
from arc_propagator.propagation.interpolation import (
  CubicSplineInterpolator,
  LagrangeInterpolator,
  LinearInterpolator,
  create_interpolator,
)
from arc_propagator.propagation.trajectory    import MultiArcTrajectory, SingleArcTrajectory


def constant_arc(start_time, end_time, value, num_samples=11):
  times  = np.linspace(start_time, end_time, num_samples)
  states = np.full((6, num_samples), float(value))
  return times, states


class TestInterpolators:
  """Tests for Linear, Lagrange, and cubic spline interpolation."""

  @pytest.fixture
  def samples(self):
    times  = np.linspace(0.0, 90.0, 10)
    states = np.vstack([np.sin(times / 30.0), (times / 30.0)**5])
    return times, states

  @pytest.mark.parametrize("interpolator", [LinearInterpolator(), LagrangeInterpolator(), CubicSplineInterpolator()])
  def test_sample_time_returns_sample(self, samples, interpolator):
    """Test that a query at a sample time returns the stored sample exactly."""
    times, states = samples
    assert np.array_equal(interpolator.interpolate(times, states, times[4]), states[:, 4])

  def test_linear_midpoint(self, samples):
    """Test that linear interpolation at a midpoint is the sample average."""
    times, states = samples
    state = LinearInterpolator().interpolate(times, states, 15.0)
    assert np.allclose(state, 0.5 * (states[:, 1] + states[:, 2]))

  def test_lagrange_exact_for_polynomials(self, samples):
    """Test that 8-point Lagrange interpolation reproduces a degree-5 polynomial."""
    times, states = samples
    state = LagrangeInterpolator(order=8).interpolate(times, states, 43.0)
    assert np.isclose(state[1], (43.0 / 30.0)**5, rtol=1e-12)

  def test_lagrange_near_range_end(self, samples):
    """Test that the window shifts inward near the ends of the samples."""
    times, states = samples
    state = LagrangeInterpolator(order=8).interpolate(times, states, 87.0)
    assert np.isclose(state[1], (87.0 / 30.0)**5, rtol=1e-12)

  def test_cubic_spline_accuracy(self, samples):
    """Test that the local cubic spline follows a smooth function closely."""
    times, states = samples
    state = CubicSplineInterpolator().interpolate(times, states, 43.0)
    assert np.isclose(state[0], np.sin(43.0 / 30.0), atol=1e-3)

  def test_create_interpolator(self):
    """Test interpolator creation by name."""
    assert isinstance(create_interpolator('Lagrange'), LagrangeInterpolator)
    assert isinstance(create_interpolator('cubic'),    CubicSplineInterpolator)
    assert isinstance(create_interpolator('linear'),   LinearInterpolator)

  def test_create_unknown_interpolator_raises(self):
    """Test that an unknown interpolator name is rejected."""
    with pytest.raises(ValueError):
      create_interpolator('hermite')


class TestSingleArcTrajectory:
  """Tests for SingleArcTrajectory."""

  def test_rejects_non_increasing_times(self):
    """Test that sample times must be strictly increasing."""
    with pytest.raises(ValueError):
      SingleArcTrajectory(np.array([0.0, 1.0, 1.0]), np.zeros((6, 3)), LinearInterpolator())

  def test_rejects_mismatched_shapes(self):
    """Test that the state columns must match the sample times."""
    with pytest.raises(ValueError):
      SingleArcTrajectory(np.array([0.0, 1.0]), np.zeros((6, 3)), LinearInterpolator())

  def test_outside_arc_raises(self):
    """Test that a query outside the arc raises OutOfRangeError."""
    trajectory = SingleArcTrajectory(*constant_arc(0.0, 10.0, 1.0), LinearInterpolator())

    with pytest.raises(OutOfRangeError) as exc_info:
      trajectory.state_at(10.5)
    assert exc_info.value.time == 10.5

  def test_samples_read_only(self):
    """Test that registered samples cannot be modified."""
    trajectory = SingleArcTrajectory(*constant_arc(0.0, 10.0, 1.0), LinearInterpolator())

    with pytest.raises(ValueError):
      trajectory.states[0, 0] = 5.0


class TestMultiArcTrajectory:
  """Tests for MultiArcTrajectory arc selection."""

  @pytest.fixture
  def trajectory(self):
    """Arcs [0, 10] (zeros) and [5, 15] (ones), registered in that order."""
    trajectory = MultiArcTrajectory('Moon', 'Earth', LinearInterpolator())
    trajectory.register_arc(*constant_arc(0.0, 10.0, 0.0))
    trajectory.register_arc(*constant_arc(5.0, 15.0, 1.0))
    return trajectory

  def test_overlap_uses_last_registered_arc(self, trajectory):
    """Test that the later-registered arc provides the state in the overlap."""
    assert np.allclose(trajectory.state_at(7.3), 1.0)
    assert np.all(trajectory.state_at(5.0) == 1.0)
    assert np.all(trajectory.state_at(10.0) == 1.0)

  def test_overlap_independent_of_query_order(self, trajectory):
    """Test that earlier queries do not change which arc is selected."""
    trajectory.state_at(2.0)
    trajectory.state_at(14.0)
    assert np.allclose(trajectory.state_at(7.3), 1.0)

  def test_non_overlapped_part_of_earlier_arc(self, trajectory):
    """Test that the earlier arc provides states outside the overlap."""
    assert np.all(trajectory.state_at(4.9) == 0.0)

  def test_explicit_arc_index(self, trajectory):
    """Test that an explicit arc index selects that arc in the overlap."""
    assert np.all(trajectory.state_at(7.3, arc_index=0) == 0.0)
    assert np.allclose(trajectory.state_at(7.3, arc_index=-1), 1.0)

  def test_explicit_arc_index_outside_arc_raises(self, trajectory):
    """Test that a time outside the selected arc raises OutOfRangeError."""
    with pytest.raises(OutOfRangeError):
      trajectory.state_at(12.0, arc_index=0)
    with pytest.raises(OutOfRangeError):
      trajectory.state_at(1.0, arc_index=5)

  def test_outside_all_arcs_raises(self, trajectory):
    """Test that no extrapolation happens beyond the covered times."""
    with pytest.raises(OutOfRangeError):
      trajectory.state_at(-0.1)
    with pytest.raises(OutOfRangeError):
      trajectory.state_at(15.1)

  def test_gap_between_arcs_raises(self):
    """Test that a gap between arcs is not interpolated across."""
    trajectory = MultiArcTrajectory('Moon', 'Earth', LinearInterpolator())
    trajectory.register_arc(*constant_arc(0.0, 10.0, 0.0))
    trajectory.register_arc(*constant_arc(20.0, 30.0, 1.0))

    with pytest.raises(OutOfRangeError):
      trajectory.state_at(15.0)
    assert trajectory.time_bounds == (0.0, 30.0)

  def test_empty_trajectory_raises(self):
    """Test that an empty trajectory covers no time."""
    trajectory = MultiArcTrajectory('Moon')

    with pytest.raises(OutOfRangeError):
      trajectory.state_at(0.0)
    with pytest.raises(OutOfRangeError):
      trajectory.time_bounds

  def test_finalized_trajectory_rejects_arcs(self, trajectory):
    """Test that a finalized trajectory cannot take more arcs."""
    trajectory.finalize()

    assert trajectory.is_complete
    with pytest.raises(RuntimeError):
      trajectory.register_arc(*constant_arc(20.0, 30.0, 2.0))

  def test_arc_intervals_and_states(self, trajectory):
    """Test arc intervals and batch state queries."""
    intervals = trajectory.arc_intervals
    states    = trajectory.get_states(np.array([1.0, 7.0, 14.0]))

    assert [(arc.start_time, arc.end_time) for arc in intervals] == [(0.0, 10.0), (5.0, 15.0)]
    assert states.shape == (6, 3)
    assert np.array_equal(states[0], [0.0, 1.0, 1.0])

  def test_default_interpolator_is_lagrange(self):
    """Test the default interpolator of a trajectory."""
    assert isinstance(MultiArcTrajectory('Moon').interpolator, LagrangeInterpolator)


class TestTabulatedEphemeris:
  """Tests for TabulatedEphemeris."""

  def test_state_at_interpolates(self):
    """Test interpolation of a linear motion."""
    times  = np.linspace(0.0, 100.0, 11)
    states = np.zeros((6, 11))
    states[0, :] = 2.0 * times
    states[3, :] = 2.0

    ephemeris = TabulatedEphemeris(times, states)
    assert np.allclose(ephemeris.state_at(55.0), [110.0, 0.0, 0.0, 2.0, 0.0, 0.0])

  def test_outside_table_raises(self):
    """Test that the tabulated ephemeris never extrapolates."""
    ephemeris = TabulatedEphemeris(np.array([0.0, 1.0]), np.zeros((6, 2)))

    with pytest.raises(OutOfRangeError):
      ephemeris.state_at(2.0)
