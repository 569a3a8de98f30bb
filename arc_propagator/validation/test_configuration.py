"""
Configuration Tests
===================

Tests for scenario loading, building bodies, arcs and settings from scenario
data, and command-line parsing.

Usage:
------
  python -m pytest arc_propagator/validation/test_configuration.py -v
"""
import pytest
import yaml
import numpy as np

from arc_propagator.input.cli                   import parse_command_line_arguments
from arc_propagator.input.configuration         import (
  build_arcs,
  build_bodies,
  build_config,
  build_initial_states,
  build_integrator_settings,
  build_propagator_settings,
  load_scenario,
  resolve_scenario_filepath,
)
from arc_propagator.model.acceleration_settings import PointMassGravitySettings, ZonalGravitySettings
from arc_propagator.model.ephemeris             import KeplerEphemeris, TabulatedEphemeris
from arc_propagator.propagation.arc             import Arc
from arc_propagator.propagation.integrators     import IntegratorSettings
from arc_propagator.propagation.interpolation   import CubicSplineInterpolator, LagrangeInterpolator


class TestDefaultScenario:
  """Tests for the bundled Earth-Moon scenario."""

  def test_build_config(self, tmp_path):
    """Test the configuration built from the default scenario."""
    config = build_config(output_folderpath=tmp_path, enable_log=False)

    assert config.scenario_name == 'earth_moon_multi_arc'
    assert config.bodies.names() == ['Earth', 'Moon']
    assert len(config.arcs) == 4
    assert config.arcs[0] == Arc(0.0, 200000.0)
    assert config.arcs[1] == Arc(190000.0, 390000.0)
    assert config.arcs[-1] == Arc(570000.0, 600000.0)
    assert len(config.initial_states) == 4
    assert isinstance(config.integrator_settings, IntegratorSettings)
    assert isinstance(config.interpolator, LagrangeInterpolator)
    assert config.figures_folderpath.is_dir()
    assert config.log_filepath.parent.is_dir()

  def test_interpolator_override(self, tmp_path):
    """Test that the interpolator option overrides the scenario value."""
    config = build_config(output_folderpath=tmp_path, interpolator='cubic')
    assert isinstance(config.interpolator, CubicSplineInterpolator)

  def test_initial_states_on_reference_orbit(self, tmp_path):
    """Test that the first arc starts at the reference state."""
    config = build_config(output_folderpath=tmp_path)
    assert np.allclose(config.initial_states[0], [384400.0, 0.0, 0.0, 0.0, 1.0182798, 0.0])

  def test_missing_scenario_raises(self):
    """Test that an unknown scenario file is reported."""
    with pytest.raises(FileNotFoundError):
      resolve_scenario_filepath('does_not_exist.yaml')

  def test_incomplete_scenario_raises(self, tmp_path):
    """Test that a scenario without required sections is rejected."""
    scenario_filepath = tmp_path / 'incomplete.yaml'
    scenario_filepath.write_text(yaml.safe_dump({'bodies': {}, 'arcs': {}}))

    with pytest.raises(ValueError):
      load_scenario(scenario_filepath)


class TestScenarioBuilders:
  """Tests for the individual scenario section builders."""

  def test_build_arcs_from_intervals(self):
    """Test explicit arc intervals."""
    arcs = build_arcs({'intervals': [[0, 100], [90, 200]]})
    assert arcs == [Arc(0.0, 100.0), Arc(90.0, 200.0)]

  def test_build_arcs_from_span(self):
    """Test a span split into overlapping arcs."""
    arcs = build_arcs({'start_time': 0.0, 'end_time': 250.0, 'arc_duration': 100.0, 'arc_overlap': 10.0})
    assert arcs == [Arc(0.0, 100.0), Arc(90.0, 190.0), Arc(180.0, 250.0)]

  def test_build_bodies(self):
    """Test body properties, diagonal inertia tensors, and ephemerides."""
    bodies = build_bodies({
      'Earth' : {
        'gravitational_parameter' : 398600.4418,
        'ephemeris'               : {'type': 'constant', 'state': [0.0] * 6},
      },
      'Moon'  : {
        'ephemeris' : {'type': 'kepler', 'state': [384400.0, 0.0, 0.0, 0.0, 1.0, 0.0], 'gp': 398600.4418},
      },
      'Probe' : {'mass': 500.0, 'inertia_tensor': [100.0, 200.0, 300.0]},
    })

    assert bodies.names() == ['Earth', 'Moon', 'Probe']
    assert bodies['Earth'].gravitational_parameter == 398600.4418
    assert isinstance(bodies['Moon'].ephemeris, KeplerEphemeris)
    assert np.array_equal(bodies['Probe'].get_inertia_tensor(0.0), np.diag([100.0, 200.0, 300.0]))
    assert bodies['Probe'].get_mass(0.0) == 500.0

  def test_build_tabulated_ephemeris(self):
    """Test a tabulated ephemeris given as one state row per time."""
    bodies = build_bodies({
      'Sun' : {
        'ephemeris' : {
          'type'   : 'tabulated',
          'times'  : [0.0, 10.0, 20.0],
          'states' : [[0.0, 0.0, 0.0, 1.0, 0.0, 0.0], [10.0, 0.0, 0.0, 1.0, 0.0, 0.0], [20.0, 0.0, 0.0, 1.0, 0.0, 0.0]],
        },
      },
    })
    ephemeris = bodies['Sun'].ephemeris

    assert isinstance(ephemeris, TabulatedEphemeris)
    assert np.allclose(ephemeris.state_at(15.0), [15.0, 0.0, 0.0, 1.0, 0.0, 0.0])

  def test_unknown_body_property_raises(self):
    """Test that misspelled body properties are rejected."""
    with pytest.raises(ValueError):
      build_bodies({'Earth': {'gravitational_parameterr': 1.0}})

  def test_unknown_ephemeris_type_raises(self):
    """Test that an unknown ephemeris type is rejected."""
    with pytest.raises(ValueError):
      build_bodies({'Earth': {'ephemeris': {'type': 'spice'}}})

  def test_build_propagator_settings(self):
    """Test acceleration settings built from type names and parameters."""
    settings = build_propagator_settings({
      'bodies_to_propagate' : ['Probe'],
      'central_bodies'      : ['Earth'],
      'accelerations'       : {
        'Probe' : {
          'Earth' : [
            {'type': 'point_mass_gravity'},
            {'type': 'zonal_gravity', 'j2': 1.08263e-3, 'reference_radius': 6378.137},
          ],
        },
      },
    })
    earth_settings = settings.acceleration_settings['Probe']['Earth']

    assert settings.bodies_to_propagate == ('Probe',)
    assert isinstance(earth_settings[0], PointMassGravitySettings)
    assert isinstance(earth_settings[1], ZonalGravitySettings)
    assert earth_settings[1].j2 == 1.08263e-3
    assert settings.torque_settings is None

  def test_unknown_acceleration_type_raises(self):
    """Test that an unknown acceleration type name is rejected."""
    with pytest.raises(ValueError):
      build_propagator_settings({
        'bodies_to_propagate' : ['Probe'],
        'central_bodies'      : ['Earth'],
        'accelerations'       : {'Probe': {'Earth': [{'type': 'magnetic'}]}},
      })

  def test_invalid_acceleration_parameter_raises(self):
    """Test that an unknown acceleration parameter is rejected."""
    with pytest.raises(ValueError):
      build_propagator_settings({
        'bodies_to_propagate' : ['Probe'],
        'central_bodies'      : ['Earth'],
        'accelerations'       : {'Probe': {'Earth': [{'type': 'point_mass_gravity', 'j2': 1.0}]}},
      })

  def test_per_arc_integrator_settings(self):
    """Test that per-arc settings are anchored at each arc start."""
    arcs     = [Arc(0.0, 100.0), Arc(90.0, 200.0)]
    settings = build_integrator_settings({'method': 'RK4', 'step_size': 10.0, 'per_arc': True}, arcs)

    assert [item.initial_time for item in settings] == [0.0, 90.0]
    assert all(item.step_size == 10.0 for item in settings)

  def test_shared_integrator_settings(self):
    """Test that settings without per_arc are shared."""
    settings = build_integrator_settings({'method': 'DOP853', 'rtol': 1e-10, 'atol': 1e-10}, [Arc(0.0, 1.0)])

    assert isinstance(settings, IntegratorSettings)
    assert settings.initial_time is None

  def test_explicit_initial_states(self):
    """Test initial states listed per arc."""
    states = build_initial_states({'initial_states': [[1.0] * 6, [2.0] * 6]}, [Arc(0.0, 1.0), Arc(1.0, 2.0)])
    assert np.array_equal(states[1], np.full(6, 2.0))

  def test_missing_initial_states_raises(self):
    """Test that a scenario needs initial states."""
    with pytest.raises(ValueError):
      build_initial_states({}, [Arc(0.0, 1.0)])


class TestCommandLine:
  """Tests for parse_command_line_arguments."""

  def test_defaults(self):
    """Test default argument values."""
    args = parse_command_line_arguments([])

    assert args.scenario     is None
    assert args.interpolator is None
    assert not args.parallel
    assert not args.plot
    assert args.enable_log

  def test_options(self):
    """Test that options are parsed and the interpolator is case-insensitive."""
    args = parse_command_line_arguments(['--interpolator', 'CUBIC', '--parallel', '--no-log'])

    assert args.interpolator == 'cubic'
    assert args.parallel
    assert not args.enable_log

  def test_unknown_interpolator_exits(self):
    """Test that an unknown interpolator is rejected by the parser."""
    with pytest.raises(SystemExit):
      parse_command_line_arguments(['--interpolator', 'hermite'])
