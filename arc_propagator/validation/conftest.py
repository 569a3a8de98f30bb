"""
Pytest Configuration and Fixtures
=================================

Shared fixtures for all validation tests. Units are km, km/s, and s.
"""
import pytest
import numpy as np

from pathlib import Path

from arc_propagator.model.acceleration_settings import PointMassGravitySettings
from arc_propagator.model.body                  import Body, SystemOfBodies
from arc_propagator.model.ephemeris             import ConstantEphemeris
from arc_propagator.propagation.arc             import Arc
from arc_propagator.propagation.integrators     import IntegratorSettings
from arc_propagator.propagation.multi_arc       import PropagatorSettings


GP_EARTH = 398600.4418  # [km³/s²]


@pytest.fixture(scope="session")
def project_root():
  """Return the project root directory."""
  return Path(__file__).parent.parent.parent


@pytest.fixture
def earth_moon_bodies():
  """Earth fixed at the origin and a massless Moon."""
  bodies = SystemOfBodies('SSB')
  bodies.add_body(Body('Earth', gravitational_parameter=GP_EARTH, ephemeris=ConstantEphemeris(np.zeros(6))))
  bodies.add_body(Body('Moon',  gravitational_parameter=0.0))
  return bodies


@pytest.fixture
def moon_initial_state():
  """Near-circular lunar orbit about the Earth."""
  return np.array([
    384400.0,    # x [km]
    0.0,         # y [km]
    0.0,         # z [km]
    0.0,         # vx [km/s]
    1.0182798,   # vy [km/s]
    0.0,         # vz [km/s]
  ])


@pytest.fixture
def leo_initial_state():
  """Inclined LEO state for testing."""
  return np.array([
    7000.0,      # x [km]
    0.0,         # y [km]
    0.0,         # z [km]
    0.0,         # vx [km/s]
    6.5,         # vy [km/s]
    3.5,         # vz [km/s]
  ])


@pytest.fixture
def moon_point_mass_settings():
  """Moon about the Earth under point mass gravity only."""
  return PropagatorSettings(
    bodies_to_propagate   = ['Moon'],
    central_bodies        = ['Earth'],
    acceleration_settings = {'Moon': {'Earth': [PointMassGravitySettings()]}},
  )


@pytest.fixture
def rk4_settings():
  """Fixed-step RK4 with a 120 s step."""
  return IntegratorSettings(method='RK4', step_size=120.0)


@pytest.fixture
def overlapping_arcs():
  """Three arcs with 2000 s overlaps."""
  return [
    Arc(0.0,     20000.0),
    Arc(18000.0, 40000.0),
    Arc(38000.0, 60000.0),
  ]
