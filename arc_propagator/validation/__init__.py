"""
Validation Package
==================

Test suite for the multi-arc propagator.

Modules:
--------
- test_dynamics      : Unit tests for acceleration models, accumulators, and the state derivative
- test_attitude      : Tests for quaternion kinematics and rigid-body rotation
- test_integrators   : Tests for integrators and the single-arc driver
- test_trajectory    : Tests for interpolators and multi-arc trajectories
- test_multi_arc     : Integration tests for the multi-arc orchestrator
- test_configuration : Tests for scenario loading and command-line parsing
- test_regression    : End-to-end runs of the default scenario

Usage:
------
Run all tests:
  python -m pytest arc_propagator/validation/ -v

Run a specific test module:
  python -m pytest arc_propagator/validation/test_multi_arc.py -v

Run a specific test class:
  python -m pytest arc_propagator/validation/test_multi_arc.py::TestMultiArcAgainstKepler -v

Run with coverage:
  python -m pytest arc_propagator/validation/ --cov=arc_propagator --cov-report=html
"""
