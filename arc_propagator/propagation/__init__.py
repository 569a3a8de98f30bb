"""
Propagation Package
===================

Single-arc integration, multi-arc orchestration, and trajectory assembly.
"""

from .arc           import Arc, build_overlapping_arcs
from .integrators   import IntegratorSettings
from .interpolation import LagrangeInterpolator, CubicSplineInterpolator, LinearInterpolator
from .multi_arc     import PropagatorSettings, propagate_multi_arc, run_multi_arc_propagation
from .propagator    import propagate_single_arc
from .trajectory    import MultiArcTrajectory, SingleArcTrajectory, TrajectoryEphemeris

__all__ = [
  'Arc', 'build_overlapping_arcs', 'IntegratorSettings',
  'LagrangeInterpolator', 'CubicSplineInterpolator', 'LinearInterpolator',
  'PropagatorSettings', 'propagate_multi_arc', 'run_multi_arc_propagation',
  'propagate_single_arc', 'MultiArcTrajectory', 'SingleArcTrajectory', 'TrajectoryEphemeris',
]
