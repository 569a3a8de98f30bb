"""
Arc Propagator
==============

Multi-arc propagation of body states (translational and rotational) under
combined acceleration and torque models.
"""

__version__ = '0.1.0'
