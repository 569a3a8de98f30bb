"""
Propagation Errors
==================

Exception taxonomy shared by the dynamics model, the integration drivers, and
the trajectory assembly.

Classes:
--------
  PropagationError
  ├── InvalidStateError          : non-finite or physically inconsistent intermediate (fatal for the arc)
  ├── ConfigurationMismatchError : inconsistent run inputs, raised before any integration
  └── OutOfRangeError            : trajectory query outside all completed arcs (recoverable)
"""
from typing import Optional


class PropagationError(Exception):
  """
  Base class for all propagation errors.
  """


class InvalidStateError(PropagationError):
  """
  A state, derivative, or intermediate quantity cannot be used.

  Carries the offending time and body name when known so that the failure can
  be reported upward without losing context.
  """

  def __init__(
    self,
    message   : str,
    time      : Optional[float] = None,
    body_name : Optional[str]   = None,
  ):
    self.message   = message
    self.time      = time
    self.body_name = body_name
    super().__init__(self._format())

  def _format(
    self,
  ) -> str:
    context = []
    if self.body_name is not None:
      context.append(f"body '{self.body_name}'")
    if self.time is not None:
      context.append(f"time {self.time:.6f} s")
    if context:
      return f"{self.message} ({', '.join(context)})"
    return self.message

  def with_context(
    self,
    time      : Optional[float] = None,
    body_name : Optional[str]   = None,
  ) -> 'InvalidStateError':
    """
    Fill in missing time/body context and return self for re-raising.
    """
    if self.time is None and time is not None:
      self.time = time
    if self.body_name is None and body_name is not None:
      self.body_name = body_name
    self.args = (self._format(),)
    return self


class ConfigurationMismatchError(PropagationError, ValueError):
  """
  Run inputs are inconsistent (arc count vs. settings count, degenerate arc,
  unknown body, ...). Always raised before integration starts.
  """


class OutOfRangeError(PropagationError, ValueError):
  """
  Query time lies outside the interval covered by a trajectory.
  """

  def __init__(
    self,
    message : str,
    time    : Optional[float] = None,
  ):
    self.time = time
    super().__init__(message)
