"""
Rotational Kinematics and Dynamics
==================================

Quaternion kinematics and Euler's rigid-body equation used by the rotational
block of the state derivative.

Conventions:
------------
  - Quaternion is scalar-first, q = [q0, q1, q2, q3], and rotates vectors from
    the body-fixed frame to the inertial frame.
  - Angular rate w = [wx, wy, wz] is expressed in the body-fixed frame.

Equations:
----------
  q_dot = 0.5 * Omega(w) * q
  w_dot = I^-1 * ( torque - w x (I w) - I_dot w )
"""
import numpy as np

from typing import Optional

from arc_propagator.model.errors import InvalidStateError


# Inertia tensors with a condition number above this are treated as singular
SINGULAR_CONDITION_NUMBER = 1.0 / np.finfo(float).eps


def quaternion_to_quaternion_rate_matrix(
  ang_vel_vec : np.ndarray,
) -> np.ndarray:
  """
  Matrix mapping the current quaternion to its time derivative.

  Input:
  ------
    ang_vel_vec : np.ndarray
      Body-fixed angular rate [rad/s].

  Output:
  -------
    rate_mat : np.ndarray
      0.5 * Omega(w), a 4x4 skew-symmetric matrix with zero diagonal.
  """
  wx, wy, wz = ang_vel_vec[0], ang_vel_vec[1], ang_vel_vec[2]
  omega_mat  = np.array([
    [0.0, -wx, -wy, -wz],
    [ wx, 0.0,  wz, -wy],
    [ wy, -wz, 0.0,  wx],
    [ wz,  wy, -wx, 0.0],
  ])
  return 0.5 * omega_mat


def quaternion_time_derivative(
  quat_vec    : np.ndarray,
  ang_vel_vec : np.ndarray,
) -> np.ndarray:
  """
  Quaternion time derivative q_dot = 0.5 * Omega(w) * q.
  """
  return quaternion_to_quaternion_rate_matrix(ang_vel_vec) @ quat_vec


def quaternion_to_rotation_matrix(
  quat_vec : np.ndarray,
) -> np.ndarray:
  """
  Rotation matrix (body-fixed to inertial) of a quaternion.

  The quaternion is normalized first; the integrated quaternion is allowed to
  drift slightly from unit norm.

  Input:
  ------
    quat_vec : np.ndarray
      Scalar-first quaternion [q0, q1, q2, q3].

  Output:
  -------
    rot_mat : np.ndarray
      3x3 rotation matrix.
  """
  quat_mag = np.linalg.norm(quat_vec)
  if not np.isfinite(quat_mag) or quat_mag == 0.0:
    raise InvalidStateError("Quaternion has zero or non-finite norm")
  q0, q1, q2, q3 = quat_vec / quat_mag

  return np.array([
    [1.0 - 2.0 * (q2*q2 + q3*q3),       2.0 * (q1*q2 - q0*q3),       2.0 * (q1*q3 + q0*q2)],
    [      2.0 * (q1*q2 + q0*q3), 1.0 - 2.0 * (q1*q1 + q3*q3),       2.0 * (q2*q3 - q0*q1)],
    [      2.0 * (q1*q3 - q0*q2),       2.0 * (q2*q3 + q0*q1), 1.0 - 2.0 * (q1*q1 + q2*q2)],
  ])


def check_inertia_tensor(
  inertia_mat : np.ndarray,
) -> None:
  """
  Raise InvalidStateError if the inertia tensor cannot be inverted.
  """
  if inertia_mat.shape != (3, 3) or not np.all(np.isfinite(inertia_mat)):
    raise InvalidStateError("Inertia tensor must be a finite 3x3 matrix")
  if np.linalg.cond(inertia_mat) > SINGULAR_CONDITION_NUMBER:
    raise InvalidStateError("Inertia tensor is singular")


def angular_acceleration(
  inertia_mat     : np.ndarray,
  torque_vec      : np.ndarray,
  ang_vel_vec     : np.ndarray,
  inertia_dot_mat : Optional[np.ndarray] = None,
) -> np.ndarray:
  """
  Euler's rigid-body equation with a possibly time-varying inertia tensor.

  Input:
  ------
    inertia_mat : np.ndarray
      Inertia tensor in body-fixed axes [kg m²].
    torque_vec : np.ndarray
      Total torque in body-fixed axes [N m].
    ang_vel_vec : np.ndarray
      Body-fixed angular rate [rad/s].
    inertia_dot_mat : np.ndarray, optional
      Inertia tensor time derivative [kg m²/s]; zero when None.

  Output:
  -------
    ang_acc_vec : np.ndarray
      Angular acceleration in body-fixed axes [rad/s²].

  Raises:
  -------
    InvalidStateError
      If the inertia tensor is singular or non-finite.
  """
  check_inertia_tensor(inertia_mat)

  rhs_vec = torque_vec - np.cross(ang_vel_vec, inertia_mat @ ang_vel_vec)
  if inertia_dot_mat is not None:
    rhs_vec = rhs_vec - inertia_dot_mat @ ang_vel_vec

  return np.linalg.solve(inertia_mat, rhs_vec)


def angular_momentum(
  inertia_mat : np.ndarray,
  quat_vec    : np.ndarray,
  ang_vel_vec : np.ndarray,
) -> np.ndarray:
  """
  Angular momentum expressed in the inertial frame, R(q) * I * w.
  """
  return quaternion_to_rotation_matrix(quat_vec) @ (inertia_mat @ ang_vel_vec)
