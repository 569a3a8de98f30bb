"""
Two-Body Analytic Motion
========================

Kepler root solver and closed-form two-body propagation of a Cartesian state.
Used as an analytic ephemeris for non-propagated bodies and as the reference
solution when validating numerical propagation.

Source:
-------
  Vallado, D. A. (2013). Fundamentals of Astrodynamics and Applications (4th ed.).
  Schaub, H., & Junkins, J. L. Analytical Mechanics of Space Systems (4th ed.).
"""
import warnings
import numpy as np


class TwoBodyRootSolvers:
  """
  Root solvers for two-body orbital mechanics.
  """

  @staticmethod
  def kepler(
    ma       : float,
    ecc      : float,
    tol      : float = 1e-15,
    max_iter : int   = 50,
  ) -> float:
    """
    Solve Kepler's equation ma = ea - ecc*sin(ea) for eccentric anomaly ea.

    Input:
    ------
      ma : float
        Mean anomaly [rad]. Not wrapped, so the result is continuous in ma.
      ecc : float
        Eccentricity (0 <= ecc < 1).
      tol : float
        Convergence tolerance on the Newton correction [rad].
      max_iter : int
        Maximum iterations.

    Output:
    -------
      ea : float
        Eccentric anomaly [rad].
    """
    # Initial guess
    if ecc < 0.8:
      ea = ma
    else:
      ea = ma + ecc * np.sign(np.sin(ma))

    # Newton-Raphson iteration
    for _ in range(max_iter):
      func       = ea - ecc * np.sin(ea) - ma
      func_prime = 1.0 - ecc * np.cos(ea)
      delta_ea   = -func / func_prime
      ea         = ea + delta_ea
      if abs(delta_ea) <= tol * max(1.0, abs(ea)):
        return ea

    warnings.warn("Kepler's equation not converged", RuntimeWarning)
    return ea  # best estimate


def pv_to_period(
  pos_vec : np.ndarray,
  vel_vec : np.ndarray,
  gp      : float,
) -> float:
  """
  Orbital period from a Cartesian state; np.inf for non-elliptic orbits.
  """
  pos_mag = np.linalg.norm(pos_vec)
  sma_inv = 2.0 / pos_mag - np.dot(vel_vec, vel_vec) / gp
  if sma_inv <= 0.0:
    return np.inf
  return 2.0 * np.pi * np.sqrt(1.0 / (sma_inv**3 * gp))


def propagate_kepler_orbit(
  state_o    : np.ndarray,
  delta_time : float,
  gp         : float,
) -> np.ndarray:
  """
  Propagate a Cartesian state along an elliptic Keplerian orbit.

  Uses the Lagrange f and g functions written in terms of the change in
  eccentric anomaly, which stays well conditioned for near-circular orbits.

  Input:
  ------
    state_o : np.ndarray
      Initial state [pos, vel], any consistent length/time units.
    delta_time : float
      Time since the initial state (may be negative).
    gp : float
      Gravitational parameter in the same units.

  Output:
  -------
    state_f : np.ndarray
      Propagated state [pos, vel].

  Raises:
  -------
    ValueError
      If the orbit is not elliptic.
  """
  pos_vec_o = np.asarray(state_o[0:3], dtype=float)
  vel_vec_o = np.asarray(state_o[3:6], dtype=float)

  pos_mag_o = np.linalg.norm(pos_vec_o)
  sma_inv   = 2.0 / pos_mag_o - np.dot(vel_vec_o, vel_vec_o) / gp
  if sma_inv <= 0.0:
    raise ValueError("Kepler propagation requires an elliptic orbit (positive semi-major axis).")
  sma = 1.0 / sma_inv

  # Mean motion and initial anomalies
  mean_motion = np.sqrt(gp * sma_inv**3)
  sigma_o     = np.dot(pos_vec_o, vel_vec_o) / np.sqrt(gp)
  ecc_cos_ea  = 1.0 - pos_mag_o * sma_inv
  ecc_sin_ea  = sigma_o * np.sqrt(sma_inv)
  ecc         = np.hypot(ecc_cos_ea, ecc_sin_ea)
  ea_o        = np.arctan2(ecc_sin_ea, ecc_cos_ea)
  ma_o        = ea_o - ecc_sin_ea

  # Solve for the final eccentric anomaly
  ea_f     = TwoBodyRootSolvers.kepler(ma_o + mean_motion * delta_time, ecc)
  delta_ea = ea_f - ea_o
  cos_dea  = np.cos(delta_ea)
  sin_dea  = np.sin(delta_ea)

  # Lagrange coefficients
  pos_mag_f = sma + (pos_mag_o - sma) * cos_dea + sigma_o * np.sqrt(sma) * sin_dea
  f_func    = 1.0 - sma / pos_mag_o * (1.0 - cos_dea)
  g_func    = delta_time + (sin_dea - delta_ea) / mean_motion
  f_dot     = -np.sqrt(gp * sma) / (pos_mag_f * pos_mag_o) * sin_dea
  g_dot     = 1.0 - sma / pos_mag_f * (1.0 - cos_dea)

  pos_vec_f = f_func * pos_vec_o + g_func * vel_vec_o
  vel_vec_f = f_dot  * pos_vec_o + g_dot  * vel_vec_o

  return np.concatenate([pos_vec_f, vel_vec_f])
