from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np

from oscnet.errors import InvalidTimeVector, NumericalDivergence


DEFAULT_MAX_STEP_S = 1e-2
DEFAULT_STEP_FRACTION = 0.1
DEFAULT_DIVERGENCE_LIMIT = 1e12

Constraint = Callable[[float, np.ndarray], np.ndarray]


def _rhs(
    a: np.ndarray,
    z: np.ndarray,
    t: float,
    forcing: np.ndarray | None,
    constraint: Constraint | None,
) -> np.ndarray:
    if constraint is not None:
        z = constraint(t, z)
    dz = a @ z
    if forcing is not None:
        dz = dz + forcing
    return dz


def step(
    a_matrix: np.ndarray,
    state: np.ndarray,
    dt: float,
    *,
    t: float = 0.0,
    forcing: np.ndarray | None = None,
    constraint: Constraint | None = None,
) -> np.ndarray:
    """
    One classical RK4 step of dz/dt = A z + b.

    With a constraint, every stage is evaluated at the constrained state and
    the result is constrained at t + dt (pinned variables never drift).
    """
    k1 = _rhs(a_matrix, state, t, forcing, constraint)
    k2 = _rhs(a_matrix, state + 0.5 * dt * k1, t + 0.5 * dt, forcing, constraint)
    k3 = _rhs(a_matrix, state + 0.5 * dt * k2, t + 0.5 * dt, forcing, constraint)
    k4 = _rhs(a_matrix, state + dt * k3, t + dt, forcing, constraint)
    z_new = state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)
    if constraint is not None:
        z_new = constraint(t + dt, z_new)
    return z_new


def internal_step(
    times: np.ndarray,
    max_step: float = DEFAULT_MAX_STEP_S,
    step_fraction: float = DEFAULT_STEP_FRACTION,
) -> float:
    """
    Internal dt bounded by max_step and by a fraction of the smallest
    positive requested interval.
    """
    dts = np.diff(np.asarray(times, dtype=float))
    dts = dts[dts > 0.0]
    if dts.size == 0:
        return float(max_step)
    return float(min(max_step, step_fraction * float(np.min(dts))))


def _check_bounds(z: np.ndarray, t: float, limit: float) -> None:
    if not np.all(np.isfinite(z)):
        raise NumericalDivergence(f'State became non-finite at t={t:.6g}.')
    peak = float(np.max(np.abs(z))) if z.size else 0.0
    if peak > limit:
        raise NumericalDivergence(
            f'State magnitude {peak:.3e} exceeds divergence limit {limit:.1e} at t={t:.6g}.'
        )


def advance(
    a_matrix: np.ndarray,
    state: np.ndarray,
    times,
    *,
    dt: float | None = None,
    forcing: np.ndarray | None = None,
    constraint: Constraint | None = None,
    max_step: float = DEFAULT_MAX_STEP_S,
    step_fraction: float = DEFAULT_STEP_FRACTION,
    divergence_limit: float = DEFAULT_DIVERGENCE_LIMIT,
) -> np.ndarray:
    """
    Integrate from times[0] and sample exactly at every entry of times.

    Each requested interval h is split into ceil(h / dt) equal RK4 steps.
    Returns an array of shape (T, 2N); row 0 is the start state (with the
    constraint applied).
    """
    a = np.asarray(a_matrix, dtype=float)
    t = np.asarray(times, dtype=float)
    if t.ndim != 1 or t.size == 0:
        raise InvalidTimeVector('Integration needs a non-empty 1-D time vector.')
    if np.any(np.diff(t) < 0.0):
        raise InvalidTimeVector('Integration times must be non-decreasing.')

    if dt is None:
        dt = internal_step(t, max_step, step_fraction)
    if dt <= 0.0:
        raise ValueError(f'Internal step must be > 0, got {dt}.')

    z = np.array(state, dtype=float, copy=True)
    if constraint is not None:
        z = constraint(float(t[0]), z)
    _check_bounds(z, float(t[0]), divergence_limit)

    out = np.zeros((t.size, z.size), dtype=float)
    out[0] = z

    for k in range(t.size - 1):
        h = float(t[k + 1] - t[k])
        if h > 0.0:
            n_sub = max(1, int(math.ceil(h / dt - 1e-9)))
            h_sub = h / n_sub
            for i in range(n_sub):
                t_cur = float(t[k]) + i * h_sub
                z = step(a, z, h_sub, t=t_cur, forcing=forcing, constraint=constraint)
                _check_bounds(z, t_cur + h_sub, divergence_limit)
        out[k + 1] = z

    return out
