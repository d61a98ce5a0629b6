from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.linalg

from oscnet.errors import ShapeMismatch


@dataclass(frozen=True)
class Resonance:
    frequency_hz: float  # damped oscillation frequency, 0 for real (overdamped) modes
    undamped_hz: float
    damping_ratio: float


def _pair_real_modes(values: list[float], shapes: list[np.ndarray]) -> list[tuple[float, float]]:
    """
    Pair real eigenvalues into modes by position-shape similarity.

    Both roots of one overdamped mode share the same position shape under
    proportional damping, so |cos| between the shapes is ~1 for a true pair.
    Pairs are taken in order of decreasing similarity over all remaining
    roots. Under strongly non-proportional damping the shapes of one mode
    differ and the pairing is a heuristic.
    """
    m = len(values)
    if m < 2:
        return []
    sim = np.abs(np.array(shapes, dtype=float) @ np.array(shapes, dtype=float).T)
    np.fill_diagonal(sim, -np.inf)

    pairs: list[tuple[float, float]] = []
    for _ in range(m // 2):
        i, j = np.unravel_index(int(np.argmax(sim)), sim.shape)
        pairs.append((values[i], values[j]))
        sim[[i, j], :] = -np.inf
        sim[:, [i, j]] = -np.inf
    return pairs


def resonances(a_matrix: np.ndarray, *, imag_tol: float = 1e-9) -> list[Resonance]:
    """
    One (frequency, damping ratio) entry per oscillator from the eigenvalues of A.

    Complex pair lambda = -zeta w +- i w sqrt(1 - zeta^2):
      undamped_hz = |lambda| / 2pi, frequency_hz = Im(lambda) / 2pi,
      damping_ratio = -Re(lambda) / |lambda|
    Real pair (l1, l2), overdamped or critically damped:
      frequency_hz = 0, undamped_hz = sqrt(l1 l2) / 2pi,
      damping_ratio = -(l1 + l2) / (2 sqrt(l1 l2))  (NaN for a rigid mode)

    Sorted by ascending undamped frequency.
    """
    a = np.asarray(a_matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1] or a.shape[0] % 2 != 0:
        raise ShapeMismatch(f'System matrix must be square with even size, got shape {a.shape}.')
    n = a.shape[0] // 2

    eigvals, modes = scipy.linalg.eig(a)

    out: list[Resonance] = []
    real_vals: list[float] = []
    real_shapes: list[np.ndarray] = []
    for k, lam in enumerate(eigvals):
        mag = float(abs(lam))
        if abs(lam.imag) <= imag_tol * max(1.0, mag):
            shape = np.real(modes[:n, k])
            norm = float(np.linalg.norm(shape))
            real_vals.append(float(lam.real))
            real_shapes.append(shape / norm if norm > 0.0 else shape)
            continue
        if lam.imag < 0.0:
            continue
        out.append(
            Resonance(
                frequency_hz=float(lam.imag) / (2.0 * np.pi),
                undamped_hz=mag / (2.0 * np.pi),
                damping_ratio=-float(lam.real) / mag,
            )
        )

    for l1, l2 in _pair_real_modes(real_vals, real_shapes):
        w_n = float(np.sqrt(abs(l1 * l2)))
        zeta = -(l1 + l2) / (2.0 * w_n) if w_n > 0.0 else float('nan')
        out.append(Resonance(frequency_hz=0.0, undamped_hz=w_n / (2.0 * np.pi), damping_ratio=zeta))

    out.sort(key=lambda r: r.undamped_hz)
    return out
