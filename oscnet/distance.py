from __future__ import annotations

from enum import Enum

import numpy as np

from oscnet.errors import InvalidParameter, ShapeMismatch, UnderdeterminedSystem
from oscnet.model import as_matrix, as_vector


class GroundMode(str, Enum):
    UNIFORM = 'uniform'
    INDIVIDUAL = 'individual'

    @classmethod
    def parse(cls, name) -> GroundMode:
        if isinstance(name, GroundMode):
            return name
        try:
            return cls(str(name).strip().lower())
        except ValueError as e:
            raise InvalidParameter(f"Unknown ground mode '{name}'. Use: {[m.value for m in cls]}") from e


def estimate(
    stiffness,
    equilibrium,
    ground_mode: GroundMode | str = GroundMode.INDIVIDUAL,
    *,
    load=None,
    tol: float = 1e-9,
) -> np.ndarray:
    """
    Rest lengths L (stiffness layout) that make `equilibrium` a static state.

    Unknowns, all lengths:
      s   ground offsets, L[i, i] = x_i - s_i
          (uniform: one shared s for every ground spring; individual: one per spring)
      d   coupling corrections, L[i, j] = (x_j - x_i) + d_ij for i < j
    Force balance per oscillator, with load f_ext:
      -K[i,i] s_i - sum_{j>i} K[i,j] d_ij + sum_{j<i} K[j,i] d_ji + f_ext[i] = 0
    solved by minimum-norm least squares. Without load every spring is
    relaxed at the equilibrium.
    """
    mode = GroundMode.parse(ground_mode)

    x = np.asarray(equilibrium, dtype=float)
    if x.ndim != 1 or x.size == 0:
        raise ShapeMismatch(f'equilibrium must be a non-empty 1-D vector, got shape {x.shape}.')
    k = np.asarray(stiffness, dtype=float)
    if k.ndim != 2 or k.shape[0] != k.shape[1]:
        raise ShapeMismatch(f'stiffness must be square, got shape {k.shape}.')
    n = k.shape[0]
    if x.size == 2 * n:
        x = x[:n]
    if x.size != n:
        raise ShapeMismatch(f'equilibrium must have {n} or {2 * n} entries, got {x.size}.')
    k = as_matrix('stiffness', k, n)
    if np.any(np.diag(k) < 0.0):
        raise InvalidParameter('stiffness diagonal must be >= 0.')
    if not np.all(np.isfinite(x)):
        raise InvalidParameter('equilibrium contains non-finite entries.')

    f_ext = np.zeros(n, dtype=float) if load is None else as_vector('load', load, n)

    k_diag = np.diag(k)
    ground = np.flatnonzero(k_diag > 0.0)
    iu, ju = np.nonzero(np.triu(k, 1))
    k_edge = k[iu, ju]

    cols: list[np.ndarray] = []
    if mode is GroundMode.INDIVIDUAL:
        for g in ground:
            col = np.zeros(n, dtype=float)
            col[g] = -k_diag[g]
            cols.append(col)
    elif ground.size:
        col = np.zeros(n, dtype=float)
        col[ground] = -k_diag[ground]
        cols.append(col)
    n_ground_cols = len(cols)

    for e in range(iu.size):
        col = np.zeros(n, dtype=float)
        col[iu[e]] = -k_edge[e]
        col[ju[e]] = k_edge[e]
        cols.append(col)

    if cols:
        m = np.column_stack(cols)
        u = np.linalg.lstsq(m, -f_ext, rcond=None)[0]
        residual = m @ u + f_ext
    else:
        u = np.zeros(0, dtype=float)
        residual = f_ext

    res_norm = float(np.linalg.norm(residual))
    if res_norm > tol * max(1.0, float(np.linalg.norm(f_ext))):
        worst = int(np.argmax(np.abs(residual)))
        raise UnderdeterminedSystem(
            f'Force balance cannot be met in {mode.value} mode: residual {res_norm:.3e}, '
            f'largest at oscillator {worst + 1}.'
        )

    s = u[:n_ground_cols]
    d = u[n_ground_cols:]

    rest = np.zeros((n, n), dtype=float)
    if mode is GroundMode.INDIVIDUAL:
        rest[ground, ground] = x[ground] - s
    elif ground.size:
        rest[ground, ground] = x[ground] - s[0]

    coupling = (x[ju] - x[iu]) + d
    rest[iu, ju] = coupling
    rest[ju, iu] = coupling
    return rest
