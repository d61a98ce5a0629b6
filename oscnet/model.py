from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from oscnet.errors import InvalidParameter, ShapeMismatch, UnderdeterminedSystem


SYMMETRY_RTOL = 1e-12
EQUILIBRIUM_RTOL = 1e-9


def state_names(n: int) -> list[str]:
    return [f'x.{i + 1}' for i in range(n)] + [f'v.{i + 1}' for i in range(n)]


def _frozen(a: np.ndarray) -> np.ndarray:
    a = np.array(a, dtype=float, copy=True)
    a.setflags(write=False)
    return a


def as_matrix(name: str, m, n: int) -> np.ndarray:
    a = np.asarray(m, dtype=float)
    if a.shape != (n, n):
        raise ShapeMismatch(f'{name} must have shape {(n, n)}, got {a.shape}.')
    if not np.all(np.isfinite(a)):
        raise InvalidParameter(f'{name} contains non-finite entries.')
    scale = max(1.0, float(np.max(np.abs(a)))) if a.size else 1.0
    if not np.allclose(a, a.T, rtol=0.0, atol=SYMMETRY_RTOL * scale):
        raise InvalidParameter(f'{name} must be symmetric.')
    return a


def as_vector(name: str, v, n: int) -> np.ndarray:
    a = np.asarray(v, dtype=float)
    if a.shape != (n,):
        raise ShapeMismatch(f'{name} must have shape {(n,)}, got {a.shape}.')
    if not np.all(np.isfinite(a)):
        raise InvalidParameter(f'{name} contains non-finite entries.')
    return a


def connection_laplacian(c: np.ndarray) -> np.ndarray:
    """
    Connection matrix -> equations-of-motion matrix.

    Diagonal entries are elements to ground, off-diagonal (i, j) the element
    between i and j:
      C_eff[i, i] = c[i, i] + sum_{j != i} c[i, j]
      C_eff[i, j] = -c[i, j]
    """
    off = c - np.diag(np.diag(c))
    return np.diag(np.diag(c) + off.sum(axis=1)) - off


def rest_length_forces(stiffness: np.ndarray, rest_lengths: np.ndarray) -> np.ndarray:
    """
    Constant nodal forces produced by spring rest lengths.

    Ground spring of i is relaxed at x_i = L[i, i]; for i < j the coupling
    spring is relaxed at x_j - x_i = L[i, j]:
      f[i] = K[i,i] L[i,i] + sum_{j<i} K[i,j] L[i,j] - sum_{j>i} K[i,j] L[i,j]
    """
    n = stiffness.shape[0]
    ones = np.ones((n, n), dtype=float)
    sign = np.tril(ones, -1) - np.triu(ones, 1)
    return np.diag(stiffness) * np.diag(rest_lengths) + np.sum(stiffness * rest_lengths * sign, axis=1)


@dataclass(frozen=True, eq=False)
class NetworkModel:
    masses: np.ndarray  # shape (N,)
    damping: np.ndarray  # shape (N, N), connection layout
    stiffness: np.ndarray  # shape (N, N), connection layout
    rest_lengths: np.ndarray  # shape (N, N)
    external_force: np.ndarray  # shape (N,), constant load
    a_matrix: np.ndarray  # shape (2N, 2N)
    b_vector: np.ndarray  # shape (2N,)

    def size(self) -> int:
        return int(self.masses.size)

    def system_matrix(self) -> np.ndarray:
        return self.a_matrix

    def forcing(self) -> np.ndarray:
        return self.b_vector

    def build_matrices(self) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Mass, effective damping and effective stiffness matrices (M, C, K)."""
        return (
            np.diag(self.masses),
            connection_laplacian(self.damping),
            connection_laplacian(self.stiffness),
        )

    def state_names(self) -> list[str]:
        return state_names(self.size())

    def initial_state(self, positions, velocities=None) -> np.ndarray:
        n = self.size()
        x = as_vector('positions', positions, n)
        v = np.zeros(n, dtype=float) if velocities is None else as_vector('velocities', velocities, n)
        return np.concatenate([x, v])

    def equilibrium(self) -> np.ndarray:
        """
        Static state z_eq with A z_eq + b = 0 (velocities zero).

        K_eff is singular for components without a ground spring; the
        least-squares solution is then one of the equilibria. A net load on
        such a component has no static state and raises
        UnderdeterminedSystem.
        """
        _, _, k_eff = self.build_matrices()
        f = rest_length_forces(self.stiffness, self.rest_lengths) + self.external_force
        x_eq = np.linalg.lstsq(k_eff, f, rcond=None)[0]

        residual = float(np.linalg.norm(k_eff @ x_eq - f))
        scale = max(1.0, float(np.linalg.norm(f)), float(np.linalg.norm(k_eff) * np.linalg.norm(x_eq)))
        if residual > EQUILIBRIUM_RTOL * scale:
            raise UnderdeterminedSystem(
                f'No static equilibrium: force balance residual {residual:.3e} '
                '(net load on a component without ground springs).'
            )
        return np.concatenate([x_eq, np.zeros(self.size(), dtype=float)])

    def update_oscillators(
        self,
        masses=None,
        damping=None,
        stiffness=None,
        rest_lengths=None,
        external_force=None,
    ) -> NetworkModel:
        """Return a new model with the given parameters replaced."""
        return build_network(
            self.masses if masses is None else masses,
            self.damping if damping is None else damping,
            self.stiffness if stiffness is None else stiffness,
            rest_lengths=self.rest_lengths if rest_lengths is None else rest_lengths,
            external_force=self.external_force if external_force is None else external_force,
        )


def build_network(
    masses,
    damping,
    stiffness,
    rest_lengths=None,
    external_force=None,
) -> NetworkModel:
    """
    Validate physical parameters and derive the first-order system:

      d/dt [x; v] = A [x; v] + b
      A = [[0, I], [-M^-1 K_eff, -M^-1 C_eff]]
      b = [0; M^-1 (f_rest + f_ext)]
    """
    m = np.asarray(masses, dtype=float)
    if m.ndim != 1 or m.size == 0:
        raise ShapeMismatch(f'masses must be a non-empty 1-D vector, got shape {m.shape}.')
    if not np.all(np.isfinite(m)) or np.any(m <= 0.0):
        raise InvalidParameter('All masses must be finite and > 0.')
    n = m.size

    c = as_matrix('damping', damping, n)
    k = as_matrix('stiffness', stiffness, n)
    if np.any(np.diag(c) < 0.0):
        raise InvalidParameter('damping diagonal must be >= 0.')
    if np.any(np.diag(k) < 0.0):
        raise InvalidParameter('stiffness diagonal must be >= 0.')

    if rest_lengths is None:
        rest = np.zeros((n, n), dtype=float)
    else:
        rest = as_matrix('rest_lengths', rest_lengths, n)

    if external_force is None:
        f_ext = np.zeros(n, dtype=float)
    else:
        f_ext = as_vector('external_force', external_force, n)

    inv_m = 1.0 / m
    a = np.zeros((2 * n, 2 * n), dtype=float)
    a[:n, n:] = np.eye(n)
    a[n:, :n] = -inv_m[:, None] * connection_laplacian(k)
    a[n:, n:] = -inv_m[:, None] * connection_laplacian(c)

    b = np.zeros(2 * n, dtype=float)
    b[n:] = inv_m * (rest_length_forces(k, rest) + f_ext)

    return NetworkModel(
        masses=_frozen(m),
        damping=_frozen(c),
        stiffness=_frozen(k),
        rest_lengths=_frozen(rest),
        external_force=_frozen(f_ext),
        a_matrix=_frozen(a),
        b_vector=_frozen(b),
    )
