"""Closed-form trajectories via eigen-decomposition of the system matrix."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import scipy.linalg

from oscnet.errors import NonDiagonalizable, NumericalInstability, ShapeMismatch


DEFAULT_IMAG_TOL = 1e-8
DEFAULT_COND_LIMIT = 1e6


@dataclass(frozen=True, eq=False)
class TrajectoryFn:
    """
    z(t) = offset + sum_k c_k v_k exp(lambda_k t)

    Complex eigenpairs come in conjugate pairs, so the sum is real up to
    rounding; the residual imaginary part is checked against imag_tol
    (relative to max(1, |z|)) on every evaluation.
    """

    eigenvalues: np.ndarray  # shape (2N,), complex
    modes: np.ndarray  # shape (2N, 2N), complex, columns are eigenvectors
    coefficients: np.ndarray  # shape (2N,), complex
    offset: np.ndarray  # shape (2N,)
    imag_tol: float = DEFAULT_IMAG_TOL

    def __call__(self, t):
        scalar = np.ndim(t) == 0
        t_arr = np.atleast_1d(np.asarray(t, dtype=float))

        growth = np.exp(np.outer(t_arr, self.eigenvalues)) * self.coefficients[None, :]
        z = growth @ self.modes.T

        scale = max(1.0, float(np.max(np.abs(z.real)))) if z.size else 1.0
        residual = float(np.max(np.abs(z.imag))) if z.size else 0.0
        if not np.isfinite(residual) or residual > self.imag_tol * scale:
            raise NumericalInstability(
                f'Imaginary residual {residual:.3e} exceeds tolerance '
                f'{self.imag_tol:.1e} (scale {scale:.3e}).'
            )

        out = z.real + self.offset[None, :]
        return out[0] if scalar else out


def solve(
    a_matrix: np.ndarray,
    x0: np.ndarray,
    *,
    offset: np.ndarray | None = None,
    imag_tol: float = DEFAULT_IMAG_TOL,
    cond_limit: float = DEFAULT_COND_LIMIT,
) -> TrajectoryFn:
    """
    Diagonalize A and express x0 - offset in the eigenbasis (V c = x0 - offset).

    Raises NonDiagonalizable when the eigenvector matrix is (numerically)
    singular, i.e. A has a repeated eigenvalue with a deficient eigenspace.
    """
    a = np.asarray(a_matrix, dtype=float)
    if a.ndim != 2 or a.shape[0] != a.shape[1]:
        raise ShapeMismatch(f'System matrix must be square, got shape {a.shape}.')
    dim = a.shape[0]

    z0 = np.asarray(x0, dtype=float)
    if z0.shape != (dim,):
        raise ShapeMismatch(f'Initial state must have shape {(dim,)}, got {z0.shape}.')

    if offset is None:
        z_off = np.zeros(dim, dtype=float)
    else:
        z_off = np.asarray(offset, dtype=float)
        if z_off.shape != (dim,):
            raise ShapeMismatch(f'offset must have shape {(dim,)}, got {z_off.shape}.')

    eigvals, modes = scipy.linalg.eig(a)
    if not np.all(np.isfinite(eigvals)):
        raise NumericalInstability('Eigen-decomposition returned non-finite eigenvalues.')

    cond = float(np.linalg.cond(modes))
    if not np.isfinite(cond) or cond > cond_limit:
        raise NonDiagonalizable(
            f'Eigenvector matrix is ill-conditioned (cond={cond:.3e} > {cond_limit:.1e}).'
        )

    coeffs = scipy.linalg.solve(modes, (z0 - z_off).astype(complex))

    return TrajectoryFn(
        eigenvalues=eigvals,
        modes=modes,
        coefficients=coeffs,
        offset=z_off.copy(),
        imag_tol=float(imag_tol),
    )
