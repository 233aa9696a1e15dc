"""
Weighted least-squares solve for the assembled smoothing system.

The system is overdetermined: every vertex contributes three Laplacian rows
plus its own constraint rows. We minimise sum_i w_i * (A_i x - b_i)^2 through
the normal equations (A^T W A) x = A^T W b, which are symmetric and sparse.
"""

from dataclasses import dataclass

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import splu

from .errors import SolverError

# Pivots smaller than this fraction of their diagonal entry mark the normal
# equations as numerically rank deficient.
PIVOT_RTOL = 1e-12


@dataclass
class SparseSystem:
    """Triplets, per-row weights and right-hand side of one iteration."""
    rows: np.ndarray
    cols: np.ndarray
    vals: np.ndarray
    weights: np.ndarray
    rhs: np.ndarray
    n_cols: int

    @property
    def n_rows(self) -> int:
        return self.rhs.shape[0]

    def to_matrix(self) -> sparse.csr_matrix:
        A = sparse.coo_matrix((self.vals, (self.rows, self.cols)),
                              shape=(self.n_rows, self.n_cols))
        # Convert to CSR; duplicate triplets are summed
        A = A.tocsr()
        A.sum_duplicates()
        return A


def solve_weighted_least_squares(A, weights, rhs, pivot_rtol=PIVOT_RTOL):
    """
    Solve min_x sum_i weights[i] * (A[i] @ x - rhs[i])^2.

    Args:
        A: (R, C) sparse matrix
        weights: (R,) non-negative row weights
        rhs: (R,) right-hand side
        pivot_rtol: relative pivot size below which the system is rejected

    Returns:
        x: (C,) dense solution

    Raises:
        SolverError: if the normal equations are singular, numerically rank
            deficient, or the solution is not finite
    """
    weights = np.asarray(weights, dtype=np.float64).reshape(-1)
    rhs = np.asarray(rhs, dtype=np.float64).reshape(-1)
    if weights.shape[0] != A.shape[0] or rhs.shape[0] != A.shape[0]:
        raise ValueError("weights and rhs must have one entry per row of A")

    At = A.T.tocsr() @ sparse.diags(weights)
    AtA = (At @ A).tocsc()
    Atb = At @ rhs

    try:
        lu = splu(AtA, permc_spec="MMD_AT_PLUS_A", diag_pivot_thresh=0.0,
                  options=dict(SymmetricMode=True))
    except RuntimeError as exc:
        raise SolverError(f"weighted least squares failed: {exc}") from exc

    _check_pivots(AtA, lu, pivot_rtol)

    x = lu.solve(Atb)
    if not np.all(np.isfinite(x)):
        raise SolverError("weighted least squares produced a non-finite solution")
    return x


def _check_pivots(AtA, lu, rtol):
    """Reject factorizations whose pivots collapsed relative to the matrix diagonal."""
    # U[j, j] is the pivot of the column k with perm_c[k] == j
    diag = np.empty(AtA.shape[0])
    diag[lu.perm_c] = np.abs(AtA.diagonal())
    pivots = np.abs(lu.U.diagonal())

    deficient = np.flatnonzero(~(pivots > rtol * diag))
    if deficient.size:
        worst = float(np.min(pivots / np.where(diag > 0, diag, 1.0)))
        raise SolverError(
            f"weighted least squares is rank deficient: {deficient.size} of "
            f"{diag.size} unknowns are undetermined (relative pivot {worst:.3g})"
        )


def solve_system(system: SparseSystem) -> np.ndarray:
    return solve_weighted_least_squares(system.to_matrix(), system.weights, system.rhs)
