"""Per-aggregate orthonormalization of near-nullspace candidates."""

from __future__ import annotations

import numpy as np

from .linalg import dot, mynormsq


def fit_candidates(n_row, n_col, K1, K2, Ap, Ai, Ax, B, R, tol) -> None:
    """Build the tentative prolongator data and the coarse candidates.

    Given candidates B (one ``K1 x K2`` block per fine node) and an
    aggregation in column-compressed form, compute

    - ``Ax``: the BSR data of the transpose of the tentative prolongator,
      one ``K1 x K2`` block per (aggregate, member) pair, and
    - ``R``: the coarse candidates, one upper triangular ``K2 x K2`` block
      per aggregate,

    such that, on every aggregate with members, ``B_local = Q_local R_local``
    and ``Q_local^H Q_local`` is the identity on the kept columns.

    Parameters
    ----------
    n_row, n_col : int
        Number of fine nodes and of aggregates.
    K1, K2 : int
        Rows per fine node and number of candidates.
    Ap, Ai : ndarray
        Column pointer and row indices of the aggregation operator (CSC):
        aggregate j owns fine nodes ``Ai[Ap[j]:Ap[j+1]]``.
    Ax : ndarray
        Output, ``Ap[n_col] * K1 * K2`` entries, contiguous.
    B : ndarray
        Fine candidates, ``n_row * K1 * K2`` entries, row-major blocks.
    R : ndarray
        Output, ``n_col * K2 * K2`` entries, contiguous.
    tol : float
        Relative tolerance used to drop numerically dependent candidates.

    Notes
    -----
    Column ``bj`` of an aggregate is orthogonalized against columns
    ``bi < bj`` by modified Gram-Schmidt. If its norm after orthogonalization
    does not exceed ``tol`` times its norm before, the column is zeroed and
    ``R[bj, bj]`` is set to 0: the candidate adds nothing on that aggregate.

    Fine nodes not owned by any aggregate give zero rows in the prolongator;
    there ``B = Q R`` does not hold.
    """
    BS = K1 * K2
    nnz = int(Ap[n_col])

    R_blocks = np.reshape(R, (-1, K2, K2))
    R_blocks[:n_col] = 0

    Ax_blocks = np.reshape(Ax, (-1, BS))
    B_blocks = np.reshape(B, (-1, BS))
    Ax_blocks[:nnz] = B_blocks[np.asarray(Ai[:nnz])]

    for j in range(n_col):
        col_start = int(Ap[j])
        col_end = int(Ap[j + 1])

        cols = Ax_blocks[col_start:col_end].reshape(-1, K2)
        R_j = R_blocks[j]

        for bj in range(K2):
            norm_j = np.sqrt(mynormsq(cols[:, bj]).sum())
            threshold_j = tol * norm_j

            for bi in range(bj):
                dot_prod = dot(cols[:, bj], cols[:, bi])
                cols[:, bj] -= dot_prod * cols[:, bi]
                R_j[bi, bj] = dot_prod

            norm_j = np.sqrt(mynormsq(cols[:, bj]).sum())

            if norm_j > threshold_j:
                scale = 1.0 / norm_j
                R_j[bj, bj] = norm_j
            else:
                scale = 0.0
                R_j[bj, bj] = 0.0
            cols[:, bj] *= scale
