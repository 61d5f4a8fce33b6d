"""Tentative prolongator construction for SA setup."""

from __future__ import annotations

import numpy as np
from scipy.sparse import bsr_array, issparse

from sasetup import amg_core

from .types import Tentative


def fit_candidates(AggOp, B, tol: float = 1e-10) -> tuple[bsr_array, np.ndarray]:
    """Fit near-nullspace candidates to form the tentative prolongator.

    Parameters
    ----------
    AggOp : csr_array
        Aggregation operator of shape (n_nodes, n_aggs), at most one nonzero
        per row.
    B : array
        Fine-level candidates of shape (n_nodes * K1, K2), where K1 is the
        number of dofs per node and K2 the number of candidates.
    tol : float
        Relative tolerance used to drop candidates that are numerically
        dependent on an aggregate.

    Returns
    -------
    Q : bsr_array
        Tentative prolongator of shape (n_nodes * K1, n_aggs * K2) with
        blocks of shape (K1, K2). Its block columns are orthonormal.
    R : ndarray
        Coarse-level candidates of shape (n_aggs * K2, K2), upper triangular
        per aggregate.

    Notes
    -----
    ``B = Q @ R`` and ``Q^H Q = I`` hold on the aggregated rows, except for
    dropped candidates, which give zero columns of Q and zero diagonal entries
    of R. Rows of isolated nodes (empty rows of AggOp) are zero in Q.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.sparse import csr_array
    >>> from sasetup.aggregation.sa.tentative import fit_candidates
    >>> AggOp = csr_array(np.array([[1, 0], [1, 0], [0, 1], [0, 1]]))
    >>> Q, R = fit_candidates(AggOp, np.ones((4, 1)))
    >>> np.round(Q.toarray(), 4)
    array([[0.7071, 0.    ],
           [0.7071, 0.    ],
           [0.    , 0.7071],
           [0.    , 0.7071]])
    """
    if (not issparse(AggOp)) or getattr(AggOp, "format", None) != "csr":
        raise TypeError("expected csr_array for argument AggOp")

    B = np.asarray(B)
    if B.dtype not in (np.float32, np.float64, np.complex64, np.complex128):
        B = np.asarray(B, dtype=np.float64)

    if B.ndim != 2:
        raise ValueError("expected 2d array for argument B")

    if AggOp.shape[0] == 0 or B.shape[0] % AggOp.shape[0] != 0:
        raise ValueError(f"dimensions of AggOp {AggOp.shape} and B {B.shape} are incompatible")

    N_fine, N_coarse = AggOp.shape

    K1 = B.shape[0] // N_fine
    K2 = B.shape[1]

    R = np.empty((N_coarse, K2, K2), dtype=B.dtype)
    Qx = np.empty((AggOp.nnz, K1, K2), dtype=B.dtype)

    AggOp_csc = AggOp.tocsc()

    amg_core.fit_candidates(
        N_fine,
        N_coarse,
        K1,
        K2,
        AggOp_csc.indptr,
        AggOp_csc.indices,
        Qx,
        np.ascontiguousarray(B),
        R,
        tol,
    )

    # Qx holds the blocks of Q^T in BSR order (one block row per aggregate)
    QT = bsr_array(
        (Qx.swapaxes(1, 2).copy(), AggOp_csc.indices, AggOp_csc.indptr),
        shape=(N_coarse * K2, N_fine * K1),
    )
    Q = QT.T.tobsr(blocksize=(K1, K2))

    return Q, R.reshape(-1, K2)


def _sa_build_tentative(*, AggOp, B, tol: float) -> Tentative:
    """Fit candidates on one level and count the dropped candidate columns.

    Parameters
    ----------
    AggOp
        Aggregation operator (CSR) of this level.
    B
        Candidates on this level.
    tol
        Dropping tolerance passed to `fit_candidates`.

    Returns
    -------
    Tentative
        T, coarse candidates Bc and the number of dropped columns.
    """
    T, Bc = fit_candidates(AggOp, B, tol=tol)

    K2 = Bc.shape[1]
    n_aggs = AggOp.shape[1]
    diag = Bc.reshape(n_aggs, K2, K2).diagonal(axis1=1, axis2=2)

    # empty aggregates have nothing to drop
    members = np.diff(AggOp.tocsc().indptr)
    n_dropped = int(np.count_nonzero(diag[members > 0] == 0))

    return Tentative(T=T, Bc=Bc, n_dropped=n_dropped)
