"""Sparse products restricted to a prescribed sparsity pattern."""

from __future__ import annotations

import numpy as np
from scipy.sparse import bsr_array, issparse

from sasetup import amg_core


def _to_bsr(M, name: str, blocksize=None):
    """Return M as BSR (CSR becomes 1x1 blocks)."""
    if not issparse(M) or M.format not in ("csr", "bsr"):
        raise TypeError(f"expected csr_array or bsr_array for argument {name}")
    if M.format == "csr":
        return M.tobsr(blocksize=blocksize or (1, 1))
    if blocksize is not None and M.blocksize != tuple(blocksize):
        return M.tobsr(blocksize=blocksize)
    return M


def incomplete_mat_mult(A, B, S) -> bsr_array:
    """Compute ``A @ B`` only on the sparsity pattern of S.

    Parameters
    ----------
    A : csr_array or bsr_array
        Left factor, shape (m, k).
    B : csr_array or bsr_array
        Right factor, shape (k, n).
    S : csr_array or bsr_array
        Pattern, shape (m, n). Its values are ignored.

    Returns
    -------
    C : bsr_array
        Matrix with exactly the (block) pattern of S holding the entries of
        ``A @ B``; stored positions where the product vanishes are explicit
        zeros. S itself is not modified.

    Notes
    -----
    Block sizes are made compatible with S: A gets S's row block size and
    B gets S's column block size, and the inner block size is taken from A
    when A is BSR.
    """
    if A.shape[1] != B.shape[0] or A.shape[0] != S.shape[0] or B.shape[1] != S.shape[1]:
        raise ValueError(f"incompatible shapes A {A.shape}, B {B.shape}, S {S.shape}")

    S = _to_bsr(S, "S")
    brow, bcol = S.blocksize

    if issparse(A) and A.format == "bsr" and A.blocksize[0] == brow:
        inner = A.blocksize[1]
    else:
        inner = 1
    A = _to_bsr(A, "A", (brow, inner))
    B = _to_bsr(B, "B", (inner, bcol))

    C = bsr_array(
        (
            np.zeros(S.data.shape, dtype=np.result_type(A.dtype, B.dtype)),
            S.indices.copy(),
            S.indptr.copy(),
        ),
        shape=S.shape,
    )

    amg_core.incomplete_mat_mult_bsr(
        A.indptr,
        A.indices,
        A.data,
        B.indptr,
        B.indices,
        B.data,
        C.indptr,
        C.indices,
        C.data,
        A.shape[0] // brow,
        S.shape[1] // bcol,
        brow,
        inner,
        bcol,
    )
    return C
