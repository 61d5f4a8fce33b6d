"""Local Gram matrices and null-space constraints for prolongator smoothing.

For a sparsity pattern S (block rows = fine nodes, block columns = coarse
dofs) and coarse candidates B, row i of S selects ``B_i``, the rows of B in
i's column neighbourhood. The energy smoother keeps ``P B`` fixed by
projecting every update U onto ``{U : U B = 0}`` row by row, which needs
``pinv(B_i^H B_i)`` for every block row.

Conventions
-----------
- BtB and BtBinv are stored as (n_block_rows, NullDim, NullDim) arrays.
  When handed to the kernels they are flattened column-major per block.
- Near-singular Gram matrices are not an error: the pseudoinverse still gives
  the projection onto the reachable subspace. They are reported through
  `NearSingularGramWarning`.
"""

from __future__ import annotations

from warnings import warn

import numpy as np
from scipy.sparse import issparse

from sasetup import amg_core


class NearSingularGramWarning(RuntimeWarning):
    """Local Gram matrices with a (numerically) deficient rank were inverted."""


def _as_bsr(S, name: str):
    """Return S as BSR, converting CSR to 1x1 blocks."""
    if not issparse(S) or S.format not in ("csr", "bsr"):
        raise TypeError(f"expected csr_array or bsr_array for argument {name}")
    if S.format == "csr":
        return S.tobsr(blocksize=(1, 1))
    return S


def _packed_Bsq(B: np.ndarray) -> np.ndarray:
    """Row-wise packed upper triangle of conj(B[k,:])^T B[k,:]."""
    NullDim = B.shape[1]
    rows, cols = np.triu_indices(NullDim)
    return np.ascontiguousarray(np.conjugate(B[:, rows]) * B[:, cols])


def compute_BtB(B, S) -> np.ndarray:
    """Compute the local Gram matrices ``B_i^H B_i`` for every block row of S.

    Parameters
    ----------
    B : array
        Coarse candidates of shape (S.shape[1], NullDim).
    S : csr_array or bsr_array
        Sparsity pattern; only indptr/indices and the block size are used.

    Returns
    -------
    BtB : ndarray
        Array of shape (n_block_rows, NullDim, NullDim); each matrix is
        Hermitian.
    """
    S = _as_bsr(S, "S")
    B = np.asarray(B)
    if B.ndim != 2 or B.shape[0] != S.shape[1]:
        raise ValueError(f"B {B.shape} does not match the columns of S {S.shape}")

    RowsPerBlock, ColsPerBlock = S.blocksize
    Nnodes = S.shape[0] // RowsPerBlock
    NullDim = B.shape[1]
    BsqCols = NullDim * (NullDim + 1) // 2

    dtype = np.result_type(B.dtype, np.float64)
    Bsq = _packed_Bsq(B.astype(dtype, copy=False))
    BtB = np.zeros((Nnodes, NullDim, NullDim), dtype=dtype)

    amg_core.calc_BtB(NullDim, Nnodes, ColsPerBlock, Bsq, BsqCols, BtB, S.indptr, S.indices)

    # calc_BtB writes column-major blocks
    return BtB.swapaxes(1, 2).copy()


def compute_BtBinv(B, S, rcond: float = 1e-10) -> np.ndarray:
    """Compute ``pinv(B_i^H B_i)`` for every block row of S.

    Parameters
    ----------
    B : array
        Coarse candidates of shape (S.shape[1], NullDim).
    S : csr_array or bsr_array
        Sparsity pattern of the prolongator update.
    rcond : float
        Relative cutoff for small singular values; a nonzero Gram matrix whose
        smallest singular value is at most ``rcond`` times its largest is
        reported as near-singular.

    Returns
    -------
    BtBinv : ndarray
        Array of shape (n_block_rows, NullDim, NullDim).

    Warns
    -----
    NearSingularGramWarning
        If any nonzero local Gram matrix is near-singular.
    """
    BtB = compute_BtB(B, S)
    if BtB.shape[0] == 0:
        return BtB

    sv = np.linalg.svd(BtB, compute_uv=False)
    smax = sv[:, 0]
    smin = sv[:, -1]
    near_singular = (smax > 0) & (smin <= rcond * smax)
    n_bad = int(np.count_nonzero(near_singular))
    if n_bad:
        warn(
            f"{n_bad} of {BtB.shape[0]} local Gram matrices are near-singular; "
            "using their pseudoinverses",
            NearSingularGramWarning,
            stacklevel=2,
        )

    return np.linalg.pinv(BtB, rcond=rcond, hermitian=True)


def satisfy_constraints(U, B, BtBinv):
    """Update U in place so that ``U @ B == 0``.

    Parameters
    ----------
    U : bsr_array
        Update to the prolongator; its data is modified in place.
    B : array
        Coarse candidates of shape (U.shape[1], NullDim).
    BtBinv : ndarray
        Local Gram pseudoinverses from `compute_BtBinv` for U's pattern.

    Returns
    -------
    U : bsr_array
        The same object, with each row projected onto ``{u : u B = 0}``.
    """
    if not issparse(U) or U.format != "bsr":
        raise TypeError("expected bsr_array for argument U")

    RowsPerBlock, ColsPerBlock = U.blocksize
    num_block_rows = U.shape[0] // RowsPerBlock

    B = np.asarray(B, dtype=U.dtype)
    UB = np.ascontiguousarray(U @ B)
    BtBinv_F = np.ascontiguousarray(np.asarray(BtBinv, dtype=U.dtype).swapaxes(1, 2))

    amg_core.satisfy_constraints_helper(
        RowsPerBlock,
        ColsPerBlock,
        num_block_rows,
        B.shape[1],
        np.ascontiguousarray(np.conjugate(B)),
        UB,
        BtBinv_F,
        U.indptr,
        U.indices,
        U.data,
    )

    return U
