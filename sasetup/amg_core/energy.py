"""Kernels behind the constrained energy minimization of a prolongator.

`calc_BtB` assembles, for each block row of a sparsity pattern, the Gram
matrix of the candidates restricted to that row's column neighbourhood.
`satisfy_constraints_helper` uses the pseudoinverses of those matrices to
project an update so that it annihilates the candidates.
"""

from __future__ import annotations

import numpy as np

from .linalg import conjugate, gemm


def calc_BtB(NullDim, Nnodes, ColsPerBlock, b, BsqCols, x, Sp, Sj) -> None:
    """Compute ``BtB[i] = B_i^H B_i`` for every block row i of S.

    ``B_i`` is B restricted to the scalar columns covered by the block
    columns ``Sj[Sp[i]:Sp[i+1]]``.

    Parameters
    ----------
    NullDim : int
        Number of candidates (columns of B).
    Nnodes : int
        Number of block rows of S.
    ColsPerBlock : int
        Column block size of S.
    b : ndarray
        "B-squared", ``n x BsqCols`` in row-major order, holding the upper
        triangle of each row's outer product. For a 3-column B::

            b[:,0] = conj(B[:,0])*B[:,0]
            b[:,1] = conj(B[:,0])*B[:,1]
            b[:,2] = conj(B[:,0])*B[:,2]
            b[:,3] = conj(B[:,1])*B[:,1]
            b[:,4] = conj(B[:,1])*B[:,2]
            b[:,5] = conj(B[:,2])*B[:,2]

    BsqCols : int
        ``NullDim * (NullDim + 1) / 2``.
    x : ndarray
        Output, ``Nnodes * NullDim**2`` entries. Block i is written in
        column-major order. Previous contents are overwritten.
    Sp, Sj : ndarray
        BSR row pointer and block column indices of S.
    """
    NullDimSq = NullDim * NullDim
    Bsq = np.reshape(b, (-1, BsqCols))
    BtB = np.reshape(x, (-1, NullDimSq))
    iu = np.triu_indices(NullDim)

    BtB_loc = np.zeros((NullDim, NullDim), dtype=BtB.dtype)
    offsets = np.arange(ColsPerBlock)

    for i in range(Nnodes):
        block_cols = np.asarray(Sj[Sp[i] : Sp[i + 1]])
        cols = (block_cols[:, None] * ColsPerBlock + offsets).ravel()

        BtB_loc[:] = 0
        BtB_loc[iu] = Bsq[cols].sum(axis=0)
        # Hermitian completion of the strict lower triangle
        BtB_loc += conjugate(np.triu(BtB_loc, 1)).T

        BtB[i] = BtB_loc.ravel(order="F")


def satisfy_constraints_helper(
    RowsPerBlock, ColsPerBlock, num_block_rows, NullDim, x, y, z, Sp, Sj, Sx
) -> None:
    """Project a BSR update S so that ``S B = 0``.

    For every stored block ``(i, j)`` of S::

        S[i,j] -= UB[i] @ BtBinv[i] @ B[j]^H

    Parameters
    ----------
    RowsPerBlock, ColsPerBlock : int
        Block size of S.
    num_block_rows : int
        Number of block rows of S.
    NullDim : int
        Number of candidates (columns of B).
    x : ndarray
        ``conj(B)`` in row-major order, one ``ColsPerBlock x NullDim`` block
        per block column of S.
    y : ndarray
        ``S B`` in row-major order, one ``RowsPerBlock x NullDim`` block per
        block row of S.
    z : ndarray
        ``BtBinv``, one ``NullDim x NullDim`` pseudoinverse per block row,
        column-major (as produced by `calc_BtB`).
    Sp, Sj, Sx : ndarray
        BSR arrays of S. ``Sx`` is modified in place.

    Notes
    -----
    The main caller is the energy-minimization prolongation smoother, where
    S is an update to the prolongator: after this projection the update no
    longer changes how the prolongator acts on the coarse candidates.
    """
    Bt = np.reshape(x, (-1, ColsPerBlock, NullDim))
    UB = np.reshape(y, (-1, RowsPerBlock, NullDim))
    BtBinv = np.reshape(z, (-1, NullDim, NullDim)).swapaxes(1, 2)
    S_blocks = np.reshape(Sx, (-1, RowsPerBlock, ColsPerBlock))

    for i in range(num_block_rows):
        rowstart = int(Sp[i])
        rowend = int(Sp[i + 1])
        if rowstart == rowend:
            continue

        # B[j]^H is the transpose of the stored conj(B[j])
        Bh = Bt[np.asarray(Sj[rowstart:rowend])].swapaxes(1, 2)
        C = BtBinv[i] @ Bh
        Update = np.empty((rowend - rowstart, RowsPerBlock, ColsPerBlock), dtype=S_blocks.dtype)
        gemm(UB[i], C, Update, overwrite=True)

        S_blocks[rowstart:rowend] -= Update
