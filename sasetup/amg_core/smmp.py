"""Sparse block product evaluated only on a fixed output pattern."""

from __future__ import annotations

import numpy as np

from .linalg import gemm


def incomplete_mat_mult_bsr(
    Ap, Aj, Ax, Bp, Bj, Bx, Sp, Sj, Sx, n_brow, n_bcol, brow_A, bcol_A, bcol_B
) -> None:
    """Accumulate ``A @ B`` into the pre-existing sparsity pattern of S.

    This is an exact but incomplete product: entries of ``A @ B`` that fall
    outside the pattern of S are never computed, and entries of ``Sx``
    outside that pattern are never touched.

    A, B and S are BSR and may be rectangular. Indices need not be sorted.
    Block sizes must agree: A is ``brow_A x bcol_A``, B is
    ``bcol_A x bcol_B`` and S is ``brow_A x bcol_B``.

    Parameters
    ----------
    Ap, Aj, Ax : ndarray
        BSR arrays of A (``n_brow`` block rows).
    Bp, Bj, Bx : ndarray
        BSR arrays of B.
    Sp, Sj, Sx : ndarray
        BSR arrays of S. ``Sx`` is accumulated into in place, so callers that
        want ``S = A @ B`` on the pattern zero it first.
    n_brow : int
        Number of block rows of A (and of S).
    n_bcol : int
        Number of block columns of S.
    brow_A, bcol_A, bcol_B : int
        Block dimensions, see above.

    Notes
    -----
    Algorithm is SMMP with a dense scatter table: for block row i the table
    maps each block column k of S to the slot of ``S[i,k]`` in ``Sx`` (or -1)
    and is reset before moving to the next row. Cost is bounded by
    ``nnz(A)`` times the average block row length of B.
    """
    A_blocksize = brow_A * bcol_A
    B_blocksize = bcol_A * bcol_B
    S_blocksize = brow_A * bcol_B
    one_by_one = A_blocksize == 1 and B_blocksize == 1 and S_blocksize == 1

    A_blocks = np.reshape(Ax, (-1, brow_A, bcol_A))
    B_blocks = np.reshape(Bx, (-1, bcol_A, bcol_B))
    S_blocks = np.reshape(Sx, (-1, brow_A, bcol_B))
    S_flat = np.reshape(Sx, -1)

    slots = np.full(n_bcol, -1, dtype=np.intp)

    for i in range(n_brow):
        s_start = int(Sp[i])
        s_end = int(Sp[i + 1])
        if s_start == s_end:
            continue
        S_row = np.asarray(Sj[s_start:s_end])
        slots[S_row] = np.arange(s_start, s_end)

        for jj in range(int(Ap[i]), int(Ap[i + 1])):
            j = Aj[jj]
            kk_start = int(Bp[j])
            kk_end = int(Bp[j + 1])
            if kk_start == kk_end:
                continue

            targets = slots[Bj[kk_start:kk_end]]
            allowed = targets >= 0
            if not allowed.any():
                continue
            kk = np.arange(kk_start, kk_end)[allowed]

            if one_by_one:
                np.add.at(S_flat, targets[allowed], A_blocks[jj, 0, 0] * B_blocks[kk, 0, 0])
            else:
                products = np.zeros((kk.size, brow_A, bcol_B), dtype=S_blocks.dtype)
                gemm(A_blocks[jj], B_blocks[kk], products)
                np.add.at(S_blocks, targets[allowed], products)

        slots[S_row] = -1
