"""Symmetric strength-of-connection filter on raw CSR arrays."""

from __future__ import annotations

import numpy as np

from .linalg import mynorm, mynormsq


def symmetric_strength_of_connection(n_row, theta, Ap, Aj, Ax, Sp, Sj, Sx) -> None:
    """Keep the strong entries of a CSR matrix.

    A nonzero connection ``A[i,j]`` is strong if::

        |A[i,j]| >= theta * sqrt(|A[i,i]| * |A[j,j]|)

    which is tested in squared form, ``|A[i,j]|^2 >= theta^2 |A[i,i]| |A[j,j]|``.
    Diagonal entries are always kept.

    Parameters
    ----------
    n_row : int
        Number of rows of A.
    theta : float
        Strength tolerance (>= 0).
    Ap, Aj, Ax : ndarray
        CSR arrays of A. Rows may be unsorted and may contain duplicates.
    Sp, Sj, Sx : ndarray
        Output CSR arrays of S. ``Sp`` has length ``n_row + 1``; ``Sj`` and
        ``Sx`` must hold at least ``Ap[n_row]`` entries. Only the first
        ``Sp[n_row]`` entries are written.

    Notes
    -----
    Duplicate diagonal entries are summed before taking the magnitude. A zero
    diagonal gives a zero threshold, so every off-diagonal entry in that row
    (and in any row coupled to it) passes the test.
    """
    nnz = int(Ap[n_row])
    Aj = np.asarray(Aj)[:nnz]
    Ax = np.asarray(Ax)[:nnz]

    rows = np.repeat(np.arange(n_row, dtype=Aj.dtype), np.diff(Ap[: n_row + 1]))
    on_diag = Aj == rows

    diag = np.zeros(n_row, dtype=Ax.dtype)
    np.add.at(diag, rows[on_diag], Ax[on_diag])
    diags = mynorm(diag)

    eps_Aii = theta * theta * diags
    strong = on_diag | (mynormsq(Ax) >= eps_Aii[rows] * diags[Aj])

    n_strong = int(np.count_nonzero(strong))
    Sj[:n_strong] = Aj[strong]
    Sx[:n_strong] = Ax[strong]
    Sp[0] = 0
    Sp[1 : n_row + 1] = np.cumsum(np.bincount(rows[strong], minlength=n_row))
