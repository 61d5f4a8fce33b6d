"""Energy-minimizing prolongation smoothing.

Starting from the tentative prolongator T, minimize the energy
``trace(P^H A P)`` over prolongators P that

  - live inside a fixed sparsity pattern (the pattern of T expanded by
    ``degree`` applications of the strength graph), and
  - act on the coarse candidates exactly like T does (``P Bc = T Bc``).

The minimization is a preconditioned conjugate gradient in the Frobenius
inner product. Every matrix-matrix product is evaluated only on the
sparsity pattern (`products.incomplete_mat_mult`) and every search
direction is projected onto the constraint space
(`constraints.satisfy_constraints`).
"""

from __future__ import annotations

import numpy as np
from scipy.sparse import bsr_array, csr_array, issparse

from .aggregate import _sa_unpack_arg
from .constraints import compute_BtBinv, satisfy_constraints
from .products import incomplete_mat_mult
from .types import MethodSpec


def _unamal(pattern: csr_array, RowsPerBlock: int, ColsPerBlock: int) -> bsr_array:
    """Expand a node-level CSR pattern into a BSR pattern of ones."""
    data = np.ones((pattern.indices.shape[0], RowsPerBlock, ColsPerBlock))
    return bsr_array(
        (data, pattern.indices.copy(), pattern.indptr.copy()),
        shape=(RowsPerBlock * pattern.shape[0], ColsPerBlock * pattern.shape[1]),
    )


def _scale_rows_bsr(M: bsr_array, d: np.ndarray) -> bsr_array:
    """Return diag(d) @ M, keeping exactly the block pattern of M."""
    RowsPerBlock = M.blocksize[0]
    n_brow = M.shape[0] // RowsPerBlock
    brows = np.repeat(np.arange(n_brow), np.diff(M.indptr))
    scale = np.asarray(d).reshape(n_brow, RowsPerBlock)[brows]
    data = M.data * scale[:, :, None]
    return bsr_array((data, M.indices.copy(), M.indptr.copy()), shape=M.shape)


def _frobenius_inner(X: bsr_array, Y: bsr_array):
    """``sum(conj(X) * Y)`` for two BSR matrices with the same pattern."""
    return np.vdot(X.data, Y.data)


def _on_pattern(M: bsr_array, pattern: bsr_array) -> bsr_array:
    """Copy of M stored on `pattern`, which must contain the block pattern of M."""
    n_bcol = pattern.shape[1] // pattern.blocksize[1]

    def _keys(X):
        brows = np.repeat(np.arange(X.indptr.shape[0] - 1), np.diff(X.indptr))
        return brows * n_bcol + X.indices

    pattern_keys = _keys(pattern)
    M_keys = _keys(M)
    pos = np.searchsorted(pattern_keys, M_keys)
    found = pos < pattern_keys.shape[0]
    found[found] = pattern_keys[pos[found]] == M_keys[found]
    if not found.all():
        raise ValueError("sparsity pattern does not contain the pattern of T")

    data = np.zeros(pattern.data.shape, dtype=M.dtype)
    data[pos] = M.data
    return bsr_array((data, pattern.indices.copy(), pattern.indptr.copy()), shape=pattern.shape)


def _cg_prolongation_smoothing(A, T, B, BtBinv, pattern, maxiter, tol, weighting):
    """Minimize the energy of T by CG on the constrained, restricted space.

    Parameters
    ----------
    A : bsr_array
        Fine operator.
    T : bsr_array
        Tentative prolongator, stored on `pattern`.
    B : ndarray
        Coarse candidates.
    BtBinv : ndarray
        Local Gram pseudoinverses for `pattern`.
    pattern : bsr_array
        Allowed sparsity pattern of P.
    maxiter, tol
        Iteration cap and tolerance on the Frobenius norm of the residual.
    weighting : str
        "diagonal" (inverse diagonal of A) or "local" (inverse Gershgorin
        row sums of |A|) row scaling as preconditioner.

    Returns
    -------
    T : bsr_array
        Smoothed prolongator on `pattern`.
    """
    if weighting == "diagonal":
        D = A.diagonal()
    elif weighting == "local":
        D = abs(A) @ np.ones(A.shape[1], dtype=A.dtype)
    else:
        raise ValueError(f"weighting value is invalid: {weighting!r}")
    D = np.abs(np.asarray(D))
    Dinv = np.zeros(D.shape, dtype=float)
    Dinv[D != 0] = 1.0 / D[D != 0]

    dtype = np.result_type(A.dtype, T.dtype)

    # R = -A T restricted to the pattern, then R B = 0
    R = incomplete_mat_mult(A, T, pattern)
    R.data *= -1.0
    satisfy_constraints(R, B, BtBinv)

    T = bsr_array((T.data.astype(dtype), T.indices, T.indptr), shape=T.shape)

    resid = np.sqrt(np.real(_frobenius_inner(R, R)))
    P = None
    oldsum = 0.0

    i = 0
    while i < maxiter and resid > tol:
        Z = _scale_rows_bsr(R, Dinv)

        newsum = _frobenius_inner(R, Z)
        if np.real(newsum) < tol:
            break

        if P is None:
            P = Z
        else:
            beta = newsum / oldsum
            P = bsr_array((Z.data + beta * P.data, Z.indices, Z.indptr), shape=Z.shape)
        oldsum = newsum

        AP = incomplete_mat_mult(A, P, pattern)
        satisfy_constraints(AP, B, BtBinv)

        alpha = newsum / _frobenius_inner(P, AP)

        T.data += alpha * P.data
        R.data -= alpha * AP.data

        i += 1
        resid = np.sqrt(np.real(_frobenius_inner(R, R)))

    return T


def energy_prolongation_smoother(
    A,
    T,
    Atilde,
    B,
    Bf=None,
    krylov: str = "cg",
    maxiter: int = 4,
    tol: float = 1e-8,
    degree: int = 1,
    weighting: str = "local",
):
    """Minimize the energy of the coarse basis functions (columns of T).

    The columns of T are smoothed by a few iterations of constrained CG
    in the Frobenius inner product. The result keeps ``P @ B == T @ B`` and
    has a pattern no wider than ``Atilde^degree`` times the pattern of T.

    Parameters
    ----------
    A : csr_array or bsr_array
        Fine operator.
    T : csr_array or bsr_array
        Tentative prolongator with block size (A.blocksize[0], K2).
    Atilde : csr_array
        Node-level strength matrix; its pattern expands the allowed pattern
        of P.
    B : array
        Coarse candidates, (T.shape[1], K2).
    Bf : array, optional
        Fine candidates. Unused for the non-root-node variant; accepted so
        that callers can pass it uniformly.
    krylov : str
        Only "cg" is supported.
    maxiter : int
        Number of CG iterations.
    tol : float
        Stopping tolerance on the Frobenius norm of the residual (<= 1).
    degree : int
        Number of times the pattern of T is expanded by Atilde. With
        degree 0 only the entries of T are smoothed.
    weighting : str
        Preconditioner, "local" or "diagonal".

    Returns
    -------
    P : bsr_array
        Smoothed prolongator. ``P @ B`` equals ``T @ B`` up to round-off and
        the pattern of P lies inside the expanded pattern.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.sparse import csr_array, diags_array
    >>> from sasetup.aggregation.sa.aggregate import standard_aggregation
    >>> from sasetup.aggregation.sa.tentative import fit_candidates
    >>> A = csr_array(diags_array([-1, 2, -1], offsets=[-1, 0, 1], shape=(9, 9)))
    >>> AggOp, _ = standard_aggregation(A)
    >>> T, Bc = fit_candidates(AggOp, np.ones((9, 1)))
    >>> P = energy_prolongation_smoother(A, T, A, Bc)
    >>> bool(np.allclose(P @ Bc, T @ Bc))
    True
    """
    if maxiter < 0:
        raise ValueError("maxiter must be >= 0")
    if tol > 1:
        raise ValueError("tol must be <= 1")
    if krylov != "cg":
        raise ValueError(f"krylov method {krylov!r} is not supported; use 'cg'")

    if issparse(A) and A.format == "csr":
        A = A.tobsr(blocksize=(1, 1))
    elif not (issparse(A) and A.format == "bsr"):
        raise TypeError("A must be csr_array or bsr_array")

    if issparse(T) and T.format == "csr":
        T = T.tobsr(blocksize=(1, 1))
    elif not (issparse(T) and T.format == "bsr"):
        raise TypeError("T must be csr_array or bsr_array")

    if T.blocksize[0] != A.blocksize[0]:
        raise ValueError("T row-blocksize should be the same as A blocksize")

    B = np.asarray(B)
    if B.shape[0] != T.shape[1]:
        raise ValueError("B is the candidates for the coarse grid. num_rows(B) = num_cols(T)")

    if min(T.nnz, A.nnz) == 0:
        return T

    if not issparse(Atilde) or Atilde.format != "csr":
        raise TypeError("Atilde must be csr_array")
    if Atilde.shape[0] != Atilde.shape[1] or Atilde.shape[1] * T.blocksize[0] != T.shape[0]:
        raise ValueError("Atilde must be square with one row per block row of T")

    RowsPerBlock, ColsPerBlock = T.blocksize
    T.sort_indices()
    shape = (T.shape[0] // RowsPerBlock, T.shape[1] // ColsPerBlock)
    pattern = csr_array(
        (np.ones(T.indices.shape[0]), T.indices.copy(), T.indptr.copy()), shape=shape
    )

    Atilde_pattern = csr_array(
        (np.ones(Atilde.indices.shape[0]), Atilde.indices.copy(), Atilde.indptr.copy()),
        shape=Atilde.shape,
    )
    for _ in range(degree):
        pattern = (Atilde_pattern @ pattern).tocsr()

    pattern.sum_duplicates()
    pattern.sort_indices()
    Sparsity_Pattern = _unamal(pattern, RowsPerBlock, ColsPerBlock)

    # inv(B_i^H B_i) for every block row; reused in every projection
    BtBinv = compute_BtBinv(B, Sparsity_Pattern)

    T = _on_pattern(T, Sparsity_Pattern)
    T = _cg_prolongation_smoothing(A, T, B, BtBinv, Sparsity_Pattern, maxiter, tol, weighting)

    T.eliminate_zeros()
    return T


def _sa_smooth_prolongator(*, A, T, C, Bc, Bf, smooth_spec: MethodSpec):
    """Apply the prolongation smoother named by a spec.

    Parameters
    ----------
    A
        Operator on this level.
    T
        Tentative prolongator.
    C
        Strength matrix, used as Atilde.
    Bc, Bf
        Coarse and fine candidates.
    smooth_spec
        "energy", ("energy", kwargs) or None (return T unchanged).

    Returns
    -------
    P
        Prolongator (BSR).
    """
    name, kwargs = _sa_unpack_arg(smooth_spec)

    if name is None:
        return T
    if name == "energy":
        return energy_prolongation_smoother(A, T, C, Bc, Bf, **kwargs)
    raise ValueError(f"Unrecognized prolongation smoother: {name!r}")
