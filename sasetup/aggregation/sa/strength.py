"""Strength-of-connection for SA setup.

Wraps the `amg_core` symmetric strength kernel for SciPy sparse matrices and
dispatches PyAMG-style strength specs. For BSR operators the strength graph
is computed on nodes: each block is first replaced by its Frobenius norm.
"""

from __future__ import annotations

import numpy as np
from scipy.sparse import csr_array, issparse

from sasetup import amg_core

from .aggregate import _sa_unpack_arg
from .types import MethodSpec


def _amalgamate_blocks(A) -> csr_array:
    """Collapse a BSR matrix to a node-level CSR matrix of block Frobenius norms."""
    R, C = A.blocksize
    n_brow = A.shape[0] // R
    n_bcol = A.shape[1] // C
    data = np.linalg.norm(A.data.reshape(A.data.shape[0], -1), axis=1)
    return csr_array((data, A.indices.copy(), A.indptr.copy()), shape=(n_brow, n_bcol))


def symmetric_strength_of_connection(A, theta: float = 0.0) -> csr_array:
    """Compute the symmetric strength of connection matrix of A.

    An off-diagonal entry ``A[i,j]`` is a strong connection iff::

        |A[i,j]| >= theta * sqrt(|A[i,i]| * |A[j,j]|)

    Parameters
    ----------
    A : csr_array or bsr_array
        Square sparse matrix. BSR input is amalgamated to one node per block.
    theta : float
        Threshold parameter (non-negative).

    Returns
    -------
    S : csr_array
        Matrix made of the strong entries of A (values are kept as in A, or
        block norms for BSR input). Diagonal entries of A are always kept.

    Notes
    -----
    With ``theta == 0`` every stored entry is strong and S has the pattern of A.
    """
    if not issparse(A) or A.format not in ("csr", "bsr"):
        raise TypeError("expected csr_array or bsr_array for argument A")
    if A.shape[0] != A.shape[1]:
        raise ValueError("expected square matrix")
    if theta < 0:
        raise ValueError("expected a non-negative theta")

    if A.format == "bsr":
        A = _amalgamate_blocks(A)

    Sp = np.empty_like(A.indptr)
    Sj = np.empty_like(A.indices)
    Sx = np.empty_like(A.data)

    amg_core.symmetric_strength_of_connection(
        A.shape[0], theta, A.indptr, A.indices, A.data, Sp, Sj, Sx
    )

    nnz = int(Sp[-1])
    return csr_array((Sx[:nnz], Sj[:nnz], Sp), shape=A.shape)


def _sa_build_strength(*, A, strength_spec: MethodSpec) -> csr_array:
    """Compute strength-of-connection matrix C from a strength spec.

    Parameters
    ----------
    A
        Operator on this level (CSR or BSR).
    strength_spec
        PyAMG-style spec:
          - "symmetric" or ("symmetric", {"theta": theta}),
          - ("predefined", {"C": C}),
          - None, the (node) adjacency of A.

    Returns
    -------
    C
        CSR strength-of-connection matrix with one row per node of A.
    """
    name, kwargs = _sa_unpack_arg(strength_spec)

    if name == "symmetric":
        C = symmetric_strength_of_connection(A, **kwargs)
    elif name == "predefined":
        C = csr_array(kwargs["C"])
    elif name is None:
        C = symmetric_strength_of_connection(A, theta=0.0)
    else:
        raise ValueError(f"Unrecognized strength-of-connection method: {name!r}")

    return C
