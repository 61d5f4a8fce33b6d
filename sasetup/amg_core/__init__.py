"""Array-level kernels for smoothed-aggregation setup.

Every kernel works on raw CSR/BSR arrays (``indptr``, ``indices``, ``data``)
and writes into caller-allocated output arrays in place. None of them checks
its inputs: sizes, index ranges and output capacities are preconditions that
the wrappers in `sasetup.aggregation.sa` establish before calling in.

Modules
-------
linalg
    Scalar primitives (norm, squared norm, conjugate, dot, small GEMM).
strength
    Symmetric strength-of-connection filter.
aggregation
    Standard and naive aggregation of a strength graph.
tentative
    Blockwise orthonormalization of candidates (tentative prolongator).
energy
    Local Gram matrices and null-space constraint enforcement.
smmp
    Sparse block product restricted to a fixed output pattern.
"""

from __future__ import annotations

from .aggregation import naive_aggregation, standard_aggregation
from .energy import calc_BtB, satisfy_constraints_helper
from .smmp import incomplete_mat_mult_bsr
from .strength import symmetric_strength_of_connection
from .tentative import fit_candidates

__all__ = [
    "symmetric_strength_of_connection",
    "standard_aggregation",
    "naive_aggregation",
    "fit_candidates",
    "calc_BtB",
    "satisfy_constraints_helper",
    "incomplete_mat_mult_bsr",
]
