"""Smoothed-aggregation (SA) setup internals.

This package contains the modularized building blocks of the SA setup phase
(`sasetup.aggregation.smoothed_aggregation`). Each module wraps one family of
`sasetup.amg_core` kernels for SciPy sparse matrices.

Modules
-------
types
    Dataclass containers for configuration and per-level state.
strength
    Symmetric strength of connection and strength spec dispatch.
aggregate
    Standard/naive aggregation (AggOp construction) and spec dispatch.
tentative
    Fitting the near-nullspace candidates to aggregates (tentative prolongator).
constraints
    Local Gram matrices and enforcement of ``P B = T B`` constraints.
products
    Sparse matrix products restricted to a fixed sparsity pattern.
smooth
    Energy-minimizing prolongation smoothing.
hierarchy
    Galerkin coarsening and one-level hierarchy extension.
stats
    Per-level timing and diagnostic reporting.
"""

from __future__ import annotations

from . import aggregate, constraints, hierarchy, products, smooth, stats, strength, tentative, types

__all__ = [
    "types",
    "strength",
    "aggregate",
    "tentative",
    "constraints",
    "products",
    "smooth",
    "hierarchy",
    "stats",
]
