"""Typed per-level data containers used throughout SA setup.

This module defines small dataclasses that group "level state" into coherent
parcels, so that a multigrid level does not carry many loose parallel
attributes.

Containers
----------
SAConfig
    Options that stay fixed while the hierarchy is extended.

Aggregation
    Result of aggregating one level:
      - AggOp    : (n_nodes x n_aggs) CSR with at most one 1 per row
      - Cpts     : root node of each aggregate (-1 if it has no members)
      - n_aggs   : number of aggregates
      - isolated : nodes left out of every aggregate (zero rows of AggOp)

Tentative
    Result of fitting the candidates to the aggregates:
      - T         : BSR tentative prolongator with orthonormal block columns
      - Bc        : coarse candidates, (n_aggs*K2 x K2)
      - n_dropped : number of candidate columns dropped as dependent

SALevel
    One level of the hierarchy. The finest level only has A and B on entry;
    the remaining fields are filled when the level is coarsened.

Invariants
----------
- Index arrays are stored as int32 numpy arrays.
- ``T.shape == (A.shape[0], n_aggs * K2)`` with blocks of shape (K1, K2),
  where K1 is the number of dofs per node and K2 the number of candidates.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, TypeAlias

import numpy as np
from numpy.typing import NDArray

from scipy.sparse import bsr_array, csr_array, sparray, spmatrix

SparseLike: TypeAlias = spmatrix | sparray
MethodSpec: TypeAlias = str | tuple[str, dict[str, Any]] | None

IndexArray = NDArray[np.int32]


@dataclass(slots=True, frozen=True)
class SAConfig:
    """Configuration parameters for extending an SA hierarchy by one level.

    Attributes
    ----------
    agg_levels : int
        Number of aggregation passes used to build aggregates on each level.
    tol : float
        Relative tolerance used by `fit_candidates` to drop dependent candidates.
    smooth : str | tuple[str, dict] | None
        Prolongation smoother spec; ``None`` keeps the tentative prolongator.
    keep : bool
        Whether to keep C, AggOp, Cpts and T on each level.
    print_info : bool
        Whether to print per-level diagnostics via `sa.stats`.
    """

    agg_levels: int = 1
    tol: float = 1e-10
    smooth: MethodSpec = "energy"
    keep: bool = False
    print_info: bool = False


@dataclass(slots=True)
class Aggregation:
    """Aggregation operator and its roots for one level."""

    AggOp: csr_array
    Cpts: IndexArray
    n_aggs: int
    isolated: IndexArray

    @property
    def sizes(self) -> np.ndarray:
        """Number of nodes in each aggregate."""
        return np.diff(self.AggOp.tocsc().indptr)


@dataclass(slots=True)
class Tentative:
    """Tentative prolongator and coarse candidates for one level."""

    T: bsr_array
    Bc: np.ndarray
    n_dropped: int = 0


@dataclass(slots=True)
class SALevel:
    """One level of a smoothed-aggregation hierarchy.

    Attributes
    ----------
    A
        Operator on this level (CSR, or BSR for systems).
    B
        Near-nullspace candidates on this level, (A.shape[0] x K2).
    P, R
        Prolongation and restriction to the next coarser level.
    n_aggs
        Number of aggregates formed on this level.
    C, AggOp, Cpts, T
        Strength matrix, aggregation operator, roots and tentative
        prolongator; only stored when ``keep=True``.
    stats
        Per-level setup diagnostics (`SALevelStats`).
    """

    A: SparseLike
    B: np.ndarray
    P: Optional[SparseLike] = None
    R: Optional[SparseLike] = None
    n_aggs: Optional[int] = None
    C: Optional[csr_array] = None
    AggOp: Optional[csr_array] = None
    Cpts: Optional[IndexArray] = None
    T: Optional[bsr_array] = None
    stats: Any = None
