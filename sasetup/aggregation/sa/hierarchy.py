"""Hierarchy extension utilities for SA setup.

This module provides:
  - Galerkin coarsening of the operator to the next level,
  - appending the next multigrid level,
  - the orchestration routine that builds one additional level
    (strength -> aggregation -> tentative prolongator -> smoothing -> coarsening).

The entrypoint used by `smoothed_aggregation.py` is `_sa_extend_hierarchy`.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from .aggregate import _sa_build_aggregation
from .smooth import _sa_smooth_prolongator
from .stats import SALevelStats, _sa_finalize_level_stats, _sa_print_level_summary
from .strength import _sa_build_strength
from .tentative import _sa_build_tentative
from .types import SAConfig, SALevel, SparseLike


def _sa_coarsen_operators(*, A: SparseLike, P: SparseLike, R: SparseLike, K2: int) -> SparseLike:
    """Form the Galerkin coarse operator ``A_c = R @ A @ P``.

    Parameters
    ----------
    A
        Operator on this level (CSR or BSR).
    P, R
        Prolongation (n x n_c) and restriction (n_c x n).
    K2
        Number of candidates, which becomes the block size on the coarse level.

    Returns
    -------
    A_c
        CSR for a single candidate, BSR with (K2, K2) blocks otherwise. Indices
        are sorted.
    """
    A_c = R @ (A @ P)
    if K2 > 1:
        A_c = A_c.tobsr(blocksize=(K2, K2))
    else:
        A_c = A_c.tocsr()
    A_c.sort_indices()
    return A_c


def _sa_append_next_level(*, levels: list[SALevel], A: SparseLike, B: np.ndarray) -> SALevel:
    """Append a new multigrid level holding A and B.

    Parameters
    ----------
    levels
        List of levels. Mutated by appending one new `SALevel`.
    A, B
        Coarse-level operator and candidates.

    Returns
    -------
    next_level
        The newly created and appended level.
    """
    nxt = SALevel(A=A, B=B)
    levels.append(nxt)
    return nxt


def _sa_extend_hierarchy(
    *,
    levels: list[SALevel],
    strength: Sequence[Any],
    aggregate: Sequence[Any],
    config: SAConfig,
) -> bool:
    """Extend the multigrid hierarchy by one level.

    Parameters
    ----------
    levels
        List of `SALevel` objects. The routine reads the finest unprocessed
        level as `levels[-1]` and appends a new coarse level at the end.
    strength, aggregate
        Levelized specs (indexed by the current level) controlling
        strength-of-connection and aggregation.
    config
        Options shared by all levels.

    Returns
    -------
    extended
        False if aggregation produced no aggregates, in which case `levels`
        is left unchanged; True otherwise.

    Side effects
    ------------
    - Sets P, R, n_aggs and stats on `levels[-1]` (and C, AggOp, Cpts, T
      when `config.keep` is set).
    - Appends a new coarse level via `_sa_append_next_level`.
    """
    level = levels[-1]
    A = level.A
    B = level.B
    ell = len(levels) - 1

    stats = SALevelStats(level=ell, n_fine=A.shape[0])

    with stats.timeit("strength"):
        C = _sa_build_strength(A=A, strength_spec=strength[ell])

    with stats.timeit("aggregate"):
        agg = _sa_build_aggregation(C=C, aggregate_spec=aggregate[ell], agg_levels=config.agg_levels)

    if agg.n_aggs == 0:
        return False

    with stats.timeit("tentative"):
        tent = _sa_build_tentative(AggOp=agg.AggOp, B=B, tol=config.tol)

    with stats.timeit("smooth"):
        P = _sa_smooth_prolongator(A=A, T=tent.T, C=C, Bc=tent.Bc, Bf=B, smooth_spec=config.smooth)

    level.P = P
    level.R = P.T.conjugate()
    level.n_aggs = agg.n_aggs

    if config.keep:
        level.C = C
        level.AggOp = agg.AggOp
        level.Cpts = agg.Cpts
        level.T = tent.T

    with stats.timeit("coarsen"):
        A_c = _sa_coarsen_operators(A=A, P=level.P, R=level.R, K2=tent.Bc.shape[1])

    _sa_finalize_level_stats(stats=stats, level=level, agg=agg, tent=tent, n_coarse=A_c.shape[0])
    _sa_print_level_summary(stats, print_info=config.print_info)

    _sa_append_next_level(levels=levels, A=A_c, B=tent.Bc)
    return True
