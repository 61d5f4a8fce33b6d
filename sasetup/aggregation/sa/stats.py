"""Setup diagnostics for SA hierarchies.

Each coarsening step records a `SALevelStats`: wall-clock time per setup
phase plus a handful of derived numbers (coarsening ratio, aggregate sizes,
isolated nodes, dropped candidates, prolongator fill). Nothing is printed
unless ``print_info`` is set, and this is the only module of the package
that prints.

    stats = SALevelStats(level=ell, n_fine=A.shape[0])
    with stats.timeit("strength"):
        C = ...
    _sa_finalize_level_stats(stats=stats, level=level, agg=agg, tent=tent, n_coarse=n_c)
    _sa_print_level_summary(stats, print_info=print_info)
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from .types import Aggregation, SALevel, Tentative

# setup phases in execution order
_PHASES = ("strength", "aggregate", "tentative", "smooth", "coarsen")
_MMX_SUFFIXES = ("min", "med", "max")


@dataclass(slots=True)
class SALevelStats:
    """Timings and counts gathered while coarsening one level.

    Attributes
    ----------
    level
        Index of the level being coarsened (0 is the finest).
    n_fine, n_coarse
        Operator sizes before and after coarsening.
    n_aggs
        Aggregate count.
    timings
        Seconds spent per setup phase, keyed by phase name.
    extra
        Derived diagnostics, see `_sa_finalize_level_stats`.
    """

    level: int
    n_fine: int
    n_aggs: int | None = None
    n_coarse: int | None = None
    timings: dict[str, float] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)

    @contextmanager
    def timeit(self, key: str):
        """Add the time spent inside the block to ``timings[key]``."""
        start = time.perf_counter()
        try:
            yield self
        finally:
            elapsed = time.perf_counter() - start
            self.timings[key] = self.timings.get(key, 0.0) + elapsed

    @property
    def total_time(self) -> float:
        return float(sum(self.timings.get(k, 0.0) for k in _PHASES))


def _store_mmx(extra: dict[str, Any], base: str, arr) -> None:
    """Record min, median and max of `arr` as ``extra[base + '_min' | '_med' | '_max']``.

    Empty input records nothing.
    """
    values = np.asarray(arr, dtype=float).ravel()
    if values.size == 0:
        return
    for suffix, q in zip(_MMX_SUFFIXES, np.quantile(values, [0.0, 0.5, 1.0])):
        extra[f"{base}_{suffix}"] = float(q)


def _sa_finalize_level_stats(
    *, stats: SALevelStats, level: SALevel, agg: Aggregation, tent: Tentative, n_coarse: int
) -> None:
    """Fill in the derived diagnostics of a coarsened level and attach them.

    Stores the coarsening ratio (``cr``), aggregate size spread
    (``agg_size_*``), the number of ``isolated`` nodes, the number of
    ``dropped`` candidate columns and, when P exists, the stored entries of
    T and P (``T_nnz``, ``P_nnz``). Sets ``level.stats``.
    """
    stats.n_aggs = int(agg.n_aggs)
    stats.n_coarse = int(n_coarse)

    extra = stats.extra
    extra["cr"] = stats.n_fine / n_coarse if n_coarse else float("inf")
    _store_mmx(extra, "agg_size", agg.sizes)
    extra["isolated"] = int(agg.isolated.size)
    extra["dropped"] = int(tent.n_dropped)
    if level.P is not None:
        extra["T_nnz"] = int(tent.T.nnz)
        extra["P_nnz"] = int(level.P.nnz)

    level.stats = stats


def _fmt(x) -> str:
    """Short numeric formatting; non-numbers are passed through as text."""
    try:
        v = float(x)
    except (TypeError, ValueError):
        return str(x)
    if v != 0.0 and not 1e-2 <= abs(v) < 1e4:
        return f"{v:.2e}"
    return f"{v:.3g}"


def _mmx(extra: dict[str, Any], base: str) -> str:
    """``min/med/max`` of a quantity stored by `_store_mmx`, or ``n/a``."""
    values = [extra.get(f"{base}_{suffix}") for suffix in _MMX_SUFFIXES]
    if any(v is None for v in values):
        return "n/a"
    return "/".join(_fmt(v) for v in values)


def _fmt_ms(t: float) -> str:
    """Duration in ms below one second, in s above."""
    if t < 1.0:
        return f"{t * 1000:7.1f}ms"
    return f"{t:7.2f}s"


def _sa_print_level_summary(
    stats: SALevelStats,
    *,
    print_info: bool,
    prefix: str = "SA",
    indent: str = "",
) -> None:
    """Print sizes, aggregate diagnostics and phase timings of one level.

    Parameters
    ----------
    stats
        Finalized level statistics.
    print_info
        Nothing is printed when False.
    prefix
        Label at the start of the header line.
    indent
        Prepended to every line.
    """
    if not print_info:
        return

    extra = stats.extra
    n_c = "?" if stats.n_coarse is None else stats.n_coarse
    lines = [
        f"{prefix:<3}  level={stats.level:<2d}  n={stats.n_fine:<7d} -> {n_c:<7}"
        f"  cr={_fmt(extra.get('cr', 'n/a'))}",
        f"     aggregates: {stats.n_aggs}  size={_mmx(extra, 'agg_size')}"
        f"  isolated={extra.get('isolated', 'n/a')}  dropped={extra.get('dropped', 'n/a')}",
    ]
    if "P_nnz" in extra:
        lines.append(f"     prolongator nnz: T={extra['T_nnz']}  P={extra['P_nnz']}")

    lines.append("     timing:")
    lines.extend(
        f"       {phase:<10} {_fmt_ms(stats.timings[phase])}" for phase in _PHASES if phase in stats.timings
    )
    lines.append(f"       {'total':<10} {_fmt_ms(stats.total_time)}")

    print("\n".join(indent + line for line in lines))


def _sa_print_setup_summary(*, levels, print_info: bool, indent: str = "") -> None:
    """Print the operator complexity and the size of every level."""
    if not print_info:
        return

    nnz = [lvl.A.nnz for lvl in levels]
    complexity = sum(nnz) / max(nnz[0], 1)
    print(f"{indent}SA   levels={len(levels)}  operator complexity={_fmt(complexity)}")
    for i, (lvl, level_nnz) in enumerate(zip(levels, nnz)):
        print(f"{indent}       {i:<2d} n={lvl.A.shape[0]:<7d} nnz={level_nnz}")
