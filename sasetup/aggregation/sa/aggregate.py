"""Aggregation utilities for SA setup.

This module provides the setup pieces that produce an aggregation operator
    AggOp : R^{n_nodes x n_aggs}
with at most one nonzero per row. Rows without a nonzero are isolated nodes,
which the tentative prolongator leaves out of the coarse space.

Main responsibilities
---------------------
1) Sparse-matrix wrappers around the `amg_core` aggregation kernels
   (`standard_aggregation`, `naive_aggregation`).

2) Spec dispatch:
   Builds AggOp from a PyAMG-style aggregation spec (standard, naive,
   predefined), optionally performing several aggregation passes
   (agg_levels) over the Galerkin-coarsened strength graph.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy.sparse import csr_array, issparse

from sasetup import amg_core

from .types import Aggregation, MethodSpec


def _sa_unpack_arg(v: MethodSpec) -> tuple[Any, dict[str, Any]]:
    """Normalize a PyAMG-style method spec into (name, kwargs).

    Parameters
    ----------
    v
        Either:
          - a string name like "standard", "symmetric", ...
          - a pair (name, kwargs) like ("symmetric", {"theta": 0.25})
          - None

    Returns
    -------
    name, kwargs
        `name` is the method identifier, `kwargs` is a dict of keyword arguments.
    """
    if isinstance(v, tuple):
        return v[0], dict(v[1])
    return v, {}


def _check_graph(C) -> None:
    """Raise unless C is a square CSR sparse matrix/array."""
    if (not issparse(C)) or getattr(C, "format", None) != "csr":
        raise TypeError("expected csr_array for argument C")
    if C.shape[0] != C.shape[1]:
        raise ValueError("expected square matrix")


def _aggop_from_assignment(x: np.ndarray, n_aggs: int) -> csr_array:
    """Build the (n_nodes x n_aggs) AggOp from terminal aggregate ids (-1 = none)."""
    n_nodes = x.shape[0]
    mask = x >= 0
    rows = np.flatnonzero(mask).astype(np.int32)
    data = np.ones(rows.size, dtype=np.int8)
    return csr_array((data, (rows, x[mask])), shape=(n_nodes, n_aggs))


def standard_aggregation(C) -> tuple[csr_array, np.ndarray]:
    """Compute the sparsity pattern of the tentative prolongator.

    Parameters
    ----------
    C : csr_array
        Strength of connection matrix (square, symmetric pattern expected).

    Returns
    -------
    AggOp : csr_array
        Aggregation operator with shape (C.shape[0], n_aggs). Rows of
        isolated nodes are empty.
    Cpts : ndarray
        Array of length n_aggs holding the root node of each aggregate.

    Examples
    --------
    >>> from scipy.sparse import csr_array
    >>> from sasetup.aggregation.sa.aggregate import standard_aggregation
    >>> A = csr_array([[ 2., -1., 0., 0.],
    ...                [-1., 2., -1., 0.],
    ...                [ 0., -1., 2., -1.],
    ...                [ 0., 0., -1., 2.]])
    >>> standard_aggregation(A)[0].toarray()
    array([[1, 0],
           [1, 0],
           [0, 1],
           [0, 1]], dtype=int8)
    """
    _check_graph(C)

    num_rows = C.shape[0]
    x = np.empty(num_rows, dtype=np.int32)
    y = np.empty(num_rows, dtype=np.int32)

    num_aggregates = amg_core.standard_aggregation(num_rows, C.indptr, C.indices, x, y)

    return _aggop_from_assignment(x, num_aggregates), y[:num_aggregates].copy()


def naive_aggregation(C) -> tuple[csr_array, np.ndarray]:
    """Compute aggregates by the naive policy.

    Every node that is not yet aggregated starts a new aggregate together with
    its unaggregated neighbours, so no node is left out.

    Parameters
    ----------
    C : csr_array
        Strength of connection matrix.

    Returns
    -------
    AggOp : csr_array
        Aggregation operator with shape (C.shape[0], n_aggs).
    Cpts : ndarray
        Root node of each aggregate.
    """
    _check_graph(C)

    num_rows = C.shape[0]
    x = np.empty(num_rows, dtype=np.int32)
    y = np.empty(num_rows, dtype=np.int32)

    num_aggregates = amg_core.naive_aggregation(num_rows, C.indptr, C.indices, x, y)

    return _aggop_from_assignment(x, num_aggregates), y[:num_aggregates].copy()


def _sa_build_aggregation(*, C, aggregate_spec: MethodSpec, agg_levels: int = 1) -> Aggregation:
    """Build the aggregation of one level from an aggregation spec.

    Parameters
    ----------
    C
        Strength-of-connection matrix (CSR) on this level.
    aggregate_spec
        PyAMG-style aggregation spec (string or (string, kwargs)).
        Supported names: "standard", "naive", "predefined".
        "predefined" expects ``{"AggOp": AggOp}`` (and optionally "Cpts").
        A predefined AggOp may have empty columns; their root is -1.
    agg_levels
        Number of aggregation passes. For agg_levels > 1 the strength matrix
        is coarsened between passes via AggOp.T @ C @ AggOp and the passes
        are multiplied together.

    Returns
    -------
    Aggregation
        AggOp, roots, aggregate count and isolated nodes.
    """
    name, kwargs = _sa_unpack_arg(aggregate_spec)

    C = C.tocsr(copy=True)
    C.eliminate_zeros()

    if name == "predefined":
        AggOp = csr_array(kwargs["AggOp"], copy=True)
        if AggOp.shape[0] != C.shape[0]:
            raise ValueError("AggOp and C have incompatible shapes")
        if "Cpts" in kwargs:
            Cpts = np.asarray(kwargs["Cpts"], dtype=np.int32)
        else:
            # first member of each aggregate, -1 for aggregates without members
            AggOpT = AggOp.T.tocsr()
            AggOpT.sort_indices()
            nonempty = np.diff(AggOpT.indptr) > 0
            Cpts = np.full(AggOp.shape[1], -1, dtype=np.int32)
            Cpts[nonempty] = AggOpT.indices[AggOpT.indptr[:-1][nonempty]]
        Aggs = [(AggOp, Cpts)]
    else:
        if name == "standard":
            fn = standard_aggregation
        elif name == "naive":
            fn = naive_aggregation
        else:
            raise ValueError(f"Unrecognized aggregation method: {name!r}")

        Aggs = []
        for _ in range(int(agg_levels)):
            AggOp, Cpts = fn(C, **kwargs)
            Aggs.append((AggOp, Cpts))
            if len(Aggs) < agg_levels:
                C = (AggOp.T @ C @ AggOp).tocsr()
                C.eliminate_zeros()
                if AggOp.shape[1] == 0:
                    break

    # Multiply aggregation passes together; roots are mapped back to fine nodes
    AggOp, Cpts = Aggs[0]
    for AggOp_j, Cpts_j in Aggs[1:]:
        Cpts = Cpts[Cpts_j]
        AggOp = (AggOp @ AggOp_j).tocsr()
    AggOp.data[:] = 1

    nnz_row = AggOp.indptr[1:] - AggOp.indptr[:-1]
    isolated = np.flatnonzero(nnz_row == 0).astype(np.int32)

    return Aggregation(
        AggOp=AggOp,
        Cpts=np.asarray(Cpts, dtype=np.int32),
        n_aggs=int(AggOp.shape[1]),
        isolated=isolated,
    )
