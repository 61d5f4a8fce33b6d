"""Greedy aggregation of a strength graph stored as CSR arrays.

Both routines visit nodes in ascending index order, so the result is fully
determined by the graph and its storage order.
"""

from __future__ import annotations


def standard_aggregation(n_row, Ap, Aj, x, y) -> int:
    """Compute standard SA aggregates.

    Parameters
    ----------
    n_row : int
        Number of nodes (rows of the strength matrix).
    Ap, Aj : ndarray
        CSR row pointer and column indices. Self loops are allowed.
    x : ndarray
        Output of length ``n_row``: aggregate id of each node, ``-1`` for
        isolated nodes (no off-diagonal neighbours).
    y : ndarray
        Output of length ``n_row``: ``y[k]`` is the root node of aggregate k.
        Only the first ``count`` entries are written.

    Returns
    -------
    count : int
        Number of aggregates, equal to ``max(x) + 1``.

    Notes
    -----
    Pass 1 turns every unmarked node whose neighbours are all unmarked into
    the root of a new aggregate made of itself and its neighbours. Pass 2
    attaches each remaining node to the aggregate of its first neighbour that
    was marked in pass 1. Pass 3 normalizes the marks and gives any node that
    is still unmarked (possible only for nonsymmetric graphs) its own
    aggregate together with its unmarked neighbours.

    During passes 1-2 a mark ``k > 0`` means aggregate ``k - 1``, ``-k`` a
    tentative attachment to aggregate ``k - 1`` and ``-n_row`` an isolated
    node.
    """
    Ap = [int(v) for v in Ap[: n_row + 1]]
    Aj = [int(v) for v in Aj[: Ap[n_row]]]

    marks = [0] * n_row
    roots: list[int] = []
    next_aggregate = 1

    # pass 1
    for i in range(n_row):
        if marks[i]:
            continue

        row = Aj[Ap[i] : Ap[i + 1]]
        has_neighbors = False
        has_aggregated_neighbors = False
        for j in row:
            if j != i:
                has_neighbors = True
                if marks[j]:
                    has_aggregated_neighbors = True
                    break

        if not has_neighbors:
            marks[i] = -n_row
        elif not has_aggregated_neighbors:
            marks[i] = next_aggregate
            roots.append(i)
            for j in row:
                marks[j] = next_aggregate
            next_aggregate += 1

    # pass 2
    for i in range(n_row):
        if marks[i]:
            continue
        for j in Aj[Ap[i] : Ap[i + 1]]:
            if marks[j] > 0:
                marks[i] = -marks[j]
                break

    # pass 3
    count = next_aggregate - 1
    unmarked = [m == 0 for m in marks]
    for i in range(n_row):
        m = marks[i]
        if m > 0:
            marks[i] = m - 1
        elif m == -n_row:
            marks[i] = -1
        elif m < 0:
            marks[i] = -m - 1

    for i in range(n_row):
        if not unmarked[i]:
            continue
        marks[i] = count
        unmarked[i] = False
        roots.append(i)
        for j in Aj[Ap[i] : Ap[i + 1]]:
            if unmarked[j]:
                marks[j] = count
                unmarked[j] = False
        count += 1

    x[:n_row] = marks
    if roots:
        y[: len(roots)] = roots
    return count


def naive_aggregation(n_row, Ap, Aj, x, y) -> int:
    """Compute naive aggregates.

    Each node is considered in turn. If it is already aggregated it is
    skipped; otherwise it and all of its still unaggregated neighbours form a
    new aggregate. Compared with `standard_aggregation` this produces more,
    smaller aggregates and a higher operator complexity.

    Parameters are as for `standard_aggregation`. A node without neighbours
    becomes a singleton aggregate, so no entry of `x` is ``-1``.

    Returns
    -------
    count : int
        Number of aggregates, equal to ``max(x) + 1``.
    """
    Ap = [int(v) for v in Ap[: n_row + 1]]
    Aj = [int(v) for v in Aj[: Ap[n_row]]]

    marks = [-1] * n_row
    roots: list[int] = []

    for i in range(n_row):
        if marks[i] >= 0:
            continue
        agg = len(roots)
        marks[i] = agg
        for j in Aj[Ap[i] : Ap[i + 1]]:
            if marks[j] < 0:
                marks[j] = agg
        roots.append(i)

    x[:n_row] = marks
    if roots:
        y[: len(roots)] = roots
    return len(roots)
