"""Smoothed aggregation AMG setup.

Builds the list of levels of a smoothed-aggregation hierarchy: on every level
a strength-of-connection graph, an aggregation, a tentative prolongator fit
to the near-nullspace candidates, the energy-minimized prolongator P, the
restriction R = P^H and the Galerkin coarse operator R A P.

The cycle and the solve phase are not part of this package.
"""

from __future__ import annotations

from warnings import warn

import numpy as np
from scipy.sparse import SparseEfficiencyWarning, csr_array, issparse

from .sa.hierarchy import _sa_extend_hierarchy
from .sa.stats import _sa_print_setup_summary
from .sa.types import SAConfig, SALevel


def levelize_strength_or_aggregation(to_levelize, max_levels, max_coarse):
    """Turn a strength or aggregation spec into one entry per level.

    Parameters
    ----------
    to_levelize : str, tuple or list
        Single spec or list of specs. A list shorter than the hierarchy is
        extended by repeating its last entry.
    max_levels : int
        Maximum number of levels.
    max_coarse : int
        Maximum size of the coarsest level.

    Returns
    -------
    max_levels, max_coarse, to_levelize
        A "predefined" spec fixes the number of levels: a single predefined
        tuple allows only two levels, and a list ending in a predefined entry
        stops one level after it. In both cases max_coarse becomes 0 so that
        the predefined levels are always built.
    """
    if isinstance(to_levelize, tuple):
        if to_levelize[0] == "predefined":
            to_levelize = [to_levelize]
            max_levels = 2
            max_coarse = 0
        else:
            to_levelize = [to_levelize for _ in range(max_levels - 1)]
    elif isinstance(to_levelize, str) or to_levelize is None:
        to_levelize = [to_levelize for _ in range(max_levels - 1)]
    elif isinstance(to_levelize, list):
        if len(to_levelize) == 0:
            raise ValueError("expected a non-empty list of specs")
        last = to_levelize[-1]
        if isinstance(last, tuple) and last[0] == "predefined":
            max_levels = len(to_levelize) + 1
            max_coarse = 0
        elif len(to_levelize) < max_levels - 1:
            to_levelize = list(to_levelize) + [last for _ in range(max_levels - 1 - len(to_levelize))]
    else:
        raise ValueError(f"invalid spec: {to_levelize!r}")

    return max_levels, max_coarse, to_levelize


def smoothed_aggregation_setup(
    A,
    B=None,
    symmetry="hermitian",
    strength="symmetric",
    aggregate="standard",
    smooth="energy",
    agg_levels=1,
    max_levels=10,
    max_coarse=10,
    tol=1e-10,
    keep=False,
    print_info=False,
):
    """Create the levels of a smoothed aggregation hierarchy.

    Parameters
    ----------
    A : csr_array or bsr_array
        Square matrix in CSR or BSR format. For BSR the block size is the
        number of degrees of freedom per node.
    B : None, array
        Near-nullspace candidates, (A.shape[0] x K). Defaults to the constant
        vector.
    symmetry : str
        "symmetric", "hermitian" or "nonsymmetric". Only validated: the
        restriction is always ``P^H``.
    strength : str, tuple or list
        "symmetric", ("symmetric", {"theta": theta}), ("predefined", {"C": C})
        or None. A list gives one spec per level.
    aggregate : str, tuple or list
        "standard", "naive" or ("predefined", {"AggOp": AggOp}). A list gives
        one spec per level.
    smooth : str, tuple or None
        "energy" or ("energy", kwargs) for `energy_prolongation_smoother`;
        None uses the tentative prolongator.
    agg_levels : int
        Number of aggregation passes per level.
    max_levels : int
        Maximum number of levels.
    max_coarse : int
        Stop coarsening once the operator has at most this many rows.
    tol : float
        Candidate dropping tolerance for `fit_candidates`.
    keep : bool
        Keep C, AggOp, Cpts and T on each level.
    print_info : bool
        Print per-level diagnostics.

    Returns
    -------
    levels : list of SALevel
        ``levels[0].A`` is A. Every level but the last holds P, R and
        n_aggs; the last level only holds A and B.

    Examples
    --------
    >>> import numpy as np
    >>> from scipy.sparse import csr_array, diags_array
    >>> from sasetup.aggregation.smoothed_aggregation import smoothed_aggregation_setup
    >>> A = csr_array(diags_array([-1, 2, -1], offsets=[-1, 0, 1], shape=(100, 100)))
    >>> levels = smoothed_aggregation_setup(A)
    >>> levels[1].A.shape
    (34, 34)
    """
    if not (issparse(A) and A.format in ("csr", "bsr")):
        try:
            A = csr_array(A)
            warn("Implicit conversion of A to CSR", SparseEfficiencyWarning, stacklevel=2)
        except Exception as e:
            raise TypeError(
                "Argument A must have type csr_array or bsr_array, or be convertible to csr_array"
            ) from e

    if A.shape[0] != A.shape[1]:
        raise ValueError("expected square matrix")

    if symmetry not in ("symmetric", "hermitian", "nonsymmetric"):
        raise ValueError(
            'Expected "symmetric", "nonsymmetric" or "hermitian" for the symmetry parameter'
        )

    if not np.issubdtype(A.dtype, np.inexact):
        A = A.astype(np.float64)

    A = A.copy()
    A.sum_duplicates()
    A.sort_indices()

    if B is None:
        B = np.ones((A.shape[0], 1), dtype=A.dtype)
    else:
        B = np.asarray(B, dtype=np.result_type(A.dtype, np.asarray(B).dtype, np.float64))
        if B.ndim == 1:
            B = B.reshape(-1, 1)
        if B.shape[0] != A.shape[0]:
            raise ValueError("The near null-space modes B have incorrect dimensions for matrix A")
        if A.format == "bsr" and B.shape[1] < A.blocksize[0]:
            raise ValueError("B.shape[1] must be >= the blocksize of A")

    max_levels, max_coarse, strength = levelize_strength_or_aggregation(strength, max_levels, max_coarse)
    max_levels, max_coarse, aggregate = levelize_strength_or_aggregation(aggregate, max_levels, max_coarse)

    config = SAConfig(agg_levels=agg_levels, tol=tol, smooth=smooth, keep=keep, print_info=print_info)

    levels = [SALevel(A=A, B=B)]

    while len(levels) < max_levels and levels[-1].A.shape[0] > max_coarse:
        if not _sa_extend_hierarchy(levels=levels, strength=strength, aggregate=aggregate, config=config):
            break

    _sa_print_setup_summary(levels=levels, print_info=print_info)

    return levels
