"""Tests for the fit_candidates kernel."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose

from sasetup.amg_core import fit_candidates


def _fit(aggregates, n_row, B, K1, tol=1e-10):
    """Run the kernel for aggregates given as lists of fine nodes."""
    K2 = B.shape[1]
    Ap = np.concatenate([[0], np.cumsum([len(a) for a in aggregates])]).astype(np.int32)
    Ai = np.concatenate([np.asarray(a, dtype=np.int32) for a in aggregates]) if Ap[-1] else np.empty(0, np.int32)
    n_col = len(aggregates)
    Ax = np.empty((int(Ap[-1]), K1, K2), dtype=B.dtype)
    R = np.empty((n_col, K2, K2), dtype=B.dtype)
    fit_candidates(n_row, n_col, K1, K2, Ap, Ai, Ax, np.ascontiguousarray(B), R, tol)
    return Ap, Ai, Ax, R


def test_constant_candidate():
    B = np.ones((4, 1))
    Ap, Ai, Ax, R = _fit([[0, 1], [2, 3]], 4, B, K1=1)
    assert_allclose(Ax.ravel(), np.full(4, 1 / np.sqrt(2)))
    assert_allclose(R.ravel(), [np.sqrt(2), np.sqrt(2)])


@pytest.mark.parametrize("dtype", [np.float64, np.complex128])
def test_orthonormal_columns_and_factorization(dtype):
    rng = np.random.default_rng(7)
    K1, K2 = 2, 3
    n_row = 6
    B = rng.standard_normal((n_row * K1, K2))
    if dtype == np.complex128:
        B = B + 1j * rng.standard_normal(B.shape)

    aggregates = [[0, 2, 4], [1, 3, 5]]
    Ap, Ai, Ax, R = _fit(aggregates, n_row, B, K1)

    Bb = B.reshape(n_row, K1, K2)
    for j, members in enumerate(aggregates):
        Q = Ax[Ap[j]:Ap[j + 1]].reshape(-1, K2)
        assert_allclose(Q.conj().T @ Q, np.eye(K2), atol=1e-12)
        assert_allclose(np.tril(R[j], -1), 0.0)
        assert_allclose(Q @ R[j], Bb[members].reshape(-1, K2), atol=1e-12)


def test_dependent_candidate_is_dropped():
    b = np.array([1.0, 2.0, 3.0])
    B = np.column_stack([b, 2 * b])
    Ap, Ai, Ax, R = _fit([[0, 1, 2]], 3, B, K1=1)

    Q = Ax.reshape(-1, 2)
    assert R[0, 1, 1] == 0.0
    assert_allclose(Q[:, 1], 0.0)
    assert_allclose(R[0, 0, 1], 2 * np.linalg.norm(b))
    assert_allclose(Q[:, 0], b / np.linalg.norm(b))


def test_zero_candidate_on_aggregate():
    B = np.array([[1.0], [1.0], [0.0], [0.0]])
    Ap, Ai, Ax, R = _fit([[0, 1], [2, 3]], 4, B, K1=1)
    assert R[1, 0, 0] == 0.0
    assert_allclose(Ax[2:].ravel(), 0.0)


def test_empty_aggregate_gives_zero_block():
    B = np.ones((2, 2)) + np.eye(2)
    Ap, Ai, Ax, R = _fit([[0, 1], []], 2, B, K1=1)
    assert_allclose(R[1], 0.0)
    assert R[0, 0, 0] > 0
