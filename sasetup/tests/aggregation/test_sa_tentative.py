"""Tests for the tentative prolongator wrapper."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.sparse import csr_array

from sasetup.aggregation.sa.tentative import _sa_build_tentative, fit_candidates


def _aggop(assignment, n_aggs):
    assignment = np.asarray(assignment)
    rows = np.flatnonzero(assignment >= 0)
    return csr_array((np.ones(rows.size, dtype=np.int8), (rows, assignment[rows])),
                     shape=(assignment.size, n_aggs))


def test_doc_example():
    AggOp = csr_array(np.array([[1, 0], [1, 0], [0, 1], [0, 1]]))
    Q, R = fit_candidates(AggOp, np.ones((4, 1)))
    assert Q.format == "bsr"
    assert_allclose(Q.toarray(), np.kron(np.eye(2), np.ones((2, 1))) / np.sqrt(2))
    assert_allclose(R, np.full((2, 1), np.sqrt(2)))


@pytest.mark.parametrize("K1,K2", [(1, 1), (1, 2), (2, 3), (3, 3)])
def test_factorization_and_orthonormality(K1, K2):
    rng = np.random.default_rng(K1 * 10 + K2)
    assignment = [0, 0, 1, 2, 1, 1, 2, 0, 2]
    AggOp = _aggop(assignment, 3)
    B = rng.standard_normal((len(assignment) * K1, K2))

    Q, R = fit_candidates(AggOp, B)

    assert Q.shape == (len(assignment) * K1, 3 * K2)
    assert Q.blocksize == (K1, K2)
    assert R.shape == (3 * K2, K2)
    assert_allclose(Q @ R, B, atol=1e-12)
    assert_allclose((Q.T @ Q).toarray(), np.eye(3 * K2), atol=1e-12)


def test_complex_candidates():
    rng = np.random.default_rng(9)
    AggOp = _aggop([0, 0, 0, 1, 1, 1], 2)
    B = rng.standard_normal((6, 2)) + 1j * rng.standard_normal((6, 2))

    Q, R = fit_candidates(AggOp, B)
    assert_allclose(Q @ R, B, atol=1e-12)
    assert_allclose((Q.conj().T @ Q).toarray(), np.eye(4), atol=1e-12)


def test_isolated_rows_are_zero():
    AggOp = _aggop([0, -1, 0, 1, 1], 2)
    B = np.ones((5, 1))
    Q, R = fit_candidates(AggOp, B)
    Qd = Q.toarray()
    assert_allclose(Qd[1], 0.0)
    assert_allclose((Q @ R)[[0, 2, 3, 4]], B[[0, 2, 3, 4]])


def test_integer_candidates_are_promoted():
    AggOp = _aggop([0, 0, 1, 1], 2)
    Q, R = fit_candidates(AggOp, np.ones((4, 1), dtype=int))
    assert Q.dtype == np.float64
    assert R.dtype == np.float64


def test_argument_checks():
    with pytest.raises(TypeError):
        fit_candidates(np.eye(3), np.ones((3, 1)))
    with pytest.raises(ValueError):
        fit_candidates(_aggop([0, 0, 1], 2), np.ones(3))
    with pytest.raises(ValueError):
        fit_candidates(_aggop([0, 0, 1], 2), np.ones((4, 1)))


def test_build_tentative_counts_dropped_columns():
    AggOp = _aggop([0, 0, 1, 1, 1], 2)
    b = np.arange(1.0, 6.0)
    B = np.column_stack([b, np.where(np.arange(5) < 2, 3 * b, np.arange(5.0) ** 2)])

    tent = _sa_build_tentative(AggOp=AggOp, B=B, tol=1e-10)
    # second candidate is a multiple of the first on aggregate 0 only
    assert tent.n_dropped == 1
    assert tent.Bc.shape == (4, 2)
    assert tent.Bc[1, 1] == 0.0
    assert tent.Bc[3, 1] != 0.0


def test_build_tentative_empty_aggregate():
    AggOp = _aggop([0, 0, 2, 2], 3)
    tent = _sa_build_tentative(AggOp=AggOp, B=np.ones((4, 1)), tol=1e-10)
    assert tent.T.shape == (4, 3)
    assert_allclose(tent.T.toarray()[:, 1], 0.0)
    assert_allclose(tent.Bc.ravel(), [np.sqrt(2), 0.0, np.sqrt(2)])
    assert tent.n_dropped == 0
