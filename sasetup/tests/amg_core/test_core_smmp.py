"""Tests for the pattern-restricted BSR product kernel."""

from __future__ import annotations

import numpy as np
import pytest
from numpy.testing import assert_allclose
from scipy.sparse import bsr_array, csr_array

from sasetup.amg_core import incomplete_mat_mult_bsr


def _sparse_dense(rng, shape, density, dtype=np.float64):
    D = rng.standard_normal(shape) * (rng.random(shape) < density)
    if dtype == np.complex128:
        D = D + 1j * rng.standard_normal(shape) * (D != 0)
    return D


def _expected_on_pattern(S: bsr_array, full: np.ndarray) -> np.ndarray:
    R, C = S.blocksize
    out = np.empty(S.data.shape, dtype=full.dtype)
    for i in range(S.shape[0] // R):
        for k in range(S.indptr[i], S.indptr[i + 1]):
            j = S.indices[k]
            out[k] = full[i * R:(i + 1) * R, j * C:(j + 1) * C]
    return out


def _run(A: bsr_array, B: bsr_array, S: bsr_array, Sx: np.ndarray) -> None:
    incomplete_mat_mult_bsr(
        A.indptr, A.indices, A.data,
        B.indptr, B.indices, B.data,
        S.indptr, S.indices, Sx,
        A.shape[0] // A.blocksize[0], S.shape[1] // S.blocksize[1],
        A.blocksize[0], A.blocksize[1], B.blocksize[1],
    )


@pytest.mark.parametrize("dtype", [np.float64, np.complex128])
def test_scalar_blocks_match_restricted_product(dtype):
    rng = np.random.default_rng(1)
    Ad = _sparse_dense(rng, (8, 6), 0.4, dtype)
    Bd = _sparse_dense(rng, (6, 5), 0.4, dtype)
    mask = rng.random((8, 5)) < 0.5

    A = csr_array(Ad).tobsr(blocksize=(1, 1))
    B = csr_array(Bd).tobsr(blocksize=(1, 1))
    S = csr_array(mask.astype(float)).tobsr(blocksize=(1, 1))

    Sx = np.zeros(S.data.shape, dtype=dtype)
    _run(A, B, S, Sx)

    assert_allclose(Sx, _expected_on_pattern(S, Ad @ Bd), atol=1e-12)


def test_rectangular_blocks():
    rng = np.random.default_rng(2)
    Ad = _sparse_dense(rng, (6, 9), 0.5)
    Bd = _sparse_dense(rng, (9, 4), 0.5)
    A = bsr_array(Ad, blocksize=(2, 3))
    B = bsr_array(Bd, blocksize=(3, 2))
    S = bsr_array(np.ones((6, 4)), blocksize=(2, 2))

    Sx = np.zeros(S.data.shape)
    _run(A, B, S, Sx)

    assert_allclose(Sx, _expected_on_pattern(S, Ad @ Bd), atol=1e-12)


def test_accumulates_and_leaves_rest_untouched():
    rng = np.random.default_rng(4)
    Ad = _sparse_dense(rng, (5, 5), 0.6) + np.eye(5)
    Bd = _sparse_dense(rng, (5, 5), 0.6) + np.eye(5)
    A = csr_array(Ad).tobsr(blocksize=(1, 1))
    B = csr_array(Bd).tobsr(blocksize=(1, 1))
    S = csr_array(np.eye(5) + np.eye(5, k=1)).tobsr(blocksize=(1, 1))

    nnz = S.data.shape[0]
    # two trailing sentinel slots past the pattern
    Sx = np.ones((nnz + 2, 1, 1))
    Sx[nnz:] = -7.0
    _run(A, B, S, Sx)

    assert_allclose(Sx[:nnz], 1.0 + _expected_on_pattern(S, Ad @ Bd), atol=1e-12)
    assert_allclose(Sx[nnz:], -7.0)


def test_unsorted_pattern():
    rng = np.random.default_rng(6)
    Ad = _sparse_dense(rng, (4, 4), 0.7) + np.eye(4)
    A = csr_array(Ad).tobsr(blocksize=(1, 1))

    indptr = np.array([0, 3, 5, 7, 8], dtype=np.int32)
    indices = np.array([3, 0, 1, 2, 0, 3, 1, 2], dtype=np.int32)
    S = bsr_array((np.ones((8, 1, 1)), indices, indptr), shape=(4, 4))

    Sx = np.zeros((8, 1, 1))
    _run(A, A, S, Sx)

    assert_allclose(Sx, _expected_on_pattern(S, Ad @ Ad), atol=1e-12)
