"""Scalar primitives used by the setup kernels.

All helpers are generic over NumPy real and complex dtypes. For real inputs
`conjugate` is the identity and `mynormsq` is the plain square.
"""

from __future__ import annotations

import numpy as np


def mynorm(x):
    """Magnitude of a scalar or elementwise magnitude of an array."""
    return np.abs(x)


def mynormsq(x):
    """Squared magnitude, computed without a square root."""
    x = np.asarray(x)
    if np.iscomplexobj(x):
        return x.real * x.real + x.imag * x.imag
    return x * x


def conjugate(x):
    """Complex conjugate (identity on real data)."""
    return np.conjugate(x)


def dot(x, y):
    """Return ``sum(conj(y) * x)``, the inner product that is linear in `x`."""
    return np.vdot(y, x)


def gemm(a: np.ndarray, b: np.ndarray, c: np.ndarray, *, overwrite: bool = False) -> np.ndarray:
    """Dense product ``c += a @ b`` (or ``c = a @ b`` with `overwrite`).

    `c` is updated in place and returned. Leading batch dimensions follow
    NumPy's matmul broadcasting.
    """
    if overwrite:
        np.matmul(a, b, out=c)
    else:
        c += a @ b
    return c
