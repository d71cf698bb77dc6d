"""Steady-state and segment-average solutions for augmented magnetisation matrices.

An augmented matrix ``X`` of size N x N acts on vectors whose last entry is 1,
so the upper-left (N-1) x (N-1) block is the linear part and the upper-right
column is the constant offset.
"""

from __future__ import annotations

import numpy as np


def _check_square(x: np.ndarray, name: str) -> None:
    if x.ndim != 2 or x.shape[0] != x.shape[1]:
        raise ValueError(f"{name} must be a square matrix, got shape {x.shape}")
    if x.shape[0] < 2:
        raise ValueError(f"{name} must be at least 2 x 2 to be augmented")


def solve_steady_state(x) -> np.ndarray:
    """Return the augmented fixed point ``m`` with ``x @ m == m`` and ``m[-1] == 1``."""
    mat = np.asarray(x, dtype=float)
    _check_square(mat, "x")
    n = mat.shape[0]
    reduced = (mat - np.eye(n))[: n - 1, : n - 1]
    rhs = -mat[: n - 1, n - 1]
    m_ss = np.linalg.solve(reduced, rhs)
    return np.append(m_ss, 1.0)


def geometric_avg(x, xn, a, n: int) -> np.ndarray:
    """Mean of ``x**k @ a`` over ``k = 0 .. n-1``, without the augmented entry.

    ``xn`` must be ``x`` raised to the power ``n``.
    """
    mat = np.asarray(x, dtype=float)
    mat_n = np.asarray(xn, dtype=float)
    vec = np.asarray(a, dtype=float).ravel()
    _check_square(mat, "x")
    if mat_n.shape != mat.shape:
        raise ValueError("x and xn must have the same shape")
    size = mat.shape[0]
    if vec.size != size:
        raise ValueError(f"a must have {size} entries, got {vec.size}")
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    identity = np.eye(size)
    lhs = identity - mat
    rhs = ((identity - mat_n) @ vec)[: size - 1] - n * lhs[: size - 1, size - 1]
    return np.linalg.solve(lhs[: size - 1, : size - 1], rhs) / n