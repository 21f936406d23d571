"""Fixed-size dense solvers used by the pose estimators.

These operate on small (<= 8x8) systems and are written out by hand instead
of going through ``np.linalg`` so that the pivot threshold is explicit and a
near-singular system yields ``None`` rather than an exception or a
silently huge solution.
"""

from __future__ import annotations

from typing import Optional

import numpy as np

PIVOT_EPSILON = 1e-9


def solve_linear_system(
    a: np.ndarray,
    b: np.ndarray,
    pivot_eps: float = PIVOT_EPSILON,
) -> Optional[np.ndarray]:
    """
    Solve ``a @ x = b`` by Gauss-Jordan elimination with partial pivoting.

    Args:
        a: Square coefficient matrix (n, n)
        b: Right-hand side (n,)
        pivot_eps: Smallest acceptable pivot magnitude

    Returns:
        Solution vector (n,), or None if any pivot falls below ``pivot_eps``
    """
    n = b.shape[0]
    augmented = np.zeros((n, n + 1), dtype=np.float64)
    augmented[:, :n] = a
    augmented[:, n] = b

    for col in range(n):
        pivot = col
        for row in range(col + 1, n):
            if abs(augmented[row, col]) > abs(augmented[pivot, col]):
                pivot = row
        if abs(augmented[pivot, col]) < pivot_eps:
            return None
        if pivot != col:
            augmented[[col, pivot]] = augmented[[pivot, col]]

        augmented[col, col:] /= augmented[col, col]
        for row in range(n):
            if row == col:
                continue
            factor = augmented[row, col]
            augmented[row, col:] -= factor * augmented[col, col:]

    return augmented[:, n].copy()


def determinant3x3(m: np.ndarray) -> float:
    return float(
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )


def invert3x3(m: np.ndarray, det_eps: float = PIVOT_EPSILON) -> Optional[np.ndarray]:
    """Adjugate inverse of a 3x3 matrix; None when |det| < det_eps."""
    det = determinant3x3(m)
    if abs(det) < det_eps:
        return None
    inv = np.empty((3, 3), dtype=np.float64)
    inv[0, 0] = m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1]
    inv[0, 1] = m[0, 2] * m[2, 1] - m[0, 1] * m[2, 2]
    inv[0, 2] = m[0, 1] * m[1, 2] - m[0, 2] * m[1, 1]
    inv[1, 0] = m[1, 2] * m[2, 0] - m[1, 0] * m[2, 2]
    inv[1, 1] = m[0, 0] * m[2, 2] - m[0, 2] * m[2, 0]
    inv[1, 2] = m[0, 2] * m[1, 0] - m[0, 0] * m[1, 2]
    inv[2, 0] = m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0]
    inv[2, 1] = m[0, 1] * m[2, 0] - m[0, 0] * m[2, 1]
    inv[2, 2] = m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0]
    return inv / det


def skew(v) -> np.ndarray:
    """Cross-product matrix [v]x such that skew(v) @ u == v x u."""
    x, y, z = float(v[0]), float(v[1]), float(v[2])
    return np.array(
        [
            [0.0, -z, y],
            [z, 0.0, -x],
            [-y, x, 0.0],
        ],
        dtype=np.float64,
    )
