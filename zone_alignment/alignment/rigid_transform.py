"""Closed-form absolute orientation (Horn, 1987).

Given matched model-space and world-space points, the optimal rotation is the
unit quaternion maximizing q^T N q, i.e. the eigenvector of the 4x4 Horn
matrix N with the largest eigenvalue. The resulting pose is T_world_model.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from ..spatial import Pose3D, Quaternion, Vector3

logger = logging.getLogger(__name__)

MAX_POWER_ITERATIONS = 50
CONVERGENCE_EPS = 1e-9
COLLAPSE_EPS = 1e-12


class RigidTransformSolver:
    def __init__(self, max_iterations: int = MAX_POWER_ITERATIONS):
        self.max_iterations = max_iterations

    def solve_rigid_transform(
        self,
        model_points: Sequence[Vector3],
        world_points: Sequence[Vector3],
    ) -> Optional[Pose3D]:
        if len(model_points) != len(world_points) or len(model_points) < 3:
            return None

        model_centroid = centroid(model_points)
        world_centroid = centroid(world_points)
        centered_model = [p - model_centroid for p in model_points]
        centered_world = [p - world_centroid for p in world_points]

        covariance = cross_covariance(centered_model, centered_world)
        rotation = self._rotation_from_covariance(covariance)
        if rotation is None:
            logger.debug("absolute orientation failed for %d points", len(model_points))
            return None

        translation = world_centroid - rotation.rotate(model_centroid)
        return Pose3D(translation, rotation)

    def _rotation_from_covariance(self, covariance: np.ndarray) -> Optional[Quaternion]:
        eigen_vector = dominant_eigenvector(horn_matrix(covariance), self.max_iterations)
        if eigen_vector is None:
            return None
        w, x, y, z = (float(c) for c in eigen_vector)
        return Quaternion(x, y, z, w).normalized()


def centroid(points: Sequence[Vector3]) -> Vector3:
    if not points:
        return Vector3.zero()
    total = Vector3.zero()
    for p in points:
        total = total + p
    return total * (1.0 / len(points))


def cross_covariance(model_points: Sequence[Vector3], world_points: Sequence[Vector3]) -> np.ndarray:
    """M = sum(world_i ⊗ model_i), i.e. M[a, b] = sum(world_a * model_b)."""
    M = np.zeros((3, 3), dtype=np.float64)
    for m, w in zip(model_points, world_points):
        M += np.outer(w.as_array(), m.as_array())
    return M


def horn_matrix(covariance: np.ndarray) -> np.ndarray:
    """
    Build the symmetric 4x4 Horn matrix in [w, x, y, z] quaternion order.

    Horn's S_ab sums model_a * world_b, which is the transpose of the
    world ⊗ model cross-covariance.
    """
    S = covariance.T
    sxx, sxy, sxz = S[0]
    syx, syy, syz = S[1]
    szx, szy, szz = S[2]
    trace = sxx + syy + szz
    return np.array(
        [
            [trace, syz - szy, szx - sxz, sxy - syx],
            [syz - szy, sxx - syy - szz, sxy + syx, szx + sxz],
            [szx - sxz, sxy + syx, -sxx + syy - szz, syz + szy],
            [sxy - syx, szx + sxz, syz + szy, -sxx - syy + szz],
        ],
        dtype=np.float64,
    )


def dominant_eigenvector(
    matrix: np.ndarray,
    max_iterations: int = MAX_POWER_ITERATIONS,
) -> Optional[np.ndarray]:
    """
    Power iteration for the eigenvector of the largest eigenvalue.

    N is traceless, so its most negative eigenvalue can match the largest in
    magnitude (always the case for planar point sets). Iterating on
    N + ||N||_F * I keeps the eigenvectors but makes every eigenvalue
    non-negative, so the iteration converges to the largest algebraic one.

    The shift also squeezes the eigenvalue ratios towards 1, so the iteration
    matrix is squared (and rescaled) after every step: step k applies
    2^k powers of the shifted matrix to the seed.

    Returns:
        Unit 4-vector, or None if the iterate collapses to zero
    """
    power = matrix + np.linalg.norm(matrix) * np.eye(4)
    vector = np.array([1.0, 0.0, 0.0, 0.0])
    for _ in range(max_iterations):
        nxt = power @ vector
        norm = math.sqrt(float(nxt @ nxt))
        if norm < COLLAPSE_EPS:
            return None
        nxt = nxt / norm
        delta = float(np.max(np.abs(nxt - vector)))
        vector = nxt
        if delta < CONVERGENCE_EPS:
            break

        power = power @ power
        scale = float(np.linalg.norm(power))
        if scale < COLLAPSE_EPS:
            return None
        power = power / scale
    return vector
