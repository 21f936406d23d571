import math

import numpy as np
import pytest

from zone_alignment.alignment.rigid_transform import (
    RigidTransformSolver,
    cross_covariance,
    dominant_eigenvector,
    horn_matrix,
)
from zone_alignment.spatial import Pose3D, Quaternion, Vector3

MODEL_POINTS = [
    Vector3(0.0, 0.0, 0.0),
    Vector3(1.0, 0.0, 0.0),
    Vector3(0.0, 1.2, 0.0),
    Vector3(0.0, 0.0, 0.8),
    Vector3(1.0, 1.0, 0.3),
    Vector3(-0.5, 0.4, 1.1),
]


def _apply(pose: Pose3D, points):
    return [pose.transform_point(p) for p in points]


def test_planar_square_quarter_turn():
    model = [Vector3(0, 0, 0), Vector3(1, 0, 0), Vector3(1, 1, 0), Vector3(0, 1, 0)]
    truth = Pose3D(
        Vector3(2.0, -1.0, 0.5),
        Quaternion.from_axis_angle(Vector3(0.0, 0.0, 1.0), math.pi / 2),
    )

    pose = RigidTransformSolver().solve_rigid_transform(model, _apply(truth, model))

    assert pose is not None
    assert np.allclose(pose.position.as_array(), truth.position.as_array(), atol=1e-6)
    assert pose.rotation.angular_distance(truth.rotation) < 1e-6


def test_recovers_general_rotation_and_translation():
    truth = Pose3D(
        Vector3(-0.3, 4.0, 1.25),
        Quaternion.from_axis_angle(Vector3(1.0, 2.0, 3.0), 1.0),
    )

    pose = RigidTransformSolver().solve_rigid_transform(MODEL_POINTS, _apply(truth, MODEL_POINTS))

    assert pose is not None
    assert np.allclose(pose.position.as_array(), truth.position.as_array(), atol=1e-6)
    assert pose.rotation.angular_distance(truth.rotation) < 1e-6
    assert pose.rotation.norm() == pytest.approx(1.0)


def test_pure_translation():
    truth = Pose3D(Vector3(0.1, 0.2, 0.3), Quaternion.identity())

    pose = RigidTransformSolver().solve_rigid_transform(MODEL_POINTS, _apply(truth, MODEL_POINTS))

    assert np.allclose(pose.position.as_array(), [0.1, 0.2, 0.3], atol=1e-9)
    assert pose.rotation.angular_distance(Quaternion.identity()) < 1e-6


def test_too_few_points_returns_none():
    solver = RigidTransformSolver()
    pts = MODEL_POINTS[:2]
    assert solver.solve_rigid_transform(pts, pts) is None


def test_mismatched_lengths_return_none():
    solver = RigidTransformSolver()
    assert solver.solve_rigid_transform(MODEL_POINTS, MODEL_POINTS[:4]) is None


def test_coincident_points_return_none():
    pts = [Vector3(1.0, 1.0, 1.0)] * 4
    assert RigidTransformSolver().solve_rigid_transform(pts, pts) is None


def test_solver_is_deterministic():
    truth = Pose3D(Vector3(0.5, 0.0, -0.5), Quaternion.from_axis_angle(Vector3(0.0, 1.0, 0.0), 0.6))
    world = _apply(truth, MODEL_POINTS)
    solver = RigidTransformSolver()

    assert solver.solve_rigid_transform(MODEL_POINTS, world) == solver.solve_rigid_transform(MODEL_POINTS, world)


def test_horn_matrix_is_symmetric_and_traceless():
    world = _apply(
        Pose3D(Vector3.zero(), Quaternion.from_axis_angle(Vector3(1.0, 0.0, 1.0), 0.4)),
        MODEL_POINTS,
    )
    N = horn_matrix(cross_covariance(MODEL_POINTS, world))

    assert np.allclose(N, N.T)
    assert np.trace(N) == pytest.approx(0.0, abs=1e-12)


def test_dominant_eigenvector_prefers_largest_algebraic_eigenvalue():
    # Eigenvalues 3, -5, 0, 0: |-5| dominates in magnitude but 3 is wanted.
    Q = np.eye(4) - 0.5 * np.ones((4, 4))
    N = Q @ np.diag([3.0, -5.0, 0.0, 0.0]) @ Q

    v = dominant_eigenvector(N)

    expected = Q[:, 0]
    assert abs(float(v @ expected)) == pytest.approx(1.0, abs=1e-9)


def test_dominant_eigenvector_zero_matrix():
    assert dominant_eigenvector(np.zeros((4, 4))) is None


def test_random_point_sets_are_recovered(rng):
    solver = RigidTransformSolver()
    for _ in range(200):
        count = int(rng.integers(4, 10))
        model = [Vector3.from_array(p) for p in rng.normal(size=(count, 3))]
        axis = Vector3.from_array(rng.normal(size=3))
        angle = float(rng.uniform(0.0, math.radians(170.0)))
        truth = Pose3D(
            Vector3.from_array(rng.uniform(-5.0, 5.0, size=3)),
            Quaternion.from_axis_angle(axis, angle),
        )

        pose = solver.solve_rigid_transform(model, _apply(truth, model))

        assert pose is not None
        assert pose.rotation.angular_distance(truth.rotation) < 1e-6, angle
        assert np.allclose(pose.position.as_array(), truth.position.as_array(), atol=1e-6)


def test_slowly_separating_eigenvalues_converge():
    # Top two eigenvalues 1.0 and 0.98: plain iteration needs thousands of steps.
    Q = np.eye(4) - 0.5 * np.ones((4, 4))
    N = Q @ np.diag([1.0, 0.98, 0.5, 0.2]) @ Q

    v = dominant_eigenvector(N)

    assert abs(float(v @ Q[:, 0])) == pytest.approx(1.0, abs=1e-12)
