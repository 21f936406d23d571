import numpy as np
import pytest

from zone_alignment.pose.marker_pose import DetectedMarker, marker_object_points
from zone_alignment.spatial import CameraIntrinsics, Pose3D, Vector2


def project_corners(intrinsics: CameraIntrinsics, marker_pose_camera: Pose3D, size: float):
    """Pinhole projection of the canonical marker corners (no distortion)."""
    K = intrinsics.matrix()
    corners = []
    for p in marker_object_points(size):
        c = marker_pose_camera.transform_point(p).as_array()
        uvw = K @ c
        corners.append(Vector2(float(uvw[0] / uvw[2]), float(uvw[1] / uvw[2])))
    return corners


@pytest.fixture
def intrinsics():
    return CameraIntrinsics(fx=800.0, fy=800.0, cx=640.0, cy=360.0, width=1280, height=720)


@pytest.fixture
def make_marker(intrinsics):
    def _make(marker_id: str, marker_pose_camera: Pose3D, size: float = 0.1) -> DetectedMarker:
        return DetectedMarker(id=marker_id, corners=project_corners(intrinsics, marker_pose_camera, size))

    return _make


@pytest.fixture
def rng():
    return np.random.default_rng(7)


@pytest.fixture
def project(intrinsics):
    def _project(marker_pose_camera: Pose3D, size: float = 0.1):
        return project_corners(intrinsics, marker_pose_camera, size)

    return _project
