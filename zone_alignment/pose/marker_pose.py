"""Single-marker pose from four image corners via homography decomposition."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..linalg import determinant3x3, invert3x3, solve_linear_system
from ..spatial import CameraIntrinsics, Pose3D, Quaternion, Vector2, Vector3

logger = logging.getLogger(__name__)

INSUFFICIENT_CORNERS = "insufficient_corners"
SINGULAR_HOMOGRAPHY = "singular_homography"
SINGULAR_INTRINSICS = "singular_intrinsics"
DEGENERATE_ROTATION = "degenerate_rotation"


@dataclass(frozen=True)
class DetectedMarker:
    """Detector output; corners are pixel coordinates ordered TL, TR, BR, BL."""

    id: str
    corners: Sequence[Vector2]
    timestamp_ns: int = 0


@dataclass(frozen=True)
class MarkerPoseEstimate:
    camera_pose: Optional[Pose3D] = None  # T_camera_marker
    world_pose: Optional[Pose3D] = None  # T_world_marker
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


def marker_object_points(marker_size_meters: float) -> list[Vector3]:
    """Square corners in the marker plane, Y-down to match image TL/TR/BR/BL."""
    half = marker_size_meters / 2.0
    return [
        Vector3(-half, -half, 0.0),
        Vector3(half, -half, 0.0),
        Vector3(half, half, 0.0),
        Vector3(-half, half, 0.0),
    ]


class MarkerPoseEstimator:
    """Planar PnP for square fiducials. Stateless and safe to share."""

    def estimate_marker_pose(
        self,
        intrinsics: CameraIntrinsics,
        marker: DetectedMarker,
        marker_size_meters: float,
        camera_pose_world: Pose3D,
    ) -> Optional[Pose3D]:
        """
        Estimate T_world_marker from the marker's corners.

        Args:
            intrinsics: Pinhole intrinsics of the frame
            marker: Detected marker with at least 4 ordered corners
            marker_size_meters: Physical edge length of the marker
            camera_pose_world: T_world_camera for the same frame

        Returns:
            Marker pose in world space, or None when the input is degenerate
        """
        result = self.estimate_with_diagnostics(
            intrinsics, marker, marker_size_meters, camera_pose_world
        )
        return result.world_pose

    def estimate_with_diagnostics(
        self,
        intrinsics: CameraIntrinsics,
        marker: DetectedMarker,
        marker_size_meters: float,
        camera_pose_world: Pose3D,
    ) -> MarkerPoseEstimate:
        if len(marker.corners) < 4:
            return MarkerPoseEstimate(failure=INSUFFICIENT_CORNERS)

        object_points = marker_object_points(float(marker_size_meters))
        homography = compute_homography(object_points, list(marker.corners)[:4])
        if homography is None:
            logger.debug("marker %s: homography system is singular", marker.id)
            return MarkerPoseEstimate(failure=SINGULAR_HOMOGRAPHY)

        k_inv = invert3x3(intrinsics.matrix())
        if k_inv is None:
            logger.debug("marker %s: intrinsics matrix is not invertible", marker.id)
            return MarkerPoseEstimate(failure=SINGULAR_INTRINSICS)

        decomposed = decompose_homography(k_inv, homography)
        if decomposed is None:
            logger.debug("marker %s: homography does not yield a rotation", marker.id)
            return MarkerPoseEstimate(failure=DEGENERATE_ROTATION)

        rotation, translation = decomposed
        marker_pose_camera = Pose3D(translation, rotation)
        return MarkerPoseEstimate(
            camera_pose=marker_pose_camera,
            world_pose=camera_pose_world.compose(marker_pose_camera),
        )


def compute_homography(
    object_points: Sequence[Vector3],
    image_points: Sequence[Vector2],
) -> Optional[np.ndarray]:
    """
    Direct Linear Transform for the plane-to-image homography, h33 fixed to 1.

    Each correspondence (X, Y) -> (u, v) contributes two rows of an 8x8
    system in the unknowns h11..h32.
    """
    a = np.zeros((8, 8), dtype=np.float64)
    b = np.zeros(8, dtype=np.float64)
    for i in range(4):
        X, Y = object_points[i].x, object_points[i].y
        u, v = float(image_points[i].x), float(image_points[i].y)
        r1 = i * 2
        r2 = r1 + 1

        a[r1, 0] = -X
        a[r1, 1] = -Y
        a[r1, 2] = -1.0
        a[r1, 6] = u * X
        a[r1, 7] = u * Y
        b[r1] = -u

        a[r2, 3] = -X
        a[r2, 4] = -Y
        a[r2, 5] = -1.0
        a[r2, 6] = v * X
        a[r2, 7] = v * Y
        b[r2] = -v

    h = solve_linear_system(a, b)
    if h is None:
        return None
    return np.array(
        [
            [h[0], h[1], h[2]],
            [h[3], h[4], h[5]],
            [h[6], h[7], 1.0],
        ],
        dtype=np.float64,
    )


def decompose_homography(
    k_inv: np.ndarray,
    homography: np.ndarray,
) -> Optional[tuple[Quaternion, Vector3]]:
    """
    Split H ~ K [r1 r2 t] into a rotation and a metric translation.

    Args:
        k_inv: Inverse intrinsics matrix
        homography: 3x3 plane-to-image homography

    Returns:
        (rotation, translation) of the marker in camera space, or None when
        the first two columns cannot be normalized
    """
    B = k_inv @ homography
    b1, b2, b3 = B[:, 0], B[:, 1], B[:, 2]

    norm_b1 = float(np.linalg.norm(b1))
    if norm_b1 == 0.0 or not math.isfinite(norm_b1):
        return None
    scale = 1.0 / norm_b1
    r1 = b1 * scale
    r2 = b2 * scale

    # Gram-Schmidt: remove the r1 component from r2.
    r2 = r2 - float(r1 @ r2) * r1
    norm_r2 = float(np.linalg.norm(r2))
    if norm_r2 == 0.0 or not math.isfinite(norm_r2):
        return None
    r2 = r2 / norm_r2
    r3 = np.cross(r1, r2)

    R = np.column_stack([r1, r2, r3])
    if determinant3x3(R) < 0.0:
        R = -R

    rotation = Quaternion.from_rotation_matrix(R)
    translation = Vector3.from_array(b3 * scale)
    return rotation, translation
