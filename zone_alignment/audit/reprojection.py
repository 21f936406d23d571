from __future__ import annotations

import cv2
import numpy as np

from ..pose.marker_pose import DetectedMarker, marker_object_points
from ..spatial import CameraIntrinsics, Pose3D
from .quality import AlignmentQuality


def project_marker_corners(
    intrinsics: CameraIntrinsics,
    marker_size_meters: float,
    marker_pose_camera: Pose3D,
) -> np.ndarray:
    """
    Project the canonical marker corners into the image.

    Args:
        intrinsics: Pinhole intrinsics (no distortion is applied)
        marker_size_meters: Physical edge length of the marker
        marker_pose_camera: T_camera_marker

    Returns:
        (4, 2) pixel coordinates ordered TL, TR, BR, BL
    """
    object_points = np.array(
        [p.as_array() for p in marker_object_points(marker_size_meters)], dtype=np.float64
    )
    rvec, tvec = marker_pose_camera.to_rvec_tvec()
    projected, _ = cv2.projectPoints(
        object_points, rvec, tvec, intrinsics.matrix(), np.zeros(5, dtype=np.float64)
    )
    return projected.reshape(-1, 2)


def reprojection_errors(
    intrinsics: CameraIntrinsics,
    marker: DetectedMarker,
    marker_size_meters: float,
    marker_pose_camera: Pose3D,
) -> np.ndarray:
    """Per-corner pixel distance between observed and projected corners."""
    observed = np.array([[c.x, c.y] for c in list(marker.corners)[:4]], dtype=np.float64)
    projected = project_marker_corners(intrinsics, marker_size_meters, marker_pose_camera)
    n = min(len(observed), len(projected))
    return np.linalg.norm(observed[:n] - projected[:n], axis=1)


def compute_reprojection_quality(
    intrinsics: CameraIntrinsics,
    marker: DetectedMarker,
    marker_size_meters: float,
    marker_pose_camera: Pose3D,
) -> AlignmentQuality:
    errors = reprojection_errors(intrinsics, marker, marker_size_meters, marker_pose_camera)
    if errors.size == 0:
        return AlignmentQuality(mean_px=0.0, max_px=0.0, samples=0)
    return AlignmentQuality(
        mean_px=float(errors.mean()),
        max_px=float(errors.max()),
        samples=int(errors.size),
    )


def merge_quality(qualities: list[AlignmentQuality]) -> AlignmentQuality:
    """Pool several per-marker statistics into one sample-weighted record."""
    samples = sum(q.samples for q in qualities)
    if samples == 0:
        return AlignmentQuality(mean_px=0.0, max_px=0.0, samples=0)
    mean = sum(q.mean_px * q.samples for q in qualities) / samples
    return AlignmentQuality(
        mean_px=mean,
        max_px=max(q.max_px for q in qualities),
        samples=samples,
    )
