"""Multi-marker refinement of the world-zone pose.

We solve for a small pose update dxi = [w, t] minimizing

    sum || (R0 * exp([w]x) * p + t0 + t) - q ||^2

over all (zone point p, observed world point q) pairs. Linearizing
exp([w]x) ~ I + [w]x gives, per point,

    [ -R0 [p]x | I ] dxi = q - (R0 * p + t0)

which is accumulated into 6x6 normal equations and solved once. Marker-derived
seeds are already close to the optimum, so a single Gauss-Newton step is used.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np

from ..linalg import skew, solve_linear_system
from ..spatial import Pose3D, Quaternion, Vector3

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerObservation:
    marker_id: str
    marker_pose_camera: Pose3D
    marker_size_meters: float
    t_marker_zone: Pose3D


@dataclass(frozen=True)
class RefinedPoseResult:
    world_zone_pose: Pose3D
    residual_error_mm: float
    used_markers: int


class MultiMarkerPoseRefiner:
    def refine_pose(
        self,
        camera_pose_world: Pose3D,
        observations: Sequence[MarkerObservation],
        initial_pose: Optional[Pose3D] = None,
    ) -> Optional[RefinedPoseResult]:
        """
        Fuse simultaneously observed markers into one world-zone pose.

        Args:
            camera_pose_world: T_world_camera for the frame
            observations: Per-marker camera-space poses with zone calibration
            initial_pose: Seed for the update; defaults to the first marker's
                T_world_marker ∘ T_marker_zone

        Returns:
            RefinedPoseResult, or None when there is nothing to solve or the
            normal equations are singular
        """
        if not observations:
            return None

        reference = initial_pose if initial_pose is not None else seed_pose(
            camera_pose_world, observations[0]
        )
        zone_points, world_points = build_correspondences(camera_pose_world, observations)
        if not zone_points:
            return None

        delta = solve_linearized_update(reference, zone_points, world_points)
        if delta is None:
            logger.debug("refinement normal equations are singular (%d markers)", len(observations))
            return None

        refined = apply_delta(reference, delta)
        return RefinedPoseResult(
            world_zone_pose=refined,
            residual_error_mm=residual_rms_mm(refined, zone_points, world_points),
            used_markers=len(observations),
        )


def seed_pose(camera_pose_world: Pose3D, observation: MarkerObservation) -> Pose3D:
    marker_world = camera_pose_world.compose(observation.marker_pose_camera)
    return marker_world.compose(observation.t_marker_zone)


def marker_reference_points(marker_size_meters: float) -> list[Vector3]:
    half = float(marker_size_meters) * 0.5
    return [
        Vector3(0.0, 0.0, 0.0),
        Vector3(half, 0.0, 0.0),
        Vector3(0.0, half, 0.0),
        Vector3(0.0, 0.0, half),
    ]


def build_correspondences(
    camera_pose_world: Pose3D,
    observations: Sequence[MarkerObservation],
) -> tuple[list[Vector3], list[Vector3]]:
    """Pair each marker-rig point in zone coordinates with its observed world position."""
    zone_points: list[Vector3] = []
    world_points: list[Vector3] = []
    for obs in observations:
        marker_world = camera_pose_world.compose(obs.marker_pose_camera)
        # t_marker_zone places the zone in the marker frame; its inverse maps
        # marker-frame points into zone coordinates.
        zone_from_marker = obs.t_marker_zone.inverse()
        for p in marker_reference_points(obs.marker_size_meters):
            zone_points.append(zone_from_marker.transform_point(p))
            world_points.append(marker_world.transform_point(p))
    return zone_points, world_points


def solve_linearized_update(
    pose: Pose3D,
    zone_points: Sequence[Vector3],
    world_points: Sequence[Vector3],
) -> Optional[np.ndarray]:
    if len(zone_points) != len(world_points):
        return None

    R0 = pose.rotation.to_rotation_matrix()
    ata = np.zeros((6, 6), dtype=np.float64)
    atb = np.zeros(6, dtype=np.float64)
    J = np.zeros((3, 6), dtype=np.float64)
    J[:, 3:] = np.eye(3)

    for p, q in zip(zone_points, world_points):
        residual = (q - pose.transform_point(p)).as_array()
        J[:, :3] = -(R0 @ skew(p.as_array()))
        ata += J.T @ J
        atb += J.T @ residual

    return solve_linear_system(ata, atb)


def apply_delta(reference: Pose3D, delta: np.ndarray) -> Pose3D:
    wx, wy, wz = float(delta[0]), float(delta[1]), float(delta[2])
    translation = Vector3(float(delta[3]), float(delta[4]), float(delta[5]))
    # First-order small-angle quaternion for exp([w]x).
    delta_rotation = Quaternion(wx * 0.5, wy * 0.5, wz * 0.5, 1.0).normalized()
    return Pose3D(reference.position + translation, reference.rotation * delta_rotation)


def residual_rms_mm(
    pose: Pose3D,
    zone_points: Sequence[Vector3],
    world_points: Sequence[Vector3],
) -> float:
    if not zone_points:
        return 0.0
    total = 0.0
    for p, q in zip(zone_points, world_points):
        error = q - pose.transform_point(p)
        total += error.dot(error)
    return math.sqrt(total / len(zone_points)) * 1000.0
