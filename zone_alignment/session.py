"""Per-frame alignment for one AR session.

Chains the estimators the way a frame callback consumes them: detector
output -> per-marker pose -> multi-marker refinement -> score -> drift
monitor. Any per-frame failure keeps the previously applied zone pose.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from .alignment.drift import DriftMonitor, DriftState
from .alignment.rigid_transform import RigidTransformSolver
from .alignment.scoring import compute_alignment_score
from .alignment.zones import ZoneRegistry
from .audit.intrinsics_hash import intrinsics_hash_v1
from .audit.payload import METHOD_MANUAL, METHOD_MARKER, AlignmentPayload
from .audit.quality import AlignmentQuality, AlignmentSnapshot
from .audit.reprojection import compute_reprojection_quality, merge_quality
from .config import AlignmentConfig
from .logging_utils import setup_logger
from .pose.marker_pose import DetectedMarker, MarkerPoseEstimator
from .pose.refiner import MarkerObservation, MultiMarkerPoseRefiner, RefinedPoseResult
from .sinks import AlignmentSink, NullSink
from .spatial import CameraIntrinsics, Pose3D, Vector3


@dataclass
class FrameAlignment:
    zone_pose: Optional[Pose3D]
    marker_world_poses: dict[str, Pose3D] = field(default_factory=dict)
    observations: list[MarkerObservation] = field(default_factory=list)
    failures: dict[str, str] = field(default_factory=dict)
    refined: Optional[RefinedPoseResult] = None
    residual_mm: float = 0.0
    quality: Optional[AlignmentQuality] = None
    score: float = 0.0
    drift: Optional[DriftState] = None
    updated: bool = False


class AlignmentSession:
    def __init__(
        self,
        config: Optional[AlignmentConfig] = None,
        zones: Optional[ZoneRegistry] = None,
        sink: Optional[AlignmentSink] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], float] = time.time,
    ):
        self.config = config or AlignmentConfig()
        if zones is None:
            zones = ZoneRegistry.from_file(self.config.zones_path) if self.config.zones_path else ZoneRegistry()
        self.zones = zones
        self.sink = sink or NullSink()
        self.logger = logger or setup_logger(self.config.session_name)
        self._clock = clock
        self._wall_clock = wall_clock

        self.estimator = MarkerPoseEstimator()
        self.refiner = MultiMarkerPoseRefiner()
        self.solver = RigidTransformSolver()
        drift_cfg = self.config.drift
        self.drift_monitor = DriftMonitor(
            window_size=drift_cfg.window_size,
            degrade_threshold=drift_cfg.degrade_threshold,
            recover_threshold=drift_cfg.recover_threshold,
            min_samples=drift_cfg.min_samples,
        )

        self.applied_pose: Optional[Pose3D] = None
        self.score = 0.0
        self._residual_mm = 0.0
        self._last_alignment_s: Optional[float] = None
        self._last_event_pose: Optional[Pose3D] = None
        self._last_event_s: Optional[float] = None

    @property
    def aligned(self) -> bool:
        return self.applied_pose is not None

    def process_frame(
        self,
        camera_pose_world: Pose3D,
        intrinsics: Optional[CameraIntrinsics],
        markers: Sequence[DetectedMarker],
    ) -> FrameAlignment:
        result = FrameAlignment(zone_pose=self.applied_pose)
        if intrinsics is None:
            if markers:
                self.logger.warning("camera intrinsics unavailable; skipping %d marker(s)", len(markers))
            return self._finish_stale(result)

        qualities: list[AlignmentQuality] = []
        for marker in markers:
            zone = self.zones.get(marker.id)
            if zone is None:
                self.logger.warning("No zone alignment configured for marker_id=%s", marker.id)
                result.failures[marker.id] = "unknown_zone"
                continue

            estimate = self.estimator.estimate_with_diagnostics(
                intrinsics, marker, zone.marker_size_meters, camera_pose_world
            )
            if not estimate.ok:
                self.logger.debug("pose estimation failed for marker %s: %s", marker.id, estimate.failure)
                result.failures[marker.id] = estimate.failure
                continue

            result.observations.append(
                MarkerObservation(
                    marker_id=marker.id,
                    marker_pose_camera=estimate.camera_pose,
                    marker_size_meters=zone.marker_size_meters,
                    t_marker_zone=zone.t_marker_zone,
                )
            )
            result.marker_world_poses[marker.id] = estimate.world_pose
            qualities.append(
                compute_reprojection_quality(
                    intrinsics, marker, zone.marker_size_meters, estimate.camera_pose
                )
            )

        if not result.observations:
            return self._finish_stale(result)

        first = result.observations[0]
        candidate = result.marker_world_poses[first.marker_id].compose(first.t_marker_zone)

        if len(result.observations) >= self.config.multi_marker_threshold:
            result.refined = self.refiner.refine_pose(
                camera_pose_world,
                result.observations,
                initial_pose=self.applied_pose or candidate,
            )
            if result.refined is None:
                self.logger.debug("multi-marker refinement failed; using marker %s", first.marker_id)

        if result.refined is not None:
            zone_pose = result.refined.world_zone_pose
            result.residual_mm = result.refined.residual_error_mm
        else:
            zone_pose = candidate

        now = self._clock()
        self.applied_pose = zone_pose
        self._residual_mm = result.residual_mm
        self._last_alignment_s = now

        result.zone_pose = zone_pose
        result.updated = True
        result.quality = merge_quality(qualities)
        result.score = self._score(len(result.observations), now)
        result.drift = self._update_drift(result.score)

        if self._should_emit(zone_pose, now):
            self._emit(
                AlignmentPayload.from_pose(
                    METHOD_MARKER,
                    zone_pose,
                    self._timestamp_ms(),
                    marker_ids=[first.marker_id],
                    alignment_score=result.score,
                ),
                zone_pose,
                now,
            )

        self.logger.debug(
            "markers=%d residual_mm=%.3f score=%.3f",
            len(result.observations),
            result.residual_mm,
            result.score,
        )
        return result

    def solve_manual_alignment(
        self,
        model_points: Sequence[Vector3],
        world_points: Sequence[Vector3],
    ) -> Optional[Pose3D]:
        """Align from tapped reference points (T_world_model); None keeps the current pose."""
        pose = self.solver.solve_rigid_transform(model_points, world_points)
        if pose is None:
            self.logger.warning("Failed to solve manual alignment from %d point(s)", len(model_points))
            return None

        now = self._clock()
        self.applied_pose = pose
        self._residual_mm = 0.0
        self._last_alignment_s = now
        self.score = 1.0
        self._update_drift(self.score)
        if self._should_emit(pose, now):
            self._emit(
                AlignmentPayload.from_pose(
                    METHOD_MANUAL,
                    pose,
                    self._timestamp_ms(),
                    num_points=len(model_points),
                    alignment_score=self.score,
                ),
                pose,
                now,
            )
        self.logger.info("manual alignment applied from %d points", len(model_points))
        return pose

    def build_snapshot(
        self,
        intrinsics: CameraIntrinsics,
        quality: AlignmentQuality,
        gravity: Vector3,
    ) -> AlignmentSnapshot:
        return AlignmentSnapshot(
            intrinsics_hash=intrinsics_hash_v1(intrinsics),
            reprojection=quality,
            gravity=gravity,
        )

    def reset(self) -> None:
        self.applied_pose = None
        self.score = 0.0
        self._residual_mm = 0.0
        self._last_alignment_s = None
        self._last_event_pose = None
        self._last_event_s = None
        self.drift_monitor.reset()

    def close(self) -> None:
        self.sink.close()
        self.logger.info("alignment session closed")

    def _finish_stale(self, result: FrameAlignment) -> FrameAlignment:
        result.score = self._score(0, self._clock())
        result.drift = self._update_drift(result.score)
        return result

    def _score(self, marker_count: int, now: float) -> float:
        elapsed = None if self._last_alignment_s is None else now - self._last_alignment_s
        self.score = compute_alignment_score(
            marker_count, self._residual_mm, elapsed, self.aligned, self.config.scoring
        )
        return self.score

    def _update_drift(self, score: float) -> Optional[DriftState]:
        if not self.aligned:
            self.drift_monitor.reset()
            return None
        state = self.drift_monitor.update(score)
        if state.changed:
            self.logger.info(
                "alignment %s (average score %.3f)",
                "degraded" if state.is_degraded else "recovered",
                float(state.average_score),
            )
            self.sink.write_drift(state, self._timestamp_ms())
        return state

    def _should_emit(self, pose: Pose3D, now: float) -> bool:
        if self._last_event_s is not None and now - self._last_event_s < self.config.event_min_interval_s:
            return False
        last = self._last_event_pose
        if last is None:
            return True
        moved = (pose.position - last.position).norm() > self.config.position_eps_m
        turned = last.rotation.angular_distance(pose.rotation) > self.config.angle_eps_rad
        return moved or turned

    def _emit(self, payload: AlignmentPayload, pose: Pose3D, now: float) -> None:
        self._last_event_pose = pose
        self._last_event_s = now
        self.sink.write_alignment(payload)

    def _timestamp_ms(self) -> int:
        return int(self._wall_clock() * 1000)
