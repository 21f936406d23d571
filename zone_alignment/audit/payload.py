from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..spatial import Pose3D, Vector3

METHOD_MARKER = "marker"
METHOD_MANUAL = "manual"


@dataclass(frozen=True)
class AlignmentPayload:
    """Alignment event body; rotation is roll/pitch/yaw in degrees."""

    method: str
    timestamp_ms: int
    marker_ids: list[str] = field(default_factory=list)
    num_points: Optional[int] = None
    alignment_score: Optional[float] = None
    world_position: Optional[Vector3] = None
    world_rotation_euler: Optional[Vector3] = None

    @classmethod
    def from_pose(
        cls,
        method: str,
        pose: Pose3D,
        timestamp_ms: int,
        marker_ids: Optional[list[str]] = None,
        num_points: Optional[int] = None,
        alignment_score: Optional[float] = None,
    ) -> "AlignmentPayload":
        return cls(
            method=method,
            timestamp_ms=timestamp_ms,
            marker_ids=list(marker_ids or []),
            num_points=num_points,
            alignment_score=alignment_score,
            world_position=pose.position,
            world_rotation_euler=pose.rotation.to_euler_degrees(),
        )

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "method": self.method,
            "markerIds": list(self.marker_ids),
            "timestamp": self.timestamp_ms,
        }
        if self.num_points is not None:
            out["numPoints"] = self.num_points
        if self.alignment_score is not None:
            out["alignmentScore"] = self.alignment_score
        if self.world_position is not None:
            out["worldPosition"] = _vec(self.world_position)
        if self.world_rotation_euler is not None:
            out["worldRotationEuler"] = _vec(self.world_rotation_euler)
        return out


def _vec(v: Vector3) -> dict[str, float]:
    return {"x": v.x, "y": v.y, "z": v.z}
