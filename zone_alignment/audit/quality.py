"""Immutable audit records describing an alignment at commit time."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..spatial import Vector3


@dataclass(frozen=True)
class AlignmentQuality:
    """
    Reprojection-error statistics in pixels at the camera's native resolution.

    Rough reading: below 2 px is audit grade, 2-5 px acceptable, above 5 px
    calls for re-detection or recalibration.
    """

    mean_px: float
    max_px: float
    samples: int

    def __post_init__(self):
        if not self.mean_px >= 0.0:
            raise ValueError(f"mean_px must be >= 0, was {self.mean_px}")
        if not self.max_px >= 0.0:
            raise ValueError(f"max_px must be >= 0, was {self.max_px}")
        if self.samples < 0:
            raise ValueError(f"samples must be >= 0, was {self.samples}")

    def as_dict(self) -> dict[str, Any]:
        return {"meanPx": self.mean_px, "maxPx": self.max_px, "samples": self.samples}


@dataclass(frozen=True)
class AlignmentSnapshot:
    """
    Versioned alignment record handed to the audit logger.

    ``gravity`` is the device gravity vector in the sensor frame (m/s^2);
    a level, screen-up device reads roughly (0, 0, -9.81).
    """

    SCHEMA_VERSION: ClassVar[int] = 1

    intrinsics_hash: str
    reprojection: AlignmentQuality
    gravity: Vector3
    schema_version: int = field(default=1, init=False)

    def __post_init__(self):
        if not self.intrinsics_hash or not self.intrinsics_hash.strip():
            raise ValueError("intrinsics_hash must not be blank")

    def as_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "intrinsicsHash": self.intrinsics_hash,
            "reprojection": self.reprojection.as_dict(),
            "gravity": {"x": self.gravity.x, "y": self.gravity.y, "z": self.gravity.z},
        }
