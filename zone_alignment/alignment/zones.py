"""Static marker-to-zone calibration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional

from ..config import read_mapping
from ..spatial import Pose3D, Quaternion, Vector3

logger = logging.getLogger(__name__)

MIN_MARKER_SIZE_METERS = 0.05
MAX_MARKER_SIZE_METERS = 1.0


@dataclass(frozen=True)
class ZoneTransform:
    marker_id: str
    t_marker_zone: Pose3D
    marker_size_meters: float


class ZoneRegistry:
    def __init__(self, zones: Optional[Mapping[str, ZoneTransform]] = None):
        self._zones: dict[str, ZoneTransform] = dict(zones or {})

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, marker_id: str) -> bool:
        return marker_id in self._zones

    def get(self, marker_id: str) -> Optional[ZoneTransform]:
        zone = self._zones.get(marker_id)
        if zone is None:
            logger.debug("No zone configured for marker_id=%s", marker_id)
            return None
        if not MIN_MARKER_SIZE_METERS <= zone.marker_size_meters <= MAX_MARKER_SIZE_METERS:
            logger.warning(
                "Invalid marker_size_meters=%s for marker_id=%s. Expected range %s..%s.",
                zone.marker_size_meters,
                marker_id,
                MIN_MARKER_SIZE_METERS,
                MAX_MARKER_SIZE_METERS,
            )
            return None
        return zone

    @classmethod
    def from_file(cls, path: str | Path) -> "ZoneRegistry":
        return cls(load_zones(path))


def _vector(raw: Any, what: str) -> Vector3:
    if not isinstance(raw, dict):
        raise ValueError(f"{what} must be a mapping with x, y, z")
    return Vector3(float(raw["x"]), float(raw["y"]), float(raw["z"]))


def _pose(raw: Any) -> Pose3D:
    if not isinstance(raw, dict):
        raise ValueError("tMarkerZone must be a mapping with position and rotation")
    rot = raw.get("rotation")
    if not isinstance(rot, dict):
        raise ValueError("tMarkerZone.rotation must be a mapping with x, y, z, w")
    rotation = Quaternion(float(rot["x"]), float(rot["y"]), float(rot["z"]), float(rot["w"]))
    if rotation.norm() == 0.0:
        raise ValueError("tMarkerZone.rotation must not be a zero quaternion")
    return Pose3D(_vector(raw.get("position"), "tMarkerZone.position"), rotation.normalized())


def load_zones(path: str | Path) -> dict[str, ZoneTransform]:
    """
    Load zone calibration from JSON or YAML.

    Expected layout::

        {"zones": [{"markerId": "M1", "markerSizeMeters": 0.12,
                    "tMarkerZone": {"position": {"x": 0, "y": 0, "z": 0},
                                    "rotation": {"x": 0, "y": 0, "z": 0, "w": 1}}}]}
    """
    raw = read_mapping(path)
    entries = raw.get("zones", [])
    if not isinstance(entries, list):
        raise ValueError("zones must be a list")

    zones: dict[str, ZoneTransform] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("each zone entry must be a mapping")
        try:
            zone = ZoneTransform(
                marker_id=str(entry["markerId"]),
                t_marker_zone=_pose(entry["tMarkerZone"]),
                marker_size_meters=float(entry["markerSizeMeters"]),
            )
        except KeyError as exc:
            raise ValueError(f"zone entry is missing {exc.args[0]!r}") from exc
        zones[zone.marker_id] = zone
    return zones
