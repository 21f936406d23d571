import json
from pathlib import Path

import pytest

from zone_alignment.alignment.zones import ZoneRegistry, ZoneTransform, load_zones
from zone_alignment.spatial import Pose3D, Quaternion, Vector3

ZONES = {
    "zones": [
        {
            "markerId": "M1",
            "markerSizeMeters": 0.12,
            "tMarkerZone": {
                "position": {"x": 0.5, "y": 0.0, "z": -1.0},
                "rotation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 2.0},
            },
        },
        {
            "markerId": "M2",
            "markerSizeMeters": 0.2,
            "tMarkerZone": {
                "position": {"x": 0.0, "y": 0.0, "z": 0.0},
                "rotation": {"x": 0.0, "y": 0.0, "z": 0.0, "w": 1.0},
            },
        },
    ]
}


def test_load_zones_json(tmp_path: Path):
    path = tmp_path / "zones.json"
    path.write_text(json.dumps(ZONES), encoding="utf-8")

    zones = load_zones(path)

    assert set(zones) == {"M1", "M2"}
    m1 = zones["M1"]
    assert m1.marker_size_meters == pytest.approx(0.12)
    assert m1.t_marker_zone.position == Vector3(0.5, 0.0, -1.0)
    assert m1.t_marker_zone.rotation == Quaternion(0.0, 0.0, 0.0, 1.0)


def test_load_zones_yaml(tmp_path: Path):
    pytest.importorskip("yaml")
    path = tmp_path / "zones.yaml"
    path.write_text(
        """
zones:
  - markerId: A
    markerSizeMeters: 0.1
    tMarkerZone:
      position: {x: 1.0, y: 2.0, z: 3.0}
      rotation: {x: 0.0, y: 0.0, z: 0.0, w: 1.0}
""",
        encoding="utf-8",
    )

    registry = ZoneRegistry.from_file(path)

    assert len(registry) == 1
    assert "A" in registry
    assert registry.get("A").t_marker_zone.position == Vector3(1.0, 2.0, 3.0)


def test_missing_key_is_reported(tmp_path: Path):
    path = tmp_path / "zones.json"
    broken = {"zones": [{"markerId": "M1", "tMarkerZone": ZONES["zones"][0]["tMarkerZone"]}]}
    path.write_text(json.dumps(broken), encoding="utf-8")

    with pytest.raises(ValueError, match="markerSizeMeters"):
        load_zones(path)


def test_zero_rotation_is_rejected(tmp_path: Path):
    path = tmp_path / "zones.json"
    entry = json.loads(json.dumps(ZONES["zones"][1]))
    entry["tMarkerZone"]["rotation"]["w"] = 0.0
    path.write_text(json.dumps({"zones": [entry]}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_zones(path)


def test_zones_must_be_a_list(tmp_path: Path):
    path = tmp_path / "zones.json"
    path.write_text(json.dumps({"zones": {"markerId": "M1"}}), encoding="utf-8")

    with pytest.raises(ValueError):
        load_zones(path)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_zones(tmp_path / "nope.json")


def test_registry_rejects_out_of_range_sizes():
    pose = Pose3D.identity()
    registry = ZoneRegistry(
        {
            "tiny": ZoneTransform("tiny", pose, 0.01),
            "huge": ZoneTransform("huge", pose, 1.5),
            "ok": ZoneTransform("ok", pose, 0.05),
        }
    )

    assert registry.get("tiny") is None
    assert registry.get("huge") is None
    assert registry.get("ok") is not None
    assert registry.get("unknown") is None
