from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional


@dataclass
class DriftConfig:
    window_size: int = 20
    min_samples: int = 6
    degrade_threshold: float = 0.55
    recover_threshold: float = 0.65

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ScoringConfig:
    max_marker_count: float = 3.0
    marker_weight: float = 0.2
    recency_weight: float = 0.3
    residual_weight: float = 0.5
    residual_min_mm: float = 1.0  # at or below this the residual scores 1.0
    residual_max_mm: float = 15.0
    recency_horizon_s: float = 3.0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class AlignmentConfig:
    session_name: str = "zone"
    zones_path: Optional[str] = None
    multi_marker_threshold: int = 2
    event_min_interval_s: float = 1.0
    position_eps_m: float = 0.01
    angle_eps_rad: float = 0.05
    drift: DriftConfig = field(default_factory=DriftConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)

    def apply_overrides(self, **kwargs: Any) -> "AlignmentConfig":
        for key, value in kwargs.items():
            if value is not None and hasattr(self, key):
                setattr(self, key, value)
        return self


def _load_yaml(path: Path) -> dict[str, Any]:
    try:
        import yaml  # type: ignore
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise RuntimeError(
            "YAML config requested but PyYAML is not installed. "
            "Install with: pip install pyyaml"
        ) from exc
    with path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError("YAML config root must be a mapping")
    return data


def read_mapping(path: str | Path) -> dict[str, Any]:
    """Read a JSON or YAML file whose root is an object."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config not found: {p}")

    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = _load_yaml(p)
    else:
        with p.open("r", encoding="utf-8") as fp:
            raw = json.load(fp)

    if not isinstance(raw, dict):
        raise ValueError("Config root must be a JSON/YAML object")
    return raw


def _load_drift(raw: Any) -> DriftConfig:
    cfg = DriftConfig()
    if raw is None:
        return cfg
    if not isinstance(raw, dict):
        raise ValueError("drift must be a mapping")
    cfg.window_size = int(raw.get("window_size", cfg.window_size))
    cfg.min_samples = int(raw.get("min_samples", cfg.min_samples))
    cfg.degrade_threshold = float(raw.get("degrade_threshold", cfg.degrade_threshold))
    cfg.recover_threshold = float(raw.get("recover_threshold", cfg.recover_threshold))
    return cfg


def _load_scoring(raw: Any) -> ScoringConfig:
    cfg = ScoringConfig()
    if raw is None:
        return cfg
    if not isinstance(raw, dict):
        raise ValueError("scoring must be a mapping")
    for key in cfg.as_dict():
        if key in raw:
            setattr(cfg, key, float(raw[key]))
    return cfg


def load_config(path: str | Path) -> AlignmentConfig:
    raw = read_mapping(path)

    cfg = AlignmentConfig()
    cfg.session_name = str(raw.get("session_name", cfg.session_name))
    cfg.zones_path = raw.get("zones_path", cfg.zones_path)
    if cfg.zones_path is not None:
        cfg.zones_path = str(cfg.zones_path)
    cfg.multi_marker_threshold = int(raw.get("multi_marker_threshold", cfg.multi_marker_threshold))
    cfg.event_min_interval_s = float(raw.get("event_min_interval_s", cfg.event_min_interval_s))
    cfg.position_eps_m = float(raw.get("position_eps_m", cfg.position_eps_m))
    cfg.angle_eps_rad = float(raw.get("angle_eps_rad", cfg.angle_eps_rad))
    cfg.drift = _load_drift(raw.get("drift"))
    cfg.scoring = _load_scoring(raw.get("scoring"))
    return cfg
