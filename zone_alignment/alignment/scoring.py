"""Per-frame alignment quality score fed to the drift monitor."""

from __future__ import annotations

from typing import Optional

from ..config import ScoringConfig


def _clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


def residual_score(residual_mm: float, cfg: ScoringConfig) -> float:
    if residual_mm <= cfg.residual_min_mm:
        return 1.0
    return _clamp01(1.0 - residual_mm / cfg.residual_max_mm)


def recency_score(seconds_since_alignment: Optional[float], cfg: ScoringConfig) -> float:
    if seconds_since_alignment is None:
        return 0.0
    return _clamp01(1.0 - seconds_since_alignment / cfg.recency_horizon_s)


def compute_alignment_score(
    marker_count: int,
    residual_mm: float,
    seconds_since_alignment: Optional[float],
    aligned: bool,
    cfg: Optional[ScoringConfig] = None,
) -> float:
    """
    Weighted blend of marker coverage, alignment recency and residual error.

    Args:
        marker_count: Markers contributing to the current zone pose
        residual_mm: RMS refinement residual (0 for single-marker poses)
        seconds_since_alignment: Time since the pose was last set, None if never
        aligned: Whether any zone pose has been applied this session
        cfg: Weights and normalization constants

    Returns:
        Score in [0, 1]; 0 when nothing is aligned
    """
    if not aligned:
        return 0.0
    cfg = cfg or ScoringConfig()
    markers = _clamp01(marker_count / cfg.max_marker_count)
    score = (
        markers * cfg.marker_weight
        + recency_score(seconds_since_alignment, cfg) * cfg.recency_weight
        + residual_score(residual_mm, cfg) * cfg.residual_weight
    )
    return _clamp01(score)
