import pytest

from zone_alignment.alignment.scoring import compute_alignment_score, recency_score, residual_score
from zone_alignment.config import ScoringConfig


def test_unaligned_scores_zero():
    assert compute_alignment_score(3, 0.0, 0.0, aligned=False) == 0.0


def test_fresh_multi_marker_alignment_scores_one():
    assert compute_alignment_score(3, 0.5, 0.0, aligned=True) == pytest.approx(1.0)


def test_single_fresh_marker():
    # 1/3 * 0.2 + 1.0 * 0.3 + 1.0 * 0.5
    assert compute_alignment_score(1, 0.0, 0.0, aligned=True) == pytest.approx(0.2 / 3 + 0.8)


def test_stale_alignment_without_markers():
    # Only the residual term remains once the recency horizon has passed.
    assert compute_alignment_score(0, 0.0, 10.0, aligned=True) == pytest.approx(0.5)


def test_residual_term():
    cfg = ScoringConfig()
    assert residual_score(1.0, cfg) == 1.0
    assert residual_score(7.5, cfg) == pytest.approx(0.5)
    assert residual_score(30.0, cfg) == 0.0


def test_recency_term():
    cfg = ScoringConfig()
    assert recency_score(None, cfg) == 0.0
    assert recency_score(1.5, cfg) == pytest.approx(0.5)
    assert recency_score(5.0, cfg) == 0.0


def test_custom_weights():
    cfg = ScoringConfig(marker_weight=1.0, recency_weight=0.0, residual_weight=0.0, max_marker_count=2.0)
    assert compute_alignment_score(1, 100.0, None, aligned=True, cfg=cfg) == pytest.approx(0.5)
