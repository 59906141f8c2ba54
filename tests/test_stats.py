from __future__ import annotations

from types import SimpleNamespace

from deepthink.services.stats import compute_aggregate_metrics


def test_aggregate_only_counts_completed_scores() -> None:
    sessions = [
        SimpleNamespace(is_complete=True, final_score=10.0),
        SimpleNamespace(is_complete=True, final_score=-25.0),
        SimpleNamespace(is_complete=False, final_score=None),
    ]

    metrics = compute_aggregate_metrics(sessions)

    assert metrics.total_sessions == 3
    assert metrics.completed_sessions == 2
    assert metrics.average_score == -7.5
    assert metrics.best_score == 10.0


def test_aggregate_with_no_sessions() -> None:
    metrics = compute_aggregate_metrics([])
    assert metrics.total_sessions == 0
    assert metrics.average_score is None
    assert metrics.best_score is None
