"""Aggregate metrics over many sessions, consumed by the training recommendation layer."""
from deepthink.schemas.stats import AggregateMetricsSchema


def compute_aggregate_metrics(sessions: list) -> AggregateMetricsSchema:
    """Totals and score stats. Accepts session states or persisted rows.

    Only finalized sessions contribute to average/best score.
    """
    scores = [
        float(s.final_score)
        for s in sessions
        if getattr(s, "is_complete", False) and getattr(s, "final_score", None) is not None
    ]
    return AggregateMetricsSchema(
        total_sessions=len(sessions),
        completed_sessions=len(scores),
        average_score=round(sum(scores) / len(scores), 2) if scores else None,
        best_score=max(scores) if scores else None,
    )
