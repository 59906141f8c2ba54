"""Session bookkeeping and scoring.

Running score is the plain sum of realized impacts: direct consequences at
decision time, second-order ones at resolution time. Probability only gates
whether a consequence contributes its full impact.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable

from deepthink.engine.errors import SessionNotComplete
from deepthink.schemas.scenario import ScenarioGraph
from deepthink.schemas.session import (
    ResolvedConsequenceSchema,
    SessionDecisionSchema,
    SessionMetricsSchema,
    SessionStateSchema,
)


class SessionTracker:
    def __init__(self, graph: ScenarioGraph):
        self.graph = graph

    def record_decision(
        self,
        state: SessionStateSchema,
        decision: SessionDecisionSchema,
        direct_outcomes: Iterable[ResolvedConsequenceSchema],
    ) -> SessionStateSchema:
        """Score the direct outcomes of a decision already appended to history."""
        if not state.decision_history or state.decision_history[-1] != decision:
            raise ValueError(f"Decision {decision.decision_id} is not the latest in history")
        outcomes = tuple(direct_outcomes)
        return state.model_copy(update={
            "consequence_log": state.consequence_log + outcomes,
            "cumulative_score": state.cumulative_score + sum(o.realized_impact for o in outcomes),
        })

    def record_resolved_consequence(
        self,
        state: SessionStateSchema,
        outcome: ResolvedConsequenceSchema,
    ) -> SessionStateSchema:
        return state.model_copy(update={
            "consequence_log": state.consequence_log + (outcome,),
            "cumulative_score": state.cumulative_score + outcome.realized_impact,
        })

    def compute_running_score(self, state: SessionStateSchema) -> float:
        return sum(o.realized_impact for o in state.consequence_log)

    def record_pause(self, state: SessionStateSchema) -> SessionStateSchema:
        return state.model_copy(update={"is_paused": True, "pause_count": state.pause_count + 1})

    def record_hint(self, state: SessionStateSchema) -> SessionStateSchema:
        return state.model_copy(update={"hints_used": state.hints_used + 1})

    def finalize(
        self,
        state: SessionStateSchema,
        completed_at: datetime | None = None,
    ) -> tuple[SessionStateSchema, float]:
        """Freeze the session and return its final score. Callable once."""
        if state.is_complete:
            raise SessionNotComplete(f"Session {state.session_id} was already finalized")
        if not self.graph.is_terminal(state.current_state_id):
            raise SessionNotComplete(
                f"Session {state.session_id} is at non-terminal state '{state.current_state_id}'"
            )
        final_score = self.compute_running_score(state)
        frozen = state.model_copy(update={
            "is_complete": True,
            "is_paused": False,
            "awaiting_completion": False,
            "timeout_fired": False,
            "final_score": final_score,
            "completed_at": completed_at or datetime.now(timezone.utc),
        })
        return frozen, final_score

    def metrics(self, state: SessionStateSchema, pending_count: int = 0) -> SessionMetricsSchema:
        decisions = state.decision_history
        avg_ms = sum(d.time_taken_ms for d in decisions) / len(decisions) if decisions else 0.0
        return SessionMetricsSchema(
            total_time_seconds=state.elapsed_seconds,
            average_decision_time_ms=avg_ms,
            pause_count=state.pause_count,
            decisions_count=len(decisions),
            hints_used=state.hints_used,
            current_score=self.compute_running_score(state),
            pending_consequences=pending_count,
        )
