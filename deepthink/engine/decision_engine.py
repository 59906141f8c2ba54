"""Decision application: validate, transition, and hand off consequences.

Responsibilities:
  - Check that a decision is offered by the session's current state.
  - Append to decision/state history and move to the next state.
  - Split consequences into direct (returned for scoring now) and
    second-order (handed to the ConsequenceScheduler).

Invariants:
  - Transitions are deterministic given the decision id; only scoring is random.
  - A rejected decision leaves the session and the scheduler untouched.
  - Reaching a terminal state marks the session awaiting completion; it does
    not complete it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

from deepthink.engine.errors import InvalidDecision, SessionAlreadyComplete
from deepthink.engine.scheduler import ConsequenceScheduler
from deepthink.schemas.scenario import (
    ConsequenceSchema,
    DecisionSchema,
    ScenarioGraph,
    ScenarioStateSchema,
)
from deepthink.schemas.session import (
    PendingConsequenceSchema,
    SessionDecisionSchema,
    SessionStateSchema,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DecisionOutcome:
    state: SessionStateSchema
    decision: DecisionSchema
    session_decision: SessionDecisionSchema
    direct: tuple[ConsequenceSchema, ...]
    scheduled: tuple[PendingConsequenceSchema, ...]
    reached_terminal: bool


class DecisionEngine:
    def __init__(
        self,
        graph: ScenarioGraph,
        scheduler: ConsequenceScheduler,
        timestamp_fn: Callable[[], datetime] = _utcnow,
    ):
        self.graph = graph
        self.scheduler = scheduler
        self.timestamp_fn = timestamp_fn

    def current_state(self, session: SessionStateSchema) -> ScenarioStateSchema:
        return self.graph.state(session.current_state_id)

    def available_decisions(self, session: SessionStateSchema) -> tuple[DecisionSchema, ...]:
        if session.is_complete:
            return ()
        return self.current_state(session).decisions

    def is_valid_decision(self, session: SessionStateSchema, decision_id: str) -> bool:
        return self.current_state(session).get_decision(decision_id) is not None

    def possible_next_states(self, session: SessionStateSchema) -> list[tuple[str, str]]:
        """(decision_id, next_state_id) for every decision the current state offers."""
        return [(d.id, d.next_state_id) for d in self.available_decisions(session)]

    def preview_transition_effects(self, session: SessionStateSchema, decision_id: str) -> list[str]:
        """Where a decision leads and what it may set off, without applying it."""
        decision = self.current_state(session).get_decision(decision_id)
        if decision is None:
            raise InvalidDecision(decision_id, session.current_state_id)
        next_state = self.graph.state(decision.next_state_id)
        return [f"Leads to: {next_state.description}"] + [c.description for c in decision.consequences]

    def decision_context(self, session: SessionStateSchema) -> dict[str, Any]:
        """Context shown next to the decision menu."""
        state = self.current_state(session)
        remaining = None
        if state.is_timed:
            remaining = max(0.0, state.time_limit - session.state_elapsed_seconds)
        return {
            "state_id": state.id,
            "risk_level": state.risk_level,
            "criticality_score": state.criticality_score,
            "environmental_factors": list(state.environmental_factors),
            "characters": [c.name for c in state.characters],
            "time_limit": state.time_limit if state.is_timed else None,
            "time_remaining": remaining,
            "is_terminal": state.is_terminal,
        }

    def apply_decision(
        self,
        session: SessionStateSchema,
        decision_id: str,
        *,
        forced: bool = False,
    ) -> DecisionOutcome:
        if session.is_complete:
            raise SessionAlreadyComplete(session.session_id)

        from_state = self.current_state(session)
        decision = from_state.get_decision(decision_id)
        if decision is None:
            raise InvalidDecision(decision_id, from_state.id)

        # Existence is guaranteed by the graph's load-time reference check.
        next_state = self.graph.state(decision.next_state_id)
        now = session.elapsed_seconds

        record = SessionDecisionSchema(
            decision_id=decision.id,
            state_id_at_decision=from_state.id,
            next_state_id=next_state.id,
            time_taken_ms=int(round(session.state_elapsed_seconds * 1000)),
            timestamp=self.timestamp_fn(),
            risk_level=decision.risk_level,
            forced=forced,
        )

        scheduled = tuple(
            self.scheduler.build_pending(c, decision.id, now)
            for c in decision.second_order_consequences
        )
        for pending in scheduled:
            self.scheduler.schedule(session.session_id, pending)

        new_state = session.model_copy(update={
            "current_state_id": next_state.id,
            "state_history": session.state_history + (next_state.id,),
            "decision_history": session.decision_history + (record,),
            "state_entered_at_seconds": now,
            "timeout_fired": False,
            "awaiting_completion": next_state.is_terminal,
        })

        logger.debug(
            "Session %s: %s --%s--> %s (forced=%s)",
            session.session_id, from_state.id, decision.id, next_state.id, forced,
        )
        return DecisionOutcome(
            state=new_state,
            decision=decision,
            session_decision=record,
            direct=decision.direct_consequences,
            scheduled=scheduled,
            reached_terminal=next_state.is_terminal,
        )
