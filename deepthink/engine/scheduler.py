"""Pending second-order consequences and their resolution against virtual time."""
from __future__ import annotations

import logging
import random

from deepthink.schemas.scenario import ConsequenceSchema
from deepthink.schemas.session import PendingConsequenceSchema, ResolvedConsequenceSchema

logger = logging.getLogger(__name__)


def draw_outcome(
    consequence: ConsequenceSchema,
    rng: random.Random,
    source_decision_id: str,
    now: float,
) -> ResolvedConsequenceSchema:
    """One draw against probability: full impact on success, zero on failure."""
    occurred = rng.random() < consequence.probability
    return ResolvedConsequenceSchema(
        consequence=consequence,
        source_decision_id=source_decision_id,
        occurred=occurred,
        realized_impact=consequence.impact_score if occurred else 0.0,
        resolved_at_virtual_time=now,
    )


class ConsequenceScheduler:
    """Holds pending consequences per session and resolves them once due.

    Time passed in is session virtual time, which stops while a session is
    paused, so nothing matures during a pause.
    """

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self._pending: dict[str, list[PendingConsequenceSchema]] = {}
        self._sequence = 0

    def next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def build_pending(
        self,
        consequence: ConsequenceSchema,
        source_decision_id: str,
        now: float,
    ) -> PendingConsequenceSchema:
        return PendingConsequenceSchema(
            consequence=consequence,
            source_decision_id=source_decision_id,
            scheduled_at_virtual_time=now,
            ready_at_virtual_time=now + consequence.effective_delay_seconds,
            sequence=self.next_sequence(),
        )

    def schedule(self, session_id: str, pending: PendingConsequenceSchema) -> None:
        logger.debug(
            "Scheduled %s from %s for session %s at t=%.1f",
            pending.consequence.id, pending.source_decision_id, session_id, pending.ready_at_virtual_time,
        )
        self._pending.setdefault(session_id, []).append(pending)

    def resolve_due(self, session_id: str, now: float) -> list[ResolvedConsequenceSchema]:
        """Resolve everything due at `now`, in insertion order. Each item resolves once."""
        queue = self._pending.get(session_id)
        if not queue:
            return []
        due = [p for p in queue if p.is_due(now)]
        if not due:
            return []
        self._pending[session_id] = [p for p in queue if not p.is_due(now)]

        resolved = []
        for item in sorted(due, key=lambda p: p.sequence):
            outcome = draw_outcome(item.consequence, self.rng, item.source_decision_id, now)
            logger.debug(
                "Resolved %s for session %s: occurred=%s impact=%s",
                item.consequence.id, session_id, outcome.occurred, outcome.realized_impact,
            )
            resolved.append(outcome)
        return resolved

    def cancel_all(self, session_id: str) -> list[PendingConsequenceSchema]:
        """Discard every unresolved consequence of a session; returns what was dropped."""
        dropped = self._pending.pop(session_id, [])
        if dropped:
            logger.debug("Cancelled %d pending consequences for session %s", len(dropped), session_id)
        return dropped

    def pending(self, session_id: str) -> tuple[PendingConsequenceSchema, ...]:
        return tuple(self._pending.get(session_id, ()))

    def restore(self, session_id: str, pending: list[PendingConsequenceSchema]) -> None:
        """Reload a persisted queue, keeping sequence numbers ahead of restored ones."""
        items = sorted(pending, key=lambda p: p.sequence)
        self._pending[session_id] = items
        if items:
            self._sequence = max(self._sequence, items[-1].sequence)
