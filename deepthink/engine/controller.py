"""Session lifecycle: one controller owns and is the sole writer of one session.

States: active, paused, completed.

  active    decide(id)  -> active     decision applied, consequences scored/scheduled
  active    timeout()   -> active     forced transition via the state's timeout decision
  active    pause()     -> paused     virtual time frozen, pause_count += 1
  paused    resume()    -> active     time resumes where it stopped, nothing caught up
  active    complete()  -> completed  terminal state only; pending consequences dropped

Every operation either fully applies or raises and leaves state untouched.
"""
from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from typing import Iterable

from deepthink.engine.clock import ClockSource, RealClock
from deepthink.engine.decision_engine import DecisionEngine
from deepthink.engine.errors import (
    InvalidDecision,
    NoTimeoutPolicy,
    SessionAlreadyComplete,
    SessionIsPaused,
    SessionNotPaused,
    TimeoutNotReached,
)
from deepthink.engine.scheduler import ConsequenceScheduler, draw_outcome
from deepthink.engine.timer import TickOutcome, TimerController
from deepthink.engine.tracker import SessionTracker
from deepthink.schemas.events import (
    ConsequenceResolved,
    OperationResult,
    SessionCompleted,
    SessionPaused,
    SessionResumed,
    StateChanged,
    Timeout,
)
from deepthink.schemas.scenario import DecisionSchema, ScenarioGraph, ScenarioStateSchema
from deepthink.schemas.session import (
    PendingConsequenceSchema,
    ResolvedConsequenceSchema,
    SessionMetricsSchema,
    SessionStateSchema,
)

logger = logging.getLogger(__name__)


def _resolution_event(outcome: ResolvedConsequenceSchema, running_score: float) -> ConsequenceResolved:
    return ConsequenceResolved(
        consequence_id=outcome.consequence.id,
        consequence_type=outcome.consequence.type,
        source_decision_id=outcome.source_decision_id,
        occurred=outcome.occurred,
        realized_impact=outcome.realized_impact,
        running_score=running_score,
    )


class SessionController:
    def __init__(
        self,
        graph: ScenarioGraph,
        state: SessionStateSchema,
        *,
        clock: ClockSource | None = None,
        scheduler: ConsequenceScheduler | None = None,
        rng: random.Random | None = None,
    ):
        if state.scenario_id != graph.id:
            raise ValueError(f"Session {state.session_id} belongs to scenario {state.scenario_id}, not {graph.id}")
        if state.current_state_id not in graph.states:
            raise ValueError(f"Session {state.session_id} is at unknown state '{state.current_state_id}'")
        self.graph = graph
        self.clock = clock or RealClock()
        self.scheduler = scheduler or ConsequenceScheduler(rng)
        self.engine = DecisionEngine(graph, self.scheduler)
        self.timer = TimerController(graph)
        self.tracker = SessionTracker(graph)
        self._state = state
        self._last_reading = self.clock.now()

    # ---------- construction ----------

    @classmethod
    def start(
        cls,
        graph: ScenarioGraph,
        *,
        session_id: str | None = None,
        clock: ClockSource | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> "SessionController":
        initial = graph.initial_state
        state = SessionStateSchema(
            session_id=session_id or str(uuid.uuid4()),
            scenario_id=graph.id,
            current_state_id=initial.id,
            state_history=(initial.id,),
            awaiting_completion=initial.is_terminal,
            started_at=datetime.now(timezone.utc),
        )
        logger.info("Started session %s on scenario %s", state.session_id, graph.id)
        return cls(graph, state, clock=clock, rng=rng or random.Random(seed))

    @classmethod
    def restore(
        cls,
        graph: ScenarioGraph,
        state: SessionStateSchema,
        pending: Iterable[PendingConsequenceSchema] = (),
        *,
        clock: ClockSource | None = None,
        seed: int | None = None,
        rng: random.Random | None = None,
    ) -> "SessionController":
        """Rebuild a controller from persisted state and its pending queue."""
        controller = cls(graph, state, clock=clock, rng=rng or random.Random(seed))
        if not state.is_complete:
            controller.scheduler.restore(state.session_id, list(pending))
        logger.info(
            "Restored session %s at state %s (%d pending)",
            state.session_id, state.current_state_id, len(controller.pending),
        )
        return controller

    # ---------- read side ----------

    @property
    def state(self) -> SessionStateSchema:
        return self._state

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def current_scenario_state(self) -> ScenarioStateSchema:
        return self.engine.current_state(self._state)

    @property
    def time_pressure(self) -> float:
        return self.timer.time_pressure(self._state)

    @property
    def is_timed_out(self) -> bool:
        return self.timer.is_timed_out(self._state)

    @property
    def pending(self) -> tuple[PendingConsequenceSchema, ...]:
        return self.scheduler.pending(self.session_id)

    def available_decisions(self) -> tuple[DecisionSchema, ...]:
        return self.engine.available_decisions(self._state)

    def preview(self, decision_id: str) -> list[str]:
        return self.engine.preview_transition_effects(self._state, decision_id)

    def metrics(self) -> SessionMetricsSchema:
        return self.tracker.metrics(self._state, pending_count=len(self.pending))

    def snapshot(self) -> OperationResult:
        return self._result(self._state, [])

    # ---------- operations ----------

    def decide(self, decision_id: str) -> OperationResult:
        """Apply a decision. Clock time owed since the last reading counts against the current state."""
        self._ensure_active()
        synced, reading = self._sync_clock()
        if not self.engine.is_valid_decision(self._state, decision_id):
            raise InvalidDecision(decision_id, self._state.current_state_id)
        self._last_reading = reading
        # A timeout fired by the sync is superseded by the user's decision.
        state, events = self._resolve_due(synced.state)
        return self._apply(state, decision_id, forced=False, events=events)

    def tick(self, delta_seconds: float | None = None) -> OperationResult:
        """Advance virtual time. Safe to call redundantly; no-op while paused or complete."""
        if delta_seconds is not None and delta_seconds < 0:
            raise ValueError(f"Tick delta must be >= 0, got {delta_seconds}")
        reading = self.clock.now()
        if delta_seconds is None:
            delta_seconds = max(0.0, reading - self._last_reading)
        self._last_reading = reading

        tick = self.timer.tick(self._state, delta_seconds)
        if tick.state is self._state:
            return self._result(self._state, [])

        state, events = self._advance(tick)
        return self._commit(state, events)

    def timeout(self) -> OperationResult:
        """Apply the current state's timeout decision once the timer has fired."""
        self._ensure_active()
        synced, reading = self._sync_clock()
        scenario_state = self.current_scenario_state
        if not self.timer.is_timed_out(synced.state):
            raise TimeoutNotReached(scenario_state.id)
        policy = scenario_state.timeout_decision
        if policy is None:
            logger.warning("No timeout policy for state %s in session %s", scenario_state.id, self.session_id)
            raise NoTimeoutPolicy(scenario_state.id)
        self._last_reading = reading
        logger.info("Session %s: forced timeout decision %s at %s", self.session_id, policy.id, scenario_state.id)
        state, events = self._advance(synced)
        return self._apply(state, policy.id, forced=True, events=events)

    def pause(self) -> OperationResult:
        self._ensure_not_complete()
        if self._state.is_paused:
            raise SessionIsPaused(self.session_id)
        synced, reading = self._sync_clock()
        self._last_reading = reading
        state, events = self._advance(synced)
        state = self.tracker.record_pause(state)
        events.append(SessionPaused(pause_count=state.pause_count))
        return self._commit(state, events)

    def resume(self) -> OperationResult:
        self._ensure_not_complete()
        if not self._state.is_paused:
            raise SessionNotPaused(self.session_id)
        # Time spent paused is never counted.
        self._last_reading = self.clock.now()
        state = self._state.model_copy(update={"is_paused": False})
        return self._commit(state, [SessionResumed(elapsed_seconds=state.elapsed_seconds)])

    def use_hint(self) -> OperationResult:
        self._ensure_active()
        return self._commit(self.tracker.record_hint(self._state), [])

    def complete(self) -> OperationResult:
        self._ensure_active()
        synced, reading = self._sync_clock()
        state, events = synced.state, []
        # Consequences that matured before completion still count; finalize rejects non-terminal states.
        if self.graph.is_terminal(state.current_state_id):
            state, events = self._resolve_due(state)
        state, final_score = self.tracker.finalize(state)
        self._last_reading = reading
        cancelled = self.scheduler.cancel_all(self.session_id)
        logger.info(
            "Completed session %s with score %.2f (%d pending consequences dropped)",
            self.session_id, final_score, len(cancelled),
        )
        events.append(SessionCompleted(final_score=final_score, cancelled_consequences=len(cancelled)))
        return self._commit(state, events)

    # ---------- internals ----------

    def _ensure_not_complete(self) -> None:
        if self._state.is_complete:
            raise SessionAlreadyComplete(self.session_id)

    def _ensure_active(self) -> None:
        self._ensure_not_complete()
        if self._state.is_paused:
            raise SessionIsPaused(self.session_id)

    def _sync_clock(self) -> tuple[TickOutcome, float]:
        """Preview the clock time owed since the last reading. Nothing is committed."""
        reading = self.clock.now()
        return self.timer.tick(self._state, max(0.0, reading - self._last_reading)), reading

    def _advance(self, tick: TickOutcome) -> tuple[SessionStateSchema, list]:
        """Commit-side half of a tick: timeout event, then due consequences."""
        state = tick.state
        events: list = []
        if tick.timed_out:
            scenario_state = self.engine.current_state(state)
            has_policy = scenario_state.timeout_decision is not None
            if not has_policy:
                logger.warning(
                    "Session %s timed out at state %s, which has no timeout decision",
                    state.session_id, scenario_state.id,
                )
            events.append(Timeout(state_id=scenario_state.id, has_policy=has_policy))
        state, resolved = self._resolve_due(state)
        events.extend(resolved)
        return state, events

    def _apply(
        self,
        state: SessionStateSchema,
        decision_id: str,
        *,
        forced: bool,
        events: list,
    ) -> OperationResult:
        outcome = self.engine.apply_decision(state, decision_id, forced=forced)
        state = outcome.state
        events = list(events)
        events.append(StateChanged(
            from_state_id=outcome.session_decision.state_id_at_decision,
            to_state_id=outcome.session_decision.next_state_id,
            decision_id=outcome.decision.id,
            forced=forced,
            is_terminal=outcome.reached_terminal,
        ))

        now = state.elapsed_seconds
        direct = [draw_outcome(c, self.scheduler.rng, outcome.decision.id, now) for c in outcome.direct]
        running = state.cumulative_score
        for item in direct:
            running += item.realized_impact
            events.append(_resolution_event(item, running))
        state = self.tracker.record_decision(state, outcome.session_decision, direct)

        # Second-order consequences without a delay resolve at decision time.
        state, resolved = self._resolve_due(state)
        events.extend(resolved)
        return self._commit(state, events)

    def _resolve_due(self, state: SessionStateSchema) -> tuple[SessionStateSchema, list[ConsequenceResolved]]:
        events = []
        for item in self.scheduler.resolve_due(state.session_id, state.elapsed_seconds):
            state = self.tracker.record_resolved_consequence(state, item)
            events.append(_resolution_event(item, state.cumulative_score))
        return state, events

    def _commit(self, state: SessionStateSchema, events: list) -> OperationResult:
        self._state = state
        return self._result(state, events)

    def _result(self, state: SessionStateSchema, events: list) -> OperationResult:
        return OperationResult(
            state=state,
            events=tuple(events),
            time_pressure=self.timer.time_pressure(state),
        )
