"""Live session registry and persistence.

Each session is driven by exactly one SessionController held in memory. After
every operation the caller saves the controller's state and pending queue so a
restarted process can rebuild it with SessionController.restore.
"""
import asyncio
import json
import logging
import random

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from deepthink.core.config import get_settings
from deepthink.engine.controller import SessionController
from deepthink.models.scenario import Scenario
from deepthink.models.session_decision import SessionDecisionRecord
from deepthink.models.training_session import TrainingSession
from deepthink.schemas.api import (
    DecisionOptionSchema,
    SessionOutSchema,
    StateViewSchema,
)
from deepthink.schemas.events import OperationResult
from deepthink.schemas.scenario import ScenarioGraph
from deepthink.schemas.session import PendingConsequenceSchema, SessionStateSchema

logger = logging.getLogger(__name__)

_GRAPHS: dict[str, ScenarioGraph] = {}
_CONTROLLERS: dict[str, SessionController] = {}
_LOCKS: dict[str, asyncio.Lock] = {}


def reset_registry() -> None:
    """Forget all cached graphs and live controllers."""
    _GRAPHS.clear()
    _CONTROLLERS.clear()
    _LOCKS.clear()


def session_lock(session_id: str) -> asyncio.Lock:
    """Serializes operate-then-save for one session."""
    lock = _LOCKS.get(session_id)
    if lock is None:
        lock = _LOCKS[session_id] = asyncio.Lock()
    return lock


def release_session(session_id: str) -> None:
    """Drop the lock of a session with no live controller, and the controller once completed.

    Later reads restore a completed session from the database without caching it.
    """
    controller = _CONTROLLERS.get(session_id)
    if controller is not None and controller.state.is_complete:
        del _CONTROLLERS[session_id]
        controller = None
    if controller is None:
        _LOCKS.pop(session_id, None)


async def get_graph(db: AsyncSession, scenario_id: str) -> ScenarioGraph | None:
    graph = _GRAPHS.get(scenario_id)
    if graph is not None:
        return graph
    row = await db.get(Scenario, scenario_id)
    if row is None:
        return None
    graph = ScenarioGraph.model_validate_json(row.graph_json)
    _GRAPHS[scenario_id] = graph
    return graph


async def start_session(db: AsyncSession, graph: ScenarioGraph, seed: int | None = None) -> SessionController:
    if seed is None:
        seed = get_settings().random_seed
    controller = SessionController.start(graph, seed=seed)
    row = TrainingSession(
        id=controller.session_id,
        scenario_id=graph.id,
        seed=seed,
        started_at=controller.state.started_at,
    )
    _fill_row(row, controller)
    db.add(row)
    await db.commit()
    _CONTROLLERS[controller.session_id] = controller
    return controller


async def get_controller(db: AsyncSession, session_id: str) -> SessionController | None:
    """Live controller for a session, restored from the database if needed."""
    controller = _CONTROLLERS.get(session_id)
    if controller is not None:
        return controller

    row = await db.get(TrainingSession, session_id)
    if row is None:
        return None
    graph = await get_graph(db, row.scenario_id)
    if graph is None:
        logger.error("Session %s references missing scenario %s", session_id, row.scenario_id)
        return None

    state = SessionStateSchema.model_validate_json(row.state_json)
    pending = [PendingConsequenceSchema.model_validate(p) for p in json.loads(row.pending_json)]
    # The original stream position is not stored; continue on a stream derived from it.
    rng = random.Random(row.seed + len(state.consequence_log)) if row.seed is not None else None
    controller = SessionController.restore(graph, state, pending, rng=rng)
    # Completed sessions are read-only; they are not kept live.
    if not state.is_complete:
        _CONTROLLERS[session_id] = controller
    return controller


async def load_controller(db: AsyncSession, session_id: str) -> SessionController | None:
    """get_controller for callers that do not already hold the session lock."""
    try:
        async with session_lock(session_id):
            return await get_controller(db, session_id)
    finally:
        release_session(session_id)


async def save_session(db: AsyncSession, controller: SessionController) -> None:
    """Write the controller's latest state and any decisions not yet recorded."""
    row = await db.get(TrainingSession, controller.session_id)
    if row is None:
        raise LookupError(f"Session {controller.session_id} was never persisted")
    _fill_row(row, controller)

    persisted = await db.scalar(
        select(func.count(SessionDecisionRecord.id)).where(
            SessionDecisionRecord.session_id == controller.session_id
        )
    )
    history = controller.state.decision_history
    for sequence in range(persisted or 0, len(history)):
        decision = history[sequence]
        db.add(
            SessionDecisionRecord(
                session_id=controller.session_id,
                sequence=sequence,
                state_id=decision.state_id_at_decision,
                decision_id=decision.decision_id,
                next_state_id=decision.next_state_id,
                risk_level=decision.risk_level,
                time_taken_ms=decision.time_taken_ms,
                forced=decision.forced,
                decided_at=decision.timestamp,
            )
        )
    await db.commit()


def _fill_row(row: TrainingSession, controller: SessionController) -> None:
    state = controller.state
    row.status = state.status
    row.current_state_id = state.current_state_id
    row.pause_count = state.pause_count
    row.is_complete = state.is_complete
    row.final_score = state.final_score
    row.completed_at = state.completed_at
    row.state_json = state.model_dump_json()
    row.pending_json = json.dumps([p.model_dump(mode="json") for p in controller.pending])


def build_session_view(controller: SessionController, result: OperationResult | None = None) -> SessionOutSchema:
    if result is None:
        result = controller.snapshot()
    state = result.state
    current = controller.graph.state(state.current_state_id)
    return SessionOutSchema(
        session_id=state.session_id,
        scenario_id=state.scenario_id,
        status=state.status,
        current_state=StateViewSchema(
            id=current.id,
            description=current.description,
            context=current.context,
            time_limit=current.time_limit,
            environmental_factors=list(current.environmental_factors),
            risk_level=current.risk_level,
            criticality_score=current.criticality_score,
            is_terminal=current.is_terminal,
        ),
        available_decisions=[
            DecisionOptionSchema(id=d.id, text=d.text, risk_level=d.risk_level)
            for d in controller.available_decisions()
        ],
        time_pressure=result.time_pressure,
        time_remaining=controller.timer.time_remaining(state),
        is_timed_out=controller.is_timed_out,
        awaiting_completion=state.awaiting_completion,
        cumulative_score=state.cumulative_score,
        final_score=state.final_score,
        state_history=list(state.state_history),
        metrics=controller.metrics(),
        events=list(result.events),
    )
