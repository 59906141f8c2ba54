"""API routes: JSON for scenarios, training sessions, stats."""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deepthink.db.session import get_db
from deepthink.engine.controller import SessionController
from deepthink.engine.errors import (
    EngineError,
    InvalidDecision,
    NoTimeoutPolicy,
    SessionAlreadyComplete,
    SessionIsPaused,
    SessionNotComplete,
    SessionNotPaused,
    TimeoutNotReached,
)
from deepthink.models.scenario import Scenario
from deepthink.models.training_session import TrainingSession
from deepthink.schemas.api import DecisionSubmitSchema, SessionOutSchema, SessionStartSchema, TickSchema
from deepthink.schemas.scenario import ScenarioGraph, ScenarioSummarySchema
from deepthink.schemas.stats import AggregateMetricsSchema, DebriefSchema
from deepthink.services.scoring import build_debrief
from deepthink.services.sessions import (
    build_session_view,
    get_controller,
    get_graph,
    load_controller,
    release_session,
    save_session,
    session_lock,
    start_session,
)
from deepthink.services.stats import compute_aggregate_metrics

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

_CONFLICTS = (
    SessionAlreadyComplete,
    SessionNotComplete,
    SessionIsPaused,
    SessionNotPaused,
    TimeoutNotReached,
    NoTimeoutPolicy,
)


def engine_error_to_http(exc: EngineError) -> HTTPException:
    if isinstance(exc, InvalidDecision):
        status_code = 422
    elif isinstance(exc, _CONFLICTS):
        status_code = 409
    else:
        status_code = 400
    return HTTPException(status_code=status_code, detail={"code": exc.code, "message": exc.message})


def _summary(graph: ScenarioGraph) -> ScenarioSummarySchema:
    return ScenarioSummarySchema(
        id=graph.id,
        title=graph.title,
        domain=graph.domain,
        difficulty_level=graph.difficulty_level,
        tags=list(graph.tags),
        state_count=len(graph.states),
    )


def _found(controller: SessionController | None) -> SessionController:
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


async def _run(db: AsyncSession, session_id: str, operation) -> SessionOutSchema:
    """Apply one controller operation, then persist the resulting state."""
    try:
        async with session_lock(session_id):
            controller = _found(await get_controller(db, session_id))
            try:
                result = operation(controller)
            except EngineError as exc:
                raise engine_error_to_http(exc) from exc
            except ValueError as exc:
                raise HTTPException(status_code=400, detail=str(exc)) from exc
            await save_session(db, controller)
            return build_session_view(controller, result)
    finally:
        release_session(session_id)


@router.get("/scenarios", response_model=list[ScenarioSummarySchema])
async def list_scenarios(db: Annotated[AsyncSession, Depends(get_db)]):
    """List available scenarios."""
    result = await db.execute(select(Scenario.id).order_by(Scenario.difficulty_level, Scenario.id))
    summaries = []
    for scenario_id in result.scalars().all():
        summaries.append(_summary(await get_graph(db, scenario_id)))
    return summaries


@router.get("/scenarios/{scenario_id}", response_model=ScenarioSummarySchema)
async def get_scenario(scenario_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    """Get one scenario by ID."""
    graph = await get_graph(db, scenario_id)
    if graph is None:
        raise HTTPException(status_code=404, detail="Scenario not found")
    return _summary(graph)


@router.post("/sessions", response_model=SessionOutSchema, status_code=201)
async def create_session(body: SessionStartSchema, db: Annotated[AsyncSession, Depends(get_db)]):
    """Start a training session at the scenario's initial state."""
    graph = await get_graph(db, body.scenario_id)
    if graph is None:
        raise HTTPException(status_code=404, detail="Scenario not found")
    controller = await start_session(db, graph, seed=body.seed)
    return build_session_view(controller)


@router.get("/sessions/{session_id}", response_model=SessionOutSchema)
async def get_session(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    controller = _found(await load_controller(db, session_id))
    return build_session_view(controller)


@router.post("/sessions/{session_id}/decisions", response_model=SessionOutSchema)
async def submit_decision(
    session_id: str,
    body: DecisionSubmitSchema,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    return await _run(db, session_id, lambda c: c.decide(body.decision_id))


@router.post("/sessions/{session_id}/tick", response_model=SessionOutSchema)
async def tick_session(
    session_id: str,
    db: Annotated[AsyncSession, Depends(get_db)],
    body: TickSchema | None = None,
):
    """Advance virtual time; without a delta, real time since the last tick is used."""
    delta = body.delta_seconds if body is not None else None
    return await _run(db, session_id, lambda c: c.tick(delta))


@router.post("/sessions/{session_id}/timeout", response_model=SessionOutSchema)
async def timeout_session(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    return await _run(db, session_id, lambda c: c.timeout())


@router.post("/sessions/{session_id}/pause", response_model=SessionOutSchema)
async def pause_session(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    return await _run(db, session_id, lambda c: c.pause())


@router.post("/sessions/{session_id}/resume", response_model=SessionOutSchema)
async def resume_session(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    return await _run(db, session_id, lambda c: c.resume())


@router.post("/sessions/{session_id}/hints", response_model=SessionOutSchema)
async def use_hint(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    return await _run(db, session_id, lambda c: c.use_hint())


@router.post("/sessions/{session_id}/complete", response_model=SessionOutSchema)
async def complete_session(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    return await _run(db, session_id, lambda c: c.complete())


@router.get("/sessions/{session_id}/debrief", response_model=DebriefSchema)
async def get_debrief(session_id: str, db: Annotated[AsyncSession, Depends(get_db)]):
    """Score breakdown and tips for a completed session."""
    controller = _found(await load_controller(db, session_id))
    if not controller.state.is_complete:
        raise engine_error_to_http(SessionNotComplete(f"Session {session_id} is not complete"))
    return build_debrief(controller.state, controller.graph)


@router.get("/stats", response_model=AggregateMetricsSchema)
async def get_stats(db: Annotated[AsyncSession, Depends(get_db)]):
    """Totals and score stats across all persisted sessions."""
    result = await db.execute(select(TrainingSession))
    return compute_aggregate_metrics(list(result.scalars().all()))
