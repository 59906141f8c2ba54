"""Pydantic schemas for the session HTTP API: request bodies and the session view."""
from pydantic import BaseModel

from deepthink.schemas.events import SessionEvent
from deepthink.schemas.scenario import RiskLevel
from deepthink.schemas.session import SessionMetricsSchema


class SessionStartSchema(BaseModel):
    scenario_id: str
    seed: int | None = None


class DecisionSubmitSchema(BaseModel):
    decision_id: str


class TickSchema(BaseModel):
    delta_seconds: float | None = None


class DecisionOptionSchema(BaseModel):
    """A decision as shown to the trainee; consequences stay hidden."""

    id: str
    text: str
    risk_level: RiskLevel


class StateViewSchema(BaseModel):
    id: str
    description: str
    context: str
    time_limit: float
    environmental_factors: list[str]
    risk_level: RiskLevel
    criticality_score: float
    is_terminal: bool


class SessionOutSchema(BaseModel):
    session_id: str
    scenario_id: str
    status: str
    current_state: StateViewSchema
    available_decisions: list[DecisionOptionSchema]
    time_pressure: float
    time_remaining: float | None = None
    is_timed_out: bool
    awaiting_completion: bool
    cumulative_score: float
    final_score: float | None = None
    state_history: list[str]
    metrics: SessionMetricsSchema
    events: list[SessionEvent] = []
