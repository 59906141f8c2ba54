"""Pydantic schemas for session state: the record the caller persists after each operation."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from deepthink.schemas.scenario import ConsequenceSchema, RiskLevel

_FROZEN = ConfigDict(frozen=True)


class SessionDecisionSchema(BaseModel):
    """One applied decision. Never mutated after creation."""

    model_config = _FROZEN

    decision_id: str
    state_id_at_decision: str
    next_state_id: str
    time_taken_ms: int
    timestamp: datetime
    risk_level: RiskLevel
    forced: bool = False  # applied by the timeout policy, not chosen by the user


class PendingConsequenceSchema(BaseModel):
    """A second-order consequence waiting for virtual time to reach ready_at."""

    model_config = _FROZEN

    consequence: ConsequenceSchema
    source_decision_id: str
    scheduled_at_virtual_time: float
    ready_at_virtual_time: float
    sequence: int  # insertion order, used for stable resolution order

    def is_due(self, now: float) -> bool:
        return now >= self.ready_at_virtual_time


class ResolvedConsequenceSchema(BaseModel):
    """Realized outcome of one consequence after its probability draw."""

    model_config = _FROZEN

    consequence: ConsequenceSchema
    source_decision_id: str
    occurred: bool
    realized_impact: float
    resolved_at_virtual_time: float


class SessionStateSchema(BaseModel):
    model_config = _FROZEN

    session_id: str
    scenario_id: str
    current_state_id: str
    state_history: tuple[str, ...]
    decision_history: tuple[SessionDecisionSchema, ...] = ()
    consequence_log: tuple[ResolvedConsequenceSchema, ...] = ()

    # Virtual time: advances only through ticks while active.
    elapsed_seconds: float = 0.0
    state_entered_at_seconds: float = 0.0

    pause_count: int = 0
    hints_used: int = 0
    cumulative_score: float = 0.0

    is_paused: bool = False
    awaiting_completion: bool = False
    timeout_fired: bool = False
    is_complete: bool = False
    final_score: float | None = None

    started_at: datetime
    completed_at: datetime | None = None

    @property
    def state_elapsed_seconds(self) -> float:
        return self.elapsed_seconds - self.state_entered_at_seconds

    @property
    def status(self) -> str:
        if self.is_complete:
            return "completed"
        if self.is_paused:
            return "paused"
        return "active"


class SessionMetricsSchema(BaseModel):
    total_time_seconds: float
    average_decision_time_ms: float
    pause_count: int
    decisions_count: int
    hints_used: int
    current_score: float
    pending_consequences: int = Field(default=0, ge=0)
