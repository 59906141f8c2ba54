"""Events emitted by session operations, in the order they happened."""
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from deepthink.schemas.session import SessionStateSchema

_FROZEN = ConfigDict(frozen=True)


class StateChanged(BaseModel):
    model_config = _FROZEN

    kind: Literal["state_changed"] = "state_changed"
    from_state_id: str
    to_state_id: str
    decision_id: str
    forced: bool = False
    is_terminal: bool = False


class ConsequenceResolved(BaseModel):
    model_config = _FROZEN

    kind: Literal["consequence_resolved"] = "consequence_resolved"
    consequence_id: str
    consequence_type: str
    source_decision_id: str
    occurred: bool
    realized_impact: float
    running_score: float


class Timeout(BaseModel):
    model_config = _FROZEN

    kind: Literal["timeout"] = "timeout"
    state_id: str
    has_policy: bool


class SessionPaused(BaseModel):
    model_config = _FROZEN

    kind: Literal["session_paused"] = "session_paused"
    pause_count: int


class SessionResumed(BaseModel):
    model_config = _FROZEN

    kind: Literal["session_resumed"] = "session_resumed"
    elapsed_seconds: float


class SessionCompleted(BaseModel):
    model_config = _FROZEN

    kind: Literal["session_completed"] = "session_completed"
    final_score: float
    cancelled_consequences: int = 0


SessionEvent = Annotated[
    Union[StateChanged, ConsequenceResolved, Timeout, SessionPaused, SessionResumed, SessionCompleted],
    Field(discriminator="kind"),
]


class OperationResult(BaseModel):
    """Updated state plus the events the operation produced."""

    model_config = _FROZEN

    state: SessionStateSchema
    events: tuple[SessionEvent, ...] = ()
    time_pressure: float = 0.0

    def events_of(self, kind: str) -> list:
        return [e for e in self.events if e.kind == kind]
