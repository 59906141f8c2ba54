"""Pydantic schemas for authored scenarios: states, decisions, consequences."""
from types import MappingProxyType
from typing import Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from deepthink.engine.errors import ScenarioValidationError, UnreachableState

RiskLevel = Literal["low", "medium", "high"]
ConsequenceType = Literal["direct", "second-order"]

# Authored JSON is camelCase; attributes are snake_case.
_FROZEN = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class CharacterSchema(BaseModel):
    model_config = _FROZEN

    id: str
    name: str
    role: str
    personality_traits: tuple[str, ...] = ()
    communication_style: str = ""
    expertise_areas: tuple[str, ...] = ()


class ConsequenceSchema(BaseModel):
    model_config = _FROZEN

    id: str
    type: ConsequenceType
    description: str
    impact_score: float  # signed, conventionally -100..100
    probability: float = Field(ge=0.0, le=1.0)
    delay_minutes: float | None = Field(default=None, ge=0.0)

    @model_validator(mode="after")
    def _direct_has_no_delay(self):
        if self.type == "direct" and self.delay_minutes:
            raise ScenarioValidationError(
                f"Direct consequence '{self.id}' cannot carry delay_minutes"
            )
        return self

    @property
    def is_direct(self) -> bool:
        return self.type == "direct"

    @property
    def effective_delay_seconds(self) -> float:
        """Delay in virtual seconds; absent delay means resolve at decision time."""
        return (self.delay_minutes or 0.0) * 60.0


class DecisionSchema(BaseModel):
    model_config = _FROZEN

    id: str
    text: str
    risk_level: RiskLevel = Field(alias="riskLevel")
    next_state_id: str = Field(alias="nextStateId")
    consequences: tuple[ConsequenceSchema, ...] = ()
    time_weight: float | None = Field(default=None, alias="timeWeight")

    @property
    def direct_consequences(self) -> tuple[ConsequenceSchema, ...]:
        return tuple(c for c in self.consequences if c.is_direct)

    @property
    def second_order_consequences(self) -> tuple[ConsequenceSchema, ...]:
        return tuple(c for c in self.consequences if not c.is_direct)


class ScenarioStateSchema(BaseModel):
    model_config = _FROZEN

    id: str
    description: str
    context: str = ""
    decisions: tuple[DecisionSchema, ...] = ()
    time_limit: float = Field(default=0.0, ge=0.0, alias="timeLimit")
    environmental_factors: tuple[str, ...] = Field(default=(), alias="environmentalFactors")
    characters: tuple[CharacterSchema, ...] = ()
    risk_level: RiskLevel = Field(alias="riskLevel")
    criticality_score: float = Field(ge=0.0, le=100.0, alias="criticalityScore")
    # Decision applied when the countdown expires; required for a timed state to time out.
    timeout_decision_id: str | None = Field(default=None, alias="timeoutDecisionId")

    @model_validator(mode="before")
    @classmethod
    def _untimed_when_null(cls, data):
        if isinstance(data, dict):
            for key in ("timeLimit", "time_limit"):
                if key in data and data[key] is None:
                    data = {**data, key: 0.0}
        return data

    @model_validator(mode="after")
    def _check_decisions(self):
        seen: set[str] = set()
        for decision in self.decisions:
            if decision.id in seen:
                raise ScenarioValidationError(
                    f"Duplicate decision id '{decision.id}' in state '{self.id}'"
                )
            seen.add(decision.id)
        if self.timeout_decision_id is not None and self.timeout_decision_id not in seen:
            raise ScenarioValidationError(
                f"Timeout decision '{self.timeout_decision_id}' is not offered by state '{self.id}'"
            )
        return self

    @property
    def is_terminal(self) -> bool:
        return not self.decisions

    @property
    def is_timed(self) -> bool:
        return self.time_limit > 0

    def get_decision(self, decision_id: str | None) -> DecisionSchema | None:
        return next((d for d in self.decisions if d.id == decision_id), None)

    @property
    def timeout_decision(self) -> DecisionSchema | None:
        return self.get_decision(self.timeout_decision_id)


class ScenarioGraph(BaseModel):
    """Immutable, validated scenario. Shared read-only between sessions."""

    model_config = _FROZEN

    id: str
    title: str = ""
    domain: str = ""
    difficulty_level: int = 1
    version: str = "1.0"
    tags: tuple[str, ...] = ()
    initial_state_id: str = Field(alias="initialStateId")
    # Exposed read-only through `states`; the graph is shared between sessions.
    state_index: dict[str, ScenarioStateSchema] = Field(alias="states", repr=False)

    @property
    def states(self) -> Mapping[str, ScenarioStateSchema]:
        return MappingProxyType(self.state_index)

    @model_validator(mode="after")
    def _check_references(self):
        for key, state in self.states.items():
            if key != state.id:
                raise ScenarioValidationError(f"State key '{key}' does not match state id '{state.id}'")
        if self.initial_state_id not in self.states:
            raise UnreachableState(self.initial_state_id, referenced_from="initialStateId")
        for state in self.states.values():
            for decision in state.decisions:
                if decision.next_state_id not in self.states:
                    raise UnreachableState(
                        decision.next_state_id,
                        referenced_from=f"{state.id}/{decision.id}",
                    )
        return self

    def state(self, state_id: str) -> ScenarioStateSchema:
        return self.states[state_id]

    @property
    def initial_state(self) -> ScenarioStateSchema:
        return self.states[self.initial_state_id]

    def is_terminal(self, state_id: str) -> bool:
        return self.states[state_id].is_terminal

    def reachable_state_ids(self) -> set[str]:
        """State ids reachable from the initial state by following decisions."""
        seen = {self.initial_state_id}
        frontier = [self.initial_state_id]
        while frontier:
            for decision in self.states[frontier.pop()].decisions:
                if decision.next_state_id not in seen:
                    seen.add(decision.next_state_id)
                    frontier.append(decision.next_state_id)
        return seen


class ScenarioSummarySchema(BaseModel):
    id: str
    title: str
    domain: str
    difficulty_level: int
    tags: list[str]
    state_count: int
