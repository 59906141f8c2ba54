from deepthink.schemas.events import OperationResult, SessionEvent
from deepthink.schemas.scenario import (
    ConsequenceSchema,
    DecisionSchema,
    ScenarioGraph,
    ScenarioStateSchema,
    ScenarioSummarySchema,
)
from deepthink.schemas.session import (
    PendingConsequenceSchema,
    ResolvedConsequenceSchema,
    SessionDecisionSchema,
    SessionMetricsSchema,
    SessionStateSchema,
)
from deepthink.schemas.stats import AggregateMetricsSchema, DebriefSchema, TipSchema

__all__ = [
    "AggregateMetricsSchema",
    "ConsequenceSchema",
    "DebriefSchema",
    "DecisionSchema",
    "OperationResult",
    "PendingConsequenceSchema",
    "ResolvedConsequenceSchema",
    "ScenarioGraph",
    "ScenarioStateSchema",
    "ScenarioSummarySchema",
    "SessionDecisionSchema",
    "SessionEvent",
    "SessionMetricsSchema",
    "SessionStateSchema",
    "TipSchema",
]
