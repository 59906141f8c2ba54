"""Pydantic schemas for debriefs and aggregate stats."""
from pydantic import BaseModel


class TipSchema(BaseModel):
    area: str
    tip: str


class DistributionSchema(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0
    critical: int = 0


class CategoryScoreSchema(BaseModel):
    category: str
    score: float
    max_score: float = 100
    explanation: str


class DebriefSchema(BaseModel):
    session_id: str
    scenario_id: str
    final_score: float
    level: str
    direct_impact: float
    second_order_impact: float
    risk_management: CategoryScoreSchema
    time_efficiency: CategoryScoreSchema
    decisions_count: int
    forced_decisions: int
    average_decision_time_ms: float
    time_spent: str
    pause_count: int
    hints_used: int
    risk_distribution: DistributionSchema
    severity_distribution: DistributionSchema
    path: list[str]
    tips: list[TipSchema]


class AggregateMetricsSchema(BaseModel):
    total_sessions: int
    completed_sessions: int
    average_score: float | None = None
    best_score: float | None = None
