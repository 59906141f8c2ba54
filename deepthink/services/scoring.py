"""Performance level and debrief computation for completed sessions; tips from weakest areas."""
from deepthink.schemas.scenario import ScenarioGraph
from deepthink.schemas.session import (
    ResolvedConsequenceSchema,
    SessionDecisionSchema,
    SessionStateSchema,
)
from deepthink.schemas.stats import CategoryScoreSchema, DebriefSchema, DistributionSchema, TipSchema

# Final score is a signed sum of realized impacts; bands are checked top-down.
LEVEL_BANDS = [
    (0, "Crisis Commander"),
    (-25, "Steady Responder"),
    (-50, "Under Pressure"),
    (-100, "Reactive"),
]
LOWEST_LEVEL = "Overwhelmed"

# |impact| thresholds for severity buckets
SEVERITY_CRITICAL = 80
SEVERITY_HIGH = 60
SEVERITY_MEDIUM = 40

AREA_TIPS = {
    "time": "Several decisions were forced by the clock. Commit to a containment step early and refine it afterwards.",
    "risk": "Most of your choices carried high risk. Weigh reversible, lower-risk actions before escalating.",
    "second_order": "Delayed effects cost you more than the immediate ones. Ask what each action sets in motion an hour from now.",
    "direct": "Immediate consequences hurt the most. Check who is affected right away before acting.",
    "focus": "You paused often. Practice keeping a running summary so you can decide without stepping away.",
}


def compute_level(final_score: float) -> str:
    """Return level label for a signed final score."""
    for threshold, label in LEVEL_BANDS:
        if final_score >= threshold:
            return label
    return LOWEST_LEVEL


def consequence_severity(impact_score: float) -> str:
    magnitude = abs(impact_score)
    if magnitude >= SEVERITY_CRITICAL:
        return "critical"
    if magnitude >= SEVERITY_HIGH:
        return "high"
    if magnitude >= SEVERITY_MEDIUM:
        return "medium"
    return "low"


def risk_distribution(decisions: list[SessionDecisionSchema]) -> DistributionSchema:
    counts = {"low": 0, "medium": 0, "high": 0}
    for d in decisions:
        counts[d.risk_level] += 1
    return DistributionSchema(**counts)


def severity_distribution(outcomes: list[ResolvedConsequenceSchema]) -> DistributionSchema:
    """Bucket realized outcomes by severity; consequences that did not occur are skipped."""
    counts = {"low": 0, "medium": 0, "high": 0, "critical": 0}
    for o in outcomes:
        if o.occurred:
            counts[consequence_severity(o.realized_impact)] += 1
    return DistributionSchema(**counts)


def average_decision_time_ms(decisions: list[SessionDecisionSchema]) -> float:
    if not decisions:
        return 0.0
    return sum(d.time_taken_ms for d in decisions) / len(decisions)


def format_time_spent(seconds: float) -> str:
    """Format seconds as e.g. '45s', '3m 05s', '1h 02m'."""
    seconds = int(seconds)
    if seconds < 60:
        return f"{seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {secs:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"


RISK_SCORES = {"low": 100, "medium": 70, "high": 40}
RISK_BALANCE_PENALTY = 5

# Share of the time limit considered well paced
OPTIMAL_TIME_LOW = 0.6
OPTIMAL_TIME_HIGH = 0.8


def risk_management_score(decisions: list[SessionDecisionSchema]) -> float:
    """Average risk score, penalized when choices lean consistently high or low."""
    if not decisions:
        return 0.0
    average = sum(RISK_SCORES[d.risk_level] for d in decisions) / len(decisions)
    balance = sum(1 if d.risk_level == "high" else -1 if d.risk_level == "low" else 0 for d in decisions)
    return max(0.0, min(100.0, average - abs(balance) * RISK_BALANCE_PENALTY))


def _pace_efficiency(ratio: float) -> float:
    if ratio <= OPTIMAL_TIME_LOW:
        # quick, possibly rushed
        return 60 + (ratio / OPTIMAL_TIME_LOW) * 20
    if ratio <= OPTIMAL_TIME_HIGH:
        return 80 + ((ratio - OPTIMAL_TIME_LOW) / (OPTIMAL_TIME_HIGH - OPTIMAL_TIME_LOW)) * 20
    if ratio <= 1.0:
        return 100 - ((ratio - OPTIMAL_TIME_HIGH) / (1.0 - OPTIMAL_TIME_HIGH)) * 30
    return max(0.0, 70 - (ratio - 1.0) * 50)


def time_efficiency_score(decisions: list[SessionDecisionSchema], graph: ScenarioGraph) -> float:
    """Average pacing against each state's time limit; untimed states score 100."""
    if not decisions:
        return 100.0
    total = 0.0
    for d in decisions:
        limit = graph.state(d.state_id_at_decision).time_limit
        if limit <= 0:
            total += 100
            continue
        total += _pace_efficiency(d.time_taken_ms / 1000 / limit)
    return total / len(decisions)


def _risk_explanation(score: float, distribution: DistributionSchema) -> str:
    if score >= 80:
        return (
            f"Excellent risk balance with {distribution.high} high-risk, {distribution.medium} "
            f"medium-risk and {distribution.low} low-risk decisions."
        )
    if score >= 60:
        return "Good risk management with appropriate risk-taking for the situation."
    if score >= 40:
        return "Moderate risk management. Consider balancing conservative and aggressive approaches."
    return "Poor risk management. Either too conservative or too aggressive for the crisis context."


def _time_explanation(score: float) -> str:
    if score >= 80:
        return "Excellent time management with well paced decisions."
    if score >= 60:
        return "Good time efficiency, though some decisions could have been made faster or slower."
    if score >= 40:
        return "Moderate time management. Work on balancing speed with thoroughness."
    return "Poor time management. Either too rushed or too slow for crisis conditions."


def _weak_areas(state: SessionStateSchema, direct: float, second_order: float) -> list[str]:
    """Weak areas ordered from most to least pressing."""
    decisions = state.decision_history
    areas = []
    if decisions and sum(d.forced for d in decisions) * 2 >= len(decisions):
        areas.append("time")
    if decisions and sum(d.risk_level == "high" for d in decisions) * 2 > len(decisions):
        areas.append("risk")
    if second_order < 0 and second_order < direct:
        areas.append("second_order")
    if direct < 0:
        areas.append("direct")
    if state.pause_count > len(decisions):
        areas.append("focus")
    return areas


def get_tips_for_weak_areas(areas: list[str], max_tips: int = 3) -> list[TipSchema]:
    """Return up to max_tips tips, weakest areas first, padded with general ones."""
    tips = []
    seen = set()
    for area in areas:
        if area in seen or area not in AREA_TIPS:
            continue
        seen.add(area)
        tips.append(TipSchema(area=area, tip=AREA_TIPS[area]))
        if len(tips) >= max_tips:
            break
    for area, tip_text in AREA_TIPS.items():
        if len(tips) >= max_tips:
            break
        if area not in seen:
            tips.append(TipSchema(area=area, tip=tip_text))
            seen.add(area)
    return tips[:max_tips]


def build_debrief(state: SessionStateSchema, graph: ScenarioGraph) -> DebriefSchema:
    """Summarize a completed session for the results page."""
    if not state.is_complete:
        raise ValueError(f"Session {state.session_id} is not complete")
    if state.scenario_id != graph.id:
        raise ValueError(f"Session {state.session_id} does not belong to scenario {graph.id}")

    log = list(state.consequence_log)
    direct = sum(o.realized_impact for o in log if o.consequence.is_direct)
    second_order = sum(o.realized_impact for o in log if not o.consequence.is_direct)
    decisions = list(state.decision_history)
    risks = risk_distribution(decisions)
    risk_score = risk_management_score(decisions)
    time_score = time_efficiency_score(decisions, graph)

    return DebriefSchema(
        session_id=state.session_id,
        scenario_id=state.scenario_id,
        final_score=state.final_score,
        level=compute_level(state.final_score),
        direct_impact=direct,
        second_order_impact=second_order,
        risk_management=CategoryScoreSchema(
            category="Risk Management",
            score=round(risk_score, 2),
            explanation=_risk_explanation(risk_score, risks),
        ),
        time_efficiency=CategoryScoreSchema(
            category="Time Efficiency",
            score=round(time_score, 2),
            explanation=_time_explanation(time_score),
        ),
        decisions_count=len(decisions),
        forced_decisions=sum(d.forced for d in decisions),
        average_decision_time_ms=round(average_decision_time_ms(decisions), 1),
        time_spent=format_time_spent(state.elapsed_seconds),
        pause_count=state.pause_count,
        hints_used=state.hints_used,
        risk_distribution=risks,
        severity_distribution=severity_distribution(log),
        path=list(state.state_history),
        tips=get_tips_for_weak_areas(_weak_areas(state, direct, second_order)),
    )
