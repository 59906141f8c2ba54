from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import FixedRandom

from deepthink.engine.clock import VirtualClock
from deepthink.engine.controller import SessionController
from deepthink.schemas.session import SessionDecisionSchema
from deepthink.services.scoring import (
    AREA_TIPS,
    build_debrief,
    compute_level,
    consequence_severity,
    format_time_spent,
    get_tips_for_weak_areas,
    risk_management_score,
    time_efficiency_score,
)


@pytest.mark.parametrize(
    ("score", "level"),
    [
        (35, "Crisis Commander"),
        (0, "Crisis Commander"),
        (-0.5, "Steady Responder"),
        (-25, "Steady Responder"),
        (-50, "Under Pressure"),
        (-100, "Reactive"),
        (-100.5, "Overwhelmed"),
    ],
)
def test_compute_level_bands(score: float, level: str) -> None:
    assert compute_level(score) == level


def test_consequence_severity_uses_magnitude() -> None:
    assert consequence_severity(-85) == "critical"
    assert consequence_severity(60) == "high"
    assert consequence_severity(-40) == "medium"
    assert consequence_severity(39.9) == "low"


def test_format_time_spent() -> None:
    assert format_time_spent(45) == "45s"
    assert format_time_spent(185) == "3m 05s"
    assert format_time_spent(3720) == "1h 02m"


def test_tips_weakest_first_and_padded() -> None:
    tips = get_tips_for_weak_areas(["second_order", "second_order", "unknown"], max_tips=3)
    assert [t.area for t in tips][0] == "second_order"
    assert len(tips) == 3
    assert len({t.area for t in tips}) == 3
    assert tips[0].tip == AREA_TIPS["second_order"]


def test_build_debrief_for_completed_session(graph) -> None:
    clock = VirtualClock()
    controller = SessionController.start(graph, clock=clock, rng=FixedRandom(0.0))
    clock.advance(60)
    controller.tick()
    controller.timeout()
    clock.advance(5)
    controller.tick()
    controller.pause()
    controller.resume()
    controller.decide("finish")
    state = controller.complete().state

    debrief = build_debrief(state, graph)

    assert debrief.final_score == -30 + 15
    assert debrief.level == "Steady Responder"
    assert debrief.direct_impact == -15
    assert debrief.second_order_impact == 0
    assert debrief.risk_management.score == 70
    assert debrief.risk_management.explanation.startswith("Good risk management")
    # 60s of a 60s limit, then 5s of a 120s limit
    assert debrief.time_efficiency.score == pytest.approx((70 + 60 + 5 / 120 / 0.6 * 20) / 2, abs=0.01)
    assert debrief.time_efficiency.explanation.startswith("Good time efficiency")
    assert debrief.decisions_count == 2
    assert debrief.forced_decisions == 1
    assert debrief.average_decision_time_ms == (60_000 + 5_000) / 2
    assert debrief.time_spent == "1m 05s"
    assert debrief.pause_count == 1
    assert debrief.risk_distribution.high == 1
    assert debrief.risk_distribution.low == 1
    assert debrief.severity_distribution.low == 2
    assert debrief.path == ["start", "middle", "end"]
    assert [t.area for t in debrief.tips][:2] == ["time", "direct"]


def test_build_debrief_requires_completion(controller, graph) -> None:
    with pytest.raises(ValueError):
        build_debrief(controller.state, graph)


def _decision(risk: str, state_id: str = "start", ms: int = 0) -> SessionDecisionSchema:
    return SessionDecisionSchema(
        decision_id="x",
        state_id_at_decision=state_id,
        next_state_id="middle",
        time_taken_ms=ms,
        timestamp=datetime(2026, 1, 1, tzinfo=timezone.utc),
        risk_level=risk,
    )


@pytest.mark.parametrize(
    ("risks", "expected"),
    [
        ([], 0),
        (["medium"], 70),
        (["high", "low"], 70),
        (["high", "high", "high"], 25),
        (["low", "low"], 90),
    ],
)
def test_risk_management_score(risks: list[str], expected: float) -> None:
    assert risk_management_score([_decision(r) for r in risks]) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(0, 60), (36, 80), (42, 90), (48, 100), (60, 70), (120, 20), (180, 0)],
)
def test_time_efficiency_against_limit(graph, seconds: float, expected: float) -> None:
    decisions = [_decision("low", "start", ms=seconds * 1000)]
    assert time_efficiency_score(decisions, graph) == pytest.approx(expected)


def test_time_efficiency_untimed_and_empty(graph) -> None:
    assert time_efficiency_score([], graph) == 100
    assert time_efficiency_score([_decision("low", "end", ms=999_000)], graph) == 100
