"""Session lifecycle driven through SessionController with a virtual clock."""
from __future__ import annotations

import logging

import pytest

from conftest import FixedRandom

from deepthink.engine.clock import VirtualClock
from deepthink.engine.controller import SessionController
from deepthink.engine.errors import (
    InvalidDecision,
    NoTimeoutPolicy,
    SessionAlreadyComplete,
    SessionIsPaused,
    SessionNotComplete,
    SessionNotPaused,
    TimeoutNotReached,
)
from deepthink.engine.graph import load_scenario_graph


def _history_invariant(controller: SessionController) -> bool:
    state = controller.state
    return len(state.state_history) == len(state.decision_history) + 1


def test_start_at_initial_state(controller) -> None:
    state = controller.state
    assert state.current_state_id == "start"
    assert state.state_history == ("start",)
    assert state.status == "active"
    assert controller.time_pressure == 0.0
    assert [d.id for d in controller.available_decisions()] == ["act", "wait"]
    assert _history_invariant(controller)


def test_decide_scores_direct_and_immediate_second_order(controller) -> None:
    result = controller.decide("act")

    kinds = [e.kind for e in result.events]
    assert kinds == ["state_changed", "consequence_resolved", "consequence_resolved"]
    changed = result.events_of("state_changed")[0]
    assert (changed.from_state_id, changed.to_state_id, changed.forced) == ("start", "middle", False)

    resolved = result.events_of("consequence_resolved")
    assert [e.consequence_id for e in resolved] == ["d1", "s0"]
    assert [e.running_score for e in resolved] == [-10, -5]
    assert result.state.cumulative_score == -5
    assert [p.consequence.id for p in controller.pending] == ["s1"]
    assert _history_invariant(controller)


def test_invalid_decision_leaves_state_unchanged(controller) -> None:
    before = controller.state

    with pytest.raises(InvalidDecision):
        controller.decide("finish")

    assert controller.state is before
    assert controller.pending == ()
    assert _history_invariant(controller)


def test_delayed_consequence_resolves_once_after_delay(controller, clock) -> None:
    controller.decide("act")
    assert controller.metrics().pending_consequences == 1

    clock.advance(299)
    assert controller.tick().events_of("consequence_resolved") == []

    clock.advance(1)
    resolved = controller.tick().events_of("consequence_resolved")
    assert [e.consequence_id for e in resolved] == ["s1"]
    assert controller.state.cumulative_score == -25

    clock.advance(1000)
    assert controller.tick().events_of("consequence_resolved") == []
    assert controller.pending == ()


def test_pause_freezes_pressure_and_time(controller, clock) -> None:
    clock.advance(25.2)
    controller.tick()
    pressure = controller.time_pressure
    assert pressure == pytest.approx(0.42)

    controller.pause()
    clock.advance(500)
    controller.tick()
    assert controller.time_pressure == pressure
    assert controller.state.elapsed_seconds == pytest.approx(25.2)

    controller.resume()
    assert controller.time_pressure == pressure
    # Nothing is caught up for time spent paused.
    controller.tick()
    assert controller.time_pressure == pressure


def test_pause_count_after_cycles(controller, clock) -> None:
    for _ in range(3):
        clock.advance(2)
        controller.tick()
        controller.pause()
        clock.advance(50)
        controller.tick()
        controller.resume()
    assert controller.state.pause_count == 3
    assert controller.state.elapsed_seconds == pytest.approx(6)


def test_pause_guards(controller) -> None:
    with pytest.raises(SessionNotPaused):
        controller.resume()
    controller.pause()
    with pytest.raises(SessionIsPaused):
        controller.pause()
    with pytest.raises(SessionIsPaused):
        controller.decide("act")
    with pytest.raises(SessionIsPaused):
        controller.use_hint()
    assert controller.state.status == "paused"


def test_paused_time_does_not_mature_consequences(controller, clock) -> None:
    controller.decide("act")
    controller.pause()
    clock.advance(10_000)
    controller.tick()
    controller.resume()
    assert [p.consequence.id for p in controller.pending] == ["s1"]


def test_timeout_fires_once_and_forces_policy(controller, clock) -> None:
    with pytest.raises(TimeoutNotReached):
        controller.timeout()

    clock.advance(60)
    result = controller.tick()
    timeouts = result.events_of("timeout")
    assert len(timeouts) == 1 and timeouts[0].has_policy
    assert controller.is_timed_out

    clock.advance(30)
    assert controller.tick().events_of("timeout") == []

    forced = controller.timeout()
    changed = forced.events_of("state_changed")[0]
    assert changed.decision_id == "wait"
    assert changed.forced
    record = controller.state.decision_history[-1]
    assert record.forced
    assert record.time_taken_ms == 90_000
    assert controller.state.current_state_id == "middle"
    assert not controller.is_timed_out
    assert controller.state.cumulative_score == -30


def test_timeout_without_policy_is_rejected_and_state_kept(controller, clock, caplog) -> None:
    controller.decide("act")
    clock.advance(120)
    with caplog.at_level(logging.WARNING, logger="deepthink.engine.controller"):
        result = controller.tick()
    assert result.events_of("timeout")[0].has_policy is False
    assert "no timeout decision" in caplog.text

    before = controller.state
    with pytest.raises(NoTimeoutPolicy):
        controller.timeout()
    assert controller.state is before
    assert controller.state.current_state_id == "middle"
    assert controller.state.status == "active"


def test_complete_requires_terminal(controller) -> None:
    with pytest.raises(SessionNotComplete):
        controller.complete()
    assert controller.state.status == "active"


def test_complete_cancels_pending_and_freezes(controller, clock) -> None:
    controller.decide("act")
    controller.decide("finish")
    assert controller.state.awaiting_completion
    assert controller.available_decisions() == ()

    result = controller.complete()

    completed = result.events_of("session_completed")[0]
    assert completed.cancelled_consequences == 1
    assert completed.final_score == -5 + 15
    assert result.state.final_score == 10
    assert result.state.status == "completed"
    assert controller.pending == ()

    clock.advance(10_000)
    assert controller.tick().events == ()
    for op in (controller.complete, controller.pause, controller.resume, controller.use_hint, controller.timeout):
        with pytest.raises(SessionAlreadyComplete):
            op()
    with pytest.raises(SessionAlreadyComplete):
        controller.decide("finish")
    assert controller.state.final_score == 10


def test_hints_are_counted(controller) -> None:
    controller.use_hint()
    controller.use_hint()
    assert controller.metrics().hints_used == 2


def test_negative_tick_rejected(controller) -> None:
    with pytest.raises(ValueError):
        controller.tick(-5)


def test_sessions_do_not_share_state(graph) -> None:
    clock = VirtualClock()
    a = SessionController.start(graph, clock=clock, rng=FixedRandom(0.0))
    b = SessionController.start(graph, clock=clock, rng=FixedRandom(0.0))
    a.decide("act")
    assert a.session_id != b.session_id
    assert b.state.current_state_id == "start"
    assert b.pending == ()


def test_equal_seeds_replay_identically(graph) -> None:
    def run(seed: int) -> list[bool]:
        c = SessionController.start(graph, session_id="replay", clock=VirtualClock(), seed=seed)
        c.decide("act")
        c.tick(300)
        c.decide("finish")
        return [o.occurred for o in c.state.consequence_log]

    assert run(7) == run(7)


def test_restore_continues_from_persisted_state(controller, graph) -> None:
    controller.decide("act")
    state = controller.state
    pending = controller.pending

    restored = SessionController.restore(graph, state, pending, clock=VirtualClock(), rng=FixedRandom(0.0))

    assert restored.state == state
    assert [p.consequence.id for p in restored.pending] == ["s1"]
    resolved = restored.tick(300).events_of("consequence_resolved")
    assert [e.consequence_id for e in resolved] == ["s1"]


def test_restore_rejects_foreign_session(controller, scenario_data) -> None:
    other = load_scenario_graph(dict(scenario_data, id="other"))
    with pytest.raises(ValueError):
        SessionController.restore(other, controller.state)


def _lockdown_graph():
    return load_scenario_graph({
        "id": "lockdown",
        "initialStateId": "breach",
        "states": {
            "breach": {
                "id": "breach",
                "description": "Breach detected",
                "timeLimit": 180,
                "riskLevel": "high",
                "criticalityScore": 90,
                "decisions": [{
                    "id": "immediate-lockdown",
                    "text": "Lock everything down",
                    "riskLevel": "medium",
                    "nextStateId": "contained",
                    "consequences": [
                        {"id": "downtime", "type": "direct", "description": "Downtime", "impact_score": -10, "probability": 0.95},
                        {"id": "backlash", "type": "second-order", "description": "Backlash", "impact_score": -25, "probability": 0.8, "delay_minutes": 15},
                    ],
                }],
            },
            "contained": {
                "id": "contained",
                "description": "Contained",
                "riskLevel": "low",
                "criticalityScore": 10,
                "decisions": [],
            },
        },
    })


@pytest.mark.parametrize("seed", [1, 2, 3, 42])
def test_immediate_lockdown_end_to_end(seed: int) -> None:
    graph = _lockdown_graph()
    clock = VirtualClock()
    controller = SessionController.start(graph, clock=clock, seed=seed)
    assert graph.initial_state.time_limit == 180

    controller.decide("immediate-lockdown")
    direct = controller.state.consequence_log[0]
    assert direct.consequence.id == "downtime"
    assert direct.realized_impact in (0, -10)
    score_after_decision = controller.state.cumulative_score
    assert score_after_decision == direct.realized_impact
    assert len(controller.pending) == 1

    clock.advance(899)
    controller.tick()
    assert controller.state.cumulative_score == score_after_decision

    clock.advance(1)
    resolved = controller.tick().events_of("consequence_resolved")
    assert [e.consequence_id for e in resolved] == ["backlash"]
    assert controller.state.cumulative_score in (score_after_decision, score_after_decision - 25)

    clock.advance(900)
    assert controller.tick().events_of("consequence_resolved") == []
    assert sum(1 for o in controller.state.consequence_log if o.consequence.id == "backlash") == 1

    final = controller.complete().state
    assert final.final_score == controller.state.cumulative_score


def test_decide_charges_clock_time_to_the_state_it_left(controller, clock) -> None:
    controller.tick()
    clock.advance(50)
    controller.decide("act")

    assert controller.state.decision_history[-1].time_taken_ms == 50_000
    assert controller.state.elapsed_seconds == 50
    assert controller.state.state_entered_at_seconds == 50

    clock.advance(1)
    controller.tick()
    assert controller.state.state_elapsed_seconds == 1
    assert controller.time_pressure == pytest.approx(1 / 120)


def test_decision_beats_timeout_fired_by_the_same_clock_reading(controller, clock) -> None:
    clock.advance(70)
    result = controller.decide("act")

    assert result.events_of("timeout") == []
    record = controller.state.decision_history[-1]
    assert record.decision_id == "act"
    assert not record.forced
    assert record.time_taken_ms == 70_000
    assert not controller.is_timed_out


def test_rejected_decision_keeps_clock_time_owed(controller, clock) -> None:
    clock.advance(10)
    before = controller.state
    with pytest.raises(InvalidDecision):
        controller.decide("finish")
    assert controller.state is before

    controller.tick()
    assert controller.state.elapsed_seconds == 10


def test_timeout_syncs_clock_without_explicit_tick(controller, clock) -> None:
    clock.advance(60)
    result = controller.timeout()

    assert [e.kind for e in result.events][:2] == ["timeout", "state_changed"]
    assert controller.state.decision_history[-1].forced
    assert controller.state.decision_history[-1].time_taken_ms == 60_000


def test_pause_keeps_active_time_before_it(controller, clock) -> None:
    clock.advance(40)
    controller.pause()
    clock.advance(300)
    controller.resume()
    controller.tick()

    assert controller.state.elapsed_seconds == 40
    assert controller.time_pressure == pytest.approx(40 / 60)


def test_pause_resume_before_every_tick_still_counts_down(controller, clock) -> None:
    for _ in range(3):
        clock.advance(20)
        controller.pause()
        controller.resume()
    result = controller.tick()

    assert controller.state.elapsed_seconds == 60
    assert controller.is_timed_out
    assert result.events_of("timeout") == []


def test_complete_resolves_consequences_matured_before_it(graph, clock) -> None:
    controller = SessionController.start(graph, clock=clock, rng=FixedRandom(0.0))
    controller.decide("act")
    controller.decide("finish")
    clock.advance(300)

    result = controller.complete()

    assert [e.consequence_id for e in result.events_of("consequence_resolved")] == ["s1"]
    assert result.events_of("session_completed")[0].cancelled_consequences == 0
    assert result.state.final_score == -5 + 15 - 20
