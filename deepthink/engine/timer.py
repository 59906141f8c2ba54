"""Time pressure and forced-timeout detection for the current scenario state."""
from __future__ import annotations

from dataclasses import dataclass

from deepthink.schemas.scenario import ScenarioGraph
from deepthink.schemas.session import SessionStateSchema


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


@dataclass
class TickOutcome:
    state: SessionStateSchema
    time_pressure: float
    timed_out: bool  # true only on the tick that fired the timeout


class TimerController:
    """Pressure is recomputed from elapsed time on every call, never accumulated."""

    def __init__(self, graph: ScenarioGraph):
        self.graph = graph

    def time_pressure(self, session: SessionStateSchema) -> float:
        state = self.graph.state(session.current_state_id)
        if not state.is_timed:
            return 0.0
        return _clamp(session.state_elapsed_seconds / state.time_limit, 0.0, 1.0)

    def time_remaining(self, session: SessionStateSchema) -> float | None:
        state = self.graph.state(session.current_state_id)
        if not state.is_timed:
            return None
        return max(0.0, state.time_limit - session.state_elapsed_seconds)

    def is_timed_out(self, session: SessionStateSchema) -> bool:
        return session.timeout_fired and not session.is_paused and not session.is_complete

    def tick(self, session: SessionStateSchema, elapsed_delta_seconds: float) -> TickOutcome:
        if elapsed_delta_seconds < 0:
            raise ValueError(f"Elapsed delta must be >= 0, got {elapsed_delta_seconds}")
        if session.is_paused or session.is_complete:
            return TickOutcome(session, self.time_pressure(session), False)

        advanced = session.model_copy(
            update={"elapsed_seconds": session.elapsed_seconds + elapsed_delta_seconds}
        )
        pressure = self.time_pressure(advanced)

        state = self.graph.state(advanced.current_state_id)
        # Terminal states wait for explicit completion; they never time out.
        fires = (
            pressure >= 1.0
            and state.is_timed
            and not state.is_terminal
            and not advanced.timeout_fired
        )
        if fires:
            advanced = advanced.model_copy(update={"timeout_fired": True})
        return TickOutcome(advanced, pressure, fires)
