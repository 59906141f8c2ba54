"""Typed errors raised by the scenario decision engine and the graph loader."""


class EngineError(Exception):
    """Base class. `code` is stable and safe to expose in API payloads."""

    code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ---------- load time ----------

class ScenarioValidationError(EngineError):
    """Authored scenario is malformed (schema, duplicate ids, bad timeout policy)."""

    code = "scenario_invalid"


class UnreachableState(ScenarioValidationError):
    """A decision (or the initial state id) points at a state that does not exist."""

    code = "unreachable_state"

    def __init__(self, state_id: str, referenced_from: str | None = None):
        where = f" (referenced from {referenced_from})" if referenced_from else ""
        super().__init__(f"State '{state_id}' is not defined in the scenario{where}")
        self.state_id = state_id
        self.referenced_from = referenced_from


# ---------- runtime ----------

class InvalidDecision(EngineError):
    code = "invalid_decision"

    def __init__(self, decision_id: str | None, state_id: str):
        super().__init__(f"Decision '{decision_id}' is not offered by state '{state_id}'")
        self.decision_id = decision_id
        self.state_id = state_id


class SessionAlreadyComplete(EngineError):
    code = "session_already_complete"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is already complete")
        self.session_id = session_id


class SessionNotComplete(EngineError):
    """finalize/complete called on a non-terminal state, or called twice."""

    code = "session_not_complete"


class NoTimeoutPolicy(EngineError):
    """Timer fired on a state that designates no forced-transition decision."""

    code = "no_timeout_policy"

    def __init__(self, state_id: str):
        super().__init__(f"State '{state_id}' has a time limit but no timeout decision")
        self.state_id = state_id


class TimeoutNotReached(EngineError):
    code = "timeout_not_reached"

    def __init__(self, state_id: str):
        super().__init__(f"Timer for state '{state_id}' has not expired")
        self.state_id = state_id


class SessionIsPaused(EngineError):
    code = "session_paused"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is paused")
        self.session_id = session_id


class SessionNotPaused(EngineError):
    code = "session_not_paused"

    def __init__(self, session_id: str):
        super().__init__(f"Session {session_id} is not paused")
        self.session_id = session_id
