"""Scenario decision engine.

Pure, synchronous state machine over in-memory values. Persistence, HTTP and
rendering live outside this package; the engine only returns new session
state and the events an operation produced.

Submodules are imported explicitly by callers (schemas import `errors`).
"""
