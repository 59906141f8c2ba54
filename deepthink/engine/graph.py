"""Scenario graph loading and authoring checks.

Accepts the authored scenario config shape (camelCase keys, `initialState`
given either as an id or as a full state object) and returns an immutable
ScenarioGraph. Malformed graphs are rejected here, before any session exists.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from deepthink.engine.errors import ScenarioValidationError
from deepthink.schemas.scenario import ScenarioGraph

logger = logging.getLogger(__name__)


def _index_states(states: Any, scenario_id: str) -> dict[str, Any]:
    """States keyed by id. A list must carry unique, non-empty ids."""
    if states is None:
        return {}
    if isinstance(states, dict):
        return dict(states)
    if not isinstance(states, list):
        raise ScenarioValidationError(
            f"Scenario '{scenario_id}': states must be a list or an object, not {type(states).__name__}"
        )
    indexed: dict[str, Any] = {}
    for position, entry in enumerate(states):
        if not isinstance(entry, dict) or not entry.get("id"):
            raise ScenarioValidationError(f"Scenario '{scenario_id}': state #{position} has no id")
        if entry["id"] in indexed:
            raise ScenarioValidationError(f"Scenario '{scenario_id}': duplicate state id '{entry['id']}'")
        indexed[entry["id"]] = entry
    return indexed


def _normalize(data: dict[str, Any]) -> dict[str, Any]:
    """Map the authored config onto ScenarioGraph fields."""
    if not isinstance(data, dict):
        raise ScenarioValidationError(f"Scenario config must be an object, not {type(data).__name__}")
    out = dict(data)
    scenario_id = out.get("id", "?")
    states = _index_states(out.get("states"), scenario_id)

    initial = out.pop("initialState", None)
    if "initialStateId" not in out and "initial_state_id" not in out:
        if isinstance(initial, dict):
            initial_id = initial.get("id")
            if not initial_id:
                raise ScenarioValidationError(f"Scenario '{scenario_id}': initialState has no id")
            if initial_id in states and states[initial_id] != initial:
                raise ScenarioValidationError(f"Scenario '{scenario_id}': duplicate state id '{initial_id}'")
            out["initialStateId"] = initial_id
            # An inline initial state counts as part of the graph.
            states[initial_id] = initial
        elif isinstance(initial, str):
            out["initialStateId"] = initial
    out["states"] = states
    return out


def load_scenario_graph(data: dict[str, Any]) -> ScenarioGraph:
    """Validate an authored scenario and build its graph.

    Raises UnreachableState for dangling state references and
    ScenarioValidationError for any other authoring defect.
    """
    try:
        graph = ScenarioGraph.model_validate(_normalize(data))
    except ValidationError as exc:
        raise ScenarioValidationError(
            f"Scenario '{data.get('id', '?')}' failed validation: {exc}"
        ) from exc

    orphans = sorted(set(graph.states) - graph.reachable_state_ids())
    if orphans:
        logger.warning("Scenario %s has orphaned states: %s", graph.id, ", ".join(orphans))
    return graph


def load_scenario_file(path: str | Path) -> ScenarioGraph:
    path = Path(path)
    with path.open(encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ScenarioValidationError(f"Scenario file {path.name} is not valid JSON: {exc}") from exc
    return load_scenario_graph(data)


def load_scenario_dir(directory: str | Path) -> list[ScenarioGraph]:
    """Load every *.json scenario in a directory, sorted by file name."""
    return [load_scenario_file(p) for p in sorted(Path(directory).glob("*.json"))]
