from __future__ import annotations

import random

import pytest

from deepthink.engine.clock import VirtualClock
from deepthink.engine.controller import SessionController
from deepthink.engine.graph import load_scenario_graph


class FixedRandom(random.Random):
    """Every draw returns the same value: 0.0 makes any p > 0 occur, 0.999 only p = 1."""

    def __init__(self, value: float) -> None:
        super().__init__(0)
        self.value = value

    def random(self) -> float:
        return self.value


def drill_data() -> dict:
    """Three-step drill: a timed start with a timeout policy, a timed middle without one, a terminal end."""
    return {
        "id": "drill",
        "title": "Drill",
        "domain": "testing",
        "difficulty_level": 1,
        "tags": ["unit"],
        "initialStateId": "start",
        "states": [
            {
                "id": "start",
                "description": "Alarm raised",
                "timeLimit": 60,
                "timeoutDecisionId": "wait",
                "riskLevel": "high",
                "criticalityScore": 80,
                "decisions": [
                    {
                        "id": "act",
                        "text": "Act now",
                        "riskLevel": "medium",
                        "nextStateId": "middle",
                        "consequences": [
                            {"id": "d1", "type": "direct", "description": "cost", "impact_score": -10, "probability": 1.0},
                            {"id": "s0", "type": "second-order", "description": "instant relief", "impact_score": 5, "probability": 1.0},
                            {"id": "s1", "type": "second-order", "description": "fallout", "impact_score": -20, "probability": 1.0, "delay_minutes": 5},
                        ],
                    },
                    {
                        "id": "wait",
                        "text": "Wait",
                        "riskLevel": "high",
                        "nextStateId": "middle",
                        "consequences": [
                            {"id": "d2", "type": "direct", "description": "spread", "impact_score": -30, "probability": 1.0},
                        ],
                    },
                ],
            },
            {
                "id": "middle",
                "description": "Stabilising",
                "timeLimit": 120,
                "riskLevel": "medium",
                "criticalityScore": 40,
                "decisions": [
                    {
                        "id": "finish",
                        "text": "Wrap up",
                        "riskLevel": "low",
                        "nextStateId": "end",
                        "consequences": [
                            {"id": "d3", "type": "direct", "description": "praise", "impact_score": 15, "probability": 0.5},
                        ],
                    },
                ],
            },
            {
                "id": "end",
                "description": "Resolved",
                "riskLevel": "low",
                "criticalityScore": 5,
                "decisions": [],
            },
        ],
    }


@pytest.fixture
def scenario_data() -> dict:
    return drill_data()


@pytest.fixture
def graph(scenario_data):
    return load_scenario_graph(scenario_data)


@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()


@pytest.fixture
def controller(graph, clock) -> SessionController:
    """Controller on the drill where every consequence with p > 0 occurs."""
    return SessionController.start(graph, session_id="s-1", clock=clock, rng=FixedRandom(0.0))
