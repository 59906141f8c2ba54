from __future__ import annotations

import pytest

from deepthink.engine.clock import RealClock, VirtualClock


def test_virtual_clock_moves_only_when_told() -> None:
    clock = VirtualClock(start=10)
    assert clock.now() == 10.0
    assert clock.advance(5) == 15.0
    assert clock.advance_to(40) == 40.0
    assert clock.now() == 40.0


def test_virtual_clock_rejects_going_backwards() -> None:
    clock = VirtualClock(start=10)
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.advance_to(5)
    assert clock.now() == 10.0


def test_real_clock_is_monotonic() -> None:
    clock = RealClock()
    first = clock.now()
    assert clock.now() >= first
