from __future__ import annotations

import pytest

from tasksync.exceptions import CancellationError
from tasksync.state.cancellation import CancellationRegistry
from tasksync.state.gate import RequestThrottleGate
from tasksync.state.store import FetchState


class _Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_first_fetch_is_allowed() -> None:
    gate = RequestThrottleGate(5.0, clock=_Clock())
    assert gate.should_fetch("available")


def test_in_flight_blocks_second_fetch() -> None:
    gate = RequestThrottleGate(5.0, clock=_Clock())
    gate.record_attempt("available")

    assert gate.in_flight("available")
    assert not gate.should_fetch("available")
    assert gate.should_fetch("assigned")


def test_throttle_window_then_allowed() -> None:
    clock = _Clock()
    gate = RequestThrottleGate(5.0, clock=clock)
    gate.record_attempt("available")
    gate.finish("available")

    clock.now = 4.0
    assert not gate.should_fetch("available")
    clock.now = 5.0
    assert gate.should_fetch("available")


def test_force_bypasses_throttle_and_in_flight() -> None:
    gate = RequestThrottleGate(5.0, clock=_Clock())
    gate.record_attempt("available")

    assert gate.should_fetch("available", force=True)


def test_gate_writes_through_shared_states() -> None:
    states: dict[str, FetchState] = {}
    gate = RequestThrottleGate(5.0, states=states, clock=_Clock(42.0))

    gate.record_attempt("queue")

    assert states["queue"].in_flight
    assert states["queue"].last_attempt == 42.0
    assert gate.any_in_flight
    gate.finish("queue")
    assert not gate.any_in_flight


def test_begin_supersedes_previous_token() -> None:
    registry = CancellationRegistry()
    first = registry.begin("available")
    second = registry.begin("available")

    assert not first.is_current()
    assert second.is_current()
    assert registry.current("available") is second
    with pytest.raises(CancellationError):
        first.raise_if_superseded()
    second.raise_if_superseded()


def test_tokens_are_per_key() -> None:
    registry = CancellationRegistry()
    available = registry.begin("available")
    registry.begin("assigned")

    assert available.is_current()


def test_cancel_all_invalidates_everything() -> None:
    registry = CancellationRegistry()
    tokens = [registry.begin(key) for key in ("available", "assigned", "queue")]

    registry.cancel_all()

    assert not any(token.is_current() for token in tokens)
    assert registry.current("available") is None
