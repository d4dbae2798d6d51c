"""Per-key throttle gate deciding whether a fetch may start now."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from tasksync._constants import THROTTLE_INTERVAL
from tasksync.state.policy import throttle_allows
from tasksync.state.store import FetchState

_logger = logging.getLogger(__name__)


class RequestThrottleGate:
    """Throttle and in-flight bookkeeping over a set of :class:`FetchState`.

    ``should_fetch`` only answers the question. Callers must call
    ``record_attempt`` before issuing the network call (with no ``await`` in
    between) so a second caller in the same loop iteration sees the key as
    in flight, and ``finish`` once the fetch has settled.

    Parameters
    ----------
    throttle_interval
        Minimum seconds between two non-forced fetches of the same key.
    states
        Fetch states to operate on (e.g. ``CategorizedStore.fetch_states``).
        Missing keys are created on first use.
    clock
        Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        throttle_interval: float = THROTTLE_INTERVAL,
        *,
        states: dict[str, FetchState] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._throttle_interval = throttle_interval
        self._states = states if states is not None else {}
        self._clock = clock

    def state(self, key: str) -> FetchState:
        state = self._states.get(key)
        if state is None:
            state = FetchState()
            self._states[key] = state
        return state

    def should_fetch(self, key: str, force: bool = False) -> bool:
        state = self.state(key)
        allowed = throttle_allows(
            now=self._clock(),
            last_attempt=state.last_attempt,
            in_flight=state.in_flight,
            throttle_interval=self._throttle_interval,
            force=force,
        )
        if not allowed:
            reason = "in flight" if state.in_flight else "throttled"
            _logger.debug("Skipping fetch for %s (%s)", key, reason)
        return allowed

    def record_attempt(self, key: str) -> None:
        state = self.state(key)
        state.in_flight = True
        state.last_attempt = self._clock()

    def finish(self, key: str) -> None:
        self.state(key).in_flight = False

    def in_flight(self, key: str) -> bool:
        return self.state(key).in_flight

    @property
    def any_in_flight(self) -> bool:
        return any(state.in_flight for state in self._states.values())
