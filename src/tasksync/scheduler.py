"""Background polling tied to page visibility.

The scheduler is an explicit state machine::

    idle --activate--> scheduled --refresh_started--> running
                           ^                              |
                           +------refresh_finished--------+
    (any) --teardown--> idle

Ticks and visibility refreshes that find the page hidden, a category in
flight or a scheduler refresh still running are dropped, not queued.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Protocol

from tasksync import _constants as const
from tasksync.state.cancellation import CancellationRegistry

_logger = logging.getLogger(__name__)


class SchedulerState(StrEnum):
    IDLE = "idle"
    SCHEDULED = "scheduled"
    RUNNING = "running"


class SchedulerEvent(StrEnum):
    ACTIVATE = "activate"
    REFRESH_STARTED = "refresh_started"
    REFRESH_FINISHED = "refresh_finished"
    TEARDOWN = "teardown"


_TRANSITIONS: dict[tuple[SchedulerState, SchedulerEvent], SchedulerState] = {
    (SchedulerState.IDLE, SchedulerEvent.ACTIVATE): SchedulerState.SCHEDULED,
    (SchedulerState.SCHEDULED, SchedulerEvent.REFRESH_STARTED): SchedulerState.RUNNING,
    (SchedulerState.RUNNING, SchedulerEvent.REFRESH_FINISHED): SchedulerState.SCHEDULED,
}


def transition(state: SchedulerState, event: SchedulerEvent) -> SchedulerState:
    """Return the state reached from *state* on *event*.

    Raises :class:`ValueError` for transitions the machine does not allow.
    """
    if event is SchedulerEvent.TEARDOWN:
        return SchedulerState.IDLE
    try:
        return _TRANSITIONS[(state, event)]
    except KeyError:
        raise ValueError(f"cannot apply {event} in state {state}") from None


class VisibilitySource(Protocol):
    """Page visibility as exposed by the host."""

    @property
    def is_visible(self) -> bool: ...

    def add_listener(self, listener: Callable[[bool], None]) -> None: ...

    def remove_listener(self, listener: Callable[[bool], None]) -> None: ...


class PageVisibility:
    """Settable :class:`VisibilitySource`.

    Every ``set_visible`` call notifies listeners, like a browser
    ``visibilitychange`` event does.
    """

    def __init__(self, visible: bool = True) -> None:
        self._visible = visible
        self._listeners: list[Callable[[bool], None]] = []

    @property
    def is_visible(self) -> bool:
        return self._visible

    def add_listener(self, listener: Callable[[bool], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[bool], None]) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    def set_visible(self, visible: bool) -> None:
        self._visible = visible
        for listener in list(self._listeners):
            listener(visible)


class PollingScheduler:
    """Drives periodic refreshes for one controller.

    Parameters
    ----------
    refresh
        Coroutine function called with ``force``.
    is_busy
        Returns ``True`` while any category fetch is in flight.
    registry
        Cancellation registry whose tokens are all invalidated on teardown.
    visibility
        Page visibility source.
    """

    def __init__(
        self,
        refresh: Callable[[bool], Awaitable[object]],
        *,
        is_busy: Callable[[], bool],
        registry: CancellationRegistry,
        visibility: VisibilitySource,
        initial_delay: float = const.INITIAL_DELAY,
        poll_interval: float = const.POLL_INTERVAL,
        visibility_debounce: float = const.VISIBILITY_DEBOUNCE,
    ) -> None:
        self._refresh = refresh
        self._is_busy = is_busy
        self._registry = registry
        self._visibility = visibility
        self._initial_delay = initial_delay
        self._poll_interval = poll_interval
        self._visibility_debounce = visibility_debounce

        self._state = SchedulerState.IDLE
        self._loop: asyncio.AbstractEventLoop | None = None
        self._initial_handle: asyncio.TimerHandle | None = None
        self._interval_handle: asyncio.TimerHandle | None = None
        self._debounce_handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> SchedulerState:
        return self._state

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            raise RuntimeError("scheduler is not running")
        return self._loop

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Activate: one forced refresh after the initial delay, then periodic ticks."""
        if self._state is not SchedulerState.IDLE:
            return
        loop = asyncio.get_running_loop()
        self._loop = loop
        self._state = transition(self._state, SchedulerEvent.ACTIVATE)
        self._initial_handle = loop.call_later(self._initial_delay, self._on_initial)
        self._interval_handle = loop.call_later(self._poll_interval, self._on_tick)
        self._visibility.add_listener(self._on_visibility_change)
        _logger.debug("Polling scheduled every %.1fs", self._poll_interval)

    def stop(self) -> list[asyncio.Task[None]]:
        """Tear down timers, listener, tokens and running refreshes.

        Returns the refresh tasks that were cancelled so callers can await them.
        """
        for handle in (self._initial_handle, self._interval_handle, self._debounce_handle):
            if handle is not None:
                handle.cancel()
        self._initial_handle = self._interval_handle = self._debounce_handle = None
        if self._state is not SchedulerState.IDLE:
            self._visibility.remove_listener(self._on_visibility_change)
        self._registry.cancel_all()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        self._state = transition(self._state, SchedulerEvent.TEARDOWN)
        self._loop = None
        return tasks

    async def aclose(self) -> None:
        tasks = self.stop()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------

    def _on_initial(self) -> None:
        self._initial_handle = None
        self._launch(force=True)

    def _on_tick(self) -> None:
        loop = self._require_loop()
        self._interval_handle = loop.call_later(self._poll_interval, self._on_tick)
        if not self._visibility.is_visible:
            _logger.debug("Skipping poll tick: page hidden")
            return
        if self._is_busy() or self._state is SchedulerState.RUNNING:
            _logger.debug("Skipping poll tick: refresh in flight")
            return
        self._launch(force=False)

    def _on_visibility_change(self, visible: bool) -> None:
        if not visible or self._state is SchedulerState.IDLE:
            return
        loop = self._require_loop()
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
        self._debounce_handle = loop.call_later(self._visibility_debounce, self._on_debounce_elapsed)

    def _on_debounce_elapsed(self) -> None:
        self._debounce_handle = None
        if self._is_busy() or self._state is SchedulerState.RUNNING:
            _logger.debug("Skipping visibility refresh: refresh in flight")
            return
        self._launch(force=False)

    def _launch(self, *, force: bool) -> None:
        if self._state is not SchedulerState.SCHEDULED:
            _logger.debug("Skipping %s refresh: scheduler is %s", "forced" if force else "scheduled", self._state)
            return
        loop = self._require_loop()
        self._state = transition(self._state, SchedulerEvent.REFRESH_STARTED)
        task = loop.create_task(self._run(force))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, force: bool) -> None:
        try:
            await self._refresh(force)
        except Exception:
            _logger.exception("Scheduled refresh failed")
        finally:
            if self._state is SchedulerState.RUNNING:
                self._state = transition(self._state, SchedulerEvent.REFRESH_FINISHED)
