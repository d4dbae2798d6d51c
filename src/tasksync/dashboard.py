"""Queue dashboard: reference data plus classified queue requests.

Users and handlers change rarely and are served from the session cache when
fresh; queue requests are always fetched. The three loads run concurrently
and each outcome is inspected on its own, so one failing source only
degrades its own panel.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter

from tasksync import _constants as const
from tasksync.api import ReferenceApi
from tasksync.cache import TTLCache
from tasksync.exceptions import CancellationError
from tasksync.models.queue import Classification
from tasksync.models.record import RequestRecord
from tasksync.models.reference import Handler, User
from tasksync.notifications import Notification, NotificationLevel, Notifier
from tasksync.state.cancellation import CancellationRegistry
from tasksync.state.categorizer import classify
from tasksync.state.gate import RequestThrottleGate

_logger = logging.getLogger(__name__)

_USERS = TypeAdapter(list[User])
_HANDLERS = TypeAdapter(list[Handler])


@dataclass(slots=True)
class DashboardSnapshot:
    users: list[User] = field(default_factory=list)
    handlers: list[Handler] = field(default_factory=list)
    requests: list[RequestRecord] = field(default_factory=list)
    classification: Classification = field(default_factory=lambda: classify([]))
    updated_at: float | None = None


def join_handlers(handlers: Sequence[Handler], users: Sequence[User]) -> list[Handler]:
    """Attach each handler's user record (``None`` when the user is unknown)."""
    users_by_id = {str(user.id): user for user in users}
    return [
        handler.model_copy(update={"user": users_by_id.get(str(handler.user_id))})
        for handler in handlers
    ]


class QueueDashboard:
    """Loads and holds the queue dashboard data."""

    def __init__(
        self,
        api: ReferenceApi,
        cache: TTLCache,
        notifier: Notifier,
        *,
        throttle_interval: float = const.DASHBOARD_THROTTLE_INTERVAL,
        cache_ttl: float = const.REFERENCE_CACHE_TTL,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._api = api
        self._cache = cache
        self._notifier = notifier
        self._cache_ttl = cache_ttl
        self._clock = clock
        self._gate = RequestThrottleGate(throttle_interval, clock=clock)
        self._registry = CancellationRegistry()
        self._snapshot = DashboardSnapshot()

    @property
    def snapshot(self) -> DashboardSnapshot:
        return self._snapshot

    @property
    def loading(self) -> bool:
        return self._gate.in_flight(const.QUEUE_KEY)

    async def _cached(
        self,
        key: str,
        adapter: TypeAdapter[Any],
        load: Callable[[], Any],
    ) -> Any:
        cached = self._cache.get(key, self._cache_ttl, parse=adapter.validate_python)
        if cached is not None:
            return cached
        fresh = await load()
        self._cache.put(key, adapter.dump_python(fresh, mode="json"))
        return fresh

    def _warn(self, what: str, error: BaseException) -> None:
        _logger.warning("Failed to load %s: %s", what, error)
        self._notifier.notify(
            Notification(
                level=NotificationLevel.WARNING,
                title="Warning",
                message=f"Failed to load {what}. Some features may be limited.",
                tag=f"dashboard:{what}",
            )
        )

    async def refresh(self, force: bool = False) -> DashboardSnapshot:
        """Reload the dashboard unless throttled; returns the current snapshot."""
        key = const.QUEUE_KEY
        if not self._gate.should_fetch(key, force):
            return self._snapshot
        token = self._registry.begin(key)
        self._gate.record_attempt(key)
        state = self._gate.state(key)
        state.token = token
        try:
            users_result, handlers_result, requests_result = await asyncio.gather(
                self._cached(const.USERS_CACHE_KEY, _USERS, self._api.get_all_active_users),
                self._cached(const.HANDLERS_CACHE_KEY, _HANDLERS, self._api.get_handlers),
                self._api.get_requests(),
                return_exceptions=True,
            )
            token.raise_if_superseded()
        except CancellationError:
            _logger.debug("Discarding superseded dashboard refresh")
            return self._snapshot
        finally:
            if state.token is token:
                self._gate.finish(key)
                state.token = None

        snapshot = self._snapshot
        users = snapshot.users
        if isinstance(users_result, BaseException):
            self._warn("users", users_result)
        else:
            users = list(users_result)

        handlers = snapshot.handlers
        if isinstance(handlers_result, BaseException):
            self._warn("handlers", handlers_result)
        else:
            handlers = join_handlers(handlers_result, users)

        requests = snapshot.requests
        classification = snapshot.classification
        if isinstance(requests_result, BaseException):
            self._warn("requests", requests_result)
        else:
            requests = list(requests_result)
            classification = classify(requests)

        self._snapshot = DashboardSnapshot(
            users=users,
            handlers=handlers,
            requests=requests,
            classification=classification,
            updated_at=self._clock(),
        )
        return self._snapshot

    def cancel(self) -> None:
        """Discard the result of any refresh still in flight."""
        self._registry.cancel_all()
