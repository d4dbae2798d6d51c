"""High-level async controller for the task page."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import aiohttp

from tasksync import _constants as const
from tasksync._transport import JsonTransport
from tasksync.api import HttpTaskApi, ReferenceApi, TaskApi
from tasksync.cache import MemorySessionStorage, SessionStorage, TTLCache
from tasksync.config import SyncConfig
from tasksync.dashboard import QueueDashboard
from tasksync.exceptions import MutationError, TaskSyncConfigError, TaskSyncError
from tasksync.invalidation import (
    MutationEffect,
    categories_to_refetch,
    effects_for_data_update,
    effects_for_status_update,
)
from tasksync.models.commands import (
    CommentCommand,
    DataUpdateCommand,
    RequestIdCommand,
    StatusUpdateCommand,
)
from tasksync.models.record import Category, RequestRecord, RequestStatus
from tasksync.notifications import LoggingNotifier, Notification, NotificationLevel, Notifier
from tasksync.orchestrator import FetchOrchestrator, FetchOutcome, RefreshReport, RefreshStrategy
from tasksync.scheduler import PageVisibility, PollingScheduler, SchedulerState, VisibilitySource
from tasksync.state.cancellation import CancellationRegistry
from tasksync.state.gate import RequestThrottleGate
from tasksync.state.store import CategorizedStore

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MutationResult:
    """Outcome of a mutation as shown to the user."""

    ok: bool
    message: str
    refetched: tuple[Category, ...] = ()
    error: MutationError | None = None
    report: RefreshReport | None = field(default=None, compare=False)


class TaskSyncController:
    """Keeps the task page's categorized requests in sync with the task service.

    Usage::

        async with TaskSyncController(config) as controller:
            controller.start()
            ...
            result = await controller.claim_request(42)

    Pass ``api`` (and optionally ``reference_api``) to use another task
    service binding; otherwise an aiohttp-backed :class:`HttpTaskApi` is
    created on entry.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        api: TaskApi | None = None,
        reference_api: ReferenceApi | None = None,
        session: aiohttp.ClientSession | None = None,
        storage: SessionStorage | None = None,
        visibility: VisibilitySource | None = None,
        notifier: Notifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._user_id: int | str | None = config.user_id
        self._external_session = session is not None
        self._http_session = session
        self._api = api
        self._reference_api = reference_api
        if reference_api is None and isinstance(api, HttpTaskApi):
            self._reference_api = api
        self._notifier: Notifier = notifier if notifier is not None else LoggingNotifier()
        self.visibility: VisibilitySource = visibility if visibility is not None else PageVisibility()

        self.store = CategorizedStore(clock=clock, stale_after=config.stale_after)
        self.registry = CancellationRegistry()
        self.gate = RequestThrottleGate(
            config.throttle_interval,
            states=self.store.fetch_states,
            clock=clock,
        )
        self.cache = TTLCache(storage if storage is not None else MemorySessionStorage(), clock=clock)
        self._orchestrator: FetchOrchestrator | None = None
        self._dashboard: QueueDashboard | None = None
        self._scheduler = PollingScheduler(
            self._scheduled_refresh,
            is_busy=lambda: self.store.any_in_flight,
            registry=self.registry,
            visibility=self.visibility,
            initial_delay=config.initial_delay,
            poll_interval=config.poll_interval,
            visibility_debounce=config.visibility_debounce,
        )
        if api is not None:
            self._build(api)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TaskSyncController:
        if self._api is None:
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            api = HttpTaskApi(JsonTransport(self._config, self._http_session))
            self._api = api
            if self._reference_api is None:
                self._reference_api = api
            self._build(api)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.stop()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None

    def _build(self, api: TaskApi) -> None:
        self._orchestrator = FetchOrchestrator(
            api,
            self.store,
            self.gate,
            self.registry,
            user_id=lambda: self._user_id,
            strategy=RefreshStrategy(self._config.refresh_strategy),
            step_delay=self._config.ordered_step_delay,
        )
        if self._reference_api is not None:
            self._dashboard = QueueDashboard(
                self._reference_api,
                self.cache,
                self._notifier,
                throttle_interval=self._config.dashboard_throttle_interval,
                cache_ttl=self._config.reference_cache_ttl,
                clock=self._clock,
            )

    def _require_orchestrator(self) -> FetchOrchestrator:
        if self._orchestrator is None:
            raise TaskSyncError("Controller not initialized. Use 'async with TaskSyncController(...) as controller:'")
        return self._orchestrator

    def _require_api(self) -> TaskApi:
        if self._api is None:
            raise TaskSyncError("Controller not initialized. Use 'async with TaskSyncController(...) as controller:'")
        return self._api

    def _require_user(self) -> int | str:
        if self._user_id is None:
            raise TaskSyncConfigError("No authenticated user (set config.user_id or pass user_id to start())")
        return self._user_id

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    @property
    def user_id(self) -> int | str | None:
        return self._user_id

    @property
    def scheduler_state(self) -> SchedulerState:
        return self._scheduler.state

    @property
    def dashboard(self) -> QueueDashboard:
        if self._dashboard is None:
            raise TaskSyncError("No reference API configured for the queue dashboard")
        return self._dashboard

    def start(self, user_id: int | str | None = None) -> None:
        """Start background polling for the authenticated user."""
        if user_id is not None:
            self._user_id = user_id
        self._require_user()
        self._require_orchestrator()
        self._scheduler.start()

    async def stop(self) -> None:
        """Stop polling and discard every in-flight fetch."""
        await self._scheduler.aclose()
        if self._dashboard is not None:
            self._dashboard.cancel()

    async def _scheduled_refresh(self, force: bool) -> None:
        await self.refresh_all(force)
        if self._config.auto_return_enabled:
            await self.auto_return_stale_assignments()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def refresh_all(
        self,
        force: bool = False,
        strategy: RefreshStrategy | str | None = None,
    ) -> RefreshReport:
        return await self._require_orchestrator().refresh_all(force, strategy)

    async def refresh_category(self, category: Category | str, force: bool = False) -> FetchOutcome:
        return await self._require_orchestrator().fetch_category(Category(category), force)

    def requests(self, category: Category | str) -> list[RequestRecord]:
        return self.store.get_category(Category(category))

    def is_stale(self, category: Category | str) -> bool:
        return self.store.is_stale(Category(category))

    @property
    def any_in_flight(self) -> bool:
        return self.store.any_in_flight

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _notify(self, level: NotificationLevel, title: str, message: str) -> None:
        self._notifier.notify(Notification(level=level, title=title, message=message))

    async def _mutate(
        self,
        request_id: int | str,
        steps: Sequence[Callable[[], Any]],
        effects: Sequence[MutationEffect],
        *,
        success_message: str,
        failure_message: str,
    ) -> MutationResult:
        """Run the remote *steps* in order, then refetch the affected categories.

        A failing step stops the sequence; nothing is refetched or retried.
        """
        orchestrator = self._require_orchestrator()
        try:
            for step in steps:
                await step()
        except Exception as exc:  # noqa: BLE001 - reported as a failed result
            error = MutationError(failure_message, request_id=request_id)
            error.__cause__ = exc
            _logger.error("Mutation on request %s failed: %s", request_id, exc)
            self._notify(NotificationLevel.ERROR, "Error", failure_message)
            return MutationResult(ok=False, message=failure_message, error=error)

        categories = categories_to_refetch(*effects)
        report = await orchestrator.refresh_concurrent(categories, force=True)
        self._notify(NotificationLevel.SUCCESS, "Success", success_message)
        return MutationResult(ok=True, message=success_message, refetched=categories, report=report)

    async def claim_request(self, request_id: int | str) -> MutationResult:
        """Assign the request to the current user."""
        command = RequestIdCommand(request_id=request_id)
        api = self._require_api()
        user_id = self._require_user()
        return await self._mutate(
            command.request_id,
            [lambda: api.claim_request(command.request_id, user_id)],
            [MutationEffect.claim()],
            success_message="Request assigned successfully",
            failure_message="Failed to claim request. Please try again.",
        )

    async def update_request_status(
        self,
        request_id: int | str,
        status: RequestStatus | str,
        extra: Mapping[str, Any] | None = None,
    ) -> MutationResult:
        command = StatusUpdateCommand(request_id=request_id, status=status, extra=dict(extra or {}))
        api = self._require_api()
        user_id = self._require_user()
        return await self._mutate(
            command.request_id,
            [lambda: api.update_request_status(command.request_id, command.status.value, user_id, command.extra)],
            effects_for_status_update(command.status, command.extra),
            success_message=f"Request {command.status.value.replace('_', ' ')}",
            failure_message="Failed to update request status. Please try again.",
        )

    async def add_comment(
        self,
        request_id: int | str,
        text: str,
        is_send_back_reason: bool = False,
    ) -> MutationResult:
        command = CommentCommand(request_id=request_id, text=text, is_send_back_reason=is_send_back_reason)
        api = self._require_api()
        user_id = self._require_user()
        return await self._mutate(
            command.request_id,
            [lambda: api.add_comment(command.request_id, user_id, command.text, command.is_send_back_reason)],
            [MutationEffect.comment(command.is_send_back_reason)],
            success_message="Comment added",
            failure_message="Failed to add comment. Please try again.",
        )

    async def update_request(self, request_id: int | str, data: Mapping[str, Any]) -> MutationResult:
        """Update arbitrary fields of a request."""
        user_id = self._require_user()
        command = DataUpdateCommand(request_id=request_id, data={**data, "updated_by": user_id})
        api = self._require_api()
        return await self._mutate(
            command.request_id,
            [lambda: api.update_request_data(command.request_id, command.data)],
            effects_for_data_update(command.data),
            success_message="Request updated successfully",
            failure_message="Failed to update request. Please try again.",
        )

    async def submit_response(self, request_id: int | str, response: str) -> MutationResult:
        """Record the handler's response and complete the request."""
        command = CommentCommand(request_id=request_id, text=response)
        api = self._require_api()
        user_id = self._require_user()
        return await self._mutate(
            command.request_id,
            [
                lambda: api.add_comment(command.request_id, user_id, command.text),
                lambda: api.update_request_status(command.request_id, RequestStatus.COMPLETED.value, user_id),
            ],
            [MutationEffect.comment(), MutationEffect.status_change(RequestStatus.COMPLETED)],
            success_message="Request completed successfully",
            failure_message="Failed to submit response. Please try again.",
        )

    async def send_back_to_requestor(self, request_id: int | str, reason: str) -> MutationResult:
        """Send the request back for correction, releasing the assignment."""
        command = CommentCommand(request_id=request_id, text=reason, is_send_back_reason=True)
        api = self._require_api()
        user_id = self._require_user()
        extra = {"assigned_to": None}
        return await self._mutate(
            command.request_id,
            [
                lambda: api.add_comment(command.request_id, user_id, command.text, True),
                lambda: api.update_request_status(command.request_id, RequestStatus.SENT_BACK.value, user_id, extra),
            ],
            [MutationEffect.comment(True), *effects_for_status_update(RequestStatus.SENT_BACK, extra)],
            success_message="Request sent back for correction",
            failure_message="Failed to send request back. Please try again.",
        )

    async def save_edited_request(self, request_id: int | str, data: Mapping[str, Any]) -> MutationResult:
        """Save a requester's corrections; the request goes back to ``new``."""
        return await self.update_request(request_id, {**data, "status": RequestStatus.NEW.value})

    async def auto_return_stale_assignments(self) -> list[int | str]:
        """Return in-progress assignments idle for too long to the queue.

        Returns the ids that were returned. Failures are logged per request.
        """
        api = self._require_api()
        user_id = self._require_user()
        cutoff = datetime.fromtimestamp(self._clock(), tz=UTC) - timedelta(seconds=self._config.auto_return_after)
        returned: list[int | str] = []
        for record in self.store.get_category(Category.ASSIGNED):
            if record.known_status is not RequestStatus.IN_PROGRESS or record.updated_at is None:
                continue
            if record.updated_at >= cutoff:
                continue
            try:
                await api.update_request_status(
                    record.id,
                    RequestStatus.NEW.value,
                    user_id,
                    {"assigned_to": None, "details": const.AUTO_RETURN_DETAILS},
                )
            except TaskSyncError as exc:
                _logger.warning("Auto-return of request %s failed: %s", record.id, exc)
                continue
            returned.append(record.id)
            reference = record.extra_field("reference_number", record.id)
            self._notify(
                NotificationLevel.INFO,
                "Task Auto-Returned",
                f"Request {reference} has been auto-returned to the queue",
            )
        if returned:
            categories = categories_to_refetch(
                *effects_for_status_update(RequestStatus.NEW, {"assigned_to": None})
            )
            await self._require_orchestrator().refresh_concurrent(categories, force=True)
        return returned
