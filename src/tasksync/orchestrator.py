"""Multi-category refresh of the task page.

Two strategies share the same per-category pipeline (throttle check,
cancellation token, remote call, token check, store write) and the same
error isolation: a failing category is logged and keeps its previous
bucket, while its siblings complete normally.

* ``refresh_ordered`` issues requests in a fixed order with a pause between
  them to bound backend load. Responses are committed as they arrive, so the
  pause throttles issuance, not completion order.
* ``refresh_concurrent`` issues everything at once and inspects each branch
  of an ``asyncio.gather(..., return_exceptions=True)`` independently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum

from tasksync._constants import ORDERED_STEP_DELAY
from tasksync.api import TaskApi
from tasksync.exceptions import CancellationError, RequestError
from tasksync.models.record import Category, RequestRecord, RequestStatus
from tasksync.state.cancellation import CancellationRegistry, CancellationToken
from tasksync.state.gate import RequestThrottleGate
from tasksync.state.store import CategorizedStore

_logger = logging.getLogger(__name__)

ORDERED_CATEGORIES: tuple[Category, ...] = (
    Category.AVAILABLE,
    Category.ASSIGNED,
    Category.COMPLETED,
    Category.SUBMITTED,
    Category.SENT_BACK,
)


class RefreshStrategy(StrEnum):
    CONCURRENT = "concurrent"
    ORDERED = "ordered"


class FetchStatus(StrEnum):
    UPDATED = "updated"
    SKIPPED = "skipped"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    category: Category
    status: FetchStatus
    count: int = 0
    error: RequestError | None = None


@dataclass(slots=True)
class RefreshReport:
    """Per-category outcomes of one refresh pass."""

    outcomes: list[FetchOutcome] = field(default_factory=list)

    def by_status(self, status: FetchStatus) -> list[Category]:
        return [outcome.category for outcome in self.outcomes if outcome.status is status]

    @property
    def updated(self) -> list[Category]:
        return self.by_status(FetchStatus.UPDATED)

    @property
    def failed(self) -> list[Category]:
        return self.by_status(FetchStatus.FAILED)

    @property
    def skipped(self) -> list[Category]:
        return self.by_status(FetchStatus.SKIPPED)

    @property
    def ok(self) -> bool:
        return not self.failed


class FetchOrchestrator:
    """Fetches categories from the task service into a :class:`CategorizedStore`."""

    def __init__(
        self,
        api: TaskApi,
        store: CategorizedStore,
        gate: RequestThrottleGate,
        registry: CancellationRegistry,
        *,
        user_id: Callable[[], int | str | None],
        strategy: RefreshStrategy = RefreshStrategy.CONCURRENT,
        step_delay: float = ORDERED_STEP_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._api = api
        self._store = store
        self._gate = gate
        self._registry = registry
        self._user_id = user_id
        self._strategy = strategy
        self._step_delay = step_delay
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Per-category pipeline
    # ------------------------------------------------------------------

    async def _fetch_records(self, category: Category, user_id: int | str) -> list[RequestRecord]:
        if category is Category.AVAILABLE:
            return await self._api.get_available_requests(user_id)
        if category is Category.ASSIGNED:
            records = await self._api.get_assigned_requests(user_id)
            return [record for record in records if record.status != RequestStatus.COMPLETED]
        if category is Category.COMPLETED:
            return await self._api.get_assigned_requests(user_id, RequestStatus.COMPLETED.value)
        if category is Category.SUBMITTED:
            return await self._api.get_submitted_requests(user_id)
        return await self._api.get_sent_back_requests(user_id)

    def _begin(self, category: Category, force: bool) -> CancellationToken | None:
        """Claim the category for a new fetch, or return ``None`` if throttled.

        Synchronous on purpose: the in-flight flag is set before control
        returns to the event loop.
        """
        if not self._gate.should_fetch(category, force):
            return None
        token = self._registry.begin(category)
        self._gate.record_attempt(category)
        self._gate.state(category).token = token
        return token

    def _release(self, category: Category, token: CancellationToken) -> None:
        # Only the latest fetch started for the category owns its flag; a
        # superseded one leaves it to its successor.
        state = self._gate.state(category)
        if state.token is token:
            self._gate.finish(category)
            state.token = None

    def _settle(
        self,
        category: Category,
        token: CancellationToken,
        result: list[RequestRecord] | BaseException,
    ) -> FetchOutcome:
        try:
            token.raise_if_superseded()
        except CancellationError:
            _logger.debug("Discarding superseded %s fetch", category)
            return FetchOutcome(category, FetchStatus.CANCELLED)
        finally:
            self._release(category, token)

        if isinstance(result, BaseException):
            error = RequestError(f"Fetching {category} requests failed: {result}", category=category)
            error.__cause__ = result
            _logger.warning("Error fetching %s requests: %s", category, result)
            return FetchOutcome(category, FetchStatus.FAILED, error=error)

        self._store.set_category(category, result)
        return FetchOutcome(category, FetchStatus.UPDATED, count=len(result))

    async def _fetch_and_settle(self, category: Category, token: CancellationToken) -> FetchOutcome:
        user_id = self._user_id()
        result: list[RequestRecord] | BaseException
        try:
            if user_id is None:
                raise RequestError("no authenticated user", category=category)
            result = await self._fetch_records(category, user_id)
        except asyncio.CancelledError:
            self._release(category, token)
            token.invalidate()
            raise
        except Exception as exc:  # noqa: BLE001 - isolated per category
            result = exc
        return self._settle(category, token, result)

    async def fetch_category(self, category: Category, force: bool = False) -> FetchOutcome:
        """Fetch one category unless throttled; never raises for remote failures."""
        token = self._begin(category, force)
        if token is None:
            return FetchOutcome(category, FetchStatus.SKIPPED)
        return await self._fetch_and_settle(category, token)

    # ------------------------------------------------------------------
    # Refresh strategies
    # ------------------------------------------------------------------

    async def refresh_concurrent(
        self,
        categories: Iterable[Category] = ORDERED_CATEGORIES,
        force: bool = False,
    ) -> RefreshReport:
        """Fetch *categories* all at once."""
        report = RefreshReport()
        issued: list[tuple[Category, CancellationToken]] = []
        for category in dict.fromkeys(categories):
            token = self._begin(category, force)
            if token is None:
                report.outcomes.append(FetchOutcome(category, FetchStatus.SKIPPED))
            else:
                issued.append((category, token))

        results = await asyncio.gather(
            *(self._fetch_and_settle(category, token) for category, token in issued),
            return_exceptions=True,
        )
        for (category, token), result in zip(issued, results, strict=True):
            if isinstance(result, FetchOutcome):
                report.outcomes.append(result)
            else:
                # Only reachable when a branch itself was cancelled.
                _logger.debug("%s fetch ended with %r", category, result)
                report.outcomes.append(FetchOutcome(category, FetchStatus.CANCELLED))
        return report

    async def refresh_ordered(self, force: bool = False) -> RefreshReport:
        """Issue the categories in fixed order, pausing between issued requests."""
        report = RefreshReport()
        pending: list[asyncio.Task[FetchOutcome]] = []
        try:
            for category in ORDERED_CATEGORIES:
                if pending and self._step_delay > 0:
                    await self._sleep(self._step_delay)
                token = self._begin(category, force)
                if token is None:
                    report.outcomes.append(FetchOutcome(category, FetchStatus.SKIPPED))
                    continue
                pending.append(asyncio.create_task(self._fetch_and_settle(category, token)))
            report.outcomes.extend(await asyncio.gather(*pending))
        except asyncio.CancelledError:
            for task in pending:
                task.cancel()
            raise
        return report

    async def refresh_all(
        self,
        force: bool = False,
        strategy: RefreshStrategy | str | None = None,
    ) -> RefreshReport:
        """Refresh every category with *strategy* (default: the configured one)."""
        chosen = RefreshStrategy(strategy) if strategy is not None else self._strategy
        if chosen is RefreshStrategy.ORDERED:
            report = await self.refresh_ordered(force)
        else:
            report = await self.refresh_concurrent(ORDERED_CATEGORIES, force)
        if report.failed:
            _logger.info("Refresh finished with failures for: %s", ", ".join(report.failed))
        return report
