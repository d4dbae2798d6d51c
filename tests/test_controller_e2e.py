from __future__ import annotations

import asyncio
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest
from pydantic import ValidationError

from tasksync.config import SyncConfig
from tasksync.controller import TaskSyncController
from tasksync.dashboard import QueueDashboard
from tasksync.exceptions import MutationError, TaskSyncApiError, TaskSyncConfigError
from tasksync.models.record import Category, RequestRecord
from tasksync.models.reference import Handler, User
from tasksync.notifications import Notification, NotificationLevel
from tasksync.scheduler import PageVisibility, SchedulerState

USER = 7
NOON = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, now: float) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class _Recorder:
    shown: list[Notification] = field(default_factory=list)

    def notify(self, notification: Notification) -> None:
        self.shown.append(notification)


def _row(request_id: int, status: str, assigned_to: int | None = None, **extra: Any) -> dict[str, Any]:
    return {"id": request_id, "status": status, "assigned_to": assigned_to, "requested_by": 99, **extra}


@dataclass
class FakeTaskBackend:
    """In-memory task service with the same user-relative views as the real one."""

    rows: dict[int, dict[str, Any]] = field(default_factory=dict)
    calls: dict[str, int] = field(default_factory=dict)
    comments: list[tuple[int, str, bool]] = field(default_factory=list)
    reject: set[str] = field(default_factory=set)
    time_out: set[str] = field(default_factory=set)

    def _record_call(self, name: str) -> None:
        self.calls[name] = self.calls.get(name, 0) + 1
        if name in self.reject:
            raise TaskSyncApiError(f"{name} rejected", endpoint=name)
        if name in self.time_out:
            raise TimeoutError

    def _view(self, predicate: Any) -> list[RequestRecord]:
        return [RequestRecord.model_validate(row) for row in self.rows.values() if predicate(row)]

    async def get_available_requests(self, user_id: int | str) -> list[RequestRecord]:
        self._record_call("available")
        return self._view(lambda r: r["status"] == "new" and r["assigned_to"] is None)

    async def get_assigned_requests(self, user_id: int | str, status: str | None = None) -> list[RequestRecord]:
        self._record_call("completed" if status else "assigned")
        return self._view(lambda r: r["assigned_to"] == user_id and (status is None or r["status"] == status))

    async def get_submitted_requests(self, user_id: int | str) -> list[RequestRecord]:
        self._record_call("submitted")
        return self._view(lambda r: r["requested_by"] == user_id)

    async def get_sent_back_requests(self, user_id: int | str) -> list[RequestRecord]:
        self._record_call("sent_back")
        return self._view(lambda r: r["status"] == "sent_back")

    async def claim_request(self, request_id: int | str, user_id: int | str) -> None:
        self._record_call("claim")
        row = self.rows[int(request_id)]
        if row["assigned_to"] is not None:
            raise TaskSyncApiError("request already claimed", endpoint="claim")
        row.update(assigned_to=user_id, status="in_progress")

    async def update_request_status(
        self,
        request_id: int | str,
        status: str,
        user_id: int | str,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        self._record_call("status")
        row = self.rows[int(request_id)]
        row.update(extra or {})
        row["status"] = status

    async def add_comment(
        self,
        request_id: int | str,
        user_id: int | str,
        text: str,
        is_send_back_reason: bool = False,
    ) -> None:
        self._record_call("comment")
        self.comments.append((int(request_id), text, is_send_back_reason))

    async def update_request_data(self, request_id: int | str, data: Mapping[str, Any]) -> None:
        self._record_call("data")
        self.rows[int(request_id)].update(data)

    async def get_all_active_users(self) -> list[User]:
        self._record_call("users")
        return [User(id=USER, full_name="Handler Seven")]

    async def get_handlers(self) -> list[Handler]:
        self._record_call("handlers")
        return [Handler(id=1, service_type="vetting", user_id=USER)]

    async def get_requests(self) -> list[RequestRecord]:
        self._record_call("requests")
        return self._view(lambda r: True)


def _reads(backend: FakeTaskBackend) -> int:
    return sum(backend.calls.get(name, 0) for name in ("available", "assigned", "completed", "submitted", "sent_back"))


def _controller(
    backend: FakeTaskBackend,
    *,
    clock: _Clock | None = None,
    notifier: _Recorder | None = None,
    **config: Any,
) -> TaskSyncController:
    settings: dict[str, Any] = {"user_id": USER, "initial_delay": 0.0, "poll_interval": 60.0}
    settings.update(config)
    return TaskSyncController(
        SyncConfig(**settings),
        api=backend,
        notifier=notifier or _Recorder(),
        clock=clock or _Clock(NOON.timestamp()),
    )


def _ids(controller: TaskSyncController, category: Category) -> list[int | str]:
    return [record.id for record in controller.requests(category)]


@pytest.mark.asyncio
async def test_claim_moves_request_from_available_to_assigned() -> None:
    backend = FakeTaskBackend(rows={42: _row(42, "new"), 43: _row(43, "new")})
    notifier = _Recorder()
    async with _controller(backend, notifier=notifier) as controller:
        await controller.refresh_all(force=True)
        assert _ids(controller, Category.AVAILABLE) == [42, 43]
        reads_before = dict(backend.calls)

        result = await controller.claim_request(42)

        assert result.ok
        assert result.refetched == (Category.AVAILABLE, Category.ASSIGNED)
        assert _ids(controller, Category.AVAILABLE) == [43]
        assert _ids(controller, Category.ASSIGNED) == [42]
        # Only the affected categories were refetched.
        assert backend.calls["submitted"] == reads_before["submitted"]
        assert backend.calls["sent_back"] == reads_before["sent_back"]
        assert notifier.shown[-1].level is NotificationLevel.SUCCESS


@pytest.mark.asyncio
async def test_unforced_refresh_is_throttled() -> None:
    backend = FakeTaskBackend(rows={1: _row(1, "new")})
    async with _controller(backend) as controller:
        await controller.refresh_all()
        reads = _reads(backend)

        report = await controller.refresh_all()
        await controller.refresh_all()

        assert _reads(backend) == reads
        assert set(report.skipped) == set(Category)


@pytest.mark.asyncio
async def test_rejected_claim_reports_failure_without_refetch() -> None:
    backend = FakeTaskBackend(rows={42: _row(42, "in_progress", assigned_to=8)})
    notifier = _Recorder()
    async with _controller(backend, notifier=notifier) as controller:
        reads = _reads(backend)

        result = await controller.claim_request(42)

        assert not result.ok
        assert result.refetched == ()
        assert isinstance(result.error, MutationError)
        assert result.error.request_id == 42
        assert isinstance(result.error.__cause__, TaskSyncApiError)
        assert _reads(backend) == reads
        assert notifier.shown[-1].level is NotificationLevel.ERROR


@pytest.mark.asyncio
async def test_submit_response_completes_request() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)})
    async with _controller(backend) as controller:
        await controller.refresh_all(force=True)
        assert _ids(controller, Category.ASSIGNED) == [5]

        result = await controller.submit_response(5, "Background check clear")

        assert result.ok
        assert backend.comments == [(5, "Background check clear", False)]
        assert backend.rows[5]["status"] == "completed"
        assert _ids(controller, Category.ASSIGNED) == []
        assert _ids(controller, Category.COMPLETED) == [5]


@pytest.mark.asyncio
async def test_first_failing_step_stops_the_sequence() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)}, reject={"comment"})
    async with _controller(backend) as controller:
        result = await controller.submit_response(5, "done")

        assert not result.ok
        assert "status" not in backend.calls
        assert backend.rows[5]["status"] == "in_progress"


@pytest.mark.asyncio
async def test_send_back_releases_assignment() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)})
    async with _controller(backend) as controller:
        await controller.refresh_all(force=True)

        result = await controller.send_back_to_requestor(5, "Missing ID copy")

        assert result.ok
        assert set(result.refetched) == {Category.ASSIGNED, Category.SENT_BACK, Category.AVAILABLE}
        assert backend.comments == [(5, "Missing ID copy", True)]
        assert backend.rows[5]["assigned_to"] is None
        assert _ids(controller, Category.SENT_BACK) == [5]
        assert _ids(controller, Category.ASSIGNED) == []


@pytest.mark.asyncio
async def test_save_edited_request_returns_it_to_the_queue() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "sent_back", notes="old")})
    async with _controller(backend) as controller:
        await controller.refresh_all(force=True)
        assert _ids(controller, Category.SENT_BACK) == [5]

        result = await controller.save_edited_request(5, {"notes": "fixed"})

        assert result.ok
        assert backend.rows[5]["status"] == "new"
        assert backend.rows[5]["notes"] == "fixed"
        assert backend.rows[5]["updated_by"] == USER
        assert Category.AVAILABLE in result.refetched
        assert _ids(controller, Category.AVAILABLE) == [5]


@pytest.mark.asyncio
async def test_status_update_refetches_by_target_status() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)})
    async with _controller(backend) as controller:
        result = await controller.update_request_status(5, "pending_investigation")

        assert result.ok
        assert result.refetched == (Category.ASSIGNED,)
        assert backend.rows[5]["status"] == "pending_investigation"


@pytest.mark.asyncio
async def test_completing_a_request_refetches_only_assigned_and_completed() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)})
    async with _controller(backend) as controller:
        await controller.refresh_all(force=True)
        untouched = {name: backend.calls[name] for name in ("available", "submitted", "sent_back")}
        assigned_reads = backend.calls["assigned"]
        completed_reads = backend.calls["completed"]

        result = await controller.update_request_status(5, "completed")

        assert result.ok
        assert result.refetched == (Category.ASSIGNED, Category.COMPLETED)
        assert {name: backend.calls[name] for name in untouched} == untouched
        assert backend.calls["assigned"] == assigned_reads + 1
        assert backend.calls["completed"] == completed_reads + 1
        assert _ids(controller, Category.COMPLETED) == [5]


@pytest.mark.asyncio
async def test_timed_out_mutation_reports_failure() -> None:
    backend = FakeTaskBackend(rows={42: _row(42, "new")}, time_out={"claim"})
    notifier = _Recorder()
    async with _controller(backend, notifier=notifier) as controller:
        reads = _reads(backend)

        result = await controller.claim_request(42)

        assert not result.ok
        assert result.refetched == ()
        assert isinstance(result.error, MutationError)
        assert isinstance(result.error.__cause__, TimeoutError)
        assert _reads(backend) == reads
        assert notifier.shown[-1].level is NotificationLevel.ERROR


@pytest.mark.asyncio
async def test_add_comment_refetches_assigned() -> None:
    backend = FakeTaskBackend(rows={5: _row(5, "in_progress", assigned_to=USER)})
    async with _controller(backend) as controller:
        result = await controller.add_comment(5, "Called the applicant")

        assert result.refetched == (Category.ASSIGNED,)
        assert backend.comments == [(5, "Called the applicant", False)]


@pytest.mark.asyncio
async def test_invalid_input_is_rejected_before_any_call() -> None:
    backend = FakeTaskBackend()
    async with _controller(backend) as controller:
        with pytest.raises(ValidationError):
            await controller.claim_request("  ")
        with pytest.raises(ValidationError):
            await controller.add_comment(5, "")
        with pytest.raises(ValidationError):
            await controller.update_request_status(5, "archived")

        assert backend.calls == {}


@pytest.mark.asyncio
async def test_auto_return_releases_idle_assignments() -> None:
    backend = FakeTaskBackend(
        rows={
            1: _row(1, "in_progress", assigned_to=USER, updated_at="2026-01-01T10:00:00Z", reference_number="REQ-1"),
            2: _row(2, "in_progress", assigned_to=USER, updated_at="2026-01-01T11:50:00Z"),
            3: _row(3, "pending_investigation", assigned_to=USER, updated_at="2026-01-01T08:00:00Z"),
        }
    )
    notifier = _Recorder()
    async with _controller(backend, notifier=notifier) as controller:
        await controller.refresh_all(force=True)

        returned = await controller.auto_return_stale_assignments()

        assert returned == [1]
        assert backend.rows[1]["status"] == "new"
        assert backend.rows[1]["assigned_to"] is None
        assert _ids(controller, Category.AVAILABLE) == [1]
        assert notifier.shown[-1].message == "Request REQ-1 has been auto-returned to the queue"


@pytest.mark.asyncio
async def test_start_requires_a_user() -> None:
    backend = FakeTaskBackend()
    async with _controller(backend, user_id=None) as controller:
        with pytest.raises(TaskSyncConfigError):
            controller.start()


@pytest.mark.asyncio
async def test_polling_lifecycle() -> None:
    backend = FakeTaskBackend(rows={1: _row(1, "new")})
    visibility = PageVisibility()
    controller = TaskSyncController(
        SyncConfig(initial_delay=0.0, poll_interval=60.0),
        api=backend,
        visibility=visibility,
        notifier=_Recorder(),
    )
    async with controller:
        controller.start(user_id=USER)
        assert controller.scheduler_state is SchedulerState.SCHEDULED
        await asyncio.sleep(0.05)

        assert _ids(controller, Category.AVAILABLE) == [1]
        assert not controller.is_stale(Category.AVAILABLE)
        assert not controller.any_in_flight

    assert controller.scheduler_state is SchedulerState.IDLE


@pytest.mark.asyncio
async def test_dashboard_uses_reference_api() -> None:
    backend = FakeTaskBackend(rows={1: _row(1, "new"), 2: _row(2, "completed")})
    controller = TaskSyncController(
        SyncConfig(user_id=USER),
        api=backend,
        reference_api=backend,
        notifier=_Recorder(),
    )
    async with controller:
        snapshot = await controller.dashboard.refresh()

    assert snapshot.classification.stats.total_count == 2
    assert snapshot.handlers[0].user is not None


@pytest.mark.asyncio
async def test_default_http_binding_is_created_on_entry() -> None:
    async with TaskSyncController(SyncConfig(user_id=str(USER))) as controller:
        assert isinstance(controller.dashboard, QueueDashboard)
