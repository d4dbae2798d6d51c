"""Remote task service contracts and their default HTTP binding.

The controller only talks to the service through :class:`TaskApi` and
:class:`ReferenceApi`; hosts and tests can pass any object with these
coroutine methods. :class:`HttpTaskApi` implements both over
:class:`~tasksync._transport.JsonTransport`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from tasksync._api import reference as _reference_api
from tasksync._api import tasks as _tasks_api
from tasksync._transport import Transport
from tasksync.models.record import RequestRecord
from tasksync.models.reference import Handler, User


class TaskApi(Protocol):
    """Work-item operations of the task service.

    Read methods return records in server order. Mutations raise a
    :class:`~tasksync.exceptions.TaskSyncError` subclass when rejected.
    """

    async def get_available_requests(self, user_id: int | str) -> list[RequestRecord]: ...

    async def get_assigned_requests(self, user_id: int | str, status: str | None = None) -> list[RequestRecord]: ...

    async def get_submitted_requests(self, user_id: int | str) -> list[RequestRecord]: ...

    async def get_sent_back_requests(self, user_id: int | str) -> list[RequestRecord]: ...

    async def claim_request(self, request_id: int | str, user_id: int | str) -> None: ...

    async def update_request_status(
        self,
        request_id: int | str,
        status: str,
        user_id: int | str,
        extra: Mapping[str, Any] | None = None,
    ) -> None: ...

    async def add_comment(
        self,
        request_id: int | str,
        user_id: int | str,
        text: str,
        is_send_back_reason: bool = False,
    ) -> None: ...

    async def update_request_data(self, request_id: int | str, data: Mapping[str, Any]) -> None: ...


class ReferenceApi(Protocol):
    """Secondary data shown on the queue dashboard."""

    async def get_all_active_users(self) -> list[User]: ...

    async def get_handlers(self) -> list[Handler]: ...

    async def get_requests(self) -> list[RequestRecord]: ...


class HttpTaskApi:
    """:class:`TaskApi` and :class:`ReferenceApi` over a JSON transport."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def get_available_requests(self, user_id: int | str) -> list[RequestRecord]:
        return await _tasks_api.fetch_available(self._transport, user_id)

    async def get_assigned_requests(self, user_id: int | str, status: str | None = None) -> list[RequestRecord]:
        return await _tasks_api.fetch_assigned(self._transport, user_id, status)

    async def get_submitted_requests(self, user_id: int | str) -> list[RequestRecord]:
        return await _tasks_api.fetch_submitted(self._transport, user_id)

    async def get_sent_back_requests(self, user_id: int | str) -> list[RequestRecord]:
        return await _tasks_api.fetch_sent_back(self._transport, user_id)

    async def claim_request(self, request_id: int | str, user_id: int | str) -> None:
        await _tasks_api.claim(self._transport, request_id, user_id)

    async def update_request_status(
        self,
        request_id: int | str,
        status: str,
        user_id: int | str,
        extra: Mapping[str, Any] | None = None,
    ) -> None:
        await _tasks_api.update_status(self._transport, request_id, status, user_id, extra)

    async def add_comment(
        self,
        request_id: int | str,
        user_id: int | str,
        text: str,
        is_send_back_reason: bool = False,
    ) -> None:
        await _tasks_api.add_comment(self._transport, request_id, user_id, text, is_send_back_reason)

    async def update_request_data(self, request_id: int | str, data: Mapping[str, Any]) -> None:
        await _tasks_api.update_data(self._transport, request_id, data)

    async def get_all_active_users(self) -> list[User]:
        return await _reference_api.fetch_active_users(self._transport)

    async def get_handlers(self) -> list[Handler]:
        return await _reference_api.fetch_handlers(self._transport)

    async def get_requests(self) -> list[RequestRecord]:
        return await _reference_api.fetch_queue_requests(self._transport)
