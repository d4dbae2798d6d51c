"""Task endpoints.

Endpoints:
  - GET  /tasks/available/{userId}
  - GET  /tasks/assigned/{userId}[?status=...]
  - GET  /tasks/submitted/{userId}
  - GET  /tasks/sent-back/{userId}
  - POST /tasks/claim/{requestId}
  - PUT  /tasks/status/{requestId}
  - POST /tasks/comment/{requestId}
  - PUT  /tasks/data/{requestId}
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from pydantic import TypeAdapter

from tasksync._api._common import parse_list, raise_for_error_body
from tasksync._transport import Transport
from tasksync.models.record import RequestRecord

_RECORDS = TypeAdapter(list[RequestRecord])


def _segment(value: int | str) -> str:
    return quote(str(value), safe="")


async def _get_records(
    transport: Transport,
    endpoint: str,
    *,
    params: Mapping[str, str] | None = None,
) -> list[RequestRecord]:
    payload = await transport.request("GET", endpoint, params=params)
    return parse_list(endpoint, payload, _RECORDS)


async def fetch_available(transport: Transport, user_id: int | str) -> list[RequestRecord]:
    return await _get_records(transport, f"/tasks/available/{_segment(user_id)}")


async def fetch_assigned(
    transport: Transport,
    user_id: int | str,
    status: str | None = None,
) -> list[RequestRecord]:
    params = {"status": status} if status else None
    return await _get_records(transport, f"/tasks/assigned/{_segment(user_id)}", params=params)


async def fetch_submitted(transport: Transport, user_id: int | str) -> list[RequestRecord]:
    return await _get_records(transport, f"/tasks/submitted/{_segment(user_id)}")


async def fetch_sent_back(transport: Transport, user_id: int | str) -> list[RequestRecord]:
    return await _get_records(transport, f"/tasks/sent-back/{_segment(user_id)}")


async def _send(transport: Transport, method: str, endpoint: str, body: Mapping[str, Any]) -> Any:
    payload = await transport.request(method, endpoint, body=body)
    raise_for_error_body(endpoint, payload)
    return payload


async def claim(transport: Transport, request_id: int | str, user_id: int | str) -> None:
    await _send(transport, "POST", f"/tasks/claim/{_segment(request_id)}", {"userId": user_id})


async def update_status(
    transport: Transport,
    request_id: int | str,
    status: str,
    user_id: int | str,
    extra: Mapping[str, Any] | None = None,
) -> None:
    body: dict[str, Any] = dict(extra or {})
    body.update({"status": status, "userId": user_id})
    await _send(transport, "PUT", f"/tasks/status/{_segment(request_id)}", body)


async def add_comment(
    transport: Transport,
    request_id: int | str,
    user_id: int | str,
    text: str,
    is_send_back_reason: bool = False,
) -> None:
    body = {"userId": user_id, "comment": text, "isSendBackReason": is_send_back_reason}
    await _send(transport, "POST", f"/tasks/comment/{_segment(request_id)}", body)


async def update_data(transport: Transport, request_id: int | str, data: Mapping[str, Any]) -> None:
    await _send(transport, "PUT", f"/tasks/data/{_segment(request_id)}", dict(data))
