"""Reference-data and queue endpoints.

Endpoints:
  - GET /users/active
  - GET /queue/handlers
  - GET /queue/requests
"""

from __future__ import annotations

from pydantic import TypeAdapter

from tasksync._api._common import parse_list
from tasksync._transport import Transport
from tasksync.models.record import RequestRecord
from tasksync.models.reference import Handler, User

_USERS = TypeAdapter(list[User])
_HANDLERS = TypeAdapter(list[Handler])
_RECORDS = TypeAdapter(list[RequestRecord])


async def fetch_active_users(transport: Transport) -> list[User]:
    endpoint = "/users/active"
    return parse_list(endpoint, await transport.request("GET", endpoint), _USERS)


async def fetch_handlers(transport: Transport) -> list[Handler]:
    endpoint = "/queue/handlers"
    return parse_list(endpoint, await transport.request("GET", endpoint), _HANDLERS)


async def fetch_queue_requests(transport: Transport) -> list[RequestRecord]:
    endpoint = "/queue/requests"
    return parse_list(endpoint, await transport.request("GET", endpoint), _RECORDS)
