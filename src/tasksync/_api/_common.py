"""Shared helpers for task service endpoint modules.

This module centralizes the most repeated patterns:
- mapping an ``{"error": ...}`` body to :class:`TaskSyncApiError`
- validating list payloads into typed models

It is internal to tasksync and may change at any time.
"""

from __future__ import annotations

from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from tasksync.exceptions import TaskSyncApiError

T = TypeVar("T")


def raise_for_error_body(endpoint: str, payload: Any) -> None:
    """Raise when the service reports an application error inside a 2xx body."""
    if isinstance(payload, dict) and payload.get("error"):
        raise TaskSyncApiError(f"{endpoint} failed: {payload['error']}", endpoint=endpoint)


def parse_list(endpoint: str, payload: Any, adapter: TypeAdapter[list[T]]) -> list[T]:
    """Validate a list payload; ``null`` is treated as an empty list."""
    raise_for_error_body(endpoint, payload)
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise TaskSyncApiError(
            f"{endpoint} returned {type(payload).__name__}, expected a list",
            endpoint=endpoint,
        )
    try:
        return adapter.validate_python(payload)
    except ValidationError as exc:
        raise TaskSyncApiError(f"{endpoint} returned malformed records: {exc}", endpoint=endpoint) from exc
