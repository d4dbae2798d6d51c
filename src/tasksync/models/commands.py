"""Pydantic request models for controller mutations.

These models provide a consistent "validate → normalize → execute" flow.
They are used internally by :class:`tasksync.controller.TaskSyncController`.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tasksync.models.record import RequestStatus


class RequestIdCommand(BaseModel):
    """Command targeting one request record."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    request_id: int | str

    @field_validator("request_id")
    @classmethod
    def _id_non_empty(cls, value: int | str) -> int | str:
        if isinstance(value, str) and not value.strip():
            raise ValueError("request_id must be non-empty")
        return value


class StatusUpdateCommand(RequestIdCommand):
    status: RequestStatus
    extra: dict[str, Any] = Field(default_factory=dict)


class CommentCommand(RequestIdCommand):
    text: str
    is_send_back_reason: bool = False

    @field_validator("text")
    @classmethod
    def _text_non_empty(cls, value: str) -> str:
        if not value:
            raise ValueError("comment text must be non-empty")
        return value


class DataUpdateCommand(RequestIdCommand):
    data: dict[str, Any]
