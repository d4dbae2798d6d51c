"""Work-item request records and the categories they are grouped into."""

from __future__ import annotations

from enum import StrEnum

from pydantic import Field

from tasksync.models._base import TaskSyncBaseModel, Timestamp


class RequestStatus(StrEnum):
    """Statuses a request record can carry on the task service."""

    NEW = "new"
    IN_PROGRESS = "in_progress"
    PENDING_INVESTIGATION = "pending_investigation"
    UNABLE_TO_HANDLE = "unable_to_handle"
    COMPLETED = "completed"
    SENT_BACK = "sent_back"

    @classmethod
    def parse(cls, value: str | None) -> RequestStatus | None:
        """Return the matching member, or ``None`` for unknown values."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


class Category(StrEnum):
    """User-relative buckets the task page shows."""

    AVAILABLE = "available"
    ASSIGNED = "assigned"
    SUBMITTED = "submitted"
    SENT_BACK = "sent_back"
    COMPLETED = "completed"


class RequestRecord(TaskSyncBaseModel):
    """A work-item record as returned by the task service.

    The core only inspects ``status`` and ``assigned_to``; everything else
    is carried along untouched.
    """

    id: int | str
    status: str = Field(default="", description="One of RequestStatus; unknown values are preserved")
    assigned_to: int | str | None = None
    created_at: Timestamp = None
    updated_at: Timestamp = None

    @property
    def known_status(self) -> RequestStatus | None:
        return RequestStatus.parse(self.status)
