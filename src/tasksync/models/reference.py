"""Secondary reference data shown on the queue dashboard."""

from __future__ import annotations

from pydantic import Field

from tasksync.models._base import TaskSyncBaseModel, Timestamp


class User(TaskSyncBaseModel):
    """An active portal user."""

    id: int | str
    username: str | None = None
    full_name: str | None = None
    role: str | None = None
    is_active: bool = True


class Handler(TaskSyncBaseModel):
    """A user assigned to handle one service type in the queue."""

    id: int | str
    service_type: str | None = None
    user_id: int | str | None = None
    created_at: Timestamp = None
    updated_at: Timestamp = None
    user: User | None = Field(default=None, description="Joined user record, when known")
