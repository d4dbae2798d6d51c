"""Classification results for the queue dashboard."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from tasksync.models.record import RequestRecord, RequestStatus


class QueueStatistics(BaseModel):
    """Summary numbers derived while bucketing queue requests."""

    model_config = ConfigDict(frozen=True)

    total_count: int = 0
    pending_count: int = 0
    completed_count: int = 0
    average_resolution_hours: float = 0.0


class Classification(BaseModel):
    """Requests bucketed by status plus their statistics."""

    model_config = ConfigDict(frozen=True)

    buckets: dict[RequestStatus, list[RequestRecord]] = Field(default_factory=dict)
    stats: QueueStatistics = Field(default_factory=QueueStatistics)

    def bucket(self, status: RequestStatus) -> list[RequestRecord]:
        return list(self.buckets.get(status, []))
