"""Custom exception hierarchy for tasksync."""

from __future__ import annotations


class TaskSyncError(Exception):
    """Base exception for all tasksync errors."""


class TaskSyncConfigError(TaskSyncError):
    """Invalid or missing configuration."""


class TaskSyncTransportError(TaskSyncError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class TaskSyncApiError(TaskSyncError):
    """The task service answered, but with an error body or an unexpected payload."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class RequestError(TaskSyncError):
    """Fetching one category failed.

    Isolated to that category: logged, and the category's existing bucket
    is left untouched.
    """

    def __init__(self, message: str, *, category: str) -> None:
        self.category = category
        super().__init__(message)


class CancellationError(TaskSyncError):
    """A fetch was superseded by a newer one for the same category.

    Never surfaced to callers and never logged as a failure.
    """

    def __init__(self, message: str = "fetch superseded", *, key: str = "") -> None:
        self.key = key
        super().__init__(message)


class CacheCorruptionError(TaskSyncError):
    """A cached payload could not be decoded; the entry is evicted."""


class QuotaExceededError(TaskSyncError):
    """The session storage refused a write because it is full."""


class MutationError(TaskSyncError):
    """A claim/status/comment/update call was rejected by the task service."""

    def __init__(self, message: str, *, request_id: str | int | None = None) -> None:
        self.request_id = request_id
        super().__init__(message)
