"""tasksync - Async client-side synchronization of task queue data."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("tasksync")
except PackageNotFoundError:
    __version__ = "0+local"
from tasksync.api import HttpTaskApi, ReferenceApi, TaskApi
from tasksync.cache import MemorySessionStorage, SessionStorage, TTLCache
from tasksync.config import SyncConfig
from tasksync.controller import MutationResult, TaskSyncController
from tasksync.dashboard import DashboardSnapshot, QueueDashboard
from tasksync.exceptions import (
    CacheCorruptionError,
    CancellationError,
    MutationError,
    QuotaExceededError,
    RequestError,
    TaskSyncApiError,
    TaskSyncConfigError,
    TaskSyncError,
    TaskSyncTransportError,
)
from tasksync.models import (
    Category,
    Classification,
    Handler,
    QueueStatistics,
    RequestRecord,
    RequestStatus,
    User,
)
from tasksync.notifications import (
    LoggingNotifier,
    Notification,
    NotificationLevel,
    Notifier,
    RateLimitedNotifier,
)
from tasksync.orchestrator import FetchOrchestrator, FetchOutcome, FetchStatus, RefreshReport, RefreshStrategy
from tasksync.scheduler import PageVisibility, PollingScheduler, SchedulerState

__all__ = [
    "__version__",
    "CacheCorruptionError",
    "CancellationError",
    "Category",
    "Classification",
    "DashboardSnapshot",
    "FetchOrchestrator",
    "FetchOutcome",
    "FetchStatus",
    "Handler",
    "HttpTaskApi",
    "LoggingNotifier",
    "MemorySessionStorage",
    "MutationError",
    "MutationResult",
    "Notification",
    "NotificationLevel",
    "Notifier",
    "PageVisibility",
    "PollingScheduler",
    "QueueDashboard",
    "QueueStatistics",
    "QuotaExceededError",
    "RateLimitedNotifier",
    "ReferenceApi",
    "RefreshReport",
    "RefreshStrategy",
    "RequestError",
    "RequestRecord",
    "RequestStatus",
    "SchedulerState",
    "SessionStorage",
    "SyncConfig",
    "TTLCache",
    "TaskApi",
    "TaskSyncApiError",
    "TaskSyncConfigError",
    "TaskSyncController",
    "TaskSyncError",
    "TaskSyncTransportError",
    "User",
]
