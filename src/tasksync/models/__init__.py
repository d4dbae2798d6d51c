"""Typed models for task service payloads."""

from tasksync.models.commands import (
    CommentCommand,
    DataUpdateCommand,
    RequestIdCommand,
    StatusUpdateCommand,
)
from tasksync.models.queue import Classification, QueueStatistics
from tasksync.models.record import Category, RequestRecord, RequestStatus
from tasksync.models.reference import Handler, User

__all__ = [
    "Category",
    "Classification",
    "CommentCommand",
    "DataUpdateCommand",
    "Handler",
    "QueueStatistics",
    "RequestIdCommand",
    "RequestRecord",
    "RequestStatus",
    "StatusUpdateCommand",
    "User",
]
