"""Single-pass classification of queue requests by status."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from tasksync.models.queue import Classification, QueueStatistics
from tasksync.models.record import RequestRecord, RequestStatus

_PENDING_STATUSES: tuple[RequestStatus, ...] = (
    RequestStatus.NEW,
    RequestStatus.IN_PROGRESS,
    RequestStatus.PENDING_INVESTIGATION,
)

_SEARCH_FIELDS: tuple[str, ...] = ("reference_number", "service_type", "full_names", "primary_contact")


def _resolution_hours(record: RequestRecord) -> float | None:
    if record.created_at is None or record.updated_at is None:
        return None
    # Clock skew or bad data can put updated_at before created_at.
    if record.updated_at <= record.created_at:
        return None
    return (record.updated_at - record.created_at).total_seconds() / 3600.0


def classify(records: Iterable[RequestRecord]) -> Classification:
    """Bucket *records* by status and derive summary statistics.

    Records with a status outside :class:`RequestStatus` are dropped. Server
    order is kept inside each bucket. Pure: the same input always yields the
    same result.
    """
    buckets: dict[RequestStatus, list[RequestRecord]] = {status: [] for status in RequestStatus}
    samples: list[float] = []

    for record in records:
        status = record.known_status
        if status is None:
            continue
        buckets[status].append(record)
        if status is RequestStatus.COMPLETED:
            hours = _resolution_hours(record)
            if hours is not None:
                samples.append(hours)

    average = round(sum(samples) / len(samples), 1) if samples else 0.0
    stats = QueueStatistics(
        total_count=sum(len(bucket) for bucket in buckets.values()),
        pending_count=sum(len(buckets[status]) for status in _PENDING_STATUSES),
        completed_count=len(buckets[RequestStatus.COMPLETED]),
        average_resolution_hours=average,
    )
    return Classification(buckets=buckets, stats=stats)


def filter_records(records: Sequence[RequestRecord], term: str | None) -> list[RequestRecord]:
    """Case-insensitive search over the reference number, service type and requester fields."""
    if not term:
        return list(records)
    needle = term.lower()
    matches: list[RequestRecord] = []
    for record in records:
        for name in _SEARCH_FIELDS:
            value = record.extra_field(name)
            if isinstance(value, str) and needle in value.lower():
                matches.append(record)
                break
    return matches
