"""Categorized in-memory store for request records.

This is the only component that holds application state for the task page.
``set_category`` is its single writer; it is only called from fetch
completions that already passed their cancellation check.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from tasksync._constants import STALE_AFTER
from tasksync.models.record import Category, RequestRecord
from tasksync.state.cancellation import CancellationToken
from tasksync.state.policy import is_stale


@dataclass(slots=True)
class FetchState:
    """Fetch bookkeeping for one key (a category, or the dashboard).

    ``token`` belongs to the latest fetch started for the key and is cleared
    when that fetch settles; only its holder may clear ``in_flight``.
    """

    in_flight: bool = False
    last_attempt: float | None = None
    token: CancellationToken | None = None


class CategorizedStore:
    """Current buckets, per-category freshness and fetch states."""

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        stale_after: float = STALE_AFTER,
    ) -> None:
        self._clock = clock
        self._stale_after = stale_after
        self._buckets: dict[Category, list[RequestRecord]] = {category: [] for category in Category}
        self._last_updated: dict[Category, float | None] = dict.fromkeys(Category)
        self.fetch_states: dict[str, FetchState] = {category: FetchState() for category in Category}

    def set_category(self, category: Category, records: Iterable[RequestRecord]) -> None:
        """Replace the bucket for *category* and stamp its freshness."""
        self._buckets[category] = list(records)
        self._last_updated[category] = self._clock()

    def get_category(self, category: Category) -> list[RequestRecord]:
        return list(self._buckets[category])

    def snapshot(self) -> dict[Category, list[RequestRecord]]:
        return {category: list(records) for category, records in self._buckets.items()}

    def last_updated(self, category: Category) -> float | None:
        return self._last_updated[category]

    def is_stale(self, category: Category) -> bool:
        return is_stale(
            now=self._clock(),
            last_updated=self._last_updated[category],
            stale_after=self._stale_after,
        )

    def stale_categories(self) -> list[Category]:
        return [category for category in Category if self.is_stale(category)]

    def find(self, request_id: int | str) -> tuple[Category, RequestRecord] | None:
        """Locate a record by id across buckets (first match in category order)."""
        for category, records in self._buckets.items():
            for record in records:
                if record.id == request_id:
                    return category, record
        return None

    @property
    def any_in_flight(self) -> bool:
        return any(state.in_flight for state in self.fetch_states.values())
