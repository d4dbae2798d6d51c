"""Pure freshness and throttling predicates.

No state lives here; the store and the gate call these with their own
timestamps so the rules can be tested in isolation.
"""

from __future__ import annotations


def is_stale(*, now: float, last_updated: float | None, stale_after: float) -> bool:
    """Data is stale once strictly more than *stale_after* seconds old.

    Never-written data (``last_updated`` is ``None``) is always stale.
    """
    if last_updated is None:
        return True
    return now - last_updated > stale_after


def throttle_allows(
    *,
    now: float,
    last_attempt: float | None,
    in_flight: bool,
    throttle_interval: float,
    force: bool = False,
) -> bool:
    """Decide whether a new fetch may start now.

    Forced fetches always pass. Otherwise nothing may be in flight and at
    least *throttle_interval* seconds must have passed since the last attempt.
    """
    if force:
        return True
    if in_flight:
        return False
    if last_attempt is None:
        return True
    return now - last_attempt >= throttle_interval
