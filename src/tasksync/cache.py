"""TTL cache for secondary reference data over a session-scoped key/value store.

The cache is a pure performance optimization: every failure path (missing,
expired, corrupt, storage full) degrades to a cache miss or a dropped write,
never to an exception at the caller.

Each entry is stored as two keys, ``<key>`` (JSON payload) and
``<key>_timestamp`` (epoch milliseconds of the write), the layout the
portal's session storage already uses.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any, Protocol

from tasksync._constants import TIMESTAMP_SUFFIX
from tasksync.exceptions import CacheCorruptionError, QuotaExceededError

_logger = logging.getLogger(__name__)


class SessionStorage(Protocol):
    """String key/value store supplied by the host (browser session storage or similar).

    ``set_item`` raises :class:`~tasksync.exceptions.QuotaExceededError`
    when the store is full.
    """

    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemorySessionStorage:
    """In-process :class:`SessionStorage` with an optional size quota.

    The quota counts the characters of all keys and values, which is how
    browsers account session storage.
    """

    def __init__(self, *, quota: int | None = None) -> None:
        self._items: dict[str, str] = {}
        self._quota = quota

    def _size_with(self, key: str, value: str) -> int:
        size = sum(len(k) + len(v) for k, v in self._items.items() if k != key)
        return size + len(key) + len(value)

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota is not None and self._size_with(key, value) > self._quota:
            raise QuotaExceededError(f"storage quota of {self._quota} exceeded writing {key!r}")
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __len__(self) -> int:
        return len(self._items)


class TTLCache:
    """Generic key/value cache with read-time expiration and self-healing.

    Parameters
    ----------
    storage
        Backing :class:`SessionStorage`.
    clock
        Returns the current time in epoch seconds.
    """

    def __init__(
        self,
        storage: SessionStorage,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage = storage
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _evict(self, key: str) -> None:
        self._storage.remove_item(key)
        self._storage.remove_item(f"{key}{TIMESTAMP_SUFFIX}")

    def _read_timestamp(self, key: str) -> int:
        raw = self._storage.get_item(f"{key}{TIMESTAMP_SUFFIX}")
        if not raw:
            return 0
        try:
            return int(raw)
        except ValueError as exc:
            raise CacheCorruptionError(f"invalid timestamp for {key!r}: {raw!r}") from exc

    def _decode(self, key: str, payload: str, parse: Callable[[Any], Any] | None) -> Any:
        try:
            value = json.loads(payload)
            return parse(value) if parse is not None else value
        except ValueError as exc:
            # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors.
            raise CacheCorruptionError(f"cached payload for {key!r} is corrupt") from exc

    def get(
        self,
        key: str,
        max_age: float,
        *,
        parse: Callable[[Any], Any] | None = None,
    ) -> Any | None:
        """Return the cached value for *key*, or ``None``.

        ``None`` is returned when the key is absent, when the entry is at
        least *max_age* seconds old, or when the payload cannot be decoded
        (in which case the entry is evicted). *parse*, when given, converts
        the decoded JSON (e.g. ``TypeAdapter(list[User]).validate_python``);
        a failure there counts as corruption too.
        """
        payload = self._storage.get_item(key)
        if payload is None:
            return None
        try:
            written_at = self._read_timestamp(key)
            if self._now_ms() - written_at >= max_age * 1000:
                return None
            return self._decode(key, payload, parse)
        except CacheCorruptionError:
            _logger.warning("Evicting corrupt cache entry %s", key, exc_info=True)
            self._evict(key)
            return None

    def _write(self, key: str, payload: str) -> None:
        self._storage.set_item(key, payload)
        self._storage.set_item(f"{key}{TIMESTAMP_SUFFIX}", str(self._now_ms()))

    def put(self, key: str, value: Any) -> None:
        """Store *value* (JSON-serializable) under *key* with the current time.

        On a quota failure the key is evicted and the write retried once;
        if that fails too the write is dropped.
        """
        payload = json.dumps(value, separators=(",", ":"))
        try:
            self._write(key, payload)
        except QuotaExceededError:
            _logger.debug("Cache write for %s hit the storage quota, retrying after eviction", key)
            self._evict(key)
            try:
                self._write(key, payload)
            except QuotaExceededError:
                self._evict(key)
                _logger.warning("Dropping cache write for %s: storage quota exceeded", key)
