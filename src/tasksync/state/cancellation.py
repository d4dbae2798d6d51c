"""Per-key cancellation tokens.

A token marks one fetch. Starting a newer fetch for the same key
invalidates the previous token; when the older fetch eventually resolves it
checks its token and discards its result instead of writing it.
"""

from __future__ import annotations

import itertools

from tasksync.exceptions import CancellationError

_serials = itertools.count(1)


class CancellationToken:
    """Opaque handle for one fetch."""

    __slots__ = ("key", "serial", "_current")

    def __init__(self, key: str) -> None:
        self.key = key
        self.serial = next(_serials)
        self._current = True

    def is_current(self) -> bool:
        return self._current

    def invalidate(self) -> None:
        self._current = False

    def raise_if_superseded(self) -> None:
        if not self._current:
            raise CancellationError(f"fetch #{self.serial} for {self.key} was superseded", key=self.key)

    def __repr__(self) -> str:
        state = "current" if self._current else "superseded"
        return f"CancellationToken({self.key!r}, #{self.serial}, {state})"


class CancellationRegistry:
    """Issues and revokes tokens, at most one live token per key."""

    def __init__(self) -> None:
        self._tokens: dict[str, CancellationToken] = {}

    def begin(self, key: str) -> CancellationToken:
        """Invalidate any token registered for *key* and register a fresh one."""
        previous = self._tokens.get(key)
        if previous is not None:
            previous.invalidate()
        token = CancellationToken(key)
        self._tokens[key] = token
        return token

    def current(self, key: str) -> CancellationToken | None:
        return self._tokens.get(key)

    def cancel_all(self) -> None:
        """Invalidate every registered token (teardown)."""
        for token in self._tokens.values():
            token.invalidate()
        self._tokens.clear()
