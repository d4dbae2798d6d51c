"""Map mutation effects to the minimal set of categories to refetch.

| effect                                 | categories            |
|----------------------------------------|-----------------------|
| status -> completed                    | assigned, completed   |
| status -> new                          | available, assigned   |
| status -> sent_back                    | assigned, sent_back   |
| assigned_to cleared                    | available             |
| comment (send-back reason)             | assigned, sent_back   |
| comment                                | assigned              |
| claim                                  | available, assigned   |
| anything else                          | assigned              |
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from tasksync.models.record import Category, RequestStatus


class MutationKind(StrEnum):
    STATUS_CHANGE = "status_change"
    ASSIGNMENT_CLEARED = "assignment_cleared"
    COMMENT = "comment"
    CLAIM = "claim"
    FIELD_UPDATE = "field_update"


@dataclass(frozen=True, slots=True)
class MutationEffect:
    """What a successful mutation changed on the server."""

    kind: MutationKind
    status: str | None = None
    is_send_back_reason: bool = False

    @classmethod
    def status_change(cls, status: str) -> MutationEffect:
        return cls(MutationKind.STATUS_CHANGE, status=str(status))

    @classmethod
    def assignment_cleared(cls) -> MutationEffect:
        return cls(MutationKind.ASSIGNMENT_CLEARED)

    @classmethod
    def comment(cls, is_send_back_reason: bool = False) -> MutationEffect:
        return cls(MutationKind.COMMENT, is_send_back_reason=is_send_back_reason)

    @classmethod
    def claim(cls) -> MutationEffect:
        return cls(MutationKind.CLAIM)

    @classmethod
    def field_update(cls) -> MutationEffect:
        return cls(MutationKind.FIELD_UPDATE)


_STATUS_CATEGORIES: dict[RequestStatus, tuple[Category, ...]] = {
    RequestStatus.COMPLETED: (Category.ASSIGNED, Category.COMPLETED),
    RequestStatus.NEW: (Category.AVAILABLE, Category.ASSIGNED),
    RequestStatus.SENT_BACK: (Category.ASSIGNED, Category.SENT_BACK),
}


def _categories_for(effect: MutationEffect) -> tuple[Category, ...]:
    if effect.kind is MutationKind.STATUS_CHANGE:
        status = RequestStatus.parse(effect.status)
        if status is None:
            return (Category.ASSIGNED,)
        return _STATUS_CATEGORIES.get(status, (Category.ASSIGNED,))
    if effect.kind is MutationKind.ASSIGNMENT_CLEARED:
        return (Category.AVAILABLE,)
    if effect.kind is MutationKind.COMMENT:
        if effect.is_send_back_reason:
            return (Category.ASSIGNED, Category.SENT_BACK)
        return (Category.ASSIGNED,)
    if effect.kind is MutationKind.CLAIM:
        return (Category.AVAILABLE, Category.ASSIGNED)
    return (Category.ASSIGNED,)


def categories_to_refetch(*effects: MutationEffect) -> tuple[Category, ...]:
    """Union of the categories affected by *effects*, first-seen order, no duplicates."""
    seen: dict[Category, None] = {}
    for effect in effects:
        for category in _categories_for(effect):
            seen.setdefault(category, None)
    return tuple(seen)


def effects_for_data_update(data: Mapping[str, Any]) -> list[MutationEffect]:
    """Effects of an arbitrary field update on a request."""
    effects = [MutationEffect.field_update()]
    status = data.get("status")
    if status:
        effects.append(MutationEffect.status_change(str(status)))
    if "assigned_to" in data and data["assigned_to"] is None:
        effects.append(MutationEffect.assignment_cleared())
    return effects


def effects_for_status_update(status: str, extra: Mapping[str, Any] | None = None) -> list[MutationEffect]:
    """Effects of a status change, including an ``assigned_to`` reset sent alongside it."""
    effects = [MutationEffect.status_change(status)]
    if extra and "assigned_to" in extra and extra["assigned_to"] is None:
        effects.append(MutationEffect.assignment_cleared())
    return effects
