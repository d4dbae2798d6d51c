from __future__ import annotations

from tasksync.invalidation import (
    MutationEffect,
    categories_to_refetch,
    effects_for_data_update,
    effects_for_status_update,
)
from tasksync.models.record import Category


def test_status_change_targets() -> None:
    assert categories_to_refetch(MutationEffect.status_change("completed")) == (
        Category.ASSIGNED,
        Category.COMPLETED,
    )
    assert categories_to_refetch(MutationEffect.status_change("new")) == (
        Category.AVAILABLE,
        Category.ASSIGNED,
    )
    assert categories_to_refetch(MutationEffect.status_change("sent_back")) == (
        Category.ASSIGNED,
        Category.SENT_BACK,
    )


def test_other_and_unknown_statuses_fall_back_to_assigned() -> None:
    assert categories_to_refetch(MutationEffect.status_change("in_progress")) == (Category.ASSIGNED,)
    assert categories_to_refetch(MutationEffect.status_change("archived")) == (Category.ASSIGNED,)


def test_comment_targets() -> None:
    assert categories_to_refetch(MutationEffect.comment()) == (Category.ASSIGNED,)
    assert categories_to_refetch(MutationEffect.comment(is_send_back_reason=True)) == (
        Category.ASSIGNED,
        Category.SENT_BACK,
    )


def test_claim_and_field_update() -> None:
    assert categories_to_refetch(MutationEffect.claim()) == (Category.AVAILABLE, Category.ASSIGNED)
    assert categories_to_refetch(MutationEffect.field_update()) == (Category.ASSIGNED,)
    assert categories_to_refetch(MutationEffect.assignment_cleared()) == (Category.AVAILABLE,)


def test_union_is_deduplicated_in_first_seen_order() -> None:
    result = categories_to_refetch(
        MutationEffect.status_change("sent_back"),
        MutationEffect.assignment_cleared(),
        MutationEffect.comment(is_send_back_reason=True),
    )

    assert result == (Category.ASSIGNED, Category.SENT_BACK, Category.AVAILABLE)


def test_no_effects_no_refetch() -> None:
    assert categories_to_refetch() == ()


def test_data_update_with_status_and_cleared_assignment() -> None:
    effects = effects_for_data_update({"status": "new", "assigned_to": None, "notes": "x"})

    assert categories_to_refetch(*effects) == (Category.ASSIGNED, Category.AVAILABLE)


def test_data_update_with_plain_fields() -> None:
    assert categories_to_refetch(*effects_for_data_update({"notes": "x"})) == (Category.ASSIGNED,)


def test_status_update_with_assignment_reset() -> None:
    effects = effects_for_status_update("in_progress", {"assigned_to": None})

    assert categories_to_refetch(*effects) == (Category.ASSIGNED, Category.AVAILABLE)
