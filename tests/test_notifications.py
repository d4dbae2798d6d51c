from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pytest

from tasksync.notifications import LoggingNotifier, Notification, NotificationLevel, RateLimitedNotifier


class _Clock:
    def __init__(self, now: float = 0.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class _Recorder:
    shown: list[Notification] = field(default_factory=list)

    def notify(self, notification: Notification) -> None:
        self.shown.append(notification)


def _note(tag: str | None = None) -> Notification:
    return Notification(level=NotificationLevel.WARNING, title="Warning", message="m", tag=tag)


def test_at_most_five_per_minute() -> None:
    clock = _Clock()
    inner = _Recorder()
    notifier = RateLimitedNotifier(inner, clock=clock)

    for _ in range(7):
        notifier.notify(_note())

    assert len(inner.shown) == 5

    clock.now += 61.0
    notifier.notify(_note())
    assert len(inner.shown) == 6


def test_same_tag_suppressed_within_repeat_window() -> None:
    clock = _Clock()
    inner = _Recorder()
    notifier = RateLimitedNotifier(inner, clock=clock)

    notifier.notify(_note("dashboard:users"))
    clock.now += 119.0
    notifier.notify(_note("dashboard:users"))
    notifier.notify(_note("dashboard:handlers"))
    clock.now += 2.0
    notifier.notify(_note("dashboard:users"))

    assert [n.tag for n in inner.shown] == ["dashboard:users", "dashboard:handlers", "dashboard:users"]


def test_can_show_does_not_consume_budget() -> None:
    notifier = RateLimitedNotifier(_Recorder(), max_per_minute=1, clock=_Clock())

    assert notifier.can_show("x")
    assert notifier.can_show("x")


def test_logging_notifier_maps_levels(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="tasksync.notifications"):
        LoggingNotifier().notify(Notification(level=NotificationLevel.ERROR, title="Error", message="boom"))

    assert caplog.records[-1].levelno == logging.ERROR
    assert "Error: boom" in caplog.text
