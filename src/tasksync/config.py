"""Controller configuration for tasksync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from tasksync import _constants as const
from tasksync.exceptions import TaskSyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(env_key: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise TaskSyncConfigError(f"{env_key} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SyncConfig:
    """Controller configuration.

    All durations are in seconds.

    Parameters
    ----------
    base_url : str
        Root URL of the task service API (e.g. ``"https://portal/api"``).
    api_token : str or None
        Bearer token sent with every request. ``None`` sends no
        ``Authorization`` header (the host handles auth some other way).
    user_id : int, str or None
        Authenticated user. Background polling only starts once a user
        is known.
    throttle_interval : float
        Minimum time between two non-forced fetches of the same category.
    dashboard_throttle_interval : float
        Same, for the queue dashboard which has fewer moving parts.
    stale_after : float
        Age after which a category's data is considered stale.
    poll_interval : float
        Background refresh period.
    initial_delay : float
        Delay before the first forced refresh after activation, so several
        controllers starting together do not hit the backend at once.
    visibility_debounce : float
        Quiet period after the page becomes visible before refreshing.
    ordered_step_delay : float
        Pause between requests of the ordered refresh strategy.
    reference_cache_ttl : float
        Maximum age of cached users / handlers.
    refresh_strategy : str
        ``"concurrent"`` (default) or ``"ordered"``.
    auto_return_enabled : bool
        Return stale in-progress assignments to the queue after each
        scheduled refresh.
    auto_return_after : float
        Inactivity after which an in-progress assignment is returned.
    api_trace_enabled : bool
        Log (redacted) request and response bodies at DEBUG level.
    """

    base_url: str = const.BASE_URL
    api_token: str | None = None
    user_id: int | str | None = None
    throttle_interval: float = const.THROTTLE_INTERVAL
    dashboard_throttle_interval: float = const.DASHBOARD_THROTTLE_INTERVAL
    stale_after: float = const.STALE_AFTER
    poll_interval: float = const.POLL_INTERVAL
    initial_delay: float = const.INITIAL_DELAY
    visibility_debounce: float = const.VISIBILITY_DEBOUNCE
    ordered_step_delay: float = const.ORDERED_STEP_DELAY
    reference_cache_ttl: float = const.REFERENCE_CACHE_TTL
    refresh_strategy: str = "concurrent"
    auto_return_enabled: bool = False
    auto_return_after: float = const.AUTO_RETURN_AFTER
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.refresh_strategy not in const.REFRESH_STRATEGIES:
            raise TaskSyncConfigError(
                f"refresh_strategy must be one of {sorted(const.REFRESH_STRATEGIES)}, got {self.refresh_strategy!r}"
            )
        if self.poll_interval <= 0:
            raise TaskSyncConfigError("poll_interval must be positive")
        for name in (
            "throttle_interval",
            "dashboard_throttle_interval",
            "stale_after",
            "initial_delay",
            "visibility_debounce",
            "ordered_step_delay",
            "reference_cache_ttl",
            "auto_return_after",
        ):
            if getattr(self, name) < 0:
                raise TaskSyncConfigError(f"{name} must not be negative")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncConfig:
        """Create configuration from ``TASKSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_STR_MAP = {
            "TASKSYNC_BASE_URL": "base_url",
            "TASKSYNC_API_TOKEN": "api_token",
            "TASKSYNC_USER_ID": "user_id",
            "TASKSYNC_REFRESH_STRATEGY": "refresh_strategy",
        }
        _ENV_FLOAT_MAP = {
            "TASKSYNC_THROTTLE_INTERVAL": "throttle_interval",
            "TASKSYNC_DASHBOARD_THROTTLE_INTERVAL": "dashboard_throttle_interval",
            "TASKSYNC_STALE_AFTER": "stale_after",
            "TASKSYNC_POLL_INTERVAL": "poll_interval",
            "TASKSYNC_INITIAL_DELAY": "initial_delay",
            "TASKSYNC_VISIBILITY_DEBOUNCE": "visibility_debounce",
            "TASKSYNC_ORDERED_STEP_DELAY": "ordered_step_delay",
            "TASKSYNC_REFERENCE_CACHE_TTL": "reference_cache_ttl",
            "TASKSYNC_AUTO_RETURN_AFTER": "auto_return_after",
        }

        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = val

        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_float(env_key, val)

        if "auto_return_enabled" not in overrides:
            config_kwargs["auto_return_enabled"] = _env_bool(env.get("TASKSYNC_AUTO_RETURN_ENABLED"), False)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("TASKSYNC_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
