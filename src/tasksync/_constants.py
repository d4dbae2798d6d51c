"""Internal constants shared across the library."""

from __future__ import annotations

BASE_URL = "http://localhost:5000/api"
USER_AGENT = "tasksync/1 (+aiohttp)"

# ------------------------------------------------------------------
# Timing defaults (seconds)
# ------------------------------------------------------------------

THROTTLE_INTERVAL = 5.0
DASHBOARD_THROTTLE_INTERVAL = 3.0
STALE_AFTER = 300.0
POLL_INTERVAL = 120.0
INITIAL_DELAY = 2.0
VISIBILITY_DEBOUNCE = 3.0
ORDERED_STEP_DELAY = 1.0
REFERENCE_CACHE_TTL = 300.0
AUTO_RETURN_AFTER = 30 * 60.0

# ------------------------------------------------------------------
# Session storage keys for cached reference data
# ------------------------------------------------------------------

USERS_CACHE_KEY = "cachedUsers"
HANDLERS_CACHE_KEY = "cachedHandlers"
TIMESTAMP_SUFFIX = "_timestamp"

REFRESH_STRATEGIES: frozenset[str] = frozenset({"concurrent", "ordered"})

# Key used by the queue dashboard in its throttle gate / cancellation registry.
QUEUE_KEY = "queue"

AUTO_RETURN_DETAILS = "Request automatically returned due to inactivity"
