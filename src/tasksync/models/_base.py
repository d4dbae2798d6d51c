"""Base model for task service payloads.

Every record model inherits from :class:`TaskSyncBaseModel` which provides:

* ``alias_generator=to_camel`` with ``populate_by_name`` so both the
  service's ``snake_case`` keys and ``camelCase`` keys are accepted.
* ``extra="allow"`` so server fields the core does not inspect are kept
  and survive a cache round-trip.
* :meth:`TaskSyncBaseModel.extra_field` to read such fields by their
  snake_case name whatever casing the server used.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel

# Threshold to distinguish seconds from milliseconds.
_MS_THRESHOLD = 1_000_000_000_000


def parse_timestamp(value: Any) -> datetime | None:
    """Coerce service timestamps (ISO strings, epoch seconds or ms) to aware datetimes.

    Empty and unparseable strings become ``None``. Naive datetimes are
    assumed to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        ts = float(value)
        if ts >= _MS_THRESHOLD:
            ts /= 1000.0
        return datetime.fromtimestamp(ts, tz=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return value


Timestamp = Annotated[datetime | None, BeforeValidator(parse_timestamp)]
"""Annotated type accepting ISO strings or epoch numbers, producing UTC datetimes."""


class TaskSyncBaseModel(BaseModel):
    """Base for task service payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def extra_field(self, name: str, default: Any = None) -> Any:
        """Return a server field not declared on the model.

        *name* is the snake_case name; the camelCase spelling is tried too.
        """
        extra = self.model_extra or {}
        if name in extra:
            return extra[name]
        return extra.get(to_camel(name), default)
