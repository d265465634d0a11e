"""Calendar resolver: "now" plus a day offset, as a civil day key.

All rotation state is partitioned by zero-padded ``YYYY-MM-DD`` strings in a
single civil timezone. Keys are validated strictly on the way in and compared
as dates, so a malformed key can never sort into the wrong place.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Callable, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..core.constants import DAY_KEY_FORMAT, DEFAULT_TIMEZONE
from ..core.exceptions import ValidationError
from .validators import require_int

_DAY_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_day_key(value: str) -> date:
    """Parse a YYYY-MM-DD day key into a date."""
    if not isinstance(value, str) or not _DAY_KEY_RE.match(value):
        raise ValidationError(f"Invalid day key: {value!r}")
    try:
        return datetime.strptime(value, DAY_KEY_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid day key: {value!r}")


def format_day_key(value: date) -> str:
    return value.strftime(DAY_KEY_FORMAT)


def require_day_key(value: str) -> str:
    parse_day_key(value)
    return value


def add_days(day_key: str, days: int) -> str:
    return format_day_key(parse_day_key(day_key) + timedelta(days=require_int(days, "days")))


def days_between(start: str, end: str) -> int:
    """Whole civil days from ``start`` to ``end`` (negative if end is earlier)."""
    return (parse_day_key(end) - parse_day_key(start)).days


def is_after(left: str, right: str) -> bool:
    return parse_day_key(left) > parse_day_key(right)


class CalendarResolver:
    """Resolves day keys in one fixed civil timezone.

    ``now`` is an injectable clock. Naive values it returns are taken to be
    already in the resolver's timezone; aware values are converted.
    """

    def __init__(self, timezone: str = DEFAULT_TIMEZONE, *, now: Optional[Callable[[], datetime]] = None):
        try:
            self._tz = ZoneInfo(timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValidationError(f"Unknown timezone: {timezone!r}")
        self._now = now

    @property
    def timezone(self) -> ZoneInfo:
        return self._tz

    def now(self) -> datetime:
        if self._now is None:
            return datetime.now(self._tz)
        value = self._now()
        if value.tzinfo is None:
            return value.replace(tzinfo=self._tz)
        return value.astimezone(self._tz)

    def resolve(self, offset_days: int = 0) -> str:
        offset_days = require_int(offset_days, "offset_days")
        return format_day_key(self.now().date() + timedelta(days=offset_days))

    def today(self) -> str:
        return self.resolve(0)

    def tomorrow(self) -> str:
        return self.resolve(1)
