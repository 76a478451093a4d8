"""Calendar-date parsing helpers. Unparseable input yields None, never an exception."""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from typing import Any, Optional

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DATE_FORMAT = "%Y-%m-%d"


def coerce_date(value: Any) -> Optional[date]:
    """
    Normalize a date-ish value to a calendar date.

    Accepts ``date``, ``datetime`` (aware values are converted to UTC first),
    ``YYYY-MM-DD`` strings and ISO timestamps. Anything else returns None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    try:
        if _ISO_DATE.match(text):
            return date.fromisoformat(text)
        return coerce_date(datetime.fromisoformat(text))
    except ValueError:
        return None


def to_iso_date(value: Any) -> Optional[str]:
    """Render a date-ish value as ``YYYY-MM-DD``; None when unparseable."""
    parsed = coerce_date(value)
    return parsed.strftime(DATE_FORMAT) if parsed else None


def days_between(new_value: Any, old_value: Any) -> Optional[int]:
    """Calendar days from old to new, ignoring time of day. None if either is invalid."""
    new_date = coerce_date(new_value)
    old_date = coerce_date(old_value)
    if new_date is None or old_date is None:
        return None
    return (new_date - old_date).days
