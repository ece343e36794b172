"""Utilities for working with reporting periods."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple


def day_range(day: date, tz: Optional[tzinfo] = None) -> Tuple[datetime, datetime]:
    """Return the half-open ``[start, end)`` bounds of ``day``."""

    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)
