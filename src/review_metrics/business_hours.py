"""Elapsed business hours between two instants.

The calendar is fixed: Monday to Friday, hour-starts 09:00 through 16:00, one
hour per step, no holidays. Instants are used in whatever zone they carry.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from .stats import round_half_up

BUSINESS_DAYS = frozenset(range(0, 5))
FIRST_BUSINESS_HOUR = 9
LAST_BUSINESS_HOUR = 16

_STEP = timedelta(hours=1)


def is_business_hour(moment: datetime) -> bool:
    """Whether the hour step starting at ``moment`` counts as a business hour."""
    return (
        moment.weekday() in BUSINESS_DAYS
        and FIRST_BUSINESS_HOUR <= moment.hour <= LAST_BUSINESS_HOUR
    )


def business_hours_between(
    start: Optional[datetime], end: Optional[datetime]
) -> Optional[float]:
    """Count business hours from ``start`` to ``end`` in whole-hour steps.

    The cursor starts at ``start`` and advances one hour at a time while it is
    before ``end``. Each step is credited when its starting weekday and hour
    fall inside the calendar, so a partial final hour counts in full and an
    ``end`` at or before ``start`` gives ``0``.

    Returns:
        The number of business hours, or ``None`` when either endpoint is missing.
    """
    if start is None or end is None:
        return None

    business_hours = 0
    cursor = start
    while cursor < end:
        if is_business_hour(cursor):
            business_hours += 1
        cursor += _STEP

    return round_half_up(business_hours)
