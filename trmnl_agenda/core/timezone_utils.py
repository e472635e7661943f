"""Fixed-timezone clock and conversion helpers for trmnl_agenda."""

from __future__ import annotations

import datetime
import logging
import os
from functools import lru_cache
from zoneinfo import ZoneInfo

from dateutil import parser as date_parser

logger = logging.getLogger(__name__)

# All "today" and time-of-day computations use this zone, never the host locale
DASHBOARD_TIMEZONE = "Europe/Oslo"

TEST_TIME_ENV = "TRMNL_AGENDA_TEST_TIME"


@lru_cache(maxsize=8)
def get_zone(tz_name: str = DASHBOARD_TIMEZONE) -> ZoneInfo:
    """Return a cached ZoneInfo for the given IANA name."""
    return ZoneInfo(tz_name)


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via the TRMNL_AGENDA_TEST_TIME environment
    variable (ISO 8601, e.g. "2025-03-14T09:00:00+01:00"). A naive override is
    taken as UTC.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
        except ValueError as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)
        else:
            if dt.tzinfo is not None:
                return dt.astimezone(datetime.timezone.utc)
            return dt.replace(tzinfo=datetime.timezone.utc)

    return datetime.datetime.now(datetime.timezone.utc)


def to_local(
    value: datetime.date | datetime.datetime, tz_name: str = DASHBOARD_TIMEZONE
) -> tuple[datetime.datetime, bool]:
    """Normalize an ICS start value into an aware datetime in the dashboard zone.

    Args:
        value: ``date`` (all-day), naive ``datetime`` (floating) or aware ``datetime``
        tz_name: IANA timezone name

    Returns:
        Tuple of (aware local datetime, is_all_day)
    """
    zone = get_zone(tz_name)
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            # Floating time is wall-clock time wherever the display is
            return value.replace(tzinfo=zone), False
        return value.astimezone(zone), False
    return datetime.datetime.combine(value, datetime.time.min, tzinfo=zone), True


def local_day_bounds(
    day: datetime.date, tz_name: str = DASHBOARD_TIMEZONE
) -> tuple[datetime.datetime, datetime.datetime]:
    """Return the aware [start, end) instants of a calendar day in the dashboard zone."""
    zone = get_zone(tz_name)
    start = datetime.datetime.combine(day, datetime.time.min, tzinfo=zone)
    end = datetime.datetime.combine(day + datetime.timedelta(days=1), datetime.time.min, tzinfo=zone)
    return start, end
