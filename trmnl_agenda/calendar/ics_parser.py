"""Selection of today's events from an ICS document.

Parsing itself is delegated to ``icalendar``; this module only walks the VEVENT
components, expands recurrences into today's window with ``dateutil`` and
projects what is left into ``CalendarEvent`` values.
"""

import datetime
import logging
from dataclasses import dataclass
from typing import Any, Optional

from dateutil.rrule import rruleset, rrulestr
from icalendar import Calendar, vRecur

from trmnl_agenda.core.timezone_utils import (
    DASHBOARD_TIMEZONE,
    get_zone,
    local_day_bounds,
    now_utc,
    to_local,
)
from trmnl_agenda.exceptions import ParseError
from trmnl_agenda.models import FALLBACK_SUMMARY, CalendarEvent

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M"


@dataclass(frozen=True)
class _Occurrence:
    """A concrete event instance placed in the dashboard timezone."""

    start: datetime.datetime
    all_day: bool
    summary: str


def parse_calendar(ics_text: str) -> Calendar:
    """Parse an ICS document.

    Args:
        ics_text: Raw ICS content

    Returns:
        Parsed icalendar Calendar

    Raises:
        ParseError: If the content is empty or not a valid iCalendar document
    """
    if not ics_text or not ics_text.strip():
        raise ParseError("Tom kalender mottatt")
    try:
        return Calendar.from_ical(ics_text)
    except (ValueError, IndexError, KeyError) as e:
        raise ParseError(f"Ugyldig kalenderformat: {e}") from e


def _summary_of(component: Any) -> str:
    summary = component.get("SUMMARY")
    text = str(summary).strip() if summary is not None else ""
    return text or FALLBACK_SUMMARY


def _start_value(component: Any) -> Optional[datetime.date]:
    prop = component.get("DTSTART")
    return getattr(prop, "dt", None)


def _instant_key(value: datetime.date, tz_name: str) -> datetime.datetime:
    """Comparable UTC instant for a start or RECURRENCE-ID value."""
    local, _ = to_local(value, tz_name)
    return local.astimezone(datetime.timezone.utc)


def _date_values(component: Any, name: str) -> list[datetime.date]:
    """Collect the date/datetime values of a multi-valued property (EXDATE, RDATE).

    icalendar returns either a single ``vDDDLists`` or a list of them depending on
    how many times the property occurs.
    """
    prop = component.get(name)
    if prop is None:
        return []
    props = prop if isinstance(prop, list) else [prop]

    values: list[datetime.date] = []
    for item in props:
        for ddd in getattr(item, "dts", []):
            value = ddd.dt
            if isinstance(value, tuple):
                # RDATE;VALUE=PERIOD: keep the period start
                value = value[0]
            values.append(value)
    return values


def _align(value: datetime.date, dtstart: datetime.datetime, tz_name: str) -> datetime.datetime:
    """Bring an RDATE/EXDATE/UNTIL value into the same naive/aware space as ``dtstart``."""
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, dtstart.time())
    if dtstart.tzinfo is None:
        if value.tzinfo is not None:
            value = value.astimezone(get_zone(tz_name)).replace(tzinfo=None)
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=dtstart.tzinfo)
    return value


def _rule_texts(component: Any, dtstart: datetime.datetime, tz_name: str) -> list[str]:
    """Serialize the RRULE properties with UNTIL matching the awareness of ``dtstart``.

    dateutil rejects rules whose UNTIL is naive while DTSTART is aware (and the
    reverse), which real feeds produce routinely.
    """
    prop = component.get("RRULE")
    if prop is None:
        return []
    rules = prop if isinstance(prop, list) else [prop]

    texts = []
    for rule in rules:
        fixed = vRecur(rule)
        until = fixed.get("UNTIL")
        if until:
            value = until[0] if isinstance(until, list) else until
            if not isinstance(value, datetime.datetime):
                # A date UNTIL includes the whole day
                value = datetime.datetime.combine(value, datetime.time.max.replace(microsecond=0))
            value = _align(value, dtstart, tz_name)
            if value.tzinfo is not None:
                value = value.astimezone(datetime.timezone.utc)
            fixed["UNTIL"] = [value]
        texts.append(fixed.to_ical().decode("utf-8"))
    return texts


def _expand_today(
    component: Any,
    start_value: datetime.date,
    day: datetime.date,
    tz_name: str,
) -> list[datetime.date]:
    """Return the start values of the recurrence instances that fall on ``day``.

    Expansion happens in the event's own timezone (or in naive wall-clock space for
    floating and all-day events) so DST transitions keep the wall-clock time.
    """
    day_start, day_end = local_day_bounds(day, tz_name)

    if isinstance(start_value, datetime.datetime) and start_value.tzinfo is not None:
        dtstart = start_value
        window_start, window_end = day_start, day_end
    else:
        if isinstance(start_value, datetime.datetime):
            dtstart = start_value
        else:
            dtstart = datetime.datetime.combine(start_value, datetime.time.min)
        window_start = day_start.replace(tzinfo=None)
        window_end = day_end.replace(tzinfo=None)

    rset = rruleset()
    for text in _rule_texts(component, dtstart, tz_name):
        rset.rrule(rrulestr(text, dtstart=dtstart))
    for rdate in _date_values(component, "RDATE"):
        rset.rdate(_align(rdate, dtstart, tz_name))
    # DTSTART is always the first instance, even when the rule would not produce it
    rset.rdate(dtstart)
    for exdate in _date_values(component, "EXDATE"):
        rset.exdate(_align(exdate, dtstart, tz_name))

    occurrences = [o for o in rset.between(window_start, window_end, inc=True) if o < window_end]
    if isinstance(start_value, datetime.datetime):
        return occurrences
    return [o.date() for o in occurrences]


def _collect_overrides(calendar: Calendar, tz_name: str) -> set[tuple[str, datetime.datetime]]:
    """(UID, original instant) of every instance moved by a RECURRENCE-ID component."""
    overrides = set()
    for component in calendar.walk("VEVENT"):
        recurrence_id = component.get("RECURRENCE-ID")
        value = getattr(recurrence_id, "dt", None)
        if value is None:
            continue
        overrides.add((str(component.get("UID", "")), _instant_key(value, tz_name)))
    return overrides


def select_today_events(
    calendar: Calendar,
    now: Optional[datetime.datetime] = None,
    tz_name: str = DASHBOARD_TIMEZONE,
) -> list[CalendarEvent]:
    """Pick the events starting today in ``tz_name``, sorted by start.

    Args:
        calendar: Parsed calendar
        now: Reference instant (defaults to the current time)
        tz_name: IANA timezone defining "today"

    Returns:
        Today's events in chronological order
    """
    now = now or now_utc()
    today = now.astimezone(get_zone(tz_name)).date()
    overrides = _collect_overrides(calendar, tz_name)

    occurrences: list[_Occurrence] = []
    for component in calendar.walk("VEVENT"):
        start_value = _start_value(component)
        if start_value is None:
            logger.debug("Skipping VEVENT without DTSTART (UID=%s)", component.get("UID"))
            continue

        summary = _summary_of(component)
        is_master = "RECURRENCE-ID" not in component and (
            "RRULE" in component or "RDATE" in component
        )

        starts = [start_value]
        if is_master:
            try:
                starts = _expand_today(component, start_value, today, tz_name)
            except (ValueError, TypeError) as e:
                logger.warning(
                    "Could not expand recurrence for %r, using DTSTART only: %s", summary, e
                )
            else:
                uid = str(component.get("UID", ""))
                starts = [s for s in starts if (uid, _instant_key(s, tz_name)) not in overrides]

        for value in starts:
            local_start, all_day = to_local(value, tz_name)
            if local_start.date() != today:
                continue
            occurrences.append(_Occurrence(start=local_start, all_day=all_day, summary=summary))

    occurrences.sort(key=lambda o: o.start)
    logger.debug("Selected %d event(s) for %s", len(occurrences), today.isoformat())

    return [
        CalendarEvent(time=o.start.strftime(TIME_FORMAT), summary=o.summary, all_day=o.all_day)
        for o in occurrences
    ]


def parse_today_events(
    ics_text: str,
    now: Optional[datetime.datetime] = None,
    tz_name: str = DASHBOARD_TIMEZONE,
) -> list[CalendarEvent]:
    """Parse an ICS document and return today's events.

    Raises:
        ParseError: If the document cannot be parsed
    """
    return select_today_events(parse_calendar(ics_text), now=now, tz_name=tz_name)
