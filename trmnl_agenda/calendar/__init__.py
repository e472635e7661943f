"""Calendar side of the dashboard: ICS download and today's event selection."""

import datetime
import logging
from typing import Optional

import httpx

from trmnl_agenda.calendar.ics_fetcher import fetch_ics
from trmnl_agenda.calendar.ics_parser import parse_today_events
from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.models import CalendarEvent

logger = logging.getLogger(__name__)


async def fetch_today_events(
    client: httpx.AsyncClient,
    config: AgendaConfig,
    now: Optional[datetime.datetime] = None,
) -> list[CalendarEvent]:
    """Download the configured feed and return today's events in start order.

    Raises:
        FetchError: If the feed cannot be downloaded
        ParseError: If the feed is not valid iCalendar
    """
    ics_text = await fetch_ics(client, config.ics_url)
    events = parse_today_events(ics_text, now=now, tz_name=config.timezone)
    logger.info("Calendar: %d event(s) today", len(events))
    return events


__all__ = ["fetch_today_events"]
