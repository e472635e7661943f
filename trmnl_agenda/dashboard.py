"""Concurrent fetch of calendar and weather, joined into one PageModel."""

from __future__ import annotations

import asyncio
import datetime
import logging
from typing import Optional

import httpx

from trmnl_agenda.calendar import fetch_today_events
from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.exceptions import FetchError
from trmnl_agenda.models import PageModel
from trmnl_agenda.weather import fetch_weather_now

logger = logging.getLogger(__name__)


async def build_page_model(
    client: httpx.AsyncClient,
    config: AgendaConfig,
    now: Optional[datetime.datetime] = None,
) -> PageModel:
    """Fetch today's events and the current weather concurrently.

    Both results are required: the first failure cancels the other fetch and
    propagates. The join as a whole is bounded by ``config.fetch_timeout_seconds``.

    Args:
        client: Shared HTTP client
        config: Application configuration
        now: Reference instant for "today" (defaults to the current time)

    Returns:
        PageModel with events and weather

    Raises:
        FetchError: On transport failure, upstream status error or timeout
        ParseError: On malformed calendar or forecast data
    """
    calendar_task = asyncio.create_task(fetch_today_events(client, config, now=now))
    weather_task = asyncio.create_task(fetch_weather_now(client, config))
    tasks = (calendar_task, weather_task)

    try:
        events, weather = await asyncio.wait_for(
            asyncio.gather(*tasks), timeout=config.fetch_timeout_seconds
        )
    except asyncio.TimeoutError as e:
        raise FetchError(
            f"Tidsavbrudd etter {config.fetch_timeout_seconds:g} sekunder"
        ) from e
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    return PageModel(events=events, weather=weather)
