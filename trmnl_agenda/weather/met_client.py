"""Current weather from the MET Norway Locationforecast API.

MET Norway's terms of service require an identifying User-Agent with contact
information; anonymous or generic agents get throttled or blocked.
"""

import logging
from typing import Any

import httpx

from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.core.http_client import get_headers_with_correlation_id
from trmnl_agenda.exceptions import FetchError, ParseError, UpstreamStatusError
from trmnl_agenda.models import WeatherSnapshot

logger = logging.getLogger(__name__)

MET_FORECAST_URL = "https://api.met.no/weatherapi/locationforecast/2.0/compact"
USER_AGENT_PRODUCT = "TRMNL-plugin/1.0"


def build_user_agent(contact_email: str) -> str:
    """Return the User-Agent MET Norway expects (product token plus contact)."""
    return f"{USER_AGENT_PRODUCT} {contact_email}"


def parse_forecast(payload: Any) -> WeatherSnapshot:
    """Extract the current weather from a Locationforecast ``compact`` payload.

    The first timeseries entry is "now". ``air_temperature`` is required;
    the next-hour block is optional.

    Args:
        payload: Decoded JSON body

    Returns:
        WeatherSnapshot

    Raises:
        ParseError: If the timeseries or the air temperature is missing
    """
    try:
        now = payload["properties"]["timeseries"][0]["data"]
        temperature = now["instant"]["details"]["air_temperature"]
    except (KeyError, IndexError, TypeError) as e:
        raise ParseError(f"Uventet svar fra MET Norway: mangler {e}") from e

    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise ParseError(f"Uventet svar fra MET Norway: air_temperature={temperature!r}")

    next_hour = now.get("next_1_hours") or {}
    amount = (next_hour.get("details") or {}).get("precipitation_amount")
    symbol = (next_hour.get("summary") or {}).get("symbol_code")

    precipitation = "0"
    if amount is not None:
        try:
            precipitation = f"{float(amount):.1f}"
        except (TypeError, ValueError) as e:
            raise ParseError(f"Uventet svar fra MET Norway: precipitation_amount={amount!r}") from e

    return WeatherSnapshot(
        temperature=float(temperature),
        precipitation_next_hour=precipitation,
        symbol_code=str(symbol) if symbol else "",
    )


async def fetch_weather_now(client: httpx.AsyncClient, config: AgendaConfig) -> WeatherSnapshot:
    """Fetch the forecast for the configured position and return current weather.

    Args:
        client: Shared HTTP client
        config: Configuration with ``lat``, ``lon`` and ``contact_email``

    Returns:
        WeatherSnapshot

    Raises:
        FetchError: On network failure or timeout
        UpstreamStatusError: When MET Norway answers with a non-2xx status
        ParseError: When the body is not the expected JSON
    """
    params = {"lat": config.lat, "lon": config.lon}
    headers = get_headers_with_correlation_id(
        {"User-Agent": build_user_agent(config.contact_email), "Accept": "application/json"}
    )

    logger.debug("Fetching forecast for lat=%s lon=%s", config.lat, config.lon)
    try:
        response = await client.get(MET_FORECAST_URL, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise FetchError("Tidsavbrudd mot MET Norway") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Kunne ikke hente været: {e}") from e

    if not response.is_success:
        raise UpstreamStatusError(
            f"MET Norway svarte {response.status_code}",
            status_code=response.status_code,
            source="weather",
        )

    try:
        payload = response.json()
    except ValueError as e:
        raise ParseError("MET Norway svarte ikke med gyldig JSON") from e

    snapshot = parse_forecast(payload)
    logger.info(
        "Weather: %.1f°C, %s mm next hour, symbol=%r",
        snapshot.temperature,
        snapshot.precipitation_next_hour,
        snapshot.symbol_code,
    )
    return snapshot
