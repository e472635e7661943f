"""HTTP download of the ICS calendar feed."""

import logging
from typing import Optional
from urllib.parse import urlparse

import httpx

from trmnl_agenda.core.http_client import CALENDAR_ACCEPT, get_headers_with_correlation_id
from trmnl_agenda.exceptions import FetchError, UpstreamStatusError

logger = logging.getLogger(__name__)


def _validate_url(url: Optional[str]) -> str:
    """Check the feed URL is a usable HTTP(S) URL.

    Args:
        url: Configured feed URL

    Returns:
        The URL unchanged

    Raises:
        FetchError: If the URL is missing, not HTTP(S) or has no hostname
    """
    if not url:
        raise FetchError("ICS_URL er ikke satt")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise FetchError(f"Ugyldig kalender-URL (skjema {parsed.scheme or 'mangler'})")
    if not parsed.hostname:
        raise FetchError("Ugyldig kalender-URL (mangler vertsnavn)")
    return url


def normalize_feed_url(url: Optional[str]) -> Optional[str]:
    """Rewrite ``webcal://`` subscription links to ``https://``."""
    if url and url.lower().startswith("webcal://"):
        return "https://" + url[len("webcal://") :]
    return url


async def fetch_ics(client: httpx.AsyncClient, url: Optional[str]) -> str:
    """Download the ICS document.

    Args:
        client: Shared HTTP client
        url: Feed URL (``ICS_URL``)

    Returns:
        The ICS document as text

    Raises:
        FetchError: On missing/invalid URL, network failure or timeout
        UpstreamStatusError: When the feed answers with a non-2xx status
    """
    url = _validate_url(normalize_feed_url(url))
    host = urlparse(url).hostname
    logger.debug("Fetching ICS from %s", host)

    try:
        response = await client.get(
            url, headers=get_headers_with_correlation_id({"Accept": CALENDAR_ACCEPT})
        )
    except httpx.TimeoutException as e:
        raise FetchError(f"Tidsavbrudd mot kalenderkilden ({host})") from e
    except httpx.HTTPError as e:
        raise FetchError(f"Kunne ikke hente kalenderen: {e}") from e

    if not response.is_success:
        raise UpstreamStatusError(
            f"Kalenderkilden svarte {response.status_code}",
            status_code=response.status_code,
            source="calendar",
        )

    content_type = response.headers.get("content-type", "").lower()
    expected = ("text/calendar", "text/plain", "octet-stream")
    if content_type and not any(ct in content_type for ct in expected):
        logger.warning("Unexpected content type from calendar feed: %s", content_type)

    logger.debug("Fetched ICS content (%d bytes)", len(response.content))
    return response.text
