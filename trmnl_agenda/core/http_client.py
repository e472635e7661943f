"""Outbound HTTP client construction for the calendar and weather fetchers.

One ``httpx.AsyncClient`` is created per running application and shared by both
fetchers; every request carries an explicit timeout so a stalled upstream cannot
hang a dashboard request.
"""

import logging
from typing import Optional

import httpx

from trmnl_agenda import __version__

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = httpx.Limits(
    max_connections=4,  # two upstreams, at most a couple of concurrent requests
    max_keepalive_connections=2,
)

CALENDAR_ACCEPT = "text/calendar, text/plain, application/octet-stream, */*"


def build_timeout(total_seconds: float) -> httpx.Timeout:
    """Build an httpx timeout where connect is capped below the overall deadline.

    Args:
        total_seconds: Overall deadline for a single request in seconds

    Returns:
        httpx.Timeout instance
    """
    return httpx.Timeout(total_seconds, connect=min(10.0, total_seconds))


def default_user_agent() -> str:
    """Return the User-Agent used for calendar requests."""
    return f"trmnl-agenda/{__version__}"


def get_headers_with_correlation_id(headers: Optional[dict[str, str]] = None) -> dict[str, str]:
    """Return a copy of ``headers`` with the current correlation ID added.

    Only ids generated by this app are sent; a client-supplied ``X-Request-ID``
    stays in local logs and is never forwarded to upstream hosts.

    Args:
        headers: Base headers

    Returns:
        Headers dictionary with ``X-Request-ID`` when a generated id is active
    """
    from trmnl_agenda.api.middleware import NO_REQUEST_ID, get_outbound_request_id

    result = dict(headers or {})
    request_id = get_outbound_request_id()
    if request_id != NO_REQUEST_ID:
        result.setdefault("X-Request-ID", request_id)
    return result


def create_client(
    timeout_seconds: float,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create the shared async HTTP client.

    Args:
        timeout_seconds: Per-request timeout in seconds
        transport: Optional transport (tests pass ``httpx.MockTransport``)

    Returns:
        Configured httpx.AsyncClient; the caller owns closing it
    """
    logger.debug(
        "Creating HTTP client: timeout=%.1fs, max_connections=%d",
        timeout_seconds,
        DEFAULT_LIMITS.max_connections,
    )
    return httpx.AsyncClient(
        limits=DEFAULT_LIMITS,
        timeout=build_timeout(timeout_seconds),
        follow_redirects=True,
        transport=transport,
        headers={"User-Agent": default_user_agent()},
    )
