"""Request correlation ID middleware.

Extracts a correlation ID from the incoming request (or generates one), stores it
in a context variable so log records can carry it, and echoes it back in the
``X-Request-ID`` response header. Only ids generated here are forwarded to
upstream services; see :func:`get_outbound_request_id`.
"""

import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

# Uses contextvars for async-safe propagation into the fetch tasks
request_id_var: ContextVar[str] = ContextVar("request_id", default="")
# Set only for ids generated here; client-supplied ids never leave the process
outbound_request_id_var: ContextVar[str] = ContextVar("outbound_request_id", default="")

NO_REQUEST_ID = "no-request-id"


@web.middleware
async def correlation_id_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Extract or generate correlation ID for request tracking.

    Priority for correlation ID extraction:
    1. X-Request-ID from client
    2. X-Correlation-ID from client
    3. Generate new UUID

    Args:
        request: aiohttp request object
        handler: Next handler in middleware chain

    Returns:
        Response with correlation ID added to headers
    """
    supplied = request.headers.get("X-Request-ID") or request.headers.get("X-Correlation-ID")
    correlation_id = supplied or str(uuid.uuid4())

    token = request_id_var.set(correlation_id)
    outbound_token = outbound_request_id_var.set("" if supplied else correlation_id)
    request["correlation_id"] = correlation_id
    try:
        response = await handler(request)
    finally:
        outbound_request_id_var.reset(outbound_token)
        request_id_var.reset(token)

    response.headers["X-Request-ID"] = correlation_id
    return response


def get_request_id() -> str:
    """Get current request correlation ID from context.

    Returns:
        Current request correlation ID, or "no-request-id" if not set
    """
    return request_id_var.get() or NO_REQUEST_ID


def get_outbound_request_id() -> str:
    """Get the correlation ID that may be sent to upstream services.

    Returns:
        The current ID when this process generated it, otherwise "no-request-id"
    """
    return outbound_request_id_var.get() or NO_REQUEST_ID
