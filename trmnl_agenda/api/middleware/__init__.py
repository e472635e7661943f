"""Middleware components for request processing."""

from .correlation_id import (
    NO_REQUEST_ID,
    correlation_id_middleware,
    get_outbound_request_id,
    get_request_id,
)

__all__ = [
    "NO_REQUEST_ID",
    "correlation_id_middleware",
    "get_outbound_request_id",
    "get_request_id",
]
