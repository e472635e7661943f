"""Exception hierarchy for dashboard fetch and parse failures.

Every failure that aborts a dashboard request derives from ``AgendaError`` so
the request handler can treat them uniformly. Messages are user-facing (they end
up in the ``Feil: ...`` response body) and therefore written in Norwegian.
"""

from typing import Optional


class AgendaError(Exception):
    """Base exception for all dashboard errors."""


class FetchError(AgendaError):
    """An upstream source could not be reached.

    Raised when:
    - DNS resolution, connection or TLS setup fails
    - The request times out
    - No calendar feed URL is configured
    """


class UpstreamStatusError(FetchError):
    """An upstream source answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: int, source: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.source = source


class ParseError(AgendaError):
    """An upstream response could not be understood.

    Raised when:
    - The ICS document is malformed
    - The forecast body is not JSON
    - A required forecast field (timeseries, air temperature) is missing
    """
