"""
Central logging configuration for trmnl_agenda.

Suppresses verbose debug output from third-party libraries while keeping the
package's own diagnostics, and stamps every record with the request correlation id.
"""

import logging
import os
from typing import Optional

# Third-party loggers that are noisy at DEBUG/INFO
NOISY_LOGGERS: tuple[str, ...] = (
    "aiohttp.access",
    "aiohttp.server",
    "aiohttp.web_log",
    "httpx",
    "httpcore",
    "asyncio",
    "icalendar",
)

PACKAGE_LOGGERS: tuple[str, ...] = (
    "trmnl_agenda",
    "trmnl_agenda.api.server",
    "trmnl_agenda.calendar",
    "trmnl_agenda.weather",
    "trmnl_agenda.dashboard",
)


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records for request tracing."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Imported here to avoid a cycle (the middleware logs through this module's setup)
        from .api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for trmnl_agenda.

    Args:
        debug_mode: Whether to enable debug logging for trmnl_agenda modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        TRMNL_AGENDA_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        TRMNL_AGENDA_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("TRMNL_AGENDA_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("TRMNL_AGENDA_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    # Keep the colorized handler from _init_logging when present
    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
            )
        )
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    package_level = logging.DEBUG if final_debug else logging.INFO
    for logger_name in PACKAGE_LOGGERS:
        logging.getLogger(logger_name).setLevel(package_level)

    if final_debug:
        root_logger.info("Debug logging enabled for trmnl_agenda modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("trmnl_agenda", "aiohttp.access", "httpx", "asyncio"):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
