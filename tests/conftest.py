"""Shared pytest configuration and fixtures for trmnl_agenda tests."""

from __future__ import annotations

import datetime
import logging
from collections.abc import AsyncIterator, Generator

import httpx
import pytest

from tests.fixtures.upstreams import CALENDAR_URL, FIXED_NOW, mock_client, route_upstreams
from trmnl_agenda.agenda_logging import NOISY_LOGGERS, PACKAGE_LOGGERS
from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.core.timezone_utils import TEST_TIME_ENV


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast isolated unit tests")
    config.addinivalue_line(
        "markers", "integration: aiohttp app exercised end to end with mocked upstreams"
    )
    config.addinivalue_line("markers", "fast: tests that complete in well under a second")


@pytest.fixture
def agenda_config() -> AgendaConfig:
    """Configuration pointing at the mocked calendar host."""
    return AgendaConfig(
        ics_url=CALENDAR_URL,
        contact_email="test@example.com",
        fetch_timeout_seconds=2.0,
    )


@pytest.fixture
def fixed_now() -> datetime.datetime:
    return FIXED_NOW


@pytest.fixture
async def default_client() -> AsyncIterator[httpx.AsyncClient]:
    """Client answering with the Dentist feed and a mild forecast."""
    client = mock_client(route_upstreams())
    yield client
    await client.aclose()


@pytest.fixture(autouse=True)
def clean_agenda_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables from leaking into tests."""
    for name in (
        TEST_TIME_ENV,
        "TRMNL_AGENDA_DEBUG",
        "TRMNL_AGENDA_LOG_LEVEL",
        "TRMNL_AGENDA_WEB_HOST",
        "TRMNL_AGENDA_WEB_PORT",
        "TRMNL_AGENDA_FETCH_TIMEOUT",
        "ICS_URL",
        "LAT",
        "LON",
        "CONTACT_EMAIL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def restore_logging() -> Generator[None, None, None]:
    """Snapshot and restore root and named logger state around a test."""
    root = logging.getLogger()
    saved_level = root.level
    saved_handlers = list(root.handlers)
    saved_filters = {id(h): list(h.filters) for h in saved_handlers}
    names = NOISY_LOGGERS + PACKAGE_LOGGERS
    saved_named = {name: logging.getLogger(name).level for name in names}

    yield

    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
    for handler in saved_handlers:
        handler.filters = saved_filters[id(handler)]
    root.setLevel(saved_level)
    for name, level in saved_named.items():
        logging.getLogger(name).setLevel(level)
