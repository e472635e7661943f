"""Integration tests for the dashboard server with mocked upstreams."""

from __future__ import annotations

import asyncio
import os
import socket
from typing import Any
from unittest import mock

import httpx
import pytest
from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase, unused_port

from tests.fixtures.upstreams import (
    CALENDAR_URL,
    FIXED_NOW_ISO,
    MET_HOST,
    make_forecast,
    make_ics,
    mock_client,
    route_upstreams,
)
from trmnl_agenda.api import server
from trmnl_agenda.api.server import CONFIG_KEY, HTTP_CLIENT_KEY, make_app, render_once
from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.core.timezone_utils import TEST_TIME_ENV


class _DashboardTestCase(AioHTTPTestCase):
    """Serves the real app with an injected MockTransport-backed client."""

    calendar_handler: Any = None
    weather_handler: Any = None
    ics_url: Any = CALENDAR_URL

    async def asyncSetUp(self) -> None:
        self.upstream_requests: list[httpx.Request] = []
        self._env = mock.patch.dict(os.environ, {TEST_TIME_ENV: FIXED_NOW_ISO})
        self._env.start()
        await super().asyncSetUp()

    async def asyncTearDown(self) -> None:
        await super().asyncTearDown()
        self._env.stop()

    async def get_application(self) -> web.Application:
        config = AgendaConfig(
            ics_url=self.ics_url, contact_email="test@example.com", fetch_timeout_seconds=2.0
        )
        handler = route_upstreams(
            calendar=type(self).calendar_handler,
            weather=type(self).weather_handler,
            seen=self.upstream_requests,
        )
        client = mock_client(handler)
        app = make_app(config, http_client=client)

        async def close_client(app: web.Application) -> None:
            await client.aclose()

        app.on_cleanup.append(close_client)
        return app


@pytest.mark.integration
class TestDashboardSuccess(_DashboardTestCase):
    async def test_get_root_when_upstreams_ok_then_html_page(self) -> None:
        resp = await self.client.request("GET", "/")

        assert resp.status == 200
        assert resp.headers["Content-Type"] == "text/html; charset=utf-8"
        body = await resp.text()
        assert "<li><strong>10:00</strong> Dentist</li>" in body
        assert "12.3°C" in body
        assert "Nedbør neste time: 0.4 mm" in body
        assert "partlycloudy day" in body

    async def test_post_root_when_body_sent_then_same_page(self) -> None:
        resp = await self.client.request("POST", "/?ignored=1", data=b"ignored body")

        assert resp.status == 200
        assert "Dentist" in await resp.text()

    async def test_request_id_when_provided_then_echoed_but_not_forwarded(self) -> None:
        resp = await self.client.request("GET", "/", headers={"X-Request-ID": "trmnl-poll-1"})

        assert resp.headers["X-Request-ID"] == "trmnl-poll-1"
        assert len(self.upstream_requests) == 2
        assert all("X-Request-ID" not in r.headers for r in self.upstream_requests)

    async def test_request_id_when_generated_then_forwarded_to_both_upstreams(self) -> None:
        resp = await self.client.request("GET", "/")

        generated = resp.headers["X-Request-ID"]
        assert len(self.upstream_requests) == 2
        assert all(r.headers.get("X-Request-ID") == generated for r in self.upstream_requests)

    async def test_request_when_served_then_met_gets_identifying_user_agent(self) -> None:
        await self.client.request("GET", "/")

        met_requests = [r for r in self.upstream_requests if r.url.host == MET_HOST]
        assert len(met_requests) == 1
        assert met_requests[0].headers["User-Agent"] == "TRMNL-plugin/1.0 test@example.com"

    async def test_app_when_built_then_config_and_client_registered(self) -> None:
        assert self.app[CONFIG_KEY].ics_url == CALENDAR_URL
        assert isinstance(self.app[HTTP_CLIENT_KEY], httpx.AsyncClient)


@pytest.mark.integration
class TestDashboardCalendarUnreachable(_DashboardTestCase):
    @staticmethod
    def calendar_handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("Name or service not known", request=request)

    async def test_get_root_when_calendar_unreachable_then_500_with_message(self) -> None:
        resp = await self.client.request("GET", "/")

        assert resp.status == 500
        body = await resp.text()
        assert body.startswith("Feil: ")
        assert "kalenderen" in body


@pytest.mark.integration
class TestDashboardWeatherUnavailable(_DashboardTestCase):
    @staticmethod
    def weather_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    async def test_get_root_when_met_returns_503_then_500_with_status(self) -> None:
        resp = await self.client.request("GET", "/")

        assert resp.status == 500
        assert await resp.text() == "Feil: MET Norway svarte 503"


@pytest.mark.integration
class TestDashboardWithoutFeed(_DashboardTestCase):
    ics_url = None

    async def test_get_root_when_ics_url_missing_then_500(self) -> None:
        resp = await self.client.request("GET", "/")

        assert resp.status == 500
        assert await resp.text() == "Feil: ICS_URL er ikke satt"


@pytest.mark.integration
class TestDashboardUnexpectedError(_DashboardTestCase):
    async def test_get_root_when_unexpected_exception_then_500(self) -> None:
        with mock.patch.object(
            server, "build_page_model", mock.AsyncMock(side_effect=RuntimeError("boom"))
        ):
            resp = await self.client.request("GET", "/")

        assert resp.status == 500
        assert await resp.text() == "Feil: boom"


@pytest.mark.integration
async def test_render_once_when_upstreams_ok_then_returns_document(
    monkeypatch: pytest.MonkeyPatch, agenda_config
) -> None:
    monkeypatch.setenv(TEST_TIME_ENV, FIXED_NOW_ISO)
    monkeypatch.setattr(server, "create_client", lambda timeout: mock_client(route_upstreams()))

    html = await render_once(agenda_config)

    assert html.startswith("<!DOCTYPE html>")
    assert "Dentist" in html


@pytest.mark.integration
async def test_serve_when_stop_event_set_then_releases_port() -> None:
    port = unused_port()
    config = AgendaConfig(server_bind="127.0.0.1", server_port=port)
    stop = asyncio.Event()

    task = asyncio.create_task(server._serve(config, stop_event=stop))
    await asyncio.sleep(0.1)
    stop.set()
    await asyncio.wait_for(task, timeout=5)

    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind(("127.0.0.1", port))


_DENTIST_AND_TOMORROW_ICS = make_ics(
    """
    DTSTART;TZID=Europe/Oslo:20250314T143000
    SUMMARY:Dentist
    """,
    """
    DTSTART;TZID=Europe/Oslo:20250315T090000
    SUMMARY:Haircut
    """,
)


@pytest.mark.integration
class TestDashboardDentistScenario(_DashboardTestCase):
    @staticmethod
    def calendar_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=_DENTIST_AND_TOMORROW_ICS)

    @staticmethod
    def weather_handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=make_forecast(precipitation=None, symbol=None))

    async def test_get_root_when_one_event_today_then_only_that_event(self) -> None:
        resp = await self.client.request("GET", "/")

        assert resp.status == 200
        body = await resp.text()
        assert body.count("<li>") == 1
        assert "<li><strong>14:30</strong> Dentist</li>" in body
        assert "Haircut" not in body
        assert "12.3°C" in body
        assert "Nedbør neste time: 0 mm" in body
        assert '<div class="label"></div>' in body
