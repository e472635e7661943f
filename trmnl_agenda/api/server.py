"""trmnl_agenda.api.server - aiohttp server for the dashboard page.

This module provides:
- the dashboard request handler (fetch calendar + weather concurrently, render HTML)
- the application factory wiring configuration, the shared HTTP client and middleware
- ``start_server`` which runs until SIGINT/SIGTERM
- ``render_once`` for one-shot rendering from the command line
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from collections.abc import AsyncIterator, Callable
from typing import Optional

import httpx
from aiohttp import web

from trmnl_agenda.api.middleware import correlation_id_middleware
from trmnl_agenda.core.config_manager import AgendaConfig
from trmnl_agenda.core.http_client import create_client
from trmnl_agenda.core.timezone_utils import now_utc
from trmnl_agenda.dashboard import build_page_model
from trmnl_agenda.exceptions import AgendaError
from trmnl_agenda.render import render_page

logger = logging.getLogger(__name__)

CONFIG_KEY = web.AppKey("config", AgendaConfig)
HTTP_CLIENT_KEY = web.AppKey("http_client", httpx.AsyncClient)

DASHBOARD_ROUTE = "/"
HTML_CONTENT_TYPE = "text/html"
ERROR_PREFIX = "Feil: "


def _error_response(exc: BaseException) -> web.Response:
    """Plain-text 500 response carrying the error message."""
    return web.Response(status=500, text=f"{ERROR_PREFIX}{exc}")


async def dashboard_handler(request: web.Request) -> web.Response:
    """Serve the dashboard page.

    Any method is accepted and the body and query are ignored. On success the
    rendered HTML is returned with status 200; any fetch or parse failure is
    logged and answered with status 500 and ``Feil: <message>``.
    """
    config = request.app[CONFIG_KEY]
    client = request.app[HTTP_CLIENT_KEY]

    try:
        page = await build_page_model(client, config, now=now_utc())
    except AgendaError as e:
        logger.error("Dashboard request failed: %s", e, exc_info=True)
        return _error_response(e)
    except Exception as e:
        logger.exception("Unexpected error while building dashboard")
        return _error_response(e)

    body = render_page(page)
    return web.Response(status=200, text=body, content_type=HTML_CONTENT_TYPE, charset="utf-8")


def _client_context(
    config: AgendaConfig,
) -> Callable[[web.Application], AsyncIterator[None]]:
    """Cleanup context owning the shared HTTP client for the app's lifetime."""

    async def _ctx(app: web.Application) -> AsyncIterator[None]:
        client = create_client(config.fetch_timeout_seconds)
        app[HTTP_CLIENT_KEY] = client
        logger.debug("Shared HTTP client created")
        yield
        await client.aclose()
        logger.debug("Shared HTTP client closed")

    return _ctx


def make_app(
    config: AgendaConfig,
    http_client: Optional[httpx.AsyncClient] = None,
) -> web.Application:
    """Create the aiohttp application.

    Args:
        config: Application configuration
        http_client: Optional externally owned client (tests pass one backed by
            ``httpx.MockTransport``); when omitted the app creates and closes its own

    Returns:
        Configured aiohttp Application
    """
    app = web.Application(middlewares=[correlation_id_middleware])
    app[CONFIG_KEY] = config

    if http_client is not None:
        app[HTTP_CLIENT_KEY] = http_client
    else:
        app.cleanup_ctx.append(_client_context(config))

    app.router.add_route("*", DASHBOARD_ROUTE, dashboard_handler)
    return app


async def _serve(config: AgendaConfig, stop_event: Optional[asyncio.Event] = None) -> None:
    """Run the server until ``stop_event`` is set (by a signal when not provided)."""
    app = make_app(config)
    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    try:
        await site.start()
    except OSError:
        logger.exception(
            "Failed to start server on %s:%d", config.server_bind, config.server_port
        )
        await runner.cleanup()
        raise

    logger.info("Server started on %s:%d", config.server_bind, config.server_port)

    owns_signals = stop_event is None
    stop = stop_event or asyncio.Event()
    if owns_signals:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    try:
        await stop.wait()
    finally:
        logger.info("Shutting down")
        await runner.cleanup()
        logger.info("Server shutdown complete")


def start_server(config: AgendaConfig) -> None:
    """Start the asyncio event loop and HTTP server; blocks until shutdown."""
    asyncio.run(_serve(config))


async def render_once(config: AgendaConfig) -> str:
    """Fetch and render a single dashboard page.

    Raises:
        AgendaError: If either fetch fails
    """
    async with create_client(config.fetch_timeout_seconds) as client:
        page = await build_page_model(client, config, now=now_utc())
    return render_page(page)
