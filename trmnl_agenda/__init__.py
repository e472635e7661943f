"""trmnl_agenda - today's calendar and current weather as one e-ink dashboard page.

The package keeps top-level imports light; the aiohttp server and the fetchers are
imported when the server is started.
"""

__version__ = "1.0.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Installs a colorized stderr handler so that startup messages are visible
    before configuration has been loaded. Callers may adjust the level later.

    The TRMNL_AGENDA_DEBUG environment variable (truthy values: "1", "true",
    "yes", "on") forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("TRMNL_AGENDA_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message (only the level is colorized)
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str) and level_name.strip():
        level = getattr(logging, level_name.strip().upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the dashboard server, or render a single page when ``args.once`` is set.

    Args:
        args: Optional command line namespace with ``host``, ``port`` and ``once``

    Behavior:
    - Initialize console logging early using TRMNL_AGENDA_LOG_LEVEL.
    - Load ``.env`` defaults and build the configuration from the environment.
    - Apply command line overrides, then apply the package logging levels.
    - Either print one rendered dashboard to stdout or serve until signalled.
    """
    import asyncio
    import logging
    import os
    import sys

    _init_logging(os.environ.get("TRMNL_AGENDA_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from trmnl_agenda.agenda_logging import configure_logging, get_logging_status
    from trmnl_agenda.api.server import render_once, start_server
    from trmnl_agenda.core.config_manager import ConfigManager

    config = ConfigManager().load_full_config()

    overrides: dict[str, object] = {}
    if args is not None:
        host = getattr(args, "host", None)
        if host:
            overrides["server_bind"] = host
        port = getattr(args, "port", None)
        if port is not None:
            overrides["server_port"] = int(port)
            logger.debug("Applied command line port override: %d", int(port))
    if overrides:
        config = config.model_copy(update=overrides)

    configure_logging(debug_mode=config.log_level == "DEBUG")
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.debug("Logger levels: %s", get_logging_status())

    logger.debug(
        "Resolved configuration (diagnostic): ics_url_set=%s lat=%s lon=%s bind=%s:%d",
        bool(config.ics_url),
        config.lat,
        config.lon,
        config.server_bind,
        config.server_port,
    )

    if getattr(args, "once", False):
        page = asyncio.run(render_once(config))
        sys.stdout.write(page)
        return

    logger.info("Starting trmnl_agenda server")
    start_server(config)
