"""Command-line entry for trmnl_agenda.

Runs the dashboard server, or renders a single page to stdout with ``--once``.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server
from .exceptions import AgendaError


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the trmnl_agenda CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="trmnl_agenda",
        description="TRMNL Agenda - today's calendar and current weather for an e-ink display",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m trmnl_agenda                    # Serve the dashboard on port 8080
  python -m trmnl_agenda --port 3000        # Serve on port 3000
  python -m trmnl_agenda --once > page.html # Render one page and exit
        """,
    )

    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Address to bind (default: 0.0.0.0, or from TRMNL_AGENDA_WEB_HOST env var)",
    )
    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 8080, or from TRMNL_AGENDA_WEB_PORT env var)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Fetch, render one dashboard page to stdout and exit",
    )

    return parser


def main() -> NoReturn:
    """Run the trmnl_agenda CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    try:
        run_server(args)
    except AgendaError as exc:
        print(f"Feil: {exc}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(130)  # 128 + SIGINT
    sys.exit(0)


if __name__ == "__main__":
    main()
