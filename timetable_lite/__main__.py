"""Command-line entry for timetable_lite."""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for timetable_lite CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="timetable_lite",
        description="Timetable Lite - iCal import and manual timetable backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m timetable_lite                        # Start server on default port (3000)
  python -m timetable_lite --port 8080            # Start server on port 8080
  python -m timetable_lite --config timetable.yaml
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3000, or from TIMETABLE_WEB_PORT env var)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a YAML/JSON config file (default: ./timetable.yaml or TIMETABLE_CONFIG)",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the timetable_lite CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)
    run_server(args)
    sys.exit(0)


if __name__ == "__main__":
    main()
