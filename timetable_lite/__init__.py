"""timetable_lite - iCal feed import and manual timetable backend.

Fetches a remote iCal feed, normalizes its events, merges them with manually
entered events in SQLite and serves the timeline as JSON over aiohttp.
"""

__version__ = "0.1.0"

from typing import Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Sets a default formatter and level so that startup messages are visible.
    Honors TIMETABLE_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity.
    """
    import logging
    import os
    import sys

    debug_env = os.environ.get("TIMETABLE_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none are present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        try:
            from colorlog import ColoredFormatter

            fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
            log_colors = {
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            }
            formatter: logging.Formatter = ColoredFormatter(
                fmt, datefmt="%H:%M:%S", log_colors=log_colors
            )
        except ImportError:
            # colorlog is an optional extra
            fmt = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"
            formatter = logging.Formatter(fmt, datefmt="%H:%M:%S")

        handler.setFormatter(formatter)
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def run_server(args: Optional[object] = None) -> None:
    """Start the timetable_lite server.

    Args:
        args: Optional argparse namespace with ``port`` and ``config`` overrides

    Behavior:
    - Initialize console logging early using TIMETABLE_LOG_LEVEL if present.
    - Merge the config file (``--config`` or TIMETABLE_CONFIG) with environment
      overrides, then apply command line overrides.
    - Delegate to api.server.start_server(config), which blocks until shutdown.
    """
    import logging
    import os

    _init_logging(os.environ.get("TIMETABLE_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    from dataclasses import asdict

    from .api.server import _build_default_config_from_env, start_server
    from .config_loader import Config, load_config

    config_path = getattr(args, "config", None) or os.environ.get("TIMETABLE_CONFIG")
    file_cfg = load_config(config_path)

    merged = asdict(file_cfg)
    merged.update(_build_default_config_from_env())

    port = getattr(args, "port", None)
    if port is not None:
        merged["server_port"] = port
        logger.debug("Applied command line port override: %s", port)

    config = Config.from_dict(merged)
    logging.getLogger().setLevel(getattr(logging, config.log_level, logging.INFO))
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: merged.get(k) for k in ("server_bind", "server_port", "database_path", "log_level")},
    )

    start_server(config)
