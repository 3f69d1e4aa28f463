"""timetable_lite.api.server: asyncio HTTP server for the timetable backend.

This module wires the pipeline together and serves it:
- builds the database, repository, fetcher, parser and import manager
- exposes the JSON API (see timetable_lite.api.routes)
- runs an aiohttp AppRunner until SIGINT/SIGTERM, then cleans up
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from pathlib import Path
from typing import Any

from aiohttp import web

from ..calendar.lite_fetcher import LiteICSFetcher
from ..calendar.lite_parser import LiteICSParser
from ..config_loader import Config
from ..core.database import DatabaseManager
from ..core.http_client import close_all_clients
from ..core.timezone_utils import resolve_timezone
from ..domain.event_repository import EventRepository
from ..domain.import_manager import ImportTransactionManager
from ..domain.timetable_service import TimetableService
from ..lite_logging import configure_lite_logging
from .middleware import correlation_id_middleware
from .routes import register_api_routes

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("timetable_service", TimetableService)
DATABASE_KEY = web.AppKey("timetable_database", DatabaseManager)


def _load_dotenv(env_path: Path) -> list[str]:
    """Load KEY=VALUE lines into os.environ without overriding existing keys."""
    set_keys = []
    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = val
            set_keys.append(key)
    return set_keys


def _build_default_config_from_env() -> dict[str, Any]:
    """Build a config mapping from environment variables.

    A repository-local ".env" is read first (keys already in the environment
    win). Recognizes:
        - TIMETABLE_WEB_HOST -> server_bind
        - TIMETABLE_WEB_PORT or PORT -> server_port
        - TIMETABLE_DB_PATH -> database_path
        - TIMETABLE_REQUEST_TIMEOUT -> request_timeout
        - TIMETABLE_TIMEZONE -> display_timezone
        - TIMETABLE_LOG_LEVEL -> log_level
        - TIMETABLE_DEBUG -> debug_logging
    Returns:
        Mapping accepted by Config.from_dict.
    """
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        try:
            set_keys = _load_dotenv(env_path)
        except OSError:
            logger.debug("Failed to read %s (continuing)", env_path, exc_info=True)
        else:
            if set_keys:
                logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

    env_map = {
        "TIMETABLE_WEB_HOST": "server_bind",
        "PORT": "server_port",
        "TIMETABLE_WEB_PORT": "server_port",
        "TIMETABLE_DB_PATH": "database_path",
        "TIMETABLE_REQUEST_TIMEOUT": "request_timeout",
        "TIMETABLE_TIMEZONE": "display_timezone",
        "TIMETABLE_LOG_LEVEL": "log_level",
        "TIMETABLE_DEBUG": "debug_logging",
    }
    cfg: dict[str, Any] = {}
    for env_key, cfg_key in env_map.items():
        value = os.environ.get(env_key)
        if value:
            cfg[cfg_key] = value
    return cfg


def build_service(config: Config, http_client: Any = None) -> tuple[TimetableService, DatabaseManager]:
    """Assemble the service graph from configuration.

    Args:
        config: Loaded configuration
        http_client: Optional httpx.AsyncClient for the fetcher (tests inject one)
    """
    display_tz = resolve_timezone(config.display_timezone)
    database = DatabaseManager(config.database_path)
    service = TimetableService(
        fetcher=LiteICSFetcher(config, client=http_client),
        parser=LiteICSParser(config),
        repository=EventRepository(database, display_timezone=display_tz),
        import_manager=ImportTransactionManager(database),
        display_timezone=display_tz,
    )
    return service, database


def make_app(config: Config, http_client: Any = None) -> web.Application:
    """Create the aiohttp application with routes and lifecycle hooks."""
    service, database = build_service(config, http_client)

    app = web.Application(middlewares=[correlation_id_middleware])
    app[SERVICE_KEY] = service
    app[DATABASE_KEY] = database
    register_api_routes(app, service)

    async def _on_startup(_app: web.Application) -> None:
        await database.initialize()
        logger.info("SQLite database: %s", database.database_path)

    async def _on_cleanup(_app: web.Application) -> None:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")

    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)
    return app


async def _serve(config: Config, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Server configuration.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers are NOT registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()
    app = make_app(config)

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host=config.server_bind, port=config.server_port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", config.server_bind, config.server_port)
        await runner.cleanup()
        raise

    logger.info("Backend running at http://%s:%d", config.server_bind, config.server_port)

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()
    logger.info("Server shutdown complete")


def start_server(config: Config) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks until SIGINT/SIGTERM is received.
    """
    configure_lite_logging(debug_mode=config.debug_logging)
    logger.info("Logging configuration applied: debug_mode=%s", config.debug_logging)

    try:
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
