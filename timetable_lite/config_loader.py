"""timetable_lite.config_loader

Lightweight config loader for timetable_lite.

- Reads YAML (PyYAML), falling back to JSON for ``.json`` files.
- Exposes a typed dataclass `Config` and a `load_config()` helper that accepts
  an optional path override.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_PATH = "data/timetable.sqlite"
DEFAULT_REQUEST_TIMEOUT = 15
DEFAULT_MAX_ICS_BYTES = 5_000_000


@dataclass
class Config:
    """Typed configuration for timetable_lite.

    Fields:
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        database_path: SQLite file holding imports and events
        request_timeout: whole-download deadline for feed fetches, in seconds (1..120)
        max_ics_bytes: maximum feed size in bytes
        display_timezone: IANA zone for labels and manual entry (None = host zone)
        log_level: logging level name
        debug_logging: enable DEBUG for timetable_lite modules
    """

    server_bind: str = "0.0.0.0"  # nosec: B104 - intentional default for local/dev; can be overridden via config/env
    server_port: int = 3000
    database_path: str = DEFAULT_DATABASE_PATH
    request_timeout: int = DEFAULT_REQUEST_TIMEOUT
    max_ics_bytes: int = DEFAULT_MAX_ICS_BYTES
    display_timezone: str | None = None
    log_level: str = "INFO"
    debug_logging: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced to int and request_timeout is clamped
        to 1..120, logging warnings when coercions occur.
        """
        if data is None:
            data = {}

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        timeout = _coerce_int("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        if timeout < 1:
            logger.warning("request_timeout %d below minimum; coercing to 1", timeout)
            timeout = 1
        elif timeout > 120:
            logger.warning("request_timeout %d above maximum; coercing to 120", timeout)
            timeout = 120

        max_bytes = _coerce_int("max_ics_bytes", DEFAULT_MAX_ICS_BYTES)
        if max_bytes <= 0:
            logger.warning("max_ics_bytes %d is not positive; using default", max_bytes)
            max_bytes = DEFAULT_MAX_ICS_BYTES

        server_bind = data.get("server_bind")
        server_bind = str(server_bind) if server_bind else "0.0.0.0"  # nosec: B104 - fallback literal for empty/missing config

        database_path = data.get("database_path")
        database_path = str(database_path) if database_path else DEFAULT_DATABASE_PATH

        display_timezone = data.get("display_timezone")
        display_timezone = str(display_timezone) if display_timezone else None

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        debug_raw = data.get("debug_logging", False)
        if isinstance(debug_raw, str):
            debug_logging = debug_raw.strip().lower() in ("1", "true", "yes", "on")
        else:
            debug_logging = bool(debug_raw)

        return cls(
            server_bind=server_bind,
            server_port=_coerce_int("server_port", 3000),
            database_path=database_path,
            request_timeout=timeout,
            max_ics_bytes=max_bytes,
            display_timezone=display_timezone,
            log_level=log_level,
            debug_logging=debug_logging,
        )


def _load_yaml_or_json(path: Path) -> Any:
    """Load a mapping from a YAML or JSON file."""
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    loaded = yaml.safe_load(text)
    # safe_load returns None for empty files
    return {} if loaded is None else loaded


def load_config(path: str | None = None) -> Config:
    """Load configuration from a YAML/JSON file and return a Config instance.

    Args:
        path: Optional path to the config file. Defaults to ./timetable.yaml.

    Returns:
        Config dataclass instance with values from file (or defaults).

    Behavior:
    - If file is missing: returns Config() with defaults.
    - If file exists but top-level is not a mapping: raises ValueError.
    """
    p = Path(path) if path else Path.cwd() / "timetable.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = _load_yaml_or_json(p)
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004
    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg
