"""Tests for timetable_lite.config_loader and environment config mapping."""

import json
import os
from unittest.mock import patch

import pytest

from timetable_lite.api.server import _build_default_config_from_env
from timetable_lite.config_loader import Config, load_config

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def test_load_config_missing_file_returns_defaults(tmp_path):
    """When no config file is present, load_config returns default Config."""
    cfg = load_config(str(tmp_path / "nope.yaml"))

    assert isinstance(cfg, Config)
    assert cfg.server_port == 3000
    assert cfg.request_timeout == 15
    assert cfg.max_ics_bytes == 5_000_000
    assert cfg.database_path == "data/timetable.sqlite"
    assert cfg.display_timezone is None


def test_load_config_reads_yaml(tmp_path):
    """YAML mappings populate the typed Config."""
    p = tmp_path / "timetable.yaml"
    p.write_text(
        "server_port: 8080\n"
        "database_path: /var/lib/timetable/events.sqlite\n"
        "display_timezone: Europe/London\n"
        "log_level: debug\n",
        encoding="utf-8",
    )

    cfg = load_config(str(p))

    assert cfg.server_port == 8080
    assert cfg.database_path == "/var/lib/timetable/events.sqlite"
    assert cfg.display_timezone == "Europe/London"
    assert cfg.log_level == "DEBUG"


def test_load_config_reads_json(tmp_path):
    p = tmp_path / "timetable.json"
    p.write_text(json.dumps({"server_bind": "127.0.0.1", "request_timeout": 30}), encoding="utf-8")

    cfg = load_config(str(p))

    assert cfg.server_bind == "127.0.0.1"
    assert cfg.request_timeout == 30


def test_load_config_empty_yaml_returns_defaults(tmp_path):
    p = tmp_path / "timetable.yaml"
    p.write_text("", encoding="utf-8")

    assert load_config(str(p)) == Config()


def test_load_config_non_mapping_raises(tmp_path):
    p = tmp_path / "timetable.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ValueError, match="mapping"):
        load_config(str(p))


@pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-5, 1), (500, 120), ("45", 45), ("abc", 15)])
def test_from_dict_clamps_request_timeout(raw, expected):
    """request_timeout is coerced and clamped to 1..120."""
    assert Config.from_dict({"request_timeout": raw}).request_timeout == expected


def test_from_dict_non_positive_max_bytes_uses_default():
    assert Config.from_dict({"max_ics_bytes": 0}).max_ics_bytes == 5_000_000
    assert Config.from_dict({"max_ics_bytes": "1024"}).max_ics_bytes == 1024


@pytest.mark.parametrize(("raw", "expected"), [("true", True), ("1", True), ("off", False), (True, True), (0, False)])
def test_from_dict_debug_logging_truthiness(raw, expected):
    assert Config.from_dict({"debug_logging": raw}).debug_logging is expected


def test_from_dict_none_returns_defaults():
    assert Config.from_dict(None) == Config()


def test_build_default_config_from_env_maps_variables(monkeypatch, tmp_path):
    """TIMETABLE_* variables map onto Config keys; TIMETABLE_WEB_PORT wins over PORT."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("PORT", "4000")
    monkeypatch.setenv("TIMETABLE_WEB_PORT", "5000")
    monkeypatch.setenv("TIMETABLE_DB_PATH", str(tmp_path / "db.sqlite"))
    monkeypatch.setenv("TIMETABLE_TIMEZONE", "Europe/Paris")
    monkeypatch.delenv("TIMETABLE_WEB_HOST", raising=False)
    monkeypatch.delenv("TIMETABLE_REQUEST_TIMEOUT", raising=False)

    cfg = Config.from_dict(_build_default_config_from_env())

    assert cfg.server_port == 5000
    assert cfg.database_path == str(tmp_path / "db.sqlite")
    assert cfg.display_timezone == "Europe/Paris"
    assert cfg.server_bind == "0.0.0.0"


def test_build_default_config_from_env_reads_dotenv_without_override(monkeypatch, tmp_path):
    """A local .env fills gaps but never overrides variables already set."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text(
        "# local overrides\nTIMETABLE_WEB_HOST=127.0.0.1\nTIMETABLE_REQUEST_TIMEOUT='20'\n",
        encoding="utf-8",
    )

    # .env loading writes os.environ directly; patch.dict restores it afterwards
    with patch.dict(os.environ, {"TIMETABLE_WEB_HOST": "10.1.1.1"}):
        os.environ.pop("TIMETABLE_REQUEST_TIMEOUT", None)
        cfg = _build_default_config_from_env()

    assert cfg["server_bind"] == "10.1.1.1"
    assert cfg["request_timeout"] == "20"
