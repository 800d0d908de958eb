"""Tests for AppConfig helpers."""

from __future__ import annotations

from pathlib import Path

import pytest

from pgconn import config as config_module
from pgconn.config import AppConfig, ConnectionProfileConfig, load_config, save_config
from pgconn.params import resolve_config


def test_load_config_returns_defaults_when_missing(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config_module, "CONFIG_FILE", tmp_path / "config.toml")

    result = load_config()

    assert result == AppConfig()


def test_load_config_reads_values(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text(
        """
log_level = "debug"
active_profile = "Replica"

[[profiles]]
name = "Local"
host = "localhost"
db = "postgres"

[[profiles]]
name = "Replica"
hostname = "replica.internal"
user = "reporting"
pw = "secret"
port = 6432

[profiles.driver_options]
COMMAND_TIMEOUT = 30
"""
    )

    result = load_config(config_path)

    assert result.log_level == "DEBUG"
    assert result.active_profile == "Replica"
    assert [profile.name for profile in result.profiles] == ["Local", "Replica"]
    replica = result.profile()
    assert replica.parameters() == {
        "hostname": "replica.internal",
        "user": "reporting",
        "pw": "secret",
        "port": 6432,
        "driver_options": {"COMMAND_TIMEOUT": 30},
    }


def test_load_config_handles_toml_errors(tmp_path: Path) -> None:
    config_path = tmp_path / "config.toml"
    config_path.write_text("log_level = [unterminated")

    result = load_config(config_path)

    assert result == AppConfig()


def test_profile_parameters_feed_resolver() -> None:
    profile = ConnectionProfileConfig(name="Local", host="db1", db="app")

    config = resolve_config(profile.parameters())

    assert config.hostname == "db1"
    assert config.database == "app"


def test_profile_lookup_errors_on_missing_name() -> None:
    config = AppConfig()

    assert config.profile().name == "Local"
    with pytest.raises(ValueError):
        config.profile("Nope")


def test_with_active_profile_updates_field() -> None:
    config = AppConfig()

    updated = config.with_active_profile("Local")

    assert updated.active_profile == "Local"


def test_save_config_round_trips(tmp_path: Path) -> None:
    config_path = tmp_path / "nested" / "config.toml"
    original = AppConfig(
        log_level="INFO",
        active_profile="Docker",
        profiles=[
            ConnectionProfileConfig(
                name="Docker",
                host="localhost",
                port=5543,
                database="pgconn_demo",
                user="pgconn",
                password='p"w',
                driver_options={
                    "timeout": 2,
                    "server_settings": {"application_name": "pgconn", "search_path": "app,public"},
                },
            )
        ],
    )

    save_config(original, config_path)

    content = config_path.read_text()
    assert 'log_level = "INFO"' in content
    assert "[[profiles]]" in content
    assert "[profiles.driver_options]" in content
    assert 'server_settings = { application_name = "pgconn", search_path = "app,public" }' in content
    loaded = load_config(config_path)
    assert loaded.active_profile == "Docker"
    assert loaded.profile().parameters() == original.profile().parameters()
