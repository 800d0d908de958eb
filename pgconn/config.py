"""Connection profile configuration loading helpers."""

from __future__ import annotations

from pathlib import Path
import re

import tomllib

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

CONFIG_FILE = Path.home() / ".config" / "pgconn" / "config.toml"

_BARE_KEY = re.compile(r"[A-Za-z0-9_-]+")

_SCALAR_KEYS = (
    "hostname",
    "host",
    "username",
    "user",
    "password",
    "passwd",
    "pw",
    "database",
    "dbname",
    "db",
    "schema",
    "socket",
    "charset",
)


class ConnectionProfileConfig(BaseModel):
    """Named set of connection parameters stored in config.toml.

    Any alias understood by the parameter resolver may be used as a key; the
    raw mapping is handed to :class:`pgconn.Connection` untouched.
    """

    model_config = ConfigDict(extra="allow")

    name: str
    port: int | None = None
    driver_options: dict[str, Any] = Field(default_factory=dict)

    def parameters(self) -> dict[str, Any]:
        """Raw parameter mapping for the connection layer."""

        data = self.model_dump(exclude={"name"}, exclude_none=True)
        if not data.get("driver_options"):
            data.pop("driver_options", None)
        return data


class AppConfig(BaseModel):
    """Shape of the configuration file."""

    log_level: str = "WARNING"
    profiles: list[ConnectionProfileConfig] = Field(default_factory=lambda: list(_default_profiles()))
    active_profile: str | None = None

    def profile(self, name: str | None = None) -> ConnectionProfileConfig:
        """Return the named profile, the active one, or the first one."""

        target = name or self.active_profile
        if target is None:
            if not self.profiles:
                raise ValueError("No connection profiles configured.")
            return self.profiles[0]
        for profile in self.profiles:
            if profile.name == target:
                return profile
        raise ValueError(f"Profile '{target}' not found.")

    def with_active_profile(self, name: str) -> AppConfig:
        """Return a copy with the active profile updated."""

        return self.model_copy(update={"active_profile": name})


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from disk; fall back to defaults if missing."""

    try:
        data = _read_config_file(path or CONFIG_FILE)
    except FileNotFoundError:
        return AppConfig()
    except (tomllib.TOMLDecodeError, OSError):
        return AppConfig()

    profiles_data = data.get("profiles")
    profiles: list[ConnectionProfileConfig] | None = None
    if isinstance(profiles_data, list):
        profiles = [
            ConnectionProfileConfig(**profile)
            for profile in profiles_data  # type: ignore[list-item]
            if isinstance(profile, dict)
        ]

    return AppConfig(
        log_level=data.get("log_level", AppConfig.model_fields["log_level"].default),
        profiles=profiles if profiles is not None else list(_default_profiles()),
        active_profile=data.get("active_profile"),
    )


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Persist configuration to disk."""

    target = path or CONFIG_FILE
    target.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = [f'log_level = "{config.log_level}"']
    if config.active_profile:
        lines.append(f'active_profile = "{config.active_profile}"')
    for profile in config.profiles:
        lines.append("")
        lines.append("[[profiles]]")
        lines.append(f"name = {_toml_value(profile.name)}")
        options: Mapping[str, Any] = {}
        for key, value in profile.parameters().items():
            if key == "driver_options":
                options = value
                continue
            lines.append(f"{_toml_key(key)} = {_toml_value(value)}")
        if options:
            lines.append("")
            lines.append("[profiles.driver_options]")
            for key in sorted(options):
                lines.append(f"{_toml_key(key)} = {_toml_value(options[key])}")
    target.write_text("\n".join(lines) + "\n")


def _toml_key(key: object) -> str:
    text = str(key)
    if _BARE_KEY.fullmatch(text):
        return text
    return _toml_value(text)


def _toml_value(value: Any) -> str:
    if isinstance(value, Mapping):
        items = ", ".join(f"{_toml_key(key)} = {_toml_value(item)}" for key, item in value.items())
        return f"{{ {items} }}" if items else "{}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(item) for item in value) + "]"
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _read_config_file(path: Path) -> dict[str, object]:
    with path.open("rb") as handle:
        raw = tomllib.load(handle)
    data: dict[str, object] = {}
    if isinstance(raw, dict):
        log_level = raw.get("log_level")
        if isinstance(log_level, str):
            data["log_level"] = log_level.upper()
        active_profile = raw.get("active_profile")
        if isinstance(active_profile, str):
            data["active_profile"] = active_profile
        profiles = raw.get("profiles")
        if isinstance(profiles, list):
            parsed_profiles: list[dict[str, object]] = []
            for profile in profiles:
                if not isinstance(profile, dict):
                    continue
                parsed: dict[str, object] = {}
                name = profile.get("name")
                if isinstance(name, str):
                    parsed["name"] = name
                for key in _SCALAR_KEYS:
                    value = profile.get(key)
                    if isinstance(value, str):
                        parsed[key] = value
                port = profile.get("port")
                if isinstance(port, (int, str)):
                    parsed["port"] = port
                options = profile.get("driver_options")
                if isinstance(options, dict):
                    parsed["driver_options"] = dict(options)
                if parsed.get("name"):
                    parsed_profiles.append(parsed)
            if parsed_profiles:
                data["profiles"] = parsed_profiles
    return data


def _default_profiles() -> tuple[ConnectionProfileConfig, ...]:
    """Default profile used before config is customized."""

    return (
        ConnectionProfileConfig(
            name="Local",
            host="localhost",
            port=5432,
            database="postgres",
            user="postgres",
        ),
    )
