"""Connection parameter alias resolution."""

from __future__ import annotations

from types import MappingProxyType
from typing import Any, Mapping, Sequence

from .models import ConnectionConfig

HOSTNAME_KEYS: tuple[str, ...] = ("hostname", "host")
USERNAME_KEYS: tuple[str, ...] = ("username", "user")
PASSWORD_KEYS: tuple[str, ...] = ("password", "passwd", "pw")
DATABASE_KEYS: tuple[str, ...] = ("database", "dbname", "db", "schema")


def find_parameter_value(params: Mapping[str, Any], names: Sequence[str]) -> Any | None:
    """Return the value of the first alias in ``names`` present in ``params``."""

    for name in names:
        value = params.get(name)
        if value is not None:
            return value
    return None


def resolve_config(params: Mapping[str, Any]) -> ConnectionConfig:
    """Build a :class:`ConnectionConfig` from a raw parameter mapping."""

    port = params.get("port")
    socket = params.get("socket")
    charset = params.get("charset")
    options = params.get("driver_options") or {}
    return ConnectionConfig(
        hostname=_as_str(find_parameter_value(params, HOSTNAME_KEYS)),
        username=_as_str(find_parameter_value(params, USERNAME_KEYS)),
        password=_as_str(find_parameter_value(params, PASSWORD_KEYS)),
        database=_as_str(find_parameter_value(params, DATABASE_KEYS)),
        port=int(port) if port is not None else None,
        socket=str(socket) if socket is not None else None,
        charset=str(charset) if charset else None,
        driver_options=MappingProxyType(dict(options)),
    )


def _as_str(value: Any | None) -> str | None:
    if value is None:
        return None
    return str(value)


__all__ = [
    "DATABASE_KEYS",
    "HOSTNAME_KEYS",
    "PASSWORD_KEYS",
    "USERNAME_KEYS",
    "find_parameter_value",
    "resolve_config",
]
