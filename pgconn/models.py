"""Shared dataclasses used across the connection modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class ConnectionConfig:
    """Alias-resolved parameters for a single connection attempt."""

    hostname: str | None = None
    username: str | None = None
    password: str | None = None
    database: str | None = None
    port: int | None = None
    socket: str | None = None
    charset: str | None = None
    driver_options: Mapping[str, Any] = field(default_factory=dict)


class TransactionState(str, Enum):
    """Transaction state tracked per connection."""

    IDLE = "idle"
    ACTIVE = "active"


__all__ = ["ConnectionConfig", "TransactionState"]
