"""Connection lifecycle and transaction management for PostgreSQL."""

from __future__ import annotations

__version__ = "0.1.0"

from .connection import Connection
from .driver import AsyncpgDriver, Driver, Result, Statement
from .errors import (
    ConnectionBackendError,
    DatabaseError,
    InvalidArgumentError,
    InvalidQueryError,
    StateError,
)
from .executor import QueryExecutor
from .handle import ConnectionHandle, RowSet, SessionHandle
from .lifecycle import ConnectionLifecycle
from .models import ConnectionConfig, TransactionState
from .params import find_parameter_value, resolve_config
from .transaction import TransactionController

__all__ = [
    "AsyncpgDriver",
    "Connection",
    "ConnectionBackendError",
    "ConnectionConfig",
    "ConnectionHandle",
    "ConnectionLifecycle",
    "DatabaseError",
    "Driver",
    "InvalidArgumentError",
    "InvalidQueryError",
    "QueryExecutor",
    "Result",
    "RowSet",
    "SessionHandle",
    "StateError",
    "Statement",
    "TransactionController",
    "TransactionState",
    "__version__",
    "find_parameter_value",
    "resolve_config",
]
