"""Error taxonomy raised by the connection layer."""

from __future__ import annotations


class DatabaseError(RuntimeError):
    """Base class for every error surfaced by pgconn."""


class InvalidArgumentError(DatabaseError, TypeError):
    """Raised when a connection is built from an unsupported argument."""


class ConnectionBackendError(DatabaseError):
    """Raised when the server cannot be reached or the handshake fails."""

    def __init__(self, message: str, *, code: str | int | None = None) -> None:
        super().__init__(message if code is None else f"[{code}] {message}")
        self.message = message
        self.code = code


class InvalidQueryError(DatabaseError):
    """Raised when the server rejects submitted SQL text."""

    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.sqlstate = sqlstate


class StateError(DatabaseError):
    """Raised when a transaction call happens out of sequence or is refused."""

    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.sqlstate = sqlstate


__all__ = [
    "ConnectionBackendError",
    "DatabaseError",
    "InvalidArgumentError",
    "InvalidQueryError",
    "StateError",
]
