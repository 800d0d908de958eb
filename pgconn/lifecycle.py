"""Ownership of the physical handle: connect, liveness check, disconnect."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from .errors import ConnectionBackendError, InvalidArgumentError
from .handle import ConnectionHandle, SessionHandle, error_code, translated_errors
from .models import ConnectionConfig
from .params import resolve_config

LOG = logging.getLogger(__name__)

HandleFactory = Callable[[], ConnectionHandle]


class ConnectionLifecycle:
    """Lazily establishes and tears down a single database session.

    Accepts a parameter mapping, an already connected :class:`ConnectionHandle`
    or nothing (parameters can be supplied later).
    """

    def __init__(
        self,
        connection_info: Mapping[str, Any] | ConnectionHandle | None = None,
        *,
        handle_factory: HandleFactory = ConnectionHandle,
    ) -> None:
        self._parameters: dict[str, Any] = {}
        self._handle: ConnectionHandle | None = None
        self._config: ConnectionConfig | None = None
        self._handle_factory = handle_factory
        if isinstance(connection_info, ConnectionHandle):
            self.set_handle(connection_info)
        elif isinstance(connection_info, Mapping):
            self.set_connection_parameters(connection_info)
        elif connection_info is not None:
            raise InvalidArgumentError(
                "connection_info must be a mapping of parameters, a ConnectionHandle or None"
            )

    @property
    def connection_parameters(self) -> Mapping[str, Any]:
        """Raw parameters as supplied by the caller."""

        return dict(self._parameters)

    @property
    def config(self) -> ConnectionConfig | None:
        """Config resolved by the most recent connect attempt."""

        return self._config

    @property
    def has_handle(self) -> bool:
        """Whether a handle is held, without probing it."""

        return self._handle is not None

    def set_connection_parameters(self, parameters: Mapping[str, Any]) -> None:
        self._parameters = dict(parameters)

    def set_handle(self, handle: ConnectionHandle) -> None:
        """Adopt an externally established handle, skipping parameter resolution."""

        self._handle = handle

    def connect(self) -> None:
        """Open the session unless a handle is already held."""

        if self._handle is not None:
            return
        config = resolve_config(self._parameters)
        self._config = config
        handle = self._handle_factory()
        for option, value in config.driver_options.items():
            if not isinstance(option, str) or not handle.options(option, value):
                LOG.debug("Skipping unrecognized driver option", extra={"option": option})
        try:
            handle.real_connect(
                config.hostname,
                config.username,
                config.password,
                config.database,
                config.port,
                config.socket,
            )
            if config.charset:
                handle.set_charset(config.charset)
        except Exception as exc:
            handle.close()
            raise ConnectionBackendError(
                f"Connection error: {exc}", code=error_code(exc)
            ) from exc
        self._handle = handle
        LOG.debug(
            "Connected",
            extra={"host": config.socket or config.hostname, "database": config.database},
        )

    def is_connected(self) -> bool:
        """Ping the server; a failed ping disconnects as a side effect.

        Returns ``True`` only when a handle exists and answers the ping.
        Callers guarding an operation with this check therefore never reuse a
        dead session; the next ``connect()`` opens a fresh one.
        """

        if self._handle is None:
            return False
        if not self._handle.ping():
            LOG.warning("Liveness check failed; dropping handle")
            self.disconnect()
            return False
        return True

    def ensure_connected(self) -> None:
        """Ping the current handle and reconnect if it is missing or dead."""

        if not self.is_connected():
            self.connect()

    def disconnect(self) -> None:
        handle, self._handle = self._handle, None
        if handle is not None:
            handle.close()
            LOG.debug("Disconnected")

    def get_handle(self) -> SessionHandle:
        """Connect if needed and return the live handle for use (not closing)."""

        return self._live_handle()

    def get_current_schema(self) -> str | None:
        """Name of the first existing schema on the search path.

        ``None`` when the search path names no existing schema.
        """

        self.ensure_connected()
        handle = self._live_handle()
        with translated_errors("reading the current schema"):
            schema = handle.fetch_value("SELECT current_schema()")
        return None if schema is None else str(schema)

    def _live_handle(self) -> ConnectionHandle:
        self.connect()
        if self._handle is None:  # pragma: no cover - connect() raises instead
            raise ConnectionBackendError("No connection handle available.")
        return self._handle


__all__ = ["ConnectionLifecycle", "HandleFactory"]
