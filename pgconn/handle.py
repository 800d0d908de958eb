"""Physical PostgreSQL session driven synchronously over asyncpg."""

from __future__ import annotations

import asyncio
from contextlib import contextmanager
from dataclasses import dataclass
import logging
import threading
from typing import Any, Coroutine, Iterator, Protocol, TypeVar, runtime_checkable

import asyncpg

from .errors import ConnectionBackendError, DatabaseError, InvalidQueryError

LOG = logging.getLogger(__name__)

T = TypeVar("T")

# Keyword arguments accepted by ``asyncpg.connect`` that may be set via driver_options.
DRIVER_OPTIONS = frozenset(
    {
        "timeout",
        "command_timeout",
        "statement_cache_size",
        "max_cached_statement_lifetime",
        "max_cacheable_statement_size",
        "ssl",
        "direct_tls",
        "passfile",
        "server_settings",
        "target_session_attrs",
    }
)

# Failures meaning the session itself is gone, as opposed to a rejected statement.
CONNECTION_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    asyncpg.exceptions.InterfaceError,
    asyncpg.exceptions.PostgresConnectionError,
)


@dataclass(frozen=True, slots=True)
class RowSet:
    """Tabular payload returned by the server for a single statement."""

    columns: tuple[str, ...]
    rows: tuple[tuple[object, ...], ...]
    status: str | None = None


@runtime_checkable
class SessionHandle(Protocol):
    """Operations available to components borrowing the live handle.

    Only the owning lifecycle may close the session, so ``close`` is not part
    of this protocol.
    """

    affected_rows: int | None
    status: str | None
    in_transaction: bool

    def query(self, sql: str, *args: Any) -> RowSet | bool:
        """Run ``sql``; return a :class:`RowSet` or ``True`` for non-tabular success."""

    def fetch_value(self, sql: str, *args: Any) -> Any:
        """Return the first column of the first row."""

    def savepoint(self, name: str) -> Iterator[None]:
        """Context manager undoing a failed block back to a savepoint."""

    def autocommit(self, enabled: bool) -> None:
        """Toggle implicit commit of each statement."""

    def commit(self) -> None:
        """Commit the open transaction block, if any."""

    def rollback(self) -> None:
        """Roll back the open transaction block, if any."""


class ConnectionHandle:
    """Owns one asyncpg connection and the event loop thread that drives it.

    Mirrors the classic client-handle flow: build the handle, set
    :meth:`options`, then :meth:`real_connect`. Every call blocks until the
    round trip completes on the private loop.
    """

    def __init__(self, *, thread_name: str = "pgconn-handle") -> None:
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name=thread_name,
            daemon=True,
        )
        self._loop_thread.start()
        self._connect_kwargs: dict[str, Any] = {}
        self._conn: asyncpg.Connection | None = None
        self.affected_rows: int | None = None
        self.status: str | None = None

    @property
    def connected(self) -> bool:
        return self._conn is not None and not self._conn.is_closed()

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.is_in_transaction()

    def options(self, option: str, value: Any) -> bool:
        """Record a connect option; return ``False`` when the name is unknown."""

        key = option.lower()
        if key not in DRIVER_OPTIONS:
            return False
        self._connect_kwargs[key] = value
        return True

    def real_connect(
        self,
        host: str | None = None,
        user: str | None = None,
        password: str | None = None,
        database: str | None = None,
        port: int | None = None,
        socket: str | None = None,
    ) -> None:
        """Perform the network handshake; native driver errors propagate."""

        kwargs = dict(self._connect_kwargs)
        # A Unix socket path takes the place of the host name.
        for key, value in (
            ("host", socket or host),
            ("port", port),
            ("user", user),
            ("password", password),
            ("database", database),
        ):
            if value is not None:
                kwargs[key] = value
        self._conn = self._run(asyncpg.connect(**kwargs))

    def set_charset(self, charset: str) -> None:
        self.fetch_value("SELECT set_config('client_encoding', $1, false)", charset)

    def ping(self) -> bool:
        """Round-trip a trivial query; ``False`` when the session is gone."""

        if not self.connected:
            return False
        try:
            self.fetch_value("SELECT 1")
        except CONNECTION_ERRORS:
            return False
        except asyncpg.PostgresError:
            # The server answered, e.g. inside an aborted transaction block.
            return True
        return True

    def query(self, sql: str, *args: Any) -> RowSet | bool:
        self.status = None
        self.affected_rows = None
        attributes, records, status = self._run(self._query(sql, args))
        self.status = status or None
        self.affected_rows = _affected_rows(status)
        if not attributes:
            return True
        columns = tuple(str(attribute.name) for attribute in attributes)
        rows = tuple(tuple(record) for record in records)
        return RowSet(columns=columns, rows=rows, status=self.status)

    def fetch_value(self, sql: str, *args: Any) -> Any:
        return self._run(self._require().fetchval(sql, *args))

    @contextmanager
    def savepoint(self, name: str) -> Iterator[None]:
        """Run the block under ``SAVEPOINT name`` while a transaction is open.

        A server error inside the block rolls back to the savepoint, so the
        surrounding transaction stays usable; the error still propagates.
        """

        if not self.in_transaction:
            yield
            return
        conn = self._require()
        self._run(conn.execute(f"SAVEPOINT {name}"))
        try:
            yield
        except CONNECTION_ERRORS:
            raise
        except asyncpg.PostgresError:
            self._run(conn.execute(f"ROLLBACK TO SAVEPOINT {name}"))
            raise
        self._run(conn.execute(f"RELEASE SAVEPOINT {name}"))

    def autocommit(self, enabled: bool) -> None:
        conn = self._require()
        if enabled and conn.is_in_transaction():
            self._run(conn.execute("COMMIT"))
        elif not enabled and not conn.is_in_transaction():
            self._run(conn.execute("BEGIN"))

    def commit(self) -> None:
        conn = self._require()
        if conn.is_in_transaction():
            self._run(conn.execute("COMMIT"))

    def rollback(self) -> None:
        conn = self._require()
        if conn.is_in_transaction():
            self._run(conn.execute("ROLLBACK"))

    def close(self) -> None:
        """Close the session and stop the loop thread; safe to call twice."""

        conn, self._conn = self._conn, None
        try:
            if conn is not None and not conn.is_closed():
                try:
                    self._run(conn.close(timeout=5))
                except CONNECTION_ERRORS:
                    self._loop.call_soon_threadsafe(conn.terminate)
        finally:
            self._shutdown_loop()

    async def _query(self, sql: str, args: tuple[Any, ...]):
        statement = await self._require().prepare(sql)
        records = await statement.fetch(*args)
        return statement.get_attributes(), records, statement.get_statusmsg()

    def _require(self) -> asyncpg.Connection:
        if self._conn is None:
            raise asyncpg.exceptions.ConnectionDoesNotExistError("handle is not connected")
        return self._conn

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _shutdown_loop(self) -> None:
        if not self._loop.is_running():
            return
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._loop_thread.join(timeout=1)
        if not self._loop_thread.is_alive():
            self._loop.close()


@contextmanager
def translated_errors(
    action: str,
    server_error: type[DatabaseError] = InvalidQueryError,
) -> Iterator[None]:
    """Re-raise native driver failures as pgconn errors.

    A lost session becomes :class:`ConnectionBackendError`; a server reply
    becomes ``server_error`` carrying the SQLSTATE.
    """

    try:
        yield
    except CONNECTION_ERRORS as exc:
        raise ConnectionBackendError(
            f"Connection lost while {action}: {exc}", code=error_code(exc)
        ) from exc
    except asyncpg.PostgresError as exc:
        raise server_error(str(exc), sqlstate=getattr(exc, "sqlstate", None)) from exc


def error_code(exc: BaseException) -> str | int | None:
    sqlstate = getattr(exc, "sqlstate", None)
    if sqlstate:
        return sqlstate
    if isinstance(exc, OSError):
        return exc.errno
    return None


def _affected_rows(status: str | None) -> int | None:
    """Extract the row count from a command tag such as ``INSERT 0 3``."""

    if not status:
        return None
    tail = status.rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else None


__all__ = [
    "CONNECTION_ERRORS",
    "ConnectionHandle",
    "DRIVER_OPTIONS",
    "RowSet",
    "SessionHandle",
    "error_code",
    "translated_errors",
]
