"""Shared fakes standing in for asyncpg connections."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

import asyncpg
import pytest


@dataclass
class _Attribute:
    name: str


@dataclass
class FakeServer:
    """Scripted server answers keyed by SQL text."""

    results: dict[str, Any] = field(default_factory=dict)
    values: dict[str, Any] = field(
        default_factory=lambda: {
            "SELECT 1": 1,
            "SELECT current_schema()": "public",
        }
    )
    alive: bool = True
    connect_error: BaseException | None = None
    connect_calls: list[dict[str, Any]] = field(default_factory=list)
    connections: list["FakeConnection"] = field(default_factory=list)
    lastval: int | None = None
    command_errors: dict[str, BaseException] = field(default_factory=dict)

    def answer(self, sql: str, args: tuple[Any, ...]) -> tuple[tuple[_Attribute, ...], list[tuple], str]:
        outcome = self.results.get(sql)
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is None:
            return (), [], sql.split(None, 1)[0].upper() if sql.strip() else ""
        columns, rows, status = outcome
        if callable(rows):
            rows = rows(*args)
        return tuple(_Attribute(name) for name in columns), list(rows), status


class FakePreparedStatement:
    def __init__(self, connection: "FakeConnection", sql: str) -> None:
        self._connection = connection
        self._sql = sql
        self._attributes: tuple[_Attribute, ...] = ()
        self._status = ""

    async def fetch(self, *args: Any) -> list[tuple]:
        with self._connection.failing_aborts():
            self._attributes, records, self._status = self._connection.server.answer(self._sql, args)
        return records

    def get_attributes(self) -> tuple[_Attribute, ...]:
        return self._attributes

    def get_statusmsg(self) -> str:
        return self._status


class FakeConnection:
    def __init__(self, server: FakeServer) -> None:
        self.server = server
        self.closed = False
        self.in_transaction = False
        self.aborted = False
        self.executed: list[str] = []
        self.fetched: list[tuple[str, tuple[Any, ...]]] = []

    def _check(self) -> None:
        if self.closed:
            raise asyncpg.exceptions.InterfaceError("connection is closed")
        if not self.server.alive:
            raise asyncpg.exceptions.ConnectionDoesNotExistError(
                "connection was closed in the middle of operation"
            )

    def _check_block(self) -> None:
        if self.aborted:
            raise asyncpg.exceptions.InFailedSQLTransactionError(
                "current transaction is aborted, commands ignored until end of transaction block"
            )

    @contextmanager
    def failing_aborts(self) -> Iterator[None]:
        """A server error inside an open block aborts it, as PostgreSQL does."""

        try:
            yield
        except asyncpg.PostgresError:
            if self.in_transaction:
                self.aborted = True
            raise

    def is_closed(self) -> bool:
        return self.closed

    def is_in_transaction(self) -> bool:
        return self.in_transaction

    async def execute(self, sql: str) -> str:
        self._check()
        if sql.startswith("ROLLBACK TO SAVEPOINT "):
            self.executed.append(sql)
            self.aborted = False
            return "ROLLBACK"
        if sql not in {"COMMIT", "ROLLBACK"}:
            self._check_block()
        self.executed.append(sql)
        error = self.server.command_errors.get(sql)
        if sql == "BEGIN" and error is None:
            self.in_transaction = True
        elif sql in {"COMMIT", "ROLLBACK"}:
            self.in_transaction = False
            self.aborted = False
        if error is not None:
            raise error
        return sql

    async def fetchval(self, sql: str, *args: Any) -> Any:
        self._check()
        self._check_block()
        self.fetched.append((sql, args))
        with self.failing_aborts():
            return self._value(sql, args)

    def _value(self, sql: str, args: tuple[Any, ...]) -> Any:
        if sql.startswith("SELECT set_config('client_encoding'"):
            return args[0]
        if sql in {"SELECT lastval()", "SELECT currval($1::regclass)"}:
            if self.server.lastval is None:
                raise asyncpg.exceptions.ObjectNotInPrerequisiteStateError(
                    "lastval is not yet defined in this session"
                )
            return self.server.lastval
        value = self.server.values[sql]
        if isinstance(value, BaseException):
            raise value
        return value

    async def prepare(self, sql: str) -> FakePreparedStatement:
        self._check()
        self._check_block()
        self.executed.append(sql)
        return FakePreparedStatement(self, sql)

    async def close(self, *, timeout: float | None = None) -> None:
        self.closed = True

    def terminate(self) -> None:
        self.closed = True


@pytest.fixture
def fake_server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    server = FakeServer()

    async def _connect(**kwargs: Any) -> FakeConnection:
        server.connect_calls.append(kwargs)
        if server.connect_error is not None:
            raise server.connect_error
        connection = FakeConnection(server)
        server.connections.append(connection)
        return connection

    monkeypatch.setattr("pgconn.handle.asyncpg.connect", _connect)
    return server
