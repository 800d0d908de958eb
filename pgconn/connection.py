"""Single-object facade over lifecycle, transactions and query dispatch."""

from __future__ import annotations

from contextlib import contextmanager
import logging
from typing import Any, Iterator, Mapping

from .driver import Driver
from .errors import DatabaseError
from .executor import QueryExecutor
from .handle import ConnectionHandle, SessionHandle
from .lifecycle import ConnectionLifecycle, HandleFactory
from .models import TransactionState
from .transaction import TransactionController

LOG = logging.getLogger(__name__)


class Connection:
    """One logical PostgreSQL connection.

    Usable as a context manager; leaving the block disconnects::

        with Connection({"host": "localhost", "db": "app"}) as conn:
            result = conn.execute("SELECT 1")
    """

    def __init__(
        self,
        connection_info: Mapping[str, Any] | ConnectionHandle | None = None,
        *,
        driver: Driver | None = None,
        handle_factory: HandleFactory = ConnectionHandle,
    ) -> None:
        self._lifecycle = ConnectionLifecycle(connection_info, handle_factory=handle_factory)
        self._transactions = TransactionController(self._lifecycle)
        self._executor = QueryExecutor(self._lifecycle, driver)

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.disconnect()

    @property
    def driver(self) -> Driver:
        return self._executor.driver

    @property
    def connection_parameters(self) -> Mapping[str, Any]:
        return self._lifecycle.connection_parameters

    @property
    def transaction_state(self) -> TransactionState:
        return self._transactions.state

    @property
    def in_transaction(self) -> bool:
        return self._transactions.in_transaction

    def set_driver(self, driver: Driver) -> Connection:
        self._executor.set_driver(driver)
        return self

    def set_connection_parameters(self, parameters: Mapping[str, Any]) -> Connection:
        self._lifecycle.set_connection_parameters(parameters)
        return self

    def set_handle(self, handle: ConnectionHandle) -> Connection:
        self._lifecycle.set_handle(handle)
        return self

    def get_handle(self) -> SessionHandle:
        return self._lifecycle.get_handle()

    def get_current_schema(self) -> str | None:
        return self._lifecycle.get_current_schema()

    def connect(self) -> Connection:
        self._lifecycle.connect()
        return self

    def is_connected(self) -> bool:
        """Ping the server; drops the handle when the ping fails."""

        return self._lifecycle.is_connected()

    def disconnect(self) -> Connection:
        self._lifecycle.disconnect()
        return self

    def begin_transaction(self) -> Connection:
        self._transactions.begin_transaction()
        return self

    def commit(self) -> Connection:
        self._transactions.commit()
        return self

    def rollback(self) -> Connection:
        self._transactions.rollback()
        return self

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Commit when the block succeeds, roll back when it raises."""

        self.begin_transaction()
        try:
            yield self
        except BaseException:
            if self._lifecycle.has_handle and self.in_transaction:
                try:
                    self.rollback()
                except DatabaseError:
                    LOG.exception("Rollback failed after transaction block raised")
            else:
                LOG.warning("Transaction aborted without a live handle to roll back")
            raise
        self.commit()

    def execute(self, sql: str) -> Any:
        return self._executor.execute(sql)

    def prepare(self, sql: str) -> Any:
        return self._executor.prepare(sql)

    def get_last_generated_value(self, name: str | None = None) -> int | None:
        return self._executor.get_last_generated_value(name)


__all__ = ["Connection"]
