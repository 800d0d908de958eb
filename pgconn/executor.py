"""Raw SQL dispatch and outcome classification."""

from __future__ import annotations

import logging
import time
from typing import Any, Sequence

from .driver import AsyncpgDriver, Driver
from .errors import InvalidQueryError
from .handle import translated_errors
from .lifecycle import ConnectionLifecycle

LOG = logging.getLogger(__name__)

# lastval/currval before the session produced a value.
NOT_YET_DEFINED = "55000"
LAST_VALUE_SAVEPOINT = "pgconn_last_value"


class QueryExecutor:
    """Sends SQL text verbatim through the live handle.

    The server's verdict decides the outcome: a rejection raises
    :class:`InvalidQueryError`, a row set is wrapped by the driver, and any
    other success hands the handle itself to the driver so it can report
    affected rows.
    """

    def __init__(self, lifecycle: ConnectionLifecycle, driver: Driver | None = None) -> None:
        self._lifecycle = lifecycle
        self._driver: Driver = driver or AsyncpgDriver()
        self._bind_driver()

    @property
    def driver(self) -> Driver:
        return self._driver

    def set_driver(self, driver: Driver) -> None:
        self._driver = driver
        self._bind_driver()

    def execute(self, sql: str) -> Any:
        return self._dispatch(sql, ())

    def execute_prepared(self, sql: str, params: Sequence[Any]) -> Any:
        """Run ``sql`` with positional ``$n`` parameters bound server-side."""

        return self._dispatch(sql, tuple(params))

    def prepare(self, sql: str) -> Any:
        self._lifecycle.ensure_connected()
        return self._driver.create_statement(sql)

    def get_last_generated_value(self, name: str | None = None) -> int | None:
        """Most recent sequence value of this session; ``None`` if there is none.

        Never opens a connection on its own.
        """

        if not self._lifecycle.has_handle:
            return None
        handle = self._lifecycle.get_handle()
        try:
            with translated_errors("reading the last generated value"):
                with handle.savepoint(LAST_VALUE_SAVEPOINT):
                    if name:
                        value = handle.fetch_value("SELECT currval($1::regclass)", name)
                    else:
                        value = handle.fetch_value("SELECT lastval()")
        except InvalidQueryError as exc:
            if exc.sqlstate == NOT_YET_DEFINED:
                return None
            raise
        return int(value) if value is not None else None

    def _dispatch(self, sql: str, params: tuple[Any, ...]) -> Any:
        self._lifecycle.ensure_connected()
        handle = self._lifecycle.get_handle()
        started = time.perf_counter()
        with translated_errors("executing query"):
            outcome = handle.query(sql, *params)
        LOG.debug(
            "Query executed",
            extra={
                "status": handle.status,
                "elapsed_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        if outcome is True:
            return self._driver.create_result(handle)
        return self._driver.create_result(outcome)

    def _bind_driver(self) -> None:
        bind = getattr(self._driver, "bind", None)
        if callable(bind):
            bind(self)


__all__ = ["QueryExecutor"]
