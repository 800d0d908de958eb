"""Transaction state machine layered on the connection lifecycle."""

from __future__ import annotations

import logging

from .errors import InvalidQueryError, StateError
from .handle import translated_errors
from .lifecycle import ConnectionLifecycle
from .models import TransactionState

LOG = logging.getLogger(__name__)


class TransactionController:
    """Tracks whether a transaction block is open and orders commit/rollback.

    There is no savepoint support: beginning twice keeps the same block open.
    """

    def __init__(self, lifecycle: ConnectionLifecycle) -> None:
        self._lifecycle = lifecycle
        self._state = TransactionState.IDLE

    @property
    def state(self) -> TransactionState:
        return self._state

    @property
    def in_transaction(self) -> bool:
        return self._state is TransactionState.ACTIVE

    def begin_transaction(self) -> None:
        self._lifecycle.ensure_connected()
        with translated_errors("starting a transaction", InvalidQueryError):
            self._lifecycle.get_handle().autocommit(False)
        self._state = TransactionState.ACTIVE
        LOG.debug("Transaction started")

    def commit(self) -> None:
        """Commit; tolerated when no transaction is open.

        The server ends the block even when COMMIT fails, so the state is
        always back to idle afterwards.
        """

        handle = self._lifecycle.get_handle()
        try:
            with translated_errors("committing", StateError):
                handle.commit()
        finally:
            self._state = TransactionState.IDLE
        LOG.debug("Transaction committed")

    def rollback(self) -> None:
        if not self._lifecycle.has_handle:
            raise StateError("Must be connected before you can rollback.")
        if self._state is not TransactionState.ACTIVE:
            raise StateError("Must be inside an active transaction before you can rollback.")
        handle = self._lifecycle.get_handle()
        try:
            with translated_errors("rolling back", StateError):
                handle.rollback()
        finally:
            self._state = TransactionState.IDLE
        LOG.debug("Transaction rolled back")


__all__ = ["TransactionController"]
