"""Tests for the connection facade."""

from __future__ import annotations

import logging

import asyncpg
import pytest

from pgconn import Connection, InvalidArgumentError, StateError, TransactionState


def test_execute_select_one_end_to_end(fake_server) -> None:
    fake_server.results["SELECT 1"] = (("?column?",), [(1,)], "SELECT 1")

    with Connection({"host": "db1", "db": "app"}) as conn:
        result = conn.execute("SELECT 1")

    assert len(result) == 1
    assert result.columns == ("?column?",)
    assert list(result) == [(1,)]


def test_context_manager_disconnects(fake_server) -> None:
    with Connection({"host": "db1"}) as conn:
        conn.connect()
        assert conn.is_connected() is True

    assert conn.is_connected() is False
    assert fake_server.connections[0].closed is True


def test_begin_commit_rollback_scenario(fake_server) -> None:
    conn = Connection({"host": "db1"})
    try:
        conn.begin_transaction().commit()

        with pytest.raises(StateError, match="active transaction"):
            conn.rollback()
    finally:
        conn.disconnect()


def test_rollback_on_never_connected_instance() -> None:
    conn = Connection()

    with pytest.raises(StateError, match="connected"):
        conn.rollback()


def test_transaction_block_commits(fake_server) -> None:
    with Connection({"host": "db1"}) as conn:
        with conn.transaction():
            conn.execute("INSERT INTO t VALUES (1)")
        assert conn.transaction_state is TransactionState.IDLE

    assert fake_server.connections[0].executed == ["BEGIN", "INSERT INTO t VALUES (1)", "COMMIT"]


def test_transaction_block_rolls_back_on_error(fake_server) -> None:
    with Connection({"host": "db1"}) as conn:
        with pytest.raises(ValueError):
            with conn.transaction():
                conn.execute("INSERT INTO t VALUES (1)")
                raise ValueError("boom")
        assert conn.in_transaction is False

    assert fake_server.connections[0].executed[-1] == "ROLLBACK"


def test_current_schema_and_parameters(fake_server) -> None:
    conn = Connection().set_connection_parameters({"host": "db1", "schema": "app"})
    try:
        assert conn.connection_parameters == {"host": "db1", "schema": "app"}
        assert conn.get_current_schema() == "public"
        assert fake_server.connect_calls[0]["database"] == "app"
    finally:
        conn.disconnect()


def test_rejects_bad_construction_argument() -> None:
    with pytest.raises(InvalidArgumentError):
        Connection(3.14)  # type: ignore[arg-type]


def test_transaction_block_keeps_body_error_when_rollback_fails(fake_server, caplog) -> None:
    fake_server.command_errors["ROLLBACK"] = asyncpg.exceptions.ConnectionDoesNotExistError(
        "connection was closed in the middle of operation"
    )
    caplog.set_level(logging.ERROR, logger="pgconn.connection")

    with Connection({"host": "db1"}) as conn:
        with pytest.raises(ValueError, match="boom"):
            with conn.transaction():
                raise ValueError("boom")
        assert conn.transaction_state is TransactionState.IDLE

    assert "Rollback failed" in caplog.text
