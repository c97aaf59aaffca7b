"""Tests for descriptor-driven query and procedure execution."""

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from procspec import ProcSpec
from procspec.config import StatementConfig
from procspec.descriptors import ProcedureCatalog, Query, QueryCatalog, StoredProcedure
from procspec.exceptions import (
    ArgumentCountMismatchError,
    ConnectionError,
    ExecutionError,
    ImproperConfigurationError,
    InsufficientArgumentsError,
    InvalidSignatureError,
    SignatureArityMismatchError,
    UnexpectedArgumentsError,
)
from procspec.parameters import Param, SQLType
from procspec.result import ExecutionHandle, ResultShape

DB = "sqlite:///rms.db"

GET_RULE_COUNT = Query("GET_RULE_COUNT", "SELECT count(*) FROM rules WHERE name = ? AND zone = ?", DB, ("name", "zone"))
COUNT_RULES = Query("COUNT_RULES", "SELECT count(*) FROM rules", DB)
RAISE_PRICE = StoredProcedure(
    "RAISE_PRICE", "RAISE_PRICE(>, >, =)", DB, (SQLType.VARCHAR, SQLType.FLOAT, SQLType.NUMERIC)
)
REFRESH = StoredProcedure("REFRESH", "REFRESH", DB)
TAG_ITEMS = StoredProcedure("TAG_ITEMS", "TAG_ITEMS(>, >)", DB, (SQLType.INTEGER, SQLType.VARCHAR))


class Queries(QueryCatalog):
    GET_USER = ("SELECT name FROM users WHERE id = ?", "id")

    @property
    def connection(self) -> str:
        return DB


class Procedures(ProcedureCatalog):
    NEXT_ID = ("NEXT_ID(<)", SQLType.INTEGER)

    @property
    def connection(self) -> str:
        return DB


@pytest.fixture
def runner(provider: Any) -> ProcSpec:
    return ProcSpec(provider)


def test_argument_count_mismatch_acquires_nothing(runner: ProcSpec, provider: Any) -> None:
    with pytest.raises(ArgumentCountMismatchError) as exc_info:
        runner.get_int(GET_RULE_COUNT, "r1")

    assert str(exc_info.value) == "Incorrect argument count for GET_RULE_COUNT['name', 'zone']: expect: 2; actual: 1"
    assert provider.calls == []


def test_arguments_to_query_without_arguments(runner: ProcSpec, provider: Any) -> None:
    with pytest.raises(ArgumentCountMismatchError, match="No arguments expected for COUNT_RULES"):
        runner.get_int(COUNT_RULES, 1)

    assert provider.calls == []


def test_get_int_binds_arguments_in_order(runner: ProcSpec, provider: Any, mock_cursor: MagicMock) -> None:
    mock_cursor.fetchone.return_value = (3,)

    assert runner.get_int(GET_RULE_COUNT, "r1", 7) == 3

    assert provider.calls == [DB]
    mock_cursor.execute.assert_called_once_with(GET_RULE_COUNT.sql, ["r1", 7])


def test_get_int_without_rows(runner: ProcSpec) -> None:
    assert runner.get_int(COUNT_RULES) == -1


def test_get_str_and_typed(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    mock_cursor.fetchone.return_value = ("12",)

    assert runner.get_str(Queries.GET_USER, 1) == "12"
    assert runner.get_value(int, Queries.GET_USER, 1) == 12


def test_update_returns_row_count(runner: ProcSpec, mock_cursor: MagicMock, mock_connection: MagicMock) -> None:
    mock_cursor.rowcount = 2
    update_role = Query("UPDATE_ROLE", "UPDATE users SET role_id = ? WHERE user_id = ?", DB, ("role_id", "user_id"))

    assert runner.update(update_role, 5, 9) == 2
    mock_connection.commit.assert_called_once_with()
    mock_connection.close.assert_called_once_with()


def test_get_handle_transfers_ownership(runner: ProcSpec, mock_connection: MagicMock) -> None:
    handle = runner.get_handle(COUNT_RULES)

    assert isinstance(handle, ExecutionHandle)
    mock_connection.close.assert_not_called()
    handle.close()
    mock_connection.close.assert_called_once_with()


def test_placeholder_validation(provider: Any) -> None:
    runner = ProcSpec(provider, StatementConfig(validate_placeholders=True))
    bad = Query("BAD", "SELECT * FROM t WHERE a = ?", DB, ("a", "b"))

    with pytest.raises(ArgumentCountMismatchError):
        runner.get_int(bad, 1)
    with pytest.raises(ImproperConfigurationError, match="placeholders: 1; declared: 2"):
        runner.get_int(bad, 1, 2)

    assert provider.calls == []


def test_placeholder_validation_ignores_literals(provider: Any, mock_cursor: MagicMock) -> None:
    runner = ProcSpec(provider, StatementConfig(validate_placeholders=True))
    query = Query("LITERAL", "SELECT '?' FROM t WHERE a = ?", DB, ("a",))
    mock_cursor.fetchone.return_value = ("?",)

    assert runner.get_str(query, 1) == "?"


def test_connection_failure_is_wrapped(mock_connection: MagicMock) -> None:
    provider = MagicMock()
    provider.acquire.side_effect = OSError("unable to open database file")
    runner = ProcSpec(provider)

    with pytest.raises(ConnectionError, match="unable to open database file") as exc_info:
        runner.get_int(COUNT_RULES)

    assert isinstance(exc_info.value.__cause__, OSError)


def test_prepare_failure_closes_connection(runner: ProcSpec, mock_connection: MagicMock) -> None:
    mock_connection.cursor.side_effect = RuntimeError("too many cursors")

    with pytest.raises(ExecutionError, match="too many cursors"):
        runner.get_int(COUNT_RULES)

    mock_connection.commit.assert_called_once_with()
    mock_connection.rollback.assert_not_called()
    mock_connection.close.assert_called_once_with()


def _reject(value: Any) -> Any:
    msg = f"cannot bind {type(value).__name__}"
    raise ValueError(msg)


def test_bind_failure_closes_statement_cursor(
    provider: Any, mock_connection: MagicMock, mock_cursor: MagicMock
) -> None:
    runner = ProcSpec(provider, StatementConfig(type_coercion_map={dict: _reject}))

    with pytest.raises(ExecutionError, match="cannot bind dict"):
        runner.execute_sql(ResultShape.NONE, DB, "INSERT INTO t VALUES (?, ?)", 1, {"x": 1})

    mock_cursor.execute.assert_not_called()
    mock_cursor.close.assert_called_once_with()
    mock_connection.commit.assert_called_once_with()
    mock_connection.close.assert_called_once_with()


def test_procedure_bind_failure_closes_statement_cursor(
    provider: Any, mock_connection: MagicMock, mock_cursor: MagicMock
) -> None:
    runner = ProcSpec(provider, StatementConfig(type_coercion_map={dict: _reject}, rollback_on_error=True))

    with pytest.raises(ExecutionError, match="cannot bind dict"):
        runner.call_procedure(ResultShape.NONE, TAG_ITEMS, 1, {"x": 1})

    mock_cursor.callproc.assert_not_called()
    mock_cursor.close.assert_called_once_with()
    mock_connection.rollback.assert_called_once_with()
    mock_connection.commit.assert_not_called()
    mock_connection.close.assert_called_once_with()


def test_execution_is_logged_with_descriptor_fields(runner: ProcSpec, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="procspec"):
        runner.get_int(COUNT_RULES)
        runner.execute_sql(ResultShape.TEXT, "dsn-without-scheme", "SELECT 1")

    records = [record for record in caplog.records if record.name == "procspec.base"]
    assert [record.extra_fields for record in records] == [  # type: ignore[attr-defined]
        {"descriptor": "COUNT_RULES", "shape": "integer", "scheme": "sqlite"},
        {"descriptor": None, "shape": "text", "scheme": ""},
    ]
    assert records[0].getMessage() == "Executing statement: COUNT_RULES (integer, sqlite)"
    assert records[1].getMessage() == "Executing statement: <raw> (text, <none>)"


def test_call_procedure_binds_modes(runner: ProcSpec, mock_cursor: MagicMock, provider: Any) -> None:
    mock_cursor.callproc.side_effect = None
    mock_cursor.callproc.return_value = ["Colombian", 0.1, 11.5]

    assert runner.call_procedure(ResultShape.NONE, RAISE_PRICE, "Colombian", 0.1, 10) == 0

    assert provider.calls == [DB]
    mock_cursor.callproc.assert_called_once_with("RAISE_PRICE", ["Colombian", 0.1, 10])


def test_call_procedure_variadic_tail(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    runner.call_procedure(ResultShape.NONE, TAG_ITEMS, 1, "a", "b", "c")

    mock_cursor.callproc.assert_called_once_with("TAG_ITEMS", [1, "a", "b", "c"])


def test_call_procedure_without_arguments(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    runner.call_procedure(ResultShape.NONE, REFRESH)

    mock_cursor.callproc.assert_called_once_with("REFRESH", [])


@pytest.mark.parametrize(
    ("procedure", "args", "error"),
    [
        (REFRESH, (1,), UnexpectedArgumentsError),
        (RAISE_PRICE, ("Colombian",), InsufficientArgumentsError),
        (StoredProcedure("BROKEN", "BROKEN(>, <)", DB, (SQLType.INTEGER,)), (1,), SignatureArityMismatchError),
        (StoredProcedure("BAD", "1BAD(>)", DB, (SQLType.INTEGER,)), (1,), InvalidSignatureError),
    ],
)
def test_call_procedure_validation_acquires_nothing(
    runner: ProcSpec, provider: Any, procedure: StoredProcedure, args: tuple, error: type
) -> None:
    with pytest.raises(error):
        runner.call_procedure(ResultShape.NONE, procedure, *args)

    assert provider.calls == []


def test_call_procedure_first_column(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    mock_cursor.fetchone.return_value = (41,)

    assert runner.call_procedure(ResultShape.INTEGER, Procedures.NEXT_ID, None) == 41


def test_call_procedure_by_name_reads_out_values(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    mock_cursor.callproc.side_effect = None
    mock_cursor.callproc.return_value = [3, 42]
    total = Param.out(SQLType.INTEGER)

    runner.call_procedure_by_name(ResultShape.NONE, DB, "SUM_ORDERS", 3, total)

    mock_cursor.callproc.assert_called_once_with("SUM_ORDERS", [3, None])
    assert total.get_value() == 42


def test_call_procedure_text(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    runner.call_procedure_text(ResultShape.NONE, DB, "{call RAISE_PRICE(?,?,?)}", "Colombian", 0.1, Param.inout(10))

    mock_cursor.callproc.assert_called_once_with("RAISE_PRICE", ["Colombian", 0.1, 10])


def test_execute_sql(runner: ProcSpec, mock_cursor: MagicMock) -> None:
    mock_cursor.fetchone.return_value = ("x",)

    assert runner.execute_sql(ResultShape.TEXT, DB, "SELECT ? || ?", "a", "b") == "x"
    mock_cursor.execute.assert_called_once_with("SELECT ? || ?", ["a", "b"])
