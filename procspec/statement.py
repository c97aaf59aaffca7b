"""Statement objects over DB-API 2.0 connections.

A statement owns one DB-API cursor. Parameter positions and result columns are
1-based, matching the ``?`` placeholder order and SQL column numbering.
"""

import re
from collections.abc import Iterator, Mapping
from typing import TYPE_CHECKING, Any, Optional, TypeVar

from procspec.config import StatementConfig
from procspec.exceptions import InvalidStateError, ParameterError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from procspec.type_conversion import TypeConverter

__all__ = ("CALL_TEXT_PATTERN", "CallableStatement", "PreparedStatement", "ResultCursor")

T = TypeVar("T")

CALL_TEXT_PATTERN = re.compile(
    r"\{\s*call\s+([A-Za-z_][A-Za-z0-9@$#_.]*)\s*(?:\(.*\))?\s*\}", re.IGNORECASE | re.DOTALL
)


class ResultCursor:
    """Forward-only view over the rows produced by an executed statement.

    The underlying DB-API cursor belongs to the statement; closing a result cursor
    only detaches it.
    """

    __slots__ = ("_closed", "_converter", "_cursor", "_row")

    def __init__(self, cursor: Any, converter: "TypeConverter") -> None:
        self._cursor = cursor
        self._converter = converter
        self._row: Optional[Sequence[Any]] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def description(self) -> "Optional[Sequence[Sequence[Any]]]":
        return self._cursor.description

    @property
    def column_names(self) -> "list[str]":
        return [column[0] for column in self.description or ()]

    def _check_open(self) -> None:
        if self._closed:
            msg = "The result cursor has been closed"
            raise InvalidStateError(msg)

    def next(self) -> bool:
        """Advance to the next row.

        Returns:
            True if a row is now current, False when the rows are exhausted.
        """
        self._check_open()
        row = self._cursor.fetchone()
        self._row = None if row is None else self._as_sequence(row)
        return self._row is not None

    @staticmethod
    def _as_sequence(row: Any) -> "Sequence[Any]":
        if isinstance(row, Mapping):
            return list(row.values())
        return row  # type: ignore[no-any-return]

    def _column(self, column: int) -> Any:
        self._check_open()
        if self._row is None:
            msg = "No current row; call next() first"
            raise InvalidStateError(msg)
        if not 1 <= column <= len(self._row):
            msg = f"Column index out of range: {column}"
            raise IndexError(msg)
        return self._row[column - 1]

    def get_int(self, column: int) -> int:
        """Get a column of the current row as an integer; SQL NULL reads as ``0``."""
        value = self._column(column)
        return 0 if value is None else int(value)

    def get_string(self, column: int) -> Optional[str]:
        value = self._column(column)
        if value is None:
            return None
        if isinstance(value, (bytes, bytearray, memoryview)):
            return bytes(value).decode("utf-8")
        return str(value)

    def get_object(self, column: int, target_type: "Optional[type[T]]" = None) -> Any:
        """Get a column of the current row, optionally converted to ``target_type``.

        Args:
            column: 1-based column number.
            target_type: Requested Python type. The raw driver value is returned when omitted.

        Returns:
            The column value.
        """
        value = self._column(column)
        if target_type is None:
            return value
        return self._converter.convert(value, target_type)

    def fetchall(self) -> "list[Any]":
        self._check_open()
        return list(self._cursor.fetchall())

    def __iter__(self) -> "Iterator[Any]":
        while self.next():
            yield self._row

    def close(self) -> None:
        self._closed = True
        self._row = None


class PreparedStatement:
    """A SQL statement with ``?`` placeholders bound positionally."""

    def __init__(self, connection: Any, sql: str, config: Optional[StatementConfig] = None) -> None:
        self.connection = connection
        self.sql = sql
        self.config = config or StatementConfig()
        self._cursor = connection.cursor()
        self._parameters: dict[int, Any] = {}
        self._closed = False

    @property
    def cursor(self) -> Any:
        return self._cursor

    @property
    def closed(self) -> bool:
        return self._closed

    def set_object(self, position: int, value: Any, type_code: Optional[int] = None) -> None:
        """Set the value of the placeholder at the 1-based ``position``.

        Args:
            position: 1-based placeholder position.
            value: Value to bind; coerced through the configured type coercion map.
            type_code: Declared SQL type code. DB-API drivers infer types from values, so
                this is informational.

        Raises:
            ParameterError: If ``position`` is less than 1.
        """
        if position < 1:
            msg = f"Parameter position must be 1 or greater: {position}"
            raise ParameterError(msg)
        self._parameters[position] = self.config.coerce(value)

    def clear_parameters(self) -> None:
        self._parameters.clear()

    def _bound_positions(self) -> "set[int]":
        return set(self._parameters)

    def _parameter_value(self, position: int) -> Any:
        return self._parameters[position]

    def _bind_values(self) -> "list[Any]":
        positions = self._bound_positions()
        values = []
        for position in range(1, max(positions, default=0) + 1):
            if position not in positions:
                msg = f"No value specified for parameter {position}"
                raise ParameterError(msg)
            values.append(self._parameter_value(position))
        return values

    def _execute(self) -> None:
        self._cursor.execute(self.sql, self._bind_values())

    def execute_update(self) -> int:
        """Execute as an update or DDL operation.

        Returns:
            Affected-row count as reported by the driver (``-1`` when unknown).
        """
        self._execute()
        rowcount = self._cursor.rowcount
        return -1 if rowcount is None else int(rowcount)

    def execute_query(self) -> ResultCursor:
        """Execute as a row-producing operation.

        Returns:
            A result cursor over the produced rows.
        """
        self._execute()
        return ResultCursor(self._cursor, self.config.type_converter)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cursor.close()


class CallableStatement(PreparedStatement):
    """A stored procedure call with IN, OUT and INOUT parameters.

    With the ``callproc`` call style the procedure runs through the DB-API
    ``cursor.callproc`` extension and OUT values come from the sequence it returns.
    With the ``escape`` style the ``{call ...}`` text is executed as given, which
    suits ODBC drivers.
    """

    def __init__(
        self,
        connection: Any,
        call_text: str,
        procedure_name: Optional[str] = None,
        config: Optional[StatementConfig] = None,
    ) -> None:
        super().__init__(connection, call_text, config)
        if procedure_name is None and (match := CALL_TEXT_PATTERN.fullmatch(call_text.strip())):
            procedure_name = match.group(1)
        self.procedure_name = procedure_name
        self._out_types: dict[int, int] = {}
        self._results: Optional[list[Any]] = None
        self._outputs_returned = False

    def register_out_parameter(self, position: int, type_code: int) -> None:
        if position < 1:
            msg = f"Parameter position must be 1 or greater: {position}"
            raise ParameterError(msg)
        self._out_types[position] = type_code

    def _bound_positions(self) -> "set[int]":
        return set(self._parameters) | set(self._out_types)

    def _parameter_value(self, position: int) -> Any:
        value = self._parameters.get(position)
        factory = self.config.out_parameter_factory
        if position in self._out_types and factory is not None:
            return factory(self._cursor, self._out_types[position], value)
        return value

    @property
    def uses_callproc(self) -> bool:
        if self.procedure_name is None:
            return False
        if self.config.call_style == "auto":
            return callable(getattr(self._cursor, "callproc", None))
        return self.config.call_style == "callproc"

    def _execute(self) -> None:
        values = self._bind_values()
        if self.uses_callproc:
            results = self._cursor.callproc(self.procedure_name, values)
            self._results = values if results is None else list(results)
            self._outputs_returned = results is not None
        else:
            self._cursor.execute(self.sql, values)
            self._results = values
            self._outputs_returned = False
        # driver variables from the factory carry OUT values themselves
        if self.config.out_parameter_factory is not None:
            self._outputs_returned = True

    def get_object(self, position: int) -> Any:
        """Get the post-execution value of the parameter at ``position``.

        Raises:
            InvalidStateError: If the statement has not been executed, or if ``position``
                is an OUT or INOUT parameter whose value the driver did not return.

        Returns:
            The OUT or INOUT value. Driver variables exposing ``getvalue()`` are unwrapped.
        """
        if self._results is None:
            msg = "The statement has not been executed"
            raise InvalidStateError(msg)
        if position in self._out_types and not self._outputs_returned:
            msg = (
                f"OUT parameter {position} of {self.procedure_name or self.sql} was not returned by the driver; "
                "use the callproc call style or an out_parameter_factory"
            )
            raise InvalidStateError(msg)
        value = self._results[position - 1]
        getvalue = getattr(value, "getvalue", None)
        return getvalue() if callable(getvalue) else value
