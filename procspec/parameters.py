"""Stored procedure parameters and their reconciliation with declared signatures."""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Optional

import sqlglot
from sqlglot.errors import TokenError
from sqlglot.tokens import TokenType

from procspec.exceptions import (
    InsufficientArgumentsError,
    SQLParsingError,
    SignatureArityMismatchError,
    UnexpectedArgumentsError,
)
from procspec.signature import Mode

if TYPE_CHECKING:
    from collections.abc import Sequence

    from procspec.statement import CallableStatement

__all__ = ("Param", "SQLType", "build_call_text", "count_placeholders", "reconcile_parameters")


class SQLType(IntEnum):
    """Generic SQL type codes.

    Values match the JDBC ``java.sql.Types`` constants so type codes from existing
    catalogs can be used unchanged.
    """

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    NCHAR = -15
    NVARCHAR = -9
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    TIMESTAMP_WITH_TIMEZONE = 2014
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    JAVA_OBJECT = 2000
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    BOOLEAN = 16
    REF_CURSOR = 2012

    def __str__(self) -> str:
        return self.name


class Param:
    """A stored procedure argument with its mode, type code and value.

    The parameter knows how to bind itself to a callable statement. OUT and INOUT
    parameters keep a reference to the statement they were bound to so their
    post-execution value can be read with :meth:`get_value`.
    """

    __slots__ = ("_position", "_statement", "mode", "type_code", "value")

    def __init__(self, mode: Mode = Mode.IN, type_code: int = SQLType.OTHER, value: Any = None) -> None:
        self.mode = mode
        self.type_code = type_code
        self.value = value
        self._statement: Optional[CallableStatement] = None
        self._position = 0

    @classmethod
    def in_(cls, value: Any, type_code: int = SQLType.OTHER) -> "Param":
        return cls(Mode.IN, type_code, value)

    @classmethod
    def out(cls, type_code: int = SQLType.OTHER) -> "Param":
        return cls(Mode.OUT, type_code)

    @classmethod
    def inout(cls, value: Any, type_code: int = SQLType.OTHER) -> "Param":
        return cls(Mode.INOUT, type_code, value)

    def bind_to(self, statement: "CallableStatement", position: int) -> None:
        """Bind this parameter to ``statement`` at the 1-based ``position``.

        Args:
            statement: The callable statement to bind to.
            position: 1-based placeholder position.
        """
        if self.mode.is_input:
            statement.set_object(position, self.value, self.type_code)
        if self.mode.is_output:
            statement.register_out_parameter(position, self.type_code)
        self._statement = statement
        self._position = position

    def get_value(self) -> Any:
        """Get the value of this parameter.

        Returns:
            For OUT and INOUT parameters bound to an executed statement, the value
            returned by the database; otherwise the value supplied at creation.
        """
        if self.mode.is_output and self._statement is not None:
            return self._statement.get_object(self._position)
        return self.value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Param):
            return NotImplemented
        return (self.mode, self.type_code, self.value) == (other.mode, other.type_code, other.value)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"Param(mode={self.mode!s}, type_code={self.type_code!r}, value={self.value!r})"


def reconcile_parameters(
    modes: "Sequence[Mode]", arg_types: "Sequence[int]", values: "Sequence[Any]", name: Optional[str] = None
) -> "list[Param]":
    """Pair signature modes and declared types with supplied values.

    Values beyond the declared arguments form a variadic tail; each one takes the mode
    and type of the last declared argument.

    Args:
        modes: Parameter modes parsed from the signature.
        arg_types: Declared type codes.
        values: Values supplied by the caller.
        name: Identity of the owning descriptor, reported on failure.

    Raises:
        SignatureArityMismatchError: If the signature and declared types disagree in count.
        UnexpectedArgumentsError: If values are supplied but no arguments are declared.
        InsufficientArgumentsError: If fewer values than declared types are supplied.

    Returns:
        One parameter per supplied value.
    """
    types_count = len(arg_types)
    values_count = len(values)
    if len(modes) != types_count:
        raise SignatureArityMismatchError(len(modes), types_count, arg_types, name)
    if values_count > 0 and types_count == 0:
        raise UnexpectedArgumentsError(name)
    if values_count < types_count:
        raise InsufficientArgumentsError(types_count, values_count, arg_types, name)

    params = [Param(modes[i], arg_types[i], values[i]) for i in range(types_count)]
    if values_count > types_count:
        mode, type_code = modes[-1], arg_types[-1]
        params.extend(Param(mode, type_code, values[i]) for i in range(types_count, values_count))
    return params


def build_call_text(name: str, parameter_count: int) -> str:
    """Build the escape-syntax call text for a stored procedure.

    Args:
        name: Procedure name.
        parameter_count: Number of bound parameters.

    Returns:
        Call text with one ``?`` placeholder per parameter, e.g. ``{call RAISE_PRICE(?,?,?)}``.
    """
    return f"{{call {name}({','.join('?' * parameter_count)})}}"


def count_placeholders(sql: str, dialect: Optional[str] = None) -> int:
    """Count the ``?`` placeholders in ``sql``.

    Placeholders inside string literals and comments are not counted.

    Args:
        sql: Query text.
        dialect: sqlglot dialect used for tokenizing.

    Raises:
        SQLParsingError: If the text cannot be tokenized.

    Returns:
        Number of positional placeholders.
    """
    try:
        tokens = sqlglot.tokenize(sql, read=dialect)
    except TokenError as e:
        msg = f"Unable to tokenize SQL: {e}"
        raise SQLParsingError(msg) from e
    return sum(1 for token in tokens if token.token_type == TokenType.PLACEHOLDER and token.text == "?")
