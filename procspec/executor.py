"""Statement execution with result-shape dispatch and resource release."""

from typing import TYPE_CHECKING, Any

from procspec.exceptions import ExecutionError, wrap_driver_errors
from procspec.result import ExecutionHandle, ResultKind, ResultShape, release_resources

if TYPE_CHECKING:
    from procspec.statement import PreparedStatement, ResultCursor

__all__ = ("execute_statement", "read_first_column")


def read_first_column(shape: ResultShape, cursor: "ResultCursor") -> Any:
    """Read row 1 / column 1 from ``cursor`` according to ``shape``.

    Args:
        shape: An ``INTEGER``, ``TEXT`` or typed result shape.
        cursor: Result cursor positioned before the first row.

    Returns:
        The coerced value, or ``-1`` (``INTEGER``) / ``None`` (others) when there are no rows.
    """
    has_row = cursor.next()
    if shape.kind is ResultKind.INTEGER:
        return cursor.get_int(1) if has_row else -1
    if shape.kind is ResultKind.TEXT:
        return cursor.get_string(1) if has_row else None
    return cursor.get_object(1, shape.target_type) if has_row else None


def execute_statement(shape: ResultShape, connection: Any, statement: "PreparedStatement") -> Any:
    """Execute ``statement`` and produce the result described by ``shape``.

    Unless ``shape`` retains resources, the result cursor, statement and connection are
    released before returning, whether or not execution succeeded. The connection is
    committed before it is closed, also after a failure unless the statement config
    asks for ``rollback_on_error``. Release failures are suppressed and never replace
    an execution error.

    Args:
        shape: Requested result shape.
        connection: Connection the statement was prepared on.
        statement: Prepared or callable statement with its parameters bound.

    Raises:
        ExecutionError: If executing the statement or reading its result fails.

    Returns:
        The affected-row count for ``NONE``, an :class:`ExecutionHandle` for ``HANDLE``,
        otherwise the coerced row 1 / column 1 value.
    """
    cursor = None
    retained = False
    failed = True
    try:
        with wrap_driver_errors(ExecutionError, "Statement execution failed"):
            if shape.kind is ResultKind.NONE:
                result = statement.execute_update()
            else:
                cursor = statement.execute_query()
                if shape.retains_resources:
                    result = ExecutionHandle(connection, statement, cursor, commit=statement.config.commit_on_close)
                    retained = True
                else:
                    result = read_first_column(shape, cursor)
        failed = False
        return result
    finally:
        if not retained:
            config = statement.config
            release_resources(
                cursor,
                statement,
                connection,
                commit=config.commit_on_close,
                rollback=failed and config.rollback_on_error,
            )
