"""Result shapes and ownership of execution resources."""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from procspec.exceptions import ImproperConfigurationError, InvalidStateError
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from procspec.statement import PreparedStatement, ResultCursor

__all__ = ("ExecutionHandle", "ResultKind", "ResultShape", "release_resources")

logger = get_logger("result")


class ResultKind(str, Enum):
    NONE = "none"
    HANDLE = "handle"
    INTEGER = "integer"
    TEXT = "text"
    TYPED = "typed"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ResultShape:
    """The result a caller wants back from executing a statement.

    ``NONE``
        Run as an update; the affected-row count is returned.
    ``HANDLE``
        Return the retained :class:`ExecutionHandle`; the caller must close it.
    ``INTEGER``
        Row 1 / column 1 as ``int``; ``-1`` when no row is produced.
    ``TEXT``
        Row 1 / column 1 as ``str``; ``None`` when no row is produced.
    ``typed(t)``
        Row 1 / column 1 converted to ``t``; ``None`` when no row is produced.
    """

    kind: ResultKind
    target_type: Optional[type] = None

    NONE: ClassVar["ResultShape"]
    HANDLE: ClassVar["ResultShape"]
    INTEGER: ClassVar["ResultShape"]
    TEXT: ClassVar["ResultShape"]

    def __post_init__(self) -> None:
        if (self.kind is ResultKind.TYPED) != (self.target_type is not None):
            msg = f"A target type is required for {ResultKind.TYPED} results and only for them"
            raise ImproperConfigurationError(msg)

    @classmethod
    def typed(cls, target_type: type) -> "ResultShape":
        return cls(ResultKind.TYPED, target_type)

    @property
    def retains_resources(self) -> bool:
        return self.kind is ResultKind.HANDLE

    def __str__(self) -> str:
        if self.target_type is not None:
            return f"{self.kind}[{self.target_type.__name__}]"
        return str(self.kind)


ResultShape.NONE = ResultShape(ResultKind.NONE)
ResultShape.HANDLE = ResultShape(ResultKind.HANDLE)
ResultShape.INTEGER = ResultShape(ResultKind.INTEGER)
ResultShape.TEXT = ResultShape(ResultKind.TEXT)


def _close_quietly(action: "Callable[[], Any]", resource: str) -> None:
    try:
        action()
    except Exception:
        logger.debug("Suppressed failure while releasing %s", resource, exc_info=True)


def release_resources(
    cursor: "Optional[ResultCursor]",
    statement: "Optional[PreparedStatement]",
    connection: Any,
    *,
    commit: bool = True,
    rollback: bool = False,
) -> None:
    """Release execution resources in order, ignoring failures.

    The cursor is closed first, then the statement; the connection is committed (or
    rolled back) and closed last. Each step is guarded independently so one failure
    never prevents the following steps.

    Args:
        cursor: Result cursor to close, if one was produced.
        statement: Statement to close, if one was prepared.
        connection: Connection to finish and close, if one was acquired.
        commit: Commit the connection before closing it.
        rollback: Roll back instead of committing, for callers that opted into rollback on failure.
    """
    if cursor is not None:
        _close_quietly(cursor.close, "cursor")
    if statement is not None:
        _close_quietly(statement.close, "statement")
    if connection is not None:
        if rollback:
            _close_quietly(connection.rollback, "connection rollback")
        elif commit:
            _close_quietly(connection.commit, "connection commit")
        _close_quietly(connection.close, "connection")


class ExecutionHandle:
    """The connection, statement and result cursor of a retained execution.

    Ownership of all three belongs to the caller, who must close the handle. The
    handle is a context manager::

        with runner.get_handle(Queries.GET_RULES) as handle:
            for row in handle.cursor:
                ...
    """

    __slots__ = ("_commit", "_connection", "_cursor", "_statement")

    def __init__(
        self, connection: Any, statement: "PreparedStatement", cursor: "ResultCursor", *, commit: bool = True
    ) -> None:
        self._connection = connection
        self._statement: Optional[PreparedStatement] = statement
        self._cursor: Optional[ResultCursor] = cursor
        self._commit = commit

    @property
    def cursor(self) -> "ResultCursor":
        """Get the result cursor of this handle.

        Raises:
            InvalidStateError: If the handle has been closed.
        """
        if self._cursor is None:
            msg = "The result cursor of this handle has been closed"
            raise InvalidStateError(msg)
        return self._cursor

    @property
    def statement(self) -> "Optional[PreparedStatement]":
        return self._statement

    @property
    def connection(self) -> Any:
        return self._connection

    @property
    def closed(self) -> bool:
        return self._cursor is None and self._statement is None and self._connection is None

    def close(self) -> None:
        """Release the cursor, statement and connection.

        Calling ``close`` again is a no-op.
        """
        cursor, self._cursor = self._cursor, None
        statement, self._statement = self._statement, None
        connection, self._connection = self._connection, None
        release_resources(cursor, statement, connection, commit=self._commit)

    def __enter__(self) -> "Self":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ExecutionHandle(closed={self.closed})"
