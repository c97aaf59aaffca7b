from typing import TYPE_CHECKING, Any, Callable, Optional, Sequence, TypeVar

from procspec.config import StatementConfig
from procspec.connection import get_scheme
from procspec.exceptions import (
    ArgumentCountMismatchError,
    ConnectionError,
    ExecutionError,
    ImproperConfigurationError,
    wrap_driver_errors,
)
from procspec.executor import execute_statement
from procspec.parameters import Param, build_call_text, count_placeholders, reconcile_parameters
from procspec.result import ResultShape, release_resources
from procspec.signature import parse_signature
from procspec.statement import CallableStatement, PreparedStatement
from procspec.utils.logging import get_logger, log_execution

if TYPE_CHECKING:
    from procspec.connection import ConnectionProvider
    from procspec.descriptors import ProcedureDescriptor, QueryDescriptor
    from procspec.result import ExecutionHandle

__all__ = ("ProcSpec",)

logger = get_logger("base")

T = TypeVar("T")


class ProcSpec:
    """Runs queries and stored procedures described by descriptors.

    Every call acquires its own connection from ``provider``, prepares one statement and
    releases everything before returning, except for handle results, which the caller
    owns and must close.

    Args:
        provider: Source of database connections.
        config: Statement binding and execution settings.
    """

    __slots__ = ("config", "provider")

    def __init__(self, provider: "ConnectionProvider", config: Optional[StatementConfig] = None) -> None:
        self.provider = provider
        self.config = config or StatementConfig()

    # -- Queries --
    def update(self, query: "QueryDescriptor", *args: Any) -> int:
        """Execute ``query`` as an update operation.

        Returns:
            Count of records updated.
        """
        return self.execute_query(ResultShape.NONE, query, *args)  # type: ignore[no-any-return]

    def get_int(self, query: "QueryDescriptor", *args: Any) -> int:
        """Execute ``query`` and read row 1 / column 1 as an integer.

        Returns:
            The value, or ``-1`` if no rows were returned.
        """
        return self.execute_query(ResultShape.INTEGER, query, *args)  # type: ignore[no-any-return]

    def get_str(self, query: "QueryDescriptor", *args: Any) -> Optional[str]:
        """Execute ``query`` and read row 1 / column 1 as a string.

        Returns:
            The value, or ``None`` if no rows were returned.
        """
        return self.execute_query(ResultShape.TEXT, query, *args)  # type: ignore[no-any-return]

    def get_handle(self, query: "QueryDescriptor", *args: Any) -> "ExecutionHandle":
        """Execute ``query`` and hand over its connection, statement and cursor.

        Close the returned handle when done with it to free the connection.
        """
        return self.execute_query(ResultShape.HANDLE, query, *args)  # type: ignore[no-any-return]

    def get_value(self, target_type: "type[T]", query: "QueryDescriptor", *args: Any) -> Optional[T]:
        """Execute ``query`` and read row 1 / column 1 converted to ``target_type``.

        Returns:
            The value, or ``None`` if no rows were returned.
        """
        return self.execute_query(ResultShape.typed(target_type), query, *args)  # type: ignore[no-any-return]

    def execute_query(self, shape: ResultShape, query: "QueryDescriptor", *args: Any) -> Any:
        """Validate the arguments for ``query`` and execute it.

        Args:
            shape: Requested result shape.
            query: Query descriptor.
            *args: Values for the query's placeholders, in order.

        Raises:
            ArgumentCountMismatchError: If ``len(args)`` differs from the declared count.
                Raised before any connection is acquired.
            ImproperConfigurationError: If placeholder validation is enabled and the
                query's ``?`` count differs from its declared count.

        Returns:
            The result described by ``shape``.
        """
        expected = query.arg_count
        if len(args) != expected:
            raise ArgumentCountMismatchError(query.name, query.arg_names, expected, len(args))
        if self.config.validate_placeholders:
            placeholders = count_placeholders(query.sql, self.config.dialect)
            if placeholders != expected:
                msg = (
                    f"Placeholder count differs from declared argument count for {query.name}: "
                    f"placeholders: {placeholders}; declared: {expected}"
                )
                raise ImproperConfigurationError(msg)
        return self._execute_sql(shape, query.connection, query.sql, args, query.name)

    def execute_sql(self, shape: ResultShape, connection_string: str, sql: str, *params: Any) -> Any:
        """Execute ``sql`` with positionally bound ``params``.

        Args:
            shape: Requested result shape.
            connection_string: Database connection string.
            sql: Statement text with ``?`` placeholders.
            *params: Placeholder values, in order.

        Returns:
            The result described by ``shape``.
        """
        return self._execute_sql(shape, connection_string, sql, params, None)

    def _execute_sql(
        self,
        shape: ResultShape,
        connection_string: str,
        sql: str,
        params: "tuple[Any, ...]",
        descriptor: Optional[str],
    ) -> Any:
        def bind(statement: PreparedStatement) -> None:
            for position, value in enumerate(params, start=1):
                statement.set_object(position, value)

        def create(connection: Any) -> PreparedStatement:
            return PreparedStatement(connection, sql, self.config)

        return self._run(shape, connection_string, create, bind, descriptor)

    # -- Stored procedures --
    def call_procedure(self, shape: ResultShape, procedure: "ProcedureDescriptor", *args: Any) -> Any:
        """Execute the stored procedure described by ``procedure``.

        Arguments beyond the declared ones take the mode and type of the last declared
        argument, so a trailing parameter can describe a repeated group.

        Raises:
            InvalidSignatureError: If the signature text is malformed.
            SignatureArityMismatchError: If signature and declared types disagree in count.
            UnexpectedArgumentsError: If arguments are given to a procedure that declares none.
            InsufficientArgumentsError: If fewer arguments than declared types are given.

        Returns:
            The result described by ``shape``.
        """
        name, modes = parse_signature(procedure.signature, procedure.name)
        params = reconcile_parameters(modes, procedure.arg_types, args, procedure.name)
        call_text = build_call_text(name, len(params))
        return self._call(shape, procedure.connection, call_text, name, params, procedure.name)

    def call_procedure_by_name(
        self, shape: ResultShape, connection_string: str, procedure_name: str, *params: Any
    ) -> Any:
        """Execute the stored procedure ``procedure_name``.

        Args:
            shape: Requested result shape.
            connection_string: Database connection string.
            procedure_name: Name of the stored procedure.
            *params: :class:`Param` objects; plain values are bound as IN parameters.

        Returns:
            The result described by ``shape``.
        """
        call_text = build_call_text(procedure_name, len(params))
        return self._call(shape, connection_string, call_text, procedure_name, params, procedure_name)

    def call_procedure_text(self, shape: ResultShape, connection_string: str, call_text: str, *params: Any) -> Any:
        """Execute a stored procedure from raw call text such as ``{call RAISE_PRICE(?,?,?)}``.

        Returns:
            The result described by ``shape``.
        """
        return self._call(shape, connection_string, call_text, None, params, None)

    def _call(
        self,
        shape: ResultShape,
        connection_string: str,
        call_text: str,
        procedure_name: Optional[str],
        params: "Sequence[Any]",
        descriptor: Optional[str],
    ) -> Any:
        bound = [param if isinstance(param, Param) else Param.in_(param) for param in params]

        def bind(statement: PreparedStatement) -> None:
            for position, param in enumerate(bound, start=1):
                param.bind_to(statement, position)  # type: ignore[arg-type]

        def create(connection: Any) -> CallableStatement:
            return CallableStatement(connection, call_text, procedure_name, self.config)

        return self._run(shape, connection_string, create, bind, descriptor)

    def _run(
        self,
        shape: ResultShape,
        connection_string: str,
        create: "Callable[[Any], PreparedStatement]",
        bind: "Callable[[PreparedStatement], None]",
        descriptor: Optional[str],
    ) -> Any:
        log_execution(
            logger, "Executing statement", descriptor=descriptor, shape=shape, scheme=get_scheme(connection_string)
        )
        with wrap_driver_errors(ConnectionError, "Unable to acquire database connection"):
            connection = self.provider.acquire(connection_string)
        statement: Optional[PreparedStatement] = None
        try:
            with wrap_driver_errors(ExecutionError, "Unable to prepare statement"):
                statement = create(connection)
                bind(statement)
        except BaseException:
            release_resources(
                None,
                statement,
                connection,
                commit=self.config.commit_on_close,
                rollback=self.config.rollback_on_error,
            )
            raise
        return execute_statement(shape, connection, statement)
