"""procspec: declarative SQL query and stored procedure execution."""

from procspec import adapters, base, connection, descriptors, exceptions, loader, parameters, signature, utils
from procspec.__metadata__ import __version__
from procspec.adapters.sqlite import SqliteConnectionProvider
from procspec.base import ProcSpec
from procspec.config import StatementConfig
from procspec.connection import ConnectionProvider, ConnectionRegistry, DBAPIConnectionProvider
from procspec.descriptors import (
    ProcedureCatalog,
    ProcedureDescriptor,
    Query,
    QueryCatalog,
    QueryDescriptor,
    StoredProcedure,
)
from procspec.exceptions import (
    ArgumentCountMismatchError,
    ConnectionError,
    ExecutionError,
    ImproperConfigurationError,
    InsufficientArgumentsError,
    InvalidSignatureError,
    InvalidStateError,
    ParameterError,
    ProcSpecError,
    SignatureArityMismatchError,
    UnexpectedArgumentsError,
)
from procspec.loader import SQLFileLoader
from procspec.parameters import Param, SQLType
from procspec.result import ExecutionHandle, ResultKind, ResultShape
from procspec.signature import Mode, ParsedSignature, parse_signature
from procspec.statement import CallableStatement, PreparedStatement, ResultCursor

__all__ = (
    "ArgumentCountMismatchError",
    "CallableStatement",
    "ConnectionError",
    "ConnectionProvider",
    "ConnectionRegistry",
    "DBAPIConnectionProvider",
    "ExecutionError",
    "ExecutionHandle",
    "ImproperConfigurationError",
    "InsufficientArgumentsError",
    "InvalidSignatureError",
    "InvalidStateError",
    "Mode",
    "Param",
    "ParameterError",
    "ParsedSignature",
    "PreparedStatement",
    "ProcSpec",
    "ProcSpecError",
    "ProcedureCatalog",
    "ProcedureDescriptor",
    "Query",
    "QueryCatalog",
    "QueryDescriptor",
    "ResultCursor",
    "ResultKind",
    "ResultShape",
    "SQLFileLoader",
    "SQLType",
    "SignatureArityMismatchError",
    "SqliteConnectionProvider",
    "StatementConfig",
    "StoredProcedure",
    "UnexpectedArgumentsError",
    "__version__",
    "adapters",
    "base",
    "connection",
    "descriptors",
    "exceptions",
    "loader",
    "parameters",
    "parse_signature",
    "signature",
    "utils",
)
