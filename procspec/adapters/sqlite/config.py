"""SQLite connection provider built on the standard library driver."""

import datetime
import sqlite3
from decimal import Decimal
from typing import Any, Callable, TypedDict, cast
from urllib.parse import urlsplit

from typing_extensions import NotRequired

from procspec.config import StatementConfig
from procspec.exceptions import ConnectionError, wrap_driver_errors
from procspec.utils.logging import get_logger
from procspec.utils.serializers import to_json

__all__ = (
    "SqliteConnectionParams",
    "SqliteConnectionProvider",
    "parse_sqlite_url",
    "sqlite_statement_config",
    "sqlite_type_coercion_map",
)

logger = get_logger("adapters.sqlite")

MEMORY_DATABASE = ":memory:"


def sqlite_type_coercion_map() -> "dict[type, Callable[[Any], Any]]":
    """Input coercions for values ``sqlite3`` cannot bind natively.

    Returns:
        Mapping of Python type to a callable producing a storable value.
    """
    return {
        bool: int,
        datetime.datetime: lambda v: v.isoformat(),
        datetime.date: lambda v: v.isoformat(),
        Decimal: str,
        dict: to_json,
        list: to_json,
        tuple: lambda v: to_json(list(v)),
    }


def sqlite_statement_config(**overrides: Any) -> StatementConfig:
    """Build a statement configuration with the SQLite coercion preset.

    Args:
        **overrides: Other :class:`StatementConfig` fields.

    Returns:
        A new configuration; ``type_coercion_map`` defaults to :func:`sqlite_type_coercion_map`.
    """
    overrides.setdefault("type_coercion_map", sqlite_type_coercion_map())
    return StatementConfig(**overrides)


class SqliteConnectionParams(TypedDict, total=False):
    """SQLite connection parameters."""

    timeout: NotRequired[float]
    detect_types: NotRequired[int]
    isolation_level: "NotRequired[str | None]"
    check_same_thread: NotRequired[bool]
    factory: "NotRequired[type[sqlite3.Connection] | None]"
    cached_statements: NotRequired[int]
    uri: NotRequired[bool]


def parse_sqlite_url(connection_string: str) -> "tuple[str, bool]":
    """Translate a connection string into ``sqlite3.connect`` arguments.

    Accepted forms::

        sqlite://:memory:          in-memory database
        sqlite:///relative/app.db  path relative to the working directory
        sqlite:////var/db/app.db   absolute path
        sqlite:///app.db?mode=ro   passed on as a ``file:`` URI
        file:app.db?mode=ro        SQLite URI
        app.db                     plain path

    Args:
        connection_string: The connection string to translate.

    Returns:
        The database argument and whether it must be opened in URI mode.
    """
    if connection_string.startswith("file:"):
        return connection_string, True
    if not connection_string.lower().startswith("sqlite:"):
        return connection_string, False

    parts = urlsplit(connection_string)
    if parts.netloc == MEMORY_DATABASE or parts.path in {"", "/", f"/{MEMORY_DATABASE}"}:
        database = MEMORY_DATABASE
    else:
        # sqlite:///app.db -> "app.db", sqlite:////abs/app.db -> "/abs/app.db"
        database = parts.path[1:]
    if parts.query:
        return f"file:{database}?{parts.query}", True
    return database, False


class SqliteConnectionProvider:
    """Opens a new ``sqlite3`` connection per call.

    Args:
        connection_params: Keyword arguments for ``sqlite3.connect``.
    """

    __slots__ = ("connection_params",)

    def __init__(self, connection_params: "SqliteConnectionParams | dict[str, Any] | None" = None) -> None:
        self.connection_params = cast("dict[str, Any]", dict(connection_params or {}))

    def acquire(self, connection_string: str) -> sqlite3.Connection:
        database, uri = parse_sqlite_url(connection_string)
        params = {**self.connection_params}
        if uri:
            params["uri"] = True
        if database == MEMORY_DATABASE:
            logger.debug("Opening private in-memory SQLite database")
        with wrap_driver_errors(ConnectionError, f"Unable to open SQLite database {database!r}"):
            return sqlite3.connect(database, **params)
