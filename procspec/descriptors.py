"""Query and stored procedure descriptors.

A descriptor tells the runner everything it needs to execute a statement: the text or
signature, the arguments, and the connection string. Any object with the right
attributes works; :class:`Query` and :class:`StoredProcedure` are plain records and
:class:`QueryCatalog` / :class:`ProcedureCatalog` turn an enum into a collection of them::

    class RuleQueries(QueryCatalog):
        GET_RULE_COUNT = ("SELECT count(*) FROM rules WHERE name = ? AND zone_id = ?", "name", "zone_id")
        UPDATE_USER_ROLE = ("UPDATE users SET role_id = ? WHERE user_id = ?", "role_id", "user_id")

        @property
        def connection(self) -> str:
            return settings.rules_database
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable

__all__ = (
    "ProcedureCatalog",
    "ProcedureDescriptor",
    "Query",
    "QueryCatalog",
    "QueryDescriptor",
    "StoredProcedure",
)


@runtime_checkable
class QueryDescriptor(Protocol):
    """Describes a SQL statement with ``?`` placeholders."""

    @property
    def name(self) -> str: ...  # pragma: no cover

    @property
    def sql(self) -> str: ...  # pragma: no cover

    @property
    def arg_names(self) -> "Sequence[str]": ...  # pragma: no cover

    @property
    def arg_count(self) -> int: ...  # pragma: no cover

    @property
    def connection(self) -> str: ...  # pragma: no cover


@runtime_checkable
class ProcedureDescriptor(Protocol):
    """Describes a stored procedure by signature and declared argument type codes."""

    @property
    def name(self) -> str: ...  # pragma: no cover

    @property
    def signature(self) -> str: ...  # pragma: no cover

    @property
    def arg_types(self) -> "Sequence[int]": ...  # pragma: no cover

    @property
    def arg_count(self) -> int: ...  # pragma: no cover

    @property
    def connection(self) -> str: ...  # pragma: no cover


@dataclass(frozen=True)
class Query:
    name: str
    sql: str
    connection: str
    arg_names: "tuple[str, ...]" = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "arg_names", tuple(self.arg_names))

    @property
    def arg_count(self) -> int:
        return len(self.arg_names)


@dataclass(frozen=True)
class StoredProcedure:
    name: str
    signature: str
    connection: str
    arg_types: "tuple[int, ...]" = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "arg_types", tuple(int(code) for code in self.arg_types))

    @property
    def arg_count(self) -> int:
        return len(self.arg_types)


class QueryCatalog(Enum):
    """Base enum for query collections.

    Each member's value is ``(sql, *arg_names)`` or just ``sql``. Subclasses provide
    the ``connection`` property.
    """

    def __init__(self, sql: str, *arg_names: str) -> None:
        self.sql = sql
        self.arg_names = tuple(arg_names)

    @property
    def arg_count(self) -> int:
        return len(self.arg_names)

    @property
    def connection(self) -> str:
        msg = f"{type(self).__name__} must define the 'connection' property"
        raise NotImplementedError(msg)


class ProcedureCatalog(Enum):
    """Base enum for stored procedure collections.

    Each member's value is ``(signature, *arg_types)`` or just ``signature``.
    Subclasses provide the ``connection`` property.
    """

    def __init__(self, signature: str, *arg_types: int) -> None:
        self.signature = signature
        self.arg_types = tuple(int(code) for code in arg_types)

    @property
    def arg_count(self) -> int:
        return len(self.arg_types)

    @property
    def connection(self) -> str:
        msg = f"{type(self).__name__} must define the 'connection' property"
        raise NotImplementedError(msg)
