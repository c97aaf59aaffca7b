from procspec.adapters.sqlite.config import (
    SqliteConnectionParams,
    SqliteConnectionProvider,
    parse_sqlite_url,
    sqlite_statement_config,
    sqlite_type_coercion_map,
)

__all__ = (
    "SqliteConnectionParams",
    "SqliteConnectionProvider",
    "parse_sqlite_url",
    "sqlite_statement_config",
    "sqlite_type_coercion_map",
)
