"""SQL file loader producing query and stored procedure descriptors.

Queries and procedures are declared in ``.sql`` files with aiosql-style headers::

    -- name: get-rule-count(name, zone_id)
    SELECT count(*) FROM rules WHERE name = ? AND zone_id = ?

    -- name: update-user-role(role_id, user_id)
    -- connection: sqlite:///rms.db
    UPDATE users SET role_id = ? WHERE user_id = ?

    -- procedure: raise-price
    -- signature: RAISE_PRICE(>, >, =)
    -- types: VARCHAR, FLOAT, NUMERIC

Names are normalized to Python identifiers (hyphens become underscores).
"""

import hashlib
import re
from difflib import get_close_matches
from pathlib import Path
from typing import Optional, Union

from procspec.descriptors import Query, StoredProcedure
from procspec.exceptions import SQLFileNotFoundError, SQLFileParseError
from procspec.parameters import SQLType
from procspec.utils.logging import get_logger

__all__ = ("SQLFileLoader",)

logger = get_logger("loader")

BLOCK_PATTERN = re.compile(
    r"^\s*--\s*(?P<kind>name|procedure)\s*:\s*(?P<name>[\w-]+)\s*(?:\((?P<args>[^)]*)\))?\s*$",
    re.MULTILINE | re.IGNORECASE,
)
DIRECTIVE_PATTERN = re.compile(r"^\s*--\s*(?P<key>signature|types|connection)\s*:\s*(?P<value>.*?)\s*$", re.IGNORECASE)
TRIM_SPECIAL_CHARS = re.compile(r"[^\w-]")
LIST_SEPARATOR = re.compile(r"\s*,\s*")


def _normalize_name(name: str) -> str:
    return TRIM_SPECIAL_CHARS.sub("", name).replace("-", "_")


def _split_list(text: Optional[str]) -> "list[str]":
    if not text or not text.strip():
        return []
    return [item for item in LIST_SEPARATOR.split(text.strip()) if item]


def _parse_type_code(token: str) -> int:
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return SQLType[token.upper()]
    except KeyError:
        msg = f"Unknown SQL type: {token}"
        raise ValueError(msg) from None


class SQLFileLoader:
    """Loads named queries and procedures from SQL files.

    Args:
        connection: Connection string for blocks without a ``-- connection:`` directive.
        encoding: Text encoding of the SQL files.
    """

    def __init__(self, connection: Optional[str] = None, *, encoding: str = "utf-8") -> None:
        self.connection = connection
        self.encoding = encoding
        self._queries: dict[str, Query] = {}
        self._procedures: dict[str, StoredProcedure] = {}
        self._owners: dict[str, str] = {}
        self._checksums: dict[str, str] = {}

    @staticmethod
    def _strip_leading_comments(sql_text: str) -> str:
        """Remove leading comment lines from a SQL string."""
        lines = sql_text.strip().split("\n")
        for i, line in enumerate(lines):
            if line.strip() and not line.strip().startswith("--"):
                return "\n".join(lines[i:]).strip()
        return ""

    def _parse_content(self, content: str, path: str) -> "tuple[dict[str, Query], dict[str, StoredProcedure]]":
        matches = list(BLOCK_PATTERN.finditer(content))
        if not matches:
            raise SQLFileParseError(
                path, path, ValueError("No named statements found (-- name: ... or -- procedure: ...)")
            )

        queries: dict[str, Query] = {}
        procedures: dict[str, StoredProcedure] = {}
        for i, match in enumerate(matches):
            name = _normalize_name(match.group("name"))
            if name in queries or name in procedures:
                raise SQLFileParseError(path, path, ValueError(f"Duplicate statement name: {match.group('name')}"))
            end = matches[i + 1].start() if i + 1 < len(matches) else len(content)
            section = content[match.end() : end]

            directives: dict[str, str] = {}
            for line in section.strip().splitlines():
                directive = DIRECTIVE_PATTERN.match(line)
                if directive is None:
                    break
                directives[directive.group("key").lower()] = directive.group("value")

            connection = directives.get("connection") or self.connection
            if not connection:
                raise SQLFileParseError(path, path, ValueError(f"No connection configured for {name}"))

            if match.group("kind").lower() == "name":
                sql = self._strip_leading_comments(section)
                if not sql:
                    raise SQLFileParseError(path, path, ValueError(f"Query {name} has no SQL"))
                queries[name] = Query(name, sql, connection, tuple(_split_list(match.group("args"))))
                continue

            signature = directives.get("signature")
            if not signature:
                raise SQLFileParseError(path, path, ValueError(f"Procedure {name} has no -- signature: line"))
            try:
                arg_types = tuple(_parse_type_code(token) for token in _split_list(directives.get("types")))
            except ValueError as e:
                raise SQLFileParseError(path, path, e) from e
            procedures[name] = StoredProcedure(name, signature, connection, arg_types)
        return queries, procedures

    def load_sql(self, *paths: Union[str, Path]) -> None:
        """Load SQL files, or every ``.sql`` file below the given directories.

        Files whose content is unchanged since the previous load are skipped.

        Raises:
            SQLFileNotFoundError: If a path does not exist.
            SQLFileParseError: If a file cannot be parsed or redefines a name from another file.
        """
        for raw_path in paths:
            path = Path(raw_path)
            if path.is_dir():
                for file_path in sorted(path.rglob("*.sql")):
                    self._load_file(file_path)
            elif path.is_file():
                self._load_file(path)
            else:
                raise SQLFileNotFoundError(str(raw_path), path=str(path))

    def _load_file(self, path: Path) -> None:
        path_str = str(path)
        try:
            content = path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise SQLFileParseError(path.name, path_str, e) from e

        checksum = hashlib.md5(content.encode(self.encoding), usedforsecurity=False).hexdigest()
        if self._checksums.get(path_str) == checksum:
            logger.debug("Skipping unchanged SQL file %s", path_str)
            return

        queries, procedures = self._parse_content(content, path_str)
        for name in (*queries, *procedures):
            owner = self._owners.get(name)
            if owner is not None and owner != path_str:
                raise SQLFileParseError(path.name, path_str, ValueError(f"{name} is already defined in {owner}"))

        self._forget_file(path_str)
        self._queries.update(queries)
        self._procedures.update(procedures)
        self._owners.update(dict.fromkeys((*queries, *procedures), path_str))
        self._checksums[path_str] = checksum
        logger.debug("Loaded %d queries and %d procedures from %s", len(queries), len(procedures), path_str)

    def _forget_file(self, path_str: str) -> None:
        for name in [name for name, owner in self._owners.items() if owner == path_str]:
            self._queries.pop(name, None)
            self._procedures.pop(name, None)
            del self._owners[name]

    def add_named_sql(self, name: str, sql: str, *arg_names: str, connection: Optional[str] = None) -> Query:
        """Register a query directly.

        Raises:
            ValueError: If the name is taken or no connection is available.
        """
        safe_name = _normalize_name(name)
        if safe_name in self._owners:
            msg = f"Statement '{name}' already exists"
            raise ValueError(msg)
        connection = connection or self.connection
        if not connection:
            msg = f"No connection configured for {name}"
            raise ValueError(msg)
        query = Query(safe_name, sql.strip(), connection, arg_names)
        self._queries[safe_name] = query
        self._owners[safe_name] = "<directly added>"
        return query

    def _not_found(self, name: str, available: "list[str]") -> SQLFileNotFoundError:
        message = f"Statement '{name}' not found. Available statements: {', '.join(sorted(available)) or 'none'}"
        suggestions = get_close_matches(name, available, n=3, cutoff=0.6)
        if suggestions:
            message += f". Did you mean: {', '.join(suggestions)}?"
        return SQLFileNotFoundError(name, path=message)

    def get_query(self, name: str) -> Query:
        """Get a loaded query by name.

        Raises:
            SQLFileNotFoundError: If no query has that name.
        """
        safe_name = _normalize_name(name)
        if safe_name not in self._queries:
            raise self._not_found(name, list(self._queries))
        return self._queries[safe_name]

    def get_procedure(self, name: str) -> StoredProcedure:
        """Get a loaded stored procedure by name.

        Raises:
            SQLFileNotFoundError: If no procedure has that name.
        """
        safe_name = _normalize_name(name)
        if safe_name not in self._procedures:
            raise self._not_found(name, list(self._procedures))
        return self._procedures[safe_name]

    def has_query(self, name: str) -> bool:
        return _normalize_name(name) in self._queries

    def has_procedure(self, name: str) -> bool:
        return _normalize_name(name) in self._procedures

    def list_queries(self) -> "list[str]":
        return sorted(self._queries)

    def list_procedures(self) -> "list[str]":
        return sorted(self._procedures)

    def clear_cache(self) -> None:
        self._queries.clear()
        self._procedures.clear()
        self._owners.clear()
        self._checksums.clear()
