"""Tests for loading query and procedure descriptors from SQL files."""

from pathlib import Path

import pytest

from procspec.descriptors import Query, StoredProcedure
from procspec.exceptions import SQLFileNotFoundError, SQLFileParseError
from procspec.loader import SQLFileLoader
from procspec.parameters import SQLType

RULES_SQL = """
-- name: get-rule-count(name, zone_id)
-- Count rules in a zone.
SELECT count(*) FROM rules WHERE name = ? AND zone_id = ?;

-- name: update-user-role(role_id, user_id)
-- connection: sqlite:///users.db
UPDATE users SET role_id = ? WHERE user_id = ?

-- name: list-rules
SELECT name FROM rules

-- procedure: raise-price
-- signature: RAISE_PRICE(>, >, =)
-- types: VARCHAR, float, 2
"""


@pytest.fixture
def rules_file(tmp_path: Path) -> Path:
    path = tmp_path / "rules.sql"
    path.write_text(RULES_SQL, encoding="utf-8")
    return path


def test_load_queries_and_procedures(rules_file: Path) -> None:
    loader = SQLFileLoader("sqlite:///rules.db")
    loader.load_sql(rules_file)

    assert loader.list_queries() == ["get_rule_count", "list_rules", "update_user_role"]
    assert loader.list_procedures() == ["raise_price"]

    query = loader.get_query("get-rule-count")
    assert query == Query(
        "get_rule_count", "SELECT count(*) FROM rules WHERE name = ? AND zone_id = ?;", "sqlite:///rules.db",
        ("name", "zone_id"),
    )
    assert loader.get_query("update_user_role").connection == "sqlite:///users.db"
    assert loader.get_query("list_rules").arg_count == 0

    procedure = loader.get_procedure("raise-price")
    assert procedure == StoredProcedure(
        "raise_price", "RAISE_PRICE(>, >, =)", "sqlite:///rules.db",
        (SQLType.VARCHAR, SQLType.FLOAT, SQLType.NUMERIC),
    )


def test_load_directory(tmp_path: Path) -> None:
    (tmp_path / "nested").mkdir()
    (tmp_path / "a.sql").write_text("-- name: first\nSELECT 1\n", encoding="utf-8")
    (tmp_path / "nested" / "b.sql").write_text("-- name: second\nSELECT 2\n", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("-- name: ignored\nSELECT 3\n", encoding="utf-8")

    loader = SQLFileLoader("sqlite://:memory:")
    loader.load_sql(tmp_path)

    assert loader.list_queries() == ["first", "second"]
    assert loader.has_query("second")
    assert not loader.has_query("ignored")


def test_reload_replaces_changed_file(tmp_path: Path) -> None:
    path = tmp_path / "q.sql"
    path.write_text("-- name: old\nSELECT 1\n", encoding="utf-8")
    loader = SQLFileLoader("sqlite://:memory:")
    loader.load_sql(path)
    loader.load_sql(path)

    path.write_text("-- name: new\nSELECT 2\n", encoding="utf-8")
    loader.load_sql(path)

    assert loader.list_queries() == ["new"]


def test_duplicate_across_files(tmp_path: Path) -> None:
    (tmp_path / "a.sql").write_text("-- name: same\nSELECT 1\n", encoding="utf-8")
    (tmp_path / "b.sql").write_text("-- name: same\nSELECT 2\n", encoding="utf-8")
    loader = SQLFileLoader("sqlite://:memory:")

    with pytest.raises(SQLFileParseError, match="already defined"):
        loader.load_sql(tmp_path)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("SELECT 1\n", "No named statements found"),
        ("-- name: a\nSELECT 1\n-- name: a\nSELECT 2\n", "Duplicate statement name"),
        ("-- name: empty\n-- only a comment\n", "has no SQL"),
        ("-- procedure: p\n-- types: INTEGER\n", "has no -- signature: line"),
        ("-- procedure: p\n-- signature: P(>)\n-- types: NOT_A_TYPE\n", "Unknown SQL type: NOT_A_TYPE"),
    ],
)
def test_parse_errors(tmp_path: Path, content: str, message: str) -> None:
    path = tmp_path / "bad.sql"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(SQLFileParseError, match=message):
        SQLFileLoader("sqlite://:memory:").load_sql(path)


def test_connection_is_required(rules_file: Path) -> None:
    with pytest.raises(SQLFileParseError, match="No connection configured for get_rule_count"):
        SQLFileLoader().load_sql(rules_file)


def test_missing_path(tmp_path: Path) -> None:
    with pytest.raises(SQLFileNotFoundError):
        SQLFileLoader("sqlite://:memory:").load_sql(tmp_path / "absent.sql")


def test_lookup_suggests_close_matches(rules_file: Path) -> None:
    loader = SQLFileLoader("sqlite:///rules.db")
    loader.load_sql(rules_file)

    with pytest.raises(SQLFileNotFoundError, match="Did you mean: get_rule_count"):
        loader.get_query("get_rule_cnt")
    with pytest.raises(SQLFileNotFoundError):
        loader.get_procedure("get_rule_count")


def test_add_named_sql() -> None:
    loader = SQLFileLoader("sqlite://:memory:")

    query = loader.add_named_sql("find-user", "  SELECT * FROM users WHERE id = ?  ", "id")

    assert query == Query("find_user", "SELECT * FROM users WHERE id = ?", "sqlite://:memory:", ("id",))
    assert loader.get_query("find_user") is query
    with pytest.raises(ValueError, match="already exists"):
        loader.add_named_sql("find_user", "SELECT 1")
    with pytest.raises(ValueError, match="No connection configured"):
        SQLFileLoader().add_named_sql("other", "SELECT 1")


def test_clear_cache(rules_file: Path) -> None:
    loader = SQLFileLoader("sqlite:///rules.db")
    loader.load_sql(rules_file)

    loader.clear_cache()

    assert loader.list_queries() == []
    assert loader.list_procedures() == []
    loader.load_sql(rules_file)
    assert loader.has_procedure("raise_price")
