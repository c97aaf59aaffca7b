from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

here = Path(__file__).parent
root_path = here.parent


class CountingProvider:
    """Connection provider stub that records every acquisition."""

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self.calls: list[str] = []

    def acquire(self, connection_string: str) -> Any:
        self.calls.append(connection_string)
        return self.connection


@pytest.fixture
def mock_cursor() -> MagicMock:
    """Create a DB-API cursor stub producing no rows."""
    cursor = MagicMock()
    cursor.execute.return_value = cursor
    cursor.fetchone.return_value = None
    cursor.fetchall.return_value = []
    cursor.rowcount = 0
    cursor.description = None
    cursor.callproc.side_effect = lambda name, params: list(params)
    return cursor


@pytest.fixture
def mock_connection(mock_cursor: MagicMock) -> MagicMock:
    """Create a DB-API connection stub handing out ``mock_cursor``."""
    connection = MagicMock()
    connection.cursor.return_value = mock_cursor
    return connection


@pytest.fixture
def provider(mock_connection: MagicMock) -> CountingProvider:
    return CountingProvider(mock_connection)
