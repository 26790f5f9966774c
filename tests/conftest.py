"""
Shared test fixtures.
"""

import os
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent.parent
sys.path.insert(0, str(root_dir))

# Settings require these before config is imported
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_KEY", "test-anon-key")

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator

# Modules that call get_supabase_client() when their service is built
DB_SERVICE_MODULES = [
    "services.label_service",
    "services.client_order_service",
    "services.client_service",
]


# ===================
# MOCK SUPABASE CLIENT
# ===================

def _resolve(row: dict, column: str):
    """Read a column, following ->> JSON paths the way PostgREST does."""
    if "->>" not in column:
        return row.get(column)
    base, key = column.split("->>", 1)
    value = (row.get(base) or {}).get(key)
    if isinstance(value, bool):
        return "true" if value else "false"
    return None if value is None else str(value)


class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data=None, count: int = None):
        self.data = data if data is not None else []
        self.count = count if count is not None else (len(self.data) if isinstance(self.data, list) else 1)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters are collected and applied on execute(), so update(...).eq(...)
    only touches matching rows.
    """

    def __init__(self, table: "MockSupabaseTable", operation: str, payload=None):
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._range = None
        self._is_single = False

    # Filters
    def eq(self, column, value):
        self._filters.append(lambda row: _resolve(row, column) == value)
        return self

    def neq(self, column, value):
        self._filters.append(lambda row: _resolve(row, column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self._filters.append(lambda row: _resolve(row, column) in values)
        return self

    def gte(self, column, value):
        self._filters.append(lambda row: _resolve(row, column) is not None and str(_resolve(row, column)) >= value)
        return self

    def lte(self, column, value):
        self._filters.append(lambda row: _resolve(row, column) is not None and str(_resolve(row, column)) <= value)
        return self

    def lt(self, column, value):
        self._filters.append(lambda row: _resolve(row, column) is not None and str(_resolve(row, column)) < value)
        return self

    # Modifiers
    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._range = (0, count - 1)
        return self

    def _matching(self) -> list:
        return [row for row in self._table.rows if all(f(row) for f in self._filters)]

    def execute(self) -> MockSupabaseResponse:
        if self._operation == "insert":
            return MockSupabaseResponse(data=self._table.add(self._payload))

        if self._operation == "update":
            updated = []
            for row in self._matching():
                row.update(self._payload)
                row["updated_at"] = self._payload.get("updated_at") or datetime.utcnow().isoformat() + "Z"
                updated.append(dict(row))
            self._table.updates.append(dict(self._payload))
            return MockSupabaseResponse(data=updated)

        rows = [dict(row) for row in self._matching()]
        count = self._table.count if self._table.count is not None else len(rows)

        if self._is_single:
            return MockSupabaseResponse(data=rows[0] if rows else None, count=1 if rows else 0)

        if self._range is not None:
            start, end = self._range
            rows = rows[start:end + 1]

        return MockSupabaseResponse(data=rows, count=count)


class MockSupabaseTable:
    """In-memory table that records inserts and updates."""

    def __init__(self, data: list = None, count: int = None):
        self.rows = [dict(row) for row in (data or [])]
        self.count = count
        self.inserts = []
        self.updates = []
        self._next_id = 1

    def add(self, data) -> list:
        records = data if isinstance(data, list) else [data]
        created = []
        for record in records:
            row = dict(record)
            if "id" not in row:
                row["id"] = f"test-uuid-{self._next_id}"
                self._next_id += 1
            now = datetime.utcnow().isoformat() + "Z"
            row.setdefault("created_at", now)
            row.setdefault("updated_at", now)
            self.rows.append(row)
            self.inserts.append(dict(row))
            created.append(dict(row))
        return created

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self, "select")

    def insert(self, data):
        return MockSupabaseQuery(self, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self, "update", data)


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = MockSupabaseTable(data, count)

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table (created empty on first use)."""
        if name not in self._tables:
            self._tables[name] = MockSupabaseTable()
        return self._tables[name]

    def rows(self, table_name: str) -> list:
        return self.table(table_name).rows

    def inserts(self, table_name: str) -> list:
        return self.table(table_name).inserts

    def updates(self, table_name: str) -> list:
        return self.table(table_name).updates


# ===================
# FIXTURES
# ===================

@pytest.fixture(autouse=True)
def reset_service_singletons():
    """Services are cached per process; each test gets fresh ones."""
    import services.label_service as label_service
    import services.client_order_service as client_order_service
    import services.client_service as client_service

    label_service._label_service = None
    client_order_service._client_order_service = None
    client_service._client_service = None
    yield
    label_service._label_service = None
    client_order_service._client_order_service = None
    client_service._client_service = None


@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("labels", [
                LabelFactory.create(...)
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("client_orders", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.label_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.client_order_service.get_supabase_client", return_value=mock_supabase):
                with patch("services.client_service.get_supabase_client", return_value=mock_supabase):
                    yield mock_supabase


@pytest.fixture
def store_actor():
    from models.base import Actor
    return Actor(id="store-user-1", name="Green Leaf Owner", email="owner@greenleaf.test", user_type="store")


@pytest.fixture
def admin_actor():
    from models.base import Actor
    return Actor(id="admin-1", name="Ops Admin", email="ops@example.com", user_type="admin")


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("labels", [...])
            response = test_client_with_mock_db.get("/api/labels")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
