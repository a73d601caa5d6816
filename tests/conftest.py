"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from datetime import datetime

from config.settings import Settings
from models.imports import ImportOptions
from services.export_service import ExportService, default_registry
from services.import_service import ImportService
from services.product_store import InMemoryProductStore

# ===================
# MOCK SUPABASE CLIENT
# ===================

class MockSupabaseResponse:
    """Mock Supabase query response."""

    def __init__(self, data: list = None, count: int = None):
        self.data = data or []
        self.count = count if count is not None else len(self.data)


class MockSupabaseQuery:
    """
    Mock Supabase query builder with chainable methods.

    Filters are recorded in `calls` but not applied: the configured table
    data comes back as-is.
    """

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self._is_single = False
        self.calls = calls if calls is not None else []

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        return self

    def select(self, *args, **kwargs):
        return self._record("select", *args, **kwargs)

    def insert(self, data):
        # Simulate insert - add id and timestamps
        self._record("insert", data)
        if isinstance(data, dict):
            data = [data]
        rows = []
        for item in data:
            item = dict(item)
            item.setdefault("id", "test-uuid-123")
            item["created_at"] = datetime.utcnow().isoformat() + "Z"
            item["updated_at"] = datetime.utcnow().isoformat() + "Z"
            rows.append(item)
        self._data = rows
        return self

    def update(self, data):
        # Simulate update - merge with existing data
        self._record("update", data)
        updated_data = []
        for item in self._data:
            merged = {**item, **data}
            merged["updated_at"] = datetime.utcnow().isoformat() + "Z"
            updated_data.append(merged)
        self._data = updated_data
        return self

    def delete(self):
        return self._record("delete")

    def eq(self, column, value):
        return self._record("eq", column, value)

    def neq(self, column, value):
        return self._record("neq", column, value)

    def gt(self, column, value):
        return self._record("gt", column, value)

    def gte(self, column, value):
        return self._record("gte", column, value)

    def lte(self, column, value):
        return self._record("lte", column, value)

    def ilike(self, column, pattern):
        return self._record("ilike", column, pattern)

    def in_(self, column, values):
        return self._record("in_", column, values)

    def or_(self, filters):
        return self._record("or_", filters)

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self._record("order", column, **kwargs)

    def range(self, start, end):
        return self

    def limit(self, count):
        return self._record("limit", count)

    def execute(self) -> MockSupabaseResponse:
        if self._is_single:
            # Return first item or empty for single()
            data = self._data[0] if self._data else None
            return MockSupabaseResponse(
                data=data,
                count=1 if data else 0
            )
        return MockSupabaseResponse(
            data=self._data,
            count=self._count if self._count is not None else len(self._data)
        )


class MockSupabaseTable:
    """Mock Supabase table with configurable responses."""

    def __init__(self, data: list = None, count: int = None, calls: list = None):
        self._data = data or []
        self._count = count
        self.calls = calls if calls is not None else []

    def _query(self) -> MockSupabaseQuery:
        return MockSupabaseQuery(self._data.copy(), self._count, self.calls)

    def select(self, *args, **kwargs):
        return self._query().select(*args, **kwargs)

    def insert(self, data):
        return self._query().insert(data)

    def update(self, data):
        # For update, pass the existing data so it can be merged
        return self._query().update(data)

    def delete(self):
        return self._query().delete()


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables = {}
        self.calls = []

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = {"data": data, "count": count}

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        config = self._tables.get(name, {"data": [], "count": None})
        return MockSupabaseTable(config["data"], config["count"], self.calls)

    def called(self, name: str) -> list:
        """Arguments of every recorded call to a query method."""
        return [args for call, args, _ in self.calls if call == name]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("products", [
                {"id": "1", "upc": "012345678905", ...}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def store() -> InMemoryProductStore:
    """Empty in-memory product store."""
    return InMemoryProductStore()


@pytest.fixture
def import_options() -> ImportOptions:
    return ImportOptions()


@pytest.fixture
def import_service(store, import_options) -> ImportService:
    return ImportService(store, import_options)


@pytest.fixture
def export_service(store) -> ExportService:
    return ExportService(store, default_registry())


@pytest.fixture
def test_settings() -> Settings:
    """Settings without Supabase credentials (in-memory store)."""
    return Settings(
        _env_file=None,
        supabase_url=None,
        supabase_key=None,
        environment="development",
        image_fetch_url=None,
    )


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client(test_settings, store):
    """
    Create FastAPI test client backed by the in-memory store.

    Usage:
        def test_endpoint(test_client, store):
            response = test_client.get("/api/export/formats")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import create_app

    app = create_app(settings=test_settings, store=store)
    with TestClient(app) as client:
        yield client
