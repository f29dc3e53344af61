"""
Shared test fixtures.
"""

import sys
from pathlib import Path

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

import pytest
from unittest.mock import patch
from datetime import datetime
from typing import Generator, Optional
from uuid import uuid4

from config.settings import Settings


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
    Mock query builder with chainable methods.

    Rows live in the client, so inserts are visible to later selects.
    Only eq/neq filters and limit are applied; ordering is insertion order.
    """

    def __init__(self, client: "MockSupabaseClient", table: str, operation: str = "select", payload=None):
        self._client = client
        self._table = table
        self._operation = operation
        self._payload = payload
        self._filters = []
        self._limit: Optional[int] = None
        self._is_single = False

    def select(self, *args, **kwargs):
        return self

    def eq(self, column, value):
        self._filters.append((column, value, True))
        return self

    def neq(self, column, value):
        self._filters.append((column, value, False))
        return self

    def single(self):
        self._is_single = True
        return self

    def order(self, column, **kwargs):
        return self

    def range(self, start, end):
        return self

    def limit(self, count):
        self._limit = count
        return self

    def _matches(self, row: dict) -> bool:
        return all((row.get(c) == v) == expected for c, v, expected in self._filters)

    def execute(self) -> MockSupabaseResponse:
        if self._client.fail_on == self._table:
            raise RuntimeError(f"connection lost on {self._table}")

        rows = self._client.rows(self._table)
        self._client.calls.append((self._table, self._operation, self._payload))

        if self._operation == "insert":
            items = self._payload if isinstance(self._payload, list) else [self._payload]
            created = []
            for item in items:
                row = {
                    "id": str(uuid4()),
                    "created_at": datetime.utcnow().isoformat() + "Z",
                    **item,
                }
                rows.append(row)
                created.append(dict(row))
            return MockSupabaseResponse(data=created)

        matched = [row for row in rows if self._matches(row)]

        if self._operation == "update":
            for row in matched:
                row.update(self._payload)
            return MockSupabaseResponse(data=[dict(row) for row in matched])

        if self._operation == "delete":
            rows[:] = [row for row in rows if not self._matches(row)]
            return MockSupabaseResponse(data=matched)

        if self._limit is not None:
            matched = matched[:self._limit]
        if self._is_single:
            data = matched[0] if matched else None
            return MockSupabaseResponse(data=data, count=1 if data else 0)

        count = self._client.counts.get(self._table)
        return MockSupabaseResponse(data=[dict(row) for row in matched], count=count)


class MockSupabaseTable:
    """Mock Supabase table."""

    def __init__(self, client: "MockSupabaseClient", name: str):
        self._client = client
        self._name = name

    def select(self, *args, **kwargs):
        return MockSupabaseQuery(self._client, self._name)

    def insert(self, data):
        return MockSupabaseQuery(self._client, self._name, "insert", data)

    def update(self, data):
        return MockSupabaseQuery(self._client, self._name, "update", data)

    def delete(self):
        return MockSupabaseQuery(self._client, self._name, "delete")


class MockSupabaseClient:
    """Mock Supabase client."""

    def __init__(self):
        self._tables: dict[str, list] = {}
        self.counts: dict[str, int] = {}
        self.calls: list[tuple] = []
        self.fail_on: Optional[str] = None

    def set_table_data(self, table_name: str, data: list, count: int = None):
        """Configure mock data for a table."""
        self._tables[table_name] = [dict(row) for row in data]
        if count is not None:
            self.counts[table_name] = count

    def rows(self, table_name: str) -> list:
        return self._tables.setdefault(table_name, [])

    def table(self, name: str) -> MockSupabaseTable:
        """Get mock table."""
        return MockSupabaseTable(self, name)

    def calls_for(self, table_name: str, operation: str) -> list:
        return [payload for table, op, payload in self.calls if table == table_name and op == operation]


# ===================
# FIXTURES
# ===================

@pytest.fixture
def mock_supabase() -> MockSupabaseClient:
    """
    Create a mock Supabase client.

    Usage:
        def test_something(mock_supabase):
            mock_supabase.set_table_data("target_fields", [
                {"id": "1", "field_name": "GTIN"}
            ])
    """
    return MockSupabaseClient()


@pytest.fixture
def mock_db(mock_supabase) -> Generator:
    """
    Patch the database client with mock.

    Usage:
        def test_something(mock_db, mock_supabase):
            mock_supabase.set_table_data("projects", [...])
            # Now any code using get_supabase_client() gets the mock
    """
    with patch("config.database.get_supabase_client", return_value=mock_supabase):
        with patch("services.project_service.get_supabase_client", return_value=mock_supabase):
            with patch("services.target_field_service.get_supabase_client", return_value=mock_supabase):
                yield mock_supabase


@pytest.fixture(autouse=True)
def reset_service_state():
    """Fresh singletons and an empty session cache for every test."""
    import services.project_service as project_service
    import services.target_field_service as target_field_service
    from services.session_cache_service import clear_sessions

    project_service._service = None
    target_field_service._service = None
    clear_sessions()
    yield
    project_service._service = None
    target_field_service._service = None
    clear_sessions()


@pytest.fixture
def offline_settings() -> Settings:
    """Settings with no credentials, independent of .env and the environment."""
    return Settings(
        _env_file=None,
        gemini_api_key=None,
        supabase_url=None,
        supabase_key=None
    )


@pytest.fixture
def sample_catalog() -> list[str]:
    """Small target catalog."""
    return [
        "Article Number/SKU",
        "Initial Suggested Retail Price (SRP) EU",
    ]


@pytest.fixture
def full_catalog() -> list[str]:
    """Catalog covering every fallback rule target."""
    return [
        "Portal Name",
        "Producer Name",
        "Product Description",
        "Article Number/SKU",
        "GTIN",
        "Initial Suggested Retail Price (SRP) EU",
        "Custom Category",
        "Color",
        "Country of Origin",
        "Licence Name (Theme)",
        "CN - Item",
        "Release Name",
        "Language Version",
    ]


# ===================
# API TEST CLIENT
# ===================

@pytest.fixture
def test_client():
    """
    Create FastAPI test client.

    Usage:
        def test_endpoint(test_client):
            response = test_client.get("/health")
            assert response.status_code == 200
    """
    from fastapi.testclient import TestClient
    from main import app

    return TestClient(app)


@pytest.fixture
def test_client_with_mock_db(mock_db):
    """
    Create FastAPI test client with mocked database.

    Usage:
        def test_endpoint(test_client_with_mock_db, mock_supabase):
            mock_supabase.set_table_data("projects", [...])
            response = test_client_with_mock_db.get("/api/projects")
    """
    from fastapi.testclient import TestClient
    from main import app

    yield TestClient(app)
