"""
API test fixtures.

Provides: TestClient over an app whose lifespan runs a real runtime on a
temporary SQLite database, with the worker loop and scheduler disabled.
Dependencies: pytest, fastapi
System role: HTTP test infrastructure
"""

import pytest
from fastapi.testclient import TestClient

from csv_migrator.api.main import create_app


@pytest.fixture
def client(test_settings):
    """
    TestClient with the lifespan started.

    Yields:
        TestClient: Client bound to a fresh app
    """
    with TestClient(create_app(test_settings)) as client:
        yield client
        client.app.dependency_overrides.clear()


@pytest.fixture
def runtime(client):
    """The MigrationRuntime started by the app lifespan."""
    return client.app.state.runtime


@pytest.fixture
def upload(client, csv_text):
    """
    Upload helper.

    Usage:
        response = upload("people.csv", rows=10)
    """

    def _upload(filename: str = "people.csv", rows: int = 10, start: int = 0, content: bytes | None = None):
        body = content if content is not None else csv_text(rows, start).encode("utf-8")
        return client.post("/api/v1/uploads", files={"csvFile": (filename, body, "text/csv")})

    return _upload
