"""Pytest configuration for port53.

Every test gets its own SQLite file database under tmp_path, so no state
leaks between tests. API tests drive the real application through
FastAPI's TestClient, which runs the lifespan (open/close of the database).
"""

import pytest
from fastapi.testclient import TestClient

from port53.config import Settings
from port53.database import Database
from port53.main import create_app
from port53.services.associations import AssociationManager
from port53.services.store import ResourceStore


SERVICE_URL = "http://testserver"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "api: Tests that go through the HTTP layer")


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'port53.db'}"


@pytest.fixture
async def database(database_url):
    """Opened storage handle, closed after the test"""
    db = Database(database_url)
    await db.open()
    yield db
    await db.close()


@pytest.fixture
def associations(database):
    return AssociationManager(database)


@pytest.fixture
def store(database, associations):
    return ResourceStore(database, associations)


@pytest.fixture
def app_settings(database_url):
    return Settings(
        database_url=database_url,
        service_url=SERVICE_URL,
        rate_limit_enabled=False,
        metrics_enabled=False,
    )


@pytest.fixture
def client(app_settings):
    """TestClient over a fresh application, the lifespan opens the database"""
    with TestClient(create_app(app_settings)) as test_client:
        yield test_client


@pytest.fixture
def unavailable_client(app_settings, database_url):
    """TestClient whose storage handle was never opened, so every query fails"""
    app = create_app(app_settings)
    with TestClient(app, raise_server_exceptions=False) as test_client:
        app.state.database = Database(database_url)
        yield test_client
