"""
Pytest configuration and shared fixtures for MDB_DASHBOARD tests.

This module provides:
- Mock Motor client fixtures (one fresh client per factory call)
- A ClientRegistry and QueryGateway wired to the mock factory
- Testcontainers fixtures for integration tests
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient

from mdb_dashboard.database.gateway import QueryGateway
from mdb_dashboard.database.registry import ClientRegistry
from mdb_dashboard.observability import get_metrics_collector


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(items: list[Any] | None = None) -> MagicMock:
    """Cursor whose to_list() resolves to ``items``."""
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=list(items or []))
    return cursor


def make_mock_collection(name: str) -> MagicMock:
    """Create a mock collection with the methods the gateway calls."""
    collection = MagicMock()
    collection.name = name
    # find() and aggregate() return cursors synchronously, like Motor
    collection.find = MagicMock(return_value=make_cursor())
    collection.aggregate = MagicMock(return_value=make_cursor())
    collection.count_documents = AsyncMock(return_value=0)
    collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=ObjectId()))
    collection.update_one = AsyncMock(return_value=MagicMock(matched_count=1, modified_count=1))
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    return collection


def make_mock_database(name: str) -> MagicMock:
    """Create a mock database that hands out one mock collection per name."""
    db = MagicMock()
    db.name = name
    collections: dict[str, MagicMock] = {}

    def get_collection(collection_name: str) -> MagicMock:
        if collection_name not in collections:
            collections[collection_name] = make_mock_collection(collection_name)
        return collections[collection_name]

    db.__getitem__.side_effect = get_collection
    db.command = AsyncMock(return_value={"ok": 1})
    db.list_collections = AsyncMock(return_value=make_cursor())
    db.create_collection = AsyncMock()
    db.drop_collection = AsyncMock()
    return db


def make_mock_client(ping_error: Exception | None = None, ping_delay: float = 0.0) -> MagicMock:
    """
    Create a mock AsyncIOMotorClient.

    Args:
        ping_error: Exception raised by every ping (simulates an unreachable server)
        ping_delay: Seconds each ping takes; lets concurrent callers interleave
    """
    client = MagicMock(spec=AsyncIOMotorClient)
    databases: dict[str, MagicMock] = {}

    async def ping(*args, **kwargs):
        await asyncio.sleep(ping_delay)
        if ping_error is not None:
            raise ping_error
        return {"ok": 1}

    admin = make_mock_database("admin")
    admin.command = AsyncMock(side_effect=ping)
    databases["admin"] = admin

    def get_database(self, db_name):
        if db_name not in databases:
            databases[db_name] = make_mock_database(db_name)
        return databases[db_name]

    client.__getitem__ = get_database
    client.close = MagicMock()
    client.list_database_names = AsyncMock(return_value=["admin", "shop"])
    client.list_databases = AsyncMock(
        return_value=make_cursor(
            [
                {"name": "admin", "sizeOnDisk": 40960, "empty": False},
                {"name": "shop", "sizeOnDisk": 81920, "empty": False},
            ]
        )
    )
    client.drop_database = AsyncMock()
    return client


@pytest.fixture
def make_client():
    """Builder for single mock clients, e.g. make_client(ping_error=ConnectionFailure(...))."""
    return make_mock_client


@pytest.fixture
def mock_client_factory() -> MagicMock:
    """
    Client factory returning a new healthy mock client per call.

    ``call_count`` equals the number of physical clients built.
    """
    return MagicMock(side_effect=lambda mongo_uri, **options: make_mock_client())


@pytest.fixture
def failing_client_factory() -> MagicMock:
    """Client factory whose clients never answer a ping."""
    from pymongo.errors import ServerSelectionTimeoutError

    return MagicMock(
        side_effect=lambda mongo_uri, **options: make_mock_client(
            ping_error=ServerSelectionTimeoutError("localhost:27017: connection refused")
        )
    )


@pytest.fixture
def registry(mock_client_factory: MagicMock) -> ClientRegistry:
    """ClientRegistry backed by mock clients."""
    return ClientRegistry(client_factory=mock_client_factory, server_selection_timeout_ms=1000)


@pytest.fixture
def gateway(registry: ClientRegistry) -> QueryGateway:
    """QueryGateway over the mock registry."""
    return QueryGateway(registry)


@pytest.fixture
def sample_documents() -> list[dict[str, Any]]:
    return [
        {"_id": ObjectId("507f1f77bcf86cd799439011"), "name": "a", "qty": 1},
        {"_id": ObjectId("507f191e810c19729de860ea"), "name": "b", "qty": 2},
    ]


# ============================================================================
# STATE RESET
# ============================================================================


@pytest.fixture(autouse=True)
def reset_metrics():
    """Give every test an empty metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch):
    """Reset environment variables before each test."""
    env_vars_to_clear = [
        "MONGO_MAX_POOL_SIZE",
        "MONGO_MIN_POOL_SIZE",
        "MONGO_SERVER_SELECTION_TIMEOUT_MS",
        "DASHBOARD_DEFAULT_PAGE_SIZE",
        "DASHBOARD_CORS_ORIGINS",
        "DASHBOARD_HOST",
        "DASHBOARD_PORT",
        "LOG_LEVEL",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    yield


# ============================================================================
# TESTCONTAINERS FIXTURES (Real MongoDB for Integration Tests)
# ============================================================================


@pytest.fixture(scope="session")
def mongodb_container():
    """
    Start a MongoDB container for integration tests.

    Session-scoped: the container starts once and is reused for all
    integration tests. Skipped when testcontainers or Docker is unavailable.
    """
    try:
        from testcontainers.mongodb import MongoDbContainer
    except ImportError:
        pytest.skip("testcontainers not installed. Install with: pip install -e '.[test]'")

    container = MongoDbContainer(image="mongo:7.0")
    try:
        container.start()
    except Exception as e:  # noqa: BLE001 - Docker daemon errors vary by platform
        pytest.skip(f"Docker is not available for MongoDB container: {e}")

    yield container
    container.stop()


@pytest.fixture
def mongodb_connection_string(mongodb_container) -> str:
    """Connection string of the test container."""
    return mongodb_container.get_connection_url()


@pytest.fixture
async def real_registry():
    """ClientRegistry using real Motor clients, closed after the test."""
    registry = ClientRegistry(max_pool_size=5, min_pool_size=1)
    yield registry
    await registry.close_all()


@pytest.fixture
def real_gateway(real_registry: ClientRegistry) -> QueryGateway:
    return QueryGateway(real_registry)


@pytest.fixture
def test_db_name() -> str:
    """Unique database name per test."""
    return f"dashboard_test_{ObjectId()}"
