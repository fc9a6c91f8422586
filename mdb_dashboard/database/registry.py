"""
Client registry for MongoDB connection strings.

Keeps at most one live, pooled AsyncIOMotorClient per connection string so
that every dashboard request against the same deployment reuses the same
connection pool instead of reconnecting.

Lifecycle of a cached client:

1. Created on the first successful acquire() for its connection string
   (the connection is verified with a ping before it is cached)
2. Reused by later acquire() calls while a cheap liveness probe succeeds
3. Closed and evicted either by release() or when a probe fails, in which
   case the same acquire() creates its replacement

Creation is serialized per connection string with an asyncio.Lock, so N
concurrent first-time callers produce exactly one client. Probes of an
already cached client run outside the lock.

The registry never retries; a failed acquire() reports ClientConnectionError
and caches nothing.

Usage:
    registry = ClientRegistry(max_pool_size=10, min_pool_size=2)
    client = await registry.acquire("mongodb://localhost:27017")
    names = await client.list_database_names()
    await registry.release("mongodb://localhost:27017")
"""

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError

from ..constants import (
    ADMIN_DATABASE,
    DEFAULT_APP_NAME,
    DEFAULT_MAX_IDLE_TIME_MS,
    DEFAULT_MAX_POOL_SIZE,
    DEFAULT_MIN_POOL_SIZE,
    DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
    PING_COMMAND,
    PROBE_TIMEOUT_SLACK_SECONDS,
)
from ..exceptions import ClientConnectionError
from ..observability import probe_client, record_operation
from ..observability import get_logger as get_contextual_logger
from ..utils.mongo import redact_uri

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)


@dataclass
class _KeyLock:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class ClientRegistry:
    """
    Process-wide mapping from connection string to a live client.

    Construct one per process and hand it to request handlers; tests build
    as many isolated instances as they need.
    """

    def __init__(
        self,
        max_pool_size: int = DEFAULT_MAX_POOL_SIZE,
        min_pool_size: int = DEFAULT_MIN_POOL_SIZE,
        server_selection_timeout_ms: int = DEFAULT_SERVER_SELECTION_TIMEOUT_MS,
        max_idle_time_ms: int = DEFAULT_MAX_IDLE_TIME_MS,
        app_name: str = DEFAULT_APP_NAME,
        client_factory: Callable[..., AsyncIOMotorClient] | None = None,
    ) -> None:
        """
        Initialize the registry.

        Args:
            max_pool_size: Maximum connection pool size of each client
            min_pool_size: Minimum connection pool size of each client
            server_selection_timeout_ms: Server selection timeout; bounds connection
                establishment and liveness probes
            max_idle_time_ms: Maximum idle time before pooled connections are closed
            app_name: Application name reported to the server
            client_factory: Callable building a client from (uri, **options);
                defaults to AsyncIOMotorClient
        """
        self.max_pool_size = max_pool_size
        self.min_pool_size = min_pool_size
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.max_idle_time_ms = max_idle_time_ms
        self.app_name = app_name
        self._client_factory = client_factory or AsyncIOMotorClient

        self._clients: dict[str, AsyncIOMotorClient] = {}
        self._locks: dict[str, _KeyLock] = {}
        self._closed: bool = False

        # Number of physical clients ever created by this registry
        self.clients_created: int = 0

    @property
    def probe_timeout_seconds(self) -> float:
        """Upper bound for a single ping, in seconds."""
        return self.server_selection_timeout_ms / 1000 + PROBE_TIMEOUT_SLACK_SECONDS

    @property
    def closed(self) -> bool:
        """Whether close_all() has been called."""
        return self._closed

    def __contains__(self, mongo_uri: object) -> bool:
        return mongo_uri in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def cached_uris(self) -> list[str]:
        """Connection strings that currently have a cached client."""
        return list(self._clients)

    @asynccontextmanager
    async def _locked(self, mongo_uri: str) -> AsyncIterator[None]:
        """
        Hold the per-URI lock. The entry is dropped once no caller holds or
        waits for it, so failed or one-off URIs do not accumulate.
        """
        entry = self._locks.get(mongo_uri)
        if entry is None:
            entry = self._locks[mongo_uri] = _KeyLock()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0 and self._locks.get(mongo_uri) is entry:
                del self._locks[mongo_uri]

    async def acquire(self, mongo_uri: str) -> AsyncIOMotorClient:
        """
        Return a live client for ``mongo_uri``, creating it when needed.

        Args:
            mongo_uri: Connection string; cache key by exact string match

        Returns:
            Cached or newly created AsyncIOMotorClient

        Raises:
            ClientConnectionError: If no client can be established
        """
        if self._closed:
            raise ClientConnectionError(
                "Client registry is closed", mongo_uri=redact_uri(mongo_uri)
            )

        cached = self._clients.get(mongo_uri)
        if cached is not None and await self._probe(cached, mongo_uri):
            return cached

        async with self._locked(mongo_uri):
            current = self._clients.get(mongo_uri)
            if current is not None and current is not cached:
                # Another caller created or replaced the client while we waited
                return current
            if current is not None:
                self._evict(mongo_uri, current, reason="liveness probe failed")
            return await self._create(mongo_uri)

    async def release(self, mongo_uri: str) -> bool:
        """
        Close and evict the cached client for ``mongo_uri``.

        Args:
            mongo_uri: Connection string

        Returns:
            True if a client was closed, False if none was cached
        """
        async with self._locked(mongo_uri):
            client = self._clients.get(mongo_uri)
            if client is None:
                return False
            self._evict(mongo_uri, client, reason="released")
            return True

    async def test_connection(self, mongo_uri: str) -> dict[str, Any]:
        """
        Acquire (or reuse) a client; acquire() runs the ping.

        Never raises for connection problems; a successful test leaves the
        client cached.

        Args:
            mongo_uri: Connection string

        Returns:
            {"ok": True} or {"ok": False, "error": "<readable message>"}
        """
        try:
            await self.acquire(mongo_uri)
        except ClientConnectionError as e:
            return {"ok": False, "error": e.message}
        return {"ok": True}

    async def close_all(self) -> None:
        """
        Close every cached client. Called on application shutdown.

        This method is idempotent - it's safe to call multiple times.
        """
        self._closed = True
        for mongo_uri, client in list(self._clients.items()):
            self._evict(mongo_uri, client, reason="registry shutdown")
        self._locks.clear()

    def stats(self) -> dict[str, Any]:
        """Registry state for health and metrics endpoints (URIs redacted)."""
        return {
            "cached_clients": len(self._clients),
            "clients_created": self.clients_created,
            "locked_uris": len(self._locks),
            "connections": [redact_uri(uri) for uri in self._clients],
            "max_pool_size": self.max_pool_size,
            "min_pool_size": self.min_pool_size,
            "server_selection_timeout_ms": self.server_selection_timeout_ms,
        }

    async def _probe(self, client: AsyncIOMotorClient, mongo_uri: str) -> bool:
        start_time = time.time()
        result = await probe_client(client, timeout_seconds=self.probe_timeout_seconds)
        healthy = result.healthy
        record_operation("registry.probe", (time.time() - start_time) * 1000, success=healthy)
        if not healthy:
            logger.info(
                f"Cached client for {redact_uri(mongo_uri)} failed liveness probe: "
                f"{result.message}"
            )
        return healthy

    async def _create(self, mongo_uri: str) -> AsyncIOMotorClient:
        start_time = time.time()
        redacted = redact_uri(mongo_uri)

        try:
            client = self._client_factory(
                mongo_uri,
                serverSelectionTimeoutMS=self.server_selection_timeout_ms,
                appname=self.app_name,
                maxPoolSize=self.max_pool_size,
                minPoolSize=self.min_pool_size,
                maxIdleTimeMS=self.max_idle_time_ms,
            )
        except (PyMongoError, ValueError, TypeError) as e:
            self._record_create(start_time, success=False)
            raise ClientConnectionError(
                f"Invalid connection string: {e}", mongo_uri=redacted
            ) from e

        try:
            await asyncio.wait_for(
                client[ADMIN_DATABASE].command(PING_COMMAND), timeout=self.probe_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            client.close()
            self._record_create(start_time, success=False)
            raise ClientConnectionError(
                f"Timed out connecting to MongoDB after {self.probe_timeout_seconds:.1f}s",
                mongo_uri=redacted,
            ) from e
        except PyMongoError as e:
            client.close()
            self._record_create(start_time, success=False)
            contextual_logger.warning(
                "MongoDB connection failed",
                extra={"mongo_uri": redacted, "error_type": type(e).__name__, "error": str(e)},
            )
            raise ClientConnectionError(
                f"Failed to connect to MongoDB: {e}", mongo_uri=redacted
            ) from e

        if self._closed:
            # close_all() ran while this client was connecting
            client.close()
            self._record_create(start_time, success=False)
            raise ClientConnectionError("Client registry is closed", mongo_uri=redacted)

        self._clients[mongo_uri] = client
        self.clients_created += 1
        duration_ms = self._record_create(start_time, success=True)
        contextual_logger.info(
            "MongoDB client created",
            extra={
                "mongo_uri": redacted,
                "pool_size": f"{self.min_pool_size}-{self.max_pool_size}",
                "duration_ms": round(duration_ms, 2),
            },
        )
        return client

    def _evict(self, mongo_uri: str, client: AsyncIOMotorClient, reason: str) -> None:
        self._clients.pop(mongo_uri, None)
        try:
            client.close()
        except (PyMongoError, RuntimeError, AttributeError) as e:
            logger.warning(f"Error closing MongoDB client for {redact_uri(mongo_uri)}: {e}")
        record_operation("registry.evict", 0.0, success=True)
        logger.info(f"MongoDB client for {redact_uri(mongo_uri)} closed ({reason})")

    @staticmethod
    def _record_create(start_time: float, success: bool) -> float:
        duration_ms = (time.time() - start_time) * 1000
        record_operation("registry.create", duration_ms, success=success)
        return duration_ms
