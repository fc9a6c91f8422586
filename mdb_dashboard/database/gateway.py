"""
Query gateway: one validated request in, one store operation out.

Each public coroutine of QueryGateway:

1. Validates its inputs (no I/O happens for an invalid request)
2. Asks the ClientRegistry for a live client for the connection string
3. Runs exactly one driver operation (two for listings: find + count)
4. Returns an OperationResult; exceptions never leave the gateway

Updates and deletes are single-document operations (update_one /
delete_one). An empty filter therefore affects at most the first matching
document, never the whole collection.

String identifiers in filters and update bodies are converted to ObjectId
before dispatch (see identifiers.coerce_identifiers).
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from bson.errors import BSONError
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError

from ..constants import DATABASE_BOOTSTRAP_COLLECTION, DEFAULT_PAGE_SIZE, DEFAULT_SKIP
from ..exceptions import DashboardError, ErrorKind, StoreOperationError
from ..observability import (
    clear_request_context,
    log_operation,
    record_operation,
    set_request_context,
)
from ..observability import get_logger as get_contextual_logger
from ..utils.mongo import clean_mongo_doc, clean_mongo_docs, clean_mongo_value, redact_uri
from .identifiers import coerce_identifiers
from .query_validator import QueryValidator
from .registry import ClientRegistry
from .types import OperationResult, QuerySpec

logger = logging.getLogger(__name__)
contextual_logger = get_contextual_logger(__name__)

COLLECTION_STATS_FIELDS = (
    "ns",
    "count",
    "size",
    "avgObjSize",
    "storageSize",
    "totalIndexSize",
    "indexSizes",
)

DATABASE_STATS_FIELDS = (
    "db",
    "collections",
    "views",
    "objects",
    "avgObjSize",
    "dataSize",
    "storageSize",
    "indexes",
    "indexSize",
    "totalSize",
)


class QueryGateway:
    """
    Stateless request handler over a ClientRegistry.
    """

    def __init__(
        self,
        registry: ClientRegistry,
        validator: QueryValidator | None = None,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            registry: Registry providing clients per connection string
            validator: Request validator (a default QueryValidator if None)
            default_page_size: limit used when a listing does not give one
        """
        self.registry = registry
        self.validator = validator or QueryValidator()
        self.default_page_size = default_page_size

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    async def test_connection(self, mongo_uri: str) -> OperationResult:
        """Check a connection string and list its database names."""

        async def run() -> dict[str, Any]:
            # acquire() pings a new client and probes a cached one
            client = await self.registry.acquire(mongo_uri)
            names = await client.list_database_names()
            return {"ok": True, "databaseNames": names}

        return await self._execute("test_connection", mongo_uri, run)

    async def disconnect(self, mongo_uri: str) -> OperationResult:
        """Close the cached client for a connection string (no-op if none)."""

        async def run() -> dict[str, Any]:
            released = await self.registry.release(mongo_uri)
            return {"disconnected": released}

        return await self._execute("disconnect", mongo_uri, run)

    # ------------------------------------------------------------------
    # Administrative proxies
    # ------------------------------------------------------------------

    async def list_databases(self, mongo_uri: str) -> OperationResult:
        async def run() -> dict[str, Any]:
            client = await self.registry.acquire(mongo_uri)
            cursor = await client.list_databases()
            databases = await cursor.to_list(length=None)
            return {
                "databases": [
                    {
                        "name": info["name"],
                        "sizeOnDisk": info.get("sizeOnDisk"),
                        "empty": info.get("empty", False),
                    }
                    for info in databases
                ]
            }

        return await self._execute("list_databases", mongo_uri, run)

    async def list_collections(self, mongo_uri: str, database: str) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            client = await self.registry.acquire(mongo_uri)
            cursor = await client[database].list_collections()
            collections = await cursor.to_list(length=None)
            return {
                "collections": [
                    clean_mongo_doc(
                        {
                            "name": info["name"],
                            "type": info.get("type", "collection"),
                            "options": info.get("options", {}),
                            "info": info.get("info", {}),
                        }
                    )
                    for info in collections
                ]
            }

        return await self._execute("list_collections", mongo_uri, run, database=database)

    async def collection_stats(
        self, mongo_uri: str, database: str, collection: str
    ) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            client = await self.registry.acquire(mongo_uri)
            stats = await client[database].command("collStats", collection)
            return clean_mongo_doc({key: stats.get(key) for key in COLLECTION_STATS_FIELDS})

        return await self._execute(
            "collection_stats", mongo_uri, run, database=database, collection=collection
        )

    async def database_stats(self, mongo_uri: str, database: str) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            client = await self.registry.acquire(mongo_uri)
            stats = await client[database].command("dbStats")
            return clean_mongo_doc(
                {key: stats[key] for key in DATABASE_STATS_FIELDS if key in stats}
            )

        return await self._execute("database_stats", mongo_uri, run, database=database)

    async def create_collection(
        self, mongo_uri: str, database: str, collection: str
    ) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection, allow_system=False)
            client = await self.registry.acquire(mongo_uri)
            await client[database].create_collection(collection)
            return {"database": database, "collection": collection, "created": True}

        return await self._execute(
            "create_collection", mongo_uri, run, database=database, collection=collection
        )

    async def drop_collection(
        self, mongo_uri: str, database: str, collection: str
    ) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection, allow_system=False)
            client = await self.registry.acquire(mongo_uri)
            await client[database].drop_collection(collection)
            return {"database": database, "collection": collection, "deleted": True}

        return await self._execute(
            "drop_collection", mongo_uri, run, database=database, collection=collection
        )

    async def create_database(
        self, mongo_uri: str, database: str, collection: str | None = None
    ) -> OperationResult:
        """
        Create a database.

        MongoDB only materializes a database once it holds a collection, so
        ``collection`` (or a placeholder named ``_init``) is created in it.
        """
        first_collection = collection or DATABASE_BOOTSTRAP_COLLECTION

        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(first_collection, allow_system=False)
            client = await self.registry.acquire(mongo_uri)
            await client[database].create_collection(first_collection)
            return {"database": database, "collection": first_collection, "created": True}

        return await self._execute("create_database", mongo_uri, run, database=database)

    async def drop_database(self, mongo_uri: str, database: str) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            client = await self.registry.acquire(mongo_uri)
            await client.drop_database(database)
            return {"database": database, "deleted": True}

        return await self._execute("drop_database", mongo_uri, run, database=database)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def list_documents(
        self,
        mongo_uri: str,
        database: str,
        collection: str,
        query: QuerySpec | None = None,
    ) -> OperationResult:
        """
        Read one page of documents plus the total number of matches.

        ``total`` counts every document matching the filter, independent of
        limit and skip.

        Returns:
            data = {"documents", "total", "page", "pageSize"}
        """
        query = query or QuerySpec()
        limit = query.limit if query.limit is not None else self.default_page_size
        skip = query.skip if query.skip is not None else DEFAULT_SKIP
        raw_filter = query.filter if query.filter is not None else {}

        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            self.validator.validate_mapping(raw_filter, "filter")
            self.validator.validate_mapping(query.projection, "projection", required=False)
            self.validator.validate_sort(query.sort)
            self.validator.validate_pagination(limit, skip)

            query_filter = coerce_identifiers(raw_filter)
            client = await self.registry.acquire(mongo_uri)
            coll = client[database][collection]

            cursor = coll.find(
                query_filter,
                projection=query.projection or None,
                sort=query.sort_pairs(),
                skip=skip,
                limit=limit,
            )
            documents = await cursor.to_list(length=limit)
            total = await coll.count_documents(query_filter)
            return {
                "documents": clean_mongo_docs(documents),
                "total": total,
                "page": skip // limit + 1,
                "pageSize": limit,
            }

        return await self._execute(
            "list_documents", mongo_uri, run, database=database, collection=collection
        )

    async def insert_document(
        self, mongo_uri: str, database: str, collection: str, document: dict[str, Any]
    ) -> OperationResult:
        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            self.validator.validate_mapping(document, "document")
            client = await self.registry.acquire(mongo_uri)
            # insert_one adds _id to the dict it is given
            result = await client[database][collection].insert_one(dict(document))
            return {"insertedId": clean_mongo_value(result.inserted_id)}

        return await self._execute(
            "insert_document", mongo_uri, run, database=database, collection=collection
        )

    async def update_document(
        self,
        mongo_uri: str,
        database: str,
        collection: str,
        filter: dict[str, Any],
        update: dict[str, Any],
    ) -> OperationResult:
        """Overwrite the named fields ($set) of the first document matching ``filter``."""

        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            self.validator.validate_mapping(filter, "filter")
            self.validator.validate_mapping(update, "update")
            client = await self.registry.acquire(mongo_uri)
            result = await client[database][collection].update_one(
                coerce_identifiers(filter), {"$set": coerce_identifiers(update)}
            )
            return {"matchedCount": result.matched_count, "modifiedCount": result.modified_count}

        return await self._execute(
            "update_document", mongo_uri, run, database=database, collection=collection
        )

    async def delete_document(
        self, mongo_uri: str, database: str, collection: str, filter: dict[str, Any]
    ) -> OperationResult:
        """Delete the first document matching ``filter``."""

        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            self.validator.validate_mapping(filter, "filter")
            client = await self.registry.acquire(mongo_uri)
            result = await client[database][collection].delete_one(coerce_identifiers(filter))
            return {"deletedCount": result.deleted_count}

        return await self._execute(
            "delete_document", mongo_uri, run, database=database, collection=collection
        )

    async def run_aggregation(
        self, mongo_uri: str, database: str, collection: str, pipeline: list[dict[str, Any]]
    ) -> OperationResult:
        """
        Run a pipeline as given and time it.

        Returns:
            data = {"results", "executionTimeMs"}
        """

        async def run() -> dict[str, Any]:
            self.validator.validate_database_name(database)
            self.validator.validate_collection_name(collection)
            self.validator.validate_pipeline(pipeline)
            client = await self.registry.acquire(mongo_uri)

            start_time = time.perf_counter()
            cursor = client[database][collection].aggregate(pipeline)
            results = await cursor.to_list(length=None)
            execution_time_ms = (time.perf_counter() - start_time) * 1000

            return {
                "results": [clean_mongo_value(item) for item in results],
                "executionTimeMs": round(execution_time_ms, 2),
            }

        return await self._execute(
            "run_aggregation", mongo_uri, run, database=database, collection=collection
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _execute(
        self,
        operation: str,
        mongo_uri: str,
        run: Callable[[], Awaitable[Any]],
        database: str | None = None,
        collection: str | None = None,
    ) -> OperationResult:
        set_request_context(
            operation=operation,
            database=database,
            collection=collection,
            connection=redact_uri(mongo_uri),
        )
        start_time = time.time()
        try:
            try:
                self.validator.validate_connection_string(mongo_uri)
                result = OperationResult.ok(await run())
            except DashboardError as e:
                result = OperationResult.fail(e.message, e.kind)
            except ConnectionFailure as e:
                result = OperationResult.fail(_readable_error(e), ErrorKind.CONNECTION)
            except asyncio.TimeoutError:
                result = OperationResult.fail(
                    f"{operation} timed out waiting for MongoDB", ErrorKind.CONNECTION
                )
            except (PyMongoError, BSONError) as e:
                error = StoreOperationError(_readable_error(e), operation=operation)
                result = OperationResult.fail(error.message, error.kind)
            except (TypeError, ValueError, OverflowError) as e:
                # Raised by the driver for malformed arguments before anything is sent
                result = OperationResult.fail(str(e), ErrorKind.VALIDATION)
            except Exception as e:
                contextual_logger.exception(f"Unexpected error in gateway.{operation}")
                result = OperationResult.fail(
                    f"Unexpected error during {operation}: {type(e).__name__}",
                    ErrorKind.OPERATION,
                )

            self._record(operation, result, (time.time() - start_time) * 1000)
            return result
        finally:
            clear_request_context()

    @staticmethod
    def _record(operation: str, result: OperationResult, duration_ms: float) -> None:
        error_kind = result.kind.value if result.kind else None
        record_operation(
            f"gateway.{operation}", duration_ms, success=result.success, error_kind=error_kind
        )
        if result.success:
            log_operation(
                contextual_logger, f"gateway.{operation}", logging.DEBUG, duration_ms=duration_ms
            )
        else:
            log_operation(
                contextual_logger,
                f"gateway.{operation}",
                logging.WARNING,
                success=False,
                duration_ms=duration_ms,
                error=result.error,
                error_kind=error_kind,
            )


def _readable_error(error: Exception) -> str:
    """Server error message without the raw reply document."""
    if isinstance(error, OperationFailure) and isinstance(error.details, dict):
        errmsg = error.details.get("errmsg")
        if errmsg:
            return str(errmsg)
    return str(error) or type(error).__name__
