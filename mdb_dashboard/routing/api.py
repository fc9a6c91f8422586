"""
HTTP routes of the dashboard API.

Every route is a thin adapter: parse the body, call one QueryGateway
coroutine, and turn its OperationResult into a JSON response of the form
{"success": bool, "data"?: ..., "error"?: str}.

Status codes follow the failure kind: 400 validation, 503 connection,
500 store operation.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ..config import DashboardConfig
from ..constants import API_PREFIX
from ..database.gateway import QueryGateway
from ..database.registry import ClientRegistry
from ..database.types import OperationResult, QuerySpec
from ..dependencies import get_config, get_gateway, get_registry
from ..exceptions import ErrorKind
from ..observability import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_registry_health,
    get_metrics_collector,
)
from .schemas import (
    AggregateRequest,
    CollectionRequest,
    ConnectionRequest,
    CreateDatabaseRequest,
    DatabaseRequest,
    DeleteDocumentRequest,
    FindDocumentsRequest,
    InsertDocumentRequest,
    UpdateDocumentRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix=API_PREFIX, tags=["mongodb"])

STATUS_BY_KIND = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.CONNECTION: 503,
    ErrorKind.OPERATION: 500,
}


def to_response(result: OperationResult) -> JSONResponse:
    """Serialize an OperationResult with the matching status code."""
    status_code = 200 if result.success else STATUS_BY_KIND.get(result.kind, 500)
    return JSONResponse(result.to_dict(), status_code=status_code)


# =============================================================================
# Connection
# =============================================================================


@router.post("/connect")
async def connect(body: ConnectionRequest, gateway: QueryGateway = Depends(get_gateway)):
    """Test a connection string and return its database names."""
    return to_response(await gateway.test_connection(body.uri))


@router.post("/disconnect")
async def disconnect(body: ConnectionRequest, gateway: QueryGateway = Depends(get_gateway)):
    """Close the pooled client of a connection string."""
    return to_response(await gateway.disconnect(body.uri))


# =============================================================================
# Explorer
# =============================================================================


@router.post("/databases")
async def list_databases(body: ConnectionRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.list_databases(body.uri))


@router.post("/collections")
async def list_collections(body: DatabaseRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.list_collections(body.uri, body.database))


@router.post("/stats")
async def collection_stats(body: CollectionRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.collection_stats(body.uri, body.database, body.collection))


@router.post("/database-stats")
async def database_stats(body: DatabaseRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.database_stats(body.uri, body.database))


# =============================================================================
# Documents
# =============================================================================


@router.post("/documents")
async def find_documents(
    body: FindDocumentsRequest, gateway: QueryGateway = Depends(get_gateway)
):
    """Read one page of documents plus the total match count."""
    query = QuerySpec(
        filter=body.filter if body.filter is not None else {},
        projection=body.projection,
        sort=body.sort,
        limit=body.limit,
        skip=body.skip,
    )
    return to_response(
        await gateway.list_documents(body.uri, body.database, body.collection, query)
    )


@router.put("/documents")
async def insert_document(
    body: InsertDocumentRequest, gateway: QueryGateway = Depends(get_gateway)
):
    return to_response(
        await gateway.insert_document(body.uri, body.database, body.collection, body.document)
    )


@router.patch("/documents")
async def update_document(
    body: UpdateDocumentRequest, gateway: QueryGateway = Depends(get_gateway)
):
    return to_response(
        await gateway.update_document(
            body.uri, body.database, body.collection, body.filter, body.update
        )
    )


@router.delete("/documents")
async def delete_document(
    body: DeleteDocumentRequest, gateway: QueryGateway = Depends(get_gateway)
):
    return to_response(
        await gateway.delete_document(body.uri, body.database, body.collection, body.filter)
    )


@router.post("/aggregate")
async def run_aggregation(body: AggregateRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(
        await gateway.run_aggregation(body.uri, body.database, body.collection, body.pipeline)
    )


# =============================================================================
# Management
# =============================================================================


@router.post("/manage-collection")
async def create_collection(
    body: CollectionRequest, gateway: QueryGateway = Depends(get_gateway)
):
    return to_response(
        await gateway.create_collection(body.uri, body.database, body.collection)
    )


@router.delete("/manage-collection")
async def drop_collection(body: CollectionRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.drop_collection(body.uri, body.database, body.collection))


@router.post("/manage-database")
async def create_database(
    body: CreateDatabaseRequest, gateway: QueryGateway = Depends(get_gateway)
):
    return to_response(await gateway.create_database(body.uri, body.database, body.collection))


@router.delete("/manage-database")
async def drop_database(body: DatabaseRequest, gateway: QueryGateway = Depends(get_gateway)):
    return to_response(await gateway.drop_database(body.uri, body.database))


# =============================================================================
# Service
# =============================================================================


@router.get("/health")
async def health(registry: ClientRegistry = Depends(get_registry)):
    """Health of the dashboard process (cached clients are probed lazily, not here)."""

    async def client_registry() -> HealthCheckResult:
        return await check_registry_health(registry)

    checker = HealthChecker()
    checker.register_check(client_registry)
    report = await checker.check_all()
    healthy = report["status"] == HealthStatus.HEALTHY.value
    return JSONResponse(
        {"success": healthy, "data": report},
        status_code=200 if healthy else 503,
    )


@router.get("/metrics")
async def metrics(
    registry: ClientRegistry = Depends(get_registry),
    config: DashboardConfig = Depends(get_config),
):
    """Operation latencies, registry state and effective limits."""
    return JSONResponse(
        {
            "success": True,
            "data": {
                "operations": get_metrics_collector().get_summary(),
                "registry": registry.stats(),
                "limits": {
                    "defaultPageSize": config.default_page_size,
                    "maxPoolSize": config.max_pool_size,
                    "minPoolSize": config.min_pool_size,
                    "serverSelectionTimeoutMS": config.server_selection_timeout_ms,
                },
            },
        }
    )
