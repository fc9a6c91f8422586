"""
FastAPI Dependencies for MDB_DASHBOARD

The registry, gateway and configuration are built once per process by the
application lifespan and stored on ``app.state``; these dependencies hand
them to route handlers.

Usage:
    from fastapi import Depends
    from mdb_dashboard.dependencies import get_gateway

    @router.post("/databases")
    async def databases(body: ConnectionRequest, gateway: QueryGateway = Depends(get_gateway)):
        return await gateway.list_databases(body.uri)
"""

import logging

from fastapi import HTTPException, Request

from .config import DashboardConfig
from .database.gateway import QueryGateway
from .database.registry import ClientRegistry

logger = logging.getLogger(__name__)


async def get_registry(request: Request) -> ClientRegistry:
    """Get the process-wide ClientRegistry from app state."""
    registry = getattr(request.app.state, "registry", None)
    if registry is None:
        raise HTTPException(503, "Client registry not initialized")
    return registry


async def get_gateway(request: Request) -> QueryGateway:
    """Get the QueryGateway from app state."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(503, "Query gateway not initialized")
    return gateway


async def get_config(request: Request) -> DashboardConfig:
    """Get the dashboard configuration from app state."""
    config = getattr(request.app.state, "config", None)
    if config is None:
        raise HTTPException(503, "Dashboard configuration not available")
    return config
