"""
FastAPI application factory for MDB_DASHBOARD.

Usage:
    uvicorn --factory mdb_dashboard.app:create_app

    # or, with explicit configuration
    from mdb_dashboard import DashboardConfig, create_app
    app = create_app(DashboardConfig(max_pool_size=20))

The lifespan builds one ClientRegistry and one QueryGateway per process
and closes every cached client on shutdown.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError as FastAPIRequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import DashboardConfig
from .database.gateway import QueryGateway
from .database.registry import ClientRegistry
from .routing import RequestContextMiddleware, apply_no_cache_headers, router

logger = logging.getLogger(__name__)


def _format_validation_errors(exc: FastAPIRequestValidationError) -> str:
    """Turn pydantic's error list into one readable sentence."""
    messages = []
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            messages.append("Request body is not valid JSON")
            continue
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        field = ".".join(location)
        if error.get("type") == "missing":
            messages.append(f"{field} is required" if field else "Request body is required")
        else:
            messages.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
    return "; ".join(messages) or "Invalid request"


def create_app(
    config: DashboardConfig | None = None,
    registry: ClientRegistry | None = None,
) -> FastAPI:
    """
    Create the dashboard application.

    Args:
        config: Dashboard configuration (read from the environment if None)
        registry: Pre-built ClientRegistry; the caller keeps ownership and
            it is not closed on shutdown

    Returns:
        Configured FastAPI application

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = config or DashboardConfig()
    config.validate()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_registry = registry is None
        app_registry = (
            registry if registry is not None else ClientRegistry(**config.registry_options())
        )
        app.state.config = config
        app.state.registry = app_registry
        app.state.gateway = QueryGateway(app_registry, default_page_size=config.default_page_size)
        logger.info(
            f"Dashboard started (max_pool_size={config.max_pool_size}, "
            f"min_pool_size={config.min_pool_size}, "
            f"server_selection_timeout_ms={config.server_selection_timeout_ms})"
        )
        try:
            yield
        finally:
            if owns_registry:
                await app_registry.close_all()
            app.state.gateway = None
            app.state.registry = None
            logger.info("Dashboard stopped")

    app = FastAPI(
        title="MongoDB Dashboard API",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials="*" not in config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(FastAPIRequestValidationError)
    async def request_validation_handler(
        request: Request, exc: FastAPIRequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            {"success": False, "error": _format_validation_errors(exc)}, status_code=400
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            {"success": False, "error": str(exc.detail)},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        response = JSONResponse(
            {"success": False, "error": "Internal server error"}, status_code=500
        )
        return apply_no_cache_headers(response)

    app.include_router(router)
    return app
