"""
MDB_DASHBOARD - MongoDB Dashboard Backend

Pooled client registry and query gateway behind an HTTP API for browsing
and editing MongoDB deployments.
"""

__version__ = "0.1.0"

# Application
from .app import create_app  # noqa: E402
from .config import DashboardConfig  # noqa: E402
# Database layer
from .database import (ClientRegistry, OperationResult,  # noqa: E402
                       QueryGateway, QuerySpec, QueryValidator)
# Errors
from .exceptions import (ClientConnectionError, ConfigurationError,  # noqa: E402
                         DashboardError, ErrorKind,
                         RequestValidationError, StoreOperationError)

__all__ = [
    # Application
    "create_app",
    "DashboardConfig",
    # Database
    "ClientRegistry",
    "QueryGateway",
    "QuerySpec",
    "OperationResult",
    "QueryValidator",
    # Errors
    "DashboardError",
    "ErrorKind",
    "ConfigurationError",
    "ClientConnectionError",
    "RequestValidationError",
    "StoreOperationError",
]
