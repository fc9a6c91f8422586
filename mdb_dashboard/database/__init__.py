"""
Database layer.

Provides the per-connection-string client registry and the query gateway
that turns validated requests into single MongoDB operations.
"""

from .gateway import QueryGateway
from .identifiers import coerce_identifiers, to_object_id
from .query_validator import QueryValidator
from .registry import ClientRegistry
from .types import OperationResult, QuerySpec

__all__ = [
    # Connection pooling
    "ClientRegistry",
    # Request handling
    "QueryGateway",
    "QuerySpec",
    "OperationResult",
    # Validation and coercion
    "QueryValidator",
    "coerce_identifiers",
    "to_object_id",
]
