"""
Constants for MDB_DASHBOARD.

This module contains all shared constants used across the codebase to avoid
magic numbers and improve maintainability.
"""

from typing import Final

# ============================================================================
# CONNECTION POOL CONSTANTS
# ============================================================================

DEFAULT_MAX_POOL_SIZE: Final[int] = 10
"""Default maximum connection pool size for each cached client."""

DEFAULT_MIN_POOL_SIZE: Final[int] = 2
"""Default minimum connection pool size for each cached client."""

DEFAULT_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 5000
"""Default server selection timeout in milliseconds."""

MIN_SERVER_SELECTION_TIMEOUT_MS: Final[int] = 1000
"""Lowest accepted server selection timeout in milliseconds."""

DEFAULT_MAX_IDLE_TIME_MS: Final[int] = 45000
"""Default maximum idle time before closing pooled connections (milliseconds)."""

PROBE_TIMEOUT_SLACK_SECONDS: Final[float] = 1.0
"""Added to the server selection timeout when bounding a liveness probe."""

DEFAULT_APP_NAME: Final[str] = "MDB_DASHBOARD"
"""Application name reported to the server by every client."""

ADMIN_DATABASE: Final[str] = "admin"
"""Database the liveness probe runs against."""

PING_COMMAND: Final[str] = "ping"
"""Administrative no-op command used as the liveness probe."""

# ============================================================================
# CONNECTION STRING CONSTANTS
# ============================================================================

MONGODB_SCHEMES: Final[tuple[str, ...]] = (
    "mongodb://",
    "mongodb+srv://",
)
"""Accepted connection string prefixes."""

REDACTED_PASSWORD: Final[str] = "****"
"""Replacement for passwords when a connection string is logged."""

# ============================================================================
# QUERY CONSTANTS
# ============================================================================

DEFAULT_PAGE_SIZE: Final[int] = 50
"""Default number of documents returned by a document listing."""

DEFAULT_SKIP: Final[int] = 0
"""Default offset of a document listing."""

ID_FIELD: Final[str] = "_id"
"""Primary identifier field of every document."""

MAX_BSON_INT64: Final[int] = 2**63 - 1
"""Largest limit or skip the server accepts (BSON int64)."""

# ============================================================================
# NAMESPACE CONSTANTS
# ============================================================================

MAX_DATABASE_NAME_LENGTH: Final[int] = 64
"""Maximum length for MongoDB database names."""

MAX_COLLECTION_NAME_LENGTH: Final[int] = 255
"""Maximum length for MongoDB collection names."""

INVALID_DATABASE_NAME_CHARS: Final[tuple[str, ...]] = ("/", "\\", ".", " ", '"', "$", "\x00")
"""Characters MongoDB does not allow in database names."""

INVALID_COLLECTION_NAME_CHARS: Final[tuple[str, ...]] = ("$", "\x00")
"""Characters MongoDB does not allow in collection names."""

SYSTEM_COLLECTION_PREFIX: Final[str] = "system."
"""Prefix of server-managed collections that cannot be created or dropped by users."""

DATABASE_BOOTSTRAP_COLLECTION: Final[str] = "_init"
"""Placeholder collection created (then dropped) to materialize a new database."""

# ============================================================================
# HTTP CONSTANTS
# ============================================================================

API_PREFIX: Final[str] = "/api/mongodb"
"""Mount point of the dashboard API router."""

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
"""Header carrying the request correlation ID."""

NO_CACHE_HEADERS: Final[dict[str, str]] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}
"""Headers attached to every API response so intermediaries never cache it."""

DEFAULT_HOST: Final[str] = "127.0.0.1"
"""Default bind address for the dashboard server."""

DEFAULT_PORT: Final[int] = 8000
"""Default port for the dashboard server."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_METRICS: Final[int] = 10000
"""Maximum number of distinct metric keys kept before the oldest is evicted."""
