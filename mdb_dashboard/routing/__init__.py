"""
HTTP surface of the dashboard.

Provides the /api/mongodb router, its request schemas and the request
middleware.
"""

from .api import STATUS_BY_KIND, router, to_response
from .middleware import RequestContextMiddleware, apply_no_cache_headers

__all__ = [
    "router",
    "to_response",
    "STATUS_BY_KIND",
    "RequestContextMiddleware",
    "apply_no_cache_headers",
]
