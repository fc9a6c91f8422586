"""
Request middleware for the dashboard API.

Usage:
    from mdb_dashboard.routing import RequestContextMiddleware

    app.add_middleware(RequestContextMiddleware)

Every response leaves with:
- ``X-Request-ID``: the caller's value, or a generated one
- no-cache headers, so browsers never show stale documents
"""

import logging
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..constants import NO_CACHE_HEADERS, REQUEST_ID_HEADER
from ..observability import clear_correlation_id, set_correlation_id

logger = logging.getLogger(__name__)


def apply_no_cache_headers(response: Response) -> Response:
    for name, value in NO_CACHE_HEADERS.items():
        response.headers[name] = value
    return response


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Binds a correlation ID to each request and disables response caching.
    """

    def __init__(self, app: Callable, header_name: str = REQUEST_ID_HEADER):
        super().__init__(app)
        self._header_name = header_name

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = set_correlation_id(request.headers.get(self._header_name) or None)
        try:
            response = await call_next(request)
        finally:
            clear_correlation_id()

        response.headers[self._header_name] = correlation_id
        return apply_no_cache_headers(response)
