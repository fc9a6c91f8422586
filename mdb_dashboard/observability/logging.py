"""
Contextual logging for the dashboard.

Two context variables follow a request through the middleware, the gateway
and the registry:

- the correlation id (taken from the X-Request-ID header or generated)
- the request context: operation, database, collection and the redacted
  connection string of the gateway call in flight

ContextualLoggerAdapter copies both onto every record it emits.
"""

import contextvars
import logging
import uuid
from datetime import datetime
from typing import Any

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "dashboard_correlation_id", default=None
)
_request_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "dashboard_request_context", default={}
)


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind ``correlation_id`` (a fresh uuid4 hex if None) to the current context."""
    correlation_id = correlation_id or uuid.uuid4().hex
    _correlation_id.set(correlation_id)
    return correlation_id


def clear_correlation_id() -> None:
    _correlation_id.set(None)


def set_request_context(**fields: Any) -> None:
    """
    Replace the request context. Fields whose value is None are left out,
    so optional arguments can be passed straight through.
    """
    _request_context.set({key: value for key, value in fields.items() if value is not None})


def clear_request_context() -> None:
    _request_context.set({})


def get_logging_context() -> dict[str, Any]:
    """Snapshot of the correlation id and request context, plus a timestamp."""
    context: dict[str, Any] = {"timestamp": datetime.now().isoformat()}
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    context.update(_request_context.get())
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """LoggerAdapter that merges the logging context into ``extra``."""

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        # Explicit extra fields win over context fields of the same name
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    level: int = logging.INFO,
    success: bool = True,
    duration_ms: float | None = None,
    **context: Any,
) -> None:
    """
    Emit one line for a finished operation.

    The message reads ``"<operation> ok"`` or ``"<operation> failed"``
    followed by ``" in <n>ms"`` when a duration is given. Structured fields
    (success, duration_ms, anything in ``context``) go into ``extra``.
    """
    extra = get_logging_context()
    extra["operation"] = operation
    extra["success"] = success
    if duration_ms is not None:
        extra["duration_ms"] = round(duration_ms, 2)
    extra.update(context)

    message = f"{operation} {'ok' if success else 'failed'}"
    if duration_ms is not None:
        message += f" in {duration_ms:.2f}ms"
    logger.log(level, message, extra=extra)
