"""
Exceptions raised inside the dashboard.

The gateway turns each of them into a failed OperationResult carrying the
exception's ``message`` and ``kind``; the HTTP layer then picks the status
code from the kind (validation 400, connection 503, operation 500).
All of them subclass RuntimeError.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Failure class of a failed operation."""

    VALIDATION = "validation"
    CONNECTION = "connection"
    OPERATION = "operation"


def _with_fields(context: Optional[Dict[str, Any]], **fields: Any) -> Dict[str, Any]:
    merged = dict(context or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class DashboardError(RuntimeError):
    """
    Base class. ``message`` is what the caller sees; ``context`` only
    shows up in str() and logs.
    """

    kind: ErrorKind = ErrorKind.OPERATION

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} (context: {details})"


class ConfigurationError(DashboardError):
    """A DashboardConfig value (from arguments or environment) is unusable."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            context=_with_fields(context, config_key=config_key, config_value=config_value),
        )
        self.config_key = config_key
        self.config_value = config_value


class RequestValidationError(DashboardError):
    """
    A request field is missing or malformed.

    Always raised before a client is acquired, so an invalid request never
    reaches the server.
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_with_fields(context, field=field))
        self.field = field


class ClientConnectionError(DashboardError):
    """
    No usable client could be built for a connection string: the URI is
    malformed, the host is unreachable, authentication failed or server
    selection timed out. ``mongo_uri`` is always the redacted form.
    """

    kind = ErrorKind.CONNECTION

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_with_fields(context, mongo_uri=mongo_uri))
        self.mongo_uri = mongo_uri


class StoreOperationError(DashboardError):
    """The server rejected an operation (duplicate key, unknown pipeline stage, ...)."""

    kind = ErrorKind.OPERATION

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context=_with_fields(context, operation=operation))
        self.operation = operation
