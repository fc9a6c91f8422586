"""
Value types shared by the gateway and the HTTP layer.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ErrorKind


@dataclass
class QuerySpec:
    """
    Read parameters used uniformly by every document listing.

    ``limit`` and ``skip`` left as None fall back to the gateway defaults
    (50 and 0).
    """

    filter: dict[str, Any] = field(default_factory=dict)
    projection: dict[str, Any] | None = None
    sort: dict[str, Any] | list[Any] | None = None
    limit: int | None = None
    skip: int | None = None

    def sort_pairs(self) -> list[tuple[str, Any]] | None:
        """Sort specification as the (field, direction) list the driver expects."""
        if not self.sort:
            return None
        if isinstance(self.sort, Mapping):
            return list(self.sort.items())
        return [(name, direction) for name, direction in self.sort]


@dataclass
class OperationResult:
    """
    Normalized outcome of a gateway call.

    Either ``success`` with a ``data`` payload, or a failure with a readable
    ``error`` and the ``kind`` of failure.
    """

    success: bool
    data: Any = None
    error: str | None = None
    kind: ErrorKind | None = None

    @classmethod
    def ok(cls, data: Any = None) -> "OperationResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = ErrorKind.OPERATION) -> "OperationResult":
        return cls(success=False, error=error, kind=kind)

    def to_dict(self) -> dict[str, Any]:
        """Response body: {"success", "data"?, "error"?}."""
        body: dict[str, Any] = {"success": self.success}
        if self.success:
            if self.data is not None:
                body["data"] = self.data
        else:
            body["error"] = self.error
        return body
