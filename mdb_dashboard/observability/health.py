"""
Health checks for the dashboard.

Two probes exist: one against a single cached Motor client (used by the
registry before it hands a client out again) and one against the registry
itself (used by the /health endpoint). HealthChecker folds any number of
named checks into one report.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

from pymongo.errors import PyMongoError

from ..constants import ADMIN_DATABASE, PING_COMMAND

if TYPE_CHECKING:
    from ..database.registry import ClientRegistry

logger = logging.getLogger(__name__)

HealthCheck = Callable[[], Awaitable["HealthCheckResult"]]


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


# Worst status wins when folding; UNKNOWN only wins over HEALTHY
_SEVERITY = {
    HealthStatus.HEALTHY: 0,
    HealthStatus.UNKNOWN: 1,
    HealthStatus.DEGRADED: 2,
    HealthStatus.UNHEALTHY: 3,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class HealthCheckResult:
    """Outcome of one named check."""

    name: str
    status: HealthStatus
    message: str
    details: dict[str, Any] | None = None
    checked_at: datetime = field(default_factory=_utcnow)

    @property
    def healthy(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "message": self.message,
            "details": self.details,
            "timestamp": self.checked_at.isoformat(),
        }


def fold_statuses(statuses: Iterable[HealthStatus]) -> HealthStatus:
    """Overall status of a set of checks. An empty set is UNKNOWN."""
    statuses = list(statuses)
    if not statuses:
        return HealthStatus.UNKNOWN
    return max(statuses, key=_SEVERITY.__getitem__)


class HealthChecker:
    """
    Named async checks folded into a single report.

    Checks run concurrently. A check that raises is reported as UNKNOWN
    under its own name instead of failing the whole report.
    """

    def __init__(self) -> None:
        self._checks: dict[str, HealthCheck] = {}

    def register_check(self, check: HealthCheck, name: str | None = None) -> None:
        """
        Register a check.

        Args:
            check: Coroutine function returning a HealthCheckResult
            name: Report name (defaults to the function name)
        """
        self._checks[name or getattr(check, "__name__", "check")] = check

    async def _run(self, name: str, check: HealthCheck) -> HealthCheckResult:
        try:
            return await check()
        except (PyMongoError, RuntimeError, ValueError, TypeError, OSError) as e:
            logger.error(f"Health check {name} raised: {e}", exc_info=True)
            return HealthCheckResult(
                name=name, status=HealthStatus.UNKNOWN, message=f"Check failed: {e}"
            )

    async def check_all(self) -> dict[str, Any]:
        """
        Run every registered check.

        Returns:
            {"status", "timestamp", "checks": [HealthCheckResult.to_dict(), ...]}
        """
        results = await asyncio.gather(
            *(self._run(name, check) for name, check in self._checks.items())
        )
        return {
            "status": fold_statuses(r.status for r in results).value,
            "timestamp": _utcnow().isoformat(),
            "checks": [r.to_dict() for r in results],
        }


async def probe_client(client: Any | None, timeout_seconds: float = 5.0) -> HealthCheckResult:
    """
    Ping a Motor client on the admin database, bounded by ``timeout_seconds``.

    Never raises for server or network trouble; the outcome is in the
    returned status and message.
    """
    if client is None:
        return HealthCheckResult("mongodb", HealthStatus.UNHEALTHY, "No client to probe")

    try:
        await asyncio.wait_for(
            client[ADMIN_DATABASE].command(PING_COMMAND), timeout=timeout_seconds
        )
    except asyncio.TimeoutError:
        return HealthCheckResult(
            "mongodb", HealthStatus.UNHEALTHY, f"Ping timed out after {timeout_seconds}s"
        )
    except PyMongoError as e:
        return HealthCheckResult("mongodb", HealthStatus.UNHEALTHY, f"Ping failed: {e}")

    return HealthCheckResult(
        "mongodb",
        HealthStatus.HEALTHY,
        "Ping succeeded",
        details={"timeout_seconds": timeout_seconds},
    )


async def check_registry_health(registry: "ClientRegistry | None") -> HealthCheckResult:
    """
    Report whether the registry accepts work.

    Cached clients are not pinged here; they are probed on their next acquire.
    """
    if registry is None:
        return HealthCheckResult(
            "client_registry", HealthStatus.UNHEALTHY, "Client registry not initialized"
        )

    if registry.closed:
        return HealthCheckResult(
            "client_registry",
            HealthStatus.UNHEALTHY,
            "Client registry is closed",
            details=registry.stats(),
        )

    return HealthCheckResult(
        "client_registry",
        HealthStatus.HEALTHY,
        "Client registry is accepting connections",
        details=registry.stats(),
    )
