"""
Logging context, operation metrics and health probes shared by the
registry, the gateway and the HTTP layer.
"""

from .health import (
    HealthChecker,
    HealthCheckResult,
    HealthStatus,
    check_registry_health,
    fold_statuses,
    probe_client,
)
from .logging import (
    ContextualLoggerAdapter,
    clear_correlation_id,
    clear_request_context,
    get_correlation_id,
    get_logger,
    get_logging_context,
    log_operation,
    set_correlation_id,
    set_request_context,
)
from .metrics import MetricsCollector, OperationMetrics, get_metrics_collector, record_operation

__all__ = [
    "ContextualLoggerAdapter",
    "HealthCheckResult",
    "HealthChecker",
    "HealthStatus",
    "MetricsCollector",
    "OperationMetrics",
    "check_registry_health",
    "clear_correlation_id",
    "clear_request_context",
    "fold_statuses",
    "get_correlation_id",
    "get_logger",
    "get_logging_context",
    "get_metrics_collector",
    "log_operation",
    "probe_client",
    "record_operation",
    "set_correlation_id",
    "set_request_context",
]
