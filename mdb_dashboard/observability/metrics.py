"""
In-process operation metrics.

Every gateway call and every registry event (client created, probed,
evicted) is recorded here as ``<component>.<operation>`` with its latency.
Failed gateway calls also carry their error kind, so the /metrics endpoint
can tell validation noise apart from an unreachable server.
"""

import logging
import threading
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..constants import MAX_METRICS

logger = logging.getLogger(__name__)


@dataclass
class OperationMetrics:
    """Latency and failure counters for one metric key."""

    operation_name: str
    count: int = 0
    total_duration_ms: float = 0.0
    min_duration_ms: float | None = None
    max_duration_ms: float = 0.0
    errors_by_kind: Counter = field(default_factory=Counter)
    last_execution: datetime | None = None

    @property
    def error_count(self) -> int:
        return sum(self.errors_by_kind.values())

    @property
    def avg_duration_ms(self) -> float:
        return self.total_duration_ms / self.count if self.count else 0.0

    @property
    def error_rate(self) -> float:
        """Failed share of executions, in percent."""
        return self.error_count * 100 / self.count if self.count else 0.0

    def record(self, duration_ms: float, error_kind: str | None = None) -> None:
        self.count += 1
        self.total_duration_ms += duration_ms
        if self.min_duration_ms is None or duration_ms < self.min_duration_ms:
            self.min_duration_ms = duration_ms
        self.max_duration_ms = max(self.max_duration_ms, duration_ms)
        if error_kind is not None:
            self.errors_by_kind[error_kind] += 1
        self.last_execution = datetime.now()

    def merge(self, other: "OperationMetrics") -> None:
        self.count += other.count
        self.total_duration_ms += other.total_duration_ms
        if other.min_duration_ms is not None:
            self.min_duration_ms = (
                other.min_duration_ms
                if self.min_duration_ms is None
                else min(self.min_duration_ms, other.min_duration_ms)
            )
        self.max_duration_ms = max(self.max_duration_ms, other.max_duration_ms)
        self.errors_by_kind.update(other.errors_by_kind)
        if other.last_execution is not None:
            self.last_execution = max(filter(None, (self.last_execution, other.last_execution)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation_name,
            "count": self.count,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "min_duration_ms": round(self.min_duration_ms or 0.0, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
            "error_count": self.error_count,
            "error_rate_percent": round(self.error_rate, 2),
            "errors_by_kind": dict(self.errors_by_kind),
            "last_execution": self.last_execution.isoformat() if self.last_execution else None,
        }


def metric_key(operation_name: str, tags: dict[str, Any]) -> str:
    """``name`` or ``name[k1=v1,k2=v2]`` with tags in sorted order."""
    if not tags:
        return operation_name
    rendered = ",".join(f"{k}={v}" for k, v in sorted(tags.items()))
    return f"{operation_name}[{rendered}]"


class MetricsCollector:
    """
    Thread-safe store of OperationMetrics.

    At most ``max_metrics`` keys are kept. Recording a new key beyond that
    drops the key that was recorded least recently.
    """

    def __init__(self, max_metrics: int = MAX_METRICS):
        self._metrics: OrderedDict[str, OperationMetrics] = OrderedDict()
        self._lock = threading.Lock()
        self._max_metrics = max_metrics

    def record_operation(
        self,
        operation_name: str,
        duration_ms: float,
        success: bool = True,
        error_kind: str | None = None,
        **tags: Any,
    ) -> None:
        """
        Record one execution.

        Args:
            operation_name: e.g. "gateway.list_documents" or "registry.probe"
            duration_ms: Wall time in milliseconds
            success: False counts the execution as an error
            error_kind: Failure class of an unsuccessful execution
                ("error" when not given)
            **tags: Extra key dimensions such as database or collection
        """
        if not success and error_kind is None:
            error_kind = "error"
        key = metric_key(operation_name, tags)

        with self._lock:
            metric = self._metrics.pop(key, None)
            if metric is None:
                metric = OperationMetrics(operation_name=operation_name)
                while len(self._metrics) >= self._max_metrics:
                    self._metrics.popitem(last=False)
            self._metrics[key] = metric
            metric.record(duration_ms, error_kind if not success else None)

    def get_metrics(self, operation_name: str | None = None) -> dict[str, Any]:
        """
        Per-key metrics, optionally limited to keys starting with ``operation_name``.
        """
        with self._lock:
            selected = {
                key: metric.to_dict()
                for key, metric in self._metrics.items()
                if operation_name is None or key.startswith(operation_name)
            }
            total = len(self._metrics)

        return {
            "timestamp": datetime.now().isoformat(),
            "metrics": selected,
            "total_operations": total,
        }

    def get_summary(self) -> dict[str, Any]:
        """Metrics per operation name with all tag variants merged."""
        summary: dict[str, OperationMetrics] = {}
        with self._lock:
            for metric in self._metrics.values():
                name = metric.operation_name
                summary.setdefault(name, OperationMetrics(operation_name=name)).merge(metric)
            total = len(self._metrics)

        return {
            "timestamp": datetime.now().isoformat(),
            "total_operations": total,
            "summary": {name: metric.to_dict() for name, metric in summary.items()},
        }

    def get_operation_count(self, operation_name: str) -> int:
        """Executions of ``operation_name`` across all of its tag variants."""
        with self._lock:
            return sum(
                metric.count
                for metric in self._metrics.values()
                if metric.operation_name == operation_name
            )

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector used by the gateway, the registry and /metrics."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(
    operation_name: str,
    duration_ms: float,
    success: bool = True,
    error_kind: str | None = None,
    **tags: Any,
) -> None:
    """Record an execution in the process-wide collector."""
    get_metrics_collector().record_operation(
        operation_name, duration_ms, success, error_kind, **tags
    )
