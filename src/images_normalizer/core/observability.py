"""Per-file log contexts and timing metrics."""

import statistics
import threading
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LogContext:
    """Correlation id, pipeline step and file details attached to a log line."""

    correlation_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    operation: str = ""
    component: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def with_operation(self, operation: str) -> "LogContext":
        return replace(self, operation=operation, metadata=dict(self.metadata))

    def with_metadata(self, **kwargs: Any) -> "LogContext":
        return replace(self, metadata={**self.metadata, **kwargs})

    def format(self, message: str, **kwargs: Any) -> str:
        """Render as ``[operation] [id] message (key=value, ...)``."""
        parts = [f"[{self.operation}]"] if self.operation else []
        parts.append(f"[{self.correlation_id}] {message}")
        extra = {**self.metadata, **kwargs}
        if extra:
            parts.append("(" + ", ".join(f"{k}={v}" for k, v in extra.items()) + ")")
        return " ".join(parts)


@dataclass
class PerformanceMetrics:
    """Wall time and outcome of one processed file."""

    operation: str
    duration: float
    success: bool
    error_type: Optional[str] = None

    @property
    def duration_ms(self) -> float:
        return self.duration * 1000


class MetricsCollector:
    """Collects file metrics from worker threads."""

    def __init__(self):
        self._metrics: List[PerformanceMetrics] = []
        self._lock = threading.Lock()

    def record_metric(self, metric: PerformanceMetrics) -> None:
        with self._lock:
            self._metrics.append(metric)

    def get_metrics(self, operation: Optional[str] = None) -> List[PerformanceMetrics]:
        with self._lock:
            snapshot = list(self._metrics)
        if operation is None:
            return snapshot
        return [metric for metric in snapshot if metric.operation == operation]

    def get_summary(self, operation: Optional[str] = None) -> Dict[str, Any]:
        """Counts and duration statistics, or an empty dict when nothing was recorded."""
        metrics = self.get_metrics(operation)
        if not metrics:
            return {}

        durations = [metric.duration for metric in metrics]
        succeeded = sum(1 for metric in metrics if metric.success)
        return {
            "total_operations": len(metrics),
            "successful_operations": succeeded,
            "failed_operations": len(metrics) - succeeded,
            "success_rate": succeeded / len(metrics),
            "avg_duration": statistics.fmean(durations),
            "median_duration": statistics.median(durations),
            "min_duration": min(durations),
            "max_duration": max(durations),
            "total_duration": sum(durations),
        }

    def clear_metrics(self) -> None:
        with self._lock:
            self._metrics.clear()
