"""Tests for log contexts and metrics collection."""

import pytest

from images_normalizer.core.observability import (
    LogContext,
    MetricsCollector,
    PerformanceMetrics,
)


def test_log_context_is_copied_not_mutated():
    base = LogContext(correlation_id="id-1", component="svc")
    derived = base.with_operation("encode").with_metadata(source="a.png")

    assert base.operation == ""
    assert base.metadata == {}
    assert derived.correlation_id == "id-1"
    assert derived.component == "svc"
    assert derived.metadata == {"source": "a.png"}


def test_log_context_format():
    context = LogContext(correlation_id="id-1", operation="decode", metadata={"source": "a.png"})
    assert context.format("Done", size="10x10") == "[decode] [id-1] Done (source=a.png, size=10x10)"


def test_log_context_generates_ids():
    assert LogContext().correlation_id != LogContext().correlation_id


def test_metrics_summary():
    collector = MetricsCollector()
    collector.record_metric(PerformanceMetrics("process_image", 0.1, True))
    collector.record_metric(PerformanceMetrics("process_image", 0.3, False, "DecodeError"))
    collector.record_metric(PerformanceMetrics("other", 5.0, True))

    summary = collector.get_summary("process_image")

    assert summary["total_operations"] == 2
    assert summary["failed_operations"] == 1
    assert summary["success_rate"] == 0.5
    assert summary["avg_duration"] == pytest.approx(0.2)
    assert summary["max_duration"] == pytest.approx(0.3)


def test_metrics_empty_summary():
    assert MetricsCollector().get_summary() == {}


def test_duration_ms():
    assert PerformanceMetrics("x", 0.25, True).duration_ms == 250


def test_clear_metrics():
    collector = MetricsCollector()
    collector.record_metric(PerformanceMetrics("x", 1.0, True))
    collector.clear_metrics()
    assert collector.get_metrics() == []
