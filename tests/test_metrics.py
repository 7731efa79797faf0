"""Tests for the metrics sinks."""

import prometheus_client
import pytest

from glbc.metrics import (
    InMemoryMetricsSink,
    MetricDefinition,
    MetricType,
    PrometheusMetricsSink,
    start_metrics_server,
)

REQUESTS = MetricDefinition(
    name="glbc_test_requests_total",
    help="Test requests",
    type=MetricType.COUNTER,
    labels=("result",),
)
PENDING = MetricDefinition(
    name="glbc_test_pending",
    help="Test pending",
    type=MetricType.GAUGE,
    labels=("host",),
    non_negative=True,
)
LEVEL = MetricDefinition(
    name="glbc_test_level",
    help="Test level",
    type=MetricType.GAUGE,
)
DURATION = MetricDefinition(
    name="glbc_test_duration_seconds",
    help="Test duration",
    type=MetricType.HISTOGRAM,
    labels=("result",),
    buckets=(1, 5, 10),
)


def test_in_memory_sink() -> None:
    """Test recording metrics in memory."""
    sink = InMemoryMetricsSink()
    sink.inc_counter(REQUESTS, {"result": "ok"})
    sink.inc_counter(REQUESTS, {"result": "ok"}, 2)
    assert sink.counter(REQUESTS, result="ok") == 3
    assert sink.counter(REQUESTS, result="failed") == 0

    sink.observe_histogram(DURATION, {"result": "ok"}, 1.5)
    assert sink.observations(DURATION, result="ok") == [1.5]

    sink.set_gauge(LEVEL, {}, 5)
    sink.add_gauge(LEVEL, {}, -7)
    assert sink.gauge(LEVEL) == -2


def test_in_memory_non_negative_gauge() -> None:
    """Test gauges flagged non-negative never drop below zero."""
    sink = InMemoryMetricsSink()
    sink.add_gauge(PENDING, {"host": "a"}, 1)
    sink.add_gauge(PENDING, {"host": "a"}, -1)
    sink.add_gauge(PENDING, {"host": "a"}, -1)
    assert sink.gauge(PENDING, host="a") == 0
    sink.add_gauge(PENDING, {"host": "a"}, 1)
    assert sink.gauge(PENDING, host="a") == 1


def test_invalid_labels() -> None:
    """Test recording with labels not matching the definition."""
    sink = InMemoryMetricsSink()
    with pytest.raises(ValueError, match="expects labels"):
        sink.inc_counter(REQUESTS, {})
    with pytest.raises(ValueError, match="expects labels"):
        sink.inc_counter(REQUESTS, {"result": "ok", "extra": "x"})


def test_prometheus_sink() -> None:
    """Test recording metrics with prometheus_client."""
    registry = prometheus_client.CollectorRegistry()
    sink = PrometheusMetricsSink(registry)

    sink.inc_counter(REQUESTS, {"result": "ok"})
    sink.inc_counter(REQUESTS, {"result": "ok"})
    assert registry.get_sample_value("glbc_test_requests_total", {"result": "ok"}) == 2

    sink.add_gauge(PENDING, {"host": "a"}, 1)
    sink.add_gauge(PENDING, {"host": "a"}, -2)
    assert registry.get_sample_value("glbc_test_pending", {"host": "a"}) == 0

    sink.set_gauge(LEVEL, {}, 3)
    assert registry.get_sample_value("glbc_test_level") == 3

    sink.observe_histogram(DURATION, {"result": "ok"}, 4)
    assert registry.get_sample_value("glbc_test_duration_seconds_count", {"result": "ok"}) == 1
    assert (
        registry.get_sample_value(
            "glbc_test_duration_seconds_bucket", {"result": "ok", "le": "5.0"}
        )
        == 1
    )


def test_metrics_server_disabled() -> None:
    """Test port 0 disables the metrics endpoint."""
    start_metrics_server(0, PrometheusMetricsSink(prometheus_client.CollectorRegistry()))
