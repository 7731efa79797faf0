"""Observability sink receiving the counters, gauges and histograms glbc emits.

Controllers receive a sink at construction rather than mutating shared
module state. Metric definitions live next to the code emitting them; the sink
only needs the definition to record a value, which keeps the export format
(Prometheus or an in memory recorder for tests) out of the controllers.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
import logging
from typing import Any

import prometheus_client

__all__ = [
    "MetricType",
    "MetricDefinition",
    "MetricsSink",
    "InMemoryMetricsSink",
    "PrometheusMetricsSink",
    "start_metrics_server",
]

_LOGGER = logging.getLogger(__name__)

Labels = Mapping[str, str]


class MetricType(StrEnum):
    """The kind of a metric."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"


@dataclass(frozen=True)
class MetricDefinition:
    """Static description of a metric."""

    name: str
    help: str
    type: MetricType
    labels: tuple[str, ...] = ()
    buckets: tuple[float, ...] | None = None
    non_negative: bool = False
    """Gauges flagged non-negative are clamped at zero when decremented."""


class MetricsSink(ABC):
    """Interface for recording metrics."""

    @abstractmethod
    def inc_counter(
        self, metric: MetricDefinition, labels: Labels, value: float = 1.0
    ) -> None:
        """Increment a counter."""

    @abstractmethod
    def observe_histogram(
        self, metric: MetricDefinition, labels: Labels, value: float
    ) -> None:
        """Record an observation in a histogram."""

    @abstractmethod
    def set_gauge(self, metric: MetricDefinition, labels: Labels, value: float) -> None:
        """Set a gauge to a value."""

    @abstractmethod
    def add_gauge(self, metric: MetricDefinition, labels: Labels, delta: float) -> None:
        """Add a (possibly negative) delta to a gauge."""


def _key(metric: MetricDefinition, labels: Labels) -> tuple[str, tuple[str, ...]]:
    missing = set(metric.labels) - set(labels)
    if missing or len(labels) != len(metric.labels):
        raise ValueError(
            f"Metric {metric.name} expects labels {metric.labels} got {sorted(labels)}"
        )
    return (metric.name, tuple(labels[label] for label in metric.labels))


@dataclass
class InMemoryMetricsSink(MetricsSink):
    """Records metrics in memory, for tests and local runs."""

    counters: dict[tuple[str, tuple[str, ...]], float] = field(
        default_factory=lambda: defaultdict(float)
    )
    gauges: dict[tuple[str, tuple[str, ...]], float] = field(
        default_factory=lambda: defaultdict(float)
    )
    histograms: dict[tuple[str, tuple[str, ...]], list[float]] = field(
        default_factory=lambda: defaultdict(list)
    )

    def inc_counter(
        self, metric: MetricDefinition, labels: Labels, value: float = 1.0
    ) -> None:
        self.counters[_key(metric, labels)] += value

    def observe_histogram(
        self, metric: MetricDefinition, labels: Labels, value: float
    ) -> None:
        self.histograms[_key(metric, labels)].append(value)

    def set_gauge(self, metric: MetricDefinition, labels: Labels, value: float) -> None:
        self.gauges[_key(metric, labels)] = value

    def add_gauge(self, metric: MetricDefinition, labels: Labels, delta: float) -> None:
        key = _key(metric, labels)
        value = self.gauges[key] + delta
        if metric.non_negative and value < 0:
            value = 0.0
        self.gauges[key] = value

    def counter(self, metric: MetricDefinition, **labels: str) -> float:
        """Return the current value of a counter."""
        return self.counters.get(_key(metric, labels), 0.0)

    def gauge(self, metric: MetricDefinition, **labels: str) -> float:
        """Return the current value of a gauge."""
        return self.gauges.get(_key(metric, labels), 0.0)

    def observations(self, metric: MetricDefinition, **labels: str) -> list[float]:
        """Return the observations recorded in a histogram."""
        return list(self.histograms.get(_key(metric, labels), []))


class PrometheusMetricsSink(MetricsSink):
    """Records metrics with prometheus_client collectors.

    Collectors are created on first use from their definition and registered
    with the given registry.
    """

    def __init__(self, registry: prometheus_client.CollectorRegistry | None = None) -> None:
        self._registry = registry or prometheus_client.REGISTRY
        self._collectors: dict[str, Any] = {}
        # prometheus_client gauges cannot be read back, keep values for clamping
        self._gauge_values: dict[tuple[str, tuple[str, ...]], float] = defaultdict(float)

    @property
    def registry(self) -> prometheus_client.CollectorRegistry:
        return self._registry

    def _collector(self, metric: MetricDefinition) -> Any:
        if (collector := self._collectors.get(metric.name)) is not None:
            return collector
        _LOGGER.debug("Registering %s %s", metric.type, metric.name)
        if metric.type == MetricType.COUNTER:
            # prometheus_client appends the _total suffix itself
            collector = prometheus_client.Counter(
                metric.name.removesuffix("_total"),
                metric.help,
                metric.labels,
                registry=self._registry,
            )
        elif metric.type == MetricType.GAUGE:
            collector = prometheus_client.Gauge(
                metric.name, metric.help, metric.labels, registry=self._registry
            )
        else:
            collector = prometheus_client.Histogram(
                metric.name,
                metric.help,
                metric.labels,
                registry=self._registry,
                buckets=metric.buckets or prometheus_client.Histogram.DEFAULT_BUCKETS,
            )
        self._collectors[metric.name] = collector
        return collector

    def _labelled(self, metric: MetricDefinition, labels: Labels) -> Any:
        _key(metric, labels)
        collector = self._collector(metric)
        if not metric.labels:
            return collector
        return collector.labels(**labels)

    def inc_counter(
        self, metric: MetricDefinition, labels: Labels, value: float = 1.0
    ) -> None:
        self._labelled(metric, labels).inc(value)

    def observe_histogram(
        self, metric: MetricDefinition, labels: Labels, value: float
    ) -> None:
        self._labelled(metric, labels).observe(value)

    def set_gauge(self, metric: MetricDefinition, labels: Labels, value: float) -> None:
        self._gauge_values[_key(metric, labels)] = value
        self._labelled(metric, labels).set(value)

    def add_gauge(self, metric: MetricDefinition, labels: Labels, delta: float) -> None:
        key = _key(metric, labels)
        value = self._gauge_values[key] + delta
        if metric.non_negative and value < 0:
            value = 0.0
        self._gauge_values[key] = value
        self._labelled(metric, labels).set(value)


def start_metrics_server(port: int, sink: PrometheusMetricsSink) -> None:
    """Serve the sink's registry over HTTP, or do nothing when port is 0."""
    if not port:
        _LOGGER.info("Metrics endpoint disabled")
        return
    _LOGGER.info("Serving metrics on port %d", port)
    prometheus_client.start_http_server(port, registry=sink.registry)
