"""
Prometheus metrics collection for edi-canon

This module provides metrics instrumentation for monitoring ingestion
throughput, dropped data and version corrections.
"""
import os
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# INGESTION METRICS
# =======================

records_processed_total = Counter(
    name="edi_records_processed_total",
    documentation="Total number of source records processed",
    labelnames=["company", "status"],  # status: succeeded, rejected, failed
    registry=REGISTRY,
)

line_items_emitted_total = Counter(
    name="edi_line_items_emitted_total",
    documentation="Total number of canonical line items emitted",
    labelnames=["company", "kind"],  # kind: plain, component, parent
    registry=REGISTRY,
)

record_processing_latency_seconds = Histogram(
    name="edi_record_processing_latency_seconds",
    documentation="Latency for canonicalizing and storing one source record",
    labelnames=["company"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 2.0],
    registry=REGISTRY,
)

batch_duration_seconds = Histogram(
    name="edi_batch_duration_seconds",
    documentation="Time spent on one pipeline phase in seconds",
    labelnames=["phase"],  # phase: details, recalculate
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0, 120.0],
    registry=REGISTRY,
)

# =======================
# DATA QUALITY METRICS
# =======================

allocations_dropped_total = Counter(
    name="edi_allocations_dropped_total",
    documentation="Allocations dropped during decoding",
    labelnames=["reason"],  # reason: unparsable_quantity, non_positive
    registry=REGISTRY,
)

sdq_dangling_stores_total = Counter(
    name="edi_sdq_dangling_stores_total",
    documentation="SDQ store entries without a paired quantity",
    registry=REGISTRY,
)

rejections_total = Counter(
    name="edi_rejections_total",
    documentation="Source records rejected as malformed",
    labelnames=["reason"],
    registry=REGISTRY,
)

# =======================
# COLLABORATOR METRICS
# =======================

catalog_lookups_total = Counter(
    name="edi_catalog_lookups_total",
    documentation="Product catalog lookups",
    labelnames=["result"],  # result: hit, miss, error
    registry=REGISTRY,
)

# =======================
# VERSIONING METRICS
# =======================

version_corrections_total = Counter(
    name="edi_version_corrections_total",
    documentation="Header versions rewritten by recalculation",
    registry=REGISTRY,
)

version_groups_examined = Gauge(
    name="edi_version_groups_examined",
    documentation="Groups examined by the last recalculation run",
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: the HTTP server is only needed when the endpoint is enabled
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


# =======================
# CONTEXT MANAGERS
# =======================

class track_duration:
    """
    Context manager for tracking operation duration

    Usage:
        with track_duration(batch_duration_seconds, phase="details"):
            # do work
            pass
    """

    def __init__(self, histogram: Histogram, **labels):
        """
        Initialize duration tracker

        Args:
            histogram: Prometheus Histogram metric
            **labels: Label values for the metric
        """
        self.histogram = histogram
        self.labels = labels
        self.timer = None

    def __enter__(self):
        target = self.histogram.labels(**self.labels) if self.labels else self.histogram
        self.timer = target.time()
        self.timer.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.timer.__exit__(exc_type, exc_val, exc_tb)
        return False


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def set_gauge(gauge: Gauge, value: float, **labels) -> None:
    """
    Set a gauge metric value

    Args:
        gauge: Prometheus Gauge metric
        value: Value to set
        **labels: Label values for the metric
    """
    if labels:
        gauge.labels(**labels).set(value)
    else:
        gauge.set(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    """
    Observe a value in a histogram metric

    Args:
        histogram: Prometheus Histogram metric
        value: Value to observe
        **labels: Label values for the metric
    """
    if labels:
        histogram.labels(**labels).observe(value)
    else:
        histogram.observe(value)


def get_metric_value(name: str, labels: Optional[dict] = None) -> float:
    """
    Read the current value of a sample from the engine registry.

    Args:
        name: Sample name (counters carry the ``_total`` suffix)
        labels: Label values identifying the sample

    Returns:
        Current value, 0.0 if the sample has not been recorded yet
    """
    value = REGISTRY.get_sample_value(name, labels or {})
    return value or 0.0
