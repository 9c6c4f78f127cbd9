"""
Prometheus Metrics for Observability

Tracks operation latency, vendor API calls and compression results.
Exposes /api/v1/metrics for Prometheus scraping.
"""

import time
from contextlib import contextmanager

from prometheus_client import (
    Counter,
    Histogram,
    Info,
    generate_latest,
    CONTENT_TYPE_LATEST,
    REGISTRY
)

# =============================================================================
# Metrics Definitions
# =============================================================================

# Latency per tool operation
operation_latency_seconds = Histogram(
    "operation_latency_seconds",
    "Time spent in each tool operation",
    labelnames=["operation", "status"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Vendor API calls
vendor_api_calls_total = Counter(
    "vendor_api_calls_total",
    "Total number of vendor API calls",
    labelnames=["vendor", "status", "http_status"]
)

# Compressed size / original size
compression_ratio = Histogram(
    "compression_ratio",
    "Ratio of compressed to original byte size",
    labelnames=["format"],
    buckets=[0.05, 0.1, 0.2, 0.3, 0.4, 0.5, 0.6, 0.7, 0.8, 0.9, 1.0]
)

# API Request Metrics
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    labelnames=["method", "endpoint", "status"]
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration",
    labelnames=["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0]
)

# Application Info
app_info = Info(
    "toolbox_app",
    "Application information"
)


# =============================================================================
# Helper Functions
# =============================================================================

def set_app_info(version: str, environment: str):
    """Set application info metric."""
    app_info.info({
        "version": version,
        "environment": environment
    })


@contextmanager
def track_operation_latency(operation: str):
    """
    Context manager to track operation latency.

    Usage:
        with track_operation_latency("compress"):
            # do work
    """
    start = time.time()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.time() - start
        operation_latency_seconds.labels(operation=operation, status=status).observe(duration)


def record_vendor_call(vendor: str, status: str, http_status: int = 0):
    """Record a vendor API call. http_status 0 means no response was received."""
    vendor_api_calls_total.labels(
        vendor=vendor,
        status=status,
        http_status=str(http_status)
    ).inc()


def record_compression(output_format: str, ratio: float):
    compression_ratio.labels(format=output_format).observe(ratio)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Get the content type for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
