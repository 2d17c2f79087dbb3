"""
Prometheus metrics for the match-history core.

Definitions live on a module registry so tests and multiple workers in one
process do not collide with the global default registry.
"""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

registry = CollectorRegistry()

# ============================================================================
# Counters
# ============================================================================

riftsync_upstream_requests_total = Counter(
    "riftsync_upstream_requests_total",
    "Riot API calls by endpoint and classified outcome",
    labelnames=("endpoint", "outcome"),
    registry=registry,
)

riftsync_sync_total = Counter(
    "riftsync_sync_total",
    "Completed match-history syncs by terminal state",
    labelnames=("state",),
    registry=registry,
)

riftsync_cache_errors_total = Counter(
    "riftsync_cache_errors_total",
    "Cache store failures by operation",
    labelnames=("operation",),
    registry=registry,
)

# ============================================================================
# Histograms
# ============================================================================

riftsync_sync_duration_seconds = Histogram(
    "riftsync_sync_duration_seconds",
    "Wall time of one sync cycle",
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10, 30, 60, 120),
    registry=registry,
)


def record_upstream(endpoint: str, outcome: str) -> None:
    riftsync_upstream_requests_total.labels(endpoint=endpoint, outcome=outcome).inc()


def record_sync(state: str, duration_seconds: float) -> None:
    riftsync_sync_total.labels(state=state).inc()
    riftsync_sync_duration_seconds.observe(duration_seconds)


def record_cache_error(operation: str) -> None:
    riftsync_cache_errors_total.labels(operation=operation).inc()


def render_latest() -> tuple[bytes, str]:
    """Return (body, content_type) for a /metrics endpoint."""
    return generate_latest(registry), CONTENT_TYPE_LATEST
