"""Prometheus metrics for the background worker."""

from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

# Custom registry so tests and embedding processes control exposition
REGISTRY = CollectorRegistry()

# Covers waits/run times from 1ms to 60s
DEFAULT_LATENCY_BUCKETS = (
    0.001,
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
    60.0,
)

# ============================================================================
# Connection pools
# ============================================================================

pool_connections_in_use = Gauge(
    "lifecycle_pool_connections_in_use",
    "Connections currently leased from the pool",
    ["pool"],
    registry=REGISTRY,
)

pool_waiters = Gauge(
    "lifecycle_pool_waiters",
    "Callers currently blocked waiting for a connection",
    ["pool"],
    registry=REGISTRY,
)

pool_acquire_wait_seconds = Histogram(
    "lifecycle_pool_acquire_wait_seconds",
    "Time spent waiting for a pool lease",
    ["pool"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

pool_saturated_total = Counter(
    "lifecycle_pool_saturated_total",
    "Acquire attempts rejected because the pool and its wait queue were full",
    ["pool"],
    registry=REGISTRY,
)

# ============================================================================
# Recurring jobs
# ============================================================================

job_runs_total = Counter(
    "lifecycle_job_runs_total",
    "Recurring job runs by outcome (success, skipped, failed)",
    ["job", "outcome"],
    registry=REGISTRY,
)

job_overlap_dropped_total = Counter(
    "lifecycle_job_overlap_dropped_total",
    "Ticks dropped because the previous run of the same job was still running",
    ["job"],
    registry=REGISTRY,
)

job_duration_seconds = Histogram(
    "lifecycle_job_duration_seconds",
    "Duration of recurring job runs",
    ["job"],
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

# ============================================================================
# Outbox publisher
# ============================================================================

events_published_total = Counter(
    "lifecycle_events_published_total",
    "Events delivered to the sink and marked published",
    ["event_type"],
    registry=REGISTRY,
)

event_delivery_failures_total = Counter(
    "lifecycle_event_delivery_failures_total",
    "Failed event deliveries",
    ["reason"],
    registry=REGISTRY,
)

event_delivery_duration_seconds = Histogram(
    "lifecycle_event_delivery_duration_seconds",
    "HTTP delivery latency per event",
    buckets=DEFAULT_LATENCY_BUCKETS,
    registry=REGISTRY,
)

outbox_backlog = Gauge(
    "lifecycle_outbox_backlog",
    "Unpublished events remaining in the outbox",
    registry=REGISTRY,
)

outbox_oldest_unpublished_age_seconds = Gauge(
    "lifecycle_outbox_oldest_unpublished_age_seconds",
    "Age of the oldest unpublished event",
    registry=REGISTRY,
)

# ============================================================================
# Pruning
# ============================================================================

rows_pruned_total = Counter(
    "lifecycle_rows_pruned_total",
    "Rows deleted by the pruning scheduler",
    ["target"],
    registry=REGISTRY,
)

prune_batches_total = Counter(
    "lifecycle_prune_batches_total",
    "Pruning batches executed",
    ["target"],
    registry=REGISTRY,
)
