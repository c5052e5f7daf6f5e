"""Prometheus metrics collection for the timeline service."""

import time
from typing import Optional
from contextlib import contextmanager

from prometheus_client import (
    Counter, Histogram, Gauge, Info,
    CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
)


class MetricsCollector:
    """Centralized metrics collection for the timeline refresh pipeline."""

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self._init_common_metrics()
        self._init_timeline_metrics()

    def _init_common_metrics(self):
        """Initialize common metrics for all services."""
        # Service info
        self.info = Info(
            f"{self.service_name}_info",
            f"Information about {self.service_name}",
            registry=self.registry
        )

        self.health_status = Gauge(
            f"{self.service_name}_health_status",
            "Service health status (1=healthy, 0=unhealthy)",
            registry=self.registry
        )

    def _init_timeline_metrics(self):
        """Initialize invalidation and refresh metrics."""
        self.signals_enqueued = Counter(
            f"{self.service_name}_signals_enqueued_total",
            "Invalidation signals accepted by the channel",
            ["kind"],
            registry=self.registry
        )

        self.signals_dropped = Counter(
            f"{self.service_name}_signals_dropped_total",
            "Invalidation signals dropped because the channel was full or closed",
            ["kind"],
            registry=self.registry
        )

        self.batches_processed = Counter(
            f"{self.service_name}_batches_processed_total",
            "Coalesced batches processed by the rebuild worker",
            ["mode"],
            registry=self.registry
        )

        self.refreshes = Counter(
            f"{self.service_name}_refreshes_total",
            "Targeted refreshes by root entity type and outcome",
            ["entity_type", "status"],
            registry=self.registry
        )

        self.refresh_duration = Histogram(
            f"{self.service_name}_refresh_duration_seconds",
            "Time spent rebuilding one batch",
            ["mode"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
            registry=self.registry
        )

        self.worker_state = Gauge(
            f"{self.service_name}_worker_state",
            "Current rebuild worker state (1 for the active state)",
            ["state"],
            registry=self.registry
        )

    def update_service_info(self, version: str, environment: str) -> None:
        """Update service information."""
        self.info.info({
            "version": version,
            "environment": environment,
            "service": self.service_name
        })

    def set_health_status(self, healthy: bool) -> None:
        """Set service health status."""
        self.health_status.set(1 if healthy else 0)

    def record_signal(self, kind: str, accepted: bool) -> None:
        """Record an invalidation signal send attempt."""
        if accepted:
            self.signals_enqueued.labels(kind=kind).inc()
        else:
            self.signals_dropped.labels(kind=kind).inc()

    def record_refresh(self, entity_type: str, status: str) -> None:
        """Record the outcome of one targeted refresh."""
        self.refreshes.labels(entity_type=entity_type, status=status).inc()

    def set_worker_state(self, state: str, all_states) -> None:
        """Flag the active worker state and clear the others."""
        for name in all_states:
            self.worker_state.labels(state=name).set(1 if name == state else 0)

    @contextmanager
    def time_batch(self, mode: str):
        """Time a batch rebuild and count it."""
        start_time = time.time()
        try:
            yield
        finally:
            self.refresh_duration.labels(mode=mode).observe(time.time() - start_time)
            self.batches_processed.labels(mode=mode).inc()

    def get_metrics(self) -> bytes:
        """Get metrics in Prometheus format."""
        return generate_latest(self.registry)

    def get_content_type(self) -> str:
        """Get content type for metrics endpoint."""
        return CONTENT_TYPE_LATEST
