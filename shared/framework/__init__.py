"""
Core framework components for async services.

Provides the base service class with health and metrics endpoints,
environment-driven configuration, and Prometheus metrics.
"""

from .service import AsyncService
from .config import ServiceConfig, DatabaseConfig, ObservabilityConfig
from .health import HealthChecker, HealthCheck, HealthStatus
from .metrics import MetricsCollector

__all__ = [
    "AsyncService",
    "ServiceConfig",
    "DatabaseConfig",
    "ObservabilityConfig",
    "HealthChecker",
    "HealthCheck",
    "HealthStatus",
    "MetricsCollector",
]
