"""
Configuration management for the timeline service.

Provides typed configuration classes with environment variable
injection and validation.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Any

from shared.utils.errors import ConfigurationError


ENVIRONMENTS = ["local", "dev", "staging", "prod"]
LOG_FORMATS = ["json", "console"]


@dataclass
class DatabaseConfig:
    """Database configuration."""
    postgres_dsn: str = field(default_factory=lambda: os.getenv("BOOKLOG_POSTGRES_DSN", "postgresql://localhost:5432/booklog"))
    pool_min_size: int = field(default_factory=lambda: int(os.getenv("BOOKLOG_POSTGRES_POOL_MIN", "1")))
    pool_max_size: int = field(default_factory=lambda: int(os.getenv("BOOKLOG_POSTGRES_POOL_MAX", "10")))
    command_timeout: int = field(default_factory=lambda: int(os.getenv("BOOKLOG_POSTGRES_TIMEOUT", "30")))


@dataclass
class ObservabilityConfig:
    """Observability configuration."""
    log_level: str = field(default_factory=lambda: os.getenv("BOOKLOG_LOG_LEVEL", "info"))
    log_format: str = field(default_factory=lambda: os.getenv("BOOKLOG_LOG_FORMAT", "json"))
    health_port: int = field(default_factory=lambda: int(os.getenv("BOOKLOG_HEALTH_PORT", "8080")))


@dataclass
class ServiceConfig:
    """Base service configuration."""
    service_name: str
    environment: str = field(default_factory=lambda: os.getenv("BOOKLOG_ENV", "local"))
    version: str = field(default_factory=lambda: os.getenv("BOOKLOG_VERSION", "0.1.0"))

    # Sub-configurations
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def __post_init__(self):
        """Validate configuration after initialization."""
        if not self.service_name:
            raise ConfigurationError("service_name is required", config_key="service_name")

        if self.environment not in ENVIRONMENTS:
            raise ConfigurationError(
                f"Invalid environment: {self.environment}",
                config_key="BOOKLOG_ENV",
                config_value=self.environment,
            )

        if self.observability.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Invalid log format: {self.observability.log_format}",
                config_key="BOOKLOG_LOG_FORMAT",
                config_value=self.observability.log_format,
            )

        if self.database.pool_min_size > self.database.pool_max_size:
            raise ConfigurationError(
                "Pool minimum size exceeds maximum size",
                config_key="BOOKLOG_POSTGRES_POOL_MIN",
                config_value=self.database.pool_min_size,
            )

    @classmethod
    def from_env(cls, service_name: str) -> "ServiceConfig":
        """Create configuration from environment variables."""
        return cls(service_name=service_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "service_name": self.service_name,
            "environment": self.environment,
            "version": self.version,
            "database": {
                "pool_min_size": self.database.pool_min_size,
                "pool_max_size": self.database.pool_max_size,
                "command_timeout": self.database.command_timeout,
            },
            "observability": {
                "log_level": self.observability.log_level,
                "log_format": self.observability.log_format,
                "health_port": self.observability.health_port,
            },
        }
