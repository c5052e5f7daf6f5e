"""
Utility modules for the timeline service.

Provides common utilities for:
- Structured logging
- Error handling
"""

from .logging import setup_logging, get_logger
from .errors import (
    TimelineError,
    EntityNotFoundError,
    ValidationError,
    StorageError,
    ConfigurationError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "TimelineError",
    "EntityNotFoundError",
    "ValidationError",
    "StorageError",
    "ConfigurationError",
]
