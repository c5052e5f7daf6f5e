"""
Storage abstractions for the timeline service.

Provides an async PostgreSQL client for the library tables and the
timeline snapshot table.
"""

from .postgres import PostgresClient, PostgresConfig

__all__ = [
    "PostgresClient",
    "PostgresConfig",
]
