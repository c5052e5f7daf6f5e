"""
PostgreSQL async client wrapper.

Provides a small high-level interface over an asyncpg pool
for the timeline store and the library read ports.
"""

from __future__ import annotations

import inspect
from typing import Any, Dict, List, Optional, Union
from dataclasses import dataclass
import structlog

import asyncpg

from shared.utils.errors import StorageError


logger = structlog.get_logger()


@dataclass
class PostgresConfig:
    """PostgreSQL configuration."""
    dsn: str
    min_size: int = 1
    max_size: int = 10
    timeout: int = 30


class PostgresClient:
    """
    Async PostgreSQL client with connection pooling.

    Lazily connects on first use. Driver errors are logged with the
    offending statement and re-raised as StorageError.
    """

    def __init__(self, config: Union[PostgresConfig, str, None] = None, **kwargs: Any):
        if isinstance(config, PostgresConfig):
            self.config = config
        else:
            dsn = config
            if not dsn:
                host = kwargs.get("host", "localhost")
                port = kwargs.get("port", 5432)
                database = kwargs.get("database") or "booklog"
                user = kwargs.get("user") or "postgres"
                password = kwargs.get("password", "")
                dsn = f"postgresql://{user}:{password}@{host}:{port}/{database}"

            self.config = PostgresConfig(
                dsn=dsn,
                min_size=kwargs.get("min_size", 1),
                max_size=kwargs.get("max_size", 10),
                timeout=kwargs.get("timeout", 30),
            )

        self.logger = structlog.get_logger("postgres-client")
        self._pool: Optional[asyncpg.Pool] = None
        self.is_connected: bool = False

    @property
    def pool(self) -> Optional[asyncpg.Pool]:
        return self._pool

    @pool.setter
    def pool(self, value: Optional[asyncpg.Pool]) -> None:
        self._pool = value

    async def connect(self) -> None:
        """Connect to PostgreSQL."""
        if self._pool:
            self.is_connected = True
            return

        self._pool = await asyncpg.create_pool(
            self.config.dsn,
            min_size=self.config.min_size,
            max_size=self.config.max_size,
            command_timeout=self.config.timeout
        )

        self.is_connected = True
        self.logger.info("Connected to PostgreSQL")

    async def disconnect(self) -> None:
        """Disconnect from PostgreSQL."""
        if self._pool:
            result = self._pool.close()
            if inspect.isawaitable(result):
                await result
            self._pool = None

        self.is_connected = False
        self.logger.info("Disconnected from PostgreSQL")

    async def close(self) -> None:
        """Alias for disconnect to mirror other storage clients."""
        await self.disconnect()

    async def execute(self, query: str, *args: Any) -> List[Dict[str, Any]]:
        """Execute a SELECT query and return list of rows."""
        rows = await self._run("fetch", query, *args)
        return [dict(row) for row in rows]

    async def execute_one(self, query: str, *args: Any) -> Optional[Dict[str, Any]]:
        """Execute a query returning a single row."""
        row = await self._run("fetchrow", query, *args)
        return dict(row) if row else None

    async def execute_scalar(self, query: str, *args: Any) -> Any:
        """Execute a query returning a scalar value."""
        return await self._run("fetchval", query, *args)

    async def execute_command(self, query: str, *args: Any) -> str:
        """Execute a statement and return its status tag (e.g. ``UPDATE 1``)."""
        return await self._run("execute", query, *args)

    async def _run(self, method: str, query: str, *args: Any) -> Any:
        if not self._pool:
            await self.connect()

        async with self._pool.acquire() as conn:
            try:
                return await getattr(conn, method)(query, *args)
            except asyncpg.PostgresError as e:
                self.logger.error("PostgreSQL query error", error=str(e), query=query)
                raise StorageError(f"PostgreSQL {method} failed: {e}", operation=method) from e

    async def health_check(self) -> bool:
        """Check PostgreSQL health."""
        try:
            result = await self.execute_scalar("SELECT 1")
            return result == 1
        except (StorageError, OSError, asyncpg.PostgresError) as e:
            self.logger.error("PostgreSQL health check failed", error=str(e))
            return False

    async def __aenter__(self):
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.disconnect()


def affected_rows(status: str) -> int:
    """Parse the row count out of an asyncpg status tag like ``DELETE 3``."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (AttributeError, ValueError):
        return 0
