#!/usr/bin/env python3
"""
Database migration runner for the booklog timeline.

Applies the PostgreSQL migrations in order and reports which
tables exist.
"""

import asyncio
import os
from pathlib import Path
from typing import Any, Dict, List
import argparse
import structlog

from shared.storage.postgres import PostgresClient, PostgresConfig
from shared.utils.errors import StorageError
from shared.utils.logging import setup_logging


logger = structlog.get_logger()

DEFAULT_MIGRATION_DIR = Path(__file__).parent / "postgres"


class MigrationRunner:
    """Database migration runner."""

    def __init__(self, client: PostgresClient):
        self.postgres = client
        self.logger = structlog.get_logger("migration-runner")

    @staticmethod
    def migration_files(migration_dir: Path) -> List[Path]:
        """SQL files in the directory, in name order."""
        return sorted(migration_dir.glob("*.sql"))

    async def run_migrations(self, migration_dir: Path) -> List[str]:
        """Run every migration in the directory; returns the applied file names."""
        if not migration_dir.exists():
            self.logger.error("Migration directory not found", path=str(migration_dir))
            return []

        files = self.migration_files(migration_dir)
        if not files:
            self.logger.warning("No migration files found", path=str(migration_dir))
            return []

        self.logger.info("Starting migrations", count=len(files))

        await self.postgres.connect()
        applied = []
        try:
            for migration_file in files:
                await self._run_migration(migration_file)
                applied.append(migration_file.name)

            self.logger.info("All migrations completed successfully")
        finally:
            await self.postgres.disconnect()
        return applied

    async def _run_migration(self, migration_file: Path) -> None:
        """Run a single migration file."""
        self.logger.info("Running migration", file=migration_file.name)

        migration_sql = migration_file.read_text()
        try:
            # Without bind arguments asyncpg accepts multiple statements
            await self.postgres.execute_command(migration_sql)
        except StorageError as e:
            self.logger.error("Migration failed", file=migration_file.name, error=e.message)
            raise

        self.logger.info("Migration completed", file=migration_file.name)

    async def check_status(self) -> Dict[str, Any]:
        """Check migration status."""
        status: Dict[str, Any] = {"connected": False, "tables": []}

        try:
            await self.postgres.connect()
            status["connected"] = True

            tables = await self.postgres.execute("""
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = 'public'
                ORDER BY table_name
            """)
            status["tables"] = [table["table_name"] for table in tables]
        except (StorageError, OSError) as e:
            self.logger.error("PostgreSQL status check failed", error=str(e))
        finally:
            await self.postgres.disconnect()

        return status


async def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Database migration runner")
    parser.add_argument("--migration-dir", type=Path, default=DEFAULT_MIGRATION_DIR, help="Migration directory")
    parser.add_argument("--status", action="store_true", help="Check migration status")
    parser.add_argument("--dsn", default=os.getenv("BOOKLOG_POSTGRES_DSN", "postgresql://localhost:5432/booklog"))

    args = parser.parse_args()

    setup_logging("timeline-migrate", log_level="info", format_type="console")

    runner = MigrationRunner(PostgresClient(PostgresConfig(dsn=args.dsn, min_size=1, max_size=2)))

    if args.status:
        status = await runner.check_status()
        print("Migration Status:")
        print(f"PostgreSQL: {'Connected' if status['connected'] else 'Disconnected'}")
        print(f"Tables: {', '.join(status['tables']) or '-'}")
        return

    await runner.run_migrations(args.migration_dir)


if __name__ == "__main__":
    asyncio.run(main())
