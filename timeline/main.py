"""Main entry point for the timeline service."""

import asyncio
from typing import Optional

from aiohttp import web
import structlog

from shared.framework.health import HealthCheck
from shared.framework.service import AsyncService
from shared.storage.postgres import PostgresClient, PostgresConfig
from shared.utils.errors import ValidationError
from shared.utils.logging import setup_logging

from .builders.assembler import EventAssembler
from .config import TimelineConfig
from .invalidation.channel import InvalidationChannel
from .invalidation.invalidator import TimelineInvalidator
from .models import EntityType
from .output.timeline_store import PostgresTimelineEventStore
from .recording import TimelineRecorder
from .refresh.resolver import CascadeResolver
from .refresh.scheduler import FullRebuildScheduler
from .refresh.worker import TimelineRebuildWorker
from .repositories.postgres import postgres_library


logger = structlog.get_logger(__name__)


class TimelineService(AsyncService):
    """Hosts the rebuild worker, the periodic full rebuild and the invalidation handle."""

    def __init__(self, config: Optional[TimelineConfig] = None):
        config = config or TimelineConfig()
        super().__init__(config)
        self.config = config

        self.client: Optional[PostgresClient] = None
        self.channel: Optional[InvalidationChannel] = None
        self.invalidator: Optional[TimelineInvalidator] = None
        self.recorder: Optional[TimelineRecorder] = None
        self.worker: Optional[TimelineRebuildWorker] = None
        self.scheduler: Optional[FullRebuildScheduler] = None

    def _setup_routes(self) -> None:
        """Add the invalidation triggers to the health and metrics routes."""
        super()._setup_routes()
        self.app.router.add_post("/timeline/rebuild", self._rebuild_handler)
        self.app.router.add_post(
            r"/timeline/invalidate/{entity_type}/{entity_id:\d+}",
            self._invalidate_handler,
        )

    async def _rebuild_handler(self, request: web.Request) -> web.Response:
        """Queue a full rebuild for the worker."""
        if self.invalidator is None:
            return web.json_response({"error": "timeline service is not started"}, status=503)

        self.invalidator.invalidate_full()
        logger.info("Full timeline rebuild requested", remote=request.remote)
        return web.Response(status=204)

    async def _invalidate_handler(self, request: web.Request) -> web.Response:
        """Queue a refresh of one entity and its dependents."""
        if self.invalidator is None:
            return web.json_response({"error": "timeline service is not started"}, status=503)

        try:
            kind = EntityType.coerce(request.match_info["entity_type"])
        except ValidationError as e:
            return web.json_response(e.to_dict(), status=400)

        entity_id = int(request.match_info["entity_id"])
        self.invalidator.invalidate(kind, entity_id)
        logger.info("Timeline refresh requested", entity_type=kind.value, entity_id=entity_id)
        return web.Response(status=204)

    async def _startup_hook(self) -> None:
        setup_logging(
            self.config.service_name,
            self.config.observability.log_level,
            self.config.observability.log_format,
        )
        logger.info("Starting timeline service components", **self.config.to_dict()["timeline"])

        database = self.config.database
        self.client = PostgresClient(
            PostgresConfig(
                dsn=database.postgres_dsn,
                min_size=database.pool_min_size,
                max_size=database.pool_max_size,
                timeout=database.command_timeout,
            )
        )
        await self.client.connect()

        library = postgres_library(self.client)
        store = PostgresTimelineEventStore(self.client)

        self.channel = InvalidationChannel(self.config.channel_capacity)
        self.invalidator = TimelineInvalidator(self.channel, metrics=self.metrics)
        self.recorder = TimelineRecorder(EventAssembler(library), store, self.invalidator)
        self.worker = TimelineRebuildWorker(
            self.channel,
            CascadeResolver(library, store),
            debounce_seconds=self.config.debounce_seconds,
            metrics=self.metrics,
        )
        self.scheduler = FullRebuildScheduler(self.invalidator, self.config.full_rebuild_interval_seconds)

        self.health_checker.add_check(
            HealthCheck(
                name="database",
                check_func=self.client.health_check,
                description="PostgreSQL reachability",
            )
        )
        self.health_checker.add_check(
            HealthCheck(
                name="rebuild_worker",
                check_func=lambda: self.worker is not None and self.worker.is_running,
                description="Timeline rebuild worker is consuming signals",
            )
        )

        await self.worker.start()
        await self.scheduler.start()

        logger.info("Timeline service started", port=self.config.observability.health_port)

    async def _shutdown_hook(self) -> None:
        logger.info("Stopping timeline service components")

        if self.scheduler:
            await self.scheduler.stop()
        if self.worker:
            await self.worker.stop()
        if self.client:
            await self.client.close()

        logger.info("Timeline service stopped")


async def main():
    """Main entry point."""
    service = TimelineService()
    await service.run()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
