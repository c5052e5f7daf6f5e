#!/usr/bin/env python3
"""
Request a timeline rebuild from the running timeline service.

Posts to the service's invalidation endpoints, so the rebuild is queued
on the service's own worker like any other signal.
"""

import asyncio
import os
import sys
from datetime import datetime
from typing import Any, Dict, Optional
import argparse

import aiohttp
import structlog

from shared.utils.errors import TimelineError
from shared.utils.logging import setup_logging
from timeline.models import EntityType


logger = structlog.get_logger()

DEFAULT_URL = os.getenv(
    "BOOKLOG_TIMELINE_URL",
    f"http://localhost:{os.getenv('BOOKLOG_HEALTH_PORT', '8080')}",
)


class RebuildRequestError(Exception):
    """The service refused or failed a rebuild request."""


class TimelineRebuilder:
    """Client for the timeline service rebuild endpoints."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.logger = structlog.get_logger("timeline-rebuilder")
        self.session: Optional[aiohttp.ClientSession] = None

        self.requests_sent = 0
        self.start_time: Optional[datetime] = None

    async def start(self) -> None:
        self.logger.info("Starting timeline rebuilder", url=self.base_url)
        self.start_time = datetime.now()
        self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def stop(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def rebuild_all(self) -> None:
        await self._post("/timeline/rebuild")
        self.logger.info("Full rebuild queued")

    async def rebuild_entity(self, entity_type: EntityType, entity_id: int) -> None:
        await self._post(f"/timeline/invalidate/{entity_type.value}/{entity_id}")
        self.logger.info("Entity refresh queued", entity_type=entity_type.value, entity_id=entity_id)

    async def _post(self, path: str) -> None:
        async with self.session.post(f"{self.base_url}{path}") as response:
            if response.status != 204:
                body = await response.text()
                raise RebuildRequestError(f"{path} returned {response.status}: {body}")
        self.requests_sent += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Get rebuilder metrics."""
        runtime = (datetime.now() - self.start_time).total_seconds() if self.start_time else 0

        return {
            "requests_sent": self.requests_sent,
            "runtime_seconds": runtime,
        }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Queue a rebuild of timeline event snapshots")
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--all", action="store_true", help="Rebuild every snapshot")
    target.add_argument(
        "--entity",
        metavar="TYPE:ID",
        help="Refresh one entity and its dependents, e.g. author:12",
    )
    parser.add_argument("--url", default=DEFAULT_URL, help="Timeline service base URL")
    parser.add_argument("--log-level", default="info")
    return parser


def parse_entity(value: str):
    """Split ``TYPE:ID`` into an EntityType and an integer id."""
    kind, sep, raw_id = value.partition(":")
    if not sep or not raw_id.strip().isdigit():
        raise argparse.ArgumentTypeError(f"Expected TYPE:ID, got {value!r}")
    return EntityType.coerce(kind), int(raw_id)


async def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging("timeline-rebuild", log_level=args.log_level, format_type="console")

    target = None
    if args.entity:
        try:
            target = parse_entity(args.entity)
        except (argparse.ArgumentTypeError, TimelineError) as e:
            parser.error(str(e))

    rebuilder = TimelineRebuilder(args.url)
    try:
        await rebuilder.start()
        if target is None:
            await rebuilder.rebuild_all()
        else:
            await rebuilder.rebuild_entity(*target)
    except (aiohttp.ClientError, asyncio.TimeoutError, RebuildRequestError) as e:
        logger.error("Timeline rebuild request failed", url=args.url, error=str(e))
        return 1
    finally:
        await rebuilder.stop()

    logger.info("Rebuild metrics", **rebuilder.get_metrics())
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
