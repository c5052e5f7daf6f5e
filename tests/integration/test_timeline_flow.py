"""End-to-end timeline refresh flow over in-memory adapters."""

import asyncio
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, patch

from aiohttp import web
from aiohttp import test_utils

from scripts.rebuild_timeline import RebuildRequestError, TimelineRebuilder, main as rebuild_main
from shared.schemas.models import ReadingStatus
from tests.fixtures.library import InMemoryLibrary, InMemoryTimelineStore
from timeline.builders.assembler import EventAssembler
from timeline.config import TimelineConfig
from timeline.invalidation.channel import InvalidationChannel
from timeline.invalidation.invalidator import TimelineInvalidator
from timeline.listing import ListRequest
from timeline.main import TimelineService
from timeline.models import EntityType
from timeline.recording import TimelineRecorder
from timeline.refresh.resolver import CascadeResolver
from timeline.refresh.worker import TimelineRebuildWorker, WorkerState


DEBOUNCE = 0.05


class Pipeline:
    """Recorder, invalidator and running worker over one in-memory library."""

    def __init__(self, library: InMemoryLibrary):
        repositories = library.repositories()
        self.library = library
        self.store = InMemoryTimelineStore()
        self.channel = InvalidationChannel(capacity=32)
        self.invalidator = TimelineInvalidator(self.channel)
        self.recorder = TimelineRecorder(EventAssembler(repositories), self.store, self.invalidator)
        self.worker = TimelineRebuildWorker(
            self.channel,
            CascadeResolver(repositories, self.store),
            debounce_seconds=DEBOUNCE,
        )

    async def settle(self) -> None:
        """Wait until the worker has applied everything sent so far."""
        for _ in range(100):
            await asyncio.sleep(DEBOUNCE / 2)
            if self.worker.state is WorkerState.IDLE and self.channel.qsize() == 0:
                return
        raise AssertionError("worker did not settle")


@pytest.fixture
def ada_library():
    library = InMemoryLibrary()
    library.add_author(1, "Ada")
    library.add_book(10, "Notes", author_ids=[1])
    library.add_reading(100, 10, user_id=7, status=ReadingStatus.READING)
    return library


@pytest.mark.integration
class TestTimelineFlow:
    """Mutations flowing through invalidation into refreshed snapshots."""

    @pytest.mark.asyncio
    async def test_author_rename_reaches_book_and_reading(self, ada_library):
        pipeline = Pipeline(ada_library)
        await pipeline.recorder.record_author_created(1)
        await pipeline.recorder.record_book_created(10, user_id=7)
        await pipeline.recorder.record_reading_created(100)
        await pipeline.worker.start()

        try:
            ada_library.rename_author(1, "Ada Lovelace")
            pipeline.invalidator.invalidate("author", 1)
            await pipeline.settle()
        finally:
            await pipeline.worker.stop()

        author = await pipeline.store.get_by_entity(EntityType.AUTHOR, 1)
        book = await pipeline.store.get_by_entity(EntityType.BOOK, 10)
        reading = await pipeline.store.get_by_entity(EntityType.READING, 100)
        assert author.title == "Ada Lovelace"
        assert book.details[0].value == "Ada Lovelace"
        assert reading.details[0].value == "Ada Lovelace"
        assert len(pipeline.store.updates) == 3
        assert pipeline.worker.batches_processed == 1

    @pytest.mark.asyncio
    async def test_burst_of_edits_is_one_batch(self, ada_library):
        pipeline = Pipeline(ada_library)
        await pipeline.recorder.record_book_created(10, user_id=7)
        await pipeline.recorder.record_reading_created(100)
        await pipeline.worker.start()

        try:
            for _ in range(10):
                pipeline.invalidator.invalidate(EntityType.BOOK, 10)
            await pipeline.settle()
        finally:
            await pipeline.worker.stop()

        assert pipeline.worker.batches_processed == 1
        assert sorted(pipeline.store.updates) == [(EntityType.BOOK, 10), (EntityType.READING, 100)]

    @pytest.mark.asyncio
    async def test_deleted_reading_disappears_before_any_refresh(self, ada_library):
        pipeline = Pipeline(ada_library)
        await pipeline.recorder.record_reading_created(100)

        await pipeline.recorder.forget(EntityType.READING, 100)
        page = await pipeline.store.list(7, ListRequest.show_all())

        assert page.items == []
        assert pipeline.channel.qsize() == 0

    @pytest.mark.asyncio
    async def test_feed_reflects_finished_reading(self, ada_library):
        pipeline = Pipeline(ada_library)
        await pipeline.recorder.record_book_created(10, user_id=7)
        await pipeline.recorder.record_reading_created(100)
        await pipeline.worker.start()

        try:
            ada_library.finish_reading(100, rating=4.5)
            pipeline.invalidator.invalidate(EntityType.READING, 100)
            await pipeline.settle()
        finally:
            await pipeline.worker.stop()

        page = await pipeline.store.list(7, ListRequest(page=1, page_size=10))
        assert [event.action for event in page.items] == ["finished", "added"]


@pytest.mark.integration
class TestTimelineService:
    """Service wiring with the database client mocked out."""

    @pytest.mark.asyncio
    async def test_startup_and_shutdown_hooks(self):
        client = MagicMock()
        client.connect = AsyncMock()
        client.close = AsyncMock()
        client.health_check = AsyncMock(return_value=True)

        with patch("timeline.main.PostgresClient", return_value=client):
            service = TimelineService(TimelineConfig())
            await service._startup_hook()

            assert service.worker.is_running
            health = await service.health_checker.check_health()
            assert health["checks"]["database"]["status"] == "healthy"
            assert health["checks"]["rebuild_worker"]["status"] == "healthy"

            service.invalidator.invalidate("book", 1)
            assert service.channel.qsize() == 1

            await service._shutdown_hook()

        assert service.worker.state is WorkerState.STOPPED
        client.close.assert_awaited_once()


def _mock_client():
    client = MagicMock()
    client.connect = AsyncMock()
    client.close = AsyncMock()
    client.health_check = AsyncMock(return_value=True)
    return client


@pytest_asyncio.fixture
async def started_service():
    """TimelineService with its routes mounted and the database client mocked."""
    with patch("timeline.main.PostgresClient", return_value=_mock_client()):
        service = TimelineService(TimelineConfig())
        service.app = web.Application()
        service._setup_routes()
        await service._startup_hook()
        yield service
        await service._shutdown_hook()


def _enqueued(service, kind):
    return service.metrics.registry.get_sample_value("timeline_signals_enqueued_total", {"kind": kind})


@pytest.mark.integration
class TestRebuildEndpoints:
    """Rebuild requests reaching the running service's worker."""

    @pytest.mark.asyncio
    async def test_rebuild_endpoint_queues_full_rebuild(self, started_service):
        async with test_utils.TestClient(test_utils.TestServer(started_service.app)) as http:
            response = await http.post("/timeline/rebuild")

        assert response.status == 204
        assert _enqueued(started_service, "full") == 1.0

    @pytest.mark.asyncio
    async def test_invalidate_endpoint_queues_entity(self, started_service):
        async with test_utils.TestClient(test_utils.TestServer(started_service.app)) as http:
            response = await http.post("/timeline/invalidate/author/12")
            unknown = await http.post("/timeline/invalidate/publisher/12")
            not_numeric = await http.post("/timeline/invalidate/author/twelve")
            unknown_body = await unknown.json()

        assert response.status == 204
        assert _enqueued(started_service, "author") == 1.0
        assert unknown.status == 400
        assert unknown_body["details"]["field"] == "entity_type"
        assert not_numeric.status == 404

    @pytest.mark.asyncio
    async def test_endpoints_refuse_before_startup(self):
        service = TimelineService(TimelineConfig())
        service.app = web.Application()
        service._setup_routes()

        async with test_utils.TestClient(test_utils.TestServer(service.app)) as http:
            response = await http.post("/timeline/rebuild")

        assert response.status == 503

    @pytest.mark.asyncio
    async def test_rebuild_script_goes_through_the_service(self, started_service):
        async with test_utils.TestServer(started_service.app) as server:
            url = f"http://{server.host}:{server.port}"
            assert await rebuild_main(["--all", "--url", url]) == 0
            assert await rebuild_main(["--entity", "book:10", "--url", url]) == 0

        assert _enqueued(started_service, "full") == 1.0
        assert _enqueued(started_service, "book") == 1.0

    @pytest.mark.asyncio
    async def test_rebuild_script_reports_refusal(self):
        service = TimelineService(TimelineConfig())
        service.app = web.Application()
        service._setup_routes()

        async with test_utils.TestServer(service.app) as server:
            url = f"http://{server.host}:{server.port}"
            rebuilder = TimelineRebuilder(url)
            await rebuilder.start()
            try:
                with pytest.raises(RebuildRequestError):
                    await rebuilder.rebuild_all()
            finally:
                await rebuilder.stop()

            assert await rebuild_main(["--all", "--url", url]) == 1

        assert rebuilder.get_metrics()["requests_sent"] == 0
