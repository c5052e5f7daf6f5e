"""Unit tests for timeline recording."""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock

from shared.schemas.models import UserBook
from shared.utils.errors import StorageError
from tests.fixtures.library import BASE_TIME
from timeline.models import EntityType, FullRebuild


class TestTimelineRecorder:
    """Test TimelineRecorder class."""

    @pytest.mark.asyncio
    async def test_record_book_created(self, recorder, store):
        stored = await recorder.record_book_created(10, user_id=1)

        assert stored.action == "added"
        assert stored.title == "Notes on the Engine"
        assert [d.label for d in stored.details] == ["Author", "Genres", "Pages"]
        assert await store.get_by_entity(EntityType.BOOK, 10) == stored

    @pytest.mark.asyncio
    async def test_record_reading_created(self, recorder, store):
        stored = await recorder.record_reading_created(1001)

        assert stored.action == "finished"
        assert stored.user_id == 1
        assert stored.reading_data.book_id == 11

    @pytest.mark.asyncio
    async def test_missing_entity_is_logged_not_raised(self, recorder, store):
        assert await recorder.record_author_created(999) is None
        assert store.rows == {}

    @pytest.mark.asyncio
    async def test_storage_failure_is_logged_not_raised(self, recorder, store):
        store.insert = AsyncMock(side_effect=StorageError("disk full", operation="insert"))

        assert await recorder.record_genre_created(100) is None

    @pytest.mark.asyncio
    async def test_shelving_replaces_book_row(self, recorder, store):
        created = await recorder.record_book_created(12, user_id=1)
        shelved_at = BASE_TIME + timedelta(days=90)

        shelved = await recorder.record_book_shelved(
            UserBook(id=3, user_id=2, book_id=12, created_at=shelved_at)
        )

        assert shelved.id == created.id
        assert shelved.action == "shelved"
        assert shelved.occurred_at == shelved_at
        assert len(store.rows) == 1

    @pytest.mark.asyncio
    async def test_forget_deletes_synchronously(self, recorder, store):
        await recorder.record_reading_created(1000)

        assert await recorder.forget("reading", 1000)

        assert await store.get_by_entity(EntityType.READING, 1000) is None
        assert not await recorder.forget(EntityType.READING, 1000)

    @pytest.mark.asyncio
    async def test_forgetting_book_removes_its_readings(self, library, recorder, resolver, store):
        await recorder.record_book_created(10, user_id=1)
        await recorder.record_reading_created(1000)
        await recorder.record_reading_created(1001)

        library.remove_book(10)
        assert await recorder.forget(EntityType.BOOK, 10)
        await resolver.full_rebuild()

        assert await store.get_by_entity(EntityType.BOOK, 10) is None
        assert await store.get_by_entity(EntityType.READING, 1000) is None
        assert await store.get_by_entity(EntityType.READING, 1001) is not None

    @pytest.mark.asyncio
    async def test_forgetting_author_requests_full_rebuild(self, recorder, channel):
        await recorder.record_author_created(2)

        await recorder.forget(EntityType.AUTHOR, 2)

        assert channel.try_recv() == FullRebuild()

    @pytest.mark.asyncio
    async def test_forgetting_reading_requests_nothing(self, recorder, channel):
        await recorder.forget(EntityType.READING, 1000)

        assert channel.try_recv() is None
