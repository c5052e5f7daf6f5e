"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio

from shared.framework.metrics import MetricsCollector
from shared.schemas.models import ReadingFormat, ReadingStatus
from tests.fixtures.library import InMemoryLibrary, InMemoryTimelineStore
from timeline.builders.assembler import EventAssembler
from timeline.invalidation.channel import InvalidationChannel
from timeline.invalidation.invalidator import TimelineInvalidator
from timeline.recording import TimelineRecorder
from timeline.refresh.resolver import CascadeResolver


@pytest.fixture
def library():
    """Small library: two authors, two genres, three books, three readings."""
    lib = InMemoryLibrary()
    lib.add_author(1, "Ada")
    lib.add_author(2, "Charles Babbage")
    lib.add_genre(100, "Science")
    lib.add_genre(101, "History")
    lib.add_book(10, "Notes on the Engine", author_ids=[1], primary_genre_id=100, page_count=120)
    lib.add_book(11, "Letters", author_ids=[1, 2], primary_genre_id=101, secondary_genre_id=100)
    lib.add_book(12, "Passages", author_ids=[2], page_count=300)
    lib.add_reading(1000, 10, status=ReadingStatus.READING, format=ReadingFormat.EREADER)
    lib.add_reading(1001, 11, status=ReadingStatus.READ, rating=4.5)
    lib.add_reading(1002, 12, status=ReadingStatus.READ, rating=3.0)
    return lib


@pytest.fixture
def repositories(library):
    return library.repositories()


@pytest.fixture
def store():
    return InMemoryTimelineStore()


@pytest.fixture
def assembler(repositories):
    return EventAssembler(repositories)


@pytest.fixture
def resolver(repositories, store):
    return CascadeResolver(repositories, store)


@pytest.fixture
def metrics():
    return MetricsCollector("timeline_test")


@pytest.fixture
def channel():
    return InvalidationChannel(capacity=32)


@pytest.fixture
def invalidator(channel, metrics):
    return TimelineInvalidator(channel, metrics=metrics)


@pytest.fixture
def recorder(assembler, store, invalidator):
    return TimelineRecorder(assembler, store, invalidator)


@pytest_asyncio.fixture
async def seeded_store(library, store, recorder):
    """Store holding the creation-time snapshot of every library entity."""
    for author_id in library.authors:
        await recorder.record_author_created(author_id)
    for genre_id in library.genres:
        await recorder.record_genre_created(genre_id)
    for book_id in library.books:
        await recorder.record_book_created(book_id, user_id=1)
    for reading_id in library.readings:
        await recorder.record_reading_created(reading_id)
    return store
