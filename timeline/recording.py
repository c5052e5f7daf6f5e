"""
Timeline recording for library mutations.

Creation writes the snapshot synchronously from the same builders the
refresh path uses. Deletion removes the snapshot synchronously and then
asks the worker to refresh anything that embedded the deleted entity.
"""

from typing import Optional, Union

import structlog

from shared.schemas.models import UserBook
from shared.utils.errors import TimelineError
from shared.utils.logging import add_entity, add_user_id

from .builders.assembler import EventAssembler
from .invalidation.invalidator import TimelineInvalidator
from .models import EntityType, NewTimelineEvent, TimelineEvent
from .output.timeline_store import TimelineEventStore


logger = structlog.get_logger(__name__)


class TimelineRecorder:
    """Writes snapshots when entities are created and removes them when deleted.

    A failure to record never fails the mutation that triggered it; the
    error is logged and None is returned.
    """

    def __init__(
        self,
        assembler: EventAssembler,
        store: TimelineEventStore,
        invalidator: Optional[TimelineInvalidator] = None,
    ):
        self.assembler = assembler
        self.store = store
        self.invalidator = invalidator

    async def record_author_created(self, author_id: int, user_id: Optional[int] = None) -> Optional[TimelineEvent]:
        return await self._record(EntityType.AUTHOR, author_id, self.assembler.author_event(author_id, user_id))

    async def record_genre_created(self, genre_id: int, user_id: Optional[int] = None) -> Optional[TimelineEvent]:
        return await self._record(EntityType.GENRE, genre_id, self.assembler.genre_event(genre_id, user_id))

    async def record_book_created(self, book_id: int, user_id: Optional[int] = None) -> Optional[TimelineEvent]:
        return await self._record(EntityType.BOOK, book_id, self.assembler.book_event(book_id, user_id))

    async def record_reading_created(self, reading_id: int) -> Optional[TimelineEvent]:
        return await self._record(EntityType.READING, reading_id, self.assembler.reading_event(reading_id))

    async def record_book_shelved(self, user_book: UserBook) -> Optional[TimelineEvent]:
        """Record a book being placed on a shelf, on the book's own row."""
        log = add_user_id(logger, user_book.user_id)
        try:
            event = await self.assembler.shelved_event(user_book)
            return await self.store.insert(event)
        except TimelineError as e:
            log.error("Failed to record shelved book", book_id=user_book.book_id, error=e.message)
            return None

    async def forget(self, entity_type: Union[EntityType, str], entity_id: int) -> bool:
        """Delete an entity's snapshot now and refresh whatever embedded it."""
        kind = EntityType.coerce(entity_type)
        deleted = await self.store.delete_by_entity(kind, entity_id)
        log = add_entity(logger, kind.value, entity_id)
        log.debug("Removed timeline event", deleted=deleted)

        # Readings go with their book
        if kind is EntityType.BOOK:
            removed = await self.store.delete_readings_for_book(entity_id)
            log.debug("Removed reading timeline events for book", deleted=removed)

        # Books still reference a deleted author or genre by name
        if self.invalidator and kind in (EntityType.AUTHOR, EntityType.GENRE):
            self.invalidator.invalidate_full()
        return deleted

    async def _record(self, kind: EntityType, entity_id: int, pending) -> Optional[TimelineEvent]:
        log = add_entity(logger, kind.value, entity_id)
        try:
            event: NewTimelineEvent = await pending
            stored = await self.store.insert(event)
        except TimelineError as e:
            log.error("Failed to record timeline event", error=e.message, error_code=e.error_code)
            return None
        log.debug("Recorded timeline event", action=stored.action)
        return stored
