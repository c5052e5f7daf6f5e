"""
Cascade resolution for timeline snapshot refreshes.

Works out which snapshots embed data from a changed entity and rewrites
each of them from the current library state.
"""

from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Union

import structlog

from shared.utils.errors import EntityNotFoundError
from shared.utils.logging import add_entity

from ..builders.assembler import EventAssembler
from ..models import EntityType, NewTimelineEvent
from ..output.timeline_store import TimelineEventStore
from ..repositories.base import LibraryRepositories


logger = structlog.get_logger(__name__)


@dataclass
class RebuildSummary:
    """Per entity type counts from a full rebuild."""
    refreshed: Dict[EntityType, int] = field(default_factory=lambda: {t: 0 for t in EntityType})
    skipped: Dict[EntityType, int] = field(default_factory=lambda: {t: 0 for t in EntityType})

    @property
    def total_refreshed(self) -> int:
        return sum(self.refreshed.values())

    @property
    def total_skipped(self) -> int:
        return sum(self.skipped.values())

    def to_dict(self):
        return {
            "refreshed": {t.value: n for t, n in self.refreshed.items()},
            "skipped": {t.value: n for t, n in self.skipped.items()},
        }


class CascadeResolver:
    """
    Rewrites snapshots for an entity and everything that embeds it.

    - author: its own row, then every book it is linked to, and every
      reading of those books
    - genre: its own row, then every book using it as primary or
      secondary genre (readings carry no genre data)
    - book: its own row, then every reading of it
    - reading: its own row

    Entities that disappeared between the signal and the refresh are
    skipped with a warning. A row that fails to refresh is logged and the
    rest of the cascade still runs. Refreshes only ever update existing rows.
    """

    def __init__(self, library: LibraryRepositories, store: TimelineEventStore):
        self.library = library
        self.store = store
        self.assembler = EventAssembler(library)

        self._cascades: Dict[EntityType, Callable[[int], Awaitable[int]]] = {
            EntityType.AUTHOR: self._refresh_author_cascade,
            EntityType.BOOK: self._refresh_book_cascade,
            EntityType.GENRE: self._refresh_genre_cascade,
            EntityType.READING: self._refresh_reading,
        }

    async def refresh_entity(self, entity_type: Union[EntityType, str], entity_id: int) -> int:
        """Refresh one entity and its dependents; returns the number of rows rewritten."""
        kind = EntityType.coerce(entity_type)
        updated = await self._cascades[kind](entity_id)
        logger.debug("Refreshed timeline cascade", entity_type=kind.value, entity_id=entity_id, updated=updated)
        return updated

    async def full_rebuild(self) -> RebuildSummary:
        """Refresh every snapshot: authors, genres, books, then readings."""
        logger.info("Starting full timeline rebuild")
        summary = RebuildSummary()

        passes = [
            (EntityType.AUTHOR, self.library.authors.list_all, self._refresh_author),
            (EntityType.GENRE, self.library.genres.list_all, self._refresh_genre),
            (EntityType.BOOK, self.library.books.list_all, self._refresh_book),
            (EntityType.READING, self.library.readings.list_all, self._refresh_reading),
        ]
        for kind, list_all, refresh in passes:
            try:
                records = await list_all()
            except Exception as e:
                logger.error("Failed to list entities for rebuild", entity_type=kind.value, error=str(e), exc_info=True)
                continue

            for record in records:
                updated = await self._guarded(kind, record.id, refresh)
                if updated:
                    summary.refreshed[kind] += updated
                else:
                    summary.skipped[kind] += 1

        logger.info(
            "Full timeline rebuild complete",
            refreshed=summary.total_refreshed,
            skipped=summary.total_skipped,
        )
        return summary

    async def _guarded(self, kind: EntityType, entity_id: int, refresh: Callable[[int], Awaitable[int]]) -> int:
        """Run one refresh; a failure is logged and counts as nothing updated."""
        try:
            return await refresh(entity_id)
        except Exception as e:
            add_entity(logger, kind.value, entity_id).error(
                "Failed to refresh timeline event", error=str(e), exc_info=True
            )
            return 0

    async def _refresh_author_cascade(self, author_id: int) -> int:
        updated = await self._guarded(EntityType.AUTHOR, author_id, self._refresh_author)
        for book in await self.library.books.list_by_author(author_id):
            updated += await self._guarded(EntityType.BOOK, book.id, self._refresh_book)
            updated += await self._refresh_readings_for_book(book.id)
        return updated

    async def _refresh_genre_cascade(self, genre_id: int) -> int:
        updated = await self._guarded(EntityType.GENRE, genre_id, self._refresh_genre)
        for book in await self.library.books.list_by_genre(genre_id):
            updated += await self._guarded(EntityType.BOOK, book.id, self._refresh_book)
        return updated

    async def _refresh_book_cascade(self, book_id: int) -> int:
        updated = await self._guarded(EntityType.BOOK, book_id, self._refresh_book)
        updated += await self._refresh_readings_for_book(book_id)
        return updated

    async def _refresh_readings_for_book(self, book_id: int) -> int:
        updated = 0
        for reading in await self.library.readings.list_by_book(book_id):
            updated += await self._guarded(EntityType.READING, reading.id, self._refresh_reading)
        return updated

    async def _refresh_author(self, author_id: int) -> int:
        return await self._rewrite(EntityType.AUTHOR, author_id, self.assembler.author_event)

    async def _refresh_genre(self, genre_id: int) -> int:
        return await self._rewrite(EntityType.GENRE, genre_id, self.assembler.genre_event)

    async def _refresh_book(self, book_id: int) -> int:
        return await self._rewrite(EntityType.BOOK, book_id, self.assembler.book_event)

    async def _refresh_reading(self, reading_id: int) -> int:
        return await self._rewrite(EntityType.READING, reading_id, self.assembler.reading_event)

    async def _rewrite(
        self,
        kind: EntityType,
        entity_id: int,
        build: Callable[[int], Awaitable[NewTimelineEvent]],
    ) -> int:
        log = add_entity(logger, kind.value, entity_id)
        try:
            event = await build(entity_id)
        except EntityNotFoundError as e:
            log.warning("Skipping timeline refresh for missing entity", error=e.message)
            return 0

        # Readings change action and date with their status
        extra = {}
        if kind is EntityType.READING:
            extra = {"action": event.action, "occurred_at": event.occurred_at}

        updated = await self.store.update_by_entity(
            kind,
            entity_id,
            event.title,
            event.details,
            event.genres,
            event.reading_data,
            **extra,
        )
        return 1 if updated else 0
