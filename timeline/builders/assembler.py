"""Loads library records and feeds them to the event builders."""

from typing import List, Optional

import structlog

from shared.schemas.models import Author, UserBook
from shared.utils.errors import EntityNotFoundError

from ..models import NewTimelineEvent
from ..repositories.base import LibraryRepositories
from .events import (
    build_author_event,
    build_book_event,
    build_genre_event,
    build_reading_event,
    build_shelved_event,
)


logger = structlog.get_logger(__name__)


class EventAssembler:
    """Builds snapshot payloads for an entity id.

    The root entity must exist (``EntityNotFoundError`` otherwise).
    Related records that have vanished are left out of the payload:
    a missing author is dropped from the author list and a missing genre
    is treated as unset.
    """

    def __init__(self, library: LibraryRepositories):
        self.library = library

    async def author_event(self, author_id: int, user_id: Optional[int] = None) -> NewTimelineEvent:
        author = await self.library.authors.get(author_id)
        return build_author_event(author, user_id=user_id)

    async def genre_event(self, genre_id: int, user_id: Optional[int] = None) -> NewTimelineEvent:
        genre = await self.library.genres.get(genre_id)
        return build_genre_event(genre, user_id=user_id)

    async def book_event(self, book_id: int, user_id: Optional[int] = None) -> NewTimelineEvent:
        enriched = await self.library.books.get_with_authors(book_id)
        book = enriched.book
        authors = await self._load_authors(enriched.author_ids)
        primary_genre = await self._genre_name(book.primary_genre_id)
        secondary_genre = await self._genre_name(book.secondary_genre_id)
        return build_book_event(book, authors, primary_genre, secondary_genre, user_id=user_id)

    async def reading_event(self, reading_id: int) -> NewTimelineEvent:
        reading = await self.library.readings.get(reading_id)
        enriched = await self.library.books.get_with_authors(reading.book_id)
        authors = await self._load_authors(enriched.author_ids)
        return build_reading_event(reading, enriched.book, authors)

    async def shelved_event(self, user_book: UserBook) -> NewTimelineEvent:
        enriched = await self.library.books.get_with_authors(user_book.book_id)
        authors = await self._load_authors(enriched.author_ids)
        return build_shelved_event(user_book, enriched.book, authors)

    async def _load_authors(self, author_ids: List[int]) -> List[Author]:
        authors = []
        for author_id in author_ids:
            try:
                authors.append(await self.library.authors.get(author_id))
            except EntityNotFoundError:
                logger.debug("Linked author missing, leaving it out", author_id=author_id)
        return authors

    async def _genre_name(self, genre_id: Optional[int]) -> Optional[str]:
        if genre_id is None:
            return None
        try:
            genre = await self.library.genres.get(genre_id)
        except EntityNotFoundError:
            logger.debug("Linked genre missing, treating as unset", genre_id=genre_id)
            return None
        return genre.name
