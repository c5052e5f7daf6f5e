"""In-memory library read ports and timeline store for testing."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from shared.schemas.models import (
    Author,
    AuthorRole,
    Book,
    BookAuthor,
    BookWithAuthors,
    Genre,
    QuickReview,
    Reading,
    ReadingFormat,
    ReadingStatus,
)
from shared.utils.errors import EntityNotFoundError
from timeline.listing import ListRequest, Page, SortDirection
from timeline.models import (
    EntityType,
    NewTimelineEvent,
    TimelineEvent,
    TimelineEventDetail,
    TimelineReadingData,
)
from timeline.output.timeline_store import TimelineEventStore
from timeline.repositories.base import (
    AuthorRepository,
    BookRepository,
    GenreRepository,
    LibraryRepositories,
    ReadingRepository,
)


BASE_TIME = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


class InMemoryLibrary:
    """Mutable library state shared by the in-memory read ports."""

    def __init__(self):
        self.authors: Dict[int, Author] = {}
        self.genres: Dict[int, Genre] = {}
        self.books: Dict[int, Book] = {}
        self.book_authors: Dict[int, List[BookAuthor]] = {}
        self.readings: Dict[int, Reading] = {}
        self.calls: List[Tuple[str, int]] = []

    def add_author(self, author_id: int, name: str) -> Author:
        author = Author(id=author_id, name=name, created_at=BASE_TIME + timedelta(minutes=author_id))
        self.authors[author_id] = author
        return author

    def add_genre(self, genre_id: int, name: str) -> Genre:
        genre = Genre(id=genre_id, name=name, created_at=BASE_TIME + timedelta(hours=genre_id))
        self.genres[genre_id] = genre
        return genre

    def add_book(
        self,
        book_id: int,
        title: str,
        author_ids: Sequence[int] = (),
        primary_genre_id: Optional[int] = None,
        secondary_genre_id: Optional[int] = None,
        page_count: Optional[int] = None,
    ) -> Book:
        book = Book(
            id=book_id,
            title=title,
            created_at=BASE_TIME + timedelta(days=book_id),
            page_count=page_count,
            primary_genre_id=primary_genre_id,
            secondary_genre_id=secondary_genre_id,
        )
        self.books[book_id] = book
        self.book_authors[book_id] = [BookAuthor(author_id=a, role=AuthorRole.AUTHOR) for a in author_ids]
        return book

    def add_reading(
        self,
        reading_id: int,
        book_id: int,
        user_id: int = 1,
        status: ReadingStatus = ReadingStatus.READING,
        rating: Optional[float] = None,
        format: Optional[ReadingFormat] = None,
        quick_reviews: Sequence[QuickReview] = (),
    ) -> Reading:
        created = BASE_TIME + timedelta(days=30 + reading_id)
        reading = Reading(
            id=reading_id,
            user_id=user_id,
            book_id=book_id,
            status=status,
            created_at=created,
            updated_at=created,
            format=format,
            rating=rating,
            quick_reviews=list(quick_reviews),
        )
        self.readings[reading_id] = reading
        return reading

    def remove_book(self, book_id: int) -> None:
        """Drop a book along with its author links and readings."""
        self.books.pop(book_id, None)
        self.book_authors.pop(book_id, None)
        self.readings = {k: r for k, r in self.readings.items() if r.book_id != book_id}

    def rename_author(self, author_id: int, name: str) -> None:
        self.authors[author_id] = replace(self.authors[author_id], name=name)

    def rename_genre(self, genre_id: int, name: str) -> None:
        self.genres[genre_id] = replace(self.genres[genre_id], name=name)

    def finish_reading(self, reading_id: int, rating: Optional[float] = None) -> Reading:
        reading = self.readings[reading_id]
        updated = replace(
            reading,
            status=ReadingStatus.READ,
            rating=rating,
            updated_at=reading.updated_at + timedelta(days=7),
        )
        self.readings[reading_id] = updated
        return updated

    def repositories(self) -> LibraryRepositories:
        return LibraryRepositories(
            authors=InMemoryAuthorRepository(self),
            books=InMemoryBookRepository(self),
            genres=InMemoryGenreRepository(self),
            readings=InMemoryReadingRepository(self),
        )


class InMemoryAuthorRepository(AuthorRepository):

    def __init__(self, library: InMemoryLibrary):
        self.library = library

    async def get(self, author_id: int) -> Author:
        self.library.calls.append(("author.get", author_id))
        if author_id not in self.library.authors:
            raise EntityNotFoundError("author", author_id)
        return self.library.authors[author_id]

    async def list_all(self) -> List[Author]:
        return [self.library.authors[k] for k in sorted(self.library.authors)]


class InMemoryGenreRepository(GenreRepository):

    def __init__(self, library: InMemoryLibrary):
        self.library = library

    async def get(self, genre_id: int) -> Genre:
        if genre_id not in self.library.genres:
            raise EntityNotFoundError("genre", genre_id)
        return self.library.genres[genre_id]

    async def list_all(self) -> List[Genre]:
        return [self.library.genres[k] for k in sorted(self.library.genres)]


class InMemoryBookRepository(BookRepository):

    def __init__(self, library: InMemoryLibrary):
        self.library = library

    async def get(self, book_id: int) -> Book:
        if book_id not in self.library.books:
            raise EntityNotFoundError("book", book_id)
        return self.library.books[book_id]

    async def get_with_authors(self, book_id: int) -> BookWithAuthors:
        book = await self.get(book_id)
        return BookWithAuthors(book=book, authors=list(self.library.book_authors.get(book_id, [])))

    async def list_by_author(self, author_id: int) -> List[Book]:
        return [
            self.library.books[book_id]
            for book_id in sorted(self.library.books)
            if any(link.author_id == author_id for link in self.library.book_authors.get(book_id, []))
        ]

    async def list_by_genre(self, genre_id: int) -> List[Book]:
        return [
            book
            for _, book in sorted(self.library.books.items())
            if genre_id in (book.primary_genre_id, book.secondary_genre_id)
        ]

    async def list_all(self) -> List[Book]:
        return [self.library.books[k] for k in sorted(self.library.books)]


class InMemoryReadingRepository(ReadingRepository):

    def __init__(self, library: InMemoryLibrary):
        self.library = library

    async def get(self, reading_id: int) -> Reading:
        if reading_id not in self.library.readings:
            raise EntityNotFoundError("reading", reading_id)
        return self.library.readings[reading_id]

    async def list_by_book(self, book_id: int) -> List[Reading]:
        return [r for _, r in sorted(self.library.readings.items()) if r.book_id == book_id]

    async def list_all(self) -> List[Reading]:
        return [self.library.readings[k] for k in sorted(self.library.readings)]


class InMemoryTimelineStore(TimelineEventStore):
    """Timeline store keeping rows in a dict keyed by (entity_type, entity_id)."""

    def __init__(self):
        self.rows: Dict[Tuple[EntityType, int], TimelineEvent] = {}
        self.updates: List[Tuple[EntityType, int]] = []
        self._next_id = 1

    async def insert(self, event: NewTimelineEvent) -> TimelineEvent:
        key = (event.entity_type, event.entity_id)
        existing = self.rows.get(key)
        if existing is not None:
            event_id = existing.id
        else:
            event_id = self._next_id
            self._next_id += 1
        stored = TimelineEvent(
            id=event_id,
            entity_type=event.entity_type,
            entity_id=event.entity_id,
            action=event.action,
            occurred_at=event.occurred_at,
            title=event.title,
            details=list(event.details),
            genres=list(event.genres),
            reading_data=event.reading_data,
            user_id=event.user_id,
        )
        self.rows[key] = stored
        return stored

    async def update_by_entity(
        self,
        entity_type: EntityType,
        entity_id: int,
        title: str,
        details: Sequence[TimelineEventDetail],
        genres: Sequence[str],
        reading_data: Optional[TimelineReadingData],
        *,
        action: Optional[str] = None,
        occurred_at: Optional[datetime] = None,
    ) -> bool:
        key = (entity_type, entity_id)
        existing = self.rows.get(key)
        if existing is None:
            return False
        self.rows[key] = replace(
            existing,
            title=title,
            details=list(details),
            genres=list(genres),
            reading_data=reading_data,
            action=action if action is not None else existing.action,
            occurred_at=occurred_at if occurred_at is not None else existing.occurred_at,
        )
        self.updates.append(key)
        return True

    async def delete_by_entity(self, entity_type: EntityType, entity_id: int) -> bool:
        return self.rows.pop((entity_type, entity_id), None) is not None

    async def delete_readings_for_book(self, book_id: int) -> int:
        keys = [
            key for key, row in self.rows.items()
            if key[0] is EntityType.READING and row.reading_data and row.reading_data.book_id == book_id
        ]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def delete_all(self) -> int:
        deleted = len(self.rows)
        self.rows.clear()
        return deleted

    async def get_by_entity(self, entity_type: EntityType, entity_id: int) -> Optional[TimelineEvent]:
        return self.rows.get((entity_type, entity_id))

    async def list(self, user_id: Optional[int], request: ListRequest) -> Page[TimelineEvent]:
        rows = [r for r in self.rows.values() if user_id is None or r.user_id == user_id]
        rows.sort(key=lambda r: r.id, reverse=True)
        rows.sort(key=lambda r: r.occurred_at, reverse=request.direction is SortDirection.DESC)
        if request.is_show_all:
            return Page(items=rows, page=1, page_size=max(len(rows), 1), total=len(rows), show_all=True)
        adjusted = request.ensure_page_within(len(rows))
        items = rows[adjusted.offset:adjusted.offset + adjusted.page_size]
        return Page(items=items, page=adjusted.page, page_size=adjusted.page_size, total=len(rows))

    async def list_all(self) -> List[TimelineEvent]:
        return (await self.list(None, ListRequest.show_all())).items
