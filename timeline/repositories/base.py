"""Read-only ports onto the authoritative library tables.

The timeline subsystem never writes through these. Lookups of a row that
does not exist raise ``EntityNotFoundError``.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List

from shared.schemas.models import Author, Book, BookWithAuthors, Genre, Reading


class AuthorRepository(ABC):

    @abstractmethod
    async def get(self, author_id: int) -> Author:
        ...

    @abstractmethod
    async def list_all(self) -> List[Author]:
        ...


class GenreRepository(ABC):

    @abstractmethod
    async def get(self, genre_id: int) -> Genre:
        ...

    @abstractmethod
    async def list_all(self) -> List[Genre]:
        ...


class BookRepository(ABC):

    @abstractmethod
    async def get(self, book_id: int) -> Book:
        ...

    @abstractmethod
    async def get_with_authors(self, book_id: int) -> BookWithAuthors:
        ...

    @abstractmethod
    async def list_by_author(self, author_id: int) -> List[Book]:
        """Books the author is linked to, in any role."""

    @abstractmethod
    async def list_by_genre(self, genre_id: int) -> List[Book]:
        """Books whose primary or secondary genre is ``genre_id``."""

    @abstractmethod
    async def list_all(self) -> List[Book]:
        ...


class ReadingRepository(ABC):

    @abstractmethod
    async def get(self, reading_id: int) -> Reading:
        ...

    @abstractmethod
    async def list_by_book(self, book_id: int) -> List[Reading]:
        ...

    @abstractmethod
    async def list_all(self) -> List[Reading]:
        ...


@dataclass
class LibraryRepositories:
    """The four read ports the resolver and assembler depend on."""
    authors: AuthorRepository
    books: BookRepository
    genres: GenreRepository
    readings: ReadingRepository
