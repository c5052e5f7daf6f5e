"""PostgreSQL implementations of the library read ports."""

from typing import List

from shared.schemas.models import (
    Author,
    AuthorRole,
    Book,
    BookAuthor,
    BookWithAuthors,
    Genre,
    Reading,
)
from shared.storage.postgres import PostgresClient
from shared.utils.errors import EntityNotFoundError

from .base import (
    AuthorRepository,
    BookRepository,
    GenreRepository,
    LibraryRepositories,
    ReadingRepository,
)


_BOOK_COLUMNS = """
    b.id, b.title, b.isbn, b.description, b.page_count, b.year_published,
    b.publisher, b.language, b.primary_genre_id, b.secondary_genre_id, b.created_at
"""

_READING_COLUMNS = """
    id, user_id, book_id, status, format, started_at, finished_at,
    rating, quick_reviews, created_at, updated_at
"""


class PostgresAuthorRepository(AuthorRepository):

    def __init__(self, client: PostgresClient):
        self.client = client

    async def get(self, author_id: int) -> Author:
        row = await self.client.execute_one(
            "SELECT id, name, created_at FROM authors WHERE id = $1", author_id
        )
        if row is None:
            raise EntityNotFoundError("author", author_id)
        return Author.from_dict(row)

    async def list_all(self) -> List[Author]:
        rows = await self.client.execute("SELECT id, name, created_at FROM authors ORDER BY id")
        return [Author.from_dict(row) for row in rows]


class PostgresGenreRepository(GenreRepository):

    def __init__(self, client: PostgresClient):
        self.client = client

    async def get(self, genre_id: int) -> Genre:
        row = await self.client.execute_one(
            "SELECT id, name, created_at FROM genres WHERE id = $1", genre_id
        )
        if row is None:
            raise EntityNotFoundError("genre", genre_id)
        return Genre.from_dict(row)

    async def list_all(self) -> List[Genre]:
        rows = await self.client.execute("SELECT id, name, created_at FROM genres ORDER BY id")
        return [Genre.from_dict(row) for row in rows]


class PostgresBookRepository(BookRepository):

    def __init__(self, client: PostgresClient):
        self.client = client

    async def get(self, book_id: int) -> Book:
        row = await self.client.execute_one(
            f"SELECT {_BOOK_COLUMNS} FROM books b WHERE b.id = $1", book_id
        )
        if row is None:
            raise EntityNotFoundError("book", book_id)
        return Book.from_dict(row)

    async def get_with_authors(self, book_id: int) -> BookWithAuthors:
        book = await self.get(book_id)
        rows = await self.client.execute(
            "SELECT author_id, role FROM book_authors WHERE book_id = $1 ORDER BY author_id, role",
            book_id,
        )
        links = [BookAuthor(author_id=row["author_id"], role=AuthorRole.parse(row["role"])) for row in rows]
        return BookWithAuthors(book=book, authors=links)

    async def list_by_author(self, author_id: int) -> List[Book]:
        rows = await self.client.execute(
            f"""
            SELECT DISTINCT {_BOOK_COLUMNS}
            FROM books b
            JOIN book_authors ba ON ba.book_id = b.id
            WHERE ba.author_id = $1
            ORDER BY b.id
            """,
            author_id,
        )
        return [Book.from_dict(row) for row in rows]

    async def list_by_genre(self, genre_id: int) -> List[Book]:
        rows = await self.client.execute(
            f"""
            SELECT {_BOOK_COLUMNS}
            FROM books b
            WHERE b.primary_genre_id = $1 OR b.secondary_genre_id = $1
            ORDER BY b.id
            """,
            genre_id,
        )
        return [Book.from_dict(row) for row in rows]

    async def list_all(self) -> List[Book]:
        rows = await self.client.execute(f"SELECT {_BOOK_COLUMNS} FROM books b ORDER BY b.id")
        return [Book.from_dict(row) for row in rows]


class PostgresReadingRepository(ReadingRepository):

    def __init__(self, client: PostgresClient):
        self.client = client

    async def get(self, reading_id: int) -> Reading:
        row = await self.client.execute_one(
            f"SELECT {_READING_COLUMNS} FROM readings WHERE id = $1", reading_id
        )
        if row is None:
            raise EntityNotFoundError("reading", reading_id)
        return Reading.from_dict(row)

    async def list_by_book(self, book_id: int) -> List[Reading]:
        rows = await self.client.execute(
            f"SELECT {_READING_COLUMNS} FROM readings WHERE book_id = $1 ORDER BY id", book_id
        )
        return [Reading.from_dict(row) for row in rows]

    async def list_all(self) -> List[Reading]:
        rows = await self.client.execute(f"SELECT {_READING_COLUMNS} FROM readings ORDER BY id")
        return [Reading.from_dict(row) for row in rows]


def postgres_library(client: PostgresClient) -> LibraryRepositories:
    """Wire all four read ports onto one client."""
    return LibraryRepositories(
        authors=PostgresAuthorRepository(client),
        books=PostgresBookRepository(client),
        genres=PostgresGenreRepository(client),
        readings=PostgresReadingRepository(client),
    )
