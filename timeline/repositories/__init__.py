"""
Library read ports.

Abstract read-only repositories over authors, books, genres and
readings, plus their PostgreSQL implementations.
"""

from .base import (
    AuthorRepository,
    BookRepository,
    GenreRepository,
    LibraryRepositories,
    ReadingRepository,
)
from .postgres import postgres_library

__all__ = [
    "AuthorRepository",
    "BookRepository",
    "GenreRepository",
    "LibraryRepositories",
    "ReadingRepository",
    "postgres_library",
]
