"""
Library data models.

Provides typed records for:
- Authors, genres and books
- Readings and quick reviews
- Shelved books
"""

from .models import (
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
    Shelf,
    UserBook,
)

__all__ = [
    "Author",
    "AuthorRole",
    "Book",
    "BookAuthor",
    "BookWithAuthors",
    "Genre",
    "QuickReview",
    "Reading",
    "ReadingFormat",
    "ReadingStatus",
    "Shelf",
    "UserBook",
]
