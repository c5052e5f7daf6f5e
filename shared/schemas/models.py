"""
Library data models.

Defines the authoritative author, book, genre, reading and shelf
records as the timeline service reads them.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from datetime import datetime, date
from enum import Enum

from shared.utils.errors import ValidationError


def _parse_enum(enum_cls, value: str, field_name: str, normalized: str):
    try:
        return enum_cls(normalized)
    except ValueError as e:
        raise ValidationError(f"Unknown {field_name}: {value}", field=field_name, value=value) from e


class AuthorRole(Enum):
    """Contribution of an author to a book."""
    AUTHOR = "author"
    EDITOR = "editor"
    TRANSLATOR = "translator"

    @classmethod
    def parse(cls, value: str) -> "AuthorRole":
        return _parse_enum(cls, value, "author_role", value.strip().lower())


class ReadingStatus(Enum):
    """Reading status."""
    READING = "reading"
    READ = "read"
    ABANDONED = "abandoned"

    @classmethod
    def parse(cls, value: str) -> "ReadingStatus":
        return _parse_enum(cls, value, "status", value.strip().lower().replace("-", "_"))


class ReadingFormat(Enum):
    """Physical format a book was read in."""
    PHYSICAL = "physical"
    EREADER = "ereader"
    AUDIOBOOK = "audiobook"

    @property
    def display_label(self) -> str:
        return _FORMAT_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "ReadingFormat":
        normalized = value.strip().lower().replace("-", "_")
        if normalized == "e_reader":
            normalized = "ereader"
        return _parse_enum(cls, value, "format", normalized)


_FORMAT_LABELS = {
    ReadingFormat.PHYSICAL: "Physical",
    ReadingFormat.EREADER: "eReader",
    ReadingFormat.AUDIOBOOK: "Audiobook",
}


class QuickReview(Enum):
    """Fixed quick-review tags; values are the stored form, labels are displayed."""
    LOVED_IT = "loved-it"
    PAGE_TURNER = "page-turner"
    THOUGHT_PROVOKING = "thought-provoking"
    COULDNT_PUT_DOWN = "couldnt-put-down"
    GREAT_CHARACTERS = "great-characters"
    FUNNY = "funny"
    MOVING = "moving"
    LAUGHED_OUT_LOUD = "laughed-out-loud"
    RELATABLE = "relatable"
    QUICK_READ = "quick-read"
    SLOW_BURN = "slow-burn"
    DENSE = "dense"
    PREDICTABLE_PLOT = "predictable-plot"
    DISAPPOINTING_ENDING = "disappointing-ending"
    UNRELATABLE_CHARACTERS = "unrelatable-characters"
    FORGETTABLE = "forgettable"
    TOO_LONG = "too-long"
    ODD_POV = "odd-pov"
    OVERRATED = "overrated"

    @property
    def label(self) -> str:
        return _QUICK_REVIEW_LABELS[self]

    @classmethod
    def parse(cls, value: str) -> "QuickReview":
        """Accept either the stored value or the display label."""
        for review in cls:
            if value in (review.value, review.label):
                return review
        raise ValidationError(f"Unknown quick review: {value}", field="quick_reviews", value=value)


_QUICK_REVIEW_LABELS = {
    QuickReview.LOVED_IT: "Loved it",
    QuickReview.PAGE_TURNER: "Page-turner",
    QuickReview.THOUGHT_PROVOKING: "Thought-provoking",
    QuickReview.COULDNT_PUT_DOWN: "Couldn't put down",
    QuickReview.GREAT_CHARACTERS: "Great characters",
    QuickReview.FUNNY: "Funny",
    QuickReview.MOVING: "Moving",
    QuickReview.LAUGHED_OUT_LOUD: "Laughed out loud",
    QuickReview.RELATABLE: "Relatable",
    QuickReview.QUICK_READ: "Quick read",
    QuickReview.SLOW_BURN: "Slow burn",
    QuickReview.DENSE: "Dense",
    QuickReview.PREDICTABLE_PLOT: "Predictable plot",
    QuickReview.DISAPPOINTING_ENDING: "Disappointing ending",
    QuickReview.UNRELATABLE_CHARACTERS: "Unrelatable characters",
    QuickReview.FORGETTABLE: "Forgettable",
    QuickReview.TOO_LONG: "Too long",
    QuickReview.ODD_POV: "Odd POV",
    QuickReview.OVERRATED: "Overrated",
}


class Shelf(Enum):
    """User shelf a book sits on."""
    LIBRARY = "library"
    WISHLIST = "wishlist"


@dataclass
class Author:
    """Author record."""
    id: int
    name: str
    created_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Author":
        return cls(id=data["id"], name=data["name"], created_at=data["created_at"])


@dataclass
class Genre:
    """Genre record."""
    id: int
    name: str
    created_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Genre":
        return cls(id=data["id"], name=data["name"], created_at=data["created_at"])


@dataclass
class Book:
    """Book record."""
    id: int
    title: str
    created_at: datetime
    isbn: Optional[str] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    year_published: Optional[int] = None
    publisher: Optional[str] = None
    language: Optional[str] = None
    primary_genre_id: Optional[int] = None
    secondary_genre_id: Optional[int] = None

    def genre_ids(self) -> List[int]:
        """Primary then secondary genre id, skipping unset ones."""
        return [gid for gid in (self.primary_genre_id, self.secondary_genre_id) if gid is not None]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        return cls(
            id=data["id"],
            title=data["title"],
            created_at=data["created_at"],
            isbn=data.get("isbn"),
            description=data.get("description"),
            page_count=data.get("page_count"),
            year_published=data.get("year_published"),
            publisher=data.get("publisher"),
            language=data.get("language"),
            primary_genre_id=data.get("primary_genre_id"),
            secondary_genre_id=data.get("secondary_genre_id"),
        )


@dataclass
class BookAuthor:
    """Link between a book and one of its authors."""
    author_id: int
    role: AuthorRole = AuthorRole.AUTHOR


@dataclass
class BookWithAuthors:
    """Book plus its ordered author links."""
    book: Book
    authors: List[BookAuthor] = field(default_factory=list)

    @property
    def author_ids(self) -> List[int]:
        return [link.author_id for link in self.authors]


@dataclass
class Reading:
    """A user's reading of a book."""
    id: int
    user_id: int
    book_id: int
    status: ReadingStatus
    created_at: datetime
    updated_at: datetime
    format: Optional[ReadingFormat] = None
    started_at: Optional[date] = None
    finished_at: Optional[date] = None
    rating: Optional[float] = None
    quick_reviews: List[QuickReview] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reading":
        fmt = data.get("format")
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            book_id=data["book_id"],
            status=ReadingStatus.parse(data["status"]),
            created_at=data["created_at"],
            updated_at=data["updated_at"],
            format=ReadingFormat.parse(fmt) if fmt else None,
            started_at=data.get("started_at"),
            finished_at=data.get("finished_at"),
            rating=data.get("rating"),
            quick_reviews=[QuickReview.parse(value) for value in data.get("quick_reviews") or []],
        )


@dataclass
class UserBook:
    """A book placed on a user's shelf."""
    id: int
    user_id: int
    book_id: int
    created_at: datetime
    shelf: Shelf = Shelf.LIBRARY
    book_club: bool = False
