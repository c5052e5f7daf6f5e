"""Timeline event builders.

Pure functions that derive a complete snapshot payload from authoritative
library records. The creation path and the refresh path both go through
these functions so a refreshed snapshot is always identical to the one a
freshly created entity would get.
"""

from typing import List, Optional, Sequence

from shared.schemas.models import Author, Book, Genre, Reading, ReadingStatus, UserBook

from ..models import (
    EntityType,
    NewTimelineEvent,
    TimelineAction,
    TimelineEventDetail,
    TimelineReadingData,
)


_READING_ACTIONS = {
    ReadingStatus.READING: TimelineAction.STARTED,
    ReadingStatus.READ: TimelineAction.FINISHED,
    ReadingStatus.ABANDONED: TimelineAction.ABANDONED,
}


def format_rating(rating: float) -> str:
    """Render a rating out of five, dropping a trailing ``.0``."""
    if float(rating).is_integer():
        return f"{int(rating)}/5"
    return f"{rating}/5"


def _author_names(authors: Sequence[Author]) -> List[str]:
    return [author.name for author in authors]


def build_author_event(author: Author, user_id: Optional[int] = None) -> NewTimelineEvent:
    return NewTimelineEvent(
        entity_type=EntityType.AUTHOR,
        entity_id=author.id,
        action=TimelineAction.ADDED.value,
        occurred_at=author.created_at,
        title=author.name,
        user_id=user_id,
    )


def build_genre_event(genre: Genre, user_id: Optional[int] = None) -> NewTimelineEvent:
    return NewTimelineEvent(
        entity_type=EntityType.GENRE,
        entity_id=genre.id,
        action=TimelineAction.ADDED.value,
        occurred_at=genre.created_at,
        title=genre.name,
        user_id=user_id,
    )


def build_book_event(
    book: Book,
    authors: Sequence[Author],
    primary_genre: Optional[str] = None,
    secondary_genre: Optional[str] = None,
    user_id: Optional[int] = None,
) -> NewTimelineEvent:
    """Book snapshot: author names, genre names and page count."""
    details = [TimelineEventDetail.author_detail(_author_names(authors))]
    genres = [name for name in (primary_genre, secondary_genre) if name]
    if genres:
        details.append(TimelineEventDetail(label="Genres", value=", ".join(genres)))
    if book.page_count is not None:
        details.append(TimelineEventDetail(label="Pages", value=str(book.page_count)))

    return NewTimelineEvent(
        entity_type=EntityType.BOOK,
        entity_id=book.id,
        action=TimelineAction.ADDED.value,
        occurred_at=book.created_at,
        title=book.title,
        details=details,
        genres=genres,
        user_id=user_id,
    )


def build_reading_event(reading: Reading, book: Book, authors: Sequence[Author]) -> NewTimelineEvent:
    """Reading snapshot.

    The action follows the reading's current status, so a refresh after a
    status change rewrites it. Finished and abandoned readings are dated
    by their last update, in-progress ones by when they were started.
    Genres are never embedded here.
    """
    details = [TimelineEventDetail.author_detail(_author_names(authors))]
    if reading.format is not None:
        details.append(TimelineEventDetail(label="Format", value=reading.format.display_label))
    if reading.rating is not None:
        details.append(TimelineEventDetail(label="Rating", value=format_rating(reading.rating)))
    if reading.quick_reviews:
        details.append(
            TimelineEventDetail(
                label="Notes",
                value=", ".join(review.label for review in reading.quick_reviews),
            )
        )

    if reading.status is ReadingStatus.READING:
        occurred_at = reading.created_at
    else:
        occurred_at = reading.updated_at

    return NewTimelineEvent(
        entity_type=EntityType.READING,
        entity_id=reading.id,
        action=_READING_ACTIONS[reading.status].value,
        occurred_at=occurred_at,
        title=book.title,
        details=details,
        reading_data=TimelineReadingData(
            book_id=book.id,
            status=reading.status.value,
            rating=reading.rating,
        ),
        user_id=reading.user_id,
    )


def build_shelved_event(user_book: UserBook, book: Book, authors: Sequence[Author]) -> NewTimelineEvent:
    """A book placed on a user's shelf, recorded against the book's row."""
    # timeline_events is unique on (entity_type, entity_id), so shelving
    # replaces the book's "added" entry and its user_id
    return NewTimelineEvent(
        entity_type=EntityType.BOOK,
        entity_id=book.id,
        action=TimelineAction.SHELVED.value,
        occurred_at=user_book.created_at,
        title=book.title,
        details=[TimelineEventDetail.author_detail(_author_names(authors))],
        user_id=user_book.user_id,
    )
