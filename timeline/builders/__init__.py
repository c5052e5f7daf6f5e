"""
Timeline event builders.

Pure builders that turn library records into snapshot payloads, and
the assembler that loads the related records those builders need.
"""

from .assembler import EventAssembler
from .events import (
    build_author_event,
    build_book_event,
    build_genre_event,
    build_reading_event,
    build_shelved_event,
    format_rating,
)

__all__ = [
    "EventAssembler",
    "build_author_event",
    "build_book_event",
    "build_genre_event",
    "build_reading_event",
    "build_shelved_event",
    "format_rating",
]
