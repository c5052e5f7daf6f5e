"""Timeline event snapshot models and invalidation signals."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from shared.utils.errors import ValidationError


class EntityType(str, Enum):
    """Aggregates that own a timeline event."""
    AUTHOR = "author"
    BOOK = "book"
    GENRE = "genre"
    READING = "reading"

    @classmethod
    def coerce(cls, value: Union["EntityType", str]) -> "EntityType":
        """Accept an EntityType or its string value."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValidationError(
                f"Unknown timeline entity type: {value}",
                field="entity_type",
                value=value,
            ) from None


class TimelineAction(str, Enum):
    """Transition a timeline event represents."""
    ADDED = "added"
    STARTED = "started"
    FINISHED = "finished"
    ABANDONED = "abandoned"
    SHELVED = "shelved"


@dataclass(frozen=True)
class TimelineEventDetail:
    """One label/value pair shown under an event."""
    label: str
    value: str

    @classmethod
    def author_detail(cls, author_names: List[str]) -> "TimelineEventDetail":
        return cls(label="Author", value=", ".join(author_names) if author_names else "Unknown")

    def to_dict(self) -> Dict[str, str]:
        return {"label": self.label, "value": self.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineEventDetail":
        return cls(label=data["label"], value=data["value"])


@dataclass(frozen=True)
class TimelineReadingData:
    """Structured reading payload used by specialised rendering."""
    book_id: int
    status: str
    rating: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineReadingData":
        return cls(book_id=data["book_id"], status=data["status"], rating=data.get("rating"))


@dataclass
class NewTimelineEvent:
    """Snapshot payload produced by a builder, before it has an identity."""
    entity_type: EntityType
    entity_id: int
    action: str
    occurred_at: datetime
    title: str
    details: List[TimelineEventDetail] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    reading_data: Optional[TimelineReadingData] = None
    user_id: Optional[int] = None


@dataclass
class TimelineEvent:
    """Stored snapshot row."""
    id: int
    entity_type: EntityType
    entity_id: int
    action: str
    occurred_at: datetime
    title: str
    details: List[TimelineEventDetail] = field(default_factory=list)
    genres: List[str] = field(default_factory=list)
    reading_data: Optional[TimelineReadingData] = None
    user_id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "entity_type": self.entity_type.value,
            "entity_id": self.entity_id,
            "action": self.action,
            "occurred_at": self.occurred_at.isoformat(),
            "title": self.title,
            "details": [detail.to_dict() for detail in self.details],
            "genres": list(self.genres),
            "reading_data": self.reading_data.to_dict() if self.reading_data else None,
            "user_id": self.user_id,
        }


@dataclass(frozen=True)
class EntityRef:
    """Natural key of a snapshot; hashable so batches can coalesce on it."""
    entity_type: EntityType
    entity_id: int

    def __str__(self) -> str:
        return f"{self.entity_type.value}:{self.entity_id}"


@dataclass(frozen=True)
class RefreshEntity:
    """Signal: one entity changed, refresh it and its dependents."""
    target: EntityRef


@dataclass(frozen=True)
class FullRebuild:
    """Signal: rebuild every snapshot."""


TimelineInvalidation = Union[RefreshEntity, FullRebuild]
