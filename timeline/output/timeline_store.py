"""Timeline event snapshot store."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import structlog

from shared.storage.postgres import PostgresClient, affected_rows
from shared.utils.errors import StorageError

from ..listing import ListRequest, Page
from ..models import (
    EntityType,
    NewTimelineEvent,
    TimelineEvent,
    TimelineEventDetail,
    TimelineReadingData,
)


logger = structlog.get_logger(__name__)

TABLE = "timeline_events"

_SELECT_COLUMNS = """
    id, entity_type, entity_id, action, occurred_at, title,
    details_json, genres_json, reading_data_json, user_id
"""


class TimelineEventStore(ABC):
    """Persistence for timeline snapshots, at most one row per (entity_type, entity_id)."""

    @abstractmethod
    async def insert(self, event: NewTimelineEvent) -> TimelineEvent:
        """Store a snapshot, replacing any existing row for the same entity."""

    @abstractmethod
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
        """Rewrite the display fields of an existing row.

        Returns False without writing anything when no row exists.
        """

    @abstractmethod
    async def delete_by_entity(self, entity_type: EntityType, entity_id: int) -> bool:
        ...

    @abstractmethod
    async def delete_readings_for_book(self, book_id: int) -> int:
        """Remove every reading snapshot that belongs to a book."""

    @abstractmethod
    async def delete_all(self) -> int:
        ...

    @abstractmethod
    async def get_by_entity(self, entity_type: EntityType, entity_id: int) -> Optional[TimelineEvent]:
        ...

    @abstractmethod
    async def list(self, user_id: Optional[int], request: ListRequest) -> Page[TimelineEvent]:
        ...

    @abstractmethod
    async def list_all(self) -> List[TimelineEvent]:
        ...


def encode_details(details: Sequence[TimelineEventDetail]) -> str:
    return json.dumps([detail.to_dict() for detail in details], separators=(",", ":"))


def encode_genres(genres: Sequence[str]) -> str:
    return json.dumps(list(genres), separators=(",", ":"))


def encode_reading_data(reading_data: Optional[TimelineReadingData]) -> Optional[str]:
    if reading_data is None:
        return None
    return json.dumps(reading_data.to_dict(), separators=(",", ":"))


def _decode(raw: Optional[str], what: str) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise StorageError(
            f"Failed to decode timeline event {what}: {e}",
            operation="decode",
            table=TABLE,
        ) from e


def row_to_event(row: Dict[str, Any]) -> TimelineEvent:
    """Map a ``timeline_events`` row onto a TimelineEvent."""
    details = _decode(row.get("details_json"), "details") or []
    genres = _decode(row.get("genres_json"), "genres") or []
    reading_data = _decode(row.get("reading_data_json"), "reading data")

    try:
        return TimelineEvent(
            id=row["id"],
            entity_type=EntityType(row["entity_type"]),
            entity_id=row["entity_id"],
            action=row["action"],
            occurred_at=row["occurred_at"],
            title=row["title"],
            details=[TimelineEventDetail.from_dict(item) for item in details],
            genres=[str(genre) for genre in genres],
            reading_data=TimelineReadingData.from_dict(reading_data) if reading_data else None,
            user_id=row.get("user_id"),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(
            f"Malformed timeline event row {row.get('id')}: {e}",
            operation="decode",
            table=TABLE,
        ) from e


class PostgresTimelineEventStore(TimelineEventStore):
    """Timeline store backed by the ``timeline_events`` table."""

    def __init__(self, client: PostgresClient):
        self.client = client

    async def insert(self, event: NewTimelineEvent) -> TimelineEvent:
        row = await self.client.execute_one(
            f"""
            INSERT INTO {TABLE} (
                entity_type, entity_id, action, occurred_at, title,
                details_json, genres_json, reading_data_json, user_id
            )
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            ON CONFLICT (entity_type, entity_id) DO UPDATE SET
                action = EXCLUDED.action,
                occurred_at = EXCLUDED.occurred_at,
                title = EXCLUDED.title,
                details_json = EXCLUDED.details_json,
                genres_json = EXCLUDED.genres_json,
                reading_data_json = EXCLUDED.reading_data_json,
                user_id = EXCLUDED.user_id
            RETURNING {_SELECT_COLUMNS}
            """,
            event.entity_type.value,
            event.entity_id,
            event.action,
            event.occurred_at,
            event.title,
            encode_details(event.details),
            encode_genres(event.genres),
            encode_reading_data(event.reading_data),
            event.user_id,
        )
        if row is None:
            raise StorageError("Insert returned no row", operation="insert", table=TABLE)

        logger.debug(
            "Stored timeline event",
            entity_type=event.entity_type.value,
            entity_id=event.entity_id,
            action=event.action,
        )
        return row_to_event(row)

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
        status = await self.client.execute_command(
            f"""
            UPDATE {TABLE}
            SET title = $3,
                details_json = $4,
                genres_json = $5,
                reading_data_json = $6,
                action = COALESCE($7, action),
                occurred_at = COALESCE($8, occurred_at)
            WHERE entity_type = $1 AND entity_id = $2
            """,
            entity_type.value,
            entity_id,
            title,
            encode_details(details),
            encode_genres(genres),
            encode_reading_data(reading_data),
            action,
            occurred_at,
        )

        if affected_rows(status) == 0:
            logger.debug(
                "No timeline event to update",
                entity_type=entity_type.value,
                entity_id=entity_id,
            )
            return False
        return True

    async def delete_by_entity(self, entity_type: EntityType, entity_id: int) -> bool:
        status = await self.client.execute_command(
            f"DELETE FROM {TABLE} WHERE entity_type = $1 AND entity_id = $2",
            entity_type.value,
            entity_id,
        )
        return affected_rows(status) > 0

    async def delete_readings_for_book(self, book_id: int) -> int:
        status = await self.client.execute_command(
            f"""
            DELETE FROM {TABLE}
            WHERE entity_type = $1
              AND (reading_data_json::jsonb ->> 'book_id')::bigint = $2
            """,
            EntityType.READING.value,
            book_id,
        )
        return affected_rows(status)

    async def delete_all(self) -> int:
        status = await self.client.execute_command(f"DELETE FROM {TABLE}")
        deleted = affected_rows(status)
        logger.info("Cleared timeline events", deleted=deleted)
        return deleted

    async def get_by_entity(self, entity_type: EntityType, entity_id: int) -> Optional[TimelineEvent]:
        row = await self.client.execute_one(
            f"SELECT {_SELECT_COLUMNS} FROM {TABLE} WHERE entity_type = $1 AND entity_id = $2",
            entity_type.value,
            entity_id,
        )
        return row_to_event(row) if row else None

    async def list(self, user_id: Optional[int], request: ListRequest) -> Page[TimelineEvent]:
        """Page through the feed, newest first unless asked otherwise.

        A page past the end is clamped to the last page.
        """
        where = ""
        args: List[Any] = []
        if user_id is not None:
            where = " WHERE user_id = $1"
            args.append(user_id)
        order = f" ORDER BY occurred_at {request.direction.sql}, id DESC"
        select = f"SELECT {_SELECT_COLUMNS} FROM {TABLE}{where}{order}"

        if request.is_show_all:
            rows = await self.client.execute(select, *args)
            items = [row_to_event(row) for row in rows]
            return Page(
                items=items,
                page=1,
                page_size=max(len(items), 1),
                total=len(items),
                show_all=True,
            )

        total = await self.client.execute_scalar(f"SELECT COUNT(*) FROM {TABLE}{where}", *args)
        total = int(total or 0)
        adjusted = request.ensure_page_within(total)

        limit_idx = len(args) + 1
        rows = await self.client.execute(
            f"{select} LIMIT ${limit_idx} OFFSET ${limit_idx + 1}",
            *args,
            adjusted.page_size,
            adjusted.offset,
        )
        return Page(
            items=[row_to_event(row) for row in rows],
            page=adjusted.page,
            page_size=adjusted.page_size,
            total=total,
        )

    async def list_all(self) -> List[TimelineEvent]:
        rows = await self.client.execute(
            f"SELECT {_SELECT_COLUMNS} FROM {TABLE} ORDER BY occurred_at DESC, id DESC"
        )
        return [row_to_event(row) for row in rows]
