"""Fire-and-forget entry point for requesting snapshot refreshes."""

from typing import Optional, Union

import structlog

from shared.framework.metrics import MetricsCollector
from shared.utils.errors import ValidationError

from ..models import EntityRef, EntityType, FullRebuild, RefreshEntity, TimelineInvalidation
from .channel import InvalidationChannel


logger = structlog.get_logger(__name__)


class TimelineInvalidator:
    """
    Shared handle that mutation handlers call after a successful write.

    Both operations return immediately and never raise. A signal that
    does not fit in the channel is dropped.
    """

    def __init__(self, channel: InvalidationChannel, metrics: Optional[MetricsCollector] = None):
        self.channel = channel
        self.metrics = metrics

    def invalidate(self, entity_type: Union[EntityType, str], entity_id: int) -> None:
        """Request a refresh of one entity and everything that embeds it."""
        try:
            kind = EntityType.coerce(entity_type)
        except ValidationError as e:
            logger.warning("Ignoring invalidation for unknown entity type", error=e.message, entity_id=entity_id)
            return

        self._send(RefreshEntity(EntityRef(kind, entity_id)), kind.value)

    def invalidate_full(self) -> None:
        """Request a rebuild of every snapshot."""
        self._send(FullRebuild(), "full")

    def _send(self, signal: TimelineInvalidation, kind: str) -> None:
        accepted = self.channel.try_send(signal)
        if self.metrics:
            self.metrics.record_signal(kind, accepted)
        if not accepted:
            logger.debug(
                "Timeline invalidation dropped",
                kind=kind,
                closed=self.channel.closed,
            )
