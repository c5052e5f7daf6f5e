"""Configuration for the timeline service."""

import os

from shared.framework.config import ServiceConfig
from shared.utils.errors import ConfigurationError


class TimelineConfig(ServiceConfig):
    """Configuration for the timeline refresh service."""

    def __init__(self) -> None:
        super().__init__(service_name="timeline")

        self.debounce_seconds = float(os.getenv("BOOKLOG_TIMELINE_DEBOUNCE_SECONDS", "2.0"))
        self.channel_capacity = int(os.getenv("BOOKLOG_TIMELINE_CHANNEL_CAPACITY", "32"))
        self.full_rebuild_interval_seconds = float(
            os.getenv("BOOKLOG_TIMELINE_FULL_REBUILD_INTERVAL", "3600")
        )

        self._validate_timeline()

    def _validate_timeline(self) -> None:
        if self.debounce_seconds < 0:
            raise ConfigurationError(
                "Debounce window cannot be negative",
                config_key="BOOKLOG_TIMELINE_DEBOUNCE_SECONDS",
                config_value=self.debounce_seconds,
            )

        if self.channel_capacity < 1:
            raise ConfigurationError(
                "Channel capacity must be at least 1",
                config_key="BOOKLOG_TIMELINE_CHANNEL_CAPACITY",
                config_value=self.channel_capacity,
            )

        if self.full_rebuild_interval_seconds < 0:
            raise ConfigurationError(
                "Full rebuild interval cannot be negative (use 0 to disable)",
                config_key="BOOKLOG_TIMELINE_FULL_REBUILD_INTERVAL",
                config_value=self.full_rebuild_interval_seconds,
            )

    def to_dict(self):
        data = super().to_dict()
        data["timeline"] = {
            "debounce_seconds": self.debounce_seconds,
            "channel_capacity": self.channel_capacity,
            "full_rebuild_interval_seconds": self.full_rebuild_interval_seconds,
        }
        return data
