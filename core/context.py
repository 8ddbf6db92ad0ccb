"""Portal context: the process-wide state shared by gateway and orchestrator."""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from core.cache import SheetCache
from core.config import PortalConfig, Settings, load_config, snapshot_config

logger = structlog.get_logger(__name__)


class ActivityEntry(BaseModel):
    """One line of the recent-activity feed."""

    type: str
    subject_id: str
    description: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    user: str = "System"


class DistributionStats(BaseModel):
    """Running totals for data distribution."""

    data_sent_today: int = 0
    companies_contacted: int = 0
    last_distribution: datetime | None = None


class PortalContext(BaseModel):
    """Owns the cache, the activity log and distribution statistics.

    Constructed once per process and handed by reference to the gateway and
    orchestrator; nothing else keeps module-level state.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    settings: Settings
    portal: PortalConfig
    cache: SheetCache
    stats: DistributionStats = Field(default_factory=DistributionStats)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    _activities: deque[ActivityEntry] = PrivateAttr()

    def model_post_init(self, __context: Any) -> None:
        self._activities = deque(maxlen=self.settings.activity_log_limit)

    @classmethod
    def boot(
        cls,
        settings: Settings | None = None,
        portal: PortalConfig | None = None,
    ) -> PortalContext:
        """Boot a new context from explicit or loaded configuration."""
        if settings is None or portal is None:
            loaded_settings, loaded_portal = load_config(settings=settings)
            settings = settings or loaded_settings
            portal = portal or loaded_portal

        ctx = cls(
            settings=settings,
            portal=portal,
            cache=SheetCache(ttl_seconds=settings.cache_ttl_seconds),
        )
        logger.debug("Portal context booted", config=snapshot_config(settings, portal))
        return ctx

    # Activity log

    def log_activity(self, type: str, subject_id: str, description: str) -> ActivityEntry:
        """Record an activity; the oldest entry is evicted past the limit."""
        entry = ActivityEntry(type=type, subject_id=subject_id, description=description)
        self._activities.appendleft(entry)
        logger.info("Activity", type=type, subject_id=subject_id, description=description)
        return entry

    def recent_activities(self, limit: int | None = None) -> list[ActivityEntry]:
        """Newest first."""
        entries = list(self._activities)
        return entries[:limit] if limit is not None else entries

    # Distribution statistics

    def record_distribution(self, students_sent: int, companies_contacted: int) -> None:
        """Fold one completed distribution into the running statistics."""
        now = datetime.now(timezone.utc)
        last = self.stats.last_distribution
        if last is None or last.date() != now.date():
            self.stats.data_sent_today = 0
        self.stats.data_sent_today += students_sent
        self.stats.companies_contacted = max(
            self.stats.companies_contacted, companies_contacted
        )
        self.stats.last_distribution = now

    def summary(self) -> dict[str, Any]:
        """Get a summary of the context for display."""
        return {
            "started_at": self.started_at.isoformat(),
            "cached_sheets": self.cache.cached_sheets(),
            "activities": len(self._activities),
            "stats": self.stats.model_dump(mode="json"),
        }
