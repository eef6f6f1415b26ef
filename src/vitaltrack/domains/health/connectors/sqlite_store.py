"""HealthRecordStore backed by the local SQLite health data bank."""

from __future__ import annotations

import logging
import statistics
from datetime import datetime, timezone
from typing import Any

from vitaltrack.core.storage.models import (
    ActivityEvent,
    HealthInsight,
    HealthLogEntry,
    Medication,
    MedicationIntake,
    ScanRecord,
)
from vitaltrack.core.storage.repository import HealthRepository
from vitaltrack.domains.health.domain_logic.metrics_models import (
    DEFAULT_FEATURES,
    UserEngagement,
)

logger = logging.getLogger(__name__)


class SQLiteRecordStore:
    """Reads analytics inputs from a :class:`HealthRepository`.

    Engagement is derived from what the data bank knows: how many logs the
    user wrote recently, which features were tracked through
    :meth:`record_activity`, and when the user was last seen (latest
    activity or profile update).
    """

    def __init__(
        self,
        repository: HealthRepository,
        *,
        engagement_window: int = 10,
        default_session_minutes: int = 15,
    ) -> None:
        self._repo = repository
        self._engagement_window = engagement_window
        self._default_session_minutes = default_session_minutes

    async def query_scans(self, collection: str, user_id: str, since: str) -> list[ScanRecord]:
        return self._repo.get_scans(collection, user_id, since=since)

    async def query_health_logs(self, user_id: str, since_date: str) -> list[HealthLogEntry]:
        return self._repo.get_health_logs(user_id, since_date=since_date)

    async def query_health_insights(self, user_id: str, since: str) -> list[HealthInsight]:
        return self._repo.get_insights(user_id, since=since)

    async def query_medications(self, user_id: str) -> list[Medication]:
        return self._repo.get_medications(user_id)

    async def query_medication_intakes(self, user_id: str, since: str) -> list[MedicationIntake]:
        return self._repo.get_intakes(user_id, since=since)

    async def query_user_engagement(self, user_id: str) -> UserEngagement:
        recent_logs = self._repo.get_recent_log_activity(user_id, limit=self._engagement_window)
        activity = self._repo.get_activity(user_id)
        profile = self._repo.get_profile(user_id)

        features = sorted({event.activity for event in activity}) or list(DEFAULT_FEATURES)

        session_minutes = [
            float(event.metadata["session_minutes"])
            for event in activity
            if isinstance(event.metadata.get("session_minutes"), (int, float))
        ]
        time_per_session = (
            round(statistics.mean(session_minutes), 1)
            if session_minutes
            else float(self._default_session_minutes)
        )

        # activity is newest first
        seen = [activity[0].created_at] if activity else []
        if profile is not None:
            seen.append(profile.updated_at or profile.created_at)
        last_active = max(seen) if seen else datetime.now(timezone.utc).isoformat()

        return UserEngagement(
            login_frequency=len(recent_logs),
            features_used=features,
            time_spent_per_session=time_per_session,
            last_active_date=last_active,
        )

    async def record_activity(
        self, user_id: str, activity: str, metadata: dict[str, Any] | None = None
    ) -> None:
        self._repo.record_activity(
            ActivityEvent(user_id=user_id, activity=activity, metadata=metadata or {})
        )
        logger.debug("Tracked activity %r", activity)
