"""Health record connectors: the read interface the analytics core depends on."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from vitaltrack.core.storage.models import (
        HealthInsight,
        HealthLogEntry,
        Medication,
        MedicationIntake,
        ScanRecord,
    )
    from vitaltrack.domains.health.domain_logic.metrics_models import UserEngagement


@runtime_checkable
class HealthRecordStore(Protocol):
    """Abstract interface for range-filtered health record reads.

    The aggregator calls these methods without knowing whether records come
    from the local data bank or from a hosted backend. Tests pass an
    in-memory fake.
    """

    async def query_scans(self, collection: str, user_id: str, since: str) -> list[ScanRecord]:
        """Scans in one collection ('medical', 'food', 'medication') created at or after ``since``."""
        ...

    async def query_health_logs(self, user_id: str, since_date: str) -> list[HealthLogEntry]:
        """Logs dated on or after ``since_date`` (YYYY-MM-DD), oldest first."""
        ...

    async def query_health_insights(self, user_id: str, since: str) -> list[HealthInsight]:
        """Insights created at or after ``since``."""
        ...

    async def query_medications(self, user_id: str) -> list[Medication]:
        """All medications on the user's schedule, active or not."""
        ...

    async def query_medication_intakes(self, user_id: str, since: str) -> list[MedicationIntake]:
        """Intake records at or after ``since``."""
        ...

    async def query_user_engagement(self, user_id: str) -> UserEngagement:
        """Engagement snapshot: login frequency, features used, session time, last activity."""
        ...

    async def record_activity(
        self, user_id: str, activity: str, metadata: dict[str, Any] | None = None
    ) -> None:
        """Append a feature-usage event."""
        ...
