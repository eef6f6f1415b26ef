"""Health metrics aggregation over a user's records in a time window.

Fans out the independent record reads concurrently, joins them, and folds
the rows into :class:`HealthMetrics`. Reports add an engagement snapshot and
rule-based recommendations on top.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from vitaltrack.core.storage.models import SCAN_COLLECTIONS
from vitaltrack.domains.health.domain_logic.metrics_models import (
    FALLBACK_TIME_RANGE,
    TIME_RANGE_DAYS,
    HealthMetrics,
    HealthReport,
    UserEngagement,
)
from vitaltrack.domains.health.domain_logic.scoring import (
    adherence_intakes_since,
    calculate_health_score,
    calculate_medication_adherence,
    extract_health_trends,
    generate_recommendations,
    summarize_insights,
)

if TYPE_CHECKING:
    from vitaltrack.domains.health.connectors import HealthRecordStore

logger = logging.getLogger(__name__)


class QueryFailure(Exception):
    """Raised when a record read fails. The original error is the ``__cause__``."""


class InvalidTimeRange(ValueError):
    """Raised for an unknown time range when strict checking is enabled."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def resolve_start_date(time_range: str, now: datetime, *, strict: bool = False) -> datetime:
    """Turn a time range label ('7d', '30d', '90d', '1y') into a window start.

    Unknown labels fall back to 30 days with a warning, or raise
    :class:`InvalidTimeRange` when ``strict`` is set.
    """
    days = TIME_RANGE_DAYS.get(time_range)
    if days is None:
        if strict:
            raise InvalidTimeRange(
                f"Unknown time range: {time_range!r}. Valid: {sorted(TIME_RANGE_DAYS)}"
            )
        logger.warning(
            "Unknown time range %r; falling back to %s", time_range, FALLBACK_TIME_RANGE
        )
        days = TIME_RANGE_DAYS[FALLBACK_TIME_RANGE]
    return now - timedelta(days=days)


class MetricsAggregator:
    """Computes health metrics and reports from a :class:`HealthRecordStore`.

    The aggregator holds no per-call state; each call reads fresh records.

    Usage::

        aggregator = MetricsAggregator(SQLiteRecordStore(repository))
        metrics = await aggregator.get_health_metrics("user-1", "30d")
        report = await aggregator.generate_health_report("user-1", "90d")
    """

    def __init__(
        self,
        store: HealthRecordStore,
        *,
        strict_time_range: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._strict_time_range = strict_time_range
        self._clock = clock or _utc_now

    async def get_health_metrics(self, user_id: str, time_range: str = "30d") -> HealthMetrics:
        """Compute scan counts, health score, trends, adherence and insight tallies.

        Raises:
            InvalidTimeRange: Unknown ``time_range`` in strict mode.
            QueryFailure: Any record read failed; no partial result is returned.
        """
        now = self._clock()
        start = resolve_start_date(time_range, now, strict=self._strict_time_range)
        return await self._compute_metrics(user_id, start, now)

    async def _compute_metrics(self, user_id: str, start: datetime, now: datetime) -> HealthMetrics:
        since = start.isoformat()
        store = self._store

        try:
            *scan_sets, logs, insights, medications, intakes = await asyncio.gather(
                *(store.query_scans(c, user_id, since) for c in SCAN_COLLECTIONS),
                store.query_health_logs(user_id, start.date().isoformat()),
                store.query_health_insights(user_id, since),
                store.query_medications(user_id),
                store.query_medication_intakes(user_id, adherence_intakes_since(start, now)),
            )
        except Exception as exc:
            logger.error("Health metrics read failed: %s", exc)
            raise QueryFailure("failed to get health metrics") from exc

        scans_by_type = {
            collection: len(scans) for collection, scans in zip(SCAN_COLLECTIONS, scan_sets)
        }

        try:
            adherence = calculate_medication_adherence(medications, intakes, start, now)
        except ValueError as exc:
            logger.error("Unreadable medication schedule: %s", exc)
            raise QueryFailure("failed to get health metrics") from exc

        metrics = HealthMetrics(
            total_scans=sum(scans_by_type.values()),
            scans_by_type=scans_by_type,
            health_score=calculate_health_score(logs, insights),
            health_trends=extract_health_trends(logs),
            medication_adherence=adherence,
            insights_summary=summarize_insights(insights),
        )
        logger.info(
            "Computed health metrics: score=%d scans=%d logs=%d insights=%d",
            metrics.health_score,
            metrics.total_scans,
            len(logs),
            metrics.insights_summary.total,
        )
        return metrics

    async def get_user_engagement(self, user_id: str) -> UserEngagement:
        """Fetch the engagement snapshot.

        Raises:
            QueryFailure: The engagement lookup failed.
        """
        try:
            return await self._store.query_user_engagement(user_id)
        except Exception as exc:
            logger.error("User engagement read failed: %s", exc)
            raise QueryFailure("failed to get user engagement data") from exc

    async def generate_health_report(self, user_id: str, time_range: str = "30d") -> HealthReport:
        """Build a report snapshot: metrics, engagement and recommendations.

        Raises:
            InvalidTimeRange: Unknown ``time_range`` in strict mode.
            QueryFailure: Any read failed.
        """
        now = self._clock()
        start = resolve_start_date(time_range, now, strict=self._strict_time_range)
        try:
            metrics = await self._compute_metrics(user_id, start, now)
            engagement = await self.get_user_engagement(user_id)
        except QueryFailure as exc:
            raise QueryFailure("failed to generate health report") from exc

        return HealthReport(
            period=time_range,
            generated_at=now.isoformat(),
            metrics=metrics,
            engagement=engagement,
            recommendations=generate_recommendations(metrics),
        )

    async def track_activity(
        self, user_id: str, activity: str, metadata: dict[str, Any] | None = None
    ) -> None:
        """Record feature usage. Failures are logged, never raised."""
        try:
            await self._store.record_activity(user_id, activity, metadata)
        except Exception:
            logger.exception("Failed to track activity %r", activity)
