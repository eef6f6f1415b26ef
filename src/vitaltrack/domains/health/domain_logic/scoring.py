"""Pure transforms from raw health records to derived metrics.

None of these functions touch storage; the aggregator fetches records and
folds them through here.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Sequence
from datetime import date, datetime, time, timedelta

from vitaltrack.core.storage.models import HealthInsight, HealthLogEntry, Medication, MedicationIntake
from vitaltrack.domains.health.domain_logic.metrics_models import (
    ADHERENCE_BELOW,
    CHECKUP_SCORE_BELOW,
    CONSISTENCY_BONUS,
    CONSISTENT_LOGGING_MIN,
    DOSES_PER_DAY,
    MONITORING_SCANS_BELOW,
    NEUTRAL_SELF_RATING,
    RECENT_WINDOW,
    SCORE_BASE,
    SCORE_NO_DATA,
    SEVERITY_PENALTIES,
    WELLBEING_BONUS,
    WELLBEING_THRESHOLD,
    BloodPressurePoint,
    HealthMetrics,
    HealthTrends,
    InsightsSummary,
    TrendPoint,
)


def _clamp_percent(value: float) -> int:
    return max(0, min(100, int(math.floor(value + 0.5))))


def _average_rating(logs: Sequence[HealthLogEntry], attr: str) -> float:
    ratings = [
        getattr(log, attr) if getattr(log, attr) is not None else NEUTRAL_SELF_RATING
        for log in logs
    ]
    return sum(ratings) / len(ratings)


def calculate_health_score(
    logs: Sequence[HealthLogEntry],
    insights: Sequence[HealthInsight],
) -> int:
    """Score recent health on a 0-100 scale.

    ``logs`` must be chronological (oldest first): the last
    ``RECENT_WINDOW`` entries are treated as the most recent week.

    With no logs at all the score is ``SCORE_NO_DATA`` whatever the insights
    say. Otherwise it starts at ``SCORE_BASE``, loses points per critical and
    high severity insight, and gains bonuses for consistent logging and for
    good average mood and energy over the recent window.
    """
    if not logs:
        return SCORE_NO_DATA

    score = SCORE_BASE
    for insight in insights:
        score -= SEVERITY_PENALTIES.get(insight.severity, 0)

    recent = list(logs)[-RECENT_WINDOW:]
    if len(recent) >= CONSISTENT_LOGGING_MIN:
        score += CONSISTENCY_BONUS
    if _average_rating(recent, "mood_score") >= WELLBEING_THRESHOLD:
        score += WELLBEING_BONUS
    if _average_rating(recent, "energy_level") >= WELLBEING_THRESHOLD:
        score += WELLBEING_BONUS

    return _clamp_percent(score)


def extract_health_trends(logs: Sequence[HealthLogEntry]) -> HealthTrends:
    """Project logs into per-metric series, skipping rows where the metric is null.

    Input order is preserved. Blood pressure needs both readings on the row.
    """
    trends = HealthTrends()
    for log in logs:
        if log.weight is not None:
            trends.weight.append(TrendPoint(date=log.log_date, value=log.weight))
        if log.blood_pressure_systolic is not None and log.blood_pressure_diastolic is not None:
            trends.blood_pressure.append(BloodPressurePoint(
                date=log.log_date,
                systolic=log.blood_pressure_systolic,
                diastolic=log.blood_pressure_diastolic,
            ))
        if log.mood_score is not None:
            trends.mood.append(TrendPoint(date=log.log_date, value=log.mood_score))
        if log.energy_level is not None:
            trends.energy.append(TrendPoint(date=log.log_date, value=log.energy_level))
    return trends


def summarize_insights(insights: Sequence[HealthInsight]) -> InsightsSummary:
    """Tally insights by type and by severity."""
    return InsightsSummary(
        total=len(insights),
        by_type=dict(Counter(i.insight_type for i in insights)),
        by_severity=dict(Counter(i.severity for i in insights)),
    )


def adherence_window(start: datetime, now: datetime) -> tuple[date, date]:
    """Whole calendar days covered by a ``[start, now]`` window.

    The partial day containing ``start`` is dropped, so a 7-day window ending
    today covers exactly 7 days, today included. Intakes must be read from
    midnight of the first day for the counts to line up.
    """
    return start.date() + timedelta(days=1), now.date()


def adherence_intakes_since(start: datetime, now: datetime) -> str:
    """ISO timestamp from which intakes are read for :func:`calculate_medication_adherence`."""
    first_day, _ = adherence_window(start, now)
    return datetime.combine(first_day, time.min, tzinfo=start.tzinfo).isoformat()


def calculate_medication_adherence(
    medications: Sequence[Medication],
    intakes: Sequence[MedicationIntake],
    start: datetime,
    now: datetime,
) -> int | None:
    """Percentage of scheduled doses in the adherence window that were logged as taken.

    Each active medication schedules ``DOSES_PER_DAY[frequency]`` doses for
    every day of :func:`adherence_window` that its start/end span overlaps.
    ``as_needed``, unknown frequencies and inactive medications schedule
    nothing. Taken doses count at most ``ceil(DOSES_PER_DAY)`` per medication
    per day. Returns None when nothing was scheduled.

    Raises:
        ValueError: A medication date is not ``YYYY-MM-DD``.
    """
    window_start, window_end = adherence_window(start, now)

    scheduled = 0.0
    daily_cap: dict[str, int] = {}
    for med in medications:
        per_day = DOSES_PER_DAY.get(med.frequency, 0.0)
        if per_day <= 0 or not med.is_active:
            continue
        first = max(date.fromisoformat(med.start_date), window_start)
        last = min(date.fromisoformat(med.end_date), window_end) if med.end_date else window_end
        days = (last - first).days + 1
        if days <= 0:
            continue
        scheduled += days * per_day
        daily_cap[med.id] = max(1, math.ceil(per_day))

    if scheduled <= 0:
        return None

    lower, upper = window_start.isoformat(), window_end.isoformat()
    per_med_day = Counter(
        (intake.medication_id, intake.taken_at[:10])
        for intake in intakes
        if intake.taken
        and intake.medication_id in daily_cap
        and lower <= intake.taken_at[:10] <= upper
    )
    taken = sum(min(count, daily_cap[med_id]) for (med_id, _), count in per_med_day.items())
    return _clamp_percent(100.0 * taken / scheduled)


def generate_recommendations(metrics: HealthMetrics) -> list[str]:
    """Apply the recommendation rule table. Every matching rule fires, in order."""
    recommendations: list[str] = []

    if metrics.health_score < CHECKUP_SCORE_BELOW:
        recommendations.append("Consider scheduling a check-up with your healthcare provider")

    if metrics.total_scans < MONITORING_SCANS_BELOW:
        recommendations.append("Regular health monitoring can provide valuable insights")

    if metrics.medication_adherence is not None and metrics.medication_adherence < ADHERENCE_BELOW:
        recommendations.append("Set up medication reminders to improve adherence")

    if metrics.insights_summary.by_severity.get("critical", 0) > 0:
        recommendations.append("Address critical health insights with your doctor immediately")

    return recommendations
