"""Derived health analytics values and domain constants.

Everything here is recomputed per request and never persisted. ``to_dict``
renders the camelCase JSON shape consumed by dashboards and report exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

TIME_RANGE_DAYS = {
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}
FALLBACK_TIME_RANGE = "30d"

# Health score
SCORE_NO_DATA = 75
SCORE_BASE = 100
SEVERITY_PENALTIES = {
    "critical": 15,
    "high": 10,
}
RECENT_WINDOW = 7
CONSISTENT_LOGGING_MIN = 5
CONSISTENCY_BONUS = 5
WELLBEING_THRESHOLD = 7
WELLBEING_BONUS = 5
NEUTRAL_SELF_RATING = 5  # assumed mood/energy when a log leaves it blank

# Medication adherence
DOSES_PER_DAY = {
    "once_daily": 1.0,
    "twice_daily": 2.0,
    "three_times_daily": 3.0,
    "weekly": 1.0 / 7.0,
    "as_needed": 0.0,
}

# Recommendation rule thresholds
CHECKUP_SCORE_BELOW = 70
MONITORING_SCANS_BELOW = 5
ADHERENCE_BELOW = 90

DEFAULT_FEATURES = ["dashboard", "scans", "health-log", "insights"]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class TrendPoint:
    date: str
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "value": self.value}


@dataclass
class BloodPressurePoint:
    date: str
    systolic: int
    diastolic: int

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "systolic": self.systolic, "diastolic": self.diastolic}


@dataclass
class HealthTrends:
    """Per-metric (date, value) series extracted from logs, with no gap filling."""

    weight: list[TrendPoint] = field(default_factory=list)
    blood_pressure: list[BloodPressurePoint] = field(default_factory=list)
    mood: list[TrendPoint] = field(default_factory=list)
    energy: list[TrendPoint] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weight": [p.to_dict() for p in self.weight],
            "bloodPressure": [p.to_dict() for p in self.blood_pressure],
            "mood": [p.to_dict() for p in self.mood],
            "energy": [p.to_dict() for p in self.energy],
        }


@dataclass
class InsightsSummary:
    """Insight tallies. Keys absent from the input never appear in the maps."""

    total: int = 0
    by_type: dict[str, int] = field(default_factory=dict)
    by_severity: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "byType": dict(self.by_type),
            "bySeverity": dict(self.by_severity),
        }


@dataclass
class HealthMetrics:
    """Summary statistics for one user over one time window."""

    total_scans: int
    scans_by_type: dict[str, int]
    health_score: int                      # 0-100
    health_trends: HealthTrends
    medication_adherence: int | None       # 0-100, None when nothing is scheduled
    insights_summary: InsightsSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalScans": self.total_scans,
            "scansByType": dict(self.scans_by_type),
            "healthScore": self.health_score,
            "healthTrends": self.health_trends.to_dict(),
            "medicationAdherence": self.medication_adherence,
            "insightsSummary": self.insights_summary.to_dict(),
        }


@dataclass
class UserEngagement:
    login_frequency: int
    features_used: list[str]
    time_spent_per_session: float  # minutes
    last_active_date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "loginFrequency": self.login_frequency,
            "featuresUsed": list(self.features_used),
            "timeSpentPerSession": self.time_spent_per_session,
            "lastActiveDate": self.last_active_date,
        }


@dataclass
class HealthReport:
    """Metrics, engagement and recommendations for one reporting period."""

    period: str
    generated_at: str
    metrics: HealthMetrics
    engagement: UserEngagement
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "generatedAt": self.generated_at,
            "summary": {
                "healthScore": self.metrics.health_score,
                "totalScans": self.metrics.total_scans,
                "insightsGenerated": self.metrics.insights_summary.total,
                "medicationAdherence": self.metrics.medication_adherence,
            },
            "trends": self.metrics.health_trends.to_dict(),
            "insights": self.metrics.insights_summary.to_dict(),
            "engagement": self.engagement.to_dict(),
            "recommendations": list(self.recommendations),
        }
