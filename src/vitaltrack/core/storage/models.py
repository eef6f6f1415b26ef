"""Data models for the health persistence layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

SCAN_COLLECTIONS = ("medical", "food", "medication")


@dataclass
class HealthLogEntry:
    """One day of self-reported vitals for a user.

    Unique on ``(user_id, log_date)``. Every measurement is optional; the
    free-text ``notes`` field is stored encrypted.
    """

    user_id: str
    log_date: str  # YYYY-MM-DD
    id: str = ""

    weight: float | None = None
    blood_pressure_systolic: int | None = None
    blood_pressure_diastolic: int | None = None
    heart_rate: int | None = None
    temperature: float | None = None
    mood_score: int | None = None  # 1-10
    energy_level: int | None = None  # 1-10
    sleep_hours: float | None = None
    exercise_minutes: int | None = None
    water_intake_ml: int | None = None
    notes: str | None = None

    created_at: str = ""
    updated_at: str = ""


@dataclass
class ScanRecord:
    """A user-submitted scan. Only counts and timestamps are used by analytics."""

    user_id: str
    collection: str  # 'medical' | 'food' | 'medication'
    id: str = ""
    title: str = ""
    file_url: str = ""
    is_processed: bool = False  # processed (medical) / verified (food, medication)
    created_at: str = ""


@dataclass
class HealthInsight:
    """A generated recommendation. Immutable apart from ``is_read``."""

    user_id: str
    insight_type: str  # 'nutrition', 'medical', 'lifestyle', 'preventive', ...
    severity: str  # 'info' | 'low' | 'medium' | 'high' | 'critical'
    id: str = ""
    title: str = ""
    confidence_score: float = 0.0
    is_read: bool = False

    # Encrypted at rest
    description: str = ""
    recommendations: list[str] = field(default_factory=list)

    created_at: str = ""


@dataclass
class Medication:
    """A medication or supplement on the user's schedule."""

    user_id: str
    medication_name: str
    frequency: str  # 'once_daily', 'twice_daily', 'three_times_daily', 'weekly', 'as_needed'
    start_date: str  # YYYY-MM-DD
    id: str = ""
    dosage: str = ""
    end_date: str | None = None
    is_active: bool = True
    notes: str = ""
    created_at: str = ""


@dataclass
class MedicationIntake:
    """A logged dose (or a logged skip when ``taken`` is False)."""

    user_id: str
    medication_id: str
    taken_at: str  # ISO 8601
    id: str = ""
    taken: bool = True
    created_at: str = ""


@dataclass
class UserProfile:
    """Minimal profile fields used for engagement reporting."""

    user_id: str
    email: str = ""
    full_name: str = ""
    created_at: str = ""
    updated_at: str = ""


@dataclass
class ActivityEvent:
    """A tracked user activity (feature usage)."""

    user_id: str
    activity: str
    id: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: str = ""
