"""MCP tools for writing health records into the data bank.

Daily logs, scans, insights, medications and intakes entered here are the
raw inputs of the analytics tools.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from vitaltrack.core.storage.models import (
    SCAN_COLLECTIONS,
    HealthInsight,
    HealthLogEntry,
    Medication,
    MedicationIntake,
    ScanRecord,
    UserProfile,
)
from vitaltrack.core.storage.repository import RepositoryError
from vitaltrack.domains.health.domain_logic.metrics_models import DOSES_PER_DAY

if TYPE_CHECKING:
    from vitaltrack.core.audit.logger import AuditLogger
    from vitaltrack.core.storage.repository import HealthRepository

logger = logging.getLogger(__name__)

INSIGHT_SEVERITIES = ("info", "low", "medium", "high", "critical")


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def _error(message: str) -> str:
    return json.dumps({"status": "error", "message": message})


def _is_calendar_date(value: str) -> bool:
    """True for a canonical ``YYYY-MM-DD`` date; stored dates are compared as strings."""
    try:
        return date.fromisoformat(value).isoformat() == value
    except ValueError:
        return False


def _is_timestamp(value: str) -> bool:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return False
    return parsed.date().isoformat() == value[:10]


def register_health_entry_tools(
    mcp: FastMCP,
    repository: HealthRepository,
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register health data entry tools on the MCP server."""

    def _audit(tool_name: str, tool_input: dict) -> None:
        if audit_logger is not None:
            audit_logger.log_tool_call(tool_name=tool_name, tool_input=tool_input, action="data_write")

    @mcp.tool
    async def log_health_entry(
        ctx: Context,
        user_id: str,
        log_date: str = "",
        weight: float | None = None,
        blood_pressure_systolic: int | None = None,
        blood_pressure_diastolic: int | None = None,
        heart_rate: int | None = None,
        temperature: float | None = None,
        mood_score: int | None = None,
        energy_level: int | None = None,
        sleep_hours: float | None = None,
        exercise_minutes: int | None = None,
        water_intake_ml: int | None = None,
        notes: str = "",
    ) -> str:
        """Record (or overwrite) the daily health log for a date.

        Args:
            user_id: Owner of the log.
            log_date: Calendar date (YYYY-MM-DD). Defaults to today.
            weight: Body weight.
            blood_pressure_systolic: Systolic blood pressure (top number).
            blood_pressure_diastolic: Diastolic blood pressure (bottom number).
            heart_rate: Heart rate in BPM.
            temperature: Body temperature.
            mood_score: Self-rated mood, 1-10.
            energy_level: Self-rated energy, 1-10.
            sleep_hours: Hours slept.
            exercise_minutes: Minutes of exercise.
            water_intake_ml: Water intake in millilitres.
            notes: Free-text notes (stored encrypted).
        """
        for label, rating in (("mood_score", mood_score), ("energy_level", energy_level)):
            if rating is not None and not 1 <= rating <= 10:
                return _error(f"{label} must be between 1 and 10")
        if log_date and not _is_calendar_date(log_date):
            return _error("log_date must be a YYYY-MM-DD date")

        entry = HealthLogEntry(
            user_id=user_id,
            log_date=log_date or _today(),
            weight=weight,
            blood_pressure_systolic=blood_pressure_systolic,
            blood_pressure_diastolic=blood_pressure_diastolic,
            heart_rate=heart_rate,
            temperature=temperature,
            mood_score=mood_score,
            energy_level=energy_level,
            sleep_hours=sleep_hours,
            exercise_minutes=exercise_minutes,
            water_intake_ml=water_intake_ml,
            notes=notes or None,
        )
        log_id = repository.upsert_health_log(entry)
        _audit("log_health_entry", {"user_id": user_id, "log_date": entry.log_date})
        return json.dumps({"status": "saved", "log_id": log_id, "log_date": entry.log_date})

    @mcp.tool
    async def list_health_logs(
        ctx: Context,
        user_id: str,
        limit: int = 10,
    ) -> str:
        """List a user's most recent daily health logs.

        Args:
            user_id: Owner of the logs.
            limit: Maximum number of logs to return.
        """
        logs = repository.get_health_logs(user_id, newest_first=True, limit=limit)
        entries = []
        for log in logs:
            entry = {
                "log_date": log.log_date,
                "weight": log.weight,
                "blood_pressure_systolic": log.blood_pressure_systolic,
                "blood_pressure_diastolic": log.blood_pressure_diastolic,
                "heart_rate": log.heart_rate,
                "mood_score": log.mood_score,
                "energy_level": log.energy_level,
                "sleep_hours": log.sleep_hours,
            }
            if log.notes:
                entry["notes"] = log.notes
            entries.append(entry)
        return json.dumps({"status": "ok", "count": len(entries), "entries": entries}, indent=2)

    @mcp.tool
    async def record_scan(
        ctx: Context,
        user_id: str,
        collection: str,
        title: str = "",
        file_url: str = "",
        is_processed: bool = False,
    ) -> str:
        """Register an uploaded scan (the file itself lives in object storage).

        Args:
            user_id: Owner of the scan.
            collection: 'medical', 'food' or 'medication'.
            title: Optional title.
            file_url: Where the uploaded file is stored.
            is_processed: Whether analysis/verification has completed.
        """
        if collection not in SCAN_COLLECTIONS:
            return _error(f"collection must be one of {list(SCAN_COLLECTIONS)}")
        scan_id = repository.save_scan(ScanRecord(
            user_id=user_id,
            collection=collection,
            title=title,
            file_url=file_url,
            is_processed=is_processed,
        ))
        _audit("record_scan", {"user_id": user_id, "collection": collection})
        return json.dumps({"status": "saved", "scan_id": scan_id, "collection": collection})

    @mcp.tool
    async def record_insight(
        ctx: Context,
        user_id: str,
        insight_type: str,
        severity: str,
        title: str = "",
        description: str = "",
        recommendations: list[str] | None = None,
        confidence_score: float = 0.0,
    ) -> str:
        """Store a generated health insight.

        Args:
            user_id: Owner of the insight.
            insight_type: Category, e.g. 'nutrition', 'medical', 'lifestyle', 'preventive'.
            severity: 'info', 'low', 'medium', 'high' or 'critical'.
            title: Short headline.
            description: Narrative (stored encrypted).
            recommendations: Suggested actions (stored encrypted).
            confidence_score: Generator confidence in [0, 1].
        """
        if severity not in INSIGHT_SEVERITIES:
            return _error(f"severity must be one of {list(INSIGHT_SEVERITIES)}")
        if not 0.0 <= confidence_score <= 1.0:
            return _error("confidence_score must be between 0 and 1")

        insight_id = repository.save_insight(HealthInsight(
            user_id=user_id,
            insight_type=insight_type,
            severity=severity,
            title=title,
            description=description,
            recommendations=recommendations or [],
            confidence_score=confidence_score,
        ))
        _audit("record_insight", {"user_id": user_id, "severity": severity})
        return json.dumps({"status": "saved", "insight_id": insight_id})

    @mcp.tool
    async def mark_insight_read(ctx: Context, insight_id: str) -> str:
        """Mark an insight as read.

        Args:
            insight_id: The insight to update.
        """
        if not repository.mark_insight_read(insight_id):
            return _error(f"Unknown insight: {insight_id}")
        return json.dumps({"status": "updated", "insight_id": insight_id})

    @mcp.tool
    async def add_medication(
        ctx: Context,
        user_id: str,
        medication_name: str,
        frequency: str = "once_daily",
        dosage: str = "",
        start_date: str = "",
        end_date: str | None = None,
        notes: str = "",
    ) -> str:
        """Add a medication or supplement to the user's schedule.

        Args:
            user_id: Owner of the schedule.
            medication_name: Name of the medication.
            frequency: 'once_daily', 'twice_daily', 'three_times_daily', 'weekly' or 'as_needed'.
            dosage: Dose description, e.g. '1000 IU'.
            start_date: First scheduled day (YYYY-MM-DD). Defaults to today.
            end_date: Last scheduled day, if the course ends.
            notes: Optional notes.
        """
        if frequency not in DOSES_PER_DAY:
            return _error(f"frequency must be one of {list(DOSES_PER_DAY)}")
        for label, value in (("start_date", start_date), ("end_date", end_date)):
            if value and not _is_calendar_date(value):
                return _error(f"{label} must be a YYYY-MM-DD date")
        start_date = start_date or _today()
        if end_date and end_date < start_date:
            return _error("end_date must not be before start_date")
        medication_id = repository.save_medication(Medication(
            user_id=user_id,
            medication_name=medication_name,
            frequency=frequency,
            dosage=dosage,
            start_date=start_date,
            end_date=end_date or None,
            notes=notes,
        ))
        _audit("add_medication", {"user_id": user_id, "frequency": frequency})
        return json.dumps({"status": "saved", "medication_id": medication_id})

    @mcp.tool
    async def record_medication_intake(
        ctx: Context,
        user_id: str,
        medication_id: str,
        taken: bool = True,
        taken_at: str = "",
    ) -> str:
        """Log a taken (or skipped) dose.

        Args:
            user_id: Owner of the medication.
            medication_id: Medication the dose belongs to.
            taken: False to log a skipped dose.
            taken_at: ISO 8601 time of the dose. Defaults to now.
        """
        if taken_at and not _is_timestamp(taken_at):
            return _error("taken_at must be an ISO 8601 timestamp")
        try:
            intake_id = repository.record_intake(MedicationIntake(
                user_id=user_id,
                medication_id=medication_id,
                taken=taken,
                taken_at=taken_at or datetime.now(timezone.utc).isoformat(),
            ))
        except RepositoryError as exc:
            return _error(str(exc))
        _audit("record_medication_intake", {"user_id": user_id, "medication_id": medication_id})
        return json.dumps({"status": "saved", "intake_id": intake_id})

    @mcp.tool
    async def update_profile(
        ctx: Context,
        user_id: str,
        email: str = "",
        full_name: str = "",
    ) -> str:
        """Create or update the user's profile.

        Args:
            user_id: Owner of the profile.
            email: Contact email.
            full_name: Display name.
        """
        repository.upsert_profile(UserProfile(user_id=user_id, email=email, full_name=full_name))
        _audit("update_profile", {"user_id": user_id})
        return json.dumps({"status": "saved", "user_id": user_id})
