"""Health data repository: CRUD operations for the encrypted data bank.

The repository mediates between record objects (HealthLogEntry, ScanRecord,
HealthInsight, ...) and the SQLite database, using FieldEncryptor for the
free-text fields.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from vitaltrack.core.storage.database import HealthDatabase
from vitaltrack.core.storage.encryption import FieldEncryptor
from vitaltrack.core.storage.models import (
    SCAN_COLLECTIONS,
    ActivityEvent,
    HealthInsight,
    HealthLogEntry,
    Medication,
    MedicationIntake,
    ScanRecord,
    UserProfile,
)

logger = logging.getLogger(__name__)

# Measurement columns of health_logs, in table order
_LOG_FIELDS = (
    "weight",
    "blood_pressure_systolic",
    "blood_pressure_diastolic",
    "heart_rate",
    "temperature",
    "mood_score",
    "energy_level",
    "sleep_hours",
    "exercise_minutes",
    "water_intake_ml",
)


class RepositoryError(Exception):
    """Raised when repository operations fail."""


class HealthRepository:
    """CRUD repository for health logs, scans, insights and medications.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        repo = HealthRepository(db, FieldEncryptor(key="..."))

        repo.upsert_health_log(HealthLogEntry(user_id="u1", log_date="2026-02-01", weight=70.2))
        logs = repo.get_health_logs("u1", since_date="2026-01-01")
    """

    def __init__(self, database: HealthDatabase, encryptor: FieldEncryptor) -> None:
        self._db = database
        self._enc = encryptor

    @property
    def database(self) -> HealthDatabase:
        return self._db

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    # ------------------------------------------------------------------
    # Health logs
    # ------------------------------------------------------------------

    def upsert_health_log(self, entry: HealthLogEntry) -> str:
        """Insert or replace the log for ``(entry.user_id, entry.log_date)``.

        An existing row keeps its id and ``created_at``; every measurement
        column is overwritten with the new entry's values.

        Returns:
            The id of the stored row.
        """
        conn = self._db.connection
        now = self._now_iso()
        values = [getattr(entry, name) for name in _LOG_FIELDS]
        columns = ", ".join(_LOG_FIELDS)
        placeholders = ", ".join("?" for _ in _LOG_FIELDS)
        updates = ",\n                   ".join(f"{name} = excluded.{name}" for name in _LOG_FIELDS)

        conn.execute(
            f"""INSERT INTO health_logs (
                id, user_id, log_date, {columns}, notes_enc, created_at, updated_at
            ) VALUES (?, ?, ?, {placeholders}, ?, ?, ?)
               ON CONFLICT(user_id, log_date) DO UPDATE SET
                   {updates},
                   notes_enc = excluded.notes_enc,
                   updated_at = excluded.updated_at""",
            (
                entry.id or self._new_id(),
                entry.user_id,
                entry.log_date,
                *values,
                self._enc.encrypt(entry.notes),
                entry.created_at or now,
                now,
            ),
        )
        conn.commit()

        row = conn.execute(
            "SELECT id FROM health_logs WHERE user_id = ? AND log_date = ?",
            (entry.user_id, entry.log_date),
        ).fetchone()
        logger.info("Saved health log %s (date=%s)", row["id"], entry.log_date)
        return row["id"]

    def get_health_log(self, user_id: str, log_date: str) -> HealthLogEntry | None:
        """Return the log for a single day, or None."""
        row = self._db.connection.execute(
            "SELECT * FROM health_logs WHERE user_id = ? AND log_date = ?",
            (user_id, log_date),
        ).fetchone()
        if row is None:
            return None
        return self._row_to_log(row)

    def get_health_logs(
        self,
        user_id: str,
        *,
        since_date: str | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[HealthLogEntry]:
        """Query a user's health logs.

        Args:
            user_id: Owner of the logs.
            since_date: Optional ``YYYY-MM-DD`` lower bound (inclusive).
            newest_first: Order by ``log_date`` descending instead of ascending.
            limit: Maximum rows to return.

        Returns:
            Decrypted log entries, chronological unless ``newest_first``.
        """
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]
        if since_date:
            conditions.append("log_date >= ?")
            params.append(since_date)

        order = "DESC" if newest_first else "ASC"
        query = f"SELECT * FROM health_logs WHERE {' AND '.join(conditions)} ORDER BY log_date {order}"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self._db.connection.execute(query, params).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_recent_log_activity(self, user_id: str, *, limit: int = 10) -> list[str]:
        """Return ``created_at`` of the user's most recently written logs, newest first."""
        rows = self._db.connection.execute(
            "SELECT created_at FROM health_logs WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------

    @staticmethod
    def _check_collection(collection: str) -> None:
        if collection not in SCAN_COLLECTIONS:
            raise RepositoryError(
                f"Invalid scan collection: {collection!r}. Valid: {SCAN_COLLECTIONS}"
            )

    def save_scan(self, scan: ScanRecord) -> str:
        """Persist a scan record and return its id."""
        self._check_collection(scan.collection)
        sid = scan.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO scans (id, user_id, collection, title, file_url, is_processed, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (
                sid,
                scan.user_id,
                scan.collection,
                scan.title,
                scan.file_url,
                int(scan.is_processed),
                scan.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved %s scan %s", scan.collection, sid)
        return sid

    def get_scans(
        self,
        collection: str,
        user_id: str,
        *,
        since: str | None = None,
    ) -> list[ScanRecord]:
        """List a user's scans in one collection, newest first.

        Args:
            collection: 'medical', 'food' or 'medication'.
            user_id: Owner of the scans.
            since: Optional ISO 8601 lower bound on ``created_at`` (inclusive).

        Raises:
            RepositoryError: If the collection is unknown.
        """
        self._check_collection(collection)
        conditions = ["user_id = ?", "collection = ?"]
        params: list[Any] = [user_id, collection]
        if since:
            conditions.append("created_at >= ?")
            params.append(since)

        rows = self._db.connection.execute(
            f"SELECT * FROM scans WHERE {' AND '.join(conditions)} ORDER BY created_at DESC",
            params,
        ).fetchall()
        return [
            ScanRecord(
                id=row["id"],
                user_id=row["user_id"],
                collection=row["collection"],
                title=row["title"] or "",
                file_url=row["file_url"] or "",
                is_processed=bool(row["is_processed"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def count_scans(self, user_id: str, collection: str | None = None) -> int:
        """Count a user's scans, optionally in a single collection."""
        if collection is None:
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM scans WHERE user_id = ?", (user_id,)
            ).fetchone()
        else:
            self._check_collection(collection)
            row = self._db.connection.execute(
                "SELECT COUNT(*) FROM scans WHERE user_id = ? AND collection = ?",
                (user_id, collection),
            ).fetchone()
        return row[0]

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def save_insight(self, insight: HealthInsight) -> str:
        """Persist a generated insight and return its id."""
        iid = insight.id or self._new_id()
        details = {
            "description": insight.description,
            "recommendations": list(insight.recommendations),
        }
        conn = self._db.connection
        conn.execute(
            """INSERT INTO health_insights
               (id, user_id, insight_type, title, severity, confidence_score,
                is_read, details_enc, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                iid,
                insight.user_id,
                insight.insight_type,
                insight.title,
                insight.severity,
                insight.confidence_score,
                int(insight.is_read),
                self._enc.encrypt(details),
                insight.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved %s insight %s (severity=%s)", insight.insight_type, iid, insight.severity)
        return iid

    def mark_insight_read(self, insight_id: str) -> bool:
        """Set the read flag on an insight. Returns False if it does not exist."""
        conn = self._db.connection
        cursor = conn.execute(
            "UPDATE health_insights SET is_read = 1 WHERE id = ?", (insight_id,)
        )
        conn.commit()
        return cursor.rowcount > 0

    def get_insights(self, user_id: str, *, since: str | None = None) -> list[HealthInsight]:
        """List a user's insights, newest first, optionally since an ISO timestamp."""
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]
        if since:
            conditions.append("created_at >= ?")
            params.append(since)

        rows = self._db.connection.execute(
            f"SELECT * FROM health_insights WHERE {' AND '.join(conditions)} ORDER BY created_at DESC",
            params,
        ).fetchall()
        return [self._row_to_insight(row) for row in rows]

    # ------------------------------------------------------------------
    # Medications
    # ------------------------------------------------------------------

    def save_medication(self, medication: Medication) -> str:
        """Persist a medication schedule entry and return its id."""
        mid = medication.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO medications
               (id, user_id, medication_name, dosage, frequency, start_date,
                end_date, is_active, notes, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                mid,
                medication.user_id,
                medication.medication_name,
                medication.dosage,
                medication.frequency,
                medication.start_date,
                medication.end_date,
                int(medication.is_active),
                medication.notes,
                medication.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        logger.info("Saved medication %s (%s)", mid, medication.frequency)
        return mid

    def get_medications(self, user_id: str, *, active_only: bool = False) -> list[Medication]:
        """List a user's medications ordered by start date."""
        query = "SELECT * FROM medications WHERE user_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY start_date ASC"
        rows = self._db.connection.execute(query, (user_id,)).fetchall()
        return [
            Medication(
                id=row["id"],
                user_id=row["user_id"],
                medication_name=row["medication_name"],
                dosage=row["dosage"] or "",
                frequency=row["frequency"],
                start_date=row["start_date"],
                end_date=row["end_date"],
                is_active=bool(row["is_active"]),
                notes=row["notes"] or "",
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def record_intake(self, intake: MedicationIntake) -> str:
        """Log a dose against one of the user's medications.

        Raises:
            RepositoryError: If the medication does not exist for this user.
        """
        conn = self._db.connection
        owner = conn.execute(
            "SELECT user_id FROM medications WHERE id = ?", (intake.medication_id,)
        ).fetchone()
        if owner is None or owner["user_id"] != intake.user_id:
            raise RepositoryError(f"Unknown medication: {intake.medication_id!r}")

        iid = intake.id or self._new_id()
        conn.execute(
            """INSERT INTO medication_intakes (id, user_id, medication_id, taken_at, taken, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (
                iid,
                intake.user_id,
                intake.medication_id,
                intake.taken_at,
                int(intake.taken),
                intake.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        return iid

    def get_intakes(self, user_id: str, *, since: str | None = None) -> list[MedicationIntake]:
        """List a user's intake records, oldest first."""
        conditions = ["user_id = ?"]
        params: list[Any] = [user_id]
        if since:
            conditions.append("taken_at >= ?")
            params.append(since)

        rows = self._db.connection.execute(
            f"SELECT * FROM medication_intakes WHERE {' AND '.join(conditions)} ORDER BY taken_at ASC",
            params,
        ).fetchall()
        return [
            MedicationIntake(
                id=row["id"],
                user_id=row["user_id"],
                medication_id=row["medication_id"],
                taken_at=row["taken_at"],
                taken=bool(row["taken"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    # ------------------------------------------------------------------
    # Profiles and activity
    # ------------------------------------------------------------------

    def upsert_profile(self, profile: UserProfile) -> None:
        """Insert or update a user profile, bumping ``updated_at``."""
        now = self._now_iso()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO profiles (user_id, email, full_name, created_at, updated_at)
               VALUES (?, ?, ?, ?, ?)
               ON CONFLICT(user_id) DO UPDATE SET
                   email = excluded.email,
                   full_name = excluded.full_name,
                   updated_at = excluded.updated_at""",
            (
                profile.user_id,
                profile.email,
                profile.full_name,
                profile.created_at or now,
                profile.updated_at or now,
            ),
        )
        conn.commit()

    def get_profile(self, user_id: str) -> UserProfile | None:
        row = self._db.connection.execute(
            "SELECT * FROM profiles WHERE user_id = ?", (user_id,)
        ).fetchone()
        if row is None:
            return None
        return UserProfile(
            user_id=row["user_id"],
            email=row["email"] or "",
            full_name=row["full_name"] or "",
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def record_activity(self, event: ActivityEvent) -> str:
        """Append an activity event and return its id."""
        eid = event.id or self._new_id()
        conn = self._db.connection
        conn.execute(
            """INSERT INTO activity_log (id, user_id, activity, metadata_json, created_at)
               VALUES (?, ?, ?, ?, ?)""",
            (
                eid,
                event.user_id,
                event.activity,
                json.dumps(event.metadata, separators=(",", ":")) if event.metadata else None,
                event.created_at or self._now_iso(),
            ),
        )
        conn.commit()
        return eid

    def get_activity(self, user_id: str, *, limit: int = 100) -> list[ActivityEvent]:
        """List a user's tracked activities, newest first."""
        rows = self._db.connection.execute(
            "SELECT * FROM activity_log WHERE user_id = ? ORDER BY created_at DESC LIMIT ?",
            (user_id, limit),
        ).fetchall()
        events = []
        for row in rows:
            metadata: dict[str, Any] = {}
            if row["metadata_json"]:
                try:
                    metadata = json.loads(row["metadata_json"])
                except (json.JSONDecodeError, TypeError):
                    logger.warning("Unreadable metadata on activity %s", row["id"])
            events.append(ActivityEvent(
                id=row["id"],
                user_id=row["user_id"],
                activity=row["activity"],
                metadata=metadata,
                created_at=row["created_at"],
            ))
        return events

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row_to_log(self, row: Any) -> HealthLogEntry:
        return HealthLogEntry(
            id=row["id"],
            user_id=row["user_id"],
            log_date=row["log_date"],
            notes=self._enc.decrypt(row["notes_enc"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            **{name: row[name] for name in _LOG_FIELDS},
        )

    def _row_to_insight(self, row: Any) -> HealthInsight:
        details = self._enc.decrypt(row["details_enc"]) or {}
        return HealthInsight(
            id=row["id"],
            user_id=row["user_id"],
            insight_type=row["insight_type"],
            title=row["title"] or "",
            severity=row["severity"],
            confidence_score=row["confidence_score"],
            is_read=bool(row["is_read"]),
            description=details.get("description", ""),
            recommendations=details.get("recommendations", []),
            created_at=row["created_at"],
        )
