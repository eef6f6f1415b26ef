"""SQLite database management for the VitalTrack health data bank.

Handles connection lifecycle, schema creation, and migrations.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

# Current schema version
SCHEMA_VERSION = 2

# ---------------------------------------------------------------------------
# Schema DDL
# ---------------------------------------------------------------------------

_SCHEMA_V1 = """
-- One row per user per calendar day
CREATE TABLE IF NOT EXISTS health_logs (
    id                       TEXT PRIMARY KEY,
    user_id                  TEXT NOT NULL,
    log_date                 TEXT NOT NULL,
    weight                   REAL,
    blood_pressure_systolic  INTEGER,
    blood_pressure_diastolic INTEGER,
    heart_rate               INTEGER,
    temperature              REAL,
    mood_score               INTEGER,
    energy_level             INTEGER,
    sleep_hours              REAL,
    exercise_minutes         INTEGER,
    water_intake_ml          INTEGER,
    notes_enc                TEXT,
    created_at               TEXT NOT NULL,
    updated_at               TEXT NOT NULL,
    UNIQUE (user_id, log_date)
);

-- Medical, food and medication scans share one shape; collection tells them apart
CREATE TABLE IF NOT EXISTS scans (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL,
    collection   TEXT NOT NULL CHECK (collection IN ('medical', 'food', 'medication')),
    title        TEXT,
    file_url     TEXT,
    is_processed INTEGER NOT NULL DEFAULT 0,
    created_at   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS health_insights (
    id                  TEXT PRIMARY KEY,
    user_id             TEXT NOT NULL,
    insight_type        TEXT NOT NULL,
    title               TEXT,
    severity            TEXT NOT NULL,
    confidence_score    REAL NOT NULL DEFAULT 0,
    is_read             INTEGER NOT NULL DEFAULT 0,
    details_enc         TEXT,
    created_at          TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    user_id    TEXT PRIMARY KEY,
    email      TEXT,
    full_name  TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS activity_log (
    id            TEXT PRIMARY KEY,
    user_id       TEXT NOT NULL,
    activity      TEXT NOT NULL,
    metadata_json TEXT,
    created_at    TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS audit_log (
    id              TEXT PRIMARY KEY,
    timestamp       TEXT NOT NULL DEFAULT (datetime('now')),
    action          TEXT NOT NULL,
    tool_name       TEXT,
    tool_input_hash TEXT,
    duration_ms     REAL,
    status          TEXT NOT NULL DEFAULT 'success',
    error_type      TEXT,
    metadata_json   TEXT
);

-- Indexes for the range-filtered analytics reads
CREATE INDEX IF NOT EXISTS idx_logs_user_date      ON health_logs(user_id, log_date);
CREATE INDEX IF NOT EXISTS idx_scans_user_coll_ts  ON scans(user_id, collection, created_at);
CREATE INDEX IF NOT EXISTS idx_insights_user_ts    ON health_insights(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_activity_user_ts    ON activity_log(user_id, created_at);
CREATE INDEX IF NOT EXISTS idx_audit_timestamp     ON audit_log(timestamp);
CREATE INDEX IF NOT EXISTS idx_audit_action        ON audit_log(action);
"""

# ---------------------------------------------------------------------------
# V2: Medication schedule + intake log (adherence)
# ---------------------------------------------------------------------------

_SCHEMA_V2 = """
CREATE TABLE IF NOT EXISTS medications (
    id              TEXT PRIMARY KEY,
    user_id         TEXT NOT NULL,
    medication_name TEXT NOT NULL,
    dosage          TEXT,
    frequency       TEXT NOT NULL,
    start_date      TEXT NOT NULL,
    end_date        TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    notes           TEXT,
    created_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS medication_intakes (
    id            TEXT PRIMARY KEY,
    user_id       TEXT NOT NULL,
    medication_id TEXT NOT NULL REFERENCES medications(id),
    taken_at      TEXT NOT NULL,
    taken         INTEGER NOT NULL DEFAULT 1,
    created_at    TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_medications_user ON medications(user_id);
CREATE INDEX IF NOT EXISTS idx_intakes_user_ts  ON medication_intakes(user_id, taken_at);
"""


class DatabaseError(Exception):
    """Raised when database operations fail."""


class HealthDatabase:
    """SQLite database manager for the VitalTrack data bank.

    Supports both file-based and in-memory (`:memory:`) databases.
    In-memory mode is used for testing.

    Usage::

        db = HealthDatabase(":memory:")
        db.initialize()
        conn = db.connection
        # ... use connection ...
        db.close()
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        """Initialize database manager.

        Args:
            db_path: Path to SQLite file, or ":memory:" for in-memory DB.
        """
        self._db_path = db_path
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Get the active database connection.

        Raises:
            DatabaseError: If the database has not been initialized.
        """
        if self._conn is None:
            raise DatabaseError("Database not initialized. Call initialize() first.")
        return self._conn

    def initialize(self) -> None:
        """Create the database connection and ensure schema exists.

        For file-based databases, creates parent directories if needed.
        Idempotent: safe to call multiple times.
        """
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            db_file = Path(self._db_path).expanduser()
            db_file.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_file))
        else:
            self._conn = sqlite3.connect(":memory:")

        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")

        self._ensure_schema()
        logger.info("Health database initialized: %s", self._db_path)

    def _ensure_schema(self) -> None:
        """Create tables if they don't exist and apply migrations."""
        conn = self.connection

        conn.executescript(_SCHEMA_V1)

        row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
        current_version = row[0] if row[0] is not None else 0

        if current_version < 2:
            conn.executescript(_SCHEMA_V2)
            logger.info("Applied schema migration V2: medications, medication_intakes")

        if current_version < SCHEMA_VERSION:
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            conn.commit()
            logger.info(
                "Schema updated from version %d to %d", current_version, SCHEMA_VERSION
            )

    def get_schema_version(self) -> int:
        """Return the current schema version."""
        row = self.connection.execute("SELECT MAX(version) FROM schema_version").fetchone()
        return row[0] if row[0] is not None else 0

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            logger.info("Health database closed")

    def __enter__(self) -> HealthDatabase:
        self.initialize()
        return self

    def __exit__(self, *args) -> None:
        self.close()
