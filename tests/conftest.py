"""Shared test fixtures for VitalTrack tests."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("REPORT_DIR", str(tmp_path / "reports"))
    monkeypatch.setenv("STRICT_TIME_RANGE", "false")
    monkeypatch.setenv("DEFAULT_TIME_RANGE", "30d")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from vitaltrack.core.storage.models import (  # noqa: E402
    HealthInsight,
    HealthLogEntry,
    Medication,
    MedicationIntake,
    ScanRecord,
)
from vitaltrack.domains.health.domain_logic.metrics_models import UserEngagement  # noqa: E402

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_log(log_date: str, **fields: Any) -> HealthLogEntry:
    """Create a health log row for the default test user."""
    return HealthLogEntry(user_id="user-1", log_date=log_date, **fields)


def make_insight(severity: str = "info", insight_type: str = "lifestyle", **fields: Any) -> HealthInsight:
    return HealthInsight(user_id="user-1", insight_type=insight_type, severity=severity, **fields)


def make_scans(collection: str, count: int) -> list[ScanRecord]:
    return [
        ScanRecord(user_id="user-1", collection=collection, id=f"{collection}-{n}")
        for n in range(count)
    ]


# ---------------------------------------------------------------------------
# In-memory record store
# ---------------------------------------------------------------------------

class FakeRecordStore:
    """In-memory HealthRecordStore returning canned records.

    Records every query as ``(method, args)`` in ``calls``. Any method name
    in ``failing`` raises RuntimeError instead of answering.
    """

    def __init__(
        self,
        *,
        scans: dict[str, list[ScanRecord]] | None = None,
        logs: list[HealthLogEntry] | None = None,
        insights: list[HealthInsight] | None = None,
        medications: list[Medication] | None = None,
        intakes: list[MedicationIntake] | None = None,
        engagement: UserEngagement | None = None,
        failing: set[str] | None = None,
    ) -> None:
        self.scans = scans or {}
        self.logs = logs or []
        self.insights = insights or []
        self.medications = medications or []
        self.intakes = intakes or []
        self.engagement = engagement or UserEngagement(
            login_frequency=3,
            features_used=["dashboard"],
            time_spent_per_session=15.0,
            last_active_date="2026-02-28T09:00:00+00:00",
        )
        self.failing = failing or set()
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.activities: list[tuple[str, str, dict[str, Any] | None]] = []

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self.failing:
            raise RuntimeError(f"{method} unavailable")

    async def query_scans(self, collection, user_id, since):
        self._record("query_scans", collection, user_id, since)
        return list(self.scans.get(collection, []))

    async def query_health_logs(self, user_id, since_date):
        self._record("query_health_logs", user_id, since_date)
        return list(self.logs)

    async def query_health_insights(self, user_id, since):
        self._record("query_health_insights", user_id, since)
        return list(self.insights)

    async def query_medications(self, user_id):
        self._record("query_medications", user_id)
        return list(self.medications)

    async def query_medication_intakes(self, user_id, since):
        self._record("query_medication_intakes", user_id, since)
        return list(self.intakes)

    async def query_user_engagement(self, user_id):
        self._record("query_user_engagement", user_id)
        return self.engagement

    async def record_activity(self, user_id, activity, metadata=None):
        self._record("record_activity", user_id, activity)
        self.activities.append((user_id, activity, metadata))


@pytest.fixture
def fake_store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def health_db():
    """Create an in-memory HealthDatabase for testing."""
    from vitaltrack.core.storage.database import HealthDatabase

    db = HealthDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from vitaltrack.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def health_repository(health_db, field_encryptor):
    """Create a HealthRepository backed by in-memory SQLite."""
    from vitaltrack.core.storage.repository import HealthRepository

    return HealthRepository(health_db, field_encryptor)


@pytest.fixture
def audit_logger(health_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from vitaltrack.core.audit.logger import AuditLogger

    return AuditLogger(health_db)
