"""Tests for the AuditLogger and related utilities."""

from __future__ import annotations

import json
import time

from vitaltrack.core.audit.logger import AuditEvent, _hash_input


# ---------------------------------------------------------------------------
# _hash_input tests
# ---------------------------------------------------------------------------

class TestHashInput:
    def test_hashes_dict(self):
        h = _hash_input({"user_id": "user-1"})
        assert isinstance(h, str)
        assert len(h) == 64  # SHA-256 hex

    def test_order_independent(self):
        """Canonical JSON sorts keys, so order doesn't matter."""
        h1 = _hash_input({"time_range": "30d", "user_id": "user-1"})
        h2 = _hash_input({"user_id": "user-1", "time_range": "30d"})
        assert h1 == h2

    def test_different_inputs_differ(self):
        assert _hash_input({"user_id": "a"}) != _hash_input({"user_id": "b"})

    def test_non_serializable_returns_empty(self):
        assert _hash_input(object()) == ""


# ---------------------------------------------------------------------------
# AuditLogger.log_event / log_tool_call
# ---------------------------------------------------------------------------

class TestLogEvent:
    def test_log_event_returns_uuid(self, audit_logger):
        eid = audit_logger.log_event(AuditEvent(action="tool_invocation", tool_name="health_metrics"))
        assert len(eid) == 36

    def test_logged_event_retrievable(self, audit_logger):
        audit_logger.log_tool_call(
            "health_report",
            {"user_id": "user-1", "time_range": "30d"},
            duration_ms=12.5,
        )
        events = audit_logger.get_events()
        assert len(events) == 1
        assert events[0]["tool_name"] == "health_report"
        assert events[0]["action"] == "tool_invocation"
        assert events[0]["status"] == "success"
        assert events[0]["duration_ms"] == 12.5

    def test_user_id_never_stored_raw(self, audit_logger, health_db):
        audit_logger.log_tool_call("health_metrics", {"user_id": "patient-42"})
        rows = health_db.connection.execute("SELECT * FROM audit_log").fetchall()
        assert all("patient-42" not in str(value) for value in rows[0])
        assert len(rows[0]["tool_input_hash"]) == 64

    def test_failure_recorded(self, audit_logger):
        audit_logger.log_tool_call(
            "health_report", status="failure", error_type="QueryFailure",
        )
        event = audit_logger.get_events()[0]
        assert event["status"] == "failure"
        assert event["error_type"] == "QueryFailure"

    def test_metadata_json_stored(self, audit_logger):
        audit_logger.log_tool_call("export_health_report", metadata={"report_bytes": 2048})
        meta = json.loads(audit_logger.get_events()[0]["metadata_json"])
        assert meta["report_bytes"] == 2048

    def test_write_failure_returns_empty_id(self, audit_logger, health_db):
        health_db.close()
        assert audit_logger.log_tool_call("health_metrics") == ""


# ---------------------------------------------------------------------------
# AuditLogger.get_events (filtering)
# ---------------------------------------------------------------------------

class TestGetEvents:
    def test_filter_by_action(self, audit_logger):
        audit_logger.log_tool_call("health_metrics")
        audit_logger.log_tool_call("log_health_entry", action="data_write")
        audit_logger.log_tool_call("health_report")

        assert len(audit_logger.get_events(action="tool_invocation")) == 2
        assert len(audit_logger.get_events(action="data_write")) == 1

    def test_filter_by_tool_name(self, audit_logger):
        audit_logger.log_tool_call("alpha")
        audit_logger.log_tool_call("beta")
        audit_logger.log_tool_call("alpha")
        assert len(audit_logger.get_events(tool_name="alpha")) == 2

    def test_limit_respected(self, audit_logger):
        for i in range(10):
            audit_logger.log_tool_call(f"tool_{i}")
        assert len(audit_logger.get_events(limit=3)) == 3

    def test_newest_first(self, audit_logger):
        audit_logger.log_tool_call("first")
        time.sleep(0.01)
        audit_logger.log_tool_call("second")

        events = audit_logger.get_events()
        assert [e["tool_name"] for e in events] == ["second", "first"]


# ---------------------------------------------------------------------------
# AuditLogger.count_events
# ---------------------------------------------------------------------------

class TestCounts:
    def test_count_events_empty(self, audit_logger):
        assert audit_logger.count_events() == 0

    def test_count_by_status(self, audit_logger):
        audit_logger.log_tool_call("a")
        audit_logger.log_tool_call("b", status="failure", error_type="ValueError")
        audit_logger.log_tool_call("c")
        assert audit_logger.count_events() == 3
        assert audit_logger.count_events(status="failure") == 1

    def test_count_since(self, audit_logger):
        audit_logger.log_tool_call("a")
        assert audit_logger.count_events(since="2020-01-01T00:00:00Z") == 1
        assert audit_logger.count_events(since="2999-01-01T00:00:00Z") == 0
