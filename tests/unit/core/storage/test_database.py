"""Tests for HealthDatabase: schema creation, versioning, lifecycle."""

from __future__ import annotations

import sqlite3

import pytest

from vitaltrack.core.storage.database import SCHEMA_VERSION, DatabaseError, HealthDatabase


class TestInitialization:
    def test_in_memory_initialize(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        assert db.connection is not None
        db.close()

    def test_double_initialize_is_idempotent(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        conn1 = db.connection
        db.initialize()
        assert db.connection is conn1
        db.close()

    def test_connection_before_init_raises(self):
        db = HealthDatabase(":memory:")
        with pytest.raises(DatabaseError, match="not initialized"):
            _ = db.connection

    def test_context_manager(self):
        with HealthDatabase(":memory:") as db:
            assert db.connection is not None
        with pytest.raises(DatabaseError):
            _ = db.connection


class TestSchema:
    def test_schema_version_recorded(self):
        with HealthDatabase(":memory:") as db:
            assert db.get_schema_version() == SCHEMA_VERSION

    def test_tables_created(self):
        expected_tables = {
            "health_logs",
            "scans",
            "health_insights",
            "profiles",
            "activity_log",
            "medications",
            "medication_intakes",
            "schema_version",
            "audit_log",
        }
        with HealthDatabase(":memory:") as db:
            cursor = db.connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            tables = {row[0] for row in cursor.fetchall()}
            assert expected_tables <= tables

    def test_indexes_created(self):
        expected_indexes = {
            "idx_logs_user_date",
            "idx_scans_user_coll_ts",
            "idx_insights_user_ts",
            "idx_intakes_user_ts",
            "idx_audit_timestamp",
        }
        with HealthDatabase(":memory:") as db:
            cursor = db.connection.execute("SELECT name FROM sqlite_master WHERE type='index'")
            indexes = {row[0] for row in cursor.fetchall()}
            assert expected_indexes <= indexes

    def test_log_date_unique_per_user(self):
        with HealthDatabase(":memory:") as db:
            insert = (
                "INSERT INTO health_logs (id, user_id, log_date, created_at, updated_at) "
                "VALUES (?, 'u1', '2026-02-01', 'now', 'now')"
            )
            db.connection.execute(insert, ("a",))
            with pytest.raises(sqlite3.IntegrityError):
                db.connection.execute(insert, ("b",))

    def test_scan_collection_checked(self):
        with HealthDatabase(":memory:") as db:
            with pytest.raises(sqlite3.IntegrityError):
                db.connection.execute(
                    "INSERT INTO scans (id, user_id, collection, created_at) "
                    "VALUES ('s', 'u1', 'dental', 'now')"
                )

    def test_foreign_keys_enabled(self):
        with HealthDatabase(":memory:") as db:
            assert db.connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1


class TestFileDatabase:
    def test_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "health.db"
        db = HealthDatabase(str(db_path))
        db.initialize()
        assert db_path.exists()
        assert db.get_schema_version() == SCHEMA_VERSION
        db.close()

    def test_reopen_keeps_single_version_row(self, tmp_path):
        db_path = str(tmp_path / "health.db")
        with HealthDatabase(db_path):
            pass
        with HealthDatabase(db_path) as db:
            rows = db.connection.execute("SELECT COUNT(*) FROM schema_version").fetchone()
            assert rows[0] == 1


class TestClose:
    def test_double_close_is_safe(self):
        db = HealthDatabase(":memory:")
        db.initialize()
        db.close()
        db.close()
