"""VitalTrack MCP Server: application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery
"""

from __future__ import annotations

import logging

from fastmcp import FastMCP

from vitaltrack.core.audit.logger import AuditLogger
from vitaltrack.core.config.settings import get_settings
from vitaltrack.core.storage.database import HealthDatabase
from vitaltrack.core.storage.encryption import EncryptionError, FieldEncryptor
from vitaltrack.core.storage.repository import HealthRepository
from vitaltrack.domains.health.connectors import HealthRecordStore
from vitaltrack.domains.health.connectors.sqlite_store import SQLiteRecordStore
from vitaltrack.domains.health.domain_logic.metrics_aggregator import MetricsAggregator
from vitaltrack.domains.health.tools.analytics_tools import register_analytics_tools
from vitaltrack.domains.health.tools.audit_tools import register_audit_tools
from vitaltrack.domains.health.tools.health_entry_tools import register_health_entry_tools

logger = logging.getLogger(__name__)

SERVER_VERSION = "0.1.0"


def _open_repository(db_path: str, encryption_key: str) -> HealthRepository:
    """Open the configured data bank, or an in-memory one when no key is set."""
    if not encryption_key:
        logger.warning(
            "No ENCRYPTION_KEY configured; using an in-memory data bank. "
            "Data will not survive a restart."
        )
        db_path = ":memory:"
        encryption_key = FieldEncryptor.generate_key()

    encryptor = FieldEncryptor(encryption_key)
    health_db = HealthDatabase(db_path)
    health_db.initialize()
    logger.info(
        "Health data bank initialized: %s (schema v%d)",
        db_path,
        health_db.get_schema_version(),
    )
    return HealthRepository(health_db, encryptor)


def create_app(
    *,
    repository_override: HealthRepository | None = None,
    record_store_override: HealthRecordStore | None = None,
) -> FastMCP:
    """Create and configure the VitalTrack MCP server.

    This is the main application factory. It:
    1. Creates the FastMCP server instance
    2. Opens the encrypted health data bank
    3. Builds the record store and metrics aggregator
    4. Registers data entry, analytics and audit tools
    """
    settings = get_settings()

    server = FastMCP(
        "VitalTrack",
        instructions=(
            "Personal health tracking server. Records daily vitals, scans, "
            "insights and medications, and computes health scores, trend "
            "series and reports from them."
        ),
    )

    # --- Storage ---
    if repository_override is not None:
        repository = repository_override
    else:
        try:
            repository = _open_repository(settings.db_path, settings.encryption_key)
        except EncryptionError as exc:
            logger.error("Failed to initialize storage: %s", exc)
            raise

    audit_logger = AuditLogger(repository.database)

    # --- Analytics core ---
    if record_store_override is not None:
        store = record_store_override
    else:
        store = SQLiteRecordStore(
            repository,
            engagement_window=settings.engagement_window,
            default_session_minutes=settings.default_session_minutes,
        )
    aggregator = MetricsAggregator(store, strict_time_range=settings.strict_time_range)

    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "VitalTrack",
            "version": SERVER_VERSION,
            "schema_version": repository.database.get_schema_version(),
            "strict_time_range": settings.strict_time_range,
        }

    register_health_entry_tools(server, repository, audit_logger)
    logger.info("Health entry tools registered")

    register_analytics_tools(
        server,
        aggregator,
        report_dir=settings.report_dir,
        default_time_range=settings.default_time_range,
        audit_logger=audit_logger,
    )
    logger.info("Health analytics tools registered")

    register_audit_tools(server, audit_logger)

    return server


# Module-level instance for FastMCP discovery.
# Lazy: only created when requested (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
