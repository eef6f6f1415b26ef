"""MCP tools for health analytics: metrics, reports, and report export.

All three tools are thin wrappers over :class:`MetricsAggregator`; they
serialize its results to JSON and turn aggregate failures into an error
payload.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any

from fastmcp import Context, FastMCP

from vitaltrack.domains.health.domain_logic.metrics_aggregator import (
    InvalidTimeRange,
    QueryFailure,
)

if TYPE_CHECKING:
    from vitaltrack.core.audit.logger import AuditLogger
    from vitaltrack.domains.health.domain_logic.metrics_aggregator import MetricsAggregator

logger = logging.getLogger(__name__)


def report_filename(time_range: str, generated_at: str) -> str:
    """File name used for exported reports, e.g. ``health-report-30d-2026-02-01.json``."""
    return f"health-report-{time_range}-{generated_at[:10]}.json"


def _error(exc: Exception) -> str:
    return json.dumps({"status": "error", "message": str(exc)})


def register_analytics_tools(
    mcp: FastMCP,
    aggregator: MetricsAggregator,
    *,
    report_dir: str,
    default_time_range: str = "30d",
    audit_logger: AuditLogger | None = None,
) -> None:
    """Register health analytics tools on the MCP server."""

    def _audit(tool_name: str, tool_input: dict[str, Any], start_time: float, exc: Exception | None) -> None:
        if audit_logger is None:
            return
        audit_logger.log_tool_call(
            tool_name=tool_name,
            tool_input=tool_input,
            duration_ms=(time.monotonic() - start_time) * 1000,
            status="failure" if exc else "success",
            error_type=type(exc).__name__ if exc else None,
        )

    @mcp.tool
    async def health_metrics(
        ctx: Context,
        user_id: str,
        time_range: str = default_time_range,
    ) -> str:
        """Summarize a user's health over a time window.

        Returns scan counts, a 0-100 health score, weight/blood pressure/mood/
        energy trend series, medication adherence and insight tallies.

        Args:
            user_id: The user to summarize.
            time_range: Lookback window: '7d', '30d', '90d' or '1y'.
        """
        start_time = time.monotonic()
        tool_input = {"user_id": user_id, "time_range": time_range}
        try:
            metrics = await aggregator.get_health_metrics(user_id, time_range)
        except (QueryFailure, InvalidTimeRange) as exc:
            _audit("health_metrics", tool_input, start_time, exc)
            return _error(exc)

        await aggregator.track_activity(user_id, "analytics", {"time_range": time_range})
        _audit("health_metrics", tool_input, start_time, None)
        return json.dumps(metrics.to_dict())

    @mcp.tool
    async def health_report(
        ctx: Context,
        user_id: str,
        time_range: str = default_time_range,
    ) -> str:
        """Generate a health report with recommendations.

        Args:
            user_id: The user to report on.
            time_range: Reporting period: '30d', '90d' or '1y'.
        """
        start_time = time.monotonic()
        tool_input = {"user_id": user_id, "time_range": time_range}
        try:
            report = await aggregator.generate_health_report(user_id, time_range)
        except (QueryFailure, InvalidTimeRange) as exc:
            _audit("health_report", tool_input, start_time, exc)
            return _error(exc)

        await aggregator.track_activity(user_id, "reports", {"time_range": time_range})
        _audit("health_report", tool_input, start_time, None)
        return json.dumps(report.to_dict(), indent=2)

    @mcp.tool
    async def export_health_report(
        ctx: Context,
        user_id: str,
        time_range: str = default_time_range,
    ) -> str:
        """Generate a health report and save it as a JSON file.

        Args:
            user_id: The user to report on.
            time_range: Reporting period: '30d', '90d' or '1y'.
        """
        start_time = time.monotonic()
        tool_input = {"user_id": user_id, "time_range": time_range}
        try:
            report = await aggregator.generate_health_report(user_id, time_range)
        except (QueryFailure, InvalidTimeRange) as exc:
            _audit("export_health_report", tool_input, start_time, exc)
            return _error(exc)

        out_dir = Path(report_dir).expanduser()
        out_dir.mkdir(parents=True, exist_ok=True)
        path = out_dir / report_filename(time_range, report.generated_at)
        path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
        logger.info("Exported health report to %s", path)

        _audit("export_health_report", tool_input, start_time, None)
        return json.dumps({
            "status": "exported",
            "path": str(path),
            "period": report.period,
            "generated_at": report.generated_at,
        })
