"""VitalTrack server entry point, run with ``python -m vitaltrack.core.server.main``."""

from __future__ import annotations

import logging
from ipaddress import ip_address

from vitaltrack.core.config.settings import get_settings
from vitaltrack.core.server.app import create_app


def _is_loopback_host(host: str) -> bool:
    if host == "localhost":
        return True
    try:
        return ip_address(host).is_loopback
    except ValueError:
        return False


def run() -> None:
    """Start the VitalTrack MCP server with Streamable HTTP transport."""
    settings = get_settings()
    logging.basicConfig(level=getattr(logging, settings.vitaltrack_log_level.upper(), logging.INFO))

    logger = logging.getLogger(__name__)
    if not settings.vitaltrack_allow_insecure_bind and not _is_loopback_host(settings.vitaltrack_host):
        raise RuntimeError(
            "Refusing to bind VitalTrack to a non-loopback host without an auth layer. "
            "Set VITALTRACK_ALLOW_INSECURE_BIND=true to override (unsafe)."
        )
    logger.info(
        "Starting VitalTrack server on %s:%d",
        settings.vitaltrack_host,
        settings.vitaltrack_port,
    )

    mcp = create_app()
    mcp.run(
        transport="streamable-http",
        host=settings.vitaltrack_host,
        port=settings.vitaltrack_port,
    )


if __name__ == "__main__":
    run()
