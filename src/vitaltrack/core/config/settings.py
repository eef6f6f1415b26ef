"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """VitalTrack server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: there is no auth layer in front of the tools.
    vitaltrack_host: str = "127.0.0.1"
    vitaltrack_port: int = 8001
    vitaltrack_log_level: str = "info"
    vitaltrack_allow_insecure_bind: bool = False

    # Storage (health data bank)
    db_path: str = "~/.vitaltrack/health.db"
    encryption_key: str = ""

    # Analytics
    default_time_range: str = "30d"
    # When true, unknown time ranges raise instead of falling back to 30 days.
    strict_time_range: bool = False
    engagement_window: int = 10
    default_session_minutes: int = 15

    # Report export
    report_dir: str = "~/.vitaltrack/reports"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
