"""
Configuration management for the FPL sync service.

Loads configuration from environment variables with sensible defaults.
"""

import os
from dataclasses import dataclass
from typing import Optional


TRACKING_MODES = ("extended", "basic")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Config:
    """Application configuration."""

    # Environment
    environment: str = os.getenv("ENVIRONMENT", "development")

    # Supabase Configuration
    supabase_url: str = os.getenv("SUPABASE_URL", "")
    supabase_key: str = os.getenv("SUPABASE_KEY", "")
    supabase_service_key: Optional[str] = os.getenv("SUPABASE_SERVICE_KEY", None)

    # FPL API Configuration
    fpl_api_base_url: str = os.getenv("FPL_API_BASE_URL", "https://fantasy.premierleague.com/api")
    request_timeout: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    # When on, sends ?future=1 and FPL omits fixtures that have kicked off, so their
    # scores, minutes and finished flags stop refreshing
    fixtures_future_only: bool = _env_flag("FIXTURES_FUTURE_ONLY", "false")

    # Player reconciliation: "extended" compares every stat column, "basic" only team/position/price/points
    player_change_tracking: str = os.getenv("PLAYER_CHANGE_TRACKING", "extended")

    # Logging
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")  # json or text

    def validate(self):
        """Validate configuration."""
        errors = []

        if not self.supabase_url:
            errors.append("SUPABASE_URL is required")
        if not self.supabase_key:
            errors.append("SUPABASE_KEY is required")
        if self.player_change_tracking not in TRACKING_MODES:
            errors.append(
                f"PLAYER_CHANGE_TRACKING must be one of {', '.join(TRACKING_MODES)}"
            )
        if self.request_timeout <= 0:
            errors.append("REQUEST_TIMEOUT must be positive")

        if errors:
            raise ValueError(f"Configuration errors: {', '.join(errors)}")

        return True

    def __post_init__(self):
        """Validate after initialization."""
        self.player_change_tracking = self.player_change_tracking.strip().lower()
        self.validate()
