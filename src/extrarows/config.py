"""Runtime configuration using pydantic-settings.

Values come from ``EXTRAROWS_*`` environment variables or a ``.env`` file.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from extrarows.credentials import REVOKE_URL
from extrarows.transport import DEFAULT_TIMEOUT, DRIVE_API_BASE, SHEETS_API_BASE


LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Plugin settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRAROWS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Google endpoints
    sheets_api_base: str = SHEETS_API_BASE
    drive_api_base: str = DRIVE_API_BASE
    revoke_url: str = REVOKE_URL

    # HTTP timeout for every remote call, in seconds
    request_timeout: float = DEFAULT_TIMEOUT

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("request_timeout must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one loguru knows."""
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {v}")
        return level


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
