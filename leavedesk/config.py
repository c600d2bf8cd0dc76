from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Leave Desk settings, read from ``LEAVEDESK_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="LEAVEDESK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Leave Desk"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    cors_origins: list[str] = ["http://localhost:5173"]

    database_url: str = "postgresql+asyncpg://leave_desk:leave_desk@db:5432/leave_desk"
    database_echo: bool = False
    database_pool_size: int = Field(default=5, ge=1)

    # Read-decide-write cycles a write may take before giving up.
    transition_max_attempts: int = Field(default=3, ge=1)
    # Upper bound of the random pause after a lost race, scaled by the attempt number.
    transition_retry_backoff: float = Field(default=0.01, ge=0)
    # Opening leave balance for newly registered subjects, in days.
    default_leave_balance: int = Field(default=20, ge=0)

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
