"""
Configuration for the sharing control plane.

Values are read from the environment with the ``PHR_`` prefix, e.g.
``PHR_SHARE_REQUEST_TTL_DAYS=7``.
"""

from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Identifiers for records and share requests are random UUID4 strings.
ID_SCHEME = "uuid4"

DEFAULT_SHARE_REQUEST_TTL_DAYS = 30


class ControlPlaneSettings(BaseSettings):
    """Settings for the record store, share ledger and logging."""
    
    model_config = SettingsConfigDict(env_prefix="PHR_", extra="ignore")
    
    share_request_ttl_days: int = Field(default=DEFAULT_SHARE_REQUEST_TTL_DAYS, gt=0)
    log_level: str = "INFO"
    json_logs: bool = False
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if level not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return level
    
    @property
    def share_request_ttl(self) -> timedelta:
        """TTL applied to every new share request."""
        return timedelta(days=self.share_request_ttl_days)


@lru_cache
def get_settings() -> ControlPlaneSettings:
    """Process-wide settings, loaded once."""
    return ControlPlaneSettings()
