"""
Configuration management using pydantic-settings.
All settings loaded from environment variables (12-factor app).
"""

from functools import lru_cache
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    db_type: str = Field(default="duckdb", description="Storage backend (duckdb|sqlite)")
    db_path: str = Field(default="./data/portal.duckdb", description="DuckDB file path")
    sqlite_path: str = Field(default="./data/portal.sqlite3", description="SQLite file path")

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_reload: bool = Field(default=True, description="Enable hot reload")
    cors_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="CORS allowed origins (comma-separated)",
    )

    # Logging
    log_level: str = Field(default="info", description="Log level")
    log_format: str = Field(default="json", description="Log format (json|console)")

    # Reporting windows
    week_days: int = Field(default=7, ge=1, le=366, description="Days in the 'week' period")
    month_days: int = Field(default=30, ge=1, le=366, description="Days in the 'month' period")

    # Dashboard behaviour
    roi_cache_enabled: bool = Field(default=True, description="Persist computed ROI figures")
    seed_default_baselines: bool = Field(
        default=True, description="Insert global default baselines at startup when missing"
    )

    # Development
    dev_mode: bool = Field(default=True, description="Development mode")
    testing: bool = Field(default=False, description="Testing mode")

    @field_validator("cors_origins")
    @classmethod
    def parse_cors_origins(cls, v: str) -> List[str]:
        """Parse comma-separated CORS origins."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("db_type")
    @classmethod
    def validate_db_type(cls, v: str) -> str:
        """Only the two bundled storage backends are accepted."""
        normalized = v.strip().lower()
        if normalized not in {"duckdb", "sqlite"}:
            raise ValueError("db_type must be one of: duckdb, sqlite")
        return normalized

    @property
    def period_days(self) -> dict[str, int]:
        """Window length per period selector."""
        return {"week": self.week_days, "month": self.month_days}


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure singleton behavior.
    """
    return Settings()
