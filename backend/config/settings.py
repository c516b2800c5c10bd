"""
Application settings and configuration management
Uses Pydantic Settings for environment variable handling and validation
"""

from functools import lru_cache
from typing import List, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource
import json
import pytz

from backend.reporting.time_range import TimeRangeSelector


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application
    app_name: str = "CRM Reporting Service"
    environment: str = Field(default="development", description="development, staging or production")
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    allowed_origins_str: str = Field(
        default='["http://localhost:3000","http://127.0.0.1:3000"]',
        validation_alias="ALLOWED_ORIGINS",
        description="Allowed CORS origins (JSON array or comma-separated)"
    )

    # Record store (hosted Supabase project)
    supabase_url: Optional[str] = Field(default=None, description="Supabase project URL")
    supabase_key: Optional[str] = Field(default=None, description="Supabase service or anon key")

    # Reporting
    timezone: str = Field(
        default="UTC",
        description="Timezone whose calendar days bound every reporting period"
    )
    default_time_range: TimeRangeSelector = Field(
        default=TimeRangeSelector.THIS_MONTH,
        description="Period used when a request does not choose one"
    )

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_parse_none_str="null"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to exclude .env file loading"""
        # Only use init_settings and env_settings, skip dotenv_settings
        return init_settings, env_settings, file_secret_settings

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def allowed_origins(self) -> List[str]:
        """Parse and return allowed_origins as a list"""
        raw = self.allowed_origins_str.strip()

        # Try JSON parsing first
        if raw.startswith('[') and raw.endswith(']'):
            try:
                return json.loads(raw)
            except (json.JSONDecodeError, ValueError):
                pass

        # Fall back to comma-separated
        if ',' in raw:
            return [origin.strip() for origin in raw.split(",") if origin.strip()]

        # Single value
        if raw:
            return [raw]

        # Default fallback
        return ["http://localhost:3000", "http://127.0.0.1:3000"]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.environment.lower() == "development"

    def validate_record_store_configuration(self) -> list[str]:
        """
        Validate record store configuration.
        Returns list of issues (empty if all valid).
        """
        issues = []

        if not self.supabase_url:
            issues.append("SUPABASE_URL is not configured")
        elif not self.supabase_url.startswith("https://") and self.is_production:
            issues.append("SUPABASE_URL must use https in production")

        if not self.supabase_key:
            issues.append("SUPABASE_KEY is not configured")

        return issues


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings
    Uses lru_cache to avoid reading environment variables multiple times
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the settings cache. Used primarily for testing.
    After calling this, the next call to get_settings() will
    create a new Settings instance with fresh environment variables.
    """
    get_settings.cache_clear()
