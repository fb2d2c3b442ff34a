"""
Application settings using pydantic-settings

Loads environment variables from .env.local file
"""

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Visit store selection
    visit_store_backend: Literal["memory", "mongodb"] = Field(
        default="memory",
        alias="VISIT_STORE_BACKEND",
        description="Backing store for visit records (memory or mongodb)",
    )

    # MongoDB Configuration
    mongodb_uri: Optional[str] = Field(
        default=None,
        alias="MONGODB_URI",
        description="MongoDB connection URI (required for the mongodb backend)",
    )
    mongodb_database: str = Field(
        default="visitlog",
        alias="MONGODB_DATABASE",
        description="MongoDB database name",
    )
    mongodb_max_pool_size: int = Field(
        default=50,
        alias="MONGODB_MAX_POOL_SIZE",
        description="Maximum connection pool size",
    )
    mongodb_min_pool_size: int = Field(
        default=10,
        alias="MONGODB_MIN_POOL_SIZE",
        description="Minimum connection pool size",
    )

    # Environment
    env: str = Field(
        default="development",
        alias="ENV",
        description="Environment (development, staging, production)",
    )

    # Time handling
    timezone: str = Field(
        default="Europe/Madrid",
        alias="TIMEZONE",
        description="IANA time zone used for day boundaries and exported times",
    )
    csv_datetime_format: str = Field(
        default="%d/%m/%Y, %H:%M:%S",
        alias="CSV_DATETIME_FORMAT",
        description="strftime format for entry/exit times in CSV exports",
    )

    # SMTP Configuration (report dispatch)
    smtp_host: Optional[str] = Field(default=None, alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, alias="SMTP_USER")
    smtp_password: Optional[str] = Field(default=None, alias="SMTP_PASSWORD")
    smtp_timeout: int = Field(
        default=20,
        alias="SMTP_TIMEOUT",
        description="SMTP connection timeout in seconds",
    )
    report_sender_label: str = Field(
        default="Registre de Visites",
        alias="REPORT_SENDER_LABEL",
        description="Display name used in the From header of report e-mails",
    )
    report_subject: str = Field(
        default="Registre de visites actives",
        alias="REPORT_SUBJECT",
        description="Default subject for report e-mails",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )

    # Rate limiting
    rate_limit_per_minute: int = Field(
        default=60,
        alias="RATE_LIMIT_PER_MINUTE",
        description="Maximum requests per minute per client host",
    )

    # CORS Origins
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://localhost:8000",
        alias="CORS_ORIGINS",
        description="Comma-separated allowed CORS origins",
    )

    # API Server Configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def cors_origins(self) -> List[str]:
        """Parsed list of allowed CORS origins"""
        return [o.strip() for o in self.cors_origins_raw.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings

    Returns:
        Settings: Application settings instance
    """
    return Settings()
