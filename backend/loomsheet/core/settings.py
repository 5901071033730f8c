"""
LoomSheet - Configuration Management with pydantic-settings

Provides validated, type-safe configuration from environment variables.
All settings can be overridden via environment variables or .env file.
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional, List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with validation.

    Environment variables take precedence over .env file values.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # ===================
    # Application Settings
    # ===================
    PROJECT_NAME: str = "LoomSheet"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    DEBUG: bool = Field(default=False, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="deployment environment")

    # ===================
    # Data Files
    # ===================
    DATA_DIR: str = Field(default="./data", description="Directory holding the JSON collections")
    ROLLS_FILE: str = Field(default="loom-data.json", description="Roll collection file name")
    WORK_ORDERS_FILE: str = Field(default="work-orders.json", description="Work order collection file name")
    HISTORY_LIMIT: int = Field(default=50, ge=1, description="Number of undo snapshots kept in memory")

    @property
    def rolls_path(self) -> Path:
        return Path(self.DATA_DIR) / self.ROLLS_FILE

    @property
    def work_orders_path(self) -> Path:
        return Path(self.DATA_DIR) / self.WORK_ORDERS_FILE

    # ===================
    # Measurement Settings
    # ===================
    VARIANCE_TOLERANCE: float = Field(
        default=0.05,
        ge=0,
        lt=1,
        description="Fraction of the ideal weight allowed above/below for the variance band"
    )

    # ===================
    # CORS Settings
    # ===================
    ALLOWED_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:9002",
        ],
        description="Allowed CORS origins"
    )

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse comma-separated string to list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # ===================
    # Text Summary Service
    # ===================
    SUMMARY_API_URL: Optional[str] = Field(default=None, description="Text-summary service endpoint")
    SUMMARY_API_KEY: Optional[str] = Field(default=None, description="Bearer token for the summary service")
    SUMMARY_TIMEOUT_SECONDS: float = Field(default=30.0, gt=0, description="Summary request timeout")

    # ===================
    # Logging Settings
    # ===================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_FORMAT: str = Field(default="json", description="Log format: json or text")
    LOG_FILE: Optional[str] = Field(default=None, description="Log file path (optional)")
    AUDIT_LOG_FILE: Optional[str] = Field(default="./logs/audit.log", description="Audit log file path")


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Using lru_cache ensures settings are only loaded once per process.
    """
    return Settings()


settings = get_settings()
