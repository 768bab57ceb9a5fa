"""
Configuration management for Git Analytics.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = Field(default="Git Analytics", env="APP_NAME")
    debug: bool = Field(default=False, env="DEBUG")

    # Database
    database_url: str = Field(
        default="sqlite:///./git_analytics.db", env="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="console", env="LOG_FORMAT")

    # Categorization
    prevent_numeric_categories: bool = Field(
        default=True,
        env="PREVENT_NUMERIC_CATEGORIES",
        description="Reject version-, issue- and mostly-numeric category names.",
    )

    # AI categorization
    ai_timeout: int = Field(default=30, env="AI_TIMEOUT")
    ai_retries: int = Field(default=3, env="AI_RETRIES")
    ai_temperature: float = Field(default=0.1, env="AI_TEMPERATURE")
    ai_batch_size: int = Field(default=50, env="AI_BATCH_SIZE")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
