"""
NewsDesk Configuration System
=============================

Simple configuration management with environment variables and Pydantic models.
Environment variables override Field defaults with clear precedence.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from .sources import MAX_AGE_DAYS, MAX_ITEMS_PER_SOURCE
from ..utils.exceptions import ConfigurationError, ErrorCode


DEFAULT_USER_AGENT = "NewsDesk/1.0 (+https://github.com/newsdesk/newsdesk; feed aggregator)"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AggregationSettings(BaseModel):
    """Item retention and normalization tunables."""
    max_age_days: int = Field(default=MAX_AGE_DAYS, ge=1, le=365, description="Drop items older than this many days")
    max_items_per_source: int = Field(default=MAX_ITEMS_PER_SOURCE, ge=1, le=500, description="Items kept per source, in document order")
    summary_max_length: int = Field(default=200, ge=10, le=5000, description="Summary length bound including the ellipsis")
    min_title_length: int = Field(default=5, ge=1, le=100, description="Shorter titles are treated as feed noise")


class FetchSettings(BaseModel):
    """HTTP client configuration."""
    user_agent: str = Field(default=DEFAULT_USER_AGENT, description="Client identifier sent to feed providers")
    request_timeout: int = Field(default=30, ge=1, le=300, description="Total request timeout in seconds")
    max_concurrent: Optional[int] = Field(default=None, ge=1, le=100, description="Concurrent fetches (default: one per source)")
    limit_per_host: int = Field(default=5, ge=1, le=50, description="Connection limit per host")

    @field_validator('user_agent')
    @classmethod
    def validate_user_agent(cls, v):
        """Feed providers reject empty user agents."""
        if not v or not v.strip():
            raise ValueError("user_agent cannot be empty")
        return v.strip()


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default=None, description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class NewsDeskSettings(BaseSettings):
    """Main application settings."""

    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="NewsDesk", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "NEWSDESK_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> NewsDeskSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        # Precedence: environment, then .env, then Field defaults
        settings = NewsDeskSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


_settings: Optional[NewsDeskSettings] = None


def get_settings(reload: bool = False) -> NewsDeskSettings:
    """Get the process-wide settings instance.

    Args:
        reload: Force reload of settings

    Returns:
        Settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
