"""
Configuration management using environment variables.
Handles all watcher settings with proper validation and defaults.
"""

from typing import List, Optional
from pathlib import Path

from pydantic import Field, ValidationError, validator
from pydantic_settings import BaseSettings

from watcher.exceptions import ConfigurationError
from watcher.fetcher import DEFAULT_USER_AGENT
from watcher.models import DEFAULT_END_MARKER, DEFAULT_START_MARKER


class WatcherSettings(BaseSettings):
    """
    Configuration class for watcher settings.
    Uses pydantic BaseSettings for environment variable management.

    Required settings are optional at construction time so that a partial
    environment can be loaded and reported on; ``validate_required`` enforces
    them before the watcher starts polling.
    """

    # Target Configuration
    target_url: Optional[str] = Field(default=None, env="TARGET_URL")
    check_interval_ms: Optional[int] = Field(default=None, env="CHECK_INTERVAL_MS")
    start_marker: str = Field(default=DEFAULT_START_MARKER, env="START_MARKER")
    end_marker: str = Field(default=DEFAULT_END_MARKER, env="END_MARKER")
    request_timeout: float = Field(default=30.0, env="REQUEST_TIMEOUT")
    user_agent: str = Field(default=DEFAULT_USER_AGENT, env="USER_AGENT")

    # Notification Configuration
    notifier_backend: str = Field(default="email", env="NOTIFIER_BACKEND")
    recipient_email: Optional[str] = Field(default=None, env="RECIPIENT_EMAIL")
    smtp_host: Optional[str] = Field(default=None, env="SMTP_HOST")
    smtp_port: int = Field(default=587, env="SMTP_PORT")
    smtp_user: Optional[str] = Field(default=None, env="SMTP_USER")
    smtp_pass: Optional[str] = Field(default=None, env="SMTP_PASS")
    smtp_secure: bool = Field(default=False, env="SMTP_SECURE")
    smtp_verify_tls: bool = Field(default=True, env="SMTP_VERIFY_TLS")
    smtp_timeout: float = Field(default=30.0, env="SMTP_TIMEOUT")
    sender_email: Optional[str] = Field(default=None, env="SENDER_EMAIL")
    sender_name: str = Field(default="Website Monitor", env="SENDER_NAME")

    # Logging Configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")
    log_file: Optional[str] = Field(default=None, env="LOG_FILE")

    # Development/Testing
    debug: bool = Field(default=False, env="DEBUG")

    @validator('check_interval_ms')
    def validate_check_interval(cls, v):
        """Ensure the poll interval is a positive duration."""
        if v is not None and v <= 0:
            raise ValueError('check_interval_ms must be a positive number of milliseconds')
        return v

    @validator('request_timeout', 'smtp_timeout')
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError('timeouts must be between 1 and 300 seconds')
        return v

    @validator('smtp_port')
    def validate_smtp_port(cls, v):
        """Ensure port is a valid TCP port."""
        if v < 1 or v > 65535:
            raise ValueError('smtp_port must be between 1 and 65535')
        return v

    @validator('notifier_backend')
    def validate_notifier_backend(cls, v):
        """Ensure notifier backend is known."""
        valid_backends = ['email', 'log']
        if v.lower() not in valid_backends:
            raise ValueError(f'notifier_backend must be one of: {valid_backends}')
        return v.lower()

    @validator('log_level')
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'log_level must be one of: {valid_levels}')
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ['json', 'console']
        if v.lower() not in valid_formats:
            raise ValueError(f'log_format must be one of: {valid_formats}')
        return v.lower()

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Ignore extra fields from .env

    def missing_settings(self) -> List[str]:
        """Names of required settings that are not set."""
        required = ['target_url', 'check_interval_ms']
        if self.notifier_backend == 'email':
            required += ['recipient_email', 'smtp_host', 'smtp_user', 'smtp_pass', 'sender_email']
        return [name.upper() for name in required if not getattr(self, name)]

    def validate_required(self) -> None:
        """
        Ensure every required setting is present.

        Raises:
            ConfigurationError: Listing each missing setting
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError([f"{name} is not set" for name in missing])

    @property
    def interval_seconds(self) -> float:
        return self.check_interval_ms / 1000

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None


def load_settings(**overrides) -> WatcherSettings:
    """
    Load settings from the environment and ``.env``.

    Raises:
        ConfigurationError: When a value is present but malformed
    """
    try:
        return WatcherSettings(**overrides)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(part) for part in error['loc']).upper()}: {error['msg']}"
            for error in e.errors()
        ]
        raise ConfigurationError(problems) from e
