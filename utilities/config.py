"""
Configuration management using environment variables.
Handles all watcher settings with proper validation and defaults.
"""

from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WatcherConfig(BaseSettings):
    """
    Configuration class for watcher settings.
    Uses pydantic BaseSettings for environment variable management.
    """

    # MongoDB Configuration
    mongodb_username: str = ""
    mongodb_password: str = ""
    mongodb_cluster_host: str = "cluster-fmi-catalin-ana.vkaev.mongodb.net"
    mongodb_url: Optional[str] = None
    mongodb_database: str = "fmi-news"
    mongodb_collection: str = "doms"
    mongodb_timeout_ms: int = 10000

    # Snapshot store and run mode
    store_backend: str = "mongo"
    run_mode: str = "batch"
    seed_missing_snapshots: bool = False

    # Fetch and retry
    request_timeout: int = 30
    retry_attempts: int = 5
    retry_delay: float = 10.0
    store_read_attempts: int = 5

    # Daemon mode intervals
    announcements_interval_minutes: int = 30
    studies_completion_interval_minutes: int = 720

    # Mail
    smtp_host: str = "smtp.mail.yahoo.com"
    smtp_port: int = 465
    smtp_use_ssl: bool = True
    smtp_timeout: int = 30
    sender_name: str = "FMI News"
    sender_username: str = ""
    sender_password: str = ""
    receivers_list: str = ""

    # Process
    start_delay_seconds: float = 1.0
    start_delay_jitter_seconds: float = 0.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "console"
    log_file: Optional[str] = None

    debug: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("store_backend")
    @classmethod
    def validate_store_backend(cls, v):
        """Ensure the snapshot store backend is known."""
        valid_backends = ["mongo", "memory"]
        if v.lower() not in valid_backends:
            raise ValueError(f"store_backend must be one of: {valid_backends}")
        return v.lower()

    @field_validator("run_mode")
    @classmethod
    def validate_run_mode(cls, v):
        """Ensure the run mode is known."""
        valid_modes = ["batch", "daemon"]
        if v.lower() not in valid_modes:
            raise ValueError(f"run_mode must be one of: {valid_modes}")
        return v.lower()

    @field_validator("request_timeout", "smtp_timeout")
    @classmethod
    def validate_timeout(cls, v):
        """Ensure timeout is reasonable."""
        if v < 1 or v > 300:
            raise ValueError("timeouts must be between 1 and 300 seconds")
        return v

    @field_validator("retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v):
        """Ensure retry attempts is reasonable."""
        if v < 0 or v > 10:
            raise ValueError("retry_attempts must be between 0 and 10")
        return v

    @field_validator("store_read_attempts")
    @classmethod
    def validate_store_read_attempts(cls, v):
        if v < 1 or v > 10:
            raise ValueError("store_read_attempts must be between 1 and 10")
        return v

    @field_validator("retry_delay", "start_delay_seconds", "start_delay_jitter_seconds")
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError("delays cannot be negative")
        return v

    @field_validator("announcements_interval_minutes", "studies_completion_interval_minutes")
    @classmethod
    def validate_interval(cls, v):
        """Ensure check intervals stay at human scale."""
        if v < 1 or v > 24 * 60:
            raise ValueError("check intervals must be between 1 and 1440 minutes")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Ensure log level is valid."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        """Ensure log format is valid."""
        valid_formats = ["json", "console"]
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {valid_formats}")
        return v.lower()

    def get_mongodb_url(self) -> str:
        """Build the MongoDB connection string from the credential parts."""
        if self.mongodb_url:
            return self.mongodb_url
        user = quote_plus(self.mongodb_username)
        password = quote_plus(self.mongodb_password)
        return (
            f"mongodb+srv://{user}:{password}@{self.mongodb_cluster_host}/"
            f"{self.mongodb_database}?retryWrites=true&w=majority"
        )

    def get_receivers(self) -> List[str]:
        """Split the receivers list on commas or semicolons."""
        receivers = self.receivers_list.replace(";", ",")
        return [address.strip() for address in receivers.split(",") if address.strip()]

    def get_log_file_path(self) -> Optional[Path]:
        """Get log file path as Path object."""
        if self.log_file:
            return Path(self.log_file)
        return None

    def is_daemon(self) -> bool:
        return self.run_mode == "daemon"

    def get_user_agent(self) -> str:
        """Get user agent string for requests."""
        return "FMI-News-Watcher/1.0"

    def get_headers(self) -> dict:
        """Get default headers for HTTP requests."""
        return {
            "User-Agent": self.get_user_agent(),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "ro-RO,ro;q=0.9,en-US;q=0.5",
        }


# Global configuration instance
config = WatcherConfig()
