"""
Liveness server configuration settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class APIConfig(BaseSettings):
    """Liveness server settings."""

    host: str = "0.0.0.0"
    port: int = 5000
    log_level: str = "INFO"
    liveness_enabled: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


# Global config instance
config = APIConfig()
