"""clinirec - Configuration Management.

Environment-based configuration using Pydantic settings. Every value can be
supplied through the environment or a ``.env`` file.
"""

from functools import lru_cache
import logging
from pathlib import Path
from typing import Self

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

# Configure logger
logger = logging.getLogger(__name__)

SUPPORTED_LOCALES = ("en", "es")


class Settings(BaseSettings):
    """Client settings with development defaults and validation."""

    # Environment settings
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Records service
    api_base_url: str = Field(
        default="http://localhost:8085/api", alias="CLINIREC_API_BASE_URL"
    )
    request_timeout: float = Field(default=10.0, alias="CLINIREC_REQUEST_TIMEOUT")

    # Persisted session state
    storage_path: Path = Field(
        default=Path.home() / ".clinirec" / "session.json",
        alias="CLINIREC_STORAGE_PATH",
    )

    # Operator language for user-visible messages
    locale: str = Field(default="en", alias="CLINIREC_LOCALE")

    # Navigation
    entry_path: str = Field(default="/", alias="CLINIREC_ENTRY_PATH")
    landing_path: str = Field(default="/dashboard", alias="CLINIREC_LANDING_PATH")
    admin_landing_path: str = Field(
        default="/dashboard/settings", alias="CLINIREC_ADMIN_LANDING_PATH"
    )
    practitioner_landing_path: str = Field(
        default="/dashboard/appointments", alias="CLINIREC_PRACTITIONER_LANDING_PATH"
    )

    app_name: str = "clinirec"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "populate_by_name": True,
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_client_settings(self) -> Self:
        """Reject settings the client cannot operate with."""
        self.locale = self.locale.lower()
        if self.locale not in SUPPORTED_LOCALES:
            msg = f"Unsupported locale {self.locale!r}; expected one of {SUPPORTED_LOCALES}"
            raise ValueError(msg)

        if not self.api_base_url.startswith(("http://", "https://")):
            msg = f"CLINIREC_API_BASE_URL must be an http(s) URL, got {self.api_base_url!r}"
            raise ValueError(msg)
        self.api_base_url = self.api_base_url.rstrip("/")

        if self.request_timeout <= 0:
            msg = "CLINIREC_REQUEST_TIMEOUT must be positive"
            raise ValueError(msg)

        if self.is_production() and self.api_base_url.startswith("http://"):
            logger.warning(
                "Production environment is talking to %s over plain HTTP",
                self.api_base_url,
            )
        return self

    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    def log_configuration_summary(self) -> None:
        """Log configuration summary for debugging."""
        logger.info("clinirec configuration summary:")
        logger.info("   - Environment: %s", self.environment)
        logger.info("   - API base URL: %s", self.api_base_url)
        logger.info("   - Request timeout: %ss", self.request_timeout)
        logger.info("   - Storage path: %s", self.storage_path)
        logger.info("   - Locale: %s", self.locale)


@lru_cache
def get_settings() -> Settings:
    """Get cached client settings."""
    settings = Settings()

    if settings.debug or settings.log_level.upper() == "DEBUG":
        settings.log_configuration_summary()

    return settings
