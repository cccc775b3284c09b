"""
Config Service - Centralized Configuration for Lagrum
Wraps pydantic-settings with environment variable support
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..core.exceptions import ConfigurationError
from ..utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

_DEFAULT_DB_PATH = Path(__file__).resolve().parents[2] / "data" / "lagrum.db"


class LagrumSettings(BaseSettings):
    """Pydantic settings for configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LAGRUM_",  # All env vars start with LAGRUM_
        extra="ignore",
    )

    # Application
    app_name: str = "Lagrum"
    app_version: str = "0.1.0"

    # Store
    db_path: str = str(_DEFAULT_DB_PATH)

    # Extraction
    eu_context_window: int = Field(default=100, ge=0)
    heading_max_length: int = Field(default=80, ge=1)

    # Ingestion
    ingest_workers: int = Field(default=4, ge=1)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False
    log_file: Optional[str] = None


class ConfigService:
    """
    Centralized configuration service.

    Provides:
    - Singleton pattern (one instance per process)
    - Environment variable support
    """

    _instance: Optional["ConfigService"] = None

    def __new__(cls):
        """Singleton pattern"""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        self._settings: LagrumSettings = LagrumSettings()
        self._validate_paths()
        logger.info(
            f"ConfigService initialized: {self._settings.app_name} v{self._settings.app_version}"
        )

    def _validate_paths(self) -> None:
        db_dir = Path(self._settings.db_path).parent
        if not db_dir.exists():
            logger.warning(f"Database directory does not exist: {db_dir}")

    @property
    def settings(self) -> LagrumSettings:
        """Access to raw Pydantic settings"""
        return self._settings

    @property
    def db_path(self) -> str:
        return self._settings.db_path

    @property
    def eu_context_window(self) -> int:
        return self._settings.eu_context_window

    @property
    def heading_max_length(self) -> int:
        return self._settings.heading_max_length

    @property
    def ingest_workers(self) -> int:
        return self._settings.ingest_workers

    def configure_logging(self) -> None:
        """
        Apply the log_* settings to the root logger.

        Raises:
            ConfigurationError: if LAGRUM_LOG_LEVEL is not a logging level name
        """
        level = self._settings.log_level.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ConfigurationError(
                f"Unknown log level: {self._settings.log_level!r}",
                service_name="config",
                operation="configure_logging",
                details={"allowed": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]},
            )
        setup_logging(level=level, json_output=self._settings.log_json, log_file=self._settings.log_file)


@lru_cache()
def get_config_service() -> ConfigService:
    """Get the cached ConfigService singleton."""
    return ConfigService()
