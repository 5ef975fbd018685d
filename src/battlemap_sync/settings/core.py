"""
Core settings management for battlemap-sync.
"""

import logging
from pathlib import Path

from PySide6.QtCore import QSettings

from .types import ConfigVersion, ValidationResult
from .validation import SettingsValidator
from .sync import SyncSettings
from .map_defaults import MapDefaults
from .logging import LoggingSettings

logger = logging.getLogger(__name__)


class AppSettings:
    """
    Configuration management using QSettings.

    Provides type-safe access to application settings with automatic
    cross-platform storage and validation.
    """

    def __init__(self, profile: str = "default"):
        """Initialize settings with organization, application name, and profile.

        Args:
            profile: Settings profile name (default: "default")
        """
        self.settings = QSettings("battlemap-sync", "battlemap_sync")
        self.profile = profile

        # Use profile as a group: battlemap-sync/battlemap_sync/<profile>/...
        self.settings.beginGroup(profile)

        # Initialize subsystems
        self._validator = SettingsValidator(self)
        self._sync = SyncSettings(self.settings)
        self._map = MapDefaults(self.settings)
        self._logging = LoggingSettings(self.settings)

        self._ensure_version()

        logger.debug(
            f"Settings initialized for profile '{profile}', stored at: {self.settings.fileName()}"
        )

    def _ensure_version(self) -> None:
        current_version = str(self.settings.value("app/version", ""))
        if not current_version:
            self.settings.setValue("app/version", ConfigVersion.CURRENT.value)
            self.settings.sync()
            logger.info("First run detected, initializing configuration")
        elif current_version != ConfigVersion.CURRENT.value:
            logger.warning(
                f"Unknown configuration version {current_version}, "
                f"expected {ConfigVersion.CURRENT.value}"
            )

    # === SUBSYSTEM ACCESS ===

    @property
    def sync(self) -> SyncSettings:
        """Access synchronization settings subsystem."""
        return self._sync

    @property
    def map(self) -> MapDefaults:
        """Access map default settings subsystem."""
        return self._map

    @property
    def logging(self) -> LoggingSettings:
        """Access logging settings subsystem."""
        return self._logging

    @property
    def version(self) -> str:
        """Get configuration version."""
        value = self.settings.value("app/version", ConfigVersion.CURRENT.value)
        return str(value) if value is not None else ConfigVersion.CURRENT.value

    # === LOGGING SETTINGS (DELEGATED) ===

    @property
    def console_logging(self) -> bool:
        """Check if console logging is enabled."""
        return self._logging.console_logging

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        self._logging.console_logging = value

    @property
    def console_log_level(self) -> str:
        """Get console logging level."""
        return self._logging.console_log_level

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        self._logging.console_log_level = value

    @property
    def console_use_colors(self) -> bool:
        """Check if console should use colors."""
        return self._logging.console_use_colors

    @console_use_colors.setter
    def console_use_colors(self, value: bool) -> None:
        self._logging.console_use_colors = value

    @property
    def file_logging(self) -> bool:
        """Check if file logging is enabled."""
        return self._logging.file_logging

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._logging.file_logging = value

    @property
    def log_file_path(self) -> str:
        """Get log file path."""
        return self._logging.log_file_path

    @property
    def log_file_absolute_path(self) -> Path:
        """Get absolute path to log file."""
        return self._logging.log_file_absolute_path

    # === VALIDATION ===

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        return self._validator.validate()

    # === UTILITY METHODS ===

    def get_settings_file_path(self) -> str:
        """Get the file path where settings are stored."""
        return self.settings.fileName()
