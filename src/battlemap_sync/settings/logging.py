"""
Logging-related settings for battlemap-sync.
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

LOG_FILE_PATH = "logs/battlemap_sync.csv"
VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingSettings:
    """Console, file and network logging options under the ``logging/`` group."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_bool(self, key: str, default: bool) -> bool:
        value = self.settings.value(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes")
        return bool(value) if value is not None else default

    def _get_level(self, key: str, default: str) -> str:
        value = str(self.settings.value(key, default) or default).upper()
        return value if value in VALID_LEVELS else default

    def _set_level(self, key: str, value: str) -> None:
        if value.upper() not in VALID_LEVELS:
            logger.warning(f"Invalid log level for {key}: {value}, keeping {self._get_level(key, 'INFO')}")
            return
        self.settings.setValue(key, value.upper())
        self.settings.sync()

    def _get_positive_int(self, key: str, default: int) -> int:
        try:
            value = int(self.settings.value(key, default))
        except (TypeError, ValueError):
            return default
        return value if value > 0 else default

    def _set(self, key: str, value: object) -> None:
        self.settings.setValue(key, value)
        self.settings.sync()

    # Console

    @property
    def console_logging(self) -> bool:
        return self._get_bool("logging/console_enabled", True)

    @console_logging.setter
    def console_logging(self, value: bool) -> None:
        self._set("logging/console_enabled", value)

    @property
    def console_log_level(self) -> str:
        """Minimum level shown on the console."""
        return self._get_level("logging/console_level", "INFO")

    @console_log_level.setter
    def console_log_level(self, value: str) -> None:
        self._set_level("logging/console_level", value)

    @property
    def console_use_colors(self) -> bool:
        return self._get_bool("logging/console_use_colors", True)

    @console_use_colors.setter
    def console_use_colors(self, value: bool) -> None:
        self._set("logging/console_use_colors", value)

    # Network

    @property
    def network_log_level(self) -> str:
        """Level of the transport logger, which logs every request at DEBUG."""
        return self._get_level("logging/network_level", "INFO")

    @network_log_level.setter
    def network_log_level(self, value: str) -> None:
        self._set_level("logging/network_level", value)

    # File

    @property
    def file_logging(self) -> bool:
        return self._get_bool("logging/file_enabled", False)

    @file_logging.setter
    def file_logging(self, value: bool) -> None:
        self._set("logging/file_enabled", value)

    @property
    def log_file_path(self) -> str:
        return str(self.settings.value("logging/file_path", LOG_FILE_PATH) or LOG_FILE_PATH)

    @log_file_path.setter
    def log_file_path(self, value: str) -> None:
        self._set("logging/file_path", value)

    @property
    def log_file_absolute_path(self) -> Path:
        return Path(self.log_file_path).resolve()

    @property
    def file_max_bytes(self) -> int:
        """Size at which the CSV log is rotated."""
        return self._get_positive_int("logging/file_max_bytes", 10 * 1024 * 1024)

    @file_max_bytes.setter
    def file_max_bytes(self, value: int) -> None:
        self._set("logging/file_max_bytes", int(value))

    @property
    def file_backup_count(self) -> int:
        """Number of rotated CSV logs kept."""
        return self._get_positive_int("logging/file_backup_count", 5)

    @file_backup_count.setter
    def file_backup_count(self, value: int) -> None:
        self._set("logging/file_backup_count", int(value))
