"""
Settings package for battlemap-sync.

This package provides a modular, type-safe configuration management system
using Qt's QSettings for cross-platform storage.

Usage:
    from battlemap_sync.settings import AppSettings, ValidationResult

    settings = AppSettings()
    result = settings.validate()
"""

from .core import AppSettings
from .types import ConfigVersion, ConfigError, ValidationResult
from .sync import SyncSettings
from .map_defaults import MapDefaults, MIN_GRID_SIZE, MAX_GRID_SIZE
from .logging import LoggingSettings

__all__ = [
    "AppSettings",
    "ConfigVersion",
    "ConfigError",
    "ValidationResult",
    "SyncSettings",
    "MapDefaults",
    "LoggingSettings",
    "MIN_GRID_SIZE",
    "MAX_GRID_SIZE",
]
