"""
Default map dimensions and codec tuning for battlemap-sync.
"""

from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

MIN_GRID_SIZE = 1
MAX_GRID_SIZE = 50


class MapDefaults:
    """Manages defaults used when a map or snapshot does not specify them."""

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_int(self, key: str, default: int = 0) -> int:
        """Type-safe integer retrieval from settings."""
        value = self.settings.value(key, default)
        try:
            if value is None:
                return default
            return int(cast(str | int, value))
        except (ValueError, TypeError):
            return default

    def _get_grid(self, key: str, default: int) -> int:
        return max(MIN_GRID_SIZE, min(MAX_GRID_SIZE, self._get_int(key, default)))

    def _set_grid(self, key: str, value: int) -> None:
        validated = max(MIN_GRID_SIZE, min(MAX_GRID_SIZE, value))
        self.settings.setValue(key, validated)
        self.settings.sync()

    @property
    def grid_width(self) -> int:
        """Get default editor grid width in cells."""
        return self._get_grid("map/grid_width", 16)

    @grid_width.setter
    def grid_width(self, value: int) -> None:
        self._set_grid("map/grid_width", value)

    @property
    def grid_height(self) -> int:
        """Get default editor grid height in cells."""
        return self._get_grid("map/grid_height", 16)

    @grid_height.setter
    def grid_height(self, value: int) -> None:
        self._set_grid("map/grid_height", value)

    @property
    def grid_size(self) -> int:
        """Get default number of cells per side on a session battlemap."""
        return self._get_grid("map/grid_size", 10)

    @grid_size.setter
    def grid_size(self, value: int) -> None:
        self._set_grid("map/grid_size", value)

    @property
    def canvas_width(self) -> int:
        """Get fallback canvas width in pixels."""
        return max(1, self._get_int("map/canvas_width", 512))

    @canvas_width.setter
    def canvas_width(self, value: int) -> None:
        self.settings.setValue("map/canvas_width", max(1, value))
        self.settings.sync()

    @property
    def canvas_height(self) -> int:
        """Get fallback canvas height in pixels."""
        return max(1, self._get_int("map/canvas_height", 512))

    @canvas_height.setter
    def canvas_height(self, value: int) -> None:
        self.settings.setValue("map/canvas_height", max(1, value))
        self.settings.sync()

    @property
    def compression_margin(self) -> int:
        """Get bytes gzip must save before the compressed snapshot is used."""
        return max(0, self._get_int("map/compression_margin", 20))

    @compression_margin.setter
    def compression_margin(self, value: int) -> None:
        self.settings.setValue("map/compression_margin", max(0, value))
        self.settings.sync()
