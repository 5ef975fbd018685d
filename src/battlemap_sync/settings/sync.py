"""
Synchronization-related settings for battlemap-sync.
"""

import logging
from typing import TYPE_CHECKING, cast

if TYPE_CHECKING:
    from PySide6.QtCore import QSettings

logger = logging.getLogger(__name__)

DEFAULT_SERVER_URL = "http://localhost:8080"


class SyncSettings:
    """Manages server connection and timer settings."""

    # (default, minimum, maximum) in milliseconds
    DEBOUNCE_RANGE = (300, 50, 5000)
    POLL_INTERVAL_RANGE = (2000, 250, 60000)
    REQUEST_TIMEOUT_RANGE = (10000, 1000, 120000)

    def __init__(self, settings: "QSettings"):
        self.settings = settings

    def _get_str(self, key: str, default: str = "") -> str:
        """Type-safe string retrieval from settings."""
        value = self.settings.value(key, default)
        return str(value) if value is not None else default

    def _get_int(self, key: str, default: int = 0) -> int:
        """Type-safe integer retrieval from settings."""
        value = self.settings.value(key, default)
        try:
            if value is None:
                return default
            return int(cast(str | int, value))
        except (ValueError, TypeError):
            return default

    def _get_clamped(self, key: str, bounds: tuple[int, int, int]) -> int:
        default, low, high = bounds
        return max(low, min(high, self._get_int(key, default)))

    def _set_clamped(self, key: str, value: int, bounds: tuple[int, int, int]) -> None:
        _, low, high = bounds
        validated = max(low, min(high, int(value)))
        if validated != value:
            logger.warning(f"{key}={value} out of range, clamped to {validated}")
        self.settings.setValue(key, validated)
        self.settings.sync()

    @property
    def server_url(self) -> str:
        """Get base URL of the session server (without trailing slash)."""
        return self._get_str("sync/server_url", DEFAULT_SERVER_URL).rstrip("/")

    @server_url.setter
    def server_url(self, value: str) -> None:
        """Set base URL of the session server."""
        self.settings.setValue("sync/server_url", value.strip().rstrip("/"))
        self.settings.sync()

    @property
    def api_token(self) -> str:
        """Get bearer token sent with battlemap requests (empty = none)."""
        return self._get_str("sync/api_token", "")

    @api_token.setter
    def api_token(self, value: str) -> None:
        """Set bearer token."""
        self.settings.setValue("sync/api_token", value)
        self.settings.sync()

    @property
    def debounce_ms(self) -> int:
        """Get quiet period before a local change is saved."""
        return self._get_clamped("sync/debounce_ms", self.DEBOUNCE_RANGE)

    @debounce_ms.setter
    def debounce_ms(self, value: int) -> None:
        self._set_clamped("sync/debounce_ms", value, self.DEBOUNCE_RANGE)

    @property
    def poll_interval_ms(self) -> int:
        """Get interval between battlemap polls."""
        return self._get_clamped("sync/poll_interval_ms", self.POLL_INTERVAL_RANGE)

    @poll_interval_ms.setter
    def poll_interval_ms(self, value: int) -> None:
        self._set_clamped("sync/poll_interval_ms", value, self.POLL_INTERVAL_RANGE)

    @property
    def request_timeout_ms(self) -> int:
        """Get transfer timeout applied to every request."""
        return self._get_clamped("sync/request_timeout_ms", self.REQUEST_TIMEOUT_RANGE)

    @request_timeout_ms.setter
    def request_timeout_ms(self, value: int) -> None:
        self._set_clamped("sync/request_timeout_ms", value, self.REQUEST_TIMEOUT_RANGE)
