"""
Settings validation system for battlemap-sync.
"""

import logging
from typing import List, TYPE_CHECKING
from urllib.parse import urlparse

from .types import ValidationResult

if TYPE_CHECKING:
    from .core import AppSettings

logger = logging.getLogger(__name__)


class SettingsValidator:
    """Validates configuration settings."""

    def __init__(self, settings: "AppSettings"):
        self.settings = settings

    def validate(self) -> ValidationResult:
        """Validate current configuration."""
        errors: List[str] = []
        warnings: List[str] = []

        # Validate server URL
        server_url = self.settings.sync.server_url
        parsed = urlparse(server_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(f"Server URL must be an http(s) URL: {server_url!r}")
        elif parsed.scheme == "http" and self.settings.sync.api_token:
            warnings.append("API token is configured but server URL is not https")

        # Poll should not outpace the save debounce
        debounce = self.settings.sync.debounce_ms
        poll = self.settings.sync.poll_interval_ms
        if poll <= debounce:
            warnings.append(
                f"Poll interval ({poll} ms) is not longer than save debounce ({debounce} ms)"
            )

        return ValidationResult(
            is_valid=len(errors) == 0, errors=errors, warnings=warnings
        )
