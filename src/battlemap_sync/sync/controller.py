"""
Optimistic polling synchronization of a session battlemap.

Two timers drive the protocol:

- a single-shot save timer, restarted by every local edit, that PUTs the
  local state once edits have been quiet for the debounce interval
- a repeating poll timer that GETs the server state and applies it

At most one save is in flight. A poll answered while a save is in flight is
dropped. Zoom and pan are never touched by server data.
"""

import logging
from typing import Any, Iterable, Optional

from PySide6.QtCore import QObject, QTimer, Signal

from ..maps.models import Battlemap, Token
from ..maps.session import BattlemapSession
from ..settings import AppSettings
from ..view.viewport import Size
from .transport import BattlemapTransport
from .wire import WireFormatError, battlemap_from_wire, battlemap_to_wire

DEFAULT_DEBOUNCE_MS = 300
DEFAULT_POLL_INTERVAL_MS = 2000


def compute_token_hash(tokens: Iterable[Token]) -> str:
    """Order-independent fingerprint of the synchronized token fields.

    Coordinates are compared to two decimals.
    """
    parts = [
        ":".join(
            (
                str(token.id),
                f"{token.x:.2f}",
                f"{token.y:.2f}",
                "true" if token.is_gm_only else "false",
                token.color or "",
                token.avatar_url or "",
                token.border_color or "",
                token.name or "",
            )
        )
        for token in tokens
    ]
    return "|".join(sorted(parts))


def merge_tokens(local: Iterable[Token], incoming: Iterable[Token]) -> list[Token]:
    """Take the server token list, keeping local avatar and character links.

    A server record without ``avatar_url`` or ``character_id`` inherits the
    value from the local token with the same id.
    """
    local_by_id = {token.id: token for token in local}
    merged = []
    for token in incoming:
        previous = local_by_id.get(token.id)
        if previous is not None:
            if not token.avatar_url and previous.avatar_url:
                token.avatar_url = previous.avatar_url
            if token.character_id is None and previous.character_id is not None:
                token.character_id = previous.character_id
        merged.append(token)
    return merged


class SyncController(QObject):
    """Keeps a :class:`BattlemapSession` in sync with the server."""

    battlemapApplied = Signal()
    saved = Signal()
    saveFailed = Signal(str)
    pollFailed = Signal(str)

    def __init__(
        self,
        session: BattlemapSession,
        transport: BattlemapTransport,
        debounce_ms: int = DEFAULT_DEBOUNCE_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        parent: Optional[QObject] = None,
    ):
        super().__init__(parent)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        self.session = session
        self.transport = transport
        self.debounce_ms = debounce_ms
        self.poll_interval_ms = poll_interval_ms

        self.is_saving = False
        self.last_token_hash: Optional[str] = None
        self._pending_token_hash: Optional[str] = None

        # Set by the view once its size is known; used to center on first load
        self.viewport_size: Optional[Size] = None

        self._save_timer = QTimer(self)
        self._save_timer.setSingleShot(True)
        self._save_timer.timeout.connect(self._save)

        self._poll_timer = QTimer(self)
        self._poll_timer.setInterval(poll_interval_ms)
        self._poll_timer.timeout.connect(self.poll_now)

        session.changed.connect(self.schedule_save)

    @classmethod
    def from_settings(
        cls,
        session: BattlemapSession,
        transport: BattlemapTransport,
        settings: AppSettings,
        parent: Optional[QObject] = None,
    ) -> "SyncController":
        """Create a controller using the configured timer intervals."""
        return cls(
            session,
            transport,
            debounce_ms=settings.sync.debounce_ms,
            poll_interval_ms=settings.sync.poll_interval_ms,
            parent=parent,
        )

    @property
    def save_pending(self) -> bool:
        """Check if local edits are waiting for the debounce timer."""
        return self._save_timer.isActive()

    @property
    def polling(self) -> bool:
        return self._poll_timer.isActive()

    # Lifecycle

    def start(self) -> None:
        """Load the server state once, then poll at the configured interval."""
        self.logger.info(
            f"Starting sync (debounce {self.debounce_ms} ms, poll {self.poll_interval_ms} ms)"
        )
        self.transport.fetch_battlemap(self._on_initial_load, self._on_poll_error)
        self._poll_timer.start()

    def stop(self) -> None:
        """Stop both timers. An in-flight request still completes."""
        self._poll_timer.stop()
        self._save_timer.stop()
        self.logger.info("Sync stopped")

    # Save path

    def schedule_save(self) -> None:
        """Restart the debounce timer after a local edit."""
        self._save_timer.stop()
        self._save_timer.start(self.debounce_ms)

    def flush_save(self) -> None:
        """Save pending edits now instead of waiting for the debounce timer."""
        if self._save_timer.isActive():
            self._save_timer.stop()
            self._save()

    def _save(self) -> None:
        if self.is_saving:
            # One save at a time; try again after this one completes
            self.schedule_save()
            return

        battlemap = self.session.to_battlemap()
        self.is_saving = True
        self._pending_token_hash = compute_token_hash(battlemap.tokens)
        self.logger.debug(f"Saving battlemap with {len(battlemap.tokens)} tokens")
        self.transport.store_battlemap(
            battlemap_to_wire(battlemap), self._on_save_success, self._on_save_error
        )

    def _on_save_success(self, payload: dict[str, Any]) -> None:
        try:
            self.last_token_hash = self._pending_token_hash
            if payload and not self.save_pending:
                try:
                    server = battlemap_from_wire(payload, defaults=self.session.battlemap)
                except WireFormatError as e:
                    self.logger.warning(f"Ignoring malformed save response: {e}")
                else:
                    self.apply_battlemap_data(server, skip_if_saving=False)
        finally:
            self.is_saving = False
            self._pending_token_hash = None
        self.logger.debug("Battlemap saved")
        self.saved.emit()

    def _on_save_error(self, message: str) -> None:
        self.is_saving = False
        self._pending_token_hash = None
        self.logger.error(f"Saving battlemap failed, keeping local state: {message}")
        self.saveFailed.emit(message)
        if not self._save_timer.isActive():
            self._save_timer.start(self.poll_interval_ms)

    # Poll path

    def poll_now(self) -> None:
        """Fetch the server state unless a save is in flight."""
        if self.is_saving:
            self.logger.debug("Poll skipped: save in flight")
            return
        self.transport.fetch_battlemap(self._on_poll_result, self._on_poll_error)

    def _on_poll_result(self, payload: dict[str, Any]) -> None:
        if self.is_saving:
            self.logger.debug("Poll result dropped: save started while polling")
            return
        try:
            battlemap = battlemap_from_wire(payload, defaults=self.session.battlemap)
        except WireFormatError as e:
            self._on_poll_error(f"Malformed battlemap: {e}")
            return
        self.apply_battlemap_data(battlemap)

    def _on_poll_error(self, message: str) -> None:
        self.logger.warning(f"Polling battlemap failed: {message}")
        self.pollFailed.emit(message)

    def _on_initial_load(self, payload: dict[str, Any]) -> None:
        try:
            battlemap = battlemap_from_wire(payload, defaults=self.session.battlemap)
        except WireFormatError as e:
            self._on_poll_error(f"Malformed battlemap: {e}")
            return
        self.apply_battlemap_data(battlemap, skip_if_saving=False)
        if self.viewport_size is not None:
            self.session.center_view(self.viewport_size)

    # Applying server state

    def apply_battlemap_data(self, battlemap: Battlemap, skip_if_saving: bool = True) -> bool:
        """Apply server state to the session.

        Nothing is replaced while local edits wait for the debounce timer;
        the pending save writes them instead. Tokens are only replaced when
        their fingerprint differs from the last saved or applied one.

        Args:
            battlemap: State received from the server
            skip_if_saving: Do nothing while a save is in flight

        Returns:
            True if the state was applied
        """
        if skip_if_saving and self.is_saving:
            return False

        viewport_before = self.session.viewport.state
        local = self.session.battlemap

        if self.save_pending:
            self.logger.debug("Local edits pending, keeping local battlemap state")
        else:
            local.grid_size = battlemap.grid_size
            local.canvas_width = battlemap.canvas_width
            local.canvas_height = battlemap.canvas_height
            if battlemap.map_image_url:
                local.map_image_url = battlemap.map_image_url
            self.session.fog.set_areas(battlemap.fog_revealed_areas)
            token_hash = compute_token_hash(battlemap.tokens)
            if token_hash != self.last_token_hash:
                local.tokens = merge_tokens(local.tokens, battlemap.tokens)
                self.last_token_hash = token_hash
                self.logger.debug(f"Applied {len(local.tokens)} tokens from server")

        viewport_after = self.session.viewport.state
        if viewport_after != viewport_before:
            self.logger.error(
                f"Viewport changed while applying server data "
                f"({viewport_before} -> {viewport_after}); restoring"
            )
            self.session.viewport.restore(viewport_before)

        self.battlemapApplied.emit()
        return True
