"""
Editing session for one shared battlemap.

The session owns the battlemap state, the local viewport and the fog brush.
Local edits go through its methods and emit ``changed``; state received from
the server is written directly by the sync controller and does not emit
``changed``.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Optional

from PySide6.QtCore import QObject, Signal

from ..view.coord_transformer import GridTransformer, Point
from ..view.fog_of_war import FogMode, FogOfWarSet
from ..view.viewport import Size, Viewport
from .models import Battlemap, Token, clamp_grid_size

# Token fields that appearance edits may change
APPEARANCE_FIELDS = frozenset(
    {"color", "avatar_url", "border_color", "name", "is_gm_only", "character_id"}
)


@dataclass(frozen=True)
class TokenDrag:
    """Token and pointer positions captured when a token drag starts."""

    token_id: int
    pointer_x: float
    pointer_y: float
    token_x: float
    token_y: float


class BattlemapSession(QObject):
    """Explicit owner of grid, viewport and fog state for one session.

    Revealed cells live in ``fog`` once the session is created; use
    :meth:`to_battlemap` for a complete snapshot.
    """

    changed = Signal()

    def __init__(self, battlemap: Optional[Battlemap] = None, parent: Optional[QObject] = None):
        super().__init__(parent)
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self.battlemap = battlemap or Battlemap()
        self.battlemap.grid_size = clamp_grid_size(self.battlemap.grid_size)
        self.viewport = Viewport()
        self.fog = FogOfWarSet(self.battlemap.fog_revealed_areas)

    # Read access

    @property
    def grid(self) -> GridTransformer:
        """Grid geometry for the current canvas and grid size."""
        return GridTransformer(
            self.battlemap.canvas_width, self.battlemap.canvas_height, self.battlemap.grid_size
        )

    @property
    def canvas_size(self) -> Size:
        return Size(self.battlemap.canvas_width, self.battlemap.canvas_height)

    @property
    def tokens(self) -> list[Token]:
        return self.battlemap.tokens

    def get_token(self, token_id: int) -> Optional[Token]:
        """Find a token by id."""
        for token in self.battlemap.tokens:
            if token.id == token_id:
                return token
        return None

    def next_token_id(self) -> int:
        """Id for a new token: one above the highest existing id."""
        return max((token.id for token in self.battlemap.tokens), default=0) + 1

    def to_battlemap(self) -> Battlemap:
        """Independent copy of the shared state, including fog."""
        return replace(
            self.battlemap,
            tokens=[replace(token) for token in self.battlemap.tokens],
            fog_revealed_areas=set(self.fog.revealed),
        )

    def center_view(self, viewport: Size) -> bool:
        """Center the map in a viewport of the given size, once per session."""
        return self.viewport.ensure_centered(viewport, self.canvas_size)

    # Token edits

    def _canvas_point(self, canvas_x: float, canvas_y: float) -> Point:
        grid = self.grid
        x, y = grid.snap_point(canvas_x, canvas_y)
        return grid.clamp_point(x, y)

    def place_token(self, viewport_x: float, viewport_y: float, **appearance: Any) -> Token:
        """Place a new token at a viewport point, snapped to the nearest cell center.

        Args:
            viewport_x: Pointer X in viewport pixels
            viewport_y: Pointer Y in viewport pixels
            **appearance: Initial appearance fields (color, name, ...)

        Returns:
            The created token
        """
        self._check_appearance(appearance)
        x, y = self._canvas_point(*self.viewport.to_canvas(viewport_x, viewport_y))
        token = Token(id=self.next_token_id(), x=x, y=y, **appearance)
        self.battlemap.tokens.append(token)
        self.logger.debug(f"Placed token {token.id} at ({x:.1f}, {y:.1f})")
        self.changed.emit()
        return token

    def start_token_drag(self, token_id: int, pointer_x: float, pointer_y: float) -> TokenDrag:
        """Begin dragging a token.

        Raises:
            KeyError: If no token has this id
        """
        token = self._require_token(token_id)
        return TokenDrag(token_id, pointer_x, pointer_y, token.x, token.y)

    def update_token_drag(self, drag: TokenDrag, pointer_x: float, pointer_y: float) -> Token:
        """Move a dragged token by the pointer delta, scaled by the zoom level.

        The token follows the pointer freely; snapping happens on drop.
        """
        token = self._require_token(drag.token_id)
        zoom = self.viewport.zoom_level
        token.x, token.y = self.grid.clamp_point(
            drag.token_x + (pointer_x - drag.pointer_x) / zoom,
            drag.token_y + (pointer_y - drag.pointer_y) / zoom,
        )
        return token

    def end_token_drag(self, drag: TokenDrag, pointer_x: float, pointer_y: float) -> Token:
        """Drop a dragged token and snap it to the nearest cell center."""
        token = self.update_token_drag(drag, pointer_x, pointer_y)
        token.x, token.y = self._canvas_point(token.x, token.y)
        self.changed.emit()
        return token

    def remove_token(self, token_id: int) -> bool:
        """Delete a token.

        Returns:
            True if a token was removed
        """
        before = len(self.battlemap.tokens)
        self.battlemap.tokens = [t for t in self.battlemap.tokens if t.id != token_id]
        if len(self.battlemap.tokens) == before:
            return False
        self.changed.emit()
        return True

    def update_token_appearance(self, token_id: int, **changes: Any) -> Token:
        """Change appearance fields of a token.

        Raises:
            KeyError: If no token has this id
            ValueError: If a field is not an appearance field
        """
        self._check_appearance(changes)
        token = self._require_token(token_id)
        for name, value in changes.items():
            setattr(token, name, value)
        self.changed.emit()
        return token

    def _require_token(self, token_id: int) -> Token:
        token = self.get_token(token_id)
        if token is None:
            raise KeyError(f"No token with id {token_id}")
        return token

    @staticmethod
    def _check_appearance(changes: dict[str, Any]) -> None:
        unknown = set(changes) - APPEARANCE_FIELDS
        if unknown:
            raise ValueError(
                f"Not appearance fields: {sorted(unknown)} (valid: {sorted(APPEARANCE_FIELDS)})"
            )

    # Grid

    def set_grid_size(self, size: int) -> int:
        """Change the number of cells per axis (clamped to 1..50).

        Returns:
            The grid size actually applied
        """
        clamped = clamp_grid_size(size)
        if clamped != size:
            self.logger.warning(f"Grid size {size} out of range, using {clamped}")
        if clamped != self.battlemap.grid_size:
            self.battlemap.grid_size = clamped
            self.changed.emit()
        return clamped

    # Fog

    def set_fog_mode(self, mode: FogMode) -> None:
        self.fog.set_mode(mode)

    def start_fog_painting(self) -> None:
        self.fog.start_painting()

    def paint_fog_at(self, canvas_x: float, canvas_y: float) -> bool:
        """Apply the fog brush to the cell under a canvas point.

        Points outside the grid are ignored.

        Returns:
            True if a cell was painted
        """
        grid = self.grid
        cell = grid.cell_for_point(canvas_x, canvas_y)
        if not grid.contains_cell(*cell):
            return False
        if not self.fog.paint_cell(*cell):
            return False
        self.changed.emit()
        return True

    def stop_fog_painting(self) -> None:
        self.fog.stop_painting()

    def reveal_all_fog(self) -> None:
        """Make every cell visible to players."""
        size = self.battlemap.grid_size
        self.fog.reveal_all(size, size)
        self.changed.emit()

    def hide_all_fog(self) -> None:
        """Fog every cell."""
        self.fog.hide_all()
        self.changed.emit()
