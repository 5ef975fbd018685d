"""Fog-of-war reveal set with brush painting.

Membership in the revealed set means "visible to players"; absence means
fogged. Note the naming of the brush modes: ``ADD`` adds fog and therefore
*removes* the cell from the revealed set, ``REMOVE`` lifts fog and adds it.
"""

import logging
from enum import Enum
from typing import Iterable, Iterator, Optional

from ..maps.models import Cell


class FogMode(Enum):
    """Fog brush mode."""

    ADD = "add"
    REMOVE = "remove"


class FogOfWarSet:
    """Sparse set of revealed grid cells plus brush state."""

    def __init__(self, revealed: Optional[Iterable[Cell]] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._revealed: set[Cell] = set(revealed or ())
        self.mode = FogMode.ADD
        self.painting = False
        self.last_painted_cell: Optional[Cell] = None

    def __contains__(self, cell: object) -> bool:
        return cell in self._revealed

    def __iter__(self) -> Iterator[Cell]:
        return iter(sorted(self._revealed))

    def __len__(self) -> int:
        return len(self._revealed)

    @property
    def revealed(self) -> frozenset[Cell]:
        """Copy of the revealed cells."""
        return frozenset(self._revealed)

    def set_areas(self, areas: Iterable[Cell]) -> None:
        """Replace the revealed set (duplicates collapse)."""
        self._revealed = {(int(x), int(y)) for x, y in areas}

    def areas(self) -> list[Cell]:
        """Revealed cells in row-major order, for serialization."""
        return sorted(self._revealed, key=lambda cell: (cell[1], cell[0]))

    def is_revealed(self, grid_x: int, grid_y: int) -> bool:
        return (grid_x, grid_y) in self._revealed

    def set_mode(self, mode: FogMode) -> None:
        self.mode = mode

    def start_painting(self) -> None:
        """Begin a brush stroke."""
        self.painting = True
        self.last_painted_cell = None

    def paint_cell(self, grid_x: int, grid_y: int) -> bool:
        """Apply the brush to one cell.

        Repeated calls for the cell painted last are ignored, so a stream of
        mouse-move events over one cell is processed once.

        Returns:
            True if the cell was processed (not necessarily changed)
        """
        if not self.painting:
            return False

        cell = (grid_x, grid_y)
        if cell == self.last_painted_cell:
            return False
        self.last_painted_cell = cell

        if self.mode is FogMode.ADD:
            self._revealed.discard(cell)
        else:
            self._revealed.add(cell)
        return True

    def stop_painting(self) -> None:
        """End a brush stroke."""
        self.painting = False
        self.last_painted_cell = None

    def reveal_all(self, max_x: int, max_y: int) -> None:
        """Reveal every cell in ``[0, max_x) x [0, max_y)``."""
        self._revealed = {(x, y) for x in range(max_x) for y in range(max_y)}
        self.logger.debug(f"Revealed all {len(self._revealed)} cells")

    def hide_all(self) -> None:
        """Fog every cell."""
        self._revealed.clear()
        self.logger.debug("All cells hidden")
