"""
Data models for battlemap state.

These are the internal (runtime) representations shared by the codecs, the
view helpers and the sync controller. Wire formats live in
``battlemap_sync.sync.wire`` and ``battlemap_sync.codec``; nothing here knows
about short field aliases or byte layouts.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from ..settings.map_defaults import MIN_GRID_SIZE, MAX_GRID_SIZE

Cell = tuple[int, int]
"""Grid cell as (grid_x, grid_y)."""

MAX_TERRAIN_VALUE = 0x1F


class EnvObjectType(IntEnum):
    """Decorative environment object kinds.

    The integer value is the index used by the binary object records, so
    existing members must never be renumbered.
    """

    TREE = 0
    STONE = 1
    HOUSE = 2

    @property
    def label(self) -> str:
        """Lowercase name used in JSON payloads."""
        return self.name.lower()

    @classmethod
    def from_index(cls, index: int) -> "EnvObjectType":
        """Resolve a record index, falling back to TREE for unknown values."""
        try:
            return cls(index)
        except ValueError:
            return cls.TREE

    @classmethod
    def from_label(cls, label: Any) -> "EnvObjectType":
        """Resolve a label such as ``"stone"``, falling back to TREE."""
        if not isinstance(label, str) or not label:
            return cls.TREE
        return cls.__members__.get(label.upper(), cls.TREE)


@dataclass(frozen=True)
class EnvObjectStyle:
    """Default appearance of an environment object kind."""

    label: str
    default_color: str
    default_size: int = 80


ENV_OBJECT_STYLES: dict[EnvObjectType, EnvObjectStyle] = {
    EnvObjectType.TREE: EnvObjectStyle("Tree", "#228B22"),
    EnvObjectType.STONE: EnvObjectStyle("Stone", "#696969"),
    EnvObjectType.HOUSE: EnvObjectStyle("House", "#D2691E"),
}


# Background texture ids as stored in cell_backgrounds (0 is the default ground)
TERRAIN_TEXTURES: dict[int, tuple[str, str]] = {
    0: ("default", "#228B22"),
    1: ("brick", "#A84600"),
    2: ("grass", "#90EE90"),
    3: ("grass2", "#2E7D32"),
    4: ("earth", "#8B4513"),
    5: ("stone", "#696969"),
    6: ("sand", "#F4A460"),
    7: ("rubble", "#808080"),
}


def terrain_name(value: int) -> str:
    """Get texture name for a background value (``earth`` for unknown ids)."""
    return TERRAIN_TEXTURES.get(value, ("earth", ""))[0]


def clamp_grid_size(value: int) -> int:
    """Clamp a grid dimension to the supported range."""
    return max(MIN_GRID_SIZE, min(MAX_GRID_SIZE, int(value)))


@dataclass
class Token:
    """A token placed on the battlemap.

    Attributes:
        id: Token id, unique within the session
        x: Horizontal position in base canvas pixels
        y: Vertical position in base canvas pixels
        is_gm_only: Visible to the game master only
        color: Fill color (``#rrggbb``)
        avatar_url: Image shown inside the token
        border_color: Ring color (``#rrggbb``)
        name: Display name
        character_id: Character the token represents, if any
    """

    id: int
    x: float
    y: float
    is_gm_only: bool = False
    color: Optional[str] = None
    avatar_url: Optional[str] = None
    border_color: Optional[str] = None
    name: Optional[str] = None
    character_id: Optional[int] = None


@dataclass
class EnvObject:
    """Decorative object (tree, stone, house) on the editor map.

    ``id`` is assigned locally when a snapshot is decoded and is not stable
    across encode/decode round trips.
    """

    id: int
    type: EnvObjectType
    x: float
    y: float
    color: Optional[str] = None
    size: Optional[int] = None

    def record_key(self) -> tuple[EnvObjectType, float, float, Optional[str], Optional[int]]:
        """Values carried by the binary record (everything except ``id``)."""
        return (self.type, self.x, self.y, self.color, self.size)

    @property
    def style(self) -> EnvObjectStyle:
        return ENV_OBJECT_STYLES[self.type]

    def display_color(self) -> str:
        """Stored color, or the catalog default for this kind."""
        return self.color or self.style.default_color

    def display_size(self) -> int:
        """Stored size, or the catalog default for this kind."""
        return self.size if self.size is not None else self.style.default_size


@dataclass
class MapState:
    """Complete state of an editor map snapshot.

    ``cell_backgrounds`` and ``cell_water`` are either ``None`` (all default /
    no water) or hold exactly ``grid_width * grid_height`` entries.
    """

    grid_width: int = 16
    grid_height: int = 16
    cell_backgrounds: Optional[list[int]] = None
    cell_water: Optional[list[bool]] = None
    tokens: list[Token] = field(default_factory=list)
    environment_objects: list[EnvObject] = field(default_factory=list)
    fog_revealed_areas: set[Cell] = field(default_factory=set)

    def __post_init__(self) -> None:
        """Validate grid dimensions and per-cell array lengths."""
        if self.grid_width < 0 or self.grid_height < 0:
            raise ValueError(
                f"Invalid grid size: {self.grid_width}x{self.grid_height}"
            )
        for name in ("cell_backgrounds", "cell_water"):
            cells = getattr(self, name)
            if cells is not None and len(cells) != self.cell_count:
                raise ValueError(
                    f"{name} has {len(cells)} entries, expected {self.cell_count}"
                )

    @property
    def cell_count(self) -> int:
        """Number of cells in the grid."""
        return self.grid_width * self.grid_height

    def cell_index(self, grid_x: int, grid_y: int) -> int:
        """Row-major index of a cell.

        Raises:
            IndexError: If the cell is outside the grid
        """
        if not (0 <= grid_x < self.grid_width and 0 <= grid_y < self.grid_height):
            raise IndexError(f"Cell ({grid_x}, {grid_y}) outside {self.grid_width}x{self.grid_height} grid")
        return grid_y * self.grid_width + grid_x

    def has_custom_backgrounds(self) -> bool:
        """Check if any cell uses a non-default background."""
        return self.cell_backgrounds is not None and any(self.cell_backgrounds)

    def has_water(self) -> bool:
        """Check if any cell is water."""
        return self.cell_water is not None and any(self.cell_water)

    def background_at(self, grid_x: int, grid_y: int) -> int:
        """Background value of a cell (0 when backgrounds are absent)."""
        index = self.cell_index(grid_x, grid_y)
        return self.cell_backgrounds[index] if self.cell_backgrounds is not None else 0

    def set_background(self, grid_x: int, grid_y: int, value: int) -> None:
        """Set background value of a cell, materializing the array if needed."""
        index = self.cell_index(grid_x, grid_y)
        if self.cell_backgrounds is None:
            self.cell_backgrounds = [0] * self.cell_count
        self.cell_backgrounds[index] = value & MAX_TERRAIN_VALUE

    def is_water(self, grid_x: int, grid_y: int) -> bool:
        """Check if a cell is water."""
        index = self.cell_index(grid_x, grid_y)
        return self.cell_water is not None and self.cell_water[index]

    def set_water(self, grid_x: int, grid_y: int, flag: bool) -> None:
        """Set water flag of a cell, materializing the array if needed."""
        index = self.cell_index(grid_x, grid_y)
        if self.cell_water is None:
            self.cell_water = [False] * self.cell_count
        self.cell_water[index] = flag


@dataclass
class Battlemap:
    """Shared battlemap of a game session as exchanged with the server.

    Zoom and pan are deliberately absent: they are per-client view state.
    """

    grid_size: int = 10
    canvas_width: int = 512
    canvas_height: int = 512
    map_image_url: Optional[str] = None
    tokens: list[Token] = field(default_factory=list)
    fog_revealed_areas: set[Cell] = field(default_factory=set)
