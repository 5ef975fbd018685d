"""
Battlemap data models and editing session.
"""

from .models import (
    Cell,
    Token,
    EnvObject,
    EnvObjectType,
    EnvObjectStyle,
    ENV_OBJECT_STYLES,
    TERRAIN_TEXTURES,
    MapState,
    Battlemap,
    terrain_name,
    clamp_grid_size,
)
from .session import BattlemapSession, TokenDrag

__all__ = [
    "Cell",
    "Token",
    "EnvObject",
    "EnvObjectType",
    "EnvObjectStyle",
    "ENV_OBJECT_STYLES",
    "TERRAIN_TEXTURES",
    "MapState",
    "Battlemap",
    "terrain_name",
    "clamp_grid_size",
    "BattlemapSession",
    "TokenDrag",
]
