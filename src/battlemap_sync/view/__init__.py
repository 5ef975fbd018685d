"""Grid geometry, viewport and fog-of-war state for battlemap views."""

from .coord_transformer import (
    GridTransformer,
    cell_size,
    cell_at,
    snap_to_grid,
    viewport_to_canvas,
    canvas_to_viewport,
)
from .viewport import (
    Viewport,
    ViewportState,
    WheelInput,
    PanStart,
    Size,
    MIN_ZOOM,
    MAX_ZOOM,
    ZOOM_STEP,
)
from .fog_of_war import FogOfWarSet, FogMode

__all__ = [
    "GridTransformer",
    "cell_size",
    "cell_at",
    "snap_to_grid",
    "viewport_to_canvas",
    "canvas_to_viewport",
    "Viewport",
    "ViewportState",
    "WheelInput",
    "PanStart",
    "Size",
    "MIN_ZOOM",
    "MAX_ZOOM",
    "ZOOM_STEP",
    "FogOfWarSet",
    "FogMode",
]
