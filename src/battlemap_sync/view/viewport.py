"""Pan and zoom state of a battlemap view.

Viewport state is local to one client. It is never serialized into a map
snapshot and never overwritten by data received from the server.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .coord_transformer import Point, clamp, viewport_to_canvas, canvas_to_viewport

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
ZOOM_STEP = 0.1
# Fraction of the viewport the canvas may be dragged off-screen
PAN_OVERFLOW = 0.5


@dataclass(frozen=True)
class ViewportState:
    """Immutable snapshot of zoom and pan."""

    zoom_level: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0


@dataclass(frozen=True)
class Size:
    """Width and height in pixels."""

    width: float
    height: float


@dataclass(frozen=True)
class WheelInput:
    """Mouse wheel event reduced to what zooming needs.

    Attributes:
        delta_y: Wheel delta; positive scrolls down (zoom out)
        x: Cursor X relative to the viewport's top-left corner
        y: Cursor Y relative to the viewport's top-left corner
    """

    delta_y: float
    x: float
    y: float


@dataclass(frozen=True)
class PanStart:
    """Pointer position and pan offset captured when a pan drag starts."""

    pointer_x: float
    pointer_y: float
    pan_x: float
    pan_y: float


class Viewport:
    """Mutable pan/zoom controller for one view.

    Centering happens once: after ``initialized`` is set, reloading map
    data must not recenter, or the user's pan/zoom would be discarded.
    """

    def __init__(self, state: Optional[ViewportState] = None):
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        initial = state or ViewportState()
        self.zoom_level = clamp(initial.zoom_level, MIN_ZOOM, MAX_ZOOM)
        self.pan_x = initial.pan_x
        self.pan_y = initial.pan_y
        self.initialized = False

    @property
    def state(self) -> ViewportState:
        """Current state as an immutable snapshot."""
        return ViewportState(self.zoom_level, self.pan_x, self.pan_y)

    def restore(self, state: ViewportState) -> None:
        """Replace zoom and pan with a previously captured snapshot."""
        self.zoom_level = clamp(state.zoom_level, MIN_ZOOM, MAX_ZOOM)
        self.pan_x = state.pan_x
        self.pan_y = state.pan_y

    def to_canvas(self, viewport_x: float, viewport_y: float) -> Point:
        """Convert a viewport point to canvas coordinates."""
        return viewport_to_canvas(viewport_x, viewport_y, self.pan_x, self.pan_y, self.zoom_level)

    def to_viewport(self, canvas_x: float, canvas_y: float) -> Point:
        """Convert a canvas point to viewport coordinates."""
        return canvas_to_viewport(canvas_x, canvas_y, self.pan_x, self.pan_y, self.zoom_level)

    def center_map(self, viewport: Size, canvas: Size) -> None:
        """Center the canvas inside the viewport at the current zoom."""
        self.pan_x = (viewport.width - canvas.width * self.zoom_level) / 2
        self.pan_y = (viewport.height - canvas.height * self.zoom_level) / 2
        self.initialized = True
        self.logger.debug(f"Map centered: pan=({self.pan_x:.1f}, {self.pan_y:.1f})")

    def ensure_centered(self, viewport: Size, canvas: Size) -> bool:
        """Center the map on first use only.

        Returns:
            True if the map was centered by this call
        """
        if self.initialized:
            return False
        self.center_map(viewport, canvas)
        return True

    def set_zoom(self, zoom: float) -> None:
        """Set zoom directly, clamped to the allowed range."""
        self.zoom_level = clamp(zoom, MIN_ZOOM, MAX_ZOOM)

    def handle_wheel(self, event: WheelInput, viewport: Size, canvas: Size) -> bool:
        """Zoom one step toward the cursor.

        The canvas point under the cursor stays under the cursor.

        Returns:
            True if the zoom level changed
        """
        delta = -ZOOM_STEP if event.delta_y > 0 else ZOOM_STEP
        # Keep repeated steps on exact tenths
        new_zoom = round(clamp(self.zoom_level + delta, MIN_ZOOM, MAX_ZOOM), 6)

        if new_zoom == self.zoom_level:
            return False

        canvas_x, canvas_y = self.to_canvas(event.x, event.y)

        self.zoom_level = new_zoom
        self.pan_x = event.x - canvas_x * new_zoom
        self.pan_y = event.y - canvas_y * new_zoom

        self.constrain_pan(viewport, canvas)
        return True

    def start_pan(self, pointer_x: float, pointer_y: float) -> PanStart:
        """Capture the pan origin for a drag."""
        return PanStart(pointer_x, pointer_y, self.pan_x, self.pan_y)

    def update_pan(
        self,
        start: PanStart,
        pointer_x: float,
        pointer_y: float,
        viewport: Optional[Size] = None,
        canvas: Optional[Size] = None,
    ) -> None:
        """Apply the drag delta since ``start`` to the captured pan offset."""
        self.pan_x = start.pan_x + (pointer_x - start.pointer_x)
        self.pan_y = start.pan_y + (pointer_y - start.pointer_y)
        if viewport is not None and canvas is not None:
            self.constrain_pan(viewport, canvas)

    def constrain_pan(self, viewport: Size, canvas: Size) -> None:
        """Keep the canvas at most half a viewport off-screen on any side."""
        scaled_width = canvas.width * self.zoom_level
        scaled_height = canvas.height * self.zoom_level

        max_pan_x = viewport.width * PAN_OVERFLOW
        max_pan_y = viewport.height * PAN_OVERFLOW
        min_pan_x = viewport.width - scaled_width - viewport.width * PAN_OVERFLOW
        min_pan_y = viewport.height - scaled_height - viewport.height * PAN_OVERFLOW

        self.pan_x = clamp(self.pan_x, min_pan_x, max_pan_x)
        self.pan_y = clamp(self.pan_y, min_pan_y, max_pan_y)
