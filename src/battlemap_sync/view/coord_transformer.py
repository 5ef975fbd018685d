"""Coordinate transformations for the battlemap grid.

This module handles conversions between the three coordinate spaces used
by a battlemap:

- viewport: pixels inside the visible widget, affected by pan and zoom
- canvas: base (unscaled) map pixels; token positions are stored in this space
- grid: integer cell indices

All functions are pure.
"""

import math

Point = tuple[float, float]


def cell_size(dimension: float, grid_count: int) -> float:
    """Size of one cell along an axis.

    Args:
        dimension: Canvas width or height in pixels
        grid_count: Number of cells along that axis

    Returns:
        Cell width or height in canvas pixels
    """
    return dimension / grid_count


def viewport_to_canvas(
    viewport_x: float, viewport_y: float, pan_x: float, pan_y: float, zoom: float
) -> Point:
    """Convert viewport coordinates to base canvas coordinates."""
    return ((viewport_x - pan_x) / zoom, (viewport_y - pan_y) / zoom)


def canvas_to_viewport(
    canvas_x: float, canvas_y: float, pan_x: float, pan_y: float, zoom: float
) -> Point:
    """Convert base canvas coordinates to viewport coordinates."""
    return (pan_x + canvas_x * zoom, pan_y + canvas_y * zoom)


def snap_to_grid(coord: float, size: float) -> float:
    """Snap a coordinate to the center of the nearest grid cell.

    The previous, current and next cell centers are all compared so that
    coordinates just below a cell boundary (including negative ones) snap
    to the correct neighbour.

    Args:
        coord: Coordinate in base canvas pixels
        size: Cell size along the same axis

    Returns:
        Center of the nearest cell
    """
    cell_index = math.floor(coord / size)

    current_center = cell_index * size + size / 2
    next_center = (cell_index + 1) * size + size / 2
    prev_center = (cell_index - 1) * size + size / 2

    dist_current = abs(coord - current_center)
    dist_next = abs(coord - next_center)
    dist_prev = abs(coord - prev_center)

    if dist_prev < dist_current and dist_prev < dist_next:
        return prev_center
    if dist_next < dist_current:
        return next_center
    return current_center


def cell_at(coord: float, size: float) -> int:
    """Index of the cell containing a coordinate (may be negative)."""
    return math.floor(coord / size)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp a value into ``[low, high]``."""
    return max(low, min(high, value))


class GridTransformer:
    """Grid geometry for a canvas of fixed size split into equal cells.

    Cells need not be square: width and height use separate divisors.
    """

    def __init__(self, canvas_width: float, canvas_height: float, grid_size: int):
        """Initialize the transformer.

        Args:
            canvas_width: Canvas width in base pixels
            canvas_height: Canvas height in base pixels
            grid_size: Number of cells along each axis
        """
        self.canvas_width = canvas_width
        self.canvas_height = canvas_height
        self.grid_size = grid_size

    @property
    def cell_width(self) -> float:
        return cell_size(self.canvas_width, self.grid_size)

    @property
    def cell_height(self) -> float:
        return cell_size(self.canvas_height, self.grid_size)

    @property
    def token_size(self) -> float:
        """Token diameter: 75% of the average cell size."""
        return (self.canvas_width + self.canvas_height) / (2 * self.grid_size) * 0.75

    def snap_point(self, canvas_x: float, canvas_y: float) -> Point:
        """Snap a canvas point to the nearest cell center."""
        return (
            snap_to_grid(canvas_x, self.cell_width),
            snap_to_grid(canvas_y, self.cell_height),
        )

    def clamp_point(self, canvas_x: float, canvas_y: float) -> Point:
        """Clamp a canvas point to the canvas bounds."""
        return (
            clamp(canvas_x, 0.0, float(self.canvas_width)),
            clamp(canvas_y, 0.0, float(self.canvas_height)),
        )

    def cell_for_point(self, canvas_x: float, canvas_y: float) -> tuple[int, int]:
        """Grid cell containing a canvas point."""
        return (cell_at(canvas_x, self.cell_width), cell_at(canvas_y, self.cell_height))

    def contains_cell(self, grid_x: int, grid_y: int) -> bool:
        """Check if a cell lies inside the grid."""
        return 0 <= grid_x < self.grid_size and 0 <= grid_y < self.grid_size

    def cell_center(self, grid_x: int, grid_y: int) -> Point:
        """Canvas coordinates of a cell center."""
        return (
            grid_x * self.cell_width + self.cell_width / 2,
            grid_y * self.cell_height + self.cell_height / 2,
        )
