"""
ChartMark Selection - Hit-testing and click-selection rules

Hit test: the point must fall inside the shape's bounding box inflated by a
pixel tolerance (converted to chart units per axis) plus a small share of
the box's own size, which keeps thin strokes clickable.
"""

import math
from typing import Iterable, Optional, Sequence, Tuple

from .geometry import Point
from .shape_manager import DrawnShape

DEFAULT_TOLERANCE_PX = 10.0
DEFAULT_MARGIN_RATIO = 0.02


def tolerance_in_chart_units(canvas, px: float, py: float, tolerance_px: float) -> Tuple[float, float]:
    """Convert a pixel tolerance around (px, py) into (dx, dy) chart units."""
    origin = canvas.pixel_to_coordinate(px, py)
    shifted = canvas.pixel_to_coordinate(px + tolerance_px, py + tolerance_px)
    return abs(shifted.x - origin.x), abs(shifted.y - origin.y)


def hit_test(
    shape: DrawnShape,
    point: Point,
    tolerance: Tuple[float, float],
    margin_ratio: float = DEFAULT_MARGIN_RATIO
) -> bool:
    min_x, min_y, max_x, max_y = shape.visual.bounds()
    width = max_x - min_x
    height = max_y - min_y
    # Infinite extents (horizontal/vertical lines) get no proportional margin
    margin_x = width * margin_ratio if math.isfinite(width) else 0.0
    margin_y = height * margin_ratio if math.isfinite(height) else 0.0

    tol_x, tol_y = tolerance
    return (
        min_x - tol_x - margin_x <= point.x <= max_x + tol_x + margin_x
        and min_y - tol_y - margin_y <= point.y <= max_y + tol_y + margin_y
    )


def find_shape_at(
    shapes: Sequence[DrawnShape],
    point: Point,
    tolerance: Tuple[float, float],
    margin_ratio: float = DEFAULT_MARGIN_RATIO
) -> Optional[DrawnShape]:
    """Topmost visible shape under `point`; later shapes occlude earlier ones."""
    for shape in reversed(shapes):
        if not shape.is_visible:
            continue
        if hit_test(shape, point, tolerance, margin_ratio):
            return shape
    return None


def apply_click(shapes: Iterable[DrawnShape], clicked: Optional[DrawnShape], multi: bool):
    """
    Update selection for a click.

    - Plain click on a shape: toggle it, deselect every other shape
    - Multi-select click on a shape: toggle only that shape
    - Plain click on empty space: deselect everything
    - Multi-select click on empty space: no change
    """
    if clicked is not None:
        if not multi:
            for shape in shapes:
                if shape is not clicked and shape.is_selected:
                    shape.set_selected(False)
        clicked.set_selected(not clicked.is_selected)
    elif not multi:
        for shape in shapes:
            if shape.is_selected:
                shape.set_selected(False)
