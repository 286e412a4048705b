"""
ChartMark Geometry - Shared primitive types

Points live in chart space: x is the time-like axis, y the price-like axis.
Colors are stored as "#RRGGBB" hex strings (the persisted form) and
converted to OpenCV BGR tuples only at render time.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class Point:
    """Immutable (x, y) in chart coordinates."""
    x: float
    y: float

    def to_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


class ShapeKind(Enum):
    """
    Drawable shape kinds.

    The value is the persisted kind name and is matched case-sensitively
    when a document is loaded.
    """
    NONE = "None"
    TREND_LINE = "TrendLine"
    HORIZONTAL_LINE = "HorizontalLine"
    VERTICAL_LINE = "VerticalLine"
    RECTANGLE = "Rectangle"
    CIRCLE = "Circle"
    FIBONACCI_RETRACEMENT = "FibonacciRetracement"
    # Reserved: declared, no strategy yet
    FIBONACCI_EXTENSION = "FibonacciExtension"
    CHANNEL = "Channel"
    TRIANGLE = "Triangle"
    TEXT = "Text"


RESERVED_KINDS = frozenset({
    ShapeKind.FIBONACCI_EXTENSION,
    ShapeKind.CHANNEL,
    ShapeKind.TRIANGLE,
    ShapeKind.TEXT,
})


@dataclass(frozen=True)
class Style:
    """
    Stroke and fill of a visual.

    Attributes:
        line_color: Stroke color as "#RRGGBB"
        line_width: Stroke width in pixels
        fill_color: Fill color as "#RRGGBB", or None for unfilled shapes
        fill_alpha: Fill transparency (0-255)
        opacity: Whole-visual opacity, render only (never persisted)
    """
    line_color: str = "#808080"
    line_width: float = 1.0
    fill_color: Optional[str] = None
    fill_alpha: int = 25
    opacity: float = 1.0

    def with_width(self, line_width: float) -> "Style":
        return replace(self, line_width=line_width)


def hex_to_bgr(color: str) -> Tuple[int, int, int]:
    """Convert "#RRGGBB" to an OpenCV BGR tuple."""
    value = color.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Invalid color: {color!r}")
    r = int(value[0:2], 16)
    g = int(value[2:4], 16)
    b = int(value[4:6], 16)
    return (b, g, r)


def bgr_to_hex(color: Tuple[int, int, int]) -> str:
    b, g, r = color
    return f"#{r:02X}{g:02X}{b:02X}"


PREVIEW_COLOR = "#808080"

# Gray, width 1, half transparent
PREVIEW_STYLE = Style(line_color=PREVIEW_COLOR, line_width=1.0, opacity=0.5)
PREVIEW_FILL_STYLE = Style(
    line_color=PREVIEW_COLOR,
    line_width=1.0,
    fill_color=PREVIEW_COLOR,
    fill_alpha=25,
    opacity=0.5,
)

FINAL_STYLES = {
    ShapeKind.TREND_LINE: Style(line_color="#0000FF", line_width=2.0),
    ShapeKind.HORIZONTAL_LINE: Style(line_color="#008000", line_width=2.0),
    ShapeKind.VERTICAL_LINE: Style(line_color="#FFA500", line_width=2.0),
    ShapeKind.RECTANGLE: Style(line_color="#800080", line_width=2.0, fill_color="#800080", fill_alpha=25),
    ShapeKind.CIRCLE: Style(line_color="#00FFFF", line_width=2.0, fill_color="#00FFFF", fill_alpha=25),
    ShapeKind.FIBONACCI_RETRACEMENT: Style(line_color="#FFD700", line_width=2.0),
}
