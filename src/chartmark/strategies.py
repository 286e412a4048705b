"""
ChartMark Draw Strategies - One strategy per drawable shape kind

Architecture:
┌──────────────────────────────────────────────────────────────────┐
│                      STRATEGY REGISTRY                            │
├──────────────────────────────────────────────────────────────────┤
│                                                                   │
│   ShapeKind ──► StrategyRegistry.get(kind) ──► DrawStrategy       │
│                                                   │               │
│        create_preview(start, end) ◄───────────────┤               │
│        create_final(start, end, style) ◄──────────┘               │
│                                                                   │
│   Unknown / reserved kind ──► NoopStrategy (returns None)         │
│                                                                   │
└──────────────────────────────────────────────────────────────────┘

Strategies are stateless: both factory methods are pure functions of the
two anchor points. Adding a kind means registering a strategy; the
interaction state machine and the shape manager never change.
"""

import math
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from .geometry import (
    FINAL_STYLES,
    PREVIEW_FILL_STYLE,
    PREVIEW_STYLE,
    Point,
    ShapeKind,
    Style,
)
from .visuals import Visual, VisualKind


class DrawStrategy(ABC):
    """
    Turns a pair of anchor points into a visual.

    Subclasses set `kind` and implement `_build`. The preview uses a fixed
    low-emphasis style; the final visual uses the kind's style unless the
    caller passes one (e.g. when a saved document is loaded).
    """

    kind: ShapeKind = ShapeKind.NONE
    fillable: bool = False

    @property
    def final_style(self) -> Style:
        return FINAL_STYLES.get(self.kind, Style())

    @property
    def preview_style(self) -> Style:
        return PREVIEW_FILL_STYLE if self.fillable else PREVIEW_STYLE

    def create_preview(self, start: Point, end: Point) -> Optional[Visual]:
        return self._build(start, end, self.preview_style, preview=True)

    def create_final(self, start: Point, end: Point, style: Optional[Style] = None) -> Optional[Visual]:
        return self._build(start, end, style or self.final_style, preview=False)

    @abstractmethod
    def _build(self, start: Point, end: Point, style: Style, preview: bool) -> Optional[Visual]:
        pass

    def describe(self, start: Point, end: Point) -> str:
        """Status text shown while dragging."""
        return ""


class NoopStrategy(DrawStrategy):
    """Fallback for kinds without an implementation. Produces nothing."""

    def __init__(self, kind: ShapeKind = ShapeKind.NONE):
        self.kind = kind

    def _build(self, start: Point, end: Point, style: Style, preview: bool) -> Optional[Visual]:
        return None


class TrendLineStrategy(DrawStrategy):
    kind = ShapeKind.TREND_LINE

    def _build(self, start, end, style, preview):
        return Visual(kind=VisualKind.SEGMENT, points=(start, end), style=style)

    def describe(self, start, end):
        dx = end.x - start.x
        dy = end.y - start.y
        length = math.hypot(dx, dy)
        angle = math.degrees(math.atan2(dy, dx))
        return f"Length: {length:.2f}, Angle: {angle:.1f}°"


class HorizontalLineStrategy(DrawStrategy):
    kind = ShapeKind.HORIZONTAL_LINE

    def _build(self, start, end, style, preview):
        return Visual(kind=VisualKind.HORIZONTAL, points=(end,), style=style)

    def describe(self, start, end):
        return f"Price: {end.y:.2f}"


class VerticalLineStrategy(DrawStrategy):
    kind = ShapeKind.VERTICAL_LINE

    def _build(self, start, end, style, preview):
        return Visual(kind=VisualKind.VERTICAL, points=(end,), style=style)

    def describe(self, start, end):
        return f"Time: {end.x:.2f}"


class RectangleStrategy(DrawStrategy):
    kind = ShapeKind.RECTANGLE
    fillable = True

    def _build(self, start, end, style, preview):
        lo = Point(min(start.x, end.x), min(start.y, end.y))
        hi = Point(max(start.x, end.x), max(start.y, end.y))
        return Visual(kind=VisualKind.RECTANGLE, points=(lo, hi), style=style)

    def describe(self, start, end):
        return f"Width: {abs(end.x - start.x):.2f}, Height: {abs(end.y - start.y):.2f}"


def ellipse_from_anchors(start: Point, end: Point) -> Tuple[Point, float, float]:
    """Center and (rx, ry) of the ellipse inscribed in the anchors' box."""
    center = Point((start.x + end.x) / 2, (start.y + end.y) / 2)
    rx = abs(end.x - start.x) / 2
    ry = abs(end.y - start.y) / 2
    return center, rx, ry


class CircleStrategy(DrawStrategy):
    """Ellipse, so the shape survives non-uniform x/y axis scaling."""
    kind = ShapeKind.CIRCLE
    fillable = True

    def _build(self, start, end, style, preview):
        center, rx, ry = ellipse_from_anchors(start, end)
        return Visual(kind=VisualKind.ELLIPSE, points=(center,), radii=(rx, ry), style=style)

    def describe(self, start, end):
        _, rx, ry = ellipse_from_anchors(start, end)
        return f"RadiusX: {rx:.2f}, RadiusY: {ry:.2f}"


FIBONACCI_LEVELS = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)
FIBONACCI_LEVEL_COLORS = (
    "#FF0000", "#FFA500", "#FFFF00", "#00FF00", "#00FFFF", "#0000FF", "#800080",
)


def fibonacci_levels(start: Point, end: Point) -> List[Tuple[float, float]]:
    """
    Retracement prices for the move start -> end.

    Level 0.0 sits at the end of the move and 1.0 back at its start.

    Returns:
        List of (ratio, price)
    """
    move = start.y - end.y
    return [(ratio, end.y + move * ratio) for ratio in FIBONACCI_LEVELS]


class FibonacciRetracementStrategy(DrawStrategy):
    """
    Anchor line plus one labelled horizontal segment per retracement ratio.

    Each level spans the anchors' x-range and carries its own color; the
    preview draws the same geometry in the preview gray.
    """
    kind = ShapeKind.FIBONACCI_RETRACEMENT

    def _build(self, start, end, style, preview):
        x_lo = min(start.x, end.x)
        x_hi = max(start.x, end.x)

        children = [Visual(kind=VisualKind.SEGMENT, points=(start, end), style=style)]
        for i, (ratio, price) in enumerate(fibonacci_levels(start, end)):
            if preview:
                level_style = style
            else:
                level_style = Style(
                    line_color=FIBONACCI_LEVEL_COLORS[i % len(FIBONACCI_LEVEL_COLORS)],
                    line_width=max(1.0, style.line_width - 1),
                    opacity=style.opacity,
                )
            children.append(Visual(
                kind=VisualKind.SEGMENT,
                points=(Point(x_lo, price), Point(x_hi, price)),
                style=level_style,
                label=f"{ratio * 100:.1f}% ({price:.2f})",
            ))

        return Visual(kind=VisualKind.GROUP, points=(start, end), style=style, children=children)

    def describe(self, start, end):
        return f"Range: {abs(end.y - start.y):.2f}"


class StrategyRegistry:
    """
    Maps shape kinds to strategies.

    Lookups never fail: kinds with no registered strategy resolve to a
    NoopStrategy so callers can treat them uniformly.
    """

    def __init__(self, strategies: Optional[List[DrawStrategy]] = None):
        self._strategies: Dict[ShapeKind, DrawStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    def register(self, strategy: DrawStrategy):
        """Register (or replace) the strategy for `strategy.kind`."""
        if strategy.kind == ShapeKind.NONE:
            raise ValueError("Cannot register a strategy for ShapeKind.NONE")
        self._strategies[strategy.kind] = strategy

    def get(self, kind: ShapeKind) -> DrawStrategy:
        strategy = self._strategies.get(kind)
        if strategy is None:
            return NoopStrategy(kind)
        return strategy

    def is_registered(self, kind: ShapeKind) -> bool:
        return kind in self._strategies

    def resolve(self, name: str) -> Optional[ShapeKind]:
        """Registered kind whose persisted name is exactly `name`, else None."""
        for kind in self._strategies:
            if kind.value == name:
                return kind
        return None

    @property
    def kinds(self) -> List[ShapeKind]:
        return list(self._strategies.keys())


def default_registry() -> StrategyRegistry:
    """Registry with every implemented kind."""
    return StrategyRegistry([
        TrendLineStrategy(),
        HorizontalLineStrategy(),
        VerticalLineStrategy(),
        RectangleStrategy(),
        CircleStrategy(),
        FibonacciRetracementStrategy(),
    ])
