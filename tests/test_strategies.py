"""
Draw strategy tests: per-kind geometry, styles and registry behaviour.
"""

import math

import pytest

from chartmark import (
    CircleStrategy,
    DrawStrategy,
    FibonacciRetracementStrategy,
    HorizontalLineStrategy,
    Point,
    PREVIEW_STYLE,
    RectangleStrategy,
    RESERVED_KINDS,
    ShapeKind,
    Style,
    StrategyRegistry,
    TrendLineStrategy,
    VerticalLineStrategy,
    Visual,
    VisualKind,
    default_registry,
    fibonacci_levels,
)


def test_trend_line_keeps_anchors_verbatim():
    visual = TrendLineStrategy().create_final(Point(5, 9), Point(1, 2))
    assert visual.kind == VisualKind.SEGMENT
    assert visual.points == (Point(5, 9), Point(1, 2))
    assert visual.style.line_color == "#0000FF"
    assert visual.style.line_width == 2


def test_horizontal_and_vertical_lines_use_end_point():
    h = HorizontalLineStrategy().create_final(Point(1, 10), Point(4, 42))
    v = VerticalLineStrategy().create_final(Point(1, 10), Point(4, 42))

    assert h.kind == VisualKind.HORIZONTAL
    assert h.bounds()[1] == 42 and h.bounds()[3] == 42
    assert math.isinf(h.bounds()[0]) and math.isinf(h.bounds()[2])

    assert v.kind == VisualKind.VERTICAL
    assert v.bounds()[0] == 4 and v.bounds()[2] == 4
    assert math.isinf(v.bounds()[1])


def test_rectangle_normalizes_corners():
    visual = RectangleStrategy().create_final(Point(15, 3), Point(5, 12))
    assert visual.points == (Point(5, 3), Point(15, 12))
    assert visual.style.fill_color == "#800080"
    assert visual.style.fill_alpha == 25


def test_circle_is_ellipse_on_midpoint():
    visual = CircleStrategy().create_final(Point(0, 0), Point(10, 40))
    assert visual.kind == VisualKind.ELLIPSE
    assert visual.points == (Point(5, 20),)
    assert visual.radii == (5, 20), "Radii are half the absolute deltas per axis"
    assert visual.bounds() == (0, 0, 10, 40)


def test_preview_uses_low_emphasis_style():
    preview = TrendLineStrategy().create_preview(Point(0, 0), Point(1, 1))
    assert preview.style == PREVIEW_STYLE
    assert preview.style.line_width == 1
    assert preview.style.opacity < 1.0

    rect_preview = RectangleStrategy().create_preview(Point(0, 0), Point(1, 1))
    assert rect_preview.style.line_color == PREVIEW_STYLE.line_color
    assert rect_preview.style.fill_color is not None


def test_strategies_are_pure():
    strategy = CircleStrategy()
    a = strategy.create_final(Point(1, 2), Point(3, 8))
    b = strategy.create_final(Point(1, 2), Point(3, 8))
    assert a is not b, "Each call returns a fresh handle"
    assert a.points == b.points and a.radii == b.radii and a.style == b.style


def test_final_style_override():
    custom = Style(line_color="#123456", line_width=3.0)
    visual = TrendLineStrategy().create_final(Point(0, 0), Point(1, 1), custom)
    assert visual.style == custom


def test_fibonacci_levels_and_children():
    """
    Move from 100 down to 50.

    Assertions:
    - 0.0 level at the end price, 1.0 back at the start price
    - one labelled segment per level spanning the anchors' x-range
    - each level has its own color
    """
    start, end = Point(10, 100), Point(30, 50)
    levels = fibonacci_levels(start, end)
    assert [ratio for ratio, _ in levels] == [0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0]
    assert levels[0][1] == pytest.approx(50)
    assert levels[3][1] == pytest.approx(75)
    assert levels[-1][1] == pytest.approx(100)

    visual = FibonacciRetracementStrategy().create_final(start, end)
    assert visual.kind == VisualKind.GROUP
    anchor, *level_segments = visual.children
    assert anchor.points == (start, end)
    assert len(level_segments) == 7
    for segment, (ratio, price) in zip(level_segments, levels):
        assert segment.points[0].x == 10 and segment.points[1].x == 30
        assert segment.points[0].y == pytest.approx(price)
        assert segment.label.startswith(f"{ratio * 100:.1f}%")
    assert len({s.style.line_color for s in level_segments}) == 7
    assert visual.bounds() == (10, 50, 30, 100)


def test_fibonacci_preview_is_gray():
    preview = FibonacciRetracementStrategy().create_preview(Point(0, 0), Point(10, 10))
    colors = {p.style.line_color for p in preview.iter_primitives()}
    assert colors == {PREVIEW_STYLE.line_color}


def test_registry_returns_noop_for_reserved_kinds():
    registry = default_registry()
    for kind in RESERVED_KINDS:
        strategy = registry.get(kind)
        assert strategy.create_preview(Point(0, 0), Point(1, 1)) is None
        assert strategy.create_final(Point(0, 0), Point(1, 1)) is None
        assert registry.resolve(kind.value) is None


def test_registry_resolves_exact_names_only():
    registry = default_registry()
    assert registry.resolve("Rectangle") is ShapeKind.RECTANGLE
    assert registry.resolve("rectangle") is None
    assert registry.resolve("Unsupported") is None


def test_registry_accepts_new_kind():
    """A new kind is added by registration alone."""

    class TextStrategy(DrawStrategy):
        kind = ShapeKind.TEXT

        def _build(self, start, end, style, preview):
            return Visual(kind=VisualKind.SEGMENT, points=(start, start), style=style, label="note")

    registry = default_registry()
    registry.register(TextStrategy())
    assert registry.is_registered(ShapeKind.TEXT)
    assert registry.resolve("Text") is ShapeKind.TEXT
    assert registry.get(ShapeKind.TEXT).create_final(Point(1, 1), Point(2, 2)).label == "note"


class _NoneKindStrategy(DrawStrategy):
    kind = ShapeKind.NONE

    def _build(self, start, end, style, preview):
        return None


def test_registry_rejects_none_kind():
    with pytest.raises(ValueError):
        StrategyRegistry().register(_NoneKindStrategy())


def test_describe_texts():
    assert TrendLineStrategy().describe(Point(0, 0), Point(3, 4)).startswith("Length: 5.00")
    assert HorizontalLineStrategy().describe(Point(0, 0), Point(3, 4)) == "Price: 4.00"
    assert VerticalLineStrategy().describe(Point(0, 0), Point(3, 4)) == "Time: 3.00"
    assert RectangleStrategy().describe(Point(0, 0), Point(3, 4)) == "Width: 3.00, Height: 4.00"
    assert CircleStrategy().describe(Point(0, 0), Point(3, 4)) == "RadiusX: 1.50, RadiusY: 2.00"
    assert FibonacciRetracementStrategy().describe(Point(0, 10), Point(3, 4)) == "Range: 6.00"
