"""Shared builders for the ChartMark tests."""

from chartmark import (
    AddShapeCommand,
    ChartInteractions,
    DrawnShape,
    Modifier,
    OpenCVCanvas,
    Point,
    ShapeKind,
    ShapeManager,
    default_registry,
)


def make_canvas() -> OpenCVCanvas:
    """200x200 px canvas where 1 px == 1 chart unit (y flipped)."""
    return OpenCVCanvas(width=200, height=200, x_range=(0.0, 200.0), y_range=(0.0, 200.0))


def make_manager():
    canvas = make_canvas()
    manager = ShapeManager()
    manager.attach(canvas)
    return manager, canvas


def make_interactions(**kwargs):
    canvas = make_canvas()
    interactions = ChartInteractions(ShapeManager(), **kwargs)
    interactions.attach(canvas)
    return interactions, canvas


def make_shape(kind: ShapeKind, x1, y1, x2, y2) -> DrawnShape:
    strategy = default_registry().get(kind)
    start, end = Point(x1, y1), Point(x2, y2)
    return DrawnShape(
        kind=kind,
        anchor_start=start,
        anchor_end=end,
        style=strategy.final_style,
        visual=strategy.create_final(start, end),
    )


def add(manager, canvas, shape):
    manager.execute_command(AddShapeCommand(manager, shape, canvas))
    return shape


def pixel(canvas, x, y):
    """Pixel position of a chart coordinate."""
    return canvas.coordinate_to_pixel(Point(x, y))


def drag(interactions, canvas, kind, start, end, modifiers=Modifier.NONE):
    """Arm `kind` and drag from chart point `start` to `end`."""
    interactions.set_draw_mode(kind)
    interactions.pointer_down(*pixel(canvas, *start), modifiers)
    interactions.pointer_move(*pixel(canvas, *end), modifiers)
    return interactions.pointer_up(*pixel(canvas, *end), modifiers)


def assert_attach_consistent(manager, canvas, previews=()):
    """Every managed shape's visual is on the canvas, and nothing else is."""
    managed = [s.visual for s in manager.shapes]
    on_canvas = [v for v in canvas.visuals if not any(v is p for p in previews)]
    assert len(managed) == len(on_canvas), f"{len(managed)} managed vs {len(on_canvas)} attached"
    for visual in managed:
        assert canvas.contains(visual), "Managed shape's visual is not attached"
    for visual in on_canvas:
        assert any(visual is m for m in managed), "Canvas holds an orphaned visual"
