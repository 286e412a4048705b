"""
ChartMark - Interactive Annotation Engine for Price/Time Charts

Draw, select and persist geometric annotations over a chart, with full
undo/redo and round-trip JSON persistence.

Features:
- Drag-to-draw state machine with a live preview
- Trend lines, horizontal/vertical levels, rectangles, ellipses, Fibonacci retracements
- Command-based undo/redo (linear history)
- Click and Ctrl-click selection with hit-test tolerance
- Snap to a price grid or to candle OHLC values
- Versioned JSON save/load

Quick Start:
    from chartmark import ChartInteractions, ShapeManager, OpenCVCanvas, ShapeKind

    canvas = OpenCVCanvas(width=960, height=540, x_range=(0, 100), y_range=(90, 110))
    interactions = ChartInteractions(ShapeManager())
    interactions.attach(canvas)

    interactions.set_draw_mode(ShapeKind.RECTANGLE)
    interactions.pointer_down(100, 100)
    interactions.pointer_move(200, 150)
    interactions.pointer_up(300, 200)

    interactions.undo()
    interactions.redo()
    interactions.save_to_file("chart_annotations.json")

    frame = canvas.render()   # numpy BGR image
"""

__version__ = "1.0.0"

from .errors import InvalidStateError

from .geometry import (
    Point,
    ShapeKind,
    Style,
    RESERVED_KINDS,
    FINAL_STYLES,
    PREVIEW_STYLE,
)

from .visuals import Visual, VisualKind

from .strategies import (
    DrawStrategy,
    NoopStrategy,
    TrendLineStrategy,
    HorizontalLineStrategy,
    VerticalLineStrategy,
    RectangleStrategy,
    CircleStrategy,
    FibonacciRetracementStrategy,
    StrategyRegistry,
    default_registry,
    fibonacci_levels,
)

from .snapping import SnapMode, Snapper

from .commands import Command, AddShapeCommand, DeleteShapeCommand

from .shape_manager import DrawnShape, ShapeManager

from .canvas import HostCanvas, OpenCVCanvas

from .config import EngineConfig

from .persistence import (
    ShapeRecord,
    ChartAnnotations,
    AnnotationCodec,
    read_annotations,
    write_annotations,
)

from .interactions import ChartInteractions, InteractionState, Modifier

__all__ = [
    # Version
    "__version__",

    # Errors
    "InvalidStateError",

    # Geometry
    "Point",
    "ShapeKind",
    "Style",
    "RESERVED_KINDS",
    "FINAL_STYLES",
    "PREVIEW_STYLE",
    "Visual",
    "VisualKind",

    # Strategies
    "DrawStrategy",
    "NoopStrategy",
    "TrendLineStrategy",
    "HorizontalLineStrategy",
    "VerticalLineStrategy",
    "RectangleStrategy",
    "CircleStrategy",
    "FibonacciRetracementStrategy",
    "StrategyRegistry",
    "default_registry",
    "fibonacci_levels",

    # Snapping
    "SnapMode",
    "Snapper",

    # Shapes & history
    "Command",
    "AddShapeCommand",
    "DeleteShapeCommand",
    "DrawnShape",
    "ShapeManager",

    # Canvas
    "HostCanvas",
    "OpenCVCanvas",

    # Config
    "EngineConfig",

    # Persistence
    "ShapeRecord",
    "ChartAnnotations",
    "AnnotationCodec",
    "read_annotations",
    "write_annotations",

    # Interactions
    "ChartInteractions",
    "InteractionState",
    "Modifier",
]
