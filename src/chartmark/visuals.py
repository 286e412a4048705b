"""
ChartMark Visuals - Render handles handed to the host canvas

A Visual is the geometry a strategy produced, expressed in chart
coordinates. The canvas converts it to pixels when it renders. Visuals are
compared by identity: two visuals with the same geometry are still two
different handles.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple

from .geometry import Point, Style

Bounds = Tuple[float, float, float, float]


class VisualKind(Enum):
    """Primitive types a canvas knows how to render."""
    SEGMENT = "segment"        # points = (start, end)
    HORIZONTAL = "horizontal"  # points = (anchor,), sweeps full x-axis at anchor.y
    VERTICAL = "vertical"      # points = (anchor,), sweeps full y-axis at anchor.x
    RECTANGLE = "rectangle"    # points = (min corner, max corner)
    ELLIPSE = "ellipse"        # points = (center,), radii = (rx, ry)
    GROUP = "group"            # children rendered in order


@dataclass(eq=False)
class Visual:
    """
    Renderable geometry owned by the host canvas.

    Attributes:
        kind: Primitive type
        points: Defining points in chart coordinates (see VisualKind)
        style: Stroke/fill style
        radii: Ellipse radii in chart units (x, y)
        label: Optional text drawn next to the primitive
        children: Sub-visuals for GROUP
        emphasized: Drawn with a heavier stroke (selection highlight)
    """
    kind: VisualKind
    points: Tuple[Point, ...] = ()
    style: Style = field(default_factory=Style)
    radii: Tuple[float, float] = (0.0, 0.0)
    label: str = ""
    children: List["Visual"] = field(default_factory=list)
    emphasized: bool = False

    def bounds(self) -> Bounds:
        """
        Axis-aligned extent in chart units.

        Returns:
            (min_x, min_y, max_x, max_y); infinite along the swept axis of
            horizontal and vertical lines.
        """
        if self.kind == VisualKind.GROUP:
            if not self.children:
                return (math.inf, math.inf, -math.inf, -math.inf)
            boxes = [child.bounds() for child in self.children]
            return (
                min(b[0] for b in boxes),
                min(b[1] for b in boxes),
                max(b[2] for b in boxes),
                max(b[3] for b in boxes),
            )

        if self.kind == VisualKind.HORIZONTAL:
            y = self.points[0].y
            return (-math.inf, y, math.inf, y)

        if self.kind == VisualKind.VERTICAL:
            x = self.points[0].x
            return (x, -math.inf, x, math.inf)

        if self.kind == VisualKind.ELLIPSE:
            c = self.points[0]
            rx, ry = self.radii
            return (c.x - rx, c.y - ry, c.x + rx, c.y + ry)

        xs = [p.x for p in self.points]
        ys = [p.y for p in self.points]
        return (min(xs), min(ys), max(xs), max(ys))

    def set_emphasis(self, emphasized: bool):
        """Apply (or clear) the selection highlight on this visual and its children."""
        self.emphasized = emphasized
        for child in self.children:
            child.set_emphasis(emphasized)

    def iter_primitives(self):
        """Yield every non-group visual in render order."""
        if self.kind == VisualKind.GROUP:
            for child in self.children:
                yield from child.iter_primitives()
        else:
            yield self
