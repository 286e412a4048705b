"""
ChartMark Canvas - Host canvas boundary and an OpenCV implementation

The engine never draws by itself. It hands visuals to a HostCanvas, asks it
to map pixels to chart coordinates, and toggles its pan/zoom input while a
drawing tool is armed.

OpenCVCanvas renders visuals onto a numpy BGR frame with anti-aliased
OpenCV primitives:
- Chart -> pixel mapping from the visible x/y ranges (y grows upwards)
- Horizontal/vertical lines sweep the whole frame
- Fills and translucent previews are alpha-blended
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

import numpy as np
import cv2

from .errors import InvalidStateError
from .geometry import Point, hex_to_bgr
from .visuals import Visual, VisualKind


class HostCanvas(ABC):
    """Rendering and input surface the engine draws through."""

    @abstractmethod
    def attach(self):
        pass

    @abstractmethod
    def detach(self):
        pass

    @property
    @abstractmethod
    def is_attached(self) -> bool:
        pass

    @abstractmethod
    def pixel_to_coordinate(self, px: float, py: float) -> Point:
        pass

    @abstractmethod
    def coordinate_to_pixel(self, point: Point) -> Tuple[float, float]:
        pass

    @abstractmethod
    def add_visual(self, visual: Visual, index: Optional[int] = None):
        """Attach on top, or at `index` in drawing order."""
        pass

    @abstractmethod
    def remove_visual(self, visual: Visual) -> int:
        """Detach and return the visual's former index in drawing order."""
        pass

    @abstractmethod
    def contains(self, visual: Visual) -> bool:
        pass

    @property
    @abstractmethod
    def visuals(self) -> List[Visual]:
        pass

    @abstractmethod
    def refresh(self):
        pass

    @property
    @abstractmethod
    def input_enabled(self) -> bool:
        pass

    @abstractmethod
    def set_input_enabled(self, enabled: bool):
        """Enable/disable the host's own pan/zoom handling."""
        pass


class OpenCVCanvas(HostCanvas):
    """
    Host canvas backed by a numpy frame.

    Attributes:
        width, height: Frame size in pixels
        x_range: Visible (min, max) of the time axis
        y_range: Visible (min, max) of the price axis
        background: BGR fill for a fresh frame
    """

    LABEL_FONT = cv2.FONT_HERSHEY_SIMPLEX
    LABEL_SCALE = 0.4
    MAX_THICKNESS = 64
    # OpenCV shifts pixel coordinates left by 16 bits internally, and an
    # ellipse reaches center + axes
    PIXEL_LIMIT = 1 << 13

    def __init__(
        self,
        width: int = 960,
        height: int = 540,
        x_range: Tuple[float, float] = (0.0, 100.0),
        y_range: Tuple[float, float] = (0.0, 100.0),
        background: Tuple[int, int, int] = (24, 24, 24)
    ):
        if width <= 0 or height <= 0:
            raise ValueError(f"Invalid canvas size: {width}x{height}")
        self.width = width
        self.height = height
        self.background = background
        self.set_view(x_range, y_range)

        self._visuals: List[Visual] = []
        self._attached = False
        self._input_enabled = True
        self.frame = np.zeros((height, width, 3), dtype=np.uint8)
        self.refresh_count = 0
        self.logger = logging.getLogger("OpenCVCanvas")

    def set_view(self, x_range: Tuple[float, float], y_range: Tuple[float, float]):
        """Set the visible chart ranges (what pan/zoom would change)."""
        if x_range[1] <= x_range[0] or y_range[1] <= y_range[0]:
            raise ValueError(f"Invalid view ranges: x={x_range}, y={y_range}")
        self.x_range = (float(x_range[0]), float(x_range[1]))
        self.y_range = (float(y_range[0]), float(y_range[1]))

    # Lifecycle

    def attach(self):
        if self._attached:
            raise InvalidStateError("Canvas is already attached")
        self._attached = True

    def detach(self):
        """Release every visual still held and mark the canvas free."""
        self._visuals.clear()
        self._attached = False
        self._input_enabled = True

    @property
    def is_attached(self) -> bool:
        return self._attached

    # Coordinate mapping

    def pixel_to_coordinate(self, px: float, py: float) -> Point:
        x0, x1 = self.x_range
        y0, y1 = self.y_range
        x = x0 + (px / self.width) * (x1 - x0)
        y = y1 - (py / self.height) * (y1 - y0)
        return Point(x, y)

    def coordinate_to_pixel(self, point: Point) -> Tuple[float, float]:
        x0, x1 = self.x_range
        y0, y1 = self.y_range
        px = (point.x - x0) / (x1 - x0) * self.width
        py = (y1 - point.y) / (y1 - y0) * self.height
        return (px, py)

    def _to_pixel(self, point: Point) -> Tuple[int, int]:
        px, py = self.coordinate_to_pixel(point)
        limit = self.PIXEL_LIMIT
        return (int(round(float(np.clip(px, -limit, limit)))), int(round(float(np.clip(py, -limit, limit)))))

    def _segment_pixels(self, start: Point, end: Point) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
        """
        Pixel endpoints of a segment clipped to the drawable range.

        Clipping is parametric (Liang-Barsky) so the slope is kept. Returns
        None when the segment lies entirely outside.
        """
        x0, y0 = self.coordinate_to_pixel(start)
        x1, y1 = self.coordinate_to_pixel(end)
        dx, dy = x1 - x0, y1 - y0
        limit = float(self.PIXEL_LIMIT)
        t0, t1 = 0.0, 1.0
        for p, q in ((-dx, x0 + limit), (dx, limit - x0), (-dy, y0 + limit), (dy, limit - y0)):
            if p == 0:
                if q < 0:
                    return None
                continue
            t = q / p
            if p < 0:
                t0 = max(t0, t)
            else:
                t1 = min(t1, t)
            if t0 > t1:
                return None
        a = (int(round(x0 + t0 * dx)), int(round(y0 + t0 * dy)))
        b = (int(round(x0 + t1 * dx)), int(round(y0 + t1 * dy)))
        return a, b

    # Visuals

    def add_visual(self, visual: Visual, index: Optional[int] = None):
        if visual is None:
            raise ValueError("visual is required")
        if self.contains(visual):
            raise InvalidStateError("Visual is already attached to this canvas")
        if index is None:
            self._visuals.append(visual)
        else:
            self._visuals.insert(index, visual)

    def remove_visual(self, visual: Visual) -> int:
        for i, v in enumerate(self._visuals):
            if v is visual:
                del self._visuals[i]
                return i
        raise InvalidStateError("Visual is not attached to this canvas")

    def contains(self, visual: Visual) -> bool:
        return any(v is visual for v in self._visuals)

    @property
    def visuals(self) -> List[Visual]:
        return list(self._visuals)

    # Input

    @property
    def input_enabled(self) -> bool:
        return self._input_enabled

    def set_input_enabled(self, enabled: bool):
        self._input_enabled = enabled

    # Rendering

    def refresh(self):
        self.frame = self.render()
        self.refresh_count += 1

    def render(self, base: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Render all attached visuals.

        Args:
            base: Optional BGR frame to draw over (e.g. a candle chart);
                  copied, never modified

        Returns:
            New BGR frame
        """
        if base is not None:
            frame = base.copy()
        else:
            frame = np.full((self.height, self.width, 3), self.background, dtype=np.uint8)

        for visual in self._visuals:
            for primitive in visual.iter_primitives():
                frame = self._render_primitive(frame, primitive)
        return frame

    def _render_primitive(self, frame: np.ndarray, visual: Visual) -> np.ndarray:
        style = visual.style
        color = hex_to_bgr(style.line_color)
        thickness = min(max(1, int(round(style.line_width))), self.MAX_THICKNESS) + (1 if visual.emphasized else 0)

        overlay = frame.copy()

        if visual.kind == VisualKind.SEGMENT:
            endpoints = self._segment_pixels(visual.points[0], visual.points[1])
            if endpoints is not None:
                cv2.line(overlay, endpoints[0], endpoints[1], color, thickness, cv2.LINE_AA)

        elif visual.kind == VisualKind.HORIZONTAL:
            _, py = self._to_pixel(visual.points[0])
            cv2.line(overlay, (0, py), (self.width - 1, py), color, thickness, cv2.LINE_AA)

        elif visual.kind == VisualKind.VERTICAL:
            px, _ = self._to_pixel(visual.points[0])
            cv2.line(overlay, (px, 0), (px, self.height - 1), color, thickness, cv2.LINE_AA)

        elif visual.kind == VisualKind.RECTANGLE:
            p1 = self._to_pixel(visual.points[0])
            p2 = self._to_pixel(visual.points[1])
            if style.fill_color:
                overlay = self._blend_fill(
                    overlay, lambda img, c: cv2.rectangle(img, p1, p2, c, -1), style
                )
            cv2.rectangle(overlay, p1, p2, color, thickness, cv2.LINE_AA)

        elif visual.kind == VisualKind.ELLIPSE:
            center = self._to_pixel(visual.points[0])
            rx, ry = visual.radii
            # Radii scale independently on each axis
            ax = rx / (self.x_range[1] - self.x_range[0]) * self.width
            ay = ry / (self.y_range[1] - self.y_range[0]) * self.height
            axes = (
                int(round(float(np.clip(ax, 0, self.PIXEL_LIMIT)))),
                int(round(float(np.clip(ay, 0, self.PIXEL_LIMIT)))),
            )
            if style.fill_color:
                overlay = self._blend_fill(
                    overlay, lambda img, c: cv2.ellipse(img, center, axes, 0, 0, 360, c, -1, cv2.LINE_AA), style
                )
            cv2.ellipse(overlay, center, axes, 0, 0, 360, color, thickness, cv2.LINE_AA)

        if visual.label:
            anchor = self._to_pixel(visual.points[-1])
            cv2.putText(overlay, visual.label, (anchor[0] + 4, anchor[1] - 4),
                        self.LABEL_FONT, self.LABEL_SCALE, color, 1, cv2.LINE_AA)

        return self._apply_opacity(frame, overlay, style.opacity)

    @staticmethod
    def _blend_fill(frame: np.ndarray, draw, style) -> np.ndarray:
        """Draw a filled primitive at the style's fill alpha."""
        fill = frame.copy()
        draw(fill, hex_to_bgr(style.fill_color))
        alpha = max(0, min(255, style.fill_alpha)) / 255.0
        return cv2.addWeighted(fill, alpha, frame, 1.0 - alpha, 0)

    @staticmethod
    def _apply_opacity(frame: np.ndarray, overlay: np.ndarray, opacity: float) -> np.ndarray:
        """Blend overlay with opacity onto frame."""
        if opacity >= 1.0:
            return overlay
        return cv2.addWeighted(overlay, opacity, frame, 1.0 - opacity, 0)
