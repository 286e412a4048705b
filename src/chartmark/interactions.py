"""
ChartMark Interactions - Draw-mode state machine and host command surface

Turns pointer events into shapes:

    IDLE ──set_draw_mode(kind)──► ARMED ──pointer_down──► DRAGGING
     ▲                              ▲                        │
     │                              └────────cancel()────────┤
     └──────────pointer_up (commit, mode resets to NONE)─────┘

- IDLE: no tool armed; pointer_down selects shapes, host pan/zoom enabled
- ARMED: a tool is armed; host pan/zoom disabled
- DRAGGING: anchor recorded, a single preview visual follows the pointer

Modifier keys are passed with each event (Modifier flags): Shift forces
snapping for that event, Ctrl adds/removes a shape from the selection.
Previews are attached to the canvas directly and never reach the shape
manager, the history or saved documents.
"""

import logging
from enum import Enum, Flag, auto
from pathlib import Path
from typing import Callable, List, Optional, Union

from .commands import AddShapeCommand, DeleteShapeCommand
from .config import EngineConfig
from .errors import InvalidStateError
from .geometry import Point, ShapeKind
from .persistence import AnnotationCodec, read_annotations, write_annotations
from .selection import apply_click, find_shape_at, tolerance_in_chart_units
from .shape_manager import DrawnShape, ShapeManager
from .snapping import Snapper
from .strategies import DrawStrategy, StrategyRegistry, default_registry
from .visuals import Visual


class InteractionState(Enum):
    IDLE = "idle"
    ARMED = "armed"
    DRAGGING = "dragging"


class Modifier(Flag):
    """Modifier keys held during an input event."""
    NONE = 0
    SHIFT = auto()
    CTRL = auto()
    ALT = auto()


# Number keys arm tools, in toolbar order
KEY_DRAW_MODES = {
    "1": ShapeKind.TREND_LINE,
    "2": ShapeKind.HORIZONTAL_LINE,
    "3": ShapeKind.VERTICAL_LINE,
    "4": ShapeKind.RECTANGLE,
    "5": ShapeKind.CIRCLE,
    "6": ShapeKind.FIBONACCI_RETRACEMENT,
}


class ChartInteractions:
    """
    Interactive annotation engine bound to one host canvas.

    Usage:
        interactions = ChartInteractions(ShapeManager())
        interactions.attach(canvas)

        interactions.set_draw_mode(ShapeKind.TREND_LINE)
        interactions.pointer_down(100, 200)
        interactions.pointer_move(150, 180)
        interactions.pointer_up(200, 150)   # TrendLine committed, mode back to NONE

        interactions.undo()
        interactions.save_to_file("chart_annotations.json")

    Callbacks (all optional):
        on_draw_mode_changed(kind)
        on_shape_info_changed(text)
        on_coordinates_changed(point)
    """

    def __init__(
        self,
        shape_manager: ShapeManager,
        registry: Optional[StrategyRegistry] = None,
        snapper: Optional[Snapper] = None,
        config: Optional[EngineConfig] = None,
        on_draw_mode_changed: Optional[Callable[[ShapeKind], None]] = None,
        on_shape_info_changed: Optional[Callable[[str], None]] = None,
        on_coordinates_changed: Optional[Callable[[Point], None]] = None
    ):
        if shape_manager is None:
            raise ValueError("shape_manager is required")
        self.config = config or EngineConfig()
        self.shape_manager = shape_manager
        self.registry = registry or default_registry()
        self.snapper = snapper or Snapper(
            mode=self.config.snap_mode,
            enabled=self.config.snap_enabled,
            price_step=self.config.snap_price_step,
        )
        self.codec = AnnotationCodec(self.registry)

        self.on_draw_mode_changed = on_draw_mode_changed
        self.on_shape_info_changed = on_shape_info_changed
        self.on_coordinates_changed = on_coordinates_changed

        self._canvas = None
        self._draw_mode = ShapeKind.NONE
        self._state = InteractionState.IDLE
        self._anchor: Optional[Point] = None
        self._preview: Optional[Visual] = None
        self._shape_info = ""
        self._current_coordinates: Optional[Point] = None

        self.logger = logging.getLogger("ChartInteractions")

    # Lifecycle

    def attach(self, canvas):
        """Bind to a canvas (and attach the shape manager to it)."""
        if canvas is None:
            raise ValueError("canvas is required")
        if self._canvas is not None:
            raise InvalidStateError("Already attached to a canvas. Call dispose() first.")
        self.shape_manager.attach(canvas)
        self._canvas = canvas
        canvas.set_input_enabled(self._draw_mode == ShapeKind.NONE)
        self.logger.info("Attached to canvas")

    def dispose(self):
        if self._canvas is None:
            return
        self._discard_drag()
        self.shape_manager.dispose()
        self._canvas = None
        self._draw_mode = ShapeKind.NONE
        self._state = InteractionState.IDLE
        self.logger.info("Disposed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False

    @property
    def is_attached(self) -> bool:
        return self._canvas is not None

    def _require_canvas(self):
        if self._canvas is None:
            raise InvalidStateError("Chart is not attached. Call attach() first.")
        return self._canvas

    # State

    @property
    def state(self) -> InteractionState:
        return self._state

    @property
    def draw_mode(self) -> ShapeKind:
        return self._draw_mode

    @property
    def preview(self) -> Optional[Visual]:
        return self._preview

    @property
    def anchor(self) -> Optional[Point]:
        return self._anchor

    @property
    def shape_info(self) -> str:
        return self._shape_info

    @property
    def current_coordinates(self) -> Optional[Point]:
        return self._current_coordinates

    @property
    def active_strategy(self) -> DrawStrategy:
        return self.registry.get(self._draw_mode)

    def set_draw_mode(self, kind: ShapeKind):
        """
        Arm a drawing tool, or return to selection mode with ShapeKind.NONE.

        Any drag in progress is cancelled. Kinds without a strategy can be
        armed but produce neither a preview nor a shape.
        """
        if kind is None:
            kind = ShapeKind.NONE

        self._discard_drag()
        self._draw_mode = kind
        self._state = InteractionState.IDLE if kind == ShapeKind.NONE else InteractionState.ARMED
        self._set_shape_info("")

        if kind != ShapeKind.NONE and not self.registry.is_registered(kind):
            self.logger.warning(f"No strategy for {kind.value}; drawing will have no effect")

        if self._canvas is not None:
            # Host pan/zoom only while nothing is armed
            self._canvas.set_input_enabled(kind == ShapeKind.NONE)
            self._canvas.refresh()

        self.logger.info(f"Draw mode: {kind.value}")
        if self.on_draw_mode_changed is not None:
            self.on_draw_mode_changed(kind)

    def cancel(self):
        """Abort the current drag. The armed tool stays armed."""
        if self._state != InteractionState.DRAGGING:
            return
        self._discard_drag()
        self._state = InteractionState.ARMED
        self._set_shape_info("")
        if self._canvas is not None:
            self._canvas.refresh()
        self.logger.debug("Drag cancelled")

    # Pointer events (pixel coordinates)

    def pointer_down(self, px: float, py: float, modifiers: Modifier = Modifier.NONE):
        canvas = self._require_canvas()
        coords = self._update_coordinates(px, py)

        if self._state == InteractionState.IDLE:
            self._handle_selection(coords, px, py, modifiers)
            return

        if self._state == InteractionState.DRAGGING:
            self.logger.debug("pointer_down ignored: drag already in progress")
            return

        self._anchor = self.snapper.apply(coords, force=Modifier.SHIFT in modifiers)
        self._state = InteractionState.DRAGGING
        self._show_preview(self._anchor, self._anchor)
        canvas.refresh()

    def pointer_move(self, px: float, py: float, modifiers: Modifier = Modifier.NONE):
        canvas = self._require_canvas()
        coords = self._update_coordinates(px, py)

        if self._state != InteractionState.DRAGGING:
            return

        end = self.snapper.apply(coords, force=Modifier.SHIFT in modifiers)
        self._show_preview(self._anchor, end)
        self._set_shape_info(self.active_strategy.describe(self._anchor, end))
        canvas.refresh()

    def pointer_up(self, px: float, py: float, modifiers: Modifier = Modifier.NONE) -> Optional[DrawnShape]:
        """
        Finish the drag.

        Returns:
            The committed shape, or None if nothing was drawn
        """
        canvas = self._require_canvas()
        coords = self._update_coordinates(px, py)

        if self._state != InteractionState.DRAGGING:
            return None

        start = self._anchor
        end = self.snapper.apply(coords, force=Modifier.SHIFT in modifiers)
        kind = self._draw_mode
        strategy = self.active_strategy

        self._discard_drag()

        shape = None
        visual = strategy.create_final(start, end)
        if visual is not None:
            shape = DrawnShape(
                kind=kind,
                anchor_start=start,
                anchor_end=end,
                style=strategy.final_style,
                visual=visual,
            )
            self.shape_manager.execute_command(AddShapeCommand(self.shape_manager, shape, canvas))
            self.logger.info(
                f"Added {kind.value} ({start.x:.2f}, {start.y:.2f}) -> ({end.x:.2f}, {end.y:.2f})"
            )

        # One shape per arming
        self.set_draw_mode(ShapeKind.NONE)
        return shape

    def _update_coordinates(self, px: float, py: float) -> Point:
        coords = self._canvas.pixel_to_coordinate(px, py)
        self._current_coordinates = coords
        if self.on_coordinates_changed is not None:
            self.on_coordinates_changed(coords)
        return coords

    def _show_preview(self, start: Point, end: Point):
        """Replace the live preview (at most one exists)."""
        self._remove_preview()
        preview = self.active_strategy.create_preview(start, end)
        if preview is not None:
            self._canvas.add_visual(preview)
            self._preview = preview

    def _remove_preview(self):
        if self._preview is not None and self._canvas is not None:
            if self._canvas.contains(self._preview):
                self._canvas.remove_visual(self._preview)
        self._preview = None

    def _discard_drag(self):
        self._remove_preview()
        self._anchor = None

    def _set_shape_info(self, text: str):
        if text == self._shape_info:
            return
        self._shape_info = text
        if self.on_shape_info_changed is not None:
            self.on_shape_info_changed(text)

    # Selection

    def _handle_selection(self, coords: Point, px: float, py: float, modifiers: Modifier):
        tolerance = tolerance_in_chart_units(
            self._canvas, px, py, self.config.selection_tolerance_px
        )
        shapes = self.shape_manager.shapes
        clicked = find_shape_at(shapes, coords, tolerance, self.config.selection_margin_ratio)
        apply_click(shapes, clicked, multi=Modifier.CTRL in modifiers)

        if clicked is not None:
            self.logger.debug(
                f"Clicked {clicked.kind.value} {clicked.id[:8]} -> selected={clicked.is_selected}"
            )
        self._canvas.refresh()

    def select_all(self):
        for shape in self.shape_manager.shapes:
            shape.set_selected(True)
        if self._canvas is not None:
            self._canvas.refresh()

    # Commands

    def undo(self) -> bool:
        result = self.shape_manager.undo()
        if result and self._canvas is not None:
            self._canvas.refresh()
        return result

    def redo(self) -> bool:
        result = self.shape_manager.redo()
        if result and self._canvas is not None:
            self._canvas.refresh()
        return result

    def delete_selected_shapes(self) -> int:
        """
        Delete every selected shape, one undoable command each.

        Returns:
            Number of shapes deleted
        """
        canvas = self._require_canvas()
        selected = self.shape_manager.selected_shapes
        for shape in selected:
            shape.set_selected(False)
            self.shape_manager.execute_command(DeleteShapeCommand(self.shape_manager, shape, canvas))

        if selected:
            self.logger.info(f"Deleted {len(selected)} shape(s)")
            canvas.refresh()
        return len(selected)

    def handle_key(self, key: str, modifiers: Modifier = Modifier.NONE) -> bool:
        """
        Keyboard shortcuts.

        - "1".."6": arm a drawing tool
        - "escape": cancel and return to selection mode
        - Ctrl+Z: undo; Ctrl+Y or Ctrl+Shift+Z: redo
        - "delete": delete selected shapes

        Returns:
            True if the key was handled
        """
        key = key.lower()
        ctrl = Modifier.CTRL in modifiers

        if ctrl and key == "z" and Modifier.SHIFT not in modifiers:
            self.undo()
            return True
        if ctrl and (key == "y" or key == "z"):
            self.redo()
            return True
        if key == "delete":
            self.delete_selected_shapes()
            return True
        if key == "escape":
            self.set_draw_mode(ShapeKind.NONE)
            return True
        if not ctrl and key in KEY_DRAW_MODES:
            self.set_draw_mode(KEY_DRAW_MODES[key])
            return True
        return False

    # Persistence

    def save_to_file(self, path: Union[str, Path]) -> int:
        """
        Save all managed shapes.

        Returns:
            Number of shapes written
        """
        self._require_canvas()
        document = self.codec.save(self.shape_manager.shapes)
        write_annotations(path, document)
        self.logger.info(f"Saved {len(document.shapes)} shape(s) to {path}")
        return len(document.shapes)

    def load_from_file(self, path: Union[str, Path]) -> List[DrawnShape]:
        """
        Replace all shapes with the contents of a saved document.

        The file is read and parsed before anything changes, so a missing or
        corrupt file leaves the current shapes untouched. Loaded shapes start
        with an empty undo history.

        Raises:
            FileNotFoundError: `path` does not exist
            ValueError: the file is not a valid annotations document
        """
        canvas = self._require_canvas()
        document = read_annotations(path)
        shapes = self.codec.load(document)

        self.set_draw_mode(ShapeKind.NONE)
        self.shape_manager.clear()
        for shape in shapes:
            self.shape_manager.execute_command(AddShapeCommand(self.shape_manager, shape, canvas))
        self.shape_manager.clear_history()
        canvas.refresh()

        self.logger.info(f"Loaded {len(shapes)} shape(s) from {path}")
        return shapes
