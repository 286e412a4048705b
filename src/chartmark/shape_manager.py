"""
ChartMark Shape Manager - Authoritative shape collection with undo/redo

The manager owns the drawn shapes and the command history. The canvas owns
the rendering of each shape's visual; the two are kept in lockstep by the
commands, so a shape is in `shapes` exactly when its visual is attached.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from .commands import Command
from .errors import InvalidStateError
from .geometry import Point, ShapeKind, Style
from .visuals import Visual


@dataclass(eq=False)
class DrawnShape:
    """
    A committed annotation.

    Attributes:
        kind: Shape kind
        anchor_start: Point captured at pointer-down
        anchor_end: Point captured at pointer-up
        style: Final (unselected) style
        visual: Render handle attached to the canvas while the shape is managed
        id: Unique identifier (uuid4 hex)
        is_selected: Selection state
        is_visible: Hidden shapes are skipped by hit-testing
        created_at: Creation timestamp (UTC)
    """
    kind: ShapeKind
    anchor_start: Point
    anchor_end: Point
    style: Style
    visual: Visual
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    is_selected: bool = False
    is_visible: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def set_selected(self, selected: bool):
        """Update selection and re-apply the matching emphasis to the visual."""
        self.is_selected = selected
        self.visual.set_emphasis(selected)


class ShapeManager:
    """
    Manages drawn shapes and the undo/redo history.

    Usage:
        manager = ShapeManager()
        with manager.attached(canvas):
            manager.execute_command(AddShapeCommand(manager, shape, canvas))
            manager.undo()
    """

    def __init__(self):
        self._shapes: List[DrawnShape] = []
        self._undo_stack: List[Command] = []
        self._redo_stack: List[Command] = []
        self._canvas = None
        self.logger = logging.getLogger("ShapeManager")

    # Canvas lifecycle

    def attach(self, canvas):
        """Bind to a host canvas. Rejected if already attached."""
        if canvas is None:
            raise ValueError("canvas is required")
        if self._canvas is not None:
            raise InvalidStateError("Already attached to a canvas. Call dispose() first.")
        self._canvas = canvas
        canvas.attach()
        self.logger.debug("Attached to canvas")

    def dispose(self):
        """Detach every visual, drop history and release the canvas."""
        if self._canvas is None:
            return
        self.clear()
        self._canvas.detach()
        self._canvas = None
        self.logger.debug("Disposed")

    def attached(self, canvas):
        """Attach and return self for use as a context manager."""
        self.attach(canvas)
        return self

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.dispose()
        return False

    @property
    def is_attached(self) -> bool:
        return self._canvas is not None

    @property
    def canvas(self):
        return self._canvas

    # Collection

    @property
    def shapes(self) -> Tuple[DrawnShape, ...]:
        return tuple(self._shapes)

    @property
    def selected_shapes(self) -> List[DrawnShape]:
        return [s for s in self._shapes if s.is_selected]

    def contains(self, shape: DrawnShape) -> bool:
        return any(s is shape for s in self._shapes)

    def add_shape(self, shape: DrawnShape, index: Optional[int] = None):
        """Append to the collection, or insert at `index`. Used by commands only."""
        if shape is None:
            raise ValueError("shape is required")
        if self.contains(shape):
            raise InvalidStateError(f"Shape {shape.id} is already managed")
        if index is None:
            self._shapes.append(shape)
        else:
            self._shapes.insert(index, shape)

    def remove_shape(self, shape: DrawnShape) -> int:
        """Remove from the collection and return its former index. Used by commands only."""
        if shape is None:
            raise ValueError("shape is required")
        for i, s in enumerate(self._shapes):
            if s is shape:
                del self._shapes[i]
                return i
        raise InvalidStateError(f"Shape {shape.id} is not managed by this ShapeManager")

    def get_shape_by_id(self, shape_id: str) -> Optional[DrawnShape]:
        for shape in self._shapes:
            if shape.id == shape_id:
                return shape
        return None

    def clear(self):
        """Detach all visuals and empty the collection and both stacks."""
        if self._canvas is not None:
            for shape in self._shapes:
                if self._canvas.contains(shape.visual):
                    self._canvas.remove_visual(shape.visual)
        self._shapes.clear()
        self.clear_history()

    def clear_history(self):
        self._undo_stack.clear()
        self._redo_stack.clear()

    # History

    @property
    def can_undo(self) -> bool:
        return len(self._undo_stack) > 0

    @property
    def can_redo(self) -> bool:
        return len(self._redo_stack) > 0

    @property
    def undo_description(self) -> Optional[str]:
        return self._undo_stack[-1].description if self._undo_stack else None

    @property
    def redo_description(self) -> Optional[str]:
        return self._redo_stack[-1].description if self._redo_stack else None

    def execute_command(self, command: Command):
        """
        Execute a command and record it for undo.

        A command that raises is not recorded, and the redo stack is only
        cleared once the command has succeeded.
        """
        if command is None:
            raise ValueError("command is required")
        command.execute()
        self._undo_stack.append(command)
        self._redo_stack.clear()
        self.logger.debug(f"Executed: {command.description}")

    def undo(self) -> bool:
        if not self.can_undo:
            return False
        command = self._undo_stack[-1]
        command.undo()
        self._undo_stack.pop()
        self._redo_stack.append(command)
        self.logger.info(f"Undo: {command.description}")
        return True

    def redo(self) -> bool:
        if not self.can_redo:
            return False
        command = self._redo_stack[-1]
        command.execute()
        self._redo_stack.pop()
        self._undo_stack.append(command)
        self.logger.info(f"Redo: {command.description}")
        return True
