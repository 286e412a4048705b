"""
ChartMark Commands - Reversible mutations of the shape collection

Every change a user makes to the drawn shapes goes through a command so
that it can be undone. A command touches both sides of the ownership
boundary in lockstep: the manager's collection and the canvas's visuals.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional, Tuple

from .errors import InvalidStateError

if TYPE_CHECKING:
    from .canvas import HostCanvas
    from .shape_manager import DrawnShape, ShapeManager


class Command(ABC):
    """A reversible unit of mutation."""

    @abstractmethod
    def execute(self):
        pass

    @abstractmethod
    def undo(self):
        """Restore the exact state from before `execute`."""
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass


class _ShapeCommand(Command):

    def __init__(self, manager: "ShapeManager", shape: "DrawnShape", canvas: "HostCanvas"):
        if manager is None:
            raise ValueError("manager is required")
        if shape is None:
            raise ValueError("shape is required")
        if canvas is None:
            raise ValueError("canvas is required")
        self.manager = manager
        self.shape = shape
        self.canvas = canvas

    def _attach(self, position: Optional[Tuple[int, int]] = None):
        shape_index, visual_index = position if position is not None else (None, None)
        self.manager.add_shape(self.shape, shape_index)
        self.canvas.add_visual(self.shape.visual, visual_index)

    def _detach(self) -> Tuple[int, int]:
        """Returns the (collection, drawing order) indices the shape held."""
        if not self.manager.contains(self.shape):
            raise InvalidStateError(f"Shape {self.shape.id} is not managed by this ShapeManager")
        shape_index = self.manager.remove_shape(self.shape)
        visual_index = self.canvas.remove_visual(self.shape.visual)
        return shape_index, visual_index


class AddShapeCommand(_ShapeCommand):
    """Add a shape and attach its visual."""

    @property
    def description(self) -> str:
        return f"Add {self.shape.kind.value} shape"

    def execute(self):
        self._attach()

    def undo(self):
        self._detach()


class DeleteShapeCommand(_ShapeCommand):
    """Remove a tracked shape and detach its visual. Untracked shapes are rejected."""

    def __init__(self, manager: "ShapeManager", shape: "DrawnShape", canvas: "HostCanvas"):
        super().__init__(manager, shape, canvas)
        self._position: Optional[Tuple[int, int]] = None

    @property
    def description(self) -> str:
        return f"Delete {self.shape.kind.value} shape"

    def execute(self):
        self._position = self._detach()

    def undo(self):
        # Back to the same place in both orders
        self._attach(self._position)
