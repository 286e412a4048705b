"""Exceptions raised by the ChartMark engine."""


class InvalidStateError(RuntimeError):
    """
    A call was made while the engine was in a state that forbids it.

    Examples: attaching an already-attached manager, deleting a shape the
    manager does not track, saving before a canvas is attached. The call is
    rejected before any shared state is touched.
    """
