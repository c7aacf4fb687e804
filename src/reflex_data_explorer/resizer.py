"""Column resizing by pointer drag.

A drag is tracked by listeners on the whole input surface, not on the
handle, so the pointer can leave the header while resizing.  Those
listeners belong to the gesture: they are acquired when it starts and
released when it ends, when a new gesture replaces it, or when the resizer
is closed -- whichever happens first.
"""

import logging
from collections import defaultdict
from collections.abc import Callable
from contextlib import ExitStack
from dataclasses import dataclass

from reflex_data_explorer.models import MIN_COLUMN_WIDTH

logger = logging.getLogger(__name__)

PointerCallback = Callable[[float], None]

POINTER_MOVE = "pointermove"
POINTER_UP = "pointerup"


class PointerSurface:
    """Registry of global pointer listeners.

    In the browser this is ``window``; in the server-side grid it is fed by
    the resize handle's move / up events.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[PointerCallback]] = defaultdict(list)

    def listen(self, event: str, callback: PointerCallback) -> Callable[[], None]:
        """Register *callback* for *event* and return its release function."""
        self._listeners[event].append(callback)

        def release() -> None:
            callbacks = self._listeners.get(event)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)

        return release

    def dispatch(self, event: str, x: float) -> None:
        """Call every listener of *event* with the pointer's x position."""
        for callback in list(self._listeners.get(event, ())):
            callback(x)

    @property
    def listener_count(self) -> int:
        return sum(len(callbacks) for callbacks in self._listeners.values())


@dataclass(frozen=True)
class ResizeGesture:
    key: str
    start_x: float
    start_width: int


class ColumnResizer:
    """Maps horizontal pointer motion to a column width.

    Args:
        surface: Where the gesture's move / up listeners are attached.
        on_resize: Called with ``(key, new_width)`` on every move.
        min_width: Lower bound for any width produced by a drag.
    """

    def __init__(
        self,
        surface: PointerSurface,
        on_resize: Callable[[str, int], None],
        *,
        min_width: int = MIN_COLUMN_WIDTH,
    ) -> None:
        self.surface = surface
        self.on_resize = on_resize
        self.min_width = min_width
        self._gesture: ResizeGesture | None = None
        self._listeners: ExitStack | None = None

    def __enter__(self) -> "ColumnResizer":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def active(self) -> ResizeGesture | None:
        """The gesture in progress, if any."""
        return self._gesture

    def width_for(self, x: float) -> int:
        """Width the active column would have with the pointer at *x*."""
        if self._gesture is None:
            raise RuntimeError("No resize gesture in progress")
        delta = x - self._gesture.start_x
        return max(self.min_width, round(self._gesture.start_width + delta))

    def begin(self, key: str, start_x: float, start_width: int) -> ResizeGesture:
        """Start a drag of column *key*; ends any gesture already running."""
        self.end()
        gesture = ResizeGesture(key=key, start_x=start_x, start_width=start_width)
        stack = ExitStack()
        stack.callback(self.surface.listen(POINTER_MOVE, self.move))
        stack.callback(self.surface.listen(POINTER_UP, self._on_pointer_up))
        self._gesture = gesture
        self._listeners = stack
        logger.debug("resize start: %s from %dpx", key, start_width)
        return gesture

    def move(self, x: float) -> None:
        """Apply the width for pointer position *x* to the active column."""
        if self._gesture is None:
            return
        self.on_resize(self._gesture.key, self.width_for(x))

    def end(self) -> None:
        """Finish the active gesture and release its listeners."""
        stack, self._listeners = self._listeners, None
        gesture, self._gesture = self._gesture, None
        if stack is not None:
            stack.close()
        if gesture is not None:
            logger.debug("resize end: %s", gesture.key)

    def close(self) -> None:
        """Teardown: release anything a gesture still holds."""
        self.end()

    def _on_pointer_up(self, _x: float) -> None:
        self.end()
