"""
Interaction state for one annotation session.

AnnotationSession owns the ordered shape list and the gesture state
machine:

    IDLE --pointer_down--> DRAWING --pointer_up--> IDLE

A finished gesture becomes a shape built by the selected tool in the
selected colour; it is appended only if it passes the minimum-size filter.
Undo removes the most recent shape, clear empties the list.

All mutations happen synchronously on the GUI thread, in pointer or button
handlers, so no locking is needed.
"""

from datetime import datetime, timezone
from enum import Enum, auto
from typing import List, Mapping, Optional, Tuple

from PySide6.QtCore import QObject, QPointF, Signal

from dentalreview.editor.annotations import DEFAULT_COLOR, PALETTE, AnnotationSet, Shape
from dentalreview.editor.tools import ToolBase, ToolType, create_tool
from dentalreview.services.logging_service import get_logger


class EditorState(Enum):
    """Gesture state."""
    IDLE = auto()
    DRAWING = auto()


class AnnotationSession(QObject):
    """
    Shape list plus tool, colour and gesture state.

    Signals:
        shapes_changed: Emitted after the shape list changes.
        state_changed: Emitted with the new EditorState.
        tool_changed: Emitted with the new ToolType.
        color_changed: Emitted with the new hex colour.
    """

    shapes_changed = Signal()
    state_changed = Signal(object)
    tool_changed = Signal(object)
    color_changed = Signal(str)

    def __init__(
        self,
        initial: Optional[AnnotationSet] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._shapes: List[Shape] = list(initial.shapes) if initial else []
        self._state = EditorState.IDLE
        self._start_pos: Optional[QPointF] = None
        self._disabled = False

        self._tool: ToolBase = create_tool(ToolType.RECTANGLE)
        self._color = DEFAULT_COLOR

    # ─── Shape List ───────────────────────────────────────────────────────

    @property
    def shapes(self) -> Tuple[Shape, ...]:
        """Shapes in draw order (last is top-most)."""
        return tuple(self._shapes)

    def __len__(self) -> int:
        return len(self._shapes)

    def reset(self, initial: Optional[AnnotationSet] = None) -> None:
        """Start over with an empty list, or seed from a stored set."""
        self._shapes = list(initial.shapes) if initial else []
        self._set_state(EditorState.IDLE)
        self._start_pos = None
        self._logger.info(f"Session reset with {len(self._shapes)} annotation(s)")
        self.shapes_changed.emit()

    def undo(self) -> Optional[Shape]:
        """Remove and return the most recently added shape, if any."""
        if not self._shapes:
            return None

        removed = self._shapes.pop()
        self._logger.info(
            f"Removed last annotation, remaining: {len(self._shapes)}"
        )
        self.shapes_changed.emit()
        return removed

    def clear(self) -> None:
        """Remove every shape."""
        if not self._shapes:
            return

        self._shapes = []
        self._logger.info("Cleared all annotations")
        self.shapes_changed.emit()

    # ─── Tool and Colour ──────────────────────────────────────────────────

    @property
    def selected_tool(self) -> ToolType:
        return self._tool.tool_type

    @property
    def active_tool(self) -> ToolBase:
        return self._tool

    def set_tool(self, tool_type: ToolType) -> None:
        """Select the tool used for the next gesture."""
        if tool_type == self._tool.tool_type:
            return
        self._tool = create_tool(tool_type)
        self.tool_changed.emit(tool_type)

    @property
    def selected_color(self) -> str:
        return self._color

    def set_color(self, color: str) -> None:
        """
        Select the colour used for the next shape.

        Raises:
            ValueError: if the colour is not in the palette.
        """
        normalized = color.upper()
        if normalized not in PALETTE:
            raise ValueError(f"Colour {color} is not in the palette {PALETTE}")
        if normalized == self._color:
            return
        self._color = normalized
        self.color_changed.emit(normalized)

    # ─── Gesture State Machine ────────────────────────────────────────────

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def disabled(self) -> bool:
        return self._disabled

    def set_disabled(self, disabled: bool) -> None:
        """
        Block or unblock pointer input.

        A gesture in progress when input is blocked is abandoned.
        """
        self._disabled = disabled
        if disabled and self._state is EditorState.DRAWING:
            self._start_pos = None
            self._set_state(EditorState.IDLE)

    def pointer_down(self, pos: QPointF) -> bool:
        """
        Start a gesture at pos (canvas pixels).

        Returns:
            True if a gesture was started.
        """
        if self._disabled:
            return False

        # A press while already drawing means the release was lost
        # (e.g. outside the window); the new press starts over.
        self._start_pos = QPointF(pos)
        self._set_state(EditorState.DRAWING)
        return True

    def pointer_up(self, pos: QPointF) -> Optional[Shape]:
        """
        Finish the gesture at pos (canvas pixels).

        Returns:
            The appended shape, or None if nothing was added.
        """
        if self._disabled or self._state is not EditorState.DRAWING:
            return None

        start = self._start_pos
        self._start_pos = None
        self._set_state(EditorState.IDLE)

        shape = self._tool.build_shape(start, pos, self._color)
        if shape is None:
            return None

        self._shapes.append(shape)
        self._logger.info(f"Added annotation: {shape.to_dict()}")
        self.shapes_changed.emit()
        return shape

    def _set_state(self, state: EditorState) -> None:
        if state is not self._state:
            self._state = state
            self.state_changed.emit(state)

    # ─── Snapshot ─────────────────────────────────────────────────────────

    def snapshot(
        self,
        image_size: Mapping[str, int],
        timestamp: Optional[datetime] = None,
    ) -> AnnotationSet:
        """Freeze the current list into an AnnotationSet."""
        moment = timestamp or datetime.now(timezone.utc)
        return AnnotationSet(
            shapes=tuple(self._shapes),
            timestamp=moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            image_size=dict(image_size),
        )
