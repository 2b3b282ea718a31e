"""
Tool framework and implementations for the DentalReview editor.

A tool turns one completed pointer gesture (press point, release point)
into a candidate annotation in the current colour, and rejects candidates
that fail the minimum-size filter.

Tools:
- RectangleTool: Draw rectangle annotations
- CircleTool: Draw circle annotations (centre + radius)
- ArrowTool: Draw arrow annotations
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, Optional, Type

from PySide6.QtCore import QPointF, Qt

from dentalreview.editor.annotations import (
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
    Shape,
)
from dentalreview.services.logging_service import get_logger


class ToolType(Enum):
    """Enum for tool types."""
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"


class ToolBase(ABC):
    """
    Base class for all tools.

    Tools are stateless between gestures; the session owns the press point.
    """

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    @property
    @abstractmethod
    def tool_type(self) -> ToolType:
        """Return the type of this tool."""

    @property
    def cursor(self) -> Qt.CursorShape:
        """Return the cursor to use when this tool is active."""
        return Qt.CursorShape.CrossCursor

    @property
    def label(self) -> str:
        return self.tool_type.value.capitalize()

    @abstractmethod
    def candidate(self, start: QPointF, end: QPointF, color: str) -> Shape:
        """Build the shape described by a gesture, without filtering."""

    def build_shape(
        self, start: QPointF, end: QPointF, color: str
    ) -> Optional[Shape]:
        """
        Build the shape for a finished gesture.

        Returns:
            The shape, or None when it is too small to keep.
        """
        shape = self.candidate(start, end, color)
        if not shape.meets_minimum_size():
            self._logger.debug(
                f"{self.label} from ({start.x():.1f}, {start.y():.1f}) to "
                f"({end.x():.1f}, {end.y():.1f}) below minimum size, discarded"
            )
            return None
        return shape


class RectangleTool(ToolBase):
    """Tool for drawing rectangle annotations."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.RECTANGLE

    def candidate(self, start: QPointF, end: QPointF, color: str) -> Shape:
        return RectangleAnnotation.from_drag(start, end, color)


class CircleTool(ToolBase):
    """Tool for drawing circles: press at the centre, release on the rim."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.CIRCLE

    def candidate(self, start: QPointF, end: QPointF, color: str) -> Shape:
        return CircleAnnotation.from_drag(start, end, color)


class ArrowTool(ToolBase):
    """Tool for drawing arrows pointing at the release point."""

    @property
    def tool_type(self) -> ToolType:
        return ToolType.ARROW

    def candidate(self, start: QPointF, end: QPointF, color: str) -> Shape:
        return ArrowAnnotation.from_drag(start, end, color)


_TOOL_CLASSES: Dict[ToolType, Type[ToolBase]] = {
    ToolType.RECTANGLE: RectangleTool,
    ToolType.CIRCLE: CircleTool,
    ToolType.ARROW: ArrowTool,
}


def create_tool(tool_type: ToolType) -> ToolBase:
    """
    Factory function to create tools by type.

    Args:
        tool_type: The type of tool to create.

    Returns:
        A new instance of the requested tool.
    """
    if tool_type not in _TOOL_CLASSES:
        raise ValueError(f"Unknown tool type: {tool_type}")

    return _TOOL_CLASSES[tool_type]()
