"""Tests for drawing tools."""

import pytest
from PySide6.QtCore import QPointF

from dentalreview.editor.annotations import (
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
)
from dentalreview.editor.tools import ArrowTool, CircleTool, RectangleTool, ToolType, create_tool


@pytest.mark.parametrize(
    "tool_type, cls",
    [
        (ToolType.RECTANGLE, RectangleTool),
        (ToolType.CIRCLE, CircleTool),
        (ToolType.ARROW, ArrowTool),
    ],
)
def test_create_tool(tool_type, cls):
    tool = create_tool(tool_type)
    assert isinstance(tool, cls)
    assert tool.tool_type is tool_type


def test_create_tool_rejects_unknown():
    with pytest.raises(ValueError):
        create_tool("polygon")


def test_labels():
    assert create_tool(ToolType.ARROW).label == "Arrow"


def test_candidate_is_not_filtered():
    tool = RectangleTool()
    shape = tool.candidate(QPointF(10, 10), QPointF(12, 12), "#FF0000")
    assert shape == RectangleAnnotation(10, 10, 2, 2, "#FF0000")


def test_build_shape_discards_small_rectangle():
    assert RectangleTool().build_shape(QPointF(10, 10), QPointF(12, 12), "#FF0000") is None


def test_build_shape_discards_circle_at_radius_five():
    # hypot(3, 4) == 5 is not strictly greater than the minimum
    assert CircleTool().build_shape(QPointF(0, 0), QPointF(3, 4), "#FF0000") is None


def test_build_shape_keeps_large_enough_shapes():
    circle = CircleTool().build_shape(QPointF(0, 0), QPointF(6, 8), "#0000FF")
    assert circle == CircleAnnotation(0, 0, 10, "#0000FF")

    arrow = ArrowTool().build_shape(QPointF(0, 0), QPointF(0, 11), "#00FF00")
    assert arrow == ArrowAnnotation(0, 0, 0, 11, "#00FF00")
