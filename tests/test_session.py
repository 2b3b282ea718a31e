"""Tests for the annotation session state machine."""

from datetime import datetime, timezone

import pytest
from PySide6.QtCore import QPointF

from dentalreview.editor.annotations import (
    AnnotationSet,
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
)
from dentalreview.editor.session import AnnotationSession, EditorState
from dentalreview.editor.tools import ToolType


@pytest.fixture
def session(qapp):
    return AnnotationSession()


def drag(session, start, end):
    session.pointer_down(QPointF(*start))
    return session.pointer_up(QPointF(*end))


def test_defaults(session):
    assert session.state is EditorState.IDLE
    assert session.selected_tool is ToolType.RECTANGLE
    assert session.selected_color == "#FF0000"
    assert len(session) == 0


def test_tiny_drag_adds_nothing(session):
    assert drag(session, (10, 10), (12, 12)) is None
    assert session.shapes == ()
    assert session.state is EditorState.IDLE


def test_drag_adds_rectangle(session):
    shape = drag(session, (10, 10), (50, 80))
    assert shape == RectangleAnnotation(10, 10, 40, 70, "#FF0000")
    assert session.shapes == (shape,)


def test_state_transitions(session):
    states = []
    session.state_changed.connect(states.append)
    drag(session, (0, 0), (40, 40))
    assert states == [EditorState.DRAWING, EditorState.IDLE]


def test_pointer_up_without_press_is_ignored(session):
    assert session.pointer_up(QPointF(100, 100)) is None
    assert len(session) == 0


def test_press_while_drawing_restarts_gesture(session):
    session.pointer_down(QPointF(0, 0))
    session.pointer_down(QPointF(100, 100))
    shape = session.pointer_up(QPointF(150, 150))
    assert shape == RectangleAnnotation(100, 100, 50, 50, "#FF0000")


def test_tool_and_colour_apply_to_next_shape(session):
    session.set_tool(ToolType.CIRCLE)
    session.set_color("#0000ff")
    assert session.selected_color == "#0000FF"
    assert drag(session, (20, 20), (20, 40)) == CircleAnnotation(20, 20, 20, "#0000FF")

    session.set_tool(ToolType.ARROW)
    assert drag(session, (0, 0), (30, 0)) == ArrowAnnotation(0, 0, 30, 0, "#0000FF")


def test_set_color_rejects_colours_outside_palette(session):
    with pytest.raises(ValueError):
        session.set_color("#123456")
    assert session.selected_color == "#FF0000"


def test_undo_removes_last_shape(session):
    first = drag(session, (0, 0), (20, 20))
    drag(session, (30, 30), (60, 60))
    removed = session.undo()
    assert removed == RectangleAnnotation(30, 30, 30, 30, "#FF0000")
    assert session.shapes == (first,)


def test_undo_on_empty_list(session):
    changes = []
    session.shapes_changed.connect(lambda: changes.append(True))
    assert session.undo() is None
    assert changes == []


def test_clear_is_idempotent(session):
    drag(session, (0, 0), (20, 20))
    drag(session, (0, 0), (30, 30))
    changes = []
    session.shapes_changed.connect(lambda: changes.append(True))

    session.clear()
    session.clear()

    assert len(session) == 0
    assert changes == [True]
    assert session.undo() is None


def test_disabled_session_ignores_pointer(session):
    session.set_disabled(True)
    assert session.pointer_down(QPointF(0, 0)) is False
    assert session.pointer_up(QPointF(50, 50)) is None
    assert session.state is EditorState.IDLE


def test_disabling_abandons_gesture(session):
    session.pointer_down(QPointF(0, 0))
    session.set_disabled(True)
    assert session.state is EditorState.IDLE

    session.set_disabled(False)
    assert session.pointer_up(QPointF(50, 50)) is None
    assert len(session) == 0


def test_reset_seeds_from_stored_set(session):
    drag(session, (0, 0), (20, 20))
    stored = AnnotationSet(shapes=(CircleAnnotation(5, 5, 2, "#00FF00"),))
    session.reset(stored)
    # Stored shapes are kept even below the drawing minimum
    assert session.shapes == stored.shapes

    session.reset()
    assert session.shapes == ()


def test_snapshot(session):
    shape = drag(session, (10, 10), (50, 80))
    moment = datetime(2024, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)
    snapshot = session.snapshot({"width": 800, "height": 600}, moment)

    assert snapshot.shapes == (shape,)
    assert snapshot.timestamp == "2024-01-02T03:04:05.678Z"
    assert snapshot.image_size == {"width": 800, "height": 600}


def test_snapshot_defaults_to_now_in_utc(session):
    snapshot = session.snapshot({"width": 1, "height": 1})
    assert snapshot.timestamp.endswith("Z")
