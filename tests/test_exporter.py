"""Tests for exporting a session."""

import json
from datetime import datetime, timezone

import pytest
from PySide6.QtCore import QPointF

from dentalreview.editor.exporter import AnnotationExporter, write_export
from dentalreview.editor.geometry import compute_canvas_geometry
from dentalreview.editor.session import AnnotationSession
from dentalreview.exceptions import (
    EmptyAnnotationError,
    RasterizationFailure,
    UninitializedCanvasError,
)

MOMENT = datetime(2024, 5, 6, 7, 8, 9, tzinfo=timezone.utc)


@pytest.fixture
def session(qapp):
    return AnnotationSession()


@pytest.fixture
def geometry(photo):
    return compute_canvas_geometry(photo.width(), photo.height())


def drag(session, start, end):
    session.pointer_down(QPointF(*start))
    return session.pointer_up(QPointF(*end))


def test_empty_session_is_rejected_first(session):
    # No image either; the empty check wins
    with pytest.raises(EmptyAnnotationError) as exc_info:
        AnnotationExporter().export(session, None, None)
    assert exc_info.value.message == "Please add some annotations before saving."


def test_missing_image_is_rejected(session, geometry):
    drag(session, (10, 10), (50, 80))
    with pytest.raises(UninitializedCanvasError):
        AnnotationExporter().export(session, None, geometry)


def test_implausibly_small_output_is_rejected(session, photo, geometry):
    drag(session, (10, 10), (50, 80))
    exporter = AnnotationExporter(min_data_url_length=10**9)
    with pytest.raises(RasterizationFailure) as exc_info:
        exporter.export(session, photo, geometry)
    assert exc_info.value.context["minimum"] == 10**9


def test_export_produces_payload(session, photo, geometry):
    drag(session, (10, 10), (50, 80))
    result = AnnotationExporter().export(session, photo, geometry, MOMENT)

    payload = result.payload()
    assert set(payload) == {"annotationData", "annotatedImageDataUrl"}

    annotation_data = payload["annotationData"]
    assert annotation_data["shapes"] == [
        {"type": "rectangle", "x": 10, "y": 10, "width": 40, "height": 70, "color": "#FF0000"}
    ]
    assert annotation_data["imageSize"] == {"width": 800, "height": 600}
    assert annotation_data["timestamp"] == "2024-05-06T07:08:09.000Z"
    assert annotation_data["totalAnnotations"] == 1

    assert payload["annotatedImageDataUrl"].startswith("data:image/jpeg;base64,")
    assert len(payload["annotatedImageDataUrl"]) >= 1000
    assert (result.composite.width(), result.composite.height()) == (800, 600)


def test_export_after_undo_drops_last_shape(session, photo, geometry):
    exporter = AnnotationExporter()
    a = drag(session, (0, 0), (20, 20))
    b = drag(session, (30, 30), (60, 60))
    c = drag(session, (100, 100), (150, 150))

    assert exporter.export(session, photo, geometry).annotation_set.shapes == (a, b, c)

    session.undo()
    assert exporter.export(session, photo, geometry).annotation_set.shapes == (a, b)


def test_write_export(tmp_path, session, photo, geometry):
    drag(session, (10, 10), (50, 80))
    result = AnnotationExporter().export(session, photo, geometry, MOMENT)

    image_path, json_path = write_export(result, tmp_path / "out", "case_01")

    assert image_path.name == "case_01_annotated.jpg"
    assert image_path.read_bytes()[:2] == b"\xff\xd8"
    record = json.loads(json_path.read_text(encoding="utf-8"))
    assert record == result.annotation_set.to_dict()
