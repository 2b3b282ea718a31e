"""Tests for the drawing engine."""

import json

import pytest
from PySide6.QtGui import QColor, QImage, QPainter

from dentalreview.editor.annotations import (
    AnnotationSet,
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
)
from dentalreview.editor.geometry import compute_canvas_geometry
from dentalreview.editor.rendering import (
    encode_image,
    paint_shape,
    render_annotations,
    to_data_url,
)


@pytest.fixture
def black_photo(qapp) -> QImage:
    image = QImage(800, 600, QImage.Format.Format_RGB32)
    image.fill(QColor(0, 0, 0))
    return image


def test_composite_has_display_size(photo):
    geometry = compute_canvas_geometry(photo.width(), photo.height())
    composite = render_annotations(photo, geometry, [])
    assert (composite.width(), composite.height()) == (800, 600)


def test_rendering_is_deterministic(photo):
    geometry = compute_canvas_geometry(photo.width(), photo.height())
    shapes = [
        RectangleAnnotation(10, 10, 200, 100, "#FF0000"),
        CircleAnnotation(400, 300, 80, "#00FF00"),
        ArrowAnnotation(700, 500, 500, 350, "#FFFF00"),
    ]
    first = render_annotations(photo, geometry, shapes)
    second = render_annotations(photo, geometry, shapes)
    assert first == second
    assert encode_image(first, "PNG") == encode_image(second, "PNG")


def test_stored_set_reloads_and_renders_identically(photo):
    geometry = compute_canvas_geometry(photo.width(), photo.height())
    original = AnnotationSet(
        shapes=(
            RectangleAnnotation(10.25, 33.7, 201.1, 99.95, "#FF0000"),
            CircleAnnotation(400.4, 299.6, 80.33, "#00FF00"),
            ArrowAnnotation(700.1, 500.9, 512.5, 349.25, "#FFFF00"),
        ),
        timestamp="2024-05-01T10:00:00.000Z",
        image_size={"width": 800, "height": 600},
    )

    stored = json.loads(json.dumps(original.to_dict()))
    restored = AnnotationSet.from_dict(stored)

    assert restored == original
    before = render_annotations(photo, geometry, original.shapes)
    after = render_annotations(photo, geometry, restored.shapes)
    assert encode_image(before, "PNG") == encode_image(after, "PNG")


def test_shapes_are_stroked_not_filled(black_photo):
    geometry = compute_canvas_geometry(800, 600)
    rect = RectangleAnnotation(100, 100, 200, 200, "#FF0000")
    composite = render_annotations(black_photo, geometry, [rect])

    edge = composite.pixelColor(100, 200)
    assert edge.red() > 200 and edge.green() < 50

    inside = composite.pixelColor(200, 200)
    assert (inside.red(), inside.green(), inside.blue()) == (0, 0, 0)


def test_later_shapes_paint_over_earlier_ones(black_photo):
    geometry = compute_canvas_geometry(800, 600)
    shapes = [
        RectangleAnnotation(100, 100, 200, 200, "#FF0000"),
        RectangleAnnotation(100, 100, 200, 200, "#0000FF"),
    ]
    edge = render_annotations(black_photo, geometry, shapes).pixelColor(100, 200)
    assert edge.blue() > 200 and edge.red() < 50


def test_paint_shape_rejects_foreign_objects(black_photo):
    painter = QPainter(black_photo)
    try:
        with pytest.raises(TypeError):
            paint_shape(painter, object())
    finally:
        painter.end()


def test_encode_image_jpeg_signature(photo):
    data = encode_image(photo, "JPEG", 95)
    assert data[:2] == b"\xff\xd8"


def test_to_data_url():
    assert to_data_url(b"abc") == "data:image/jpeg;base64,YWJj"
    assert to_data_url(b"abc", "image/png").startswith("data:image/png;base64,")
