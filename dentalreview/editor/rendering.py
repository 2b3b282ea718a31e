"""
Drawing engine for the annotation canvas.

render_annotations() is a pure function of (base image, geometry, shapes):
the same inputs always produce the same pixels. The pass order is fixed:

1. Clear the surface
2. Draw the base image scaled to the display size
3. Stroke every shape in list order (later shapes on top)

Also holds the raster encoders used when the composite is exported.
"""

import base64
from typing import Iterable

from PySide6.QtCore import QBuffer, QByteArray, QIODevice, QRectF
from PySide6.QtGui import QColor, QImage, QPainter

from dentalreview.editor.annotations import (
    ArrowAnnotation,
    CircleAnnotation,
    RectangleAnnotation,
    Shape,
)
from dentalreview.editor.geometry import CanvasGeometry

BACKGROUND_COLOR = QColor(255, 255, 255)

_SHAPE_CLASSES = (RectangleAnnotation, CircleAnnotation, ArrowAnnotation)


def paint_shape(painter: QPainter, shape: Shape) -> None:
    """
    Stroke one shape.

    Raises:
        TypeError: for anything outside the Shape union.
    """
    if not isinstance(shape, _SHAPE_CLASSES):
        raise TypeError(f"Cannot draw {type(shape).__name__}; not an annotation shape")
    shape.paint(painter)


def render_annotations(
    base_image: QImage,
    geometry: CanvasGeometry,
    shapes: Iterable[Shape],
) -> QImage:
    """
    Render the base image plus all shapes at display size.

    Args:
        base_image: The decoded photo at natural size.
        geometry: Display size to draw at.
        shapes: Shapes in draw order.

    Returns:
        A new RGB32 image of geometry.display_width x display_height.
    """
    result = QImage(
        geometry.display_width, geometry.display_height, QImage.Format.Format_RGB32
    )
    result.fill(BACKGROUND_COLOR)

    painter = QPainter(result)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        target = QRectF(0, 0, geometry.display_width, geometry.display_height)
        painter.drawImage(target, base_image)

        for shape in shapes:
            paint_shape(painter, shape)
    finally:
        painter.end()

    return result


def encode_image(image: QImage, fmt: str = "JPEG", quality: int = 95) -> bytes:
    """Encode an image into bytes (quality only matters for lossy formats)."""
    data = QByteArray()
    buffer = QBuffer(data)
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    try:
        ok = image.save(buffer, fmt, quality)
    finally:
        buffer.close()
    if not ok:
        return b""
    return bytes(data)


def to_data_url(payload: bytes, mime_type: str = "image/jpeg") -> str:
    """Wrap encoded image bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(payload).decode('ascii')}"
