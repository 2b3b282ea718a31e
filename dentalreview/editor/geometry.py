"""
Canvas geometry and pointer coordinate mapping.

Two concerns live here:
- CanvasGeometry: the display size a loaded photo is scaled down to.
- CoordinateMapper: converts pointer positions (widget coordinates) into
  canvas-pixel coordinates, the space every annotation is stored in.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

from PySide6.QtCore import QPointF, QRectF, QSizeF

# Bounding box for the display-scaled image
MAX_CANVAS_WIDTH = 800
MAX_CANVAS_HEIGHT = 600


@dataclass(frozen=True)
class CanvasGeometry:
    """Natural and display dimensions of the loaded image."""

    natural_width: int
    natural_height: int
    display_width: int
    display_height: int

    @property
    def is_valid(self) -> bool:
        return self.display_width > 0 and self.display_height > 0

    @property
    def display_size(self) -> QSizeF:
        return QSizeF(self.display_width, self.display_height)

    def image_size_dict(self) -> Dict[str, int]:
        """The imageSize record stored alongside saved annotations."""
        return {"width": self.display_width, "height": self.display_height}


def compute_canvas_geometry(
    natural_width: int,
    natural_height: int,
    max_width: int = MAX_CANVAS_WIDTH,
    max_height: int = MAX_CANVAS_HEIGHT,
) -> CanvasGeometry:
    """
    Scale the natural size down (never up) into max_width x max_height.

    The clamp is applied in two passes: width first, then height on the
    already width-clamped result. Both dimensions are floored at the end.
    """
    if natural_width <= 0 or natural_height <= 0:
        raise ValueError(
            f"Image has no pixels: {natural_width}x{natural_height}"
        )

    width: float = natural_width
    height: float = natural_height

    if width > max_width:
        height = (height * max_width) / width
        width = max_width

    if height > max_height:
        width = (width * max_height) / height
        height = max_height

    return CanvasGeometry(
        natural_width=natural_width,
        natural_height=natural_height,
        display_width=math.floor(width),
        display_height=math.floor(height),
    )


def fit_rect(intrinsic: QSizeF, available: QRectF) -> QRectF:
    """
    Rectangle the canvas occupies inside the widget.

    Aspect ratio is kept, the canvas is centred and never stretched beyond
    its intrinsic size.
    """
    if intrinsic.width() <= 0 or intrinsic.height() <= 0:
        return QRectF()

    scale = min(
        1.0,
        available.width() / intrinsic.width(),
        available.height() / intrinsic.height(),
    )
    width = intrinsic.width() * scale
    height = intrinsic.height() * scale
    left = available.left() + (available.width() - width) / 2
    top = available.top() + (available.height() - height) / 2
    return QRectF(left, top, width, height)


class CoordinateMapper(ABC):
    """Maps pointer positions into the coordinate space shapes are stored in."""

    @abstractmethod
    def to_canvas(
        self, pointer: QPointF, rendered: QRectF, intrinsic: QSizeF
    ) -> QPointF:
        """
        Convert a pointer position into stored shape coordinates.

        Args:
            pointer: Pointer position in widget coordinates.
            rendered: Where the canvas is currently drawn inside the widget.
            intrinsic: The canvas' own pixel size.
        """

    @abstractmethod
    def to_widget(
        self, point: QPointF, rendered: QRectF, intrinsic: QSizeF
    ) -> QPointF:
        """Inverse of to_canvas."""


class CanvasPixelMapper(CoordinateMapper):
    """
    Maps into canvas-pixel space by the intrinsic/rendered size ratio.

    Nothing is cached: callers pass the rendered rectangle of the current
    event, so window resizes are picked up immediately.
    """

    def to_canvas(
        self, pointer: QPointF, rendered: QRectF, intrinsic: QSizeF
    ) -> QPointF:
        if rendered.width() <= 0 or rendered.height() <= 0:
            return QPointF(pointer.x() - rendered.left(), pointer.y() - rendered.top())

        scale_x = intrinsic.width() / rendered.width()
        scale_y = intrinsic.height() / rendered.height()
        return QPointF(
            (pointer.x() - rendered.left()) * scale_x,
            (pointer.y() - rendered.top()) * scale_y,
        )

    def to_widget(
        self, point: QPointF, rendered: QRectF, intrinsic: QSizeF
    ) -> QPointF:
        if intrinsic.width() <= 0 or intrinsic.height() <= 0:
            return QPointF(point.x() + rendered.left(), point.y() + rendered.top())

        return QPointF(
            rendered.left() + point.x() * rendered.width() / intrinsic.width(),
            rendered.top() + point.y() * rendered.height() / intrinsic.height(),
        )
