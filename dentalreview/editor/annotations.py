"""
Annotation models for the DentalReview editor.

This module provides the data models for the markup a clinician draws over a
dental photo. Each annotation knows how to:
- Paint itself on a QPainter
- Check itself against the minimum-size filter
- Serialize to and from the JSON record the review backend stores

Annotation Types:
- RectangleAnnotation: Outlined rectangle, anchored at its top-left corner
- CircleAnnotation: Outlined circle, anchored at its centre
- ArrowAnnotation: Line with an open V-shaped arrowhead at the end point

The set of types is closed: Shape is the union of the three classes and
every decoder and painter dispatches over exactly these.

All coordinates are canvas pixels (the display-scaled image), not natural
image pixels.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

from PySide6.QtCore import QPointF, QRectF, Qt
from PySide6.QtGui import QColor, QPainter, QPen

from dentalreview.exceptions import AnnotationFormatError

# Pen used for every shape
STROKE_WIDTH = 3

# Arrowhead: two strokes, each rotated this far from the shaft
ARROWHEAD_LENGTH = 15
ARROWHEAD_ANGLE = math.pi / 6

# Minimum-size filter (accidental clicks never become shapes)
MIN_RECT_SIDE = 5
MIN_CIRCLE_RADIUS = 5
MIN_ARROW_LENGTH = 10

# Fixed palette offered by the editor
PALETTE: Tuple[str, ...] = (
    "#FF0000",  # Red
    "#00FF00",  # Green
    "#0000FF",  # Blue
    "#FFFF00",  # Yellow
    "#FF00FF",  # Magenta
    "#00FFFF",  # Cyan
)
DEFAULT_COLOR = PALETTE[0]


class AnnotationType(Enum):
    """Enum for annotation types. Values are the wire "type" tags."""
    RECTANGLE = "rectangle"
    CIRCLE = "circle"
    ARROW = "arrow"


class AnnotationBase(ABC):
    """
    Base class for all annotations.

    Subclasses are frozen dataclasses; a shape never changes after it has
    been appended to the session.
    """

    color: str

    @property
    @abstractmethod
    def annotation_type(self) -> AnnotationType:
        """Return the type of this annotation."""

    @abstractmethod
    def meets_minimum_size(self) -> bool:
        """True when the shape is large enough to keep."""

    @abstractmethod
    def paint(self, painter: QPainter) -> None:
        """
        Stroke the annotation.

        Args:
            painter: The QPainter to use, in canvas-pixel coordinates.
        """

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the backend's JSON record."""

    def _apply_pen(self, painter: QPainter) -> None:
        """Stroke-only pen: own colour, 3px, round caps and joins."""
        pen = QPen(QColor(self.color))
        pen.setWidth(STROKE_WIDTH)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        pen.setJoinStyle(Qt.PenJoinStyle.RoundJoin)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)


@dataclass(frozen=True)
class RectangleAnnotation(AnnotationBase):
    """Axis-aligned rectangle; x, y is the top-left corner."""

    x: float
    y: float
    width: float
    height: float
    color: str = DEFAULT_COLOR

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.RECTANGLE

    @classmethod
    def from_drag(
        cls, start: QPointF, end: QPointF, color: str
    ) -> "RectangleAnnotation":
        """Rectangle spanned by a press and a release point, in any direction."""
        return cls(
            x=min(start.x(), end.x()),
            y=min(start.y(), end.y()),
            width=abs(end.x() - start.x()),
            height=abs(end.y() - start.y()),
            color=color,
        )

    def meets_minimum_size(self) -> bool:
        return self.width > MIN_RECT_SIDE and self.height > MIN_RECT_SIDE

    def paint(self, painter: QPainter) -> None:
        self._apply_pen(painter)
        painter.drawRect(QRectF(self.x, self.y, self.width, self.height))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.annotation_type.value,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "color": self.color,
        }


@dataclass(frozen=True)
class CircleAnnotation(AnnotationBase):
    """Circle centred on x, y."""

    x: float
    y: float
    radius: float
    color: str = DEFAULT_COLOR

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.CIRCLE

    @classmethod
    def from_drag(
        cls, start: QPointF, end: QPointF, color: str
    ) -> "CircleAnnotation":
        """Circle centred on the press point, passing through the release point."""
        radius = math.hypot(end.x() - start.x(), end.y() - start.y())
        return cls(x=start.x(), y=start.y(), radius=radius, color=color)

    def meets_minimum_size(self) -> bool:
        return self.radius > MIN_CIRCLE_RADIUS

    def paint(self, painter: QPainter) -> None:
        self._apply_pen(painter)
        painter.drawEllipse(QPointF(self.x, self.y), self.radius, self.radius)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.annotation_type.value,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "color": self.color,
        }


@dataclass(frozen=True)
class ArrowAnnotation(AnnotationBase):
    """Directed segment from start to end with an open arrowhead at the end."""

    start_x: float
    start_y: float
    end_x: float
    end_y: float
    color: str = DEFAULT_COLOR

    @property
    def annotation_type(self) -> AnnotationType:
        return AnnotationType.ARROW

    @classmethod
    def from_drag(
        cls, start: QPointF, end: QPointF, color: str
    ) -> "ArrowAnnotation":
        return cls(
            start_x=start.x(),
            start_y=start.y(),
            end_x=end.x(),
            end_y=end.y(),
            color=color,
        )

    @property
    def start(self) -> QPointF:
        return QPointF(self.start_x, self.start_y)

    @property
    def end(self) -> QPointF:
        return QPointF(self.end_x, self.end_y)

    @property
    def length(self) -> float:
        return math.hypot(self.end_x - self.start_x, self.end_y - self.start_y)

    def meets_minimum_size(self) -> bool:
        return self.length > MIN_ARROW_LENGTH

    def head_segments(self) -> List[Tuple[QPointF, QPointF]]:
        """
        The two arrowhead strokes, each running from the end point back
        along the shaft, rotated -30 and +30 degrees from its direction.
        """
        angle = math.atan2(self.end_y - self.start_y, self.end_x - self.start_x)
        tip = self.end
        segments = []
        for offset in (-ARROWHEAD_ANGLE, ARROWHEAD_ANGLE):
            barb = QPointF(
                self.end_x - ARROWHEAD_LENGTH * math.cos(angle + offset),
                self.end_y - ARROWHEAD_LENGTH * math.sin(angle + offset),
            )
            segments.append((tip, barb))
        return segments

    def paint(self, painter: QPainter) -> None:
        self._apply_pen(painter)
        painter.drawLine(self.start, self.end)
        for tip, barb in self.head_segments():
            painter.drawLine(tip, barb)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.annotation_type.value,
            "startX": self.start_x,
            "startY": self.start_y,
            "endX": self.end_x,
            "endY": self.end_y,
            "color": self.color,
        }


Shape = Union[RectangleAnnotation, CircleAnnotation, ArrowAnnotation]


def _number(data: Mapping[str, Any], key: str) -> float:
    try:
        value = data[key]
    except KeyError:
        raise AnnotationFormatError(
            f"Annotation is missing '{key}'", context={"record": dict(data)}
        ) from None
    numeric = isinstance(value, (int, float)) and not isinstance(value, bool)
    if not numeric or not math.isfinite(value):
        raise AnnotationFormatError(
            f"Annotation field '{key}' must be a number",
            context={"record": dict(data)},
        )
    return float(value)


def shape_from_dict(data: Mapping[str, Any]) -> Shape:
    """
    Decode one stored shape record.

    Raises:
        AnnotationFormatError: unknown type tag or missing/non-numeric field.
    """
    if not isinstance(data, Mapping):
        raise AnnotationFormatError(f"Annotation record must be an object, got {data!r}")

    try:
        kind = AnnotationType(data.get("type"))
    except ValueError:
        raise AnnotationFormatError(
            f"Unknown annotation type: {data.get('type')!r}",
            context={"record": dict(data)},
        ) from None

    color = str(data.get("color", DEFAULT_COLOR))

    if kind is AnnotationType.RECTANGLE:
        return RectangleAnnotation(
            x=_number(data, "x"),
            y=_number(data, "y"),
            width=_number(data, "width"),
            height=_number(data, "height"),
            color=color,
        )
    if kind is AnnotationType.CIRCLE:
        return CircleAnnotation(
            x=_number(data, "x"),
            y=_number(data, "y"),
            radius=_number(data, "radius"),
            color=color,
        )
    if kind is AnnotationType.ARROW:
        return ArrowAnnotation(
            start_x=_number(data, "startX"),
            start_y=_number(data, "startY"),
            end_x=_number(data, "endX"),
            end_y=_number(data, "endY"),
            color=color,
        )
    raise AnnotationFormatError(f"Unhandled annotation type: {kind}")


@dataclass(frozen=True)
class AnnotationSet:
    """
    Ordered shapes of one review session plus metadata.

    Shape order is draw order: later shapes paint over earlier ones.
    """

    shapes: Tuple[Shape, ...] = ()
    timestamp: str = ""
    image_size: Dict[str, int] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.shapes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shapes": [shape.to_dict() for shape in self.shapes],
            "timestamp": self.timestamp,
            "imageSize": dict(self.image_size),
            "totalAnnotations": len(self.shapes),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AnnotationSet":
        """
        Decode a stored annotation set.

        Raises:
            AnnotationFormatError: if the record or any shape is malformed.
        """
        if not isinstance(data, Mapping):
            raise AnnotationFormatError(
                f"Annotation set must be an object, got {type(data).__name__}"
            )

        raw_shapes = data.get("shapes") or []
        if not isinstance(raw_shapes, Sequence) or isinstance(raw_shapes, str):
            raise AnnotationFormatError("Annotation set 'shapes' must be a list")

        image_size = data.get("imageSize") or {}
        if not isinstance(image_size, Mapping):
            raise AnnotationFormatError("Annotation set 'imageSize' must be an object")

        return cls(
            shapes=tuple(shape_from_dict(item) for item in raw_shapes),
            timestamp=str(data.get("timestamp", "")),
            image_size={
                "width": int(_number(image_size, "width")) if "width" in image_size else 0,
                "height": int(_number(image_size, "height")) if "height" in image_size else 0,
            },
        )
