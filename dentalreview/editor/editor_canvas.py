"""
Editor canvas widget for DentalReview.

The EditorCanvas displays the rendered composite (photo + annotations) and
turns mouse gestures into session input:

- The composite is rendered at display size and re-rendered whenever the
  shape list changes or a new image is set.
- On screen it is drawn aspect-fit inside the widget; every mouse event is
  mapped back into canvas pixels from the rectangle it currently occupies.
  Gestures start only on the image and end clamped onto it.
- While a gesture is in progress the candidate shape is previewed on top.
"""

from typing import Optional

from PySide6.QtCore import QPointF, QRectF, Qt, Signal
from PySide6.QtGui import QColor, QImage, QMouseEvent, QPainter
from PySide6.QtWidgets import QWidget

from dentalreview.editor.annotations import Shape
from dentalreview.editor.geometry import (
    CanvasGeometry,
    CanvasPixelMapper,
    CoordinateMapper,
    fit_rect,
)
from dentalreview.editor.rendering import render_annotations
from dentalreview.editor.session import AnnotationSession, EditorState
from dentalreview.services.logging_service import get_logger


class EditorCanvas(QWidget):
    """
    Canvas widget showing one photo and its annotations.

    Signals:
        image_changed: Emitted when an image is set or cleared.
        cursor_moved: Emitted with canvas-pixel coordinates under the mouse.
    """

    image_changed = Signal()
    cursor_moved = Signal(float, float)

    def __init__(
        self,
        session: AnnotationSession,
        mapper: Optional[CoordinateMapper] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)

        self._session = session
        self._mapper = mapper or CanvasPixelMapper()

        self._image: Optional[QImage] = None
        self._geometry: Optional[CanvasGeometry] = None
        self._composite: Optional[QImage] = None

        # Candidate shape while dragging (never part of the session)
        self._preview: Optional[Shape] = None
        self._press_pos: Optional[QPointF] = None

        self._session.shapes_changed.connect(self.rerender)
        self._session.state_changed.connect(self._on_state_changed)

        self._setup_widget()

    def _setup_widget(self) -> None:
        """Configure widget properties."""
        self.setMouseTracking(True)
        self.setMinimumSize(200, 150)
        self.setCursor(Qt.CursorShape.CrossCursor)
        self.setStyleSheet("background-color: #1a1a1a;")

    # ─── Image Management ─────────────────────────────────────────────────

    def set_image(self, image: QImage, geometry: CanvasGeometry) -> None:
        """Show a newly loaded image; the session keeps its shapes."""
        self._image = image
        self._geometry = geometry
        self._preview = None
        self.rerender()
        self.image_changed.emit()

    def clear_image(self) -> None:
        """Return to the inert, image-less state."""
        self._image = None
        self._geometry = None
        self._composite = None
        self._preview = None
        self.update()
        self.image_changed.emit()

    @property
    def image(self) -> Optional[QImage]:
        return self._image

    @property
    def geometry_info(self) -> Optional[CanvasGeometry]:
        return self._geometry

    @property
    def has_image(self) -> bool:
        return self._image is not None and self._geometry is not None

    @property
    def session(self) -> AnnotationSession:
        return self._session

    # ─── Rendering ────────────────────────────────────────────────────────

    def rerender(self) -> None:
        """Rebuild the composite from the image and the current shapes."""
        if not self.has_image:
            self._composite = None
        else:
            self._composite = render_annotations(
                self._image, self._geometry, self._session.shapes
            )
        self.update()

    def render_to_image(self) -> QImage:
        """Render the composite now and return it (null image if inert)."""
        self.rerender()
        return QImage(self._composite) if self._composite is not None else QImage()

    # ─── Coordinate Conversion ────────────────────────────────────────────

    def rendered_rect(self) -> QRectF:
        """Where the canvas currently sits inside the widget."""
        if not self.has_image:
            return QRectF()
        return fit_rect(self._geometry.display_size, QRectF(self.rect()))

    def widget_to_canvas(self, pos: QPointF) -> QPointF:
        return self._mapper.to_canvas(
            pos, self.rendered_rect(), self._geometry.display_size
        )

    def clamp_to_canvas(self, pos: QPointF) -> QPointF:
        """Pin a canvas-pixel point onto the image area."""
        return QPointF(
            min(max(pos.x(), 0.0), float(self._geometry.display_width)),
            min(max(pos.y(), 0.0), float(self._geometry.display_height)),
        )

    # ─── Event Handlers ───────────────────────────────────────────────────

    def paintEvent(self, event) -> None:
        """Paint the canvas."""
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)

        painter.fillRect(self.rect(), QColor(26, 26, 26))

        if self._composite is None:
            painter.setPen(QColor(100, 100, 100))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "No image loaded")
            painter.end()
            return

        target = self.rendered_rect()
        painter.drawImage(target, self._composite)

        if self._preview is not None:
            # Preview is drawn in canvas pixels, scaled like the composite
            painter.translate(target.topLeft())
            painter.scale(
                target.width() / self._geometry.display_width,
                target.height() / self._geometry.display_height,
            )
            painter.setOpacity(0.6)
            self._preview.paint(painter)

        painter.end()

    def mousePressEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image:
            super().mousePressEvent(event)
            return

        # Gestures only start on the photo, never in the letterbox margin
        if not self.rendered_rect().contains(event.position()):
            return

        pos = self.widget_to_canvas(event.position())
        if self._session.pointer_down(pos):
            self._press_pos = pos

    def mouseMoveEvent(self, event: QMouseEvent) -> None:
        if not self.has_image:
            return

        pos = self.widget_to_canvas(event.position())
        if self.rendered_rect().contains(event.position()):
            self.cursor_moved.emit(pos.x(), pos.y())

        if self._session.state is EditorState.DRAWING and self._press_pos is not None:
            pos = self.clamp_to_canvas(pos)
            self._preview = self._session.active_tool.candidate(
                self._press_pos, pos, self._session.selected_color
            )
            self.update()

    def mouseReleaseEvent(self, event: QMouseEvent) -> None:
        if event.button() != Qt.MouseButton.LeftButton or not self.has_image:
            super().mouseReleaseEvent(event)
            return

        self._session.pointer_up(
            self.clamp_to_canvas(self.widget_to_canvas(event.position()))
        )

    def _on_state_changed(self, state: EditorState) -> None:
        if state is EditorState.IDLE:
            self._press_pos = None
            self._preview = None
            self.update()
