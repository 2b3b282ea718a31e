"""
Editor widget for DentalReview - the annotation editor UI component.

This widget composes the complete editor interface:
- Top toolbar with tool buttons, colour palette, undo and clear
- Status line with annotation count, tool, colour and canvas size
- Center canvas for the photo and its annotations
- Bottom bar with the save button

The host supplies the image source and receives the export through the
save_requested signal; it owns the network call that persists it.
"""

from typing import Callable, Dict, Optional

from PySide6.QtCore import Qt, Signal, Slot
from PySide6.QtGui import QColor, QIcon, QImage, QPainter, QPen, QPixmap
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPushButton,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from dentalreview.core.workers import BackgroundRunner
from dentalreview.editor.annotations import PALETTE, AnnotationSet
from dentalreview.editor.editor_canvas import EditorCanvas
from dentalreview.editor.exporter import AnnotationExporter, ExportResult
from dentalreview.editor.geometry import CanvasGeometry
from dentalreview.editor.image_loader import Fetcher, ImageLoader
from dentalreview.editor.session import AnnotationSession
from dentalreview.editor.tools import ToolType
from dentalreview.exceptions import DentalReviewError
from dentalreview.services.config_service import ConfigService
from dentalreview.services.logging_service import get_logger


class PaletteButton(QPushButton):
    """Round swatch for one palette colour."""

    def __init__(self, color: str, parent=None):
        super().__init__(parent)
        self._color = color
        self.setCheckable(True)
        self.setFixedSize(28, 28)
        self.setToolTip(f"Select {color}")
        self.setStyleSheet(f"""
            QPushButton {{
                background-color: {color};
                border: 2px solid #555;
                border-radius: 14px;
            }}
            QPushButton:hover {{
                border-color: #888;
            }}
            QPushButton:checked {{
                border: 3px solid #eee;
            }}
        """)

    @property
    def color(self) -> str:
        return self._color


def _create_tool_icon(shape: str, color: QColor = QColor(220, 220, 220)) -> QIcon:
    """Draw a small toolbar icon for a tool."""
    size = 24
    pixmap = QPixmap(size, size)
    pixmap.fill(Qt.GlobalColor.transparent)

    painter = QPainter(pixmap)
    painter.setRenderHint(QPainter.RenderHint.Antialiasing)
    pen = QPen(color)
    pen.setWidthF(2.0)
    pen.setCapStyle(Qt.PenCapStyle.RoundCap)
    painter.setPen(pen)

    if shape == "rectangle":
        painter.drawRect(4, 6, 16, 12)
    elif shape == "circle":
        painter.drawEllipse(4, 4, 16, 16)
    elif shape == "arrow":
        painter.drawLine(5, 19, 19, 5)
        painter.drawLine(19, 5, 12, 6)
        painter.drawLine(19, 5, 18, 12)

    painter.end()
    return QIcon(pixmap)


class EditorWidget(QWidget):
    """
    Annotation editor composing toolbar, canvas and save bar.

    Signals:
        save_requested: Emitted with a validated ExportResult.
        image_ready: Emitted with the CanvasGeometry once an image is shown.
    """

    save_requested = Signal(object)
    image_ready = Signal(object)

    def __init__(
        self,
        config_service: ConfigService,
        fetcher: Fetcher,
        on_save: Optional[Callable[[ExportResult], None]] = None,
        runner: Optional[BackgroundRunner] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service

        self._session = AnnotationSession(parent=self)
        self._loader = ImageLoader(
            fetcher,
            runner=runner,
            max_width=config_service.canvas_max_width,
            max_height=config_service.canvas_max_height,
            parent=self,
        )
        self._exporter = AnnotationExporter(quality=config_service.jpeg_quality)
        self._disabled = False

        self._tool_buttons: Dict[ToolType, QToolButton] = {}
        self._color_buttons: Dict[str, PaletteButton] = {}

        self._setup_ui()
        self._connect_signals()

        if on_save is not None:
            self.save_requested.connect(on_save)

        self._sync_tool_buttons(self._session.selected_tool)
        self._sync_color_buttons(self._session.selected_color)
        self._update_status()

    def _setup_ui(self) -> None:
        """Build the UI layout."""
        main_layout = QVBoxLayout(self)
        main_layout.setContentsMargins(0, 0, 0, 0)
        main_layout.setSpacing(0)

        # ─── Top Toolbar ──────────────────────────────────────────────
        self._toolbar = QToolBar()
        self._toolbar.setMovable(False)
        self._toolbar.setStyleSheet("""
            QToolBar {
                background-color: #2a2a2a;
                border-bottom: 1px solid #3a3a3a;
                padding: 6px 8px;
                spacing: 4px;
            }
            QToolButton {
                background-color: transparent;
                border: none;
                border-radius: 8px;
                padding: 6px 8px;
                color: #ddd;
            }
            QToolButton:hover {
                background-color: rgba(255, 255, 255, 0.1);
            }
            QToolButton:checked {
                background-color: rgba(74, 144, 226, 0.3);
            }
        """)

        self._tool_group = QButtonGroup(self)
        self._tool_group.setExclusive(True)

        tool_configs = [
            (ToolType.RECTANGLE, "Rectangle", "R"),
            (ToolType.CIRCLE, "Circle", "C"),
            (ToolType.ARROW, "Arrow", "A"),
        ]
        for tool_type, name, shortcut in tool_configs:
            btn = QToolButton()
            btn.setIcon(_create_tool_icon(tool_type.value))
            btn.setText(name)
            btn.setToolButtonStyle(Qt.ToolButtonStyle.ToolButtonTextBesideIcon)
            btn.setToolTip(f"{name} ({shortcut})")
            btn.setCheckable(True)
            btn.setShortcut(shortcut)
            btn.clicked.connect(lambda checked=False, t=tool_type: self.select_tool(t))
            self._tool_group.addButton(btn)
            self._toolbar.addWidget(btn)
            self._tool_buttons[tool_type] = btn

        self._toolbar.addSeparator()

        self._color_group = QButtonGroup(self)
        self._color_group.setExclusive(True)
        palette_box = QWidget()
        palette_row = QHBoxLayout(palette_box)
        palette_row.setContentsMargins(4, 0, 4, 0)
        palette_row.setSpacing(4)
        for color in PALETTE:
            swatch = PaletteButton(color)
            swatch.clicked.connect(lambda checked=False, c=color: self.select_color(c))
            self._color_group.addButton(swatch)
            palette_row.addWidget(swatch)
            self._color_buttons[color] = swatch
        self._toolbar.addWidget(palette_box)

        self._toolbar.addSeparator()

        self._undo_btn = QToolButton()
        self._undo_btn.setText("Undo")
        self._undo_btn.setToolTip("Undo (Ctrl+Z)")
        self._undo_btn.setShortcut("Ctrl+Z")
        self._undo_btn.clicked.connect(self.undo)
        self._toolbar.addWidget(self._undo_btn)

        self._clear_btn = QToolButton()
        self._clear_btn.setText("Clear All")
        self._clear_btn.clicked.connect(self.clear)
        self._toolbar.addWidget(self._clear_btn)

        main_layout.addWidget(self._toolbar)

        # ─── Status Line ──────────────────────────────────────────────
        self._status_label = QLabel()
        self._status_label.setStyleSheet(
            "background-color: #252525; color: #bbb; padding: 4px 10px; font-size: 11px;"
        )
        main_layout.addWidget(self._status_label)

        # ─── Canvas ───────────────────────────────────────────────────
        self._canvas = EditorCanvas(self._session)
        main_layout.addWidget(self._canvas, 1)

        # ─── Save Bar ─────────────────────────────────────────────────
        save_bar = QWidget()
        save_bar.setStyleSheet("background-color: #2a2a2a;")
        save_row = QHBoxLayout(save_bar)
        save_row.setContentsMargins(10, 6, 10, 6)

        self._hint_label = QLabel()
        self._hint_label.setStyleSheet("font-size: 11px;")
        save_row.addWidget(self._hint_label)
        save_row.addStretch()

        self._cursor_label = QLabel()
        self._cursor_label.setStyleSheet("color: #888; font-size: 11px;")
        self._cursor_label.setToolTip("Cursor position in canvas pixels")
        save_row.addWidget(self._cursor_label)

        self._save_btn = QPushButton()
        self._save_btn.setShortcut("Ctrl+S")
        self._save_btn.clicked.connect(self.save)
        save_row.addWidget(self._save_btn)

        main_layout.addWidget(save_bar)

    def _connect_signals(self) -> None:
        """Connect widget signals."""
        self._session.shapes_changed.connect(self._update_status)
        self._session.tool_changed.connect(self._on_tool_changed)
        self._session.color_changed.connect(self._on_color_changed)
        self._loader.image_loaded.connect(self._on_image_loaded)
        self._loader.load_failed.connect(self._on_load_failed)
        self._canvas.cursor_moved.connect(self._on_cursor_moved)
        self._canvas.image_changed.connect(self._cursor_label.clear)

    # ─── Public API ───────────────────────────────────────────────────────

    @property
    def session(self) -> AnnotationSession:
        return self._session

    @property
    def canvas(self) -> EditorCanvas:
        return self._canvas

    @property
    def loader(self) -> ImageLoader:
        return self._loader

    def load_image(self, source: str, existing: Optional[AnnotationSet] = None) -> int:
        """
        Open a photo, seeding the shape list from a stored set if given.

        Returns:
            The loader request id.
        """
        self._session.reset(existing)
        self._canvas.clear_image()
        self._update_status()
        return self._loader.load(source)

    def set_disabled(self, disabled: bool) -> None:
        """Block drawing, undo, clear and save (e.g. while a save is in flight)."""
        self._disabled = disabled
        self._session.set_disabled(disabled)
        self._update_status()

    @property
    def is_disabled(self) -> bool:
        return self._disabled

    def select_tool(self, tool_type: ToolType) -> None:
        self._session.set_tool(tool_type)

    def select_color(self, color: str) -> None:
        self._session.set_color(color)

    def undo(self) -> None:
        if self._disabled:
            return
        self._session.undo()

    def clear(self) -> None:
        if self._disabled:
            return
        self._session.clear()

    def export(self) -> ExportResult:
        """
        Validate and rasterize the session.

        Raises:
            DentalReviewError: one of the local export errors.
        """
        return self._exporter.export(
            self._session, self._canvas.image, self._canvas.geometry_info
        )

    def save(self) -> Optional[ExportResult]:
        """Export and hand the result to the save handler; errors are shown."""
        if self._disabled:
            return None

        try:
            result = self.export()
        except DentalReviewError as e:
            self._logger.warning(f"Save rejected: {e.message} {e.context}")
            self._show_error("Cannot Save", e.message)
            return None

        self.save_requested.emit(result)
        return result

    # ─── Signal Handlers ──────────────────────────────────────────────────

    @Slot(QImage, object)
    def _on_image_loaded(self, image: QImage, geometry: CanvasGeometry) -> None:
        self._canvas.set_image(image, geometry)
        self._update_status()
        self.image_ready.emit(geometry)

    @Slot(str)
    def _on_load_failed(self, message: str) -> None:
        self._canvas.clear_image()
        self._update_status()
        self._show_error("Image Load Failed", message)

    @Slot(float, float)
    def _on_cursor_moved(self, x: float, y: float) -> None:
        self._cursor_label.setText(f"{round(x)}, {round(y)}")

    @Slot(object)
    def _on_tool_changed(self, tool_type: ToolType) -> None:
        self._sync_tool_buttons(tool_type)
        self._update_status()

    @Slot(str)
    def _on_color_changed(self, color: str) -> None:
        self._sync_color_buttons(color)
        self._update_status()

    def _sync_tool_buttons(self, tool_type: ToolType) -> None:
        btn = self._tool_buttons.get(tool_type)
        if btn is not None:
            btn.setChecked(True)

    def _sync_color_buttons(self, color: str) -> None:
        btn = self._color_buttons.get(color)
        if btn is not None:
            btn.setChecked(True)

    def _update_status(self) -> None:
        count = len(self._session)
        geometry = self._canvas.geometry_info
        size = (
            f"{geometry.display_width}×{geometry.display_height}px" if geometry else "-"
        )
        color = self._session.selected_color
        self._status_label.setText(
            f"<b>Status:</b> {count} annotation(s) | "
            f"<b>Tool:</b> {self._session.selected_tool.value} | "
            f"<b>Color:</b> <span style='color:{color}'>{color}</span> | "
            f"<b>Canvas:</b> {size}"
        )

        if count:
            self._hint_label.setText(f"✓ {count} annotation(s) ready to save")
            self._hint_label.setStyleSheet("color: #6c6; font-size: 11px;")
        else:
            self._hint_label.setText("No annotations yet. Draw some annotations to enable saving.")
            self._hint_label.setStyleSheet("color: #e90; font-size: 11px;")

        self._undo_btn.setEnabled(not self._disabled and count > 0)
        self._clear_btn.setEnabled(not self._disabled and count > 0)
        self._save_btn.setEnabled(not self._disabled and count > 0)
        self._save_btn.setText("Saving..." if self._disabled else f"Save {count} Annotation(s)")

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.warning(self, title, message)
