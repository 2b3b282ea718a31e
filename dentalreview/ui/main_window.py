"""
Main window for DentalReview.

This module contains the main application window: a header with the
submission's patient details and review status, the annotation editor, and
report actions. REST calls run on background threads; the editor is
disabled while a save is in flight.
"""

from datetime import datetime
from pathlib import Path
from typing import Optional

from PySide6.QtCore import Qt
from PySide6.QtGui import QAction, QKeySequence
from PySide6.QtWidgets import (
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMainWindow,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from dentalreview.core.workers import BackgroundRunner
from dentalreview.editor.editor_widget import EditorWidget
from dentalreview.editor.exporter import ExportResult, write_export
from dentalreview.editor.geometry import CanvasGeometry
from dentalreview.editor.image_loader import make_fetcher
from dentalreview.exceptions import DentalReviewError
from dentalreview.models.submission import Submission, SubmissionStatus
from dentalreview.services.api_client import SubmissionsClient
from dentalreview.services.config_service import ConfigService
from dentalreview.services.logging_service import get_logger
from dentalreview.ui.submission_browser import SubmissionBrowserDialog

STATUS_BADGE_COLORS = {
    SubmissionStatus.UPLOADED: "#3b82f6",
    SubmissionStatus.ANNOTATED: "#eab308",
    SubmissionStatus.REPORTED: "#22c55e",
}


class MainWindow(QMainWindow):
    """
    Main application window for DentalReview.

    Works in one of two modes:
    - Submission review: loads a submission from the backend and saves
      annotations back to it.
    - Offline review: opens a local or remote image and writes the export
      into the configured export folder.
    """

    def __init__(
        self,
        config_service: ConfigService,
        client: Optional[SubmissionsClient] = None,
        runner: Optional[BackgroundRunner] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        """
        Initialize the MainWindow.

        Args:
            config_service: Application settings.
            client: REST client; None for offline-only use.
            runner: Background runner shared by REST calls and image loads.
            parent: Optional parent widget.
        """
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._config = config_service
        self._client = client
        self._runner = runner or BackgroundRunner(self)

        self._browser: Optional[SubmissionBrowserDialog] = None
        self._submission: Optional[Submission] = None
        self._offline_source: Optional[str] = None

        self._setup_window()
        self._setup_central_widget()
        self._setup_menu_bar()
        self._refresh_header()

        self._logger.info("MainWindow initialized")

    def _setup_window(self) -> None:
        """Configure main window properties."""
        self.setWindowTitle("DentalReview - Image Review & Annotation")
        self.setMinimumSize(900, 700)
        self.resize(1100, 850)

    def _setup_central_widget(self) -> None:
        """Header, editor and report actions."""
        central = QWidget()
        layout = QVBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        header = QWidget()
        header.setStyleSheet("background-color: #202020; color: #ddd;")
        header_row = QHBoxLayout(header)
        header_row.setContentsMargins(12, 8, 12, 8)

        self._patient_label = QLabel()
        self._patient_label.setTextFormat(Qt.TextFormat.RichText)
        header_row.addWidget(self._patient_label, 1)

        self._status_badge = QLabel()
        header_row.addWidget(self._status_badge)

        self._generate_btn = QPushButton("Generate PDF Report")
        self._generate_btn.clicked.connect(self.generate_report)
        header_row.addWidget(self._generate_btn)

        self._download_btn = QPushButton("Download Report")
        self._download_btn.clicked.connect(self.download_report)
        header_row.addWidget(self._download_btn)

        layout.addWidget(header)

        self._editor = EditorWidget(
            self._config,
            make_fetcher(self._client),
            on_save=self._on_save_requested,
            runner=self._runner,
        )
        self._editor.image_ready.connect(self._on_image_ready)
        layout.addWidget(self._editor, 1)

        self.setCentralWidget(central)

    def _setup_menu_bar(self) -> None:
        """Create and configure the menu bar."""
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")

        browse_action = QAction("Open &Submission...", self)
        browse_action.setShortcut("Ctrl+Shift+O")
        browse_action.triggered.connect(self.browse_submissions)
        file_menu.addAction(browse_action)

        open_action = QAction("&Open Image...", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self._on_open_image)
        file_menu.addAction(open_action)

        file_menu.addSeparator()

        quit_action = QAction("&Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

    # ─── Public Methods ───────────────────────────────────────────────────

    @property
    def editor(self) -> EditorWidget:
        return self._editor

    @property
    def submission(self) -> Optional[Submission]:
        return self._submission

    def open_submission(self, submission_id: str) -> None:
        """Fetch a submission and open its photo in the editor."""
        if self._client is None:
            self._show_error("No Server", "No review server is configured.")
            return

        self.statusBar().showMessage(f"Loading submission {submission_id}...")
        self._runner.run(
            self._client.get_submission,
            submission_id,
            on_finished=self.show_submission,
            on_failed=self._on_api_error,
        )

    def browse_submissions(self) -> Optional[SubmissionBrowserDialog]:
        """Show the submission list; choosing one opens it."""
        if self._client is None:
            self._show_error("No Server", "No review server is configured.")
            return None

        if self._browser is None:
            self._browser = SubmissionBrowserDialog(self._client, self._runner, self)
            self._browser.submission_chosen.connect(self.open_submission)
        self._browser.show()
        self._browser.raise_()
        self._browser.refresh()
        return self._browser

    def show_submission(self, submission: Submission) -> None:
        """Display a fetched submission and load its photo."""
        self._submission = submission
        self._offline_source = None
        self._refresh_header()
        self.statusBar().clearMessage()

        if not submission.original_image_url:
            self._show_error("No Image", "This submission has no uploaded image.")
            return

        self._editor.load_image(
            submission.original_image_url, submission.annotation_data
        )

    def open_image(self, source: str) -> None:
        """Open an image for offline review."""
        self._submission = None
        self._offline_source = source
        self._refresh_header()
        self._editor.load_image(source)

    def generate_report(self) -> None:
        if self._client is None or self._submission is None:
            return

        self._set_busy(True, "Generating PDF report...")
        self._runner.run(
            self._client.generate_pdf,
            self._submission.id,
            on_finished=self._on_report_generated,
            on_failed=self._on_api_error,
        )

    def download_report(self) -> None:
        if self._client is None or self._submission is None:
            return

        default_path = self._config.export_folder / f"report-{self._submission.patient_id}.pdf"
        path, _ = QFileDialog.getSaveFileName(
            self, "Save Report", str(default_path), "PDF files (*.pdf)"
        )
        if not path:
            return

        self._set_busy(True, "Downloading report...")
        self._runner.run(
            self._client.download_pdf,
            self._submission.id,
            on_finished=lambda content: self._on_report_downloaded(Path(path), content),
            on_failed=self._on_api_error,
        )

    # ─── Save Flow ────────────────────────────────────────────────────────

    def _on_save_requested(self, result: ExportResult) -> None:
        if self._submission is None:
            self._save_offline(result)
            return

        if self._client is None:
            self._show_error("No Server", "No review server is configured.")
            return

        self._editor.set_disabled(True)
        self.statusBar().showMessage("Saving annotations...")
        self._runner.run(
            self._client.annotate,
            self._submission.id,
            result,
            on_finished=self._on_annotation_saved,
            on_failed=self._on_save_failed,
        )

    def _save_offline(self, result: ExportResult) -> None:
        stem = Path(self._offline_source or "image").stem or "image"
        stem = f"{stem}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
        try:
            image_path, json_path = write_export(result, self._config.export_folder, stem)
        except OSError as e:
            self._logger.error(f"Could not write export: {e}")
            self._show_error("Save Failed", f"Could not write export: {e}")
            return

        self._logger.info(f"Saved offline review to {image_path} and {json_path}")
        self.statusBar().showMessage(f"Saved to {image_path}", 5000)

    def _on_annotation_saved(self, submission: Submission) -> None:
        self._editor.set_disabled(False)
        if not self._is_showing(submission):
            self._logger.info(f"Dropping save result for {submission.id}; no longer open")
            return
        self._submission = submission
        self._refresh_header()
        self.statusBar().showMessage("Annotation saved successfully!", 5000)

    def _on_save_failed(self, error: Exception) -> None:
        self._editor.set_disabled(False)
        self._on_api_error(error)

    # ─── Report Flow ──────────────────────────────────────────────────────

    def _on_report_generated(self, submission: Submission) -> None:
        self._set_busy(False)
        if not self._is_showing(submission):
            self._logger.info(f"Dropping report result for {submission.id}; no longer open")
            return
        self._submission = submission
        self._refresh_header()
        self.statusBar().showMessage("PDF report generated successfully!", 5000)

    def _on_report_downloaded(self, path: Path, content: bytes) -> None:
        self._set_busy(False)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)
        except OSError as e:
            self._logger.error(f"Could not write report to {path}: {e}")
            self._show_error("Download Failed", f"Could not write report: {e}")
            return
        self._logger.info(f"Report saved to {path}")
        self.statusBar().showMessage(f"Report saved to {path}", 5000)

    # ─── Helpers ──────────────────────────────────────────────────────────

    def _is_showing(self, submission: Submission) -> bool:
        return self._submission is not None and self._submission.id == submission.id

    def _on_image_ready(self, geometry: CanvasGeometry) -> None:
        self.statusBar().showMessage(
            f"Image loaded: {geometry.natural_width}x{geometry.natural_height}, "
            f"shown at {geometry.display_width}x{geometry.display_height}",
            5000,
        )

    def _on_api_error(self, error: Exception) -> None:
        self._set_busy(False)
        message = error.message if isinstance(error, DentalReviewError) else str(error)
        self.statusBar().clearMessage()
        self._show_error("Request Failed", message)

    def _set_busy(self, busy: bool, message: str = "") -> None:
        self._generate_btn.setEnabled(not busy)
        self._download_btn.setEnabled(not busy)
        if message:
            self.statusBar().showMessage(message)
        if not busy:
            self._refresh_header()

    def _refresh_header(self) -> None:
        submission = self._submission
        if submission is None:
            source = self._offline_source or "No submission loaded"
            self._patient_label.setText(f"<b>Offline review:</b> {source}")
            self._status_badge.hide()
            self._generate_btn.hide()
            self._download_btn.hide()
            return

        uploaded = (
            submission.created_at.strftime("%Y-%m-%d") if submission.created_at else "-"
        )
        self._patient_label.setText(
            f"<b>{submission.patient_name}</b> ({submission.patient_id}) "
            f"&middot; {submission.email} &middot; uploaded {uploaded}"
            + (f"<br><i>{submission.note}</i>" if submission.note else "")
        )

        color = STATUS_BADGE_COLORS.get(submission.status, "#888")
        self._status_badge.setText(f"Status: {submission.status.value}")
        self._status_badge.setStyleSheet(
            f"background-color: {color}; color: #111; border-radius: 9px; padding: 2px 10px;"
        )
        self._status_badge.show()

        self._generate_btn.setVisible(submission.status.can_generate_report)
        self._generate_btn.setText(
            "Regenerate PDF" if submission.has_report else "Generate PDF Report"
        )
        self._download_btn.setVisible(submission.has_report)

    def _on_open_image(self) -> None:
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", str(Path.home()), "Images (*.png *.jpg *.jpeg *.bmp)"
        )
        if path:
            self.open_image(path)

    def _show_error(self, title: str, message: str) -> None:
        QMessageBox.warning(self, title, message)

    def closeEvent(self, event) -> None:
        """Wait for background calls before the window goes away."""
        self._logger.info("MainWindow closing")
        self._runner.wait_all()
        super().closeEvent(event)
