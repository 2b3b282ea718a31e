"""
Application core for DentalReview.

This module contains the AppCore class which is responsible for:
- Initializing all services (config, logging, REST client)
- Creating and managing the main window
- Applying global styling (dark theme)
- Opening the submission or image named on the command line

This is the central orchestration point for the application.
"""

from pathlib import Path
from typing import Optional

from PySide6.QtCore import QObject, Slot
from PySide6.QtGui import QColor, QPalette
from PySide6.QtWidgets import QApplication

from dentalreview.services.api_client import SubmissionsClient
from dentalreview.services.config_service import ConfigService
from dentalreview.services.logging_service import get_logger, setup_logging
from dentalreview.ui.main_window import MainWindow


class AppCore(QObject):
    """
    Central application core that wires together all components.

    Responsibilities:
    - Initialize all services
    - Apply global dark theme
    - Create and show the MainWindow
    - Release the REST client on shutdown
    """

    def __init__(
        self,
        app: QApplication,
        config_path: Optional[Path] = None,
        api_base_url: Optional[str] = None,
        verbose: bool = False,
    ) -> None:
        """
        Initialize the application core.

        Args:
            app: The QApplication instance.
            config_path: Optional config file location.
            api_base_url: Overrides the configured backend URL for this run.
            verbose: Log at DEBUG whatever the configured level.
        """
        super().__init__()
        self._app = app

        self._config_service: Optional[ConfigService] = None
        self._client: Optional[SubmissionsClient] = None
        self._main_window: Optional[MainWindow] = None

        self._init_services(config_path, api_base_url, verbose)
        self._apply_dark_theme()
        self._init_ui()

        self._app.aboutToQuit.connect(self.shutdown)

    def _init_services(
        self, config_path: Optional[Path], api_base_url: Optional[str], verbose: bool
    ) -> None:
        """Initialize all application services."""
        self._logger = get_logger(__name__)
        self._logger.info("Initializing DentalReview application core...")

        overrides = {"api_base_url": api_base_url} if api_base_url else None
        self._config_service = ConfigService(config_path, overrides=overrides)

        config = self._config_service
        setup_logging(
            "DEBUG" if verbose else config.log_level,
            log_to_file=config.log_to_file,
            retention_days=config.log_retention_days,
        )
        self._logger.info(f"Review server: {self._config_service.api_base_url}")

        self._client = SubmissionsClient(self._config_service)

    def _apply_dark_theme(self) -> None:
        """Apply a dark color palette to the application."""
        if self._config_service.theme != "dark":
            self._logger.info(f"Theme '{self._config_service.theme}': using native palette")
            return

        palette = QPalette()

        palette.setColor(QPalette.ColorRole.Window, QColor(45, 45, 45))
        palette.setColor(QPalette.ColorRole.WindowText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Base, QColor(35, 35, 35))
        palette.setColor(QPalette.ColorRole.AlternateBase, QColor(50, 50, 50))
        palette.setColor(QPalette.ColorRole.Text, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Button, QColor(55, 55, 55))
        palette.setColor(QPalette.ColorRole.ButtonText, QColor(220, 220, 220))
        palette.setColor(QPalette.ColorRole.Highlight, QColor(80, 120, 180))
        palette.setColor(QPalette.ColorRole.HighlightedText, QColor(255, 255, 255))

        for role in (
            QPalette.ColorRole.WindowText,
            QPalette.ColorRole.Text,
            QPalette.ColorRole.ButtonText,
        ):
            palette.setColor(QPalette.ColorGroup.Disabled, role, QColor(127, 127, 127))

        self._app.setPalette(palette)
        self._app.setStyleSheet("""
            QToolTip {
                background-color: #3d3d3d;
                color: #dcdcdc;
                border: 1px solid #5a5a5a;
                padding: 4px;
            }
            QStatusBar {
                color: #bbb;
            }
        """)

        self._logger.info("Dark theme applied")

    def _init_ui(self) -> None:
        """Create and show the main window."""
        self._main_window = MainWindow(self._config_service, self._client)
        self._main_window.show()

    # ─── Startup Targets ──────────────────────────────────────────────────

    def open_submission(self, submission_id: str) -> None:
        self._logger.info(f"Opening submission {submission_id}")
        self.main_window.open_submission(submission_id)

    def open_image(self, source: str) -> None:
        self._logger.info(f"Opening image {source} for offline review")
        self.main_window.open_image(source)

    def browse_submissions(self) -> None:
        self._logger.info("No startup target; showing the submission list")
        self.main_window.browse_submissions()

    # ─── Application Lifecycle ────────────────────────────────────────────

    @Slot()
    def shutdown(self) -> None:
        """Release the REST client."""
        self._logger.info("Shutting down DentalReview...")
        if self._client is not None:
            self._client.close()
            self._client = None

    # ─── Properties ───────────────────────────────────────────────────────

    @property
    def config(self) -> ConfigService:
        """Get the configuration service."""
        if self._config_service is None:
            raise RuntimeError("ConfigService not initialized")
        return self._config_service

    @property
    def main_window(self) -> MainWindow:
        """Get the main window."""
        if self._main_window is None:
            raise RuntimeError("MainWindow not initialized")
        return self._main_window
