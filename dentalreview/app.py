"""
DentalReview - Dental image review and annotation desktop client.

This is the main entry point for the application.
Run with: python -m dentalreview.app [SUBMISSION_ID] [--image PATH_OR_URL] [-v]
"""

import argparse
import signal
import sys
from pathlib import Path
from typing import List, Optional

from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from dentalreview import __version__
from dentalreview.core.app_core import AppCore
from dentalreview.services.logging_service import get_logger, setup_logging, shutdown_logging

# Global app reference for signal handlers
_app: Optional[QApplication] = None
_should_quit = False


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="dentalreview",
        description="Review and annotate dental photo submissions.",
    )
    parser.add_argument(
        "submission_id",
        nargs="?",
        help="Submission to open from the review server",
    )
    parser.add_argument(
        "--image",
        metavar="PATH_OR_URL",
        help="Annotate a local file or URL without a submission (offline review)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Config file (default: ~/.config/dentalreview/config.json)",
    )
    parser.add_argument(
        "--api-base-url",
        help="Review server API root for this run",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log at DEBUG level regardless of the configured log_level",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(argv)
    if args.submission_id and args.image:
        parser.error("give either a submission id or --image, not both")
    return args


def request_quit(signum, frame):
    """Handle termination signals."""
    global _should_quit
    _should_quit = True


def check_for_quit():
    """Timer callback to check if we should quit."""
    if _should_quit and _app:
        get_logger(__name__).info("Signal received, quitting...")
        _app.quit()


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for DentalReview.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    global _app

    args = parse_args(argv)

    # Console-only until the config is loaded, to catch early errors
    setup_logging("DEBUG" if args.verbose else "INFO", log_to_file=False)
    logger = get_logger(__name__)

    try:
        logger.info("Starting DentalReview application...")

        _app = QApplication(sys.argv[:1])
        _app.setApplicationName("DentalReview")
        _app.setOrganizationName("DentalReview")
        _app.setApplicationVersion(__version__)

        signal.signal(signal.SIGINT, request_quit)
        signal.signal(signal.SIGTERM, request_quit)

        # Qt's event loop blocks Python signal delivery; poll instead
        quit_timer = QTimer()
        quit_timer.timeout.connect(check_for_quit)
        quit_timer.start(100)

        app_core = AppCore(
            _app,
            config_path=args.config,
            api_base_url=args.api_base_url,
            verbose=args.verbose,
        )

        if args.submission_id:
            app_core.open_submission(args.submission_id)
        elif args.image:
            app_core.open_image(args.image)
        else:
            app_core.browse_submissions()

        logger.info("DentalReview initialization complete. Entering event loop...")
        exit_code = _app.exec()

        logger.info(f"DentalReview exiting with code {exit_code}")
        return exit_code

    except Exception as e:
        logger.critical(f"Fatal error during startup: {e}", exc_info=True)
        return 1

    finally:
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
