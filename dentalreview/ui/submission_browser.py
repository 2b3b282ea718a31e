"""
Submission browser for DentalReview.

Lists the backend's submissions in the order it returns them, with patient
details and review status; the chosen one is handed back to the main window.
"""

from typing import List, Optional

from PySide6.QtCore import Qt, Signal
from PySide6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QListWidgetItem,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

from dentalreview.core.workers import BackgroundRunner
from dentalreview.exceptions import DentalReviewError
from dentalreview.models.submission import Submission, SubmissionStatus
from dentalreview.services.api_client import SubmissionsClient
from dentalreview.services.logging_service import get_logger

EMPTY_MESSAGE = "No submissions to review yet."
FETCH_FAILED_MESSAGE = "Failed to fetch submissions"


def describe_submission(submission: Submission) -> str:
    """One list row: patient, contact, status and upload date."""
    uploaded = (
        submission.created_at.strftime("%Y-%m-%d") if submission.created_at else "-"
    )
    return (
        f"{submission.patient_name} ({submission.patient_id})  ·  {submission.email}"
        f"  ·  {submission.status.label}  ·  {uploaded}"
    )


def action_label(submission: Submission) -> str:
    if submission.status is SubmissionStatus.UPLOADED:
        return "Review && Annotate"
    return "View Details"


class SubmissionBrowserDialog(QDialog):
    """
    Dialog listing submissions.

    Signals:
        submission_chosen: Emitted with the id of the submission to open.
    """

    submission_chosen = Signal(str)

    def __init__(
        self,
        client: SubmissionsClient,
        runner: BackgroundRunner,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._client = client
        self._runner = runner
        self._submissions: List[Submission] = []

        self.setWindowTitle("Submissions")
        self.resize(640, 420)
        self._setup_ui()

    def _setup_ui(self) -> None:
        layout = QVBoxLayout(self)

        top_row = QHBoxLayout()
        self._message_label = QLabel()
        top_row.addWidget(self._message_label, 1)
        self._refresh_btn = QPushButton("Refresh")
        self._refresh_btn.clicked.connect(self.refresh)
        top_row.addWidget(self._refresh_btn)
        layout.addLayout(top_row)

        self._list = QListWidget()
        self._list.currentRowChanged.connect(self._on_row_changed)
        self._list.itemDoubleClicked.connect(lambda item: self.choose_current())
        layout.addWidget(self._list, 1)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Cancel, parent=self)
        self._open_btn = buttons.addButton(
            "Review && Annotate", QDialogButtonBox.ButtonRole.AcceptRole
        )
        self._open_btn.setEnabled(False)
        buttons.accepted.connect(self.choose_current)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

    @property
    def submissions(self) -> List[Submission]:
        return list(self._submissions)

    def refresh(self) -> None:
        """Fetch the list in the background."""
        self._refresh_btn.setEnabled(False)
        self._message_label.setText("Loading submissions...")
        self._runner.run(
            self._client.list_submissions,
            on_finished=self.show_submissions,
            on_failed=self._on_fetch_failed,
        )

    def show_submissions(self, submissions: List[Submission]) -> None:
        self._refresh_btn.setEnabled(True)
        self._submissions = list(submissions)
        self._list.clear()
        for submission in self._submissions:
            item = QListWidgetItem(describe_submission(submission))
            item.setData(Qt.ItemDataRole.UserRole, submission.id)
            self._list.addItem(item)

        self._message_label.setText("" if self._submissions else EMPTY_MESSAGE)
        if self._submissions:
            self._list.setCurrentRow(0)
        else:
            self._open_btn.setEnabled(False)

    def choose_current(self) -> None:
        row = self._list.currentRow()
        if not 0 <= row < len(self._submissions):
            return
        submission = self._submissions[row]
        self._logger.info(f"Opening submission {submission.id}")
        self.submission_chosen.emit(submission.id)
        self.accept()

    def _on_row_changed(self, row: int) -> None:
        if 0 <= row < len(self._submissions):
            self._open_btn.setText(action_label(self._submissions[row]))
            self._open_btn.setEnabled(True)
        else:
            self._open_btn.setEnabled(False)

    def _on_fetch_failed(self, error: Exception) -> None:
        self._refresh_btn.setEnabled(True)
        detail = error.message if isinstance(error, DentalReviewError) else str(error)
        self._logger.error(f"{FETCH_FAILED_MESSAGE}: {detail}")
        self._message_label.setText(f"{FETCH_FAILED_MESSAGE}: {detail}")
