"""Tests for the main window's submission and offline flows."""

import json

import pytest
from PySide6.QtCore import QPointF

from dentalreview.editor.geometry import compute_canvas_geometry
from dentalreview.exceptions import ApiError
from dentalreview.models.submission import Submission, SubmissionStatus
from dentalreview.ui.main_window import MainWindow


@pytest.fixture
def errors():
    return []


@pytest.fixture
def window(qapp, config, errors, monkeypatch):
    main_window = MainWindow(config, client=None)
    monkeypatch.setattr(main_window, "_show_error", lambda title, message: errors.append(message))
    return main_window


def make_submission(status=SubmissionStatus.UPLOADED, image=""):
    return Submission(
        id="abc123",
        patient_id="P-001",
        patient_name="Jane Doe",
        email="jane@example.com",
        status=status,
        original_image_url=image,
    )


def annotate(window, photo):
    editor = window.editor
    editor.loader.image_loaded.emit(photo, compute_canvas_geometry(photo.width(), photo.height()))
    editor.session.pointer_down(QPointF(10, 10))
    editor.session.pointer_up(QPointF(50, 80))


def test_offline_header(window):
    assert "Offline review" in window._patient_label.text()
    assert window._generate_btn.isHidden()
    assert window._download_btn.isHidden()


def test_report_buttons_follow_status(window):
    window._submission = make_submission(SubmissionStatus.UPLOADED)
    window._refresh_header()
    assert window._generate_btn.isHidden()
    assert "Jane Doe" in window._patient_label.text()

    window._submission = make_submission(SubmissionStatus.ANNOTATED)
    window._refresh_header()
    assert not window._generate_btn.isHidden()
    assert window._download_btn.isHidden()

    window._submission = make_submission(SubmissionStatus.REPORTED)
    window._refresh_header()
    assert window._generate_btn.text() == "Regenerate PDF"
    assert not window._download_btn.isHidden()


def test_submission_without_image_is_reported(window, errors):
    window.show_submission(make_submission(image=""))
    assert window.submission.id == "abc123"
    assert errors == ["This submission has no uploaded image."]


def test_open_submission_without_server(window, errors):
    window.open_submission("abc123")
    assert errors == ["No review server is configured."]


def test_offline_save_writes_export(window, config, photo, errors):
    annotate(window, photo)

    result = window.editor.save()

    assert errors == []
    assert result is not None
    written = sorted(p.name for p in config.export_folder.iterdir())
    assert len(written) == 2
    assert written[0].endswith("_annotated.jpg")
    assert written[1].endswith("_annotations.json")
    record = json.loads((config.export_folder / written[1]).read_text(encoding="utf-8"))
    assert record["totalAnnotations"] == 1


def test_saved_submission_reenables_editor(window):
    window._submission = make_submission()
    window.editor.set_disabled(True)

    window._on_annotation_saved(make_submission(SubmissionStatus.ANNOTATED))

    assert not window.editor.is_disabled
    assert window.submission.status is SubmissionStatus.ANNOTATED
    assert not window._generate_btn.isHidden()


def test_failed_save_reenables_editor_and_shows_message(window, errors):
    window._submission = make_submission()
    window.editor.set_disabled(True)

    window._on_save_failed(ApiError("Submission not found", status_code=404))

    assert not window.editor.is_disabled
    assert errors == ["Submission not found"]


class StubClient:
    """Stands in for SubmissionsClient; calls only go through the runner."""

    def list_submissions(self):
        return []

    def get_submission(self, submission_id):
        return make_submission()

    def annotate(self, submission_id, result):
        return make_submission(SubmissionStatus.ANNOTATED)

    def generate_pdf(self, submission_id):
        return make_submission(SubmissionStatus.REPORTED)

    def fetch_image(self, source):
        return b""


@pytest.fixture
def server_window(qapp, config, errors, fake_runner, monkeypatch):
    main_window = MainWindow(config, client=StubClient(), runner=fake_runner)
    monkeypatch.setattr(main_window, "_show_error", lambda title, message: errors.append(message))
    return main_window


def test_save_result_for_a_closed_submission_is_dropped(server_window, fake_runner, photo):
    server_window._submission = make_submission()
    server_window._refresh_header()
    annotate(server_window, photo)

    assert server_window.editor.save() is not None
    assert server_window.editor.is_disabled
    _, args, on_finished, _ = fake_runner.calls[-1]
    assert args[0] == "abc123"

    # User moves on to a local image before the server answers
    server_window.open_image("scan.jpg")
    on_finished(make_submission(SubmissionStatus.ANNOTATED))

    assert server_window.submission is None
    assert not server_window.editor.is_disabled
    assert "Offline review" in server_window._patient_label.text()


def test_report_result_for_a_closed_submission_is_dropped(server_window, fake_runner):
    server_window._submission = make_submission(SubmissionStatus.ANNOTATED)
    server_window.generate_report()
    _, _, on_finished, _ = fake_runner.calls[-1]

    server_window._submission = Submission(
        id="other",
        patient_id="P-002",
        patient_name="John Roe",
        email="john@example.com",
        status=SubmissionStatus.UPLOADED,
    )
    on_finished(make_submission(SubmissionStatus.REPORTED))

    assert server_window.submission.id == "other"
    assert server_window._generate_btn.isEnabled()


def test_loaded_image_size_is_shown(window, photo):
    window.editor.loader.image_loaded.emit(
        photo, compute_canvas_geometry(photo.width(), photo.height())
    )
    assert window.statusBar().currentMessage() == "Image loaded: 1000x750, shown at 800x600"


def test_browse_without_server(window, errors):
    assert window.browse_submissions() is None
    assert errors == ["No review server is configured."]


def test_browse_opens_chosen_submission(server_window, fake_runner):
    browser = server_window.browse_submissions()
    assert browser is not None
    _, _, on_finished, _ = fake_runner.calls[-1]
    on_finished([make_submission()])

    browser.choose_current()

    fn, args, _, _ = fake_runner.calls[-1]
    assert fn.__name__ == "get_submission"
    assert args == ("abc123",)
    browser.close()
