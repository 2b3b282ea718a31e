"""Tests for Submission records."""

from datetime import timezone

import pytest

from dentalreview.editor.annotations import RectangleAnnotation
from dentalreview.exceptions import AnnotationFormatError
from dentalreview.models.submission import Submission, SubmissionStatus


def test_from_dict_full_document():
    submission = Submission.from_dict(
        {
            "_id": "abc123",
            "patientId": "P-001",
            "patientName": "Jane Doe",
            "email": "jane@example.com",
            "status": "annotated",
            "originalImagePath": "uploads/abc123.jpg",
            "note": "Check the crown",
            "annotationData": {
                "shapes": [
                    {"type": "rectangle", "x": 1, "y": 2, "width": 30, "height": 40, "color": "#FF0000"}
                ],
                "timestamp": "2024-03-01T10:05:00.000Z",
                "imageSize": {"width": 800, "height": 600},
                "totalAnnotations": 1,
            },
            "createdAt": "2024-03-01T10:00:00.000Z",
            "updatedAt": "2024-03-01T10:05:00.000Z",
        }
    )

    assert submission.id == "abc123"
    assert submission.patient_name == "Jane Doe"
    assert submission.status is SubmissionStatus.ANNOTATED
    assert submission.original_image_url == "uploads/abc123.jpg"
    assert submission.annotation_data.shapes == (RectangleAnnotation(1, 2, 30, 40, "#FF0000"),)
    assert submission.created_at.tzinfo == timezone.utc
    assert submission.created_at.hour == 10


def test_from_dict_minimal_document():
    submission = Submission.from_dict({"id": "x", "status": "uploaded"})
    assert submission.annotation_data is None
    assert submission.created_at is None
    assert submission.note == ""


def test_malformed_annotation_data_raises():
    with pytest.raises(AnnotationFormatError):
        Submission.from_dict({"_id": "x", "annotationData": {"shapes": [{"type": "blob"}]}})


def test_report_rules():
    assert not SubmissionStatus.UPLOADED.can_generate_report
    assert SubmissionStatus.ANNOTATED.can_generate_report
    assert SubmissionStatus.REPORTED.can_generate_report

    reported = Submission("x", "P", "N", "e@x", SubmissionStatus.REPORTED)
    assert reported.has_report


def test_status_labels():
    assert SubmissionStatus.UPLOADED.label == "New Upload"
    assert SubmissionStatus.ANNOTATED.label == "Annotated"
    assert SubmissionStatus.REPORTED.label == "Report Generated"
