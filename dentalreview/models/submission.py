"""Submission records as returned by the review backend."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from dentalreview.editor.annotations import AnnotationSet


class SubmissionStatus(Enum):
    """Review workflow state, owned by the backend."""
    UPLOADED = "uploaded"
    ANNOTATED = "annotated"
    REPORTED = "reported"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @property
    def can_generate_report(self) -> bool:
        return self in (SubmissionStatus.ANNOTATED, SubmissionStatus.REPORTED)


STATUS_LABELS = {
    SubmissionStatus.UPLOADED: "New Upload",
    SubmissionStatus.ANNOTATED: "Annotated",
    SubmissionStatus.REPORTED: "Report Generated",
}


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class Submission:
    """One uploaded dental photo and its review state."""

    id: str
    patient_id: str
    patient_name: str
    email: str
    status: SubmissionStatus
    original_image_url: str = ""
    note: str = ""
    annotation_data: Optional[AnnotationSet] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def has_report(self) -> bool:
        return self.status is SubmissionStatus.REPORTED

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Submission":
        """
        Build from the backend's JSON document.

        Raises:
            AnnotationFormatError: if stored annotationData is malformed.
        """
        raw_annotations = data.get("annotationData")
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            patient_id=str(data.get("patientId", "")),
            patient_name=str(data.get("patientName", "")),
            email=str(data.get("email", "")),
            status=SubmissionStatus(data.get("status", SubmissionStatus.UPLOADED.value)),
            original_image_url=str(
                data.get("originalImageUrl") or data.get("originalImagePath") or ""
            ),
            note=str(data.get("note") or ""),
            annotation_data=(
                AnnotationSet.from_dict(raw_annotations) if raw_annotations else None
            ),
            created_at=_parse_datetime(data.get("createdAt")),
            updated_at=_parse_datetime(data.get("updatedAt")),
        )
