"""
Export of a finished annotation session.

The exporter validates the session, re-renders the composite synchronously
and produces the two artifacts the review backend stores:

- annotationData: the AnnotationSet record
- annotatedImageDataUrl: the flattened JPEG composite as a data URL

It never returns artifacts that failed validation; the caller owns the
network call that follows.
"""

import base64
import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from PySide6.QtGui import QImage

from dentalreview.editor.annotations import AnnotationSet
from dentalreview.editor.geometry import CanvasGeometry
from dentalreview.editor.rendering import encode_image, render_annotations, to_data_url
from dentalreview.editor.session import AnnotationSession
from dentalreview.exceptions import (
    EmptyAnnotationError,
    RasterizationFailure,
    UninitializedCanvasError,
)
from dentalreview.services.logging_service import get_logger

# A data URL shorter than this cannot hold a real photo
MIN_DATA_URL_LENGTH = 1000

DEFAULT_JPEG_QUALITY = 95


@dataclass(frozen=True)
class ExportResult:
    """Artifacts handed to the save callback."""

    annotation_set: AnnotationSet
    data_url: str
    composite: QImage

    def payload(self) -> Dict[str, Any]:
        """Request body for the annotate endpoint."""
        return {
            "annotationData": self.annotation_set.to_dict(),
            "annotatedImageDataUrl": self.data_url,
        }


class AnnotationExporter:
    """Validates and rasterizes a session for persistence."""

    def __init__(
        self,
        quality: int = DEFAULT_JPEG_QUALITY,
        min_data_url_length: int = MIN_DATA_URL_LENGTH,
    ) -> None:
        self._logger = get_logger(__name__)
        self._quality = quality
        self._min_data_url_length = min_data_url_length

    def export(
        self,
        session: AnnotationSession,
        base_image: Optional[QImage],
        geometry: Optional[CanvasGeometry],
        timestamp: Optional[datetime] = None,
    ) -> ExportResult:
        """
        Build the save artifacts for the current session.

        Raises:
            EmptyAnnotationError: the session has no shapes.
            UninitializedCanvasError: no image or geometry yet.
            RasterizationFailure: the encoded composite is implausibly small.
        """
        if len(session) == 0:
            raise EmptyAnnotationError()

        if (
            base_image is None
            or base_image.isNull()
            or geometry is None
            or not geometry.is_valid
        ):
            raise UninitializedCanvasError()

        annotation_set = session.snapshot(geometry.image_size_dict(), timestamp)
        composite = render_annotations(base_image, geometry, annotation_set.shapes)
        data_url = to_data_url(encode_image(composite, "JPEG", self._quality))

        self._logger.info(
            f"Exporting {len(annotation_set)} annotation(s) at "
            f"{geometry.display_width}x{geometry.display_height}, "
            f"data URL length {len(data_url)}"
        )

        if len(data_url) < self._min_data_url_length:
            raise RasterizationFailure(
                context={
                    "data_url_length": len(data_url),
                    "minimum": self._min_data_url_length,
                }
            )

        return ExportResult(
            annotation_set=annotation_set,
            data_url=data_url,
            composite=composite,
        )


def write_export(result: ExportResult, folder: Path, stem: str) -> Tuple[Path, Path]:
    """
    Write an export to disk as <stem>_annotated.jpg plus <stem>_annotations.json.

    Used for offline reviews that have no submission to save to.

    Returns:
        The image path and the JSON path.
    """
    folder.mkdir(parents=True, exist_ok=True)

    image_path = folder / f"{stem}_annotated.jpg"
    json_path = folder / f"{stem}_annotations.json"

    _, encoded = result.data_url.split(",", 1)
    image_path.write_bytes(base64.b64decode(encoded))
    json_path.write_text(
        json.dumps(result.annotation_set.to_dict(), indent=2), encoding="utf-8"
    )
    return image_path, json_path
