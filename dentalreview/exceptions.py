"""
Exception hierarchy for DentalReview.

Every error raised by the editor or the REST client derives from
DentalReviewError, which carries a user-facing message plus an optional
context dict that is logged but never shown to the user.

Exception Hierarchy:
    DentalReviewError (base)
    ├── ImageLoadFailure          image unreachable or undecodable
    ├── EmptyAnnotationError      save attempted with zero shapes
    ├── UninitializedCanvasError  save attempted before the image is ready
    ├── RasterizationFailure      exported composite implausibly small
    ├── AnnotationFormatError     persisted annotation JSON is malformed
    └── ApiError                  REST call failed
        └── AuthenticationError   REST call rejected with 401
"""

from typing import Any, Dict, Optional


class DentalReviewError(Exception):
    """
    Base exception for all DentalReview errors.

    Attributes:
        message: User-facing error description.
        context: Additional debug info for the log.
    """

    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.context = context or {}
        super().__init__(self.message)


class ImageLoadFailure(DentalReviewError):
    default_message = "Failed to load image. Please try refreshing."


class EmptyAnnotationError(DentalReviewError):
    default_message = "Please add some annotations before saving."


class UninitializedCanvasError(DentalReviewError):
    default_message = "Canvas is not properly initialized. Please reload the image."


class RasterizationFailure(DentalReviewError):
    default_message = (
        "Canvas image data seems invalid. Please draw some annotations and try again."
    )


class AnnotationFormatError(DentalReviewError):
    default_message = "Stored annotation data could not be read."


class ApiError(DentalReviewError):
    """
    Raised when a REST call fails.

    Attributes:
        status_code: HTTP status, or None when the request never got a response.
    """

    default_message = "The review server request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, context)
        self.status_code = status_code


class AuthenticationError(ApiError):
    default_message = "Your session has expired. Please sign in again."
