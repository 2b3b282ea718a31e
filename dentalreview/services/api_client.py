"""
REST client for the dental review backend.

Wraps the submissions endpoints the clinician client needs:

    GET  /submissions                     list_submissions()
    GET  /submissions/{id}                get_submission()
    PUT  /submissions/{id}/annotate       annotate()
    POST /submissions/{id}/generate-pdf   generate_pdf()
    GET  /submissions/{id}/download-pdf   download_pdf()

plus fetch_image() for the photo itself. Calls are blocking; the UI runs
them on a worker thread.
"""

from typing import Any, Dict, List, Optional

import httpx

from dentalreview.editor.exporter import ExportResult
from dentalreview.exceptions import ApiError, AuthenticationError
from dentalreview.models.submission import Submission
from dentalreview.services.config_service import ConfigService
from dentalreview.services.logging_service import get_logger


def resolve_image_url(source: str, asset_base_url: str) -> str:
    """
    Absolute URLs pass through; anything else is a path on the asset host.
    """
    if source.startswith(("http://", "https://")):
        return source
    return f"{asset_base_url.rstrip('/')}/{source.lstrip('/')}"


class SubmissionsClient:
    """Client for the submissions REST API."""

    def __init__(
        self,
        config: ConfigService,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Args:
            config: Supplies api_base_url, auth_token and request_timeout.
            transport: Optional httpx transport (tests pass a MockTransport).
        """
        self._logger = get_logger(__name__)
        self._config = config

        headers = {"Content-Type": "application/json"}
        if config.auth_token:
            headers["Authorization"] = f"Bearer {config.auth_token}"

        self._client = httpx.Client(
            base_url=config.api_base_url,
            headers=headers,
            timeout=config.request_timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "SubmissionsClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ─── Transport ────────────────────────────────────────────────────────

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and translate failures into ApiError."""
        self._logger.debug(f"{method} {url}")
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ApiError(
                f"Could not reach the review server: {e}",
                context={"method": method, "url": url},
            ) from e

        if response.status_code == 401:
            raise AuthenticationError(status_code=401, context={"url": url})

        if response.is_error:
            raise ApiError(
                self._error_message(response),
                status_code=response.status_code,
                context={"method": method, "url": url},
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"Request failed with status {response.status_code}"

    @staticmethod
    def _submission_from(response: httpx.Response) -> Submission:
        body = response.json()
        record = body.get("submission", body) if isinstance(body, dict) else body
        return Submission.from_dict(record)

    # ─── Submissions ──────────────────────────────────────────────────────

    def list_submissions(self) -> List[Submission]:
        body = self._request("GET", "/submissions").json()
        records = body.get("submissions", []) if isinstance(body, dict) else body
        return [Submission.from_dict(record) for record in records]

    def get_submission(self, submission_id: str) -> Submission:
        response = self._request("GET", f"/submissions/{submission_id}")
        return self._submission_from(response)

    def annotate(self, submission_id: str, result: ExportResult) -> Submission:
        """Store annotations and the composite; the backend marks it annotated."""
        payload: Dict[str, Any] = result.payload()
        self._logger.info(
            f"Saving {len(result.annotation_set)} annotation(s) for submission {submission_id}"
        )
        response = self._request(
            "PUT", f"/submissions/{submission_id}/annotate", json=payload
        )
        return self._submission_from(response)

    def generate_pdf(self, submission_id: str) -> Submission:
        self._logger.info(f"Requesting PDF report for submission {submission_id}")
        response = self._request("POST", f"/submissions/{submission_id}/generate-pdf")
        return self._submission_from(response)

    def download_pdf(self, submission_id: str) -> bytes:
        response = self._request("GET", f"/submissions/{submission_id}/download-pdf")
        return response.content

    # ─── Images ───────────────────────────────────────────────────────────

    def resolve_image_url(self, source: str) -> str:
        return resolve_image_url(source, self._config.asset_base_url)

    def fetch_image(self, source: str) -> bytes:
        """Download the raw bytes of a submission photo."""
        return self._request("GET", self.resolve_image_url(source)).content
