"""
Asynchronous image loading for the annotation canvas.

The loader fetches the photo bytes on a background thread, decodes them on
the GUI thread and computes the display geometry. Every load gets a request
id; a completion that arrives after a newer load was started is dropped, so
a slow response can never overwrite the image the user asked for last.
"""

from functools import partial
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Optional
from urllib.parse import unquote, urlparse

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QImage

from dentalreview.core.workers import BackgroundRunner
from dentalreview.editor.geometry import (
    MAX_CANVAS_HEIGHT,
    MAX_CANVAS_WIDTH,
    CanvasGeometry,
    compute_canvas_geometry,
)
from dentalreview.exceptions import ImageLoadFailure
from dentalreview.services.logging_service import get_logger

if TYPE_CHECKING:
    from dentalreview.services.api_client import SubmissionsClient

Fetcher = Callable[[str], bytes]


def read_local_image(source: str) -> Optional[bytes]:
    """Bytes of a file:// URL or existing local path, else None."""
    parsed = urlparse(source)
    if parsed.scheme == "file":
        path = Path(unquote(parsed.path))
    elif parsed.scheme in ("http", "https"):
        return None
    else:
        path = Path(source)
        if not path.is_file():
            return None

    try:
        return path.read_bytes()
    except OSError as e:
        raise ImageLoadFailure(
            f"Could not read image file {path}: {e}", context={"source": source}
        ) from e


def make_fetcher(client: Optional["SubmissionsClient"]) -> Fetcher:
    """Fetcher that reads local files directly and everything else over HTTP."""

    def fetch(source: str) -> bytes:
        local = read_local_image(source)
        if local is not None:
            return local
        if client is None:
            raise ImageLoadFailure(
                f"No server configured to fetch {source}", context={"source": source}
            )
        return client.fetch_image(source)

    return fetch


def decode_image(data: bytes) -> QImage:
    """
    Decode image bytes.

    Raises:
        ImageLoadFailure: if the bytes are not a supported image.
    """
    image = QImage.fromData(data)
    if image.isNull():
        raise ImageLoadFailure(
            "Failed to decode image. Please try refreshing.",
            context={"byte_count": len(data)},
        )
    return image


class ImageLoader(QObject):
    """
    Loads one image at a time for an editor.

    Signals:
        image_loaded: Emitted with (QImage, CanvasGeometry).
        load_failed: Emitted with a user-facing message.
    """

    image_loaded = Signal(QImage, object)
    load_failed = Signal(str)

    def __init__(
        self,
        fetcher: Fetcher,
        runner: Optional[BackgroundRunner] = None,
        max_width: int = MAX_CANVAS_WIDTH,
        max_height: int = MAX_CANVAS_HEIGHT,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._logger = get_logger(__name__)
        self._fetcher = fetcher
        self._runner = runner or BackgroundRunner(self)
        self._max_width = max_width
        self._max_height = max_height

        self._request_id = 0
        self._source: Optional[str] = None

    @property
    def current_request_id(self) -> int:
        return self._request_id

    @property
    def current_source(self) -> Optional[str]:
        return self._source

    def load(self, source: str) -> int:
        """
        Start loading source; results arrive through the signals.

        Returns:
            The request id of this load.
        """
        self._request_id += 1
        request_id = self._request_id
        self._source = source
        self._logger.info(f"Loading image #{request_id}: {source}")

        self._runner.run(
            self._fetcher,
            source,
            on_finished=partial(self.handle_fetched, request_id),
            on_failed=partial(self.handle_failed, request_id),
        )
        return request_id

    def is_current(self, request_id: int) -> bool:
        return request_id == self._request_id

    def handle_fetched(self, request_id: int, data: bytes) -> bool:
        """
        Decode fetched bytes for a request.

        Returns:
            True if the image was applied, False if stale or undecodable.
        """
        if not self.is_current(request_id):
            self._logger.info(
                f"Dropping stale image #{request_id} (current is #{self._request_id})"
            )
            return False

        try:
            image = decode_image(data)
            geometry = self.geometry_for(image)
        except (ImageLoadFailure, ValueError) as e:
            self.handle_failed(request_id, e)
            return False

        self._logger.info(
            f"Image loaded: original {geometry.natural_width}x{geometry.natural_height}, "
            f"canvas {geometry.display_width}x{geometry.display_height}"
        )
        self.image_loaded.emit(image, geometry)
        return True

    def handle_failed(self, request_id: int, error: Exception) -> None:
        if not self.is_current(request_id):
            self._logger.info(f"Ignoring failure of stale image #{request_id}: {error}")
            return

        message = getattr(error, "message", None) or ImageLoadFailure.default_message
        self._logger.error(f"Failed to load image {self._source}: {error}")
        self.load_failed.emit(message)

    def geometry_for(self, image: QImage) -> CanvasGeometry:
        return compute_canvas_geometry(
            image.width(), image.height(), self._max_width, self._max_height
        )
