"""Shared test fixtures."""

import os

# Must be set before the first Qt import
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtGui import QColor, QImage, QPainter
from PySide6.QtWidgets import QApplication

from dentalreview.editor.rendering import encode_image
from dentalreview.services.config_service import ConfigService


@pytest.fixture(scope="session")
def qapp():
    """The QApplication shared by every Qt test."""
    app = QApplication.instance() or QApplication([])
    yield app


def _make_photo(width: int, height: int) -> QImage:
    """Image with enough detail that its JPEG is not trivially small."""
    image = QImage(width, height, QImage.Format.Format_RGB32)
    image.fill(QColor(40, 40, 40))
    painter = QPainter(image)
    for x in range(0, width, 12):
        painter.setPen(QColor((x * 7) % 256, (x * 3) % 256, 200))
        painter.drawLine(x, 0, width - x, height)
    painter.end()
    return image


@pytest.fixture
def make_photo(qapp):
    return _make_photo


@pytest.fixture
def photo(make_photo) -> QImage:
    """A 1000x750 photo, displayed at 800x600."""
    return make_photo(1000, 750)


@pytest.fixture
def png_bytes(photo) -> bytes:
    return encode_image(photo, "PNG")


@pytest.fixture
def config(tmp_path) -> ConfigService:
    """Config backed by a temporary file, exporting into tmp_path/exports."""
    return ConfigService(
        tmp_path / "config.json",
        overrides={"export_folder": str(tmp_path / "exports")},
    )


class FakeRunner:
    """Records background calls instead of starting threads."""

    def __init__(self):
        self.calls = []

    def run(self, fn, *args, on_finished, on_failed):
        self.calls.append((fn, args, on_finished, on_failed))
        return len(self.calls)

    def wait_all(self, msecs=5000):
        pass


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()
