"""Tests for image loading and the stale-completion guard."""

import pytest

from dentalreview.editor.image_loader import (
    ImageLoader,
    decode_image,
    make_fetcher,
    read_local_image,
)
from dentalreview.editor.rendering import encode_image
from dentalreview.exceptions import ApiError, ImageLoadFailure


@pytest.fixture
def runner(fake_runner):
    return fake_runner


@pytest.fixture
def loader(qapp, runner):
    return ImageLoader(lambda source: b"", runner=runner)


@pytest.fixture
def events(loader):
    loaded, failed = [], []
    loader.image_loaded.connect(lambda image, geometry: loaded.append(geometry))
    loader.load_failed.connect(failed.append)
    return loaded, failed


def test_load_runs_fetcher_with_source(loader, runner):
    request_id = loader.load("uploads/a.jpg")
    assert request_id == 1
    assert runner.calls[0][1] == ("uploads/a.jpg",)
    assert loader.current_source == "uploads/a.jpg"


def test_completion_emits_geometry(loader, runner, events, png_bytes):
    loaded, failed = events
    loader.load("a.png")
    _, _, on_finished, _ = runner.calls[0]
    on_finished(png_bytes)

    assert failed == []
    assert len(loaded) == 1
    assert (loaded[0].natural_width, loaded[0].natural_height) == (1000, 750)
    assert (loaded[0].display_width, loaded[0].display_height) == (800, 600)


def test_stale_completion_is_dropped(loader, runner, events, png_bytes, make_photo):
    loaded, _ = events
    small_png = encode_image(make_photo(400, 300), "PNG")

    first_id = loader.load("slow.png")
    second_id = loader.load("fast.png")
    assert not loader.is_current(first_id)

    # Newer load finishes first, then the older one arrives late
    assert loader.handle_fetched(second_id, small_png) is True
    assert loader.handle_fetched(first_id, png_bytes) is False

    assert [(g.display_width, g.display_height) for g in loaded] == [(400, 300)]


def test_stale_failure_is_ignored(loader, runner, events):
    _, failed = events
    first_id = loader.load("a.png")
    loader.load("b.png")
    loader.handle_failed(first_id, ImageLoadFailure("gone"))
    assert failed == []


def test_undecodable_bytes_report_failure(loader, runner, events):
    loaded, failed = events
    request_id = loader.load("broken.png")
    assert loader.handle_fetched(request_id, b"not an image") is False
    assert loaded == []
    assert failed == ["Failed to decode image. Please try refreshing."]


def test_failure_uses_error_message(loader, runner, events):
    _, failed = events
    loader.load("a.png")
    _, _, _, on_failed = runner.calls[0]
    on_failed(ApiError("Submission not found", status_code=404))
    assert failed == ["Submission not found"]


def test_failure_without_message_uses_default(loader, runner, events):
    _, failed = events
    loader.load("a.png")
    _, _, _, on_failed = runner.calls[0]
    on_failed(RuntimeError("socket closed"))
    assert failed == [ImageLoadFailure.default_message]


def test_decode_image_rejects_garbage(qapp):
    with pytest.raises(ImageLoadFailure):
        decode_image(b"\x00\x01\x02")


def test_read_local_image(tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)

    assert read_local_image(str(path)) == png_bytes
    assert read_local_image(path.as_uri()) == png_bytes
    assert read_local_image(str(tmp_path / "missing.png")) is None
    assert read_local_image("https://example.com/photo.png") is None


def test_fetcher_prefers_local_files(tmp_path, png_bytes):
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)

    class Client:
        def __init__(self):
            self.fetched = []

        def fetch_image(self, source):
            self.fetched.append(source)
            return b"remote"

    client = Client()
    fetch = make_fetcher(client)

    assert fetch(str(path)) == png_bytes
    assert fetch("uploads/x.jpg") == b"remote"
    assert client.fetched == ["uploads/x.jpg"]


def test_fetcher_without_client_rejects_remote_sources():
    with pytest.raises(ImageLoadFailure):
        make_fetcher(None)("https://example.com/photo.png")
