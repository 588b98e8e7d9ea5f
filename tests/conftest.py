import io
from datetime import datetime, UTC

import pytest
from PIL import Image

from photoflow.imaging.base import ImageService


# --- Helper image services for dispatch tests ---
class RecordingImageService(ImageService):
    """Records every call; optionally fails on one operation."""

    def __init__(self, fail_on: str = None):
        self.calls = []
        self.fail_on = fail_on

    def _record(self, operation, image_path, photo_id):
        self.calls.append((operation, image_path, photo_id))
        if operation == self.fail_on:
            raise RuntimeError(f"{operation} exploded")

    def resize(self, image_path, photo_id):
        self._record("resize", image_path, photo_id)

    def watermark(self, image_path, photo_id):
        self._record("watermark", image_path, photo_id)

    def thumbnail(self, image_path, photo_id):
        self._record("thumbnail", image_path, photo_id)

    @property
    def operations(self):
        return [call[0] for call in self.calls]


class FakeClock:
    def __init__(self, now: datetime = None):
        self.now = now or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta) -> None:
        self.now = self.now + delta


# --- Fixtures ---
@pytest.fixture
def image_service():
    return RecordingImageService()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def jpeg_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (64, 48), (200, 30, 30)).save(buffer, format="JPEG")
    return buffer.getvalue()
