import pytest
from PIL import Image

from photoflow.common.exceptions import ImageProcessingError
from photoflow.config import Settings
from photoflow.imaging.files import ensure_directory_exists, get_extension
from photoflow.imaging.pillow_service import PillowImageService


@pytest.fixture
def photo_path(tmp_path):
    path = tmp_path / "uploads" / "photo-1.jpg"
    path.parent.mkdir()
    Image.new("RGB", (2000, 1000), (10, 120, 200)).save(path)
    return path


@pytest.fixture
def watermark_path(tmp_path):
    path = tmp_path / "watermark.png"
    Image.new("RGBA", (100, 40), (255, 255, 255, 255)).save(path)
    return path


@pytest.fixture
def image_service(tmp_path, watermark_path):
    return PillowImageService(
        processed_dir=str(tmp_path / "processed"),
        thumbnail_dir=str(tmp_path / "thumbnails"),
        resize_size=(1024, 768),
        thumbnail_size=(150, 150),
        watermark_path=str(watermark_path),
        watermark_opacity=0.5,
    )


# Test file helpers
@pytest.mark.parametrize(
    "filename, extension",
    [
        ("cat.png", ".png"),
        ("archive.tar.gz", ".gz"),
        ("/some/dir/photo.JPG", ".JPG"),
        ("noextension", ".jpg"),
        (".hidden", ".jpg"),
        ("", ".jpg"),
        (None, ".jpg"),
    ],
)
def test_get_extension(filename, extension):
    assert get_extension(filename) == extension


def test_ensure_directory_exists(tmp_path):
    path = ensure_directory_exists(tmp_path / "a" / "b")
    assert path.is_dir()
    assert ensure_directory_exists(path) == path


# Test PillowImageService
def test_resize_keeps_aspect_ratio(image_service, photo_path, tmp_path):
    image_service.resize(str(photo_path), "photo-1")

    with Image.open(tmp_path / "processed" / "photo-1_resized.jpg") as img:
        assert img.size == (1024, 512)


def test_thumbnail_fits_box(image_service, photo_path, tmp_path):
    image_service.thumbnail(str(photo_path), "photo-1")

    with Image.open(tmp_path / "thumbnails" / "photo-1_thumb.jpg") as img:
        assert img.size == (150, 75)


def test_watermark_marks_bottom_right_corner(image_service, tmp_path):
    source = tmp_path / "plain.png"
    Image.new("RGB", (300, 200), (0, 0, 0)).save(source)

    image_service.watermark(str(source), "photo-1")

    with Image.open(tmp_path / "processed" / "photo-1_watermarked.png") as img:
        assert img.size == (300, 200)
        assert img.getpixel((0, 0)) == (0, 0, 0)
        # White mark at half opacity over black.
        r, g, b = img.getpixel((299, 199))
        assert 120 <= r <= 135 and r == g == b


def test_watermark_skipped_when_mark_is_missing(tmp_path, photo_path):
    service = PillowImageService(
        processed_dir=str(tmp_path / "processed"),
        watermark_path=str(tmp_path / "missing.png"),
    )
    service.watermark(str(photo_path), "photo-1")
    assert not (tmp_path / "processed" / "photo-1_watermarked.jpg").exists()


@pytest.mark.parametrize("operation", ["resize", "watermark", "thumbnail"])
def test_unreadable_image_raises(image_service, tmp_path, operation):
    broken = tmp_path / "broken.jpg"
    broken.write_bytes(b"definitely not an image")

    with pytest.raises(ImageProcessingError):
        getattr(image_service, operation)(str(broken), "photo-1")


def test_missing_image_raises(image_service, tmp_path):
    with pytest.raises(ImageProcessingError, match="Failed to resize image"):
        image_service.resize(str(tmp_path / "nowhere.jpg"), "photo-1")


def test_from_settings(tmp_path):
    settings = Settings(
        processed_dir=str(tmp_path / "p"),
        thumbnail_dir=str(tmp_path / "t"),
        resize_width=800,
        resize_height=600,
        thumbnail_width=64,
        thumbnail_height=64,
        watermark_opacity=0.25,
    )
    service = PillowImageService.from_settings(settings)
    assert service.resize_size == (800, 600)
    assert service.thumbnail_size == (64, 64)
    assert service.processed_dir == str(tmp_path / "p")
    assert service.watermark_opacity == 0.25
