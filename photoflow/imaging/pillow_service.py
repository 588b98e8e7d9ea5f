# photoflow/imaging/pillow_service.py
import logging
from pathlib import Path
from typing import Tuple

from PIL import Image, ImageOps

from photoflow.common.exceptions import ImageProcessingError
from photoflow.imaging.base import ImageService
from photoflow.imaging.files import ensure_directory_exists, get_extension

logger = logging.getLogger(__name__)


class PillowImageService(ImageService):
    """
    Writes each derived image next to the others, named after the photo:
    ``<photo_id>_resized<ext>`` and ``<photo_id>_watermarked<ext>`` under the
    processed directory, ``<photo_id>_thumb<ext>`` under the thumbnail directory.
    """

    def __init__(
        self,
        processed_dir: str = "processed",
        thumbnail_dir: str = "thumbnails",
        resize_size: Tuple[int, int] = (1024, 768),
        thumbnail_size: Tuple[int, int] = (150, 150),
        watermark_path: str = "watermark.png",
        watermark_opacity: float = 0.5,
    ):
        self.processed_dir = processed_dir
        self.thumbnail_dir = thumbnail_dir
        self.resize_size = resize_size
        self.thumbnail_size = thumbnail_size
        self.watermark_path = watermark_path
        self.watermark_opacity = watermark_opacity

    @classmethod
    def from_settings(cls, settings) -> "PillowImageService":
        return cls(
            processed_dir=settings.processed_dir,
            thumbnail_dir=settings.thumbnail_dir,
            resize_size=(settings.resize_width, settings.resize_height),
            thumbnail_size=(settings.thumbnail_width, settings.thumbnail_height),
            watermark_path=settings.watermark_path,
            watermark_opacity=settings.watermark_opacity,
        )

    def _output_path(self, directory: str, photo_id: str, suffix: str, image_path: str) -> Path:
        return ensure_directory_exists(directory) / f"{photo_id}{suffix}{get_extension(image_path)}"

    def _fit(self, image_path: str, output_path: Path, size: Tuple[int, int]) -> None:
        with Image.open(image_path) as img:
            ImageOps.contain(img, size).save(output_path)

    def resize(self, image_path: str, photo_id: str) -> None:
        logger.info(f"Resizing image: photoId={photo_id}, path={image_path}")
        try:
            output_path = self._output_path(self.processed_dir, photo_id, "_resized", image_path)
            self._fit(image_path, output_path, self.resize_size)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to resize image: photoId={photo_id}", exc_info=True)
            raise ImageProcessingError("Failed to resize image") from e
        logger.info(f"Resize completed: photoId={photo_id}, output={output_path}")

    def watermark(self, image_path: str, photo_id: str) -> None:
        logger.info(f"Applying watermark: photoId={photo_id}, path={image_path}")
        if not Path(self.watermark_path).exists():
            logger.warning(f"Watermark file not found: {self.watermark_path}. Skipping watermark.")
            return

        try:
            output_path = self._output_path(
                self.processed_dir, photo_id, "_watermarked", image_path
            )
            with Image.open(image_path) as img, Image.open(self.watermark_path) as mark:
                base = img.convert("RGBA")
                mark = mark.convert("RGBA")
                alpha = mark.getchannel("A").point(
                    lambda value: int(value * self.watermark_opacity)
                )
                mark.putalpha(alpha)

                # Bottom-right corner, clipped when the mark is larger than the photo.
                layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
                position = (
                    max(base.width - mark.width, 0),
                    max(base.height - mark.height, 0),
                )
                layer.paste(mark, position)
                result = Image.alpha_composite(base, layer)
                if img.mode != "RGBA":
                    result = result.convert(img.mode if img.mode in ("RGB", "L") else "RGB")
                result.save(output_path)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to apply watermark: photoId={photo_id}", exc_info=True)
            raise ImageProcessingError("Failed to apply watermark") from e
        logger.info(f"Watermark applied: photoId={photo_id}, output={output_path}")

    def thumbnail(self, image_path: str, photo_id: str) -> None:
        logger.info(f"Generating thumbnail: photoId={photo_id}, path={image_path}")
        try:
            output_path = self._output_path(self.thumbnail_dir, photo_id, "_thumb", image_path)
            self._fit(image_path, output_path, self.thumbnail_size)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to generate thumbnail: photoId={photo_id}", exc_info=True)
            raise ImageProcessingError("Failed to generate thumbnail") from e
        logger.info(f"Thumbnail generated: photoId={photo_id}, output={output_path}")
