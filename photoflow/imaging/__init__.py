from .base import ImageService
from .pillow_service import PillowImageService

__all__ = ["ImageService", "PillowImageService"]
