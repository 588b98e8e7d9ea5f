# photoflow/imaging/base.py
from abc import ABC, abstractmethod


class ImageService(ABC):
    """Image operations a job's tasks are dispatched to."""

    @abstractmethod
    def resize(self, image_path: str, photo_id: str) -> None: ...

    @abstractmethod
    def watermark(self, image_path: str, photo_id: str) -> None: ...

    @abstractmethod
    def thumbnail(self, image_path: str, photo_id: str) -> None: ...
