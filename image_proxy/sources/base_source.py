# image_proxy/sources/base_source.py

"""
Abstract base class for all image sources.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging

from image_proxy.config import SourceConfig


@dataclass(frozen=True)
class RawImage:
    """Original bytes as delivered by a source. Not interpreted by the source."""
    data: bytes
    mime_type: str | None = None


class ImageSource(ABC):
    """
    Defines the interface for fetching original images.
    Implementations are selected by the `type` of a source profile and are
    shared by all concurrent requests, so they must not keep request state.
    """

    def __init__(self, config: SourceConfig):
        """
        Initializes the source with its resolved profile.

        Args:
            config: The source profile from the configuration document.
        """
        self.config = config
        self.logger = logging.getLogger(f"image_proxy.source.{config.name}")

    @abstractmethod
    def fetch(self, key: str) -> RawImage:
        """
        Retrieves the object stored under `key`.

        Args:
            key: The object key captured from the request path.

        Returns:
            The raw image bytes and, when known, a mime type hint.

        Raises:
            SourceNotFoundError: No object exists for the key.
            SourceFetchError: The backend failed.
        """
        pass
