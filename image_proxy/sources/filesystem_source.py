# image_proxy/sources/filesystem_source.py

"""
A source that reads images from a local directory.
"""
import mimetypes
from pathlib import Path

from image_proxy.config import SourceConfig
from image_proxy.errors import ConfigError, SourceFetchError, SourceNotFoundError
from image_proxy.sources.base_source import ImageSource, RawImage


class FilesystemSource(ImageSource):
    """Serves files below a base directory, optionally from nested directories."""

    def __init__(self, config: SourceConfig):
        super().__init__(config)
        if not config.directory:
            raise ConfigError(f"'directory' is required for filesystem source '{config.name}'.")
        self.root = Path(config.directory).resolve()
        if not self.root.is_dir():
            raise ConfigError(f"Directory for source '{config.name}' does not exist: {self.root}")

    def resolve_path(self, key: str) -> Path:
        """Maps a key to a file below the root, refusing anything that escapes it."""
        relative = Path(key.lstrip("/"))
        if not relative.parts:
            raise SourceNotFoundError(key, "empty key")
        if len(relative.parts) > 1 and not self.config.allow_directories:
            raise SourceNotFoundError(key, "subdirectories are not allowed for this source")

        path = (self.root / relative).resolve()
        if not path.is_relative_to(self.root):
            raise SourceNotFoundError(key, "path escapes the source directory")
        return path

    def fetch(self, key: str) -> RawImage:
        path = self.resolve_path(key)
        if not path.is_file():
            raise SourceNotFoundError(key, f"no file at {path}")

        try:
            data = path.read_bytes()
        except OSError as e:
            raise SourceFetchError(key, str(e)) from e

        mime_type, _ = mimetypes.guess_type(path.name)
        self.logger.debug("Read %d bytes from %s", len(data), path)
        return RawImage(data=data, mime_type=mime_type)
