# image_proxy/errors.py

"""
Exception hierarchy shared by every component of the proxy.
The HTTP layer maps these onto status codes; nothing below it knows about HTTP.
"""


class ImageProxyError(Exception):
    """Base class for all errors raised by the proxy."""


class ConfigError(ImageProxyError):
    """The configuration document is malformed or inconsistent."""


class NoRouteMatched(ImageProxyError):
    """No configured route pattern matches the request path."""

    def __init__(self, path: str):
        super().__init__(f"No route matches path '{path}'")
        self.path = path


class InvalidOptionError(ImageProxyError):
    """A request parameter is present but unusable (e.g. a crop anchor outside [0, 1])."""


class SourceFetchError(ImageProxyError):
    """The image source backend failed to deliver the requested object."""

    def __init__(self, key: str, message: str):
        super().__init__(f"Failed to fetch '{key}': {message}")
        self.key = key


class SourceNotFoundError(SourceFetchError):
    """The requested object does not exist in the source backend."""


class DimensionError(ImageProxyError):
    """Degenerate geometry, e.g. an aspect ratio of an image with zero height."""


class ProcessingError(ImageProxyError):
    """A stage of the transform pipeline failed."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"Stage '{stage}' failed: {message}")
        self.stage = stage
