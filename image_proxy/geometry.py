# image_proxy/geometry.py

"""
Small immutable value types describing image geometry.
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from image_proxy.errors import DimensionError, InvalidOptionError


def round_half_up(value: float) -> int:
    """Rounds a derived dimension the same way everywhere: floor(x + 0.5)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class ImageDimensions:
    """Width and height of an image or of a requested size, in pixels."""
    width: int = 0
    height: int = 0

    @property
    def aspect_ratio(self) -> float:
        if self.height == 0:
            raise DimensionError(f"Aspect ratio is undefined for {self.width}x{self.height}")
        return self.width / self.height

    def is_empty(self) -> bool:
        return self.width == 0 and self.height == 0

    def is_complete(self) -> bool:
        return self.width > 0 and self.height > 0

    def __str__(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class CropAnchor:
    """
    Normalized placement of the crop window along the axis that gets cut.

    x:
        0 keeps the left edge, 1 keeps the right edge, 0.5 centers.
    y:
        0 keeps the top edge, 1 keeps the bottom edge, 0.5 centers.
    """
    x: float = 0.5
    y: float = 0.5

    def __post_init__(self):
        for axis, value in (("x", self.x), ("y", self.y)):
            if not math.isfinite(value) or not 0.0 <= value <= 1.0:
                raise InvalidOptionError(f"Crop anchor {axis}={value} is outside [0, 1]")


@dataclass(frozen=True)
class CropRect:
    width: int
    height: int
    offset_x: int
    offset_y: int
