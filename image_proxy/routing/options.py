# image_proxy/routing/options.py

"""
Extracts processing options from a matched request.
Values captured by the route pattern take precedence over query parameters.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Mapping, Tuple

from image_proxy.errors import InvalidOptionError
from image_proxy.geometry import CropAnchor, ImageDimensions
from image_proxy.routing.route import RouteBinding

WIDTH_KEY = "w"
HEIGHT_KEY = "h"
BLUR_KEY = "blur"
GRAYSCALE_KEY = "grayscale"
CROP_X_KEY = "crop_x"
CROP_Y_KEY = "crop_y"

_UINT32_MAX = 2 ** 32 - 1
_DIGITS = re.compile(r"^[0-9]+$")
_TRUE_LITERALS = {"1", "t", "T", "TRUE", "true", "True"}


@dataclass(frozen=True)
class ProcessingOptions:
    """Per-request instructions for the transform pipeline."""
    dimensions: ImageDimensions = ImageDimensions()
    blur: float = 0.0
    grayscale: bool = False
    crop: CropAnchor | None = None


def parse_dimension(value: str | None) -> int:
    """Unsigned 32-bit integer; anything else counts as "not given"."""
    if not value or not _DIGITS.match(value):
        return 0
    number = int(value)
    return number if number <= _UINT32_MAX else 0


def parse_blur(value: str | None) -> float:
    if not value:
        return 0.0
    try:
        blur = float(value)
    except ValueError:
        return 0.0
    if not math.isfinite(blur):
        return 0.0
    if blur < 0:
        raise InvalidOptionError(f"Blur must not be negative, got {value}")
    return blur


def parse_bool(value: str | None) -> bool:
    return value in _TRUE_LITERALS


def parse_anchor_coordinate(axis: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as e:
        raise InvalidOptionError(f"Crop anchor {axis}='{value}' is not a number") from e


def resolve_options(route: RouteBinding,
                    path: str,
                    query: Mapping[str, str]) -> Tuple[str, ProcessingOptions]:
    """
    Builds the source key and processing options for a request.

    Args:
        route: The route the path matched.
        path: The request path.
        query: Query parameters, one value per key.

    Returns:
        The key to fetch from the route's source, and the options for the pipeline.
    """
    captures = route.captures(path)

    def lookup(key: str) -> str | None:
        if key in captures:
            return captures[key]
        return query.get(key)

    crop = None
    crop_x, crop_y = lookup(CROP_X_KEY), lookup(CROP_Y_KEY)
    # An anchor needs both coordinates; one alone means no crop stage.
    if crop_x and crop_y:
        crop = CropAnchor(
            x=parse_anchor_coordinate("x", crop_x),
            y=parse_anchor_coordinate("y", crop_y),
        )

    options = ProcessingOptions(
        dimensions=ImageDimensions(
            width=parse_dimension(lookup(WIDTH_KEY)),
            height=parse_dimension(lookup(HEIGHT_KEY)),
        ),
        blur=parse_blur(lookup(BLUR_KEY)),
        grayscale=parse_bool(lookup(GRAYSCALE_KEY)),
        crop=crop,
    )
    return captures.get(route.image_key_group, ""), options
