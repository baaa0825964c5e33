# image_proxy/processing/crop.py

"""
Computes the crop window that gives an image a target aspect ratio.
"""
import math

from image_proxy.errors import DimensionError
from image_proxy.geometry import CropAnchor, CropRect, ImageDimensions, round_half_up
from image_proxy.processing.dimensions import aspect_scaled_height, aspect_scaled_width


def compute_crop(current: ImageDimensions, target_aspect_ratio: float, anchor: CropAnchor) -> CropRect:
    """
    Cuts the excess along one axis so the remaining window matches the target ratio.

    Args:
        current: Size of the image being cropped.
        target_aspect_ratio: Desired width / height of the window.
        anchor: Where the window sits along the axis that is cut.

    Returns:
        The crop window. It always lies inside the image bounds.
    """
    if not math.isfinite(target_aspect_ratio) or target_aspect_ratio <= 0:
        raise DimensionError(f"Invalid target aspect ratio {target_aspect_ratio}")

    if current.aspect_ratio > target_aspect_ratio:
        # Image is wider than the target: keep the full height, trim the width.
        width = max(1, min(aspect_scaled_width(target_aspect_ratio, current.height), current.width))
        offset_x = round_half_up((current.width - width) * anchor.x)
        return CropRect(width=width, height=current.height, offset_x=offset_x, offset_y=0)

    height = max(1, min(aspect_scaled_height(target_aspect_ratio, current.width), current.height))
    offset_y = round_half_up((current.height - height) * anchor.y)
    return CropRect(width=current.width, height=height, offset_x=0, offset_y=offset_y)
