# image_proxy/processing/dimensions.py

"""
Turns a partial or full requested size into concrete target dimensions.
All functions here are pure; the processor's limits are passed in explicitly.
"""
from image_proxy.errors import DimensionError
from image_proxy.geometry import ImageDimensions, round_half_up

UNLIMITED = ImageDimensions(0, 0)


def aspect_scaled_height(aspect_ratio: float, width: int) -> int:
    return round_half_up(width / aspect_ratio)


def aspect_scaled_width(aspect_ratio: float, height: int) -> int:
    return round_half_up(height * aspect_ratio)


def scale_to_requested(current: ImageDimensions,
                       requested: ImageDimensions,
                       maintain_aspect_ratio: bool) -> ImageDimensions:
    """
    Fits the requested size to the current image.

    When both dimensions are requested and the aspect ratio must be kept, the
    binding dimension is chosen by comparing ratios, and the other one is
    cleared and derived again.
    """
    if requested.is_complete():
        if not maintain_aspect_ratio:
            return requested

        requested_ratio = requested.aspect_ratio
        image_ratio = current.aspect_ratio
        if requested_ratio > image_ratio:
            # Requested box is wider than the image: height is the constraint.
            return scale_to_requested(current, ImageDimensions(0, requested.height), maintain_aspect_ratio)
        if requested_ratio < image_ratio:
            return scale_to_requested(current, ImageDimensions(requested.width, 0), maintain_aspect_ratio)
        return requested

    if requested.width > 0:
        return ImageDimensions(requested.width, aspect_scaled_height(current.aspect_ratio, requested.width))

    if requested.height > 0:
        return ImageDimensions(aspect_scaled_width(current.aspect_ratio, requested.height), requested.height)

    return current


def clamp_to_maxima(dimensions: ImageDimensions, maxima: ImageDimensions) -> ImageDimensions:
    """
    Shrinks `dimensions` until neither configured maximum is exceeded.
    A maximum of zero means no limit. The other side is recomputed from the
    aspect ratio of `dimensions` itself, so this is idempotent.
    """
    if maxima.width > 0 and dimensions.width > maxima.width:
        height = aspect_scaled_height(dimensions.aspect_ratio, maxima.width)
        return clamp_to_maxima(ImageDimensions(maxima.width, height), maxima)

    if maxima.height > 0 and dimensions.height > maxima.height:
        width = aspect_scaled_width(dimensions.aspect_ratio, maxima.height)
        return clamp_to_maxima(ImageDimensions(width, maxima.height), maxima)

    return dimensions


def resolve_target_size(current: ImageDimensions,
                        requested: ImageDimensions,
                        maintain_aspect_ratio: bool,
                        maxima: ImageDimensions = UNLIMITED,
                        defaults: ImageDimensions = UNLIMITED) -> ImageDimensions:
    """
    Resolves the size an image should be scaled to.

    Args:
        current: Size of the image as it is now.
        requested: Size asked for by the request; zero means "not given".
        maintain_aspect_ratio: When False, a fully specified request is
                               returned as-is (anisotropic stretch).
        maxima: Processor limits; zero disables a limit.
        defaults: Processor defaults used when nothing was requested.

    Returns:
        The target size. Equal to `current` when no scaling is needed.

    Raises:
        DimensionError: The image has no height, or the result would have a
                        zero-sized side.
    """
    if requested.is_empty():
        requested = defaults

    target = clamp_to_maxima(scale_to_requested(current, requested, maintain_aspect_ratio), maxima)

    if target != current and not target.is_complete():
        raise DimensionError(f"Cannot scale {current} to degenerate size {target}")
    return target
