# image_proxy/processing/transforms.py

"""
Defines the stages that form the transform pipeline.
Each stage is a callable that edits an ImageBuffer in place and reports
whether it changed anything.
"""
import logging

from image_proxy.config import ProcessorConfig
from image_proxy.geometry import ImageDimensions
from image_proxy.processing.crop import compute_crop
from image_proxy.processing.dimensions import resolve_target_size
from image_proxy.routing.options import ProcessingOptions
from image_proxy.utils.image_utils import JPEG, ImageBuffer

# DEV: Stages return a bool instead of the image. The pipeline needs to know
# whether anything happened at all, because an untouched image is served from
# the original bytes without re-encoding.


class BaseStage:
    """Abstract base class for all pipeline stages."""

    name = "base"

    def __init__(self, config: ProcessorConfig, logger: logging.Logger | None = None):
        """
        Args:
            config: The processor profile the pipeline was built for.
            logger: Logger of the owning pipeline.
        """
        self.config = config
        self.logger = logger or logging.getLogger(f"image_proxy.stage.{self.name}")

    def __call__(self, image: ImageBuffer, options: ProcessingOptions) -> bool:
        """
        Applies the stage.

        Args:
            image: The working image, modified in place.
            options: The request's processing options.

        Returns:
            True if the image was modified.
        """
        raise NotImplementedError("Each stage must implement the `__call__` method.")


class Crop(BaseStage):
    """Cuts the image to the target aspect ratio around the requested anchor."""

    name = "crop"

    def __call__(self, image: ImageBuffer, options: ProcessingOptions) -> bool:
        if options.crop is None:
            return False

        target = options.dimensions
        if not target.is_complete():
            target = ImageDimensions(self.config.default_image_width, self.config.default_image_height)
        if not target.is_complete():
            # Without both sides there is no aspect ratio to crop to.
            self.logger.debug("Crop requested without a complete target size; skipping.")
            return False

        current = image.dimensions
        rect = compute_crop(current, target.aspect_ratio, options.crop)
        if rect.width == current.width and rect.height == current.height:
            return False

        self.logger.debug("Cropping %s to %dx%d+%d+%d", current, rect.width, rect.height,
                          rect.offset_x, rect.offset_y)
        image.crop(rect)
        return True


class Scale(BaseStage):
    """Resizes to the resolved target size and prepares encoder settings."""

    name = "scale"

    def __call__(self, image: ImageBuffer, options: ProcessingOptions) -> bool:
        current = image.dimensions
        target = resolve_target_size(
            current,
            options.dimensions,
            self.config.maintain_aspect_ratio,
            maxima=ImageDimensions(self.config.max_image_width, self.config.max_image_height),
            defaults=ImageDimensions(self.config.default_image_width, self.config.default_image_height),
        )
        if target == current:
            return False

        self.logger.debug("Scaling %s to %s", current, target)
        image.resize(target, "lanczos")
        image.set_interpolation("cubic")
        image.strip_metadata()

        if image.format == JPEG:
            image.set_progressive(True)
            image.set_compression_quality(self.config.image_compression_quality)
        return True


class Blur(BaseStage):
    """Gaussian blur whose radius is a fraction of the image width."""

    name = "blur"

    def radius(self, width: int, blur: float) -> float:
        # The configured percentage caps how strong a request may blur.
        return width * blur * self.config.max_blur_radius_percentage

    def __call__(self, image: ImageBuffer, options: ProcessingOptions) -> bool:
        if options.blur == 0:
            return False

        radius = self.radius(image.dimensions.width, options.blur)
        if radius <= 0:
            return False

        image.gaussian_blur(radius, radius)
        return True


class Grayscale(BaseStage):
    name = "grayscale"

    def __call__(self, image: ImageBuffer, options: ProcessingOptions) -> bool:
        if self.config.grayscale_disabled:
            return False
        if not (self.config.grayscale_by_default or options.grayscale):
            return False
        return image.to_grayscale()


# Stages always run in this order.
STAGE_CATALOG = [Crop, Scale, Blur, Grayscale]
