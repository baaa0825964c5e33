# image_proxy/processing/pipeline.py

"""
The TransformPipeline runs the fixed sequence of stages for one processor profile.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

import cv2

from image_proxy.config import ProcessorConfig
from image_proxy.errors import DimensionError, ProcessingError
from image_proxy.processing import transforms
from image_proxy.routing.options import ProcessingOptions
from image_proxy.sources.base_source import RawImage
from image_proxy.utils.image_utils import ImageBuffer, detect_format, mime_type_for


@dataclass(frozen=True)
class ProcessedImage:
    data: bytes
    mime_type: str


class TransformPipeline:
    """Applies crop, scale, blur and grayscale to fetched images."""

    def __init__(self, config: ProcessorConfig):
        """
        Args:
            config: The processor profile. The pipeline keeps no other state,
                    so one instance serves all concurrent requests.
        """
        self.config = config
        self.logger = logging.getLogger(f"image_proxy.pipeline.{config.name}")
        self.stages: List[transforms.BaseStage] = [
            stage_class(config, self.logger) for stage_class in transforms.STAGE_CATALOG
        ]

    def process(self, raw: RawImage, options: ProcessingOptions) -> ProcessedImage:
        """
        Processes an image through every stage.

        Args:
            raw: The original bytes from the source.
            options: The request's processing options.

        Returns:
            The original bytes if no stage changed the image, otherwise the
            re-encoded result in the input's format.

        Raises:
            ProcessingError: A stage or the codec failed. Carries the stage name.
            DimensionError: The image geometry does not allow the requested size.
        """
        try:
            buffer = ImageBuffer.from_bytes(raw.data)
        except (ValueError, OSError, cv2.error) as e:
            self.logger.warning("Error decoding image: %s", e)
            raise ProcessingError("decode", str(e)) from e

        with buffer:
            modified = False
            for stage in self.stages:
                # Every stage runs; `modified` only decides how the result is produced.
                modified = self._run_stage(stage, buffer, options) or modified

            if not modified:
                image_format = detect_format(raw.data)
                return ProcessedImage(data=raw.data, mime_type=mime_type_for(image_format))

            try:
                data = buffer.encode()
            except (ValueError, OSError, cv2.error) as e:
                self.logger.warning("Error encoding image: %s", e)
                raise ProcessingError("encode", str(e)) from e
            return ProcessedImage(data=data, mime_type=buffer.mime_type)

    def _run_stage(self, stage: transforms.BaseStage, buffer: ImageBuffer, options: ProcessingOptions) -> bool:
        try:
            return stage(buffer, options)
        except DimensionError as e:
            self.logger.warning("Error in %s stage: %s", stage.name, e)
            raise
        except (ValueError, OSError, cv2.error) as e:
            self.logger.warning("Error in %s stage: %s", stage.name, e)
            raise ProcessingError(stage.name, str(e)) from e
