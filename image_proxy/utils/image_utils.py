# image_proxy/utils/image_utils.py

"""
Thin adapter over the image libraries (OpenCV, tifffile, imageio).
The pipeline only talks to `ImageBuffer`; everything codec-specific lives here.
"""
from __future__ import annotations

import io
import math

import cv2
import imageio.v3 as iio
import numpy as np
import tifffile as tiff

from image_proxy.geometry import CropRect, ImageDimensions

JPEG, PNG, GIF, WEBP, TIFF, BMP = "JPEG", "PNG", "GIF", "WEBP", "TIFF", "BMP"

MIME_TYPES = {
    JPEG: "image/jpeg",
    PNG: "image/png",
    GIF: "image/gif",
    WEBP: "image/webp",
    TIFF: "image/tiff",
    BMP: "image/bmp",
}

# Extensions understood by cv2.imencode. TIFF and GIF go through dedicated codecs.
_CV2_EXTENSIONS = {JPEG: ".jpg", PNG: ".png", WEBP: ".webp", BMP: ".bmp"}

FILTERS = {
    "lanczos": cv2.INTER_LANCZOS4,
    "cubic": cv2.INTER_CUBIC,
    "area": cv2.INTER_AREA,
    "linear": cv2.INTER_LINEAR,
    "nearest": cv2.INTER_NEAREST,
}


def detect_format(data: bytes) -> str | None:
    """Identifies the container format from the leading magic bytes."""
    if data.startswith(b"\xff\xd8\xff"):
        return JPEG
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return PNG
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return GIF
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return WEBP
    if data[:4] in (b"II*\x00", b"MM\x00*"):
        return TIFF
    if data.startswith(b"BM"):
        return BMP
    return None


def mime_type_for(image_format: str | None) -> str:
    if image_format is None:
        return "application/octet-stream"
    return MIME_TYPES.get(image_format, f"image/{image_format.lower()}")


def _rgb_to_bgr(arr: np.ndarray) -> np.ndarray:
    # tifffile and imageio hand out RGB(A); OpenCV works in BGR(A).
    if arr.ndim == 3 and arr.shape[2] == 3:
        return cv2.cvtColor(arr, cv2.COLOR_RGB2BGR)
    if arr.ndim == 3 and arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_RGBA2BGRA)
    return arr


def _bgr_to_rgb(arr: np.ndarray) -> np.ndarray:
    if arr.ndim == 3 and arr.shape[2] == 3:
        return cv2.cvtColor(arr, cv2.COLOR_BGR2RGB)
    if arr.ndim == 3 and arr.shape[2] == 4:
        return cv2.cvtColor(arr, cv2.COLOR_BGRA2RGBA)
    return arr


def decode_image(data: bytes) -> tuple[np.ndarray, str]:
    """
    Decodes raw bytes into a pixel array.

    Returns:
        The pixels (BGR/BGRA or single channel) and the detected format.

    Raises:
        ValueError: If the bytes are not a supported image.
    """
    image_format = detect_format(data)
    if image_format is None:
        raise ValueError("Unrecognized image format.")

    # DEV: Same split as for reading datasets from disk: tifffile for TIFF,
    # OpenCV for everything else. GIF is the one format OpenCV cannot write
    # back, so it is read with imageio to keep the palette handling symmetric.
    if image_format == TIFF:
        arr = _rgb_to_bgr(tiff.imread(io.BytesIO(data), key=0))
    elif image_format == GIF:
        arr = _rgb_to_bgr(iio.imread(data, index=0, extension=".gif"))
    else:
        arr = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_UNCHANGED)

    if arr is None or arr.size == 0:
        raise ValueError(f"Failed to decode {image_format} image.")
    return arr, image_format


class ImageBuffer:
    """
    A decoded image plus the encoder settings accumulated by the pipeline.

    Use it as a context manager so the pixel buffer is released on every exit
    path, including failures halfway through the pipeline.
    """

    def __init__(self, pixels: np.ndarray, image_format: str):
        self.pixels: np.ndarray | None = pixels
        self.format = image_format
        self.interpolation = "default"
        self.metadata_stripped = False
        self.progressive = False
        self.compression_quality = 0

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImageBuffer":
        pixels, image_format = decode_image(data)
        return cls(pixels, image_format)

    def __enter__(self) -> "ImageBuffer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.pixels = None

    def _require_pixels(self) -> np.ndarray:
        if self.pixels is None:
            raise ValueError("Image buffer has already been released.")
        return self.pixels

    @property
    def dimensions(self) -> ImageDimensions:
        h, w = self._require_pixels().shape[:2]
        return ImageDimensions(width=w, height=h)

    @property
    def mime_type(self) -> str:
        return mime_type_for(self.format)

    def crop(self, rect: CropRect) -> None:
        pixels = self._require_pixels()
        x, y = rect.offset_x, rect.offset_y
        # Copy so the cropped view does not pin the full-size buffer.
        self.pixels = pixels[y:y + rect.height, x:x + rect.width].copy()

    def resize(self, dimensions: ImageDimensions, filter_name: str = "lanczos") -> None:
        interpolation = FILTERS.get(filter_name)
        if interpolation is None:
            raise ValueError(f"Unknown resampling filter '{filter_name}'. Available: {list(FILTERS.keys())}")
        self.pixels = cv2.resize(self._require_pixels(), (dimensions.width, dimensions.height),
                                 interpolation=interpolation)

    def set_interpolation(self, method: str) -> None:
        if method not in FILTERS:
            raise ValueError(f"Unknown interpolation method '{method}'.")
        self.interpolation = method

    def strip_metadata(self) -> None:
        # Decoded pixel arrays carry no profiles or comments; encoding writes none.
        self.metadata_stripped = True

    def set_progressive(self, progressive: bool = True) -> None:
        self.progressive = progressive

    def set_compression_quality(self, quality: int) -> None:
        if not 0 <= quality <= 100:
            raise ValueError(f"Compression quality {quality} is outside [0, 100].")
        self.compression_quality = quality

    def gaussian_blur(self, radius: float, sigma: float) -> None:
        ksize = 2 * int(math.ceil(radius)) + 1
        self.pixels = cv2.GaussianBlur(self._require_pixels(), (ksize, ksize),
                                       sigmaX=sigma, sigmaY=sigma, borderType=cv2.BORDER_REPLICATE)

    def to_grayscale(self) -> bool:
        """Converts color pixels to gray, keeping alpha. Returns False if already gray."""
        pixels = self._require_pixels()
        if pixels.ndim == 2 or pixels.shape[2] == 1:
            return False
        if pixels.shape[2] == 4:
            gray = cv2.cvtColor(pixels, cv2.COLOR_BGRA2GRAY)
            # Encoders have no gray+alpha layout, so replicate gray into BGR.
            self.pixels = cv2.merge([gray, gray, gray, pixels[:, :, 3]])
        else:
            self.pixels = cv2.cvtColor(pixels, cv2.COLOR_BGR2GRAY)
        return True

    def encode(self) -> bytes:
        """Encodes the current pixels back into the buffer's format."""
        pixels = self._require_pixels()

        if self.format == TIFF:
            out = io.BytesIO()
            photometric = "minisblack" if pixels.ndim == 2 else "rgb"
            tiff.imwrite(out, _bgr_to_rgb(pixels), photometric=photometric, compression="zlib")
            return out.getvalue()

        if self.format == GIF:
            return iio.imwrite("<bytes>", _bgr_to_rgb(pixels), extension=".gif")

        ext = _CV2_EXTENSIONS.get(self.format)
        if ext is None:
            raise ValueError(f"Encoding to {self.format} is not supported.")

        params: list[int] = []
        if self.format == JPEG:
            if self.compression_quality > 0:
                params += [cv2.IMWRITE_JPEG_QUALITY, self.compression_quality]
            if self.progressive:
                params += [cv2.IMWRITE_JPEG_PROGRESSIVE, 1]

        ok, encoded = cv2.imencode(ext, pixels, params)
        if not ok:
            raise ValueError(f"OpenCV failed to encode {self.format} image.")
        return encoded.tobytes()
