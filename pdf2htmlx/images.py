"""Image placement and re-encoding for :mod:`pdf2htmlx`."""

from __future__ import annotations

import base64
import dataclasses
import io
import logging
import os
import threading
from pathlib import Path

from PIL import Image

from .config import ImageEmission, LayoutOptions
from .exceptions import ImageEncodingError
from .primitives import ImageBox, Matrix, ResolvedImage
from .transform import AffineTransform

__all__ = [
    "EncodedImage",
    "ImagePlacer",
    "bits_per_pixel",
    "default_context_id",
    "encode_image",
    "quality_for",
    "should_compress",
]

_LOGGER = logging.getLogger(__name__)

KIB = 1024
MIB = 1024 * KIB

# Images at or below this estimated size keep the highest quality.
HIGH_QUALITY_LIMIT = 64 * KIB
# Lossy re-encoding only kicks in above this estimated size.
COMPRESSION_THRESHOLD = 1 * MIB
HIGHEST_QUALITY = 0.9
DEFAULT_QUALITY = 0.5
OUTPUT_DPI = (300, 300)


@dataclasses.dataclass(slots=True, frozen=True)
class QualityLevel:
    """Quality applied to images strictly larger than ``min_size`` bytes."""

    name: str
    min_size: int
    quality: float


_LEVELS: tuple[QualityLevel, ...] = (
    QualityLevel("lowest", min_size=5 * MIB, quality=0.1),
    QualityLevel("low", min_size=2 * MIB, quality=0.2),
    QualityLevel("medium", min_size=1 * MIB, quality=0.4),
)

_MODE_BITS: dict[str, int] = {
    "1": 1,
    "L": 8,
    "P": 8,
    "LA": 16,
    "I;16": 16,
    "RGB": 24,
    "YCbCr": 24,
    "LAB": 24,
    "RGBA": 32,
    "CMYK": 32,
    "I": 32,
    "F": 32,
}

# Modes the PNG encoder rejects, mapped to the closest mode it accepts.
_PNG_CONVERSIONS = {"CMYK": "RGB", "YCbCr": "RGB", "LAB": "RGB", "F": "L"}

_EXTENSIONS = {"jpeg": "jpg", "png": "png", "tiff": "tif", "gif": "gif", "bmp": "bmp"}


def quality_for(size: int) -> float:
    """Return the encoder quality (0..1) for an estimated uncompressed *size*."""

    for level in _LEVELS:
        if size > level.min_size:
            return level.quality
    if size <= HIGH_QUALITY_LIMIT:
        return HIGHEST_QUALITY
    return DEFAULT_QUALITY


def should_compress(size: int) -> bool:
    return size > COMPRESSION_THRESHOLD


def bits_per_pixel(mode: str) -> int:
    return _MODE_BITS.get(mode, 24)


def default_context_id() -> str:
    """Process and thread scoped prefix for image file names."""

    return f"{os.getpid()}-{threading.get_ident()}"


@dataclasses.dataclass(slots=True)
class EncodedImage:
    """Encoded raster bytes."""

    data: bytes
    format: str
    quality: float | None = None
    compressed: bool = False

    @property
    def extension(self) -> str:
        return _EXTENSIONS.get(self.format, self.format)

    @property
    def mime_type(self) -> str:
        return f"image/{self.format}"

    def data_uri(self) -> str:
        payload = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{payload}"


def _prepare(image: Image.Image, fmt: str) -> Image.Image:
    if fmt == "jpeg" and image.mode not in {"RGB", "L", "CMYK"}:
        return image.convert("RGB")
    if fmt == "png" and image.mode in _PNG_CONVERSIONS:
        return image.convert(_PNG_CONVERSIONS[image.mode])
    return image


def _write_compressed(image: Image.Image, fmt: str, quality: float) -> bytes:
    output = io.BytesIO()
    save_kwargs: dict[str, object] = {"dpi": OUTPUT_DPI}
    if fmt == "jpeg":
        save_kwargs.update(quality=max(1, int(quality * 100)), optimize=True)
    elif fmt == "png":
        save_kwargs.update(optimize=True, compress_level=9)
    _prepare(image, fmt).save(output, format=fmt.upper(), **save_kwargs)
    return output.getvalue()


def _write_native(image: Image.Image, fmt: str) -> bytes:
    output = io.BytesIO()
    _prepare(image, fmt).save(output, format=fmt.upper())
    return output.getvalue()


def encode_image(resolved: ResolvedImage, *, logger: logging.Logger | None = None) -> EncodedImage:
    """Encode *resolved* in its native format, compressing large rasters.

    Compression failures fall back to a plain native write; a native write
    the encoder rejects falls back to PNG.  :class:`ImageEncodingError` is
    raised only when every attempt fails.
    """

    logger = logger or _LOGGER
    if not resolved.format:
        raise ImageEncodingError(f"Image {resolved.name or '<inline>'} has no native format")
    fmt = resolved.format.lower()
    if fmt == "jpg":
        fmt = "jpeg"
    size = resolved.estimated_size

    if should_compress(size):
        quality = quality_for(size)
        try:
            return EncodedImage(_write_compressed(resolved.image, fmt, quality), fmt, quality, compressed=True)
        except Exception as exc:
            logger.warning("Image compression failed, writing uncompressed: %s", exc)

    try:
        return EncodedImage(_write_native(resolved.image, fmt), fmt)
    except Exception as exc:
        if fmt == "png":
            raise ImageEncodingError(f"Failed to encode image: {exc}") from exc
        logger.warning("Native %s write failed, falling back to PNG: %s", fmt, exc)

    try:
        return EncodedImage(_write_native(resolved.image, "png"), "png")
    except Exception as exc:
        raise ImageEncodingError(f"Failed to encode image: {exc}") from exc


class ImagePlacer:
    """Positions images on the page and turns them into :class:`ImageBox` objects."""

    def __init__(self, options: LayoutOptions, *, logger: logging.Logger | None = None) -> None:
        self.options = options
        self.context_id = options.context_id or default_context_id()
        self._logger = logger or _LOGGER
        self._index = 0

    @staticmethod
    def placement(
        page_transform: AffineTransform, ctm: Matrix, width: float, height: float
    ) -> tuple[float, float, float, float]:
        """Return the page-space ``(left, top, width, height)`` of an image.

        The image space ``(0, 0, w, h)`` rectangle maps onto the CTM's unit
        square with the first pixel row at the top.
        """

        device = (
            page_transform.concatenate(AffineTransform.from_matrix(ctm))
            .scale(1 / width, -1 / height)
            .translate(0, -height)
        )
        return device.transform_bounds(0, 0, width, height)

    def place(self, image: ResolvedImage, page_transform: AffineTransform, ctm: Matrix) -> ImageBox | None:
        """Encode *image* and return its box, or ``None`` when it is skipped."""

        if not image.format:
            self._logger.warning("Skipping image %s without a native format", image.name or "<inline>")
            return None
        if image.width <= 0 or image.height <= 0:
            self._logger.warning("Skipping image %s with empty size", image.name or "<inline>")
            return None

        left, top, width, height = self.placement(page_transform, ctm, image.width, image.height)
        encoded = encode_image(image, logger=self._logger)
        return ImageBox(src=self._emit(encoded), left=left, top=top, width=width, height=height)

    def _emit(self, encoded: EncodedImage) -> str:
        if ImageEmission(self.options.image_emission) is ImageEmission.INLINE:
            return encoded.data_uri()

        image_dir = Path(self.options.image_dir)  # type: ignore[arg-type]
        image_dir.mkdir(parents=True, exist_ok=True)
        name = f"{self.context_id}-{self._index}.{encoded.extension}"
        self._index += 1
        (image_dir / name).write_bytes(encoded.data)
        self._logger.debug("Wrote image %s", name)
        return f"{self.options.image_src_prefix.rstrip('/')}/{name}"
