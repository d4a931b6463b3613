"""Affine transforms and the PDF user space to page space mapping."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Sequence

from .exceptions import LayoutError
from .primitives import CropBox, IDENTITY_MATRIX, Matrix

__all__ = ["AffineTransform", "PageContext", "build_page_context"]

LOGGER = logging.getLogger(__name__)

_SUPPORTED_ROTATIONS = (0, 90, 180, 270)


@dataclass(slots=True, frozen=True)
class AffineTransform:
    """2D affine transform using the PDF ``[a b c d e f]`` layout.

    ``x' = a*x + c*y + e`` and ``y' = b*x + d*y + f``.  The builder methods
    return a new transform in which the argument is applied *first*, which
    matches how graphics libraries compose successive operations.
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def from_matrix(cls, matrix: Sequence[float]) -> "AffineTransform":
        a, b, c, d, e, f = (float(value) for value in matrix)
        return cls(a, b, c, d, e, f)

    @property
    def matrix(self) -> Matrix:
        return (self.a, self.b, self.c, self.d, self.e, self.f)

    @property
    def determinant(self) -> float:
        return self.a * self.d - self.b * self.c

    def concatenate(self, other: "AffineTransform") -> "AffineTransform":
        """Return ``self . other``: ``other`` runs before ``self``."""

        return AffineTransform(
            a=self.a * other.a + self.c * other.b,
            b=self.b * other.a + self.d * other.b,
            c=self.a * other.c + self.c * other.d,
            d=self.b * other.c + self.d * other.d,
            e=self.a * other.e + self.c * other.f + self.e,
            f=self.b * other.e + self.d * other.f + self.f,
        )

    def translate(self, tx: float, ty: float) -> "AffineTransform":
        return self.concatenate(AffineTransform(e=tx, f=ty))

    def scale(self, sx: float, sy: float) -> "AffineTransform":
        return self.concatenate(AffineTransform(a=sx, d=sy))

    def rotate(self, radians: float) -> "AffineTransform":
        cos = math.cos(radians)
        sin = math.sin(radians)
        # Snap quadrant rotations so page coordinates stay exact.
        if abs(cos) < 1e-12:
            cos = 0.0
        if abs(sin) < 1e-12:
            sin = 0.0
        return self.concatenate(AffineTransform(a=cos, b=sin, c=-sin, d=cos))

    def apply(self, x: float, y: float) -> tuple[float, float]:
        return (self.a * x + self.c * y + self.e, self.b * x + self.d * y + self.f)

    def transform_bounds(
        self, left: float, top: float, width: float, height: float
    ) -> tuple[float, float, float, float]:
        """Transform a rectangle and return the ``(x, y, width, height)`` of its bounds."""

        corners = (
            self.apply(left, top),
            self.apply(left + width, top),
            self.apply(left, top + height),
            self.apply(left + width, top + height),
        )
        xs = [point[0] for point in corners]
        ys = [point[1] for point in corners]
        return min(xs), min(ys), max(xs) - min(xs), max(ys) - min(ys)

    def inverse(self) -> "AffineTransform":
        det = self.determinant
        if abs(det) < 1e-12:
            raise LayoutError(f"Transform {self.matrix} is not invertible")
        return AffineTransform(
            a=self.d / det,
            b=-self.b / det,
            c=-self.c / det,
            d=self.a / det,
            e=(self.c * self.f - self.d * self.e) / det,
            f=(self.b * self.e - self.a * self.f) / det,
        )

    def scale_length(self, length: float) -> float:
        """Scale a length by the transform's mean axis scale."""

        return length * math.sqrt(abs(self.determinant))


IDENTITY = AffineTransform.from_matrix(IDENTITY_MATRIX)


@dataclass(slots=True, frozen=True)
class PageContext:
    """Per-page geometry created at page-begin and dropped at page-end."""

    number: int
    crop_box: CropBox | None
    rotation: int
    transform: AffineTransform
    width: float | None
    height: float | None


def _normalise_rotation(rotation: int | float | None) -> int:
    value = int(rotation or 0) % 360
    if value not in _SUPPORTED_ROTATIONS:
        LOGGER.warning("Unsupported page rotation %s, treating as 0", rotation)
        return 0
    return value


def build_page_context(number: int, crop_box: CropBox | None, rotation: int | float | None = 0) -> PageContext:
    """Build the user space to page space mapping for one page.

    Without a crop box the page is untransformed: the transform is the
    identity and no page dimensions are reported.
    """

    rotation = _normalise_rotation(rotation)
    if crop_box is None:
        return PageContext(
            number=number,
            crop_box=None,
            rotation=rotation,
            transform=IDENTITY,
            width=None,
            height=None,
        )

    width, height = crop_box.width, crop_box.height
    transform = IDENTITY
    if rotation == 90:
        transform = transform.translate(height, 0)
    elif rotation == 180:
        transform = transform.translate(width, height)
    elif rotation == 270:
        transform = transform.translate(0, width)
    transform = (
        transform.rotate(math.radians(rotation))
        .translate(0, height)
        .scale(1, -1)
        .translate(-crop_box.left, -crop_box.bottom)
    )

    if rotation in (90, 270):
        width, height = height, width
    return PageContext(
        number=number,
        crop_box=crop_box,
        rotation=rotation,
        transform=transform,
        width=width,
        height=height,
    )
