"""Primitives exchanged between the document engine and the layout core."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Sequence, Union

if TYPE_CHECKING:  # pragma: no cover
    from PIL import Image as PILImage

__all__ = [
    "CropBox",
    "Matrix",
    "IDENTITY_MATRIX",
    "FontResource",
    "ImageXObject",
    "FormXObject",
    "PageResources",
    "Glyph",
    "GraphicsState",
    "OperatorEvent",
    "ResolvedImage",
    "ParagraphBox",
    "LineBox",
    "ImageBox",
    "LayoutStats",
]

Matrix = tuple[float, float, float, float, float, float]

IDENTITY_MATRIX: Matrix = (1.0, 0.0, 0.0, 1.0, 0.0, 0.0)


@dataclass(slots=True, frozen=True)
class CropBox:
    """Visible page region in PDF user space (lower-left origin)."""

    left: float
    bottom: float
    width: float
    height: float


# -- Resources ----------------------------------------------------------------


@dataclass(slots=True, eq=False)
class FontResource:
    """Font referenced from a resource dictionary.

    Instances compare by identity: two subsets of the same face often share
    a base font name, so the object itself is the key.
    """

    name: str
    base_font: str | None = None
    subtype: str | None = None
    descendant_subtype: str | None = None
    font_file: str | None = None
    ascent: float = 0.0
    descent: float = 0.0
    cap_height: float = 0.0
    bbox: tuple[float, float, float, float] | None = None
    flags: int = 0


@dataclass(slots=True, eq=False)
class ImageXObject:
    """Raster XObject; ``loader`` decodes it on demand."""

    name: str
    width: int = 0
    height: int = 0
    loader: Callable[[], "ResolvedImage | None"] | None = None

    def resolve(self) -> "ResolvedImage | None":
        if self.loader is None:
            return None
        return self.loader()


@dataclass(slots=True, eq=False)
class FormXObject:
    """Form XObject carrying its own (possibly shared) resources."""

    name: str
    resources: "PageResources | None" = None
    matrix: "Matrix" = IDENTITY_MATRIX


XObject = Union[ImageXObject, FormXObject]


@dataclass(slots=True, eq=False)
class PageResources:
    """Fonts and XObjects available to a content stream."""

    fonts: dict[str, FontResource] = field(default_factory=dict)
    xobjects: dict[str, XObject] = field(default_factory=dict)


# -- Events -------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class Glyph:
    """One decoded character positioned in page space.

    ``x``/``y`` locate the baseline origin with y growing downward.
    ``x_scale`` and ``y_scale`` are the effective font size along each axis.
    """

    text: str
    x: float
    y: float
    width: float
    height: float
    font: FontResource | None = None
    font_size: float = 0.0
    x_scale: float = 0.0
    y_scale: float = 0.0


@dataclass(slots=True, frozen=True)
class GraphicsState:
    """Graphics state in effect when an operator executes."""

    ctm: Matrix = IDENTITY_MATRIX
    line_width: float = 1.0


@dataclass(slots=True, frozen=True)
class OperatorEvent:
    """Content stream operator forwarded to the layout engine."""

    name: str
    operands: Sequence[Any] = ()
    graphics: GraphicsState = field(default_factory=GraphicsState)
    resources: PageResources | None = None


@dataclass(slots=True)
class ResolvedImage:
    """Decoded raster ready for re-encoding."""

    image: "PILImage.Image"
    width: int
    height: int
    format: str | None
    bits_per_pixel: int = 24
    name: str | None = None

    @property
    def estimated_size(self) -> int:
        """Uncompressed size in bytes."""

        return self.width * self.height * self.bits_per_pixel // 8


# -- Output boxes -------------------------------------------------------------


@dataclass(slots=True)
class ParagraphBox:
    """Absolutely positioned paragraph."""

    left: float
    top: float
    width: float
    line_height: float
    content: str
    font_size: float = 0.0
    font_family: str | None = None
    font_weight: str = "normal"
    font_style: str = "normal"


@dataclass(slots=True)
class LineBox:
    """Bordered box standing in for one stroked segment."""

    left: float
    top: float
    width: float
    height: float
    border_side: str
    stroke_width: float
    angle: float = 0.0


@dataclass(slots=True)
class ImageBox:
    """Positioned image reference (data URI or relative path)."""

    src: str
    left: float
    top: float
    width: float
    height: float


@dataclass(slots=True)
class LayoutStats:
    """Counters collected while a document is laid out."""

    pages: int = 0
    paragraphs: int = 0
    lines: int = 0
    images: int = 0
    skipped_images: int = 0
    unsupported_fonts: int = 0
    errors: int = 0
