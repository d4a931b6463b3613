"""Options controlling how a page event stream is laid out."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from pathlib import Path

__all__ = ["DEFAULT_SENTENCE_TERMINATORS", "ImageEmission", "LayoutOptions"]

DEFAULT_SENTENCE_TERMINATORS: frozenset[str] = frozenset({"!", "?", "。", ";", "；"})


class ImageEmission(str, enum.Enum):
    """Where extracted rasters end up."""

    INLINE = "inline"
    FILE = "file"


@dataclass(frozen=True)
class LayoutOptions:
    """Immutable configuration shared by one engine instance."""

    sentence_terminators: frozenset[str] = DEFAULT_SENTENCE_TERMINATORS
    # Gap between two glyphs of a line, in average glyph widths, above
    # which the line is split into separate boxes.
    word_gap_tolerance: float = 2.0
    line_spacing_tolerance: float = 1.0
    alignment_factor: float = 4.0
    margin_factor: float = 1.1
    blank_placeholder: str = "    "
    image_emission: ImageEmission = ImageEmission.INLINE
    image_dir: Path | None = None
    image_src_prefix: str = "./image"
    context_id: str | None = None
    first_line_indent_correction: bool = True
    special_quote_spacing: bool = False
    paragraph_mode: bool = True
    fallback_font_family: str = "serif"
    unit: str = "pt"
    min_stroke_width: float = 0.5
    quote_characters: frozenset[str] = field(default_factory=lambda: frozenset({"“", "”"}))

    def validate(self) -> "LayoutOptions":
        """Return ``self`` or raise :class:`ValueError` on inconsistent values."""

        if self.word_gap_tolerance <= 0:
            raise ValueError("word_gap_tolerance must be positive")
        if self.line_spacing_tolerance < 0:
            raise ValueError("line_spacing_tolerance must not be negative")
        if self.alignment_factor <= 0 or self.margin_factor <= 0:
            raise ValueError("alignment_factor and margin_factor must be positive")
        if self.min_stroke_width < 0:
            raise ValueError("min_stroke_width must not be negative")
        if ImageEmission(self.image_emission) is ImageEmission.FILE and self.image_dir is None:
            raise ValueError("image_dir is required when images are written to files")
        return self
