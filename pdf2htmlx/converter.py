"""Conversion entry points for pdf2htmlx."""
from __future__ import annotations

import dataclasses
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, TextIO

from .backends import ProgressCallback, PypdfDocumentEngine
from .config import ImageEmission, LayoutOptions
from .engine import LayoutEngine
from .exceptions import ConversionError, Pdf2HtmlError
from .primitives import LayoutStats
from .utils import PathLike, ensure_output_directory, time_block, to_path

LOGGER = logging.getLogger(__name__)

DEFAULT_IMAGE_DIRNAME = "image"


@dataclass(frozen=True)
class ConversionResult:
    """Outcome of converting one PDF."""

    input_path: Path
    output_path: Path | None
    page_count: int
    stats: LayoutStats


def _resolve_options(options: LayoutOptions | None, destination: Path | None) -> LayoutOptions:
    options = options or LayoutOptions()
    if (
        ImageEmission(options.image_emission) is ImageEmission.FILE
        and options.image_dir is None
        and destination is not None
    ):
        options = dataclasses.replace(options, image_dir=destination.parent / DEFAULT_IMAGE_DIRNAME)
    return options.validate()


def _render(
    document: PypdfDocumentEngine,
    output: TextIO,
    options: LayoutOptions,
    pages: Iterable[int] | None,
    progress_callback: ProgressCallback | None,
) -> LayoutStats:
    engine = LayoutEngine(output, options)
    document.run(engine, pages=pages, progress_callback=progress_callback)
    return engine.stats


def convert_pdf_to_html(
    input_path: PathLike,
    output_path: PathLike | None = None,
    options: LayoutOptions | None = None,
    *,
    password: str | None = None,
    pages: Iterable[int] | None = None,
    progress_callback: ProgressCallback | None = None,
) -> ConversionResult:
    """Convert *input_path* to an HTML file.

    The output defaults to the input path with an ``.html`` suffix.  When
    images are written to files and no ``image_dir`` is configured they land
    in an ``image`` directory next to the HTML file.
    """

    source = to_path(input_path)
    destination = to_path(output_path) if output_path is not None else source.with_suffix(".html")
    options = _resolve_options(options, destination)
    ensure_output_directory(destination)

    LOGGER.info("Starting conversion: %s -> %s", source, destination)
    document = PypdfDocumentEngine.load(source, password=password)

    try:
        with time_block(LOGGER, "PDF to HTML conversion"):
            with destination.open("w", encoding="utf-8") as handle:
                stats = _render(document, handle, options, pages, progress_callback)
    except (Pdf2HtmlError, ValueError):
        raise
    except Exception as exc:
        raise ConversionError(f"Conversion failed for {source}: {exc}") from exc

    LOGGER.info(
        "Conversion completed: %s (%d paragraphs, %d lines, %d images)",
        destination,
        stats.paragraphs,
        stats.lines,
        stats.images,
    )
    return ConversionResult(
        input_path=source,
        output_path=destination,
        page_count=document.page_count,
        stats=stats,
    )


def render_html(
    input_path: PathLike,
    options: LayoutOptions | None = None,
    *,
    password: str | None = None,
    pages: Iterable[int] | None = None,
) -> str:
    """Convert *input_path* and return the HTML document as a string."""

    source = to_path(input_path)
    options = _resolve_options(options, None)
    document = PypdfDocumentEngine.load(source, password=password)
    buffer = io.StringIO()
    try:
        _render(document, buffer, options, pages, None)
    except (Pdf2HtmlError, ValueError):
        raise
    except Exception as exc:
        raise ConversionError(f"Conversion failed for {source}: {exc}") from exc
    return buffer.getvalue()
