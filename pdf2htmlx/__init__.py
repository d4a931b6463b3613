"""Top-level package for pdf2htmlx.

This module exposes the public API for rebuilding PDF pages as absolutely
positioned HTML: paragraphs with sentence markup, stroked lines drawn as
bordered boxes and images placed from their transforms.
"""
from .config import ImageEmission, LayoutOptions
from .converter import ConversionResult, convert_pdf_to_html, render_html
from .engine import LayoutEngine
from .exceptions import (
    ConversionError,
    EncryptedPDFError,
    ImageEncodingError,
    InvalidPDFError,
    LayoutError,
    Pdf2HtmlError,
)
from .primitives import LayoutStats

__all__ = [
    "ConversionError",
    "ConversionResult",
    "EncryptedPDFError",
    "ImageEmission",
    "ImageEncodingError",
    "InvalidPDFError",
    "LayoutEngine",
    "LayoutError",
    "LayoutOptions",
    "LayoutStats",
    "Pdf2HtmlError",
    "convert_pdf_to_html",
    "render_html",
]

__version__ = "0.1.0"
