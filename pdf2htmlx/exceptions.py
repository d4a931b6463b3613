"""
Custom exceptions for pdf2htmlx.

This module defines all custom exceptions used throughout the library.
"""


class Pdf2HtmlError(Exception):
    """Base exception for all pdf2htmlx errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    @property
    def default_message(self) -> str:
        return "An unknown pdf2htmlx error occurred."


class InvalidPDFError(Pdf2HtmlError):
    """Raised when PDF file is invalid or corrupted."""

    @property
    def default_message(self) -> str:
        return "Invalid or corrupted PDF file."


class EncryptedPDFError(Pdf2HtmlError):
    """Raised when PDF is encrypted and cannot be processed."""

    @property
    def default_message(self) -> str:
        return "PDF is encrypted and cannot be processed without a password."


class ConversionError(Pdf2HtmlError):
    """Raised when a PDF cannot be converted to HTML."""

    @property
    def default_message(self) -> str:
        return "PDF to HTML conversion failed."


class ImageEncodingError(Pdf2HtmlError):
    """Raised when an extracted raster cannot be re-encoded."""

    @property
    def default_message(self) -> str:
        return "Unable to encode extracted image."


class LayoutError(Pdf2HtmlError):
    """Raised when layout geometry is inconsistent."""

    @property
    def default_message(self) -> str:
        return "Invalid layout geometry."
