"""Document engines for pdf2htmlx."""

from .base import DocumentEngine, PageEventListener, ProgressCallback
from .pypdf_backend import PageSummary, PypdfDocumentEngine

__all__ = [
    "DocumentEngine",
    "PageEventListener",
    "PageSummary",
    "ProgressCallback",
    "PypdfDocumentEngine",
]
