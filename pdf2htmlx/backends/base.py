"""Protocols between document engines and the layout listener."""

from __future__ import annotations

from typing import Callable, Iterable, Protocol

from ..primitives import CropBox, Glyph, Matrix, OperatorEvent, PageResources, ResolvedImage

ProgressCallback = Callable[[int, int], None]


class PageEventListener(Protocol):
    """Receiver of the page event stream produced by a document engine."""

    def on_document_begin(self, title: str | None = None) -> None:
        """Called once before the first page."""

    def on_page_begin(self, number: int, crop_box: CropBox | None, rotation: int = 0) -> None:
        """Called when a page starts; ``number`` is 1-based."""

    def on_resources(self, resources: PageResources | None) -> None:
        """Resources of the page about to be walked."""

    def on_glyph(self, glyph: Glyph) -> None:
        """One positioned character in page space."""

    def on_operator(self, event: OperatorEvent) -> None:
        """A path construction, path painting or XObject operator."""

    def on_image(self, image: ResolvedImage, ctm: Matrix) -> None:
        """A decoded raster drawn with ``ctm``."""

    def on_page_end(self) -> None:
        """Called after the last event of a page."""

    def on_document_end(self) -> None:
        """Called once after the last page."""


class DocumentEngine(Protocol):
    """Protocol for objects that drive a :class:`PageEventListener`."""

    @property
    def page_count(self) -> int:
        """Number of pages in the document."""

    @property
    def title(self) -> str | None:
        """Document title used for the HTML ``<title>``."""

    def run(
        self,
        listener: PageEventListener,
        pages: Iterable[int] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Replay the requested pages (1-based, all by default) into *listener*."""
