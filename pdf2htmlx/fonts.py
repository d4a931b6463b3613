"""Font table shared by every page of one document."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Iterator

from .primitives import FontResource, FormXObject, PageResources

__all__ = [
    "FontKind",
    "FontStyle",
    "FontTable",
    "FontTableEntry",
    "classify_font",
    "resolve_font_style",
]

LOGGER = logging.getLogger(__name__)

_SUBSET_PREFIX = re.compile(r"^[A-Z]{6}\+")
_UNSAFE_FAMILY_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


class FontKind(str, enum.Enum):
    TRUETYPE = "truetype"
    CID_TRUETYPE = "cid-truetype"
    TYPE1C = "type1c"
    UNSUPPORTED = "unsupported"


@dataclass(slots=True, frozen=True)
class FontStyle:
    """CSS style resolved for a glyph."""

    family: str
    weight: str = "normal"
    style: str = "normal"


@dataclass(slots=True, frozen=True)
class FontTableEntry:
    family: str
    bold: bool
    italic: bool
    kind: FontKind

    @property
    def supported(self) -> bool:
        return self.kind is not FontKind.UNSUPPORTED


def _strip_slash(value: str | None) -> str | None:
    if value is None:
        return None
    return value[1:] if value.startswith("/") else value


def classify_font(font: FontResource) -> FontKind:
    """Return the font program kind the table knows how to reference."""

    subtype = _strip_slash(font.subtype)
    if subtype == "TrueType":
        return FontKind.TRUETYPE
    if subtype == "Type0":
        if _strip_slash(font.descendant_subtype) == "CIDFontType2":
            return FontKind.CID_TRUETYPE
        return FontKind.UNSUPPORTED
    if subtype == "Type1" and _strip_slash(font.font_file) == "FontFile3":
        return FontKind.TYPE1C
    return FontKind.UNSUPPORTED


def resolve_font_style(font: FontResource | None) -> tuple[bool, bool]:
    """Return ``(bold, italic)`` from the font's name.

    This is a lexical heuristic over the base font name; descriptor flags
    are not consulted.
    """

    if font is None:
        return False, False
    name = (font.base_font or font.name or "").lower()
    return "bold" in name, "italic" in name


def _family_label(font: FontResource) -> str:
    raw = _strip_slash(font.base_font) or _strip_slash(font.name) or "font"
    raw = _SUBSET_PREFIX.sub("", raw)
    label = _UNSAFE_FAMILY_CHARS.sub("_", raw).strip("_")
    return label or "font"


class FontTable:
    """Deduplicates fonts by identity and hands out stable family labels."""

    def __init__(self, fallback_family: str = "serif", logger: logging.Logger | None = None) -> None:
        self.fallback_family = fallback_family
        self._logger = logger or LOGGER
        self._entries: dict[FontResource, FontTableEntry] = {}
        self._rejected: set[FontResource] = set()
        self._labels: set[str] = set()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, font: object) -> bool:
        return font in self._entries

    def __iter__(self) -> Iterator[tuple[FontResource, FontTableEntry]]:
        return iter(self._entries.items())

    @property
    def unsupported_count(self) -> int:
        return len(self._rejected)

    def get(self, font: FontResource | None) -> FontTableEntry | None:
        if font is None:
            return None
        return self._entries.get(font)

    def add(self, font: FontResource) -> FontTableEntry | None:
        """Register *font*, returning its entry or ``None`` when unsupported."""

        existing = self._entries.get(font)
        if existing is not None:
            return existing
        if font in self._rejected:
            return None
        kind = classify_font(font)
        if kind is FontKind.UNSUPPORTED:
            self._rejected.add(font)
            self._logger.warning(
                "Font not supported, fontName=%s, subtype=%s",
                font.base_font or font.name,
                font.subtype,
            )
            return None
        bold, italic = resolve_font_style(font)
        entry = FontTableEntry(family=self._unique_label(_family_label(font)), bold=bold, italic=italic, kind=kind)
        self._entries[font] = entry
        return entry

    def update_from_resources(self, resources: PageResources | None) -> None:
        """Add every font reachable from *resources*, nested forms included."""

        self._walk(resources, set())

    def _walk(self, resources: PageResources | None, visited: set[int]) -> None:
        if resources is None or id(resources) in visited:
            return
        visited.add(id(resources))
        for font in resources.fonts.values():
            try:
                self.add(font)
            except Exception:
                self._logger.warning("Failed to update font table", exc_info=True)
        for xobject in resources.xobjects.values():
            if isinstance(xobject, FormXObject) and xobject.resources is not None:
                self._walk(xobject.resources, visited)

    def style_for(self, font: FontResource | None) -> FontStyle:
        """Resolve family, weight and style for a glyph drawn with *font*."""

        bold, italic = resolve_font_style(font)
        entry = self.get(font)
        family = entry.family if entry is not None else self.fallback_family
        return FontStyle(
            family=family,
            weight="bold" if bold else "normal",
            style="italic" if italic else "normal",
        )

    def _unique_label(self, label: str) -> str:
        candidate = label
        counter = 1
        while candidate in self._labels:
            counter += 1
            candidate = f"{label}_{counter}"
        self._labels.add(candidate)
        return candidate
