from __future__ import annotations

import logging

import pytest

from pdf2htmlx.fonts import FontKind, FontTable, classify_font, resolve_font_style
from pdf2htmlx.primitives import FontResource, FormXObject, PageResources


@pytest.mark.parametrize(
    ("font", "kind"),
    [
        (FontResource("F1", "Arial", "TrueType"), FontKind.TRUETYPE),
        (FontResource("F2", "SimSun", "Type0", descendant_subtype="CIDFontType2"), FontKind.CID_TRUETYPE),
        (FontResource("F3", "KozMin", "Type0", descendant_subtype="CIDFontType0"), FontKind.UNSUPPORTED),
        (FontResource("F4", "Minion", "Type1", font_file="FontFile3"), FontKind.TYPE1C),
        (FontResource("F5", "Helvetica", "Type1"), FontKind.UNSUPPORTED),
        (FontResource("F6", "Glyphs", "Type3"), FontKind.UNSUPPORTED),
    ],
)
def test_classify_font(font: FontResource, kind: FontKind) -> None:
    assert classify_font(font) is kind


def test_style_resolution_uses_font_name() -> None:
    assert resolve_font_style(FontResource("F1", "ABCDEF+Arial-BoldItalic")) == (True, True)
    assert resolve_font_style(FontResource("F1", "Times-Italic")) == (False, True)
    assert resolve_font_style(FontResource("F1", "Courier")) == (False, False)
    assert resolve_font_style(None) == (False, False)


def test_unsupported_font_is_logged_and_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    table = FontTable(fallback_family="serif")
    font = FontResource("F1", "Helvetica-Bold", "Type1")

    with caplog.at_level(logging.WARNING):
        assert table.add(font) is None

    assert "Font not supported" in caplog.text
    assert table.unsupported_count == 1
    assert font not in table
    style = table.style_for(font)
    assert style.family == "serif"
    assert style.weight == "bold"


def test_supported_font_gets_clean_family_label() -> None:
    table = FontTable()
    font = FontResource("F1", "ABCDEF+Arial-BoldItalic", "TrueType")

    entry = table.add(font)

    assert entry is not None
    assert entry.family == "Arial-BoldItalic"
    assert entry.bold and entry.italic
    style = table.style_for(font)
    assert (style.family, style.weight, style.style) == ("Arial-BoldItalic", "bold", "italic")


def test_fonts_are_keyed_by_identity() -> None:
    table = FontTable()
    first = FontResource("F1", "AAAAAA+Arial", "TrueType")
    second = FontResource("F2", "BBBBBB+Arial", "TrueType")

    table.add(first)
    table.add(first)
    table.add(second)

    assert len(table) == 2
    assert table.get(first).family == "Arial"
    assert table.get(second).family == "Arial_2"


def test_resource_walk_recurses_into_forms_and_survives_cycles() -> None:
    outer_font = FontResource("F1", "Arial", "TrueType")
    inner_font = FontResource("F2", "Georgia", "TrueType")
    page = PageResources(fonts={"/F1": outer_font})
    form = FormXObject("Fm1")
    form.resources = PageResources(fonts={"/F2": inner_font}, xobjects={"/Back": FormXObject("Back", page)})
    page.xobjects["/Fm1"] = form

    table = FontTable()
    table.update_from_resources(page)

    assert outer_font in table
    assert inner_font in table
    assert len(table) == 2


def test_none_resources_are_ignored() -> None:
    table = FontTable()
    table.update_from_resources(None)
    assert len(table) == 0
