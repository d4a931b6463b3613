from __future__ import annotations

from typing import Callable

import pytest

from pdf2htmlx.config import LayoutOptions
from pdf2htmlx.fonts import FontTable
from pdf2htmlx.primitives import FontResource, Glyph, ParagraphBox
from pdf2htmlx.segmentation import GlyphSegmentationEngine, ParagraphBuffer

MakeLine = Callable[..., list[Glyph]]


def _engine(options: LayoutOptions | None = None, page_width: float = 100.0, font_table: FontTable | None = None):
    boxes: list[ParagraphBox] = []
    engine = GlyphSegmentationEngine(options or LayoutOptions(), font_table or FontTable(), boxes.append)
    engine.begin_page(page_width)
    return engine, boxes


def _feed(engine: GlyphSegmentationEngine, *lines: list[Glyph]) -> None:
    for line in lines:
        for glyph in line:
            engine.feed(glyph)


def test_sentences_are_wrapped_in_spans(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("Hi! Yo", 10, 20))
    engine.end_page()

    assert [box.content for box in boxes] == ['<span class="seq">Hi!</span><span class="seq"> Yo</span>']


def test_wide_gap_splits_the_line(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("ab", 10, 20), make_line("cd", 35, 20))
    engine.end_page()

    assert len(boxes) == 2
    assert boxes[1].left == 35


def test_narrow_gap_becomes_blank_placeholders(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("ab", 10, 20), make_line("cd", 27.5, 20))
    engine.end_page()

    (box,) = boxes
    assert box.content == '<span class="seq">ab    cd</span>'
    assert box.width == pytest.approx(32.5)


def test_aligned_lines_merge_into_one_paragraph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("abcd", 10, 20), make_line("efghij", 10, 32))
    engine.end_page()

    (box,) = boxes
    assert box.content == '<span class="seq">abcdefghij</span>'
    assert box.left == 10
    assert box.top == 10
    assert box.width == pytest.approx(35)
    assert box.line_height == pytest.approx(12)
    assert box.font_size == 10
    assert box.font_family == "serif"


def test_merged_width_is_the_widest_line(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("abcdefgh", 10, 20), make_line("ijk", 10, 32))
    engine.end_page()

    (box,) = boxes
    assert box.width == pytest.approx(45)


def test_indented_first_line_gets_a_spacer(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("abcd", 20, 20), make_line("efghij", 10, 32))
    engine.end_page()

    (box,) = boxes
    assert box.content.startswith('<span style="display:inline-block;width:10pt;"></span>')
    assert box.left == 10
    assert box.width == pytest.approx(35)


def test_indent_correction_can_be_disabled(make_line: MakeLine) -> None:
    engine, boxes = _engine(LayoutOptions(first_line_indent_correction=False))

    _feed(engine, make_line("abcd", 20, 20), make_line("efghij", 10, 32))
    engine.end_page()

    (box,) = boxes
    assert box.content == '<span class="seq">abcdefghij</span>'


def test_changed_line_spacing_starts_a_new_paragraph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("abcd", 10, 20), make_line("abcd", 10, 32), make_line("abcd", 10, 50))
    engine.end_page()

    assert len(boxes) == 2
    assert boxes[0].line_height == pytest.approx(12)
    assert boxes[1].top == 40


def test_line_ending_in_space_starts_a_new_paragraph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("abc ", 10, 20), make_line("efgh", 10, 32))
    engine.end_page()

    assert len(boxes) == 2
    assert boxes[1].top == 22


def test_misaligned_line_starts_a_new_paragraph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    # margins are balanced but the starts are 30pt apart
    _feed(engine, make_line("abcd", 40, 20), make_line("efgh", 10, 32))
    engine.end_page()

    assert [box.left for box in boxes] == [40, 10]


def test_unbalanced_margins_start_a_new_paragraph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    # starts are within the alignment limit but the left margin grows by 10pt
    _feed(engine, make_line("abcd", 10, 20), make_line("efgh", 20, 32))
    engine.end_page()

    assert [box.left for box in boxes] == [10, 20]


def test_single_line_width_includes_last_glyph(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("ab", 10, 20))
    engine.end_page()

    assert boxes[0].width == pytest.approx(15)


def test_paragraph_mode_off_emits_one_box_per_line(make_line: MakeLine) -> None:
    engine, boxes = _engine(LayoutOptions(paragraph_mode=False))

    _feed(engine, make_line("abcd", 10, 20), make_line("efgh", 10, 32))
    engine.end_page()

    assert [box.top for box in boxes] == [10, 22]


def test_whitespace_only_paragraph_is_discarded(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("   ", 10, 20))
    engine.end_page()

    assert boxes == []


def test_text_is_escaped(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("a<b&", 10, 20))
    engine.end_page()

    assert boxes[0].content == '<span class="seq">a&lt;b&amp;</span>'


def test_special_quote_spacing(make_line: MakeLine) -> None:
    engine, boxes = _engine(LayoutOptions(special_quote_spacing=True))

    _feed(engine, make_line("“a”", 10, 20))
    engine.end_page()

    assert boxes[0].content == '<span class="seq"> “ a ” </span>'


def test_pages_do_not_share_state(make_line: MakeLine) -> None:
    engine, boxes = _engine()

    _feed(engine, make_line("ab", 10, 20))
    engine.end_page()
    engine.begin_page(100)
    _feed(engine, make_line("cd", 20, 20))
    engine.end_page()

    assert [box.content for box in boxes] == ['<span class="seq">ab</span>', '<span class="seq">cd</span>']
    assert engine.buffer.is_empty


def test_sink_failure_is_counted_and_layout_continues(make_line: MakeLine) -> None:
    def broken_sink(box: ParagraphBox) -> None:
        raise RuntimeError("disk full")

    engine = GlyphSegmentationEngine(LayoutOptions(), FontTable(), broken_sink)
    engine.begin_page(100)

    _feed(engine, make_line("ab", 10, 20))
    assert engine.flush() is None
    _feed(engine, make_line("cd", 10, 20))
    engine.end_page()

    assert engine.errors == 2


def test_font_metrics_drive_top_and_line_height(make_line: MakeLine) -> None:
    font = FontResource("F1", "Arial-BoldItalic", "TrueType", ascent=800, descent=-200)
    table = FontTable()
    table.add(font)
    engine, boxes = _engine(font_table=table)

    _feed(engine, make_line("ab", 10, 100, font=font, size=10))
    engine.end_page()

    (box,) = boxes
    assert box.top == pytest.approx(92)
    assert box.line_height == pytest.approx(10)
    assert (box.font_family, box.font_weight, box.font_style) == ("Arial-BoldItalic", "bold", "italic")


def test_buffer_closes_open_sentence() -> None:
    buffer = ParagraphBuffer()
    buffer.append_text("a", "a", terminator=False)
    buffer.append_blanks(2, "_")

    assert buffer.markup() == '<span class="seq">a__</span>'
    assert not buffer.is_blank
