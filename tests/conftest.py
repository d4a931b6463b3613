from __future__ import annotations

import sys
import zlib
from pathlib import Path
from typing import Callable

import pytest
from pypdf import PdfWriter
from pypdf.generic import (
    ArrayObject,
    DictionaryObject,
    FloatObject,
    NameObject,
    NumberObject,
    StreamObject,
)

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from pdf2htmlx.primitives import FontResource, Glyph  # noqa: E402


def helvetica(writer: PdfWriter):
    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/Type1"),
            NameObject("/BaseFont"): NameObject("/Helvetica"),
        }
    )
    return writer._add_object(font_dict)


def truetype(writer: PdfWriter, base_font: str = "/ABCDEF+Arial-Bold"):
    font_file = StreamObject()
    font_file._data = b""
    descriptor = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/FontDescriptor"),
            NameObject("/FontName"): NameObject(base_font),
            NameObject("/Ascent"): NumberObject(900),
            NameObject("/Descent"): NumberObject(-200),
            NameObject("/CapHeight"): NumberObject(700),
            NameObject("/Flags"): NumberObject(32),
            NameObject("/FontBBox"): ArrayObject([NumberObject(v) for v in (-100, -250, 1000, 950)]),
            NameObject("/FontFile2"): writer._add_object(font_file),
        }
    )
    font_dict = DictionaryObject(
        {
            NameObject("/Type"): NameObject("/Font"),
            NameObject("/Subtype"): NameObject("/TrueType"),
            NameObject("/BaseFont"): NameObject(base_font),
            NameObject("/FirstChar"): NumberObject(72),
            NameObject("/LastChar"): NumberObject(73),
            NameObject("/Widths"): ArrayObject([NumberObject(600), NumberObject(400)]),
            NameObject("/FontDescriptor"): writer._add_object(descriptor),
        }
    )
    return writer._add_object(font_dict)


def content_stream(writer: PdfWriter, data: bytes):
    stream = StreamObject()
    stream[NameObject("/Length")] = NumberObject(len(data))
    stream._data = data
    return writer._add_object(stream)


def rgb_image(writer: PdfWriter, width: int = 2, height: int = 2):
    image_stream = StreamObject()
    image_stream.update(
        {
            NameObject("/Type"): NameObject("/XObject"),
            NameObject("/Subtype"): NameObject("/Image"),
            NameObject("/Width"): NumberObject(width),
            NameObject("/Height"): NumberObject(height),
            NameObject("/ColorSpace"): NameObject("/DeviceRGB"),
            NameObject("/BitsPerComponent"): NumberObject(8),
            NameObject("/Filter"): NameObject("/FlateDecode"),
        }
    )
    image_stream._data = zlib.compress(bytes([255, 0, 0] * width * height))
    return writer._add_object(image_stream)


def form_xobject(writer: PdfWriter, data: bytes, resources: DictionaryObject, matrix=(1, 0, 0, 1, 0, 0)):
    form = StreamObject()
    form.update(
        {
            NameObject("/Type"): NameObject("/XObject"),
            NameObject("/Subtype"): NameObject("/Form"),
            NameObject("/BBox"): ArrayObject([NumberObject(v) for v in (0, 0, 200, 200)]),
            NameObject("/Matrix"): ArrayObject([FloatObject(v) for v in matrix]),
            NameObject("/Resources"): resources,
            NameObject("/Length"): NumberObject(len(data)),
        }
    )
    form._data = data
    return form, writer._add_object(form)


@pytest.fixture()
def pdf_factory(tmp_path: Path) -> Callable[..., Path]:
    """Build a one-page PDF with Helvetica as ``/F1`` and the given content."""

    def _create(
        content: bytes,
        *,
        filename: str = "sample.pdf",
        width: float = 200,
        height: float = 200,
        rotation: int = 0,
        title: str | None = None,
        password: str | None = None,
        with_image: bool = False,
    ) -> Path:
        writer = PdfWriter()
        page = writer.add_blank_page(width=width, height=height)
        resources = DictionaryObject({NameObject("/Font"): DictionaryObject({NameObject("/F1"): helvetica(writer)})})
        if with_image:
            resources[NameObject("/XObject")] = DictionaryObject({NameObject("/Im1"): rgb_image(writer)})
        page[NameObject("/Resources")] = resources
        page[NameObject("/Contents")] = content_stream(writer, content)
        if rotation:
            page[NameObject("/Rotate")] = NumberObject(rotation)
        if title is not None:
            writer.add_metadata({"/Title": title})
        if password:
            writer.encrypt(password)
        path = tmp_path / filename
        with path.open("wb") as handle:
            writer.write(handle)
        return path

    return _create


@pytest.fixture()
def sample_pdf(pdf_factory: Callable[..., Path]) -> Path:
    return pdf_factory(
        b"BT /F1 12 Tf 72 100 Td (Hello world!) Tj ET 1 w 10 10 m 110 10 l S",
        title="Test Document",
    )


@pytest.fixture()
def make_line() -> Callable[..., list[Glyph]]:
    """Glyphs for *text* laid out left to right without gaps."""

    def _make(
        text: str,
        x: float,
        y: float,
        *,
        width: float = 5.0,
        height: float = 10.0,
        font: FontResource | None = None,
        size: float = 10.0,
    ) -> list[Glyph]:
        return [
            Glyph(
                text=char,
                x=x + index * width,
                y=y,
                width=width,
                height=height,
                font=font,
                font_size=size,
                x_scale=size,
                y_scale=size,
            )
            for index, char in enumerate(text)
        ]

    return _make
