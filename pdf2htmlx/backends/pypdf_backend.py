"""pypdf implementation of the document engine."""

from __future__ import annotations

import dataclasses
import functools
import io
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from pypdf import PdfReader, _cmap
from pypdf.errors import PdfReadError
from pypdf.generic import (
    ArrayObject,
    ContentStream,
    DictionaryObject,
    IndirectObject,
    StreamObject,
)

from ..exceptions import EncryptedPDFError, InvalidPDFError
from ..images import bits_per_pixel
from ..primitives import (
    CropBox,
    FontResource,
    FormXObject,
    GraphicsState,
    Glyph,
    ImageXObject,
    OperatorEvent,
    PageResources,
    ResolvedImage,
)
from ..transform import IDENTITY, AffineTransform, build_page_context
from .base import DocumentEngine, PageEventListener, ProgressCallback

__all__ = ["PageSummary", "PypdfDocumentEngine"]

LOGGER = logging.getLogger(__name__)

# Forwarded to the listener as operator events.
_PATH_OPERATORS = frozenset(
    {"m", "l", "c", "v", "y", "re", "h", "S", "s", "f", "F", "f*", "B", "B*", "b", "b*", "n"}
)
_FONT_FILE_KEYS = ("/FontFile", "/FontFile2", "/FontFile3")
_DEFAULT_GLYPH_WIDTH = 500.0
_DEFAULT_CID_WIDTH = 1000.0
_DEFAULT_HEIGHT_RATIO = 0.7
_MAX_WIDTH_RANGE = 65536


def _resolve(obj: object | None) -> Any:
    if isinstance(obj, IndirectObject):
        try:
            return obj.get_object()
        except Exception:
            return None
    return obj


def _clean_name(name: object | None) -> str | None:
    if name is None:
        return None
    raw = str(name)
    return raw[1:] if raw.startswith("/") else raw


def _to_float(value: object, default: float = 0.0) -> float:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def _floats(operands: Sequence[object], count: int) -> list[float]:
    if len(operands) < count:
        raise ValueError(f"expected {count} operands, got {len(operands)}")
    return [_to_float(value) for value in operands[:count]]


def _string_bytes(value: object) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    original = getattr(value, "original_bytes", None)
    if original is None and hasattr(value, "get_original_bytes"):
        original = value.get_original_bytes()
    if isinstance(original, (bytes, bytearray)):
        return bytes(original)
    return str(value).encode("latin-1", "replace")


def _glyph_name_to_unicode(name: str) -> str:
    if not name.startswith("/") or len(name) == 1:
        return name
    glyphs = getattr(_cmap, "adobe_glyphs", {})
    return glyphs.get(name) or name[1:]


# -- Fonts ----------------------------------------------------------------------


def _load_translation(font_dict: DictionaryObject) -> tuple[dict[str, str], Any]:
    try:
        encoding, cmap = _cmap.get_encoding(font_dict)
    except Exception:
        LOGGER.debug("Unable to read encoding of font %s", font_dict.get("/BaseFont"), exc_info=True)
        return {}, None
    translation: dict[str, str] = {}
    if isinstance(cmap, dict):
        for key, value in cmap.items():
            if key == -1 or not isinstance(key, str):
                continue
            if isinstance(value, bytes):
                try:
                    value = value.decode("utf-16-be", "surrogatepass")
                except UnicodeDecodeError:
                    value = value.decode("latin-1", "ignore")
            translation[key] = str(value)
    return translation, encoding


def _simple_widths(font_dict: DictionaryObject) -> dict[int, float]:
    widths = _resolve(font_dict.get("/Widths"))
    if not isinstance(widths, ArrayObject):
        return {}
    first = int(_to_float(font_dict.get("/FirstChar"), 0))
    return {first + index: _to_float(_resolve(value)) for index, value in enumerate(widths)}


def _cid_widths(descendant: DictionaryObject) -> dict[int, float]:
    """Parse a CID font ``/W`` array (``c [w1 w2 ...]`` and ``c_first c_last w`` forms)."""

    entries = _resolve(descendant.get("/W"))
    widths: dict[int, float] = {}
    if not isinstance(entries, ArrayObject):
        return widths
    items = [_resolve(item) for item in entries]
    index = 0
    while index + 1 < len(items):
        first = int(_to_float(items[index]))
        following = items[index + 1]
        if isinstance(following, (ArrayObject, list)):
            for offset, value in enumerate(following):
                widths[first + offset] = _to_float(_resolve(value))
            index += 2
            continue
        if index + 2 >= len(items):
            break
        last = int(_to_float(following))
        width = _to_float(items[index + 2])
        for code in range(first, min(last, first + _MAX_WIDTH_RANGE) + 1):
            widths[code] = width
        index += 3
    return widths


class _FontDecoder:
    """Splits shown strings into character codes, text and advance widths."""

    def __init__(
        self,
        font_dict: DictionaryObject,
        descendant: DictionaryObject | None,
        resource: FontResource,
    ) -> None:
        self.resource = resource
        self.code_length = 2 if descendant is not None else 1
        self._mapping, self._encoding = _load_translation(font_dict)
        descriptor = _resolve(font_dict.get("/FontDescriptor"))
        if descendant is not None:
            self._widths = _cid_widths(descendant)
            self._default_width = _to_float(descendant.get("/DW"), _DEFAULT_CID_WIDTH)
        else:
            self._widths = _simple_widths(font_dict)
            missing = 0.0
            if isinstance(descriptor, DictionaryObject):
                missing = _to_float(descriptor.get("/MissingWidth"))
            self._default_width = missing or _DEFAULT_GLYPH_WIDTH
        height = resource.cap_height or resource.ascent or (resource.bbox[3] if resource.bbox else 0.0)
        self.height_ratio = height / 1000 if height > 0 else _DEFAULT_HEIGHT_RATIO

    def width(self, code: int) -> float:
        return self._widths.get(code, self._default_width)

    def unicode(self, code: bytes) -> str:
        if len(code) == 2:
            key = code.decode("utf-16-be", "surrogatepass")
        else:
            key = code.decode("latin-1")
        mapped = self._mapping.get(key)
        if mapped is None and len(code) == 2:
            mapped = self._mapping.get(code.decode("latin-1"))
        if mapped is not None:
            return mapped
        if len(code) == 1 and self._encoding is not None:
            if isinstance(self._encoding, dict):
                value = self._encoding.get(code[0])
                if isinstance(value, str):
                    return _glyph_name_to_unicode(value)
            elif isinstance(self._encoding, str):
                try:
                    return code.decode(self._encoding)
                except (LookupError, UnicodeDecodeError):
                    pass
        return key if key.isprintable() else ""

    def decode(self, data: bytes) -> Iterator[tuple[bytes, str, float]]:
        step = self.code_length
        for index in range(0, len(data) - step + 1, step):
            code = data[index : index + step]
            yield code, self.unicode(code), self.width(int.from_bytes(code, "big"))


# -- Content stream walking ------------------------------------------------------


@dataclass(slots=True)
class _GraphicsState:
    ctm: AffineTransform = IDENTITY
    line_width: float = 1.0
    font: FontResource | None = None
    font_size: float = 0.0
    char_spacing: float = 0.0
    word_spacing: float = 0.0
    scaling: float = 100.0
    leading: float = 0.0
    rise: float = 0.0

    def clone(self) -> "_GraphicsState":
        return dataclasses.replace(self)


class _ContentWalker:
    """Interprets one page's content stream and drives the listener."""

    def __init__(
        self,
        engine: "PypdfDocumentEngine",
        listener: PageEventListener,
        page_transform: AffineTransform,
    ) -> None:
        self._engine = engine
        self._listener = listener
        self._page = page_transform
        self.state = _GraphicsState()
        self._stack: list[_GraphicsState] = []
        self._tm = IDENTITY
        self._tlm = IDENTITY
        self._active_forms: set[int] = set()

    def walk(self, operations: Iterable[tuple[Sequence[Any], Any]], resources: PageResources) -> None:
        for operands, operator in operations:
            name = operator.decode("latin-1") if isinstance(operator, bytes) else str(operator)
            try:
                self._dispatch(name, operands, resources)
            except (TypeError, ValueError, IndexError, KeyError) as exc:
                LOGGER.debug("Skipping malformed %s operator: %s", name, exc)

    def _dispatch(self, name: str, operands: Sequence[Any], resources: PageResources) -> None:
        state = self.state
        if name == "q":
            self._stack.append(state.clone())
        elif name == "Q":
            if self._stack:
                self.state = self._stack.pop()
        elif name == "cm":
            state.ctm = state.ctm.concatenate(AffineTransform.from_matrix(_floats(operands, 6)))
        elif name == "w":
            state.line_width = _floats(operands, 1)[0]
        elif name == "BT":
            self._tm = self._tlm = IDENTITY
        elif name == "Tf":
            state.font = resources.fonts.get(str(operands[0]))
            state.font_size = _to_float(operands[1])
            if state.font is None:
                LOGGER.debug("Font %s not found in resources", operands[0])
        elif name == "Tc":
            state.char_spacing = _floats(operands, 1)[0]
        elif name == "Tw":
            state.word_spacing = _floats(operands, 1)[0]
        elif name == "Tz":
            state.scaling = _floats(operands, 1)[0]
        elif name == "TL":
            state.leading = _floats(operands, 1)[0]
        elif name == "Ts":
            state.rise = _floats(operands, 1)[0]
        elif name == "Td":
            self._next_line(*_floats(operands, 2))
        elif name == "TD":
            tx, ty = _floats(operands, 2)
            state.leading = -ty
            self._next_line(tx, ty)
        elif name == "Tm":
            self._tm = self._tlm = AffineTransform.from_matrix(_floats(operands, 6))
        elif name == "T*":
            self._next_line(0.0, -state.leading)
        elif name == "Tj":
            self._show(operands[0])
        elif name == "TJ":
            self._show_array(operands[0])
        elif name == "'":
            self._next_line(0.0, -state.leading)
            self._show(operands[0])
        elif name == '"':
            state.word_spacing, state.char_spacing = _floats(operands, 2)
            self._next_line(0.0, -state.leading)
            self._show(operands[2])
        elif name in _PATH_OPERATORS:
            self._listener.on_operator(self._event(name, operands, resources))
        elif name == "Do":
            self._draw(operands, resources)

    def _event(self, name: str, operands: Sequence[Any], resources: PageResources) -> OperatorEvent:
        graphics = GraphicsState(ctm=self.state.ctm.matrix, line_width=self.state.line_width)
        return OperatorEvent(name=name, operands=tuple(operands), graphics=graphics, resources=resources)

    def _next_line(self, tx: float, ty: float) -> None:
        self._tlm = self._tlm.translate(tx, ty)
        self._tm = self._tlm

    def _show_array(self, items: Iterable[Any]) -> None:
        state = self.state
        for item in items:
            if isinstance(item, (str, bytes)):
                self._show(item)
            else:
                adjustment = _to_float(item)
                self._tm = self._tm.translate(-adjustment / 1000 * state.font_size * state.scaling / 100, 0)

    def _show(self, value: Any) -> None:
        state = self.state
        if state.font is None:
            LOGGER.debug("Text shown without a font, skipping")
            return
        decoder = self._engine.decoder_for(state.font)
        if decoder is None:
            return
        horizontal = state.scaling / 100
        for code, text, width_units in decoder.decode(_string_bytes(value)):
            device = (
                self._page.concatenate(state.ctm)
                .concatenate(self._tm)
                .concatenate(AffineTransform(a=state.font_size * horizontal, d=state.font_size, f=state.rise))
            )
            x, y = device.apply(0.0, 0.0)
            end_x, end_y = device.apply(width_units / 1000, 0.0)
            y_scale = math.hypot(device.c, device.d)
            if text:
                self._listener.on_glyph(
                    Glyph(
                        text=text,
                        x=x,
                        y=y,
                        width=math.hypot(end_x - x, end_y - y),
                        height=decoder.height_ratio * y_scale,
                        font=state.font,
                        font_size=state.font_size,
                        x_scale=math.hypot(device.a, device.b),
                        y_scale=y_scale,
                    )
                )
            advance = width_units / 1000 * state.font_size + state.char_spacing
            if code == b" ":
                advance += state.word_spacing
            self._tm = self._tm.translate(advance * horizontal, 0)

    def _draw(self, operands: Sequence[Any], resources: PageResources) -> None:
        name = str(operands[0])
        xobject = resources.xobjects.get(name)
        if isinstance(xobject, FormXObject):
            self._walk_form(xobject, resources)
        elif xobject is not None:
            self._listener.on_operator(self._event("Do", operands, resources))

    def _walk_form(self, form: FormXObject, resources: PageResources) -> None:
        key = id(form)
        if key in self._active_forms:
            LOGGER.warning("Skipping recursive use of form %s", form.name)
            return
        stream = self._engine.form_stream(form)
        if stream is None:
            return
        saved_state, saved_tm, saved_tlm = self.state.clone(), self._tm, self._tlm
        self._active_forms.add(key)
        self.state.ctm = self.state.ctm.concatenate(AffineTransform.from_matrix(form.matrix))
        try:
            operations = ContentStream(stream, self._engine.reader).operations
            self.walk(operations, form.resources or resources)
        finally:
            self._active_forms.discard(key)
            self.state, self._tm, self._tlm = saved_state, saved_tm, saved_tlm


# -- Engine ----------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class PageSummary:
    number: int
    crop_box: CropBox
    rotation: int


class PypdfDocumentEngine(DocumentEngine):
    """Document engine that walks pages with `pypdf`."""

    def __init__(self, reader: PdfReader, *, source: Path | None = None) -> None:
        self.reader = reader
        self.source = source
        self._resources: dict[int, tuple[object, PageResources]] = {}
        self._fonts: dict[int, tuple[object, FontResource]] = {}
        self._decoders: dict[int, _FontDecoder] = {}
        self._xobjects: dict[int, tuple[object, ImageXObject | FormXObject]] = {}
        self._form_streams: dict[int, StreamObject] = {}

    @classmethod
    def load(cls, pdf_path: str | Path, password: str | None = None) -> "PypdfDocumentEngine":
        path = Path(pdf_path)
        if not path.exists() or not path.is_file():
            raise InvalidPDFError(f"PDF file not found: {pdf_path}")

        try:
            raw_bytes = path.read_bytes()
        except OSError as exc:
            raise InvalidPDFError(f"Unable to read PDF file: {pdf_path}. Error: {exc}") from exc

        try:
            reader = PdfReader(io.BytesIO(raw_bytes))
        except PdfReadError as exc:
            raise InvalidPDFError(f"Corrupted or invalid PDF file: {pdf_path}. Error: {exc}") from exc
        except Exception as exc:
            raise InvalidPDFError(f"Unexpected error reading PDF: {pdf_path}. Error: {exc}") from exc

        if reader.is_encrypted:
            if password:
                if reader.decrypt(password) == 0:
                    raise EncryptedPDFError("Failed to decrypt PDF with supplied password.")
            else:
                raise EncryptedPDFError("PDF is encrypted. Supply a password to process this file.")

        if len(reader.pages) == 0:
            raise InvalidPDFError(f"PDF has no pages: {pdf_path}")

        return cls(reader, source=path)

    @property
    def page_count(self) -> int:
        return len(self.reader.pages)

    @property
    def title(self) -> str | None:
        metadata = self.reader.metadata
        if metadata and metadata.title:
            return str(metadata.title)
        return self.source.name if self.source is not None else None

    # ------------------------------------------------------------------ #
    # Pages
    # ------------------------------------------------------------------ #
    def _page_numbers(self, pages: Iterable[int] | None) -> list[int]:
        if pages is None:
            return list(range(1, self.page_count + 1))
        numbers = list(pages)
        for number in numbers:
            if number < 1 or number > self.page_count:
                raise ValueError(f"Page {number} out of range (1-{self.page_count})")
        return numbers

    def page_summary(self, number: int) -> PageSummary:
        page = self.reader.pages[number - 1]
        box = page.cropbox
        crop_box = CropBox(
            left=float(box.left),
            bottom=float(box.bottom),
            width=float(box.width),
            height=float(box.height),
        )
        return PageSummary(number=number, crop_box=crop_box, rotation=int(page.rotation or 0))

    def page_resources(self, number: int) -> PageResources:
        return self.resources_for(self.reader.pages[number - 1].get("/Resources"))

    def run(
        self,
        listener: PageEventListener,
        pages: Iterable[int] | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        numbers = self._page_numbers(pages)
        listener.on_document_begin(self.title)
        for position, number in enumerate(numbers, start=1):
            self._run_page(listener, number)
            if progress_callback:
                progress_callback(position, len(numbers))
        listener.on_document_end()

    def _run_page(self, listener: PageEventListener, number: int) -> None:
        summary = self.page_summary(number)
        page = self.reader.pages[number - 1]
        listener.on_page_begin(number, summary.crop_box, summary.rotation)
        try:
            resources = self.page_resources(number)
            listener.on_resources(resources)
            contents = page.get_contents()
            if contents is None:
                return
            try:
                operations = ContentStream(contents, self.reader).operations
            except Exception as exc:
                LOGGER.warning("Unable to parse content stream of page %s: %s", number, exc)
                return
            context = build_page_context(number, summary.crop_box, summary.rotation)
            _ContentWalker(self, listener, context.transform).walk(operations, resources)
        finally:
            listener.on_page_end()

    # ------------------------------------------------------------------ #
    # Resources
    # ------------------------------------------------------------------ #
    def resources_for(self, resources_obj: object | None) -> PageResources:
        """Build (once per dictionary object) the resource model of *resources_obj*."""

        resolved = _resolve(resources_obj)
        if not isinstance(resolved, DictionaryObject):
            return PageResources()
        cached = self._resources.get(id(resolved))
        if cached is not None:
            return cached[1]
        result = PageResources()
        # Registered before recursing so self-referencing forms terminate.
        self._resources[id(resolved)] = (resolved, result)

        fonts = _resolve(resolved.get("/Font"))
        if isinstance(fonts, DictionaryObject):
            for name, ref in fonts.items():
                font_dict = _resolve(ref)
                if isinstance(font_dict, DictionaryObject):
                    result.fonts[str(name)] = self._font(str(name), font_dict)

        xobjects = _resolve(resolved.get("/XObject"))
        if isinstance(xobjects, DictionaryObject):
            for name, ref in xobjects.items():
                stream = _resolve(ref)
                if isinstance(stream, StreamObject):
                    xobject = self._xobject(str(name), stream)
                    if xobject is not None:
                        result.xobjects[str(name)] = xobject
        return result

    def _font(self, name: str, font_dict: DictionaryObject) -> FontResource:
        cached = self._fonts.get(id(font_dict))
        if cached is not None:
            return cached[1]

        descendant = None
        if _clean_name(font_dict.get("/Subtype")) == "Type0":
            descendants = _resolve(font_dict.get("/DescendantFonts"))
            if isinstance(descendants, ArrayObject) and len(descendants) > 0:
                candidate = _resolve(descendants[0])
                if isinstance(candidate, DictionaryObject):
                    descendant = candidate

        descriptor = _resolve(font_dict.get("/FontDescriptor"))
        if not isinstance(descriptor, DictionaryObject) and descendant is not None:
            descriptor = _resolve(descendant.get("/FontDescriptor"))
        if not isinstance(descriptor, DictionaryObject):
            descriptor = DictionaryObject()

        bbox_obj = _resolve(descriptor.get("/FontBBox"))
        bbox = None
        if isinstance(bbox_obj, ArrayObject) and len(bbox_obj) == 4:
            bbox = tuple(_to_float(_resolve(value)) for value in bbox_obj)

        resource = FontResource(
            name=_clean_name(name) or name,
            base_font=_clean_name(font_dict.get("/BaseFont")),
            subtype=_clean_name(font_dict.get("/Subtype")),
            descendant_subtype=_clean_name(descendant.get("/Subtype")) if descendant is not None else None,
            font_file=next((key[1:] for key in _FONT_FILE_KEYS if key in descriptor), None),
            ascent=_to_float(descriptor.get("/Ascent")),
            descent=_to_float(descriptor.get("/Descent")),
            cap_height=_to_float(descriptor.get("/CapHeight")),
            bbox=bbox,  # type: ignore[arg-type]
            flags=int(_to_float(descriptor.get("/Flags"))),
        )
        self._fonts[id(font_dict)] = (font_dict, resource)
        self._decoders[id(resource)] = _FontDecoder(font_dict, descendant, resource)
        return resource

    def decoder_for(self, font: FontResource) -> _FontDecoder | None:
        return self._decoders.get(id(font))

    def _xobject(self, name: str, stream: StreamObject) -> ImageXObject | FormXObject | None:
        cached = self._xobjects.get(id(stream))
        if cached is not None:
            return cached[1]
        subtype = _clean_name(stream.get("/Subtype"))
        xobject: ImageXObject | FormXObject
        if subtype == "Image":
            xobject = ImageXObject(
                name=_clean_name(name) or name,
                width=int(_to_float(stream.get("/Width"))),
                height=int(_to_float(stream.get("/Height"))),
                loader=functools.partial(self._load_image, _clean_name(name) or name, stream),
            )
            self._xobjects[id(stream)] = (stream, xobject)
        elif subtype == "Form":
            matrix_obj = _resolve(stream.get("/Matrix"))
            matrix = IDENTITY.matrix
            if isinstance(matrix_obj, ArrayObject) and len(matrix_obj) == 6:
                matrix = tuple(_to_float(_resolve(value)) for value in matrix_obj)  # type: ignore[assignment]
            xobject = FormXObject(name=_clean_name(name) or name, matrix=matrix)
            self._xobjects[id(stream)] = (stream, xobject)
            self._form_streams[id(xobject)] = stream
            if "/Resources" in stream:
                xobject.resources = self.resources_for(stream.get("/Resources"))
        else:
            return None
        return xobject

    def form_stream(self, form: FormXObject) -> StreamObject | None:
        return self._form_streams.get(id(form))

    @staticmethod
    def _load_image(name: str, stream: StreamObject) -> ResolvedImage:
        image = stream.decode_as_image()
        filters = _resolve(stream.get("/Filter"))
        if isinstance(filters, ArrayObject):
            filter_names = {_clean_name(_resolve(item)) for item in filters}
        else:
            filter_names = {_clean_name(filters)}
        native = "jpeg" if "DCTDecode" in filter_names else "png"
        return ResolvedImage(
            image=image,
            width=image.width,
            height=image.height,
            format=native,
            bits_per_pixel=bits_per_pixel(image.mode),
            name=name,
        )
