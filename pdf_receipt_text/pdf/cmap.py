"""ToUnicode table discovery and glyph-code to Unicode mapping.

Every ToUnicode CMap in the document is parsed and merged into one
flattened :class:`UnicodeMap` (later tables overwrite earlier codes).
Fonts reusing a glyph code for different characters therefore collide
in the merged map. :class:`FontRegistry` also keeps each font
resource's own table so callers can opt into font-scoped lookups.
"""

import re
from dataclasses import dataclass, field

from pdf_receipt_text.utils.logger import get_logger

from .lexer import Token, TokenType, tokenize
from .scanner import StreamRecord, find_object

logger = get_logger(__name__)

MAX_CODE = 0xFFFF

_TOUNICODE_REF_RE = re.compile(rb"/ToUnicode\s+(\d+)\s+\d+\s+R")
_FONT_DICT_RE = re.compile(rb"/Font\s*<<(.*?)>>", re.DOTALL)
_FONT_DICT_REF_RE = re.compile(rb"/Font\s+(\d+)\s+\d+\s+R")
_DICT_BODY_RE = re.compile(rb"<<(.*?)>>", re.DOTALL)
_FONT_ENTRY_RE = re.compile(rb"/([^\s/<>\[\]()]+)\s+(\d+)\s+\d+\s+R")
_CMAP_MARKERS = (b"beginbfchar", b"beginbfrange")


def _is_printable_code(code: int) -> bool:
    if code in (0x09, 0x0A, 0x0D):
        return True
    if code < 0x20 or 0x7F <= code <= 0x9F:
        return False
    return not 0xD800 <= code <= 0xDFFF


def _fallback_char(code: int, winansi: bool = False) -> str:
    if _is_printable_code(code):
        return chr(code)
    if winansi and 0x80 <= code <= 0x9F:
        # WinAnsi puts typographic characters (euro, quotes, dashes) here
        try:
            return bytes([code]).decode("cp1252")
        except UnicodeDecodeError:
            return ""
    return ""


def _split_destination(digits: str) -> tuple[list[int], int | None]:
    if len(digits) % 2:
        digits += "0"
    usable = len(digits) - len(digits) % 4
    units = [int(digits[i : i + 4], 16) for i in range(0, usable, 4)]
    extra = int(digits[usable:], 16) if usable < len(digits) else None
    return units, extra


def _destination_text(units: list[int], extra: int | None) -> str:
    raw = b"".join(unit.to_bytes(2, "big") for unit in units)
    text = raw.decode("utf-16-be", errors="replace")
    if extra is not None:
        text += chr(extra)
    return text


def hex_to_text(digits: str) -> str:
    """Decode a hex destination string as UTF-16BE code units.

    When the digit count is not a multiple of four the final two digits
    are read as one extra byte.

    Args:
        digits: Hex digits without angle brackets.

    Returns:
        Decoded text.
    """
    return _destination_text(*_split_destination(digits))


def hex_to_bytes(digits: str) -> bytes:
    """Convert hex digits to bytes, padding an odd final digit with zero."""
    if len(digits) % 2:
        digits += "0"
    return bytes.fromhex(digits)


@dataclass
class UnicodeMap:
    """Glyph code to Unicode text mapping.

    Attributes:
        entries: Code to text mapping.
        code_width: Byte width of source codes seen in the tables (1 or 2).
    """

    entries: dict[int, str] = field(default_factory=dict)
    code_width: int = 1

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, code: object) -> bool:
        return code in self.entries

    def update(self, other: "UnicodeMap") -> None:
        """Merge ``other`` into this map; its entries win on conflict."""
        self.entries.update(other.entries)
        self.code_width = max(self.code_width, other.code_width)

    def lookup(self, code: int, winansi: bool = False) -> str:
        """Return the text for ``code``.

        Unmapped codes fall back to their own character when printable
        and are dropped otherwise. With ``winansi`` the C1 range
        0x80-0x9F is read as cp1252 instead of dropped.
        """
        mapped = self.entries.get(code)
        if mapped is not None:
            return mapped
        return _fallback_char(code, winansi)

    def decode(self, data: bytes, width: int = 1, winansi: bool = False) -> str:
        """Decode a byte string as a sequence of ``width``-byte codes.

        A trailing byte that does not fill a whole code is looked up on
        its own.
        """
        if width == 1:
            return "".join(self.lookup(code, winansi) for code in data)
        parts = []
        for i in range(0, len(data), width):
            code = int.from_bytes(data[i : i + width], "big")
            parts.append(self.lookup(code, winansi))
        return "".join(parts)


@dataclass
class FontRegistry:
    """Merged glyph map plus the per-font tables behind it.

    Attributes:
        merged: All tables flattened, last-write-wins.
        fonts: Font resource name (e.g. ``F1``) to that font's own table.
    """

    merged: UnicodeMap = field(default_factory=UnicodeMap)
    fonts: dict[str, UnicodeMap] = field(default_factory=dict)

    def for_font(self, name: str | None) -> UnicodeMap:
        """Return the table of font ``name``, or the merged map when unknown."""
        if name is None:
            return self.merged
        return self.fonts.get(name, self.merged)


def _source_code(token: Token) -> tuple[int, int] | None:
    if token.type is not TokenType.HEX_STRING:
        return None
    digits = token.value or "0"
    return int(digits, 16), max(1, (len(digits) + 1) // 2)


def _apply_bfchar(umap: UnicodeMap, operands: list[object]) -> None:
    source, destination = operands
    if not isinstance(source, Token) or not isinstance(destination, Token):
        return
    parsed = _source_code(source)
    if parsed is None or destination.type is not TokenType.HEX_STRING:
        return
    code, width = parsed
    if code > MAX_CODE:
        return
    umap.entries[code] = hex_to_text(destination.value)
    umap.code_width = max(umap.code_width, width)


def _apply_bfrange(umap: UnicodeMap, operands: list[object]) -> None:
    low_token, high_token, destination = operands
    if not isinstance(low_token, Token) or not isinstance(high_token, Token):
        return
    low = _source_code(low_token)
    high = _source_code(high_token)
    if low is None or high is None:
        return
    low_code, width = low
    high_code = min(high[0], MAX_CODE)
    if low_code > high_code:
        return
    umap.code_width = max(umap.code_width, width)

    if isinstance(destination, list):
        for offset, code in enumerate(range(low_code, high_code + 1)):
            if offset >= len(destination):
                break
            umap.entries[code] = hex_to_text(destination[offset])
        return

    if not isinstance(destination, Token) or destination.type is not TokenType.HEX_STRING:
        return
    units, extra = _split_destination(destination.value)
    if not units and extra is None:
        return
    for offset, code in enumerate(range(low_code, high_code + 1)):
        if extra is not None:
            text = _destination_text(units, (extra + offset) & 0xFF)
        else:
            stepped = units[:-1] + [(units[-1] + offset) & 0xFFFF]
            text = _destination_text(stepped, None)
        umap.entries[code] = text


def parse_cmap(data: bytes) -> UnicodeMap:
    """Parse the ``bfchar`` and ``bfrange`` sections of a ToUnicode CMap.

    Args:
        data: Decompressed CMap program.

    Returns:
        Mapping built from the sections, in program order.
    """
    umap = UnicodeMap()
    section: str | None = None
    operands: list[object] = []
    array: list[str] | None = None

    for token in tokenize(data):
        if token.type is TokenType.KEYWORD:
            if token.value in ("beginbfchar", "beginbfrange"):
                section = token.value
            elif token.value in ("endbfchar", "endbfrange"):
                section = None
            operands = []
            array = None
            continue
        if section is None:
            continue

        if token.type is TokenType.ARRAY_START:
            array = []
            continue
        if token.type is TokenType.ARRAY_END:
            operands.append(array or [])
            array = None
        elif array is not None:
            if token.type is TokenType.HEX_STRING:
                array.append(token.value)
            continue
        else:
            operands.append(token)

        if section == "beginbfchar" and len(operands) == 2:
            _apply_bfchar(umap, operands)
            operands = []
        elif section == "beginbfrange" and len(operands) == 3:
            _apply_bfrange(umap, operands)
            operands = []

    return umap


def _has_cmap_sections(body: bytes) -> bool:
    return any(marker in body for marker in _CMAP_MARKERS)


def _font_resources(buffer: bytes, sources: list[bytes]) -> dict[str, int]:
    """Map font resource names to font object numbers."""
    resources: dict[str, int] = {}
    for source in sources:
        blocks = [m.group(1) for m in _FONT_DICT_RE.finditer(source)]
        for ref in _FONT_DICT_REF_RE.finditer(source):
            located = find_object(buffer, int(ref.group(1)))
            if located is None:
                continue
            inner = _DICT_BODY_RE.search(buffer, located[0], located[1])
            if inner is not None:
                blocks.append(inner.group(1))
        for block in blocks:
            for entry in _FONT_ENTRY_RE.finditer(block):
                resources[entry.group(1).decode("latin-1")] = int(entry.group(2))
    return resources


def build_font_registry(
    buffer: bytes,
    records: list[StreamRecord],
    bodies: list[bytes | None],
) -> FontRegistry:
    """Discover, parse and merge every ToUnicode table in the document.

    Tables referenced through ``/ToUnicode N G R`` (in the raw buffer or
    in decompressed object streams) are merged first, in order of first
    reference; streams that contain CMap sections without being
    referenced follow in stream order. Each table is parsed once.

    Args:
        buffer: Whole document bytes.
        records: Streams found by the scanner.
        bodies: Decoded body of each record, ``None`` when undecodable.

    Returns:
        Registry holding the merged map and the per-font tables.
    """
    sources = [buffer]
    sources.extend(
        body
        for record, body in zip(records, bodies)
        if body is not None and record.is_object_stream(buffer)
    )

    by_object: dict[int, int] = {}
    for index, record in enumerate(records):
        if record.object_id is not None:
            by_object[record.object_id] = index

    referenced: list[int] = []
    for source in sources:
        for ref in _TOUNICODE_REF_RE.finditer(source):
            number = int(ref.group(1))
            if number not in referenced:
                referenced.append(number)

    tables: dict[int, UnicodeMap] = {}
    order: list[int] = []
    for number in referenced:
        index = by_object.get(number)
        if index is None or bodies[index] is None:
            logger.debug("ToUnicode object %d not resolved", number)
            continue
        tables[number] = parse_cmap(bodies[index])
        order.append(index)

    inline: list[UnicodeMap] = []
    for index, body in enumerate(bodies):
        if index in order or body is None or not _has_cmap_sections(body):
            continue
        inline.append(parse_cmap(body))

    registry = FontRegistry()
    for table in [tables[n] for n in referenced if n in tables] + inline:
        registry.merged.update(table)

    for name, font_number in _font_resources(buffer, sources).items():
        located = find_object(buffer, font_number)
        if located is None:
            continue
        ref = _TOUNICODE_REF_RE.search(buffer, located[0], located[1])
        if ref is not None and int(ref.group(1)) in tables:
            registry.fonts[name] = tables[int(ref.group(1))]

    logger.debug(
        "Merged %d ToUnicode tables into %d codes",
        len(tables) + len(inline),
        len(registry.merged),
    )
    return registry
