"""Text assembly from PDF content streams.

Walks the ``BT ... ET`` text regions of a content stream and turns the
text-showing instructions inside them into strings:

- ``(string) Tj`` literal show, decoded through the glyph map;
- ``<hex> Tj`` hex show, decoded through the glyph map or, when there
  is none, as UTF-16BE with a printable-ASCII fallback;
- ``[...] TJ`` array show, where large negative spacing adjustments
  stand in for the space between words;
- ``(string) '`` and ``aw ac (string) "`` next-line shows, which start
  a new line inside the region.

Regions yield one string each; other fragments inside a region are
joined without separators.
"""

import re

from pdf_receipt_text.utils.logger import get_logger

from .cmap import FontRegistry, UnicodeMap, hex_to_bytes
from .lexer import Token, TokenType, tokenize

logger = get_logger(__name__)

DEFAULT_KERNING_SPACE_THRESHOLD = -100.0

_REGULAR = rb"[^\x00\t\n\x0c\r ()<>\[\]{}/%]"
_TEXT_REGION_RE = re.compile(rb"(?<!" + _REGULAR + rb")BT(?!" + _REGULAR + rb")")
_READABLE_STRING_RE = re.compile(rb"\(([A-Za-z0-9\s.,\-$%@#!?:;'\"]+)\)")
_ALLOWED_CONTROLS = frozenset("\t\n\r")
# move to the next line, then show the last operand
_NEXT_LINE_SHOWS = frozenset(("'", "\""))


def has_text_region(body: bytes) -> bool:
    """Whether a stream body contains a ``BT`` text-object operator."""
    return _TEXT_REGION_RE.search(body) is not None


def decode_hex_without_map(digits: str) -> str:
    """Decode a hex show string when the document has no glyph map.

    UTF-16BE is tried first and rejected when it cannot be decoded or
    yields control characters other than tab, LF and CR. The fallback
    reads one byte per two digits, keeping printable ASCII and those
    three whitespace controls only.

    Args:
        digits: Hex digits without angle brackets.

    Returns:
        Decoded text.
    """
    data = hex_to_bytes(digits)
    even = data[: len(data) - len(data) % 2]
    try:
        text = even.decode("utf-16-be")
    except UnicodeDecodeError:
        text = None
    if text is not None:
        if len(data) % 2:
            text += chr(data[-1])
        if not any(ord(ch) < 0x20 and ch not in _ALLOWED_CONTROLS for ch in text):
            return text

    return "".join(chr(b) for b in data if 0x20 <= b <= 0x7E or b in (0x09, 0x0A, 0x0D))


def harvest_readable_strings(body: bytes) -> list[str]:
    """Collect parenthesized runs of plain characters from a stream body.

    Used as a last resort for documents whose text regions decode to
    nothing. Only strings longer than two characters are kept.
    """
    found = []
    for match in _READABLE_STRING_RE.finditer(body):
        if len(match.group(1)) > 2:
            found.append(match.group(1).decode("latin-1"))
    return found


class TextAssembler:
    """Assembles the text regions of content streams into strings.

    Args:
        registry: Glyph maps discovered in the document.
        kerning_space_threshold: TJ adjustments below this value insert
            a word space.
        font_scoped: Look codes up in the map of the font selected by
            ``Tf`` rather than the merged map.
        winansi_fallback: Read unmapped codes 0x80-0x9F as cp1252.
    """

    def __init__(
        self,
        registry: FontRegistry | None = None,
        kerning_space_threshold: float = DEFAULT_KERNING_SPACE_THRESHOLD,
        font_scoped: bool = False,
        winansi_fallback: bool = False,
    ) -> None:
        self.registry = registry or FontRegistry()
        self.kerning_space_threshold = kerning_space_threshold
        self.font_scoped = font_scoped
        self.winansi_fallback = winansi_fallback

    def assemble(self, content: bytes) -> list[str]:
        """Extract one string per ``BT ... ET`` region of a content stream.

        Args:
            content: Decompressed content stream.

        Returns:
            Region strings in byte order. A region left open at the end
            of the stream is discarded.
        """
        regions: list[str] = []
        parts: list[str] = []
        in_region = False
        font: str | None = None
        operands: list[object] = []
        containers: list[list[object]] = []

        for token in tokenize(content):
            kind = token.type
            if kind in (TokenType.ARRAY_START, TokenType.DICT_START):
                containers.append([])
                continue
            if kind in (TokenType.ARRAY_END, TokenType.DICT_END):
                closed = containers.pop() if containers else []
                (containers[-1] if containers else operands).append(closed)
                continue
            if containers:
                containers[-1].append(token)
                continue
            if kind is not TokenType.KEYWORD:
                operands.append(token)
                continue

            operator = token.value
            if operator == "BT":
                if not in_region:
                    parts = []
                in_region = True
            elif operator == "ET":
                if in_region:
                    regions.append("".join(parts))
                in_region = False
            elif operator == "Tf":
                font = self._selected_font(operands, font)
            elif in_region and operator == "Tj" and operands:
                parts.append(self._show_string(operands[-1], font))
            elif in_region and operator in _NEXT_LINE_SHOWS and operands:
                if parts:
                    parts.append("\n")
                parts.append(self._show_string(operands[-1], font))
            elif in_region and operator == "TJ" and operands:
                parts.append(self._show_array(operands[-1], font))
            operands = []

        return regions

    def _selected_font(self, operands: list[object], current: str | None) -> str | None:
        if len(operands) >= 2:
            name = operands[-2]
            if isinstance(name, Token) and name.type is TokenType.NAME:
                return name.value
        return current

    def _map_for(self, font: str | None) -> UnicodeMap:
        if self.font_scoped:
            return self.registry.for_font(font)
        return self.registry.merged

    def _show_string(self, operand: object, font: str | None) -> str:
        if not isinstance(operand, Token):
            return ""
        umap = self._map_for(font)
        if operand.type is TokenType.LITERAL_STRING:
            return umap.decode(operand.value, winansi=self.winansi_fallback)
        if operand.type is TokenType.HEX_STRING:
            if not len(umap):
                return decode_hex_without_map(operand.value)
            return umap.decode(
                hex_to_bytes(operand.value), umap.code_width, self.winansi_fallback
            )
        return ""

    def _show_array(self, operand: object, font: str | None) -> str:
        if not isinstance(operand, list):
            return ""
        text = ""
        for element in operand:
            if isinstance(element, Token) and element.type is TokenType.NUMBER:
                if (
                    element.value < self.kerning_space_threshold
                    and text
                    and not text.endswith(" ")
                ):
                    text += " "
                continue
            text += self._show_string(element, font)
        return text
