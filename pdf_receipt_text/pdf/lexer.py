"""Byte-level tokenizer for PDF content streams and CMap programs.

Produces a typed token stream directly from raw bytes so string
offsets never depend on a text decoding of the buffer. Literal strings
are read with an escape-aware parenthesis depth counter, comments are
skipped and inline image data (``BI ... ID ... EI``) is stepped over.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Kinds of tokens produced by :func:`tokenize`."""

    LITERAL_STRING = auto()
    HEX_STRING = auto()
    NUMBER = auto()
    NAME = auto()
    KEYWORD = auto()
    ARRAY_START = auto()
    ARRAY_END = auto()
    DICT_START = auto()
    DICT_END = auto()


@dataclass(frozen=True)
class Token:
    """A single lexical token.

    ``value`` depends on ``type``: resolved ``bytes`` for literal
    strings, upper-case hex digits (``str``) for hex strings, ``float``
    for numbers, ``str`` for names and keywords, ``None`` for brackets.
    """

    type: TokenType
    value: bytes | str | float | None
    offset: int


_WHITESPACE = frozenset(b"\x00\t\n\x0c\r ")
_DELIMITERS = frozenset(b"()<>[]{}/%")
_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")

_NUMBER_RE = re.compile(rb"[+-]?(?:\d+\.?\d*|\.\d+)")
_INLINE_IMAGE_END_RE = re.compile(rb"[\x00\t\n\x0c\r ]EI(?=[\x00\t\n\x0c\r ]|$)")

_SIMPLE_ESCAPES = {
    ord("n"): 0x0A,
    ord("r"): 0x0D,
    ord("t"): 0x09,
    ord("b"): 0x08,
    ord("f"): 0x0C,
    ord("("): 0x28,
    ord(")"): 0x29,
    ord("\\"): 0x5C,
}


def tokenize(data: bytes) -> Iterator[Token]:
    """Yield the tokens of a content stream or CMap program.

    Args:
        data: Raw (already decompressed) stream bytes.

    Yields:
        Tokens in byte order.
    """
    pos = 0
    length = len(data)

    while pos < length:
        byte = data[pos]

        if byte in _WHITESPACE:
            pos += 1
        elif byte == 0x25:  # %
            pos = _skip_comment(data, pos)
        elif byte == 0x28:  # (
            value, end = read_literal_string(data, pos)
            yield Token(TokenType.LITERAL_STRING, value, pos)
            pos = end
        elif byte == 0x3C:  # <
            if data[pos + 1 : pos + 2] == b"<":
                yield Token(TokenType.DICT_START, None, pos)
                pos += 2
            else:
                digits, end = _read_hex_string(data, pos)
                yield Token(TokenType.HEX_STRING, digits, pos)
                pos = end
        elif byte == 0x3E:  # >
            if data[pos + 1 : pos + 2] == b">":
                yield Token(TokenType.DICT_END, None, pos)
                pos += 2
            else:
                pos += 1
        elif byte == 0x5B:  # [
            yield Token(TokenType.ARRAY_START, None, pos)
            pos += 1
        elif byte == 0x5D:  # ]
            yield Token(TokenType.ARRAY_END, None, pos)
            pos += 1
        elif byte == 0x2F:  # /
            name, end = _read_name(data, pos)
            yield Token(TokenType.NAME, name, pos)
            pos = end
        elif byte in _DELIMITERS:
            # stray ')' or PostScript braces
            pos += 1
        else:
            end = _regular_run_end(data, pos)
            word = data[pos:end]
            if _NUMBER_RE.fullmatch(word):
                yield Token(TokenType.NUMBER, float(word), pos)
                pos = end
                continue
            keyword = word.decode("latin-1")
            yield Token(TokenType.KEYWORD, keyword, pos)
            pos = _skip_inline_image(data, end) if keyword == "ID" else end


def read_literal_string(data: bytes, pos: int) -> tuple[bytes, int]:
    """Read a parenthesized literal string starting at ``pos``.

    Balanced unescaped parentheses nest and are kept in the value.
    An unterminated string runs to the end of the buffer.

    Args:
        data: Buffer containing the string.
        pos: Offset of the opening parenthesis.

    Returns:
        Tuple of (resolved string bytes, offset after the closing parenthesis).
    """
    out = bytearray()
    depth = 1
    i = pos + 1
    length = len(data)

    while i < length:
        c = data[i]
        if c == 0x5C:  # backslash
            i += 1
            if i >= length:
                break
            esc = data[i]
            if esc in _SIMPLE_ESCAPES:
                out.append(_SIMPLE_ESCAPES[esc])
                i += 1
            elif 0x30 <= esc <= 0x37:
                value = 0
                digits = 0
                while digits < 3 and i < length and 0x30 <= data[i] <= 0x37:
                    value = (value << 3) + (data[i] - 0x30)
                    i += 1
                    digits += 1
                out.append(value & 0xFF)
            elif esc == 0x0D:
                i += 1
                if i < length and data[i] == 0x0A:
                    i += 1
            elif esc == 0x0A:
                i += 1
            else:
                out.append(esc)
                i += 1
            continue

        if c == 0x28:
            depth += 1
        elif c == 0x29:
            depth -= 1
            if depth == 0:
                return bytes(out), i + 1
        out.append(c)
        i += 1

    return bytes(out), length


def _read_hex_string(data: bytes, pos: int) -> tuple[str, int]:
    end = data.find(b">", pos + 1)
    if end == -1:
        end = len(data)
    digits = bytes(b for b in data[pos + 1 : end] if b in _HEX_DIGITS)
    return digits.decode("ascii").upper(), min(end + 1, len(data))


def _read_name(data: bytes, pos: int) -> tuple[str, int]:
    end = _regular_run_end(data, pos + 1)
    raw = data[pos + 1 : end]
    if b"#" in raw:
        raw = re.sub(rb"#([0-9A-Fa-f]{2})", lambda m: bytes([int(m.group(1), 16)]), raw)
    return raw.decode("latin-1"), end


def _regular_run_end(data: bytes, pos: int) -> int:
    length = len(data)
    while pos < length and data[pos] not in _WHITESPACE and data[pos] not in _DELIMITERS:
        pos += 1
    return pos


def _skip_comment(data: bytes, pos: int) -> int:
    length = len(data)
    while pos < length and data[pos] not in (0x0A, 0x0D):
        pos += 1
    return pos


def _skip_inline_image(data: bytes, pos: int) -> int:
    match = _INLINE_IMAGE_END_RE.search(data, pos)
    return match.end() if match else len(data)
