"""Stream discovery inside a raw PDF byte buffer.

Locates ``stream ... endstream`` bodies and classifies their filter
declarations without resolving the cross-reference table. All offsets
are computed directly on the byte buffer.
"""

import re
from dataclasses import dataclass
from enum import Enum

from pdf_receipt_text.utils.logger import get_logger

logger = get_logger(__name__)

# the keyword must close a dictionary so "stream" inside strings is ignored
_STREAM_RE = re.compile(rb">>\s*(stream)(?![A-Za-z])")
_ENDSTREAM = b"endstream"
_OBJ_RE = re.compile(rb"(?<!\d)(\d+)\s+(\d+)\s+obj\b")
_ENDOBJ = b"endobj"
_FLATE_FILTER_RE = re.compile(
    rb"/Filter\s*(?:/(?:FlateDecode|Fl)(?![A-Za-z0-9])|\[\s*/(?:FlateDecode|Fl)\s*\])"
)
_ANY_FILTER_RE = re.compile(rb"/Filter(?![A-Za-z0-9])")
_OBJECT_STREAM_RE = re.compile(rb"/Type\s*/ObjStm\b")


class FilterKind(Enum):
    """Compression filter declared for a stream."""

    NONE = "none"
    FLATE = "flate"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class StreamRecord:
    """Location of one stream body within the document buffer.

    Attributes:
        object_id: Number of the enclosing indirect object, when known.
        filter_kind: Classified compression filter.
        start: Offset of the first body byte.
        end: Offset one past the last body byte.
        header_start: Offset where the stream dictionary text begins.
        header_end: Offset of the ``stream`` keyword.
    """

    object_id: int | None
    filter_kind: FilterKind
    start: int
    end: int
    header_start: int
    header_end: int

    def raw(self, buffer: bytes) -> bytes:
        """Return the undecoded body bytes."""
        return buffer[self.start : self.end]

    def header(self, buffer: bytes) -> bytes:
        """Return the dictionary text preceding the ``stream`` keyword."""
        return buffer[self.header_start : self.header_end]

    def is_object_stream(self, buffer: bytes) -> bool:
        """Whether the stream is a compressed object stream (``/Type /ObjStm``)."""
        return _OBJECT_STREAM_RE.search(self.header(buffer)) is not None


def classify_filter(header: bytes) -> FilterKind:
    """Classify the ``/Filter`` entry of a stream dictionary.

    Flate is recognised as ``/FlateDecode`` or ``/Fl``, bare or as a
    single-element array. Any other declared filter is UNKNOWN.

    Args:
        header: Stream dictionary text.

    Returns:
        The filter kind.
    """
    if _FLATE_FILTER_RE.search(header):
        return FilterKind.FLATE
    if _ANY_FILTER_RE.search(header):
        return FilterKind.UNKNOWN
    return FilterKind.NONE


def scan_streams(buffer: bytes) -> list[StreamRecord]:
    """Find every complete stream body in document order.

    Only a ``stream`` keyword that follows the ``>>`` closing a stream
    dictionary opens a body.
    The body starts after one optional CR and one optional LF that follow
    the ``stream`` keyword, and ends before one optional LF and one
    optional CR that precede ``endstream``. A stream without a closing
    ``endstream`` is skipped.

    Args:
        buffer: Whole document bytes.

    Returns:
        Discovered stream records.
    """
    records: list[StreamRecord] = []
    pos = 0
    prev_end = 0

    while True:
        keyword = _STREAM_RE.search(buffer, pos)
        if keyword is None:
            break

        start = keyword.end()
        if buffer[start : start + 1] == b"\r":
            start += 1
        if buffer[start : start + 1] == b"\n":
            start += 1

        close = buffer.find(_ENDSTREAM, start)
        if close == -1:
            logger.debug("Unterminated stream at offset %d skipped", keyword.start(1))
            break

        end = close
        if end > start and buffer[end - 1 : end] == b"\n":
            end -= 1
        if end > start and buffer[end - 1 : end] == b"\r":
            end -= 1

        object_id = None
        header_start = prev_end
        for obj in _OBJ_RE.finditer(buffer, prev_end, keyword.start(1)):
            object_id = int(obj.group(1))
            header_start = obj.end()

        header = buffer[header_start : keyword.start(1)]
        records.append(
            StreamRecord(
                object_id=object_id,
                filter_kind=classify_filter(header),
                start=start,
                end=end,
                header_start=header_start,
                header_end=keyword.start(1),
            )
        )

        pos = close + len(_ENDSTREAM)
        prev_end = pos

    logger.debug("Found %d streams", len(records))
    return records


def find_object(buffer: bytes, number: int) -> tuple[int, int] | None:
    """Locate the body of indirect object ``number``.

    When the object is defined more than once (incremental updates), the
    last definition wins.

    Args:
        buffer: Whole document bytes.
        number: Object number to resolve.

    Returns:
        ``(start, end)`` of the text between ``obj`` and ``endobj``, or
        ``None`` when no definition exists.
    """
    pattern = re.compile(rb"(?<!\d)" + str(number).encode() + rb"\s+\d+\s+obj\b")
    last = None
    for match in pattern.finditer(buffer):
        last = match
    if last is None:
        return None

    end = buffer.find(_ENDOBJ, last.end())
    if end == -1:
        end = len(buffer)
    return last.end(), end
