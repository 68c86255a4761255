"""Text extraction from digital PDF receipts.

Wires the stream scanner, Flate decompression, ToUnicode map builder
and text assembler into one call that returns OCR-style text lines.
Documents that carry embedded text (emailed or generated receipts)
produce lines; scanned, image-only PDFs report ``no_text_content``.
Failures are returned as results and never raised.
"""

import re
from dataclasses import asdict, dataclass
from enum import StrEnum
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

import anyio
import anyio.to_thread

from pdf_receipt_text.utils.config import ExtractionConfig
from pdf_receipt_text.utils.logger import get_logger

from .cmap import build_font_registry
from .content import TextAssembler, harvest_readable_strings, has_text_region
from .decompress import DecodeFailure, inflate
from .scanner import FilterKind, StreamRecord, scan_streams

logger = get_logger(__name__)

_PAGE_RE = re.compile(rb"/Type\s*/Page(?!s)")


class ErrorCode(StrEnum):
    """Reasons an extraction can fail."""

    NO_TEXT_CONTENT = "no_text_content"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of extracting text from one document.

    Attributes:
        success: Whether any text lines were found.
        text: Extracted lines joined with newlines.
        lines: Trimmed, non-empty lines in document order.
        page_count: Number of page objects (at least 1 once parsed).
        error: Failure reason when ``success`` is false.
        message: Underlying error message for ``unknown`` failures.
    """

    success: bool
    text: str
    lines: tuple[str, ...]
    page_count: int
    error: ErrorCode | None = None
    message: str | None = None

    @classmethod
    def failure(
        cls, error: ErrorCode, page_count: int = 0, message: str | None = None
    ) -> "ExtractionResult":
        """Build a failed result with no text."""
        return cls(
            success=False,
            text="",
            lines=(),
            page_count=page_count,
            error=error,
            message=message,
        )

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-serializable representation."""
        data = asdict(self)
        data["lines"] = list(self.lines)
        data["error"] = self.error.value if self.error else None
        return data


def count_pages(buffer: bytes, extra_sources: list[bytes] | None = None) -> int:
    """Count ``/Type /Page`` markers that are not ``/Type /Pages``.

    Args:
        buffer: Whole document bytes.
        extra_sources: Decompressed object streams, which may hold page
            dictionaries in newer files.

    Returns:
        Page count, never below 1.
    """
    count = len(_PAGE_RE.findall(buffer))
    for source in extra_sources or []:
        count += len(_PAGE_RE.findall(source))
    return max(count, 1)


def _decode_bodies(buffer: bytes, records: list[StreamRecord]) -> list[bytes | None]:
    bodies: list[bytes | None] = []
    for record in records:
        raw = record.raw(buffer)
        if record.filter_kind is not FilterKind.FLATE:
            bodies.append(raw)
            continue
        outcome = inflate(raw)
        if isinstance(outcome, DecodeFailure):
            logger.debug(
                "Dropping undecodable stream at offset %d (%s)",
                record.start,
                outcome.reason,
            )
            bodies.append(None)
        else:
            bodies.append(outcome.data)
    return bodies


def _split_lines(text: str) -> tuple[str, ...]:
    return tuple(line.strip() for line in text.split("\n") if line.strip())


def extract_text_from_bytes(
    data: bytes, config: ExtractionConfig | None = None
) -> ExtractionResult:
    """Extract text lines from an in-memory PDF.

    Args:
        data: Whole document bytes.
        config: Extraction settings. Defaults to :class:`ExtractionConfig`.

    Returns:
        Extraction result. Never raises.
    """
    config = config or ExtractionConfig()
    try:
        records = scan_streams(data)
        bodies = _decode_bodies(data, records)
        registry = build_font_registry(data, records, bodies)
        assembler = TextAssembler(
            registry,
            kerning_space_threshold=config.kerning_space_threshold,
            font_scoped=config.font_scoped_unicode,
            winansi_fallback=config.winansi_fallback,
        )

        regions: list[str] = []
        for body in bodies:
            if body is not None and has_text_region(body):
                regions.extend(assembler.assemble(body))
        lines = _split_lines("\n".join(regions))

        if not lines and config.readable_string_fallback:
            harvested: list[str] = []
            for body in bodies:
                if body is not None:
                    harvested.extend(harvest_readable_strings(body))
            lines = _split_lines("\n".join(harvested))
            if lines:
                logger.info("Recovered %d lines from readable strings", len(lines))

        # unfiltered object streams are already counted in the raw buffer
        object_streams = [
            body
            for record, body in zip(records, bodies)
            if body is not None
            and record.filter_kind is FilterKind.FLATE
            and record.is_object_stream(data)
        ]
        page_count = count_pages(data, object_streams)
    except Exception as exc:
        logger.error("PDF extraction error: %s", exc)
        return ExtractionResult.failure(ErrorCode.UNKNOWN, message=str(exc))

    if not lines:
        logger.info("No text content found in %d streams", len(records))
        return ExtractionResult.failure(ErrorCode.NO_TEXT_CONTENT, page_count)

    logger.info("Extracted %d lines from %d pages", len(lines), page_count)
    return ExtractionResult(
        success=True,
        text="\n".join(lines),
        lines=lines,
        page_count=page_count,
    )


def resolve_uri(uri: str | Path) -> Path:
    """Turn a filesystem path or ``file://`` URI into a path."""
    if isinstance(uri, Path):
        return uri
    parsed = urlparse(uri)
    if parsed.scheme == "file":
        return Path(url2pathname(parsed.path))
    return Path(uri)


async def extract_text(
    uri: str | Path, config: ExtractionConfig | None = None
) -> ExtractionResult:
    """Read a PDF and extract its text lines.

    The file read is the only await; parsing runs on a worker thread so
    event-loop callers stay responsive.

    Args:
        uri: Filesystem path or ``file://`` URI of the document.
        config: Extraction settings.

    Returns:
        Extraction result. I/O failures are reported as ``unknown``.
    """
    try:
        data = await anyio.Path(resolve_uri(uri)).read_bytes()
    except Exception as exc:
        logger.error("Could not read %s: %s", uri, exc)
        return ExtractionResult.failure(ErrorCode.UNKNOWN, message=str(exc))

    return await anyio.to_thread.run_sync(extract_text_from_bytes, data, config)


async def has_text(uri: str | Path, config: ExtractionConfig | None = None) -> bool:
    """Whether the PDF at ``uri`` has extractable text."""
    result = await extract_text(uri, config)
    return result.success and len(result.text) > 0
