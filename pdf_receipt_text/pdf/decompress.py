"""Best-effort Flate decompression for PDF streams.

The declared filter name does not say whether the producer wrapped the
deflate data in a zlib header, so two attempts are made in order:
zlib-wrapped, then raw deflate. Each attempt reports a tagged outcome
instead of raising.
"""

import zlib
from collections.abc import Callable
from dataclasses import dataclass

from pdf_receipt_text.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Decoded:
    """Successful decompression."""

    data: bytes
    method: str


@dataclass(frozen=True)
class DecodeFailure:
    """Failed decompression with the reason from the last attempt."""

    reason: str


DecodeOutcome = Decoded | DecodeFailure


def _inflate_zlib(raw: bytes) -> DecodeOutcome:
    try:
        return Decoded(zlib.decompress(raw), "zlib")
    except zlib.error as exc:
        return DecodeFailure(f"zlib: {exc}")


def _inflate_raw_deflate(raw: bytes) -> DecodeOutcome:
    try:
        return Decoded(zlib.decompress(raw, -zlib.MAX_WBITS), "deflate")
    except zlib.error as exc:
        return DecodeFailure(f"deflate: {exc}")


_ATTEMPTS: tuple[Callable[[bytes], DecodeOutcome], ...] = (
    _inflate_zlib,
    _inflate_raw_deflate,
)


def inflate(raw: bytes) -> DecodeOutcome:
    """Decompress a Flate stream body.

    Args:
        raw: Compressed stream bytes. Never modified.

    Returns:
        ``Decoded`` from the first attempt that succeeds, otherwise the
        ``DecodeFailure`` of the last attempt.
    """
    outcome: DecodeOutcome = DecodeFailure("no attempt made")
    for attempt in _ATTEMPTS:
        outcome = attempt(raw)
        if isinstance(outcome, Decoded):
            return outcome
        logger.debug("Inflate attempt failed: %s", outcome.reason)
    return outcome
