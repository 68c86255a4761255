"""Receipt PDF text extraction.

Extracts OCR-style text lines from digital (non-scanned) PDF receipts
by decoding their content streams directly, for consumption by a
line-oriented receipt field parser.
"""

__version__ = "1.0.0"
