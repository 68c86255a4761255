"""Shared test fixtures for the PDF text extraction test suite."""

import zlib
from collections.abc import Callable
from pathlib import Path

import pytest


class PdfBuilder:
    """Assembles minimal PDF files object by object."""

    def __init__(self) -> None:
        self.objects: list[bytes] = []

    def add(self, body: bytes) -> int:
        """Append an object body and return its object number."""
        self.objects.append(body)
        return len(self.objects)

    def reserve(self) -> int:
        """Reserve an object number to be filled with :meth:`set`."""
        return self.add(b"null")

    def set(self, number: int, body: bytes) -> None:
        self.objects[number - 1] = body

    @staticmethod
    def stream_body(data: bytes, dictionary: bytes = b"", compress: str | None = None) -> bytes:
        """Build a stream object body, optionally Flate-compressed."""
        if compress == "zlib":
            data = zlib.compress(data)
            dictionary += b" /Filter /FlateDecode"
        elif compress == "deflate":
            deflater = zlib.compressobj(wbits=-15)
            data = deflater.compress(data) + deflater.flush()
            dictionary += b" /Filter /FlateDecode"
        header = b"<< /Length %d%s >>\nstream\n" % (len(data), dictionary)
        return header + data + b"\nendstream"

    def add_stream(self, data: bytes, dictionary: bytes = b"", compress: str | None = None) -> int:
        return self.add(self.stream_body(data, dictionary, compress))

    def build(self) -> bytes:
        out = bytearray(b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\n")
        for number, body in enumerate(self.objects, 1):
            out += b"%d 0 obj\n" % number + body + b"\nendobj\n"
        out += b"trailer\n<< /Size %d /Root 1 0 R >>\n%%%%EOF\n" % (len(self.objects) + 1)
        return bytes(out)


def build_simple_pdf(
    *contents: bytes,
    compress: str | None = None,
    fonts: dict[bytes, int] | None = None,
    builder: PdfBuilder | None = None,
) -> bytes:
    """Build a PDF with one page per content stream.

    Args:
        contents: Content stream of each page.
        compress: ``"zlib"`` or ``"deflate"`` to compress the streams.
        fonts: Font resource name to font object number, shared by all pages.
        builder: Builder already holding extra objects (fonts, CMaps).
    """
    builder = builder or PdfBuilder()
    catalog = builder.reserve()
    pages = builder.reserve()
    font_entries = b" ".join(
        b"/%s %d 0 R" % (name, number) for name, number in (fonts or {}).items()
    )

    kids = []
    for content in contents:
        content_number = builder.add_stream(content, compress=compress)
        page = builder.add(
            b"<< /Type /Page /Parent %d 0 R /Contents %d 0 R "
            b"/Resources << /Font << %s >> >> >>" % (pages, content_number, font_entries)
        )
        kids.append(b"%d 0 R" % page)

    builder.set(catalog, b"<< /Type /Catalog /Pages %d 0 R >>" % pages)
    builder.set(
        pages,
        b"<< /Type /Pages /Kids [%s] /Count %d >>" % (b" ".join(kids), len(kids)),
    )
    return builder.build()


@pytest.fixture
def pdf_builder() -> type[PdfBuilder]:
    """Return the PDF builder class."""
    return PdfBuilder


@pytest.fixture
def make_pdf() -> Callable[..., bytes]:
    """Return a factory building one-page-per-content PDFs."""
    return build_simple_pdf


@pytest.fixture
def hello_pdf() -> bytes:
    """A one-page PDF showing "Hello World" with a single Tj."""
    return build_simple_pdf(b"BT /F1 12 Tf 72 712 Td (Hello World) Tj ET")


@pytest.fixture
def image_only_pdf(pdf_builder: type[PdfBuilder]) -> bytes:
    """A one-page PDF that only paints an image XObject."""
    builder = pdf_builder()
    image = builder.add_stream(
        b"\xff\xd8\xff\xe0fakejpegdata\xff\xd9",
        b" /Type /XObject /Subtype /Image /Width 1 /Height 1 /Filter /DCTDecode",
    )
    content = builder.add_stream(b"q 200 0 0 300 0 0 cm /Im1 Do Q")
    builder.add(
        b"<< /Type /Page /Contents %d 0 R /Resources << /XObject << /Im1 %d 0 R >> >> >>"
        % (content, image)
    )
    return builder.build()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
