"""Tests for the FastAPI REST endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from pdf_receipt_text.api.app import app
from pdf_receipt_text.pdf.extractor import ErrorCode, ExtractionResult
from pdf_receipt_text.utils.config import ExtractionConfig


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def default_config():
    """Serve requests with default extraction settings."""
    with patch(
        "pdf_receipt_text.api.app._get_config", return_value=ExtractionConfig()
    ) as mock_config:
        yield mock_config


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"


class TestExtractEndpoint:
    """Tests for the /extract endpoint."""

    def test_extract_success(self, client: TestClient, hello_pdf: bytes) -> None:
        response = client.post(
            "/extract",
            files={"file": ("receipt.pdf", hello_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["filename"] == "receipt.pdf"
        assert data["success"] is True
        assert data["lines"] == ["Hello World"]
        assert data["text"] == "Hello World"
        assert data["page_count"] == 1
        assert data["error"] is None
        assert data["processing_time_ms"] >= 0

    def test_extract_scanned_document(
        self, client: TestClient, image_only_pdf: bytes
    ) -> None:
        response = client.post(
            "/extract",
            files={"file": ("scan.pdf", image_only_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "no_text_content"
        assert data["lines"] == []

    def test_extract_octet_stream_accepted(
        self, client: TestClient, hello_pdf: bytes
    ) -> None:
        response = client.post(
            "/extract",
            files={"file": ("receipt.bin", hello_pdf, "application/octet-stream")},
        )
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_extract_unsupported_file_type(self, client: TestClient) -> None:
        response = client.post(
            "/extract",
            files={"file": ("test.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert "Unsupported file type" in response.json()["detail"]

    def test_extract_uses_configured_settings(
        self, client: TestClient, make_pdf, default_config: MagicMock
    ) -> None:
        default_config.return_value = ExtractionConfig(kerning_space_threshold=-30.0)
        pdf = make_pdf(b"BT [(Sub) -50 (total)] TJ ET")
        response = client.post(
            "/extract",
            files={"file": ("r.pdf", pdf, "application/pdf")},
        )
        assert response.json()["lines"] == ["Sub total"]

    @patch("pdf_receipt_text.api.app.extract_text_from_bytes")
    def test_extract_unknown_error_reported(
        self, mock_extract: MagicMock, client: TestClient, hello_pdf: bytes
    ) -> None:
        mock_extract.return_value = ExtractionResult.failure(
            ErrorCode.UNKNOWN, message="bad xref"
        )
        response = client.post(
            "/extract",
            files={"file": ("r.pdf", hello_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["error"] == "unknown"
        assert data["message"] == "bad xref"


class TestBatchExtractEndpoint:
    """Tests for the /extract/batch endpoint."""

    def test_batch_extract(
        self, client: TestClient, hello_pdf: bytes, image_only_pdf: bytes
    ) -> None:
        response = client.post(
            "/extract/batch",
            files=[
                ("files", ("a.pdf", hello_pdf, "application/pdf")),
                ("files", ("b.pdf", image_only_pdf, "application/pdf")),
            ],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 2
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["success"] is True
        assert data["results"][0]["result"]["lines"] == ["Hello World"]
        assert data["results"][1]["result"]["error"] == "no_text_content"

    def test_batch_with_rejected_file(self, client: TestClient, hello_pdf: bytes) -> None:
        response = client.post(
            "/extract/batch",
            files=[
                ("files", ("a.pdf", hello_pdf, "application/pdf")),
                ("files", ("notes.txt", b"hi", "text/plain")),
            ],
        )
        data = response.json()
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][1]["result"] is None
        assert "Unsupported file type" in data["results"][1]["error"]
