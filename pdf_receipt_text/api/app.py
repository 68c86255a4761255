"""FastAPI application for the receipt PDF text extractor.

Provides REST endpoints for single and batch text extraction and a
health check. Extraction failures are reported in the response body;
HTTP errors are reserved for rejected uploads.
"""

import time
from typing import Annotated

import anyio.to_thread
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from pdf_receipt_text import __version__
from pdf_receipt_text.pdf.extractor import extract_text_from_bytes
from pdf_receipt_text.utils.config import ExtractionConfig, load_config
from pdf_receipt_text.utils.logger import get_logger

from .schemas import (
    BatchExtractionResponse,
    BatchItemResponse,
    ExtractionResponse,
    HealthResponse,
)

logger = get_logger(__name__)

app = FastAPI(
    title="Receipt PDF Text API",
    description="Extract OCR-style text lines from digital PDF receipts",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "application/x-pdf",
    "application/octet-stream",
}


def _get_config() -> ExtractionConfig:
    """Load the extraction settings for a request."""
    return load_config().extraction


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(status="healthy", version=__version__)


@app.post("/extract", response_model=ExtractionResponse)
async def extract_document(
    file: Annotated[UploadFile, File(...)],
) -> ExtractionResponse:
    """Extract text lines from an uploaded PDF.

    Args:
        file: Uploaded PDF document.

    Returns:
        Extraction result with lines, page count and error code.
    """
    start_time = time.time()

    if file.content_type and file.content_type not in _ALLOWED_CONTENT_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {file.content_type}",
        )

    content = await file.read()
    result = await anyio.to_thread.run_sync(
        extract_text_from_bytes, content, _get_config()
    )
    processing_time = (time.time() - start_time) * 1000

    if not result.success:
        logger.info("No text extracted from %s: %s", file.filename, result.error)

    return ExtractionResponse(
        filename=file.filename or "document",
        success=result.success,
        text=result.text,
        lines=list(result.lines),
        page_count=result.page_count,
        error=result.error.value if result.error else None,
        message=result.message,
        processing_time_ms=processing_time,
    )


@app.post("/extract/batch", response_model=BatchExtractionResponse)
async def extract_batch(
    files: Annotated[list[UploadFile], File(...)],
) -> BatchExtractionResponse:
    """Extract text lines from multiple uploaded PDFs.

    Args:
        files: List of uploaded PDF documents.

    Returns:
        Batch results with per-file outcomes.
    """
    results: list[BatchItemResponse] = []
    successful = 0

    for file in files:
        try:
            result = await extract_document(file)
        except HTTPException as exc:
            results.append(
                BatchItemResponse(filename=file.filename or "unknown", error=exc.detail)
            )
            continue

        results.append(
            BatchItemResponse(filename=file.filename or "unknown", result=result)
        )
        if result.success:
            successful += 1

    return BatchExtractionResponse(
        success=successful > 0,
        total_documents=len(files),
        successful=successful,
        failed=len(files) - successful,
        results=results,
    )
