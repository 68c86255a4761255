"""Pydantic request/response schemas for the FastAPI endpoints."""

from pydantic import BaseModel


class ExtractionResponse(BaseModel):
    """Response schema for a single PDF text extraction."""

    filename: str
    success: bool
    text: str
    lines: list[str]
    page_count: int
    error: str | None = None
    message: str | None = None
    processing_time_ms: float


class BatchItemResponse(BaseModel):
    """Response schema for a single item in a batch extraction."""

    filename: str
    result: ExtractionResponse | None = None
    error: str | None = None


class BatchExtractionResponse(BaseModel):
    """Response schema for batch extraction of multiple documents."""

    success: bool
    total_documents: int
    successful: int
    failed: int
    results: list[BatchItemResponse]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
