"""Pydantic request/response schemas for the FastAPI endpoints."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class BatchStatus(StrEnum):
    """Progress of an ingestion batch."""

    PENDING = "pending"
    FINISHED = "finished"


class IngestResponse(BaseModel):
    """Response schema for an accepted ingestion request."""

    batch_id: str
    file_count: int
    filenames: list[str]


class BatchStatusResponse(BaseModel):
    """Response schema for the status of one ingestion batch."""

    batch_id: str
    status: BatchStatus
    expected: int
    resolved: int
    script: str | None = None


class PlainScript(BaseModel):
    """The stored plain script, absent until one has been saved."""

    script: str | None = None


class ScriptPieces(BaseModel):
    """The stored script pieces as produced by the editor."""

    pieces: list[Any]


class HealthResponse(BaseModel):
    """Response schema for the health check endpoint."""

    status: str
    version: str
    tesseract_available: bool
