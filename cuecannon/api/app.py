"""FastAPI application for CueCannon.

Accepts batches of script page images for OCR, reports batch progress,
and serves the stored plain script and script pieces to the editor.
"""

import shutil
from collections import OrderedDict
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from fastapi import FastAPI, File, HTTPException, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware

from cuecannon.ingestion.boundary import IngestionBoundary
from cuecannon.ingestion.coordinator import BatchCoordinator
from cuecannon.ingestion.models import FileInput
from cuecannon.ocr.tesseract_engine import TesseractEngine
from cuecannon.storage.script_store import JsonFileScriptStore, ScriptStore
from cuecannon.utils.config import load_config
from cuecannon.utils.logger import get_logger

from .schemas import (
    BatchStatus,
    BatchStatusResponse,
    HealthResponse,
    IngestResponse,
    PlainScript,
    ScriptPieces,
)

logger = get_logger(__name__)

VERSION = "1.0.0"
_MAX_TRACKED_BATCHES = 100

app = FastAPI(
    title="CueCannon API",
    description="Turn scanned script pages into a single plain-text script",
    version=VERSION,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_batches: OrderedDict[str, BatchCoordinator] = OrderedDict()


def _log_finished(script: str) -> None:
    logger.info("Script ingestion finished (%d characters)", len(script))


@lru_cache(maxsize=1)
def _get_components() -> tuple[IngestionBoundary, ScriptStore]:
    """Initialize and return the shared ingestion boundary and script store.

    Returns:
        Tuple of (ingestion_boundary, script_store).
    """
    config = load_config()
    store = JsonFileScriptStore(Path(config.storage.path))
    engine = TesseractEngine(
        tesseract_cmd=config.ocr.tesseract_cmd,
        default_lang=config.ocr.default_lang,
        psm=config.ocr.psm,
    )
    boundary = IngestionBoundary(
        engine,
        on_finished=_log_finished,
        store=store,
        config=config.ingestion,
        lang=config.ocr.default_lang,
    )
    return boundary, store


def _track(coordinator: BatchCoordinator) -> None:
    _batches[coordinator.batch_id] = coordinator
    while len(_batches) > _MAX_TRACKED_BATCHES:
        _batches.popitem(last=False)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Return system health status."""
    return HealthResponse(
        status="healthy",
        version=VERSION,
        tesseract_available=shutil.which("tesseract") is not None,
    )


@app.post(
    "/ingest",
    response_model=IngestResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def ingest_images(
    files: Annotated[list[UploadFile], File(...)],
) -> IngestResponse:
    """Start OCR of a batch of page images.

    The request returns as soon as the batch is scheduled; poll
    ``/ingest/{batch_id}`` for the aggregated script.

    Args:
        files: Uploaded page images (PNG, JPEG, TIFF, ...).

    Returns:
        The id of the new batch and the accepted file names.
    """
    boundary, _ = _get_components()
    allowed = boundary.config.allowed_content_types

    for file in files:
        if file.content_type and file.content_type not in allowed:
            raise HTTPException(
                status_code=400,
                detail=f"Unsupported file type for {file.filename}: {file.content_type}",
            )

    inputs = [
        FileInput(name=file.filename or f"page-{i:03d}", source=await file.read())
        for i, file in enumerate(files)
    ]
    coordinator = boundary.ingest(inputs)
    if coordinator is None:
        raise HTTPException(status_code=400, detail="No files submitted")

    _track(coordinator)
    return IngestResponse(
        batch_id=coordinator.batch_id,
        file_count=len(inputs),
        filenames=[i.name for i in inputs],
    )


@app.get("/ingest/{batch_id}", response_model=BatchStatusResponse)
async def batch_status(batch_id: str) -> BatchStatusResponse:
    """Report the progress of an ingestion batch."""
    coordinator = _batches.get(batch_id)
    if coordinator is None:
        raise HTTPException(status_code=404, detail=f"Unknown batch: {batch_id}")

    return BatchStatusResponse(
        batch_id=batch_id,
        status=BatchStatus.FINISHED if coordinator.emitted else BatchStatus.PENDING,
        expected=coordinator.expected_count,
        resolved=coordinator.resolved_count,
        script=coordinator.script,
    )


@app.get("/script", response_model=PlainScript)
async def get_plain_script() -> PlainScript:
    """Return the stored plain script."""
    _, store = _get_components()
    return PlainScript(script=store.load_plain_script())


@app.put("/script", response_model=PlainScript)
async def put_plain_script(body: PlainScript) -> PlainScript:
    """Store the plain script; an empty script leaves the stored one in place."""
    _, store = _get_components()
    if body.script:
        store.save_plain_script(body.script)
    return PlainScript(script=store.load_plain_script())


@app.get("/script/pieces", response_model=ScriptPieces)
async def get_script_pieces() -> ScriptPieces:
    """Return the stored script pieces."""
    _, store = _get_components()
    return ScriptPieces(pieces=store.load_script_pieces())


@app.put("/script/pieces", response_model=ScriptPieces)
async def put_script_pieces(body: ScriptPieces) -> ScriptPieces:
    """Replace the stored script pieces."""
    _, store = _get_components()
    store.save_script_pieces(body.pieces)
    return ScriptPieces(pieces=store.load_script_pieces())
