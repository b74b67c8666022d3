"""Recognition of a single submitted file."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from cuecannon.errors import IngestionError, ReadError, RecognitionError
from cuecannon.ocr.tesseract_engine import OCRCapability, WorkerHandle
from cuecannon.utils.logger import get_logger

from .models import FileInput, JobOutcome, JobState

logger = get_logger(__name__)


@asynccontextmanager
async def acquire_worker(ocr: OCRCapability, lang: str) -> AsyncIterator[WorkerHandle]:
    """Initialize an OCR worker and release it on every exit path."""
    handle = await ocr.initialize(lang)
    try:
        yield handle
    finally:
        try:
            await ocr.release(handle)
        except Exception as exc:
            logger.warning("Failed to release OCR worker: %s", exc)


class RecognitionJob:
    """Drives one file through read and recognition.

    The job moves ``PENDING -> RUNNING`` once the file is in memory and then
    to ``SUCCEEDED`` or ``FAILED``. Failures are recorded on the job and in
    its outcome; they are never raised to the caller and never retried.

    Args:
        file_input: The file to recognise.
        ocr: OCR capability that provides this job's worker.
        lang: Tesseract language code for the worker.
        index: Position of the file in its batch.
    """

    def __init__(
        self,
        file_input: FileInput,
        ocr: OCRCapability,
        lang: str = "eng",
        index: int = 0,
    ) -> None:
        self.input = file_input
        self.ocr = ocr
        self.lang = lang
        self.index = index
        self.state = JobState.PENDING
        self.result: str | IngestionError | None = None

    @property
    def name(self) -> str:
        return self.input.name

    async def run(self) -> JobOutcome:
        """Read and recognise the file.

        Returns:
            The job outcome, carrying either the text or the error.
        """
        try:
            blob = await self._read()
            self.state = JobState.RUNNING
            text = await self._recognize(blob)
        except IngestionError as exc:
            self.state = JobState.FAILED
            self.result = exc
            logger.warning("Recognition failed for %s: %s", self.name, exc)
            return JobOutcome(name=self.name, index=self.index, error=exc)

        self.state = JobState.SUCCEEDED
        self.result = text
        logger.debug("Recognized %s (%d characters)", self.name, len(text))
        return JobOutcome(name=self.name, index=self.index, text=text)

    async def _read(self) -> bytes:
        try:
            return await self.input.read()
        except IngestionError:
            raise
        except Exception as exc:
            raise ReadError(f"Could not read {self.name}: {exc}") from exc

    async def _recognize(self, blob: bytes) -> str:
        try:
            async with acquire_worker(self.ocr, self.lang) as handle:
                return await self.ocr.recognize(handle, blob)
        except IngestionError:
            raise
        except Exception as exc:
            raise RecognitionError(f"OCR engine error: {exc}") from exc
