"""Tesseract OCR capability with per-job worker handles.

Each recognition job initializes its own worker for a fixed language,
recognizes one image with it and releases it. Tesseract itself is a
blocking subprocess call, so every call is moved off the event loop.
"""

import asyncio
import io
import uuid
from dataclasses import dataclass
from typing import Protocol

import pytesseract
from PIL import Image

from cuecannon.errors import RecognitionError
from cuecannon.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class WorkerHandle:
    """An initialized OCR worker owned by exactly one job."""

    worker_id: str
    lang: str
    config: str
    released: bool = False


class OCRCapability(Protocol):
    """Interface every OCR backend must provide to recognition jobs."""

    async def initialize(self, lang: str) -> WorkerHandle: ...

    async def recognize(self, handle: WorkerHandle, blob: bytes) -> str: ...

    async def release(self, handle: WorkerHandle) -> None: ...


def load_image(blob: bytes) -> Image.Image:
    """Decode raw image bytes into an RGB or grayscale image.

    Args:
        blob: Encoded image data (PNG, JPEG, TIFF, ...).

    Returns:
        The decoded image, fully loaded.

    Raises:
        RecognitionError: If the data is not a decodable image.
    """
    try:
        img = Image.open(io.BytesIO(blob))
        if img.mode not in ("RGB", "L"):
            img = img.convert("RGB")
        img.load()
        return img
    except OSError as exc:
        raise RecognitionError(f"Unreadable image data: {exc}") from exc


class TesseractEngine:
    """OCR capability backed by the Tesseract command-line engine.

    Args:
        tesseract_cmd: Path to the Tesseract executable.
            If ``None``, uses the system default.
        default_lang: Language used when ``initialize`` gets no code.
        psm: Tesseract page segmentation mode.
    """

    def __init__(
        self,
        tesseract_cmd: str | None = None,
        default_lang: str = "eng",
        psm: int = 3,
    ) -> None:
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.default_lang = default_lang
        self.psm = psm

    async def initialize(self, lang: str | None = None) -> WorkerHandle:
        """Create a worker for ``lang`` after checking it is installed.

        Args:
            lang: Tesseract language code, ``+``-joined for several.

        Returns:
            A fresh worker handle.

        Raises:
            RecognitionError: If Tesseract is missing or lacks the language.
        """
        lang = lang or self.default_lang
        try:
            available = await asyncio.to_thread(pytesseract.get_languages, config="")
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as exc:
            raise RecognitionError(f"Tesseract is unavailable: {exc}") from exc

        missing = [code for code in lang.split("+") if code not in available]
        if missing:
            raise RecognitionError(
                f"Tesseract language data not installed: {', '.join(missing)}"
            )

        handle = WorkerHandle(
            worker_id=uuid.uuid4().hex[:8],
            lang=lang,
            config=f"--psm {self.psm}",
        )
        logger.debug("Initialized worker %s (lang=%s)", handle.worker_id, lang)
        return handle

    async def recognize(self, handle: WorkerHandle, blob: bytes) -> str:
        """Extract the text of one image with an initialized worker.

        Args:
            handle: Worker returned by ``initialize``.
            blob: Encoded image data.

        Returns:
            Recognized text.

        Raises:
            RecognitionError: If the worker was released, the image cannot
                be decoded, or Tesseract fails.
        """
        if handle.released:
            raise RecognitionError(f"Worker {handle.worker_id} was already released")
        return await asyncio.to_thread(self._recognize_sync, handle, blob)

    async def release(self, handle: WorkerHandle) -> None:
        handle.released = True
        logger.debug("Released worker %s", handle.worker_id)

    def _recognize_sync(self, handle: WorkerHandle, blob: bytes) -> str:
        image = load_image(blob)
        try:
            text = pytesseract.image_to_string(
                image, lang=handle.lang, config=handle.config
            )
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError) as exc:
            raise RecognitionError(f"Tesseract failed: {exc}") from exc

        logger.debug(
            "Worker %s recognized %d characters", handle.worker_id, len(text)
        )
        return text.rstrip("\f")
