"""Shared test fixtures for the CueCannon test suite."""

import asyncio
import io
from collections.abc import Callable
from pathlib import Path

import pytest
from PIL import Image

from cuecannon.ocr.tesseract_engine import WorkerHandle


class FakeOCR:
    """Scripted OCR capability.

    Recognition returns ``texts[blob]`` (or the decoded blob), raises
    ``failures[blob]`` if present, and first waits on ``gates[blob]`` so a
    test can decide the order in which jobs complete.
    """

    def __init__(
        self,
        texts: dict[bytes, str] | None = None,
        failures: dict[bytes, Exception] | None = None,
        gates: dict[bytes, asyncio.Event] | None = None,
        release_error: Exception | None = None,
    ) -> None:
        self.texts = texts or {}
        self.failures = failures or {}
        self.gates = gates or {}
        self.release_error = release_error
        self.initialized: list[WorkerHandle] = []
        self.released: list[WorkerHandle] = []
        self.recognized: list[bytes] = []

    async def initialize(self, lang: str) -> WorkerHandle:
        handle = WorkerHandle(
            worker_id=f"w{len(self.initialized)}", lang=lang, config=""
        )
        self.initialized.append(handle)
        return handle

    async def recognize(self, handle: WorkerHandle, blob: bytes) -> str:
        gate = self.gates.get(blob)
        if gate is not None:
            await gate.wait()
        self.recognized.append(blob)
        if blob in self.failures:
            raise self.failures[blob]
        return self.texts.get(blob, blob.decode())

    async def release(self, handle: WorkerHandle) -> None:
        handle.released = True
        self.released.append(handle)
        if self.release_error is not None:
            raise self.release_error


async def wait_until(predicate: Callable[[], bool], max_ticks: int = 1000) -> None:
    """Yield to the event loop until ``predicate`` holds."""
    for _ in range(max_ticks):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


@pytest.fixture
def fake_ocr_cls() -> type[FakeOCR]:
    """Return the scripted OCR capability class."""
    return FakeOCR


@pytest.fixture
def until() -> Callable:
    """Return the event-loop polling helper."""
    return wait_until


@pytest.fixture
def png_bytes() -> bytes:
    """Create a minimal PNG image as bytes."""
    img = Image.new("RGB", (80, 40))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent
