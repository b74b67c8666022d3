"""Public entry point for batch image ingestion."""

import inspect
from collections.abc import Awaitable, Callable, Iterable

from cuecannon.ocr.tesseract_engine import OCRCapability
from cuecannon.storage.script_store import ScriptStore
from cuecannon.utils.config import IngestionConfig
from cuecannon.utils.logger import get_logger

from .coordinator import BatchCoordinator
from .models import FileInput

logger = get_logger(__name__)

FinishedCallback = Callable[[str], Awaitable[None] | None]


class IngestionBoundary:
    """Accepts batches of files and notifies the host once per batch.

    Each ``ingest`` call gets its own coordinator, so concurrent batches
    never interfere. When a batch finishes, its script is saved to
    ``store`` (if one was given) and then passed to ``on_finished``.

    Args:
        ocr: OCR capability used by every recognition job.
        on_finished: Host notification, called once per non-empty batch
            with the aggregated script.
        store: Optional persistence for the aggregated script.
        config: Aggregation settings.
        lang: Fixed Tesseract language code for all batches.
    """

    def __init__(
        self,
        ocr: OCRCapability,
        on_finished: FinishedCallback,
        store: ScriptStore | None = None,
        config: IngestionConfig | None = None,
        lang: str = "eng",
    ) -> None:
        self.ocr = ocr
        self.on_finished = on_finished
        self.store = store
        self.config = config or IngestionConfig()
        self.lang = lang
        self._in_flight: dict[str, BatchCoordinator] = {}

    @property
    def in_flight(self) -> list[str]:
        """Ids of batches that have not emitted yet."""
        return list(self._in_flight)

    def ingest(self, files: Iterable[FileInput]) -> BatchCoordinator | None:
        """Start recognising a batch of files without waiting for it.

        Args:
            files: Files of one user submission.

        Returns:
            The coordinator running the batch, or ``None`` for an empty
            submission, which is ignored.
        """
        files = list(files)
        if not files:
            logger.warning("Ignoring empty ingestion request")
            return None

        coordinator = BatchCoordinator(
            self.ocr,
            on_emit=lambda script: self._deliver(coordinator.batch_id, script),
            lang=self.lang,
            separator=self.config.separator,
            failure_marker=self.config.failure_marker,
        )
        self._in_flight[coordinator.batch_id] = coordinator
        coordinator.submit(files)
        return coordinator

    async def _deliver(self, batch_id: str, script: str) -> None:
        self._in_flight.pop(batch_id, None)
        if self.store is not None:
            try:
                self.store.save_plain_script(script)
            except (OSError, ValueError) as exc:
                logger.error("Could not persist script of batch %s: %s", batch_id, exc)
        result = self.on_finished(script)
        if inspect.isawaitable(result):
            await result
