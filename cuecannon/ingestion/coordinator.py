"""Fan-in of concurrent recognition jobs into one aggregated script.

A coordinator owns exactly one submission. Every job posts its outcome to a
queue with a single consumer; the consumer records outcomes through
``on_job_complete``, which performs the completion check under a lock so the
script is emitted once, and only after every job has resolved.
"""

import asyncio
import inspect
import threading
import uuid
from collections.abc import Awaitable, Callable, Coroutine, Iterable, Sequence
from typing import Any

from cuecannon.ocr.tesseract_engine import OCRCapability
from cuecannon.utils.logger import get_logger

from .job import RecognitionJob
from .models import FileInput, JobOutcome

logger = get_logger(__name__)

EmitCallback = Callable[[str], Awaitable[None] | None]


def build_script(
    outcomes: Iterable[JobOutcome],
    separator: str = "\n",
    failure_marker: str | None = None,
) -> str:
    """Concatenate recognized texts in ascending file-name order.

    Outcomes sharing a name keep their submission order. Each text block is
    preceded by ``separator``. Failed outcomes contribute nothing unless
    ``failure_marker`` is given, in which case it is formatted with the
    file ``name`` and included in place of the text.

    Args:
        outcomes: Resolved job outcomes, in any order.
        separator: String placed before every block.
        failure_marker: Optional format string for failed files.

    Returns:
        The aggregated script.
    """
    parts: list[str] = []
    for outcome in sorted(outcomes, key=lambda o: (o.name, o.index)):
        if outcome.succeeded:
            parts.append(separator + (outcome.text or ""))
        elif failure_marker is not None:
            parts.append(separator + failure_marker.format(name=outcome.name))
    return "".join(parts)


class BatchCoordinator:
    """Runs one batch of recognition jobs and emits their aggregate once.

    Args:
        ocr: OCR capability handed to every job.
        on_emit: Called with the aggregated script, exactly once. May be a
            plain function or a coroutine function.
        lang: Tesseract language code for every job.
        separator: String placed before each text block.
        failure_marker: Optional format string shown for failed files.
    """

    def __init__(
        self,
        ocr: OCRCapability,
        on_emit: EmitCallback,
        lang: str = "eng",
        separator: str = "\n",
        failure_marker: str | None = None,
    ) -> None:
        self.batch_id = uuid.uuid4().hex[:12]
        self.ocr = ocr
        self.on_emit = on_emit
        self.lang = lang
        self.separator = separator
        self.failure_marker = failure_marker

        self.expected_count = 0
        self.completed: list[JobOutcome] = []
        self.emitted = False
        self.script: str | None = None
        self.jobs: list[RecognitionJob] = []

        self._submitted = False
        self._lock = threading.Lock()
        self._finished: asyncio.Future[str] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def resolved_count(self) -> int:
        return len(self.completed)

    def submit(self, batch: Sequence[FileInput]) -> None:
        """Start one recognition job per file, all concurrently.

        Must be called from a running event loop. An empty batch leaves the
        coordinator idle: no jobs are spawned and nothing is ever emitted.

        Args:
            batch: Files of this submission.

        Raises:
            RuntimeError: If the coordinator already received a batch.
        """
        if self._submitted:
            raise RuntimeError(f"Batch {self.batch_id} was already submitted")
        self._submitted = True
        self.expected_count = len(batch)

        if not batch:
            logger.warning("Batch %s is empty, nothing to recognise", self.batch_id)
            return

        outcomes: asyncio.Queue[JobOutcome] = asyncio.Queue()
        finished: asyncio.Future[str] = asyncio.get_running_loop().create_future()
        self._finished = finished

        for index, file_input in enumerate(batch):
            job = RecognitionJob(file_input, self.ocr, lang=self.lang, index=index)
            self.jobs.append(job)
            self._spawn(self._run_job(job, outcomes))
        self._spawn(self._consume(outcomes, finished))

        logger.info(
            "Batch %s submitted with %d file(s)", self.batch_id, self.expected_count
        )

    def on_job_complete(self, outcome: JobOutcome) -> str | None:
        """Record one resolved job and emit the script if it was the last.

        Args:
            outcome: The resolved job outcome.

        Returns:
            The aggregated script when this call completed the batch,
            otherwise ``None``.
        """
        with self._lock:
            if self.emitted:
                logger.warning(
                    "Batch %s already emitted, ignoring outcome for %s",
                    self.batch_id,
                    outcome.name,
                )
                return None
            self.completed.append(outcome)
            if len(self.completed) < self.expected_count:
                return None
            self.emitted = True
            self.script = build_script(
                self.completed, self.separator, self.failure_marker
            )
            return self.script

    async def wait(self) -> str:
        """Wait for the batch to finish and return the aggregated script.

        Raises:
            RuntimeError: If no files were submitted.
        """
        if self._finished is None:
            raise RuntimeError(f"Batch {self.batch_id} has no files to wait for")
        return await asyncio.shield(self._finished)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run_job(
        self, job: RecognitionJob, outcomes: asyncio.Queue[JobOutcome]
    ) -> None:
        outcomes.put_nowait(await job.run())

    async def _consume(
        self, outcomes: asyncio.Queue[JobOutcome], finished: asyncio.Future[str]
    ) -> None:
        while not self.emitted:
            outcome = await outcomes.get()
            script = self.on_job_complete(outcome)
            if script is not None:
                await self._emit(script, finished)

    async def _emit(self, script: str, finished: asyncio.Future[str]) -> None:
        failed = sum(1 for o in self.completed if not o.succeeded)
        logger.info(
            "Batch %s finished: %d file(s), %d failed",
            self.batch_id,
            self.expected_count,
            failed,
        )
        try:
            result = self.on_emit(script)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Notification handler failed for batch %s", self.batch_id)
        finally:
            if not finished.done():
                finished.set_result(script)
