"""Data model for batch image ingestion."""

import asyncio
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from cuecannon.errors import IngestionError, ReadError


class JobState(StrEnum):
    """Lifecycle states of a recognition job."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class FileInput:
    """A submitted file: a display name plus its raw contents or location.

    The name is only used to order the aggregated script and to identify
    the file in logs; it is not required to be unique within a batch.
    """

    name: str
    source: bytes | Path = field(repr=False)

    @classmethod
    def from_path(cls, path: Path) -> "FileInput":
        """Create an input named after the file's base name."""
        return cls(name=path.name, source=path)

    async def read(self) -> bytes:
        """Load the full file contents into memory.

        Returns:
            The raw file bytes.

        Raises:
            ReadError: If the file cannot be read.
        """
        if isinstance(self.source, bytes | bytearray):
            return bytes(self.source)
        try:
            return await asyncio.to_thread(Path(self.source).read_bytes)
        except (OSError, ValueError) as exc:
            raise ReadError(f"Could not read {self.name}: {exc}") from exc


@dataclass(frozen=True)
class JobOutcome:
    """Resolved result of one recognition job."""

    name: str
    index: int
    text: str | None = None
    error: IngestionError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None
