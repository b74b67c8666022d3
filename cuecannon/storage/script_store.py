"""Persistence of the plain script and its parsed pieces.

The ingestion core only sees the ``ScriptStore`` protocol; hosts choose an
implementation. Empty plain scripts are never written, so a failed or blank
batch cannot wipe a previously saved script.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from cuecannon.utils.logger import get_logger

logger = get_logger(__name__)

PLAIN_SCRIPT_KEY = "cuecannon-plain-script"
SCRIPT_PIECES_KEY = "cuecannon-script-pieces"


class ScriptStore(Protocol):
    """Storage interface for the current script."""

    def load_plain_script(self) -> str | None: ...

    def save_plain_script(self, script: str) -> None: ...

    def load_script_pieces(self) -> list[Any]: ...

    def save_script_pieces(self, pieces: list[Any]) -> None: ...


class InMemoryScriptStore:
    """Process-local store, used by tests and one-off CLI runs."""

    def __init__(self) -> None:
        self.plain_script: str | None = None
        self.script_pieces: list[Any] = []

    def load_plain_script(self) -> str | None:
        return self.plain_script

    def save_plain_script(self, script: str) -> None:
        if script == "":
            return
        self.plain_script = script

    def load_script_pieces(self) -> list[Any]:
        return list(self.script_pieces)

    def save_script_pieces(self, pieces: list[Any]) -> None:
        self.script_pieces = list(pieces)


class JsonFileScriptStore:
    """Store backed by a single JSON document on disk.

    Args:
        path: Location of the JSON file. Parent directories are created
            on first write; a missing file reads as empty.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load_plain_script(self) -> str | None:
        return self._read().get(PLAIN_SCRIPT_KEY)

    def save_plain_script(self, script: str) -> None:
        if script == "":
            logger.debug("Skipping save of empty plain script")
            return
        data = self._read()
        data[PLAIN_SCRIPT_KEY] = script
        self._write(data)
        logger.info("Saved plain script (%d characters) to %s", len(script), self.path)

    def load_script_pieces(self) -> list[Any]:
        return self._read().get(SCRIPT_PIECES_KEY, [])

    def save_script_pieces(self, pieces: list[Any]) -> None:
        data = self._read()
        data[SCRIPT_PIECES_KEY] = pieces
        self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        """Write atomically so readers never see a partial document."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
