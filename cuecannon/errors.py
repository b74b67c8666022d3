"""Error taxonomy for the ingestion pipeline.

Both errors are scoped to a single recognition job: they mark that job as
failed and never propagate to the batch or the host application.
"""


class IngestionError(Exception):
    """Base class for per-file ingestion failures."""


class ReadError(IngestionError):
    """The file contents could not be loaded into memory."""


class RecognitionError(IngestionError):
    """The OCR capability failed or raised while recognising a file."""
