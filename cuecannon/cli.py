"""Command-line interface for ingesting script page images.

Provides subcommands to OCR a set of images into one plain script and to
show the script currently held in the store.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from cuecannon.ingestion.boundary import IngestionBoundary
from cuecannon.ingestion.models import FileInput
from cuecannon.ocr.tesseract_engine import OCRCapability, TesseractEngine
from cuecannon.storage.script_store import (
    InMemoryScriptStore,
    JsonFileScriptStore,
    ScriptStore,
)
from cuecannon.utils.config import AppConfig, load_config
from cuecannon.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp")


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _collect_inputs(paths: list[Path]) -> list[FileInput]:
    """Expand directories and wrap every image path as a ``FileInput``."""
    inputs: list[FileInput] = []
    for path in paths:
        if path.is_dir():
            inputs.extend(FileInput.from_path(p) for p in _find_images(path))
        else:
            inputs.append(FileInput.from_path(path))
    return inputs


async def ingest_files(
    inputs: list[FileInput],
    ocr: OCRCapability,
    store: ScriptStore,
    config: AppConfig,
    lang: str | None = None,
) -> str:
    """Run one batch to completion and return its aggregated script.

    Args:
        inputs: Files to recognise; must not be empty.
        ocr: OCR capability to use.
        store: Store that receives the aggregated script.
        config: Application configuration.
        lang: Language override for this run.

    Returns:
        The aggregated script.
    """
    finished: asyncio.Future[str] = asyncio.get_running_loop().create_future()
    boundary = IngestionBoundary(
        ocr,
        on_finished=finished.set_result,
        store=store,
        config=config.ingestion,
        lang=lang or config.ocr.default_lang,
    )
    if boundary.ingest(inputs) is None:
        raise ValueError("No files to ingest")
    return await finished


def _make_store(path: Path | None) -> ScriptStore:
    if path is None:
        return InMemoryScriptStore()
    return JsonFileScriptStore(path)


def _print_summary(inputs: list[FileInput], script: str) -> None:
    """Print batch summary to stderr.

    Args:
        inputs: Files of the batch.
        script: The aggregated script.
    """
    print(f"\n{'=' * 50}", file=sys.stderr)
    print("Ingestion Complete", file=sys.stderr)
    print(f"{'=' * 50}", file=sys.stderr)
    print(f"Files:      {len(inputs)}", file=sys.stderr)
    print(f"Characters: {len(script)}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="CueCannon script ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    ingest_parser = subparsers.add_parser(
        "ingest", help="OCR page images into one plain script"
    )
    ingest_parser.add_argument(
        "paths", type=Path, nargs="+", help="Image files or directories"
    )
    ingest_parser.add_argument("-o", "--output", type=Path, help="Output text file")
    ingest_parser.add_argument("--lang", help="Tesseract language code")
    ingest_parser.add_argument(
        "--failure-marker",
        help="Text shown for unreadable files, e.g. '[unreadable: {name}]'",
    )
    ingest_parser.add_argument(
        "--store", type=Path, help="JSON store that keeps the plain script"
    )
    ingest_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )
    ingest_parser.add_argument(
        "--config", type=Path, default=argparse.SUPPRESS, help="YAML configuration file"
    )

    show_parser = subparsers.add_parser("show", help="Print the stored plain script")
    show_parser.add_argument(
        "--store", type=Path, help="JSON store (default: from configuration)"
    )
    show_parser.add_argument(
        "--config", type=Path, default=argparse.SUPPRESS, help="YAML configuration file"
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging("DEBUG" if getattr(args, "verbose", False) else config.log_level)

    if args.command == "ingest":
        missing = [p for p in args.paths if not p.exists()]
        if missing:
            print(f"Error: {missing[0]} does not exist", file=sys.stderr)
            sys.exit(1)
        inputs = _collect_inputs(args.paths)
        if not inputs:
            print("Error: no images found", file=sys.stderr)
            sys.exit(1)
        if args.failure_marker is not None:
            config.ingestion.failure_marker = args.failure_marker

        engine = TesseractEngine(
            tesseract_cmd=config.ocr.tesseract_cmd,
            default_lang=config.ocr.default_lang,
            psm=config.ocr.psm,
        )
        store = _make_store(args.store)
        script = asyncio.run(ingest_files(inputs, engine, store, config, args.lang))

        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(script)
            print(f"Output written to {args.output}", file=sys.stderr)
        else:
            print(script)
        if args.verbose:
            _print_summary(inputs, script)
    elif args.command == "show":
        store = JsonFileScriptStore(args.store or Path(config.storage.path))
        script = store.load_plain_script()
        if script is None:
            print("No script stored", file=sys.stderr)
            sys.exit(1)
        print(script)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
