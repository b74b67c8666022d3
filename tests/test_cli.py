"""Tests for the ingestion command-line interface."""

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from cuecannon.cli import _collect_inputs, _find_images, ingest_files, main
from cuecannon.errors import RecognitionError
from cuecannon.ingestion.models import FileInput
from cuecannon.storage.script_store import PLAIN_SCRIPT_KEY, InMemoryScriptStore
from cuecannon.utils.config import AppConfig


def _write_pages(directory: Path) -> None:
    (directory / "b.png").write_bytes(b"BETA")
    (directory / "a.png").write_bytes(b"ALPHA")


class TestFindImages:
    """Tests for image discovery."""

    def test_find_png_files(self, tmp_path: Path) -> None:
        (tmp_path / "p1.png").touch()
        (tmp_path / "p2.png").touch()
        (tmp_path / "readme.txt").touch()
        files = _find_images(tmp_path)
        assert [f.name for f in files] == ["p1.png", "p2.png"]

    def test_find_mixed_and_uppercase(self, tmp_path: Path) -> None:
        (tmp_path / "a.jpg").touch()
        (tmp_path / "b.TIFF").touch()
        (tmp_path / "c.pdf").touch()
        assert len(_find_images(tmp_path)) == 2

    def test_collect_expands_directories(self, tmp_path: Path) -> None:
        pages = tmp_path / "pages"
        pages.mkdir()
        _write_pages(pages)
        single = tmp_path / "cover.png"
        single.touch()

        inputs = _collect_inputs([pages, single])
        assert [i.name for i in inputs] == ["a.png", "b.png", "cover.png"]


class TestIngestFiles:
    """Tests for running a batch to completion."""

    def test_returns_script_and_persists(self, fake_ocr_cls: type) -> None:
        store = InMemoryScriptStore()
        inputs = [FileInput("b.png", b"BETA"), FileInput("a.png", b"ALPHA")]

        script = asyncio.run(ingest_files(inputs, fake_ocr_cls(), store, AppConfig()))

        assert script == "\nALPHA\nBETA"
        assert store.load_plain_script() == script

    def test_language_override(self, fake_ocr_cls: type) -> None:
        ocr = fake_ocr_cls()
        asyncio.run(
            ingest_files([FileInput("a", b"A")], ocr, InMemoryScriptStore(), AppConfig(), "spa")
        )
        assert ocr.initialized[0].lang == "spa"

    def test_empty_inputs_raise(self, fake_ocr_cls: type) -> None:
        with pytest.raises(ValueError):
            asyncio.run(ingest_files([], fake_ocr_cls(), InMemoryScriptStore(), AppConfig()))


class TestMain:
    """Tests for CLI argument handling."""

    @patch("cuecannon.cli.TesseractEngine")
    def test_ingest_to_output_file(
        self, mock_engine_cls, fake_ocr_cls: type, tmp_path: Path
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls()
        _write_pages(tmp_path)
        output = tmp_path / "out" / "script.txt"

        main(["ingest", str(tmp_path / "b.png"), str(tmp_path / "a.png"), "-o", str(output)])

        assert output.read_text() == "\nALPHA\nBETA"

    @patch("cuecannon.cli.TesseractEngine")
    def test_ingest_prints_script(
        self,
        mock_engine_cls,
        fake_ocr_cls: type,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls()
        _write_pages(tmp_path)

        main(["ingest", str(tmp_path)])

        assert capsys.readouterr().out == "\nALPHA\nBETA\n"

    @patch("cuecannon.cli.TesseractEngine")
    def test_ingest_with_failure_marker(
        self,
        mock_engine_cls,
        fake_ocr_cls: type,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls(
            failures={b"ALPHA": RecognitionError("blurry")}
        )
        _write_pages(tmp_path)

        main(["ingest", str(tmp_path), "--failure-marker", "[?? {name}]"])

        assert capsys.readouterr().out == "\n[?? a.png]\nBETA\n"

    @patch("cuecannon.cli.TesseractEngine")
    def test_ingest_then_show(
        self,
        mock_engine_cls,
        fake_ocr_cls: type,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls()
        pages = tmp_path / "pages"
        pages.mkdir()
        _write_pages(pages)
        store_path = tmp_path / "store.json"

        main(["ingest", str(pages), "--store", str(store_path), "-o", str(tmp_path / "x.txt")])
        assert json.loads(store_path.read_text())[PLAIN_SCRIPT_KEY] == "\nALPHA\nBETA"

        capsys.readouterr()
        main(["show", "--store", str(store_path)])
        assert capsys.readouterr().out == "\nALPHA\nBETA\n"

    def test_show_without_script_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["show", "--store", str(tmp_path / "none.json")])
        assert exc_info.value.code == 1

    def test_ingest_missing_path_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["ingest", str(tmp_path / "missing.png")])
        assert exc_info.value.code == 1

    def test_ingest_empty_directory_exits(self, tmp_path: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["ingest", str(tmp_path)])
        assert exc_info.value.code == 1

    def test_no_command_prints_help(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 0

    @patch("cuecannon.cli.TesseractEngine")
    def test_config_after_subcommand(
        self,
        mock_engine_cls,
        fake_ocr_cls: type,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls(
            failures={b"ALPHA": RecognitionError("blurry")}
        )
        pages = tmp_path / "pages"
        pages.mkdir()
        _write_pages(pages)
        config_path = tmp_path / "custom.yaml"
        config_path.write_text("ingestion:\n  failure_marker: '[bad {name}]'\n")

        main(["ingest", str(pages), "--config", str(config_path)])

        assert capsys.readouterr().out == "\n[bad a.png]\nBETA\n"

    def test_show_config_after_subcommand(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        store_path = tmp_path / "store.json"
        store_path.write_text(json.dumps({PLAIN_SCRIPT_KEY: "\nSTORED"}))
        config_path = tmp_path / "custom.yaml"
        config_path.write_text(f"storage:\n  path: '{store_path}'\n")

        main(["show", "--config", str(config_path)])

        assert capsys.readouterr().out == "\nSTORED\n"

    @patch("cuecannon.cli.TesseractEngine")
    def test_ingest_with_corrupt_store_prints_script(
        self,
        mock_engine_cls,
        fake_ocr_cls: type,
        tmp_path: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        mock_engine_cls.return_value = fake_ocr_cls()
        pages = tmp_path / "pages"
        pages.mkdir()
        _write_pages(pages)
        store_path = tmp_path / "store.json"
        store_path.write_text("{not json")

        main(["ingest", str(pages), "--store", str(store_path)])

        assert capsys.readouterr().out == "\nALPHA\nBETA\n"
