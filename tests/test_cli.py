"""CLI parser and command behaviour tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from textlint_ai import cli
from textlint_ai.cli import _build_parser, main
from textlint_ai.errors import ConfigurationError

SOURCE = "// helo wrld\nconst x = 1;\n"


@pytest.fixture
def source_file(tmp_path: Path) -> Path:
    path = tmp_path / "app.js"
    path.write_text(SOURCE, encoding="utf-8")
    return path


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "scan", "app.js"])
    assert args.verbose is True
    assert args.command == "scan"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["scan", "app.js", "--verbose"])
    assert args.verbose is True
    assert args.path == "app.js"


def test_cli_accepts_apply_flag() -> None:
    parser = _build_parser()
    args = parser.parse_args(["check", "app.js", "--apply", "--language", "typescript"])
    assert args.command == "check"
    assert args.apply is True
    assert args.language == "typescript"


def test_cli_serve_defaults() -> None:
    args = _build_parser().parse_args(["serve"])
    assert args.host == "127.0.0.1"
    assert args.port == 8000


def test_scan_lists_spans(source_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["scan", str(source_file)])

    output = capsys.readouterr().out
    assert ":1:4 [comment 0.80] helo wrld" in output


def test_scan_reports_empty_files(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    path = tmp_path / "empty.js"
    path.write_text("const x = 1;\n", encoding="utf-8")

    main(["scan", str(path)])

    assert "No text found" in capsys.readouterr().out


def test_analyze_prints_summary(source_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
    main(["analyze", str(source_file)])

    output = capsys.readouterr().out
    assert "Language: javascript" in output
    assert "Segments: 1 (9 characters)" in output
    assert "  comment: 1" in output


def test_missing_file_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["scan", str(tmp_path / "missing.js")])

    assert excinfo.value.code == 1


def test_check_previews_without_writing(
    source_file: Path, transport, make_orchestrator, monkeypatch, capsys
) -> None:
    monkeypatch.setattr(cli, "_build_orchestrator", lambda config: make_orchestrator(transport))

    main(["check", str(source_file)])

    output = capsys.readouterr().out
    assert "helo wrld -> hello world" in output
    assert "1 texts, 1 corrected, 0 cached, 0 failed" in output
    assert source_file.read_text(encoding="utf-8") == SOURCE


def test_check_apply_writes_file(
    source_file: Path, transport, make_orchestrator, monkeypatch, capsys
) -> None:
    monkeypatch.setattr(cli, "_build_orchestrator", lambda config: make_orchestrator(transport))

    main(["check", str(source_file), "--apply"])

    assert source_file.read_text(encoding="utf-8") == "// hello world\nconst x = 1;\n"
    assert "Applied 1 corrections" in capsys.readouterr().out


def test_check_reports_configuration_errors(source_file: Path, monkeypatch) -> None:
    def _fail(config):
        raise ConfigurationError("No API key configured")

    monkeypatch.setattr(cli, "_build_orchestrator", _fail)

    with pytest.raises(SystemExit) as excinfo:
        main(["check", str(source_file)])

    assert excinfo.value.code == 1


def test_analyze_unknown_suffix_scans_every_language(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "notes.txt"
    path.write_text("# A python comment worth checking\n", encoding="utf-8")

    main(["analyze", str(path)])

    output = capsys.readouterr().out
    assert "Language: plaintext" in output
    assert "Comment lines: 1" in output
    assert "Segments: 1" in output
