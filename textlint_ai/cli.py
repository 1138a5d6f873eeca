"""CLI entrypoints for textlint-ai commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import TextLintConfig, load_config
from .documents import FileDocument
from .errors import ConfigurationError, TextLintError
from .extraction import TextExtractor, in_document_order, summarize
from .logging import configure_logging, excerpt
from .orchestrator import CorrectionOrchestrator
from .service import run_service


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_file_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("path", help="Source file to inspect.")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to .textlint.yml (defaults to the file's directory).",
    )
    parser.add_argument(
        "--language",
        default=None,
        help="Programming language id; overrides detection from the file suffix.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="textlint-ai",
        description="Find and correct prose in source code comments, strings and docstrings.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="List the text spans that would be sent for correction.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    _add_file_arguments(scan_parser)

    check_parser = subparsers.add_parser(
        "check",
        help="Preview corrections for a file.",
    )
    _add_verbose_option(check_parser, suppress_default=True)
    _add_file_arguments(check_parser)
    check_parser.add_argument(
        "--apply",
        action="store_true",
        help="Write the corrections back to the file.",
    )

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Summarise the prose found in a file.",
    )
    _add_verbose_option(analyze_parser, suppress_default=True)
    _add_file_arguments(analyze_parser)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _build_orchestrator(config: TextLintConfig) -> CorrectionOrchestrator:
    return CorrectionOrchestrator.from_config(config)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for textlint-ai commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        run_service(host=args.host, port=args.port)
        return

    path = Path(args.path).expanduser()
    if not path.is_file():
        parser.exit(1, f"{path} is not a file\n")

    try:
        config = load_config(Path(args.config) if args.config else path.parent)
    except ConfigurationError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    document = FileDocument(path, language_id=args.language)

    if args.command == "scan":
        _run_scan(document, config)
    elif args.command == "analyze":
        _run_analyze(document, config)
    elif args.command == "check":
        try:
            orchestrator = _build_orchestrator(config)
            _run_check(orchestrator, document, apply=bool(args.apply) or config.auto_correct)
        except TextLintError as exc:
            parser.exit(1, f"textlint-ai check failed: {exc}\nRun with --verbose for more details.\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_scan(document: FileDocument, config: TextLintConfig) -> None:
    spans = TextExtractor().extract_from_document(document, config.extraction_options())
    if not spans:
        print("No text found")
        return
    for span in in_document_order(spans):
        location = f"{_relativize(document.path)}:{span.start.line + 1}:{span.start.column + 1}"
        print(f"{location} [{span.type} {span.confidence:.2f}] {excerpt(span.text, 80)}")


def _run_analyze(document: FileDocument, config: TextLintConfig) -> None:
    extractor = TextExtractor()
    analysis = summarize(extractor.extract_from_document(document, config.extraction_options()))
    language = document.language_id if extractor.registry.knows(document.language_id) else "auto"
    structure = extractor.classifier.analyze_structure(document.get_text(), language)
    print(f"Language: {document.language_id}")
    print(f"Lines: {structure['lines']}")
    print(
        "Comment lines: {comments}, string lines: {strings}, docstring lines: {docstrings}".format(
            **structure
        )
    )
    print(f"Segments: {analysis.segments} ({analysis.total_characters} characters)")
    for text_type, count in sorted(analysis.by_type.items()):
        print(f"  {text_type}: {count}")
    print(f"Average confidence: {analysis.average_confidence:.2f}")


def _run_check(orchestrator: CorrectionOrchestrator, document: FileDocument, *, apply: bool) -> None:
    run = asyncio.run(orchestrator.preview(document))
    stats = run.stats
    if not run.corrections:
        print(f"No corrections for {_relativize(document.path)}")
    for correction in run.corrections:
        location = f"{_relativize(document.path)}:{correction.start.line + 1}:{correction.start.column + 1}"
        print(f"{location} {excerpt(correction.original, 80)} -> {excerpt(correction.text, 80)}")
    print(
        f"{stats.total_texts} texts, {stats.corrected} corrected, "
        f"{stats.cached} cached, {stats.failed} failed in {stats.duration:.2f}s"
    )
    if not apply or not run.corrections:
        return
    result = orchestrator.apply_subset(document, run.corrections)
    if not result.success:
        raise TextLintError(f"{document.path} rejected the corrections")
    document.save()
    print(f"Applied {len(result.applied)} corrections to {_relativize(document.path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
