"""Command-line interface for smartart diagram and document rendering."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .resources import load_cheatsheet
from .smartart import DIAGRAM_KINDS, kind_from_body, process_diagram, render_document

logger = logging.getLogger(__name__)


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="smartart",
        description="Render pyramid, chevron and venn diagram blocks to SVG.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    compile_parser = subparsers.add_parser("compile", help="Render one diagram body to SVG")
    compile_parser.add_argument("input", nargs="?", help="Input diagram file")
    compile_parser.add_argument("--text", help="Raw diagram source")
    compile_parser.add_argument("--type", choices=DIAGRAM_KINDS, help="Diagram kind")
    compile_parser.add_argument("--stdout", action="store_true", help="Write SVG to stdout")
    compile_parser.add_argument("-o", "--output", help="Output .svg path")

    document_parser = subparsers.add_parser(
        "document", help="Replace diagram fences in a Markdown document with SVG"
    )
    document_parser.add_argument("input", nargs="?", help="Input Markdown file")
    document_parser.add_argument("--text", help="Raw Markdown source")
    document_parser.add_argument("--stdout", action="store_true", help="Write result to stdout")
    document_parser.add_argument("-o", "--output", help="Output Markdown path")

    subparsers.add_parser("cheatsheet", help="Print diagram syntax quick reference")

    return parser


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
        level=logging.DEBUG if debug else logging.WARNING,
    )


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str, Optional[Path]]:
    if path and text is not None:
        raise CliError(
            "E_ARGS",
            "--text cannot be combined with file input",
            hint="Use either FILE or --text.",
            exit_code=2,
        )

    if text is not None:
        return text, "<text>", None

    if path:
        input_path = Path(path)
        if not input_path.exists():
            raise CliError(
                "E_IO_READ",
                f"input file not found: {input_path}",
                exit_code=2,
                file=str(input_path),
            )
        try:
            return input_path.read_text(encoding="utf-8"), str(input_path), input_path
        except (OSError, UnicodeDecodeError) as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=str(input_path),
            )

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Use a subcommand with FILE, --text, or pipe stdin.",
            exit_code=2,
        )

    data = sys.stdin.read()
    if not data.strip():
        raise CliError(
            "E_ARGS",
            "stdin was empty",
            hint="Pipe diagram or Markdown content into stdin.",
            exit_code=2,
        )
    return data, "<stdin>", None


def _write_text(path: Path, content: str) -> None:
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        )


def _error_from_exception(exc: Exception) -> CliError:
    if isinstance(exc, CliError):
        return exc
    return CliError(
        "E_INTERNAL",
        str(exc) or exc.__class__.__name__,
        hint="Re-run with --debug to see traceback.",
        exit_code=1,
        retryable=False,
    )


def _emit_error(err: CliError, *, error_format: str) -> None:
    if error_format == "json":
        payload = {
            "ok": False,
            "code": err.code,
            "message": err.message,
            "file": err.file,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _check_output_args(args: argparse.Namespace) -> None:
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )


def _emit_result(
    args: argparse.Namespace, content: str, source_path: Optional[Path], default_output: Optional[Path]
) -> int:
    if args.stdout or (source_path is None and not args.output):
        sys.stdout.write(content)
        if not content.endswith("\n"):
            sys.stdout.write("\n")
        return 0

    output_path = Path(args.output) if args.output else default_output
    _write_text(output_path, content)
    print(f"Wrote {output_path}")
    return 0


def _handle_compile(args: argparse.Namespace) -> int:
    _check_output_args(args)
    source, source_name, source_path = _read_input(args.input, args.text)

    kind = args.type or kind_from_body(source)
    if kind is None:
        raise CliError(
            "E_DIAGRAM_TYPE",
            "could not determine the diagram type",
            hint=f"Pass --type ({', '.join(DIAGRAM_KINDS)}) or start the body with the diagram tag.",
            exit_code=3,
            file=source_name,
        )
    svg_text = process_diagram(kind, source)
    if not svg_text.startswith("<svg"):
        raise CliError(
            "E_EMPTY_DIAGRAM",
            f"{kind} diagram has no items",
            hint="Add at least one item line after the header and options.",
            exit_code=3,
            file=source_name,
        )
    logger.debug("rendered %s diagram from %s", kind, source_name)
    default_output = source_path.with_suffix(".svg") if source_path else None
    return _emit_result(args, svg_text, source_path, default_output)


def _handle_document(args: argparse.Namespace) -> int:
    _check_output_args(args)
    source, source_name, source_path = _read_input(args.input, args.text)
    rendered = render_document(source)
    logger.debug("rendered document %s", source_name)
    default_output = (
        source_path.with_name(f"{source_path.stem}.out{source_path.suffix or '.md'}")
        if source_path
        else None
    )
    return _emit_result(args, rendered, source_path, default_output)


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    parser = _build_parser()

    if not raw_argv:
        err = CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use one of: compile, document, cheatsheet.",
            exit_code=2,
        )
        _emit_error(err, error_format="text")
        return err.exit_code

    debug_enabled = "--debug" in raw_argv or os.getenv("SMARTART_DEBUG") == "1"
    _configure_logging(debug_enabled)
    error_format = "text"
    if "--error-format" in raw_argv:
        idx = raw_argv.index("--error-format")
        if idx + 1 < len(raw_argv):
            error_format = raw_argv[idx + 1]

    try:
        args = parser.parse_args(raw_argv)
        error_format = args.error_format

        if args.command == "compile":
            return _handle_compile(args)
        if args.command == "document":
            return _handle_document(args)
        if args.command == "cheatsheet":
            print(load_cheatsheet())
            return 0

        raise CliError(
            "E_ARGS",
            "missing subcommand",
            hint="Use one of: compile, document, cheatsheet.",
            exit_code=2,
        )
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint="Use subcommands: compile, document, cheatsheet.",
            exit_code=2,
        )
        _emit_error(err, error_format=error_format)
        return err.exit_code
    except Exception as exc:  # pragma: no cover - exercised in integration tests
        err = _error_from_exception(exc)
        _emit_error(err, error_format=error_format)
        if debug_enabled:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
