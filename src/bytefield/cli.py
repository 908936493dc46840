"""Command-line interface for bytefield compile/render workflows."""
from __future__ import annotations

import argparse
import json
import os
import sys
import traceback
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Union

from .bytefield import build_diagram, render_png
from .errors import BytefieldError, ScriptError
from .measure import check_label_fit
from .resources import load_cheatsheet


@dataclass
class CliError(Exception):
    code: str
    message: str
    hint: Optional[str] = None
    exit_code: int = 1
    file: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    retryable: bool = True


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="bytefield",
        description="Compile byte field diagram scripts to SVG and render them to PNG.",
    )
    parser.add_argument("--error-format", choices=["text", "json"], default="text")
    parser.add_argument("--debug", action="store_true")

    subparsers = parser.add_subparsers(dest="command")

    compile_parser = subparsers.add_parser("compile", help="Compile a diagram script to SVG")
    compile_parser.add_argument("input", nargs="?", help="Input diagram script")
    compile_parser.add_argument("--text", help="Raw diagram script source")
    compile_parser.add_argument("--stdout", action="store_true", help="Write SVG to stdout")
    compile_parser.add_argument("-o", "--output", help="Output .svg path")
    compile_parser.add_argument(
        "--check-fit",
        action="store_true",
        help="Warn about box labels wider than their boxes",
    )

    render_parser = subparsers.add_parser("render", help="Render a diagram script or SVG to PNG")
    render_parser.add_argument("input", nargs="?", help="Input diagram script or .svg file")
    render_parser.add_argument("--text", help="Raw diagram script or SVG source")
    render_parser.add_argument("--stdout", action="store_true", help="Write PNG bytes to stdout")
    render_parser.add_argument("-o", "--output", help="Output .png path")
    render_parser.add_argument("--scale", type=float, default=1.0)

    subparsers.add_parser("cheatsheet", help="Print the diagram script quick reference")

    return parser


def _is_svg(text: str) -> bool:
    try:
        root = ET.fromstring(text)
    except ET.ParseError:
        return False
    local = root.tag.split("}", 1)[1] if root.tag.startswith("{") else root.tag
    return local == "svg"


def _decode(data: bytes, source_name: str, file: Optional[str]) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise CliError(
            "E_IO_READ",
            f"{source_name} is not valid UTF-8",
            hint=str(exc),
            exit_code=2,
            file=file,
        ) from exc


def _read_input(path: Optional[str], text: Optional[str]) -> tuple[str, str, Optional[Path]]:
    """Return the script source, a display name for it, and its path if any."""
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
        try:
            data = input_path.read_bytes()
        except FileNotFoundError:
            raise CliError(
                "E_IO_READ", f"input file not found: {input_path}", exit_code=2, file=path
            ) from None
        except OSError as exc:
            raise CliError(
                "E_IO_READ",
                f"failed to read input file: {input_path}",
                hint=str(exc),
                exit_code=2,
                file=path,
            ) from exc
        return _decode(data, str(input_path), path), str(input_path), input_path

    if sys.stdin.isatty():
        raise CliError(
            "E_ARGS",
            "no input provided",
            hint="Pass a script FILE, use --text, or pipe the script on stdin.",
            exit_code=2,
        )
    source = _decode(sys.stdin.buffer.read(), "<stdin>", None)
    if not source.strip():
        raise CliError(
            "E_ARGS", "stdin was empty", hint="Pipe a diagram script into stdin.", exit_code=2
        )
    return source, "<stdin>", None


def _output_path(args: argparse.Namespace, source_path: Optional[Path], suffix: str) -> Optional[Path]:
    """Where to write the result, or ``None`` for stdout."""
    if args.stdout and args.output:
        raise CliError(
            "E_ARGS",
            "--stdout and --output are mutually exclusive",
            hint="Choose either --stdout or --output.",
            exit_code=2,
        )
    if args.output:
        return Path(args.output)
    if args.stdout or source_path is None:
        return None
    return source_path.with_suffix(suffix)


def _write_output(path: Path, content: Union[str, bytes]) -> None:
    data = content.encode("utf-8") if isinstance(content, str) else content
    try:
        path.write_bytes(data)
    except OSError as exc:
        raise CliError(
            "E_IO_WRITE",
            f"failed to write output file: {path}",
            hint=str(exc),
            exit_code=4,
            file=str(path),
        ) from exc


def _error_from_exception(exc: Exception, source_name: Optional[str] = None) -> CliError:
    if isinstance(exc, CliError):
        return exc
    if isinstance(exc, ScriptError):
        return CliError(
            exc.code,
            str(exc),
            hint="Check the script syntax; only calls, literals, if and for are allowed.",
            exit_code=2,
            file=source_name,
            line=exc.line,
            column=exc.column,
        )
    if isinstance(exc, BytefieldError):
        return CliError(
            exc.code,
            str(exc),
            hint="Check attribute specs, labels and column headers in the script.",
            exit_code=3,
            file=source_name,
        )
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
            "line": err.line,
            "column": err.column,
            "hint": err.hint,
            "retryable": err.retryable,
        }
        sys.stderr.write(json.dumps(payload) + "\n")
        return

    sys.stderr.write(f"error[{err.code}]: {err.message}\n")
    if err.hint:
        sys.stderr.write(f"hint: {err.hint}\n")


def _compile(source: str, source_name: str, *, check_fit: bool = False) -> str:
    try:
        diagram = build_diagram(source)
    except BytefieldError as exc:
        raise _error_from_exception(exc, source_name) from exc
    if check_fit:
        for fit in check_label_fit(diagram):
            sys.stderr.write(
                f"warning[W_LABEL_FIT]: label {fit.text!r} is {fit.width:.1f}px wide "
                f"but its box is {fit.available_width:.1f}px\n"
            )
    return diagram.emit()


def _handle_compile(args: argparse.Namespace) -> int:
    source, source_name, source_path = _read_input(args.input, args.text)
    output_path = _output_path(args, source_path, ".svg")
    svg_text = _compile(source, source_name, check_fit=args.check_fit)

    if output_path is None:
        sys.stdout.write(svg_text if svg_text.endswith("\n") else svg_text + "\n")
    else:
        _write_output(output_path, svg_text)
        print(f"Wrote {output_path}")
    return 0


def _handle_render(args: argparse.Namespace) -> int:
    if args.scale <= 0:
        raise CliError(
            "E_ARGS",
            "--scale must be > 0",
            hint="Use a positive scale factor like 1 or 2.",
            exit_code=2,
        )
    source, source_name, source_path = _read_input(args.input, args.text)
    output_path = _output_path(args, source_path, ".png")
    svg_text = source if _is_svg(source) else _compile(source, source_name)
    png_bytes = render_png(svg_text, scale=args.scale)

    if output_path is None:
        sys.stdout.buffer.write(png_bytes)
    else:
        _write_output(output_path, png_bytes)
        print(f"Wrote {output_path}")
    return 0


def _handle_cheatsheet(args: argparse.Namespace) -> int:
    print(load_cheatsheet())
    return 0


_HANDLERS = {
    "compile": _handle_compile,
    "render": _handle_render,
    "cheatsheet": _handle_cheatsheet,
}


def _error_options(argv: list[str]) -> argparse.Namespace:
    """Read the error reporting flags even when the full command line is invalid."""
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--error-format", default="text")
    pre.add_argument("--debug", action="store_true")
    options, _rest = pre.parse_known_args(argv)
    if options.error_format not in ("text", "json"):
        options.error_format = "text"
    options.debug = options.debug or os.getenv("BYTEFIELD_DEBUG") == "1"
    return options


def main(argv: Optional[Iterable[str]] = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    options = _error_options(raw_argv)

    try:
        args = _build_parser().parse_args(raw_argv)
        handler = _HANDLERS.get(args.command)
        if handler is None:
            raise CliError(
                "E_ARGS",
                "missing subcommand",
                hint="Use one of: compile, render, cheatsheet.",
                exit_code=2,
            )
        return handler(args)
    except UsageError as exc:
        err = CliError(
            "E_ARGS",
            str(exc),
            hint="Use subcommands: compile, render, cheatsheet.",
            exit_code=2,
        )
    except Exception as exc:
        err = _error_from_exception(exc)
        _emit_error(err, error_format=options.error_format)
        if options.debug:
            traceback.print_exc(file=sys.stderr)
        return err.exit_code
    _emit_error(err, error_format=options.error_format)
    return err.exit_code


if __name__ == "__main__":
    raise SystemExit(main())
