"""
codeecho: turn a repository into a single AI-ready document.

Usage
-----
Stream a repository to XML (default), JSON or Markdown:
    codeecho .                                   # auto-named <project>-<timestamp>.xml
    codeecho scan ../api --format md -o api.md
    codeecho . --remove-comments --remove-empty-lines --compress

Keep the whole scan in memory and dump it as JSON for further processing:
    codeecho analyze . -o analysis.json

Settings are merged in this order (last wins): built-in defaults, a
`.codeecho.yaml`/`.codeecho.json` file found from the scanned path upwards,
`CODEECHO_*` environment variables (a `.env` file is honored), command line flags.
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, TextIO

from pydantic import ValidationError

from codeecho import __version__
from codeecho.config_file import find_config_file, load_config_file
from codeecho.exceptions import ConfigFileError, OutputError, PathNotFoundError, UnsupportedFormatError
from codeecho.file_manipulation import auto_output_filename, format_bytes, format_duration, progress_bar
from codeecho.logging import logger, setup_logging
from codeecho.output_construction import make_writer, resolve_format
from codeecho.scanner import AnalysisScanner, StreamingScanner
from codeecho.settings import Settings, env_overrides

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from codeecho.models import ScanError, ScanProgress, ScanResult, StreamingStats

COMMANDS = ("scan", "analyze")
TOP_LANGUAGES = 10


class ProgressPrinter:
    """Progress callback drawing a single, throttled status line on stderr."""

    def __init__(self, stream: TextIO | None = None, *, verbose: bool = False, interval: float = 0.1) -> None:
        self.stream = stream if stream is not None else sys.stderr
        self.verbose = verbose
        self.interval = interval
        self._phase = ""
        self._last = 0.0
        self._width = 0

    def __call__(self, progress: ScanProgress) -> None:
        now = time.monotonic()
        phase_changed = progress.phase != self._phase
        if not phase_changed and now - self._last < self.interval:
            return
        if phase_changed and self.verbose and self._width:
            self.stream.write("\n")
            self._width = 0
        self._phase = progress.phase
        self._last = now

        current = progress.current_file
        if len(current) > 60:
            current = "..." + current[-57:]
        line = f"{progress_bar(progress.processed_files, progress.total_files)} {progress.phase}: {current}"
        self.stream.write("\r" + line.ljust(self._width))
        self.stream.flush()
        self._width = len(line)

    def done(self) -> None:
        if self._width:
            self.stream.write("\n")
            self.stream.flush()
            self._width = 0


def _add_common_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("path", nargs="?", default=None, help="Repository root (default: current directory).")
    p.add_argument("-o", "--output", type=str, default=argparse.SUPPRESS, help="Output file.")
    p.add_argument(
        "--config",
        type=str,
        default=argparse.SUPPRESS,
        help="Path to a .codeecho.yaml or .codeecho.json file (default: searched upwards).",
    )
    p.add_argument(
        "--exclude-dirs",
        type=str,
        default=argparse.SUPPRESS,
        help="Comma list of directory names or relative paths to skip.",
    )
    p.add_argument(
        "--include-exts",
        type=str,
        default=argparse.SUPPRESS,
        help="Comma list of extensions to include (empty string: every file).",
    )
    p.add_argument(
        "--no-content",
        dest="include_content",
        action="store_false",
        default=argparse.SUPPRESS,
        help="Only emit metadata, not file contents.",
    )
    p.add_argument(
        "--remove-comments",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Strip comments from source files.",
    )
    p.add_argument(
        "--remove-empty-lines",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Remove empty lines.",
    )
    p.add_argument(
        "--compress",
        dest="compress_code",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Collapse redundant whitespace inside lines.",
    )
    p.add_argument(
        "--no-git",
        dest="git_aware",
        action="store_false",
        default=argparse.SUPPRESS,
        help="Do not read .gitignore nor query git.",
    )
    p.add_argument(
        "--git-timeout",
        type=float,
        default=argparse.SUPPRESS,
        help="Timeout of each git command, in seconds.",
    )
    p.add_argument("--log-file", type=str, default=argparse.SUPPRESS, help="Log file path.")
    p.add_argument("-v", "--verbose", action="store_true", default=argparse.SUPPRESS, help="Debug logs.")
    p.add_argument("-q", "--quiet", action="store_true", default=argparse.SUPPRESS, help="No progress/summary.")
    p.add_argument(
        "--strict",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Exit with status 1 when any error was collected.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the `codeecho` argument parser.

    Every option defaults to `argparse.SUPPRESS` so the parsed namespace only holds
    flags given explicitly, which is what the settings merge needs.

    Returns:
        argparse.ArgumentParser: The parser.
    """
    parser = argparse.ArgumentParser(
        prog="codeecho",
        description="Turn a repository into an AI-ready XML, JSON or Markdown document.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    scan = sub.add_parser("scan", help="Stream the repository to a document (default command).")
    _add_common_options(scan)
    scan.add_argument(
        "-f",
        "--format",
        type=str,
        default=argparse.SUPPRESS,
        help="Output format: xml, json, markdown (md).",
    )
    scan.add_argument(
        "--no-summary",
        dest="include_summary",
        action="store_false",
        default=argparse.SUPPRESS,
        help="Omit the per-language summary.",
    )
    scan.add_argument(
        "--no-tree",
        dest="include_tree",
        action="store_false",
        default=argparse.SUPPRESS,
        help="Omit the directory structure.",
    )
    scan.add_argument(
        "--line-numbers",
        dest="show_line_numbers",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Prefix content lines with their number (xml, markdown).",
    )

    analyze = sub.add_parser("analyze", help="Scan in memory and write the result as JSON.")
    _add_common_options(analyze)
    return parser


def _with_default_command(argv: Sequence[str]) -> list[str]:
    args = list(argv)
    if not args or args[0] not in (*COMMANDS, "-h", "--help", "--version"):
        return ["scan", *args]
    return args


def resolve_settings(
    cli_values: Mapping[str, Any],
    environ: Mapping[str, str | None] | None = None,
) -> tuple[Settings, ConfigFileError | None]:
    """Merge defaults, config file, environment and command line into `Settings`.

    A broken config file does not abort the merge: it is left out and returned so
    the caller decides whether it is fatal.

    Args:
        cli_values (Mapping[str, Any]): flags given explicitly on the command line
        environ (Mapping[str, str | None] | None): environment to read instead of
            `.env` + `os.environ`

    Raises:
        ValidationError: if the merged values are invalid

    Returns:
        tuple[Settings, ConfigFileError | None]: the settings and the config file error, if any
    """
    env = env_overrides(environ)
    start = cli_values.get("path") or env.get("path") or "."
    explicit = cli_values.get("config") or env.get("config") or ""

    file_values: dict[str, Any] = {}
    config_error: ConfigFileError | None = None
    config_path = Path(explicit) if explicit else find_config_file(start)
    if config_path is not None:
        try:
            file_values = load_config_file(config_path).overrides()
        except ConfigFileError as e:
            config_error = e

    merged = {**file_values, **env, **cli_values}
    return Settings.model_validate(merged), config_error


def _configure_logging(settings: Settings) -> None:
    if settings.log_file or settings.verbose:
        level = logging.DEBUG if settings.verbose else logging.INFO
        setup_logging(settings.log_file or None, level=level, force=True)


def format_summary(
    stats: StreamingStats | ScanResult,
    errors: Sequence[ScanError],
    destination: Path | None,
    seconds: float,
) -> str:
    """Render the end-of-scan report printed by the CLI."""
    lines = ["", "Scan complete"]
    if destination is not None:
        lines.append(f"  Output:       {destination}")
    lines += [
        f"  Files:        {stats.total_files} ({stats.text_files} text, {stats.binary_files} binary)",
        f"  Total size:   {format_bytes(stats.total_size)}",
        f"  Duration:     {format_duration(seconds)}",
    ]
    languages = sorted(stats.language_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:TOP_LANGUAGES]
    if languages:
        lines.append("  Languages:")
        lines += [f"    {name:<16} {count}" for name, count in languages]
    if errors:
        by_phase: dict[str, int] = {}
        for err in errors:
            by_phase[str(err.phase)] = by_phase.get(str(err.phase), 0) + 1
        detail = ", ".join(f"{phase}: {count}" for phase, count in sorted(by_phase.items()))
        lines.append(f"  Errors:       {len(errors)} ({detail})")
    return "\n".join(lines)


def _check_root(settings: Settings) -> Path:
    root = Path(settings.path).resolve()
    if not root.is_dir():
        raise PathNotFoundError(folder=root)
    return root


def _open_output(path: Path) -> TextIO:
    try:
        return path.open("w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise OutputError(destination=path, reason=str(e)) from e


def run_scan(settings: Settings) -> int:
    """Stream one repository to its destination file.

    Args:
        settings (Settings): merged settings

    Raises:
        PathNotFoundError: if the path to scan is not a directory
        UnsupportedFormatError: if the format is unknown (nothing is created)
        OutputError: if the destination cannot be created

    Returns:
        int: process exit code
    """
    root = _check_root(settings)
    fmt = resolve_format(settings.format)
    options = settings.scan_options()
    destination = Path(
        settings.output
        or auto_output_filename(root, str(fmt), options.output, include_content=options.include_content),
    )

    stream = _open_output(destination)
    printer = None if settings.quiet else ProgressPrinter(verbose=settings.verbose)
    scanner = StreamingScanner(root, options, progress=printer, skip_paths=[destination])
    started = time.monotonic()
    with stream, make_writer(fmt, stream, options.output) as writer:
        stats = scanner.scan(writer)
    elapsed = time.monotonic() - started
    if printer is not None:
        printer.done()
        print(format_summary(stats, scanner.errors, destination, elapsed))

    if settings.strict and scanner.errors:
        print(f"error: {len(scanner.errors)} error(s) collected in strict mode", file=sys.stderr)
        return 1
    return 0


def run_analyze(settings: Settings) -> int:
    """Scan in memory and write the `ScanResult` as JSON (stdout without `--output`).

    Args:
        settings (Settings): merged settings

    Returns:
        int: process exit code
    """
    root = _check_root(settings)
    destination = Path(settings.output) if settings.output else None
    printer = None if settings.quiet else ProgressPrinter(verbose=settings.verbose)
    scanner = AnalysisScanner(
        root,
        settings.scan_options(),
        progress=printer,
        skip_paths=[destination] if destination is not None else [],
    )
    started = time.monotonic()
    result = scanner.scan()
    payload = result.model_dump_json(indent=2)
    if destination is None:
        sys.stdout.write(payload + "\n")
    else:
        with _open_output(destination) as f:
            f.write(payload + "\n")
    if printer is not None:
        printer.done()
        summary = format_summary(result, scanner.errors, destination, time.monotonic() - started)
        print(summary, file=sys.stderr)

    if settings.strict and scanner.errors:
        print(f"error: {len(scanner.errors)} error(s) collected in strict mode", file=sys.stderr)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the `codeecho` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(_with_default_command(sys.argv[1:] if argv is None else argv))
    cli_values = {k: v for k, v in vars(args).items() if k != "command" and v is not None}

    try:
        settings, config_error = resolve_settings(cli_values)
    except ValidationError as e:
        print(f"error: invalid settings: {e}", file=sys.stderr)
        return 2
    _configure_logging(settings)

    if config_error is not None:
        if settings.strict:
            print(f"error: {config_error}", file=sys.stderr)
            return 1
        logger.warning("config_file_ignored", error=str(config_error))
        print(f"warning: {config_error}", file=sys.stderr)

    try:
        if args.command == "analyze":
            return run_analyze(settings)
        return run_scan(settings)
    except (PathNotFoundError, UnsupportedFormatError, OutputError) as e:
        logger.error("scan_aborted", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
