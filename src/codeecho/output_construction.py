from __future__ import annotations

import json
import re
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING, Any, ClassVar, Self
from xml.sax.saxutils import escape, quoteattr

from codeecho import __version__
from codeecho.config import PROCESSED_BY, fence_language
from codeecho.exceptions import UnsupportedFormatError, WriterStateError
from codeecho.file_manipulation import build_tree_lines, format_bytes

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path
    from types import TracebackType
    from typing import TextIO

    from codeecho.config import FileRecord
    from codeecho.models import GitMetadata, StreamingStats
    from codeecho.settings import OutputOptions

_INVALID_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")
_BACKTICK_RUN = re.compile(r"`+")


class OutputFormat(StrEnum):
    """Document encodings a scan can be streamed to."""

    XML = "xml"
    JSON = "json"
    MARKDOWN = "markdown"


_FORMAT_ALIASES: dict[str, OutputFormat] = {"md": OutputFormat.MARKDOWN}


def resolve_format(name: str) -> OutputFormat:
    """Map a user supplied format name (case-insensitive, `md` alias) to an `OutputFormat`.

    Raises:
        UnsupportedFormatError: if no writer implements the format
    """
    key = (name or "").strip().lower()
    if key in _FORMAT_ALIASES:
        return _FORMAT_ALIASES[key]
    try:
        return OutputFormat(key)
    except ValueError:
        raise UnsupportedFormatError(format=name) from None


def number_lines(content: str) -> str:
    """Prefix each line with a right-aligned line number: `   1 | code`."""
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    width = max(4, len(str(len(lines))))
    return "\n".join(f"{i:>{width}} | {ln}" for i, ln in enumerate(lines, start=1))


class _State(StrEnum):
    NEW = "new"
    HEADER = "header"
    TREE = "tree"
    FOOTER = "footer"
    CLOSED = "closed"


class StreamingWriter(ABC):
    """Streaming document writer shared by every output format.

    Calls must follow `write_header` → `write_tree` → `write_file`* → `write_footer`
    → `close`. Out-of-order calls raise `WriterStateError`. `close` can be called
    at any time (and more than once): it finishes whatever part of the document is
    open, so an interrupted scan still leaves a well-formed file.
    """

    format: ClassVar[OutputFormat]

    def __init__(self, stream: TextIO, options: OutputOptions) -> None:
        self.stream = stream
        self.options = options
        self.files_written = 0
        self.root_name = ""
        self._state = _State.NEW

    @property
    def state(self) -> str:
        return str(self._state)

    def _advance(self, operation: str, expected: _State, target: _State) -> None:
        if self._state is not expected:
            raise WriterStateError(operation=operation, state=str(self._state))
        self._state = target

    def write_header(self, root: Path, scan_time: str, git: GitMetadata | None = None) -> None:
        self._advance("write header", _State.NEW, _State.HEADER)
        self.root_name = root.name or str(root)
        self._header(root, scan_time, git)

    def write_tree(self, relative_paths: Sequence[str]) -> None:
        self._advance("write tree", _State.HEADER, _State.TREE)
        self._tree(self.root_name, relative_paths)

    def write_file(self, record: FileRecord) -> None:
        self._advance("write file", _State.TREE, _State.TREE)
        self._file(record)
        self.files_written += 1

    def write_footer(self, stats: StreamingStats) -> None:
        self._advance("write footer", _State.TREE, _State.FOOTER)
        self._footer(stats)

    def close(self) -> None:
        if self._state is _State.CLOSED:
            return
        try:
            self._finalize(self._state)
            self.stream.flush()
        finally:
            self._state = _State.CLOSED

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _content_for(self, record: FileRecord) -> str | None:
        if record.content is None:
            return None
        if self.options.show_line_numbers:
            return number_lines(record.content)
        return record.content

    def _write(self, text: str) -> None:
        self.stream.write(text)

    @abstractmethod
    def _header(self, root: Path, scan_time: str, git: GitMetadata | None) -> None: ...

    @abstractmethod
    def _tree(self, root_name: str, relative_paths: Sequence[str]) -> None: ...

    @abstractmethod
    def _file(self, record: FileRecord) -> None: ...

    @abstractmethod
    def _footer(self, stats: StreamingStats) -> None: ...

    @abstractmethod
    def _finalize(self, state: _State) -> None: ...


def _sorted_languages(stats: StreamingStats) -> list[tuple[str, int]]:
    return sorted(stats.language_counts.items(), key=lambda kv: (-kv[1], kv[0]))


# ------------------------------ XML --------------------------------------------


def xml_text(value: str) -> str:
    """Escape text content and drop characters XML 1.0 does not allow."""
    return escape(_INVALID_XML_CHARS.sub("", value))


def xml_attr(value: object) -> str:
    """Quote and escape an attribute value, quotes included."""
    return quoteattr(_INVALID_XML_CHARS.sub("", str(value)))


class XMLWriter(StreamingWriter):
    """Markup encoding: one `<repository>` element, files as `<file>` children."""

    format = OutputFormat.XML

    def _header(self, root: Path, scan_time: str, git: GitMetadata | None) -> None:
        self._write('<?xml version="1.0" encoding="UTF-8"?>\n')
        self._write(
            f"<repository path={xml_attr(root)} scan_time={xml_attr(scan_time)} "
            f"processed_by={xml_attr(PROCESSED_BY)} version={xml_attr(__version__)}>\n",
        )
        if git is not None:
            self._write(
                f"  <git branch={xml_attr(git.branch)} commit={xml_attr(git.commit_hash)} "
                f"author={xml_attr(git.author)} date={xml_attr(git.commit_date)} "
                f"commit_count={xml_attr(git.commit_count)}/>\n",
            )

    def _tree(self, root_name: str, relative_paths: Sequence[str]) -> None:
        if self.options.include_tree and relative_paths:
            tree = "\n".join(build_tree_lines(root_name, relative_paths))
            self._write(f"  <directory_structure>\n{xml_text(tree)}\n  </directory_structure>\n")
        self._write("  <files>\n")

    def _file(self, record: FileRecord) -> None:
        attrs = [
            f"path={xml_attr(record.relative_path)}",
            f"size={xml_attr(record.size)}",
            f"size_formatted={xml_attr(record.size_formatted)}",
            f"language={xml_attr(record.language)}",
            f"extension={xml_attr(record.extension)}",
            f"modified={xml_attr(record.mod_time)}",
            f"is_text={xml_attr(str(record.is_text).lower())}",
        ]
        if record.line_count is not None:
            attrs.append(f"lines={xml_attr(record.line_count)}")
        content = self._content_for(record)
        if content is None:
            self._write(f"    <file {' '.join(attrs)}/>\n")
            return
        self._write(f"    <file {' '.join(attrs)}>\n{xml_text(content)}\n    </file>\n")

    def _footer(self, stats: StreamingStats) -> None:
        self._write("  </files>\n")
        self._write(
            f"  <summary total_files={xml_attr(stats.total_files)} total_size={xml_attr(stats.total_size)} "
            f"total_size_formatted={xml_attr(format_bytes(stats.total_size))} "
            f"text_files={xml_attr(stats.text_files)} binary_files={xml_attr(stats.binary_files)}",
        )
        if self.options.include_summary and stats.language_counts:
            self._write(">\n")
            for language, count in _sorted_languages(stats):
                self._write(f"    <language name={xml_attr(language)} count={xml_attr(count)}/>\n")
            self._write("  </summary>\n")
        else:
            self._write("/>\n")
        self._write("</repository>\n")

    def _finalize(self, state: _State) -> None:
        if state is _State.HEADER:
            self._write("  <files>\n  </files>\n</repository>\n")
        elif state is _State.TREE:
            self._write("  </files>\n</repository>\n")


# ------------------------------ JSON -------------------------------------------


def _dumps(value: Any) -> str:  # noqa: ANN401
    return json.dumps(value, ensure_ascii=False)


class JSONWriter(StreamingWriter):
    """Data-interchange encoding: a single JSON object written incrementally."""

    format = OutputFormat.JSON

    def _header(self, root: Path, scan_time: str, git: GitMetadata | None) -> None:
        self._write("{\n")
        self._write(f'  "repository": {_dumps(str(root))},\n')
        self._write(f'  "scan_time": {_dumps(scan_time)},\n')
        self._write(f'  "processed_by": {_dumps(PROCESSED_BY)},\n')
        self._write(f'  "version": {_dumps(__version__)}')
        if git is not None:
            self._write(f',\n  "git": {_dumps(git.model_dump(mode="json"))}')

    def _tree(self, root_name: str, relative_paths: Sequence[str]) -> None:
        if self.options.include_tree:
            self._write(f',\n  "directory_tree": {_dumps(sorted(relative_paths))}')
        self._write(',\n  "files": [')

    def _file(self, record: FileRecord) -> None:
        item: dict[str, Any] = {
            "path": record.relative_path,
            "size": record.size,
            "size_formatted": record.size_formatted,
            "language": record.language,
            "extension": record.extension,
            "modified": record.mod_time,
            "is_text": record.is_text,
        }
        if record.has_content:
            item["line_count"] = record.line_count
            item["content"] = record.content
        sep = "\n    " if self.files_written == 0 else ",\n    "
        self._write(sep + _dumps(item))

    def _footer(self, stats: StreamingStats) -> None:
        self._write("\n  ],\n")
        statistics: dict[str, Any] = {
            "total_files": stats.total_files,
            "total_size": stats.total_size,
            "total_size_formatted": format_bytes(stats.total_size),
            "text_files": stats.text_files,
            "binary_files": stats.binary_files,
        }
        if self.options.include_summary:
            statistics["language_counts"] = dict(_sorted_languages(stats))
        self._write(f'  "statistics": {_dumps(statistics)}\n}}\n')

    def _finalize(self, state: _State) -> None:
        if state is _State.HEADER:
            self._write("\n}\n")
        elif state is _State.TREE:
            self._write("\n  ]\n}\n")


# ------------------------------ Markdown ---------------------------------------


def code_fence(content: str) -> str:
    """Return a backtick fence longer than any backtick run inside `content`."""
    longest = max((len(m.group()) for m in _BACKTICK_RUN.finditer(content)), default=0)
    return "`" * max(3, longest + 1)


def escape_line_breaks(text: str) -> str:
    """Spell out CR and LF so a path stays on one Markdown line."""
    return text.replace("\r", "\\r").replace("\n", "\\n")


def inline_code(text: str) -> str:
    """Wrap text in an inline code span that survives backticks and line breaks inside it."""
    text = escape_line_breaks(text)
    longest = max((len(m.group()) for m in _BACKTICK_RUN.finditer(text)), default=0)
    ticks = "`" * (longest + 1)
    pad = " " if text.startswith("`") or text.endswith("`") else ""
    return f"{ticks}{pad}{text}{pad}{ticks}"


def _md_cell(text: str) -> str:
    return text.replace("|", "\\|")


class MarkdownWriter(StreamingWriter):
    """Prose encoding: headings and metadata lists, file contents in fenced blocks."""

    format = OutputFormat.MARKDOWN

    def _header(self, root: Path, scan_time: str, git: GitMetadata | None) -> None:
        self._write(f"# Repository: {inline_code(self.root_name)}\n\n")
        self._write(f"- **Path**: {inline_code(str(root))}\n")
        self._write(f"- **Scanned**: {scan_time}\n")
        self._write(f"- **Generated by**: {PROCESSED_BY} {__version__}\n\n")
        if git is not None:
            commits = "unknown (shallow clone)" if git.is_shallow else str(git.commit_count)
            self._write("## Git\n\n")
            self._write(f"- **Branch**: {inline_code(git.branch or '-')}\n")
            self._write(f"- **Commit**: {inline_code(git.commit_hash or '-')}\n")
            self._write(f"- **Author**: {git.author or '-'}\n")
            self._write(f"- **Date**: {git.commit_date or '-'}\n")
            self._write(f"- **Commits**: {commits}\n\n")

    def _tree(self, root_name: str, relative_paths: Sequence[str]) -> None:
        if self.options.include_tree and relative_paths:
            tree = "\n".join(build_tree_lines(root_name, [escape_line_breaks(p) for p in relative_paths]))
            fence = code_fence(tree)
            self._write(f"## Directory Structure\n\n{fence}text\n{tree}\n{fence}\n\n")
        self._write("## Files\n\n")

    def _file(self, record: FileRecord) -> None:
        self._write(f"### {inline_code(record.relative_path)}\n\n")
        self._write(f"- **Size**: {record.size_formatted or format_bytes(record.size)}\n")
        self._write(f"- **Language**: {record.language or 'unknown'}\n")
        self._write(f"- **Modified**: {record.mod_time_formatted or record.mod_time}\n")
        if record.line_count is not None:
            self._write(f"- **Lines**: {record.line_count}\n")
        self._write("\n")

        content = self._content_for(record)
        if content is not None:
            fence = code_fence(content)
            self._write(f"{fence}{fence_language(record.language)}\n{content}\n{fence}\n\n")
        elif not record.is_text:
            self._write("_Binary file, content omitted._\n\n")

    def _footer(self, stats: StreamingStats) -> None:
        self._write("## Summary\n\n")
        self._write(f"- **Total files**: {stats.total_files}\n")
        self._write(f"- **Total size**: {format_bytes(stats.total_size)}\n")
        self._write(f"- **Text files**: {stats.text_files}\n")
        self._write(f"- **Binary files**: {stats.binary_files}\n")
        if self.options.include_summary and stats.language_counts:
            self._write("\n| Language | Files |\n| --- | ---: |\n")
            for language, count in _sorted_languages(stats):
                self._write(f"| {_md_cell(language)} | {count} |\n")

    def _finalize(self, state: _State) -> None:
        if state in {_State.HEADER, _State.TREE}:
            self._write("\n_Output incomplete: the scan did not finish._\n")


WRITERS: dict[OutputFormat, type[StreamingWriter]] = {
    OutputFormat.XML: XMLWriter,
    OutputFormat.JSON: JSONWriter,
    OutputFormat.MARKDOWN: MarkdownWriter,
}


def make_writer(fmt: str | OutputFormat, stream: TextIO, options: OutputOptions) -> StreamingWriter:
    """Create the streaming writer for `fmt`.

    The format is resolved before the stream is touched, so an unsupported format
    never leaves a partial document behind.

    Args:
        fmt (str | OutputFormat): `xml`, `json`, `markdown` or `md`
        stream (TextIO): destination text stream
        options (OutputOptions): output options

    Raises:
        UnsupportedFormatError: if the format is unknown

    Returns:
        StreamingWriter: a writer in its initial state
    """
    writer_cls = WRITERS[resolve_format(str(fmt))]
    return writer_cls(stream, options)
