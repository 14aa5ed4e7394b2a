"""Text-level rewriting of file content: comments, blank lines, whitespace.

Comment removal scans line by line and tracks string literals only within a line.
A comment marker inside a string literal that spans several lines (Python
triple-quoted strings, JavaScript template literals) can therefore be taken
for a real comment. This is a known limitation of the heuristic.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from codeecho.config import COMMENT_SYNTAX, CommentSyntax

if TYPE_CHECKING:
    from codeecho.settings import OutputOptions

_INNER_WHITESPACE = re.compile(r"[ \t]{2,}|\t")


def _split_keepends(text: str) -> tuple[list[str], bool]:
    trailing = text.endswith("\n")
    lines = text.split("\n")
    if trailing:
        lines.pop()
    return lines, trailing


def _join(lines: list[str], trailing: bool) -> str:
    out = "\n".join(lines)
    return out + "\n" if trailing and lines else out


def _starts_comment(line: str, i: int, prefix: str, syntax: CommentSyntax, kept: list[str]) -> bool:
    if not line.startswith(prefix, i):
        return False
    # a removed block comment leaves a boundary behind it
    return not syntax.needs_space or not kept or kept[-1] in " \t"


def _strip_line(line: str, syntax: CommentSyntax, block_close: str | None) -> tuple[str, str | None, bool]:
    """Remove comments from one line.

    Returns:
        tuple[str, str | None, bool]: the kept text, the closing marker of a block
            comment still open at the end of the line, and whether a comment was seen
    """
    out: list[str] = []
    quote = ""
    seen = block_close is not None
    i = 0
    n = len(line)
    while i < n:
        if block_close is not None:
            end = line.find(block_close, i)
            if end < 0:
                return "".join(out), block_close, True
            i = end + len(block_close)
            block_close = None
            rest = line[i:]
            if out and rest.strip() and out[-1] not in " \t" and rest[0] not in " \t":
                out.append(" ")
            continue

        ch = line[i]
        if quote:
            out.append(ch)
            if ch == "\\" and i + 1 < n:
                out.append(line[i + 1])
                i += 2
                continue
            if ch == quote:
                quote = ""
            i += 1
            continue

        opened = next((pair for pair in syntax.block if line.startswith(pair[0], i)), None)
        if opened is not None:
            seen = True
            block_close = opened[1]
            i += len(opened[0])
            continue
        if any(_starts_comment(line, i, prefix, syntax, out) for prefix in syntax.line):
            return "".join(out), None, True
        if ch in syntax.quotes:
            quote = ch
        out.append(ch)
        i += 1
    return "".join(out), block_close, seen


def strip_comments(text: str, language: str) -> str:
    """Remove line and block comments of `language` from `text`.

    Lines that held nothing but a comment are dropped, code before a trailing
    comment is kept (trailing whitespace trimmed), and a shebang on the first line
    is preserved. Languages without a known comment syntax are returned unchanged.

    Args:
        text (str): the file content
        language (str): the language tag of the file

    Returns:
        str: the content without comments
    """
    syntax = COMMENT_SYNTAX.get(language)
    if syntax is None or not text:
        return text

    lines, trailing = _split_keepends(text)
    kept: list[str] = []
    block_close: str | None = None
    for idx, line in enumerate(lines):
        if idx == 0 and line.startswith("#!") and block_close is None:
            kept.append(line)
            continue
        stripped, block_close, seen = _strip_line(line, syntax, block_close)
        if not seen:
            kept.append(line)
        elif stripped.strip():
            kept.append(stripped.rstrip())
    return _join(kept, trailing)


def remove_empty_lines(text: str) -> str:
    """Drop lines that are empty once trailing whitespace is removed."""
    lines, trailing = _split_keepends(text)
    return _join([ln for ln in lines if ln.rstrip()], trailing)


def compress_whitespace(text: str) -> str:
    """Collapse runs of spaces/tabs inside lines and trim trailing whitespace.

    Leading indentation is kept as is so indentation-sensitive languages still parse.
    """
    lines, trailing = _split_keepends(text)
    out: list[str] = []
    for ln in lines:
        body = ln.rstrip()
        indent_len = len(body) - len(body.lstrip(" \t"))
        indent, rest = body[:indent_len], body[indent_len:]
        out.append(indent + _INNER_WHITESPACE.sub(" ", rest))
    return _join(out, trailing)


def transform_content(text: str, language: str, options: OutputOptions) -> str:
    """Apply the enabled transformations in order: comments, blank lines, whitespace.

    Args:
        text (str): raw file content
        language (str): language tag of the file
        options (OutputOptions): which transformations are enabled

    Returns:
        str: the transformed content
    """
    if options.remove_comments:
        text = strip_comments(text, language)
    if options.remove_empty_lines:
        text = remove_empty_lines(text)
    if options.compress_code:
        text = compress_whitespace(text)
    return text
