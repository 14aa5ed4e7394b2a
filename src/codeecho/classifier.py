"""Language and text/binary classification of files."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codeecho.config import BINARY_EXTENSIONS, EXT2LANG, FILENAME2LANG, SHEBANG2LANG

if TYPE_CHECKING:
    from pathlib import Path

SNIFF_BYTES = 8192

_SHEBANG = re.compile(rb"^#!\s*(?P<interp>\S+)(?:\s+(?P<arg>\S+))?")
_CONTENT_SIGNATURES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"^\s*<\?php\b"), "PHP"),
    (re.compile(r"^\s*<\?xml\b"), "XML"),
    (re.compile(r"^\s*<!DOCTYPE\s+html", re.IGNORECASE), "HTML"),
    (re.compile(r"^\s*<html\b", re.IGNORECASE), "HTML"),
    (re.compile(r"^package\s+\w+\s*$.*^func\s", re.MULTILINE | re.DOTALL), "Go"),
    (re.compile(r"^(?:from\s+[\w.]+\s+)?import\s+[\w.]+.*^def\s+\w+\(", re.MULTILINE | re.DOTALL), "Python"),
    (re.compile(r"^\s*FROM\s+\S+.*^\s*(?:RUN|CMD|ENTRYPOINT)\s", re.MULTILINE | re.DOTALL), "Dockerfile"),
)


@dataclass(frozen=True)
class Classification:
    """Language tag (possibly empty) and text/binary flag of a file."""

    language: str
    is_text: bool


def language_from_path(path: Path) -> str:
    """Language tag from the extension, then from the exact filename."""
    language = EXT2LANG.get(path.suffix.lower(), "")
    if language:
        return language
    return FILENAME2LANG.get(path.name.lower(), "")


def classify_path(path: Path) -> Classification:
    """Classify a file from its name only.

    Known languages are text, extensions in `BINARY_EXTENSIONS` are binary and
    anything else is assumed to be text until content says otherwise.

    Args:
        path (Path): the file path

    Returns:
        Classification: language and text flag
    """
    language = language_from_path(path)
    if language:
        return Classification(language=language, is_text=True)
    return Classification(language="", is_text=path.suffix.lower() not in BINARY_EXTENSIONS)


def is_text_content(data: bytes) -> bool:
    """Check if a block of bytes is text.

    The block is binary if it holds a null byte or is not valid UTF-8. A multi-byte
    sequence cut off at the end of the block is tolerated.

    Args:
        data (bytes): the first bytes of the file (at most `SNIFF_BYTES` are inspected)

    Returns:
        bool: True if the content looks like text
    """
    block = data[:SNIFF_BYTES]
    if b"\x00" in block:
        return False
    try:
        block.decode("utf-8")
    except UnicodeDecodeError as e:
        truncated = len(data) > SNIFF_BYTES and e.start >= len(block) - 3 and e.reason == "unexpected end of data"
        return truncated
    return True


def language_from_content(data: bytes) -> str:
    """Guess a language from a shebang line or a content signature.

    Args:
        data (bytes): file content (only the first block is inspected)

    Returns:
        str: the language tag, or "" if nothing matched
    """
    block = data[:SNIFF_BYTES]
    m = _SHEBANG.match(block)
    if m:
        interp = m.group("interp").rsplit(b"/", 1)[-1].decode("ascii", errors="ignore")
        if interp == "env" and m.group("arg"):
            interp = m.group("arg").decode("ascii", errors="ignore")
        interp = re.sub(r"[\d.]+$", "", interp) or interp
        language = SHEBANG2LANG.get(interp, "")
        if language:
            return language

    text = block.decode("utf-8", errors="ignore")
    for pattern, language in _CONTENT_SIGNATURES:
        if pattern.search(text):
            return language
    return ""


def classify(path: Path, content: bytes | None = None) -> Classification:
    """Classify a file from its path and, when available, its content.

    Path evidence comes first (extension, then exact filename). When content is
    given it decides the text/binary flag in both directions, and it supplies a
    language when the path stages found none.

    Args:
        path (Path): the file path
        content (bytes | None): the file bytes (or at least the first block), if read

    Returns:
        Classification: language and text flag
    """
    by_path = classify_path(path)
    if content is None:
        return by_path

    is_text = is_text_content(content)
    language = by_path.language
    if not language and is_text:
        language = language_from_content(content)
    return Classification(language=language, is_text=is_text)
