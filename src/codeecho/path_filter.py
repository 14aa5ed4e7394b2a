"""Decide which filesystem entries a scan visits."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING

import pathspec

from codeecho.exceptions import IgnoreFileError
from codeecho.file_manipulation import file_extension, relpath

if TYPE_CHECKING:
    from codeecho.settings import ScanOptions

IGNORE_FILE = ".gitignore"


class FilterDecision(StrEnum):
    """Outcome of evaluating one filesystem entry."""

    INCLUDE = "include"
    SKIP_ENTRY = "skip-entry"
    SKIP_SUBTREE = "skip-subtree"


def load_ignore_spec(root: Path) -> pathspec.GitIgnoreSpec | None:
    """Parse the `.gitignore` at the scan root.

    Only the root file is read; nested ignore files are not merged.

    Args:
        root (Path): the scan root

    Raises:
        IgnoreFileError: if the file exists but cannot be read or holds an invalid pattern

    Returns:
        pathspec.GitIgnoreSpec | None: the compiled patterns, None when there is no `.gitignore`
    """
    ignore_path = root / IGNORE_FILE
    if not ignore_path.is_file():
        return None
    try:
        lines = ignore_path.read_text(encoding="utf-8", errors="replace").splitlines()
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except (OSError, ValueError) as e:
        raise IgnoreFileError(file=ignore_path, reason=str(e)) from e


class PathFilter:
    """Evaluate entries against exclusion rules, ignore patterns and extensions.

    The checks always run in the same order: excluded directory names, then
    `.gitignore` patterns, then the extension include list (files only).
    """

    def __init__(
        self,
        root: Path,
        options: ScanOptions,
        ignore_spec: pathspec.PathSpec | None = None,
    ) -> None:
        self.root = root
        self.ignore_spec = ignore_spec if options.git_aware else None
        self._excluded = frozenset(options.exclude_dirs)
        self._exts = frozenset(
            e.lower() if e.startswith(".") else "." + e.lower() for e in options.include_exts
        )
        self._names = frozenset(e for e in options.include_exts if not e.startswith("."))

    def evaluate(self, path: Path, *, is_dir: bool) -> FilterDecision:
        """Decide whether `path` is included, skipped, or pruned with its subtree.

        Args:
            path (Path): absolute path of the entry, under the filter root
            is_dir (bool): whether the entry is a directory

        Returns:
            FilterDecision: the decision for this entry
        """
        rel = relpath(path, self.root)
        if is_dir and (path.name in self._excluded or rel in self._excluded):
            return FilterDecision.SKIP_SUBTREE

        if self.ignore_spec is not None:
            candidate = rel + "/" if is_dir else rel
            if self.ignore_spec.match_file(candidate):
                return FilterDecision.SKIP_SUBTREE if is_dir else FilterDecision.SKIP_ENTRY

        if is_dir or self.includes_extension(path):
            return FilterDecision.INCLUDE
        return FilterDecision.SKIP_ENTRY

    def includes_extension(self, path: Path) -> bool:
        if not self._exts:
            return True
        return file_extension(path).lower() in self._exts or path.name in self._names
