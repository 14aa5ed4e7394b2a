from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dotenv import dotenv_values, find_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

from codeecho.config import DEFAULT_EXCLUDE_DIRS, DEFAULT_INCLUDE_EXTS

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_FILE = find_dotenv(usecwd=True)
ENV_PREFIX = "CODEECHO_"


class OutputOptions(BaseModel):
    """What the writers emit and how file content is rewritten."""

    model_config = ConfigDict(frozen=True)

    include_summary: bool = Field(default=True, description="Include the per-language summary.")
    include_tree: bool = Field(default=True, description="Include the directory structure.")
    show_line_numbers: bool = Field(default=False, description="Prefix content lines with numbers.")
    remove_comments: bool = Field(default=False, description="Strip comments from source files.")
    remove_empty_lines: bool = Field(default=False, description="Remove empty lines.")
    compress_code: bool = Field(default=False, description="Collapse redundant whitespace.")

    @property
    def transforms_content(self) -> bool:
        return self.remove_comments or self.remove_empty_lines or self.compress_code


class ScanOptions(BaseModel):
    """Immutable configuration of one scan."""

    model_config = ConfigDict(frozen=True)

    exclude_dirs: tuple[str, ...] = Field(
        default=DEFAULT_EXCLUDE_DIRS,
        description="Directory names (or root-relative paths) never descended into.",
    )
    include_exts: tuple[str, ...] = Field(
        default=DEFAULT_INCLUDE_EXTS,
        description="Extensions or exact filenames to include; empty includes everything.",
    )
    include_content: bool = Field(default=True, description="Read and emit file contents.")
    git_aware: bool = Field(default=True, description="Load git metadata and .gitignore.")
    git_timeout: float = Field(default=5.0, gt=0, description="Timeout of each git call (s).")
    output: OutputOptions = Field(default_factory=OutputOptions)

    @field_validator("exclude_dirs", "include_exts", mode="before")
    @classmethod
    def _strip_entries(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            value = value.split(",")
        if isinstance(value, (list, tuple, set, frozenset)):
            return tuple(v.strip().strip("/").replace("\\", "/") for v in value if v and v.strip())
        return value


class Settings(BaseModel):
    """Configuration settings of the codeecho command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    path: Path = Field(default=Path("."), description="Repository root to scan.")
    output: str = Field(default="", description="Output file (default: auto-generated).")
    format: str = Field(default="xml", description="Output format: xml, json, markdown.")
    config: str = Field(default="", description="Explicit .codeecho.yaml/.json file.")
    log_file: str = Field(default="", description="Log file path.")

    include_summary: bool = Field(default=True, description="Include file summary section.")
    include_tree: bool = Field(default=True, description="Include directory structure.")
    show_line_numbers: bool = Field(default=False, description="Show line numbers.")
    include_content: bool = Field(default=True, description="Include file contents.")

    compress_code: bool = Field(default=False, description="Remove unnecessary whitespace.")
    remove_comments: bool = Field(default=False, description="Strip comments.")
    remove_empty_lines: bool = Field(default=False, description="Remove empty lines.")

    exclude_dirs: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS),
        description="Directories to exclude.",
    )
    include_exts: list[str] = Field(
        default_factory=lambda: list(DEFAULT_INCLUDE_EXTS),
        description="File extensions to include.",
    )

    git_aware: bool = Field(default=True, description="Enable git-aware scanning.")
    git_timeout: float = Field(default=5.0, gt=0, description="Timeout for git commands (s).")

    verbose: bool = Field(default=False, description="Show detailed progress.")
    quiet: bool = Field(default=False, description="Suppress progress output.")
    strict: bool = Field(default=False, description="Fail when any error was collected.")

    @field_validator("exclude_dirs", "include_exts", mode="before")
    @classmethod
    def _split_csv(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

    def output_options(self) -> OutputOptions:
        return OutputOptions(
            include_summary=self.include_summary,
            include_tree=self.include_tree,
            show_line_numbers=self.show_line_numbers,
            remove_comments=self.remove_comments,
            remove_empty_lines=self.remove_empty_lines,
            compress_code=self.compress_code,
        )

    def scan_options(self) -> ScanOptions:
        """Freeze the CLI settings into the options handed to a scanner."""
        return ScanOptions(
            exclude_dirs=tuple(self.exclude_dirs),
            include_exts=tuple(self.include_exts),
            include_content=self.include_content,
            git_aware=self.git_aware,
            git_timeout=self.git_timeout,
            output=self.output_options(),
        )


def env_overrides(environ: Mapping[str, str | None] | None = None) -> dict[str, Any]:
    """Collect `CODEECHO_*` settings from the `.env` file and the process environment.

    Variables from the environment win over the `.env` file. Only names matching a
    `Settings` field are kept, e.g. `CODEECHO_GIT_TIMEOUT=10` or
    `CODEECHO_EXCLUDE_DIRS=.git,node_modules`.

    Args:
        environ: Mapping to read instead of `.env` + `os.environ` (used by tests).

    Returns:
        dict[str, Any]: raw values keyed by settings field name
    """
    if environ is None:
        merged: dict[str, str | None] = dict(dotenv_values(ENV_FILE)) if ENV_FILE else {}
        merged.update(os.environ)
    else:
        merged = dict(environ)

    out: dict[str, Any] = {}
    for key, value in merged.items():
        if not key.startswith(ENV_PREFIX) or value is None:
            continue
        name = key[len(ENV_PREFIX) :].lower()
        if name in Settings.model_fields:
            out[name] = value
    return out
