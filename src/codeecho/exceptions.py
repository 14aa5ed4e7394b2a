from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path


class GitErrorKind(StrEnum):
    """Why a git invocation did not produce output."""

    TIMEOUT = "timeout"
    FAILED = "failed"
    NOT_FOUND = "not-found"


@dataclass(frozen=True)
class CodeEchoError(Exception):
    """Base exception for errors in the codeecho package."""


@dataclass(frozen=True)
class GitCommandError(CodeEchoError):
    """Raised when a git command fails, times out or git cannot be found."""

    command: str
    kind: GitErrorKind
    returncode: int | None = None
    stderr: str = ""
    timeout: float | None = None

    def __str__(self) -> str:
        if self.kind is GitErrorKind.TIMEOUT:
            return f"git command timed out after {self.timeout}s: {self.command}"
        if self.kind is GitErrorKind.NOT_FOUND:
            return "git command not found"
        msg = f"git command failed ({self.returncode}): {self.command}"
        return f"{msg} (stderr: {self.stderr})" if self.stderr else msg

    @property
    def is_timeout(self) -> bool:
        return self.kind is GitErrorKind.TIMEOUT


@dataclass(frozen=True)
class IgnoreFileError(CodeEchoError):
    """Raised when the root `.gitignore` cannot be read or parsed."""

    file: Path
    reason: str

    def __str__(self) -> str:
        return f"failed to parse {self.file}: {self.reason}"


@dataclass(frozen=True)
class UnsupportedFormatError(CodeEchoError):
    """Raised when an output format is requested that no writer implements."""

    format: str
    message: str = "Unsupported output format."

    def __str__(self) -> str:
        return f"unsupported format: {self.format}"


@dataclass(frozen=True)
class WriterStateError(CodeEchoError):
    """Raised when streaming writer methods are called out of order."""

    operation: str
    state: str

    def __str__(self) -> str:
        return f"cannot {self.operation} while writer is in state {self.state!r}"


@dataclass(frozen=True)
class OutputError(CodeEchoError):
    """Raised when the destination output cannot be created."""

    destination: Path
    reason: str

    def __str__(self) -> str:
        return f"failed to create output file {self.destination}: {self.reason}"


@dataclass(frozen=True)
class ConfigFileError(CodeEchoError):
    """Raised when a `.codeecho.yaml`/`.codeecho.json` file is unusable."""

    file: Path
    reason: str

    def __str__(self) -> str:
        return f"invalid config file {self.file}: {self.reason}"


@dataclass(frozen=True)
class PathNotFoundError(CodeEchoError):
    """Raised when the path to scan does not exist."""

    folder: Path
    message: str = "The specified path does not exist."

    def __str__(self) -> str:
        return f"path does not exist: {self.folder}"
