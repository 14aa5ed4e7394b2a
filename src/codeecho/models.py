"""Scan result, statistics and telemetry models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from codeecho.config import PROCESSED_BY, FileRecord


class ScanPhase(StrEnum):
    """Phase in which a non-fatal scan error occurred."""

    FILTER_SETUP = "filter-setup"
    METADATA_LOAD = "metadata-load"
    TRAVERSAL = "traversal"
    STAT = "stat"
    READ = "read"


class ScanState(StrEnum):
    """Lifecycle of one scanner instance."""

    IDLE = "idle"
    LOADING_METADATA = "loading-metadata"
    COUNTING = "counting"
    WALKING = "walking"
    FINALIZING = "finalizing"
    DONE = "done"


class GitMetadata(BaseModel):
    """Repository identity obtained from git."""

    model_config = ConfigDict(frozen=True)

    branch: str = Field("", description="Branch name or detached-state label")
    commit_hash: str = Field("", description="Short commit hash")
    author: str = Field("", description="Author of the last commit")
    commit_date: str = Field("", description="Date of the last commit (ISO)")
    commit_count: int = Field(0, description="Number of commits, -1 when unknown")

    @property
    def is_shallow(self) -> bool:
        return self.commit_count == -1


@dataclass(frozen=True)
class ScanError:
    """A non-fatal failure recorded during a scan."""

    path: str
    phase: ScanPhase
    error: BaseException
    skipped: bool = True

    def __str__(self) -> str:
        return f"[{self.phase}] {self.path}: {self.error}"


@dataclass(frozen=True)
class ScanProgress:
    """One progress notification pushed to the caller's callback."""

    phase: str
    current_file: str
    processed_files: int
    total_files: int

    @property
    def percentage(self) -> float:
        if self.total_files <= 0:
            return 0.0
        return self.processed_files / self.total_files * 100


class StreamingStats(BaseModel):
    """Aggregate counters of a scan, frozen once the scan has returned."""

    model_config = ConfigDict(frozen=True)

    total_files: int = 0
    total_size: int = 0
    text_files: int = 0
    binary_files: int = 0
    language_counts: dict[str, int] = Field(default_factory=dict)


class ScanResult(BaseModel):
    """Complete, in-memory result of an analysis scan."""

    repo_path: Path
    scan_time: str
    processed_by: str = PROCESSED_BY
    files: list[FileRecord] = Field(default_factory=list)
    total_files: int = 0
    total_size: int = 0
    text_files: int = 0
    binary_files: int = 0
    language_counts: dict[str, int] = Field(default_factory=dict)
    git: GitMetadata | None = None


class StatsCounter:
    """Accumulates scan counters; values only ever increase."""

    def __init__(self) -> None:
        self.total_files = 0
        self.total_size = 0
        self.text_files = 0
        self.binary_files = 0
        self.language_counts: dict[str, int] = {}

    def add(self, record: FileRecord) -> None:
        self.total_files += 1
        self.total_size += record.size
        if record.is_text:
            self.text_files += 1
        else:
            self.binary_files += 1
        if record.language:
            self.language_counts[record.language] = self.language_counts.get(record.language, 0) + 1

    def snapshot(self) -> StreamingStats:
        return StreamingStats(
            total_files=self.total_files,
            total_size=self.total_size,
            text_files=self.text_files,
            binary_files=self.binary_files,
            language_counts=dict(self.language_counts),
        )
