"""Repository scanners: a bounded-memory streaming variant and an in-memory analysis variant.

Both scanners share one traversal routine (`_Scanner._walk_into`) and only differ
in the sink that receives each `FileRecord`: the streaming scanner hands it to a
writer immediately, the analysis scanner appends it to a list.
"""

from __future__ import annotations

import os
import stat
import time
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path
from typing import TYPE_CHECKING

from codeecho.classifier import SNIFF_BYTES, classify, classify_path, is_text_content
from codeecho.config import FileRecord
from codeecho.exceptions import IgnoreFileError
from codeecho.file_manipulation import (
    count_lines,
    file_extension,
    format_bytes,
    mtime_representations,
    now_iso,
    relpath,
)
from codeecho.git_info import load_git_metadata
from codeecho.logging import logger
from codeecho.models import GitMetadata, ScanError, ScanPhase, ScanResult, ScanState, StatsCounter, StreamingStats
from codeecho.path_filter import FilterDecision, PathFilter, load_ignore_spec
from codeecho.settings import ScanOptions
from codeecho.telemetry import ErrorCollector, ProgressCallback, ProgressReporter
from codeecho.transform import transform_content

if TYPE_CHECKING:
    from codeecho.output_construction import StreamingWriter

RecordSink = Callable[[FileRecord], None]


def read_file_bytes(path: Path) -> bytes:
    """Read a file, stopping after the first block when that block is binary.

    Args:
        path (Path): the file to read

    Returns:
        bytes: the whole content of text files, the first block of binary ones
    """
    with path.open("rb") as f:
        head = f.read(SNIFF_BYTES + 4)
        if not is_text_content(head):
            return head
        return head + f.read()


class _Scanner:
    """Traversal, filtering, classification and transformation shared by both scanners."""

    def __init__(
        self,
        root: str | Path,
        options: ScanOptions | None = None,
        *,
        progress: ProgressCallback | None = None,
        skip_paths: Iterable[str | Path] = (),
    ) -> None:
        self.root = Path(root).resolve()
        self.options = options or ScanOptions()
        self.state = ScanState.IDLE
        self._progress = ProgressReporter(progress)
        self._errors = ErrorCollector()
        self._skip = frozenset(Path(p).resolve() for p in skip_paths)
        self._git_metadata: GitMetadata | None = None
        self._filter: PathFilter | None = None
        self._scanned = False

    @property
    def errors(self) -> tuple[ScanError, ...]:
        return self._errors.snapshot()

    @property
    def git_metadata(self) -> GitMetadata | None:
        return self._git_metadata

    def load_metadata(self) -> GitMetadata | None:
        """Load `.gitignore` patterns and git metadata (once, and only when git-aware).

        Failures are recorded as `filter-setup` / `metadata-load` errors; the scan then
        runs without ignore filtering or without metadata.

        Returns:
            GitMetadata | None: the repository metadata, if any
        """
        if self._filter is not None:
            return self._git_metadata

        self.state = ScanState.LOADING_METADATA
        self._progress.report(ScanState.LOADING_METADATA, str(self.root), 0, 0)
        ignore_spec = None
        if self.options.git_aware:
            try:
                ignore_spec = load_ignore_spec(self.root)
            except IgnoreFileError as e:
                self._errors.record(e.file, ScanPhase.FILTER_SETUP, e, skipped=False)
            else:
                if ignore_spec is not None:
                    logger.debug("ignore_file_loaded", root=str(self.root), patterns=len(ignore_spec.patterns))

            metadata, git_errors = load_git_metadata(self.root, timeout=self.options.git_timeout)
            for err in git_errors:
                self._errors.record(self.root, ScanPhase.METADATA_LOAD, err, skipped=False)
            self._git_metadata = metadata

        self._filter = PathFilter(self.root, self.options, ignore_spec)
        return self._git_metadata

    def _begin(self, mode: str) -> float:
        if self._scanned:
            msg = "scanner instances are single-use; create a new scanner to scan again"
            raise RuntimeError(msg)
        self._scanned = True
        logger.info("scan_started", root=str(self.root), mode=mode)
        self.load_metadata()
        return time.monotonic()

    def _iter_files(self, *, record_errors: bool) -> Iterator[tuple[Path, str]]:
        """Yield (absolute path, relative path) of every included file, in traversal order."""
        path_filter = self._filter
        if path_filter is None:
            msg = "load_metadata() must run before traversal"
            raise RuntimeError(msg)

        def onerror(err: OSError) -> None:
            if record_errors:
                self._errors.record(err.filename or self.root, ScanPhase.TRAVERSAL, err)

        for dirpath, dirnames, filenames in os.walk(self.root, onerror=onerror):
            current = Path(dirpath)
            dirnames[:] = [
                name
                for name in sorted(dirnames)
                if path_filter.evaluate(current / name, is_dir=True) is FilterDecision.INCLUDE
            ]
            for name in sorted(filenames):
                path = current / name
                if path in self._skip or path.is_symlink():
                    continue
                if path_filter.evaluate(path, is_dir=False) is FilterDecision.INCLUDE:
                    yield path, relpath(path, self.root)

    def _build_record(self, path: Path, rel: str) -> FileRecord | None:
        try:
            st = os.lstat(path)
        except OSError as e:
            self._errors.record(path, ScanPhase.STAT, e)
            return None
        if not stat.S_ISREG(st.st_mode):
            logger.debug("skipping_special_file", path=rel)
            return None

        mod_time, mod_time_formatted = mtime_representations(st.st_mtime)
        classification = classify_path(path)
        content: str | None = None
        line_count: int | None = None
        if self.options.include_content:
            try:
                data = read_file_bytes(path)
            except OSError as e:
                self._errors.record(path, ScanPhase.READ, e, skipped=False)
                content, line_count = "", 0
            else:
                classification = classify(path, data)
                if classification.is_text:
                    text = data.decode("utf-8", errors="replace")
                    content = transform_content(text, classification.language, self.options.output)
                    line_count = count_lines(content)

        return FileRecord(
            path=path,
            relative_path=rel,
            size=st.st_size,
            size_formatted=format_bytes(st.st_size),
            mod_time=mod_time,
            mod_time_formatted=mod_time_formatted,
            language=classification.language,
            extension=file_extension(path),
            is_text=classification.is_text,
            content=content,
            line_count=line_count,
        )

    def _count(self) -> list[str]:
        self.state = ScanState.COUNTING
        self._progress.report(ScanState.COUNTING, "calculating total files...", 0, 0)
        return [rel for _, rel in self._iter_files(record_errors=False)]

    def _walk_into(self, sink: RecordSink, total: int) -> int:
        """Build a record for every included file and pass it to `sink`.

        Args:
            sink (RecordSink): receives each record as soon as it is built
            total (int): expected number of files for progress reporting, 0 if unknown

        Returns:
            int: number of records emitted
        """
        self.state = ScanState.WALKING
        processed = 0
        for path, rel in self._iter_files(record_errors=True):
            self._progress.report(ScanState.WALKING, rel, processed, total)
            record = self._build_record(path, rel)
            if record is None:
                continue
            sink(record)
            processed += 1
        return processed

    def _finish(self, started: float, stats: StreamingStats | ScanResult) -> None:
        self.state = ScanState.DONE
        logger.info(
            "scan_finished",
            root=str(self.root),
            files=stats.total_files,
            errors=len(self._errors),
            seconds=round(time.monotonic() - started, 3),
        )


class StreamingScanner(_Scanner):
    """Single-pass scanner writing each record to a `StreamingWriter` as it is produced.

    Only one `FileRecord` is alive at a time. A counting pre-pass (relative paths
    only) runs when the directory tree is requested or a progress callback wants
    a total. The tree comes from that pre-pass, so a file whose stat fails during
    the main walk is still listed in the tree but gets no file entry; the failure
    is in `errors` with the stat phase.
    """

    def scan(self, writer: StreamingWriter) -> StreamingStats:
        """Stream the repository to `writer` and return the final statistics.

        The writer receives the header, the tree, every file and the footer; closing
        it is left to the caller (use the writer as a context manager).

        Args:
            writer (StreamingWriter): destination writer, in its initial state

        Returns:
            StreamingStats: frozen aggregate counters
        """
        started = self._begin("streaming")
        writer.write_header(self.root, now_iso(), self._git_metadata)

        rels: list[str] = []
        if self.options.output.include_tree or self._progress.enabled:
            rels = self._count()
        total = len(rels)
        writer.write_tree(rels if self.options.output.include_tree else [])
        rels = []

        counter = StatsCounter()

        def emit(record: FileRecord) -> None:
            writer.write_file(record)
            counter.add(record)

        processed = self._walk_into(emit, total)

        self.state = ScanState.FINALIZING
        self._progress.report(ScanState.FINALIZING, "writing summary...", processed, total)
        stats = counter.snapshot()
        writer.write_footer(stats)
        self._finish(started, stats)
        return stats


class AnalysisScanner(_Scanner):
    """Two-pass scanner keeping every record in memory for downstream analysis."""

    def scan(self) -> ScanResult:
        """Count, walk and sort the repository.

        Returns:
            ScanResult: all records sorted by relative path, with aggregate counts
        """
        started = self._begin("analysis")
        scan_time = now_iso()
        total = len(self._count())

        records: list[FileRecord] = []
        counter = StatsCounter()

        def accumulate(record: FileRecord) -> None:
            records.append(record)
            counter.add(record)

        self._walk_into(accumulate, total)

        self.state = ScanState.FINALIZING
        self._progress.report(ScanState.FINALIZING, "organizing results...", total, total)
        records.sort(key=lambda r: r.relative_path)
        result = ScanResult(
            repo_path=self.root,
            scan_time=scan_time,
            files=records,
            total_files=counter.total_files,
            total_size=counter.total_size,
            text_files=counter.text_files,
            binary_files=counter.binary_files,
            language_counts=dict(counter.language_counts),
            git=self._git_metadata,
        )
        self._finish(started, result)
        return result
