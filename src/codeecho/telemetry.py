from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from codeecho.logging import logger
from codeecho.models import ScanError, ScanPhase, ScanProgress

if TYPE_CHECKING:
    from pathlib import Path

ProgressCallback = Callable[[ScanProgress], None]


class ProgressReporter:
    """Push progress notifications synchronously to an optional callback."""

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self.callback = callback

    @property
    def enabled(self) -> bool:
        return self.callback is not None

    def report(self, phase: str, current_file: str, processed: int, total: int) -> None:
        if self.callback is None:
            return
        self.callback(
            ScanProgress(
                phase=phase,
                current_file=current_file,
                processed_files=processed,
                total_files=total,
            ),
        )


class ErrorCollector:
    """Append-only list of the non-fatal errors of one scan."""

    def __init__(self) -> None:
        self._errors: list[ScanError] = []

    def record(
        self,
        path: str | Path,
        phase: ScanPhase,
        error: BaseException,
        *,
        skipped: bool = True,
    ) -> ScanError:
        """Record a failure and log it.

        Args:
            path (str | Path): the offending path
            phase (ScanPhase): where the failure happened
            error (BaseException): the underlying failure
            skipped (bool): whether the entry was left out of the scan because of it

        Returns:
            ScanError: the recorded error
        """
        scan_error = ScanError(path=str(path), phase=phase, error=error, skipped=skipped)
        self._errors.append(scan_error)
        logger.warning(
            "scan_error",
            path=scan_error.path,
            phase=str(phase),
            error=str(error),
            skipped=skipped,
        )
        return scan_error

    def __iter__(self) -> Iterator[ScanError]:
        return iter(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def __bool__(self) -> bool:
        return bool(self._errors)

    def by_phase(self, phase: ScanPhase) -> list[ScanError]:
        return [e for e in self._errors if e.phase is phase]

    def snapshot(self) -> tuple[ScanError, ...]:
        return tuple(self._errors)
