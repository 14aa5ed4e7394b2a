from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

    from codeecho.settings import OutputOptions

_FORMAT_EXTENSIONS: dict[str, str] = {
    "json": ".json",
    "markdown": ".md",
    "md": ".md",
    "xml": ".xml",
}


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


def file_extension(path: Path) -> str:
    """Extension of `path` with its dot; a dotfile such as `.env` is its own extension."""
    if path.suffix:
        return path.suffix
    return path.name if path.name.startswith(".") else ""


def format_bytes(size: float) -> str:
    """Format a byte count as a human readable string, e.g. `1.5 KB`."""
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:  # noqa: PLR2004
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def format_duration(seconds: float) -> str:
    """Format a duration for the scan summary."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:  # noqa: PLR2004
        return f"{seconds:.1f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m{secs:02d}s"


def count_lines(text: str) -> int:
    """Count lines the way an editor shows them (a final newline adds no line)."""
    if not text:
        return 0
    return text.count("\n") + (0 if text.endswith("\n") else 1)


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def mtime_representations(mtime: float) -> tuple[str, str]:
    """Return the RFC 3339 and display forms of a POSIX modification time."""
    dt = datetime.fromtimestamp(mtime, tz=UTC).astimezone()
    return dt.isoformat(timespec="seconds"), dt.strftime("%Y-%m-%d %H:%M:%S")


def build_tree_lines(root_name: str, rel_paths: Sequence[str]) -> list[str]:
    """Build a visual tree representation of file paths.

    Args:
        root_name (str): the name to use for the root of the tree
        rel_paths (Sequence[str]): the list of file paths relative to the root, using POSIX separators (e.g. "src/main.py")

    Returns:
        list[str]: a list of strings representing the tree structure, suitable for printing
    """
    rels = sorted(
        {p.strip("/").replace("\\", "/") for p in rel_paths if p.strip()},
        key=str.lower,
    )
    tree: dict[str, Any] = {}
    for rp in rels:
        cur = tree
        parts = rp.split("/")
        for i, part in enumerate(parts):
            if i == len(parts) - 1:
                cur.setdefault("__files__", set()).add(part)
            else:
                cur = cur.setdefault(part, {})

    lines: list[str] = [root_name]

    def walk(node: dict[str, Any], prefix: str) -> None:
        dirs = sorted([k for k in node if k != "__files__"], key=str.lower)
        files = sorted(node.get("__files__", set()), key=str.lower)
        entries: list[tuple[str, str, Any]] = []
        entries.extend(("dir", d, node[d]) for d in dirs)
        entries.extend(("file", f, None) for f in files)
        for idx, (kind, name, child) in enumerate(entries):
            last = idx == len(entries) - 1
            branch = "└── " if last else "├── "
            lines.append(prefix + branch + name + ("/" if kind == "dir" else ""))
            if kind == "dir":
                ext = "    " if last else "│   "
                walk(child, prefix + ext)

    walk(tree, "")
    return lines


def auto_output_filename(
    repo: Path,
    fmt: str,
    options: OutputOptions,
    *,
    include_content: bool = True,
    now: datetime | None = None,
) -> str:
    """Generate an output filename describing the scan.

    The name is `<project>[-no-comments][-no-empty-lines][-compressed][-structure-only]-<timestamp><ext>`.

    Args:
        repo (Path): the scanned repository root
        fmt (str): the output format name
        options (OutputOptions): output options, used for the processing suffixes
        include_content (bool): whether file contents are included
        now (datetime | None): timestamp to use, defaults to the current local time

    Returns:
        str: a filename (no directory part)
    """
    project = repo.name
    if project in {"", ".", "/"}:
        project = "codeecho-scan"
    stamp = (now or datetime.now(UTC).astimezone()).strftime("%Y%m%d-%H%M%S")
    ext = _FORMAT_EXTENSIONS.get(fmt.strip().lower(), ".xml")

    suffix: list[str] = []
    if options.remove_comments:
        suffix.append("no-comments")
    if options.remove_empty_lines:
        suffix.append("no-empty-lines")
    if options.compress_code:
        suffix.append("compressed")
    if not include_content:
        suffix.append("structure-only")

    name = project
    if suffix:
        name += "-" + "-".join(suffix)
    return f"{name}-{stamp}{ext}"


def progress_bar(current: int, total: int, width: int = 30) -> str:
    """Render a text progress bar such as `[#####.....] 50.0%`."""
    if total <= 0:
        return f"[{'.' * width}] {current} files"
    ratio = min(max(current / total, 0.0), 1.0)
    filled = int(ratio * width)
    return f"[{'#' * filled}{'.' * (width - filled)}] {ratio * 100:5.1f}%"
