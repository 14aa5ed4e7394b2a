from datetime import datetime
from pathlib import Path

import pytest

from codeecho.file_manipulation import (
    auto_output_filename,
    build_tree_lines,
    count_lines,
    file_extension,
    format_bytes,
    format_duration,
    mtime_representations,
    progress_bar,
    relpath,
)
from codeecho.settings import OutputOptions

STAMP = datetime(2024, 5, 1, 10, 30, 5)  # noqa: DTZ001


@pytest.mark.unit
@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (512, "512 B"), (1536, "1.5 KB"), (5 * 1024**2, "5.0 MB"), (3 * 1024**4, "3.0 TB")],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


@pytest.mark.unit
def test_format_duration() -> None:
    assert format_duration(0.25) == "250ms"
    assert format_duration(12.34) == "12.3s"
    assert format_duration(125) == "2m05s"


@pytest.mark.unit
def test_count_lines_ignores_the_final_newline() -> None:
    assert count_lines("") == 0
    assert count_lines("a") == 1
    assert count_lines("a\nb\n") == 2  # noqa: PLR2004


@pytest.mark.unit
def test_relpath_uses_posix_separators(tmp_path: Path) -> None:
    assert relpath(tmp_path / "src" / "a.py", tmp_path) == "src/a.py"
    assert relpath(Path("/elsewhere/x"), tmp_path) == str(Path("/elsewhere/x"))


@pytest.mark.unit
def test_mtime_representations_agree() -> None:
    rfc3339, display = mtime_representations(0)

    parsed = datetime.fromisoformat(rfc3339)
    assert parsed.timestamp() == 0
    assert display == parsed.strftime("%Y-%m-%d %H:%M:%S")


@pytest.mark.unit
def test_build_tree_lines_lists_directories_first() -> None:
    lines = build_tree_lines("demo", ["src/app.py", "README.md", "src/util/io.py"])

    assert lines == [
        "demo",
        "├── src/",
        "│   ├── util/",
        "│   │   └── io.py",
        "│   └── app.py",
        "└── README.md",
    ]


@pytest.mark.unit
def test_auto_output_filename_plain() -> None:
    name = auto_output_filename(Path("/work/demo"), "xml", OutputOptions(), now=STAMP)

    assert name == "demo-20240501-103005.xml"


@pytest.mark.unit
def test_auto_output_filename_suffixes_follow_processing_options() -> None:
    options = OutputOptions(remove_comments=True, remove_empty_lines=True, compress_code=True)

    name = auto_output_filename(Path("/work/demo"), "markdown", options, include_content=False, now=STAMP)

    assert name == "demo-no-comments-no-empty-lines-compressed-structure-only-20240501-103005.md"


@pytest.mark.unit
def test_progress_bar() -> None:
    assert progress_bar(5, 10, width=10) == "[#####.....]  50.0%"
    assert progress_bar(3, 0, width=4) == "[....] 3 files"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "expected"),
    [("main.go", ".go"), ("archive.tar.gz", ".gz"), (".env", ".env"), (".eslintrc.json", ".json"), ("Makefile", "")],
)
def test_file_extension(name: str, expected: str) -> None:
    assert file_extension(Path("repo") / name) == expected
