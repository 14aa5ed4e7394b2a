from __future__ import annotations

import io
from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from codeecho import __version__, cli
from codeecho.models import ScanError, ScanPhase, ScanProgress, StreamingStats

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        ([], ["scan"]),
        (["."], ["scan", "."]),
        (["--quiet", "repo"], ["scan", "--quiet", "repo"]),
        (["analyze", "repo"], ["analyze", "repo"]),
        (["--version"], ["--version"]),
    ],
)
def test_scan_is_the_default_command(argv: list[str], expected: list[str]) -> None:
    assert cli._with_default_command(argv) == expected  # noqa: SLF001


@pytest.mark.unit
def test_parser_only_keeps_explicit_flags() -> None:
    args = cli.build_parser().parse_args(["scan", "repo", "--format", "md", "--no-tree", "--no-git"])

    assert vars(args) == {
        "command": "scan",
        "path": "repo",
        "format": "md",
        "include_tree": False,
        "git_aware": False,
    }


@pytest.mark.unit
def test_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_resolve_settings_precedence(tmp_path: Path) -> None:
    (tmp_path / ".codeecho.yaml").write_text(
        "format: json\ninclude_tree: false\nexclude_dirs: [.git, out]\ngit_timeout: 2\n",
        encoding="utf-8",
    )

    settings, error = cli.resolve_settings(
        {"path": str(tmp_path), "include_tree": True},
        environ={"CODEECHO_FORMAT": "md", "CODEECHO_GIT_TIMEOUT": "3"},
    )

    assert error is None
    assert settings.format == "md"
    assert settings.include_tree is True
    assert settings.exclude_dirs == [".git", "out"]
    assert settings.git_timeout == 3.0  # noqa: PLR2004


@pytest.mark.unit
def test_resolve_settings_returns_config_errors_instead_of_raising(tmp_path: Path) -> None:
    (tmp_path / ".codeecho.yaml").write_text("format: [\n", encoding="utf-8")

    settings, error = cli.resolve_settings({"path": str(tmp_path)}, environ={})

    assert error is not None
    assert settings.format == "xml"


@pytest.mark.unit
def test_progress_printer_throttles_within_a_phase(mocker: MockerFixture) -> None:
    clock = mocker.patch.object(cli.time, "monotonic", side_effect=[10.0, 10.05, 10.2, 10.21])
    stream = io.StringIO()
    printer = cli.ProgressPrinter(stream)

    printer(ScanProgress("walking", "a.py", 0, 3))
    printer(ScanProgress("walking", "b.py", 1, 3))
    printer(ScanProgress("walking", "c.py", 2, 3))
    printer(ScanProgress("finalizing", "writing summary...", 3, 3))
    printer.done()

    out = stream.getvalue()
    assert "a.py" in out
    assert "b.py" not in out
    assert "c.py" in out
    assert "finalizing" in out
    assert out.endswith("\n")
    assert clock.call_count == 4  # noqa: PLR2004


@pytest.mark.unit
def test_format_summary_lists_languages_and_errors() -> None:
    stats = StreamingStats(
        total_files=3,
        total_size=2048,
        text_files=2,
        binary_files=1,
        language_counts={"Go": 2, "Markdown": 1},
    )
    errors = [
        ScanError(path="x", phase=ScanPhase.READ, error=OSError("denied"), skipped=False),
        ScanError(path="y", phase=ScanPhase.STAT, error=OSError("gone")),
    ]

    summary = cli.format_summary(stats, errors, Path("out.xml"), 1.5)

    assert "Files:        3 (2 text, 1 binary)" in summary
    assert "Total size:   2.0 KB" in summary
    assert summary.index("Go") < summary.index("Markdown")
    assert "Errors:       2 (read: 1, stat: 1)" in summary


@pytest.mark.unit
def test_unsupported_format_creates_no_output(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "out.yaml"

    exit_code = cli.main([str(tmp_path), "--format", "yaml", "--output", str(output), "--quiet"])

    assert exit_code == 1
    assert not output.exists()
    assert "unsupported format: yaml" in capsys.readouterr().err


@pytest.mark.unit
def test_missing_path_exits_with_an_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main([str(tmp_path / "nope"), "--quiet"])

    assert exit_code == 1
    assert "path does not exist" in capsys.readouterr().err


@pytest.mark.unit
def test_unwritable_destination_exits_with_an_error(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "missing-dir" / "out.xml"

    exit_code = cli.main([str(tmp_path), "--output", str(output), "--quiet", "--no-git"])

    assert exit_code == 1
    assert "failed to create output file" in capsys.readouterr().err
