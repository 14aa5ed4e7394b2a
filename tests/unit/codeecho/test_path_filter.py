from pathlib import Path

import pathspec
import pytest
from pytest_mock import MockerFixture

from codeecho.exceptions import IgnoreFileError
from codeecho.path_filter import FilterDecision, PathFilter, load_ignore_spec
from codeecho.settings import ScanOptions


@pytest.mark.unit
def test_excluded_directory_name_prunes_subtree(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(exclude_dirs=("node_modules",)))

    decision = path_filter.evaluate(tmp_path / "web" / "node_modules", is_dir=True)

    assert decision is FilterDecision.SKIP_SUBTREE


@pytest.mark.unit
def test_excluded_relative_path_prunes_only_that_directory(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(exclude_dirs=("docs/build",)))

    assert path_filter.evaluate(tmp_path / "docs" / "build", is_dir=True) is FilterDecision.SKIP_SUBTREE
    assert path_filter.evaluate(tmp_path / "app" / "docs", is_dir=True) is FilterDecision.INCLUDE


@pytest.mark.unit
def test_ignore_patterns_apply_to_files_and_directories(tmp_path: Path) -> None:
    spec = pathspec.GitIgnoreSpec.from_lines(["*.log", "generated/"])
    options = ScanOptions(include_exts=())
    path_filter = PathFilter(tmp_path, options, spec)

    assert path_filter.evaluate(tmp_path / "debug.log", is_dir=False) is FilterDecision.SKIP_ENTRY
    assert path_filter.evaluate(tmp_path / "generated", is_dir=True) is FilterDecision.SKIP_SUBTREE
    assert path_filter.evaluate(tmp_path / "main.go", is_dir=False) is FilterDecision.INCLUDE


@pytest.mark.unit
def test_ignore_spec_is_unused_when_not_git_aware(tmp_path: Path) -> None:
    spec = pathspec.GitIgnoreSpec.from_lines(["*.go"])
    path_filter = PathFilter(tmp_path, ScanOptions(git_aware=False), spec)

    assert path_filter.ignore_spec is None
    assert path_filter.evaluate(tmp_path / "main.go", is_dir=False) is FilterDecision.INCLUDE


@pytest.mark.unit
def test_extension_filter_is_case_insensitive_and_accepts_bare_names(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(include_exts=("go", ".MD", "Makefile")))

    assert path_filter.includes_extension(tmp_path / "main.go")
    assert path_filter.includes_extension(tmp_path / "README.md")
    assert path_filter.includes_extension(tmp_path / "Makefile")
    assert not path_filter.includes_extension(tmp_path / "app.py")
    assert path_filter.evaluate(tmp_path / "app.py", is_dir=False) is FilterDecision.SKIP_ENTRY


@pytest.mark.unit
def test_empty_extension_list_includes_everything(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(include_exts=()))

    assert path_filter.evaluate(tmp_path / "LICENSE", is_dir=False) is FilterDecision.INCLUDE
    assert path_filter.evaluate(tmp_path / "logo.png", is_dir=False) is FilterDecision.INCLUDE


@pytest.mark.unit
def test_directories_are_not_subject_to_the_extension_filter(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(include_exts=(".go",)))

    assert path_filter.evaluate(tmp_path / "pkg", is_dir=True) is FilterDecision.INCLUDE


@pytest.mark.unit
def test_load_ignore_spec_without_gitignore_returns_none(tmp_path: Path) -> None:
    assert load_ignore_spec(tmp_path) is None


@pytest.mark.unit
def test_load_ignore_spec_reads_root_gitignore(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").write_text("# comment\nvendor/\n*.tmp\n", encoding="utf-8")

    spec = load_ignore_spec(tmp_path)

    assert spec is not None
    assert spec.match_file("vendor/lib.go")
    assert spec.match_file("a/b/c.tmp")
    assert not spec.match_file("main.go")


@pytest.mark.unit
def test_load_ignore_spec_ignores_a_gitignore_directory(tmp_path: Path) -> None:
    (tmp_path / ".gitignore").mkdir()

    assert load_ignore_spec(tmp_path) is None


@pytest.mark.unit
def test_load_ignore_spec_wraps_read_failures(tmp_path: Path, mocker: MockerFixture) -> None:
    ignore = tmp_path / ".gitignore"
    ignore.write_text("*.log\n", encoding="utf-8")
    mocker.patch.object(Path, "read_text", side_effect=PermissionError("denied"))

    with pytest.raises(IgnoreFileError) as exc_info:
        load_ignore_spec(tmp_path)

    assert exc_info.value.file == ignore
    assert "denied" in exc_info.value.reason


@pytest.mark.unit
def test_dotfile_names_in_the_include_list_match_dotfiles(tmp_path: Path) -> None:
    path_filter = PathFilter(tmp_path, ScanOptions(include_exts=(".env", ".gitignore", ".py")))

    assert path_filter.evaluate(tmp_path / ".env", is_dir=False) is FilterDecision.INCLUDE
    assert path_filter.evaluate(tmp_path / "sub" / ".gitignore", is_dir=False) is FilterDecision.INCLUDE
    assert path_filter.evaluate(tmp_path / ".editorconfig", is_dir=False) is FilterDecision.SKIP_ENTRY
    assert path_filter.evaluate(tmp_path / "config.env.example", is_dir=False) is FilterDecision.SKIP_ENTRY
