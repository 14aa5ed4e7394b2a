from pathlib import Path

import pytest
from pydantic import ValidationError

from codeecho.config import DEFAULT_EXCLUDE_DIRS, DEFAULT_INCLUDE_EXTS
from codeecho.settings import OutputOptions, ScanOptions, Settings, env_overrides


@pytest.mark.unit
def test_settings_defaults() -> None:
    settings = Settings()

    assert settings.path == Path(".")
    assert settings.format == "xml"
    assert not settings.output
    assert settings.include_tree is True
    assert settings.git_aware is True
    assert settings.git_timeout == 5.0  # noqa: PLR2004
    assert settings.exclude_dirs == list(DEFAULT_EXCLUDE_DIRS)
    assert settings.include_exts == list(DEFAULT_INCLUDE_EXTS)


@pytest.mark.unit
def test_settings_split_comma_lists() -> None:
    settings = Settings(exclude_dirs=" .git , dist,, ", include_exts=".go,.md")

    assert settings.exclude_dirs == [".git", "dist"]
    assert settings.include_exts == [".go", ".md"]


@pytest.mark.unit
def test_scan_options_are_frozen_and_carry_output_options() -> None:
    options = Settings(remove_comments=True, include_tree=False, git_aware=False).scan_options()

    assert options.git_aware is False
    assert options.output.remove_comments is True
    assert options.output.include_tree is False
    assert options.output.transforms_content
    with pytest.raises(ValidationError):
        options.git_aware = True  # type: ignore[misc]


@pytest.mark.unit
def test_scan_options_normalise_entries() -> None:
    options = ScanOptions(exclude_dirs=["docs\\build/", " .git "], include_exts=".go, .md")

    assert options.exclude_dirs == ("docs/build", ".git")
    assert options.include_exts == (".go", ".md")


@pytest.mark.unit
def test_git_timeout_must_be_positive() -> None:
    with pytest.raises(ValidationError):
        ScanOptions(git_timeout=0)


@pytest.mark.unit
def test_output_options_default_to_no_transformation() -> None:
    assert OutputOptions().transforms_content is False


@pytest.mark.unit
def test_env_overrides_keeps_known_prefixed_names() -> None:
    environ = {
        "CODEECHO_FORMAT": "json",
        "CODEECHO_GIT_TIMEOUT": "10",
        "CODEECHO_NOT_A_SETTING": "x",
        "OTHER_FORMAT": "md",
    }

    overrides = env_overrides(environ)

    assert overrides == {"format": "json", "git_timeout": "10"}
    assert Settings.model_validate(overrides).git_timeout == 10.0  # noqa: PLR2004
