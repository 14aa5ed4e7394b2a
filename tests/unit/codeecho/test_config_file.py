from pathlib import Path

import pytest

from codeecho.config_file import MAX_SEARCH_LEVELS, ConfigFile, find_config_file, load_config_file
from codeecho.exceptions import ConfigFileError


@pytest.mark.unit
def test_find_config_file_walks_up_from_a_subdirectory(tmp_path: Path) -> None:
    config = tmp_path / ".codeecho.yaml"
    config.write_text("format: json\n", encoding="utf-8")
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)

    assert find_config_file(nested) == config.resolve()


@pytest.mark.unit
def test_find_config_file_prefers_yaml_over_json(tmp_path: Path) -> None:
    (tmp_path / ".codeecho.json").write_text("{}", encoding="utf-8")
    (tmp_path / ".codeecho.yaml").write_text("{}", encoding="utf-8")

    found = find_config_file(tmp_path)

    assert found is not None
    assert found.name == ".codeecho.yaml"


@pytest.mark.unit
def test_find_config_file_stops_after_max_levels(tmp_path: Path) -> None:
    (tmp_path / ".codeecho.yaml").write_text("{}", encoding="utf-8")
    deep = tmp_path.joinpath(*[f"d{i}" for i in range(MAX_SEARCH_LEVELS)])
    deep.mkdir(parents=True)

    assert find_config_file(deep) is None
    assert find_config_file(deep.parent) == (tmp_path / ".codeecho.yaml").resolve()


@pytest.mark.unit
def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / ".codeecho.yaml"
    path.write_text(
        "format: md\nexclude_dirs:\n  - .git\n  - dist\ninclude_tree: false\nunknown_key: 1\n",
        encoding="utf-8",
    )

    config = load_config_file(path)

    assert config.overrides() == {"format": "markdown", "exclude_dirs": [".git", "dist"], "include_tree": False}


@pytest.mark.unit
def test_load_json_config(tmp_path: Path) -> None:
    path = tmp_path / ".codeecho.json"
    path.write_text('{"remove_comments": true, "include_exts": ".go,.md"}', encoding="utf-8")

    config = load_config_file(path)

    assert config.remove_comments is True
    assert config.include_exts == [".go", ".md"]


@pytest.mark.unit
def test_empty_config_file_sets_nothing(tmp_path: Path) -> None:
    path = tmp_path / ".codeecho.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config_file(path) == ConfigFile()


@pytest.mark.unit
@pytest.mark.parametrize(
    ("name", "content", "reason"),
    [
        (".codeecho.yaml", "format: yaml\n", "unsupported output format"),
        (".codeecho.yaml", "format: [unclosed\n", "invalid syntax"),
        (".codeecho.yaml", "- a\n- b\n", "mapping"),
        (".codeecho.toml", "format = 'xml'\n", "unsupported config file type"),
    ],
)
def test_invalid_config_files_raise(tmp_path: Path, name: str, content: str, reason: str) -> None:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigFileError) as exc_info:
        load_config_file(path)

    assert reason in exc_info.value.reason.lower()


@pytest.mark.unit
def test_missing_explicit_config_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigFileError, match="cannot read file"):
        load_config_file(tmp_path / "missing.yaml")
