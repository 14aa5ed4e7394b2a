"""Discovery and loading of `.codeecho.yaml` / `.codeecho.json` project files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from codeecho.exceptions import ConfigFileError, UnsupportedFormatError
from codeecho.logging import logger
from codeecho.output_construction import resolve_format

CONFIG_FILENAMES = (".codeecho.yaml", ".codeecho.json")
MAX_SEARCH_LEVELS = 10


class ConfigFile(BaseModel):
    """Values read from a project configuration file.

    Every field defaults to `None`, meaning "not set in the file"; only set values
    take part in the settings merge.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    format: str | None = None
    exclude_dirs: list[str] | None = None
    include_exts: list[str] | None = None
    include_content: bool | None = None
    include_summary: bool | None = None
    include_tree: bool | None = None
    show_line_numbers: bool | None = None
    compress_code: bool | None = None
    remove_comments: bool | None = None
    remove_empty_lines: bool | None = None
    output: str | None = None
    quiet: bool | None = None
    verbose: bool | None = None
    git_aware: bool | None = None
    git_timeout: float | None = Field(default=None, gt=0)

    @field_validator("format")
    @classmethod
    def _known_format(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        try:
            return str(resolve_format(value))
        except UnsupportedFormatError as e:
            raise ValueError(e.message) from e

    @field_validator("exclude_dirs", "include_exts", mode="before")
    @classmethod
    def _listify(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

    def overrides(self) -> dict[str, Any]:
        """Return the values set in the file, keyed by settings field name."""
        return self.model_dump(exclude_none=True)


def find_config_file(start: str | Path = ".") -> Path | None:
    """Look for a configuration file in `start` and its parents.

    `.codeecho.yaml` wins over `.codeecho.json` in the same directory. The search
    stops after `MAX_SEARCH_LEVELS` directories or at the filesystem root.

    Args:
        start (str | Path): file or directory where the search begins

    Returns:
        Path | None: the first configuration file found, if any
    """
    current = Path(start).resolve()
    if current.is_file():
        current = current.parent

    for _ in range(MAX_SEARCH_LEVELS):
        for name in CONFIG_FILENAMES:
            candidate = current / name
            if candidate.is_file():
                return candidate
        if current.parent == current:
            break
        current = current.parent
    return None


def load_config_file(path: str | Path) -> ConfigFile:
    """Parse and validate a configuration file.

    JSON files are read with the YAML parser, JSON being a subset of YAML.

    Args:
        path (str | Path): the file to load

    Raises:
        ConfigFileError: if the file cannot be read, parsed or validated

    Returns:
        ConfigFile: the validated values
    """
    path = Path(path)
    if path.suffix.lower() not in {".yaml", ".yml", ".json"}:
        raise ConfigFileError(file=path, reason=f"unsupported config file type: {path.suffix or '(none)'}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigFileError(file=path, reason=f"cannot read file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigFileError(file=path, reason=f"invalid syntax: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigFileError(file=path, reason="top-level value must be a mapping")

    try:
        config = ConfigFile.model_validate(raw)
    except ValidationError as e:
        raise ConfigFileError(file=path, reason=str(e)) from e
    logger.debug("config_file_loaded", file=str(path), keys=sorted(config.overrides()))
    return config
