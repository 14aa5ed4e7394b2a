"""Load repository identity from git with time-bounded invocations."""

from __future__ import annotations

import shutil
import subprocess  # noqa: S404
import time
from typing import TYPE_CHECKING

from codeecho.exceptions import GitCommandError, GitErrorKind
from codeecho.logging import logger
from codeecho.models import GitMetadata

if TYPE_CHECKING:
    from pathlib import Path

DEFAULT_GIT_TIMEOUT = 5.0
MAX_FIELD_LENGTH = 1000
DETACHED_BRANCH = "HEAD"
DETACHED_PREFIX = "detached@"
DETACHED_LABEL = "detached HEAD"
UNKNOWN_COMMIT_COUNT = -1


def sanitize_git_output(value: str) -> str:
    """Clean git output before it reaches an output document.

    Control characters other than newline and tab are removed, the value is capped
    at 1000 characters, then surrounding whitespace is trimmed.

    Args:
        value (str): raw git output

    Returns:
        str: the sanitized value
    """
    cleaned = "".join(ch for ch in value if ord(ch) >= 32 or ch in "\n\t")  # noqa: PLR2004
    return cleaned[:MAX_FIELD_LENGTH].strip()


def run_git(repo: Path, *args: str, git: str = "git", timeout: float = DEFAULT_GIT_TIMEOUT) -> str:
    """Run one git command in `repo` and return its trimmed stdout.

    `subprocess.run` kills the child when the timeout expires, so a slow or hung
    git never blocks the scan for longer than `timeout`.

    Args:
        repo (Path): working directory of the command
        *args (str): git arguments, e.g. `"log", "-1"`
        git (str): git executable
        timeout (float): seconds before the command is killed

    Raises:
        GitCommandError: with kind `timeout`, `failed` or `not-found`

    Returns:
        str: stdout of the command, stripped
    """
    command = " ".join(["git", *args])
    try:
        out = subprocess.run(  # noqa: S603
            [git, *args],
            cwd=str(repo),
            text=True,
            encoding="utf-8",
            errors="replace",
            capture_output=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(command=command, kind=GitErrorKind.TIMEOUT, timeout=timeout) from e
    except FileNotFoundError as e:
        raise GitCommandError(command=command, kind=GitErrorKind.NOT_FOUND) from e
    except OSError as e:
        raise GitCommandError(command=command, kind=GitErrorKind.FAILED, stderr=str(e)) from e
    if out.returncode != 0:
        raise GitCommandError(
            command=command,
            kind=GitErrorKind.FAILED,
            returncode=out.returncode,
            stderr=sanitize_git_output(out.stderr),
        )
    return out.stdout.strip()


def _resolve_branch(repo: Path, git: str, timeout: float) -> str:
    branch = sanitize_git_output(run_git(repo, "rev-parse", "--abbrev-ref", "HEAD", git=git, timeout=timeout))
    if branch != DETACHED_BRANCH:
        return branch
    try:
        short = sanitize_git_output(run_git(repo, "rev-parse", "--short", "HEAD", git=git, timeout=timeout))
    except GitCommandError:
        return DETACHED_LABEL
    return DETACHED_PREFIX + short if short else DETACHED_LABEL


def load_git_metadata(
    repo: Path,
    *,
    timeout: float = DEFAULT_GIT_TIMEOUT,
) -> tuple[GitMetadata | None, list[GitCommandError]]:
    """Extract branch, last commit and commit count of the repository at `repo`.

    Every field comes from its own git call, so a failure or timeout on one field
    does not prevent the others. A repository without `.git` is not an error. A
    failed commit count (shallow clones) leaves `commit_count` at -1.

    Args:
        repo (Path): the repository root
        timeout (float): timeout applied to each git call, in seconds

    Returns:
        tuple[GitMetadata | None, list[GitCommandError]]: the metadata (None when neither
            branch nor commit hash could be read) and the non-fatal errors encountered
    """
    if not (repo / ".git").exists():
        return None, []

    git = shutil.which("git")
    if git is None:
        return None, [GitCommandError(command="git", kind=GitErrorKind.NOT_FOUND)]

    started = time.monotonic()
    errors: list[GitCommandError] = []
    fields: dict[str, str] = {}

    try:
        fields["branch"] = _resolve_branch(repo, git, timeout)
    except GitCommandError as e:
        errors.append(e)

    queries = {
        "commit_hash": ("log", "-1", "--format=%h"),
        "author": ("log", "-1", "--format=%an"),
        "commit_date": ("log", "-1", "--format=%ad", "--date=iso"),
    }
    for name, args in queries.items():
        try:
            fields[name] = sanitize_git_output(run_git(repo, *args, git=git, timeout=timeout))
        except GitCommandError as e:
            errors.append(e)

    commit_count = UNKNOWN_COMMIT_COUNT
    try:
        raw_count = sanitize_git_output(run_git(repo, "rev-list", "--count", "HEAD", git=git, timeout=timeout))
        commit_count = int(raw_count)
    except GitCommandError as e:
        errors.append(e)
    except ValueError:
        errors.append(
            GitCommandError(
                command="git rev-list --count HEAD",
                kind=GitErrorKind.FAILED,
                stderr=f"unparsable commit count: {raw_count!r}",
            ),
        )

    elapsed = time.monotonic() - started
    if elapsed > 1:
        logger.info("git_metadata_slow", repo=str(repo), seconds=round(elapsed, 3))

    if not fields.get("branch") and not fields.get("commit_hash"):
        return None, errors

    metadata = GitMetadata(commit_count=commit_count, **fields)
    logger.debug("git_metadata_loaded", repo=str(repo), branch=metadata.branch, commit=metadata.commit_hash)
    return metadata, errors
