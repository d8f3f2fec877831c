"""Git access — subprocess-based repository handle and working-tree status."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass, field
from typing import Iterable, Optional

import pathspec

from gitdirt.errors import (
    ExcludeReadError,
    GitCommandError,
    InvalidPatternError,
    RepositoryOpenError,
    StatusComputationError,
    WorktreeError,
)
from gitdirt.resolver import GIT_MARKER

log = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
UNTRACKED = "??"
DEFAULT_TIMEOUT = 60


def _run_git(repo_path: str, args: list[str], timeout: int = DEFAULT_TIMEOUT) -> str:
    """Run a git command and return stdout, raising GitCommandError on failure."""
    cmd = ["git", "-C", repo_path] + args
    log.debug("running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            timeout=timeout,
            errors="replace",
        )
    except subprocess.TimeoutExpired:
        raise GitCommandError(args, -1, f"timed out after {timeout}s") from None
    except OSError as e:
        raise GitCommandError(args, -1, str(e)) from e
    if result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr)
    return result.stdout


class IgnorePattern:
    """One gitignore-style line, compiled."""

    __slots__ = ("line", "_spec")

    def __init__(self, line: str) -> None:
        self.line = line
        try:
            self._spec = pathspec.GitIgnoreSpec.from_lines([line])
        except ValueError as e:
            raise InvalidPatternError(f"invalid ignore pattern {line!r}: {e}") from e

    def matches(self, path: str) -> bool:
        return self._spec.match_file(path)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, IgnorePattern) and other.line == self.line

    def __hash__(self) -> int:
        return hash(self.line)

    def __repr__(self) -> str:
        return f"IgnorePattern({self.line!r})"


def parse_pattern(line: str) -> IgnorePattern:
    return IgnorePattern(line)


def read_exclude_file(repo_path: str) -> list[IgnorePattern]:
    """Read .git/info/exclude for a repo root.

    Blank lines and comments are dropped; the rest keep file order. Lines the
    pattern compiler rejects are skipped with a warning, as git does. A missing
    file gives an empty list. Any other read failure raises ExcludeReadError.
    """
    exclude_path = os.path.join(repo_path, GIT_MARKER, "info", "exclude")
    try:
        with open(exclude_path, encoding="utf-8", errors="replace") as f:
            lines = f.read().splitlines()
    except FileNotFoundError:
        return []
    except OSError as e:
        raise ExcludeReadError(f"read {exclude_path}: {e}") from e

    patterns: list[IgnorePattern] = []
    for lineno, line in enumerate(lines, 1):
        if not line.strip() or line.startswith(COMMENT_PREFIX):
            continue
        try:
            patterns.append(parse_pattern(line))
        except InvalidPatternError as e:
            log.warning("%s:%d: skipping %s", exclude_path, lineno, e)
    return patterns


@dataclass
class StatusEntry:
    code: str  # porcelain XY, e.g. " M", "??", "R "
    path: str
    orig_path: Optional[str] = None

    @property
    def untracked(self) -> bool:
        return self.code == UNTRACKED


@dataclass
class StatusSet:
    entries: list[StatusEntry] = field(default_factory=list)

    def is_clean(self) -> bool:
        return not self.entries

    def __len__(self) -> int:
        return len(self.entries)


def parse_porcelain(output: str) -> list[StatusEntry]:
    """Parse `git status --porcelain -z` output."""
    entries: list[StatusEntry] = []
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        i += 1
        if len(tok) < 4:
            continue
        code, path = tok[:2], tok[3:]
        entry = StatusEntry(code=code, path=path)
        # Renames and copies carry the source path as the next token
        if code[0] in "RC" and i < len(tokens):
            entry.orig_path = tokens[i]
            i += 1
        entries.append(entry)
    return entries


class Worktree:
    """Working-tree view of a repository.

    `excludes` is applied on top of git's own ignore rules when computing
    status. Patterns are evaluated in list order, last match wins.
    """

    def __init__(self, root: str, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.root = root
        self.timeout = timeout
        self.excludes: list[IgnorePattern] = []

    def add_excludes(self, patterns: Iterable[IgnorePattern]) -> None:
        self.excludes.extend(patterns)

    def _exclude_spec(self) -> Optional[pathspec.GitIgnoreSpec]:
        if not self.excludes:
            return None
        return pathspec.GitIgnoreSpec.from_lines(p.line for p in self.excludes)

    def status(self) -> StatusSet:
        try:
            output = _run_git(
                self.root,
                ["status", "--porcelain", "-z", "--untracked-files=all"],
                timeout=self.timeout,
            )
        except GitCommandError as e:
            raise StatusComputationError(str(e)) from e

        entries = parse_porcelain(output)
        spec = self._exclude_spec()
        if spec is not None:
            entries = [e for e in entries if not (e.untracked and spec.match_file(e.path))]
        return StatusSet(entries=entries)


class Repository:
    """Handle to a non-bare repository rooted exactly at `path`.

    Owned by one thread; never share a handle across workers.
    """

    def __init__(self, path: str, timeout: int = DEFAULT_TIMEOUT) -> None:
        self.path = path
        self.timeout = timeout

    @classmethod
    def open(cls, path: str, timeout: int = DEFAULT_TIMEOUT) -> "Repository":
        """Open the repository at `path`.

        Fails unless `path/.git` is a git directory git itself recognises. A
        stray .git folder inside some other checkout doesn't count.
        """
        try:
            git_dir = _run_git(path, ["rev-parse", "--absolute-git-dir"], timeout=timeout).strip()
        except GitCommandError as e:
            raise RepositoryOpenError(str(e)) from e

        expected = os.path.realpath(os.path.join(path, GIT_MARKER))
        if os.path.realpath(git_dir) != expected:
            raise RepositoryOpenError(f"{path}: .git is not a valid repository")
        return cls(path, timeout=timeout)

    def worktree(self) -> Worktree:
        try:
            out = _run_git(self.path, ["rev-parse", "--is-inside-work-tree"], timeout=self.timeout)
        except GitCommandError as e:
            raise WorktreeError(str(e)) from e
        if out.strip() != "true":
            raise WorktreeError(f"{self.path}: repository has no worktree")
        return Worktree(self.path, timeout=self.timeout)
