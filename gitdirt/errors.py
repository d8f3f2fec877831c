"""Error taxonomy for gitdirt.

Resolution errors for the root argument are fatal. Everything raised once the
walk has started is local to a single subtree or repository.
"""

from __future__ import annotations


class GitdirtError(Exception):
    """Base class for all gitdirt errors."""


# --- Directory resolution ---

class ResolutionError(GitdirtError):
    def __init__(self, path: str, message: str) -> None:
        super().__init__(message)
        self.path = path


class DirectoryNotFound(ResolutionError):
    """The path could not be opened."""


class NotADirectory(ResolutionError):
    """The path exists but is not a directory."""


class PathError(ResolutionError):
    """The absolute path could not be computed."""


class WalkEntryError(GitdirtError):
    """A single walk entry could not be visited. Always treated as a prune."""


# --- Repository evaluation ---

class GitCommandError(GitdirtError):
    def __init__(self, args: list[str], returncode: int, stderr: str) -> None:
        self.command = args
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"git {' '.join(args)}: {detail}")


class RepositoryOpenError(GitdirtError):
    pass


class WorktreeError(GitdirtError):
    pass


class ExcludeReadError(GitdirtError):
    pass


class StatusComputationError(GitdirtError):
    pass


class InvalidPatternError(GitdirtError, ValueError):
    """An ignore line the pattern compiler rejects, e.g. a bare '!'."""
