"""Directory resolution — validate a path and pin down its canonical identity."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass

from gitdirt.errors import DirectoryNotFound, NotADirectory, PathError

GIT_MARKER = ".git"

_OPEN_FLAGS = os.O_RDONLY | getattr(os, "O_DIRECTORY", 0)


@dataclass(frozen=True)
class DirectoryRef:
    name: str
    path: str  # absolute, resolved


def resolve(path: str) -> DirectoryRef:
    """Resolve `path` to a DirectoryRef.

    Raises DirectoryNotFound if the path can't be opened, NotADirectory if it
    exists but isn't a directory, and PathError if the absolute path can't be
    computed.
    """
    path = os.path.expanduser(path)
    try:
        fd = os.open(path, _OPEN_FLAGS)
    except NotADirectoryError:
        raise NotADirectory(path, f"{os.path.basename(path) or path} is not a directory") from None
    except OSError as e:
        raise DirectoryNotFound(path, f"open {path}: {e.strerror or e}") from e

    try:
        st = os.fstat(fd)
        if not stat.S_ISDIR(st.st_mode):
            raise NotADirectory(path, f"{os.path.basename(path) or path} is not a directory")
        try:
            canonical = os.path.realpath(os.path.abspath(path))
        except (OSError, ValueError) as e:
            raise PathError(path, f"abs {path}: {e}") from e
    finally:
        os.close(fd)

    return DirectoryRef(name=os.path.basename(path.rstrip(os.sep)) or path, path=canonical)


def is_repository_root(ref: DirectoryRef) -> bool:
    """True if `ref` has a .git directory directly inside it."""
    try:
        resolve(os.path.join(ref.path, GIT_MARKER))
    except (DirectoryNotFound, NotADirectory, PathError):
        return False
    return True
