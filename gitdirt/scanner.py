"""Repo discovery — recursively find all git repositories under a directory."""

from __future__ import annotations

import logging
import os
from typing import Iterator, Optional

from gitdirt.channel import DiscoveryChannel
from gitdirt.errors import ResolutionError, WalkEntryError
from gitdirt.resolver import DirectoryRef, is_repository_root, resolve

log = logging.getLogger(__name__)

# Opt-in via --skip-common; by default every directory is visited.
COMMON_SKIP_DIRS = frozenset({
    "node_modules", ".venv", "venv", "__pycache__", "target", "build",
    "dist", ".gradle", ".dart_tool", "vendor", ".next", ".nuxt",
    "bin", "obj", ".tox", ".mypy_cache", ".ruff_cache", ".pytest_cache",
    "site-packages", ".cargo", ".rustup", "Pods",
})


def _subdirs(path: str) -> list[str]:
    """Child directories of `path`, sorted by name. Symlinks are not followed."""
    try:
        with os.scandir(path) as it:
            entries = list(it)
    except OSError as e:
        raise WalkEntryError(f"scandir {path}: {e}") from e

    dirs: list[str] = []
    for entry in entries:
        try:
            if entry.is_dir(follow_symlinks=False):
                dirs.append(entry.path)
        except OSError:
            log.debug("skipping %s: stat failed", entry.path)
    dirs.sort()
    return dirs


def find_repos(
    root: DirectoryRef,
    *,
    skip_dirs: frozenset[str] = frozenset(),
    max_depth: Optional[int] = None,
) -> Iterator[str]:
    """Lazily yield the canonical path of every repo root under `root`.

    The root itself is checked first. A directory holding a .git directory is
    reported and not descended into, so nested repos and submodules are never
    reported. Any entry that fails to resolve is pruned and the walk continues.
    """
    stack: list[tuple[str, int]] = [(root.path, 0)]

    while stack:
        path, depth = stack.pop()
        try:
            ref = resolve(path)
        except ResolutionError as e:
            log.debug("pruning %s: %s", path, e)
            continue

        if is_repository_root(ref):
            yield ref.path
            continue

        if max_depth is not None and depth >= max_depth:
            continue

        try:
            children = _subdirs(ref.path)
        except WalkEntryError as e:
            log.debug("pruning %s", e)
            continue

        # Reversed so the stack pops children in name order.
        for child in reversed(children):
            if os.path.basename(child) in skip_dirs:
                continue
            stack.append((child, depth + 1))


def discover(
    root: DirectoryRef,
    channel: DiscoveryChannel[str],
    *,
    skip_dirs: frozenset[str] = frozenset(),
    max_depth: Optional[int] = None,
) -> int:
    """Walk `root`, pushing each repo root into `channel`, then close it.

    The channel is closed exactly once, whether the walk finishes or fails.
    Returns the number of roots pushed.
    """
    count = 0
    try:
        for repo in find_repos(root, skip_dirs=skip_dirs, max_depth=max_depth):
            log.debug("found repo %s", repo)
            channel.put(repo)
            count += 1
    finally:
        channel.close()
    return count
