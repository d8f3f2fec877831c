"""Tests for repo discovery scanner."""

import os
import tempfile

import pytest

import gitdirt.scanner as scanner
from gitdirt.channel import DiscoveryChannel
from gitdirt.errors import DirectoryNotFound
from gitdirt.resolver import resolve
from gitdirt.scanner import COMMON_SKIP_DIRS, discover, find_repos


def _find(tmp, **kwargs):
    return list(find_repos(resolve(tmp), **kwargs))


def test_find_repos_single():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "project-a", ".git"))
        repos = _find(tmp)
        assert repos == [os.path.join(os.path.realpath(tmp), "project-a")]


def test_find_repos_multiple():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "alpha", ".git"))
        os.makedirs(os.path.join(tmp, "beta", ".git"))
        os.makedirs(os.path.join(tmp, "deep", "er", "gamma", ".git"))
        repos = _find(tmp)
        assert len(repos) == 3


def test_find_repos_nested_not_counted():
    """Repos inside other repos should be skipped (not recursed into)."""
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "parent", ".git"))
        os.makedirs(os.path.join(tmp, "parent", "child", ".git"))
        repos = _find(tmp)
        assert len(repos) == 1
        assert repos[0].endswith("parent")


def test_find_repos_root_is_repo():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, ".git"))
        os.makedirs(os.path.join(tmp, "inner", ".git"))
        assert _find(tmp) == [os.path.realpath(tmp)]


def test_find_repos_visits_hidden_by_default():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, ".hidden-project", ".git"))
        os.makedirs(os.path.join(tmp, "visible", ".git"))
        assert len(_find(tmp)) == 2


def test_find_repos_skip_dirs():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "node_modules", "dep", ".git"))
        os.makedirs(os.path.join(tmp, "real-project", ".git"))
        assert len(_find(tmp)) == 2
        repos = _find(tmp, skip_dirs=COMMON_SKIP_DIRS)
        assert len(repos) == 1
        assert "real-project" in repos[0]


def test_find_repos_gitlink_file_is_not_a_repo():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "wt"))
        with open(os.path.join(tmp, "wt", ".git"), "w") as f:
            f.write("gitdir: /elsewhere\n")
        os.makedirs(os.path.join(tmp, "wt", "sub", ".git"))
        repos = _find(tmp)
        assert repos == [os.path.join(os.path.realpath(tmp), "wt", "sub")]


def test_find_repos_ignores_files():
    with tempfile.TemporaryDirectory() as tmp:
        with open(os.path.join(tmp, "notes.txt"), "w") as f:
            f.write("x")
        assert _find(tmp) == []


def test_find_repos_does_not_follow_symlinks():
    with tempfile.TemporaryDirectory() as tmp, tempfile.TemporaryDirectory() as other:
        os.makedirs(os.path.join(other, "outside", ".git"))
        os.symlink(other, os.path.join(tmp, "link"))
        assert _find(tmp) == []


def test_find_repos_unreadable_dir_is_pruned():
    if os.geteuid() == 0:
        pytest.skip("root ignores directory permissions")
    with tempfile.TemporaryDirectory() as tmp:
        locked = os.path.join(tmp, "locked")
        os.makedirs(os.path.join(locked, "hidden", ".git"))
        os.makedirs(os.path.join(tmp, "open", ".git"))
        os.chmod(locked, 0)
        try:
            repos = _find(tmp)
        finally:
            os.chmod(locked, 0o755)
        assert len(repos) == 1
        assert repos[0].endswith("open")


def test_find_repos_scandir_failure_prunes_subtree(tmp_path, monkeypatch):
    real_scandir = os.scandir

    def flaky_scandir(path):
        if os.path.basename(path) == "flaky":
            raise PermissionError(13, "Permission denied", path)
        return real_scandir(path)

    os.makedirs(tmp_path / "flaky" / "inside" / ".git")
    os.makedirs(tmp_path / "zeta" / ".git")
    monkeypatch.setattr(scanner.os, "scandir", flaky_scandir)
    repos = _find(str(tmp_path))
    assert [os.path.basename(r) for r in repos] == ["zeta"]


def test_find_repos_resolve_failure_prunes_entry(monkeypatch):
    real_resolve = scanner.resolve

    def vanishing_resolve(path):
        if os.path.basename(path) == "gone":
            raise DirectoryNotFound(path, f"open {path}: No such file or directory")
        return real_resolve(path)

    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "gone", ".git"))
        os.makedirs(os.path.join(tmp, "kept", ".git"))
        monkeypatch.setattr(scanner, "resolve", vanishing_resolve)
        repos = _find(tmp)
        assert [os.path.basename(r) for r in repos] == ["kept"]


def test_find_repos_empty():
    with tempfile.TemporaryDirectory() as tmp:
        assert _find(tmp) == []


def test_find_repos_max_depth():
    with tempfile.TemporaryDirectory() as tmp:
        deep = os.path.join(tmp, "a", "b", "c", "d", "e", "f", "g", ".git")
        os.makedirs(deep)
        assert len(_find(tmp, max_depth=3)) == 0
        assert len(_find(tmp, max_depth=10)) == 1


def test_find_repos_sorted():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "zebra", ".git"))
        os.makedirs(os.path.join(tmp, "alpha", ".git"))
        os.makedirs(os.path.join(tmp, "middle", ".git"))
        names = [os.path.basename(r) for r in _find(tmp)]
        assert names == ["alpha", "middle", "zebra"]


def test_find_repos_is_repeatable():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "x", ".git"))
        os.makedirs(os.path.join(tmp, "y", "z", ".git"))
        root = resolve(tmp)
        assert set(find_repos(root)) == set(find_repos(root))


def test_discover_closes_channel():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "one", ".git"))
        os.makedirs(os.path.join(tmp, "two", ".git"))
        ch = DiscoveryChannel()
        count = discover(resolve(tmp), ch)
        assert count == 2
        assert ch.closed
        assert [os.path.basename(p) for p in ch] == ["one", "two"]


def test_discover_closes_channel_on_failure(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("walk failed")
        yield  # pragma: no cover

    monkeypatch.setattr(scanner, "find_repos", boom)
    with tempfile.TemporaryDirectory() as tmp:
        ch = DiscoveryChannel()
        try:
            discover(resolve(tmp), ch)
        except RuntimeError:
            pass
        assert ch.closed
