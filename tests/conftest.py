"""Shared fixtures — build real git repositories for the tests."""

import os
import subprocess

import pytest


def git(path: str, *args: str) -> None:
    subprocess.run(
        [
            "git", "-C", path,
            "-c", "user.email=test@test.com",
            "-c", "user.name=Test User",
            "-c", "commit.gpgsign=false",
            "-c", "init.defaultBranch=main",
            *args,
        ],
        capture_output=True,
        check=True,
    )


def create_test_repo(path: str) -> str:
    """Create a real git repo with one committed file."""
    os.makedirs(path, exist_ok=True)
    git(path, "init")
    with open(os.path.join(path, "main.py"), "w") as f:
        f.write("print('hello world')\n")
    git(path, "add", ".")
    git(path, "commit", "-m", "Initial commit")
    return path


@pytest.fixture
def make_repo():
    return create_test_repo
