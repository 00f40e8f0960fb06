"""Pytest configuration for all tests.

Provides throwaway git repositories: a bare "remote" seeded with one
commit on ``main``, and helpers to inspect it. Tests that need the git
executable are skipped when it is not installed.
"""

import shutil
import subprocess
from pathlib import Path

import pytest

GIT = shutil.which("git")

requires_git = pytest.mark.skipif(GIT is None, reason="git executable not available")


def git(*args: str, cwd: Path) -> str:
    """Run git synchronously for test setup and assertions."""
    completed = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        check=True,
        capture_output=True,
        text=True,
    )
    return completed.stdout.strip()


@pytest.fixture
def git_identity(monkeypatch, tmp_path):
    """Isolate git from the host config and give commits an author."""
    global_config = tmp_path / "gitconfig"
    global_config.write_text("")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")


@pytest.fixture
def remote_repo(tmp_path, git_identity) -> Path:
    """Create a bare repository whose ``main`` holds README.md and a.txt."""
    seed = tmp_path / "seed"
    seed.mkdir()
    git("init", cwd=seed)
    git("symbolic-ref", "HEAD", "refs/heads/main", cwd=seed)
    (seed / "README.md").write_text("# Test repository\n")
    (seed / "a.txt").write_text("original\n")
    git("add", "README.md", "a.txt", cwd=seed)
    git("commit", "-m", "Initial commit", cwd=seed)

    remote = tmp_path / "remote.git"
    git("clone", "--bare", str(seed), str(remote), cwd=tmp_path)
    return remote


@pytest.fixture
def push_to_remote(tmp_path, remote_repo):
    """Return a function that commits a file to the remote's ``main``."""
    counter = {"n": 0}

    def _push(path: str, content: str) -> None:
        counter["n"] += 1
        clone = tmp_path / f"upstream-{counter['n']}"
        git("clone", str(remote_repo), str(clone), cwd=tmp_path)
        (clone / path).parent.mkdir(parents=True, exist_ok=True)
        (clone / path).write_text(content)
        git("add", path, cwd=clone)
        git("commit", "-m", f"Update {path}", cwd=clone)
        git("push", "origin", "main", cwd=clone)

    return _push
