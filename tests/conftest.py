"""Global pytest configuration for hermetic test runs."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

_IDENTITY_VARS = (
    "GIT_AUTHOR_NAME",
    "GIT_AUTHOR_EMAIL",
    "GIT_COMMITTER_NAME",
    "GIT_COMMITTER_EMAIL",
    "EMAIL",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path_factory, monkeypatch):
    """Keep tests away from the user's git config, settings and logs."""
    home = tmp_path_factory.mktemp("home")
    global_config = home / ".gitconfig"
    global_config.write_text("")

    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(global_config))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for var in _IDENTITY_VARS:
        monkeypatch.delenv(var, raising=False)
    for var in (
        "AUTOCOMMITER_CONFIG",
        "AUTOCOMMITER_ENABLED",
        "AUTOCOMMITER_LOG_PATH",
        "AUTOCOMMITER_STATE_PATH",
        "AUTOCOMMITER_VERBOSE",
    ):
        monkeypatch.delenv(var, raising=False)
    return home


def _git(repo: Path, *args: str) -> str:
    """Run git in repo for test setup/inspection and return stdout."""
    res = subprocess.run(
        ["git", *args],
        cwd=repo,
        check=True,
        capture_output=True,
        text=True,
    )
    return res.stdout


def _commit_subjects(repo: Path, *extra: str) -> list[str]:
    out = _git(repo, "log", "--format=%s", *extra)
    return [ln for ln in out.splitlines() if ln]


@pytest.fixture
def git_repo(tmp_path):
    """An opted-in repository with identity configured and one commit."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    _git(repo_path, "init")
    _git(repo_path, "config", "user.email", "test@example.com")
    _git(repo_path, "config", "user.name", "Test User")
    _git(repo_path, "config", "commit.gpgsign", "false")

    (repo_path / ".autocommiter").touch()
    (repo_path / "a.txt").write_text("first\n")
    (repo_path / "b.txt").write_text("tracked\n")

    _git(repo_path, "add", ".")
    _git(repo_path, "commit", "-m", "Initial commit")

    return repo_path


@pytest.fixture
def remote_repo(tmp_path, git_repo):
    """A bare repository registered as git_repo's origin."""
    remote_path = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "--bare", str(remote_path)],
        check=True,
        capture_output=True,
    )
    _git(git_repo, "remote", "add", "origin", str(remote_path))
    return remote_path


@pytest.fixture
def git():
    """Helper running git in a repository and returning stdout."""
    return _git


@pytest.fixture
def commit_subjects():
    """Helper listing commit subjects, newest first."""
    return _commit_subjects
