"""
Shared fixtures for spm-git-swap tests.

Provides an in-memory redirect config, Package.resolved writers, and a
sandboxed git environment (isolated global config, fixed identity) for
tests that drive the real git binary.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

import pytest

from spm_swap.errors import ConfigWriteError
from spm_swap.models.records import RedirectRule
from spm_swap.redirect.gitconfig import RedirectConfig


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


class InMemoryConfig(RedirectConfig):
    """RedirectConfig backed by a list; counts saves."""

    def __init__(self, rules: Optional[Iterable[RedirectRule]] = None, fail: bool = False):
        self.rules: List[RedirectRule] = list(rules or [])
        self.saves = 0
        self.fail = fail

    def load(self) -> List[RedirectRule]:
        if self.fail:
            raise ConfigWriteError("permission denied")
        return list(self.rules)

    def save(self, rules: Iterable[RedirectRule]) -> None:
        if self.fail:
            raise ConfigWriteError("permission denied")
        self.saves += 1
        self.rules = list(rules)


@pytest.fixture
def memory_config() -> InMemoryConfig:
    return InMemoryConfig()


def pin_v2(identity: str, location: str, revision: str, version: Optional[str] = None,
           kind: str = "remoteSourceControl") -> Dict:
    state: Dict = {"revision": revision}
    if version:
        state["version"] = version
    return {"identity": identity, "kind": kind, "location": location, "state": state}


@pytest.fixture
def write_resolved() -> Callable[..., Path]:
    """Write a version 2 Package.resolved into a directory."""

    def _write(directory: Path, pins: List[Dict], version: int = 2) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / "Package.resolved"
        path.write_text(json.dumps({"pins": pins, "version": version}, indent=2), encoding="utf-8")
        return path

    return _write


# -- Real git sandbox --------------------------------------------------------


@pytest.fixture
def git_sandbox(tmp_path: Path, monkeypatch) -> Path:
    """
    Point git at an empty global config inside tmp_path and give it an identity.

    Returns the path of the sandboxed global config file.
    """
    gitconfig = tmp_path / "home" / ".gitconfig"
    gitconfig.parent.mkdir()
    gitconfig.write_text("", encoding="utf-8")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(gitconfig))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("HOME", str(gitconfig.parent))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    return gitconfig


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=str(cwd), capture_output=True, text=True, check=True,
    )
    return result.stdout.strip()


@pytest.fixture
def make_upstream(tmp_path: Path, git_sandbox: Path) -> Callable[..., Path]:
    """Create a local upstream repository with one commit."""

    def _make(name: str = "alpha") -> Path:
        repo = tmp_path / "upstream" / name
        repo.mkdir(parents=True)
        git(repo, "init", "--quiet")
        commit(repo, "initial")
        return repo

    return _make


def commit(repo: Path, message: str) -> str:
    """Add an empty commit and return its hash."""
    git(repo, "commit", "--quiet", "--allow-empty", "-m", message)
    return git(repo, "rev-parse", "HEAD")
