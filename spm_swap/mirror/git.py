"""
Git — Thin subprocess wrappers around the git CLI.

Credentials come from whatever git itself is configured with (credential
helpers, ssh-agent); nothing here prompts. GIT_TERMINAL_PROMPT=0 makes
an auth failure exit instead of hanging on a password prompt.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

from ..errors import GitCommandError

logger = logging.getLogger(__name__)

# Every branch and tag, so SwiftPM can resolve any pin against the mirror.
FETCH_REFSPECS = ["+refs/heads/*:refs/heads/*", "+refs/tags/*:refs/tags/*"]

INSTEADOF_PATTERN = r"^url\..*\.insteadof$"


def _env(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if extra:
        env.update(extra)
    return env


def run_git(
    *args: str,
    cwd: Optional[Path] = None,
    timeout: Optional[int] = 60,
    env: Optional[Dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a git command and return the completed process (never raises on exit status)."""
    cmd = ["git"] + list(args)
    logger.debug(f"[git] {' '.join(cmd)}")
    return subprocess.run(
        cmd,
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        timeout=timeout,
        env=_env(env),
    )


def check_git(
    *args: str,
    cwd: Optional[Path] = None,
    timeout: Optional[int] = 60,
    env: Optional[Dict[str, str]] = None,
) -> str:
    """Run a git command and return stripped stdout, raising GitCommandError on failure."""
    try:
        result = run_git(*args, cwd=cwd, timeout=timeout, env=env)
    except subprocess.TimeoutExpired as e:
        raise GitCommandError(args, -1, f"timed out after {timeout}s") from e
    except OSError as e:
        raise GitCommandError(args, -1, str(e)) from e
    if result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr or result.stdout)
    return result.stdout.strip()


def clone(
    url: str,
    dest: Path,
    timeout: Optional[int] = 600,
    env: Optional[Dict[str, str]] = None,
) -> None:
    dest.parent.mkdir(parents=True, exist_ok=True)
    check_git("clone", "--quiet", url, str(dest), timeout=timeout, env=env)


def fetch(
    repo: Path,
    timeout: Optional[int] = 600,
    env: Optional[Dict[str, str]] = None,
) -> None:
    # HEAD is kept detached; --update-head-ok covers a clone interrupted before that.
    check_git(
        "fetch", "--quiet", "--prune", "--update-head-ok", "origin", *FETCH_REFSPECS,
        cwd=repo,
        timeout=timeout,
        env=env,
    )


def checkout(repo: Path, revision: str) -> None:
    check_git("checkout", "--quiet", "--detach", revision, cwd=repo)


def detach(repo: Path) -> None:
    check_git("checkout", "--quiet", "--detach", cwd=repo)


def rev_parse(repo: Path, ref: str = "HEAD") -> str:
    return check_git("rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", cwd=repo)


def get_local_config(repo: Path, key: str) -> Optional[str]:
    result = run_git("config", "--local", "--get", key, cwd=repo, timeout=5)
    if result.returncode != 0:
        return None
    return result.stdout.strip()


def set_local_config(repo: Path, key: str, value: str) -> None:
    check_git("config", "--local", key, value, cwd=repo, timeout=5)


# ─── Global config isolation ────────────────────────────────


def global_config_files() -> List[Path]:
    """Files git reads as the user's global config, in read order."""
    explicit = os.environ.get("GIT_CONFIG_GLOBAL")
    if explicit:
        return [Path(explicit)]
    xdg_home = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    candidates = [Path(xdg_home) / "git" / "config", Path.home() / ".gitconfig"]
    return [p for p in candidates if p.is_file()]


def _write_isolated_config(target: Path, managed_prefix: str, sources: Sequence[Path]) -> None:
    chunks = []
    for source in sources:
        try:
            chunks.append(source.read_text(encoding="utf-8"))
        except OSError as e:
            logger.warning(f"[git] Cannot read {source}: {e}")
    try:
        target.write_text("\n".join(chunks), encoding="utf-8")
    except OSError as e:
        raise GitCommandError(("config", "--file", str(target)), -1, str(e)) from e

    args = ("config", "--file", str(target), "--name-only", "--get-regexp", INSTEADOF_PATTERN)
    try:
        listing = run_git(*args, timeout=5)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise GitCommandError(args, -1, str(e)) from e

    removed = set()
    for name in listing.stdout.splitlines():
        base = name[len("url."):-len(".insteadof")]
        if base.startswith(managed_prefix) and base not in removed:
            check_git("config", "--file", str(target), "--remove-section", f"url.{base}", timeout=5)
            removed.add(base)


@contextmanager
def without_rewrites(
    managed_prefix: str,
    sources: Optional[Sequence[Path]] = None,
) -> Iterator[Dict[str, str]]:
    """
    Yield env overrides pointing git at a copy of the global config that
    lacks every url.<base>.insteadOf whose base starts with ``managed_prefix``.

    Without this a fetch of a redirected URL would be rewritten to the
    mirror itself and silently fetch nothing.

    Raises:
        GitCommandError: The isolated config could not be prepared
    """
    if sources is None:
        sources = global_config_files()

    try:
        tmp = Path(tempfile.mkdtemp(prefix="spm-swap-"))
    except OSError as e:
        raise GitCommandError(("config",), -1, f"cannot create temporary config: {e}") from e

    try:
        target = tmp / "gitconfig"
        _write_isolated_config(target, managed_prefix, sources)
        yield {"GIT_CONFIG_GLOBAL": str(target)}
    finally:
        shutil.rmtree(tmp, ignore_errors=True)
