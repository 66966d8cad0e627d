"""
Mirror Store — One local clone per remote repository URL.

Layout:

    <repo_dir>/
        checkouts/
            alpha-3f1c9a0b7d2e4f68/     ← path_for("https://example.com/alpha.git")
            swift-log-9a8b7c6d5e4f3a2b/

The directory name is a readable slug plus a hash of the exact URL, so
the same URL always lands in the same place and two URLs never share a
directory.

## Usage

    store = MirrorStore(Path("~/spm-cache").expanduser())
    outcome = store.sync("https://example.com/alpha.git", revision="abc123")
    if outcome.ok:
        print(outcome.entry.local_path)
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import shutil
import threading
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..errors import CheckoutError, CloneError, FetchError, GitCommandError, MirrorError
from ..models.records import MirrorEntry, MirrorState, SyncOutcome
from . import git

logger = logging.getLogger(__name__)

CHECKOUTS_DIR = "checkouts"
URL_CONFIG_KEY = "spmswap.url"
HASH_LENGTH = 16

_SLUG_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")
_GITHUB_HTTPS = re.compile(r"^https://github\.com/([^/]+)/([^/]+?)/?$")


def slug_for(url: str) -> str:
    """Readable directory prefix: last path component without .git."""
    tail = url.rstrip("/").replace(":", "/").split("/")[-1]
    if tail.endswith(".git"):
        tail = tail[: -len(".git")]
    slug = _SLUG_UNSAFE.sub("-", tail).strip(".-")
    return slug or "repo"


def ssh_url_for(url: str) -> str:
    """https://github.com/owner/repo → git@github.com:owner/repo (other URLs unchanged)."""
    match = _GITHUB_HTTPS.match(url)
    if not match:
        return url
    return f"git@github.com:{match.group(1)}/{match.group(2)}"


class MirrorStore:
    """
    Clone / fetch / delete local mirrors.

    sync() is safe to call from several threads for different URLs; calls
    for the same URL are serialized.
    """

    def __init__(
        self,
        repo_dir: Path,
        prefer_ssh: bool = False,
        git_timeout: int = 600,
        config_sources: Optional[Sequence[Path]] = None,
    ):
        self.repo_dir = Path(repo_dir)
        self.prefer_ssh = prefer_ssh
        self.git_timeout = git_timeout
        self.config_sources = config_sources
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def checkouts_dir(self) -> Path:
        return self.repo_dir / CHECKOUTS_DIR

    @property
    def managed_prefix(self) -> str:
        """Every local URL this store hands out starts with this string."""
        return str(self.checkouts_dir) + os.sep

    def path_for(self, url: str) -> Path:
        digest = hashlib.sha256(url.encode("utf-8")).hexdigest()[:HASH_LENGTH]
        return self.checkouts_dir / f"{slug_for(url)}-{digest}"

    def clone_url(self, url: str) -> str:
        if self.prefer_ssh:
            converted = ssh_url_for(url)
            if converted != url:
                logger.info(f"[mirror] Converting https to ssh: {url} → {converted}")
            return converted
        return url

    def _lock_for(self, url: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(url)
            if lock is None:
                lock = self._locks[url] = threading.Lock()
            return lock

    # ─── Sync ───────────────────────────────────────────────

    def sync(self, url: str, revision: Optional[str] = None) -> SyncOutcome:
        """
        Bring the mirror for ``url`` up to date and check out ``revision``.

        Clones when no mirror exists yet, fetches otherwise. Never raises
        for clone/fetch/checkout failures; they come back as a failed outcome.
        """
        with self._lock_for(url):
            try:
                entry = self._sync(url, revision)
            except MirrorError as e:
                logger.error(f"[mirror] {e.kind} failed for {url}: {e.message}")
                return SyncOutcome.failure(url, e.kind, e.message)

        logger.info(
            f"[mirror] {entry.state.value}: {url} @ {(entry.revision or '?')[:12]}",
            extra={"url": url},
        )
        return SyncOutcome.success(entry)

    def _sync(self, url: str, revision: Optional[str]) -> MirrorEntry:
        path = self.path_for(url)
        existing = (path / ".git").is_dir()
        state = MirrorState.FETCHED if existing else MirrorState.CLONED
        error_cls = FetchError if existing else CloneError

        try:
            with git.without_rewrites(self.managed_prefix, self.config_sources) as env:
                if existing:
                    logger.info(f"[mirror] Fetching {url}")
                    git.fetch(path, timeout=self.git_timeout, env=env)
                else:
                    self._clone(url, path, env)
        except GitCommandError as e:
            raise error_cls(e.stderr or str(e), url=url) from e
        except OSError as e:
            raise error_cls(str(e), url=url) from e

        if revision:
            try:
                git.checkout(path, revision)
            except GitCommandError as e:
                raise CheckoutError(
                    f"revision {revision} not found: {e.stderr or e}", url=url
                ) from e

        try:
            head: Optional[str] = git.rev_parse(path)
        except GitCommandError:
            head = None  # empty repository

        return MirrorEntry(
            repository_url=url,
            local_path=str(path),
            state=state,
            revision=head,
        )

    def _clone(self, url: str, path: Path, env: Dict[str, str]) -> None:
        if path.exists():
            # Leftover from an interrupted clone
            logger.warning(f"[mirror] Removing incomplete mirror at {path}")
            self._discard(path)
        logger.info(f"[mirror] Cloning {url} into {path}")
        try:
            git.clone(self.clone_url(url), path, timeout=self.git_timeout, env=env)
            git.set_local_config(path, URL_CONFIG_KEY, url)
            git.detach(path)
        except (GitCommandError, OSError):
            self._discard(path)
            raise

    def _discard(self, path: Path) -> None:
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
        except OSError as e:
            logger.error(
                f"[mirror] Could not delete {path}: {e}. "
                f"You may need to delete this directory manually."
            )

    # ─── Inspection / removal ───────────────────────────────

    def entries(self) -> List[MirrorEntry]:
        """Mirrors currently on disk, sorted by directory name."""
        if not self.checkouts_dir.is_dir():
            return []
        result = []
        for path in sorted(self.checkouts_dir.iterdir()):
            if not (path / ".git").is_dir():
                continue
            url = git.get_local_config(path, URL_CONFIG_KEY) or ""
            try:
                head: Optional[str] = git.rev_parse(path)
            except GitCommandError:
                head = None
            result.append(
                MirrorEntry(
                    repository_url=url,
                    local_path=str(path),
                    state=MirrorState.CLONED,
                    revision=head,
                )
            )
        return result

    def remove_all(self) -> None:
        """Delete every mirror. A missing checkouts directory is not an error."""
        if not self.checkouts_dir.exists():
            logger.info(f"[mirror] Nothing to wipe at {self.checkouts_dir}")
            return
        logger.info(f"[mirror] Wiping checkouts directory: {self.checkouts_dir}")
        shutil.rmtree(self.checkouts_dir)
