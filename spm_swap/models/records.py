"""
Record Models — Pydantic schemas for dependencies, mirrors and redirects.

DependencyRecord is what a Package.resolved pin becomes after parsing.
MirrorEntry describes one local mirror, RedirectRule one insteadOf entry
in the global git config.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


KIND_REMOTE = "remoteSourceControl"
KIND_LOCAL = "localSourceControl"
KIND_REGISTRY = "registry"


class DependencyRecord(BaseModel):
    """One pinned dependency declared in a manifest."""

    model_config = ConfigDict(frozen=True)

    name: str
    repository_url: str
    revision: str
    version: Optional[str] = None
    kind: str = KIND_REMOTE

    @property
    def is_remote(self) -> bool:
        return self.kind == KIND_REMOTE


class MirrorState(str, Enum):
    """Lifecycle of a local mirror."""
    ABSENT = "absent"
    CLONED = "cloned"
    FETCHED = "fetched"


class MirrorEntry(BaseModel):
    """A local mirror of one remote repository."""

    repository_url: str
    local_path: str
    state: MirrorState = MirrorState.ABSENT
    revision: Optional[str] = None  # checked-out commit, when known


class RedirectRule(BaseModel):
    """url.<local_url>.insteadOf = <remote_url>"""

    model_config = ConfigDict(frozen=True)

    remote_url: str
    local_url: str

    @property
    def config_key(self) -> str:
        return f"url.{self.local_url}.insteadOf"


class SyncOutcome(BaseModel):
    """
    Result of syncing one mirror.

    Either ``entry`` is set (ok) or ``error_kind``/``error`` describe why the
    mirror could not be synced.
    """

    repository_url: str
    entry: Optional[MirrorEntry] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.entry is not None and self.error is None

    @classmethod
    def success(cls, entry: MirrorEntry) -> "SyncOutcome":
        return cls(repository_url=entry.repository_url, entry=entry)

    @classmethod
    def failure(cls, repository_url: str, kind: str, message: str) -> "SyncOutcome":
        return cls(repository_url=repository_url, error_kind=kind, error=message)
