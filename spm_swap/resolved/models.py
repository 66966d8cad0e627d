"""
Package.resolved Schemas — Pydantic models for each on-disk format.

Version 1 (Xcode 12 and earlier):

    {"object": {"pins": [{"package": "...", "repositoryURL": "...",
                          "state": {"branch": null, "revision": "...", "version": "1.0.0"}}]},
     "version": 1}

Version 2 and 3 (SwiftPM 5.6+, 5.9+ adds originHash):

    {"pins": [{"identity": "...", "kind": "remoteSourceControl", "location": "...",
               "state": {"revision": "...", "version": "1.0.0"}}],
     "version": 2}
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from ..models.records import KIND_REMOTE, DependencyRecord


class _Schema(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class PinState(_Schema):
    revision: Optional[StrictStr] = None  # registry pins carry only a version
    version: Optional[StrictStr] = None
    branch: Optional[StrictStr] = None


# ─── Version 1 ──────────────────────────────────────────────


class PinV1(_Schema):
    package: StrictStr
    repository_url: StrictStr = Field(alias="repositoryURL")
    state: PinState

    @model_validator(mode="after")
    def _require_revision(self) -> "PinV1":
        if not self.state.revision:
            raise ValueError(f"pin {self.package!r} has no state.revision")
        return self

    def to_record(self) -> DependencyRecord:
        return DependencyRecord(
            name=self.package,
            repository_url=self.repository_url,
            revision=self.state.revision or "",
            version=self.state.version,
            kind=KIND_REMOTE,
        )


class ObjectV1(_Schema):
    pins: List[PinV1]


class ResolvedV1(_Schema):
    object: ObjectV1
    version: StrictInt

    def records(self) -> List[DependencyRecord]:
        return [pin.to_record() for pin in self.object.pins]


# ─── Version 2 / 3 ──────────────────────────────────────────


class PinV2(_Schema):
    identity: StrictStr
    kind: StrictStr
    location: StrictStr = ""
    state: PinState

    @model_validator(mode="after")
    def _require_remote_fields(self) -> "PinV2":
        if self.kind == KIND_REMOTE:
            if not self.location:
                raise ValueError(f"pin {self.identity!r} has no location")
            if not self.state.revision:
                raise ValueError(f"pin {self.identity!r} has no state.revision")
        return self

    def to_record(self) -> DependencyRecord:
        return DependencyRecord(
            name=self.identity,
            repository_url=self.location,
            revision=self.state.revision or "",
            version=self.state.version,
            kind=self.kind,
        )


class ResolvedV2(_Schema):
    pins: List[PinV2]
    version: StrictInt
    origin_hash: Optional[StrictStr] = Field(default=None, alias="originHash")

    def records(self) -> List[DependencyRecord]:
        return [pin.to_record() for pin in self.pins]
