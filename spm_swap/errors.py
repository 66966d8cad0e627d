"""
Errors — Exception taxonomy for install and wipe runs.

Fatal errors abort the whole run:
    DiscoveryError     root directory missing or unreadable
    ConfigWriteError   global git config could not be read or written

Per-item errors are caught at the item boundary and reported at the end:
    MalformedManifestError / UnsupportedVersionError   one manifest
    CloneError / FetchError / CheckoutError            one mirror
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence


class SwapError(Exception):
    """Base class for all spm-git-swap errors."""

    def __init__(self, message: str, path: Optional[Path] = None, url: Optional[str] = None):
        self.message = message
        self.path = path
        self.url = url
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.path is not None:
            return f"{self.path}: {self.message}"
        if self.url is not None:
            return f"{self.url}: {self.message}"
        return self.message


class DiscoveryError(SwapError):
    """Raised when the manifest search root is unusable."""


class ManifestError(SwapError):
    """Raised when a single Package.resolved file cannot be used."""


class MalformedManifestError(ManifestError):
    """Manifest is not valid JSON or violates the pin schema."""


class UnsupportedVersionError(ManifestError):
    """Manifest declares a format version this parser does not understand."""

    def __init__(self, version: object, path: Optional[Path] = None):
        self.version = version
        super().__init__(
            f"Unsupported Package.resolved version {version!r}. "
            f"Versions 1, 2 and 3 are supported.",
            path=path,
        )


class MirrorError(SwapError):
    """Raised when a local mirror cannot be brought up to date."""

    kind = "mirror"


class CloneError(MirrorError):
    kind = "clone"


class FetchError(MirrorError):
    kind = "fetch"


class CheckoutError(MirrorError):
    kind = "checkout"


class ConfigWriteError(SwapError):
    """Raised when the global git configuration cannot be read or written."""


class GitCommandError(Exception):
    """A git subprocess exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str = ""):
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"git {' '.join(self.args_list)} failed: {detail}")
