"""
Manifest Locator — Find every Package.resolved below a root directory.

Traversal is lazy and read-only. Directories that cannot be listed are
logged and skipped; zero matches is not an error here.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterator, Union

logger = logging.getLogger(__name__)

MANIFEST_NAME = "Package.resolved"


def find_manifests(root: Union[str, Path], name: str = MANIFEST_NAME) -> Iterator[Path]:
    """
    Yield paths of manifest files below ``root``, recursively.

    Entries are visited in sorted order so repeated runs see manifests in
    the same sequence. Symlinked directories are not followed.
    """
    root = Path(root)

    def _on_error(error: OSError) -> None:
        logger.warning(f"[resolved] Skipping unreadable directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
        dirnames.sort()
        if name in filenames:
            path = Path(dirpath) / name
            if path.is_file():
                yield path
