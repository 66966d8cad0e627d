"""
Settings — Parse SPM_SWAP_* environment variables.

Minimal required config: none. Without SPM_SWAP_REPO_DIR the mirrors are
stored under ./swifter-package-manager in the current directory.

    SPM_SWAP_REPO_DIR=/Volumes/cache/spm     # REPO_DIR is also honoured
    SPM_SWAP_WORKERS=4                       # parallel clone/fetch
    SPM_SWAP_GIT_CONFIG=/path/to/gitconfig   # default: git config --global
    SPM_SWAP_PREFER_SSH=true                 # clone github https URLs over ssh
    SPM_SWAP_GIT_TIMEOUT=600                 # seconds per clone/fetch
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_DIR_NAME = "swifter-package-manager"
DEFAULT_WORKERS = 4
DEFAULT_GIT_TIMEOUT = 600


def _truthy(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("true", "1", "yes")


def _int(env: Mapping[str, str], key: str, default: int, minimum: int = 1) -> int:
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"{key}={raw!r} is not an integer, using {default}")
        return default
    if value < minimum:
        logger.warning(f"{key}={value} is below {minimum}, using {minimum}")
        return minimum
    return value


@dataclass
class SwapSettings:
    """Runtime settings for install / wipe / status."""

    repo_dir: Path
    workers: int = DEFAULT_WORKERS
    git_config_file: Optional[Path] = None  # None = --global
    prefer_ssh: bool = False
    git_timeout: int = DEFAULT_GIT_TIMEOUT

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[Path] = None,
    ) -> "SwapSettings":
        """Build settings from environment variables."""
        if env is None:
            env = os.environ
        if cwd is None:
            cwd = Path.cwd()

        repo_dir_raw = env.get("SPM_SWAP_REPO_DIR") or env.get("REPO_DIR")
        if repo_dir_raw:
            repo_dir = Path(repo_dir_raw).expanduser()
        else:
            repo_dir = cwd / DEFAULT_DIR_NAME
            logger.warning(
                f"SPM_SWAP_REPO_DIR not set, storing packages under {repo_dir}"
            )
        if not repo_dir.is_absolute():
            repo_dir = cwd / repo_dir

        config_raw = env.get("SPM_SWAP_GIT_CONFIG")
        git_config_file = Path(config_raw).expanduser() if config_raw else None

        return cls(
            repo_dir=repo_dir,
            workers=_int(env, "SPM_SWAP_WORKERS", DEFAULT_WORKERS),
            git_config_file=git_config_file,
            prefer_ssh=_truthy(env.get("SPM_SWAP_PREFER_SSH")),
            git_timeout=_int(env, "SPM_SWAP_GIT_TIMEOUT", DEFAULT_GIT_TIMEOUT),
        )
