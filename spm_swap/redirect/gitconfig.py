"""
Git Config Handle — Read and write insteadOf rules in the global git config.

All access to the user's config goes through load() and save() so the
mapper can be exercised against an in-memory table in tests.

Rules are stored the way git expects them:

    [url "/Users/me/spm/checkouts/alpha-3f1c9a0b7d2e4f68"]
        insteadOf = https://example.com/alpha.git
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional

from ..errors import ConfigWriteError, GitCommandError
from ..mirror.git import INSTEADOF_PATTERN, check_git, run_git
from ..models.records import RedirectRule

logger = logging.getLogger(__name__)


class RedirectConfig(ABC):
    """Whole-table access to url.<local>.insteadOf = <remote> entries."""

    @abstractmethod
    def load(self) -> List[RedirectRule]:
        """Return every insteadOf rule currently configured."""

    @abstractmethod
    def save(self, rules: Iterable[RedirectRule]) -> None:
        """Make the configured insteadOf rules exactly ``rules``."""


class GitGlobalConfig(RedirectConfig):
    """
    RedirectConfig backed by ``git config --global`` (or ``--file <path>``).

    save() only issues the additions and removals needed to go from the
    current table to the requested one; other config keys are untouched.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = path

    @property
    def scope_args(self) -> List[str]:
        if self.path is not None:
            return ["--file", str(self.path)]
        return ["--global"]

    @property
    def description(self) -> str:
        return str(self.path) if self.path is not None else "global git config"

    def load(self) -> List[RedirectRule]:
        if self.path is not None and not self.path.exists():
            return []
        try:
            result = run_git(
                "config", *self.scope_args, "--null", "--get-regexp", INSTEADOF_PATTERN,
                timeout=10,
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            raise ConfigWriteError(f"Cannot run git: {e}", path=self.path) from e

        # 1 = no matching keys
        if result.returncode == 1:
            return []
        if result.returncode != 0:
            raise ConfigWriteError(
                f"Cannot read {self.description}: {result.stderr.strip()}", path=self.path
            )
        return self._parse(result.stdout)

    @staticmethod
    def _parse(output: str) -> List[RedirectRule]:
        # --null: "<key>\n<value>\0" per entry
        rules = []
        for record in output.split("\0"):
            if not record:
                continue
            key, _, value = record.partition("\n")
            local_url = key[len("url."):-len(".insteadof")]
            rules.append(RedirectRule(remote_url=value, local_url=local_url))
        return rules

    def save(self, rules: Iterable[RedirectRule]) -> None:
        wanted = list(dict.fromkeys(rules))
        current = self.load()

        to_remove = [r for r in current if r not in wanted]
        to_add = [r for r in wanted if r not in current]

        try:
            for rule in to_remove:
                logger.debug(f"[redirect] Removing {rule.config_key} = {rule.remote_url}")
                check_git(
                    "config", *self.scope_args, "--fixed-value", "--unset-all",
                    rule.config_key, rule.remote_url,
                    timeout=10,
                )
            for rule in to_add:
                logger.debug(f"[redirect] Adding {rule.config_key} = {rule.remote_url}")
                check_git(
                    "config", *self.scope_args, "--add", rule.config_key, rule.remote_url,
                    timeout=10,
                )
        except GitCommandError as e:
            raise ConfigWriteError(
                f"Cannot write {self.description}: {e.stderr or e}", path=self.path
            ) from e
