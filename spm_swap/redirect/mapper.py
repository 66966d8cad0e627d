"""
Redirect Mapper — Merge mirror redirects into the git config.

A rule is tool-managed when its local URL starts with the mirror store's
checkouts directory. Only tool-managed rules are ever replaced or removed;
rules the user wrote by hand are left alone.

## Usage

    mapper = RedirectMapper(GitGlobalConfig(), store.managed_prefix)
    mapper.apply([RedirectRule(remote_url=url, local_url=str(store.path_for(url)))])
    ...
    mapper.clear_all()
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from ..models.records import RedirectRule
from .gitconfig import RedirectConfig

logger = logging.getLogger(__name__)


class RedirectMapper:
    """Compute and persist url.<local>.insteadOf rules."""

    def __init__(self, config: RedirectConfig, managed_prefix: str):
        self.config = config
        self.managed_prefix = managed_prefix

    def is_managed(self, rule: RedirectRule) -> bool:
        return rule.local_url.startswith(self.managed_prefix)

    def managed_rules(self) -> List[RedirectRule]:
        return [r for r in self.config.load() if self.is_managed(r)]

    def apply(self, rules: Iterable[RedirectRule]) -> List[RedirectRule]:
        """
        Install ``rules``, replacing any tool-managed rule for the same remote URL.

        Returns the rules that were requested (one per remote URL; when the
        same remote appears twice the later rule wins).

        Raises:
            ConfigWriteError: The config could not be read or written
        """
        by_remote = {}
        for rule in rules:
            by_remote[rule.remote_url] = rule
        requested = list(by_remote.values())
        if not requested:
            logger.info("[redirect] No redirects to apply")
            return []

        current = self.config.load()
        kept = []
        for rule in current:
            if rule.remote_url in by_remote:
                if self.is_managed(rule):
                    continue
                logger.warning(
                    f"[redirect] User rule {rule.config_key} also rewrites "
                    f"{rule.remote_url}; leaving it in place"
                )
            kept.append(rule)

        final = kept + requested
        if set(final) == set(current):
            logger.info(f"[redirect] {len(requested)} redirect(s) already up to date")
            return requested

        self.config.save(final)
        for rule in requested:
            logger.info(f"[redirect] {rule.remote_url} → {rule.local_url}")
        return requested

    def clear_all(self) -> List[RedirectRule]:
        """Remove every tool-managed rule. Returns the rules removed."""
        current = self.config.load()
        removed = [r for r in current if self.is_managed(r)]
        if not removed:
            logger.info("[redirect] No managed redirects to clear")
            return []
        self.config.save([r for r in current if not self.is_managed(r)])
        logger.info(f"[redirect] Cleared {len(removed)} managed redirect(s)")
        return removed
