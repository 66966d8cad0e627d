"""
Orchestrator — The install and wipe runs.

install:

    Idle → Locating → Parsing → Mirroring → Redirecting → Done
                  ╲_________╲___________╲____________╲→ Aborted

Only a missing search root (DiscoveryError) or an unwritable git config
(ConfigWriteError) aborts. A manifest that fails to parse or a mirror that
fails to sync is recorded in the report and the run carries on.

wipe:

    Idle → Wiping → Done

## Duplicate URLs

Manifests are visited in sorted path order and pins in declaration order.
When two pins share a repository URL the last one seen wins: the mirror
is synced once, at that pin's revision.

## Usage

    from spm_swap.orchestrator import run_install

    report = run_install(Path("~/Projects"), store, mapper, workers=4)
    for outcome in report.failed:
        print(outcome.repository_url, outcome.error)
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from .errors import ConfigWriteError, DiscoveryError, ManifestError, SwapError
from .mirror.store import MirrorStore
from .models.records import DependencyRecord, RedirectRule, SyncOutcome
from .redirect.mapper import RedirectMapper
from .resolved.locator import find_manifests
from .resolved.parser import parse_manifest_file

logger = logging.getLogger(__name__)


class RunPhase(str, Enum):
    IDLE = "idle"
    LOCATING = "locating"
    PARSING = "parsing"
    MIRRORING = "mirroring"
    REDIRECTING = "redirecting"
    WIPING = "wiping"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class ManifestFailure:
    path: str
    error_kind: str
    error: str


@dataclass
class InstallReport:
    """Everything that happened during one install run."""

    root: str
    phase: RunPhase = RunPhase.IDLE
    duration_ms: int = 0

    manifests: List[str] = field(default_factory=list)
    manifest_failures: List[ManifestFailure] = field(default_factory=list)

    dependencies: List[DependencyRecord] = field(default_factory=list)
    skipped: List[DependencyRecord] = field(default_factory=list)
    outcomes: List[SyncOutcome] = field(default_factory=list)
    redirects: List[RedirectRule] = field(default_factory=list)

    error: Optional[str] = None

    @property
    def succeeded(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def failed(self) -> List[SyncOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def aborted(self) -> bool:
        return self.phase == RunPhase.ABORTED

    @property
    def clean(self) -> bool:
        """Done with no manifest or mirror failures."""
        return (
            self.phase == RunPhase.DONE
            and not self.failed
            and not self.manifest_failures
        )

    def to_dict(self) -> Dict:
        return {
            "root": self.root,
            "phase": self.phase.value,
            "duration_ms": self.duration_ms,
            "manifests": self.manifests,
            "manifest_failures": [vars(f) for f in self.manifest_failures],
            "dependencies": [d.model_dump() for d in self.dependencies],
            "skipped": [d.model_dump() for d in self.skipped],
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
            "redirects": [r.model_dump() for r in self.redirects],
            "error": self.error,
        }


@dataclass
class WipeReport:
    repo_dir: str
    phase: RunPhase = RunPhase.IDLE
    cleared_redirects: List[RedirectRule] = field(default_factory=list)
    error: Optional[str] = None


def dedupe_records(records: List[DependencyRecord]) -> List[DependencyRecord]:
    """
    One record per remote repository URL, last one wins, ordered by first appearance.

    Registry and local pins have no clone URL to collide on and are kept as given.
    """
    latest: Dict[Tuple[str, str], DependencyRecord] = {}
    for index, record in enumerate(records):
        if not record.is_remote:
            latest[("pin", str(index))] = record
            continue
        key = ("url", record.repository_url)
        previous = latest.get(key)
        if previous is not None and previous.revision != record.revision:
            logger.info(
                f"[resolved] {record.name}: {record.repository_url} pinned to both "
                f"{previous.revision[:12]} and {record.revision[:12]}, "
                f"using {record.revision[:12]}",
                extra={"dependency": record.name, "url": record.repository_url},
            )
        latest[key] = record
    return list(latest.values())


def _abort(report: InstallReport, error: SwapError, started: float) -> None:
    report.error = str(error)
    logger.error(f"Install aborted during {report.phase.value}: {error}")
    report.phase = RunPhase.ABORTED
    report.duration_ms = int((time.time() - started) * 1000)


def run_install(
    root: Union[str, Path],
    store: MirrorStore,
    mapper: RedirectMapper,
    workers: int = 1,
) -> InstallReport:
    """
    Mirror every dependency pinned under ``root`` and redirect git to the mirrors.

    Args:
        root: Directory to scan for Package.resolved files
        store: Mirror store holding the local clones
        mapper: Redirect mapper bound to the git config to rewrite
        workers: Concurrent clone/fetch operations (1 = sequential)

    Returns:
        InstallReport with per-manifest and per-dependency results

    Raises:
        DiscoveryError: ``root`` is missing or not a directory
        ConfigWriteError: The git config could not be updated
    """
    started = time.time()
    root = Path(root).expanduser()
    report = InstallReport(root=str(root))

    # --- Phase 1: Locating ---
    report.phase = RunPhase.LOCATING
    logger.info(f"Scanning {root} for Package.resolved")
    if not root.is_dir():
        error = DiscoveryError("Search root does not exist or is not a directory", path=root)
        _abort(report, error, started)
        raise error

    manifests = list(find_manifests(root))
    report.manifests = [str(p) for p in manifests]
    logger.info(f"Found {len(manifests)} manifest(s)")

    # --- Phase 2: Parsing ---
    report.phase = RunPhase.PARSING
    records: List[DependencyRecord] = []
    for path in manifests:
        try:
            records.extend(parse_manifest_file(path))
        except ManifestError as e:
            logger.error(f"[resolved] Skipping {path}: {e.message}", extra={"manifest": str(path)})
            report.manifest_failures.append(
                ManifestFailure(path=str(path), error_kind=type(e).__name__, error=e.message)
            )

    for record in dedupe_records(records):
        if record.is_remote:
            report.dependencies.append(record)
        else:
            logger.info(
                f"Skipping {record.name}: {record.kind} is not a git repository",
                extra={"dependency": record.name},
            )
            report.skipped.append(record)

    # --- Phase 3: Mirroring ---
    report.phase = RunPhase.MIRRORING
    deps = report.dependencies
    if workers > 1 and len(deps) > 1:
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="mirror-sync") as pool:
            report.outcomes = list(
                pool.map(lambda d: store.sync(d.repository_url, d.revision), deps)
            )
    else:
        report.outcomes = [store.sync(d.repository_url, d.revision) for d in deps]

    logger.info(f"Mirrors synced: {len(report.succeeded)}/{len(report.outcomes)}")

    # --- Phase 4: Redirecting ---
    # Only after every sync settled, and only for mirrors that synced.
    report.phase = RunPhase.REDIRECTING
    rules = [
        RedirectRule(remote_url=o.repository_url, local_url=o.entry.local_path)
        for o in report.succeeded
        if o.entry is not None
    ]
    try:
        report.redirects = mapper.apply(rules)
    except ConfigWriteError as e:
        _abort(report, e, started)
        raise

    # --- Phase 5: Done ---
    report.phase = RunPhase.DONE
    report.duration_ms = int((time.time() - started) * 1000)
    for outcome in report.failed:
        logger.warning(f"Not mirrored: {outcome.repository_url} ({outcome.error_kind}: {outcome.error})")
    return report


def run_wipe(
    store: MirrorStore,
    mapper: Optional[RedirectMapper] = None,
    clear_config: bool = False,
) -> WipeReport:
    """
    Delete every local mirror.

    Redirect rules are left in the git config unless ``clear_config`` is
    set; stale rules then point at missing directories until the next
    install recreates them.
    """
    report = WipeReport(repo_dir=str(store.repo_dir))

    report.phase = RunPhase.WIPING
    try:
        store.remove_all()
        if clear_config and mapper is not None:
            report.cleared_redirects = mapper.clear_all()
    except (OSError, ConfigWriteError) as e:
        report.phase = RunPhase.ABORTED
        report.error = str(e)
        logger.error(f"Wipe aborted: {e}")
        raise

    report.phase = RunPhase.DONE
    return report
