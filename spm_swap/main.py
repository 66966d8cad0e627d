"""
spm-git-swap — CLI Entry Point

Usage:
    spm-git-swap install PATH [--workers N] [--strict] [--json]
    spm-git-swap wipe [--clear-config]
    spm-git-swap status [--json]
"""

from __future__ import annotations

# Load .env before anything reads SPM_SWAP_* variables
from pathlib import Path
from dotenv import load_dotenv

_env_file = Path.cwd() / ".env"
if _env_file.exists():
    load_dotenv(_env_file)

import json
import sys
from typing import Optional

import click

from .config.settings import SwapSettings
from .errors import SwapError
from .logging_config import setup_logging
from .mirror.git import global_config_files
from .mirror.store import MirrorStore
from .orchestrator import run_install, run_wipe
from .redirect.gitconfig import GitGlobalConfig
from .redirect.mapper import RedirectMapper

EXIT_ABORTED = 1
EXIT_PARTIAL = 2


def build_store(settings: SwapSettings) -> MirrorStore:
    sources = global_config_files()
    if settings.git_config_file is not None and settings.git_config_file not in sources:
        sources.append(settings.git_config_file)
    return MirrorStore(
        settings.repo_dir,
        prefer_ssh=settings.prefer_ssh,
        git_timeout=settings.git_timeout,
        config_sources=sources,
    )


def build_mapper(settings: SwapSettings, store: MirrorStore) -> RedirectMapper:
    return RedirectMapper(GitGlobalConfig(settings.git_config_file), store.managed_prefix)


def _fail(error: Exception) -> None:
    click.secho(f"Error: {error}", fg="red", err=True)
    sys.exit(EXIT_ABORTED)


@click.group()
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR (default: $LOG_LEVEL or INFO)")
@click.option("--log-format", type=click.Choice(["text", "json"]), default=None, help="Log output format")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], log_format: Optional[str]) -> None:
    """Clone Swift packages from Package.resolved files and redirect git to the local copies."""
    setup_logging(log_level, log_format)
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        ctx.obj["settings"] = SwapSettings.from_env()


@cli.command()
@click.argument("path", type=click.Path(path_type=Path))
@click.option("--workers", type=int, default=None, help="Parallel clone/fetch operations (default: $SPM_SWAP_WORKERS or 4)")
@click.option("--strict", is_flag=True, help="Exit with status 2 if any manifest or mirror failed")
@click.option("--json", "as_json", is_flag=True, help="Print the run report as JSON")
@click.pass_context
def install(ctx: click.Context, path: Path, workers: Optional[int], strict: bool, as_json: bool) -> None:
    """Mirror every package pinned in Package.resolved files under PATH."""
    settings: SwapSettings = ctx.obj["settings"]
    store = build_store(settings)
    mapper = build_mapper(settings, store)

    try:
        report = run_install(path, store, mapper, workers=max(1, workers or settings.workers))
    except SwapError as e:
        _fail(e)
        return

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2, default=str))
    else:
        click.echo(f"\n📦 Install: {report.root}\n")
        click.echo(f"  Manifests:  {len(report.manifests)} found, {len(report.manifest_failures)} unusable")
        click.echo(f"  Packages:   {len(report.dependencies)} git, {len(report.skipped)} skipped")
        click.echo(f"  Mirrors:    {len(report.succeeded)}/{len(report.outcomes)} synced")
        click.echo(f"  Redirects:  {len(report.redirects)} applied")
        click.echo()

        for outcome in report.outcomes:
            if outcome.ok and outcome.entry is not None:
                revision = (outcome.entry.revision or "?")[:12]
                click.echo(f"  ✅ {outcome.repository_url} @ {revision} ({outcome.entry.state.value})")
            else:
                click.secho(f"  ❌ {outcome.repository_url} — {outcome.error_kind}: {outcome.error}", fg="red")
        for failure in report.manifest_failures:
            click.secho(f"  ⚠️  {failure.path} — {failure.error}", fg="yellow")
        for record in report.skipped:
            click.echo(f"  ⊘ {record.name} ({record.kind})")
        click.echo()

    if strict and not report.clean:
        sys.exit(EXIT_PARTIAL)


@cli.command()
@click.option("--clear-config", is_flag=True, help="Also remove the redirects this tool added to the git config")
@click.pass_context
def wipe(ctx: click.Context, clear_config: bool) -> None:
    """Delete all cached repositories."""
    settings: SwapSettings = ctx.obj["settings"]
    store = build_store(settings)
    mapper = build_mapper(settings, store) if clear_config else None

    try:
        report = run_wipe(store, mapper, clear_config=clear_config)
    except (SwapError, OSError) as e:
        _fail(e)
        return

    click.secho(f"✓ Wiped {store.checkouts_dir}", fg="green")
    if clear_config:
        click.echo(f"  Removed {len(report.cleared_redirects)} redirect(s) from the git config")
    else:
        click.echo("  Redirects in the git config were left in place.")
        click.echo("  Run `install` again or `wipe --clear-config` to remove them.")


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show cached repositories and the redirects pointing at them."""
    settings: SwapSettings = ctx.obj["settings"]
    store = build_store(settings)
    mapper = build_mapper(settings, store)

    try:
        rules = mapper.managed_rules()
    except SwapError as e:
        _fail(e)
        return
    entries = store.entries()
    redirected = {r.local_url: r.remote_url for r in rules}

    if as_json:
        result = {
            "repo_dir": str(settings.repo_dir),
            "mirrors": [e.model_dump(mode="json") for e in entries],
            "redirects": [r.model_dump() for r in rules],
        }
        click.echo(json.dumps(result, indent=2))
        return

    click.echo(f"\n🔀 Mirrors in {store.checkouts_dir}\n")
    if not entries:
        click.echo("  No mirrors. Run `install PATH` first.")
    for entry in entries:
        icon = "✅" if entry.local_path in redirected else "⏳"
        click.echo(f"  {icon} {entry.repository_url or Path(entry.local_path).name} @ {(entry.revision or '?')[:12]}")

    orphans = [r for r in rules if not Path(r.local_url).is_dir()]
    if orphans:
        click.echo()
        click.secho(f"  {len(orphans)} redirect(s) point at missing mirrors:", fg="yellow")
        for rule in orphans:
            click.echo(f"    {rule.remote_url} → {rule.local_url}")
    click.echo()


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
