"""Command-line interface for Autocommiter.

Commands:
- autocommiter watch [PATH...]: Watch directories and auto-commit saved files
- autocommiter commit <file>: Run the pipeline once for a single file
- autocommiter enable | disable | toggle: Flip the global switch
- autocommiter init <repo_path>: Opt a repository in
- autocommiter status: Show the switch and recent outcome metrics
- autocommiter log tail: Show recent diagnostic log entries
"""

from __future__ import annotations

import asyncio
import json
import sys
from collections import deque
from pathlib import Path

import click
from pydantic import ValidationError

from . import __version__
from .config import DEFAULT_CONFIG_YAML, AutocommiterConfig, load_config
from .enablement import EnablementStore, status_indicator, status_tooltip
from .service import AutoCommitService
from .status import StatusWindow, compute_status
from .support.diagnostics import format_event
from .types import ChangeEvent, ChangeKind, OutcomeKind
from .vcs.repository import create_marker, locate_repository_root


def _load(config: str | None) -> AutocommiterConfig:
    try:
        return load_config(config)
    except (OSError, ValueError, ValidationError) as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e


config_option = click.option(
    "--config", "-c", type=click.Path(exists=True, dir_okay=False), help="Config file path"
)


@click.group()
@click.version_option(version=__version__, prog_name="autocommiter")
def cli() -> None:
    """Autocommiter - commit and push saved files in opted-in repositories."""
    pass


@cli.command()
@click.argument("paths", nargs=-1, type=click.Path(exists=True, file_okay=False))
@config_option
def watch(paths: tuple[str, ...], config: str | None) -> None:
    """Watch directories and auto-commit saved or deleted files.

    Only repositories containing a .autocommiter file are touched.

    Example:
        autocommiter watch ~/notes ~/dotfiles
    """
    cfg = _load(config)
    store = EnablementStore(cfg.state_path)
    watch_paths = [Path(p).resolve() for p in paths] or None

    click.echo(status_indicator(store.read()))
    shown = watch_paths or [Path(p) for p in cfg.monitoring.watch_paths]
    click.echo("Watching:")
    for p in shown:
        click.echo(f"  {Path(p).expanduser().absolute()}")
    click.echo()
    click.echo("Press Ctrl+C to stop")
    click.echo("=" * 60)

    service = AutoCommitService(cfg, enablement=store)
    try:
        asyncio.run(service.start(watch_paths))
    except KeyboardInterrupt:
        click.echo()
        click.echo("Stopping Autocommiter...")
        sys.exit(0)


@cli.command()
@click.argument("file_path", type=click.Path())
@click.option("--deleted", is_flag=True, help="Record the file as deleted")
@click.option(
    "--format", "-f", "format", type=click.Choice(["text", "json"]), default="text", show_default=True
)
@config_option
def commit(file_path: str, deleted: bool, format: str, config: str | None) -> None:
    """Run the auto-commit pipeline once for FILE_PATH.

    Example:
        autocommiter commit notes/today.md
        autocommiter commit old.txt --deleted
    """
    cfg = _load(config)
    kind = ChangeKind.DELETED if deleted else ChangeKind.MODIFIED
    if kind is ChangeKind.MODIFIED and not Path(file_path).exists():
        raise click.ClickException(f"File not found: {file_path} (use --deleted for removals)")

    # Verbose so that skips are reported for explicit requests.
    cfg.notifications.verbose = True
    service = AutoCommitService(cfg)
    event = ChangeEvent(Path(file_path), kind)
    outcome = asyncio.run(service.handle(event))

    if format == "json":
        click.echo(json.dumps(outcome.to_dict(), indent=2))

    sys.exit(1 if outcome.kind is OutcomeKind.FAILED else 0)


def _set_enabled(cfg: AutocommiterConfig, value: bool | None) -> None:
    store = EnablementStore(cfg.state_path)
    enabled = store.toggle() if value is None else value
    if value is not None:
        store.set(value)
    click.echo(f"Auto Commiter {'enabled' if enabled else 'disabled'}")
    if store.read() != enabled:
        click.echo(f"Note: {EnablementStore.ENV_OVERRIDE} overrides the saved setting")


@cli.command()
@config_option
def enable(config: str | None) -> None:
    """Enable auto commit globally."""
    _set_enabled(_load(config), True)


@cli.command()
@config_option
def disable(config: str | None) -> None:
    """Disable auto commit globally."""
    _set_enabled(_load(config), False)


@cli.command()
@config_option
def toggle(config: str | None) -> None:
    """Toggle auto commit on or off."""
    _set_enabled(_load(config), None)


@cli.command()
@click.argument("repo_path", type=click.Path(exists=True, file_okay=False), default=".")
@config_option
def init(repo_path: str, config: str | None) -> None:
    """Opt a repository in by creating its marker file.

    Example:
        autocommiter init ~/notes
    """
    cfg = _load(config)
    start = Path(repo_path).absolute()
    # Locate from a path inside the directory so REPO_PATH itself is checked first.
    root = locate_repository_root(start / cfg.git.marker_name)
    if root is None:
        raise click.ClickException(f"No git repository found at or above {start}")

    marker, created = create_marker(root, cfg.git.marker_name)
    if created:
        click.echo(f"✓ Created {marker}")
    else:
        click.echo(f"Already opted in: {marker}")


@cli.command()
@config_option
@click.option(
    "--format", "-f", "format", type=click.Choice(["text", "json"]), default="text", show_default=True
)
@click.option(
    "--window-minutes",
    type=int,
    default=60,
    show_default=True,
    help="Metrics window.",
)
def status(config: str | None, format: str, window_minutes: int) -> None:
    """Show the global switch and recent outcome metrics."""
    cfg = _load(config)
    enabled = EnablementStore(cfg.state_path).read()
    log_path = Path(cfg.diagnostics.log_path).expanduser()
    st = compute_status(log_path, window=StatusWindow(seconds=max(1, window_minutes) * 60.0))

    if format == "json":
        click.echo(json.dumps({"enabled": enabled, **st}, indent=2, default=str))
        return

    click.echo(status_indicator(enabled))
    click.echo(f"  {status_tooltip(enabled)}")
    click.echo()
    click.echo(f"Diagnostic log: {log_path}")
    click.echo(f"Window: {window_minutes} minutes")
    click.echo(f"Runs: {st['runs']}")
    click.echo(f"Commits: {st['commits']}")
    click.echo(f"Failures: {st['failures']}")
    click.echo(f"Push success rate: {st['push_success_rate']}")
    if st["outcomes"]:
        click.echo("Outcomes:")
        for name, count in sorted(st["outcomes"].items()):
            click.echo(f"  {name}: {count}")
    if st["reasons"]:
        click.echo("Reasons:")
        for name, count in sorted(st["reasons"].items()):
            click.echo(f"  {name}: {count}")

    last = st.get("last_run") or {}
    if last:
        data = last.get("data") or {}
        click.echo()
        click.echo(f"Last run: run_id={last.get('run_id')} status={data.get('status')} path={data.get('path')}")


@cli.group()
def log() -> None:
    """Diagnostic log utilities."""


@log.command("tail")
@config_option
@click.option(
    "--lines",
    "-n",
    type=int,
    default=50,
    show_default=True,
    help="Number of log entries to show.",
)
@click.option("--raw", is_flag=True, help="Print JSON lines as stored.")
def log_tail(config: str | None, lines: int, raw: bool) -> None:
    """Print the last N diagnostic log entries."""
    cfg = _load(config)
    log_path = Path(cfg.diagnostics.log_path).expanduser()

    if not log_path.exists():
        raise click.ClickException(f"Diagnostic log not found: {log_path}")

    with open(log_path, encoding="utf-8") as f:
        tail = deque(f, maxlen=max(0, lines))

    for ln in tail:
        if raw:
            click.echo(ln, nl=False)
            continue
        try:
            click.echo(format_event(json.loads(ln)))
        except json.JSONDecodeError:
            click.echo(ln, nl=False)


@cli.command("config-init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
def config_init(force: bool) -> None:
    """Write the default configuration file."""
    config_path = AutocommiterConfig.default_path()

    if config_path.exists() and not force:
        click.echo(f"Configuration already exists: {config_path}")
        if not click.confirm("Overwrite?"):
            return

    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(DEFAULT_CONFIG_YAML, encoding="utf-8")
    click.echo(f"✓ Created configuration: {config_path}")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
