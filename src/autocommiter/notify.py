"""User-facing notifications.

Exactly one notification is emitted per terminal outcome: informational for
skips and successes, error for failures. The push step is wrapped in a
progress indicator.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import click

from .types import Outcome, OutcomeKind


class Notifier:
    """Base notifier. Discards everything."""

    def info(self, message: str) -> None:
        pass

    def error(self, message: str, detail: str = "") -> None:
        pass

    @contextmanager
    def progress(self, title: str) -> Iterator[None]:
        yield


class ConsoleNotifier(Notifier):
    """Writes notifications to the terminal."""

    def info(self, message: str) -> None:
        click.echo(message)

    def error(self, message: str, detail: str = "") -> None:
        click.secho(f"✗ {message}", fg="red", err=True)
        if detail:
            for line in detail.strip().splitlines()[:20]:
                click.echo(f"    {line}", err=True)

    @contextmanager
    def progress(self, title: str) -> Iterator[None]:
        click.echo(f"… {title}")
        yield


def notify_outcome(notifier: Notifier, outcome: Outcome, *, verbose: bool = False) -> None:
    """
    Emit the single notification belonging to a terminal outcome.

    Quiet skips (disabled, no repository, not opted in, nothing to commit)
    are only announced when verbose; the diagnostic log always records them.
    """
    if outcome.kind is OutcomeKind.FAILED:
        notifier.error(outcome.message, outcome.detail)
        return
    if outcome.is_quiet and not verbose:
        return
    if outcome.kind is OutcomeKind.COMMITTED_AND_PUSHED:
        notifier.info(f"✓ {outcome.message}")
    else:
        notifier.info(outcome.message)
