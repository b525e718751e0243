"""Filesystem event source.

Translates watchdog notifications into ChangeEvents and hands them to the
service on its event loop. No pipeline logic runs here.
"""

from __future__ import annotations

import asyncio
import fnmatch
from collections.abc import Callable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler

from .support.diagnostics import DiagnosticLog
from .types import ChangeEvent, ChangeKind

_MODIFIED_TYPES = {"modified", "created", "closed"}

# Never react to repository metadata, including our own git writes.
ALWAYS_IGNORE_COMPONENTS = {".git"}


class ChangeEventHandler(FileSystemEventHandler):
    """File system event handler that submits ChangeEvents."""

    def __init__(
        self,
        submit: Callable[[ChangeEvent], object],
        loop: asyncio.AbstractEventLoop,
        watch_root: Path,
        ignore_patterns: list[str] | None = None,
        diagnostics: DiagnosticLog | None = None,
        debounce_seconds: float = 1.0,
    ):
        self.submit = submit
        self.loop = loop
        self.watch_root = Path(watch_root).absolute()
        self.ignore_patterns = ignore_patterns or []
        self.diagnostics = diagnostics
        self.debounce_seconds = debounce_seconds
        self._pending: dict[
            tuple[str, ChangeKind], tuple[asyncio.TimerHandle, ChangeEvent, str]
        ] = {}

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any filesystem event."""
        if event.is_directory:
            return

        if event.event_type == "moved":
            self._handle(str(event.src_path), ChangeKind.DELETED, event.event_type)
            self._handle(str(event.dest_path), ChangeKind.MODIFIED, event.event_type)
        elif event.event_type == "deleted":
            self._handle(str(event.src_path), ChangeKind.DELETED, event.event_type)
        elif event.event_type in _MODIFIED_TYPES:
            self._handle(str(event.src_path), ChangeKind.MODIFIED, event.event_type)

    def _drop(self, reason: str, path: str, event_type: str, **extra: str) -> None:
        if self.diagnostics:
            self.diagnostics.log(
                "monitor",
                "event_dropped",
                {"reason": reason, "path": path, "event_type": event_type, **extra},
            )

    def _handle(self, raw_path: str, kind: ChangeKind, event_type: str) -> None:
        if not raw_path:
            return
        abs_path = Path(raw_path).absolute()
        try:
            rel = abs_path.relative_to(self.watch_root)
        except ValueError:
            return

        if any(p in ALWAYS_IGNORE_COMPONENTS for p in rel.parts):
            return

        rel_str = rel.as_posix()
        for pat in self.ignore_patterns:
            if (
                fnmatch.fnmatch(rel_str, pat)
                or fnmatch.fnmatch(abs_path.name, pat)
                or any(fnmatch.fnmatch(part, pat) for part in rel.parts[:-1])
            ):
                self._drop("ignore_pattern", rel_str, event_type, pattern=pat)
                return

        # Editors emit several events per save; only the last one of a burst
        # for the same path and kind is submitted, once it has been quiet for
        # debounce_seconds.
        key = (str(abs_path), kind)
        change = ChangeEvent(abs_path, kind)
        # Hand over to the service loop (thread-safe).
        self.loop.call_soon_threadsafe(self._arm, key, change, event_type)

    def _arm(self, key: tuple[str, ChangeKind], change: ChangeEvent, event_type: str) -> None:
        """Restart the quiet period for key; runs on the loop thread."""
        previous = self._pending.pop(key, None)
        if previous is not None:
            previous[0].cancel()
            self._drop("superseded", key[0], event_type)

        if self.debounce_seconds <= 0:
            self._fire(change, event_type)
            return
        timer = self.loop.call_later(self.debounce_seconds, self._fire_pending, key)
        self._pending[key] = (timer, change, event_type)

    def _fire_pending(self, key: tuple[str, ChangeKind]) -> None:
        pending = self._pending.pop(key, None)
        if pending is not None:
            _, change, event_type = pending
            self._fire(change, event_type)

    def _fire(self, change: ChangeEvent, event_type: str) -> None:
        if self.diagnostics:
            self.diagnostics.log(
                "monitor",
                "event_received",
                {"path": str(change.path), "change": change.kind.value, "event_type": event_type},
            )
        self.submit(change)

    def flush(self) -> None:
        """Submit every event still waiting out its quiet period, oldest first."""
        pending = sorted(self._pending.values(), key=lambda p: p[0].when())
        self._pending.clear()
        for timer, change, event_type in pending:
            timer.cancel()
            self._fire(change, event_type)
