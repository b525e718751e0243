"""Autocommit service - event handling entry point and watcher lifecycle.

The service:
1. Receives ChangeEvents (from the watcher or the CLI)
2. Reads the enablement state once per event
3. Enqueues a pipeline run on the operation queue
4. Reports unexpected run errors without stopping the queue
"""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Any

from watchdog.observers import Observer

from .config import AutocommiterConfig
from .enablement import EnablementStore
from .notify import ConsoleNotifier, Notifier, notify_outcome
from .operation_queue import OperationQueue
from .pipeline import AutoCommitPipeline
from .support.diagnostics import DiagnosticLog, prune_log_file, redact_text
from .types import ChangeEvent, Outcome, OutcomeKind, Reason
from .vcs.executor import CommandExecutor
from .watcher import ChangeEventHandler


class AutoCommitService:
    """
    Owns the operation queue and feeds it one pipeline run per event.

    Runs never overlap: each event's git commands finish before the next
    event's begin.
    """

    def __init__(
        self,
        config: AutocommiterConfig,
        enablement: EnablementStore | None = None,
        notifier: Notifier | None = None,
        diagnostics: DiagnosticLog | None = None,
        executor: CommandExecutor | None = None,
    ):
        self.config = config
        self.enablement = enablement or EnablementStore(config.state_path)
        self.notifier = notifier or ConsoleNotifier()
        self.diagnostics = diagnostics or DiagnosticLog(
            enabled=config.diagnostics.enabled,
            path=Path(config.diagnostics.log_path).expanduser(),
        )
        self.executor = executor or CommandExecutor(
            binary=config.git.binary,
            timeout_s=config.git.timeout_seconds,
            max_output_bytes=config.git.max_output_bytes,
            locale=config.git.locale,
            diagnostics=self.diagnostics,
            max_excerpt_chars=config.diagnostics.max_excerpt_chars,
        )
        self.pipeline = AutoCommitPipeline(
            self.executor,
            git=config.git,
            diagnostics=self.diagnostics,
            notifier=self.notifier,
            verbose=config.notifications.verbose,
        )
        self.queue = OperationQueue()
        self._running = False

    def submit(self, event: ChangeEvent) -> asyncio.Future[Outcome]:
        """
        Admit one event. Must be called on the service's event loop.

        The enablement state is read here, once; the queued run is not
        affected by later toggles.
        """
        enabled = self.enablement.read()
        return self.queue.enqueue(lambda: self._run(event, enabled))

    async def handle(self, event: ChangeEvent) -> Outcome:
        """Submit an event and wait for its terminal outcome."""
        return await self.submit(event)

    async def _run(self, event: ChangeEvent, enabled: bool) -> Outcome:
        try:
            return await self.pipeline.run(event, enabled=enabled)
        except Exception as e:  # noqa: BLE001
            outcome = Outcome(
                kind=OutcomeKind.FAILED,
                event=event,
                reason=Reason.INTERNAL_ERROR,
                message=f"Auto commit failed for {event.path}: {e}",
                detail=repr(e),
            )
            self.diagnostics.log(
                "service",
                "run_completed",
                outcome.to_dict() | {"detail": redact_text(repr(e), max_len=400)},
            )
            notify_outcome(self.notifier, outcome)
            return outcome

    async def start(self, watch_paths: list[Path] | None = None) -> None:
        """Watch directories and process events until stopped."""
        self._running = True

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, lambda: setattr(self, "_running", False))
            except (NotImplementedError, RuntimeError):
                # Not supported on some platforms / event loops.
                pass

        if self.diagnostics.enabled:
            prune_log_file(self.diagnostics.path, self.config.diagnostics.retention_days)

        if watch_paths is None:
            watch_paths = [Path(p) for p in self.config.monitoring.watch_paths]

        observer: Any = Observer()
        handlers: list[ChangeEventHandler] = []
        for watch_path in watch_paths:
            full_path = Path(watch_path).expanduser().absolute()
            if not full_path.is_dir():
                self.diagnostics.log(
                    "monitor", "event_dropped", {"reason": "watch_path_missing", "path": str(full_path)}
                )
                continue
            handler = ChangeEventHandler(
                self.submit,
                loop=loop,
                watch_root=full_path,
                ignore_patterns=self.config.monitoring.ignore_patterns,
                diagnostics=self.diagnostics if self.diagnostics.enabled else None,
                debounce_seconds=self.config.monitoring.debounce_seconds,
            )
            observer.schedule(handler, str(full_path), recursive=True)
            handlers.append(handler)

        observer.start()
        try:
            while self._running:
                await asyncio.sleep(0.2)
        finally:
            observer.stop()
            observer.join()
            # Events still inside their quiet period are submitted, not lost.
            await asyncio.sleep(0)
            for handler in handlers:
                handler.flush()
            # Let runs that were already admitted reach their terminal state.
            await self.queue.join()
            await self.queue.close()

    async def stop(self) -> None:
        """Stop watching."""
        self._running = False
