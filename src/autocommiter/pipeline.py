"""Auto-commit pipeline.

One run turns one ChangeEvent into an ordered sequence of git commands:

1. Locate the repository root
2. Check the opt-in marker
3. Check the commit identity
4. Stage the path (tracked removal for deletes)
5. Skip if nothing is staged
6. Commit
7. Check for the default remote
8. Push

Each state either names the next state or returns a terminal Outcome.
Failures are transitions, not exceptions.
"""

from __future__ import annotations

import asyncio
import functools
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from .config import GitConfig
from .notify import Notifier, notify_outcome
from .support.diagnostics import DiagnosticLog, redact_text
from .support.safe_paths import relative_to_root
from .types import (
    ChangeEvent,
    ChangeKind,
    CommandResult,
    Outcome,
    OutcomeKind,
    PipelineState,
    Reason,
)
from .vcs.executor import CommandExecutor
from .vcs.repository import is_opted_in, locate_repository_root


@dataclass
class PipelineRun:
    """Mutable state of one run, discarded at its terminal outcome."""

    event: ChangeEvent
    enabled: bool
    # What gets committed; a Deleted event whose file is back on disk becomes MODIFIED.
    kind: ChangeKind = ChangeKind.MODIFIED
    run_id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    root: Path | None = None
    rel_path: str | None = None
    commit_message: str | None = None
    committed: bool = False
    steps: list[PipelineState] = field(default_factory=list)

    def located(self) -> tuple[Path, str]:
        """Repository root and root-relative path, available after LOCATE_ROOT."""
        if self.root is None or self.rel_path is None:
            raise RuntimeError(f"Run {self.run_id} used before its repository was located")
        return self.root, self.rel_path


Step = PipelineState | Outcome


class AutoCommitPipeline:
    """Drives one ChangeEvent through the auto-commit state machine."""

    def __init__(
        self,
        executor: CommandExecutor,
        git: GitConfig | None = None,
        diagnostics: DiagnosticLog | None = None,
        notifier: Notifier | None = None,
        verbose: bool = False,
    ):
        self.executor = executor
        self.git = git or GitConfig()
        self.diagnostics = diagnostics or DiagnosticLog.disabled()
        self.notifier = notifier or Notifier()
        self.verbose = verbose

        self._handlers: dict[PipelineState, Callable[[PipelineRun], Awaitable[Step]]] = {
            PipelineState.START: self._start,
            PipelineState.LOCATE_ROOT: self._locate_root,
            PipelineState.CHECK_OPT_IN: self._check_opt_in,
            PipelineState.CHECK_IDENTITY: self._check_identity,
            PipelineState.STAGE: self._stage,
            PipelineState.CHECK_DIRTY: self._check_dirty,
            PipelineState.COMMIT: self._commit,
            PipelineState.CHECK_REMOTE: self._check_remote,
            PipelineState.PUSH: self._push,
        }

    def commit_message_for(self, kind: ChangeKind, path: Path) -> str:
        return self.git.commit_message_template.format(action=kind.commit_action, name=path.name)

    async def run(self, event: ChangeEvent, *, enabled: bool = True) -> Outcome:
        """
        Process one event to its terminal outcome.

        Args:
            event: The change to record
            enabled: Enablement state, read once by the caller at event time

        Returns:
            Terminal Outcome (already logged and notified)
        """
        run = PipelineRun(event=event, enabled=enabled, kind=event.kind)
        self.diagnostics.log(
            run.run_id,
            "run_started",
            {"path": str(event.path), "change": event.kind.value, "enabled": enabled},
        )

        step: Step = PipelineState.START
        while isinstance(step, PipelineState):
            run.steps.append(step)
            step = await self._handlers[step](run)

        outcome = step
        outcome.steps = list(run.steps)
        outcome.repository = run.root
        outcome.commit_message = run.commit_message
        outcome.committed = run.committed

        self.diagnostics.log(
            run.run_id,
            "run_completed",
            outcome.to_dict() | {"detail": redact_text(outcome.detail, max_len=2000)},
        )
        notify_outcome(self.notifier, outcome, verbose=self.verbose)
        return outcome

    async def _git(self, run: PipelineRun, *args: str) -> CommandResult:
        root, _ = run.located()
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(self.executor.run, root, list(args), run_id=run.run_id),
        )

    def _outcome(
        self,
        run: PipelineRun,
        kind: OutcomeKind,
        reason: str | None,
        message: str,
        detail: str = "",
    ) -> Outcome:
        return Outcome(kind=kind, event=run.event, reason=reason, message=message, detail=detail)

    def _skipped(self, run: PipelineRun, reason: str, message: str) -> Outcome:
        return self._outcome(run, OutcomeKind.SKIPPED, reason, message)

    def _failed(self, run: PipelineRun, reason: str, message: str, result: CommandResult | None = None) -> Outcome:
        detail = ""
        if result is not None:
            detail = (result.stderr or result.stdout).strip()
        return self._outcome(run, OutcomeKind.FAILED, reason, message, detail)

    def _executor_failure(self, run: PipelineRun, result: CommandResult) -> Outcome | None:
        """Map executor-level failures (timeout, oversized output) to outcomes."""
        if result.timed_out:
            return self._failed(
                run, Reason.TIMEOUT, f"git {result.argv[1]} timed out in {run.root}", result
            )
        if result.output_too_large:
            return self._failed(
                run,
                Reason.OUTPUT_TOO_LARGE,
                f"git {result.argv[1]} produced more output than allowed in {run.root}",
                result,
            )
        return None

    async def _start(self, run: PipelineRun) -> Step:
        if not run.enabled:
            return self._skipped(run, Reason.DISABLED, "Auto commit is disabled")
        return PipelineState.LOCATE_ROOT

    async def _locate_root(self, run: PipelineRun) -> Step:
        root = locate_repository_root(run.event.path, self.diagnostics, run.run_id)
        if root is None:
            return self._skipped(
                run, Reason.NO_REPOSITORY, f"No git repository found for {run.event.path}"
            )
        run.root = root
        try:
            run.rel_path = relative_to_root(root, run.event.path)
        except ValueError as e:
            return self._skipped(run, Reason.PATH_OUTSIDE_ROOT, f"Not committing {run.event.path}: {e}")
        return PipelineState.CHECK_OPT_IN

    async def _check_opt_in(self, run: PipelineRun) -> Step:
        root, _ = run.located()
        if not is_opted_in(root, self.git.marker_name):
            return self._skipped(
                run, Reason.NOT_OPTED_IN, f"{self.git.marker_name} file not found in {root}"
            )
        return PipelineState.CHECK_IDENTITY

    async def _check_identity(self, run: PipelineRun) -> Step:
        for key in ("user.name", "user.email"):
            result = await self._git(run, "config", key)
            if failure := self._executor_failure(run, result):
                return failure
            if not result.ok or not result.stdout.strip():
                return self._failed(
                    run,
                    Reason.MISSING_IDENTITY,
                    "Git user configuration not found. "
                    "Please configure git user.name and user.email",
                    result,
                )
        return PipelineState.STAGE

    async def _stage(self, run: PipelineRun) -> Step:
        root, rel_path = run.located()
        if run.kind is ChangeKind.DELETED and (root / rel_path).exists():
            # Editors that save by rename-and-recreate report a delete for a file
            # that is back by now; record its current content instead.
            self.diagnostics.log(run.run_id, "delete_reclassified", {"path": rel_path})
            run.kind = ChangeKind.MODIFIED

        if run.kind is ChangeKind.DELETED:
            # Index-only: the working tree is never touched.
            removed = await self._git(run, "rm", "--cached", "--quiet", "--", rel_path)
            if not removed.ok:
                # Not tracked (or already removed from the index): stage directly.
                # Either way the staged diff decides what happens next.
                await self._git(run, "add", "-A", "--", rel_path)
            return PipelineState.CHECK_DIRTY

        result = await self._git(run, "add", "--", rel_path)
        if failure := self._executor_failure(run, result):
            return failure
        if not result.ok:
            return self._failed(run, Reason.STAGE_ERROR, f"Failed to stage {rel_path}", result)
        return PipelineState.CHECK_DIRTY

    async def _check_dirty(self, run: PipelineRun) -> Step:
        result = await self._git(run, "diff", "--staged", "--quiet")
        if failure := self._executor_failure(run, result):
            return failure
        if result.exit_code == 0:
            return self._skipped(run, Reason.NO_CHANGES, f"No changes to commit for {run.rel_path}")
        return PipelineState.COMMIT

    async def _commit(self, run: PipelineRun) -> Step:
        run.commit_message = self.commit_message_for(run.kind, run.event.path)
        result = await self._git(run, "commit", "-m", run.commit_message)
        if failure := self._executor_failure(run, result):
            return failure
        if not result.ok:
            return self._failed(run, Reason.COMMIT_ERROR, f"Failed to commit {run.rel_path}", result)
        run.committed = True
        return PipelineState.CHECK_REMOTE

    async def _check_remote(self, run: PipelineRun) -> Step:
        result = await self._git(run, "remote", "get-url", self.git.remote)
        if failure := self._executor_failure(run, result):
            return failure
        if not result.ok:
            return self._outcome(
                run,
                OutcomeKind.COMMITTED,
                Reason.NO_REMOTE,
                f"Committed {run.rel_path} ({run.commit_message}); "
                f"no remote '{self.git.remote}' configured, push skipped",
            )
        return PipelineState.PUSH

    async def _push(self, run: PipelineRun) -> Step:
        with self.notifier.progress(f"Pushing changes in {run.root}..."):
            result = await self._git(run, "push", self.git.remote, "HEAD")
        if failure := self._executor_failure(run, result):
            return failure
        if not result.ok:
            return self._failed(
                run,
                Reason.PUSH_ERROR,
                f"Failed to push changes (commit '{run.commit_message}' kept locally)",
                result,
            )
        return self._outcome(
            run,
            OutcomeKind.COMMITTED_AND_PUSHED,
            None,
            f"Successfully pushed changes: {run.commit_message}",
        )
