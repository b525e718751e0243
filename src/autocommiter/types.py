"""Core data types for the auto-commit pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """Kind of filesystem activity reported for a path."""

    MODIFIED = "modified"
    DELETED = "deleted"

    @property
    def commit_action(self) -> str:
        return "delete" if self is ChangeKind.DELETED else "update"


@dataclass(frozen=True)
class ChangeEvent:
    """A single file save/delete notification."""

    path: Path
    kind: ChangeKind = ChangeKind.MODIFIED

    def __post_init__(self) -> None:
        # Normalize without resolving symlinks so root-relative paths stay stable.
        object.__setattr__(self, "path", Path(self.path).absolute())
        object.__setattr__(self, "kind", ChangeKind(self.kind))

    @classmethod
    def modified(cls, path: Path | str) -> ChangeEvent:
        return cls(Path(path), ChangeKind.MODIFIED)

    @classmethod
    def deleted(cls, path: Path | str) -> ChangeEvent:
        return cls(Path(path), ChangeKind.DELETED)


@dataclass
class CommandResult:
    """Outcome of one external command invocation."""

    argv: list[str]
    cwd: Path
    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    duration_s: float = 0.0
    timed_out: bool = False
    output_too_large: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.output_too_large


class PipelineState(str, Enum):
    """Named states of one pipeline run, in the order they are entered."""

    START = "start"
    LOCATE_ROOT = "locate_root"
    CHECK_OPT_IN = "check_opt_in"
    CHECK_IDENTITY = "check_identity"
    STAGE = "stage"
    CHECK_DIRTY = "check_dirty"
    COMMIT = "commit"
    CHECK_REMOTE = "check_remote"
    PUSH = "push"


class OutcomeKind(str, Enum):
    """Terminal outcome classes."""

    SKIPPED = "skipped"
    COMMITTED = "committed"
    COMMITTED_AND_PUSHED = "committed_and_pushed"
    FAILED = "failed"


class Reason:
    """Outcome reasons used by Skipped and Failed outcomes."""

    DISABLED = "disabled"
    NO_REPOSITORY = "no-repository"
    NOT_OPTED_IN = "not-opted-in"
    NO_CHANGES = "no-changes"
    NO_REMOTE = "no-remote"
    MISSING_IDENTITY = "missing-identity"
    STAGE_ERROR = "stage-error"
    COMMIT_ERROR = "commit-error"
    PUSH_ERROR = "push-error"
    TIMEOUT = "timeout"
    OUTPUT_TOO_LARGE = "output-too-large"
    PATH_OUTSIDE_ROOT = "path-outside-root"
    INTERNAL_ERROR = "internal-error"


# Skipped reasons that need no user attention.
QUIET_REASONS = frozenset(
    {
        Reason.DISABLED,
        Reason.NO_REPOSITORY,
        Reason.NOT_OPTED_IN,
        Reason.NO_CHANGES,
        Reason.PATH_OUTSIDE_ROOT,
    }
)


@dataclass
class Outcome:
    """Terminal outcome of one pipeline run."""

    kind: OutcomeKind
    event: ChangeEvent
    reason: str | None = None
    message: str = ""
    detail: str = ""
    repository: Path | None = None
    commit_message: str | None = None
    # True once a local commit exists, even if a later push failed.
    committed: bool = False
    steps: list[PipelineState] = field(default_factory=list)

    @property
    def is_failure(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    @property
    def is_skipped(self) -> bool:
        return self.kind is OutcomeKind.SKIPPED

    @property
    def is_quiet(self) -> bool:
        return self.is_skipped and self.reason in QUIET_REASONS

    def to_dict(self) -> dict[str, object]:
        return {
            "status": self.kind.value,
            "reason": self.reason,
            "message": self.message,
            "path": str(self.event.path),
            "change": self.event.kind.value,
            "repository": str(self.repository) if self.repository else None,
            "commit_message": self.commit_message,
            "committed": self.committed,
            "steps": [s.value for s in self.steps],
        }
