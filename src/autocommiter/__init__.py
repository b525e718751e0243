"""Autocommiter - automatic commit and push for opted-in git repositories."""

__version__ = "1.0.0"

from .config import AutocommiterConfig, load_config
from .operation_queue import OperationQueue
from .pipeline import AutoCommitPipeline
from .service import AutoCommitService
from .types import ChangeEvent, ChangeKind, CommandResult, Outcome, OutcomeKind, PipelineState, Reason
from .vcs import CommandExecutor, is_opted_in, locate_repository_root

__all__ = [
    "AutoCommitPipeline",
    "AutoCommitService",
    "AutocommiterConfig",
    "ChangeEvent",
    "ChangeKind",
    "CommandExecutor",
    "CommandResult",
    "OperationQueue",
    "Outcome",
    "OutcomeKind",
    "PipelineState",
    "Reason",
    "is_opted_in",
    "load_config",
    "locate_repository_root",
]
