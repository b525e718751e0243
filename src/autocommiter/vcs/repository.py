"""Repository discovery and the per-repository opt-in marker."""

from __future__ import annotations

from pathlib import Path

from ..config import DEFAULT_MARKER_NAME
from ..support.diagnostics import DiagnosticLog

GIT_METADATA = ".git"


def locate_repository_root(
    path: Path | str,
    diagnostics: DiagnosticLog | None = None,
    run_id: str = "-",
) -> Path | None:
    """
    Find the nearest ancestor of `path` that is a git working-tree root.

    The walk starts at the parent directory of `path` and stops at the
    filesystem root. `.git` may be a directory (regular clone) or a file
    (worktree, submodule).

    Args:
        path: Changed file path (need not exist, e.g. after a delete)
        diagnostics: Optional log for filesystem errors
        run_id: Run identifier used when logging

    Returns:
        Repository root, or None when no ancestor qualifies or the
        filesystem could not be inspected.
    """
    current = Path(path).absolute().parent
    try:
        while True:
            if (current / GIT_METADATA).exists():
                return current
            parent = current.parent
            if parent == current:
                return None
            current = parent
    except OSError as e:
        if diagnostics is not None:
            diagnostics.log(
                run_id,
                "locate_failed",
                {"path": str(path), "at": str(current), "error": str(e)},
            )
        return None


def is_opted_in(root: Path, marker_name: str = DEFAULT_MARKER_NAME) -> bool:
    """True if the opt-in marker exists directly inside `root`.

    Only existence matters; the marker's contents are never read.
    """
    try:
        return (Path(root) / marker_name).exists()
    except OSError:
        return False


def create_marker(root: Path, marker_name: str = DEFAULT_MARKER_NAME) -> tuple[Path, bool]:
    """Create the zero-content opt-in marker. Returns (path, created)."""
    marker = Path(root) / marker_name
    if marker.exists():
        return marker, False
    marker.touch()
    return marker, True
