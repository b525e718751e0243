from pathlib import Path, PurePosixPath


def relative_to_root(root: Path, path: Path) -> str:
    """Return `path` relative to `root` as a POSIX pathspec.

    Neither side is resolved, so a deleted file still maps cleanly.
    """
    root = Path(root).absolute()
    path = Path(path).absolute()
    try:
        rel = path.relative_to(root)
    except ValueError:
        raise ValueError(f"Path escapes repo root: {path}") from None
    if ".." in rel.parts:
        raise ValueError(f"Path escapes repo root: {path}")
    if not rel.parts:
        raise ValueError("Path is the repo root itself")
    if rel.parts[0] == ".git":
        raise ValueError("Forbidden path component: .git")
    return str(PurePosixPath(*rel.parts))
