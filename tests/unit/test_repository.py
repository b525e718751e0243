"""Unit tests for repository discovery and the opt-in marker."""

from __future__ import annotations

import json
from pathlib import Path

from autocommiter.support.diagnostics import DiagnosticLog
from autocommiter.vcs.repository import create_marker, is_opted_in, locate_repository_root


class TestLocateRepositoryRoot:
    def test_finds_nearest_ancestor(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert locate_repository_root(nested / "file.txt") == tmp_path

    def test_innermost_repository_wins(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        inner = tmp_path / "vendor" / "lib"
        inner.mkdir(parents=True)
        (inner / ".git").mkdir()

        assert locate_repository_root(inner / "x.py") == inner

    def test_git_file_counts(self, tmp_path: Path):
        # Worktrees and submodules use a .git file instead of a directory.
        (tmp_path / ".git").write_text("gitdir: /elsewhere/.git/worktrees/wt\n")
        assert locate_repository_root(tmp_path / "x.txt") == tmp_path

    def test_deleted_file_still_resolves(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()
        (tmp_path / "sub").mkdir()
        assert locate_repository_root(tmp_path / "sub" / "removed.txt") == tmp_path

    def test_none_outside_any_repository(self, tmp_path: Path):
        assert locate_repository_root(tmp_path / "loose.txt") is None

    def test_relative_path(self, tmp_path: Path, monkeypatch):
        (tmp_path / ".git").mkdir()
        monkeypatch.chdir(tmp_path)
        assert locate_repository_root("notes.md") == tmp_path

    def test_filesystem_error_is_logged_and_treated_as_absent(self, tmp_path: Path, monkeypatch):
        log_path = tmp_path / "diag.jsonl"
        diag = DiagnosticLog(enabled=True, path=log_path)

        def boom(self):
            raise PermissionError("denied")

        monkeypatch.setattr(Path, "exists", boom)
        assert locate_repository_root(tmp_path / "x.txt", diag, run_id="r1") is None
        monkeypatch.undo()

        events = [json.loads(ln) for ln in log_path.read_text().splitlines()]
        assert events[-1]["type"] == "locate_failed"
        assert events[-1]["run_id"] == "r1"


class TestMarker:
    def test_opted_in_by_existence_only(self, tmp_path: Path):
        assert not is_opted_in(tmp_path)
        (tmp_path / ".autocommiter").write_text("anything at all")
        assert is_opted_in(tmp_path)

    def test_marker_in_subdirectory_does_not_count(self, tmp_path: Path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / ".autocommiter").touch()
        assert not is_opted_in(tmp_path)

    def test_custom_marker_name(self, tmp_path: Path):
        (tmp_path / ".autosave").touch()
        assert is_opted_in(tmp_path, ".autosave")
        assert not is_opted_in(tmp_path)

    def test_create_marker(self, tmp_path: Path):
        marker, created = create_marker(tmp_path)
        assert created
        assert marker == tmp_path / ".autocommiter"
        assert marker.read_text() == ""

        _, created_again = create_marker(tmp_path)
        assert not created_again
