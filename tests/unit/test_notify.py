from __future__ import annotations

from pathlib import Path

from autocommiter.notify import ConsoleNotifier, Notifier, notify_outcome
from autocommiter.types import ChangeEvent, Outcome, OutcomeKind, Reason


class Recorder(Notifier):
    def __init__(self) -> None:
        self.calls: list[tuple[str, str]] = []

    def info(self, message: str) -> None:
        self.calls.append(("info", message))

    def error(self, message: str, detail: str = "") -> None:
        self.calls.append(("error", message))


def outcome(kind: OutcomeKind, reason: str | None, tmp_path: Path) -> Outcome:
    return Outcome(kind, ChangeEvent.modified(tmp_path / "a.txt"), reason, message="msg")


def test_failure_is_an_error(tmp_path: Path):
    rec = Recorder()
    notify_outcome(rec, outcome(OutcomeKind.FAILED, Reason.PUSH_ERROR, tmp_path))
    assert rec.calls == [("error", "msg")]


def test_push_success_is_marked(tmp_path: Path):
    rec = Recorder()
    notify_outcome(rec, outcome(OutcomeKind.COMMITTED_AND_PUSHED, None, tmp_path))
    assert rec.calls == [("info", "✓ msg")]


def test_commit_without_remote_is_info(tmp_path: Path):
    rec = Recorder()
    notify_outcome(rec, outcome(OutcomeKind.COMMITTED, Reason.NO_REMOTE, tmp_path))
    assert rec.calls == [("info", "msg")]


def test_quiet_skip_only_when_verbose(tmp_path: Path):
    rec = Recorder()
    skip = outcome(OutcomeKind.SKIPPED, Reason.NO_CHANGES, tmp_path)

    notify_outcome(rec, skip)
    assert rec.calls == []

    notify_outcome(rec, skip, verbose=True)
    assert rec.calls == [("info", "msg")]


def test_console_notifier_streams(capsys):
    n = ConsoleNotifier()
    n.info("hello")
    n.error("broken", "line one\nline two")
    with n.progress("Pushing"):
        pass

    captured = capsys.readouterr()
    assert "hello" in captured.out
    assert "… Pushing" in captured.out
    assert "✗ broken" in captured.err
    assert "    line two" in captured.err
