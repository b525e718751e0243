from __future__ import annotations

import json
import time
from pathlib import Path

from autocommiter.status import StatusWindow, compute_status


def _write(path: Path, events: list[dict]) -> None:
    path.write_text("".join(json.dumps(e) + "\n" for e in events))


def _completed(ts: float, rid: str, status: str, reason: str | None = None, committed: bool = False) -> dict:
    return {
        "timestamp": ts,
        "run_id": rid,
        "type": "run_completed",
        "data": {"status": status, "reason": reason, "committed": committed},
    }


def test_compute_status_counts(tmp_path: Path):
    now = time.time()
    log = tmp_path / "diag.jsonl"
    _write(
        log,
        [
            {"timestamp": now - 10, "run_id": "r1", "type": "run_started", "data": {}},
            {"timestamp": now - 9, "run_id": "r1", "type": "command_executed", "data": {"ok": True}},
            _completed(now - 8, "r1", "committed_and_pushed", committed=True),
            {"timestamp": now - 7, "run_id": "r2", "type": "run_started", "data": {}},
            {"timestamp": now - 6, "run_id": "r2", "type": "command_executed", "data": {"ok": False}},
            _completed(now - 5, "r2", "failed", "push-error", committed=True),
            _completed(now - 4, "r3", "skipped", "no-changes"),
            _completed(now - 3, "r4", "committed", "no-remote", committed=True),
        ],
    )

    st = compute_status(log, window=StatusWindow(seconds=60))
    assert st["runs"] == 4
    assert st["outcomes"] == {"committed_and_pushed": 1, "failed": 1, "skipped": 1, "committed": 1}
    assert st["reasons"] == {"push-error": 1, "no-changes": 1, "no-remote": 1}
    assert st["commits"] == 3
    assert st["failures"] == 1
    assert st["push_success_rate"] == 0.5
    assert st["commands_executed"] == 2
    assert st["commands_failed"] == 1
    assert st["run_latency_s_p50"] is not None
    assert st["last_run"]["run_id"] == "r4"


def test_window_excludes_old_events(tmp_path: Path):
    now = time.time()
    log = tmp_path / "diag.jsonl"
    _write(log, [_completed(now - 7200, "old", "committed"), _completed(now - 1, "new", "skipped", "disabled")])

    st = compute_status(log, window=StatusWindow(seconds=3600))
    assert st["runs"] == 1
    assert st["outcomes"] == {"skipped": 1}


def test_missing_log(tmp_path: Path):
    st = compute_status(tmp_path / "none.jsonl")
    assert st["runs"] == 0
    assert st["push_success_rate"] is None
    assert st["last_run"] is None
