from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .support.diagnostics import iter_events


@dataclass(frozen=True)
class StatusWindow:
    seconds: float


def compute_status(log_path: Path, *, window: StatusWindow | None = None) -> dict[str, Any]:
    """Compute outcome metrics from the diagnostic log (best-effort)."""
    window = window or StatusWindow(seconds=3600.0)
    now = time.time()
    cutoff = now - float(window.seconds)

    events = iter_events(log_path)
    recent = [e for e in events if float(e.get("timestamp", 0.0) or 0.0) >= cutoff]
    completed = [e for e in recent if e.get("type") == "run_completed"]

    by_status = Counter(str((e.get("data") or {}).get("status")) for e in completed)
    by_reason = Counter(
        str((e.get("data") or {}).get("reason"))
        for e in completed
        if (e.get("data") or {}).get("reason")
    )

    # Run latencies from start->completed (match by run_id).
    starts: dict[str, float] = {}
    latencies: list[float] = []
    commands = 0
    failed_commands = 0
    for e in recent:
        rid = str(e.get("run_id") or "")
        ts = float(e.get("timestamp", 0.0) or 0.0)
        if e.get("type") == "run_started":
            starts[rid] = ts
        elif e.get("type") == "run_completed":
            if rid in starts:
                latencies.append(max(0.0, ts - starts[rid]))
        elif e.get("type") == "command_executed":
            commands += 1
            if not (e.get("data") or {}).get("ok"):
                failed_commands += 1

    def _p(values: list[float], pct: float) -> float | None:
        if not values:
            return None
        s = sorted(values)
        idx = int(round((pct / 100.0) * (len(s) - 1)))
        return float(s[max(0, min(len(s) - 1, idx))])

    pushed = by_status.get("committed_and_pushed", 0)
    failed = by_status.get("failed", 0)
    push_attempts = pushed + by_reason.get("push-error", 0)

    last_run = next((e for e in reversed(events) if e.get("type") == "run_completed"), None)

    return {
        "window_seconds": window.seconds,
        "log_path": str(log_path),
        "runs": len(completed),
        "outcomes": dict(by_status),
        "reasons": dict(by_reason),
        "commits": sum(1 for e in completed if (e.get("data") or {}).get("committed")),
        "failures": failed,
        "push_success_rate": (pushed / push_attempts) if push_attempts else None,
        "commands_executed": commands,
        "commands_failed": failed_commands,
        "run_latency_s_p50": _p(latencies, 50.0),
        "run_latency_s_p95": _p(latencies, 95.0),
        "last_run": last_run,
    }
