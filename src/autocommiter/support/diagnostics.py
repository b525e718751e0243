"""Append-only diagnostic log for pipeline runs.

Writes one JSON object per line so the file can be tailed and parsed back
by `autocommiter status`. Command output is scrubbed with `redact_text`
before it is written.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


# Secrets that git output may echo back, mostly via remote URLs.
SECRET_PATTERNS = (
    (re.compile(r"(?<=://)[^/\s:@]+:[^/\s@]+@"), "REDACTED@"),
    (re.compile(r"\b(ghp|gho|ghs)_[A-Za-z0-9]{20,}\b"), r"\1_REDACTED"),
    (re.compile(r"\bgithub_pat_\w{20,}\b"), "github_pat_REDACTED"),
    (re.compile(r"\bglpat-[\w-]{20,}\b"), "glpat-REDACTED"),
    (re.compile(r"\bAKIA[0-9A-Z]{16}\b"), "AKIA_REDACTED"),
    (
        re.compile(r"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.S),
        "PRIVATE_KEY_REDACTED",
    ),
)


def redact_text(text: str, *, max_len: int = 400) -> str:
    """Mask known secret shapes, then cap the excerpt at max_len characters."""
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text or "")
    text = text.strip()
    return text if len(text) <= max_len else f"{text[:max_len]}...(truncated)"


@dataclass
class DiagnosticLog:
    """Thin wrapper around a JSONL diagnostic file.

    Event schema:
      {"timestamp": <float>, "run_id": <str>, "type": <str>, "data": <object>}
    """

    enabled: bool
    path: Path

    def log(self, run_id: str, event_type: str, data: dict[str, Any]) -> None:
        if not self.enabled:
            return

        entry = {
            "timestamp": time.time(),
            "run_id": run_id,
            "type": event_type,
            "data": data,
        }

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
        except OSError:
            # An unwritable log must not take the pipeline down with it.
            self.enabled = False

    @classmethod
    def disabled(cls) -> DiagnosticLog:
        return cls(enabled=False, path=Path("/dev/null"))


def prune_log_file(log_path: Path, retention_days: int) -> None:
    """Delete the log file if it is older than retention_days (mtime-based)."""
    if retention_days <= 0:
        return
    try:
        if not log_path.exists():
            return
        cutoff = time.time() - (retention_days * 86400)
        if log_path.stat().st_mtime < cutoff:
            log_path.unlink(missing_ok=True)
    except OSError:
        return


def iter_events(path: Path) -> list[dict[str, Any]]:
    """Read all parseable events from a diagnostic log."""
    if not path.exists():
        return []
    events: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if not ln:
                continue
            try:
                events.append(json.loads(ln))
            except json.JSONDecodeError:
                continue
    return events


def format_event(event: dict[str, Any]) -> str:
    """Render one event as a human-readable line."""
    ts = datetime.fromtimestamp(float(event.get("timestamp", 0.0) or 0.0))
    data = event.get("data") or {}
    etype = event.get("type", "?")
    head = f"{ts:%Y-%m-%d %H:%M:%S} [{event.get('run_id', '-')}] {etype}"

    if etype == "command_executed":
        line = f"{head}: {data.get('command')} (cwd={data.get('cwd')}) -> exit={data.get('exit_code')}"
        if data.get("timed_out"):
            line += " TIMEOUT"
        if data.get("output_too_large"):
            line += " OUTPUT_TOO_LARGE"
        for stream in ("stdout", "stderr"):
            if text := data.get(stream):
                line += f"\n    {stream}: {text}"
        return line

    if etype == "run_completed":
        line = f"{head}: {data.get('status')}"
        if data.get("reason"):
            line += f" ({data['reason']})"
        if data.get("path"):
            line += f" {data['path']}"
        return line

    return f"{head}: {json.dumps(data, ensure_ascii=False, default=str)}"
