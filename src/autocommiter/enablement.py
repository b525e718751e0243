"""Persisted global on/off switch."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml


class EnablementStore:
    """
    Process-wide enable/disable toggle persisted in a small YAML file.

    The value is re-read on every call to `read()` so a toggle made from
    another process takes effect on the next event.
    """

    ENV_OVERRIDE = "AUTOCOMMITER_ENABLED"

    def __init__(self, path: Path | str, default: bool = True):
        self.path = Path(path)
        self.default = default

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        return data if isinstance(data, dict) else {}

    def read(self) -> bool:
        override = os.getenv(self.ENV_OVERRIDE)
        if override is not None and override.strip() in {"0", "1"}:
            return override.strip() == "1"
        try:
            value = self._load().get("enabled", self.default)
        except (OSError, yaml.YAMLError):
            return self.default
        return bool(value)

    def set(self, enabled: bool) -> None:
        try:
            data = self._load()
        except yaml.YAMLError:
            data = {}
        data["enabled"] = bool(enabled)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

    def toggle(self) -> bool:
        """Flip the persisted value and return the new state."""
        new_value = not self.read()
        self.set(new_value)
        return new_value


def status_indicator(enabled: bool) -> str:
    return "[✓] Auto Commit" if enabled else "[✗] Auto Commit"


def status_tooltip(enabled: bool) -> str:
    return (
        "Run `autocommiter toggle` to disable Auto Commit"
        if enabled
        else "Run `autocommiter toggle` to enable Auto Commit"
    )
