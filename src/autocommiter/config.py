"""Configuration schema for Autocommiter.

Configuration is loaded from ~/.config/autocommiter/config.yml unless a
file is given explicitly (--config or AUTOCOMMITER_CONFIG).
"""

from __future__ import annotations

import os
import string
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

DEFAULT_MARKER_NAME = ".autocommiter"
DEFAULT_MAX_OUTPUT_BYTES = 10 * 1024 * 1024


def config_home() -> Path:
    return Path(os.getenv("XDG_CONFIG_HOME") or Path.home() / ".config") / "autocommiter"


def state_home() -> Path:
    return Path(os.getenv("XDG_STATE_HOME") or Path.home() / ".local" / "state") / "autocommiter"


class GitConfig(BaseModel):
    """Version-control command settings."""

    binary: str = "git"
    remote: str = "origin"
    timeout_seconds: float = 120.0
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES
    locale: str = "C.UTF-8"
    commit_message_template: str = "{action}: {name}"
    marker_name: str = DEFAULT_MARKER_NAME

    @field_validator("commit_message_template")
    @classmethod
    def validate_template(cls, v: str) -> str:
        fields = {name for _, name, _, _ in string.Formatter().parse(v) if name is not None}
        unknown = fields - {"action", "name"}
        if unknown:
            raise ValueError(
                f"Unknown commit_message_template fields: {sorted(unknown)}. "
                "Only {action} and {name} are available"
            )
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout_seconds must be positive")
        return v

    @field_validator("marker_name")
    @classmethod
    def validate_marker_name(cls, v: str) -> str:
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError("marker_name must be a plain file name")
        return v


class MonitoringConfig(BaseModel):
    """File watching configuration."""

    watch_paths: list[str] = Field(default_factory=lambda: ["."])
    ignore_patterns: list[str] = Field(
        # Editor swap/backup files and bytecode.
        default_factory=lambda: ["*.swp", "*.swx", "*~", ".#*", "4913", "__pycache__", "*.pyc"]
    )
    debounce_seconds: float = 1.0


class DiagnosticsConfig(BaseModel):
    """Diagnostic log configuration."""

    enabled: bool = True
    log_path: str = Field(default_factory=lambda: str(state_home() / "diagnostics.jsonl"))
    retention_days: int = 30
    max_excerpt_chars: int = 2000


class NotificationsConfig(BaseModel):
    """User-facing message settings."""

    # Also announce quiet skips (not opted in, no changes, ...).
    verbose: bool = False


class AutocommiterConfig(BaseModel):
    """Complete Autocommiter configuration."""

    git: GitConfig = Field(default_factory=GitConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    diagnostics: DiagnosticsConfig = Field(default_factory=DiagnosticsConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    state_path: str = Field(default_factory=lambda: str(config_home() / "state.yml"))

    @classmethod
    def load_from_file(cls, config_path: Path | str) -> AutocommiterConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")
        return cls(**data)

    @classmethod
    def default_path(cls) -> Path:
        if env_path := os.getenv("AUTOCOMMITER_CONFIG"):
            return Path(env_path).expanduser()
        return config_home() / "config.yml"

    @classmethod
    def load_default(cls) -> AutocommiterConfig:
        """Load the user configuration, falling back to defaults."""
        config_path = cls.default_path()
        if not config_path.exists():
            return cls()
        return cls.load_from_file(config_path)

    def apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        if binary := os.getenv("AUTOCOMMITER_GIT_BINARY"):
            self.git.binary = binary
        if remote := os.getenv("AUTOCOMMITER_REMOTE"):
            self.git.remote = remote
        if timeout := os.getenv("AUTOCOMMITER_TIMEOUT_SECONDS"):
            self.git.timeout_seconds = float(timeout)

        if log_path := os.getenv("AUTOCOMMITER_LOG_PATH"):
            self.diagnostics.log_path = log_path
        if os.getenv("AUTOCOMMITER_DIAGNOSTICS_DISABLED") == "1":
            self.diagnostics.enabled = False

        if debounce := os.getenv("AUTOCOMMITER_DEBOUNCE_SECONDS"):
            self.monitoring.debounce_seconds = float(debounce)

        if os.getenv("AUTOCOMMITER_VERBOSE") == "1":
            self.notifications.verbose = True

        if state_path := os.getenv("AUTOCOMMITER_STATE_PATH"):
            self.state_path = state_path


def load_config(config_path: Path | str | None = None) -> AutocommiterConfig:
    """
    Load configuration.

    Args:
        config_path: Explicit config file; None uses the default location

    Returns:
        Loaded and validated configuration with env overrides applied
    """
    if config_path is not None:
        config = AutocommiterConfig.load_from_file(config_path)
    else:
        config = AutocommiterConfig.load_default()
    config.apply_env_overrides()
    return config


DEFAULT_CONFIG_YAML = """# Autocommiter configuration

git:
  binary: git
  remote: origin
  timeout_seconds: 120
  max_output_bytes: 10485760
  locale: C.UTF-8
  # Available fields: {action} (update/delete) and {name} (file base name)
  commit_message_template: "{action}: {name}"
  marker_name: .autocommiter

monitoring:
  watch_paths:
    - .
  ignore_patterns:
    - "*.swp"
    - "*.swx"
    - "*~"
    - ".#*"
    - "4913"
    - __pycache__
    - "*.pyc"
  debounce_seconds: 1.0

diagnostics:
  enabled: true
  retention_days: 30
  max_excerpt_chars: 2000

notifications:
  verbose: false
"""
