"""Version-control boundary: repository discovery and command execution."""

from .executor import CommandExecutor
from .repository import create_marker, is_opted_in, locate_repository_root

__all__ = [
    "CommandExecutor",
    "create_marker",
    "is_opted_in",
    "locate_repository_root",
]
