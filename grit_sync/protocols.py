"""Protocols for dependency injection."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from grit_sync.models import CommitResult, PullResult, PushResult, TreeStatus


class GitOperationRunner(Protocol):
    """Protocol for single-repository git actions.

    Every method raises a GitSyncError subclass on failure and never retries.
    """

    def check_status(self, path: Path) -> TreeStatus: ...
    def pull(self, path: Path) -> PullResult: ...
    def stage_all(self, path: Path) -> None: ...
    def diff_stat(self, path: Path) -> str: ...
    def commit(self, path: Path, message: str) -> CommitResult: ...
    def push(self, path: Path) -> PushResult: ...


class OutputHandler(Protocol):
    """Protocol for handling output"""

    def info(self, message: str, indent: int = 0) -> None: ...
    def success(self, message: str, indent: int = 0) -> None: ...
    def warning(self, message: str, indent: int = 0) -> None: ...
    def error(self, message: str, indent: int = 0) -> None: ...
    def section(self, title: str) -> None: ...
    def debug(self, message: str) -> None: ...


class Prompt(Protocol):
    """Protocol for synchronous interactive questions"""

    def confirm(self, question: str, default: bool = False) -> bool: ...
    def ask(self, question: str) -> str: ...
