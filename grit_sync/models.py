"""Domain models: enums, dataclasses, and configuration."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any


class SyncAction(Enum):
    """Operation applied to every repository in one invocation"""
    PULL = auto()
    PUSH = auto()


class OutcomeStatus(Enum):
    """Per-repository result categories"""
    SUCCESS = auto()
    SKIPPED = auto()
    FAILED = auto()


class ErrorKind(Enum):
    """Failure kinds reported by git operations and the commit workflow"""
    NOT_A_GIT_REPOSITORY = auto()
    PATH_UNREADABLE = auto()
    NO_UPSTREAM = auto()
    NETWORK_ERROR = auto()
    MERGE_CONFLICT = auto()
    REJECTED_NON_FAST_FORWARD = auto()
    EMPTY_COMMIT_MESSAGE = auto()
    NOTHING_TO_COMMIT = auto()


@dataclass(frozen=True)
class TreeStatus:
    """Working tree state as reported by `git status --porcelain`"""
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    changed_files: int = 0

    @property
    def is_clean(self) -> bool:
        return self.changed_files == 0

    def describe(self) -> str:
        """Build a human-readable summary of working tree changes."""
        parts = []
        if self.staged:
            parts.append(f"{self.staged} staged")
        if self.unstaged:
            parts.append(f"{self.unstaged} modified")
        if self.untracked:
            parts.append(f"{self.untracked} untracked")
        return ', '.join(parts) if parts else 'uncommitted changes'


@dataclass(frozen=True)
class PullResult:
    updated: bool
    summary: str


@dataclass(frozen=True)
class CommitResult:
    commit_hash: str
    summary: str


@dataclass(frozen=True)
class PushResult:
    commits_pushed: int
    summary: str


@dataclass(frozen=True)
class RepositoryOutcome:
    """Immutable result of processing one repository"""
    status: OutcomeStatus
    message: str
    error_kind: ErrorKind | None = None
    hint: str | None = None
    updated: bool = False

    @classmethod
    def success(cls, summary: str, updated: bool = False) -> RepositoryOutcome:
        return cls(OutcomeStatus.SUCCESS, summary, updated=updated)

    @classmethod
    def skipped(cls, reason: str) -> RepositoryOutcome:
        return cls(OutcomeStatus.SKIPPED, reason)

    @classmethod
    def failed(cls, detail: str, error_kind: ErrorKind | None = None,
               hint: str | None = None) -> RepositoryOutcome:
        return cls(OutcomeStatus.FAILED, detail, error_kind=error_kind, hint=hint)

    @property
    def is_failed(self) -> bool:
        return self.status is OutcomeStatus.FAILED

    def __str__(self) -> str:
        if self.error_kind is not None:
            return f"{self.status.name}({self.error_kind.name}): {self.message}"
        return f"{self.status.name}: {self.message}"


@dataclass(frozen=True)
class RepositoryList:
    """Ordered, deduplicated repository paths for one invocation."""
    paths: tuple[Path, ...] = ()

    @classmethod
    def from_paths(cls, paths: Iterable[Path | str]) -> RepositoryList:
        """Normalize (expand `~`, make absolute) and drop duplicates, keeping first occurrence."""
        seen: set[Path] = set()
        ordered = []
        for raw in paths:
            path = Path(os.path.abspath(os.path.expanduser(str(raw))))
            if path not in seen:
                seen.add(path)
                ordered.append(path)
        return cls(tuple(ordered))

    def __iter__(self) -> Iterator[Path]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def __getitem__(self, index: int) -> Path:
        return self.paths[index]


@dataclass
class SyncReport:
    """Ordered (path, outcome) pairs; read-only once finalized."""
    action: SyncAction
    entries: list[tuple[Path, RepositoryOutcome]] = field(default_factory=list)
    interrupted: bool = False
    started_at: datetime = field(default_factory=datetime.now)
    _finalized: bool = field(default=False, repr=False)

    def add(self, path: Path, outcome: RepositoryOutcome) -> None:
        """Append the outcome for one repository."""
        if self._finalized:
            raise RuntimeError("SyncReport is finalized and cannot be modified")
        self.entries.append((path, outcome))

    def finalize(self) -> SyncReport:
        self._finalized = True
        return self

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[tuple[Path, RepositoryOutcome]]:
        return iter(self.entries)

    def outcomes(self) -> list[RepositoryOutcome]:
        return [outcome for _, outcome in self.entries]

    def by_status(self, status: OutcomeStatus) -> list[tuple[Path, RepositoryOutcome]]:
        """Filter entries by outcome category."""
        return [(path, outcome) for path, outcome in self.entries if outcome.status is status]

    def has_failures(self) -> bool:
        return any(outcome.is_failed for _, outcome in self.entries)

    def all_succeeded(self) -> bool:
        """Return True if the report is non-empty and every outcome is SUCCESS."""
        return bool(self.entries) and all(
            outcome.status is OutcomeStatus.SUCCESS for _, outcome in self.entries
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            'action': self.action.name.lower(),
            'started_at': self.started_at.isoformat(),
            'interrupted': self.interrupted,
            'repositories': [
                {
                    'path': str(path),
                    'status': outcome.status.name,
                    'message': outcome.message,
                    'error_kind': outcome.error_kind.name if outcome.error_kind else None,
                    'hint': outcome.hint,
                    'updated': outcome.updated,
                }
                for path, outcome in self.entries
            ],
            'has_failures': self.has_failures(),
        }


DEFAULT_REPOS_FILE = '~/.config/grit.conf'
DEFAULT_SETTINGS_FILE = '~/.config/grit.toml'


@dataclass(frozen=True)
class SyncConfig:
    """Configuration for sync operations"""
    timeout: float | None = 120.0
    parallel: bool = False
    max_workers: int = field(default_factory=lambda: min(os.cpu_count() or 4, 8))
    network_retries: int = 0
    verbose: bool = False
    json_output: bool = False
    repos_file: str = DEFAULT_REPOS_FILE

    def with_updates(self, **kwargs) -> SyncConfig:
        """Return a new SyncConfig with the given fields replaced."""
        current = {f.name: getattr(self, f.name) for f in self.__dataclass_fields__.values()}
        current.update(kwargs)
        return SyncConfig(**current)
