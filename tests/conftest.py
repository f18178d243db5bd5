"""Shared test doubles."""

from pathlib import Path

import pytest

from grit_sync import (
    CommitResult,
    EmptyCommitMessage,
    PullResult,
    PushResult,
    TreeStatus,
)

DIRTY = TreeStatus(staged=1, unstaged=3, untracked=2, changed_files=6)


class FakeGitRunner:
    """In-memory git runner: records calls and raises scripted errors.

    ``errors[(operation, path)]`` is either an exception (raised every call)
    or a list of exceptions (raised one per call until exhausted).
    """

    def __init__(self):
        self.calls: list[tuple[str, Path]] = []
        self.statuses: dict[Path, TreeStatus] = {}
        self.pull_results: dict[Path, PullResult] = {}
        self.push_results: dict[Path, PushResult] = {}
        self.errors: dict[tuple[str, Path], object] = {}
        self.commit_messages: list[str] = []

    def _record(self, operation: str, path: Path) -> None:
        self.calls.append((operation, path))
        error = self.errors.get((operation, path))
        if isinstance(error, list):
            if error:
                raise error.pop(0)
        elif error is not None:
            raise error

    def ops(self, path: Path) -> list[str]:
        return [operation for operation, p in self.calls if p == path]

    def check_status(self, path: Path) -> TreeStatus:
        self._record('check_status', path)
        return self.statuses.get(path, TreeStatus())

    def pull(self, path: Path) -> PullResult:
        self._record('pull', path)
        return self.pull_results.get(path, PullResult(False, "already up to date"))

    def stage_all(self, path: Path) -> None:
        self._record('stage_all', path)

    def diff_stat(self, path: Path) -> str:
        self._record('diff_stat', path)
        return " notes.txt | 2 +-\n 1 file changed, 1 insertion(+), 1 deletion(-)"

    def commit(self, path: Path, message: str) -> CommitResult:
        self._record('commit', path)
        if not message.strip():
            raise EmptyCommitMessage("commit message is empty")
        self.commit_messages.append(message)
        return CommitResult("abc1234def5678", "committed abc1234")

    def push(self, path: Path) -> PushResult:
        self._record('push', path)
        return self.push_results.get(path, PushResult(1, "pushed 1 commit to origin/main"))


@pytest.fixture
def runner() -> FakeGitRunner:
    return FakeGitRunner()


@pytest.fixture
def dirty_status() -> TreeStatus:
    return DIRTY
