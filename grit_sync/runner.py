"""Concrete GitPython-based implementation of the git operation runner."""

from __future__ import annotations

import contextlib
import logging
import os
import re
from collections.abc import Iterator
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from grit_sync.errors import (
    EmptyCommitMessage,
    GitSyncError,
    MergeConflict,
    NetworkError,
    NothingToCommit,
    NotAGitRepository,
    NoUpstream,
    PathUnreadable,
    RejectedNonFastForward,
)
from grit_sync.models import CommitResult, PullResult, PushResult, TreeStatus

# Substrings of git's output, matched case-insensitively.
NETWORK_MARKERS = (
    'could not resolve host',
    'could not read from remote repository',
    'unable to access',
    'connection timed out',
    'connection refused',
    'network is unreachable',
    'did not complete in',
    'does not appear to be a git repository',
)
NO_UPSTREAM_MARKERS = (
    'no tracking information',
    'has no upstream branch',
    'no upstream configured',
    'no remote repository specified',
    'no configured push destination',
    'not currently on a branch',
)
# git prints one "CONFLICT (<kind>): ..." line per conflicted path.
CONFLICT_LINE = re.compile(r"^\s*(?:std(?:out|err): ')?conflict \(", re.MULTILINE)
OVERWRITE_MARKERS = (
    'would be overwritten by merge',
    'untracked working tree files would be',
)
REJECTED_MARKERS = (
    '[rejected]',
    'non-fast-forward',
    'fetch first',
    'updates were rejected',
)
NOTHING_TO_COMMIT_MARKERS = (
    'nothing to commit',
    'no changes added to commit',
    'nothing added to commit',
)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _error_text(error: GitCommandError) -> str:
    """Combine stdout and stderr of a failed git command into one lowercase string."""
    return f"{error.stdout or ''}\n{error.stderr or ''}".lower()


def _error_detail(error: GitCommandError) -> str:
    """Extract the most useful line of git's output for display."""
    raw = error.stderr or error.stdout or ''
    raw = raw.strip()
    for prefix in ("stderr: '", "stdout: '"):
        if raw.startswith(prefix):
            raw = raw[len(prefix):].rstrip("'")
    lines = [line.strip() for line in raw.splitlines() if line.strip()]
    for line in lines:
        if line.startswith(('fatal:', 'error:', '!')):
            return line
    return lines[-1] if lines else f"git exited with status {error.status}"


def _matches(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


def _is_conflict(text: str) -> bool:
    return bool(CONFLICT_LINE.search(text)) or 'automatic merge failed' in text


class GitPythonRunner:
    """Runs one git action against one working tree using GitPython.

    Network operations (pull, push) are bounded by ``timeout`` seconds; git is
    killed when it expires and the failure is reported as NetworkError.
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout
        self._logger = logging.getLogger(__name__)

    @contextlib.contextmanager
    def _open(self, path: Path) -> Iterator[Repo]:
        """Open the repository at path, translating lookup failures."""
        try:
            if not path.exists():
                raise PathUnreadable(f"{path} does not exist")
            if not path.is_dir():
                raise PathUnreadable(f"{path} is not a directory")
        except OSError as e:
            raise PathUnreadable(f"{path}: {e}") from e
        if not os.access(path, os.R_OK | os.X_OK):
            raise PathUnreadable(f"Permission denied: {path}")

        try:
            repo = Repo(path)
        except NoSuchPathError as e:
            raise PathUnreadable(f"{path} does not exist") from e
        except InvalidGitRepositoryError as e:
            raise NotAGitRepository(f"{path} is not a git repository") from e

        repo.git.update_environment(GIT_TERMINAL_PROMPT='0')
        try:
            yield repo
        finally:
            repo.close()

    def _head(self, repo: Repo) -> str | None:
        """Return the HEAD commit hash, or None on an unborn branch."""
        try:
            return repo.git.rev_parse('HEAD')
        except GitCommandError:
            return None

    def check_status(self, path: Path) -> TreeStatus:
        """Count staged, unstaged, and untracked entries of the working tree."""
        with self._open(path) as repo:
            self._logger.debug("git status --porcelain (in %s)", path)
            try:
                output = repo.git.status('--porcelain')
            except GitCommandError as e:
                raise PathUnreadable(_error_detail(e)) from e

        staged = unstaged = untracked = 0
        lines = [line for line in output.splitlines() if line.strip()]
        for line in lines:
            index_state, tree_state = line[:1], line[1:2]
            if index_state == '?':
                untracked += 1
                continue
            if index_state not in (' ', ''):
                staged += 1
            if tree_state not in (' ', ''):
                unstaged += 1
        return TreeStatus(staged=staged, unstaged=unstaged, untracked=untracked,
                          changed_files=len(lines))

    def pull(self, path: Path) -> PullResult:
        """Fetch and merge the configured upstream. Aborts a conflicted merge."""
        with self._open(path) as repo:
            before = self._head(repo)
            self._logger.debug("git pull --no-rebase (in %s)", path)
            try:
                repo.git.pull('--no-rebase', kill_after_timeout=self.timeout)
            except GitCommandError as e:
                error = self._classify_pull_error(e)
                if isinstance(error, MergeConflict):
                    with contextlib.suppress(GitCommandError):
                        repo.git.merge('--abort')
                raise error from e

            after = self._head(repo)
            if after is None or before == after:
                return PullResult(False, "already up to date")
            if before is None:
                count = int(repo.git.rev_list('--count', after))
                return PullResult(True, f"fetched {_plural(count, 'commit')}")

            count = int(repo.git.rev_list('--count', f'{before}..{after}'))
            parents = repo.git.rev_list('--parents', '-n', '1', after).split()
            if len(parents) > 2:
                return PullResult(True, f"merged {_plural(count, 'commit')}")
            return PullResult(True, f"fast-forwarded {_plural(count, 'commit')}")

    def _classify_pull_error(self, error: GitCommandError) -> GitSyncError:
        text = _error_text(error)
        detail = _error_detail(error)
        if _matches(text, OVERWRITE_MARKERS):
            return MergeConflict(detail, hint="commit or stash your local changes, then pull again")
        if _matches(text, NO_UPSTREAM_MARKERS):
            return NoUpstream(detail)
        if _matches(text, NETWORK_MARKERS):
            return NetworkError(detail)
        if _is_conflict(text):
            return MergeConflict(detail)
        if 'divergent branches' in text or 'not possible to fast-forward' in text:
            return MergeConflict(detail, hint="branches have diverged; merge or rebase manually")
        return GitSyncError(detail)

    def stage_all(self, path: Path) -> None:
        """Stage every change in the working tree, including untracked files."""
        with self._open(path) as repo:
            self._logger.debug("git add -A (in %s)", path)
            try:
                repo.git.add('-A')
            except GitCommandError as e:
                raise PathUnreadable(_error_detail(e)) from e

    def diff_stat(self, path: Path) -> str:
        """Return `git diff --cached --stat` for the staged changes."""
        with self._open(path) as repo:
            try:
                return repo.git.diff('--cached', '--stat')
            except GitCommandError as e:
                raise PathUnreadable(_error_detail(e)) from e

    def commit(self, path: Path, message: str) -> CommitResult:
        """Commit the index with the given message."""
        if not message or not message.strip():
            raise EmptyCommitMessage("commit message is empty")

        with self._open(path) as repo:
            self._logger.debug("git commit -m <message> (in %s)", path)
            try:
                repo.git.commit('-m', message.strip())
            except GitCommandError as e:
                if _matches(_error_text(e), NOTHING_TO_COMMIT_MARKERS):
                    raise NothingToCommit("nothing to commit, working tree clean") from e
                raise GitSyncError(_error_detail(e)) from e

            commit_hash = repo.git.rev_parse('HEAD')
            return CommitResult(commit_hash, f"committed {commit_hash[:7]}")

    def push(self, path: Path) -> PushResult:
        """Push the current branch to its upstream."""
        with self._open(path) as repo:
            try:
                upstream = repo.git.rev_parse('--abbrev-ref', '--symbolic-full-name', '@{u}')
            except GitCommandError as e:
                raise NoUpstream(_error_detail(e)) from e

            try:
                ahead = int(repo.git.rev_list('--count', '@{u}..HEAD'))
            except GitCommandError:
                ahead = 0

            self._logger.debug("git push (in %s, upstream %s)", path, upstream)
            try:
                repo.git.push(kill_after_timeout=self.timeout)
            except GitCommandError as e:
                raise self._classify_push_error(e) from e

        if ahead == 0:
            return PushResult(0, "everything up to date")
        return PushResult(ahead, f"pushed {_plural(ahead, 'commit')} to {upstream}")

    def _classify_push_error(self, error: GitCommandError) -> GitSyncError:
        text = _error_text(error)
        detail = _error_detail(error)
        if _matches(text, REJECTED_MARKERS):
            return RejectedNonFastForward(detail)
        if _matches(text, NO_UPSTREAM_MARKERS):
            return NoUpstream(detail)
        if _matches(text, NETWORK_MARKERS):
            return NetworkError(detail)
        return GitSyncError(detail)
