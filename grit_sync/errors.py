"""Exception hierarchy for per-repository and configuration failures."""

from __future__ import annotations

from grit_sync.models import ErrorKind


class ConfigError(Exception):
    """Configuration source could not be read. Aborts the whole invocation."""


class GitSyncError(Exception):
    """Base class for failures scoped to a single repository."""

    kind: ErrorKind | None = None
    hint: str = ""

    def __init__(self, detail: str = "", hint: str | None = None):
        super().__init__(detail or self.__class__.__name__)
        self.detail = detail or self.__class__.__name__
        if hint is not None:
            self.hint = hint


class NotAGitRepository(GitSyncError):
    kind = ErrorKind.NOT_A_GIT_REPOSITORY
    hint = "check the path in your repository list, or run 'git init' there"


class PathUnreadable(GitSyncError):
    kind = ErrorKind.PATH_UNREADABLE
    hint = "check that the directory exists and is readable"


class NoUpstream(GitSyncError):
    kind = ErrorKind.NO_UPSTREAM
    hint = "set an upstream with 'git push -u <remote> <branch>'"


class NetworkError(GitSyncError):
    kind = ErrorKind.NETWORK_ERROR
    hint = "check your network connection and the remote URL, then retry"


class MergeConflict(GitSyncError):
    kind = ErrorKind.MERGE_CONFLICT
    hint = "merge was aborted; pull manually and resolve the conflicts"


class RejectedNonFastForward(GitSyncError):
    kind = ErrorKind.REJECTED_NON_FAST_FORWARD
    hint = "pull before pushing"


class EmptyCommitMessage(GitSyncError):
    kind = ErrorKind.EMPTY_COMMIT_MESSAGE
    hint = "provide a non-empty commit message"


class NothingToCommit(GitSyncError):
    kind = ErrorKind.NOTHING_TO_COMMIT
    hint = "nothing was staged, so no commit was created"
