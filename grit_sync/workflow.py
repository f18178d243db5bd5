"""InteractiveCommitWorkflow: make sure a working tree is committed before pushing."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from grit_sync.errors import EmptyCommitMessage, GitSyncError, NothingToCommit
from grit_sync.models import TreeStatus
from grit_sync.output import capitalize_first
from grit_sync.protocols import GitOperationRunner, OutputHandler, Prompt

SKIPPED_REASON = "uncommitted changes left as-is"


class CommitState(Enum):
    CHECK_DIRTY = auto()
    PROMPT_STAGE = auto()
    STAGING = auto()
    READY_TO_PUSH = auto()
    SKIPPED = auto()
    FAILED = auto()


TERMINAL_STATES = frozenset({CommitState.READY_TO_PUSH, CommitState.SKIPPED, CommitState.FAILED})


@dataclass
class WorkflowResult:
    """Terminal state of one workflow run plus the states it passed through."""
    state: CommitState
    history: list[CommitState] = field(default_factory=list)
    error: GitSyncError | None = None
    reason: str = ""
    status: TreeStatus | None = None
    commit_summary: str | None = None

    @property
    def ready_to_push(self) -> bool:
        return self.state is CommitState.READY_TO_PUSH


class InteractiveCommitWorkflow:
    """State machine: CHECK_DIRTY -> PROMPT_STAGE -> STAGING -> READY_TO_PUSH.

    A clean tree goes straight to READY_TO_PUSH. Declining the prompt ends in
    SKIPPED, a blank commit message ends in FAILED. Errors raised by the runner
    other than NothingToCommit propagate to the caller.
    """

    def __init__(self, runner: GitOperationRunner, prompt: Prompt, output: OutputHandler):
        self.runner = runner
        self.prompt = prompt
        self.output = output

    def run(self, path: Path) -> WorkflowResult:
        """Drive the state machine for one repository until a terminal state."""
        handlers = {
            CommitState.CHECK_DIRTY: self._check_dirty,
            CommitState.PROMPT_STAGE: self._prompt_stage,
            CommitState.STAGING: self._staging,
        }
        result = WorkflowResult(CommitState.CHECK_DIRTY)
        while result.state not in TERMINAL_STATES:
            result.history.append(result.state)
            result.state = handlers[result.state](path, result)
        result.history.append(result.state)
        return result

    def _check_dirty(self, path: Path, result: WorkflowResult) -> CommitState:
        result.status = self.runner.check_status(path)
        if result.status.is_clean:
            return CommitState.READY_TO_PUSH
        return CommitState.PROMPT_STAGE

    def _prompt_stage(self, path: Path, result: WorkflowResult) -> CommitState:
        description = result.status.describe() if result.status else 'uncommitted changes'
        self.output.warning(f"Local changes detected: {description}", indent=1)
        if not self.prompt.confirm(f"Stage and commit all changes in {path.name} now?"):
            self.output.info(f"\u26a0 Skipping: {SKIPPED_REASON}", indent=1)
            result.reason = SKIPPED_REASON
            return CommitState.SKIPPED
        return CommitState.STAGING

    def _staging(self, path: Path, result: WorkflowResult) -> CommitState:
        self.runner.stage_all(path)
        stat = self.runner.diff_stat(path)
        if stat:
            self.output.info("Staged changes:", indent=1)
            for line in stat.splitlines():
                self.output.info(line, indent=2)

        message = self.prompt.ask("Commit message").strip()
        if not message:
            self.output.error("\u2717 Empty commit message, not committing", indent=1)
            result.error = EmptyCommitMessage("commit message is empty")
            return CommitState.FAILED

        try:
            commit = self.runner.commit(path, message)
        except NothingToCommit:
            self.output.info("Nothing to commit after staging", indent=1)
            return CommitState.READY_TO_PUSH

        result.commit_summary = commit.summary
        self.output.success(f"\u2713 {capitalize_first(commit.summary)}", indent=1)
        return CommitState.READY_TO_PUSH
