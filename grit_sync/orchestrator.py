"""SyncOrchestrator: drives the repository list and assembles the report."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path

from tqdm import tqdm

from grit_sync.errors import GitSyncError, NetworkError
from grit_sync.models import (
    OutcomeStatus,
    RepositoryList,
    RepositoryOutcome,
    SyncAction,
    SyncConfig,
    SyncReport,
)
from grit_sync.output import BufferedOutputHandler, capitalize_first
from grit_sync.protocols import GitOperationRunner, OutputHandler, Prompt
from grit_sync.workflow import CommitState, InteractiveCommitWorkflow

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Main orchestrator - runs one action over every repository in the list"""

    def __init__(
        self,
        config: SyncConfig,
        output: OutputHandler,
        runner: GitOperationRunner,
        prompt: Prompt,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.config = config
        self.output = output
        self.runner = runner
        self.prompt = prompt
        self._sleep = sleep

    def run(self, action: SyncAction, repos: RepositoryList) -> SyncReport:
        """Process every repository in list order and return the finalized report.

        Per-repository failures become FAILED outcomes; an interrupt stops the
        remaining queue but keeps everything recorded so far.
        """
        report = SyncReport(action)
        if not len(repos):
            self.output.warning("No repositories configured")
            return report.finalize()

        self.output.info(f"Found {len(repos)} repositories")

        if action is SyncAction.PULL and self.config.parallel and len(repos) > 1:
            self._run_parallel(repos, report)
        else:
            self._run_sequential(action, repos, report)
        return report.finalize()

    def _run_sequential(self, action: SyncAction, repos: RepositoryList, report: SyncReport) -> None:
        """One repository at a time. Push never shows a progress bar so prompts stay readable."""
        show_progress = action is SyncAction.PULL and not self.config.json_output
        with tqdm(total=len(repos), desc="Pulling", unit="repo", disable=not show_progress) as pbar:
            for repo_path in repos:
                pbar.set_postfix_str(repo_path.name, refresh=True)
                try:
                    outcome = self._sync_single_repo(action, repo_path, self.output)
                except KeyboardInterrupt:
                    logger.info("Interrupted while processing %s", repo_path)
                    report.interrupted = True
                    break
                report.add(repo_path, outcome)
                pbar.update(1)

    def _run_parallel(self, repos: RepositoryList, report: SyncReport) -> None:
        """Pull repositories on a bounded thread pool; the report keeps list order."""
        outcomes: dict[int, RepositoryOutcome] = {}
        lock = threading.Lock()

        def _pull_with_buffer(repo_path: Path) -> tuple[RepositoryOutcome, BufferedOutputHandler]:
            buf = BufferedOutputHandler()
            outcome = self._sync_single_repo(SyncAction.PULL, repo_path, buf)
            return outcome, buf

        executor = concurrent.futures.ThreadPoolExecutor(max_workers=self.config.max_workers)
        futures = {executor.submit(_pull_with_buffer, path): index for index, path in enumerate(repos)}
        try:
            with tqdm(total=len(repos), desc="Pulling", unit="repo",
                      disable=self.config.json_output) as pbar:
                for future in concurrent.futures.as_completed(futures):
                    index = futures[future]
                    repo_path = repos[index]
                    try:
                        outcome, buf = future.result()
                        with lock:
                            buf.flush_to(self.output)
                            outcomes[index] = outcome
                    except Exception as e:
                        self.output.error(f"Error syncing {repo_path}: {e}")
                        with lock:
                            outcomes[index] = RepositoryOutcome.failed(f"Unexpected error: {e}")
                    finally:
                        pbar.set_postfix_str(repo_path.name, refresh=True)
                        pbar.update(1)
        except KeyboardInterrupt:
            report.interrupted = True
            executor.shutdown(wait=False, cancel_futures=True)
        else:
            executor.shutdown(wait=True)

        for index, repo_path in enumerate(repos):
            if index in outcomes:
                report.add(repo_path, outcomes[index])

    def _sync_single_repo(self, action: SyncAction, repo_path: Path, output: OutputHandler) -> RepositoryOutcome:
        """Run the action on one repository. Every failure stops here."""
        output.section(f"\U0001f4c1 {repo_path}")
        try:
            if action is SyncAction.PULL:
                outcome = self._pull(repo_path, output)
            else:
                outcome = self._push(repo_path, output)
        except GitSyncError as e:
            output.error(f"\u2717 {e.detail}", indent=1)
            if e.hint:
                output.info(f"\u21b3 {e.hint}", indent=1)
            return RepositoryOutcome.failed(e.detail, e.kind, e.hint or None)
        except Exception as e:
            logger.exception("Unexpected error in %s", repo_path)
            output.error(f"\u2717 Unexpected error: {e}", indent=1)
            return RepositoryOutcome.failed(f"Unexpected error: {e}")

        if outcome.is_failed:
            output.error(f"\u2717 {outcome.message}", indent=1)
        elif outcome.status is OutcomeStatus.SKIPPED:
            output.warning(f"\u26a0 {outcome.message}", indent=1)
        else:
            output.success(f"\u2713 {capitalize_first(outcome.message)}", indent=1)
        return outcome

    def _pull(self, repo_path: Path, output: OutputHandler) -> RepositoryOutcome:
        result = self._with_network_retries(lambda: self.runner.pull(repo_path), output)
        return RepositoryOutcome.success(result.summary, updated=result.updated)

    def _push(self, repo_path: Path, output: OutputHandler) -> RepositoryOutcome:
        workflow = InteractiveCommitWorkflow(self.runner, self.prompt, output)
        result = workflow.run(repo_path)
        logger.debug("%s: %s", repo_path, " -> ".join(state.name for state in result.history))

        if result.state is CommitState.SKIPPED:
            return RepositoryOutcome.skipped(result.reason)
        if result.state is CommitState.FAILED:
            error = result.error
            return RepositoryOutcome.failed(error.detail, error.kind, error.hint or None)

        pushed = self._with_network_retries(lambda: self.runner.push(repo_path), output)
        if result.commit_summary:
            return RepositoryOutcome.success(f"{result.commit_summary}, {pushed.summary}")
        return RepositoryOutcome.success(pushed.summary)

    def _with_network_retries(self, operation, output: OutputHandler):
        """Call operation, retrying NetworkError with exponential backoff."""
        max_attempts = 1 + max(self.config.network_retries, 0)
        for attempt in range(max_attempts):
            try:
                return operation()
            except NetworkError:
                if attempt >= max_attempts - 1:
                    raise
                delay = 2 ** attempt
                output.warning(
                    f"Network error, retrying in {delay}s... (attempt {attempt + 1}/{max_attempts})",
                    indent=1
                )
                self._sleep(delay)
