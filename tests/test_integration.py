"""Integration tests using real git repositories.

Creates bare repos (acting as remotes) and local clones to test the
runner, the orchestrator and the CLI end-to-end.
"""

import json
import subprocess
import sys
import time
from pathlib import Path

import pytest

from grit_sync import (
    ErrorKind,
    GitPythonRunner,
    MergeConflict,
    NetworkError,
    NothingToCommit,
    NotAGitRepository,
    NoUpstream,
    NullOutputHandler,
    OutcomeStatus,
    PathUnreadable,
    RejectedNonFastForward,
    RepositoryList,
    ScriptedPrompt,
    SyncAction,
    SyncConfig,
    SyncOrchestrator,
    EmptyCommitMessage,
    main,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _git(cwd: Path, *args: str) -> str:
    """Run a git command and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def _configure(repo: Path) -> None:
    _git(repo, "config", "user.email", "test@test.com")
    _git(repo, "config", "user.name", "Test")


def _commit_file(repo: Path, filename: str, content: str, message: str) -> str:
    """Create/overwrite a file and commit it. Returns the commit hash."""
    filepath = repo / filename
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(content)
    _git(repo, "add", filename)
    _git(repo, "commit", "-m", message)
    return _git(repo, "rev-parse", "HEAD")


def _make_repo_pair(workspace: Path, name: str) -> tuple[Path, Path]:
    """Create a bare remote + local clone with one pushed commit.

    Returns (remote_path, local_path).
    """
    remote = workspace / f"{name}-remote.git"
    remote.mkdir()
    _git(remote, "init", "--bare", "-b", "main")

    local = workspace / name
    _git(workspace, "clone", str(remote), name)
    _configure(local)
    _git(local, "checkout", "-b", "main")
    _commit_file(local, "init.txt", "initial", "Initial commit")
    _git(local, "push", "-u", "origin", "main")
    return remote, local


def _push_from_other_clone(workspace: Path, remote: Path, name: str,
                           files: dict[str, str], message: str) -> Path:
    """Clone the remote elsewhere, commit files, and push them."""
    pusher = workspace / name
    _git(workspace, "clone", str(remote), name)
    _configure(pusher)
    for filename, content in files.items():
        _commit_file(pusher, filename, content, message)
    _git(pusher, "push", "origin", "main")
    return pusher


def _run(action: SyncAction, paths, answers=(), **config_overrides):
    config = SyncConfig(**{'timeout': 60.0, **config_overrides})
    orchestrator = SyncOrchestrator(
        config, NullOutputHandler(), GitPythonRunner(timeout=config.timeout), ScriptedPrompt(answers)
    )
    return orchestrator.run(action, RepositoryList.from_paths(paths))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    ws = tmp_path / "workspace"
    ws.mkdir()
    return ws


@pytest.fixture
def repo_pair(workspace: Path) -> tuple[Path, Path]:
    return _make_repo_pair(workspace, "local")


@pytest.fixture
def runner() -> GitPythonRunner:
    return GitPythonRunner(timeout=60.0)


# ---------------------------------------------------------------------------
# Tests: GitPythonRunner
# ---------------------------------------------------------------------------

class TestCheckStatus:
    def test_clean(self, runner, repo_pair):
        _, local = repo_pair
        assert runner.check_status(local).is_clean is True

    def test_dirty_counts(self, runner, repo_pair):
        _, local = repo_pair
        (local / "init.txt").write_text("modified")
        (local / "staged.txt").write_text("staged")
        _git(local, "add", "staged.txt")
        (local / "new.txt").write_text("untracked")

        status = runner.check_status(local)

        assert status.is_clean is False
        assert status.changed_files == 3
        assert status.staged == 1
        assert status.unstaged == 1
        assert status.untracked == 1

    def test_not_a_git_repository(self, runner, tmp_path):
        plain = tmp_path / "plain"
        plain.mkdir()
        with pytest.raises(NotAGitRepository):
            runner.check_status(plain)

    def test_missing_path(self, runner, tmp_path):
        with pytest.raises(PathUnreadable):
            runner.check_status(tmp_path / "vanished")

    def test_file_instead_of_directory(self, runner, tmp_path):
        file_path = tmp_path / "file.txt"
        file_path.write_text("x")
        with pytest.raises(PathUnreadable):
            runner.check_status(file_path)


class TestPull:
    def test_already_up_to_date(self, runner, repo_pair):
        _, local = repo_pair
        result = runner.pull(local)
        assert result.updated is False
        assert result.summary == "already up to date"

    def test_fast_forward(self, runner, workspace, repo_pair):
        remote, local = repo_pair
        _push_from_other_clone(workspace, remote, "pusher",
                               {"a.txt": "a", "b.txt": "b"}, "Remote work")

        result = runner.pull(local)

        assert result.updated is True
        assert result.summary == "fast-forwarded 2 commits"
        assert (local / "b.txt").read_text() == "b"

    def test_second_pull_is_idempotent(self, runner, workspace, repo_pair):
        remote, local = repo_pair
        _push_from_other_clone(workspace, remote, "pusher", {"a.txt": "a"}, "Remote work")

        assert runner.pull(local).summary == "fast-forwarded 1 commit"
        second = runner.pull(local)
        assert second.updated is False
        assert second.summary == "already up to date"

    def test_merge_conflict_is_aborted(self, runner, workspace, repo_pair):
        remote, local = repo_pair
        _push_from_other_clone(workspace, remote, "pusher", {"init.txt": "remote"}, "Remote edit")
        _commit_file(local, "init.txt", "local", "Local edit")

        with pytest.raises(MergeConflict):
            runner.pull(local)

        assert not (local / ".git" / "MERGE_HEAD").exists()
        assert (local / "init.txt").read_text() == "local"

    def test_no_upstream(self, runner, tmp_path):
        repo = tmp_path / "no-remote"
        repo.mkdir()
        _git(repo, "init", "-b", "main")
        _configure(repo)
        _commit_file(repo, "file.txt", "content", "Initial commit")

        with pytest.raises(NoUpstream):
            runner.pull(repo)

    def test_branch_named_conflict_without_upstream(self, runner, repo_pair):
        _, local = repo_pair
        _git(local, "checkout", "-b", "fix-merge-conflict")

        with pytest.raises(NoUpstream):
            runner.pull(local)

        assert _git(local, "rev-parse", "--abbrev-ref", "HEAD") == "fix-merge-conflict"

    def test_unreachable_remote(self, runner, tmp_path, repo_pair):
        _, local = repo_pair
        _git(local, "remote", "set-url", "origin", str(tmp_path / "gone.git"))

        with pytest.raises(NetworkError):
            runner.pull(local)


class TestCommit:
    def test_commit(self, runner, repo_pair):
        _, local = repo_pair
        (local / "notes.txt").write_text("notes")
        runner.stage_all(local)

        result = runner.commit(local, "Add notes")

        assert result.commit_hash == _git(local, "rev-parse", "HEAD")
        assert _git(local, "log", "-1", "--format=%s") == "Add notes"
        assert runner.check_status(local).is_clean is True

    def test_stage_all_includes_untracked(self, runner, repo_pair):
        _, local = repo_pair
        (local / "new.txt").write_text("new")
        runner.stage_all(local)
        status = runner.check_status(local)
        assert status.staged == 1
        assert status.untracked == 0
        assert "new.txt" in runner.diff_stat(local)

    def test_empty_message(self, runner, repo_pair):
        _, local = repo_pair
        with pytest.raises(EmptyCommitMessage):
            runner.commit(local, "   ")

    def test_nothing_to_commit(self, runner, repo_pair):
        _, local = repo_pair
        with pytest.raises(NothingToCommit):
            runner.commit(local, "nothing here")


class TestPush:
    def test_push_ahead(self, runner, repo_pair):
        remote, local = repo_pair
        head = _commit_file(local, "local.txt", "local", "Local work")

        result = runner.push(local)

        assert result.commits_pushed == 1
        assert result.summary == "pushed 1 commit to origin/main"
        assert _git(remote, "rev-parse", "main") == head

    def test_nothing_to_push(self, runner, repo_pair):
        _, local = repo_pair
        assert runner.push(local).summary == "everything up to date"

    def test_rejected_non_fast_forward(self, runner, workspace, repo_pair):
        remote, local = repo_pair
        _push_from_other_clone(workspace, remote, "pusher", {"remote.txt": "r"}, "Remote work")
        _commit_file(local, "local.txt", "l", "Local work")

        with pytest.raises(RejectedNonFastForward):
            runner.push(local)

    def test_branch_without_upstream(self, runner, repo_pair):
        _, local = repo_pair
        _git(local, "checkout", "-b", "feature")
        _commit_file(local, "feature.txt", "f", "Feature work")

        with pytest.raises(NoUpstream):
            runner.push(local)


@pytest.mark.skipif(sys.platform == "win32", reason="needs a POSIX shell script as ssh")
class TestTimeout:
    """A remote that never answers is killed after the timeout."""

    @pytest.fixture
    def hung_remote(self, tmp_path, repo_pair):
        _, local = repo_pair
        fake_ssh = tmp_path / "hung-ssh"
        fake_ssh.write_text("#!/bin/sh\nexec sleep 60\n")
        fake_ssh.chmod(0o755)
        _git(local, "config", "core.sshCommand", str(fake_ssh))
        _git(local, "remote", "set-url", "origin", "ssh://git@example.invalid/repo.git")
        return local

    def test_pull(self, hung_remote):
        started = time.monotonic()
        with pytest.raises(NetworkError):
            GitPythonRunner(timeout=2).pull(hung_remote)
        assert time.monotonic() - started < 20

    def test_push_reported_as_network_error(self, hung_remote):
        _commit_file(hung_remote, "local.txt", "l", "Local work")
        started = time.monotonic()

        report = _run(SyncAction.PUSH, [hung_remote], timeout=2.0)

        assert time.monotonic() - started < 20
        outcome = report.outcomes()[0]
        assert outcome.status is OutcomeStatus.FAILED
        assert outcome.error_kind is ErrorKind.NETWORK_ERROR


# ---------------------------------------------------------------------------
# Tests: SyncOrchestrator end-to-end
# ---------------------------------------------------------------------------

class TestPullBatch:
    def test_two_repos_one_behind(self, workspace):
        _, repo_a = _make_repo_pair(workspace, "repoA")
        remote_b, repo_b = _make_repo_pair(workspace, "repoB")
        for i in range(3):
            _push_from_other_clone(workspace, remote_b, f"pusher{i}", {f"f{i}.txt": str(i)}, f"Commit {i}")

        report = _run(SyncAction.PULL, [repo_a, repo_b])

        assert [(p, o.message) for p, o in report] == [
            (repo_a, "already up to date"),
            (repo_b, "fast-forwarded 3 commits"),
        ]
        assert not report.has_failures()

    def test_one_invalid_repository(self, workspace):
        healthy = [_make_repo_pair(workspace, f"repo{i}")[1] for i in range(3)]
        broken = workspace / "not-a-repo"
        broken.mkdir()
        paths = [healthy[0], broken, healthy[1], healthy[2]]

        report = _run(SyncAction.PULL, paths)

        assert [p for p, _ in report] == paths
        failed = report.by_status(OutcomeStatus.FAILED)
        assert len(failed) == 1
        assert failed[0][1].error_kind is ErrorKind.NOT_A_GIT_REPOSITORY
        assert len(report.by_status(OutcomeStatus.SUCCESS)) == 3

    def test_parallel_pull(self, workspace):
        pairs = [_make_repo_pair(workspace, f"repo{i}") for i in range(4)]
        _push_from_other_clone(workspace, pairs[2][0], "pusher", {"x.txt": "x"}, "Remote work")

        report = _run(SyncAction.PULL, [local for _, local in pairs], parallel=True, max_workers=3)

        assert [p for p, _ in report] == [local for _, local in pairs]
        assert [o.updated for o in report.outcomes()] == [False, False, True, False]


class TestPushBatch:
    def test_dirty_tree_committed_and_pushed(self, repo_pair):
        remote, local = repo_pair
        (local / "typo.txt").write_text("fixed")

        report = _run(SyncAction.PUSH, [local], answers=[True, "fix typo"])

        outcome = report.outcomes()[0]
        assert outcome.status is OutcomeStatus.SUCCESS
        assert _git(remote, "log", "-1", "--format=%s", "main") == "fix typo"

    def test_declined_leaves_tree_alone(self, repo_pair):
        remote, local = repo_pair
        before = _git(remote, "rev-parse", "main")
        (local / "wip.txt").write_text("wip")

        report = _run(SyncAction.PUSH, [local], answers=[False])

        assert report.outcomes()[0].status is OutcomeStatus.SKIPPED
        assert (local / "wip.txt").exists()
        assert _git(local, "status", "--porcelain") == "?? wip.txt"
        assert _git(remote, "rev-parse", "main") == before

    def test_diverged_remote_reported(self, workspace, repo_pair):
        remote, local = repo_pair
        _push_from_other_clone(workspace, remote, "pusher", {"remote.txt": "r"}, "Remote work")
        _commit_file(local, "local.txt", "l", "Local work")

        report = _run(SyncAction.PUSH, [local])

        assert len(report) == 1
        outcome = report.outcomes()[0]
        assert outcome.error_kind is ErrorKind.REJECTED_NON_FAST_FORWARD
        assert outcome.hint == "pull before pushing"


# ---------------------------------------------------------------------------
# Tests: CLI
# ---------------------------------------------------------------------------

class TestCli:
    @pytest.fixture(autouse=True)
    def isolated_home(self, tmp_path, monkeypatch):
        home = tmp_path / "home"
        home.mkdir()
        monkeypatch.setenv("HOME", str(home))
        return home

    def test_pull_json(self, tmp_path, repo_pair, capsys):
        _, local = repo_pair
        list_file = tmp_path / "repos.conf"
        list_file.write_text(f"# my repos\n{local}\n")

        with pytest.raises(SystemExit) as exc:
            main(['pull', '--repos', str(list_file), '--json'])

        assert exc.value.code == 0
        data = json.loads(capsys.readouterr().out)
        assert data['action'] == 'pull'
        assert data['repositories'][0]['path'] == str(local)
        assert data['repositories'][0]['status'] == 'SUCCESS'

    def test_failure_exit_code(self, tmp_path, repo_pair, capsys):
        _, local = repo_pair
        missing = tmp_path / "missing-repo"
        list_file = tmp_path / "repos.conf"
        list_file.write_text(f"{missing}\n{local}\n")

        with pytest.raises(SystemExit) as exc:
            main(['pull', '--repos', str(list_file)])

        assert exc.value.code == 1
        err = capsys.readouterr().err
        assert "PATH_UNREADABLE" in err

    def test_missing_list_declined(self, tmp_path, monkeypatch):
        import io
        monkeypatch.setattr(sys, "stdin", io.StringIO("n\n"))
        list_file = tmp_path / "absent.conf"

        with pytest.raises(SystemExit) as exc:
            main(['push', '--repos', str(list_file)])

        assert exc.value.code == 0
        assert not list_file.exists()

    def test_invalid_settings_file(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(['pull', '--config', str(tmp_path / "nope.toml")])
        assert exc.value.code == 1

    def test_missing_list_json_is_error(self, tmp_path, capsys):
        list_file = tmp_path / "absent.conf"

        with pytest.raises(SystemExit) as exc:
            main(['pull', '--repos', str(list_file), '--json'])

        assert exc.value.code == 1
        assert "absent.conf" in json.loads(capsys.readouterr().out)['error']
        assert not list_file.exists()

    def test_push_json_shows_changes_on_stderr(self, tmp_path, repo_pair, monkeypatch, capsys):
        import io
        _, local = repo_pair
        (local / "wip.txt").write_text("wip")
        list_file = tmp_path / "repos.conf"
        list_file.write_text(f"{local}\n")
        monkeypatch.setattr(sys, "stdin", io.StringIO("n\n"))

        with pytest.raises(SystemExit) as exc:
            main(['push', '--repos', str(list_file), '--json'])

        assert exc.value.code == 0
        captured = capsys.readouterr()
        assert "Local changes detected" in captured.err
        assert "Stage and commit all changes" in captured.err
        data = json.loads(captured.out)
        assert data['repositories'][0]['status'] == 'SKIPPED'
