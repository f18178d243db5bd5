"""
grit-sync: Git Repository List Sync Tool

Pulls or pushes every git repository named in a list file, committing
local changes interactively before a push.
"""

from colorama import init as colorama_init

colorama_init(autoreset=True)

__version__ = "0.3.0"

# Re-export public API so `from grit_sync import X` keeps working.
from grit_sync.cli import exit_code_for, main  # noqa: E402
from grit_sync.config import (  # noqa: E402
    build_config,
    create_argument_parser,
    load_config_file,
)
from grit_sync.errors import (  # noqa: E402
    ConfigError,
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
from grit_sync.models import (  # noqa: E402
    CommitResult,
    ErrorKind,
    OutcomeStatus,
    PullResult,
    PushResult,
    RepositoryList,
    RepositoryOutcome,
    SyncAction,
    SyncConfig,
    SyncReport,
    TreeStatus,
)
from grit_sync.orchestrator import SyncOrchestrator  # noqa: E402
from grit_sync.output import (  # noqa: E402
    SECTION_WIDTH,
    BufferedOutputHandler,
    ConsoleOutputHandler,
    NullOutputHandler,
)
from grit_sync.prompt import ConsolePrompt, ScriptedPrompt  # noqa: E402
from grit_sync.protocols import GitOperationRunner, OutputHandler, Prompt  # noqa: E402
from grit_sync.repolist import load_repository_list, parse_repository_list  # noqa: E402
from grit_sync.reporter import ReportPresenter  # noqa: E402
from grit_sync.runner import GitPythonRunner  # noqa: E402
from grit_sync.workflow import (  # noqa: E402
    CommitState,
    InteractiveCommitWorkflow,
    WorkflowResult,
)

__all__ = [
    "__version__",
    # Models
    "CommitResult",
    "ErrorKind",
    "OutcomeStatus",
    "PullResult",
    "PushResult",
    "RepositoryList",
    "RepositoryOutcome",
    "SyncAction",
    "SyncConfig",
    "SyncReport",
    "TreeStatus",
    # Errors
    "ConfigError",
    "EmptyCommitMessage",
    "GitSyncError",
    "MergeConflict",
    "NetworkError",
    "NothingToCommit",
    "NotAGitRepository",
    "NoUpstream",
    "PathUnreadable",
    "RejectedNonFastForward",
    # Protocols
    "GitOperationRunner",
    "OutputHandler",
    "Prompt",
    # Implementations
    "GitPythonRunner",
    "BufferedOutputHandler",
    "ConsoleOutputHandler",
    "NullOutputHandler",
    "SECTION_WIDTH",
    "ConsolePrompt",
    "ScriptedPrompt",
    # Services
    "CommitState",
    "InteractiveCommitWorkflow",
    "WorkflowResult",
    "SyncOrchestrator",
    "ReportPresenter",
    # Config / CLI
    "build_config",
    "create_argument_parser",
    "exit_code_for",
    "load_config_file",
    "load_repository_list",
    "parse_repository_list",
    "main",
]
