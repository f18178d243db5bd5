"""CLI entry point: main() function."""

from __future__ import annotations

import json
import logging
import signal
import sys
from collections.abc import Sequence

from colorama import Fore, Style

from grit_sync.config import (
    build_config,
    create_argument_parser,
    explicit_destinations,
    load_config_file,
)
from grit_sync.errors import ConfigError
from grit_sync.models import SyncAction, SyncReport
from grit_sync.orchestrator import SyncOrchestrator
from grit_sync.output import ConsoleOutputHandler, NullOutputHandler
from grit_sync.prompt import ConsolePrompt
from grit_sync.repolist import load_repository_list
from grit_sync.reporter import ReportPresenter
from grit_sync.runner import GitPythonRunner

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_INTERRUPTED = 130


def exit_code_for(report: SyncReport) -> int:
    """0 when every outcome is SUCCESS or SKIPPED, 130 if interrupted, 1 on any FAILED."""
    if report.interrupted:
        return EXIT_INTERRUPTED
    return EXIT_FAILURES if report.has_failures() else EXIT_OK


def _raise_interrupt(signum, frame):
    raise KeyboardInterrupt


def main(argv: Sequence[str] | None = None):
    """Main entry point"""
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = create_argument_parser()
    args = parser.parse_args(argv)
    action = SyncAction[args.command.upper()]

    try:
        file_config = load_config_file(args.config)
    except ConfigError as e:
        print(f"{Fore.RED}Error: {e}{Style.RESET_ALL}", file=sys.stderr)
        sys.exit(EXIT_FAILURES)

    config = build_config(args, file_config, explicit_destinations(parser, argv))

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Push may prompt, so its context stays on stderr even with --json.
    if config.json_output and action is SyncAction.PULL:
        output = NullOutputHandler()
    else:
        output = ConsoleOutputHandler(verbose=config.verbose)
    prompt = ConsolePrompt()

    try:
        repos = load_repository_list(
            config.repos_file, None if config.json_output else prompt, output
        )
    except ConfigError as e:
        if config.json_output:
            print(json.dumps({'error': str(e)}, indent=2))
        else:
            output.error(f"Error: {e}")
        sys.exit(EXIT_FAILURES)
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)
    if repos is None:
        sys.exit(EXIT_OK)

    signal.signal(signal.SIGTERM, _raise_interrupt)

    orchestrator = SyncOrchestrator(
        config, output, GitPythonRunner(timeout=config.timeout), prompt
    )
    report = orchestrator.run(action, repos)

    if config.json_output:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        ReportPresenter(output).print_summary(report)

    sys.exit(exit_code_for(report))
