"""Configuration: argument parser, settings file loader, effective config."""

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from grit_sync.errors import ConfigError
from grit_sync.models import DEFAULT_REPOS_FILE, DEFAULT_SETTINGS_FILE, SyncConfig

try:
    import tomllib
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

# argparse dest -> settings file key
SETTING_KEYS = {
    'repos_file': 'repos_file',
    'timeout': 'timeout',
    'retries': 'network_retries',
    'parallel': 'parallel',
    'max_workers': 'max_workers',
    'verbose': 'verbose',
    'json_output': 'json_output',
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--repos', dest='repos_file', default=DEFAULT_REPOS_FILE,
                        help=f'Repository list file (default: {DEFAULT_REPOS_FILE})')
    parser.add_argument('--config', type=str, default=None,
                        help=f'Settings file (default: {DEFAULT_SETTINGS_FILE})')
    parser.add_argument('--timeout', type=float, default=120.0,
                        help='Seconds before a network operation is abandoned (default: 120, 0=no limit)')
    parser.add_argument('--retries', type=int, default=0,
                        help='Retries for network failures, with backoff (default: 0)')
    parser.add_argument('--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--json', dest='json_output', action='store_true',
                        help='Print the report as JSON on stdout')


def create_argument_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with the pull and push subcommands."""
    # Lazy import to avoid circular dependency with __init__.py
    from grit_sync import __version__

    parser = argparse.ArgumentParser(
        prog='grit',
        allow_abbrev=False,
        description="Keep a list of git repositories in sync with their remotes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s pull                         # Pull every listed repository
  %(prog)s pull --parallel              # Pull several repositories at once
  %(prog)s push                         # Commit (interactively) and push
  %(prog)s push --repos ~/work.conf     # Use another repository list
        """
    )
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    subparsers = parser.add_subparsers(dest='command', metavar='{pull,push}')
    subparsers.required = True

    pull = subparsers.add_parser('pull', help='Pull latest changes for all repositories',
                                  allow_abbrev=False)
    _add_common_arguments(pull)
    pull.add_argument('--parallel', action='store_true',
                      help='Pull repositories in parallel')
    pull.add_argument('--max-workers', type=int, default=min(os.cpu_count() or 4, 8),
                      help='Max parallel workers (default: min(cpu_count, 8))')

    push = subparsers.add_parser('push', help='Commit local changes and push all repositories',
                                  allow_abbrev=False)
    _add_common_arguments(push)

    return parser


def load_config_file(config_path: str | None = None) -> dict[str, Any]:
    """Load the TOML settings file from an explicit path or the default location.

    Returns an empty dict when the default file does not exist. An explicit
    path that is missing or invalid is a ConfigError.
    """
    path = Path(os.path.expanduser(config_path or DEFAULT_SETTINGS_FILE))
    if not path.is_file():
        if config_path:
            raise ConfigError(f"Config file '{config_path}' not found")
        return {}
    try:
        with open(path, 'rb') as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e


def explicit_destinations(parser: argparse.ArgumentParser, argv: Sequence[str]) -> set[str]:
    """Return the dests of options that appear on the command line."""
    explicit = set()
    parsers = [parser]
    for action in parser._actions:
        if isinstance(action, argparse._SubParsersAction):
            parsers.extend(action.choices.values())
    for p in parsers:
        for action in p._actions:
            if action.dest in ('help', 'version'):
                continue
            for opt_string in action.option_strings:
                if any(arg == opt_string or arg.startswith(opt_string + '=') for arg in argv):
                    explicit.add(action.dest)
                    break
    return explicit


def build_config(args: argparse.Namespace, file_config: dict[str, Any],
                 cli_explicit: set[str]) -> SyncConfig:
    """Merge CLI flags, settings file values and parser defaults (in that priority)."""

    def effective(dest: str):
        if dest in cli_explicit or not hasattr(args, dest):
            return getattr(args, dest, None)
        key = SETTING_KEYS[dest]
        if key in file_config:
            return file_config[key]
        return getattr(args, dest)

    timeout = effective('timeout')
    defaults = SyncConfig()
    return SyncConfig(
        timeout=float(timeout) if timeout else None,
        parallel=bool(effective('parallel')) if hasattr(args, 'parallel') else False,
        max_workers=int(effective('max_workers') or defaults.max_workers)
        if hasattr(args, 'max_workers') else defaults.max_workers,
        network_retries=int(effective('retries') or 0),
        verbose=bool(effective('verbose')),
        json_output=bool(effective('json_output')),
        repos_file=str(effective('repos_file')),
    )
