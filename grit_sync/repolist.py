"""Repository list file: reads the paths of the repositories to keep in sync."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator
from pathlib import Path

from grit_sync.errors import ConfigError
from grit_sync.models import RepositoryList
from grit_sync.protocols import OutputHandler, Prompt

logger = logging.getLogger(__name__)

DEFAULT_LIST_CONTENT = """\
# grit repository list
# List one repository path per line, e.g.:
# /home/user/projects/repo1
# ~/Documents/github/my-project   # inline comments are allowed
"""


def iter_entries(lines: Iterable[str]) -> Iterator[str]:
    """Yield path entries, skipping blank lines, comment lines and trailing ` # comments`."""
    for line in lines:
        entry = line.strip()
        if not entry or entry.startswith('#'):
            continue
        for separator in (' #', '\t#'):
            if separator in entry:
                entry = entry.split(separator, 1)[0].rstrip()
        if entry:
            yield entry


def parse_repository_list(text: str, base_dir: Path | None = None) -> RepositoryList:
    """Parse list file content. Relative entries are resolved against base_dir (default: cwd)."""
    base = base_dir or Path.cwd()
    paths = []
    for entry in iter_entries(text.splitlines()):
        expanded = Path(os.path.expanduser(entry))
        paths.append(expanded if expanded.is_absolute() else base / expanded)
    return RepositoryList.from_paths(paths)


def create_default_list(list_path: Path) -> None:
    """Write a commented example list file, creating parent directories."""
    try:
        list_path.parent.mkdir(parents=True, exist_ok=True)
        list_path.write_text(DEFAULT_LIST_CONTENT)
    except OSError as e:
        raise ConfigError(f"Cannot create {list_path}: {e}") from e


def load_repository_list(
    list_file: str | Path,
    prompt: Prompt | None = None,
    output: OutputHandler | None = None,
) -> RepositoryList | None:
    """Load the repository list from list_file.

    When the file is missing and a prompt is given, offers to create a default
    one and returns None (nothing to sync yet). Without a prompt a missing file
    is a ConfigError, as is a file that cannot be read.
    """
    list_path = Path(os.path.expanduser(str(list_file)))
    if not list_path.exists():
        if prompt is None:
            raise ConfigError(f"Repository list not found: {list_path}")
        if output is not None:
            output.warning(f"Repository list not found at {list_path}")
        if prompt.confirm("Create a default repository list there?"):
            create_default_list(list_path)
            if output is not None:
                output.success(f"Created {list_path}")
                output.info("Add one repository path per line, then run this command again.")
        return None

    try:
        text = list_path.read_text()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read repository list {list_path}: {e}") from e

    repos = parse_repository_list(text, base_dir=list_path.parent.absolute())
    logger.debug("Loaded %d repositories from %s", len(repos), list_path)
    return repos
