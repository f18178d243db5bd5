"""Output handler implementations: console, null, buffered."""

from __future__ import annotations

import sys
from typing import TextIO

from colorama import Fore, Style
from tqdm import tqdm

from grit_sync.protocols import OutputHandler

SECTION_WIDTH = 50

LEVEL_COLORS = {
    'info': '',
    'success': Fore.GREEN,
    'warning': Fore.YELLOW,
    'error': Fore.RED,
}


def _colorize(level: str, message: str) -> str:
    color = LEVEL_COLORS.get(level, '')
    return f"{color}{message}{Style.RESET_ALL}" if color else message


def capitalize_first(message: str) -> str:
    """Upper-case the first character, leaving the rest as is."""
    return message[:1].upper() + message[1:]


class ConsoleOutputHandler:
    """Colored console output on stderr, kept clear of tqdm progress bars."""

    def __init__(self, verbose: bool = False, stream: TextIO | None = None):
        """Create a console handler. Set verbose=True to enable debug output."""
        self.verbose = verbose
        self.stream = stream

    def _write(self, text: str) -> None:
        tqdm.write(text, file=self.stream or sys.stderr)

    def info(self, message: str, indent: int = 0) -> None:
        self._write("  " * indent + message)

    def success(self, message: str, indent: int = 0) -> None:
        self._write("  " * indent + _colorize('success', message))

    def warning(self, message: str, indent: int = 0) -> None:
        self._write("  " * indent + _colorize('warning', message))

    def error(self, message: str, indent: int = 0) -> None:
        self._write("  " * indent + _colorize('error', message))

    def section(self, title: str) -> None:
        """Print a section header with a divider line."""
        self._write("")
        self._write(f"{Fore.CYAN}{title}{Style.RESET_ALL}")
        self._write("-" * SECTION_WIDTH)

    def debug(self, message: str) -> None:
        """Print a cyan debug message (only when verbose is enabled)."""
        if self.verbose:
            self._write(f"{Fore.CYAN}[DEBUG] {message}{Style.RESET_ALL}")


class NullOutputHandler:
    """Silent output handler for testing and JSON mode."""

    def info(self, message: str, indent: int = 0) -> None:
        pass

    def success(self, message: str, indent: int = 0) -> None:
        pass

    def warning(self, message: str, indent: int = 0) -> None:
        pass

    def error(self, message: str, indent: int = 0) -> None:
        pass

    def section(self, title: str) -> None:
        pass

    def debug(self, message: str) -> None:
        pass


class BufferedOutputHandler:
    """Collects (level, message) pairs for deferred printing (used by parallel pull)."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def info(self, message: str, indent: int = 0) -> None:
        self.messages.append(('info', "  " * indent + message))

    def success(self, message: str, indent: int = 0) -> None:
        self.messages.append(('success', "  " * indent + message))

    def warning(self, message: str, indent: int = 0) -> None:
        self.messages.append(('warning', "  " * indent + message))

    def error(self, message: str, indent: int = 0) -> None:
        self.messages.append(('error', "  " * indent + message))

    def section(self, title: str) -> None:
        self.messages.append(('section', title))

    def debug(self, message: str) -> None:
        self.messages.append(('debug', message))

    def flush_to(self, target: OutputHandler) -> None:
        """Replay all buffered messages on a target handler, preserving levels, then clear."""
        for level, message in self.messages:
            getattr(target, level)(message)
        self.messages.clear()
