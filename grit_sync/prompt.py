"""Prompt implementations: console and scripted."""

from __future__ import annotations

import sys
from collections import deque
from collections.abc import Iterable
from typing import TextIO

from colorama import Fore, Style

YES_ANSWERS = {'y', 'yes'}
NO_ANSWERS = {'n', 'no'}


class ConsolePrompt:
    """Asks questions on stderr so stdout stays clean for --json output.

    End of input (e.g. stdin is not a terminal) counts as the default answer
    for confirmations and as an empty string for free-text questions.
    """

    def __init__(self, stream_in: TextIO | None = None, stream_out: TextIO | None = None):
        self._in = stream_in or sys.stdin
        self._out = stream_out or sys.stderr

    def _read(self, question: str) -> str | None:
        self._out.write(question)
        self._out.flush()
        line = self._in.readline()
        if not line:
            self._out.write("\n")
            return None
        return line.rstrip("\r\n")

    def confirm(self, question: str, default: bool = False) -> bool:
        choices = (f"{Fore.GREEN}Y{Style.RESET_ALL}/n" if default
                   else f"y/{Fore.RED}N{Style.RESET_ALL}")
        while True:
            answer = self._read(f"{question} [{choices}]: ")
            if answer is None or not answer.strip():
                return default
            answer = answer.strip().lower()
            if answer in YES_ANSWERS:
                return True
            if answer in NO_ANSWERS:
                return False
            self._out.write(f"{Fore.YELLOW}Please answer 'yes' or 'no'.{Style.RESET_ALL}\n")

    def ask(self, question: str) -> str:
        answer = self._read(f"{question}: ")
        return answer or ""


class ScriptedPrompt:
    """Replays canned answers; records every question asked (for tests and automation)."""

    def __init__(self, answers: Iterable[bool | str] = ()):
        self._answers = deque(answers)
        self.questions: list[str] = []

    def _next(self, question: str) -> bool | str:
        self.questions.append(question)
        if not self._answers:
            raise RuntimeError(f"No scripted answer left for: {question}")
        return self._answers.popleft()

    def confirm(self, question: str, default: bool = False) -> bool:
        answer = self._next(question)
        if isinstance(answer, str):
            return answer.strip().lower() in YES_ANSWERS
        return bool(answer)

    def ask(self, question: str) -> str:
        return str(self._next(question))
