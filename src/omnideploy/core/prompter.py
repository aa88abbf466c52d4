#!/usr/bin/env python3
"""
Prompter - user interaction behind a capability interface.

Account onboarding and resource selection need answers from the operator.
The engine asks through a Prompter so the same code runs against a
terminal (InteractivePrompter, built on rich.prompt) or a fixed answer
script (ScriptedPrompter) for tests and non-interactive runs.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.prompt import Confirm, IntPrompt, Prompt


class PromptUnavailableError(Exception):
    """Raised when a prompt cannot be answered (non-interactive run)."""

    def __init__(self, key: str):
        super().__init__(f"no answer available for prompt '{key}'")
        self.key = key


class Prompter(ABC):
    """Capability interface for asking the operator questions."""

    @property
    def interactive(self) -> bool:
        return True

    @abstractmethod
    def ask(
        self,
        key: str,
        message: str,
        default: Optional[str] = None,
        secret: bool = False,
    ) -> str:
        """Ask for a free-form string."""

    @abstractmethod
    def choose(self, key: str, message: str, options: Sequence[str]) -> int:
        """Ask the operator to pick one option; returns its index."""

    @abstractmethod
    def confirm(self, key: str, message: str, default: bool = False) -> bool:
        """Ask a yes/no question."""

    def show(self, message: str) -> None:
        """Display informational text. Silent by default."""


class InteractivePrompter(Prompter):
    """Terminal prompter using rich.prompt."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(self, key, message, default=None, secret=False):
        while True:
            answer = Prompt.ask(
                message, console=self.console, default=default, password=secret
            )
            if answer is not None and str(answer).strip():
                return str(answer).strip()
            self.console.print("[red]A value is required[/red]")

    def choose(self, key, message, options):
        if not options:
            raise ValueError(f"no options to choose from for '{key}'")

        self.console.print(f"\n[bold]{message}[/bold]")
        for index, option in enumerate(options, start=1):
            self.console.print(f"  [cyan]{index}[/cyan]. {option}")

        choices = [str(i) for i in range(1, len(options) + 1)]
        selected = IntPrompt.ask(
            "Enter choice", console=self.console, choices=choices, show_choices=False
        )
        return selected - 1

    def confirm(self, key, message, default=False):
        return Confirm.ask(message, console=self.console, default=default)

    def show(self, message):
        self.console.print(message)


class ScriptedPrompter(Prompter):
    """
    Prompter answering from a fixed mapping of prompt key to answer.

    Choice answers may be an index (int) or the option text. A missing key
    raises PromptUnavailableError unless a default is offered. Every prompt
    asked is recorded in `asked` for assertions.
    """

    def __init__(self, answers: Optional[Dict[str, object]] = None, interactive: bool = True):
        self.answers = dict(answers or {})
        self._interactive = interactive
        self.asked: List[str] = []
        self.shown: List[str] = []

    @property
    def interactive(self) -> bool:
        return self._interactive

    def _answer(self, key: str):
        self.asked.append(key)
        if key not in self.answers:
            raise PromptUnavailableError(key)
        return self.answers[key]

    def ask(self, key, message, default=None, secret=False):
        try:
            return str(self._answer(key))
        except PromptUnavailableError:
            if default is not None:
                return default
            raise

    def choose(self, key, message, options):
        answer = self._answer(key)
        if isinstance(answer, int):
            if not 0 <= answer < len(options):
                raise ValueError(f"scripted choice {answer} out of range for '{key}'")
            return answer
        try:
            return list(options).index(answer)
        except ValueError:
            raise ValueError(
                f"scripted choice '{answer}' is not one of {list(options)}"
            ) from None

    def confirm(self, key, message, default=False):
        try:
            return bool(self._answer(key))
        except PromptUnavailableError:
            return default

    def show(self, message):
        self.shown.append(message)
