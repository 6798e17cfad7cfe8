"""Interactive stream collaborators used for sql sessions and paged logs."""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Protocol

import click
from rich.console import Console
from rich.text import Text

from .errors import RemoteExecError

LOGGER = logging.getLogger("dbpods.terminal")


@dataclass(frozen=True)
class AttachResult:
    returncode: int
    output: str = ""


class Terminal(Protocol):
    @property
    def is_tty(self) -> bool:
        ...

    def attach(self, argv: Sequence[str]) -> AttachResult:
        ...

    def page(self, text: str) -> None:
        ...


class InteractiveTerminal:
    """Hands the controlling terminal to the child process."""

    @property
    def is_tty(self) -> bool:
        return True

    def attach(self, argv: Sequence[str]) -> AttachResult:
        LOGGER.debug("terminal attach argv=%s", list(argv))
        try:
            completed = subprocess.run(list(argv), check=False)
        except FileNotFoundError as exc:
            raise RemoteExecError(f"executable not found: {argv[0]}") from exc
        return AttachResult(returncode=completed.returncode)

    def page(self, text: str) -> None:
        click.echo_via_pager(text)


class CapturedTerminal:
    """Non-interactive mode: stdin is passed through, output is captured."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(soft_wrap=True)

    @property
    def is_tty(self) -> bool:
        return False

    def attach(self, argv: Sequence[str]) -> AttachResult:
        LOGGER.debug("terminal captured attach argv=%s", list(argv))
        try:
            completed = subprocess.run(
                list(argv),
                text=True,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise RemoteExecError(f"executable not found: {argv[0]}") from exc
        output = (completed.stdout or "") + (completed.stderr or "")
        return AttachResult(returncode=completed.returncode, output=output)

    def page(self, text: str) -> None:
        self.console.print(Text(text.rstrip("\n")), highlight=False)


def build_terminal(interactive: bool | None, console: Console | None = None) -> Terminal:
    if interactive is None:
        interactive = sys.stdin.isatty() and sys.stdout.isatty()
    if interactive:
        return InteractiveTerminal()
    return CapturedTerminal(console)
