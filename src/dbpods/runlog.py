"""Append-only run log that mirrors report lines to the console."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path
from types import TracebackType
from typing import TextIO

from rich.console import Console
from rich.text import Text


class RunLog:
    """Report sink for one invocation.

    Every line goes to the console and, when a path is configured, is
    appended to the plain-text log file. Remote output that is shown in a
    pager is recorded with `record` so it reaches the file without being
    printed twice.
    """

    def __init__(self, path: Path | None, console: Console | None = None) -> None:
        self.path = path
        self.console = console or Console(soft_wrap=True)
        self._handle: TextIO | None = None

    def __enter__(self) -> RunLog:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def start(self, argv: Sequence[str]) -> None:
        if self.path is not None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = open(self.path, "a", encoding="utf-8")
        self.record(f"=== Run started at {_timestamp()} ===")
        self.record(f"Command: {' '.join(argv)}")
        self.record("--------------------------------")

    def finish(self) -> None:
        self.record(f"=== Run completed at {_timestamp()} ===")
        self.close()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def info(self, message: str) -> None:
        self._emit(message, style=None)

    def success(self, message: str) -> None:
        self._emit(message, style="green")

    def warning(self, message: str) -> None:
        self._emit(message, style="yellow")

    def error(self, message: str) -> None:
        self._emit(message, style="red")

    def output(self, text: str) -> None:
        """Print remote command output verbatim and append it to the file."""
        if not text:
            return
        self.console.print(Text(text.rstrip("\n")), highlight=False)
        self.record(text)

    def record(self, text: str) -> None:
        if self._handle is None:
            return
        self._handle.write(text if text.endswith("\n") else f"{text}\n")
        self._handle.flush()

    def _emit(self, message: str, *, style: str | None) -> None:
        self.console.print(Text(message, style=style or ""), highlight=False)
        self.record(message)


def _timestamp() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S %Z")
