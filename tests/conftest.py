from __future__ import annotations

import io
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, cast

import pytest
from rich.console import Console

from dbpods.dispatcher import CommandDispatcher
from dbpods.engines import ClickHouseClient, PostgresClient
from dbpods.kubectl import ExecResult
from dbpods.retry import RetryPolicy
from dbpods.runlog import RunLog
from dbpods.terminal import AttachResult

OK = ExecResult(returncode=0, stdout="", stderr="")


class FakeKubectl:
    """Scripted kubectl: exec calls are answered by the first rule whose marker matches."""

    def __init__(self, pods: Sequence[tuple[str, str]] = ()) -> None:
        self.pods = list(pods)
        self.list_calls = 0
        self.exec_calls: list[tuple[str, str, list[str], str | None]] = []
        self._rules: list[tuple[str, list[ExecResult]]] = []

    def on(self, marker: str, *results: ExecResult) -> FakeKubectl:
        self._rules.append((marker, list(results)))
        return self

    def list_pods_all_namespaces(self) -> list[tuple[str, str]]:
        self.list_calls += 1
        return list(self.pods)

    def exec(
        self,
        namespace: str,
        pod: str,
        command: Sequence[str],
        *,
        input_data: str | None = None,
    ) -> ExecResult:
        self.exec_calls.append((namespace, pod, list(command), input_data))
        haystack = " ".join(command) + "\n" + (input_data or "")
        for marker, results in self._rules:
            if marker in haystack:
                if len(results) > 1:
                    return results.pop(0)
                return results[0]
        return OK

    def exec_argv(
        self,
        namespace: str,
        pod: str,
        command: Sequence[str],
        *,
        tty: bool,
    ) -> list[str]:
        return ["kubectl", "-n", namespace, "exec", "-it" if tty else "-i", pod, "--", *command]

    def commands_matching(self, marker: str) -> list[list[str]]:
        return [
            command
            for _ns, _pod, command, input_data in self.exec_calls
            if marker in " ".join(command) + "\n" + (input_data or "")
        ]


class FakeTerminal:
    def __init__(self, *, returncode: int = 0, output: str = "", tty: bool = False) -> None:
        self.returncode = returncode
        self.tty = tty
        self.output = output
        self.attached: list[list[str]] = []
        self.paged: list[str] = []

    @property
    def is_tty(self) -> bool:
        return self.tty

    def attach(self, argv: Sequence[str]) -> AttachResult:
        self.attached.append(list(argv))
        return AttachResult(returncode=self.returncode, output=self.output)

    def page(self, text: str) -> None:
        self.paged.append(text)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:  # pyright: ignore[reportUnusedFunction]
    monkeypatch.setenv("DBPODS_CONFIG", str(tmp_path / "missing-config.yaml"))
    monkeypatch.delenv("DBPODS_CLICKHOUSE_PASSWORD", raising=False)
    monkeypatch.delenv("DBPODS_CONTEXT", raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("dbpods.retry.time.sleep", lambda _seconds: None)


@pytest.fixture
def run_log() -> RunLog:
    return RunLog(None, Console(file=io.StringIO(), width=200, color_system=None))


@pytest.fixture
def kubectl() -> FakeKubectl:
    return FakeKubectl()


@pytest.fixture
def terminal() -> FakeTerminal:
    return FakeTerminal()


@pytest.fixture
def dispatcher(kubectl: FakeKubectl, terminal: FakeTerminal, run_log: RunLog) -> CommandDispatcher:
    return CommandDispatcher(
        kubectl=cast(Any, kubectl),
        terminal=terminal,
        run_log=run_log,
        clickhouse=ClickHouseClient(user="default_viewer", password="s3cret"),
        postgres=PostgresClient(user="default_viewer", database="postgres"),
        retry_policy=RetryPolicy(max_attempts=3, delay_seconds=2.0),
        http_port=8123,
        tools=("vim", "less"),
    )


@pytest.fixture
def console_output(run_log: RunLog) -> Callable[[], str]:
    def _read() -> str:
        return cast(io.StringIO, run_log.console.file).getvalue()

    return _read
