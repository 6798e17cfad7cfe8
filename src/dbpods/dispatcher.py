"""Runs one action against one resolved pod."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Optional

from . import queries
from .config import Settings
from .engines import ClickHouseClient, PostgresClient
from .errors import ConnectivityError, DbPodsError, RemoteExecError, UnsupportedTargetError
from .kubectl import ExecResult, KubectlClient
from .models import CommandName, ExecutionResult, PodTarget
from .retry import RetryPolicy
from .runlog import RunLog
from .terminal import Terminal

LOGGER = logging.getLogger("dbpods.dispatcher")

_SCHEMA_CAUSES = (
    "Database connection problem",
    "No user tables exist",
    "System tables not accessible",
)
_DATA_CAUSES = (
    "No active data parts found",
    "Table is empty or not loaded",
    "System.parts table not accessible",
)

_CHECK_LABELS: dict[str, str] = {
    "schemacheck": "Schema check",
    "datacheck": "Data check",
    "grantcheck": "Grant check",
    "healthcheck": "Health check",
    "conncheck": "Connection check",
}


class CommandDispatcher:
    def __init__(
        self,
        *,
        kubectl: KubectlClient,
        terminal: Terminal,
        run_log: RunLog,
        clickhouse: ClickHouseClient,
        postgres: PostgresClient,
        retry_policy: RetryPolicy,
        http_port: int = 8123,
        tools: Sequence[str] = ("vim", "less"),
    ) -> None:
        self._kubectl = kubectl
        self._terminal = terminal
        self._run_log = run_log
        self._clickhouse = clickhouse
        self._postgres = postgres
        self._retry_policy = retry_policy
        self._http_port = http_port
        self._tools = list(tools)
        self._handlers: dict[str, Callable[[PodTarget], ExecutionResult]] = {
            "install-tools": self.install_tools,
            "sql": self.sql,
            "crashlog": self.crashlog,
            "log": self.log,
            "schemacheck": self.schema_check,
            "datacheck": self.data_check,
            "grantcheck": self.grant_check,
            "healthcheck": self.health_check,
            "conncheck": self.conn_check,
        }

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        kubectl: KubectlClient,
        terminal: Terminal,
        run_log: RunLog,
    ) -> CommandDispatcher:
        return cls(
            kubectl=kubectl,
            terminal=terminal,
            run_log=run_log,
            clickhouse=ClickHouseClient.from_settings(settings),
            postgres=PostgresClient.from_settings(settings),
            retry_policy=RetryPolicy(
                max_attempts=settings.max_retries,
                delay_seconds=settings.retry_delay_seconds,
            ),
            http_port=settings.clickhouse_http_port,
            tools=settings.tools,
        )

    def dispatch(self, command: CommandName, target: PodTarget) -> ExecutionResult:
        """Run `command` against `target`; every tool error becomes a failed result."""
        handler = self._handlers[command]
        LOGGER.debug("dispatch command=%s pod=%s", command, target.qualified_name)
        try:
            return handler(target)
        except UnsupportedTargetError as exc:
            self._run_log.error(str(exc))
            return ExecutionResult.failed(target, str(exc))
        except ConnectivityError as exc:
            self._run_log.error(f"Error: {exc}")
            return ExecutionResult.failed(target, str(exc))
        except RemoteExecError as exc:
            self._run_log.error(f"Remote exec failed for {target.name}: {exc}")
            return ExecutionResult.failed(target, str(exc), output=exc.stderr)
        except DbPodsError as exc:
            self._run_log.error(str(exc))
            return ExecutionResult.failed(target, str(exc))

    def install_tools(self, target: PodTarget) -> ExecutionResult:
        self._run_log.info(f"Installing tools in {target.name}...")
        result = self._exec(target, ["sh", "-c", queries.install_tools_script(self._tools)])
        output = result.combined_output
        self._run_log.output(output)

        if result.returncode == queries.UNSUPPORTED_PACKAGE_MANAGER_EXIT:
            message = f"Unsupported package manager in {target.name}"
            self._run_log.warning(message)
            return ExecutionResult.failed(target, message, output=output)
        if not result.ok:
            message = f"Tool installation failed for {target.name} (exit {result.returncode})"
            self._run_log.error(message)
            return ExecutionResult.failed(target, message, output=output)

        message = f"Tool installation completed for {target.name}"
        self._run_log.success(message)
        return ExecutionResult.ok(target, message, output=output)

    def sql(self, target: PodTarget) -> ExecutionResult:
        if target.engine_kind == "clickhouse":
            label, client_argv = "ClickHouse", self._clickhouse.interactive_argv()
        elif target.engine_kind == "postgresql":
            label, client_argv = "PostgreSQL", self._postgres.interactive_argv()
        else:
            raise UnsupportedTargetError(f"Unsupported database type for pod: {target.name}")

        self._run_log.info(f"Connecting to {label} in {target.name}...")
        argv = self._kubectl.exec_argv(
            target.namespace,
            target.name,
            client_argv,
            tty=self._terminal.is_tty,
        )
        session = self._terminal.attach(argv)
        if self._terminal.is_tty:
            # The session owns the terminal; only its exit status is known here.
            self._run_log.record(
                f"{label} session in {target.name} ran on a TTY; its output is not recorded"
            )
        else:
            self._run_log.output(session.output)

        if session.returncode != 0:
            message = f"{label} session in {target.name} exited with status {session.returncode}"
            return ExecutionResult.failed(target, message, output=session.output)
        return ExecutionResult.ok(target, f"{label} session in {target.name} closed")

    def crashlog(self, target: PodTarget) -> ExecutionResult:
        if target.engine_kind == "clickhouse":
            after, before = queries.CLICKHOUSE_CRASH_CONTEXT
            command = [
                "grep",
                "-A",
                str(after),
                "-B",
                str(before),
                queries.CLICKHOUSE_CRASH_PATTERN,
                queries.CLICKHOUSE_LOG_PATH,
            ]
        elif target.engine_kind == "postgresql":
            after, before = queries.POSTGRES_CRASH_CONTEXT
            command = [
                "sh",
                "-c",
                f"grep -A {after} -B {before} '{queries.POSTGRES_CRASH_PATTERN}' "
                f"{queries.POSTGRES_LOG_GLOB}",
            ]
        else:
            raise UnsupportedTargetError(f"Crash logs not available for pod type: {target.name}")

        self._run_log.info(f"Viewing crash logs for {target.name}...")
        result = self._exec(target, command)

        # grep exits 1 with no stderr when nothing matched.
        if result.returncode == 1 and not result.stderr.strip():
            message = f"No fatal or error entries found in {target.name} logs"
            self._run_log.success(message)
            return ExecutionResult.ok(target, message)
        if not result.ok:
            raise _remote_failure(result, f"reading crash log in {target.name} failed")

        self._page(result.stdout)
        return ExecutionResult.ok(target, f"Crash log viewed for {target.name}", output=result.stdout)

    def log(self, target: PodTarget) -> ExecutionResult:
        if target.engine_kind == "clickhouse":
            command = ["cat", queries.CLICKHOUSE_LOG_PATH]
        elif target.engine_kind == "postgresql":
            command = ["sh", "-c", queries.LATEST_POSTGRES_LOG]
        else:
            raise UnsupportedTargetError(f"Logs not available for pod type: {target.name}")

        self._run_log.info(f"Viewing logs for {target.name}...")
        result = self._exec(target, command)
        if not result.ok:
            raise _remote_failure(result, f"reading log in {target.name} failed")

        self._page(result.stdout)
        return ExecutionResult.ok(target, f"Log viewed for {target.name}", output=result.stdout)

    def conn_check(self, target: PodTarget) -> ExecutionResult:
        self._require_clickhouse(target, "conncheck")
        attempts = self.check_connectivity(target)
        message = f"ClickHouse connection OK for {target.name} (attempts: {attempts})"
        self._run_log.success(message)
        return ExecutionResult.ok(target, message)

    def schema_check(self, target: PodTarget) -> ExecutionResult:
        self._require_clickhouse(target, "schemacheck")
        return self._run_report(
            target,
            label="Schema check",
            report_query=queries.SCHEMA_REPORT,
            count_query=queries.SCHEMA_COUNT,
            causes=_SCHEMA_CAUSES,
        )

    def data_check(self, target: PodTarget) -> ExecutionResult:
        self._require_clickhouse(target, "datacheck")
        return self._run_report(
            target,
            label="Data check",
            report_query=queries.DATA_REPORT,
            count_query=queries.DATA_COUNT,
            causes=_DATA_CAUSES,
        )

    def grant_check(self, target: PodTarget) -> ExecutionResult:
        self._require_clickhouse(target, "grantcheck")
        user = self._clickhouse.user
        return self._run_report(
            target,
            label="Grant check",
            report_query=queries.grant_report(user),
            count_query=queries.grant_count(user),
            causes=(
                f"User '{user}' has no grants",
                "System.grants table not accessible",
            ),
        )

    def health_check(self, target: PodTarget) -> ExecutionResult:
        self._require_clickhouse(target, "healthcheck")
        self._run_log.info(f"Running health check on {target.name}...")

        ping = self._exec(target, ["sh", "-c", f"curl -s localhost:{self._http_port}/ping"])
        # curl -s prints nothing on stderr, so stderr here comes from kubectl itself.
        if not ping.ok and ping.stderr.strip():
            self._run_log.error("HTTP Service: FAILED")
            raise _remote_failure(ping, f"HTTP ping in {target.name} failed")
        response = ping.stdout.rstrip("\r\n")
        if response != queries.PING_OK_RESPONSE:
            self._run_log.error(f"HTTP Service: FAILED (response: {response})")
            return ExecutionResult.failed(
                target,
                "HTTP ping did not answer 'Ok.'",
                output=ping.combined_output,
            )
        self._run_log.success("HTTP Service: OK")

        tcp = self._exec(target, self._clickhouse.query_argv(queries.CONNECTIVITY_PROBE))
        if not tcp.ok:
            self._run_log.error("TCP Connection: FAILED")
            if tcp.stderr.strip():
                self._run_log.error(tcp.stderr.strip())
            return ExecutionResult.failed(
                target,
                "TCP query probe failed",
                output=tcp.combined_output,
            )
        self._run_log.success("TCP Connection: OK")

        missing = 0
        for table in queries.HEALTH_SYSTEM_TABLES:
            exists = self._exec(target, self._clickhouse.query_argv(f"EXISTS system.{table}"))
            if not exists.ok or exists.stdout.strip() != "1":
                self._run_log.error(f"System table check: system.{table} MISSING")
                missing += 1
        if missing:
            message = f"System Tables: {missing} critical tables missing"
            self._run_log.error(message)
            return ExecutionResult.failed(target, message)
        self._run_log.success("System Tables: OK")

        replicas = self._exec(
            target,
            self._clickhouse.stdin_argv("TSV"),
            input_data=queries.REPLICA_ISSUES,
        )
        if not replicas.ok:
            self._run_log.error("Replica Status: QUERY FAILED")
            return ExecutionResult.failed(
                target,
                "Replica status query failed",
                output=replicas.combined_output,
            )
        issues = [line for line in replicas.stdout.splitlines() if line.strip()]
        if issues:
            self._run_log.error("Replica Status: ISSUES FOUND")
            for line in issues:
                self._run_log.error(f"  {line}")
            return ExecutionResult.failed(
                target,
                f"{len(issues)} replicas inactive or read-only",
                output=replicas.stdout,
            )
        self._run_log.success("Replica Status: OK")

        self._run_log.success("All health checks passed")
        return ExecutionResult.ok(target, f"All health checks passed for {target.name}")

    def check_connectivity(self, target: PodTarget) -> int:
        """Probe the ClickHouse query protocol with retries; return the attempts used."""
        policy = self._retry_policy

        def _probe() -> ExecResult:
            return self._exec(target, self._clickhouse.query_argv(queries.CONNECTIVITY_PROBE))

        def _on_retry(attempt: int, delay: float) -> None:
            self._run_log.warning(
                f"Connection check failed (attempt {attempt}/{policy.max_attempts}), "
                f"retrying in {delay:g} seconds..."
            )

        outcome = policy.run(_probe, is_success=lambda result: result.ok, on_retry=_on_retry)
        if not outcome.succeeded:
            message = f"Unable to connect to ClickHouse after {outcome.attempts} attempts"
            detail = outcome.last_value.stderr.strip() if outcome.last_value is not None else ""
            if detail:
                message = f"{message}: {detail}"
            raise ConnectivityError(message, attempts=outcome.attempts)
        return outcome.attempts

    def _run_report(
        self,
        target: PodTarget,
        *,
        label: str,
        report_query: str,
        count_query: str,
        causes: Sequence[str],
    ) -> ExecutionResult:
        self.check_connectivity(target)

        self._run_log.info(f"Running {label.lower()} on {target.name}...")
        report = self._exec(
            target,
            self._clickhouse.stdin_argv("PrettyCompact"),
            input_data=report_query,
        )
        if not report.ok:
            raise _remote_failure(report, f"{label} query failed in {target.name}")
        self._run_log.output(report.stdout)

        count = self._exec(target, self._clickhouse.query_argv(count_query))
        rows = _parse_count(count.stdout) if count.ok else None
        if not rows:
            self._run_log.warning(f"WARNING: {label} returned no results. Possible issues:")
            for index, cause in enumerate(causes, start=1):
                self._run_log.warning(f"{index}. {cause}")
            return ExecutionResult.degraded(
                target,
                f"{label} returned no results",
                output=report.stdout,
            )

        message = f"{label} completed for {target.name} ({rows} rows)"
        self._run_log.success(message)
        return ExecutionResult.ok(target, message, output=report.stdout)

    def _require_clickhouse(self, target: PodTarget, command: str) -> None:
        if target.engine_kind != "clickhouse":
            raise UnsupportedTargetError(
                f"{_CHECK_LABELS[command]} only available for ClickHouse pods "
                f"({target.name} is {target.engine_kind})"
            )

    def _exec(
        self,
        target: PodTarget,
        command: list[str],
        *,
        input_data: Optional[str] = None,
    ) -> ExecResult:
        return self._kubectl.exec(target.namespace, target.name, command, input_data=input_data)

    def _page(self, text: str) -> None:
        self._run_log.record(text)
        self._terminal.page(text)


def _parse_count(raw: str) -> int | None:
    stripped = raw.strip()
    if not stripped:
        return None
    try:
        return int(stripped.splitlines()[0])
    except ValueError:
        return None


def _remote_failure(result: ExecResult, fallback: str) -> RemoteExecError:
    return RemoteExecError(
        result.stderr.strip() or fallback,
        returncode=result.returncode,
        stderr=result.stderr,
    )
