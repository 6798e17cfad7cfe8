"""Thin wrapper around kubectl for pod discovery and remote exec."""

from __future__ import annotations

import json
import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from .errors import RemoteExecError

LOGGER = logging.getLogger("dbpods.kubectl")


@dataclass(frozen=True)
class ExecResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def combined_output(self) -> str:
        if self.stdout and self.stderr:
            stdout = self.stdout.rstrip("\n")
            return f"{stdout}\n{self.stderr}"
        return self.stdout or self.stderr


class KubectlClient:
    """All calls are pinned to one cluster context."""

    def __init__(self, context: Optional[str] = None, binary: str = "kubectl") -> None:
        self.context = context
        self.binary = binary

    def list_pods_all_namespaces(self) -> list[tuple[str, str]]:
        """Return (name, namespace) pairs in the order the API lists them."""
        result = self._run_kubectl(["get", "pods", "--all-namespaces", "-o", "json"])
        if not result.ok:
            raise RemoteExecError(
                result.stderr.strip() or "kubectl get pods failed",
                returncode=result.returncode,
                stderr=result.stderr,
            )
        try:
            payload: dict[str, Any] = json.loads(result.stdout) if result.stdout.strip() else {}
        except json.JSONDecodeError as exc:
            raise RemoteExecError(
                f"kubectl get pods returned invalid JSON: {exc}",
                returncode=result.returncode,
                stderr=result.stderr,
            ) from exc
        pods: list[tuple[str, str]] = []
        for item in payload.get("items", []):
            metadata = item.get("metadata", {})
            name = metadata.get("name")
            namespace = metadata.get("namespace")
            if name and namespace:
                pods.append((name, namespace))
        return pods

    def exec(
        self,
        namespace: str,
        pod: str,
        command: Sequence[str],
        *,
        input_data: Optional[str] = None,
    ) -> ExecResult:
        """Run a command in the pod and capture its output.

        A non-zero exit status is returned, not raised: several callers treat
        specific codes (grep's 1, a failed probe) as data. Only a failure to
        launch kubectl at all raises.
        """
        args = ["-n", namespace, "exec"]
        if input_data is not None:
            args.append("-i")
        args.extend([pod, "--", *command])
        return self._run_kubectl(args, input_data=input_data)

    def exec_argv(
        self,
        namespace: str,
        pod: str,
        command: Sequence[str],
        *,
        tty: bool,
    ) -> list[str]:
        """Full argv for an exec whose stdio is wired up by the caller."""
        flags = ["-it"] if tty else ["-i"]
        return [*self._base_command(), "-n", namespace, "exec", *flags, pod, "--", *command]

    def _base_command(self) -> list[str]:
        command = [self.binary]
        if self.context:
            command.append(f"--context={self.context}")
        return command

    def _run_kubectl(self, args: list[str], input_data: Optional[str] = None) -> ExecResult:
        command = [*self._base_command(), *args]
        LOGGER.debug("kubectl run argv=%s", command)
        try:
            result = subprocess.run(
                command,
                input=input_data,
                text=True,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise RemoteExecError(f"kubectl executable not found: {self.binary}") from exc
        LOGGER.debug("kubectl done returncode=%s", result.returncode)
        return ExecResult(
            returncode=result.returncode,
            stdout=result.stdout or "",
            stderr=result.stderr or "",
        )
