"""Core records shared by the resolver, dispatcher and runner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, field_validator

EngineKind = Literal["clickhouse", "postgresql", "unknown"]

CommandName = Literal[
    "install-tools",
    "sql",
    "crashlog",
    "log",
    "schemacheck",
    "datacheck",
    "grantcheck",
    "healthcheck",
    "conncheck",
]

# First matching marker wins: "pgclickhouse" is a ClickHouse pod.
ENGINE_MARKERS: tuple[tuple[str, EngineKind], ...] = (
    ("clickhouse", "clickhouse"),
    ("postgres", "postgresql"),
    ("pg", "postgresql"),
)

Outcome = Literal["ok", "degraded", "failed"]

_OUTCOME_EXIT_CODES: dict[str, int] = {"ok": 0, "failed": 1, "degraded": 2}


def detect_engine_kind(pod_name: str) -> EngineKind:
    for marker, kind in ENGINE_MARKERS:
        if marker in pod_name:
            return kind
    return "unknown"


def is_candidate_name(pod_name: str) -> bool:
    return any(marker in pod_name for marker, _ in ENGINE_MARKERS)


@dataclass(frozen=True)
class PodTarget:
    name: str
    namespace: str
    engine_kind: EngineKind

    @classmethod
    def from_name(cls, name: str, namespace: str) -> PodTarget:
        return cls(name=name, namespace=namespace, engine_kind=detect_engine_kind(name))

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}/{self.name}"


class CommandRequest(BaseModel):
    """A parsed `<command> <target>` invocation."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    command: CommandName
    target_spec: str

    @field_validator("target_spec", mode="before")
    @classmethod
    def _normalize_target_spec(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("target must be a pod name, namespace/pod or 'all'.")
        return value.strip()


@dataclass(frozen=True)
class ExecutionResult:
    target: PodTarget
    outcome: Outcome
    message: str
    output: str = ""

    @property
    def exit_code(self) -> int:
        return _OUTCOME_EXIT_CODES[self.outcome]

    @classmethod
    def ok(cls, target: PodTarget, message: str, output: str = "") -> ExecutionResult:
        return cls(target=target, outcome="ok", message=message, output=output)

    @classmethod
    def degraded(cls, target: PodTarget, message: str, output: str = "") -> ExecutionResult:
        return cls(target=target, outcome="degraded", message=message, output=output)

    @classmethod
    def failed(cls, target: PodTarget, message: str, output: str = "") -> ExecutionResult:
        return cls(target=target, outcome="failed", message=message, output=output)


def aggregate_exit_code(results: list[ExecutionResult]) -> int:
    """1 if any target failed, else 2 if any was degraded, else 0."""
    outcomes = {result.outcome for result in results}
    if "failed" in outcomes:
        return 1
    if "degraded" in outcomes:
        return 2
    return 0
