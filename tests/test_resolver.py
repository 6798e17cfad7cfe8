from __future__ import annotations

from typing import Any, cast

import pytest

from dbpods.errors import PodNotFoundError, UsageError
from dbpods.models import PodTarget
from dbpods.resolver import PodResolver

from conftest import FakeKubectl

PODS = [
    ("postgres-0", "ns2"),
    ("api-server-7d9", "default"),
    ("clickhouse-0", "ns1"),
    ("pgbouncer-1", "ns2"),
    ("Clickhouse-upper", "ns3"),
]


class _CapturedLogger:
    def __init__(self) -> None:
        self.warnings: list[str] = []

    def warning(self, message: str, *args: object) -> None:
        self.warnings.append(message % args)


def _resolver(pods: list[tuple[str, str]]) -> tuple[PodResolver, FakeKubectl]:
    kubectl = FakeKubectl(pods)
    return PodResolver(cast(Any, kubectl)), kubectl


def test_list_candidate_pods_filters_by_marker_and_keeps_api_order() -> None:
    resolver, _ = _resolver(PODS)

    candidates = resolver.list_candidate_pods()

    assert [(pod.name, pod.namespace) for pod in candidates] == [
        ("postgres-0", "ns2"),
        ("clickhouse-0", "ns1"),
        ("pgbouncer-1", "ns2"),
    ]
    assert [pod.engine_kind for pod in candidates] == ["postgresql", "clickhouse", "postgresql"]


def test_resolve_all_returns_every_candidate_sorted_by_namespace() -> None:
    resolver, _ = _resolver(PODS)

    targets = resolver.resolve("all")

    assert [target.qualified_name for target in targets] == [
        "ns1/clickhouse-0",
        "ns2/pgbouncer-1",
        "ns2/postgres-0",
    ]


@pytest.mark.parametrize(
    ("spec", "namespace", "name"),
    [
        ("analytics/clickhouse-9", "analytics", "clickhouse-9"),
        ("ops/not-a-db", "ops", "not-a-db"),
        ("a/b/c", "a", "b/c"),
    ],
)
def test_resolve_explicit_namespace_skips_lookup(spec: str, namespace: str, name: str) -> None:
    resolver, kubectl = _resolver(PODS)

    targets = resolver.resolve(spec)

    assert targets == [PodTarget.from_name(name, namespace)]
    assert kubectl.list_calls == 0


@pytest.mark.parametrize("spec", ["ns/", "/pod", "", "   "])
def test_resolve_rejects_malformed_specs(spec: str) -> None:
    resolver, _ = _resolver(PODS)

    with pytest.raises(UsageError):
        resolver.resolve(spec)


def test_resolve_bare_name_detects_namespace(monkeypatch: pytest.MonkeyPatch) -> None:
    resolver, _ = _resolver([])
    monkeypatch.setattr(
        resolver,
        "list_candidate_pods",
        lambda: [PodTarget.from_name("db-pod", "analytics")],
    )

    assert resolver.resolve("db-pod") == [
        PodTarget(name="db-pod", namespace="analytics", engine_kind="unknown")
    ]


def test_resolve_bare_name_only_considers_marked_pods() -> None:
    resolver, _ = _resolver([("db-pod", "analytics"), ("pg-db-pod", "reports")])

    assert resolver.resolve("pg-db-pod") == [
        PodTarget(name="pg-db-pod", namespace="reports", engine_kind="postgresql")
    ]
    with pytest.raises(PodNotFoundError):
        resolver.resolve("db-pod")


def test_resolve_bare_name_requires_exact_match() -> None:
    resolver, _ = _resolver([("clickhouse-0-backup", "ns1")])

    with pytest.raises(PodNotFoundError):
        resolver.resolve("clickhouse-0")


def test_resolve_missing_pod_lists_all_candidates() -> None:
    resolver, _ = _resolver(PODS)

    with pytest.raises(PodNotFoundError) as exc_info:
        resolver.resolve("missing-pod")

    assert exc_info.value.name == "missing-pod"
    assert [pod.name for pod in exc_info.value.candidates] == [
        "postgres-0",
        "clickhouse-0",
        "pgbouncer-1",
    ]


def test_resolve_ambiguous_name_prefers_first_namespace_and_warns(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured_logger = _CapturedLogger()
    monkeypatch.setattr("dbpods.resolver.LOGGER", captured_logger)
    resolver, _ = _resolver([("clickhouse-0", "zeta"), ("clickhouse-0", "alpha")])

    targets = resolver.resolve("clickhouse-0")

    assert targets == [PodTarget.from_name("clickhouse-0", "alpha")]
    assert len(captured_logger.warnings) == 1
    assert "namespaces=alpha,zeta" in captured_logger.warnings[0]
