"""Maps a command-line target to the pods it names."""

from __future__ import annotations

import logging

from .errors import PodNotFoundError, UsageError
from .kubectl import KubectlClient
from .models import PodTarget, is_candidate_name

LOGGER = logging.getLogger("dbpods.resolver")

ALL_TARGETS = "all"


class PodResolver:
    def __init__(self, kubectl: KubectlClient) -> None:
        self._kubectl = kubectl

    def list_candidate_pods(self) -> list[PodTarget]:
        """Database pods across all namespaces, in the order kubectl lists them."""
        return [
            PodTarget.from_name(name, namespace)
            for name, namespace in self._kubectl.list_pods_all_namespaces()
            if is_candidate_name(name)
        ]

    def resolve(self, target_spec: str) -> list[PodTarget]:
        """Resolve `all`, `namespace/pod` or a bare pod name.

        `all` yields every candidate sorted by (namespace, name). An explicit
        `namespace/pod` is returned without checking that it exists. A bare
        name must match exactly one candidate name; when the same name lives
        in several namespaces the lexically first namespace wins.
        """
        spec = target_spec.strip()
        if not spec:
            raise UsageError("A target is required: <pod_name|all|namespace/pod>.")

        if spec == ALL_TARGETS:
            return sorted(
                self.list_candidate_pods(),
                key=lambda target: (target.namespace, target.name),
            )

        if "/" in spec:
            namespace, name = spec.split("/", 1)
            if not namespace or not name:
                raise UsageError(f"Invalid target '{spec}': expected namespace/pod.")
            return [PodTarget.from_name(name, namespace)]

        candidates = self.list_candidate_pods()
        matches = sorted(
            (candidate for candidate in candidates if candidate.name == spec),
            key=lambda target: target.namespace,
        )
        if not matches:
            raise PodNotFoundError(spec, candidates)
        if len(matches) > 1:
            LOGGER.warning(
                "pod name is ambiguous pod=%s namespaces=%s chosen=%s",
                spec,
                ",".join(match.namespace for match in matches),
                matches[0].namespace,
            )
        return [matches[0]]
