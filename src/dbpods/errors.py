"""Error types raised by the resolver, kubectl wrapper and dispatcher."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PodTarget


class DbPodsError(Exception):
    """Base class for every error the tool reports to the user."""


class UsageError(DbPodsError):
    """Missing or malformed command-line input."""


class PodNotFoundError(DbPodsError):
    def __init__(self, name: str, candidates: Sequence[PodTarget]) -> None:
        super().__init__(f"Pod '{name}' not found in any namespace")
        self.name = name
        self.candidates = tuple(candidates)


class UnsupportedTargetError(DbPodsError):
    """The requested action does not apply to the pod's engine kind."""


class ConnectivityError(DbPodsError):
    def __init__(self, message: str, *, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class RemoteExecError(DbPodsError):
    """A kubectl call failed; the message is kubectl's own stderr."""

    def __init__(self, message: str, *, returncode: int | None = None, stderr: str = "") -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr
