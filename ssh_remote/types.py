"""Core remote operation data types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

Commit = Dict[str, Any]


class OperationType(str, Enum):
    PUSH = "push"
    PULL = "pull"


class ProgressType(str, Enum):
    START = "start"
    PROGRESS = "progress"
    END = "end"
    FAILED = "failed"


@dataclass(frozen=True)
class ProgressEntry:
    """Progress update emitted while volume data is transferred."""

    type: ProgressType
    message: Optional[str] = None
    percent: Optional[int] = None


ProgressCallback = Callable[[ProgressEntry], None]


def _ignore_progress(entry: ProgressEntry) -> None:
    return None


@dataclass(frozen=True)
class ResolvedAuth:
    """Exactly one of password or key material."""

    password: Optional[str] = None
    key: Optional[str] = None

    def __post_init__(self) -> None:
        if (self.password is None) == (self.key is None):
            raise ValueError("Exactly one of password or key must be set.")

    @property
    def is_password(self) -> bool:
        return self.password is not None

    @property
    def secret(self) -> str:
        return self.password if self.password is not None else self.key  # type: ignore[return-value]


@dataclass
class SyncOperation:
    """A single push or pull of commit data against a remote."""

    type: OperationType
    remote: Dict[str, Any]
    parameters: Dict[str, Any]
    commit_id: str
    update_progress: ProgressCallback = field(default=_ignore_progress)


__all__ = [
    "Commit",
    "OperationType",
    "ProgressCallback",
    "ProgressEntry",
    "ProgressType",
    "ResolvedAuth",
    "SyncOperation",
]
