"""Exception hierarchy shared by validation, planning and provisioning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, List, Optional


class EncryptedVolumeError(Exception):
    """Base class for all errors raised by this package."""


@dataclass(frozen=True)
class Violation:
    """A single failed validation rule."""

    field: str
    rule: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ConfigValidationError(EncryptedVolumeError):
    """Raised when raw input fails one or more configuration rules.

    Carries every violation found so callers can fix the input in one pass.
    """

    def __init__(self, violations: Iterable[Violation]) -> None:
        self.violations: List[Violation] = list(violations)
        summary = "; ".join(str(v) for v in self.violations)
        super().__init__(f"{len(self.violations)} configuration violation(s): {summary}")

    @property
    def fields(self) -> List[str]:
        return [v.field for v in self.violations]

    @property
    def rules(self) -> List[str]:
        return [v.rule for v in self.violations]


class PlanningInvariantViolation(EncryptedVolumeError):
    """A planned intent graph broke an internal invariant (a bug, never user error)."""


class BackendError(EncryptedVolumeError):
    """The provisioning backend rejected or failed to realize an intent."""

    def __init__(self, logical_name: str, message: str, *, outputs: Optional[Any] = None) -> None:
        self.logical_name = logical_name
        self.reason = message
        # Projected outputs for whatever the backend did realize, when available.
        self.outputs = outputs
        super().__init__(f"{logical_name}: {message}")
