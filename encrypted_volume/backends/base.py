"""Narrow boundary between the planning core and a provisioning backend."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Protocol, Sequence

from encrypted_volume.planning.intents import ResourceIntent


@dataclass(frozen=True)
class BackendResult:
    """Identifiers assigned by the backend, keyed by logical name.

    Intents absent from both ``realized`` and ``failed`` are still pending.
    """

    realized: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    failed: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        frozen = {name: MappingProxyType(dict(attrs)) for name, attrs in self.realized.items()}
        object.__setattr__(self, "realized", MappingProxyType(frozen))
        object.__setattr__(self, "failed", MappingProxyType(dict(self.failed)))

    def attributes(self, logical_name: str) -> Optional[Mapping[str, Any]]:
        return self.realized.get(logical_name)

    def is_realized(self, logical_name: str) -> bool:
        return logical_name in self.realized


class ProvisioningBackend(Protocol):
    """Anything that can turn intents into resources and report their identifiers."""

    def submit(self, intents: Sequence[ResourceIntent]) -> BackendResult:
        ...
