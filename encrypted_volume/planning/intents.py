"""Resource intent value objects produced by the planner."""

from __future__ import annotations

from dataclasses import dataclass, fields as dataclass_fields
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterator, Mapping, Optional, Tuple


class ResourceKind(str, Enum):
    KMS_KEY = "AWS::KMS::Key"
    KMS_ALIAS = "AWS::KMS::Alias"
    LOG_GROUP = "AWS::Logs::LogGroup"
    TRAIL_BUCKET = "AWS::S3::Bucket"
    TRAIL_BUCKET_POLICY = "AWS::S3::BucketPolicy"
    TRAIL = "AWS::CloudTrail::Trail"
    VOLUME = "AWS::EC2::Volume"
    ACCESS_POLICY = "AWS::IAM::ManagedPolicy"
    INITIAL_SNAPSHOT = "AWS::EC2::Snapshot"
    IAM_ROLE = "AWS::IAM::Role"
    DLM_ROLE_POLICY = "AWS::IAM::Policy"
    LIFECYCLE_POLICY = "AWS::DLM::LifecyclePolicy"


class LogicalName:
    KMS_KEY = "kmsKey"
    KMS_ALIAS = "kmsAlias"
    LOG_GROUP = "logGroup"
    TRAIL_LOGS_ROLE = "trailLogsRole"
    TRAIL_BUCKET = "trailBucket"
    TRAIL_BUCKET_POLICY = "trailBucketPolicy"
    TRAIL = "trail"
    VOLUME = "volume"
    ACCESS_POLICY = "accessPolicy"
    INITIAL_SNAPSHOT = "initialSnapshot"
    DLM_ROLE = "dlmRole"
    DLM_ROLE_POLICY = "dlmRolePolicy"
    LIFECYCLE_POLICY = "lifecyclePolicy"


@dataclass(frozen=True)
class Ref:
    """Placeholder for an attribute the backend assigns to another intent.

    ``suffix`` is appended verbatim to the resolved value (e.g. ``"/*"``).
    """

    logical_name: str
    attribute: str = "arn"
    suffix: str = ""

    def __str__(self) -> str:
        return f"${{{self.logical_name}.{self.attribute}}}{self.suffix}"


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): _freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted(_freeze(v) for v in value))
    return value


def thaw(value: Any, ref_renderer=str) -> Any:
    """Return a JSON-friendly deep copy, rendering ``Ref`` values with ``ref_renderer``."""
    if isinstance(value, Ref):
        return ref_renderer(value)
    if isinstance(value, Mapping):
        return {k: thaw(v, ref_renderer) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v, ref_renderer) for v in value]
    return value


def iter_refs(value: Any) -> Iterator[Ref]:
    """Yield every ``Ref`` embedded anywhere in ``value``."""
    if isinstance(value, Ref):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_refs(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_refs(item)


@dataclass(frozen=True)
class ResourceIntent:
    """A resource the backend should realize; immutable once planned."""

    kind: ResourceKind
    logical_name: str
    fields: Mapping[str, Any]
    depends_on: FrozenSet[str] = frozenset()

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", _freeze(self.fields))
        object.__setattr__(self, "depends_on", frozenset(self.depends_on))

    @property
    def references(self) -> FrozenSet[str]:
        return frozenset(ref.logical_name for ref in iter_refs(self.fields))

    @property
    def tags(self) -> Mapping[str, str]:
        return self.fields.get("tags", MappingProxyType({}))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "logical_name": self.logical_name,
            "fields": thaw(self.fields),
            "depends_on": sorted(self.depends_on),
        }


@dataclass(frozen=True)
class ResourcePlan:
    """The planned intent graph with one optional slot per conditional kind.

    Slots are declared in dependency order; ``intents`` preserves it.
    """

    base_name: str
    kms_key: Optional[ResourceIntent] = None
    kms_alias: Optional[ResourceIntent] = None
    log_group: Optional[ResourceIntent] = None
    trail_logs_role: Optional[ResourceIntent] = None
    trail_bucket: Optional[ResourceIntent] = None
    trail_bucket_policy: Optional[ResourceIntent] = None
    volume: Optional[ResourceIntent] = None
    trail: Optional[ResourceIntent] = None
    access_policy: Optional[ResourceIntent] = None
    initial_snapshot: Optional[ResourceIntent] = None
    dlm_role: Optional[ResourceIntent] = None
    dlm_role_policy: Optional[ResourceIntent] = None
    lifecycle_policy: Optional[ResourceIntent] = None

    @property
    def intents(self) -> Tuple[ResourceIntent, ...]:
        slots = (getattr(self, f.name) for f in dataclass_fields(self) if f.name != "base_name")
        return tuple(intent for intent in slots if intent is not None)

    @property
    def logical_names(self) -> Tuple[str, ...]:
        return tuple(intent.logical_name for intent in self.intents)

    def get(self, logical_name: str) -> Optional[ResourceIntent]:
        for intent in self.intents:
            if intent.logical_name == logical_name:
                return intent
        return None

    def __contains__(self, logical_name: object) -> bool:
        return logical_name in self.logical_names

    def __iter__(self) -> Iterator[ResourceIntent]:
        return iter(self.intents)

    def __len__(self) -> int:
        return len(self.intents)

    def to_dict(self) -> Dict[str, Any]:
        return {"base_name": self.base_name, "intents": [intent.to_dict() for intent in self.intents]}
