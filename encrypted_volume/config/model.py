"""Immutable, typed view of a configuration input using Pydantic v2.

Field names are snake_case in Python and camelCase on the wire; both spellings
are accepted when parsing. The models only enforce structure and defaults;
business rules live in :mod:`encrypted_volume.config.validation` so every
violation can be collected in a single pass.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Annotated, FrozenSet, Mapping, Optional, Tuple

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_VOLUME_TYPE = "gp3"
DEFAULT_SNAPSHOT_TIMES: Tuple[str, ...] = ("03:00",)
DEFAULT_DELETION_WINDOW_DAYS = 7
DEFAULT_LOG_RETENTION_DAYS = 90

LOGGING_CREATE_NEW = "create_new"
LOGGING_USE_EXISTING = "use_existing"
LOGGING_DISABLED = "disabled"


def _freeze_tags(tags: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType(dict(tags))


# Read-only after validation; frozen models only block attribute reassignment.
TagMap = Annotated[Mapping[str, str], AfterValidator(_freeze_tags)]


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class SnapshotSchedule(_WireModel):
    interval: int = 24
    interval_unit: str = "HOURS"
    times: Tuple[str, ...] = DEFAULT_SNAPSHOT_TIMES
    retain_count: int = 7


class VolumeSpec(_WireModel):
    availability_zone: str
    size: int
    volume_type: str = DEFAULT_VOLUME_TYPE
    iops: Optional[int] = None
    throughput: Optional[int] = None
    final_snapshot: bool = True
    create_access_policy: bool = True
    create_initial_snapshot: bool = True
    snapshot_policy_enabled: bool = True
    snapshot_schedule: SnapshotSchedule = Field(default_factory=SnapshotSchedule)


class KmsSpec(_WireModel):
    create: bool = True
    key_arn: Optional[str] = None
    deletion_window_days: int = DEFAULT_DELETION_WINDOW_DAYS
    enable_key_rotation: bool = True
    key_administrators: FrozenSet[str] = frozenset()
    key_users: FrozenSet[str] = frozenset()

    @field_validator("key_arn")
    @classmethod
    def _blank_arn_is_missing(cls, v: Optional[str]) -> Optional[str]:  # type: ignore[override]
        if v is None:
            return None
        text = v.strip()
        return text or None


class LoggingSpec(_WireModel):
    mode: str = LOGGING_DISABLED
    cloudtrail_bucket_name: Optional[str] = None
    retention_days: int = DEFAULT_LOG_RETENTION_DAYS

    @field_validator("cloudtrail_bucket_name")
    @classmethod
    def _blank_bucket_is_missing(cls, v: Optional[str]) -> Optional[str]:  # type: ignore[override]
        if v is None:
            return None
        text = v.strip()
        return text or None

    @property
    def enabled(self) -> bool:
        return self.mode != LOGGING_DISABLED


class Config(_WireModel):
    """Validated input snapshot for one planning run."""

    prefix: str = ""
    volume_name: str
    tags: TagMap
    volume_spec: VolumeSpec
    kms_spec: KmsSpec = Field(default_factory=KmsSpec)
    logging_spec: LoggingSpec = Field(default_factory=LoggingSpec)

    @property
    def base_name(self) -> str:
        """Display name shared by every created resource."""
        if self.prefix:
            return f"{self.prefix}-{self.volume_name}"
        return self.volume_name
