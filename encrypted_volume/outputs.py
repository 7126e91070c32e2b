"""Output projection: plan + backend-assigned identifiers -> published values."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Union

from encrypted_volume.backends.base import BackendResult
from encrypted_volume.planning.intents import LogicalName, ResourcePlan


class _Sentinel:
    """Named marker value; falsy and compared by identity."""

    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False

    def __reduce__(self) -> str:
        return self._name

    def __copy__(self) -> "_Sentinel":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "_Sentinel":
        return self


# The resource was deliberately not planned for this configuration.
NOT_CREATED = _Sentinel("NOT_CREATED")
# The resource was planned but the backend has not reported identifiers for it.
PENDING = _Sentinel("PENDING")

OutputValue = Union[str, int, bool, _Sentinel]


def is_sentinel(value: Any) -> bool:
    return value is NOT_CREATED or value is PENDING


@dataclass(frozen=True)
class OutputSet:
    volume_id: OutputValue
    volume_arn: OutputValue
    volume_size: OutputValue
    volume_type: OutputValue
    volume_encrypted: OutputValue
    availability_zone: OutputValue
    kms_key_arn: OutputValue
    kms_key_id: OutputValue
    kms_alias_name: OutputValue
    log_group_arn: OutputValue
    cloudtrail_arn: OutputValue
    access_policy_arn: OutputValue
    initial_snapshot_id: OutputValue
    lifecycle_policy_id: OutputValue
    dlm_role_arn: OutputValue

    def as_dict(self, sentinel_value: Any = None) -> Dict[str, Any]:
        """Render outputs for JSON consumers, replacing sentinels with ``sentinel_value``."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        return {name: (sentinel_value if is_sentinel(value) else value) for name, value in values.items()}

    @property
    def pending(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is PENDING]


def _realized(assigned: Union[BackendResult, Mapping[str, Mapping[str, Any]]]) -> Mapping[str, Mapping[str, Any]]:
    if isinstance(assigned, BackendResult):
        return assigned.realized
    return assigned


def project(
    resource_plan: ResourcePlan,
    assigned: Union[BackendResult, Mapping[str, Mapping[str, Any]]],
) -> OutputSet:
    """Look up each published value, defaulting to ``NOT_CREATED`` or ``PENDING``."""
    realized = _realized(assigned)

    def lookup(logical_name: str, attribute: str) -> OutputValue:
        if logical_name not in resource_plan:
            return NOT_CREATED
        attrs = realized.get(logical_name) or {}
        if attribute not in attrs:
            return PENDING
        return attrs[attribute]

    volume = resource_plan.volume
    volume_fields: Mapping[str, Any] = volume.fields if volume is not None else {}

    if LogicalName.KMS_KEY in resource_plan:
        kms_key_arn = lookup(LogicalName.KMS_KEY, "arn")
    else:
        kms_key_arn = volume_fields.get("kms_key_id", NOT_CREATED)

    return OutputSet(
        volume_id=lookup(LogicalName.VOLUME, "id"),
        volume_arn=lookup(LogicalName.VOLUME, "arn"),
        volume_size=volume_fields.get("size", PENDING),
        volume_type=volume_fields.get("volume_type", PENDING),
        volume_encrypted=volume_fields.get("encrypted", PENDING),
        availability_zone=volume_fields.get("availability_zone", PENDING),
        kms_key_arn=kms_key_arn,
        kms_key_id=lookup(LogicalName.KMS_KEY, "key_id"),
        kms_alias_name=lookup(LogicalName.KMS_ALIAS, "name"),
        log_group_arn=lookup(LogicalName.LOG_GROUP, "arn"),
        cloudtrail_arn=lookup(LogicalName.TRAIL, "arn"),
        access_policy_arn=lookup(LogicalName.ACCESS_POLICY, "arn"),
        initial_snapshot_id=lookup(LogicalName.INITIAL_SNAPSHOT, "id"),
        lifecycle_policy_id=lookup(LogicalName.LIFECYCLE_POLICY, "id"),
        dlm_role_arn=lookup(LogicalName.DLM_ROLE, "arn"),
    )
