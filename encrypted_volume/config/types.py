"""Typed contracts for raw (wire-format) configuration input."""

from __future__ import annotations

from typing import Dict, List, NotRequired, Optional, Required, TypedDict


class SnapshotScheduleInput(TypedDict, total=False):
    """Snapshot lifecycle schedule."""

    interval: int
    intervalUnit: str
    times: List[str]
    retainCount: int


class VolumeSpecInput(TypedDict, total=False):
    """Block storage volume settings."""

    availabilityZone: Required[str]
    size: Required[int]
    volumeType: NotRequired[str]
    iops: NotRequired[Optional[int]]
    throughput: NotRequired[Optional[int]]
    finalSnapshot: NotRequired[bool]
    createAccessPolicy: NotRequired[bool]
    createInitialSnapshot: NotRequired[bool]
    snapshotPolicyEnabled: NotRequired[bool]
    snapshotSchedule: NotRequired[SnapshotScheduleInput]


class KmsSpecInput(TypedDict, total=False):
    """Encryption key settings."""

    create: bool
    keyArn: Optional[str]
    deletionWindowDays: int
    enableKeyRotation: bool
    keyAdministrators: List[str]
    keyUsers: List[str]


class LoggingSpecInput(TypedDict, total=False):
    """Audit logging settings."""

    mode: str
    cloudtrailBucketName: Optional[str]
    retentionDays: int


class VolumeInput(TypedDict, total=False):
    """Strongly-typed raw input accepted by ``validate``."""

    prefix: NotRequired[str]
    volumeName: Required[str]
    tags: Required[Dict[str, str]]
    volumeSpec: Required[VolumeSpecInput]
    kmsSpec: NotRequired[KmsSpecInput]
    loggingSpec: NotRequired[LoggingSpecInput]


class EnvironmentConfig(TypedDict, total=False):
    """Per-environment deployment settings."""

    region: Required[str]
    account_id: NotRequired[str | None]
    volume: Required[VolumeInput]
