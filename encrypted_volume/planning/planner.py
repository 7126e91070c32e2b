"""Resource planner: maps a validated ``Config`` to its intent graph.

``plan`` is pure and deterministic. Each optional resource is gated by exactly
one configuration switch; the volume itself is always planned and always
encrypted.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Optional, Union

from encrypted_volume.config.model import LOGGING_CREATE_NEW, Config
from encrypted_volume.context import ProviderContext
from encrypted_volume.errors import PlanningInvariantViolation
from encrypted_volume.planning import policies
from encrypted_volume.planning.intents import (
    LogicalName,
    Ref,
    ResourceIntent,
    ResourceKind,
    ResourcePlan,
    iter_refs,
)
from encrypted_volume.utils.logger import get_logger

logger = get_logger(__name__)

MANAGED_BY_TAG = "managed-by"
MODULE_TAG = "module"
MANAGED_BY = "encrypted-volume"
MODULE_NAME = "ebs-encrypted-volume"

ALIAS_SUFFIX = "-key"
TRAIL_SUFFIX = "-trail"
ACCESS_POLICY_SUFFIX = "-access-policy"
DLM_ROLE_SUFFIX = "-dlm-role"
DLM_POLICY_SUFFIX = "-dlm-policy"
LOG_GROUP_ROOT = "/aws/ebs"
TRAIL_LOGS_ROLE_SUFFIX = "-trail-role"

VOLUME_TYPES_WITH_IOPS = frozenset({"gp3", "io1", "io2"})
VOLUME_TYPES_WITH_THROUGHPUT = frozenset({"gp3"})

KeyReference = Union[str, Ref]


def base_name(config: Config) -> str:
    """Return ``<prefix>-<volumeName>`` or just ``<volumeName>`` without a prefix."""
    return config.base_name


def resource_tags(config: Config, *, name: str, resource_type: str) -> Dict[str, str]:
    """Union of user tags, provenance tags and the per-resource discriminator."""
    tags = dict(config.tags)
    tags[MANAGED_BY_TAG] = MANAGED_BY
    tags[MODULE_TAG] = MODULE_NAME
    tags["Name"] = name
    tags["Type"] = resource_type
    return tags


def _intent(
    kind: ResourceKind,
    logical_name: str,
    fields: Mapping[str, Any],
    depends_on: Iterable[str] = (),
) -> ResourceIntent:
    # Every referenced intent is also an explicit dependency.
    references = frozenset(ref.logical_name for ref in iter_refs(fields))
    return ResourceIntent(
        kind=kind,
        logical_name=logical_name,
        fields=fields,
        depends_on=frozenset(depends_on) | references,
    )


def _key_reference(config: Config) -> KeyReference:
    if config.kms_spec.create:
        return Ref(LogicalName.KMS_KEY, "arn")
    return str(config.kms_spec.key_arn)


def _trail_name(config: Config) -> str:
    return f"{base_name(config)}{TRAIL_SUFFIX}"


def _log_group_name(config: Config) -> str:
    return f"{LOG_GROUP_ROOT}/{base_name(config)}"


def _encrypted_trail_arn(config: Config, context: ProviderContext) -> Optional[str]:
    # Only a bucket created here is encrypted with the volume key.
    if config.logging_spec.mode != LOGGING_CREATE_NEW:
        return None
    return policies.trail_arn(context, _trail_name(config))


def plan_kms_key(config: Config, context: ProviderContext) -> Optional[ResourceIntent]:
    kms = config.kms_spec
    if not kms.create:
        return None
    name = base_name(config)
    return _intent(
        ResourceKind.KMS_KEY,
        LogicalName.KMS_KEY,
        {
            "description": f"Encryption key for EBS volume {name}",
            "key_usage": "ENCRYPT_DECRYPT",
            "enable_key_rotation": kms.enable_key_rotation,
            "pending_window_in_days": kms.deletion_window_days,
            "key_policy": policies.kms_key_policy(
                context,
                administrators=kms.key_administrators,
                users=kms.key_users,
                allow_log_service=config.logging_spec.enabled,
                trail_arn=_encrypted_trail_arn(config, context),
            ),
            "tags": resource_tags(config, name=f"{name}-kms-key", resource_type="kms-key"),
        },
    )


def plan_kms_alias(config: Config) -> Optional[ResourceIntent]:
    if not config.kms_spec.create:
        return None
    return _intent(
        ResourceKind.KMS_ALIAS,
        LogicalName.KMS_ALIAS,
        {
            "alias_name": f"alias/{base_name(config)}{ALIAS_SUFFIX}",
            "target_key_id": Ref(LogicalName.KMS_KEY, "key_id"),
            "tags": resource_tags(config, name=f"{base_name(config)}{ALIAS_SUFFIX}", resource_type="kms-alias"),
        },
        depends_on=[LogicalName.KMS_KEY],
    )


def plan_log_group(config: Config) -> Optional[ResourceIntent]:
    logging_spec = config.logging_spec
    if not logging_spec.enabled:
        return None
    log_group_name = _log_group_name(config)
    return _intent(
        ResourceKind.LOG_GROUP,
        LogicalName.LOG_GROUP,
        {
            "log_group_name": log_group_name,
            "retention_in_days": logging_spec.retention_days,
            "kms_key_id": _key_reference(config),
            "tags": resource_tags(config, name=log_group_name, resource_type="log-group"),
        },
    )


def plan_trail_logs_role(config: Config, context: ProviderContext) -> Optional[ResourceIntent]:
    """Role CloudTrail assumes to deliver events into the volume's log group."""
    if not config.logging_spec.enabled:
        return None
    role_name = f"{base_name(config)}{TRAIL_LOGS_ROLE_SUFFIX}"
    return _intent(
        ResourceKind.IAM_ROLE,
        LogicalName.TRAIL_LOGS_ROLE,
        {
            "role_name": role_name,
            "description": f"CloudTrail delivery role for {base_name(config)}",
            "assume_role_policy_document": policies.trail_logs_trust_policy(
                policies.trail_arn(context, _trail_name(config))
            ),
            "policies": [
                {
                    "policy_name": "deliver-trail-events",
                    "policy_document": policies.trail_logs_role_policy(context, _log_group_name(config)),
                }
            ],
            "tags": resource_tags(config, name=role_name, resource_type="iam-role"),
        },
    )


def plan_trail_bucket(config: Config) -> Optional[ResourceIntent]:
    logging_spec = config.logging_spec
    if logging_spec.mode != LOGGING_CREATE_NEW:
        return None
    bucket_name = str(logging_spec.cloudtrail_bucket_name)
    return _intent(
        ResourceKind.TRAIL_BUCKET,
        LogicalName.TRAIL_BUCKET,
        {
            "bucket_name": bucket_name,
            "sse_algorithm": "aws:kms",
            "kms_master_key_id": _key_reference(config),
            "bucket_key_enabled": True,
            "block_public_access": True,
            "tags": resource_tags(config, name=bucket_name, resource_type="cloudtrail-bucket"),
        },
    )


def plan_trail_bucket_policy(config: Config, context: ProviderContext) -> Optional[ResourceIntent]:
    logging_spec = config.logging_spec
    if logging_spec.mode != LOGGING_CREATE_NEW:
        return None
    bucket_name = str(logging_spec.cloudtrail_bucket_name)
    return _intent(
        ResourceKind.TRAIL_BUCKET_POLICY,
        LogicalName.TRAIL_BUCKET_POLICY,
        {
            "bucket": Ref(LogicalName.TRAIL_BUCKET, "name"),
            "policy_document": policies.trail_bucket_policy(
                context,
                bucket_name=bucket_name,
                trail_arn=policies.trail_arn(context, _trail_name(config)),
            ),
            "tags": resource_tags(config, name=f"{bucket_name}-policy", resource_type="cloudtrail-bucket-policy"),
        },
    )


def plan_trail(config: Config) -> Optional[ResourceIntent]:
    logging_spec = config.logging_spec
    if not logging_spec.enabled:
        return None
    trail_name = _trail_name(config)
    depends_on = [LogicalName.VOLUME]
    if logging_spec.mode == LOGGING_CREATE_NEW:
        depends_on.append(LogicalName.TRAIL_BUCKET_POLICY)
    return _intent(
        ResourceKind.TRAIL,
        LogicalName.TRAIL,
        {
            "trail_name": trail_name,
            "s3_bucket_name": str(logging_spec.cloudtrail_bucket_name),
            "cloud_watch_logs_log_group_arn": Ref(LogicalName.LOG_GROUP, "arn"),
            "cloud_watch_logs_role_arn": Ref(LogicalName.TRAIL_LOGS_ROLE, "arn"),
            "is_logging": True,
            "is_multi_region_trail": False,
            "include_global_service_events": False,
            "enable_log_file_validation": True,
            "event_selectors": [
                {
                    "read_write_type": "All",
                    "include_management_events": False,
                    "data_resources": [
                        {"type": "AWS::EC2::Volume", "values": [Ref(LogicalName.VOLUME, "arn")]},
                        {"type": "AWS::EC2::Snapshot", "values": [Ref(LogicalName.VOLUME, "arn", "/*")]},
                    ],
                }
            ],
            "tags": resource_tags(config, name=trail_name, resource_type="cloudtrail"),
        },
        depends_on=depends_on,
    )


def plan_volume(config: Config) -> ResourceIntent:
    spec = config.volume_spec
    fields: Dict[str, Any] = {
        "availability_zone": spec.availability_zone,
        "size": spec.size,
        "volume_type": spec.volume_type,
        "encrypted": True,
        "kms_key_id": _key_reference(config),
        "final_snapshot": spec.final_snapshot,
    }
    if spec.volume_type in VOLUME_TYPES_WITH_IOPS and spec.iops is not None:
        fields["iops"] = spec.iops
    if spec.volume_type in VOLUME_TYPES_WITH_THROUGHPUT and spec.throughput is not None:
        fields["throughput"] = spec.throughput
    fields["tags"] = resource_tags(config, name=base_name(config), resource_type="ebs-volume")
    return _intent(ResourceKind.VOLUME, LogicalName.VOLUME, fields)


def plan_access_policy(config: Config, context: ProviderContext) -> Optional[ResourceIntent]:
    if not config.volume_spec.create_access_policy:
        return None
    name = base_name(config)
    policy_name = f"{name}{ACCESS_POLICY_SUFFIX}"
    return _intent(
        ResourceKind.ACCESS_POLICY,
        LogicalName.ACCESS_POLICY,
        {
            "managed_policy_name": policy_name,
            "description": f"Access policy for EBS volume {name}",
            "policy_document": policies.volume_access_policy(
                context,
                volume_arn=Ref(LogicalName.VOLUME, "arn"),
                name_tag=name,
            ),
            "tags": resource_tags(config, name=policy_name, resource_type="iam-policy"),
        },
    )


def plan_initial_snapshot(config: Config) -> Optional[ResourceIntent]:
    if not config.volume_spec.create_initial_snapshot:
        return None
    name = base_name(config)
    return _intent(
        ResourceKind.INITIAL_SNAPSHOT,
        LogicalName.INITIAL_SNAPSHOT,
        {
            "volume_id": Ref(LogicalName.VOLUME, "id"),
            "description": f"Initial snapshot of {name}",
            "tags": resource_tags(config, name=f"{name}-initial-snapshot", resource_type="ebs-snapshot"),
        },
        depends_on=[LogicalName.VOLUME],
    )


def plan_dlm_role(config: Config) -> Optional[ResourceIntent]:
    if not config.volume_spec.snapshot_policy_enabled:
        return None
    role_name = f"{base_name(config)}{DLM_ROLE_SUFFIX}"
    return _intent(
        ResourceKind.IAM_ROLE,
        LogicalName.DLM_ROLE,
        {
            "role_name": role_name,
            "description": f"Data Lifecycle Manager role for {base_name(config)}",
            "assume_role_policy_document": policies.dlm_trust_policy(),
            "tags": resource_tags(config, name=role_name, resource_type="iam-role"),
        },
    )


def plan_dlm_role_policy(config: Config, context: ProviderContext) -> Optional[ResourceIntent]:
    if not config.volume_spec.snapshot_policy_enabled:
        return None
    policy_name = f"{base_name(config)}{DLM_POLICY_SUFFIX}"
    return _intent(
        ResourceKind.DLM_ROLE_POLICY,
        LogicalName.DLM_ROLE_POLICY,
        {
            "policy_name": policy_name,
            "roles": [Ref(LogicalName.DLM_ROLE, "name")],
            "policy_document": policies.dlm_role_policy(context),
            "tags": resource_tags(config, name=policy_name, resource_type="iam-role-policy"),
        },
    )


def plan_lifecycle_policy(config: Config) -> Optional[ResourceIntent]:
    spec = config.volume_spec
    if not spec.snapshot_policy_enabled:
        return None
    name = base_name(config)
    schedule = spec.snapshot_schedule
    return _intent(
        ResourceKind.LIFECYCLE_POLICY,
        LogicalName.LIFECYCLE_POLICY,
        {
            "description": f"Snapshot lifecycle for {name}",
            "execution_role_arn": Ref(LogicalName.DLM_ROLE, "arn"),
            "state": "ENABLED",
            "policy_details": {
                "policy_type": "EBS_SNAPSHOT_MANAGEMENT",
                "resource_types": ["VOLUME"],
                "target_tags": {"Name": name},
                "schedules": [
                    {
                        "name": f"{name}-schedule",
                        "create_rule": {
                            "interval": schedule.interval,
                            "interval_unit": schedule.interval_unit,
                            "times": list(schedule.times),
                        },
                        "retain_rule": {"count": schedule.retain_count},
                        "copy_tags": True,
                        "tags_to_add": {"SnapshotCreator": "DLM"},
                    }
                ],
            },
            "tags": resource_tags(config, name=f"{name}-lifecycle-policy", resource_type="dlm-policy"),
        },
        depends_on=[LogicalName.DLM_ROLE_POLICY],
    )


def check_invariants(resource_plan: ResourcePlan) -> None:
    """Raise ``PlanningInvariantViolation`` when the graph is inconsistent."""
    volume = resource_plan.volume
    if volume is None:
        raise PlanningInvariantViolation("plan has no volume intent")
    if volume.fields.get("encrypted") is not True:
        raise PlanningInvariantViolation("volume intent is not encrypted")
    if not volume.fields.get("kms_key_id"):
        raise PlanningInvariantViolation("volume intent is not bound to a KMS key")

    seen: set[str] = set()
    for intent in resource_plan.intents:
        if intent.logical_name in seen:
            raise PlanningInvariantViolation(f"duplicate logical name '{intent.logical_name}'")
        missing = (intent.depends_on | intent.references) - seen
        if missing:
            raise PlanningInvariantViolation(
                f"intent '{intent.logical_name}' depends on unplanned or later intents: {sorted(missing)}"
            )
        seen.add(intent.logical_name)


def plan(config: Config, context: ProviderContext) -> ResourcePlan:
    """Derive the ordered intent graph for a validated config."""
    resource_plan = ResourcePlan(
        base_name=base_name(config),
        kms_key=plan_kms_key(config, context),
        kms_alias=plan_kms_alias(config),
        log_group=plan_log_group(config),
        trail_logs_role=plan_trail_logs_role(config, context),
        trail_bucket=plan_trail_bucket(config),
        trail_bucket_policy=plan_trail_bucket_policy(config, context),
        volume=plan_volume(config),
        trail=plan_trail(config),
        access_policy=plan_access_policy(config, context),
        initial_snapshot=plan_initial_snapshot(config),
        dlm_role=plan_dlm_role(config),
        dlm_role_policy=plan_dlm_role_policy(config, context),
        lifecycle_policy=plan_lifecycle_policy(config),
    )
    check_invariants(resource_plan)
    logger.debug(
        f"Planned {len(resource_plan)} intent(s) for {resource_plan.base_name}",
        extra={"intent_count": len(resource_plan)},
    )
    return resource_plan
