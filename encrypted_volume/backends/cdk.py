"""Backend that realizes intents as AWS CDK L1 constructs inside a stack.

Assigned identifiers are CDK tokens; they resolve to real values when the
synthesized template is deployed.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Sequence, Tuple

from aws_cdk import (
    CfnTag,
    RemovalPolicy,
    Stack,
    aws_cloudtrail as cloudtrail,
    aws_dlm as dlm,
    aws_ec2 as ec2,
    aws_iam as iam,
    aws_kms as kms,
    aws_logs as logs,
    aws_s3 as s3,
    custom_resources as cr,
)
from constructs import Construct

from encrypted_volume.backends.base import BackendResult
from encrypted_volume.context import ProviderContext
from encrypted_volume.errors import BackendError
from encrypted_volume.planning.intents import Ref, ResourceIntent, ResourceKind
from encrypted_volume.utils.logger import get_logger

logger = get_logger(__name__)

SNAPSHOT_SDK_ACTIONS = ["ec2:CreateSnapshot", "ec2:CreateTags", "ec2:DeleteSnapshot"]

Attributes = Dict[str, Any]
Realizer = Callable[[ResourceIntent, Mapping[str, Any]], Tuple[Construct, Attributes]]


def provider_context_for_stack(stack: Stack) -> ProviderContext:
    """Account, region and partition of a stack (tokens for environment-agnostic stacks)."""
    return ProviderContext(account_id=stack.account, region=stack.region, partition=stack.partition)


def cfn_tags(tags: Mapping[str, str]) -> list[CfnTag]:
    return [CfnTag(key=key, value=str(value)) for key, value in sorted(tags.items())]


def construct_id(logical_name: str) -> str:
    return logical_name[:1].upper() + logical_name[1:]


class CdkBackend:
    """Realize each intent as the matching CloudFormation resource."""

    def __init__(self, scope: Construct) -> None:
        self.scope = scope
        self.stack = Stack.of(scope)
        self.constructs: Dict[str, Construct] = {}
        self._attributes: Dict[str, Attributes] = {}
        self._realizers: Dict[ResourceKind, Realizer] = {
            ResourceKind.KMS_KEY: self._kms_key,
            ResourceKind.KMS_ALIAS: self._kms_alias,
            ResourceKind.LOG_GROUP: self._log_group,
            ResourceKind.TRAIL_BUCKET: self._trail_bucket,
            ResourceKind.TRAIL_BUCKET_POLICY: self._trail_bucket_policy,
            ResourceKind.TRAIL: self._trail,
            ResourceKind.VOLUME: self._volume,
            ResourceKind.ACCESS_POLICY: self._access_policy,
            ResourceKind.INITIAL_SNAPSHOT: self._initial_snapshot,
            ResourceKind.IAM_ROLE: self._iam_role,
            ResourceKind.DLM_ROLE_POLICY: self._dlm_role_policy,
            ResourceKind.LIFECYCLE_POLICY: self._lifecycle_policy,
        }

    def submit(self, intents: Sequence[ResourceIntent]) -> BackendResult:
        for intent in intents:
            realizer = self._realizers.get(intent.kind)
            if realizer is None:
                raise BackendError(intent.logical_name, f"unsupported resource kind {intent.kind}")
            fields = self._resolve(intent.logical_name, intent.fields)
            try:
                construct, attributes = realizer(intent, fields)
            except BackendError:
                raise
            except Exception as exc:
                raise BackendError(intent.logical_name, str(exc)) from exc

            for dependency in sorted(intent.depends_on):
                construct.node.add_dependency(self.constructs[dependency])
            self.constructs[intent.logical_name] = construct
            self._attributes[intent.logical_name] = attributes
            logger.debug(
                f"Realized {intent.logical_name} as {intent.kind.value}",
                extra={"logical_name": intent.logical_name},
            )

        return BackendResult(realized=dict(self._attributes))

    def _resolve(self, owner: str, value: Any) -> Any:
        if isinstance(value, Ref):
            attributes = self._attributes.get(value.logical_name)
            if attributes is None or value.attribute not in attributes:
                raise BackendError(owner, f"unresolved reference {value}")
            resolved = attributes[value.attribute]
            return f"{resolved}{value.suffix}" if value.suffix else resolved
        if isinstance(value, Mapping):
            return {key: self._resolve(owner, item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._resolve(owner, item) for item in value]
        return value

    def _kms_key(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        key = kms.CfnKey(
            self.scope,
            construct_id(intent.logical_name),
            description=fields["description"],
            key_usage=fields["key_usage"],
            enable_key_rotation=fields["enable_key_rotation"],
            pending_window_in_days=fields["pending_window_in_days"],
            key_policy=fields["key_policy"],
            tags=cfn_tags(fields["tags"]),
        )
        return key, {"id": key.ref, "key_id": key.attr_key_id, "arn": key.attr_arn}

    def _kms_alias(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        alias = kms.CfnAlias(
            self.scope,
            construct_id(intent.logical_name),
            alias_name=fields["alias_name"],
            target_key_id=fields["target_key_id"],
        )
        return alias, {"id": alias.ref, "name": fields["alias_name"]}

    def _log_group(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        log_group = logs.CfnLogGroup(
            self.scope,
            construct_id(intent.logical_name),
            log_group_name=fields["log_group_name"],
            retention_in_days=fields["retention_in_days"],
            kms_key_id=fields["kms_key_id"],
            tags=cfn_tags(fields["tags"]),
        )
        return log_group, {"id": log_group.ref, "name": log_group.ref, "arn": log_group.attr_arn}

    def _trail_bucket(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        bucket = s3.CfnBucket(
            self.scope,
            construct_id(intent.logical_name),
            bucket_name=fields["bucket_name"],
            bucket_encryption=s3.CfnBucket.BucketEncryptionProperty(
                server_side_encryption_configuration=[
                    s3.CfnBucket.ServerSideEncryptionRuleProperty(
                        server_side_encryption_by_default=s3.CfnBucket.ServerSideEncryptionByDefaultProperty(
                            sse_algorithm=fields["sse_algorithm"],
                            kms_master_key_id=fields.get("kms_master_key_id"),
                        ),
                        bucket_key_enabled=fields.get("bucket_key_enabled"),
                    )
                ]
            ),
            public_access_block_configuration=s3.CfnBucket.PublicAccessBlockConfigurationProperty(
                block_public_acls=fields["block_public_access"],
                block_public_policy=fields["block_public_access"],
                ignore_public_acls=fields["block_public_access"],
                restrict_public_buckets=fields["block_public_access"],
            ),
            tags=cfn_tags(fields["tags"]),
        )
        bucket.apply_removal_policy(RemovalPolicy.RETAIN)
        return bucket, {"id": bucket.ref, "name": bucket.ref, "arn": bucket.attr_arn}

    def _trail_bucket_policy(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        policy = s3.CfnBucketPolicy(
            self.scope,
            construct_id(intent.logical_name),
            bucket=fields["bucket"],
            policy_document=fields["policy_document"],
        )
        return policy, {"id": policy.ref}

    def _trail(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        selectors = [
            cloudtrail.CfnTrail.EventSelectorProperty(
                read_write_type=selector["read_write_type"],
                include_management_events=selector["include_management_events"],
                data_resources=[
                    cloudtrail.CfnTrail.DataResourceProperty(type=resource["type"], values=list(resource["values"]))
                    for resource in selector["data_resources"]
                ],
            )
            for selector in fields["event_selectors"]
        ]
        trail = cloudtrail.CfnTrail(
            self.scope,
            construct_id(intent.logical_name),
            trail_name=fields["trail_name"],
            s3_bucket_name=fields["s3_bucket_name"],
            cloud_watch_logs_log_group_arn=fields.get("cloud_watch_logs_log_group_arn"),
            cloud_watch_logs_role_arn=fields.get("cloud_watch_logs_role_arn"),
            is_logging=fields["is_logging"],
            is_multi_region_trail=fields["is_multi_region_trail"],
            include_global_service_events=fields["include_global_service_events"],
            enable_log_file_validation=fields["enable_log_file_validation"],
            event_selectors=selectors,
            tags=cfn_tags(fields["tags"]),
        )
        return trail, {"id": trail.ref, "name": trail.ref, "arn": trail.attr_arn}

    def _volume(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        volume = ec2.CfnVolume(
            self.scope,
            construct_id(intent.logical_name),
            availability_zone=fields["availability_zone"],
            size=fields["size"],
            volume_type=fields["volume_type"],
            encrypted=fields["encrypted"],
            kms_key_id=fields["kms_key_id"],
            iops=fields.get("iops"),
            throughput=fields.get("throughput"),
            tags=cfn_tags(fields["tags"]),
        )
        volume.apply_removal_policy(RemovalPolicy.SNAPSHOT if fields["final_snapshot"] else RemovalPolicy.DESTROY)
        volume_arn = self.stack.format_arn(service="ec2", resource="volume", resource_name=volume.ref)
        return volume, {"id": volume.ref, "arn": volume_arn}

    def _access_policy(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        policy = iam.CfnManagedPolicy(
            self.scope,
            construct_id(intent.logical_name),
            managed_policy_name=fields["managed_policy_name"],
            description=fields["description"],
            policy_document=fields["policy_document"],
        )
        # Ref of AWS::IAM::ManagedPolicy is the policy ARN.
        return policy, {"id": policy.ref, "arn": policy.ref, "name": fields["managed_policy_name"]}

    def _initial_snapshot(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        tag_list = [{"Key": key, "Value": value} for key, value in sorted(fields["tags"].items())]
        snapshot = cr.AwsCustomResource(
            self.scope,
            construct_id(intent.logical_name),
            on_create=cr.AwsSdkCall(
                service="EC2",
                action="createSnapshot",
                parameters={
                    "VolumeId": fields["volume_id"],
                    "Description": fields["description"],
                    "TagSpecifications": [{"ResourceType": "snapshot", "Tags": tag_list}],
                },
                physical_resource_id=cr.PhysicalResourceId.from_response("SnapshotId"),
            ),
            on_delete=cr.AwsSdkCall(
                service="EC2",
                action="deleteSnapshot",
                parameters={"SnapshotId": cr.PhysicalResourceIdReference()},
            ),
            policy=cr.AwsCustomResourcePolicy.from_statements(
                [iam.PolicyStatement(actions=SNAPSHOT_SDK_ACTIONS, resources=["*"])]
            ),
            install_latest_aws_sdk=False,
        )
        snapshot_id = snapshot.get_response_field("SnapshotId")
        snapshot_arn = self.stack.format_arn(service="ec2", resource="snapshot", resource_name=snapshot_id, account="")
        return snapshot, {"id": snapshot_id, "arn": snapshot_arn}

    def _iam_role(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        inline = [
            iam.CfnRole.PolicyProperty(policy_name=policy["policy_name"], policy_document=policy["policy_document"])
            for policy in fields.get("policies", ())
        ]
        role = iam.CfnRole(
            self.scope,
            construct_id(intent.logical_name),
            role_name=fields["role_name"],
            description=fields["description"],
            assume_role_policy_document=fields["assume_role_policy_document"],
            policies=inline or None,
            tags=cfn_tags(fields["tags"]),
        )
        return role, {"id": role.ref, "name": role.ref, "arn": role.attr_arn}

    def _dlm_role_policy(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        policy = iam.CfnPolicy(
            self.scope,
            construct_id(intent.logical_name),
            policy_name=fields["policy_name"],
            roles=list(fields["roles"]),
            policy_document=fields["policy_document"],
        )
        return policy, {"id": policy.ref}

    def _lifecycle_policy(self, intent: ResourceIntent, fields: Mapping[str, Any]) -> tuple[Construct, Attributes]:
        details = fields["policy_details"]
        schedules = [
            dlm.CfnLifecyclePolicy.ScheduleProperty(
                name=schedule["name"],
                create_rule=dlm.CfnLifecyclePolicy.CreateRuleProperty(
                    interval=schedule["create_rule"]["interval"],
                    interval_unit=schedule["create_rule"]["interval_unit"],
                    times=list(schedule["create_rule"]["times"]),
                ),
                retain_rule=dlm.CfnLifecyclePolicy.RetainRuleProperty(count=schedule["retain_rule"]["count"]),
                copy_tags=schedule["copy_tags"],
                tags_to_add=cfn_tags(schedule["tags_to_add"]),
            )
            for schedule in details["schedules"]
        ]
        policy = dlm.CfnLifecyclePolicy(
            self.scope,
            construct_id(intent.logical_name),
            description=fields["description"],
            execution_role_arn=fields["execution_role_arn"],
            state=fields["state"],
            policy_details=dlm.CfnLifecyclePolicy.PolicyDetailsProperty(
                policy_type=details["policy_type"],
                resource_types=list(details["resource_types"]),
                target_tags=cfn_tags(details["target_tags"]),
                schedules=schedules,
            ),
            tags=cfn_tags(fields["tags"]),
        )
        return policy, {"id": policy.ref, "arn": policy.attr_arn}
