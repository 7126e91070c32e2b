"""IAM and KMS policy document helpers used by the planner."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from encrypted_volume.context import ProviderContext
from encrypted_volume.planning.intents import Ref

PolicyValue = Union[str, Ref]

POLICY_VERSION = "2012-10-17"

KEY_USER_ACTIONS = (
    "kms:Encrypt",
    "kms:Decrypt",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:DescribeKey",
    "kms:CreateGrant",
)
LOG_SERVICE_KEY_ACTIONS = (
    "kms:Encrypt*",
    "kms:Decrypt*",
    "kms:ReEncrypt*",
    "kms:GenerateDataKey*",
    "kms:Describe*",
)

UNENCRYPTED_DENY_ACTIONS = ("ec2:AttachVolume", "ec2:CreateVolume", "ec2:ModifyVolume")
VOLUME_ACCESS_ACTIONS = (
    "ec2:AttachVolume",
    "ec2:DetachVolume",
    "ec2:DescribeVolumes",
    "ec2:ModifyVolume",
)
VOLUME_SNAPSHOT_ACTIONS = ("ec2:CreateSnapshot", "ec2:DescribeSnapshots", "ec2:DeleteSnapshot")

# Lifecycle manager execution role: snapshot management only, no volume mutation.
DLM_SNAPSHOT_ACTIONS = (
    "ec2:CreateSnapshot",
    "ec2:CreateSnapshots",
    "ec2:DeleteSnapshot",
    "ec2:DescribeInstances",
    "ec2:DescribeVolumes",
    "ec2:DescribeSnapshots",
)
DLM_TAG_ACTIONS = ("ec2:CreateTags",)
DLM_SERVICE_PRINCIPAL = "dlm.amazonaws.com"
CLOUDTRAIL_SERVICE_PRINCIPAL = "cloudtrail.amazonaws.com"
# CloudTrail writes log files into a bucket whose default encryption is this key.
CLOUDTRAIL_KEY_ACTIONS = ("kms:GenerateDataKey*", "kms:DescribeKey")
CLOUDTRAIL_LOG_DELIVERY_ACTIONS = ("logs:CreateLogStream", "logs:PutLogEvents")


def dedupe(values: Iterable[str]) -> list[str]:
    """Return items without duplicates while preserving order."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        text = str(value or "").strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result


def account_root_arn(context: ProviderContext) -> str:
    return f"arn:{context.partition}:iam::{context.account_id}:root"


def instance_arn_pattern(context: ProviderContext) -> str:
    """Return the wildcard ARN for every EC2 instance in the account and region."""
    return f"arn:{context.partition}:ec2:{context.region}:{context.account_id}:instance/*"


def bucket_arn(bucket_name: str, context: ProviderContext) -> str:
    """Return the ARN for an S3 bucket."""
    bucket = str(bucket_name or "").strip()
    if not bucket:
        raise ValueError("Bucket name must be provided")
    return f"arn:{context.partition}:s3:::{bucket}"


def bucket_objects_arn(bucket_name: str, context: ProviderContext, prefix: Optional[str] = None) -> str:
    """Return an object-level ARN for an S3 bucket with an optional prefix."""
    base_arn = bucket_arn(bucket_name, context)
    if prefix is None or not str(prefix).strip():
        return f"{base_arn}/*"
    normalized = str(prefix).strip().lstrip("/")
    if normalized.endswith("*"):
        return f"{base_arn}/{normalized}"
    return f"{base_arn}/{normalized.rstrip('/')}/*"


def statement(
    *,
    sid: str,
    effect: str = "Allow",
    actions: Sequence[str],
    resources: Sequence[PolicyValue] = ("*",),
    principal: Optional[Mapping[str, Any]] = None,
    conditions: Optional[Mapping[str, Any]] = None,
) -> Dict[str, Any]:
    """Build one IAM policy statement; single-element lists collapse to scalars.

    Pass empty ``resources`` for trust policies, which carry no Resource element.
    """
    result: Dict[str, Any] = {"Sid": sid, "Effect": effect}
    if principal is not None:
        result["Principal"] = dict(principal)
    result["Action"] = actions[0] if len(actions) == 1 else list(actions)
    if resources:
        result["Resource"] = resources[0] if len(resources) == 1 else list(resources)
    if conditions:
        result["Condition"] = dict(conditions)
    return result


def policy_document(statements: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    return {"Version": POLICY_VERSION, "Statement": list(statements)}


def kms_key_policy(
    context: ProviderContext,
    *,
    administrators: Iterable[str],
    users: Iterable[str],
    allow_log_service: bool,
    trail_arn: Optional[str] = None,
) -> Dict[str, Any]:
    """Key policy: root plus administrators get full control, users get EC2-scoped data access.

    ``trail_arn`` is set when the key also encrypts that trail's log bucket.
    """
    admin_principals = dedupe([account_root_arn(context), *sorted(administrators)])
    statements: List[Dict[str, Any]] = [
        statement(
            sid="EnableKeyAdministration",
            actions=["kms:*"],
            principal={"AWS": admin_principals},
        )
    ]
    user_principals = dedupe(sorted(users))
    if user_principals:
        statements.append(
            statement(
                sid="AllowKeyUseViaEC2",
                actions=list(KEY_USER_ACTIONS),
                principal={"AWS": user_principals},
                conditions={"StringEquals": {"kms:ViaService": context.service_endpoint("ec2")}},
            )
        )
    if allow_log_service:
        statements.append(
            statement(
                sid="AllowCloudWatchLogs",
                actions=list(LOG_SERVICE_KEY_ACTIONS),
                principal={"Service": context.service_endpoint("logs")},
            )
        )
    if trail_arn:
        statements.append(
            statement(
                sid="AllowCloudTrailLogFileEncryption",
                actions=list(CLOUDTRAIL_KEY_ACTIONS),
                principal={"Service": CLOUDTRAIL_SERVICE_PRINCIPAL},
                conditions={"StringEquals": {"aws:SourceArn": trail_arn}},
            )
        )
    return policy_document(statements)


def volume_access_policy(context: ProviderContext, *, volume_arn: Ref, name_tag: str) -> Dict[str, Any]:
    """Least-privilege access to one volume, keyed on its ``Name`` tag."""
    tag_condition = {"StringEquals": {"ec2:ResourceTag/Name": name_tag}}
    return policy_document(
        [
            # Encryption is already forced on the volume itself; the deny is kept as a second guard.
            statement(
                sid="DenyUnencryptedVolumeOperations",
                effect="Deny",
                actions=list(UNENCRYPTED_DENY_ACTIONS),
                conditions={"Bool": {"ec2:Encrypted": "false"}},
            ),
            statement(
                sid="AllowVolumeAccess",
                actions=list(VOLUME_ACCESS_ACTIONS),
                resources=[volume_arn, instance_arn_pattern(context)],
                conditions=tag_condition,
            ),
            statement(
                sid="AllowVolumeSnapshots",
                actions=list(VOLUME_SNAPSHOT_ACTIONS),
                conditions=tag_condition,
            ),
        ]
    )


def dlm_trust_policy() -> Dict[str, Any]:
    return policy_document(
        [
            statement(
                sid="AllowLifecycleManagerAssumeRole",
                actions=["sts:AssumeRole"],
                resources=(),
                principal={"Service": DLM_SERVICE_PRINCIPAL},
            )
        ]
    )


def dlm_role_policy(context: ProviderContext) -> Dict[str, Any]:
    return policy_document(
        [
            statement(sid="ManageSnapshots", actions=list(DLM_SNAPSHOT_ACTIONS)),
            statement(
                sid="TagSnapshots",
                actions=list(DLM_TAG_ACTIONS),
                resources=[f"arn:{context.partition}:ec2:*::snapshot/*"],
            ),
        ]
    )


def trail_bucket_policy(context: ProviderContext, *, bucket_name: str, trail_arn: str) -> Dict[str, Any]:
    """Allow CloudTrail to check the bucket ACL and write log files for this account."""
    source_condition = {"StringEquals": {"aws:SourceArn": trail_arn}}
    return policy_document(
        [
            statement(
                sid="AWSCloudTrailAclCheck",
                actions=["s3:GetBucketAcl"],
                resources=[bucket_arn(bucket_name, context)],
                principal={"Service": CLOUDTRAIL_SERVICE_PRINCIPAL},
                conditions=source_condition,
            ),
            statement(
                sid="AWSCloudTrailWrite",
                actions=["s3:PutObject"],
                resources=[bucket_objects_arn(bucket_name, context, f"AWSLogs/{context.account_id}")],
                principal={"Service": CLOUDTRAIL_SERVICE_PRINCIPAL},
                conditions={
                    "StringEquals": {
                        "s3:x-amz-acl": "bucket-owner-full-control",
                        "aws:SourceArn": trail_arn,
                    }
                },
            ),
        ]
    )


def trail_arn(context: ProviderContext, trail_name: str) -> str:
    return f"arn:{context.partition}:cloudtrail:{context.region}:{context.account_id}:trail/{trail_name}"


def log_stream_arn_pattern(context: ProviderContext, log_group_name: str) -> str:
    """Return the wildcard ARN for every stream in a CloudWatch log group."""
    return (
        f"arn:{context.partition}:logs:{context.region}:{context.account_id}"
        f":log-group:{log_group_name}:log-stream:*"
    )


def trail_logs_trust_policy(trail_arn: str) -> Dict[str, Any]:
    return policy_document(
        [
            statement(
                sid="AllowCloudTrailAssumeRole",
                actions=["sts:AssumeRole"],
                resources=(),
                principal={"Service": CLOUDTRAIL_SERVICE_PRINCIPAL},
                conditions={"StringEquals": {"aws:SourceArn": trail_arn}},
            )
        ]
    )


def trail_logs_role_policy(context: ProviderContext, log_group_name: str) -> Dict[str, Any]:
    """Let CloudTrail deliver events into the volume's log group and nothing else."""
    return policy_document(
        [
            statement(
                sid="DeliverTrailEvents",
                actions=list(CLOUDTRAIL_LOG_DELIVERY_ACTIONS),
                resources=[log_stream_arn_pattern(context, log_group_name)],
            )
        ]
    )
