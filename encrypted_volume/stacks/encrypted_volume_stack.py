"""Stack provisioning one encrypted EBS volume and its supporting resources."""

from aws_cdk import CfnOutput, Stack
from constructs import Construct

from encrypted_volume.backends.cdk import CdkBackend, provider_context_for_stack
from encrypted_volume.config.types import EnvironmentConfig
from encrypted_volume.outputs import NOT_CREATED, PENDING, OutputSet
from encrypted_volume.provisioner import provision

OUTPUT_DESCRIPTIONS = {
    "volume_id": "EBS volume ID",
    "volume_arn": "EBS volume ARN",
    "volume_size": "EBS volume size in GiB",
    "volume_type": "EBS volume type",
    "volume_encrypted": "Whether the EBS volume is encrypted",
    "availability_zone": "Availability zone of the EBS volume",
    "kms_key_arn": "KMS key ARN used for volume encryption",
    "kms_key_id": "KMS key ID (created keys only)",
    "kms_alias_name": "KMS key alias (created keys only)",
    "log_group_arn": "CloudWatch log group ARN",
    "cloudtrail_arn": "CloudTrail trail ARN",
    "access_policy_arn": "IAM access policy ARN",
    "initial_snapshot_id": "Initial EBS snapshot ID",
    "lifecycle_policy_id": "Data Lifecycle Manager policy ID",
    "dlm_role_arn": "Data Lifecycle Manager execution role ARN",
}


def render_output(value) -> str:
    if value is NOT_CREATED:
        return "not-created"
    if value is PENDING:
        return "pending"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class EncryptedVolumeStack(Stack):
    """Encrypted EBS volume with optional KMS, audit logging, access policy and snapshot lifecycle."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        environment: str,
        config: EnvironmentConfig,
        **kwargs,
    ) -> None:
        super().__init__(scope, construct_id, **kwargs)

        self.env_name = environment
        self.config: EnvironmentConfig = config

        self.backend = CdkBackend(self)
        self.volume_outputs: OutputSet = provision(
            self.config["volume"],
            backend=self.backend,
            context=provider_context_for_stack(self),
        )

        self._create_outputs()

    def _create_outputs(self) -> None:
        """Publish every output, including explicit markers for resources that were not created."""
        for name, description in OUTPUT_DESCRIPTIONS.items():
            output_id = "".join(part.capitalize() for part in name.split("_"))
            CfnOutput(
                self,
                output_id,
                value=render_output(getattr(self.volume_outputs, name)),
                description=description,
            )
