#!/usr/bin/env python3
"""
Encrypted Volume CDK App
Encrypted EBS volume with optional KMS key, audit logging, access policy and snapshot lifecycle.
"""

import aws_cdk as cdk

from encrypted_volume.config.environments import get_environment_config
from encrypted_volume.stacks import EncryptedVolumeStack

app = cdk.App()

# Get environment configuration
environment = app.node.try_get_context("environment") or "dev"
config = get_environment_config(environment)

# CDK environment (account/region)
cdk_env = cdk.Environment(account=config.get("account_id"), region=config.get("region", "ap-northeast-2"))

volume_stack = EncryptedVolumeStack(
    app,
    f"EncryptedVolume-{environment}",
    environment=environment,
    config=config,
    env=cdk_env,
)

# Stack-level tags; per-resource tags come from the planner
cdk.Tags.of(volume_stack).add("ManagedBy", "CDK")

app.synth()
