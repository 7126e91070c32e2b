"""Explicit provider context (account, region, partition) threaded into planning."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import boto3

from encrypted_volume.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderContext:
    account_id: str
    region: str
    partition: str = "aws"

    @property
    def dns_suffix(self) -> str:
        return "amazonaws.com.cn" if self.partition == "aws-cn" else "amazonaws.com"

    def service_endpoint(self, service: str) -> str:
        """Return the regional endpoint host for a service, e.g. ``ec2.us-east-1.amazonaws.com``."""
        return f"{service}.{self.region}.{self.dns_suffix}"


def resolve_provider_context(session: Optional[Any] = None) -> ProviderContext:
    """Resolve account, region and partition from AWS credentials.

    Uses STS ``GetCallerIdentity`` on the given boto3 session (or a default
    one). The region comes from the session configuration.
    """
    session = session or boto3.session.Session()
    region = session.region_name
    if not region:
        raise ValueError("AWS region is not configured; pass --region or set AWS_REGION")

    identity = session.client("sts", region_name=region).get_caller_identity()
    account_id = str(identity["Account"])
    caller_arn = str(identity.get("Arn", ""))
    partition = caller_arn.split(":")[1] if caller_arn.startswith("arn:") else "aws"
    logger.info(f"Resolved provider context for account {account_id} in {region}")
    return ProviderContext(account_id=account_id, region=region, partition=partition)
