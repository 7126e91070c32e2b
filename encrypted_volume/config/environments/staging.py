"""Staging environment configuration."""

import os

staging_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "volume": {
        "prefix": "staging",
        "volumeName": "app-data",
        "tags": {
            "Environment": "staging",
            "Owner": "PlatformTeam",
            "CostCenter": "Engineering",
        },
        "volumeSpec": {
            "availabilityZone": "ap-northeast-2a",
            "size": 100,
            "volumeType": "gp3",
            "iops": 3000,
            "throughput": 250,
        },
        "kmsSpec": {
            "create": True,
            "deletionWindowDays": 14,
        },
        "loggingSpec": {
            "mode": "create_new",
            "cloudtrailBucketName": "staging-app-data-ebs-audit",
            "retentionDays": 30,
        },
    },
}
