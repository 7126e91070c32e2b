"""Production environment configuration."""

import os

prod_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "volume": {
        "prefix": "prod",
        "volumeName": "app-data",
        "tags": {
            "Environment": "prod",
            "Owner": "PlatformTeam",
            "CostCenter": "Engineering",
        },
        "volumeSpec": {
            "availabilityZone": "ap-northeast-2a",
            "size": 500,
            "volumeType": "io2",
            "iops": 10000,
            "snapshotSchedule": {
                "interval": 12,
                "intervalUnit": "HOURS",
                "times": ["03:00"],
                "retainCount": 14,
            },
        },
        "kmsSpec": {
            "create": True,
            "deletionWindowDays": 30,
            "enableKeyRotation": True,
        },
        # Organization trail bucket is managed outside this stack
        "loggingSpec": {
            "mode": "use_existing",
            "cloudtrailBucketName": "org-cloudtrail-audit-logs",
            "retentionDays": 365,
        },
    },
}
