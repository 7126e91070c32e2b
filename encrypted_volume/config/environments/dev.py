"""Development environment configuration."""

import os

dev_config = {
    "account_id": os.environ.get("CDK_DEFAULT_ACCOUNT"),
    "region": "ap-northeast-2",
    "volume": {
        "prefix": "dev",
        "volumeName": "app-data",
        "tags": {
            "Environment": "dev",
            "Owner": "PlatformTeam",
            "CostCenter": "Engineering",
        },
        "volumeSpec": {
            "availabilityZone": "ap-northeast-2a",
            "size": 20,
            "volumeType": "gp3",
            "iops": 3000,
            "throughput": 125,
            # Scratch data; no snapshot on teardown
            "finalSnapshot": False,
            "createInitialSnapshot": False,
            "snapshotSchedule": {
                "interval": 24,
                "intervalUnit": "HOURS",
                "times": ["03:00"],
                "retainCount": 3,
            },
        },
        "kmsSpec": {
            "create": True,
            "deletionWindowDays": 7,
        },
        "loggingSpec": {
            "mode": "disabled",
            "retentionDays": 14,
        },
    },
}
