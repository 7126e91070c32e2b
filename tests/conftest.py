import os
import sys
from pathlib import Path
from typing import Iterator

import pytest

pytest_plugins = [
    "tests.fixtures.volume_builders",
    "tests.fixtures.backends",
]

# Ensure project root is on sys.path for flexible imports
_repo_root = Path(__file__).resolve().parents[1]
_repo_root_str = str(_repo_root)
if _repo_root_str not in sys.path:
    sys.path.insert(0, _repo_root_str)

from encrypted_volume.context import ProviderContext  # noqa: E402


@pytest.fixture(autouse=True)
def aws_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Ensure default AWS region and dummy credentials for moto/boto3 clients."""
    monkeypatch.setenv("AWS_REGION", os.environ.get("AWS_REGION", "us-east-1"))
    monkeypatch.setenv("AWS_DEFAULT_REGION", os.environ.get("AWS_DEFAULT_REGION", "us-east-1"))
    # Provide dummy credentials so botocore signing doesn't fail under moto
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", os.environ.get("AWS_ACCESS_KEY_ID", "testing"))
    monkeypatch.setenv(
        "AWS_SECRET_ACCESS_KEY",
        os.environ.get("AWS_SECRET_ACCESS_KEY", "testing"),
    )
    monkeypatch.setenv("AWS_SESSION_TOKEN", os.environ.get("AWS_SESSION_TOKEN", "testing"))
    yield


@pytest.fixture
def provider_context() -> ProviderContext:
    """Fixed account/region so planned ARNs are deterministic."""
    return ProviderContext(account_id="123456789012", region="us-east-1")
