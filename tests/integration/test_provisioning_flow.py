import pytest

from encrypted_volume import NOT_CREATED, PENDING, provision
from encrypted_volume.errors import BackendError, ConfigValidationError
from encrypted_volume.planning import LogicalName
from tests.fixtures.backends import RejectingBackend
from tests.fixtures.volume_builders import EXISTING_KEY_ARN, build_volume_input


def test_provision_submits_plan_in_dependency_order(fake_backend, provider_context) -> None:
    """
    Given: create_new 로깅을 포함한 유효한 입력
    When: provision 호출
    Then: 백엔드는 한 번 호출되고 의존성이 항상 먼저 제출된다
    """
    outputs = provision(
        build_volume_input(logging_mode="create_new"),
        backend=fake_backend,
        context=provider_context,
    )

    assert len(fake_backend.submissions) == 1
    submitted = fake_backend.submissions[0]
    seen = set()
    for intent in submitted:
        assert intent.depends_on <= seen
        seen.add(intent.logical_name)
    assert outputs.cloudtrail_arn.startswith("arn:aws:fake:us-east-1:123456789012:trail/")
    assert outputs.kms_alias_name == "alias/data-key"
    assert outputs.volume_encrypted is True
    assert outputs.pending == []


def test_invalid_input_never_reaches_backend(fake_backend, provider_context) -> None:
    """
    Given: 규칙 위반 입력
    When: provision 호출
    Then: ConfigValidationError 가 발생하고 백엔드는 호출되지 않는다
    """
    with pytest.raises(ConfigValidationError):
        provision(build_volume_input(size=0), backend=fake_backend, context=provider_context)

    assert fake_backend.submissions == []


def test_pending_resources_are_reported_without_error(make_backend, provider_context) -> None:
    backend = make_backend(pending={LogicalName.VOLUME})

    outputs = provision(build_volume_input(), backend=backend, context=provider_context)

    assert outputs.volume_id is PENDING
    assert outputs.kms_key_arn.startswith("arn:aws:fake:")
    assert "volume_id" in outputs.pending


def test_reported_failure_raises_backend_error_with_partial_outputs(make_backend, provider_context) -> None:
    """
    Given: 접근 정책 생성에 실패하는 백엔드
    When: provision 호출
    Then: BackendError 가 실패한 논리 이름과 부분 출력을 담는다
    """
    backend = make_backend(failed={LogicalName.ACCESS_POLICY: "AccessDenied"})

    with pytest.raises(BackendError) as excinfo:
        provision(build_volume_input(), backend=backend, context=provider_context)

    error = excinfo.value
    assert error.logical_name == LogicalName.ACCESS_POLICY
    assert error.reason == "AccessDenied"
    assert error.outputs.access_policy_arn is PENDING
    assert error.outputs.volume_id.startswith("volume-")


def test_backend_rejection_propagates(provider_context) -> None:
    with pytest.raises(BackendError, match="kmsKey"):
        provision(build_volume_input(), backend=RejectingBackend(LogicalName.KMS_KEY), context=provider_context)


def test_supplied_key_flow_outputs(fake_backend, provider_context) -> None:
    outputs = provision(build_volume_input(kms_create=False), backend=fake_backend, context=provider_context)

    assert outputs.kms_key_arn == EXISTING_KEY_ARN
    assert outputs.kms_key_id is NOT_CREATED
    assert LogicalName.KMS_KEY not in [i.logical_name for i in fake_backend.submissions[0]]
