import pytest

from encrypted_volume.config import validate
from encrypted_volume.config.validation import collect_violations
from encrypted_volume.errors import ConfigValidationError, EncryptedVolumeError
from tests.fixtures.volume_builders import build_volume_input


def _rejection(raw) -> ConfigValidationError:
    with pytest.raises(ConfigValidationError) as excinfo:
        validate(raw)
    return excinfo.value


def test_minimal_input_applies_defaults() -> None:
    """
    Given: 필수 필드만 포함된 입력
    When: validate 호출
    Then: KMS 생성, 로깅 비활성, 기본 스냅샷 스케줄이 적용된다
    """
    raw = {
        "volumeName": "data",
        "tags": {"Environment": "dev", "Owner": "team"},
        "volumeSpec": {"availabilityZone": "us-east-1a", "size": 20, "volumeType": "gp2"},
    }

    config = validate(raw)

    assert config.prefix == ""
    assert config.base_name == "data"
    assert config.kms_spec.create is True
    assert config.kms_spec.deletion_window_days == 7
    assert config.logging_spec.mode == "disabled"
    assert config.logging_spec.enabled is False
    assert config.volume_spec.final_snapshot is True
    assert config.volume_spec.snapshot_schedule.times == ("03:00",)
    assert config.volume_spec.snapshot_schedule.retain_count == 7


def test_prefix_is_joined_into_base_name() -> None:
    config = validate(build_volume_input(prefix="dev"))
    assert config.base_name == "dev-data"


@pytest.mark.parametrize("volume_type", [" GP3 ", "GP3", "gp3 "])
def test_volume_type_must_match_exactly(volume_type) -> None:
    """
    Given: 대소문자나 공백이 다른 볼륨 타입
    When: validate 호출
    Then: 정규화 없이 volume_type 위반으로 거부된다
    """
    error = _rejection(build_volume_input(volume_type=volume_type))
    assert error.rules == ["volume_type"]


def test_validated_config_is_immutable() -> None:
    """
    Given: 검증된 Config
    When: 필드 재할당 시도
    Then: pydantic frozen 모델이 변경을 거부한다
    """
    config = validate(build_volume_input())
    with pytest.raises(Exception):
        config.volume_name = "other"  # type: ignore[misc]


def test_validated_tags_are_read_only() -> None:
    """
    Given: 검증된 Config
    When: tags 매핑 항목 추가 또는 삭제 시도
    Then: 읽기 전용 매핑이므로 거부되고 원래 태그가 유지된다
    """
    raw = build_volume_input()
    config = validate(raw)

    with pytest.raises(TypeError):
        config.tags["Owner"] = "someone-else"  # type: ignore[index]
    with pytest.raises(AttributeError):
        config.tags.pop("Environment")  # type: ignore[attr-defined]

    raw["tags"]["Owner"] = "changed-after-validation"
    assert dict(config.tags) == {"Environment": "prod", "Owner": "team"}


@pytest.mark.parametrize(
    "overrides, field, rule",
    [
        ({"prefix": "-bad"}, "prefix", "prefix_format"),
        ({"prefix": "Dev"}, "prefix", "prefix_format"),
        ({"volume_name": "-data"}, "volumeName", "volume_name_format"),
        ({"volume_name": "a" * 64}, "volumeName", "name_length"),
        ({"tags": {"Owner": "team"}}, "tags", "required_tag"),
        ({"size": 0}, "volumeSpec.size", "size_range"),
        ({"size": 65537}, "volumeSpec.size", "size_range"),
        ({"volume_type": "standard", "iops": None, "throughput": None}, "volumeSpec.volumeType", "volume_type"),
        ({"throughput": 2000}, "volumeSpec.throughput", "throughput_range"),
        ({"throughput": 100}, "volumeSpec.throughput", "throughput_range"),
        ({"volume_type": "io1", "iops": None}, "volumeSpec.iops", "iops_required"),
        ({"volume_type": "gp3", "iops": None}, "volumeSpec.iops", "iops_required"),
        ({"iops": 2000}, "volumeSpec.iops", "iops_range"),
        ({"kms_overrides": {"deletionWindowDays": 3}}, "kmsSpec.deletionWindowDays", "deletion_window_range"),
        ({"kms_overrides": {"deletionWindowDays": 31}}, "kmsSpec.deletionWindowDays", "deletion_window_range"),
        ({"kms_create": False, "key_arn": None}, "kmsSpec.keyArn", "key_arn_required"),
        ({"kms_create": False, "key_arn": "   "}, "kmsSpec.keyArn", "key_arn_required"),
        ({"logging_mode": "sometimes"}, "loggingSpec.mode", "logging_mode"),
        (
            {"logging_mode": "create_new", "cloudtrail_bucket_name": None},
            "loggingSpec.cloudtrailBucketName",
            "cloudtrail_bucket_required",
        ),
        (
            {"logging_mode": "use_existing", "cloudtrail_bucket_name": ""},
            "loggingSpec.cloudtrailBucketName",
            "cloudtrail_bucket_required",
        ),
        ({"logging_overrides": {"retentionDays": 45}}, "loggingSpec.retentionDays", "retention_days"),
    ],
)
def test_each_rule_rejects_independently(overrides, field, rule) -> None:
    """
    Given: 규칙 하나만 위반하는 입력
    When: validate 호출
    Then: 해당 필드와 규칙만 보고된다
    """
    error = _rejection(build_volume_input(**overrides))

    assert [(v.field, v.rule) for v in error.violations] == [(field, rule)]


@pytest.mark.parametrize(
    "schedule, field",
    [
        ({"intervalUnit": "DAYS"}, "volumeSpec.snapshotSchedule.intervalUnit"),
        ({"interval": 5}, "volumeSpec.snapshotSchedule.interval"),
        ({"times": ["03:00", "15:00"]}, "volumeSpec.snapshotSchedule.times"),
        ({"times": ["25:00"]}, "volumeSpec.snapshotSchedule.times"),
        ({"retainCount": 0}, "volumeSpec.snapshotSchedule.retainCount"),
    ],
)
def test_snapshot_schedule_rules(schedule, field) -> None:
    error = _rejection(build_volume_input(volume_overrides={"snapshotSchedule": schedule}))
    assert error.fields == [field]


def test_multiple_violations_are_reported_together() -> None:
    """
    Given: size=0, throughput=2000, Owner 태그 누락, deletionWindowDays=3
    When: validate 호출
    Then: 네 개의 위반이 하나의 오류로 함께 보고된다
    """
    raw = build_volume_input(
        size=0,
        throughput=2000,
        tags={"Environment": "prod"},
        kms_overrides={"deletionWindowDays": 3},
    )

    error = _rejection(raw)

    assert set(error.fields) == {
        "volumeSpec.size",
        "volumeSpec.throughput",
        "tags",
        "kmsSpec.deletionWindowDays",
    }
    assert len(error.violations) == 4
    assert isinstance(error, EncryptedVolumeError)
    assert "4 configuration violation(s)" in str(error)


def test_missing_both_required_tags_reports_each_key() -> None:
    error = _rejection(build_volume_input(tags={}))
    messages = [v.message for v in error.violations]
    assert any("Environment" in m for m in messages)
    assert any("Owner" in m for m in messages)


def test_prefix_counts_toward_name_length() -> None:
    """
    Given: 단독으로는 63자 이내지만 접두어와 결합 시 초과하는 이름
    When: validate 호출
    Then: name_length 위반
    """
    error = _rejection(build_volume_input(prefix="prod", volume_name="v" * 60))
    assert error.rules == ["name_length"]


def test_throughput_ignored_for_non_gp3_volumes() -> None:
    config = validate(build_volume_input(volume_type="io2", iops=20000, throughput=5000))
    assert config.volume_spec.throughput == 5000


def test_deletion_window_not_checked_for_supplied_key() -> None:
    config = validate(build_volume_input(kms_create=False, kms_overrides={"deletionWindowDays": 1}))
    assert config.kms_spec.key_arn is not None


def test_structural_errors_reported_with_rule_checks_on_other_sections() -> None:
    """
    Given: size가 정수가 아니고 알 수 없는 키가 있으며 필수 태그가 모두 빠진 입력
    When: validate 호출
    Then: 구조 위반과 함께 파싱된 tags 섹션의 규칙 위반도 보고된다
    """
    raw = build_volume_input(size="large", tags={})
    raw["unexpected"] = True

    error = _rejection(raw)

    assert "volumeSpec.size" in error.fields
    assert "unexpected" in error.fields
    required = [v for v in error.violations if v.rule == "required_tag"]
    assert [v.field for v in required] == ["tags", "tags"]
    assert any(rule.startswith("structure:") for rule in error.rules)


def test_rules_on_structurally_broken_section_are_skipped() -> None:
    """
    Given: size가 문자열이고 Owner 태그 누락, prefix 형식 오류
    When: validate 호출
    Then: volumeSpec 규칙은 건너뛰고 tags와 prefix 규칙 위반은 함께 보고된다
    """
    raw = build_volume_input(size="large", tags={"Environment": "prod"}, prefix="-bad", throughput=5000)

    error = _rejection(raw)

    assert set(error.fields) == {"volumeSpec.size", "tags", "prefix"}
    assert "throughput_range" not in error.rules
    assert "prefix_format" in error.rules


def test_missing_volume_spec_is_structural() -> None:
    raw = build_volume_input()
    del raw["volumeSpec"]
    error = _rejection(raw)
    assert error.fields == ["volumeSpec"]


def test_collect_violations_returns_empty_for_valid_config() -> None:
    config = validate(build_volume_input())
    assert collect_violations(config) == []
