import pytest
from aws_cdk import App, Stack
from aws_cdk.assertions import Template

from encrypted_volume.backends.cdk import CdkBackend, cfn_tags, construct_id
from encrypted_volume.errors import BackendError
from encrypted_volume.planning.intents import LogicalName, Ref, ResourceIntent, ResourceKind


def _alias(target) -> ResourceIntent:
    return ResourceIntent(
        kind=ResourceKind.KMS_ALIAS,
        logical_name=LogicalName.KMS_ALIAS,
        fields={"alias_name": "alias/data-key", "target_key_id": target},
    )


def test_unresolved_reference_names_the_owning_intent():
    """
    Given: 아직 실현되지 않은 키를 참조하는 별칭 의도
    When: CdkBackend.submit 호출
    Then: BackendError 가 별칭의 논리 이름을 보고한다
    """
    backend = CdkBackend(Stack(App(), "S"))

    with pytest.raises(BackendError) as excinfo:
        backend.submit([_alias(Ref(LogicalName.KMS_KEY, "key_id"))])

    assert excinfo.value.logical_name == LogicalName.KMS_ALIAS
    assert "kmsKey.key_id" in excinfo.value.reason


def test_realizer_errors_are_wrapped_as_backend_error():
    backend = CdkBackend(Stack(App(), "S"))
    broken = ResourceIntent(kind=ResourceKind.VOLUME, logical_name=LogicalName.VOLUME, fields={"size": 1})

    with pytest.raises(BackendError) as excinfo:
        backend.submit([broken])

    assert excinfo.value.logical_name == LogicalName.VOLUME


def test_literal_fields_pass_through_and_attributes_are_reported():
    stack = Stack(App(), "S")
    backend = CdkBackend(stack)

    result = backend.submit([_alias("1234abcd-12ab-34cd-56ef-1234567890ab")])

    assert result.is_realized(LogicalName.KMS_ALIAS)
    assert result.attributes(LogicalName.KMS_ALIAS)["name"] == "alias/data-key"
    Template.from_stack(stack).has_resource_properties(
        "AWS::KMS::Alias", {"TargetKeyId": "1234abcd-12ab-34cd-56ef-1234567890ab"}
    )


def test_cfn_tags_are_sorted_by_key():
    tags = cfn_tags({"b": "2", "a": "1"})
    assert [(t.key, t.value) for t in tags] == [("a", "1"), ("b", "2")]


def test_construct_id_capitalizes_logical_name():
    assert construct_id("trailBucketPolicy") == "TrailBucketPolicy"
