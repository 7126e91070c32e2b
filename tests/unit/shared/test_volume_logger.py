import json
import logging

from encrypted_volume.utils.logger import _JsonFormatter, get_logger, new_run_id


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("encrypted_volume.test", logging.INFO, __file__, 1, "planned %d", (3,), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json_with_extras(monkeypatch) -> None:
    """
    Given: run_id, logical_name, intent_count가 포함된 레코드
    When: JSON 포매터로 포맷
    Then: 해당 키와 메시지가 JSON으로 출력된다
    """
    monkeypatch.setenv("ENVIRONMENT", "dev")

    payload = json.loads(_JsonFormatter().format(_record(run_id="r1", logical_name="volume", intent_count=3)))

    assert payload["level"] == "INFO"
    assert payload["message"] == "planned 3"
    assert payload["environment"] == "dev"
    assert payload["run_id"] == "r1"
    assert payload["logical_name"] == "volume"
    assert payload["intent_count"] == 3


def test_formatter_omits_absent_fields(monkeypatch) -> None:
    monkeypatch.delenv("ENVIRONMENT", raising=False)

    payload = json.loads(_JsonFormatter().format(_record()))

    assert "run_id" not in payload
    assert "environment" not in payload
    assert "violation_count" not in payload


def test_get_logger_adapter_merges_extras() -> None:
    """
    Given: run_id가 설정된 로거
    When: 호출별 extra와 함께 process 호출
    Then: 두 extra가 병합된다
    """
    log = get_logger(__name__, run_id="abc")

    _, kwargs = log.process("hello", {"extra": {"logical_name": "volume"}})

    assert kwargs["extra"]["run_id"] == "abc"
    assert kwargs["extra"]["logical_name"] == "volume"
    log.info("hello", extra={"intent_count": 1})


def test_get_logger_honors_log_level(monkeypatch) -> None:
    monkeypatch.setenv("LOG_LEVEL", "debug")
    log = get_logger("encrypted_volume.level_test")
    assert log.logger.level == logging.DEBUG


def test_new_run_id_is_unique() -> None:
    assert new_run_id() != new_run_id()
