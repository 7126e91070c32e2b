import json
import runpy
from pathlib import Path

import pytest

from tests.fixtures.volume_builders import build_volume_input

SCRIPT = Path(__file__).resolve().parents[3] / "scripts" / "validate" / "validate_volume_config.py"


@pytest.fixture
def cli_main():
    return runpy.run_path(str(SCRIPT))["main"]


def test_cli_prints_plan_for_environment_preset(cli_main, capsys) -> None:
    """
    Given: staging 프리셋과 명시적 계정/리전
    When: 검증 CLI 실행
    Then: 종료 코드 0, 계획 JSON 출력
    """
    code = cli_main(["--environment", "staging", "--account-id", "123456789012", "--region", "ap-northeast-2"])

    assert code == 0
    document = json.loads(capsys.readouterr().out)
    assert document["base_name"] == "staging-app-data"
    names = [intent["logical_name"] for intent in document["intents"]]
    assert "trailBucket" in names
    assert "volume" in names


def test_cli_reports_every_violation(cli_main, capsys, tmp_path) -> None:
    """
    Given: 여러 규칙을 위반하는 구성 파일
    When: 검증 CLI 실행
    Then: 종료 코드 1, 모든 위반이 stderr 에 출력
    """
    config_file = tmp_path / "volume.json"
    config_file.write_text(json.dumps(build_volume_input(size=0, tags={"Environment": "dev"})), encoding="utf-8")

    code = cli_main(["--config-file", str(config_file), "--account-id", "1", "--region", "us-east-1"])

    assert code == 1
    err = capsys.readouterr().err
    assert "2 violation(s)" in err
    assert "volumeSpec.size" in err
    assert "required_tag" in err


def test_cli_writes_plan_file(cli_main, tmp_path) -> None:
    out = tmp_path / "plan.json"

    code = cli_main(["-e", "dev", "--account-id", "123456789012", "--region", "us-east-1", "--output-json", str(out)])

    assert code == 0
    assert json.loads(out.read_text(encoding="utf-8"))["base_name"] == "dev-app-data"
