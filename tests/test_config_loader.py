import json
from pathlib import Path

from musebot.config.loader import convert_keys, convert_to_camel, load_config, save_config
from musebot.config.schema import Config


def test_convert_keys_roundtrip() -> None:
    data = {"posting": {"minInterval": 60, "dailyLimit": 2}, "agent": {"autonomousMode": True}}

    converted = convert_keys(data)

    assert converted == {
        "posting": {"min_interval": 60, "daily_limit": 2},
        "agent": {"autonomous_mode": True},
    }
    assert convert_to_camel(converted) == data


def test_load_config_reads_camel_case_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "agent": {"model": "claude-test", "sleepInterval": 3, "maxActionsPerCycle": 2},
        "sandbox": {"root": str(tmp_path / "box")},
        "providers": {"openrouter": {"apiKey": "sk-or"}},
    }))

    config = load_config(path)

    assert config.agent.model == "claude-test"
    assert config.agent.sleep_interval == 3.0
    assert config.agent.max_actions_per_cycle == 2
    assert config.sandbox_path == tmp_path / "box"
    assert config.get_api_key() == "sk-or"
    assert config.get_api_base() == "https://openrouter.ai/api/v1"


def test_invalid_config_falls_back_to_defaults(tmp_path: Path) -> None:
    broken = tmp_path / "broken.json"
    broken.write_text("{oops")
    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"agent": {"maxActionsPerCycle": 0}}))

    assert load_config(broken).agent.max_actions_per_cycle == 1
    assert load_config(invalid).agent.max_actions_per_cycle == 1


def test_missing_config_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "nope.json")

    assert config.posting.enabled is False
    assert config.posting.min_interval == 1800
    assert config.memory.max_active_projects == 2


def test_save_config_writes_camel_case(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "config.json"
    config = Config()
    config.posting.daily_limit = 4

    save_config(config, path)

    data = json.loads(path.read_text())
    assert data["posting"]["dailyLimit"] == 4
    assert load_config(path).posting.daily_limit == 4


def test_env_overrides(monkeypatch) -> None:
    monkeypatch.setenv("MUSEBOT_AGENT__MODEL", "env-model")

    assert Config().agent.model == "env-model"
