from pathlib import Path

import pytest

from descent.config import DEFAULT_SERVICE_URL, BotConfig, ConfigError


def test_token_is_required(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        BotConfig.from_env(environ={}, config_path=tmp_path / "missing.yaml")


def test_defaults_without_config_file(tmp_path: Path) -> None:
    config = BotConfig.from_env(
        environ={"DISCORD_TOKEN": "abc"},
        config_path=tmp_path / "missing.yaml",
    )
    assert config.token == "abc"
    assert config.service_url == DEFAULT_SERVICE_URL
    assert config.guild_id is None
    assert config.error_log_channel_id is None
    assert config.log_level == "INFO"
    assert config.request_timeout == 5.0
    assert config.request_retries == 2


def test_environment_overrides_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "service_url: http://yaml.test\n"
        "guild_id: 1234\n"
        "request_timeout: 2.5\n"
        "log_level: debug\n",
        encoding="utf-8",
    )
    config = BotConfig.from_env(
        environ={
            "DISCORD_TOKEN": "abc",
            "SERVICE_URL": "http://env.test",
            "ERROR_LOG_CHANNEL_ID": "99",
            "REQUEST_RETRIES": "0",
        },
        config_path=path,
    )
    assert config.service_url == "http://env.test"
    assert config.guild_id == 1234
    assert config.error_log_channel_id == 99
    assert config.request_timeout == 2.5
    assert config.request_retries == 0
    assert config.log_level == "DEBUG"


def test_config_path_can_come_from_environment(tmp_path: Path) -> None:
    path = tmp_path / "bot.yaml"
    path.write_text("guild_id: 77\n", encoding="utf-8")
    config = BotConfig.from_env(environ={"DISCORD_TOKEN": "abc", "CONFIG_PATH": str(path)})
    assert config.guild_id == 77


def test_malformed_values_are_rejected(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        BotConfig.from_env(
            environ={"DISCORD_TOKEN": "abc", "GUILD_ID": "not-a-number"},
            config_path=tmp_path / "missing.yaml",
        )


def test_yaml_must_be_a_mapping(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        BotConfig.from_env(environ={"DISCORD_TOKEN": "abc"}, config_path=path)
