"""Tests for rankwatch.config."""

import json
from pathlib import Path

import pytest

from rankwatch.config import API_KEY_ENV, CONFIG_ENV, Config, ConfigError, OneBotEndpoint, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    monkeypatch.delenv(CONFIG_ENV, raising=False)


def test_defaults():
    config = Config.from_dict({"apiKey": "abc"})

    assert config.check_interval_minutes == 2
    assert config.data_directory == Path("./data/apexrankwatch")
    assert config.max_retries == 3
    assert config.timeout_ms == 10000
    assert config.max_score_drop_threshold == 2000
    assert config.min_valid_score == 1
    assert config.blacklist == ()
    assert config.onebot == ()


def test_missing_api_key_is_fatal():
    with pytest.raises(ConfigError):
        Config.from_dict({"checkIntervalMinutes": 5})


@pytest.mark.parametrize(
    "raw",
    [
        {"apiKey": "abc", "maxRetries": "many"},
        {"apiKey": "abc", "minValidScore": -1},
        {"apiKey": "abc", "checkIntervalMinutes": 0},
        {"apiKey": "abc", "timeoutMs": 0},
        {"apiKey": "abc", "maxRetries": True},
        {"apiKey": "abc", "maxRetries": 2.7},
        {"apiKey": "abc", "timeoutMs": "2.5"},
        {"apiKey": "abc", "onebot": [{"accessToken": "no url"}]},
    ],
)
def test_invalid_values(raw):
    with pytest.raises(ConfigError):
        Config.from_dict(raw)


def test_blacklist_and_onebot_parsing():
    config = Config.from_dict({
        "apiKey": "abc",
        "blacklist": " Cheater, smurf ,,",
        "onebot": ["http://a:5700", {"url": "http://b:5700", "accessToken": "t"}],
    })

    assert config.blacklist == ("Cheater", "smurf")
    assert config.onebot == (
        OneBotEndpoint("http://a:5700"),
        OneBotEndpoint("http://b:5700", "t"),
    )


def test_load_config_env_key_and_overrides(tmp_path, monkeypatch):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"apiKey": "file-key", "maxRetries": 5}), encoding="utf-8")
    monkeypatch.setenv(API_KEY_ENV, "env-key")

    config = load_config(path, overrides={"dataDirectory": str(tmp_path / "d"), "apiKey": None})

    assert config.api_key == "env-key"
    assert config.max_retries == 5
    assert config.data_directory == tmp_path / "d"


def test_load_config_without_file_uses_env(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv(API_KEY_ENV, "env-key")

    assert load_config().api_key == "env-key"


def test_load_config_explicit_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json")


def test_load_config_unreadable_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_whole_float_values_are_accepted():
    config = Config.from_dict({"apiKey": "abc", "maxRetries": 4.0, "timeoutMs": "5000"})

    assert config.max_retries == 4
    assert config.timeout_ms == 5000
