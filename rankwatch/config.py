from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_PATH = Path("config.json")
CONFIG_ENV = "RANKWATCH_CONFIG"
API_KEY_ENV = "RANKWATCH_API_KEY"

'''
Default configuration values, keyed by their config.json names.
'''
defaults = {
    "checkIntervalMinutes": 2,             #Minutes between reconciliation passes, counted from startup.
    "dataDirectory": "./data/apexrankwatch",
    "maxRetries": 3,                       #Retries for transient API failures.
    "timeoutMs": 10000,                    #Per-request API timeout.
    "maxScoreDropThreshold": 2000,         #Larger drops are treated as API glitches.
    "minValidScore": 1,                    #Lower scores are treated as API errors.
    "blacklist": "",                       #Comma-separated names that cannot be queried or tracked.
    "platform": "PC",
    "onebot": [],                          #OneBot v11 HTTP endpoints: [{"url": ..., "accessToken": ...}]
}


class ConfigError(ValueError):
    """Configuration is missing or invalid. Fatal at startup."""


@dataclass(frozen=True)
class OneBotEndpoint:
    url: str
    access_token: str | None = None


@dataclass(frozen=True)
class Config:
    api_key: str
    check_interval_minutes: float = defaults["checkIntervalMinutes"]
    data_directory: Path = Path(defaults["dataDirectory"])
    max_retries: int = defaults["maxRetries"]
    timeout_ms: int = defaults["timeoutMs"]
    max_score_drop_threshold: int = defaults["maxScoreDropThreshold"]
    min_valid_score: int = defaults["minValidScore"]
    blacklist: tuple[str, ...] = ()
    platform: str = defaults["platform"]
    onebot: tuple[OneBotEndpoint, ...] = field(default_factory=tuple)

    @classmethod
    def from_dict(cls, raw: dict) -> Config:
        if not isinstance(raw, dict):
            raise ConfigError("Configuration must be a JSON object.")
        values = {**defaults, **{key: value for key, value in raw.items() if value is not None}}

        api_key = str(values.get("apiKey") or "").strip()
        if not api_key:
            raise ConfigError(
                f"apiKey is required. Get one from https://portal.apexlegendsapi.com/ "
                f"and put it in config.json or {API_KEY_ENV}."
            )

        interval = _number(values, "checkIntervalMinutes", float)
        if interval <= 0:
            raise ConfigError("checkIntervalMinutes must be greater than 0.")

        return cls(
            api_key=api_key,
            check_interval_minutes=interval,
            data_directory=Path(str(values["dataDirectory"])),
            max_retries=_number(values, "maxRetries", int),
            timeout_ms=_number(values, "timeoutMs", int, minimum=1),
            max_score_drop_threshold=_number(values, "maxScoreDropThreshold", int),
            min_valid_score=_number(values, "minValidScore", int),
            blacklist=tuple(parse_blacklist(values["blacklist"])),
            platform=str(values["platform"]),
            onebot=tuple(_parse_onebot(values["onebot"])),
        )


def _number(values: dict, name: str, kind, minimum=0):
    value = values[name]
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be a number, got {value!r}.")
    try:
        number = kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}.")
    if kind is int and number != value and not isinstance(value, str):
        raise ConfigError(f"{name} must be a whole number, got {value!r}.")
    if number < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {number}.")
    return number


def parse_blacklist(raw) -> list[str]:
    if isinstance(raw, str):
        raw = raw.split(",")
    if not isinstance(raw, (list, tuple)):
        raise ConfigError("blacklist must be a comma-separated string or a list of names.")
    return [str(name).strip() for name in raw if str(name).strip()]


def _parse_onebot(raw):
    if isinstance(raw, (str, dict)):
        raw = [raw]
    if not isinstance(raw, list):
        raise ConfigError("onebot must be a list of endpoints.")
    for item in raw:
        if isinstance(item, str):
            yield OneBotEndpoint(url=item)
        elif isinstance(item, dict) and item.get("url"):
            yield OneBotEndpoint(url=str(item["url"]), access_token=item.get("accessToken") or None)
        else:
            raise ConfigError(f"Invalid onebot endpoint: {item!r}")


def load_config(path: Path = None, overrides: dict = None) -> Config:
    '''
    Loads config.json, applies the API key environment variable, then any overrides.

    :param path: Config file. Defaults to $RANKWATCH_CONFIG or ./config.json. May be missing.
    :param overrides: Values from the command line, keyed by config.json names.
    '''
    config_path = Path(path or os.getenv(CONFIG_ENV) or CONFIG_PATH)
    raw = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigError(f"Could not read {config_path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"{config_path} must contain a JSON object.")
    elif path is not None:
        raise ConfigError(f"Config file not found: {config_path}")

    env_key = os.getenv(API_KEY_ENV)
    if env_key:
        raw = {**raw, "apiKey": env_key}
    if overrides:
        raw = {**raw, **{key: value for key, value in overrides.items() if value is not None}}
    return Config.from_dict(raw)
