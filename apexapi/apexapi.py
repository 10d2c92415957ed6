import asyncio
import json
import logging
from dataclasses import dataclass
from enum import Enum

import aiohttp

from apexapi.translations import UNKNOWN, get_legend_rank, translate
from apexapi.utils import translate_state


'''
    Default configuration values.
    These can be modified as needed.
'''

defaults = {
    "platform": "PC",                      #Platform passed to the bridge. PC covers Origin/Steam/EA app accounts.
    "max_retries": 3,                      #Retries after the first attempt, for transient failures only.
    "timeout_ms": 10000,                   #Per-attempt timeout.
    "headers": {
        'user-agent': 'ApexRankWatch/1.0',
        'accept': 'application/json',
    }
}

'''
API endpoints. The keys are used to identify the endpoint when fetching.
'''
endpoints = {
    "player_stats": {
                    "endpoint": "https://api.mozambiquehe.re/bridge",
                    "method": "GET"
                    },
}


## <------------------------------------- Errors -------------------------------------> ##

class FetchErrorKind(Enum):
    TRANSIENT = "transient"
    FATAL = "fatal"


class FetchError(Exception):
    """A player stats fetch that could not be completed."""

    def __init__(self, kind: FetchErrorKind, message: str, player_name: str = None):
        super().__init__(message)
        self.kind = kind
        self.player_name = player_name

    @property
    def transient(self) -> bool:
        return self.kind is FetchErrorKind.TRANSIENT


class ApiStatusError(Exception):
    """The bridge answered with an HTTP error status."""

    def __init__(self, status: int, reason: str = ""):
        super().__init__(f"HTTP {status} {reason}".strip())
        self.status = status
        self.reason = reason


class MalformedResponseError(ValueError):
    """The bridge answered with something that is not a player stats document."""


def classify_error(error: BaseException) -> FetchErrorKind:
    '''
    Decides whether a failed request is worth retrying.

    Timeouts, dropped/refused connections, HTTP 5xx and HTTP 429 are transient.
    Everything else (other 4xx such as a bad API key, malformed payloads) is fatal.
    '''
    if isinstance(error, ApiStatusError):
        if error.status >= 500 or error.status == 429:
            return FetchErrorKind.TRANSIENT
        return FetchErrorKind.FATAL
    if isinstance(error, (asyncio.TimeoutError, aiohttp.ClientConnectionError)):
        return FetchErrorKind.TRANSIENT
    return FetchErrorKind.FATAL


## <------------------------------------- Payload decoding -------------------------------------> ##

@dataclass(frozen=True)
class PlayerObservation:
    """One decoded bridge response. Display fields are already translated."""
    name: str
    uid: str
    platform: str
    level: int
    to_next_level_percent: int
    rank_score: int
    rank_name: str
    rank_div: int
    global_rank_percent: str
    is_online: bool
    selected_legend: str
    legend_rank: str
    current_state: str
    in_lobby_or_match: bool


def _as_int(value, field_name: str, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedResponseError(f"Field '{field_name}' is not a number: {value!r}")


def _block(container: dict, key: str) -> dict:
    value = container.get(key) or {}
    if not isinstance(value, dict):
        raise MalformedResponseError(f"Block '{key}' is not an object: {type(value).__name__}")
    return value


def _as_text(value, field_name: str, default: str = "") -> str:
    if value is None or value == "":
        return default
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise MalformedResponseError(f"Field '{field_name}' is not text: {value!r}")
    return str(value)


def parse_player_stats(payload, player_name: str = "") -> PlayerObservation:
    '''
    Decodes the bridge's nested player document into a PlayerObservation.

    :param payload: Decoded JSON body. The bridge reports lookup and key errors as {"Error": "..."}.
    :param player_name: Name used for the request, used when the payload carries no name.
    :raises MalformedResponseError: When any block or field has an unexpected type.
    '''
    if not isinstance(payload, dict):
        raise MalformedResponseError(f"Expected a JSON object, got {type(payload).__name__}")
    if payload.get("Error"):
        raise MalformedResponseError(f"Bridge error: {payload['Error']}")

    global_data = _block(payload, "global")
    realtime_data = _block(payload, "realtime")
    rank_data = _block(global_data, "rank")

    percent = _as_text(
        rank_data.get("ALStopPercentGlobal") or rank_data.get("percentileGlobal"), "ALStopPercentGlobal", UNKNOWN
    )
    selected_legend = translate(_as_text(
        realtime_data.get("selectedLegend") or realtime_data.get("selectedLegendEquivalent"), "selectedLegend"
    ))
    raw_state = _as_text(
        realtime_data.get("currentStateAsText") or realtime_data.get("currentState"), "currentStateAsText", "offline"
    )
    current_state, in_lobby_or_match = translate_state(raw_state)

    return PlayerObservation(
        name=_as_text(global_data.get("name"), "name", player_name),
        uid=_as_text(global_data.get("uid"), "uid"),
        platform=_as_text(global_data.get("platform"), "platform"),
        level=_as_int(global_data.get("level"), "level"),
        to_next_level_percent=_as_int(global_data.get("toNextLevelPercent"), "toNextLevelPercent"),
        rank_score=_as_int(rank_data.get("rankScore"), "rankScore"),
        rank_name=translate(_as_text(rank_data.get("rankName"), "rankName", "Unranked")),
        rank_div=_as_int(rank_data.get("rankDiv"), "rankDiv"),
        global_rank_percent=percent,
        is_online=_as_int(realtime_data.get("isOnline"), "isOnline") == 1,
        selected_legend=selected_legend,
        legend_rank=get_legend_rank(selected_legend),
        current_state=current_state,
        in_lobby_or_match=in_lobby_or_match,
    )


## <------------------------------------- Fetcher -------------------------------------> ##

class StatsFetcher:
    """Fetches one player's stats with bounded exponential-backoff retries."""

    def __init__(
        self,
        api_key: str,
        max_retries: int = defaults["max_retries"],
        timeout_ms: int = defaults["timeout_ms"],
        platform: str = defaults["platform"],
        session: aiohttp.ClientSession = None,
        transport=None,
        sleep=asyncio.sleep,
        logger: logging.Logger = None,
        endpoint: str = endpoints["player_stats"]["endpoint"],
    ):
        self.api_key = api_key
        self.endpoint = endpoint
        self.max_retries = max_retries
        self.timeout = aiohttp.ClientTimeout(total=timeout_ms / 1000)
        self.platform = platform
        self.session = session
        self.transport = transport or self._http_get
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)

    async def _http_get(self, url: str, params: dict):
        if self.session is not None:
            return await self._get_json(self.session, url, params)
        async with aiohttp.ClientSession(headers=defaults["headers"]) as session:
            return await self._get_json(session, url, params)

    async def _get_json(self, session: aiohttp.ClientSession, url: str, params: dict):
        async with session.get(url, params=params, timeout=self.timeout) as response:
            if response.status >= 400:
                raise ApiStatusError(response.status, response.reason or "")
            body = await response.text()
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise MalformedResponseError(f"Response is not valid JSON: {e}") from e

    async def fetch(self, player_name: str) -> PlayerObservation:
        '''
        Fetches and decodes the current stats of one player.

        Transient failures are retried up to max_retries times, waiting 2^attempt
        seconds before each retry. Fatal failures are raised straight away.

        :param player_name: In-game name as typed by the user.
        :raises FetchError: When the fetch failed for good.
        '''
        params = {"auth": self.api_key, "player": player_name, "platform": self.platform}
        last_error = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = 2 ** attempt
                self.logger.info(
                    "Retrying stats request for %s (attempt %s/%s) in %ss...",
                    player_name, attempt, self.max_retries, delay,
                )
                await self.sleep(delay)
            try:
                payload = await self.transport(self.endpoint, params)
                return parse_player_stats(payload, player_name)
            except (ApiStatusError, asyncio.TimeoutError, aiohttp.ClientError, ValueError) as error:
                kind = classify_error(error)
                if kind is FetchErrorKind.FATAL:
                    raise FetchError(kind, f"Failed to fetch stats for {player_name}: {error}", player_name) from error
                last_error = error
                self.logger.warning(
                    "Stats request for %s failed (%s: %s).",
                    player_name, type(error).__name__, error,
                )

        raise FetchError(
            FetchErrorKind.TRANSIENT,
            f"Failed to fetch stats for {player_name} after {self.max_retries} retries: {last_error}",
            player_name,
        ) from last_error
