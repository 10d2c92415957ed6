"""Small shared helpers for parsing realtime state text from the bridge."""

import re

from apexapi.translations import translate

# Trailing match timer, e.g. "In match (00:39)".
STATE_TIMER_PATTERN = re.compile(r"\s*\((\d+:\d{2})\)\s*$")


def split_state_timer(state_text: str):
    """Split "In match (00:39)" into ("In match", "00:39"). Timer is None when absent."""
    found = STATE_TIMER_PATTERN.search(state_text or "")
    if found is None:
        return (state_text or "").strip(), None
    return state_text[: found.start()].strip(), found.group(1)


def contains_pattern(text: str, pattern: str) -> bool:
    return pattern.lower() in (text or "").lower()


def is_in_lobby_or_match(state_text: str) -> bool:
    """True when the untranslated state mentions a lobby or a match."""
    return contains_pattern(state_text, "lobby") or contains_pattern(state_text, "match")


def translate_state(state_text: str):
    """Translate a state string, keeping any timer suffix untouched.

    Returns (translated_state, in_lobby_or_match).
    """
    base_state, timer = split_state_timer(state_text)
    translated = translate(base_state)
    if timer:
        translated = f"{translated} ({timer})"
    return translated, is_in_lobby_or_match(base_state)
