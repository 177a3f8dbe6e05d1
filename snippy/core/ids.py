"""Application-wide identifier utilities."""

from __future__ import annotations

import re
import secrets
import threading
import time
from collections.abc import Sequence

_BASE36_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
_LAST_MILLIS = 0
_COUNTER = 0
_LOCK = threading.Lock()

SHORT_ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
SHORT_ID_LENGTH = 7
EMERGENCY_SHORT_ID_PREFIX = "e-"
EMERGENCY_RANDOM_LENGTH = 8
EMERGENCY_TIMESTAMP_MODULUS = 1_000_000

USERNAME_ADJECTIVES: tuple[str, ...] = (
    "silver", "blue", "brave", "clever", "happy",
    "swift", "bright", "calm", "lucky", "gentle",
)
USERNAME_NOUNS: tuple[str, ...] = (
    "otter", "falcon", "lion", "panda", "wolf",
    "fox", "tiger", "hawk", "bear", "eagle",
)
USERNAME_SUFFIX_MIN = 1000
USERNAME_SUFFIX_MAX = 9999  # exclusive
# Leaves room for "-<epoch millis>" within the 64-char column.
USERNAME_BASE_MAX_LENGTH = 48

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def _now_millis() -> int:
    return int(time.time() * 1000)


def to_base36(value: int) -> str:
    """Encode a non-negative integer in lowercase base36."""
    if value < 0:
        raise ValueError("value must be >= 0")
    if value == 0:
        return "0"
    chars: list[str] = []
    current = value
    while current:
        current, remainder = divmod(current, 36)
        chars.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(chars))


def random_string(length: int, alphabet: str = _BASE36_ALPHABET) -> str:
    """Draw ``length`` symbols from ``alphabet`` with a CSPRNG."""
    return "".join(secrets.choice(alphabet) for _ in range(max(length, 0)))


def generate_cuid(length: int = 24) -> str:
    """Generate a collision-resistant lowercase identifier with a `c` prefix."""
    global _LAST_MILLIS, _COUNTER

    now_millis = _now_millis()
    with _LOCK:
        if now_millis == _LAST_MILLIS:
            _COUNTER += 1
        else:
            _LAST_MILLIS = now_millis
            _COUNTER = 0
        counter = _COUNTER

    time_part = to_base36(now_millis)
    counter_part = to_base36(counter).rjust(4, "0")
    body_len = max(length - 1, 8)
    static_part = f"{time_part}{counter_part}"
    random_part = random_string(max(body_len - len(static_part), 0))
    body = f"{static_part}{random_part}"[:body_len]
    return f"c{body}"


# Snippet short IDs


def generate_short_id_candidate(
    length: int = SHORT_ID_LENGTH,
    alphabet: str = SHORT_ID_ALPHABET,
) -> str:
    """Random short-ID candidate; uniqueness is checked by the caller."""
    return random_string(length, alphabet)


def generate_emergency_short_id(
    now_millis: int | None = None,
    alphabet: str = SHORT_ID_ALPHABET,
) -> str:
    """Last-resort short ID: ``e-`` + 8 random symbols + base36 time suffix."""
    millis = _now_millis() if now_millis is None else now_millis
    timestamp_suffix = to_base36(millis % EMERGENCY_TIMESTAMP_MODULUS)
    random_part = random_string(EMERGENCY_RANDOM_LENGTH, alphabet)
    return f"{EMERGENCY_SHORT_ID_PREFIX}{random_part}{timestamp_suffix}"


# Usernames


def random_adjective_noun(
    adjectives: Sequence[str] = USERNAME_ADJECTIVES,
    nouns: Sequence[str] = USERNAME_NOUNS,
) -> str:
    adjective = adjectives[secrets.randbelow(len(adjectives))]
    noun = nouns[secrets.randbelow(len(nouns))]
    return f"{adjective}-{noun}"


def derive_username_base(
    display_name: str | None,
    adjectives: Sequence[str] = USERNAME_ADJECTIVES,
    nouns: Sequence[str] = USERNAME_NOUNS,
    max_length: int = USERNAME_BASE_MAX_LENGTH,
) -> str:
    """Lowercased alphanumerics of the display name, or a random adjective-noun pair."""
    if display_name:
        base = _NON_ALNUM.sub("", display_name).lower()[:max_length]
        if base:
            return base
    return random_adjective_noun(adjectives, nouns)


def username_candidate(base: str) -> str:
    """``base`` plus a random 4-digit suffix, hyphenated when the base already is."""
    suffix = USERNAME_SUFFIX_MIN + secrets.randbelow(USERNAME_SUFFIX_MAX - USERNAME_SUFFIX_MIN)
    separator = "-" if "-" in base else ""
    return f"{base}{separator}{suffix}"


def fallback_username(base: str, now_millis: int | None = None) -> str:
    """Last-resort username: ``base-<epoch millis>``."""
    millis = _now_millis() if now_millis is None else now_millis
    return f"{base}-{millis}"
