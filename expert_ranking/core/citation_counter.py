"""Surname-based citation counting over free text."""

import re

from .name_normalizer import last_token


MIN_DISTINCTIVE_TOKEN_LENGTH = 4


def distinctive_token(canonical_name: str) -> str:
    """Surname used for counting, or "" when it is too short to be distinctive."""
    token = last_token(canonical_name)
    if len(token) < MIN_DISTINCTIVE_TOKEN_LENGTH:
        return ""
    return token


def count_mentions(text: str, canonical_name: str) -> int:
    """Count whole-word, case-insensitive occurrences of a name's surname in text.

    Surnames of three characters or fewer are too ambiguous and always count 0.
    """
    if not text or not canonical_name:
        return 0

    token = distinctive_token(canonical_name)
    if not token:
        return 0

    pattern = re.compile(rf"(?<!\w){re.escape(token)}(?!\w)", re.IGNORECASE)
    return len(pattern.findall(text))
