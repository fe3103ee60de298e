"""Canonicalization of raw expert names."""

import re
from typing import List


SUFFIX_PATTERN = re.compile(
    r",?\s*(?<![\w.])(?:Ph\.?D|Dr|M\.D|Ed\.D|Jr|Sr)(?![\w])\.?,?",
    re.IGNORECASE,
)
PARENTHETICAL_PATTERN = re.compile(r"\s*\([^()]*\)")
CO_AUTHOR_DETECT_PATTERN = re.compile(r"&|\s+and\s+", re.IGNORECASE)
CO_AUTHOR_SPLIT_PATTERN = re.compile(r"\s*&\s*|\s+and\s+", re.IGNORECASE)
EDGE_PUNCTUATION = " ,;"


def _clean_once(name: str) -> str:
    name = name.replace("&amp;", "&")
    name = PARENTHETICAL_PATTERN.sub("", name)
    name = SUFFIX_PATTERN.sub("", name)
    name = " ".join(name.split())
    return name.strip(EDGE_PUNCTUATION)


def normalize(raw: str) -> str:
    """Return the canonical form of an expert name.

    Strips academic and honorific suffixes, parenthetical asides and the HTML
    ampersand entity, then collapses whitespace. Cleanup is repeated until the
    name stops changing, so the result is always a fixed point.
    """
    if not raw:
        return ""

    name = raw
    while True:
        cleaned = _clean_once(name)
        if cleaned == name:
            return cleaned
        name = cleaned


def split_co_authors(name: str) -> List[str]:
    """Split a "Hochman & Wexler" style name into individual names."""
    cleaned = " ".join(name.replace("&amp;", "&").split())
    if not CO_AUTHOR_DETECT_PATTERN.search(cleaned):
        return [cleaned] if cleaned else []

    parts = [part.strip(EDGE_PUNCTUATION) for part in CO_AUTHOR_SPLIT_PATTERN.split(cleaned)]
    return [part for part in parts if part]


def last_token(name: str) -> str:
    """Lowercased surname-like token of a normalized name."""
    tokens = normalize(name).lower().split()
    return tokens[-1] if tokens else ""


def name_key(name: str) -> str:
    """Case-insensitive, whitespace-normalized deduplication key."""
    return " ".join(name.lower().split())
