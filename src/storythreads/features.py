"""Keyword and entity extraction from raw post text."""

from __future__ import annotations

import re

_TOKEN_SPLIT_RE = re.compile(r"\W+")

# A run of capitalised tokens separated only by spaces, e.g. "New York City".
# All-caps tickers ("NVDA") count as capitalised.
_ENTITY_RE = re.compile(r"\b[A-Z][A-Za-z0-9]*(?: +[A-Z][A-Za-z0-9]*)*")

_STOP_WORDS: frozenset[str] = frozenset({
    "that", "this", "with", "from", "they", "have", "been", "said", "says",
    "will", "would", "could", "should",
})

_MIN_KEYWORD_LENGTH = 4
MAX_KEYWORDS = 10
MAX_ENTITIES = 5

_UNTITLED_TOPIC = "Untitled story"


def _unique(items: list[str], limit: int) -> list[str]:
    """Deduplicate preserving first-occurrence order, capped at *limit*."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
        if len(out) == limit:
            break
    return out


def extract_keywords(text: str) -> list[str]:
    tokens = _TOKEN_SPLIT_RE.split(text.lower())
    candidates = [
        tok for tok in tokens
        if len(tok) >= _MIN_KEYWORD_LENGTH and tok not in _STOP_WORDS
    ]
    return _unique(candidates, MAX_KEYWORDS)


def extract_entities(text: str) -> list[str]:
    return _unique(_ENTITY_RE.findall(text), MAX_ENTITIES)


def extract_keywords_and_entities(text: str) -> tuple[list[str], list[str]]:
    """Return ``(keywords, entities)`` for *text*.

    Keywords are lower-cased tokens longer than three characters, minus stop
    words, first 10 unique. Entities come from the original-case text: maximal
    runs of capitalised words, first 5 unique.
    """
    return extract_keywords(text), extract_entities(text)


def generate_thread_topic(keywords: list[str], entities: list[str]) -> str:
    """Human-readable label from the top 3 keywords and top 2 entities."""
    parts = keywords[:3] + entities[:2]
    return " • ".join(parts) if parts else _UNTITLED_TOPIC
