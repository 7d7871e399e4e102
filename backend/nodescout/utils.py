import re
from typing import Iterable, List, Optional

FILLER = re.compile(
    r"\b(?:how to|how do i|how do you|how can i|how can you|for|with|using|use|need|want)\b")
_ws_re = re.compile(r"\s+")


def collapse(text: str) -> str:
    return _ws_re.sub(" ", text).strip()


def normalize_query(q: str) -> str:
    """
    Lowercase, collapse whitespace and drop filler words ("how to", "for",
    "using", ...). If nothing is left, fall back to the collapsed query,
    then to the raw trimmed input.
    """
    collapsed = collapse(q.strip().lower())
    stripped = collapse(FILLER.sub(" ", collapsed))
    return stripped or collapsed or q.strip()


def tokenize_query(q: str) -> List[str]:
    return [t for t in q.split() if t]


def docs_tokens(q: str) -> List[str]:
    # docs search does not strip filler words
    return tokenize_query(q.strip().lower())


def clamp(value: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return min(max(value, lo), hi)


def token_match_score(text: Optional[str], tokens: List[str]) -> float:
    """Fraction of tokens found as substrings of `text` (lowercased)."""
    if not tokens:
        return 0.0
    hay = (text or "").lower()
    hits = sum(1 for t in tokens if t in hay)
    return hits / len(tokens)


def tag_match_score(tags: Iterable[str], tokens: List[str]) -> float:
    tags = [t.lower() for t in tags]
    if not tokens or not tags:
        return 0.0
    hits = sum(1 for t in tokens if any(t in tag for tag in tags))
    return hits / len(tokens)
