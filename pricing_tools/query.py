import re

MAX_QUERY_LENGTH = 100

_DISALLOWED = re.compile(r"[^\w\s\-.]")
_WHITESPACE = re.compile(r"\s+")


def normalize_query(raw: str) -> str:
    """
    Clean user text into the keyword string sent to eBay.
    Anything other than word chars, whitespace, '-' and '.' becomes a space,
    whitespace runs collapse, and the result is capped at 100 characters.
    """
    cleaned = _DISALLOWED.sub(" ", raw or "")
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    # strip again so a cut landing on a space stays idempotent
    return cleaned[:MAX_QUERY_LENGTH].rstrip()


def make_cache_key(normalized: str) -> str:
    """Case-insensitive cache key for an already normalized query."""
    return normalized.lower().strip()
