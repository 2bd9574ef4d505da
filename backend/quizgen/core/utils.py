import re
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_null_bytes(data: Any) -> Any:
    """
    Recursively remove null bytes (x00) from strings, lists, and dictionaries.
    AI replies occasionally carry them and downstream storage rejects them.
    """
    if isinstance(data, str):
        return data.replace("\x00", "")
    elif isinstance(data, list):
        return [sanitize_null_bytes(item) for item in data]
    elif isinstance(data, dict):
        return {key: sanitize_null_bytes(value) for key, value in data.items()}
    else:
        return data


def normalize_text(text: str) -> str:
    """Lower-case *text*, trim it and collapse internal whitespace runs."""
    return _WHITESPACE_RE.sub(" ", text.strip()).lower()


def truncate(text: str, limit: int) -> str:
    """Cut *text* to at most *limit* characters."""
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit]
