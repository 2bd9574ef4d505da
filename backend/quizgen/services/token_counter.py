"""Token counting for prompt and reply size estimates.

Uses tiktoken's ``cl100k_base`` encoding; when the encoding cannot be loaded
the count falls back to one token per four characters.
"""

from __future__ import annotations

import logging
from typing import Optional

import tiktoken

logger = logging.getLogger(__name__)

# Default encoding for token counting
DEFAULT_ENCODING = "cl100k_base"  # GPT-3.5/GPT-4 encoding

CHARS_PER_TOKEN = 4

# Cached tokenizer instance, reused across calls
_cached_tokenizer = None


def _get_tokenizer():
    """Get the shared tokenizer (cached)."""
    global _cached_tokenizer
    if _cached_tokenizer is not None:
        return _cached_tokenizer
    try:
        _cached_tokenizer = tiktoken.get_encoding(DEFAULT_ENCODING)
        return _cached_tokenizer
    except Exception as e:
        logger.warning(f"Failed to load tokenizer: {e}, using fallback")
        return None


def estimate_token_count(text: Optional[str]) -> int:
    """Estimate token count for text.

    Args:
        text: Input text

    Returns:
        Estimated token count
    """
    if not text:
        return 0

    try:
        tokenizer = _get_tokenizer()
        if tokenizer:
            return len(tokenizer.encode(text))
    except Exception as e:
        logger.debug(f"Tokenization failed: {e}, using rough estimate")

    # Fallback: rough estimate (1 token ≈ 4 characters)
    return len(text) // CHARS_PER_TOKEN


def tokenizer_available() -> bool:
    """True when the tiktoken encoding is loaded (no length-based fallback)."""
    return _get_tokenizer() is not None
