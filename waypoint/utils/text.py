"""
Text utilities for token estimation and truncation.

Token costs are approximated from character and byte counts rather than
computed with a model tokenizer, so they are stable across backends.
"""

import json
import math
from typing import Any

from waypoint.constants import (
    DEFAULT_CHARS_PER_TOKEN,
    IMAGE_BYTES_PER_TOKEN,
    TRUNCATION_MARKER,
)


def estimate_text_tokens(
    text: str,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> int:
    """
    Estimate the token cost of text.

    Parameters
    ----------
    text : str
        Text to estimate.
    chars_per_token : int, default=4
        Characters per token.

    Returns
    -------
    int
        ``ceil(len(text) / chars_per_token)``.

    Examples
    --------
    >>> estimate_text_tokens("Hello, world!")
    4
    """
    return estimate_chars_tokens(len(text), chars_per_token)


def estimate_chars_tokens(
    char_count: int,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> int:
    """Estimate the token cost of ``char_count`` characters."""
    return math.ceil(char_count / chars_per_token)


def estimate_image_tokens(size_bytes: int) -> int:
    """
    Estimate the token cost of an image.

    Parameters
    ----------
    size_bytes : int
        Size of the image data.

    Returns
    -------
    int
        ``ceil(size_bytes / 750)``.
    """
    return math.ceil(size_bytes / IMAGE_BYTES_PER_TOKEN)


def truncate_to_tokens(
    text: str,
    max_tokens: int,
    chars_per_token: int = DEFAULT_CHARS_PER_TOKEN,
) -> str:
    """
    Truncate text to the character count implied by a token budget.

    The truncation marker is always appended.

    Parameters
    ----------
    text : str
        Text to truncate.
    max_tokens : int
        Token budget.
    chars_per_token : int, default=4
        Characters per token.

    Returns
    -------
    str
        Leading ``max_tokens * chars_per_token`` characters followed by the
        truncation marker.

    Examples
    --------
    >>> truncate_to_tokens("abcdefghij", max_tokens=1)
    'abcd\\n... (truncated)'
    """
    return text[: max_tokens * chars_per_token] + TRUNCATION_MARKER


def to_json(data: Any) -> str:
    """Serialize data as two-space indented JSON for token costing."""
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)
