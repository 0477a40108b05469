"""
Text helpers: word and sentence counting shared by the cascade and the feature extractor.
"""

import re
from typing import List

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_END = re.compile(r"[.!?]+")


def word_count(text: str) -> int:
    """Whitespace-delimited word count; 0 for empty or blank text."""
    trimmed = (text or "").strip()
    if not trimmed:
        return 0
    return len(_WHITESPACE.split(trimmed))


def split_sentences(text: str) -> List[str]:
    """Non-empty sentences split on terminal punctuation."""
    return [s.strip() for s in _SENTENCE_END.split(text or "") if s.strip()]
