"""Shared utilities for similarity and text measurement."""

from .similarity import check_dimensions, cosine_similarity, similarities_to
from .text import split_sentences, word_count

__all__ = [
    "check_dimensions",
    "cosine_similarity",
    "similarities_to",
    "split_sentences",
    "word_count",
]
