"""
Ranking models — candidates from plain similarity search and their personalized scores.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel

from .chunk import ContentChunk


class RankCandidate(BaseModel):
    """A chunk returned by content-similarity search with its query similarity."""

    chunk: ContentChunk
    query_similarity: float


class RankedCandidate(BaseModel):
    """A candidate with all its ranking components."""

    chunk: ContentChunk
    query_similarity: float
    centroid_similarity: Optional[float] = None
    final_score: float


def ensure_candidates(
    items: List[Union[Dict[str, Any], "RankCandidate"]],
) -> List["RankCandidate"]:
    """Convert list of dicts or RankCandidates to list of RankCandidate models."""
    return [
        RankCandidate.model_validate(c) if isinstance(c, dict) else c
        for c in items
    ]
