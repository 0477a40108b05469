"""
Personalized ranking of similarity-search candidates.

final = weight_query * query_similarity + weight_centroid * centroid_similarity

Without a centroid (or before the first save) candidates keep their
query-similarity order. Candidates at or below min_final_score are dropped
and the top_k best are returned.
"""

import logging
from typing import List, Optional

from ..models.centroid import UserCentroid
from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.ranking import RankCandidate, RankedCandidate
from ..utils.similarity import check_dimensions, cosine_similarity

logger = logging.getLogger(__name__)


def blend_score(
    query_similarity: float,
    centroid_similarity: Optional[float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    if centroid_similarity is None:
        return query_similarity
    return config.weight_query * query_similarity + config.weight_centroid * centroid_similarity


def score_candidate(
    candidate: RankCandidate,
    centroid: Optional[UserCentroid],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> RankedCandidate:
    centroid_sim: Optional[float] = None
    if centroid is not None and centroid.has_preference:
        embedding = candidate.chunk.embedding
        if embedding:
            check_dimensions(embedding, centroid.dimensions, f"candidate {candidate.chunk.id}")
            centroid_sim = cosine_similarity(embedding, centroid.vector)
        else:
            logger.warning(
                "[rank_fallback] CANDIDATE_EMBEDDING_MISSING chunk_id=%s user_id=%s",
                candidate.chunk.id, centroid.user_id,
            )
            centroid_sim = 0.0
    return RankedCandidate(
        chunk=candidate.chunk,
        query_similarity=candidate.query_similarity,
        centroid_similarity=centroid_sim,
        final_score=blend_score(candidate.query_similarity, centroid_sim, config),
    )


def rank_candidates(
    candidates: List[RankCandidate],
    centroid: Optional[UserCentroid] = None,
    config: ScoringConfig = DEFAULT_CONFIG,
    top_k: Optional[int] = None,
) -> List[RankedCandidate]:
    """
    Re-rank candidates for one user.

    Sort is stable, so equal final scores keep the incoming (query) order.
    """
    limit = config.default_top_k if top_k is None else top_k
    if limit <= 0 or not candidates:
        return []
    scored = [score_candidate(c, centroid, config) for c in candidates]
    kept = [s for s in scored if s.final_score > config.min_final_score]
    kept.sort(key=lambda s: s.final_score, reverse=True)
    logger.debug(
        "[ranking] RANKED candidates=%s kept=%s top_k=%s personalized=%s",
        len(candidates), len(kept), limit, bool(centroid and centroid.has_preference),
    )
    return kept[:limit]
