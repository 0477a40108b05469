"""
Novelty detection against a user's history of surfaced and saved chunks.

Nearest-neighbour cosine similarity of the candidate embedding against the
history set. History entries at or above the cluster threshold form the
chunk's cluster; the penalty grows with cluster size (linear or logarithmic
damping) and is clamped so a single call cannot flip a decision outright.
Clusterless chunks far from everything the user has seen earn a small bonus.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.decision import NoveltyResult
from ..utils.similarity import check_dimensions, similarities_to

logger = logging.getLogger(__name__)


def cluster_penalty(cluster_size: int, config: ScoringConfig = DEFAULT_CONFIG) -> float:
    """
    Penalty (a negative number) for a cluster of the given size.

    linear: base + per_member * (size - 1)
    log:    base + per_member * ln(size)
    """
    if cluster_size <= 0:
        return 0.0
    if config.novelty_damping == "linear":
        growth = float(cluster_size - 1)
    else:
        growth = math.log(cluster_size)
    return -(config.novelty_base_penalty + config.novelty_penalty_per_member * growth)


def novelty_adjustment(
    cluster_size: int,
    max_similarity: float,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> float:
    """Signed score adjustment, clamped to [penalty_floor, bonus_ceiling]."""
    if cluster_size > 0:
        raw = cluster_penalty(cluster_size, config)
    elif max_similarity < config.novelty_novel_threshold:
        raw = config.novelty_bonus
    else:
        raw = 0.0
    return max(config.novelty_penalty_floor, min(config.novelty_bonus_ceiling, raw))


def detect_novelty(
    embedding: Sequence[float],
    history: List[Sequence[float]],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> NoveltyResult:
    """
    Compare one chunk embedding with the user's history embeddings.

    Cold start (fewer than novelty_min_history entries) returns a neutral result
    with adjustment 0. Raises EmbeddingDimensionError on any dimension mismatch.
    """
    dims = config.embedding_dimensions
    check_dimensions(embedding, dims, "novelty candidate")
    for vec in history:
        check_dimensions(vec, dims, "novelty history")

    history_size = len(history)
    if history_size == 0:
        return NoveltyResult(history_size=0)

    sims = similarities_to(embedding, history)
    max_sim = float(np.max(sims))
    top_k = max(1, min(config.novelty_top_k, history_size))
    top = np.sort(sims)[::-1][:top_k]
    avg_sim = float(np.mean(top))
    cluster_size = int(np.sum(sims >= config.novelty_cluster_threshold))
    is_duplicate = max_sim >= config.duplicate_threshold

    if history_size < config.novelty_min_history:
        adjustment = 0.0
    else:
        adjustment = novelty_adjustment(cluster_size, max_sim, config)

    if is_duplicate:
        logger.info(
            "[novelty] NEAR_DUPLICATE max_similarity=%.3f cluster_size=%s adjustment=%.1f",
            max_sim, cluster_size, adjustment,
        )

    return NoveltyResult(
        adjustment=adjustment,
        cluster_size=cluster_size,
        novelty_score=1.0 - avg_sim,
        avg_similarity=avg_sim,
        max_similarity=max_sim,
        history_size=history_size,
        is_duplicate=is_duplicate,
    )


def is_duplicate(
    embedding: Sequence[float],
    history: List[Sequence[float]],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> bool:
    """True when the chunk nearly repeats something already in the history."""
    return detect_novelty(embedding, history, config).is_duplicate
