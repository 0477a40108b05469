"""
Centroid arithmetic (pure; storage and locking live in services.centroid_store).

save:      c' = c + (e - c) / n          running mean over n saves (first save: c' = e)
skip:      c' = c * (1 - β) - e * β      β = skip_rate, pushes away from e
recompute: c  = mean(saved) - β * mean(skipped)

The incremental steps do not commute, so a withdrawn or switched action is
removed by a rebuild from history (FeedbackCoordinator), not by an inverse step.
"""

from typing import List, Sequence

import numpy as np

from ..models.config import DEFAULT_CONFIG, ScoringConfig


def zero_vector(dimensions: int) -> List[float]:
    return [0.0] * dimensions


def apply_save_vector(
    vector: Sequence[float],
    embedding: Sequence[float],
    saved_count: int,
) -> List[float]:
    """
    Fold one saved embedding into the running mean.

    saved_count is the number of saves INCLUDING this one (α = 1 / saved_count).
    """
    e = np.asarray(embedding, dtype=float)
    if saved_count <= 1:
        return e.tolist()
    c = np.asarray(vector, dtype=float)
    alpha = 1.0 / saved_count
    return (c + alpha * (e - c)).tolist()


def apply_skip_vector(
    vector: Sequence[float],
    embedding: Sequence[float],
    config: ScoringConfig = DEFAULT_CONFIG,
) -> List[float]:
    c = np.asarray(vector, dtype=float)
    e = np.asarray(embedding, dtype=float)
    beta = config.skip_rate
    return (c * (1.0 - beta) - e * beta).tolist()


def recompute_vector(
    saved: List[Sequence[float]],
    skipped: List[Sequence[float]],
    dimensions: int,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> List[float]:
    """Authoritative rebuild from full history. Empty history gives a zero vector."""
    result = np.zeros(dimensions, dtype=float)
    if saved:
        result = result + np.mean(np.asarray(saved, dtype=float), axis=0)
    if skipped:
        result = result - config.skip_rate * np.mean(np.asarray(skipped, dtype=float), axis=0)
    return result.tolist()
