"""
Similarity utilities: cosine similarity and embedding dimension checks.
"""

from typing import List, Optional, Sequence

import numpy as np

from ..errors import EmbeddingDimensionError


def cosine_similarity(v1: Sequence[float], v2: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors. Zero vectors give 0.0."""
    if v1 is None or v2 is None or len(v1) == 0 or len(v2) == 0:
        return 0.0
    if len(v1) != len(v2):
        raise EmbeddingDimensionError(len(v1), len(v2), "cosine_similarity")
    v1_arr = np.asarray(v1, dtype=float)
    v2_arr = np.asarray(v2, dtype=float)
    dot_product = np.dot(v1_arr, v2_arr)
    norm_product = np.linalg.norm(v1_arr) * np.linalg.norm(v2_arr)
    return float(dot_product / norm_product) if norm_product > 0 else 0.0


def similarities_to(vector: Sequence[float], matrix: List[Sequence[float]]) -> np.ndarray:
    """Cosine similarity of one vector against each row of matrix."""
    if not matrix:
        return np.zeros(0)
    v = np.asarray(vector, dtype=float)
    m = np.asarray(matrix, dtype=float)
    if m.ndim != 2 or m.shape[1] != v.shape[0]:
        raise EmbeddingDimensionError(v.shape[0], m.shape[-1], "similarities_to")
    norms = np.linalg.norm(m, axis=1) * np.linalg.norm(v)
    dots = m @ v
    with np.errstate(divide="ignore", invalid="ignore"):
        sims = np.where(norms > 0, dots / norms, 0.0)
    return sims


def check_dimensions(
    vector: Optional[Sequence[float]],
    expected: int,
    context: str = "",
) -> None:
    """Raise EmbeddingDimensionError unless vector has exactly expected entries."""
    actual = 0 if vector is None else len(vector)
    if actual != expected:
        raise EmbeddingDimensionError(expected, actual, context)
