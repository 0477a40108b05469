"""Stores for chunks, decisions and user centroids."""

from .centroid_store import (
    BaseCentroidStore,
    CentroidStore,
    InMemoryCentroidStore,
    JsonCentroidStore,
)
from .chunk_store import ChunkStore, InMemoryChunkStore
from .decision_store import DecisionStore, InMemoryDecisionStore

__all__ = [
    "BaseCentroidStore",
    "CentroidStore",
    "ChunkStore",
    "DecisionStore",
    "InMemoryCentroidStore",
    "InMemoryChunkStore",
    "InMemoryDecisionStore",
    "JsonCentroidStore",
]
