"""
Chunk store abstraction.

The engine only reads chunks (ingestion writes them). Feedback and recompute
resolve decision chunk ids to embeddings through this store.
"""

from typing import Dict, Iterable, List, Optional, Protocol

from ..models.chunk import ContentChunk


class ChunkStore(Protocol):
    """Protocol for chunk lookup. Implement for in-memory, a document DB or a vector index."""

    def get(self, chunk_id: str) -> Optional[ContentChunk]:
        """Return the chunk if known, else None."""
        ...

    def get_many(self, chunk_ids: Iterable[str]) -> Dict[str, ContentChunk]:
        """Return the known chunks keyed by id; unknown ids are omitted."""
        ...


class InMemoryChunkStore:
    """Chunk store backed by a dict. Used for tests, evaluation and local runs."""

    def __init__(self, chunks: Optional[Iterable[ContentChunk]] = None):
        self._chunks: Dict[str, ContentChunk] = {}
        for chunk in chunks or []:
            self.put(chunk)

    def put(self, chunk: ContentChunk) -> None:
        self._chunks[chunk.id] = chunk

    def put_many(self, chunks: List[ContentChunk]) -> None:
        for chunk in chunks:
            self.put(chunk)

    def get(self, chunk_id: str) -> Optional[ContentChunk]:
        return self._chunks.get(chunk_id)

    def get_many(self, chunk_ids: Iterable[str]) -> Dict[str, ContentChunk]:
        return {cid: self._chunks[cid] for cid in chunk_ids if cid in self._chunks}

    def __len__(self) -> int:
        return len(self._chunks)
