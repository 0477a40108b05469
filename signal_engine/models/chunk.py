"""
ContentChunk model — immutable unit of retrievable text produced by ingestion.

The engine only reads chunks. Built from store/API dicts via ContentChunk.model_validate(d)
or ensure_chunks().
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class ContentChunk(BaseModel):
    """
    A fixed-size window of episode or article text.

    document_id: owning episode/article; opaque to the engine.
    start/end: optional time (seconds) or position range within the document.
    embedding: fixed-dimension vector; None when the chunk has not been embedded yet.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    document_id: str = ""
    text: str = ""
    start: Optional[float] = None
    end: Optional[float] = None
    embedding: Optional[List[float]] = None

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


def ensure_chunks(items: List[Union[Dict[str, Any], "ContentChunk"]]) -> List["ContentChunk"]:
    """Convert list of dicts or ContentChunks to list of ContentChunk models."""
    return [
        ContentChunk.model_validate(c) if isinstance(c, dict) else c
        for c in items
    ]
