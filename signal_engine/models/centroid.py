"""
UserCentroid model — one preference vector per user, built from save/skip feedback.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .decision import utc_now


class UserCentroid(BaseModel):
    """
    A vector summarizing the content a user saved, in embedding space.

    version increases on every write (incremental update or recompute).
    last_recomputed_at is None until the first full recompute from history.
    """

    user_id: str
    vector: List[float]
    saved_count: int = 0
    skipped_count: int = 0
    version: int = 0
    updated_at: datetime = Field(default_factory=utc_now)
    last_recomputed_at: Optional[datetime] = None

    @property
    def has_preference(self) -> bool:
        """True once at least one save has shaped the vector."""
        return self.saved_count > 0

    @property
    def dimensions(self) -> int:
        return len(self.vector)
