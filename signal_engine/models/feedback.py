"""
Feedback event model — payload delivered by the at-least-once task dispatcher.
"""

from typing import Any, Dict, Union

from pydantic import BaseModel, ConfigDict, Field

from .decision import UserAction


class FeedbackEvent(BaseModel):
    """A user's save/skip (or withdrawal) of a surfaced signal."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: str = Field(alias="userId")
    chunk_id: str = Field(alias="chunkId")
    action: UserAction


def ensure_event(event: Union[Dict[str, Any], "FeedbackEvent"]) -> "FeedbackEvent":
    """Accept the dispatcher's raw dict (camelCase or snake_case) or a FeedbackEvent."""
    return FeedbackEvent.model_validate(event) if isinstance(event, dict) else event
