"""Data models for the scoring and personalization engine."""

from .centroid import UserCentroid
from .chunk import ContentChunk, ensure_chunks
from .config import DEFAULT_CONFIG, ScoringConfig, resolve_config
from .decision import (
    CascadeState,
    HeuristicBuckets,
    JudgeBuckets,
    JudgeResult,
    JudgeUsage,
    NoveltyResult,
    ScoringDecision,
    ScoringMethod,
    UserAction,
    utc_now,
)
from .feedback import FeedbackEvent, ensure_event
from .ranking import RankCandidate, RankedCandidate, ensure_candidates

__all__ = [
    "DEFAULT_CONFIG",
    "CascadeState",
    "ContentChunk",
    "FeedbackEvent",
    "HeuristicBuckets",
    "JudgeBuckets",
    "JudgeResult",
    "JudgeUsage",
    "NoveltyResult",
    "RankCandidate",
    "RankedCandidate",
    "ScoringConfig",
    "ScoringDecision",
    "ScoringMethod",
    "UserAction",
    "UserCentroid",
    "ensure_candidates",
    "ensure_chunks",
    "ensure_event",
    "resolve_config",
    "utc_now",
]
