"""
Signal scoring and personalization engine.

Scores content chunks through a cost-ordered cascade (length filter,
heuristics, LLM judge for the borderline band, novelty adjustment) and
personalizes ranking with a per-user centroid learned from save/skip feedback.
"""

from .engine import SignalEngine, build_engine
from .errors import (
    ConflictError,
    DuplicateDecisionError,
    EmbeddingDimensionError,
    InputError,
    InvalidChunkError,
    JudgeError,
    SignalEngineError,
    StoreError,
    UnknownChunkError,
    UnknownDecisionError,
)
from .feedback import FeedbackCoordinator
from .models import (
    DEFAULT_CONFIG,
    ContentChunk,
    FeedbackEvent,
    RankCandidate,
    RankedCandidate,
    ScoringConfig,
    ScoringDecision,
    ScoringMethod,
    UserAction,
    UserCentroid,
)
from .settings import EngineSettings, get_settings, setup_logging

__version__ = "1.0.0"

__all__ = [
    "DEFAULT_CONFIG",
    "ConflictError",
    "ContentChunk",
    "DuplicateDecisionError",
    "EmbeddingDimensionError",
    "EngineSettings",
    "FeedbackCoordinator",
    "FeedbackEvent",
    "InputError",
    "InvalidChunkError",
    "JudgeError",
    "RankCandidate",
    "RankedCandidate",
    "ScoringConfig",
    "ScoringDecision",
    "ScoringMethod",
    "SignalEngine",
    "SignalEngineError",
    "StoreError",
    "UnknownChunkError",
    "UnknownDecisionError",
    "UserAction",
    "UserCentroid",
    "build_engine",
    "get_settings",
    "setup_logging",
]
