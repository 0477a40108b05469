"""
Decision models — the per-(chunk, user) output of the scoring cascade.

Contains:
- ScoringMethod, UserAction, CascadeState enums
- HeuristicBuckets, JudgeBuckets, JudgeUsage, JudgeResult, NoveltyResult: stage outputs
- ScoringDecision: the persisted record ("signal"); only user_action/actioned_at ever change
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_decision_id() -> str:
    return uuid.uuid4().hex


class ScoringMethod(str, Enum):
    """Which cascade stage produced the terminal score."""

    LENGTH_FILTER = "length-filter"
    HEURISTIC = "heuristic"
    LLM = "llm"


class UserAction(str, Enum):
    UNSET = "unset"
    SAVED = "saved"
    SKIPPED = "skipped"


class CascadeState(str, Enum):
    """Named states of the scoring state machine."""

    LENGTH_FILTER = "length-filter"
    HEURISTIC = "heuristic"
    HEURISTIC_PASS = "heuristic-pass"
    HEURISTIC_FAIL = "heuristic-fail"
    JUDGE = "judge"
    NOVELTY = "novelty"
    DONE = "done"


class HeuristicBuckets(BaseModel):
    """Feature extractor sub-scores (each 0-1), composite and the reasons behind them."""

    model_config = ConfigDict(frozen=True)

    framework_score: float = 0.0
    insight_score: float = 0.0
    specificity_score: float = 0.0
    quality_score: float = 0.0
    overall_score: float = 0.0
    word_count: int = 0
    reasons: List[str] = Field(default_factory=list)


class JudgeBuckets(BaseModel):
    """Judge bucket scores, each 0-100."""

    model_config = ConfigDict(frozen=True)

    framework_clarity: float
    insight_novelty: float
    tactical_specificity: float
    reasoning_depth: float
    overall_score: float


class JudgeUsage(BaseModel):
    """Token and cost accounting for one judge call (summed over retries)."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost_usd: float = 0.0
    attempts: int = 0


class JudgeResult(BaseModel):
    """Output of the judge adapter. fallback=True means the neutral score was substituted."""

    model_config = ConfigDict(frozen=True)

    score: float
    buckets: JudgeBuckets
    reasoning: str
    reasons: List[str] = Field(default_factory=list)
    usage: JudgeUsage = Field(default_factory=JudgeUsage)
    fallback: bool = False
    error: Optional[str] = None


class NoveltyResult(BaseModel):
    """Novelty detector output; adjustment is added to the stage score."""

    model_config = ConfigDict(frozen=True)

    adjustment: float = 0.0
    cluster_size: int = 0
    novelty_score: float = 1.0
    avg_similarity: float = 0.0
    max_similarity: float = 0.0
    history_size: int = 0
    is_duplicate: bool = False


class ScoringDecision(BaseModel):
    """
    The scored signal for exactly one chunk and one user.

    score is the final value after the novelty adjustment; raw_score is what the
    deciding stage produced. passed is decided by the stage and never by novelty.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_decision_id)
    chunk_id: str
    user_id: str
    score: float = Field(ge=0.0, le=100.0)
    raw_score: float = Field(ge=0.0, le=100.0)
    method: ScoringMethod
    passed: bool
    borderline: bool = False
    word_count: int = 0
    heuristic: Optional[HeuristicBuckets] = None
    judge: Optional[JudgeResult] = None
    novelty: Optional[NoveltyResult] = None
    user_action: UserAction = UserAction.UNSET
    created_at: datetime = Field(default_factory=utc_now)
    actioned_at: Optional[datetime] = None
    config_version: str = "1"

    @model_validator(mode="after")
    def method_matches_stage_data(self):
        if self.method == ScoringMethod.LENGTH_FILTER:
            if self.heuristic is not None or self.judge is not None or self.novelty is not None:
                raise ValueError("length-filter decisions carry no heuristic, judge or novelty data")
        elif self.method == ScoringMethod.HEURISTIC:
            if self.heuristic is None:
                raise ValueError("heuristic decisions require heuristic buckets")
            if self.judge is not None:
                raise ValueError("heuristic decisions must not carry judge data")
        elif self.method == ScoringMethod.LLM:
            if self.judge is None:
                raise ValueError("llm decisions require judge buckets")
        return self

    def with_action(self, action: UserAction, at: Optional[datetime] = None) -> "ScoringDecision":
        """Copy with the feedback fields replaced; every other field is untouched."""
        actioned_at = None if action == UserAction.UNSET else (at or utc_now())
        return self.model_copy(update={"user_action": action, "actioned_at": actioned_at})

    def summary(self) -> Dict[str, Any]:
        """Compact dict for logs."""
        return {
            "id": self.id,
            "chunk_id": self.chunk_id,
            "user_id": self.user_id,
            "method": self.method.value,
            "score": round(self.score, 2),
            "passed": self.passed,
        }
