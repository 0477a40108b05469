"""
Scoring cascade: one pass of the state machine per (chunk, user).

    length-filter ──short──────────────────────────────────────────► done
         │
         ▼
     heuristic ──score >= high──► heuristic-pass ──┐
         │      ──score <= low───► heuristic-fail ──┤
         │                                          ├──► novelty ──► done
         └──borderline──► judge ────────────────────┘   (only with an embedding
                                                          and a user history)

Transitions are pure functions of the stage output and ScoringConfig, so every
threshold can change without touching the machine. Only the judge state
suspends (remote call); it always completes, falling back to a neutral score.
"""

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional, Sequence

from ..errors import InvalidChunkError
from ..models.chunk import ContentChunk
from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.decision import (
    CascadeState,
    HeuristicBuckets,
    JudgeResult,
    NoveltyResult,
    ScoringDecision,
    ScoringMethod,
)
from ..utils.similarity import check_dimensions
from ..utils.text import word_count
from .features import extract_features, heuristic_score
from .judge import JudgeAdapter
from .novelty import detect_novelty

logger = logging.getLogger(__name__)

Extractor = Callable[[str, ScoringConfig], HeuristicBuckets]


# =============================================================================
# Pure transitions
# =============================================================================

def after_length_check(words: int, config: ScoringConfig = DEFAULT_CONFIG) -> CascadeState:
    """Short chunks stop at the length filter; everything else goes to heuristics."""
    if words < config.length_min_words:
        return CascadeState.DONE
    return CascadeState.HEURISTIC


def after_heuristic(score: float, config: ScoringConfig = DEFAULT_CONFIG) -> CascadeState:
    """Confident heuristic scores are terminal; the band strictly between goes to the judge."""
    if score >= config.heuristic_high_threshold:
        return CascadeState.HEURISTIC_PASS
    if score <= config.heuristic_low_threshold:
        return CascadeState.HEURISTIC_FAIL
    return CascadeState.JUDGE


def judge_passes(overall: float, config: ScoringConfig = DEFAULT_CONFIG) -> bool:
    return overall >= config.judge_pass_threshold


def after_stage(can_apply_novelty: bool) -> CascadeState:
    return CascadeState.NOVELTY if can_apply_novelty else CascadeState.DONE


def apply_adjustment(raw_score: float, adjustment: float) -> float:
    return max(0.0, min(100.0, raw_score + adjustment))


# =============================================================================
# Cascade run state
# =============================================================================

@dataclass
class CascadeRun:
    """Mutable working state for one pass; frozen into a ScoringDecision at the end."""

    chunk: ContentChunk
    user_id: str
    history: Optional[List[Sequence[float]]]
    words: int = 0
    method: Optional[ScoringMethod] = None
    raw_score: float = 0.0
    passed: bool = False
    borderline: bool = False
    heuristic: Optional[HeuristicBuckets] = None
    judge: Optional[JudgeResult] = None
    novelty: Optional[NoveltyResult] = None
    trail: List[CascadeState] = field(default_factory=list)

    @property
    def can_apply_novelty(self) -> bool:
        return bool(self.history) and self.chunk.has_embedding

    @property
    def final_score(self) -> float:
        adjustment = self.novelty.adjustment if self.novelty else 0.0
        return apply_adjustment(self.raw_score, adjustment)


class ScoringCascade:
    """
    Orchestrates feature extractor → (borderline only) judge → novelty.

    Stateless across runs: safe to share between concurrent scoring calls.
    """

    def __init__(
        self,
        judge: JudgeAdapter,
        config: ScoringConfig = DEFAULT_CONFIG,
        extractor: Extractor = extract_features,
    ):
        self._judge = judge
        self._config = config
        self._extractor = extractor
        self._handlers: Dict[CascadeState, Callable[[CascadeRun], Awaitable[CascadeState]]] = {
            CascadeState.LENGTH_FILTER: self._length_filter,
            CascadeState.HEURISTIC: self._heuristic,
            CascadeState.HEURISTIC_PASS: self._heuristic_pass,
            CascadeState.HEURISTIC_FAIL: self._heuristic_fail,
            CascadeState.JUDGE: self._run_judge,
            CascadeState.NOVELTY: self._novelty,
        }

    @property
    def config(self) -> ScoringConfig:
        return self._config

    @property
    def judge(self) -> JudgeAdapter:
        return self._judge

    def validate(self, chunk: ContentChunk) -> None:
        """Reject chunks that cannot be scored. Raises InputError subclasses."""
        if not chunk.text or not chunk.text.strip():
            raise InvalidChunkError(f"Chunk {chunk.id} has empty text")
        if chunk.embedding is not None:
            check_dimensions(chunk.embedding, self._config.embedding_dimensions, f"chunk {chunk.id}")

    async def run(
        self,
        chunk: ContentChunk,
        user_id: str,
        history: Optional[List[Sequence[float]]] = None,
    ) -> ScoringDecision:
        """Drive the state machine from length-filter to done and build the decision."""
        self.validate(chunk)
        run = CascadeRun(chunk=chunk, user_id=user_id, history=history)
        state = CascadeState.LENGTH_FILTER
        while state != CascadeState.DONE:
            run.trail.append(state)
            state = await self._handlers[state](run)
        run.trail.append(state)

        decision = ScoringDecision(
            chunk_id=chunk.id,
            user_id=user_id,
            score=run.final_score,
            raw_score=run.raw_score,
            method=run.method,
            passed=run.passed,
            borderline=run.borderline,
            word_count=run.words,
            heuristic=run.heuristic,
            judge=run.judge,
            novelty=run.novelty,
            config_version=self._config.config_version,
        )
        logger.debug(
            "[cascade] DECISION chunk_id=%s user_id=%s trail=%s score=%.1f passed=%s",
            chunk.id, user_id, "→".join(s.value for s in run.trail), decision.score, decision.passed,
        )
        return decision

    # -------------------------------------------------------------------------
    # State handlers
    # -------------------------------------------------------------------------

    async def _length_filter(self, run: CascadeRun) -> CascadeState:
        run.words = word_count(run.chunk.text)
        nxt = after_length_check(run.words, self._config)
        if nxt == CascadeState.DONE:
            run.method = ScoringMethod.LENGTH_FILTER
            run.raw_score = self._config.length_filter_score
            run.passed = False
        return nxt

    async def _heuristic(self, run: CascadeRun) -> CascadeState:
        run.heuristic = self._extractor(run.chunk.text, self._config)
        run.raw_score = heuristic_score(run.heuristic)
        return after_heuristic(run.raw_score, self._config)

    async def _heuristic_pass(self, run: CascadeRun) -> CascadeState:
        run.method = ScoringMethod.HEURISTIC
        run.passed = True
        return after_stage(run.can_apply_novelty)

    async def _heuristic_fail(self, run: CascadeRun) -> CascadeState:
        run.method = ScoringMethod.HEURISTIC
        run.passed = False
        return after_stage(run.can_apply_novelty)

    async def _run_judge(self, run: CascadeRun) -> CascadeState:
        run.borderline = True
        run.judge = await self._judge.judge(run.chunk.text.strip(), chunk_id=run.chunk.id)
        run.method = ScoringMethod.LLM
        run.raw_score = max(0.0, min(100.0, run.judge.score))
        run.passed = judge_passes(run.judge.score, self._config)
        return after_stage(run.can_apply_novelty)

    async def _novelty(self, run: CascadeRun) -> CascadeState:
        if self._config.novelty_enabled:
            run.novelty = detect_novelty(run.chunk.embedding, run.history, self._config)
        return CascadeState.DONE
