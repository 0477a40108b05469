"""
SignalEngine: the public surface of the scoring and personalization engine.

    score(chunk, user_id)        → ScoringDecision (idempotent per chunk and user)
    rank(candidates, user_id)    → personalized top-k
    record_feedback(id, action)  → centroid update
    recompute_centroid(user_id)  → authoritative rebuild

build_engine() wires the default stores and the LiteLLM judge from the environment.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import DuplicateDecisionError
from .feedback import FeedbackCoordinator
from .judges.client import (
    JudgeFunction,
    get_available_providers,
    is_provider_available,
    make_litellm_judge,
)
from .models.centroid import UserCentroid
from .models.chunk import ContentChunk, ensure_chunks
from .models.config import DEFAULT_CONFIG, ScoringConfig
from .models.decision import ScoringDecision, UserAction
from .models.feedback import FeedbackEvent
from .models.ranking import RankCandidate, RankedCandidate, ensure_candidates
from .services.centroid_store import CentroidStore, InMemoryCentroidStore, JsonCentroidStore
from .services.chunk_store import ChunkStore, InMemoryChunkStore
from .services.decision_store import DecisionStore, InMemoryDecisionStore
from .settings import EngineSettings, get_settings, load_scoring_config
from .stages.cascade import ScoringCascade
from .stages.judge import JudgeAdapter
from .stages.ranking import rank_candidates

logger = logging.getLogger(__name__)


class SignalEngine:
    """Facade over the cascade, the ranker and the feedback coordinator."""

    def __init__(
        self,
        cascade: ScoringCascade,
        decisions: DecisionStore,
        chunks: ChunkStore,
        centroids: CentroidStore,
        config: ScoringConfig = DEFAULT_CONFIG,
    ):
        self.cascade = cascade
        self.decisions = decisions
        self.chunks = chunks
        self.centroids = centroids
        self.config = config
        self.feedback = FeedbackCoordinator(decisions, chunks, centroids, config)

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def novelty_history(self, user_id: str, exclude_chunk_id: Optional[str] = None) -> List[List[float]]:
        """Embeddings of the user's most recent passed or saved decisions."""
        recent = [
            d for d in self.decisions.list_for_user(user_id)
            if (d.passed or d.user_action == UserAction.SAVED) and d.chunk_id != exclude_chunk_id
        ][: self.config.novelty_lookback]
        found = self.chunks.get_many(d.chunk_id for d in recent)
        return [
            found[d.chunk_id].embedding
            for d in recent
            if d.chunk_id in found and found[d.chunk_id].has_embedding
        ]

    async def score(
        self,
        chunk: Union[ContentChunk, Dict[str, Any]],
        user_id: str,
    ) -> ScoringDecision:
        """
        Score one chunk for one user.

        Returns the stored decision when the pair was already scored; never
        produces a second decision or a second judge call for the same pair
        once the first has been stored.

        Raises:
            InvalidChunkError: empty or whitespace-only text
            EmbeddingDimensionError: embedding of the wrong dimension
        """
        if isinstance(chunk, dict):
            chunk = ContentChunk.model_validate(chunk)
        existing = self.decisions.get_for(chunk.id, user_id)
        if existing is not None:
            logger.debug("[score] DECISION_REUSED chunk_id=%s user_id=%s", chunk.id, user_id)
            return existing

        history = self.novelty_history(user_id, exclude_chunk_id=chunk.id)
        decision = await self.cascade.run(chunk, user_id, history)
        try:
            self.decisions.insert(decision)
        except DuplicateDecisionError:
            stored = self.decisions.get_for(chunk.id, user_id)
            logger.info(
                "[score] CONCURRENT_DUPLICATE chunk_id=%s user_id=%s kept=%s",
                chunk.id, user_id, stored.id if stored else None,
            )
            if stored is None:
                raise
            return stored
        logger.info("[score] DECISION_STORED %s", decision.summary())
        return decision

    async def score_many(
        self,
        chunks: Sequence[Union[ContentChunk, Dict[str, Any]]],
        user_id: str,
    ) -> List[ScoringDecision]:
        """Score several chunks concurrently for one user."""
        chunks = ensure_chunks(list(chunks))
        return list(await asyncio.gather(*(self.score(c, user_id) for c in chunks)))

    @property
    def judge_cost_usd(self) -> float:
        return self.cascade.judge.total_cost_usd

    # -------------------------------------------------------------------------
    # Ranking and feedback
    # -------------------------------------------------------------------------

    def rank(
        self,
        candidates: List[Union[RankCandidate, Dict[str, Any]]],
        user_id: str,
        top_k: Optional[int] = None,
    ) -> List[RankedCandidate]:
        centroid = self.centroids.get(user_id)
        return rank_candidates(ensure_candidates(candidates), centroid, self.config, top_k)

    def record_feedback(self, decision_id: str, action: Union[UserAction, str]) -> bool:
        return self.feedback.record_feedback(decision_id, action)

    def handle_event(self, event: Union[FeedbackEvent, Dict[str, Any]]) -> bool:
        return self.feedback.handle_event(event)

    def recompute_centroid(self, user_id: str) -> UserCentroid:
        return self.feedback.recompute_centroid(user_id)

    def handle_trigger(self, name: str) -> Any:
        return self.feedback.handle_trigger(name)


def build_engine(
    settings: Optional[EngineSettings] = None,
    judge_fn: Optional[JudgeFunction] = None,
    chunks: Optional[ChunkStore] = None,
    config: Optional[ScoringConfig] = None,
) -> SignalEngine:
    """
    Build a SignalEngine from settings (environment by default).

    judge_fn defaults to the LiteLLM judge for JUDGE_PROVIDER, falling back to
    the scoring config's judge.provider.
    Centroids persist to CENTROID_STORE_PATH when set, else stay in memory.
    """
    settings = settings or get_settings()
    config = config or load_scoring_config(settings)
    provider = settings.resolve_judge_provider(config)
    if judge_fn is None:
        if not is_provider_available(provider):
            logger.warning(
                "[engine] JUDGE_KEY_MISSING provider=%s available=%s",
                provider, get_available_providers(),
            )
        judge_fn = make_litellm_judge(
            provider=provider,
            temperature=config.judge_temperature,
            timeout=config.judge_timeout_seconds,
        )
    if settings.centroid_store_path:
        centroids: CentroidStore = JsonCentroidStore(settings.centroid_store_path, config)
    else:
        centroids = InMemoryCentroidStore(config)
    cascade = ScoringCascade(JudgeAdapter(judge_fn, config), config)
    logger.info(
        "[engine] ENGINE_BUILT provider=%s config_version=%s centroid_store=%s",
        provider, config.config_version, type(centroids).__name__,
    )
    return SignalEngine(
        cascade=cascade,
        decisions=InMemoryDecisionStore(),
        chunks=chunks if chunks is not None else InMemoryChunkStore(),
        centroids=centroids,
        config=config,
    )
