"""
Shared fixtures: small-dimension config, sample chunk texts and stub judges.

Embeddings in tests are 4-dimensional so vectors stay readable; every fixture
config sets embedding_dimensions accordingly.
"""

import asyncio
from typing import Any, Dict, Optional

import pytest

from signal_engine.models import ContentChunk, ScoringConfig
from signal_engine.services import InMemoryCentroidStore, InMemoryChunkStore, InMemoryDecisionStore
from signal_engine.engine import SignalEngine
from signal_engine.stages import JudgeAdapter, ScoringCascade

DIMS = 4

# ~285 words: explicit naming, a capitalized label, contrarian and causal language.
FRAMEWORK_PARAGRAPH = (
    "We call this the Permission Ladder. Most founders assume that growth comes from more "
    "features, however the counterintuitive part is that retention is driven by trust because "
    "customers never upgrade a product they do not understand. Compare a framework built on "
    "usage versus a model built on seats: the first compounds while the second stalls. Stripe "
    "learned this early, and Notion learned it later. The principle is simple. You should earn "
    "each rung before asking for the next one, and you should measure every rung with a single "
    "number such as weekly active teams."
)
FRAMEWORK_TEXT = " ".join([FRAMEWORK_PARAGRAPH] * 3)

# 126 lowercase words with no punctuation and no signal vocabulary.
PLAIN_TEXT = " ".join(["the small cat sat on the warm mat and looked at the old wall"] * 9)

# 40 words.
SHORT_TEXT = " ".join(["word"] * 40)

JUDGE_RESPONSE: Dict[str, Any] = {
    "frameworkClarity": 60,
    "insightNovelty": 55,
    "tacticalSpecificity": 50,
    "reasoningDepth": 52,
    "overallScore": 55,
    "reasoning": "Names a reusable idea\nShows some reasoning",
    "usage": {"prompt_tokens": 800, "completion_tokens": 90, "cost_usd": 0.002},
}


class StubJudge:
    """Async judge double that counts calls and can fail, stall or return garbage."""

    def __init__(
        self,
        response: Any = None,
        exc: Optional[BaseException] = None,
        delay: float = 0.0,
        fail_times: Optional[int] = None,
    ):
        self.response = dict(JUDGE_RESPONSE) if response is None else response
        self.exc = exc
        self.delay = delay
        self.fail_times = fail_times
        self.calls = 0

    async def __call__(self, text: str, rubric: str) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None and (self.fail_times is None or self.calls <= self.fail_times):
            raise self.exc
        return self.response


def unit(*values: float):
    return [float(v) for v in values]


def make_chunk(chunk_id: str, text: str = FRAMEWORK_TEXT, embedding=None) -> ContentChunk:
    return ContentChunk(id=chunk_id, document_id="doc-1", text=text, embedding=embedding)


@pytest.fixture
def config() -> ScoringConfig:
    return ScoringConfig(
        embedding_dimensions=DIMS,
        judge_timeout_seconds=0.5,
        judge_retry_backoff_seconds=0.0,
    )


@pytest.fixture
def stub_judge() -> StubJudge:
    return StubJudge()


@pytest.fixture
def chunk_store() -> InMemoryChunkStore:
    return InMemoryChunkStore()


@pytest.fixture
def engine(config, stub_judge, chunk_store) -> SignalEngine:
    cascade = ScoringCascade(JudgeAdapter(stub_judge, config), config)
    return SignalEngine(
        cascade=cascade,
        decisions=InMemoryDecisionStore(),
        chunks=chunk_store,
        centroids=InMemoryCentroidStore(config),
        config=config,
    )
