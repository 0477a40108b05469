"""
SignalEngine End-to-End Tests

Drives the public surface: score → feedback → rank → recompute.

Test Scenarios:
---------------
1. Idempotent scoring: same (chunk, user) twice → one decision, identical result
2. Concurrent scoring of one pair stores exactly one decision
3. Judge failure surfaces as a terminal llm decision scored 50
4. Novelty history draws on the user's passed decisions, excluding the chunk itself
5. Save feedback personalizes ranking; a new user gets query order
6. build_engine wires in-memory or JSON centroid stores from settings
7. Judge provider: JUDGE_PROVIDER wins, else the scoring config's judge.provider

Run:
----
    pytest tests/test_engine.py -v
"""

import asyncio
import logging

import pytest

from conftest import FRAMEWORK_TEXT, PLAIN_TEXT, StubJudge, make_chunk, unit
from signal_engine import EngineSettings, build_engine
from signal_engine.errors import InvalidChunkError
from signal_engine.models import HeuristicBuckets, ScoringMethod
from signal_engine.services import InMemoryCentroidStore, JsonCentroidStore
from signal_engine.stages import JudgeAdapter, ScoringCascade


def run(coro):
    return asyncio.run(coro)


class TestScoring:
    def test_idempotent(self, engine, chunk_store):
        chunk = make_chunk("c1", FRAMEWORK_TEXT, unit(1, 0, 0, 0))
        chunk_store.put(chunk)
        first = run(engine.score(chunk, "u1"))
        second = run(engine.score(chunk, "u1"))
        assert first == second
        assert len(engine.decisions) == 1

    def test_same_chunk_different_users(self, engine):
        chunk = make_chunk("c1", FRAMEWORK_TEXT)
        a = run(engine.score(chunk, "u1"))
        b = run(engine.score(chunk, "u2"))
        assert a.id != b.id
        assert len(engine.decisions) == 2

    def test_concurrent_same_pair(self, engine):
        chunk = make_chunk("c1", FRAMEWORK_TEXT)

        async def both():
            return await asyncio.gather(engine.score(chunk, "u1"), engine.score(chunk, "u1"))

        first, second = run(both())
        assert first.id == second.id
        assert len(engine.decisions) == 1

    def test_dict_chunk_accepted(self, engine):
        decision = run(engine.score({"id": "c9", "text": FRAMEWORK_TEXT}, "u1"))
        assert decision.chunk_id == "c9"

    def test_empty_text_not_stored(self, engine):
        with pytest.raises(InvalidChunkError):
            run(engine.score(make_chunk("c1", ""), "u1"))
        assert len(engine.decisions) == 0

    def test_judge_failure_terminal(self, config, chunk_store):
        def borderline(text, cfg):
            return HeuristicBuckets(overall_score=0.40, word_count=len(text.split()))

        judge = StubJudge(exc=RuntimeError("upstream 503"))
        cascade = ScoringCascade(JudgeAdapter(judge, config), config, extractor=borderline)
        engine = build_engine(EngineSettings(), judge_fn=judge, chunks=chunk_store, config=config)
        engine.cascade = cascade
        decision = run(engine.score(make_chunk("c1", PLAIN_TEXT), "u1"))
        assert decision.method == ScoringMethod.LLM
        assert decision.score == 50
        assert decision.judge.fallback is True

    def test_score_many(self, engine):
        chunks = [make_chunk(f"c{i}", FRAMEWORK_TEXT) for i in range(3)]
        decisions = run(engine.score_many(chunks, "u1"))
        assert [d.chunk_id for d in decisions] == ["c0", "c1", "c2"]

    def test_score_many_accepts_dicts(self, engine):
        mixed = [{"id": "d1", "text": FRAMEWORK_TEXT}, make_chunk("d2", FRAMEWORK_TEXT)]
        decisions = run(engine.score_many(mixed, "u1"))
        assert [d.chunk_id for d in decisions] == ["d1", "d2"]

    def test_stored_decision_logged_as_summary(self, engine, caplog):
        with caplog.at_level(logging.INFO, logger="signal_engine.engine"):
            decision = run(engine.score(make_chunk("c1", FRAMEWORK_TEXT), "u1"))
        summary = decision.summary()
        assert summary["chunk_id"] == "c1"
        assert summary["method"] == "heuristic"
        assert summary["passed"] is True
        assert "DECISION_STORED" in caplog.text
        assert decision.id in caplog.text


class TestNoveltyHistory:
    def test_history_from_passed_decisions(self, engine, chunk_store):
        emb = unit(1, 0, 0, 0)
        seen = [make_chunk(f"h{i}", FRAMEWORK_TEXT, emb) for i in range(6)]
        chunk_store.put_many(seen)
        run(engine.score_many(seen, "u1"))

        history = engine.novelty_history("u1")
        assert len(history) == 6
        assert len(engine.novelty_history("u1", exclude_chunk_id="h0")) == 5
        assert engine.novelty_history("u2") == []

        repeat = make_chunk("new", FRAMEWORK_TEXT, emb)
        decision = run(engine.score(repeat, "u1"))
        assert decision.novelty.cluster_size == 6
        assert decision.novelty.is_duplicate is True
        assert decision.score < decision.raw_score
        assert decision.passed is True

    def test_failed_decisions_not_in_history(self, engine, chunk_store):
        chunk = make_chunk("p1", PLAIN_TEXT, unit(1, 0, 0, 0))
        chunk_store.put(chunk)
        run(engine.score(chunk, "u1"))
        assert engine.novelty_history("u1") == []


class TestPersonalization:
    def test_feedback_personalizes_ranking(self, engine, chunk_store):
        liked = make_chunk("liked", FRAMEWORK_TEXT, unit(1, 0, 0, 0))
        chunk_store.put(liked)
        decision = run(engine.score(liked, "u1"))
        candidates = [
            {"chunk": {"id": "a", "embedding": unit(0, 1, 0, 0)}, "query_similarity": 0.90},
            {"chunk": {"id": "b", "embedding": unit(1, 0, 0, 0)}, "query_similarity": 0.85},
        ]

        assert [r.chunk.id for r in engine.rank(candidates, "u1")] == ["a", "b"]
        assert engine.record_feedback(decision.id, "saved") is True
        assert engine.record_feedback(decision.id, "saved") is False
        assert [r.chunk.id for r in engine.rank(candidates, "u1")] == ["b", "a"]
        assert [r.chunk.id for r in engine.rank(candidates, "u2")] == ["a", "b"]

    def test_recompute_and_events(self, engine, chunk_store):
        chunk = make_chunk("c1", FRAMEWORK_TEXT, unit(0, 0, 1, 0))
        chunk_store.put(chunk)
        run(engine.score(chunk, "u1"))
        assert engine.handle_event({"userId": "u1", "chunkId": "c1", "action": "skipped"}) is True
        centroid = engine.recompute_centroid("u1")
        assert centroid.vector == pytest.approx([0.0, 0.0, -0.1, 0.0])
        assert centroid.skipped_count == 1


class TestBuildEngine:
    def test_in_memory_default(self, config):
        engine = build_engine(EngineSettings(), judge_fn=StubJudge(), config=config)
        assert isinstance(engine.centroids, InMemoryCentroidStore)
        assert engine.judge_cost_usd == 0.0

    def test_json_store_from_settings(self, config, tmp_path):
        settings = EngineSettings(centroid_store_path=tmp_path / "centroids.json")
        engine = build_engine(settings, judge_fn=StubJudge(), config=config)
        assert isinstance(engine.centroids, JsonCentroidStore)

    def test_scoring_config_from_file(self, tmp_path):
        path = tmp_path / "scoring.json"
        path.write_text('{"config_version": "7", "embedding_dimensions": 4}')
        engine = build_engine(EngineSettings(scoring_config_path=path), judge_fn=StubJudge())
        assert engine.config.config_version == "7"
        assert engine.config.embedding_dimensions == 4

    def test_provider_from_scoring_config(self, tmp_path, monkeypatch, caplog):
        for env_var in ("OPENROUTER_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "ANTHROPIC_API_KEY"):
            monkeypatch.delenv(env_var, raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        path = tmp_path / "scoring.json"
        path.write_text('{"embedding_dimensions": 4, "judge": {"provider": "anthropic"}}')
        with caplog.at_level(logging.WARNING, logger="signal_engine.engine"):
            build_engine(EngineSettings(scoring_config_path=path))
        assert "JUDGE_KEY_MISSING provider=anthropic available=['openai']" in caplog.text

    def test_env_provider_overrides_scoring_config(self, tmp_path, monkeypatch, caplog):
        monkeypatch.setenv("GEMINI_API_KEY", "g-test")
        path = tmp_path / "scoring.json"
        path.write_text('{"judge": {"provider": "anthropic"}}')
        settings = EngineSettings(judge_provider="gemini", scoring_config_path=path)
        with caplog.at_level(logging.INFO, logger="signal_engine.engine"):
            build_engine(settings)
        assert "ENGINE_BUILT provider=gemini" in caplog.text
        assert "JUDGE_KEY_MISSING" not in caplog.text
