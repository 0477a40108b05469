"""
Scoring Cascade Tests

Tests the state machine transitions and the decisions each path produces.

Test Scenarios:
---------------
A. 40-word chunk → length-filter, score 15, not passed, no stage data
B. Framework-rich chunk → heuristic pass, judge never called
C. Borderline composite 0.40 with judge overall 55 → llm, passed, score 55
D. Judge failure on a borderline chunk → llm with the neutral 50
E. Novelty adjusts the score but never the pass flag
F. Empty text and wrong-dimension embeddings are rejected

Run:
----
    pytest tests/test_cascade.py -v
"""

import asyncio

import pytest

from conftest import FRAMEWORK_TEXT, PLAIN_TEXT, SHORT_TEXT, StubJudge, make_chunk, unit
from signal_engine.errors import EmbeddingDimensionError, InvalidChunkError
from signal_engine.models import CascadeState, HeuristicBuckets, ScoringMethod
from signal_engine.stages.cascade import (
    ScoringCascade,
    after_heuristic,
    after_length_check,
    judge_passes,
)
from signal_engine.stages.judge import JudgeAdapter


def borderline_extractor(text, config):
    return HeuristicBuckets(overall_score=0.40, word_count=len(text.split()))


def build(config, judge, extractor=None):
    if extractor is None:
        return ScoringCascade(JudgeAdapter(judge, config), config)
    return ScoringCascade(JudgeAdapter(judge, config), config, extractor=extractor)


def run(coro):
    return asyncio.run(coro)


class TestTransitions:
    def test_length_check(self, config):
        assert after_length_check(79, config) == CascadeState.DONE
        assert after_length_check(80, config) == CascadeState.HEURISTIC

    @pytest.mark.parametrize(
        "score,expected",
        [
            (52, CascadeState.HEURISTIC_PASS),
            (90, CascadeState.HEURISTIC_PASS),
            (51, CascadeState.JUDGE),
            (29, CascadeState.JUDGE),
            (28, CascadeState.HEURISTIC_FAIL),
            (0, CascadeState.HEURISTIC_FAIL),
        ],
    )
    def test_heuristic_thresholds_inclusive(self, config, score, expected):
        assert after_heuristic(score, config) == expected

    def test_judge_threshold_inclusive(self, config):
        assert judge_passes(48, config) is True
        assert judge_passes(47.9, config) is False

    def test_thresholds_come_from_config(self, config):
        strict = config.model_copy(update={"heuristic_high_threshold": 80.0})
        assert after_heuristic(70, strict) == CascadeState.JUDGE


class TestPaths:
    def test_short_chunk_length_filter(self, config):
        judge = StubJudge()
        decision = run(build(config, judge).run(make_chunk("c1", SHORT_TEXT), "u1"))
        assert decision.method == ScoringMethod.LENGTH_FILTER
        assert decision.score == 15
        assert decision.passed is False
        assert decision.heuristic is None
        assert decision.judge is None
        assert decision.novelty is None
        assert decision.word_count == 40
        assert judge.calls == 0

    def test_heuristic_pass_skips_judge(self, config):
        judge = StubJudge()
        decision = run(build(config, judge).run(make_chunk("c1", FRAMEWORK_TEXT), "u1"))
        assert decision.method == ScoringMethod.HEURISTIC
        assert decision.passed is True
        assert decision.score >= 52
        assert decision.judge is None
        assert decision.heuristic is not None
        assert judge.calls == 0

    def test_heuristic_fail(self, config):
        judge = StubJudge()
        decision = run(build(config, judge).run(make_chunk("c1", PLAIN_TEXT), "u1"))
        assert decision.method == ScoringMethod.HEURISTIC
        assert decision.passed is False
        assert decision.score == 0
        assert judge.calls == 0

    def test_borderline_goes_to_judge(self, config):
        judge = StubJudge()
        cascade = build(config, judge, extractor=borderline_extractor)
        decision = run(cascade.run(make_chunk("c1", PLAIN_TEXT), "u1"))
        assert decision.method == ScoringMethod.LLM
        assert decision.borderline is True
        assert decision.passed is True
        assert decision.score == 55
        assert decision.judge.buckets.overall_score == 55
        assert decision.heuristic.overall_score == pytest.approx(0.40)
        assert judge.calls == 1

    def test_judge_below_threshold_fails(self, config):
        judge = StubJudge(response={
            "frameworkClarity": 30, "insightNovelty": 30, "tacticalSpecificity": 30,
            "reasoningDepth": 30, "overallScore": 35, "reasoning": "shallow",
        })
        decision = run(build(config, judge, borderline_extractor).run(make_chunk("c1", PLAIN_TEXT), "u1"))
        assert decision.method == ScoringMethod.LLM
        assert decision.passed is False

    def test_judge_failure_yields_neutral_decision(self, config):
        judge = StubJudge(exc=TimeoutError("remote timeout"))
        decision = run(build(config, judge, borderline_extractor).run(make_chunk("c1", PLAIN_TEXT), "u1"))
        assert decision.method == ScoringMethod.LLM
        assert decision.score == 50
        assert decision.judge.fallback is True
        assert decision.passed is True


class TestNoveltyStage:
    def test_penalty_lowers_score_keeps_pass(self, config):
        emb = unit(1, 0, 0, 0)
        cascade = build(config, StubJudge())
        decision = run(cascade.run(make_chunk("c1", FRAMEWORK_TEXT, emb), "u1", [emb] * 6))
        assert decision.novelty is not None
        assert decision.novelty.adjustment < 0
        assert decision.score == pytest.approx(decision.raw_score + decision.novelty.adjustment)
        assert decision.passed is True

    def test_bonus_clamped_at_100(self, config):
        def perfect(text, cfg):
            return HeuristicBuckets(overall_score=1.0, word_count=len(text.split()))

        cascade = build(config, StubJudge(), extractor=perfect)
        chunk = make_chunk("c1", PLAIN_TEXT, unit(1, 0, 0, 0))
        decision = run(cascade.run(chunk, "u1", [unit(0, 1, 0, 0)] * 6))
        assert decision.raw_score == 100
        assert decision.score == 100

    def test_no_embedding_skips_novelty(self, config):
        decision = run(build(config, StubJudge()).run(make_chunk("c1", FRAMEWORK_TEXT), "u1", [unit(1, 0, 0, 0)] * 6))
        assert decision.novelty is None
        assert decision.score == decision.raw_score

    def test_disabled_novelty(self, config):
        off = config.model_copy(update={"novelty_enabled": False})
        emb = unit(1, 0, 0, 0)
        decision = run(build(off, StubJudge()).run(make_chunk("c1", FRAMEWORK_TEXT, emb), "u1", [emb] * 6))
        assert decision.novelty is None

    def test_length_filter_never_gets_novelty(self, config):
        emb = unit(1, 0, 0, 0)
        decision = run(build(config, StubJudge()).run(make_chunk("c1", SHORT_TEXT, emb), "u1", [emb] * 6))
        assert decision.novelty is None
        assert decision.score == 15


class TestValidation:
    def test_empty_text_rejected(self, config):
        with pytest.raises(InvalidChunkError):
            run(build(config, StubJudge()).run(make_chunk("c1", "   \n "), "u1"))

    def test_wrong_dimension_rejected(self, config):
        with pytest.raises(EmbeddingDimensionError):
            run(build(config, StubJudge()).run(make_chunk("c1", FRAMEWORK_TEXT, [1.0, 0.0]), "u1"))

    def test_config_version_stamped(self, config):
        v2 = config.model_copy(update={"config_version": "2"})
        decision = run(build(v2, StubJudge()).run(make_chunk("c1", FRAMEWORK_TEXT), "u1"))
        assert decision.config_version == "2"
