"""
Personalized Ranker Tests

Test Scenarios:
---------------
1. No centroid → pure query-similarity order
2. Centroid without saves behaves like no centroid
3. Centroid blend (0.7 query / 0.3 centroid) can reorder candidates
4. Candidates at or below min_final_score are dropped; top_k truncates
5. Candidate without an embedding gets centroid similarity 0

Run:
----
    pytest tests/test_ranking.py -v
"""

import pytest

from conftest import make_chunk, unit
from signal_engine.models import RankCandidate, UserCentroid
from signal_engine.stages.ranking import blend_score, rank_candidates


def candidate(chunk_id, query_similarity, embedding=None):
    return RankCandidate(
        chunk=make_chunk(chunk_id, "text", embedding),
        query_similarity=query_similarity,
    )


def centroid(vector, saved_count=1):
    return UserCentroid(user_id="u1", vector=vector, saved_count=saved_count)


CANDIDATES = [
    candidate("a", 0.90, unit(0, 1, 0, 0)),
    candidate("b", 0.85, unit(1, 0, 0, 0)),
    candidate("c", 0.60, unit(1, 0, 0, 0)),
    candidate("d", 0.40, unit(0, 0, 1, 0)),
]


class TestColdStart:
    def test_no_centroid_keeps_query_order(self, config):
        ranked = rank_candidates(CANDIDATES, None, config, top_k=10)
        assert [r.chunk.id for r in ranked] == ["a", "b", "c", "d"]
        assert all(r.centroid_similarity is None for r in ranked)
        assert [r.final_score for r in ranked] == [0.90, 0.85, 0.60, 0.40]

    def test_centroid_without_saves_ignored(self, config):
        skip_only = centroid(unit(-0.1, 0, 0, 0), saved_count=0)
        ranked = rank_candidates(CANDIDATES, skip_only, config, top_k=10)
        assert [r.chunk.id for r in ranked] == ["a", "b", "c", "d"]


class TestPersonalized:
    def test_centroid_reorders(self, config):
        ranked = rank_candidates(CANDIDATES, centroid(unit(1, 0, 0, 0)), config, top_k=10)
        assert [r.chunk.id for r in ranked][:2] == ["b", "c"]
        top = ranked[0]
        assert top.centroid_similarity == pytest.approx(1.0)
        assert top.final_score == pytest.approx(0.7 * 0.85 + 0.3 * 1.0)

    def test_blend_score(self, config):
        assert blend_score(0.5, None, config) == 0.5
        assert blend_score(0.5, 1.0, config) == pytest.approx(0.65)

    def test_missing_embedding_uses_zero(self, config):
        ranked = rank_candidates([candidate("x", 0.8)], centroid(unit(1, 0, 0, 0)), config)
        assert ranked[0].centroid_similarity == 0.0
        assert ranked[0].final_score == pytest.approx(0.56)


class TestLimits:
    def test_default_top_k(self, config):
        many = [candidate(f"c{i}", 0.9 - i * 0.01, unit(1, 0, 0, 0)) for i in range(8)]
        assert len(rank_candidates(many, None, config)) == config.default_top_k

    def test_floor_is_exclusive(self, config):
        low = [candidate("keep", 0.11), candidate("edge", 0.1), candidate("drop", 0.05)]
        ranked = rank_candidates(low, None, config)
        assert [r.chunk.id for r in ranked] == ["keep"]

    def test_empty_and_zero_top_k(self, config):
        assert rank_candidates([], None, config) == []
        assert rank_candidates(CANDIDATES, None, config, top_k=0) == []
