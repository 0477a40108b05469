"""Scoring stages: features, judge, novelty, cascade; centroid arithmetic and ranking."""

from .cascade import ScoringCascade, after_heuristic, after_length_check, judge_passes
from .features import detect_promotional, extract_features, heuristic_score, score_heuristics
from .judge import JudgeAdapter
from .novelty import detect_novelty, is_duplicate
from .ranking import rank_candidates

__all__ = [
    "JudgeAdapter",
    "ScoringCascade",
    "after_heuristic",
    "after_length_check",
    "detect_novelty",
    "detect_promotional",
    "extract_features",
    "heuristic_score",
    "is_duplicate",
    "judge_passes",
    "rank_candidates",
    "score_heuristics",
]
