"""
Engine configuration — cascade thresholds, feature weights, judge, novelty, centroid, ranking.

ScoringConfig defaults are defined here. Callers may pass a dict (e.g. loaded from a
JSON file); from_dict() flattens its sections and merges them with these defaults.
"""

import json
from pathlib import Path
from typing import Dict, Literal, Optional, Union

from pydantic import BaseModel, model_validator


class ScoringConfig(BaseModel):
    """Configuration for the scoring cascade and personalization loop."""

    # Bumped whenever thresholds change; stamped on every decision.
    config_version: str = "1"

    # Length of every chunk, centroid and query embedding.
    embedding_dimensions: int = 1536

    # -------------------------------------------------------------------------
    # Cascade thresholds (inclusive on the pass side)
    # -------------------------------------------------------------------------

    # Chunks with fewer words are rejected before any other work.
    length_min_words: int = 80
    # Score recorded for length-filtered chunks. Below every save threshold.
    length_filter_score: float = 15.0
    # Heuristic score (0-100) at or above which a chunk passes without the judge.
    heuristic_high_threshold: float = 52.0
    # Heuristic score (0-100) at or below which a chunk fails without the judge.
    heuristic_low_threshold: float = 28.0
    # Judge overall score at or above which a borderline chunk passes.
    judge_pass_threshold: float = 48.0

    # -------------------------------------------------------------------------
    # Feature extractor
    # composite = w_framework * framework + w_insight * insight
    #           + w_specificity * specificity + w_quality * quality
    # -------------------------------------------------------------------------

    weight_framework: float = 0.4
    weight_insight: float = 0.3
    weight_specificity: float = 0.2
    weight_quality: float = 0.1
    # Zero out sponsor reads and episode intros/outros.
    filter_promotional: bool = True

    # -------------------------------------------------------------------------
    # Judge adapter
    # -------------------------------------------------------------------------

    judge_provider: str = "openrouter"
    # Fixed for repeatability; the remote service may still vary.
    judge_temperature: float = 0.0
    # Per-attempt timeout in seconds.
    judge_timeout_seconds: float = 30.0
    # Extra attempts after the first one fails with a transient error.
    judge_max_retries: int = 2
    # Sleep before retry n is n * backoff.
    judge_retry_backoff_seconds: float = 0.5
    # Bucket value used when the judge is unavailable.
    judge_fallback_score: float = 50.0

    # -------------------------------------------------------------------------
    # Novelty detector
    # -------------------------------------------------------------------------

    novelty_enabled: bool = True
    # Most recent passed/saved decisions used as the reference set.
    novelty_lookback: int = 100
    # Below this history size no adjustment is applied (cold start).
    novelty_min_history: int = 5
    # Nearest neighbours averaged for avg_similarity.
    novelty_top_k: int = 10
    # Similarity at or above which a history entry belongs to the chunk's cluster.
    novelty_cluster_threshold: float = 0.80
    # Max similarity below which a clusterless chunk counts as novel.
    novelty_novel_threshold: float = 0.50
    novelty_bonus: float = 5.0
    novelty_base_penalty: float = 5.0
    novelty_penalty_per_member: float = 3.0
    # Growth of the penalty with cluster size: "linear" or "log".
    novelty_damping: Literal["linear", "log"] = "log"
    novelty_penalty_floor: float = -20.0
    novelty_bonus_ceiling: float = 5.0
    # Max similarity at or above which the chunk is flagged as a duplicate.
    duplicate_threshold: float = 0.90

    # -------------------------------------------------------------------------
    # Centroid
    # -------------------------------------------------------------------------

    # Constant rate at which a skip pushes the centroid away (beta).
    skip_rate: float = 0.1

    # -------------------------------------------------------------------------
    # Personalized ranking
    # final_score = weight_query * query_similarity + weight_centroid * centroid_similarity
    # -------------------------------------------------------------------------

    weight_query: float = 0.7
    weight_centroid: float = 0.3
    # Candidates with final_score at or below this are dropped.
    min_final_score: float = 0.1
    default_top_k: int = 5

    # -------------------------------------------------------------------------
    # Retention
    # -------------------------------------------------------------------------

    # Never-actioned decisions older than this are deleted by the cleanup job.
    retention_days: int = 90

    @model_validator(mode="after")
    def feature_weights_sum_to_one(self):
        total = (
            self.weight_framework
            + self.weight_insight
            + self.weight_specificity
            + self.weight_quality
        )
        if abs(total - 1.0) > 0.01:
            raise ValueError(f"Feature weights must sum to 1.0, got {total}")
        return self

    @model_validator(mode="after")
    def thresholds_are_ordered(self):
        if self.heuristic_low_threshold >= self.heuristic_high_threshold:
            raise ValueError(
                "heuristic_low_threshold must be below heuristic_high_threshold, got "
                f"{self.heuristic_low_threshold} >= {self.heuristic_high_threshold}"
            )
        if self.weight_query < 0 or self.weight_centroid < 0:
            raise ValueError("Ranking weights must be non-negative")
        if not 0.0 < self.skip_rate < 1.0:
            raise ValueError(f"skip_rate must be in (0, 1), got {self.skip_rate}")
        if self.embedding_dimensions <= 0:
            raise ValueError("embedding_dimensions must be positive")
        return self

    @property
    def feature_weights(self) -> Dict[str, float]:
        return {
            "framework": self.weight_framework,
            "insight": self.weight_insight,
            "specificity": self.weight_specificity,
            "quality": self.weight_quality,
        }

    @classmethod
    def from_dict(cls, config_dict: Dict) -> "ScoringConfig":
        """Create config from dictionary (e.g., loaded from JSON)."""
        flat = {}
        for key in ("config_version", "embedding_dimensions"):
            if key in config_dict:
                flat[key] = config_dict[key]
        if "cascade" in config_dict:
            flat.update(config_dict["cascade"])
        if "features" in config_dict:
            fw = dict(config_dict["features"])
            weights = fw.pop("weights", {})
            for name in ("framework", "insight", "specificity", "quality"):
                if name in weights:
                    flat[f"weight_{name}"] = weights[name]
            flat.update(fw)
        if "judge" in config_dict:
            flat.update({f"judge_{k}": v for k, v in config_dict["judge"].items()})
        if "novelty" in config_dict:
            nv = dict(config_dict["novelty"])
            if "enabled" in nv:
                flat["novelty_enabled"] = nv.pop("enabled")
            if "duplicate_threshold" in nv:
                flat["duplicate_threshold"] = nv.pop("duplicate_threshold")
            flat.update({f"novelty_{k}": v for k, v in nv.items()})
        if "centroid" in config_dict:
            flat.update(config_dict["centroid"])
        if "ranking" in config_dict:
            rk = config_dict["ranking"]
            if "query_weight" in rk:
                flat["weight_query"] = rk["query_weight"]
            if "centroid_weight" in rk:
                flat["weight_centroid"] = rk["centroid_weight"]
            if "min_final_score" in rk:
                flat["min_final_score"] = rk["min_final_score"]
            if "top_k" in rk:
                flat["default_top_k"] = rk["top_k"]
        if "retention" in config_dict:
            rt = config_dict["retention"]
            if "days" in rt:
                flat["retention_days"] = rt["days"]
        allowed = set(cls.model_fields)
        filtered = {k: v for k, v in flat.items() if k in allowed}
        return cls.model_validate(filtered)

    @classmethod
    def from_json_file(cls, path: Union[Path, str]) -> "ScoringConfig":
        """Load config from a JSON file with the same sections as from_dict."""
        with open(path) as f:
            return cls.from_dict(json.load(f))


DEFAULT_CONFIG = ScoringConfig()


def resolve_config(config: Optional["ScoringConfig"]) -> "ScoringConfig":
    """Return config or DEFAULT_CONFIG when none is provided."""
    return config if config is not None else DEFAULT_CONFIG
