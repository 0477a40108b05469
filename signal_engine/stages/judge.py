"""
Judge adapter: wraps the external judge function for borderline chunks.

Validates the loosely structured remote response against a strict schema and
converts every failure (timeout, exception, malformed response, quota error)
into a neutral fallback so the cascade always completes. Tracks per-call and
cumulative cost for budget accounting.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..judges.client import JudgeFunction
from ..judges.prompt import JUDGE_RUBRIC
from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.decision import JudgeBuckets, JudgeResult, JudgeUsage

logger = logging.getLogger(__name__)

FALLBACK_REASONING = "judge unavailable"


class JudgeResponse(BaseModel):
    """Boundary schema for the remote judge's structured output."""

    model_config = ConfigDict(strict=True, extra="ignore")

    framework_clarity: float = Field(alias="frameworkClarity", ge=0, le=100)
    insight_novelty: float = Field(alias="insightNovelty", ge=0, le=100)
    tactical_specificity: float = Field(alias="tacticalSpecificity", ge=0, le=100)
    reasoning_depth: float = Field(alias="reasoningDepth", ge=0, le=100)
    overall_score: float = Field(alias="overallScore", ge=0, le=100)
    reasoning: str


def _parse_usage(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, Mapping):
        return {"prompt_tokens": 0, "completion_tokens": 0, "cost_usd": 0.0}
    return {
        "prompt_tokens": int(raw.get("prompt_tokens") or 0),
        "completion_tokens": int(raw.get("completion_tokens") or 0),
        "cost_usd": float(raw.get("cost_usd") or 0.0),
    }


def split_reasons(reasoning: str) -> List[str]:
    """One reason per non-empty line of the judge's rationale."""
    return [line.strip() for line in reasoning.splitlines() if line.strip()]


class JudgeAdapter:
    """
    Runs the external judge with a per-attempt timeout and bounded retries.

    judge_fn: async (text, rubric) -> mapping with the RESPONSE_SCHEMA fields and an
    optional "usage" entry. Schema mismatches are not retried; timeouts and errors are,
    up to config.judge_max_retries extra attempts. Caller cancellation propagates.
    """

    def __init__(
        self,
        judge_fn: JudgeFunction,
        config: ScoringConfig = DEFAULT_CONFIG,
        rubric: str = JUDGE_RUBRIC,
    ):
        self._judge_fn = judge_fn
        self._config = config
        self._rubric = rubric
        self.call_count = 0
        self.total_cost_usd = 0.0

    async def judge(self, text: str, chunk_id: Optional[str] = None) -> JudgeResult:
        config = self._config
        max_attempts = 1 + max(0, config.judge_max_retries)
        prompt_tokens = 0
        completion_tokens = 0
        cost = 0.0
        error: Optional[str] = None
        attempts = 0

        for attempt in range(1, max_attempts + 1):
            attempts = attempt
            self.call_count += 1
            try:
                raw = await asyncio.wait_for(
                    self._judge_fn(text, self._rubric),
                    timeout=config.judge_timeout_seconds,
                )
            except asyncio.TimeoutError:
                error = "TimeoutError"
                logger.warning(
                    "[judge_fallback] JUDGE_TIMEOUT chunk_id=%s attempt=%s timeout=%ss",
                    chunk_id, attempt, config.judge_timeout_seconds,
                )
            except Exception as e:
                error = type(e).__name__
                logger.warning(
                    "[judge_fallback] JUDGE_ERROR chunk_id=%s attempt=%s error=%s detail=%s",
                    chunk_id, attempt, error, e,
                )
            else:
                if isinstance(raw, Mapping):
                    usage = _parse_usage(raw.get("usage"))
                    prompt_tokens += usage["prompt_tokens"]
                    completion_tokens += usage["completion_tokens"]
                    cost += usage["cost_usd"]
                try:
                    if not isinstance(raw, Mapping):
                        raise TypeError(f"judge returned {type(raw).__name__}, expected mapping")
                    parsed = JudgeResponse.model_validate(dict(raw))
                except (ValidationError, TypeError) as e:
                    error = type(e).__name__
                    logger.warning(
                        "[judge_fallback] JUDGE_MALFORMED_RESPONSE chunk_id=%s attempt=%s error=%s",
                        chunk_id, attempt, error,
                    )
                    break
                usage_model = JudgeUsage(
                    prompt_tokens=prompt_tokens,
                    completion_tokens=completion_tokens,
                    cost_usd=cost,
                    attempts=attempts,
                )
                self.total_cost_usd += cost
                return self._result_from(parsed, usage_model)

            if attempt < max_attempts and config.judge_retry_backoff_seconds > 0:
                await asyncio.sleep(config.judge_retry_backoff_seconds * attempt)

        self.total_cost_usd += cost
        usage_model = JudgeUsage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost,
            attempts=attempts,
        )
        return self.fallback(error or "JudgeError", usage_model)

    async def judge_batch(self, texts: List[str]) -> List[JudgeResult]:
        """Judge several texts concurrently; each one degrades independently."""
        return list(await asyncio.gather(*(self.judge(t) for t in texts)))

    @staticmethod
    def _result_from(parsed: JudgeResponse, usage: JudgeUsage) -> JudgeResult:
        reasoning = parsed.reasoning.strip()
        return JudgeResult(
            score=parsed.overall_score,
            buckets=JudgeBuckets(
                framework_clarity=parsed.framework_clarity,
                insight_novelty=parsed.insight_novelty,
                tactical_specificity=parsed.tactical_specificity,
                reasoning_depth=parsed.reasoning_depth,
                overall_score=parsed.overall_score,
            ),
            reasoning=reasoning,
            reasons=split_reasons(reasoning),
            usage=usage,
        )

    def fallback(self, error: str, usage: Optional[JudgeUsage] = None) -> JudgeResult:
        """Neutral verdict used whenever the remote judge cannot be trusted."""
        neutral = self._config.judge_fallback_score
        return JudgeResult(
            score=neutral,
            buckets=JudgeBuckets(
                framework_clarity=neutral,
                insight_novelty=neutral,
                tactical_specificity=neutral,
                reasoning_depth=neutral,
                overall_score=neutral,
            ),
            reasoning=FALLBACK_REASONING,
            reasons=[FALLBACK_REASONING],
            usage=usage or JudgeUsage(),
            fallback=True,
            error=error,
        )
