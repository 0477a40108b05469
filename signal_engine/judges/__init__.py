"""Default external judge: LiteLLM client and the strict evaluation rubric."""

from .client import JudgeFunction, make_litellm_judge, parse_json_response
from .prompt import JUDGE_RUBRIC, build_judge_prompt

__all__ = [
    "JUDGE_RUBRIC",
    "JudgeFunction",
    "build_judge_prompt",
    "make_litellm_judge",
    "parse_json_response",
]
