"""
LLM judge client using LiteLLM

Default implementation of the external judge function: text + rubric in,
bucket-score mapping out. Supports OpenRouter, OpenAI, Gemini and Anthropic
through a unified async interface.

Usage:
    from signal_engine.judges.client import make_litellm_judge

    judge = make_litellm_judge(provider="openrouter", temperature=0.0)
    result = await judge(chunk_text, rubric)
    # {"frameworkClarity": 62, ..., "overallScore": 55, "reasoning": "...",
    #  "usage": {"prompt_tokens": 812, "completion_tokens": 96, "cost_usd": 0.0004}}
"""

import json
import logging
import os
import re
from typing import Any, Awaitable, Callable, Dict, List

import litellm
from litellm import acompletion

from ..errors import JudgeError
from .prompt import build_judge_prompt

logger = logging.getLogger(__name__)

# Suppress LiteLLM's verbose logging
litellm.suppress_debug_info = True

# Drop unsupported params for models with restrictions (e.g. fixed temperature)
litellm.drop_params = True

JudgeFunction = Callable[[str, str], Awaitable[Dict[str, Any]]]


# ============================================================================
# Model Configuration
# ============================================================================

SUPPORTED_MODELS: Dict[str, str] = {
    "openrouter": "openrouter/moonshotai/kimi-k2-0905",
    "openai": "gpt-5-mini",
    "gemini": "gemini/gemini-2.5-flash",
    "anthropic": "claude-sonnet-4-5",
}

# Environment variable names for API keys
API_KEY_ENV_VARS: Dict[str, str] = {
    "openrouter": "OPENROUTER_API_KEY",
    "openai": "OPENAI_API_KEY",
    "gemini": "GEMINI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
}

# Fields the judge must return, with their JSON types
RESPONSE_SCHEMA: Dict[str, str] = {
    "frameworkClarity": "number",
    "insightNovelty": "number",
    "tacticalSpecificity": "number",
    "reasoningDepth": "number",
    "overallScore": "number",
    "reasoning": "string",
}


# ============================================================================
# Provider Availability
# ============================================================================

def get_available_providers() -> List[str]:
    """Providers with an API key configured in the environment."""
    return [p for p, env_var in API_KEY_ENV_VARS.items() if os.getenv(env_var)]


def is_provider_available(provider: str) -> bool:
    """Check if a specific provider has an API key configured."""
    env_var = API_KEY_ENV_VARS.get(provider)
    return bool(env_var and os.getenv(env_var))


def get_model_for_provider(provider: str) -> str:
    """
    Get the LiteLLM model identifier for a provider.

    Raises:
        ValueError: If provider is not supported
    """
    model = SUPPORTED_MODELS.get(provider)
    if not model:
        raise ValueError(f"Unsupported provider: {provider}. "
                         f"Supported: {list(SUPPORTED_MODELS.keys())}")
    return model


# ============================================================================
# JSON Parsing
# ============================================================================

def parse_json_response(content: str) -> Dict[str, Any]:
    """
    Parse JSON from LLM response, handling various formats.

    LLMs may return JSON in different formats:
    - Direct JSON object
    - JSON wrapped in markdown code blocks
    - JSON with surrounding text

    Raises:
        ValueError: If no valid JSON object is found
    """
    content = (content or "").strip()

    try:
        parsed = json.loads(content)
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    match = re.search(r'```(?:json)?\s*(\{[\s\S]*?\})\s*```', content)
    if match:
        try:
            return json.loads(match.group(1))
        except json.JSONDecodeError:
            pass

    match = re.search(r'\{[\s\S]*\}', content)
    if match:
        try:
            return json.loads(match.group())
        except json.JSONDecodeError:
            pass

    raise ValueError(f"Could not parse JSON from response: {content[:200]}...")


def validate_response_schema(result: Dict[str, Any], schema: Dict[str, str]) -> None:
    """
    Validate that response contains expected fields with the expected JSON types.

    Raises:
        ValueError: If required fields are missing or wrong type
    """
    for field, expected_type in schema.items():
        if field not in result:
            raise ValueError(f"Response missing required field: {field}")
        value = result[field]
        if expected_type == "number":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"Field '{field}' expected number, got {type(value).__name__}")
        elif expected_type == "string":
            if not isinstance(value, str):
                raise ValueError(f"Field '{field}' expected string, got {type(value).__name__}")


# ============================================================================
# Usage / Cost
# ============================================================================

def extract_usage(response: Any) -> Dict[str, Any]:
    """Token counts and USD cost for a completion; cost is 0.0 when the model is unpriced."""
    usage = getattr(response, "usage", None)
    prompt_tokens = int(getattr(usage, "prompt_tokens", 0) or 0)
    completion_tokens = int(getattr(usage, "completion_tokens", 0) or 0)
    try:
        cost = float(litellm.completion_cost(completion_response=response) or 0.0)
    except Exception as e:
        logger.debug("[judge_cost] COST_UNAVAILABLE error=%s", type(e).__name__)
        cost = 0.0
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "cost_usd": cost,
    }


# ============================================================================
# LLM API Calls
# ============================================================================

async def call_judge_model(
    provider: str,
    prompt: str,
    temperature: float = 0.0,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """
    Call the judge model and return its parsed JSON verdict plus a "usage" entry.

    Raises:
        ValueError: If provider is unsupported
        JudgeError: If the provider has no key or the response does not parse
        Exception: If the LiteLLM call fails (timeout, rate limit, API error)
    """
    model = get_model_for_provider(provider)
    if not is_provider_available(provider):
        raise JudgeError(f"No API key configured for {provider}. "
                         f"Set {API_KEY_ENV_VARS[provider]} environment variable.")

    response = await acompletion(
        model=model,
        messages=[{"role": "user", "content": prompt}],
        temperature=temperature,
        response_format={"type": "json_object"},
        timeout=timeout,
    )
    content = response.choices[0].message.content
    try:
        result = parse_json_response(content)
        validate_response_schema(result, RESPONSE_SCHEMA)
    except ValueError as e:
        raise JudgeError(str(e)) from e
    result["usage"] = extract_usage(response)
    return result


def make_litellm_judge(
    provider: str = "openrouter",
    temperature: float = 0.0,
    timeout: float = 30.0,
) -> JudgeFunction:
    """Build a judge(text, rubric) function bound to one provider and temperature."""
    async def judge(text: str, rubric: str) -> Dict[str, Any]:
        prompt = build_judge_prompt(text, rubric)
        return await call_judge_model(provider, prompt, temperature=temperature, timeout=timeout)

    return judge


__all__ = [
    "JudgeFunction",
    "call_judge_model",
    "make_litellm_judge",
    "get_available_providers",
    "is_provider_available",
    "get_model_for_provider",
    "parse_json_response",
    "validate_response_schema",
    "extract_usage",
    "SUPPORTED_MODELS",
    "API_KEY_ENV_VARS",
    "RESPONSE_SCHEMA",
]
