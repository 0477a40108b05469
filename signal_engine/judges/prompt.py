"""
Judge rubric and prompt construction.

The rubric is deliberately strict: most content should land 30-50 and only
exceptional content should exceed 70.
"""

JUDGE_RUBRIC = """You are evaluating podcast and article excerpts for a reader who saves only \
ideas they can reuse.

WHAT THEY SAVE:
1. Named frameworks with specific labels
   - "We call this hyperfluency" - gives it a name they can reuse
   - "Idea maze", "sea of sameness" - vivid, reusable concepts
2. Counter-intuitive insights that flip conventional wisdom, with the reasoning shown
3. Specific tactics with deep reasoning (the "why", not just the "what")
4. Assessment criteria for judgment ("look for X + Y + Z in a founder")

WHAT THEY SKIP (even if topically relevant):
1. Generic observations without specificity ("incentives matter")
2. Biographical details without a generalizable lesson
3. Academic density without a practical framework
4. Meta-defensive rambling and excessive caveats
5. Lists without synthesis

SCORING GUIDANCE:
- Generic/obvious: 10-25
- Topically relevant but shallow: 30-45
- Good insight but incomplete: 50-60
- Save-worthy: 60-75 (must meet a criterion above)
- Exceptional: 75-85 (multiple frameworks + deep reasoning)
- Groundbreaking: 85+ (rare)

Most excerpts belong between 30 and 50. Only score above 70 for exceptional content.
When in doubt, default to 40.

Score each dimension 0-100, then give an overall score 0-100."""

RESPONSE_FORMAT = """Respond with a single JSON object:
{
  "frameworkClarity": <0-100>,
  "insightNovelty": <0-100>,
  "tacticalSpecificity": <0-100>,
  "reasoningDepth": <0-100>,
  "overallScore": <0-100>,
  "reasoning": "<one or more short lines explaining the scores>"
}"""


def build_judge_prompt(text: str, rubric: str = JUDGE_RUBRIC) -> str:
    """Rubric, response format, then the excerpt."""
    return f"{rubric}\n\n{RESPONSE_FORMAT}\n\nEXCERPT:\n{text.strip()}"
