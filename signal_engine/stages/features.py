"""
Feature extractor: lexical heuristics that predict whether a chunk is worth surfacing.

Four sub-scores, each clamped to 0-1:
- framework: named concepts, conceptual labels, framework vocabulary, comparisons,
  analogies, definitions
- insight: contrarian language, causal reasoning, negations, questions, conditionals,
  challenge framing
- specificity: numbers, proper nouns, examples, step markers, actionable tactics
- quality: length tiers, sentence length balance, vocabulary richness

composite = weighted sum (ScoringConfig.feature_weights). Pure and deterministic;
every contributing signal is recorded as a reason string.
"""

import math
import re
from typing import List, Tuple

from ..models.config import DEFAULT_CONFIG, ScoringConfig
from ..models.decision import HeuristicBuckets
from ..utils.text import split_sentences, word_count

_I = re.IGNORECASE

# -----------------------------------------------------------------------------
# Promotional / non-content detection
# -----------------------------------------------------------------------------

AD_PATTERNS = [
    re.compile(r"\b(check out|visit|learn more at|sign up|get started|try|subscribe to)\b", _I),
    re.compile(r"\.(com|io|net|org)/[a-z\-_]", _I),
    re.compile(r"\b(sponsor|sponsored|brought to you|partner with|partnering with)\b", _I),
    re.compile(r"\b(member fdic|terms.*conditions apply|subject to)\b", _I),
    re.compile(r"\b(pricing|plans starting at)\b|\$\d+/month", _I),
    re.compile(r"\b(register|join (me|us)|save your spot|rsvp|inaugural)\b", _I),
    re.compile(r"\b(excited to (join|announce|share)|I'm (on stage|speaking at))\b", _I),
    re.compile(r"\b(event features|connect with peers|lineup of.*speakers)\b", _I),
]

INTRO_OUTRO_PATTERNS = [
    re.compile(r"\b(enjoy the episode|stick to the end|if you (stay|stick) (around|to)|let's (dive|jump) in)\b", _I),
    re.compile(r"\b(like for the algorithm|comment for|subscribe|hit the bell)\b", _I),
    re.compile(r"\b(that's why (I|we) (built|created|made))\s+\w+\.(com|io)", _I),
    re.compile(r"\b(in this episode|so in this episode|in today's episode)\b", _I),
    re.compile(r"\b(thanks for (coming on|having me)|hope you come back|include links)\b", _I),
    re.compile(r"\b(show notes|in the (description|comments))\b", _I),
    re.compile(r"\b(delivered.*over delivered|glad to be here|thank you for having me)\b", _I),
]

# -----------------------------------------------------------------------------
# Framework clarity
# -----------------------------------------------------------------------------

EXPLICIT_NAMING = re.compile(
    r"\b(we call (this|that|it)|this is called|known as|referred to as|term for|name for)\b", _I
)
QUOTED_LABEL = re.compile(r'"[A-Z][a-z]+(\s[A-Z][a-z]+)*"')
CAPITALIZED_PAIR = re.compile(r"\b[A-Z][a-z]+\s+[A-Z][a-z]+\b")
FRAMEWORK_MARKERS = re.compile(
    r"\b(framework|model|pattern|principle|law|rule|playbook|system|theory|concept|paradigm)\b", _I
)
COMPARISON = re.compile(
    r"\b\w+\s+(vs\.?|versus|compared to|rather than|instead of|as opposed to)\s+\w+", _I
)
ANALOGY = re.compile(r"\b(it'?s like|similar to|think of it as|imagine|as if|metaphor|analogy)\b", _I)
DEFINITION = re.compile(r"\b\w+\s+(is when|means|refers to|describes)\b", _I)

# -----------------------------------------------------------------------------
# Insight density
# -----------------------------------------------------------------------------

CONTRARIAN = re.compile(
    r"\b(but actually|but really|however|contrary to|opposite|paradox|irony|counterintuitive"
    r"|surprising|unexpected|myth|misconception)\b",
    _I,
)
CAUSAL = re.compile(
    r"\b(because|therefore|thus|hence|leads to|causes|results in|driven by|stems from)\b", _I
)
NEGATION = re.compile(r"\b(not|never|nobody|nothing|isn't|doesn't|won't|can't|don't)\b", _I)
CONDITIONAL = re.compile(r"\b(if .+ then|unless|when .+ then|given that)\b", _I)
CHALLENGE = re.compile(
    r"\b(problem is|issue is|mistake|wrong|misunderstand|miss|overlook|ignore)\b", _I
)

# -----------------------------------------------------------------------------
# Specificity
# -----------------------------------------------------------------------------

NUMBER = re.compile(r"\d+(?:[.,]\d+)?(?:%|x|X|\s*(?:percent|million|billion|thousand|times))?")
PROPER_NOUN = re.compile(r"\b[A-Z][a-z]+(?:\s[A-Z][a-z]+)?\b")
EXAMPLE = re.compile(r"\b(for example|for instance|such as|like when|case in point|consider)\b", _I)
PROCESS = re.compile(r"\b(first|second|third|next|then|finally|step|stage|phase)\b", _I)
TACTIC = re.compile(
    r"\b(you (can|should|need to|must|have to)|start by|begin with|the way to)\b", _I
)

# -----------------------------------------------------------------------------
# Quality
# -----------------------------------------------------------------------------

STOPWORDS = re.compile(r"\b(the|a|an|and|or|but|in|on|at|to|for|of|with|by)\b", _I)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(high, max(low, value))


def _empty_buckets(word_total: int, reason: str) -> HeuristicBuckets:
    return HeuristicBuckets(word_count=word_total, reasons=[reason])


def detect_promotional(text: str) -> Tuple[int, int]:
    """Return (ad indicator count, intro/outro indicator count)."""
    ads = sum(1 for p in AD_PATTERNS if p.search(text))
    intros = sum(1 for p in INTRO_OUTRO_PATTERNS if p.search(text))
    return ads, intros


def _framework_score(text: str, reasons: List[str]) -> float:
    score = 0.0
    if EXPLICIT_NAMING.search(text):
        score += 0.6
        reasons.append("Explicit concept naming")
    if QUOTED_LABEL.search(text) or CAPITALIZED_PAIR.search(text):
        score += 0.4
        reasons.append("Conceptual label detected")
    markers = len(FRAMEWORK_MARKERS.findall(text))
    if markers >= 2:
        score += 0.5
        reasons.append(f"Multiple framework markers ({markers})")
    elif markers == 1:
        score += 0.2
        reasons.append("Framework marker")
    if COMPARISON.search(text):
        score += 0.4
        reasons.append("Comparison pattern (X vs Y)")
    if ANALOGY.search(text):
        score += 0.3
        reasons.append("Analogy/metaphor")
    if DEFINITION.search(text):
        score += 0.3
        reasons.append("Definitional pattern")
    return clamp(score)


def _insight_score(text: str, reasons: List[str]) -> float:
    score = 0.0
    contrarian = len(CONTRARIAN.findall(text))
    if contrarian >= 2:
        score += 0.6
        reasons.append(f"Strong contrarian language ({contrarian})")
    elif contrarian == 1:
        score += 0.3
        reasons.append("Contrarian language")

    causal = len(CAUSAL.findall(text))
    if causal >= 3:
        score += 0.5
        reasons.append(f"Deep causal reasoning ({causal})")
    elif causal >= 1:
        score += 0.3
        reasons.append("Causal reasoning")

    negations = len(NEGATION.findall(text))
    if negations >= 4:
        score += 0.4
        reasons.append(f"Heavy critical thinking ({negations} negations)")
    elif negations >= 2:
        score += 0.2
        reasons.append("Critical thinking")

    questions = text.count("?")
    if questions >= 2:
        score += 0.3
        reasons.append(f"Dialectic reasoning ({questions} questions)")
    if CONDITIONAL.search(text):
        score += 0.3
        reasons.append("Conditional logic")
    if CHALLENGE.search(text):
        score += 0.3
        reasons.append("Challenge framing")
    return clamp(score)


def _specificity_score(text: str, reasons: List[str]) -> float:
    score = 0.0
    numbers = len(NUMBER.findall(text))
    if numbers >= 3:
        score += 0.5
        reasons.append(f"Data-rich ({numbers} numbers)")
    elif numbers >= 1:
        score += 0.25
        reasons.append("Contains data")

    proper_nouns = len(PROPER_NOUN.findall(text))
    if proper_nouns >= 3:
        score += 0.4
        reasons.append(f"Specific examples ({proper_nouns} named entities)")
    elif proper_nouns >= 1:
        score += 0.2
        reasons.append("Named entities")

    if EXAMPLE.search(text):
        score += 0.3
        reasons.append("Concrete examples")
    if PROCESS.search(text):
        score += 0.3
        reasons.append("Step-by-step process")
    if TACTIC.search(text):
        score += 0.3
        reasons.append("Actionable tactics")
    return clamp(score)


def _quality_score(text: str, words: int, reasons: List[str]) -> float:
    score = 0.0
    if words >= 250:
        score += 0.4
        reasons.append(f"Detailed ({words} words)")
    elif words >= 150:
        score += 0.2
        reasons.append(f"Moderate length ({words} words)")
    elif words < 100:
        score -= 0.3
        reasons.append(f"Very short ({words} words) - likely surface-level")

    sentences = split_sentences(text)
    avg_sentence_length = words / len(sentences) if sentences else words
    if 20 < avg_sentence_length < 40:
        score += 0.2
        reasons.append("Good sentence complexity")

    common = len(STOPWORDS.findall(text))
    richness = 1.0 - common / max(words, 1)
    if richness > 0.6:
        score += 0.3
        reasons.append("Rich vocabulary")
    return clamp(score)


def extract_features(text: str, config: ScoringConfig = DEFAULT_CONFIG) -> HeuristicBuckets:
    """
    Extract heuristic sub-scores and the weighted composite for one chunk of text.

    Empty text, and (when config.filter_promotional) ads or episode intros/outros,
    yield all-zero buckets with a single explanatory reason.
    """
    trimmed = (text or "").strip()
    words = word_count(trimmed)
    if words == 0:
        return _empty_buckets(0, "Empty content")

    if config.filter_promotional:
        ads, intros = detect_promotional(trimmed)
        if ads:
            return _empty_buckets(words, f"Commercial/ad content detected ({ads} indicators)")
        if intros:
            return _empty_buckets(words, f"Episode intro/outro detected ({intros} indicators)")

    reasons: List[str] = []
    framework = _framework_score(trimmed, reasons)
    insight = _insight_score(trimmed, reasons)
    specificity = _specificity_score(trimmed, reasons)
    quality = _quality_score(trimmed, words, reasons)

    weights = config.feature_weights
    composite = (
        framework * weights["framework"]
        + insight * weights["insight"]
        + specificity * weights["specificity"]
        + quality * weights["quality"]
    )
    return HeuristicBuckets(
        framework_score=framework,
        insight_score=insight,
        specificity_score=specificity,
        quality_score=quality,
        overall_score=clamp(composite),
        word_count=words,
        reasons=reasons,
    )


def heuristic_score(buckets: HeuristicBuckets) -> float:
    """Composite scaled to 0-100, rounded half up."""
    return float(math.floor(clamp(buckets.overall_score) * 100 + 0.5))


def score_heuristics(
    text: str,
    config: ScoringConfig = DEFAULT_CONFIG,
) -> Tuple[float, HeuristicBuckets]:
    """Run the extractor and return (0-100 score, buckets)."""
    buckets = extract_features(text, config)
    return heuristic_score(buckets), buckets
