"""
Query Complexity Classifier

Decides how much reasoning a legal question needs, so the router can send
it to the cheapest model that will answer it well.

    simple   -- short lookups ("what is the ESA?")
    moderate -- one legal concept, or a long but plain question
    deep     -- strategy, multi-factor analysis, named doctrines

Pure function of the query text: no I/O, no clock, no locale.
"""

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class ComplexityLevel(str, Enum):
    SIMPLE = "simple"
    MODERATE = "moderate"
    DEEP = "deep"


# Phrases that signal deep legal reasoning is needed (matched as
# case-insensitive substrings)
DEEP_REASONING_SIGNALS = (
    # Legal strategy
    "strategy", "advise", "recommend", "should i", "what are my options",
    "pros and cons", "risks", "liability", "exposure",
    # Complex legal analysis
    "analyze", "analysis", "compare", "distinguish", "apply the test",
    "legal test", "factors", "elements", "standard",
    # Case-specific reasoning
    "reasonable notice", "just cause", "constructive dismissal", "duty to mitigate",
    "termination clause", "enforceability", "severance calculation",
    "damages", "bad faith", "moral damages", "punitive",
    # Multi-step reasoning
    "how would a court", "what would happen if", "is there a case",
    "precedent", "what does the law say", "legal basis",
    "argue", "defence", "defense", "counter-argument",
)

SIMPLE_MAX_WORDS = 8      # fewer than this with no signal -> simple
DEEP_SINGLE_SIGNAL_WORDS = 15
LONG_QUERY_WORDS = 30


def count_signals(query: str) -> int:
    """Number of distinct deep-reasoning phrases present in the query."""
    lower = query.lower()
    return sum(1 for signal in DEEP_REASONING_SIGNALS if signal in lower)


def classify_query(query: str) -> ComplexityLevel:
    """
    Classify a query's reasoning complexity.

    Rules are evaluated top to bottom; the first match wins. Note that once
    a single signal is present, the long-query rule can never apply: a
    one-signal query of 8-15 words is always moderate.

    Args:
        query: Raw user question

    Returns:
        ComplexityLevel
    """
    word_count = len(query.split())
    signal_count = count_signals(query)

    if word_count < SIMPLE_MAX_WORDS and signal_count == 0:
        level = ComplexityLevel.SIMPLE
    elif signal_count >= 2:
        level = ComplexityLevel.DEEP
    elif signal_count == 1 and word_count > DEEP_SINGLE_SIGNAL_WORDS:
        level = ComplexityLevel.DEEP
    elif signal_count == 1:
        level = ComplexityLevel.MODERATE
    elif word_count > LONG_QUERY_WORDS:
        level = ComplexityLevel.MODERATE
    else:
        level = ComplexityLevel.SIMPLE

    logger.debug(f"Query classified as '{level.value}' ({word_count} words, {signal_count} signals)")
    return level
