# intent_classifier.py — Rule-based question classification
# Ordered, declarative pattern table → analytical intent
"""
intent_classifier.py — Intent Classification

Maps a free-text question onto a closed set of analytical intents. No model
calls: the rule table below is data, evaluated in order, first match wins.

Family order is a deliberate tie-break. Temporal grouping outranks plain
grouping, which outranks every plain aggregate, so "total revenue over time"
is a time series and not a sum.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from engine.models import AnalyticsIntent, Confidence, IntentClassification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntentRule:
    intent: AnalyticsIntent
    pattern: re.Pattern
    confidence: Confidence = Confidence.HIGH


def _rule(intent: AnalyticsIntent, pattern: str, confidence: Confidence = Confidence.HIGH) -> IntentRule:
    return IntentRule(intent, re.compile(pattern, re.IGNORECASE), confidence)


_TS = AnalyticsIntent.TIME_SERIES
_GB = AnalyticsIntent.GROUP_BY
_MIN = AnalyticsIntent.AGGREGATE_MIN
_MAX = AnalyticsIntent.AGGREGATE_MAX
_SUM = AnalyticsIntent.AGGREGATE_SUM
_AVG = AnalyticsIntent.AGGREGATE_AVG
_COUNT = AnalyticsIntent.AGGREGATE_COUNT

# Ordered most-specific first. Within a family, broader patterns sit last and
# may carry a lower confidence.
INTENT_RULES: tuple[IntentRule, ...] = (
    # Time series
    _rule(_TS, r"\b(over time|over the|throughout|across time|time series|trend|trends)\b"),
    _rule(_TS, r"\b(by|per|for each)\s+(day|month|year|week|date|time)\b"),
    _rule(_TS, r"\b(daily|monthly|yearly|weekly|hourly)\b"),
    _rule(_TS, r"\b(evolution|change|growth|decline)\s+(over|across)\s+(time|period)\b"),
    _rule(_TS, r"\b(revenue|sales|count)\s+(over|across|throughout)\s+(time|period|days|months|years)\b"),
    # Group by
    _rule(_GB, r"\b(show|display|list|get|find|what|total|sum|average|avg|count|revenue|sales)\s+.*?\s+(by|grouped by|group by|per|for each|for every)\s+[a-z_]+"),
    _rule(_GB, r"\b(breakdown|distribution|split|group|organize)\s+(by|per)\s+[a-z_]+\b"),
    _rule(_GB, r"\b(by|grouped by|group by|per|for each|for every)\s+[a-z_]+\b", Confidence.MEDIUM),
    # Minimum
    _rule(_MIN, r"\b(what is the|what's the|find the)\s+(minimum|min|lowest|smallest|earliest)\b"),
    _rule(_MIN, r"\b(minimum|min|lowest|smallest|earliest|oldest)\b"),
    _rule(_MIN, r"\bfirst\b", Confidence.MEDIUM),
    # Maximum
    _rule(_MAX, r"\b(what is the|what's the|find the)\s+(maximum|max|highest|largest|latest|newest)\b"),
    _rule(_MAX, r"\b(maximum|max|highest|largest|latest|newest|most recent)\b"),
    _rule(_MAX, r"\blast\b", Confidence.MEDIUM),
    # Sum
    _rule(_SUM, r"\b(total)\s+(revenue|sales|income|profit|amount|value)\b"),
    _rule(_SUM, r"\b(revenue|sales|income|profit|amount|value)\s+(total|sum)\b"),
    _rule(_SUM, r"\b(what is the total|what's the total|sum of|add up)\b"),
    _rule(_SUM, r"\b(total|sum|summarize|summation)\b"),
    _rule(_SUM, r"\bhow much\b", Confidence.MEDIUM),
    # Average
    _rule(_AVG, r"\b(what is the average|what's the average)\b"),
    _rule(_AVG, r"\b(average|mean)\s+(of|for)\b"),
    _rule(_AVG, r"\b(average|avg|mean)\b"),
    # Count
    _rule(_COUNT, r"\b(how many|count of|total count|total number of|number of)\b"),
    _rule(_COUNT, r"\b(count|quantity)\b"),
    _rule(_COUNT, r"\bnumber\b", Confidence.MEDIUM),
)


def normalize_question(question: str) -> str:
    return question.lower().strip()


def classify_intent(question: str, rules: tuple[IntentRule, ...] = INTENT_RULES) -> IntentClassification:
    """
    Classify a question into an analytical intent.

    Args:
        question: Raw user question
        rules: Ordered rule table (defaults to INTENT_RULES)

    Returns:
        IntentClassification; ``unsupported_query`` with low confidence when
        no rule matches
    """
    normalized = normalize_question(question or "")

    for rule in rules:
        if rule.pattern.search(normalized):
            logger.info("Classified question as %s (%s)", rule.intent.value, rule.confidence.value)
            return IntentClassification(rule.intent, rule.confidence)

    logger.info("No intent rule matched question")
    return IntentClassification(AnalyticsIntent.UNSUPPORTED_QUERY, Confidence.LOW)
